# receiptscan/pipelines/receipts/translate.py
# -*- coding: utf-8 -*-
"""
Normalize recognized Romanian receipt vocabulary into English.

Receipt-structure words (total, tva, suma, plata, data, rest, numerar) are
kept out of the dictionary: the template and layout stages match on them.
"""

from __future__ import annotations

import re
from typing import Dict, List, Pattern, Tuple

# Values must never contain a key as a whole word (keeps translation idempotent).
ROMANIAN_TO_ENGLISH: Dict[str, str] = {
    # phrases
    "pâine albă": "white bread",
    "paine alba": "white bread",
    "apă minerală": "mineral water",
    "apa minerala": "mineral water",
    "carne de pui": "chicken meat",
    "carne de porc": "pork meat",
    "hârtie igienică": "toilet paper",
    "hartie igienica": "toilet paper",
    "smântână": "sour cream",
    "smantana": "sour cream",
    # bakery / dairy
    "pâine": "bread",
    "paine": "bread",
    "franzelă": "baguette",
    "franzela": "baguette",
    "chiflă": "bun",
    "chifla": "bun",
    "lapte": "milk",
    "ouă": "eggs",
    "oua": "eggs",
    "brânză": "cheese",
    "branza": "cheese",
    "unt": "butter",
    "iaurt": "yogurt",
    # meat / produce
    "carne": "meat",
    "pui": "chicken",
    "porc": "pork",
    "vită": "beef",
    "vita": "beef",
    "legume": "vegetables",
    "fructe": "fruits",
    "mere": "apples",
    "banane": "bananas",
    "roșii": "tomatoes",
    "rosii": "tomatoes",
    "cartofi": "potatoes",
    "ceapă": "onions",
    "ceapa": "onions",
    # pantry
    "zahăr": "sugar",
    "zahar": "sugar",
    "sare": "salt",
    "ulei": "oil",
    "făină": "flour",
    "faina": "flour",
    "orez": "rice",
    "ciocolată": "chocolate",
    "ciocolata": "chocolate",
    "biscuiți": "biscuits",
    "biscuiti": "biscuits",
    # drinks
    "cafea": "coffee",
    "ceai": "tea",
    "apă": "water",
    "apa": "water",
    "suc": "juice",
    "bere": "beer",
    "vin": "wine",
    # household / health
    "săpun": "soap",
    "sapun": "soap",
    "șampon": "shampoo",
    "sampon": "shampoo",
    "medicamente": "medication",
    "farmacie": "pharmacy",
    # fuel / shopping
    "benzină": "petrol",
    "benzina": "petrol",
    "motorină": "diesel",
    "motorina": "diesel",
    "combustibil": "fuel",
    "carburant": "fuel",
    "magazin": "shop",
    "cumpărături": "shopping",
    "cumparaturi": "shopping",
}


def _compile(dictionary: Dict[str, str]) -> List[Tuple[Pattern[str], str]]:
    """Longest key first so phrases are not shadowed by their single words."""
    entries = sorted(dictionary.items(), key=lambda kv: len(kv[0]), reverse=True)
    return [(re.compile(rf"\b{re.escape(ro)}\b", re.I), en) for ro, en in entries]


_COMPILED = _compile(ROMANIAN_TO_ENGLISH)


def translate_receipt_text(text: str) -> str:
    """Lowercase `text` and replace every known Romanian token by its English form."""
    out = (text or "").lower()
    for rx, en in _COMPILED:
        out = rx.sub(en, out)
    return out


# ---------------------------
# Language detection
# ---------------------------

_RO_CHARS = re.compile(r"[ăâîșțşţĂÂÎȘȚŞŢ]")
_RO_WORDS = (
    "am", "fost", "cheltuit", "azi", "ieri", "lei", "pentru", "cu", "la",
    "magazin", "cafea", "chirie", "suma", "bani", "bon", "fiscal", "total plata",
)
_EN_WORDS = ("spent", "paid", "cost", "bought", "purchase", "dollar", "euro", "receipt")


def detect_language(text: str) -> str:
    """'ro' on diacritics or common Romanian words, 'en' on English spending words, else 'ro'."""
    low = (text or "").lower()
    if _RO_CHARS.search(text or ""):
        return "ro"
    tokens = set(re.findall(r"\w+", low))
    if any((w in tokens) if " " not in w else (w in low) for w in _RO_WORDS):
        return "ro"
    if any(w in tokens for w in _EN_WORDS):
        return "en"
    return "ro"
