# receiptscan/pipelines/receipts/categories.py
# -*- coding: utf-8 -*-
"""
Expense category for a scanned receipt.

Known store names decide first; otherwise product keywords are checked in
order of association confidence (highest first, declaration order on ties).
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Dict, Optional, Pattern, Tuple

logger = logging.getLogger(__name__)

CATEGORIES = (
    "Housing", "Food & Drinks", "Transport", "Health", "Lifestyle",
    "Entertainment", "Savings", "Other",
)

SUBCATEGORIES = (
    "Rent", "Electricity", "Water", "Internet", "TV", "Insurance", "Home Supplies",
    "Groceries", "Restaurant", "Coffee", "Drinks",
    "Gas", "Taxi", "Parking", "Public Transport", "Car Insurance", "Car Loan", "Flight", "Repair",
    "Medication", "Doctor", "Therapy",
    "Clothes", "Gym", "Self-care", "Subscriptions",
    "Cinema", "Games", "Books", "Concerts",
    "Savings", "Vacation Savings",
    "Miscellaneous",
)


@dataclass(frozen=True)
class StoreCategory:
    names: Tuple[str, ...]
    category: str
    subcategory: str


@dataclass(frozen=True)
class ProductAssociation:
    keywords: Tuple[str, ...]
    category: str
    subcategory: str
    confidence: int


STORE_CATEGORIES: Tuple[StoreCategory, ...] = (
    StoreCategory(
        ("profi", "penny", "megaimage", "mega image", "mega", "lidl", "kaufland",
         "carrefour", "auchan", "cora", "metro", "selgros"),
        "Food & Drinks", "Groceries",
    ),
    StoreCategory(
        ("lukoil", "rompetrol", "mol", "omv", "petrom", "socar", "gazprom"),
        "Transport", "Gas",
    ),
    StoreCategory(
        ("mcdonalds", "mc donalds", "mcdonald's", "kfc", "burger king", "subway",
         "springtime", "pizza hut", "dominos"),
        "Food & Drinks", "Restaurant",
    ),
    StoreCategory(
        ("starbucks", "costa coffee", "5 to go", "5togo", "ted's coffee", "teds coffee",
         "gregory's", "tucano coffee"),
        "Food & Drinks", "Coffee",
    ),
    StoreCategory(("decathlon", "intersport", "hervis"), "Lifestyle", "Gym"),
    StoreCategory(
        ("h&m", "h & m", "zara", "pull&bear", "pull & bear", "bershka", "c&a", "c & a", "reserved"),
        "Lifestyle", "Clothes",
    ),
    StoreCategory(
        ("dm", "douglas", "sephora", "farmacia tei", "sensiblu", "catena", "help net", "dr max"),
        "Health", "Medication",
    ),
)

PRODUCT_ASSOCIATIONS: Tuple[ProductAssociation, ...] = (
    ProductAssociation(
        ("benzina", "benzină", "motorina", "motorină", "diesel", "gpl", "combustibil",
         "carburant", "petrol", "fuel", "pompa", "peco"),
        "Transport", "Gas", 95,
    ),
    ProductAssociation(("uber", "bolt", "taxi"), "Transport", "Taxi", 90),
    ProductAssociation(
        ("parcare", "parking", "parcometru"),
        "Transport", "Parking", 85,
    ),
    ProductAssociation(
        ("bilet transport", "abonament transport", "metrou", "autobuz", "tramvai", "stb"),
        "Transport", "Public Transport", 85,
    ),
    ProductAssociation(
        ("cafea", "coffee", "espresso", "cappuccino", "latte", "americano", "macchiato",
         "cafenea", "ceai", "tea"),
        "Food & Drinks", "Coffee", 90,
    ),
    ProductAssociation(
        ("meniu", "burger", "pizza", "restaurant", "bistro", "ciorba", "ciorbă", "desert"),
        "Food & Drinks", "Restaurant", 85,
    ),
    ProductAssociation(
        ("suc", "juice", "bere", "beer", "vin", "wine", "coca cola", "pepsi", "vodka", "whisky"),
        "Food & Drinks", "Drinks", 85,
    ),
    ProductAssociation(
        ("medicament", "medicamente", "medication", "pastile", "comprimate", "sirop",
         "paracetamol", "ibuprofen", "nurofen", "vitamine", "farmacie", "pharmacy"),
        "Health", "Medication", 90,
    ),
    ProductAssociation(
        ("sampon", "șampon", "shampoo", "sapun", "săpun", "soap", "deodorant",
         "pasta de dinti", "toothpaste", "parfum", "cosmetice"),
        "Lifestyle", "Self-care", 85,
    ),
    ProductAssociation(
        ("tricou", "pantaloni", "blugi", "jeans", "rochie", "pantofi", "shoes", "jacheta"),
        "Lifestyle", "Clothes", 85,
    ),
    ProductAssociation(
        ("bilet cinema", "cinema", "popcorn", "movie ticket"),
        "Entertainment", "Cinema", 85,
    ),
    ProductAssociation(
        ("lapte", "milk", "paine", "pâine", "bread", "oua", "ouă", "eggs", "branza", "brânză",
         "cheese", "carne", "meat", "legume", "vegetables", "fructe", "fruits", "orez", "rice",
         "zahar", "zahăr", "sugar", "ulei", "oil", "unt", "butter", "iaurt", "yogurt",
         "supermarket", "hipermarket", "alimentara", "magazin"),
        "Food & Drinks", "Groceries", 80,
    ),
    ProductAssociation(
        ("carte", "carti", "cărți", "book", "books", "librarie", "librărie", "carturesti"),
        "Entertainment", "Books", 75,
    ),
)


def _rx(term: str) -> Pattern[str]:
    # \b does not anchor next to '&' or an apostrophe, so use look-arounds on word chars
    return re.compile(rf"(?<!\w){re.escape(term)}(?!\w)", re.I)


_STORE_RX: Tuple[Tuple[StoreCategory, str, Pattern[str]], ...] = tuple(
    (sc, name, _rx(name)) for sc in STORE_CATEGORIES for name in sc.names
)
_PRODUCTS_BY_CONF = sorted(PRODUCT_ASSOCIATIONS, key=lambda a: a.confidence, reverse=True)
_PRODUCT_RX: Dict[str, Pattern[str]] = {
    kw: _rx(kw) for a in PRODUCT_ASSOCIATIONS for kw in a.keywords
}


def find_store_in_text(text: str) -> Optional[Dict[str, str]]:
    """{'store_name', 'category', 'subcategory'} for the first known store named in text."""
    low = (text or "").lower()
    for sc, name, rx in _STORE_RX:
        if rx.search(low):
            return {
                "store_name": name[:1].upper() + name[1:],
                "category": sc.category,
                "subcategory": sc.subcategory,
            }
    return None


def find_category_by_product(text: str) -> Optional[Dict[str, object]]:
    low = (text or "").lower()
    for assoc in _PRODUCTS_BY_CONF:
        for kw in assoc.keywords:
            if _PRODUCT_RX[kw].search(low):
                logger.debug(
                    "Product association %r -> %s (%s) confidence %d",
                    kw, assoc.category, assoc.subcategory, assoc.confidence,
                )
                return {
                    "category": assoc.category,
                    "subcategory": assoc.subcategory,
                    "confidence": assoc.confidence,
                }
    return None


def detect_category(text: str) -> Optional[Tuple[str, str]]:
    """(category, subcategory): store name first, then product keywords."""
    store = find_store_in_text(text)
    if store:
        return store["category"], store["subcategory"]
    product = find_category_by_product(text)
    if product:
        return str(product["category"]), str(product["subcategory"])
    return None
