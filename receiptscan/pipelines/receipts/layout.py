# receiptscan/pipelines/receipts/layout.py
# -*- coding: utf-8 -*-
"""
Spatial layout heuristics over recognized words.

- Region table for date candidates (fixed confidences, never data-driven)
- Price candidates classified as item / total by the words to their left
- Text-line reconstruction and noise-line filtering for item summing
"""

from __future__ import annotations

import logging
import re
from typing import Dict, List, Optional, Sequence, Tuple

from receiptscan.pipelines.receipts.models import (
    DateRegion,
    PriceRegion,
    ReceiptLayout,
    RecognizedWord,
)

logger = logging.getLogger(__name__)

DATE_WORD_RE = re.compile(r"\d{1,2}[/\-.]\d{1,2}[/\-.]\d{2,4}")
PRICE_WORD_RE = re.compile(r"\d+[.,]\d{2}")
TOTAL_LABEL_RE = re.compile(r"total|suma|plata", re.I)

# region -> confidence
REGION_CONFIDENCE: Dict[str, int] = {
    "top-right": 95,
    "top-left": 80,
    "bottom": 85,
    "middle": 60,
}

TOTAL_CONFIDENCE = 90
ITEM_CONFIDENCE = 70
SAME_LINE_PX = 20
PRICE_MAX = 10000.0


def parse_price(s: str) -> Optional[float]:
    """First `\\d+[.,]\\d{2}` token in s, comma read as decimal separator."""
    m = PRICE_WORD_RE.search(s or "")
    if not m:
        return None
    return float(m.group(0).replace(",", "."))


def _thresholds(width: float, height: float) -> Tuple[float, float, float, float]:
    return 0.25 * height, 0.75 * height, 0.25 * width, 0.75 * width


def classify_region(cx: float, cy: float, width: float, height: float) -> Tuple[str, int]:
    """Pure lookup: word centre -> (region, confidence)."""
    top_y, bottom_y, left_x, right_x = _thresholds(width, height)
    if cy < top_y and cx > right_x:
        region = "top-right"
    elif cy < top_y and cx < left_x:
        region = "top-left"
    elif cy > bottom_y:
        region = "bottom"
    else:
        region = "middle"
    return region, REGION_CONFIDENCE[region]


def _is_total_price(word: RecognizedWord, words: Sequence[RecognizedWord]) -> bool:
    left_same_line = [
        w.text for w in words
        if abs(w.bbox.y0 - word.bbox.y0) < SAME_LINE_PX and w.bbox.x0 < word.bbox.x0
    ]
    return bool(TOTAL_LABEL_RE.search(" ".join(left_same_line)))


def analyze_date_layout(words: Sequence[RecognizedWord], width: float, height: float) -> List[DateRegion]:
    """Date candidates only, each tagged with its region."""
    regions: List[DateRegion] = []
    for word in words or []:
        if not word or not isinstance(word.text, str):
            continue
        if not DATE_WORD_RE.search(word.text):
            continue
        cx, cy = word.bbox.center
        region, conf = classify_region(cx, cy, width, height)
        regions.append(DateRegion(word=word, region=region, confidence=conf))
        logger.debug("Found date %r in %s region (confidence %d)", word.text, region, conf)
    return regions


def analyze_receipt_layout(words: Sequence[RecognizedWord], width: float, height: float) -> ReceiptLayout:
    """Partition words into quadrants and collect date / price candidates."""
    layout = ReceiptLayout()
    if not words:
        return layout

    top_y, bottom_y, left_x, right_x = _thresholds(width, height)
    layout.date_regions = analyze_date_layout(words, width, height)

    for word in words:
        if not word or not isinstance(word.text, str):
            continue
        cx, cy = word.bbox.center

        if cy < top_y:
            layout.top_section.append(word)
        elif cy > bottom_y:
            layout.bottom_section.append(word)

        if cx > right_x:
            layout.right_section.append(word)
        elif cx < left_x:
            layout.left_section.append(word)

        price = parse_price(word.text)
        if price is None or not (0 < price < PRICE_MAX):
            continue
        is_total = _is_total_price(word, words)
        layout.price_regions.append(PriceRegion(
            word=word,
            type="total" if is_total else "item",
            confidence=TOTAL_CONFIDENCE if is_total else ITEM_CONFIDENCE,
            value=price,
        ))

    return layout


# ---------------------------
# Text lines
# ---------------------------

def extract_product_lines(words: Sequence[RecognizedWord], tolerance: float = 10) -> List[List[RecognizedWord]]:
    """
    Group words into text lines by y0 proximity, lines top-to-bottom and
    words left-to-right. A word joins the first line whose anchor y is
    within `tolerance`.
    """
    lines: List[Tuple[float, List[RecognizedWord]]] = []
    for word in words or []:
        if not word:
            continue
        y = word.bbox.y0
        for anchor, line in lines:
            if abs(anchor - y) <= tolerance:
                line.append(word)
                break
        else:
            lines.append((y, [word]))

    lines.sort(key=lambda item: item[0])
    return [sorted(line, key=lambda w: w.bbox.x0) for _, line in lines]


def line_text(line: Sequence[RecognizedWord]) -> str:
    return " ".join(w.text for w in line)


_SKIP_PATTERNS = [
    re.compile(r"^[\d\s\-/.]{1,15}$"),
    re.compile(r"casier|operator|casa", re.I),
    re.compile(r"tva|subtotal|total", re.I),
    re.compile(r"bon fiscal|nr\.|cod", re.I),
    re.compile(r"multumesc|multumim|thank", re.I),
    re.compile(r"^\W{1,5}$"),
    re.compile(r"adresa|telefon|str\.", re.I),
    re.compile(r"plata|card|numerar", re.I),
    re.compile(r"rest|change", re.I),
]


def should_skip_line(text: str) -> bool:
    """Noise lines: numbers only, cashier, totals, codes, greetings, address, payment, change."""
    low = (text or "").lower()
    if len(low) < 3 or len(low) > 100:
        return True
    return any(p.search(low) for p in _SKIP_PATTERNS)


_LINE_PRICE_PATTERNS = [
    re.compile(r"^(.+?)\s+(\d+[.,]\d{2})\s*$"),
    re.compile(r"(\d+[.,]\d{2})"),
    re.compile(r"x\s*(\d+[.,]\d{2})"),
]


def extract_price_from_line(text: str) -> Optional[float]:
    """Trailing price, else any price, else `x price`; only (0, 1000) qualifies."""
    for rx in _LINE_PRICE_PATTERNS:
        m = rx.search(text or "")
        if not m:
            continue
        price = float(m.group(m.lastindex or 0).replace(",", "."))
        if 0 < price < 1000:
            return price
    return None
