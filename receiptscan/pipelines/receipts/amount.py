# receiptscan/pipelines/receipts/amount.py
# -*- coding: utf-8 -*-
"""
Transaction total from recognized words.

Cascade (first rule that yields a value wins):
1) explicit total-labelled price
2) the only item price, when exactly one exists
3) sum of item lines after noise filtering
4) largest plausible price
5) None (extraction miss, user enters it)

Similar stored receipts are only reported; they do not steer the result.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence, Tuple

from receiptscan.pipelines.receipts.layout import (
    analyze_receipt_layout,
    extract_price_from_line,
    extract_product_lines,
    line_text,
    should_skip_line,
)
from receiptscan.pipelines.receipts.models import PriceRegion, ReceiptPattern, RecognizedWord

logger = logging.getLogger(__name__)

# price classification does not depend on image size
_LAYOUT_SIZE = 1000
ITEM_PRICE_MAX = 1000.0


def extract_amount_with_source(
    words: Sequence[RecognizedWord],
    text: str = "",
    similar_receipts: Sequence[ReceiptPattern] = (),
) -> Tuple[Optional[float], Optional[str], Optional[PriceRegion]]:
    """
    Return (amount, rule, price) where rule names the cascade step that
    produced the amount and price is the word it was read from (None for
    the item-sum rule and for misses).
    """
    layout = analyze_receipt_layout(words, _LAYOUT_SIZE, _LAYOUT_SIZE)

    totals = [p for p in layout.price_regions if p.type == "total"]
    if totals:
        best = max(totals, key=lambda p: p.confidence)  # max() keeps the first on ties
        logger.debug("Found explicit total: %s", best.value)
        return best.value, "total", best

    if similar_receipts:
        logger.debug("Amount: %d similar receipts on record (not used)", len(similar_receipts))

    items = [p for p in layout.price_regions if p.type == "item"]
    if len(items) == 1:
        logger.debug("Single item price: %s", items[0].value)
        return items[0].value, "single-item", items[0]

    total_calculated = 0.0
    item_count = 0
    for line in extract_product_lines(words):
        txt = line_text(line)
        if should_skip_line(txt):
            logger.debug("Skipping noise line %r", txt)
            continue
        price = extract_price_from_line(txt)
        if price is not None and 0 < price < ITEM_PRICE_MAX:
            total_calculated += price
            item_count += 1

    if item_count > 0:
        amount = round(total_calculated, 2)
        logger.debug("Calculated total from %d item lines: %s", item_count, amount)
        return amount, "item-sum", None

    plausible = [p for p in layout.price_regions if 0 < p.value < ITEM_PRICE_MAX]
    if plausible:
        largest = max(plausible, key=lambda p: p.value)
        logger.debug("Fallback: largest amount %s", largest.value)
        return largest.value, "largest", largest

    logger.debug("Could not extract amount")
    return None, None, None


def extract_amount_with_rule(
    words: Sequence[RecognizedWord],
    text: str = "",
    similar_receipts: Sequence[ReceiptPattern] = (),
) -> Tuple[Optional[float], Optional[str]]:
    amount, rule, _ = extract_amount_with_source(words, text, similar_receipts)
    return amount, rule


def extract_amount(
    words: Sequence[RecognizedWord],
    text: str = "",
    similar_receipts: Sequence[ReceiptPattern] = (),
) -> Optional[float]:
    amount, _ = extract_amount_with_rule(words, text, similar_receipts)
    return amount
