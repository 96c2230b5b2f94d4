# receiptscan/pipelines/receipts/templates.py
# -*- coding: utf-8 -*-
"""
Per-chain regex templates (total / date / items / VAT).

Selection is first-match in declaration order, not best-match: when keyword
lists overlap, the earlier template wins.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional, Pattern, Sequence, Tuple

from receiptscan.pipelines.receipts.models import ExtractedReceiptData

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TemplatePatterns:
    total: Tuple[Pattern[str], ...]
    date: Tuple[Pattern[str], ...]
    items: Tuple[Pattern[str], ...]
    vat: Tuple[Pattern[str], ...]


@dataclass(frozen=True)
class ReceiptTemplate:
    name: str
    keywords: Tuple[str, ...]
    patterns: TemplatePatterns


_DATE_PATTERNS = (
    re.compile(r"(\d{2})[-./](\d{2})[-./](\d{4})"),
    re.compile(r"Data:?\s*(\d{2})[-./](\d{2})[-./](\d{4})", re.I),
)

RECEIPT_TEMPLATES: Tuple[ReceiptTemplate, ...] = (
    ReceiptTemplate(
        name="Profi",
        keywords=("PROFI ROM FOOD", "REDIS FIBROBAR"),
        patterns=TemplatePatterns(
            total=(
                re.compile(r"TOTAL\s*(?:RON|LEI)?\s*(\d+[.,]\d{2})", re.I),
                re.compile(r"TOTAL PLATA\s*(?:RON|LEI)?\s*(\d+[.,]\d{2})", re.I),
            ),
            date=_DATE_PATTERNS,
            items=(
                re.compile(r"(\d+[.,]\d{2})\s*(?:x|X)\s*(\d+[.,]\d{2})\s*=?\s*(\d+[.,]\d{2})"),
                re.compile(r"(\d+[.,]\d{2})\s*BUC\s*[xX]\s*(\d+[.,]\d{2})"),
            ),
            vat=(
                re.compile(r"TVA\s*(\d+)%\s*:\s*(\d+[.,]\d{2})", re.I),
            ),
        ),
    ),
    ReceiptTemplate(
        name="Kaufland",
        keywords=("KAUFLAND ROMANIA", "K-CARD"),
        patterns=TemplatePatterns(
            total=(
                re.compile(r"TOTAL\s*(?:RON|LEI)?\s*(\d+[.,]\d{2})", re.I),
                re.compile(r"SUMA TOTALA\s*(?:RON|LEI)?\s*(\d+[.,]\d{2})", re.I),
            ),
            date=_DATE_PATTERNS,
            items=(
                re.compile(r"(\d+)\s*BUC\.\s*[xX]\s*(\d+[.,]\d{2})\s*=?\s*(\d+[.,]\d{2})"),
                re.compile(r"(\d+[.,]\d{2})\s*(?:x|X)\s*(\d+[.,]\d{2})"),
            ),
            vat=(
                re.compile(r"TVA\s*(\d+)%\s*:\s*(\d+[.,]\d{2})", re.I),
                re.compile(r"Cota TVA\s*(\d+)%\s*:\s*(\d+[.,]\d{2})", re.I),
            ),
        ),
    ),
    ReceiptTemplate(
        name="Lidl",
        keywords=("LIDL DISCOUNT", "LIDL ROMANIA"),
        patterns=TemplatePatterns(
            total=(
                re.compile(r"TOTAL\s*(?:RON|LEI)?\s*(\d+[.,]\d{2})", re.I),
                re.compile(r"SUMA DE PLATA\s*(?:RON|LEI)?\s*(\d+[.,]\d{2})", re.I),
            ),
            date=_DATE_PATTERNS,
            items=(
                re.compile(r"(\d+)\s*(?:BUC|X)\s*[xX]\s*(\d+[.,]\d{2})\s*=?\s*(\d+[.,]\d{2})"),
                re.compile(r"(\d+[.,]\d{2})\s*(?:x|X)\s*(\d+[.,]\d{2})"),
            ),
            vat=(
                re.compile(r"TVA\s*(\d+)%\s*:\s*(\d+[.,]\d{2})", re.I),
            ),
        ),
    ),
)


def _num(s: str) -> float:
    return float(s.replace(",", "."))


def match_receipt_template(
    text: str,
    templates: Sequence[ReceiptTemplate] = RECEIPT_TEMPLATES
) -> Optional[ReceiptTemplate]:
    """First template with at least one keyword hit (case-insensitive substring)."""
    up = (text or "").upper()
    for tmpl in templates:
        hits = sum(1 for kw in tmpl.keywords if kw.upper() in up)
        if hits > 0:
            logger.debug("Receipt template matched: %s (%d keyword hits)", tmpl.name, hits)
            return tmpl
    return None


def extract_receipt_data(
    text: str,
    template: Optional[ReceiptTemplate] = None,
    templates: Sequence[ReceiptTemplate] = RECEIPT_TEMPLATES,
) -> ExtractedReceiptData:
    """
    Run the template regexes over `text`.
    Total/date: first matching regex per template. Items/VAT: every match of
    every regex. Without a template, every template is tried in turn.
    """
    text = text or ""
    result = ExtractedReceiptData()
    match_count = 0
    total_patterns = 0

    for tmpl in ([template] if template else list(templates)):
        for rx in tmpl.patterns.total:
            total_patterns += 1
            m = rx.search(text)
            if m and m.group(1):
                result.total = _num(m.group(1))
                match_count += 1
                break

        for rx in tmpl.patterns.date:
            total_patterns += 1
            m = rx.search(text)
            if m:
                day, month, year = m.group(1), m.group(2), m.group(3)
                result.date = f"{year}-{month.zfill(2)}-{day.zfill(2)}"
                match_count += 1
                break

        for rx in tmpl.patterns.items:
            total_patterns += 1
            for m in rx.finditer(text):
                groups = m.groups()
                quantity, price = _num(groups[0]), _num(groups[1])
                line_total = _num(groups[2]) if len(groups) > 2 and groups[2] else round(quantity * price, 2)
                result.items.append({"quantity": quantity, "price": price, "total": line_total})
                match_count += 1

        for rx in tmpl.patterns.vat:
            total_patterns += 1
            for m in rx.finditer(text):
                result.vat.append({"percentage": int(m.group(1)), "amount": _num(m.group(2))})
                match_count += 1

    # items/VAT count every hit, so the ratio can pass 100
    result.confidence = match_count / total_patterns * 100 if total_patterns else 0.0
    result.template = template.name if template else None
    return result
