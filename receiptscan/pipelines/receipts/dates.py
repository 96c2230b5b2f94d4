# receiptscan/pipelines/receipts/dates.py
# -*- coding: utf-8 -*-
"""
Transaction date from recognized words, with a text fallback.

Order:
1) spatial candidates (regions learned from similar receipts first,
   then region confidence)
2) scored scan of the receipt text (top/bottom lines and context lines)
3) today

Every candidate passes the same plausibility filter: a real calendar date in
2000..2030 that lies within the last 365 days, today included.
"""

from __future__ import annotations

import logging
import re
from datetime import date, timedelta
from typing import List, Optional, Sequence, Tuple

from receiptscan.pipelines.receipts.layout import analyze_date_layout, extract_product_lines, line_text
from receiptscan.pipelines.receipts.models import ReceiptPattern, RecognizedWord
from receiptscan.pipelines.receipts.patterns import preferred_date_regions

logger = logging.getLogger(__name__)

MAX_PAST_DAYS = 365
MIN_YEAR = 2000
MAX_YEAR = 2030


# ---------------------------
# Validation
# ---------------------------

def validate_date(day: int, month0: int, year: int, today: Optional[date] = None) -> Optional[date]:
    """
    Calendar date for (day, zero-based month, year) or None when it is out of
    range, not a real date, in the future, or older than MAX_PAST_DAYS.
    """
    today = today or date.today()
    if not (1 <= day <= 31 and 0 <= month0 <= 11 and MIN_YEAR <= year <= MAX_YEAR):
        return None
    try:
        d = date(year, month0 + 1, day)
    except ValueError:
        return None
    if today - timedelta(days=MAX_PAST_DAYS) <= d <= today:
        return d
    return None


def expand_two_digit_year(yy: int, month_name: bool = False, today: Optional[date] = None) -> int:
    """Two-digit year pivot: numeric dates use 50, month-name dates use the current year."""
    if yy >= 100:
        return yy
    if month_name:
        pivot = (today or date.today()).year % 100
        return 2000 + yy if yy <= pivot else 1900 + yy
    return 2000 + yy if yy < 50 else 1900 + yy


_WORD_DATE_PATTERNS = [
    re.compile(r"(?<!\d)(\d{1,2})[/\-.](\d{1,2})[/\-.](\d{4})(?!\d)"),
    re.compile(r"(?<!\d)(\d{1,2})[/\-.](\d{1,2})[/\-.](\d{2})(?!\d)"),
    re.compile(r"(?<!\d)(\d{4})[/\-.](\d{1,2})[/\-.](\d{1,2})(?!\d)"),
]


def extract_valid_date(s: str, today: Optional[date] = None) -> Optional[str]:
    """ISO date for the first date-like token in `s` that validates, else None."""
    for rx in _WORD_DATE_PATTERNS:
        m = rx.search(s or "")
        if not m:
            continue
        a, b, c = m.group(1), m.group(2), m.group(3)
        if len(c) == 4:
            day, month0, year = int(a), int(b) - 1, int(c)
        elif len(a) == 4:
            year, month0, day = int(a), int(b) - 1, int(c)
        else:
            day, month0, year = int(a), int(b) - 1, expand_two_digit_year(int(c), today=today)
        d = validate_date(day, month0, year, today)
        if d:
            return d.isoformat()
    return None


# ---------------------------
# Text fallback
# ---------------------------

MONTHS = {
    "ian": 0, "january": 0,
    "feb": 1, "february": 1,
    "mar": 2, "march": 2,
    "apr": 3, "april": 3,
    "mai": 4, "may": 4,
    "iun": 5, "june": 5,
    "iul": 6, "july": 6,
    "aug": 7, "august": 7,
    "sep": 8, "september": 8,
    "oct": 9, "october": 9,
    "nov": 10, "november": 10,
    "dec": 11, "december": 11,
}
_MONTH_ALT = "|".join(sorted(MONTHS, key=len, reverse=True))

_TEXT_DATE_PATTERNS = [
    (re.compile(r"(?<!\d)(\d{1,2})[/\-.](\d{1,2})[/\-.](\d{4})(?!\d)"), "DD/MM/YYYY"),
    (re.compile(r"(?<!\d)(\d{1,2})[/\-.](\d{1,2})[/\-.](\d{2})(?!\d)"), "DD/MM/YY"),
    (re.compile(r"(?<!\d)(\d{4})[/\-.](\d{1,2})[/\-.](\d{1,2})(?!\d)"), "YYYY/MM/DD"),
    (re.compile(rf"(?<!\d)(\d{{1,2}})[\s\-.]?({_MONTH_ALT})[\s\-.]?(\d{{2,4}})(?!\d)", re.I), "DD MON YYYY"),
]
_TIME_RE = re.compile(r"\d{1,2}:\d{2}(?::\d{2})?")
CONTEXT_WORDS = ("data", "date", "timpul", "ora", "time", "emitere", "issued")
EDGE_LINES = 6


def _parse_match(m: re.Match, fmt: str, today: date) -> Optional[date]:
    a, b, c = m.group(1), m.group(2), m.group(3)
    if fmt == "DD MON YYYY":
        day, month0 = int(a), MONTHS[b.lower()]
        year = expand_two_digit_year(int(c), month_name=True, today=today)
    elif fmt == "YYYY/MM/DD":
        year, month0, day = int(a), int(b) - 1, int(c)
    else:
        day, month0 = int(a), int(b) - 1
        year = expand_two_digit_year(int(c), today=today)
    return validate_date(day, month0, year, today)


def _search_lines(lines: List[str]) -> List[str]:
    """First and last EDGE_LINES lines plus any line with a context keyword, in that order."""
    idx: List[int] = list(range(min(EDGE_LINES, len(lines))))
    idx += range(max(0, len(lines) - EDGE_LINES), len(lines))
    idx += [i for i, line in enumerate(lines) if any(w in line.lower() for w in CONTEXT_WORDS)]
    seen = set()
    out = []
    for i in idx:
        if i not in seen:
            seen.add(i)
            out.append(lines[i])
    return out


def extract_date_from_text(text: str, today: Optional[date] = None) -> Optional[str]:
    """
    Best-scoring valid date in `text`: +2 when the line also carries a time,
    +1 when it has a context keyword. Ties go to the first date found.
    """
    today = today or date.today()
    lines = [ln.strip() for ln in (text or "").split("\n") if ln.strip()]

    found: List[Tuple[int, str, str]] = []
    for line in _search_lines(lines):
        low = line.lower()
        has_time = bool(_TIME_RE.search(line))
        has_context = any(w in low for w in CONTEXT_WORDS)
        score = (2 if has_time else 0) + (1 if has_context else 0)
        for rx, fmt in _TEXT_DATE_PATTERNS:
            for m in rx.finditer(line):
                d = _parse_match(m, fmt, today)
                if d is None:
                    continue
                logger.debug("Potential date %s from %r (%s) score %d", d, m.group(0), fmt, score)
                found.append((score, d.isoformat(), line))

    if not found:
        return None
    found.sort(key=lambda item: item[0], reverse=True)  # stable: discovery order on ties
    score, iso, line = found[0]
    logger.debug("Text date %s from line %r", iso, line)
    return iso


# ---------------------------
# Entry point
# ---------------------------

def _words_to_text(words: Sequence[RecognizedWord]) -> str:
    return "\n".join(line_text(line) for line in extract_product_lines(words))


def extract_date_with_region(
    words: Sequence[RecognizedWord],
    width: float,
    height: float,
    similar_receipts: Sequence[ReceiptPattern] = (),
    text: Optional[str] = None,
    merchant: Optional[str] = None,
    today: Optional[date] = None,
) -> Tuple[str, Optional[str]]:
    """(ISO date, region) where region is None unless a spatial candidate won."""
    today = today or date.today()
    candidates = analyze_date_layout(words, width, height)

    for region in preferred_date_regions(similar_receipts, merchant):
        for cand in candidates:
            if cand.region != region:
                continue
            iso = extract_valid_date(cand.word.text, today)
            if iso:
                logger.debug("Using learned pattern: date in %s region", region)
                return iso, region

    for cand in sorted(candidates, key=lambda c: c.confidence, reverse=True):
        iso = extract_valid_date(cand.word.text, today)
        if iso:
            logger.debug("Extracted date %s from %s region", iso, cand.region)
            return iso, cand.region

    iso = extract_date_from_text(text if text else _words_to_text(words), today)
    if iso:
        return iso, None

    logger.debug("No valid date found, using today")
    return today.isoformat(), None


def extract_date(
    words: Sequence[RecognizedWord],
    width: float,
    height: float,
    similar_receipts: Sequence[ReceiptPattern] = (),
    text: Optional[str] = None,
    merchant: Optional[str] = None,
    today: Optional[date] = None,
) -> str:
    iso, _ = extract_date_with_region(words, width, height, similar_receipts, text, merchant, today)
    return iso
