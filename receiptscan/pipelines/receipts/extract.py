# receiptscan/pipelines/receipts/extract.py
# -*- coding: utf-8 -*-

"""
Receipt scan pipeline.

photo -> preprocess -> recognize -> extract fields -> (optional) remember pattern

Field extraction order:
    translate -> merchant -> template -> similar receipts -> amount -> date -> category

Misses are returned as None (amount, category) or today (date); only
preprocessing and recognition failures raise.
"""

from __future__ import annotations

import json
import logging
import re
import threading
import uuid
from contextlib import contextmanager
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Dict, Iterator, List, Optional

from receiptscan.errors import ScanCancelledError, ScanInProgressError
from receiptscan.pipelines.receipts.amount import extract_amount_with_source
from receiptscan.pipelines.receipts.categories import detect_category
from receiptscan.pipelines.receipts.dates import extract_date_with_region
from receiptscan.pipelines.receipts.layout import analyze_date_layout, classify_region
from receiptscan.pipelines.receipts.merchants import detect_merchant
from receiptscan.pipelines.receipts.models import (
    BBox,
    ReceiptFields,
    ReceiptPattern,
    RecognitionResult,
    RecognizedWord,
)
from receiptscan.pipelines.receipts.patterns import PatternStore
from receiptscan.pipelines.receipts.preprocess import ImageInput, PreprocessConfig, preprocess_receipt
from receiptscan.pipelines.receipts.recognize import Recognizer, recognize
from receiptscan.pipelines.receipts.templates import extract_receipt_data, match_receipt_template
from receiptscan.pipelines.receipts.translate import detect_language, translate_receipt_text

logger = logging.getLogger(__name__)

IMAGE_SUFFIXES = (".jpg", ".jpeg", ".png")


# ---------------------------
# Field extraction
# ---------------------------

def extract_receipt_fields(
    recognition: RecognitionResult,
    store: Optional[PatternStore] = None,
    today: Optional[date] = None,
) -> ReceiptFields:
    """Structured fields from one recognition result."""
    text = recognition.text or ""
    translated = translate_receipt_text(text)
    combined = f"{text} {translated}"

    merchant = detect_merchant(text)

    template = match_receipt_template(text)
    template_data = extract_receipt_data(text, template) if template else None

    similar: List[ReceiptPattern] = store.find_similar_receipts(text) if store else []
    if similar:
        logger.info("Found %d similar receipt patterns", len(similar))

    amount, amount_rule, amount_source = extract_amount_with_source(recognition.words, combined, similar)
    receipt_date, date_region = extract_date_with_region(
        recognition.words,
        recognition.image_width,
        recognition.image_height,
        similar,
        text=text,
        merchant=merchant.name if merchant else None,
        today=today,
    )
    logger.debug("Amount %s via %s; date %s (region %s)", amount, amount_rule, receipt_date, date_region)

    category = detect_category(combined)

    return ReceiptFields(
        amount=amount,
        date=receipt_date,
        merchant_name=merchant.name if merchant else None,
        merchant_type=merchant.type.value if merchant else None,
        category=category[0] if category else None,
        subcategory=category[1] if category else None,
        template=template.name if template else None,
        items=list(template_data.items) if template_data else [],
        vat=list(template_data.vat) if template_data else [],
        similar_receipts=len(similar),
        confidence=round(float(recognition.confidence), 2),
        date_region=date_region,
        amount_region=_region_of(amount_source.word, recognition) if amount_source else None,
        language=detect_language(text),
    )


def _region_of(word: RecognizedWord, recognition: RecognitionResult) -> str:
    cx, cy = word.bbox.center
    return classify_region(cx, cy, recognition.image_width, recognition.image_height)[0]


def build_receipt_pattern(
    recognition: RecognitionResult,
    fields: ReceiptFields,
    pattern_id: Optional[str] = None,
    timestamp: Optional[str] = None,
) -> ReceiptPattern:
    """Pattern remembering what was extracted and where the date/amount sat on the page."""
    layout: Dict[str, Dict] = {}
    if fields.date_region:
        for cand in analyze_date_layout(recognition.words, recognition.image_width, recognition.image_height):
            if cand.region == fields.date_region:
                cx, cy = cand.word.bbox.center
                layout["datePosition"] = {"x": cx, "y": cy, "region": cand.region}
                break
    if fields.amount_region:
        layout["amountPosition"] = {"region": fields.amount_region}

    return ReceiptPattern(
        id=pattern_id or uuid.uuid4().hex,
        ocr_text=recognition.text or "",
        extracted_data={
            "amount": fields.amount,
            "date": fields.date,
            "category": fields.category,
            "subcategory": fields.subcategory,
            "merchantName": fields.merchant_name,
            "items": list(fields.items),
        },
        merchant=fields.merchant_name,
        layout=layout,
        timestamp=timestamp or datetime.now(timezone.utc).isoformat(),
    )


_TEXT_CHAR_PX = 12
_TEXT_LINE_PX = 30


def recognition_from_text(text: str) -> RecognitionResult:
    """
    RecognitionResult for already-recognized plain text: one word per token,
    boxes laid out on a fixed character grid so the layout rules still apply.
    """
    words: List[RecognizedWord] = []
    width = height = 0
    for row, line in enumerate((text or "").splitlines()):
        y0 = row * _TEXT_LINE_PX
        for m in re.finditer(r"\S+", line):
            x0, x1 = m.start() * _TEXT_CHAR_PX, m.end() * _TEXT_CHAR_PX
            words.append(RecognizedWord(m.group(0), 100.0, BBox(x0, y0, x1, y0 + _TEXT_LINE_PX - 6)))
            width = max(width, x1)
        height = y0 + _TEXT_LINE_PX
    return RecognitionResult(
        text=text or "",
        confidence=100.0 if words else 0.0,
        words=words,
        image_width=width,
        image_height=height,
    )


# ---------------------------
# Scan session
# ---------------------------

class ScanSession:
    """
    One scan at a time, cancellable while recognition is running.
    A cancelled scan discards its recognition result and stores nothing.
    """

    def __init__(self):
        self._busy = threading.Lock()
        self._cancelled = threading.Event()

    @property
    def busy(self) -> bool:
        return self._busy.locked()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        self._cancelled.set()

    def raise_if_cancelled(self) -> None:
        if self._cancelled.is_set():
            raise ScanCancelledError("Scan cancelled; recognition result discarded")

    @contextmanager
    def running(self) -> Iterator["ScanSession"]:
        if not self._busy.acquire(blocking=False):
            raise ScanInProgressError("A scan is already running on this session")
        self._cancelled.clear()
        try:
            yield self
        finally:
            self._busy.release()


def scan_receipt_image(
    img: ImageInput,
    recognizer: Recognizer = recognize,
    store: Optional[PatternStore] = None,
    remember: bool = False,
    session: Optional[ScanSession] = None,
    today: Optional[date] = None,
    preprocess_cfg: Optional[PreprocessConfig] = None,
) -> ReceiptFields:
    """
    Full scan of one receipt photo.
    With `remember`, the extracted pattern is stored for future similarity hints.
    """
    session = session or ScanSession()
    with session.running():
        prep = preprocess_receipt(img, preprocess_cfg)
        recognition = recognizer(prep.image)
        session.raise_if_cancelled()

        if not recognition.image_width or not recognition.image_height:
            recognition.image_width, recognition.image_height = prep.width, prep.height

        fields = extract_receipt_fields(recognition, store=store, today=today)

        if remember and store is not None:
            pattern = build_receipt_pattern(recognition, fields)
            session.raise_if_cancelled()
            store.add_pattern(pattern)
            fields.pattern_id = pattern.id
            logger.info("Saved receipt pattern %s", pattern.id)

    return fields


# ---------------------------
# Batch
# ---------------------------

def extract_receipts_dir(
    in_dir: str = "data/input/receipts",
    recognizer: Recognizer = recognize,
    store: Optional[PatternStore] = None,
    remember: bool = False,
    today: Optional[date] = None,
) -> List[Dict]:
    """
    Batch mode: scan every .jpg/.jpeg/.png file in in_dir.
    Per-file failures are collected as {"error", "img_path"} rows.
    """
    in_path = Path(in_dir)
    results: List[Dict] = []
    candidates = [p for p in in_path.iterdir() if p.suffix.lower() in IMAGE_SUFFIXES] if in_path.is_dir() else []
    for img_file in sorted(candidates):
        try:
            fields = scan_receipt_image(
                str(img_file), recognizer=recognizer, store=store, remember=remember, today=today
            )
            results.append({"img_path": str(img_file), **fields.to_dict()})
        except Exception as e:
            logger.warning("Receipt %s failed: %s", img_file, e)
            results.append({"error": str(e), "img_path": str(img_file)})
    return results


if __name__ == "__main__":
    out = extract_receipts_dir()
    print(json.dumps(out, indent=2, default=str))
