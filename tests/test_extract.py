import cv2
import numpy as np
import pytest

from conftest import KAUFLAND_TEXT, kaufland_recognition, make_word
from receiptscan.errors import RecognitionError, ScanCancelledError, ScanInProgressError
from receiptscan.pipelines.receipts.extract import (
    ScanSession,
    build_receipt_pattern,
    extract_receipt_fields,
    extract_receipts_dir,
    recognition_from_text,
    scan_receipt_image,
)
from receiptscan.pipelines.receipts.models import RecognitionResult
from receiptscan.pipelines.receipts.patterns import PATTERNS_KEY

WHITE_PAGE = np.full((1000, 1000, 3), 255, dtype=np.uint8)


def fake_recognizer(image):
    return kaufland_recognition()


def test_kaufland_receipt_end_to_end(store, today):
    fields = scan_receipt_image(WHITE_PAGE, recognizer=fake_recognizer, store=store, remember=True, today=today)

    assert fields.merchant_name == "Kaufland"
    assert fields.merchant_type == "supermarket"
    assert fields.amount == pytest.approx(8.70)
    assert fields.date == "2024-03-12"
    assert fields.date_region == "top-right"
    assert fields.amount_region == "bottom"
    assert (fields.category, fields.subcategory) == ("Food & Drinks", "Groceries")
    assert fields.template == "Kaufland"
    assert fields.similar_receipts == 0
    assert fields.language == "ro"

    saved = store.get_pattern(fields.pattern_id)
    assert saved.merchant == "Kaufland"
    assert saved.date_region == "top-right"
    assert saved.extracted_data["amount"] == pytest.approx(8.70)


def test_second_scan_sees_the_first(store, today):
    scan_receipt_image(WHITE_PAGE, recognizer=fake_recognizer, store=store, remember=True, today=today)
    fields = scan_receipt_image(WHITE_PAGE, recognizer=fake_recognizer, store=store, today=today)
    assert fields.similar_receipts == 1
    assert fields.pattern_id is None
    assert len(store.load_patterns()) == 1


def test_extract_fields_without_store_or_words(today):
    fields = extract_receipt_fields(recognition_from_text(KAUFLAND_TEXT), today=today)
    assert fields.merchant_name == "Kaufland"
    assert fields.amount == pytest.approx(8.70)
    assert fields.date == "2024-03-12"


def test_unreadable_receipt_yields_misses_not_errors(today):
    fields = extract_receipt_fields(recognition_from_text("~~~ ###"), today=today)
    assert fields.amount is None
    assert fields.merchant_name is None
    assert fields.category is None
    assert fields.date == today.isoformat()


def test_recognition_from_text_lays_out_tokens():
    rec = recognition_from_text("TOTAL RON 8.70\nMultumim")
    assert [w.text for w in rec.words] == ["TOTAL", "RON", "8.70", "Multumim"]
    assert rec.words[0].bbox.y0 == rec.words[2].bbox.y0
    assert rec.words[3].bbox.y0 > rec.words[0].bbox.y0
    assert rec.image_width > 0 and rec.image_height > 0


def test_build_pattern_records_positions(today):
    rec = kaufland_recognition()
    fields = extract_receipt_fields(rec, today=today)
    pattern = build_receipt_pattern(rec, fields, pattern_id="fixed", timestamp="2024-06-01T00:00:00")
    assert pattern.id == "fixed"
    assert pattern.layout["datePosition"] == {"x": 875.0, "y": 70.0, "region": "top-right"}
    assert pattern.layout["amountPosition"] == {"region": "bottom"}
    assert pattern.to_dict()["ocrText"] == KAUFLAND_TEXT


def test_cancelled_scan_discards_result(store, backend, today):
    session = ScanSession()

    def cancelling(image):
        session.cancel()
        return kaufland_recognition()

    with pytest.raises(ScanCancelledError):
        scan_receipt_image(WHITE_PAGE, recognizer=cancelling, store=store, remember=True,
                           session=session, today=today)
    assert backend.get(PATTERNS_KEY) is None
    assert not session.busy

    # a fresh scan on the same session runs normally
    fields = scan_receipt_image(WHITE_PAGE, recognizer=fake_recognizer, session=session, today=today)
    assert fields.amount == pytest.approx(8.70)


def test_second_scan_on_busy_session_is_rejected(today):
    session = ScanSession()

    def reentrant(image):
        scan_receipt_image(WHITE_PAGE, recognizer=fake_recognizer, session=session, today=today)
        return kaufland_recognition()

    with pytest.raises(ScanInProgressError):
        scan_receipt_image(WHITE_PAGE, recognizer=reentrant, session=session, today=today)
    assert not session.busy


def test_recognition_failure_surfaces(store):
    def failing(image):
        raise RecognitionError("engine crashed")

    with pytest.raises(RecognitionError):
        scan_receipt_image(WHITE_PAGE, recognizer=failing, store=store, remember=True)
    assert store.load_patterns() == []


def test_batch_collects_per_file_errors(tmp_path, today):
    cv2.imwrite(str(tmp_path / "good.png"), WHITE_PAGE)
    (tmp_path / "bad.jpg").write_bytes(b"broken")
    (tmp_path / "notes.txt").write_text("ignored")

    results = extract_receipts_dir(str(tmp_path), recognizer=fake_recognizer, today=today)

    assert [r["img_path"].split("/")[-1] for r in results] == ["bad.jpg", "good.png"]
    assert "error" in results[0]
    assert results[1]["amount"] == pytest.approx(8.70)
    assert results[1]["merchant_name"] == "Kaufland"


def test_amount_region_comes_from_the_total_word(today):
    rec = RecognitionResult(
        text="Cafea 12,00\nTOTAL 12,00",
        words=[
            make_word("Cafea", 100, 300), make_word("12,00", 800, 300),
            make_word("TOTAL", 100, 900), make_word("12,00", 800, 900),
        ],
        image_width=1000,
        image_height=1000,
    )
    fields = extract_receipt_fields(rec, today=today)
    assert fields.amount == pytest.approx(12.0)
    assert fields.amount_region == "bottom"
    assert build_receipt_pattern(rec, fields).layout["amountPosition"] == {"region": "bottom"}


def test_words_without_text_still_give_a_date(today):
    rec = RecognitionResult(
        text="",
        words=[make_word("Data", 100, 300), make_word("12", 200, 300),
               make_word("mai", 300, 300), make_word("2024", 400, 300)],
        image_width=1000,
        image_height=1000,
    )
    assert extract_receipt_fields(rec, today=today).date == "2024-05-12"


def test_receipt_language_is_reported(today):
    fields = extract_receipt_fields(recognition_from_text("STARBUCKS\nPaid by card 18.50\nreceipt"), today=today)
    assert fields.language == "en"
    assert extract_receipt_fields(recognition_from_text(KAUFLAND_TEXT), today=today).language == "ro"
