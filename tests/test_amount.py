import pytest

from conftest import kaufland_recognition, make_word
from receiptscan.pipelines.receipts.amount import extract_amount, extract_amount_with_rule, extract_amount_with_source
from receiptscan.pipelines.receipts.models import ReceiptPattern


def test_explicit_total_beats_item_sum():
    words = [
        make_word("Paine", 100, 300), make_word("10,00", 800, 300),
        make_word("Lapte", 100, 400), make_word("20,00", 800, 400),
        make_word("TOTAL", 100, 900), make_word("45,50", 800, 900),
    ]
    assert extract_amount_with_rule(words) == (pytest.approx(45.50), "total")


def test_single_item_price():
    words = [make_word("Cafea", 100, 300), make_word("12,00", 800, 300)]
    assert extract_amount_with_rule(words) == (pytest.approx(12.0), "single-item")


def test_sum_of_item_lines():
    words = [
        make_word("Paine", 100, 300), make_word("10,00", 800, 300),
        make_word("Lapte", 100, 400), make_word("20,00", 800, 400),
        make_word("Casier", 100, 500), make_word("01", 300, 500), make_word("3,00", 800, 500),
    ]
    assert extract_amount_with_rule(words) == (pytest.approx(30.0), "item-sum")


def test_largest_price_when_every_line_is_noise():
    words = [
        make_word("Card", 100, 300), make_word("150,00", 800, 300),
        make_word("Rest", 100, 400), make_word("20,00", 800, 400),
    ]
    assert extract_amount_with_rule(words) == (pytest.approx(150.0), "largest")


def test_no_price_is_a_miss():
    words = [make_word("Multumim", 100, 300), make_word("pentru", 300, 300)]
    assert extract_amount(words) is None
    assert extract_amount([]) is None


def test_similar_receipts_do_not_change_result():
    rec = kaufland_recognition()
    hint = ReceiptPattern(
        id="p1",
        ocr_text=rec.text,
        extracted_data={"amount": 99.99},
        layout={"amountPosition": {"region": "middle"}},
    )
    assert extract_amount(rec.words, rec.text, [hint]) == extract_amount(rec.words, rec.text)
    assert extract_amount(rec.words) == pytest.approx(8.70)


def test_source_is_the_chosen_price_word():
    item, total = make_word("12,00", 800, 300), make_word("12,00", 800, 900)
    words = [make_word("Cafea", 100, 300), item, make_word("TOTAL", 100, 900), total]
    amount, rule, source = extract_amount_with_source(words)
    assert (amount, rule) == (pytest.approx(12.0), "total")
    assert source.word.bbox.y0 == 900

    words = [make_word("Paine", 100, 300), make_word("3,50", 800, 300),
             make_word("Lapte", 100, 400), make_word("5,20", 800, 400)]
    assert extract_amount_with_source(words)[1:] == ("item-sum", None)
