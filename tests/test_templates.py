import pytest

from receiptscan.pipelines.receipts.templates import (
    RECEIPT_TEMPLATES,
    extract_receipt_data,
    match_receipt_template,
)

KAUFLAND = (
    "KAUFLAND ROMANIA\n"
    "Data: 12.03.2024\n"
    "2 BUC. x 3,50 = 7,00\n"
    "TOTAL RON 8.70\n"
    "TVA 9%: 0,72\n"
)


def test_match_by_keyword():
    assert match_receipt_template(KAUFLAND).name == "Kaufland"
    assert match_receipt_template("lidl discount srl").name == "Lidl"
    assert match_receipt_template("magazin de cartier") is None


def test_first_template_wins_when_keywords_overlap():
    text = "PROFI ROM FOOD\nplata cu K-CARD"
    assert [t.name for t in RECEIPT_TEMPLATES][:2] == ["Profi", "Kaufland"]
    assert match_receipt_template(text).name == "Profi"


def test_extract_with_template():
    tmpl = match_receipt_template(KAUFLAND)
    data = extract_receipt_data(KAUFLAND, tmpl)

    assert data.template == "Kaufland"
    assert data.total == pytest.approx(8.70)
    assert data.date == "2024-03-12"
    assert data.items == [{"quantity": 2.0, "price": 3.5, "total": 7.0}]
    assert data.vat == [{"percentage": 9, "amount": 0.72}]
    # 4 hits over 6 attempted regexes
    assert data.confidence == pytest.approx(400 / 6)


def test_item_total_defaults_to_quantity_times_price():
    tmpl = match_receipt_template("LIDL ROMANIA")
    data = extract_receipt_data("LIDL ROMANIA\n1,50 x 2,00\n", tmpl)
    assert data.items == [{"quantity": 1.5, "price": 2.0, "total": 3.0}]


def test_confidence_counts_every_item_hit():
    tmpl = match_receipt_template("LIDL ROMANIA")
    text = "LIDL ROMANIA\n" + "1,00 x 2,00\n" * 10
    data = extract_receipt_data(text, tmpl)
    assert len(data.items) == 10
    # 10 item hits over 7 attempted regexes
    assert data.confidence == pytest.approx(1000 / 7)


def test_extract_without_template_tries_all():
    data = extract_receipt_data("TOTAL 15,30")
    assert data.template is None
    assert data.total == pytest.approx(15.30)
    assert data.confidence > 0


def test_nothing_matches():
    data = extract_receipt_data("", match_receipt_template("K-CARD"))
    assert data.total is None and data.date is None
    assert data.confidence == 0.0
