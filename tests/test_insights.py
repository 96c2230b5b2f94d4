import pandas as pd
import pytest

from receiptscan.insights import (
    category_index,
    detect_anomalies,
    generate_insights,
    spending_by_category,
    subcategory_index,
)
from receiptscan.pipelines.receipts.categories import CATEGORIES, SUBCATEGORIES

EXPENSES = [
    {"amount": 10.0, "category": "Food & Drinks", "subcategory": "Groceries", "date": "2024-05-06"}
    for _ in range(9)
] + [
    {"amount": 100.0, "category": "Transport", "subcategory": "Gas", "date": "2024-05-08"},
]


def test_anomaly_above_two_population_sigmas():
    df = detect_anomalies(EXPENSES)
    # mean 19, population std 27 -> threshold 73
    assert df["is_anomaly"].tolist() == [False] * 9 + [True]


def test_no_anomalies_in_flat_spending():
    df = detect_anomalies(pd.DataFrame({"amount": [5, 5, 5]}))
    assert not df["is_anomaly"].any()


def test_empty_expenses():
    assert detect_anomalies([]).empty
    assert spending_by_category([]).empty
    assert generate_insights([])["highest_category"] is None


def test_category_indexes_with_unknown_fallback():
    assert category_index("Food & Drinks") == 1
    assert category_index("Crypto") == len(CATEGORIES)
    assert subcategory_index("Groceries") == SUBCATEGORIES.index("Groceries")
    assert subcategory_index("Yachts") == len(SUBCATEGORIES)


def test_spending_by_category():
    out = spending_by_category(EXPENSES)
    assert out["category"].tolist() == ["Transport", "Food & Drinks"]
    assert out["total"].tolist() == pytest.approx([100.0, 90.0])
    assert out["count"].tolist() == [1, 9]


def test_generate_insights():
    out = generate_insights(EXPENSES)
    assert out["highest_category"] == "Transport"
    assert out["highest_category_total"] == 100.0
    assert out["expensive_day"] == "Wednesday"
