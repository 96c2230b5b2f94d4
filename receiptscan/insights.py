# receiptscan/insights.py
# -*- coding: utf-8 -*-
"""
Spending statistics over confirmed expenses.

Plain descriptive statistics with pandas: no model is trained.
Expenses are rows with at least `amount`, `category`, `subcategory`, `date`.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, Mapping, Union

import pandas as pd

from receiptscan.pipelines.receipts.categories import CATEGORIES, SUBCATEGORIES

ANOMALY_SIGMAS = 2.0

Expenses = Union[pd.DataFrame, Iterable[Mapping[str, Any]]]


def _frame(expenses: Expenses) -> pd.DataFrame:
    df = expenses.copy() if isinstance(expenses, pd.DataFrame) else pd.DataFrame(list(expenses))
    if "amount" in df.columns:
        df["amount"] = pd.to_numeric(df["amount"], errors="coerce")
    return df


def category_index(category: str) -> int:
    """Position in CATEGORIES; unknown names map to len(CATEGORIES)."""
    try:
        return CATEGORIES.index(category)
    except ValueError:
        return len(CATEGORIES)


def subcategory_index(subcategory: str) -> int:
    try:
        return SUBCATEGORIES.index(subcategory)
    except ValueError:
        return len(SUBCATEGORIES)


def detect_anomalies(expenses: Expenses, sigmas: float = ANOMALY_SIGMAS) -> pd.DataFrame:
    """
    Copy of the expenses with an `is_anomaly` column: amount above
    mean + sigmas * population standard deviation.
    """
    df = _frame(expenses)
    if df.empty or "amount" not in df.columns:
        return df.assign(is_anomaly=False)
    amounts = df["amount"]
    threshold = amounts.mean() + sigmas * amounts.std(ddof=0)
    df["is_anomaly"] = amounts > threshold
    return df


def spending_by_category(expenses: Expenses) -> pd.DataFrame:
    """Total and count per category, highest total first."""
    df = _frame(expenses)
    if df.empty:
        return pd.DataFrame(columns=["category", "total", "count"])
    out = (
        df.groupby("category", dropna=False)["amount"]
        .agg(total="sum", count="count")
        .reset_index()
        .sort_values("total", ascending=False, kind="stable")
        .reset_index(drop=True)
    )
    return out


def generate_insights(expenses: Expenses) -> Dict[str, Any]:
    """Highest-spending category and the weekday with the most spending."""
    df = _frame(expenses)
    if df.empty:
        return {"highest_category": None, "highest_category_total": 0.0, "expensive_day": None}

    by_cat = spending_by_category(df)
    top = by_cat.iloc[0]

    days = pd.to_datetime(df["date"], errors="coerce").dt.day_name()
    by_day = df["amount"].groupby(days).sum()
    return {
        "highest_category": top["category"],
        "highest_category_total": round(float(top["total"]), 2),
        "expensive_day": by_day.idxmax() if not by_day.empty else None,
    }
