# receiptscan/pipelines/receipts/silver.py
# -*- coding: utf-8 -*-
"""
Scan results -> flat table
- One row per scanned receipt (failed scans keep their error and path)
- Items / VAT lists are summarized into counts and sums
- Written as CSV for loading elsewhere
"""

from __future__ import annotations
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Sequence

import pandas as pd

# Column order of the exported table
SCAN_COLUMNS = [
    "img_path", "merchant_name", "merchant_type",
    "amount", "date", "category", "subcategory",
    "template", "items_count", "sum_line_total", "vat_total",
    "similar_receipts", "confidence", "date_region", "amount_region", "language",
    "pattern_id", "error", "silver_ts",
]


def _sum(rows: Any, key: str) -> float | None:
    if not rows:
        return None
    return round(sum(float(r.get(key) or 0) for r in rows), 2)


def _flatten(result: Dict[str, Any]) -> Dict[str, Any]:
    row = {k: v for k, v in result.items() if k not in ("items", "vat")}
    items = result.get("items") or []
    row["items_count"] = len(items)
    row["sum_line_total"] = _sum(items, "total")
    row["vat_total"] = _sum(result.get("vat"), "amount")
    return row


def results_to_frame(results: Sequence[Dict[str, Any]]) -> pd.DataFrame:
    """Batch results (dicts from extract_receipts_dir) -> DataFrame with SCAN_COLUMNS."""
    rows: List[Dict[str, Any]] = [_flatten(r) for r in results]
    df = pd.DataFrame(rows)
    for c in SCAN_COLUMNS:
        if c not in df.columns:
            df[c] = pd.NA
    df["silver_ts"] = datetime.now(timezone.utc).isoformat()
    df["amount"] = pd.to_numeric(df["amount"], errors="coerce")
    return df[SCAN_COLUMNS]


def write_scan_table(results: Sequence[Dict[str, Any]], out_path: Path) -> Dict[str, Any]:
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    df = results_to_frame(results)
    df.to_csv(out_path, index=False)
    return {
        "rows": int(len(df)),
        "errors": int(df["error"].notna().sum()),
        "out_path": str(out_path),
    }
