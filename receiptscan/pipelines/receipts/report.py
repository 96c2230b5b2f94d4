# receiptscan/pipelines/receipts/report.py
# -*- coding: utf-8 -*-
"""
Pattern store report (what the scanner has learned so far).
"""

from __future__ import annotations
from collections import Counter
from pathlib import Path
from typing import List

from receiptscan.pipelines.receipts.patterns import PatternStore


def _tab(headers: List[str], rows: List[tuple]) -> str:
    if not rows:
        return ""
    out = []
    out.append("| " + " | ".join(headers) + " |")
    out.append("| " + " | ".join(["---"] * len(headers)) + " |")
    for r in rows:
        out.append("| " + " | ".join("" if x is None else str(x) for x in r) + " |")
    return "\n".join(out)


def make_pattern_report(store: PatternStore, out_path: Path) -> Path:
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)

    patterns = store.load_patterns()
    total = len(patterns)
    # a pattern nobody had to correct counts as a successful extraction
    successful = sum(1 for p in patterns if not p.user_corrections)
    success_rate = round(100.0 * successful / total, 1) if total else 0.0

    merchants = Counter(p.merchant or "Unknown" for p in patterns).most_common()
    regions = Counter(p.date_region or "not found" for p in patterns).most_common()

    md = []
    md.append("# Receipt Pattern Report\n")
    md.append("## Overview\n")
    md.append(f"- Stored receipts: **{total}**\n")
    md.append(f"- Without corrections: **{successful}**\n")
    md.append(f"- Success rate: **{success_rate}%**\n")

    md.append("\n## Merchants\n")
    md.append(_tab(["merchant", "receipts"], merchants) or "_no data_")

    md.append("\n\n## Date Positions\n")
    md.append(_tab(["region", "receipts"], regions) or "_no data_")

    out_path.write_text("\n".join(md), encoding="utf-8")
    return out_path
