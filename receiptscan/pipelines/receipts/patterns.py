# receiptscan/pipelines/receipts/patterns.py
# -*- coding: utf-8 -*-
"""
Receipt pattern store: past scans (and user corrections) kept under one
key-value entry and matched by word overlap against new receipts.

- Backends: in-memory, JSON files in a directory, Postgres (db/patterns_pg.py)
- The whole list is read and rewritten on every change (last writer wins)
- Only the newest `max_patterns` entries are kept
"""

from __future__ import annotations

import json
import logging
from dataclasses import replace
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Protocol, Sequence, Tuple

from receiptscan.config import Settings
from receiptscan.pipelines.receipts.models import ReceiptPattern

logger = logging.getLogger(__name__)

PATTERNS_KEY = "receiptPatterns"
MAX_PATTERNS = 50
SIMILARITY_THRESHOLD = 0.3


# ---------------------------
# Backends
# ---------------------------

class PatternBackend(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...


class MemoryBackend:
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value


class JsonFileBackend:
    """One `<key>.json` file per key under `root`."""

    def __init__(self, root: Path):
        self.root = Path(root)

    def _path(self, key: str) -> Path:
        return self.root / f"{key}.json"

    def get(self, key: str) -> Optional[str]:
        p = self._path(key)
        if not p.exists():
            return None
        return p.read_text(encoding="utf-8")

    def set(self, key: str, value: str) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        p = self._path(key)
        tmp = p.with_suffix(".json.tmp")
        tmp.write_text(value, encoding="utf-8")
        tmp.replace(p)


# ---------------------------
# Similarity
# ---------------------------

def _tokens(text: str) -> set:
    return {w for w in (text or "").lower().split() if len(w) > 2}


def similarity(a: str, b: str) -> float:
    """|common tokens| / max(|a|, |b|) over distinct lowercase tokens longer than 2 chars."""
    ta, tb = _tokens(a), _tokens(b)
    denom = max(len(ta), len(tb))
    if denom == 0:
        return 0.0
    return len(ta & tb) / denom


def rank_similar(
    text: str,
    patterns: Iterable[ReceiptPattern],
    threshold: float = SIMILARITY_THRESHOLD,
) -> List[ReceiptPattern]:
    scored: List[Tuple[float, ReceiptPattern]] = []
    for p in patterns:
        ratio = similarity(text, p.ocr_text)
        if ratio > threshold:
            scored.append((ratio, p))
    scored.sort(key=lambda item: item[0], reverse=True)
    return [p for _, p in scored]


def preferred_date_regions(
    similar: Sequence[ReceiptPattern],
    merchant: Optional[str] = None,
) -> List[str]:
    """
    Date regions recorded on similar receipts, most similar first, without
    repeats. When the merchant is known, patterns of another known merchant
    are ignored.
    """
    regions: List[str] = []
    for p in similar:
        if merchant and p.merchant and p.merchant != merchant:
            continue
        region = p.date_region
        if region and region not in regions:
            regions.append(region)
    return regions


# ---------------------------
# Store
# ---------------------------

class PatternStore:
    def __init__(self, backend: PatternBackend, max_patterns: int = MAX_PATTERNS, key: str = PATTERNS_KEY):
        self.backend = backend
        self.max_patterns = max_patterns
        self.key = key

    def load_patterns(self) -> List[ReceiptPattern]:
        raw = self.backend.get(self.key)
        if not raw:
            return []
        try:
            payload = json.loads(raw)
            if not isinstance(payload, list):
                raise ValueError(f"expected a list, got {type(payload).__name__}")
        except ValueError as e:
            logger.warning("Ignoring unreadable receipt patterns under %r: %s", self.key, e)
            return []

        patterns: List[ReceiptPattern] = []
        for i, entry in enumerate(payload):
            try:
                patterns.append(ReceiptPattern.from_dict(entry))
            except (ValueError, KeyError, TypeError, AttributeError) as e:
                logger.warning("Skipping unreadable receipt pattern #%d under %r: %s", i, self.key, e)
        return patterns

    def save_patterns(self, patterns: Sequence[ReceiptPattern]) -> None:
        self.backend.set(self.key, json.dumps([p.to_dict() for p in patterns], ensure_ascii=False))
        logger.debug("Saved %d receipt patterns", len(patterns))

    def add_pattern(self, pattern: ReceiptPattern) -> List[ReceiptPattern]:
        patterns = self.load_patterns()
        for i, p in enumerate(patterns):
            if p.id == pattern.id:
                patterns[i] = pattern
                break
        else:
            patterns.append(pattern)
        patterns = patterns[-self.max_patterns:]
        self.save_patterns(patterns)
        return patterns

    def get_pattern(self, pattern_id: str) -> ReceiptPattern:
        for p in self.load_patterns():
            if p.id == pattern_id:
                return p
        raise KeyError(pattern_id)

    def record_correction(
        self,
        pattern_id: str,
        amount: Optional[float] = None,
        date: Optional[str] = None,
    ) -> ReceiptPattern:
        """Attach the user's corrected amount/date to a stored pattern."""
        current = self.get_pattern(pattern_id)
        corrections = dict(current.user_corrections or {})
        if amount is not None:
            corrections["amount"] = amount
        if date is not None:
            corrections["date"] = date
        updated = replace(current, user_corrections=corrections or None)
        self.add_pattern(updated)
        logger.info("Recorded correction for receipt pattern %s: %s", pattern_id, corrections)
        return updated

    def find_similar_receipts(self, text: str, threshold: float = SIMILARITY_THRESHOLD) -> List[ReceiptPattern]:
        similar = rank_similar(text, self.load_patterns(), threshold)
        if similar:
            logger.debug("Found %d similar receipts", len(similar))
        return similar


def make_pattern_store(settings: Settings) -> PatternStore:
    """Postgres when a DSN is configured, otherwise JSON files under pattern_dir."""
    if settings.pg_dsn:
        from receiptscan.db.patterns_pg import PostgresPatternBackend
        return PatternStore(PostgresPatternBackend(settings.pg_dsn))
    return PatternStore(JsonFileBackend(settings.pattern_dir))
