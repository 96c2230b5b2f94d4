# receiptscan/config.py
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


@dataclass(frozen=True)
class Settings:
    tesseract_cmd: Optional[str] = None
    ocr_lang: str = "eng+ron"
    pattern_dir: Path = Path("data/patterns")
    pg_dsn: Optional[str] = None


def load_settings() -> Settings:
    """Read settings from the environment every call (tests monkeypatch env)."""
    return Settings(
        tesseract_cmd=os.getenv("OCR_TESSERACT_CMD") or None,
        ocr_lang=os.getenv("OCR_LANG", "eng+ron"),
        pattern_dir=Path(os.getenv("RECEIPTSCAN_PATTERN_DIR", "data/patterns")),
        pg_dsn=os.getenv("RECEIPTSCAN_PG_DSN") or None,
    )
