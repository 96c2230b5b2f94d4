# receiptscan/pipelines/receipts/recognize.py
# -*- coding: utf-8 -*-

"""
Text recognition adapter (Tesseract).

The engine is an external collaborator: we hand it the preprocessed image and
get back raw text plus word-level boxes. Its confidence is informational only.
"""

from __future__ import annotations

import os
import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Union

import numpy as np
import pytesseract
from PIL import Image

from receiptscan.config import Settings, load_settings
from receiptscan.errors import RecognitionError
from receiptscan.pipelines.receipts.models import BBox, RecognitionResult, RecognizedWord

logger = logging.getLogger(__name__)

Recognizer = Callable[[Union[Image.Image, np.ndarray]], RecognitionResult]


# ---------------------------
# Tesseract configuration
# ---------------------------

def configure_tesseract(settings: Optional[Settings] = None) -> None:
    """Point pytesseract at Settings.tesseract_cmd (OCR_TESSERACT_CMD) or the common Windows path."""
    cmd = (settings or load_settings()).tesseract_cmd
    if cmd and os.path.exists(cmd):
        pytesseract.pytesseract.tesseract_cmd = cmd
        return
    common_win = r"C:\Program Files\Tesseract-OCR\tesseract.exe"
    if os.name == "nt" and os.path.exists(common_win):
        pytesseract.pytesseract.tesseract_cmd = common_win

configure_tesseract()


@dataclass
class RecognitionConfig:
    lang: str = "eng+ron"
    psm: int = 6                  # uniform block of text, good for receipts
    timeout: float = 0            # seconds; 0 disables the engine-side timeout

    @property
    def tesseract_config(self) -> str:
        return f"--oem 3 --psm {self.psm} -c preserve_interword_spaces=1"


# ---------------------------
# Word parsing
# ---------------------------

def _col(data: Dict[str, List], key: str, i: int) -> float:
    """Numeric cell from a column; missing boxes count as 0 offsets."""
    try:
        return float(data[key][i] or 0)
    except (KeyError, IndexError, ValueError, TypeError):
        return 0.0


def words_from_data(data: Dict[str, List]) -> List[RecognizedWord]:
    """Convert pytesseract image_to_data(Output.DICT) into RecognizedWords."""
    words: List[RecognizedWord] = []
    for i, raw in enumerate(data.get("text", [])):
        text = str(raw or "").strip()
        if not text:
            continue
        conf = _col(data, "conf", i)
        if conf < 0:
            continue
        left, top = _col(data, "left", i), _col(data, "top", i)
        width, height = _col(data, "width", i), _col(data, "height", i)
        words.append(RecognizedWord(
            text=text,
            confidence=conf,
            bbox=BBox(x0=left, y0=top, x1=left + width, y1=top + height),
        ))
    return words


def _as_pil(image: Union[Image.Image, np.ndarray]) -> Image.Image:
    if isinstance(image, Image.Image):
        return image
    return Image.fromarray(image)


def recognize(
    image: Union[Image.Image, np.ndarray],
    cfg: RecognitionConfig | None = None
) -> RecognitionResult:
    """Run Tesseract once and return text, mean word confidence and word boxes."""
    cfg = cfg or RecognitionConfig()
    img = _as_pil(image)
    try:
        text = pytesseract.image_to_string(
            img, lang=cfg.lang, config=cfg.tesseract_config, timeout=cfg.timeout
        )
        data = pytesseract.image_to_data(
            img, lang=cfg.lang, config=cfg.tesseract_config,
            output_type=pytesseract.Output.DICT, timeout=cfg.timeout
        )
    except pytesseract.TesseractNotFoundError as e:
        raise RecognitionError(
            "tesseract is not installed or it's not in your PATH. "
            "Install Tesseract and/or set OCR_TESSERACT_CMD."
        ) from e
    except (pytesseract.TesseractError, RuntimeError, OSError) as e:
        # pytesseract raises RuntimeError on timeout
        raise RecognitionError(f"Text recognition failed: {e}") from e

    words = words_from_data(data)
    confidence = float(np.mean([w.confidence for w in words])) if words else 0.0
    logger.debug("Recognized %d words (confidence %.1f)", len(words), confidence)

    return RecognitionResult(
        text=text,
        confidence=confidence,
        words=words,
        image_width=img.width,
        image_height=img.height,
    )
