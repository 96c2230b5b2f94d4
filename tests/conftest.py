from datetime import date

import pytest

from receiptscan.pipelines.receipts.models import BBox, RecognitionResult, RecognizedWord
from receiptscan.pipelines.receipts.patterns import MemoryBackend, PatternStore

TODAY = date(2024, 6, 1)

KAUFLAND_TEXT = "KAUFLAND ROMANIA\n12.03.2024\nPaine 3,50\nLapte 5,20\nTOTAL RON 8.70"


def make_word(text, x0, y0, x1=None, y1=None, confidence=90.0):
    return RecognizedWord(
        text=text,
        confidence=confidence,
        bbox=BBox(x0, y0, x0 + 80 if x1 is None else x1, y0 + 20 if y1 is None else y1),
    )


def kaufland_recognition():
    """Receipt laid out on a 1000x1000 page: date top-right, total at the bottom."""
    words = [
        make_word("KAUFLAND", 100, 20, 300, 40),
        make_word("ROMANIA", 320, 20, 480, 40),
        make_word("12.03.2024", 800, 60, 950, 80),
        make_word("Paine", 100, 300),
        make_word("3,50", 800, 300),
        make_word("Lapte", 100, 400),
        make_word("5,20", 800, 400),
        make_word("TOTAL", 100, 900),
        make_word("RON", 220, 900, 280, 920),
        make_word("8.70", 800, 900),
    ]
    return RecognitionResult(
        text=KAUFLAND_TEXT,
        confidence=88.0,
        words=words,
        image_width=1000,
        image_height=1000,
    )


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def backend():
    return MemoryBackend()


@pytest.fixture
def store(backend):
    return PatternStore(backend)
