import numpy as np
import pytest
import pytesseract

from receiptscan.config import Settings
from receiptscan.errors import RecognitionError
from receiptscan.pipelines.receipts import recognize as recognize_mod
from receiptscan.pipelines.receipts.recognize import RecognitionConfig, recognize, words_from_data

DATA = {
    "text": ["", "TOTAL", "  ", "8.70", "noise"],
    "conf": ["-1", "91.5", "-1", "88", "-1"],
    "left": [0, 100, 0, 800, 5],
    "top": [0, 900, 0, 902, 5],
    "width": [1000, 120, 0, 80, 10],
    "height": [1000, 20, 0, 20, 10],
}


def test_words_from_data_skips_blank_and_unscored_entries():
    words = words_from_data(DATA)
    assert [w.text for w in words] == ["TOTAL", "8.70"]
    total = words[0]
    assert total.confidence == pytest.approx(91.5)
    assert (total.bbox.x0, total.bbox.y0, total.bbox.x1, total.bbox.y1) == (100, 900, 220, 920)


def test_words_from_data_missing_box_defaults_to_zero():
    words = words_from_data({"text": ["Lapte"], "conf": [80]})
    assert words[0].bbox.x0 == 0 and words[0].bbox.y1 == 0


def test_recognition_config_builds_tesseract_flags():
    assert RecognitionConfig(psm=4).tesseract_config == "--oem 3 --psm 4 -c preserve_interword_spaces=1"


def test_recognize_returns_text_words_and_size(monkeypatch):
    calls = {}

    def fake_to_string(img, lang=None, config=None, timeout=0):
        calls["lang"] = lang
        return "TOTAL 8.70\n"

    def fake_to_data(img, lang=None, config=None, output_type=None, timeout=0):
        return DATA

    monkeypatch.setattr(pytesseract, "image_to_string", fake_to_string)
    monkeypatch.setattr(pytesseract, "image_to_data", fake_to_data)

    res = recognize(np.zeros((40, 60), dtype=np.uint8), RecognitionConfig(lang="ron"))

    assert calls["lang"] == "ron"
    assert res.text == "TOTAL 8.70\n"
    assert len(res.words) == 2
    assert res.confidence == pytest.approx((91.5 + 88) / 2)
    assert (res.image_width, res.image_height) == (60, 40)


def test_recognize_missing_engine_raises_recognition_error(monkeypatch):
    def missing(*args, **kwargs):
        raise pytesseract.TesseractNotFoundError()

    monkeypatch.setattr(pytesseract, "image_to_string", missing)
    with pytest.raises(RecognitionError, match="OCR_TESSERACT_CMD"):
        recognize(np.zeros((10, 10), dtype=np.uint8))


def test_recognize_timeout_raises_recognition_error(monkeypatch):
    def timeout(*args, **kwargs):
        raise RuntimeError("Tesseract process timeout")

    monkeypatch.setattr(pytesseract, "image_to_string", timeout)
    with pytest.raises(RecognitionError):
        recognize(np.zeros((10, 10), dtype=np.uint8), RecognitionConfig(timeout=1))


def test_tesseract_cmd_from_settings(monkeypatch, tmp_path):
    exe = tmp_path / "tesseract"
    exe.write_text("")
    monkeypatch.setenv("OCR_TESSERACT_CMD", str(exe))
    monkeypatch.setattr(pytesseract.pytesseract, "tesseract_cmd", "tesseract")

    recognize_mod.configure_tesseract()
    assert pytesseract.pytesseract.tesseract_cmd == str(exe)

    other = tmp_path / "tesseract-5"
    other.write_text("")
    recognize_mod.configure_tesseract(Settings(tesseract_cmd=str(other)))
    assert pytesseract.pytesseract.tesseract_cmd == str(other)
