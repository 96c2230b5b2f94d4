"""
OpenCV-based preprocessing for receipt OCR.

Pipeline (in order):
1) Decode (bytes, data URI, path, PIL.Image or numpy array)
2) Resize so the larger side lies in [min_side, max_side]
3) Convert to grayscale (0.299 R + 0.587 G + 0.114 B)
4) Isodata threshold from the 256-bin histogram
5) Binarize to pure black/white and re-encode as a PNG data URL

Returns a PreprocessResult. Also supports debug artifact saving.
"""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple, Union

import cv2
import numpy as np
from PIL import Image

from receiptscan.errors import PreprocessingError

logger = logging.getLogger(__name__)

ImageInput = Union[bytes, bytearray, str, Path, Image.Image, np.ndarray]


@dataclass
class PreprocessConfig:
    min_side: int = 800                # upscale so the larger side is at least this
    max_side: int = 2000               # downscale so the larger side is at most this
    max_iterations: int = 100          # isodata loop cap
    debug_dir: Optional[Path] = None   # if set, write intermediate artifacts here


@dataclass
class PreprocessResult:
    processed_data_url: str
    width: int
    height: int
    image: np.ndarray                  # binary, uint8, single channel


def _decode_data_uri(uri: str) -> bytes:
    header, _, payload = uri.partition(",")
    if ";base64" not in header:
        raise PreprocessingError("Only base64 data URIs are supported")
    try:
        return base64.b64decode(payload, validate=False)
    except ValueError as e:
        raise PreprocessingError(f"Invalid base64 payload: {e}") from e


def _load_bgr(img_input: ImageInput) -> np.ndarray:
    """Decode any supported input into a 3-channel BGR array."""
    if isinstance(img_input, Image.Image):
        return cv2.cvtColor(np.array(img_input.convert("RGB")), cv2.COLOR_RGB2BGR)

    if isinstance(img_input, np.ndarray):
        if img_input.size == 0:
            raise PreprocessingError("Empty image array")
        if img_input.ndim == 2:
            return cv2.cvtColor(img_input.astype("uint8"), cv2.COLOR_GRAY2BGR)
        if img_input.ndim == 3 and img_input.shape[2] == 4:
            return cv2.cvtColor(img_input, cv2.COLOR_BGRA2BGR)
        return img_input.copy()

    if isinstance(img_input, str) and img_input.startswith("data:"):
        img_input = _decode_data_uri(img_input)

    if isinstance(img_input, (bytes, bytearray)):
        buf = np.frombuffer(bytes(img_input), dtype=np.uint8)
        cv_img = cv2.imdecode(buf, cv2.IMREAD_COLOR) if buf.size else None
        if cv_img is None:
            raise PreprocessingError("Could not decode image bytes")
        return cv_img

    cv_img = cv2.imread(str(img_input), cv2.IMREAD_COLOR)
    if cv_img is None:
        raise PreprocessingError(f"Could not read image: {img_input}")
    return cv_img


def target_size(width: int, height: int, min_side: int = 800, max_side: int = 2000) -> Tuple[int, int]:
    """Scale (width, height) proportionally so max(width, height) is within [min_side, max_side]."""
    larger = max(width, height)
    if larger <= 0:
        raise PreprocessingError(f"Invalid image size {width}x{height}")
    if larger > max_side:
        ratio = max_side / float(larger)
    elif larger < min_side:
        ratio = min_side / float(larger)
    else:
        return width, height
    return max(1, int(round(width * ratio))), max(1, int(round(height * ratio)))


def to_grayscale(bgr: np.ndarray) -> np.ndarray:
    """Luminance grayscale with explicit weights (OpenCV arrays are BGR)."""
    b = bgr[..., 0].astype(np.float64)
    g = bgr[..., 1].astype(np.float64)
    r = bgr[..., 2].astype(np.float64)
    gray = 0.299 * r + 0.587 * g + 0.114 * b
    return np.clip(np.rint(gray), 0, 255).astype("uint8")


def isodata_threshold(gray: np.ndarray, max_iterations: int = 100) -> int:
    """
    Iterative (isodata) threshold on the 256-bin histogram.
    Start at the global mean, split, move to the midpoint of both side means,
    stop once the threshold no longer moves.
    """
    hist = np.bincount(gray.ravel(), minlength=256).astype(np.float64)
    levels = np.arange(256, dtype=np.float64)
    total = hist.sum()
    # single grey level: light pages stay white, dark ones black
    if total == 0 or np.count_nonzero(hist) == 1:
        return 127

    t = float((hist * levels).sum() / total)
    for _ in range(max_iterations):
        cut = int(t)
        low_w = hist[: cut + 1].sum()
        high_w = hist[cut + 1:].sum()
        if low_w == 0 or high_w == 0:
            break
        low_mean = (hist[: cut + 1] * levels[: cut + 1]).sum() / low_w
        high_mean = (hist[cut + 1:] * levels[cut + 1:]).sum() / high_w
        new_t = (low_mean + high_mean) / 2.0
        if abs(new_t - t) < 0.5:
            t = new_t
            break
        t = new_t
    return int(t)


def binarize(gray: np.ndarray, threshold: int) -> np.ndarray:
    return np.where(gray > threshold, 255, 0).astype("uint8")


def _encode_png_data_url(img: np.ndarray) -> str:
    ok, buf = cv2.imencode(".png", img)
    if not ok:
        raise PreprocessingError("Could not encode processed image")
    return "data:image/png;base64," + base64.b64encode(buf.tobytes()).decode("ascii")


def preprocess_receipt(
    img_input: ImageInput,
    cfg: PreprocessConfig | None = None
) -> PreprocessResult:
    """
    High-level preprocess entry point.
    - Accepts raw bytes, a data URI, a file path, PIL.Image or numpy array (BGR/GRAY).
    - Returns the binary image plus a PNG data URL ready for the OCR engine.
    """
    cfg = cfg or PreprocessConfig()

    # --- Load ---
    cv_img = _load_bgr(img_input)
    h, w = cv_img.shape[:2]

    # --- Resize into [min_side, max_side] ---
    tw, th = target_size(w, h, cfg.min_side, cfg.max_side)
    if (tw, th) != (w, h):
        interp = cv2.INTER_AREA if tw < w else cv2.INTER_CUBIC
        try:
            cv_img = cv2.resize(cv_img, (tw, th), interpolation=interp)
        except cv2.error as e:
            raise PreprocessingError(f"Could not create {tw}x{th} working bitmap: {e}") from e

    # Optional debug dir
    if cfg.debug_dir:
        Path(cfg.debug_dir).mkdir(parents=True, exist_ok=True)

    # --- Grayscale ---
    gray = to_grayscale(cv_img)
    if cfg.debug_dir:
        cv2.imwrite(str(Path(cfg.debug_dir, "01_gray.png")), gray)

    # --- Threshold & binarize ---
    threshold = isodata_threshold(gray, cfg.max_iterations)
    bin_img = binarize(gray, threshold)
    if cfg.debug_dir:
        cv2.imwrite(str(Path(cfg.debug_dir, "02_bin.png")), bin_img)

    logger.debug("Preprocessed receipt %dx%d -> %dx%d, threshold=%d", w, h, tw, th, threshold)

    return PreprocessResult(
        processed_data_url=_encode_png_data_url(bin_img),
        width=tw,
        height=th,
        image=bin_img,
    )
