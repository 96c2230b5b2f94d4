# receiptscan/pipelines/receipts/models.py
# -*- coding: utf-8 -*-
"""
Records passed between the receipt extraction stages.

RecognizedWord / RecognitionResult come from the OCR engine; the layout,
merchant and template records are derived per receipt; ReceiptPattern is the
only persisted shape (camelCase keys on the wire).
"""

from __future__ import annotations

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class BBox:
    x0: float = 0
    y0: float = 0
    x1: float = 0
    y1: float = 0

    @property
    def center(self) -> tuple[float, float]:
        return (self.x0 + self.x1) / 2, (self.y0 + self.y1) / 2


@dataclass(frozen=True)
class RecognizedWord:
    text: str
    confidence: float = 0.0
    bbox: BBox = field(default_factory=BBox)


@dataclass
class RecognitionResult:
    text: str
    confidence: float = 0.0
    words: List[RecognizedWord] = field(default_factory=list)
    image_width: int = 0
    image_height: int = 0


# ---------------------------
# Layout
# ---------------------------

@dataclass(frozen=True)
class DateRegion:
    word: RecognizedWord
    region: str       # top-right | top-left | bottom | middle
    confidence: int


@dataclass(frozen=True)
class PriceRegion:
    word: RecognizedWord
    type: str         # item | total
    confidence: int
    value: float


@dataclass
class ReceiptLayout:
    date_regions: List[DateRegion] = field(default_factory=list)
    price_regions: List[PriceRegion] = field(default_factory=list)
    top_section: List[RecognizedWord] = field(default_factory=list)
    bottom_section: List[RecognizedWord] = field(default_factory=list)
    left_section: List[RecognizedWord] = field(default_factory=list)
    right_section: List[RecognizedWord] = field(default_factory=list)


# ---------------------------
# Merchant / templates
# ---------------------------

class MerchantType(str, Enum):
    SUPERMARKET = "supermarket"
    HYPERMARKET = "hypermarket"
    GAS_STATION = "gas_station"
    FAST_FOOD = "fast_food"
    COFFEE_SHOP = "coffee_shop"
    BAKERY = "bakery"
    PASTRY = "pastry"


@dataclass(frozen=True)
class MerchantMatch:
    name: str
    type: MerchantType
    confidence: int


@dataclass
class ExtractedReceiptData:
    total: Optional[float] = None
    date: Optional[str] = None
    items: List[Dict[str, float]] = field(default_factory=list)
    vat: List[Dict[str, float]] = field(default_factory=list)
    template: Optional[str] = None
    confidence: float = 0.0


# ---------------------------
# Persisted receipt pattern
# ---------------------------

@dataclass(frozen=True)
class ReceiptPattern:
    id: str
    ocr_text: str
    extracted_data: Dict[str, Any] = field(default_factory=dict)
    user_corrections: Optional[Dict[str, Any]] = None
    merchant: Optional[str] = None
    layout: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    timestamp: str = ""

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "id": self.id,
            "ocrText": self.ocr_text,
            "extractedData": dict(self.extracted_data),
            "layout": {k: dict(v) for k, v in self.layout.items()},
            "timestamp": self.timestamp,
        }
        if self.user_corrections:
            out["userCorrections"] = dict(self.user_corrections)
        if self.merchant:
            out["merchant"] = self.merchant
        return out

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ReceiptPattern":
        return cls(
            id=str(d["id"]),
            ocr_text=d.get("ocrText") or "",
            extracted_data=dict(d.get("extractedData") or {}),
            user_corrections=d.get("userCorrections") or None,
            merchant=d.get("merchant") or None,
            layout=dict(d.get("layout") or {}),
            timestamp=d.get("timestamp") or "",
        )

    @property
    def date_region(self) -> Optional[str]:
        pos = self.layout.get("datePosition") or {}
        return pos.get("region")


# ---------------------------
# Pipeline output
# ---------------------------

@dataclass
class ReceiptFields:
    """Structured receipt handed to the expense form for confirmation."""
    amount: Optional[float]
    date: str
    merchant_name: Optional[str] = None
    merchant_type: Optional[str] = None
    category: Optional[str] = None
    subcategory: Optional[str] = None
    template: Optional[str] = None
    items: List[Dict[str, float]] = field(default_factory=list)
    vat: List[Dict[str, float]] = field(default_factory=list)
    similar_receipts: int = 0
    confidence: float = 0.0
    date_region: Optional[str] = None
    amount_region: Optional[str] = None
    language: Optional[str] = None       # ro | en
    pattern_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
