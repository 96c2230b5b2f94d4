# receiptscan/pipelines/receipts/merchants.py
# -*- coding: utf-8 -*-
"""
Merchant detection against a curated dictionary of Romanian chains.

Confidence is binary: aliases of 4+ characters score 90, shorter ones 70
(short aliases collide more often with ordinary words).
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional, Pattern, Tuple

from receiptscan.pipelines.receipts.models import MerchantMatch, MerchantType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MerchantInfo:
    name: str
    type: MerchantType
    patterns: Tuple[str, ...]


MERCHANTS: Tuple[MerchantInfo, ...] = (
    MerchantInfo("Kaufland", MerchantType.SUPERMARKET, ("kaufland", "kauf land")),
    MerchantInfo("Carrefour", MerchantType.SUPERMARKET, ("carrefour", "carref", "carr")),
    MerchantInfo("Mega Image", MerchantType.SUPERMARKET, ("mega image", "mega", "megaimage")),
    MerchantInfo("Lidl", MerchantType.SUPERMARKET, ("lidl", "lid l")),
    MerchantInfo("Penny Market", MerchantType.SUPERMARKET, ("penny", "penny market")),
    MerchantInfo("Profi", MerchantType.SUPERMARKET, ("profi", "profi rom food")),
    MerchantInfo("Auchan", MerchantType.HYPERMARKET, ("auchan", "auch")),
    MerchantInfo("Cora", MerchantType.HYPERMARKET, ("cora",)),
    MerchantInfo("Petrom", MerchantType.GAS_STATION, ("petrom", "petr")),
    MerchantInfo("OMV", MerchantType.GAS_STATION, ("omv", "o m v")),
    MerchantInfo("Lukoil", MerchantType.GAS_STATION, ("lukoil", "luk")),
    MerchantInfo("Rompetrol", MerchantType.GAS_STATION, ("rompetrol", "romp")),
    MerchantInfo("MOL", MerchantType.GAS_STATION, ("mol", "m o l")),
    MerchantInfo("McDonald's", MerchantType.FAST_FOOD, ("mcdonald", "mcdonalds", "mc donald")),
    MerchantInfo("KFC", MerchantType.FAST_FOOD, ("kfc", "k f c", "kentucky")),
    MerchantInfo("Subway", MerchantType.FAST_FOOD, ("subway", "sub way")),
    MerchantInfo("Starbucks", MerchantType.COFFEE_SHOP, ("starbucks", "star bucks")),
    MerchantInfo("Costa Coffee", MerchantType.COFFEE_SHOP, ("costa coffee", "costa")),
    MerchantInfo("Bakery", MerchantType.BAKERY, ("panificatie", "brutarie", "paine", "bread")),
    MerchantInfo("Pastry Shop", MerchantType.PASTRY, ("patiserie", "cofetarie", "prajituri")),
)


def alias_confidence(alias: str) -> int:
    return 90 if len(alias) >= 4 else 70


def _compile() -> Tuple[Tuple[MerchantInfo, str, Pattern[str]], ...]:
    return tuple(
        (info, alias, re.compile(rf"\b{re.escape(alias)}\b"))
        for info in MERCHANTS
        for alias in info.patterns
    )


_ALIASES = _compile()


def detect_merchant(text: str) -> Optional[MerchantMatch]:
    """
    Best merchant for `text` or None.
    Highest confidence wins, then the longest matching alias, then
    declaration order.
    """
    low = (text or "").lower()
    best: Optional[Tuple[int, int, MerchantInfo]] = None

    for info, alias, rx in _ALIASES:
        if not rx.search(low):
            continue
        key = (alias_confidence(alias), len(alias))
        if best is None or key > best[:2]:
            best = (key[0], key[1], info)

    if best is None:
        return None

    conf, _, info = best
    logger.debug("Merchant detected: %s (%s) confidence %d", info.name, info.type.value, conf)
    return MerchantMatch(name=info.name, type=info.type, confidence=conf)
