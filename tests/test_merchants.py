from receiptscan.pipelines.receipts.merchants import MERCHANTS, alias_confidence, detect_merchant
from receiptscan.pipelines.receipts.models import MerchantType


def test_long_alias_scores_90():
    m = detect_merchant("KAUFLAND ROMANIA SCS\nStr. Barbu Vacarescu")
    assert m.name == "Kaufland"
    assert m.type is MerchantType.SUPERMARKET
    assert m.confidence == 90


def test_short_alias_scores_70():
    m = detect_merchant("Statia MOL Pipera")
    assert m.name == "MOL"
    assert m.type is MerchantType.GAS_STATION
    assert m.confidence == 70


def test_longest_alias_breaks_confidence_ties():
    # 'paine' (Bakery) and 'kaufland' both score 90; the longer alias wins
    m = detect_merchant("KAUFLAND\nPaine 3,50")
    assert m.name == "Kaufland"


def test_higher_confidence_beats_short_alias():
    m = detect_merchant("OMV Petrom statie")
    assert m.name == "Petrom"
    assert m.confidence == 90


def test_aliases_match_whole_words_only():
    assert detect_merchant("molecule cremoasa") is None
    assert detect_merchant("Megaphone") is None


def test_no_merchant():
    assert detect_merchant("") is None
    assert detect_merchant("bon fiscal 12,00") is None


def test_alias_confidence_and_dictionary_shape():
    assert alias_confidence("mol") == 70
    assert alias_confidence("cora") == 90
    assert all(m.patterns for m in MERCHANTS)
