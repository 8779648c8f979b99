import pytest

from wallet_metrics.classifiers import NO_MATCH, DexClassifier, counterparty_label


@pytest.mark.parametrize("label, dex, is_pool", [
    ("Uniswap V3: USDC-WETH Liquidity Pool", "uniswap", True),
    ("Uniswap V2: Router 2", "uniswap", False),
    ("SushiSwap: Router", "sushiswap", False),
    ("QuickSwap: Router", "quickswap", False),
    ("Stargate Finance: Router", "stargate", False),
    ("OpenSea: Seaport 1.5", "opensea", False),
    ("Aerodrome: vAMM-WETH/USDC Pool", "aerodrome", True),
    ("Velodrome Finance: Liquidity Pool", "velodrome", True),
])
def test_known_labels(label, dex, is_pool):
    match = DexClassifier().classify(label)
    assert match.dex == dex
    assert match.is_liquidity_pool is is_pool


def test_pool_marker_is_case_sensitive():
    assert DexClassifier().classify("uniswap liquidity pool").is_liquidity_pool is False


@pytest.mark.parametrize("label", [None, "", "Binance 14", "Coinbase: Hot Wallet"])
def test_unknown_labels(label):
    assert DexClassifier().classify(label) == NO_MATCH


def test_first_rule_wins():
    classifier = DexClassifier(rules=[("curve", ()), ("uniswap", ())])
    assert classifier.classify("Curve via Uniswap").dex == "curve"


def test_counterparty_label():
    assert counterparty_label({"counterparty_address_label": ["Uniswap V3", "other"]}) == "Uniswap V3"
    assert counterparty_label({"counterparty_address_label": "SushiSwap"}) == "SushiSwap"
    assert counterparty_label({"counterparty_address_label": []}) == ""
    assert counterparty_label({}) == ""
