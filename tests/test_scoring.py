import pytest

from wallet_metrics.records import DeFiProtocolHolding, DeFiToken
from wallet_metrics.scoring import (
    calculate_debt_ratio,
    calculate_health_score,
    is_lending_protocol,
    round_half_up,
    staking_tokens,
)


@pytest.mark.parametrize("assets", [0, 1, 5000, 1e9])
def test_no_debt_is_perfect_score(assets):
    assert calculate_health_score(assets, 0) == 100.0


@pytest.mark.parametrize("debts", [1, 5000, 1e9])
def test_debt_without_assets_scores_zero(debts):
    assert calculate_health_score(0, debts) == 0.0


@pytest.mark.parametrize("debts", [1, 6000, 123.45])
def test_ratio_one_and_two(debts):
    assert calculate_health_score(debts, debts) == 50.0
    assert calculate_health_score(2 * debts, debts) == 100.0


def test_health_score_examples():
    assert calculate_health_score(12000, 6000) == 100.0
    assert calculate_health_score(0, 5000) == 0.0
    assert calculate_health_score(1000, 3000) == 16.67


def test_health_score_is_capped_and_monotonic():
    scores = [calculate_health_score(assets, 1000) for assets in range(0, 5001, 250)]
    assert scores == sorted(scores)
    assert all(0.0 <= s <= 100.0 for s in scores)


def test_debt_ratio():
    assert calculate_debt_ratio(1000, 250) == 0.25
    assert calculate_debt_ratio(0, 250) == 0.0


def test_staking_tokens_and_lending_protocol():
    protocol = DeFiProtocolHolding(
        protocol_name="Aave",
        chain="ethereum",
        total_value_usd=500.0,
        total_assets_usd=1000.0,
        total_debts_usd=500.0,
        tokens=[
            DeFiToken("0x1", "aUSDC", 1000.0, 1000.0, "lending"),
            DeFiToken("0x2", "stkAAVE", 1.0, 80.0, "staking"),
        ],
    )
    assert [t.symbol for t in staking_tokens(protocol)] == ["stkAAVE"]
    assert is_lending_protocol(protocol)

    protocol.total_assets_usd = 0.0
    protocol.total_debts_usd = 0.0
    assert not is_lending_protocol(protocol)


def test_round_half_up():
    assert round_half_up(0.125) == 0.13
    assert round_half_up(0.375) == 0.38
    assert round_half_up(16.6666) == 16.67
    assert round_half_up(50.0) == 50.0


def test_health_score_rounds_halves_up():
    # ratio 1/16 maps to a score of exactly 3.125
    assert calculate_health_score(1, 16) == 3.13
