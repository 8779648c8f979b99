"""
Portfolio metric calculators
"""
import math
from typing import List

from wallet_metrics.config import STAKING_POSITION_TYPE
from wallet_metrics.records import DeFiProtocolHolding, DeFiToken


def round_half_up(value: float, places: int = 2) -> float:
    """Rounds halves up rather than to even."""
    factor = 10 ** places
    return math.floor(value * factor + 0.5) / factor


def calculate_health_score(total_assets_usd: float, total_debts_usd: float) -> float:
    """
    Borrower health on a 0-100 scale.

    The assets/debts ratio is mapped linearly: a ratio of 2 or more scores
    100, a ratio of 1 scores 50 and lower ratios trend to 0. No debt is a
    perfect score, debt with no assets is 0.
    """
    if total_debts_usd == 0:
        return 100.0

    if total_assets_usd == 0:
        return 0.0

    ratio = total_assets_usd / total_debts_usd
    normalized_score = min((ratio / 2) * 100, 100.0)

    return max(round_half_up(normalized_score), 0.0)


def calculate_debt_ratio(total_assets_usd: float, total_debts_usd: float) -> float:
    if total_assets_usd > 0:
        return total_debts_usd / total_assets_usd
    return 0.0


def staking_tokens(protocol: DeFiProtocolHolding) -> List[DeFiToken]:
    return [t for t in protocol.tokens if t.position_type == STAKING_POSITION_TYPE]


def is_lending_protocol(protocol: DeFiProtocolHolding) -> bool:
    return protocol.total_assets_usd > 0 or protocol.total_debts_usd > 0
