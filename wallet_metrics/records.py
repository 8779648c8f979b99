"""
Normalized wallet records and the summaries built from them
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional
from datetime import datetime


# ============================================================================
# TRADING VOLUME
# ============================================================================

@dataclass
class TradingVolume:
    wallet_address: str
    total_volume: float
    total_transactions: int
    base_currency: str
    quote_currency: str
    timestamp: datetime
    chain: Optional[str] = None
    dex: Optional[str] = None
    lp_pool: Optional[str] = None
    token_address: Optional[str] = None


@dataclass
class TradingVolumeSummary:
    wallet_address: str
    total_volume: float = 0.0
    total_transactions: int = 0
    volume_by_chain: Dict[str, float] = field(default_factory=dict)
    volume_by_token: Dict[str, float] = field(default_factory=dict)
    volume_by_dex: Dict[str, float] = field(default_factory=dict)
    volume_by_lp: Dict[str, float] = field(default_factory=dict)
    transactions: List[TradingVolume] = field(default_factory=list)


@dataclass
class DexTrade:
    wallet_address: str
    token_in: str
    token_out: str
    amount_in: float
    amount_out: float
    chain: Optional[str]
    dex: Optional[str]
    timestamp: datetime
    tx_hash: Optional[str] = None
    lp_pool: Optional[str] = None


# ============================================================================
# PERPETUALS
# ============================================================================

@dataclass
class PerpPosition:
    address: str
    token_symbol: str
    side: str  # long or short
    size: float
    entry_price: float
    mark_price: float
    leverage: float
    pnl: float
    pnl_percentage: float
    margin_used: float
    timestamp: datetime
    liquidation_price: Optional[float] = None
    raw_side: Optional[str] = None


@dataclass
class PerpPositionSummary:
    address: str
    total_positions: int = 0
    total_pnl: float = 0.0
    total_pnl_percentage: float = 0.0
    total_margin_used: float = 0.0
    positions: List[PerpPosition] = field(default_factory=list)
    positions_by_token: Dict[str, List[PerpPosition]] = field(default_factory=dict)
    long_positions: int = 0
    short_positions: int = 0


@dataclass
class PerpTrade:
    address: str
    token_symbol: str
    side: str  # long, short, buy or sell
    size: float
    price: float
    fee: float
    timestamp: datetime
    pnl: Optional[float] = None
    tx_hash: Optional[str] = None


@dataclass
class PerpTradeSummary:
    address: str
    total_trades: int = 0
    total_volume: float = 0.0
    total_fees: float = 0.0
    total_pnl: float = 0.0
    trades: List[PerpTrade] = field(default_factory=list)
    trades_by_token: Dict[str, List[PerpTrade]] = field(default_factory=dict)
    win_rate: Optional[float] = None


# ============================================================================
# DEFI PORTFOLIO
# ============================================================================

@dataclass
class DeFiToken:
    address: str
    symbol: str
    amount: float
    value_usd: float
    position_type: Optional[str] = None


@dataclass
class DeFiProtocolHolding:
    protocol_name: str
    chain: str
    total_value_usd: float
    total_assets_usd: float
    total_debts_usd: float
    total_rewards_usd: Optional[float] = None
    tokens: List[DeFiToken] = field(default_factory=list)


@dataclass
class PortfolioSummary:
    total_value_usd: float = 0.0
    total_assets_usd: float = 0.0
    total_debts_usd: float = 0.0
    total_rewards_usd: Optional[float] = None
    token_count: int = 0
    protocol_count: int = 0


@dataclass
class PortfolioHoldings:
    summary: PortfolioSummary
    protocols: List[DeFiProtocolHolding] = field(default_factory=list)


@dataclass
class StakingProtocol:
    protocol_name: str
    chain: str
    total_value_usd: float
    total_assets_usd: float
    total_rewards_usd: float
    token_count: int


@dataclass
class StakingMetrics:
    total_staking_tvl_usd: float = 0.0
    staking_protocols: List[StakingProtocol] = field(default_factory=list)
    total_rewards_usd: float = 0.0
    is_fallback: bool = False
    message: Optional[str] = None


@dataclass
class LendingProtocol:
    protocol_name: str
    chain: str
    total_value_usd: float
    total_assets_usd: float
    total_debts_usd: float
    debt_ratio: float
    token_count: int


@dataclass
class LendingMetrics:
    borrower_health_score: float
    total_assets_usd: float
    total_debts_usd: float
    lending_protocols: List[LendingProtocol] = field(default_factory=list)


@dataclass
class PortfolioMetrics:
    wallet_address: str
    staking: StakingMetrics
    lending: LendingMetrics
    timestamp: datetime
