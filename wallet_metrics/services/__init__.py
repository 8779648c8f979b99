"""
Service layer package
Upstream client plus one service per metrics domain
"""

from .nansen_client import NansenClient

from .trading_volume_service import (
    TradingVolumeService,
    aggregate_volumes
)

from .perp_service import (
    PerpService,
    aggregate_positions,
    aggregate_trades
)

from .portfolio_service import (
    PortfolioService,
    extract_staking_metrics,
    extract_lending_metrics
)

__all__ = [
    'NansenClient',

    # Trading volume
    'TradingVolumeService',
    'aggregate_volumes',

    # Perpetuals
    'PerpService',
    'aggregate_positions',
    'aggregate_trades',

    # Portfolio
    'PortfolioService',
    'extract_staking_metrics',
    'extract_lending_metrics',
]
