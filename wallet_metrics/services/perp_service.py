"""
Hyperliquid perpetuals service
Position and trade summaries for a wallet
"""
from typing import Dict, List, Optional, TypeVar

from wallet_metrics.errors import MetricsError
from wallet_metrics.filters import filter_positions, filter_trades
from wallet_metrics.logger import get_logger
from wallet_metrics.models import PerpFilters
from wallet_metrics.normalizers import normalize_position, normalize_trade
from wallet_metrics.records import PerpPosition, PerpPositionSummary, PerpTrade, PerpTradeSummary

logger = get_logger(__name__)

T = TypeVar("T", PerpPosition, PerpTrade)


def group_by_token(records: List[T]) -> Dict[str, List[T]]:
    grouped: Dict[str, List[T]] = {}
    for record in records:
        grouped.setdefault(record.token_symbol, []).append(record)
    return grouped


def aggregate_positions(address: str, positions: List[PerpPosition]) -> PerpPositionSummary:
    summary = PerpPositionSummary(
        address=address,
        total_positions=len(positions),
        positions=positions,
        positions_by_token=group_by_token(positions),
    )

    for pos in positions:
        summary.total_pnl += pos.pnl
        summary.total_margin_used += pos.margin_used
        if pos.side == "long":
            summary.long_positions += 1
        else:
            summary.short_positions += 1

    if positions:
        summary.total_pnl_percentage = sum(p.pnl_percentage for p in positions) / len(positions)

    return summary


def aggregate_trades(address: str, trades: List[PerpTrade]) -> PerpTradeSummary:
    summary = PerpTradeSummary(
        address=address,
        total_trades=len(trades),
        trades=trades,
        trades_by_token=group_by_token(trades),
    )

    trades_with_pnl = 0
    winning_trades = 0

    for trade in trades:
        summary.total_volume += trade.size * trade.price
        summary.total_fees += trade.fee

        if trade.pnl is not None:
            trades_with_pnl += 1
            summary.total_pnl += trade.pnl
            if trade.pnl > 0:
                winning_trades += 1

    if trades_with_pnl > 0:
        summary.win_rate = (winning_trades / trades_with_pnl) * 100

    return summary


class PerpService:
    def __init__(self, client, unknown_side: str = "short"):
        self.client = client
        # Side assigned to positions whose upstream side is neither long nor short
        self.unknown_side = unknown_side

    async def get_wallet_perp_positions(
        self,
        address: str,
        filters: Optional[PerpFilters] = None,
    ) -> PerpPositionSummary:
        try:
            raw_positions = await self.client.fetch_perp_positions(address)
        except Exception as e:
            logger.error(
                f"Error fetching Hyperliquid positions: {e}",
                extra={"event": "pipeline_failed", "wallet": address, "domain": "perp positions"},
            )
            raise MetricsError("Hyperliquid positions", address, e) from e

        positions = [
            normalize_position(address, raw, self.unknown_side)
            for raw in raw_positions
            if isinstance(raw, dict)
        ]
        return aggregate_positions(address, filter_positions(positions, filters))

    async def get_wallet_perp_trades(
        self,
        address: str,
        filters: Optional[PerpFilters] = None,
    ) -> PerpTradeSummary:
        try:
            raw_trades = await self.client.fetch_perp_trades(
                address,
                date_from=filters.start_date if filters else None,
                date_to=filters.end_date if filters else None,
            )
        except Exception as e:
            logger.error(
                f"Error fetching Hyperliquid trades: {e}",
                extra={"event": "pipeline_failed", "wallet": address, "domain": "perp trades"},
            )
            raise MetricsError("Hyperliquid trades", address, e) from e

        trades = [normalize_trade(address, raw) for raw in raw_trades if isinstance(raw, dict)]
        return aggregate_trades(address, filter_trades(trades, filters))
