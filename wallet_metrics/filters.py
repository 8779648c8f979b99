"""
Filter predicates
Each predicate tests one record against a filter model. A filter field only
excludes a record when the field is set and the record carries a value for it.
"""
from datetime import datetime
from typing import Iterable, List, Optional, TypeVar, Union

from wallet_metrics.models import PerpFilters, TradingVolumeFilters
from wallet_metrics.records import DexTrade, PerpPosition, PerpTrade, TradingVolume

T = TypeVar("T")


def _same(expected: Optional[str], actual: Optional[str]) -> bool:
    """Case-insensitive equality; passes when either side is missing."""
    if not expected or not actual:
        return True
    return actual.lower() == expected.lower()


def _in_range(timestamp: datetime, start: Optional[datetime], end: Optional[datetime]) -> bool:
    if start and timestamp < start:
        return False
    if end and timestamp > end:
        return False
    return True


def matches_trading_volume(volume: TradingVolume, filters: TradingVolumeFilters) -> bool:
    return (
        _same(filters.token_address, volume.token_address)
        and _same(filters.chain, volume.chain)
        and _same(filters.dex, volume.dex)
        and _same(filters.lp_pool, volume.lp_pool)
        and _in_range(volume.timestamp, filters.start_date, filters.end_date)
    )


def matches_dex_trade(trade: DexTrade, filters: TradingVolumeFilters) -> bool:
    # Either leg of the swap may carry the token
    if filters.token_address:
        token = filters.token_address.lower()
        if trade.token_in.lower() != token and trade.token_out.lower() != token:
            return False

    return (
        _same(filters.chain, trade.chain)
        and _same(filters.dex, trade.dex)
        and _same(filters.lp_pool, trade.lp_pool)
        and _in_range(trade.timestamp, filters.start_date, filters.end_date)
    )


def matches_position(position: PerpPosition, filters: PerpFilters) -> bool:
    if filters.token_symbol and position.token_symbol.lower() != filters.token_symbol.lower():
        return False
    if filters.side and position.side != filters.side:
        return False
    if filters.min_pnl is not None and position.pnl < filters.min_pnl:
        return False
    if filters.max_pnl is not None and position.pnl > filters.max_pnl:
        return False
    return True


def matches_trade(trade: PerpTrade, filters: PerpFilters) -> bool:
    if filters.token_symbol and trade.token_symbol.lower() != filters.token_symbol.lower():
        return False
    if filters.side and trade.side != filters.side:
        return False
    return _in_range(trade.timestamp, filters.start_date, filters.end_date)


def _apply(records: Iterable[T], filters, predicate) -> List[T]:
    if filters is None:
        return list(records)
    return [record for record in records if predicate(record, filters)]


def filter_trading_volumes(volumes: Iterable[TradingVolume], filters: Optional[TradingVolumeFilters]) -> List[TradingVolume]:
    return _apply(volumes, filters, matches_trading_volume)


def filter_dex_trades(trades: Iterable[DexTrade], filters: Optional[TradingVolumeFilters]) -> List[DexTrade]:
    return _apply(trades, filters, matches_dex_trade)


def filter_positions(positions: Iterable[PerpPosition], filters: Optional[PerpFilters]) -> List[PerpPosition]:
    return _apply(positions, filters, matches_position)


def filter_trades(trades: Iterable[PerpTrade], filters: Optional[PerpFilters]) -> List[PerpTrade]:
    return _apply(trades, filters, matches_trade)


def has_active_filters(filters: Optional[Union[TradingVolumeFilters, PerpFilters]]) -> bool:
    if filters is None:
        return False
    return any(value is not None and value != "" for value in filters.model_dump().values())
