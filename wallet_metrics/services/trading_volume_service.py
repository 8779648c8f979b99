"""
Trading volume service
Builds per-wallet volume breakdowns from Nansen counterparty interactions
"""
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from wallet_metrics.classifiers import DexClassifier
from wallet_metrics.config import settings
from wallet_metrics.errors import MetricsError
from wallet_metrics.filters import filter_dex_trades, filter_trading_volumes
from wallet_metrics.logger import get_logger
from wallet_metrics.models import TradingVolumeFilters
from wallet_metrics.normalizers import dex_trade_to_volume, normalize_counterparty, normalize_dex_trade
from wallet_metrics.records import TradingVolume, TradingVolumeSummary

logger = get_logger(__name__)

DOMAIN = "trading volume"


def _add(bucket: Dict[str, float], key: Optional[str], amount: float) -> None:
    if key:
        bucket[key] = bucket.get(key, 0.0) + amount


def aggregate_volumes(wallet_address: str, volumes: List[TradingVolume]) -> TradingVolumeSummary:
    summary = TradingVolumeSummary(
        wallet_address=wallet_address,
        total_transactions=len(volumes),
        transactions=volumes,
    )

    for volume in volumes:
        summary.total_volume += volume.total_volume
        _add(summary.volume_by_chain, volume.chain, volume.total_volume)
        _add(summary.volume_by_token, volume.token_address, volume.total_volume)
        _add(summary.volume_by_dex, volume.dex, volume.total_volume)
        _add(summary.volume_by_lp, volume.lp_pool, volume.total_volume)

    return summary


class TradingVolumeService:
    def __init__(self, client, classifier: Optional[DexClassifier] = None):
        self.client = client
        self.classifier = classifier or DexClassifier()

    async def _fetch_volumes(self, wallet_address: str, filters: Optional[TradingVolumeFilters]) -> List[TradingVolume]:
        chain = (filters.chain if filters else None) or settings.DEFAULT_CHAIN
        start_date = filters.start_date if filters else None
        end_date = filters.end_date if filters else None

        counterparties = await self.client.fetch_wallet_counterparties(
            wallet_address,
            chain=chain,
            date_from=start_date,
            date_to=end_date,
        )

        # The counterparty endpoint has no per-transaction timestamps, so each
        # record is stamped with the end of the window it was queried for.
        window_end = end_date or datetime.now(timezone.utc)

        volumes: List[TradingVolume] = []
        for counterparty in counterparties:
            if not isinstance(counterparty, dict):
                continue
            volumes.extend(normalize_counterparty(
                wallet_address, counterparty, chain, window_end, self.classifier
            ))
        return volumes

    async def get_wallet_trading_volume(
        self,
        wallet_address: str,
        filters: Optional[TradingVolumeFilters] = None,
    ) -> TradingVolumeSummary:
        """Fetch, normalize, filter and aggregate a wallet's trading volume."""
        try:
            volumes = await self._fetch_volumes(wallet_address, filters)
        except Exception as e:
            logger.error(
                f"Error fetching trading volume: {e}",
                extra={"event": "pipeline_failed", "wallet": wallet_address, "domain": DOMAIN},
            )
            raise MetricsError(DOMAIN, wallet_address, e) from e

        volumes = filter_trading_volumes(volumes, filters)
        return aggregate_volumes(wallet_address, volumes)

    async def get_trading_volume_with_filters(
        self,
        wallet_address: str,
        filters: TradingVolumeFilters,
    ) -> TradingVolumeSummary:
        """
        Fetch the wallet's volume for the filter's chain and date window, then
        apply the remaining filters locally and re-aggregate.
        """
        window = TradingVolumeFilters(
            chain=filters.chain,
            start_date=filters.start_date,
            end_date=filters.end_date,
        )
        summary = await self.get_wallet_trading_volume(wallet_address, window)
        return aggregate_volumes(wallet_address, filter_trading_volumes(summary.transactions, filters))

    def aggregate_dex_trades(
        self,
        wallet_address: str,
        raw_trades: Iterable[dict],
        filters: Optional[TradingVolumeFilters] = None,
    ) -> TradingVolumeSummary:
        """Volume summary from raw DEX swap records instead of counterparties."""
        trades = [normalize_dex_trade(t) for t in raw_trades if isinstance(t, dict)]
        trades = filter_dex_trades(trades, filters)
        return aggregate_volumes(wallet_address, [dex_trade_to_volume(t) for t in trades])
