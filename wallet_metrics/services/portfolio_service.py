"""
DeFi portfolio service
Staking TVL and lending health derived from Nansen DeFi holdings
"""
import asyncio
from datetime import datetime, timezone
from typing import Any, Dict

from wallet_metrics.config import STAKING_ADVISORY
from wallet_metrics.errors import MetricsError
from wallet_metrics.logger import get_logger
from wallet_metrics.normalizers import normalize_portfolio
from wallet_metrics.records import (
    LendingMetrics,
    LendingProtocol,
    PortfolioHoldings,
    PortfolioMetrics,
    StakingMetrics,
    StakingProtocol,
)
from wallet_metrics.scoring import (
    calculate_debt_ratio,
    calculate_health_score,
    is_lending_protocol,
    staking_tokens,
)

logger = get_logger(__name__)


def extract_staking_metrics(portfolio: PortfolioHoldings) -> StakingMetrics:
    """
    Only tokens tagged as staking count toward a protocol's staking TVL.
    When nothing in the portfolio is tagged, every protocol is reported as
    staking with its full value and the result is flagged as a fallback.
    """
    metrics = StakingMetrics(message=STAKING_ADVISORY)

    for protocol in portfolio.protocols:
        tokens = staking_tokens(protocol)
        if not tokens:
            continue

        protocol_tvl = sum(t.value_usd for t in tokens)
        rewards = protocol.total_rewards_usd or 0.0

        metrics.staking_protocols.append(StakingProtocol(
            protocol_name=protocol.protocol_name,
            chain=protocol.chain,
            total_value_usd=protocol_tvl,
            total_assets_usd=protocol.total_assets_usd,
            total_rewards_usd=rewards,
            token_count=len(tokens),
        ))
        metrics.total_staking_tvl_usd += protocol_tvl
        metrics.total_rewards_usd += rewards

    if metrics.staking_protocols or not portfolio.protocols:
        return metrics

    metrics.is_fallback = True
    for protocol in portfolio.protocols:
        rewards = protocol.total_rewards_usd or 0.0
        metrics.staking_protocols.append(StakingProtocol(
            protocol_name=protocol.protocol_name,
            chain=protocol.chain,
            total_value_usd=protocol.total_value_usd,
            total_assets_usd=protocol.total_assets_usd,
            total_rewards_usd=rewards,
            token_count=len(protocol.tokens),
        ))
        metrics.total_staking_tvl_usd += protocol.total_value_usd
        metrics.total_rewards_usd += rewards

    return metrics


def extract_lending_metrics(portfolio: PortfolioHoldings) -> LendingMetrics:
    total_assets_usd = portfolio.summary.total_assets_usd
    total_debts_usd = portfolio.summary.total_debts_usd

    lending_protocols = [
        LendingProtocol(
            protocol_name=protocol.protocol_name,
            chain=protocol.chain,
            total_value_usd=protocol.total_value_usd,
            total_assets_usd=protocol.total_assets_usd,
            total_debts_usd=protocol.total_debts_usd,
            debt_ratio=calculate_debt_ratio(protocol.total_assets_usd, protocol.total_debts_usd),
            token_count=len(protocol.tokens),
        )
        for protocol in portfolio.protocols
        if is_lending_protocol(protocol)
    ]

    return LendingMetrics(
        borrower_health_score=calculate_health_score(total_assets_usd, total_debts_usd),
        total_assets_usd=total_assets_usd,
        total_debts_usd=total_debts_usd,
        lending_protocols=lending_protocols,
    )


class PortfolioService:
    def __init__(self, client):
        self.client = client

    async def _fetch_portfolio(self, domain: str, wallet_address: str) -> PortfolioHoldings:
        try:
            raw = await self.client.fetch_portfolio_holdings(wallet_address)
        except Exception as e:
            logger.error(
                f"Error fetching {domain}: {e}",
                extra={"event": "pipeline_failed", "wallet": wallet_address, "domain": domain},
            )
            raise MetricsError(domain, wallet_address, e) from e
        return normalize_portfolio(raw)

    async def get_staking_metrics(self, wallet_address: str) -> StakingMetrics:
        portfolio = await self._fetch_portfolio("staking metrics", wallet_address)
        return extract_staking_metrics(portfolio)

    async def get_lending_metrics(self, wallet_address: str) -> LendingMetrics:
        portfolio = await self._fetch_portfolio("lending metrics", wallet_address)
        return extract_lending_metrics(portfolio)

    async def get_portfolio_metrics(self, wallet_address: str) -> PortfolioMetrics:
        """Staking and lending computed concurrently, each from its own fetch."""
        try:
            staking, lending = await asyncio.gather(
                self.get_staking_metrics(wallet_address),
                self.get_lending_metrics(wallet_address),
            )
        except MetricsError as e:
            raise MetricsError("portfolio metrics", wallet_address, e) from e

        return PortfolioMetrics(
            wallet_address=wallet_address,
            staking=staking,
            lending=lending,
            timestamp=datetime.now(timezone.utc),
        )

    async def get_raw_holdings(self, wallet_address: str) -> Dict[str, Any]:
        try:
            return await self.client.fetch_portfolio_holdings(wallet_address)
        except Exception as e:
            raise MetricsError("portfolio debug data", wallet_address, e) from e
