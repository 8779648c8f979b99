from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

WALLET = "0x1234567890abcdef1234567890abcdef12345678"


@pytest.fixture
def wallet():
    return WALLET


@pytest.fixture
def fixed_time():
    return datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def fake_client():
    """Stand-in for NansenClient with every fetch method mocked."""
    client = AsyncMock()
    client.fetch_wallet_counterparties.return_value = []
    client.fetch_perp_positions.return_value = []
    client.fetch_perp_trades.return_value = []
    client.fetch_portfolio_holdings.return_value = {}
    return client


@pytest.fixture
def lido_portfolio():
    return {
        "summary": {
            "total_value_usd": 5000,
            "total_assets_usd": 5000,
            "total_debts_usd": 0,
            "total_rewards_usd": 250,
            "token_count": 1,
            "protocol_count": 1,
        },
        "protocols": [
            {
                "protocol_name": "Lido",
                "chain": "ethereum",
                "total_value_usd": 5000,
                "total_assets_usd": 5000,
                "total_debts_usd": 0,
                "total_rewards_usd": 250,
                "tokens": [
                    {
                        "address": "0xae7ab96520de3a18e5e111b5eaab095312d7fe84",
                        "symbol": "stETH",
                        "amount": 1.5,
                        "value_usd": 5000,
                        "position_type": "staking",
                    }
                ],
            }
        ],
    }
