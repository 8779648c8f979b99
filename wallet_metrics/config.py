# config.py
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    NANSEN_API_KEY: str = ""
    NANSEN_API_BASE_URL: str = "https://api.nansen.ai"
    PORT: int = 3000

    REQUEST_TIMEOUT: float = 30.0
    MAX_RETRIES: int = 3
    RETRY_DELAY: float = 1.0

    DEFAULT_CHAIN: str = "ethereum"
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()

API_VERSION = "1.0.0"

# Retried by the upstream client, everything else fails immediately
RETRY_STATUSES = [429, 500, 502, 503, 504]

# Counterparty label matching, checked in order. Each entry is
# (dex name, label markers that flag the counterparty as a liquidity pool).
KNOWN_DEXES = [
    ("uniswap", ("Liquidity Pool",)),
    ("sushiswap", ()),
    ("quickswap", ()),
    ("stargate", ()),
    ("opensea", ()),
    ("aerodrome", ("Liquidity Pool", "Pool")),
    ("velodrome", ("Liquidity Pool", "Pool")),
]

STAKING_POSITION_TYPE = "staking"

STAKING_ADVISORY = (
    "Note: Sustained staking days calculation requires historical tracking. "
    "Consider polling this endpoint periodically and storing snapshots to determine "
    "how many consecutive days staking has exceeded a threshold."
)

UNKNOWN_TOKEN_SYMBOL = "UNKNOWN"
QUOTE_CURRENCY = "USD"
