# models.py
from datetime import datetime, timezone
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Naive datetimes are taken to be UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class FilterModel(BaseModel):
    # Accept both token_address and tokenAddress style keys
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    @field_validator("start_date", "end_date")
    @classmethod
    def _dates_in_utc(cls, value):
        return as_utc(value)


class TradingVolumeFilters(FilterModel):
    token_address: Optional[str] = None
    chain: Optional[str] = None
    dex: Optional[str] = None
    lp_pool: Optional[str] = None


class PerpFilters(FilterModel):
    token_symbol: Optional[str] = None
    side: Optional[Literal["long", "short"]] = None
    min_pnl: Optional[float] = None
    max_pnl: Optional[float] = None


class TradingVolumeRequest(BaseModel):
    filters: TradingVolumeFilters = TradingVolumeFilters()


class PerpRequest(BaseModel):
    filters: PerpFilters = PerpFilters()
