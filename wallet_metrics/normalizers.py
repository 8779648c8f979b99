"""
Record normalization
Turns loosely typed Nansen payloads into the records in wallet_metrics.records.
Nothing in here raises on bad data: malformed fields fall back to defaults.
"""
import math
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from wallet_metrics.classifiers import DexClassifier, counterparty_label
from wallet_metrics.config import QUOTE_CURRENCY, UNKNOWN_TOKEN_SYMBOL
from wallet_metrics.records import (
    DeFiProtocolHolding,
    DeFiToken,
    DexTrade,
    PerpPosition,
    PerpTrade,
    PortfolioHoldings,
    PortfolioSummary,
    TradingVolume,
)

# Epoch values above this are milliseconds
EPOCH_MS_THRESHOLD = 10 ** 11

# Fractional seconds of any length; fromisoformat before 3.11 wants exactly 3 or 6 digits
ISO_FRACTION = re.compile(r"\.(\d+)")


# ============================================================================
# COERCION HELPERS
# ============================================================================

def to_float(value: Any, default: Optional[float] = 0.0) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return default
    try:
        result = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(result) or math.isinf(result):
        return default
    return result


def to_int(value: Any, default: int = 0) -> int:
    result = to_float(value, None)
    if result is None:
        return default
    return int(result)


def to_str(value: Any, default: Optional[str] = None) -> Optional[str]:
    if value is None or value == "":
        return default
    return str(value)


def parse_timestamp(value: Any, default: Optional[datetime] = None) -> datetime:
    """ISO-8601 strings or epoch seconds/milliseconds, always returned in UTC."""
    fallback = default or datetime.now(timezone.utc)

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        seconds = value / 1000 if abs(value) > EPOCH_MS_THRESHOLD else value
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return fallback
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        numeric = to_float(text, None)
        if numeric is not None:
            return parse_timestamp(numeric, fallback)
        try:
            text = ISO_FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            return fallback
    else:
        return fallback

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


@dataclass(frozen=True)
class AliasedField:
    """
    One logical field that upstream payloads send under several keys.
    Keys are tried in order and the first present value is parsed.
    """
    keys: Tuple[str, ...]
    parse: Callable[[Any, Any], Any] = to_float
    default: Any = None

    def resolve(self, raw: Dict[str, Any]) -> Any:
        for key in self.keys:
            value = raw.get(key)
            if value is None or value == "":
                continue
            return self.parse(value, self.default)
        return self.default


# ============================================================================
# ALIAS TABLES
# ============================================================================

POSITION_FIELDS = {
    "token_symbol": AliasedField(("token_symbol", "token", "symbol"), to_str, UNKNOWN_TOKEN_SYMBOL),
    "size": AliasedField(("size", "position_size"), to_float, 0.0),
    "entry_price": AliasedField(("entry_price", "avg_entry_price"), to_float, 0.0),
    "mark_price": AliasedField(("mark_price", "current_price"), to_float, 0.0),
    "leverage": AliasedField(("leverage",), to_float, 1.0),
    "pnl": AliasedField(("unrealized_pnl", "pnl"), to_float, 0.0),
    "pnl_percentage": AliasedField(("unrealized_pnl_percentage", "pnl_percentage"), to_float, 0.0),
    "liquidation_price": AliasedField(("liquidation_price",), to_float, None),
    "margin_used": AliasedField(("margin_used", "margin"), to_float, 0.0),
    "timestamp": AliasedField(("timestamp", "updated_at"), lambda v, d: v, None),
    "side": AliasedField(("side",), to_str, None),
}

TRADE_FIELDS = {
    "token_symbol": AliasedField(("token_symbol", "token", "symbol"), to_str, UNKNOWN_TOKEN_SYMBOL),
    "side": AliasedField(("side", "action"), lambda v, d: str(v).lower(), "buy"),
    "size": AliasedField(("size", "token_amount", "amount"), to_float, 0.0),
    "price": AliasedField(("price", "price_usd"), to_float, 0.0),
    "fee": AliasedField(("fee", "fee_usd"), to_float, 0.0),
    "pnl": AliasedField(("pnl",), to_float, None),
    "timestamp": AliasedField(("timestamp", "time"), lambda v, d: v, None),
    "tx_hash": AliasedField(("tx_hash", "transaction_hash"), to_str, None),
}


# ============================================================================
# POSITION SIDE
# ============================================================================

class PositionSide(str, Enum):
    LONG = "long"
    SHORT = "short"
    UNKNOWN = "unknown"


def classify_side(raw_side: Any) -> PositionSide:
    if not isinstance(raw_side, str):
        return PositionSide.UNKNOWN
    side = raw_side.lower()
    if side == PositionSide.LONG.value:
        return PositionSide.LONG
    if side == PositionSide.SHORT.value:
        return PositionSide.SHORT
    return PositionSide.UNKNOWN


def resolve_side(raw_side: Any, unknown_side: str = "short") -> str:
    side = classify_side(raw_side)
    if side is PositionSide.UNKNOWN:
        return unknown_side
    return side.value


# ============================================================================
# TRADING VOLUME
# ============================================================================

def normalize_counterparty(
    wallet_address: str,
    counterparty: Dict[str, Any],
    chain: str,
    timestamp: datetime,
    classifier: DexClassifier,
) -> List[TradingVolume]:
    """
    One counterparty becomes one record per token it traded, with the
    counterparty volume split evenly between them.
    """
    match = classifier.classify(counterparty_label(counterparty))
    lp_pool = to_str(counterparty.get("counterparty_address")) if match.is_liquidity_pool else None
    total_volume = to_float(counterparty.get("total_volume_usd"), 0.0)

    tokens_info = counterparty.get("tokens_info") or []
    if not isinstance(tokens_info, list):
        tokens_info = []

    if not tokens_info:
        return [TradingVolume(
            wallet_address=wallet_address,
            total_volume=total_volume,
            total_transactions=to_int(counterparty.get("interaction_count"), 0),
            base_currency="Unknown",
            quote_currency=QUOTE_CURRENCY,
            timestamp=timestamp,
            chain=chain,
            dex=match.dex,
            lp_pool=lp_pool,
        )]

    volume_per_token = total_volume / len(tokens_info)
    volumes = []
    for token_info in tokens_info:
        token_info = token_info if isinstance(token_info, dict) else {}
        token_address = to_str(token_info.get("token_address"))
        volumes.append(TradingVolume(
            wallet_address=wallet_address,
            total_volume=volume_per_token,
            total_transactions=to_int(token_info.get("num_transfer"), 1) or 1,
            base_currency=to_str(token_info.get("token_symbol")) or token_address or "Unknown",
            quote_currency=QUOTE_CURRENCY,
            timestamp=timestamp,
            chain=chain,
            dex=match.dex,
            lp_pool=lp_pool,
            token_address=token_address,
        ))

    return volumes


def normalize_dex_trade(raw: Dict[str, Any]) -> DexTrade:
    return DexTrade(
        wallet_address=to_str(raw.get("wallet_address"), ""),
        token_in=to_str(raw.get("token_in"), ""),
        token_out=to_str(raw.get("token_out"), ""),
        amount_in=to_float(raw.get("amount_in"), 0.0),
        amount_out=to_float(raw.get("amount_out"), 0.0),
        chain=to_str(raw.get("chain")),
        dex=to_str(raw.get("dex")),
        lp_pool=to_str(raw.get("lp_pool")),
        timestamp=parse_timestamp(raw.get("timestamp")),
        tx_hash=to_str(raw.get("tx_hash")),
    )


def dex_trade_to_volume(trade: DexTrade) -> TradingVolume:
    return TradingVolume(
        wallet_address=trade.wallet_address,
        total_volume=trade.amount_in or trade.amount_out or 0.0,
        total_transactions=1,
        base_currency=trade.token_in,
        quote_currency=trade.token_out,
        timestamp=trade.timestamp,
        chain=trade.chain,
        dex=trade.dex,
        lp_pool=trade.lp_pool,
        token_address=trade.token_in or None,
    )


# ============================================================================
# PERPETUALS
# ============================================================================

def normalize_position(address: str, raw: Dict[str, Any], unknown_side: str = "short") -> PerpPosition:
    fields = {name: spec.resolve(raw) for name, spec in POSITION_FIELDS.items()}
    raw_side = fields.pop("side")
    timestamp = fields.pop("timestamp")

    return PerpPosition(
        address=address,
        side=resolve_side(raw_side, unknown_side),
        raw_side=raw_side,
        timestamp=parse_timestamp(timestamp),
        **fields,
    )


def normalize_trade(address: str, raw: Dict[str, Any]) -> PerpTrade:
    fields = {name: spec.resolve(raw) for name, spec in TRADE_FIELDS.items()}
    timestamp = fields.pop("timestamp")

    return PerpTrade(
        address=address,
        timestamp=parse_timestamp(timestamp),
        **fields,
    )


# ============================================================================
# DEFI PORTFOLIO
# ============================================================================

def normalize_token(raw: Dict[str, Any]) -> DeFiToken:
    return DeFiToken(
        address=to_str(raw.get("address"), ""),
        symbol=to_str(raw.get("symbol"), UNKNOWN_TOKEN_SYMBOL),
        amount=to_float(raw.get("amount"), 0.0),
        value_usd=to_float(raw.get("value_usd"), 0.0),
        position_type=to_str(raw.get("position_type")),
    )


def normalize_protocol(raw: Dict[str, Any]) -> DeFiProtocolHolding:
    tokens = raw.get("tokens") or []
    return DeFiProtocolHolding(
        protocol_name=to_str(raw.get("protocol_name"), "Unknown Protocol"),
        chain=to_str(raw.get("chain"), ""),
        total_value_usd=to_float(raw.get("total_value_usd"), 0.0),
        total_assets_usd=to_float(raw.get("total_assets_usd"), 0.0),
        total_debts_usd=to_float(raw.get("total_debts_usd"), 0.0),
        total_rewards_usd=to_float(raw.get("total_rewards_usd"), None),
        tokens=[normalize_token(t) for t in tokens if isinstance(t, dict)],
    )


def normalize_portfolio(raw: Any) -> PortfolioHoldings:
    raw = raw if isinstance(raw, dict) else {}
    summary = raw.get("summary")
    if not isinstance(summary, dict):
        summary = {}
    protocols = raw.get("protocols")
    if not isinstance(protocols, list):
        protocols = []

    return PortfolioHoldings(
        summary=PortfolioSummary(
            total_value_usd=to_float(summary.get("total_value_usd"), 0.0),
            total_assets_usd=to_float(summary.get("total_assets_usd"), 0.0),
            total_debts_usd=to_float(summary.get("total_debts_usd"), 0.0),
            total_rewards_usd=to_float(summary.get("total_rewards_usd"), None),
            token_count=to_int(summary.get("token_count"), 0),
            protocol_count=to_int(summary.get("protocol_count"), 0),
        ),
        protocols=[normalize_protocol(p) for p in protocols if isinstance(p, dict)],
    )
