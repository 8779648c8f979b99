# routers.py
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from wallet_metrics.errors import MetricsError
from wallet_metrics.filters import has_active_filters
from wallet_metrics.logger import get_logger
from wallet_metrics.models import PerpFilters, PerpRequest, TradingVolumeFilters, TradingVolumeRequest
from wallet_metrics.services import NansenClient, PerpService, PortfolioService, TradingVolumeService

logger = get_logger(__name__)


def get_nansen_client() -> NansenClient:
    return NansenClient()


def get_trading_volume_service(client=Depends(get_nansen_client)) -> TradingVolumeService:
    return TradingVolumeService(client)


def get_perp_service(client=Depends(get_nansen_client)) -> PerpService:
    return PerpService(client)


def get_portfolio_service(client=Depends(get_nansen_client)) -> PortfolioService:
    return PortfolioService(client)


def _active(filters):
    return filters if has_active_filters(filters) else None


def _require_address(address: str) -> str:
    if not address or not address.strip():
        raise HTTPException(400, "Invalid wallet address")
    return address.strip()


def _http_error(e: MetricsError) -> HTTPException:
    logger.error(str(e), extra={"event": "request_failed", "wallet": e.address, "domain": e.domain})
    return HTTPException(500, str(e))


# ============================================================================
# TRADING VOLUME
# ============================================================================

trading_volume_router = APIRouter(prefix="/api/trading-volume", tags=["trading-volume"])


@trading_volume_router.get("/{wallet_address}")
async def get_trading_volume(
    wallet_address: str,
    token_address: Optional[str] = Query(None, alias="tokenAddress"),
    chain: Optional[str] = None,
    dex: Optional[str] = None,
    lp_pool: Optional[str] = Query(None, alias="lpPool"),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    service: TradingVolumeService = Depends(get_trading_volume_service),
):
    """Trading volume by chain, token, DEX and LP pool"""
    filters = TradingVolumeFilters(
        token_address=token_address,
        chain=chain,
        dex=dex,
        lp_pool=lp_pool,
        start_date=start_date,
        end_date=end_date,
    )
    try:
        summary = await service.get_wallet_trading_volume(_require_address(wallet_address), _active(filters))
    except MetricsError as e:
        raise _http_error(e) from e
    return {"success": True, "data": summary}


@trading_volume_router.post("/{wallet_address}")
async def post_trading_volume(
    wallet_address: str,
    request: TradingVolumeRequest = TradingVolumeRequest(),
    service: TradingVolumeService = Depends(get_trading_volume_service),
):
    """Trading volume with filters sent as a JSON body"""
    try:
        summary = await service.get_wallet_trading_volume(_require_address(wallet_address), _active(request.filters))
    except MetricsError as e:
        raise _http_error(e) from e
    return {"success": True, "data": summary}


# ============================================================================
# HYPERLIQUID
# ============================================================================

hyperliquid_router = APIRouter(prefix="/api/hyperliquid", tags=["hyperliquid"])


def _side(side: Optional[str]) -> Optional[str]:
    # Anything other than long/short is ignored rather than rejected
    return side if side in ("long", "short") else None


@hyperliquid_router.get("/positions/{address}")
async def get_positions(
    address: str,
    token_symbol: Optional[str] = Query(None, alias="tokenSymbol"),
    side: Optional[str] = None,
    min_pnl: Optional[float] = Query(None, alias="minPnl"),
    max_pnl: Optional[float] = Query(None, alias="maxPnl"),
    service: PerpService = Depends(get_perp_service),
):
    """Open perpetual positions, optionally filtered by token, side and PnL"""
    filters = PerpFilters(token_symbol=token_symbol, side=_side(side), min_pnl=min_pnl, max_pnl=max_pnl)
    try:
        summary = await service.get_wallet_perp_positions(_require_address(address), _active(filters))
    except MetricsError as e:
        raise _http_error(e) from e
    return {"success": True, "data": summary}


@hyperliquid_router.post("/positions/{address}")
async def post_positions(
    address: str,
    request: PerpRequest = PerpRequest(),
    service: PerpService = Depends(get_perp_service),
):
    try:
        summary = await service.get_wallet_perp_positions(_require_address(address), _active(request.filters))
    except MetricsError as e:
        raise _http_error(e) from e
    return {"success": True, "data": summary}


@hyperliquid_router.get("/trades/{address}")
async def get_trades(
    address: str,
    token_symbol: Optional[str] = Query(None, alias="tokenSymbol"),
    side: Optional[str] = None,
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    service: PerpService = Depends(get_perp_service),
):
    """Perpetual trade history, optionally filtered by token, side and date"""
    filters = PerpFilters(token_symbol=token_symbol, side=_side(side), start_date=start_date, end_date=end_date)
    try:
        summary = await service.get_wallet_perp_trades(_require_address(address), _active(filters))
    except MetricsError as e:
        raise _http_error(e) from e
    return {"success": True, "data": summary}


@hyperliquid_router.post("/trades/{address}")
async def post_trades(
    address: str,
    request: PerpRequest = PerpRequest(),
    service: PerpService = Depends(get_perp_service),
):
    try:
        summary = await service.get_wallet_perp_trades(_require_address(address), _active(request.filters))
    except MetricsError as e:
        raise _http_error(e) from e
    return {"success": True, "data": summary}


# ============================================================================
# PORTFOLIO
# ============================================================================

portfolio_router = APIRouter(prefix="/api/portfolio", tags=["portfolio"])


@portfolio_router.get("/staking/{wallet_address}")
async def get_staking(wallet_address: str, service: PortfolioService = Depends(get_portfolio_service)):
    """Staking TVL, protocol breakdown and rewards"""
    try:
        metrics = await service.get_staking_metrics(_require_address(wallet_address))
    except MetricsError as e:
        raise _http_error(e) from e
    return {"success": True, "data": metrics}


@portfolio_router.get("/lending/{wallet_address}")
async def get_lending(wallet_address: str, service: PortfolioService = Depends(get_portfolio_service)):
    """Borrower health score, debt ratios and lending positions"""
    try:
        metrics = await service.get_lending_metrics(_require_address(wallet_address))
    except MetricsError as e:
        raise _http_error(e) from e
    return {"success": True, "data": metrics}


@portfolio_router.get("/metrics/{wallet_address}")
async def get_portfolio_metrics(wallet_address: str, service: PortfolioService = Depends(get_portfolio_service)):
    """Combined staking and lending metrics"""
    try:
        metrics = await service.get_portfolio_metrics(_require_address(wallet_address))
    except MetricsError as e:
        raise _http_error(e) from e
    return {"success": True, "data": metrics}


@portfolio_router.get("/debug/{wallet_address}")
async def get_portfolio_debug(wallet_address: str, service: PortfolioService = Depends(get_portfolio_service)):
    """Raw Nansen DeFi holdings payload"""
    try:
        raw = await service.get_raw_holdings(_require_address(wallet_address))
    except MetricsError as e:
        raise _http_error(e) from e
    protocols = raw.get("protocols") or []
    return {
        "success": True,
        "data": raw,
        "raw_protocols": protocols,
        "protocol_count": len(protocols),
    }


api_router = APIRouter()
api_router.include_router(trading_volume_router)
api_router.include_router(hyperliquid_router)
api_router.include_router(portfolio_router)
