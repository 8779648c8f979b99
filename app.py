# app.py
from datetime import datetime, timezone

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from wallet_metrics.config import API_VERSION, settings
from wallet_metrics.errors import WalletMetricsError
from wallet_metrics.logger import get_logger
from wallet_metrics.routers import api_router

logger = get_logger("wallet_metrics.app")

app = FastAPI(title="Wallet Metrics API", version=API_VERSION)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router)


@app.get("/")
async def root():
    return {
        "message": "Wallet Metrics API",
        "version": API_VERSION,
        "docs": "/docs",
        "endpoints": {
            "health": "/health",
            "trading_volume": "/api/trading-volume/{wallet_address}",
            "perp_positions": "/api/hyperliquid/positions/{address}",
            "perp_trades": "/api/hyperliquid/trades/{address}",
            "staking": "/api/portfolio/staking/{wallet_address}",
            "lending": "/api/portfolio/lending/{wallet_address}",
            "portfolio": "/api/portfolio/metrics/{wallet_address}",
        },
    }


@app.get("/health")
async def health_check():
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": API_VERSION,
    }


@app.exception_handler(WalletMetricsError)
async def wallet_metrics_error_handler(request: Request, exc: WalletMetricsError):
    logger.error(f"Unhandled error on {request.url.path}: {exc}", extra={"event": "unhandled_error"})
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": "Internal server error", "message": str(exc)},
    )


if __name__ == "__main__":
    if not settings.NANSEN_API_KEY:
        logger.warning("NANSEN_API_KEY is not set, upstream requests will fail")
    uvicorn.run(app, host="0.0.0.0", port=settings.PORT)
