"""
Nansen API client
Handles all HTTP interaction with the Nansen REST API (auth header, timeout, retries)
"""
import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from wallet_metrics.config import RETRY_STATUSES, settings
from wallet_metrics.errors import ConfigurationError, UpstreamError
from wallet_metrics.logger import get_logger

logger = get_logger(__name__)

COUNTERPARTIES_PATH = "/api/v1/profiler/address/counterparties"
PERP_POSITIONS_PATH = "/api/v1/profiler/perp-positions"
PERP_TRADES_PATH = "/api/v1/profiler/perp-trades"
DEFI_HOLDINGS_PATH = "/api/v1/portfolio/defi-holdings"


def _isoformat(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _unwrap_list(payload: Any, key: str = "data") -> List[Dict]:
    if isinstance(payload, dict):
        payload = payload.get(key)
    return payload if isinstance(payload, list) else []


class NansenClient:
    """
    Client for the Nansen API.

    Requests go through a requests session whose adapter retries connection
    errors, read timeouts and retryable statuses with exponential backoff.
    The blocking call runs in a worker thread so the async services can
    await it, and every request gets its own session.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        retry_delay: Optional[float] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.NANSEN_API_KEY
        if not self.api_key:
            raise ConfigurationError("NANSEN_API_KEY is required in environment variables")

        self.base_url = (base_url or settings.NANSEN_API_BASE_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.REQUEST_TIMEOUT
        self.max_retries = max_retries if max_retries is not None else settings.MAX_RETRIES
        self.retry_delay = retry_delay if retry_delay is not None else settings.RETRY_DELAY

        self.headers = {
            "apiKey": self.api_key,
            "Content-Type": "application/json",
            "Accept": "*/*",
        }

    def _retry_strategy(self) -> Retry:
        return Retry(
            total=self.max_retries,
            backoff_factor=self.retry_delay,
            status_forcelist=RETRY_STATUSES,
            # Every Nansen call is a POST, which urllib3 does not retry by default
            allowed_methods=frozenset(["POST"]),
            # Hand back the last response so its status ends up in UpstreamError
            raise_on_status=False,
        )

    def _session(self) -> requests.Session:
        adapter = HTTPAdapter(max_retries=self._retry_strategy())
        session = requests.Session()
        session.headers.update(self.headers)
        session.mount("https://", adapter)
        session.mount("http://", adapter)
        return session

    def _post_sync(self, path: str, body: Dict[str, Any]) -> Any:
        url = f"{self.base_url}{path}"

        with self._session() as session:
            try:
                resp = session.post(url, json=body, timeout=self.timeout)
            except requests.RequestException as e:
                logger.error(f"Request to {path} failed after retries: {e!r}", extra={"event": "nansen_failed"})
                raise UpstreamError(str(e) or e.__class__.__name__) from e

            if resp.status_code >= 400:
                raise UpstreamError(f"HTTP {resp.status_code}: {resp.text}", status=resp.status_code)

            try:
                return resp.json()
            except ValueError as e:
                raise UpstreamError(f"Invalid JSON response: {e}", status=resp.status_code) from e

    async def post(self, path: str, body: Dict[str, Any]) -> Any:
        """POST a JSON body and return the decoded JSON response."""
        logger.info(f"POST {path}", extra={"event": "nansen_request"})
        return await asyncio.to_thread(self._post_sync, path, body)

    async def _fetch(self, what: str, path: str, body: Dict[str, Any]) -> Any:
        try:
            return await self.post(path, body)
        except UpstreamError as e:
            raise UpstreamError(f"Failed to fetch {what}: {e}", status=e.status) from e

    async def fetch_wallet_counterparties(
        self,
        address: str,
        chain: Optional[str] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        group_by: str = "wallet",
        source_input: str = "Combined",
    ) -> List[Dict]:
        """
        Counterparties (DEXes, pools, wallets) the address traded with.
        The window defaults to the last year.
        """
        now = datetime.now(timezone.utc)
        body = {
            "address": address,
            "chain": chain or settings.DEFAULT_CHAIN,
            "date": {
                "from": _isoformat(date_from or now - timedelta(days=365)),
                "to": _isoformat(date_to or now),
            },
            "group_by": group_by,
            "source_input": source_input,
        }
        payload = await self._fetch("wallet counterparties", COUNTERPARTIES_PATH, body)
        return _unwrap_list(payload)

    async def fetch_perp_positions(self, address: str) -> List[Dict]:
        payload = await self._fetch("perp positions", PERP_POSITIONS_PATH, {"address": address})
        if isinstance(payload, dict) and isinstance(payload.get("data"), dict):
            payload = payload["data"]
        return _unwrap_list(payload, "asset_positions")

    async def fetch_perp_trades(
        self,
        address: str,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
    ) -> List[Dict]:
        body: Dict[str, Any] = {"address": address}
        if date_from or date_to:
            body["date"] = {}
            if date_from:
                body["date"]["from"] = _isoformat(date_from)
            if date_to:
                body["date"]["to"] = _isoformat(date_to)
        payload = await self._fetch("perp trades", PERP_TRADES_PATH, body)
        return _unwrap_list(payload)

    async def fetch_portfolio_holdings(self, address: str) -> Dict[str, Any]:
        payload = await self._fetch("portfolio holdings", DEFI_HOLDINGS_PATH, {"wallet_address": address})
        return payload if isinstance(payload, dict) else {}
