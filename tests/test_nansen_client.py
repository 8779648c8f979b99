import json
import threading
from datetime import datetime, timezone
from http.server import BaseHTTPRequestHandler, HTTPServer
from unittest.mock import AsyncMock

import pytest
import requests

from wallet_metrics.config import RETRY_STATUSES
from wallet_metrics.errors import ConfigurationError, UpstreamError
from wallet_metrics.services import NansenClient
from wallet_metrics.services.nansen_client import (
    COUNTERPARTIES_PATH,
    DEFI_HOLDINGS_PATH,
    PERP_POSITIONS_PATH,
    PERP_TRADES_PATH,
)


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class FakeSession:
    """Returns (or raises) a fixed outcome for every POST and records the calls."""

    def __init__(self, outcome):
        self.outcome = outcome
        self.calls = []

    def post(self, url, json=None, timeout=None):
        self.calls.append((url, json, timeout))
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


def make_client(outcome=None, **kwargs):
    client = NansenClient(api_key="test-key", base_url="https://nansen.test/", **kwargs)
    session = FakeSession(outcome)
    client._session = lambda: session
    return client, session


def test_missing_api_key_raises():
    with pytest.raises(ConfigurationError):
        NansenClient(api_key="")


def test_headers_and_base_url():
    client, _ = make_client()
    assert client.headers["apiKey"] == "test-key"
    assert client.headers["Content-Type"] == "application/json"
    assert client.base_url == "https://nansen.test"


def test_session_mounts_retry_policy():
    client = NansenClient(api_key="test-key", max_retries=4, retry_delay=0.5)

    with client._session() as session:
        retry = session.get_adapter("https://api.nansen.ai").max_retries
        assert session.headers["apiKey"] == "test-key"

    assert retry.total == 4
    assert retry.backoff_factor == 0.5
    assert list(retry.status_forcelist) == RETRY_STATUSES
    assert "POST" in retry.allowed_methods
    assert retry.raise_on_status is False


def test_retry_policy_only_retries_listed_statuses():
    retry = NansenClient(api_key="test-key")._retry_strategy()

    assert retry.is_retry("POST", 429)
    assert retry.is_retry("POST", 503)
    assert not retry.is_retry("POST", 401)
    assert not retry.is_retry("POST", 404)


@pytest.mark.asyncio
async def test_post_returns_json():
    client, session = make_client(FakeResponse(200, {"data": []}), timeout=5)

    assert await client.post("/x", {"a": 1}) == {"data": []}
    assert session.calls == [("https://nansen.test/x", {"a": 1}, 5)]


@pytest.mark.asyncio
async def test_post_error_status_after_retries():
    client, _ = make_client(FakeResponse(503, text="down"))

    with pytest.raises(UpstreamError) as exc_info:
        await client.post("/x", {})

    assert exc_info.value.status == 503
    assert str(exc_info.value) == "HTTP 503: down"


@pytest.mark.asyncio
async def test_post_client_error_status():
    client, _ = make_client(FakeResponse(401, text="unauthorized"))

    with pytest.raises(UpstreamError) as exc_info:
        await client.post("/x", {})

    assert exc_info.value.status == 401


@pytest.mark.asyncio
async def test_post_connection_error():
    client, _ = make_client(requests.ConnectionError("connection reset"))

    with pytest.raises(UpstreamError, match="connection reset") as exc_info:
        await client.post("/x", {})

    assert exc_info.value.status is None


@pytest.mark.asyncio
async def test_post_invalid_json():
    client, _ = make_client(FakeResponse(200, ValueError("Expecting value")))

    with pytest.raises(UpstreamError, match="Invalid JSON response"):
        await client.post("/x", {})


@pytest.mark.asyncio
async def test_fetch_wallet_counterparties_body():
    client, _ = make_client()
    client.post = AsyncMock(return_value={"data": [{"counterparty_address": "0x1"}]})
    start = datetime(2024, 1, 1, tzinfo=timezone.utc)
    end = datetime(2024, 2, 1, tzinfo=timezone.utc)

    result = await client.fetch_wallet_counterparties("0xabc", chain="base", date_from=start, date_to=end)

    assert result == [{"counterparty_address": "0x1"}]
    path, body = client.post.call_args.args
    assert path == COUNTERPARTIES_PATH
    assert body == {
        "address": "0xabc",
        "chain": "base",
        "date": {"from": "2024-01-01T00:00:00Z", "to": "2024-02-01T00:00:00Z"},
        "group_by": "wallet",
        "source_input": "Combined",
    }


@pytest.mark.asyncio
async def test_fetch_wallet_counterparties_defaults():
    client, _ = make_client()
    client.post = AsyncMock(return_value={"unexpected": True})

    assert await client.fetch_wallet_counterparties("0xabc") == []
    body = client.post.call_args.args[1]
    assert body["chain"] == "ethereum"
    assert body["date"]["from"] < body["date"]["to"]


@pytest.mark.asyncio
async def test_fetch_perp_positions_unwraps_asset_positions():
    client, _ = make_client()
    client.post = AsyncMock(return_value={"data": {"asset_positions": [{"token_symbol": "ETH"}]}})

    assert await client.fetch_perp_positions("0xabc") == [{"token_symbol": "ETH"}]
    assert client.post.call_args.args == (PERP_POSITIONS_PATH, {"address": "0xabc"})


@pytest.mark.asyncio
async def test_fetch_perp_trades_optional_dates():
    client, _ = make_client()
    client.post = AsyncMock(return_value={"data": [{"token_symbol": "ETH"}]})

    assert await client.fetch_perp_trades("0xabc") == [{"token_symbol": "ETH"}]
    assert client.post.call_args.args == (PERP_TRADES_PATH, {"address": "0xabc"})

    await client.fetch_perp_trades("0xabc", date_from=datetime(2024, 1, 1))
    assert client.post.call_args.args[1]["date"] == {"from": "2024-01-01T00:00:00Z"}


@pytest.mark.asyncio
async def test_fetch_portfolio_holdings():
    client, _ = make_client()
    client.post = AsyncMock(return_value=[])

    assert await client.fetch_portfolio_holdings("0xabc") == {}
    assert client.post.call_args.args == (DEFI_HOLDINGS_PATH, {"wallet_address": "0xabc"})


@pytest.mark.asyncio
async def test_fetch_errors_name_the_resource():
    client, _ = make_client()
    client.post = AsyncMock(side_effect=UpstreamError("HTTP 500: boom", status=500))

    with pytest.raises(UpstreamError) as exc_info:
        await client.fetch_portfolio_holdings("0xabc")

    assert str(exc_info.value) == "Failed to fetch portfolio holdings: HTTP 500: boom"
    assert exc_info.value.status == 500


@pytest.fixture
def flaky_server():
    """Local HTTP server that answers 503 twice before returning JSON."""
    statuses = [503, 503, 200]
    seen = []

    class Handler(BaseHTTPRequestHandler):
        def do_POST(self):
            length = int(self.headers.get("Content-Length", 0))
            seen.append(json.loads(self.rfile.read(length)))
            status = statuses.pop(0) if statuses else 200
            payload = b'{"data": ["ok"]}' if status == 200 else b"unavailable"
            self.send_response(status)
            self.send_header("Content-Length", str(len(payload)))
            self.end_headers()
            self.wfile.write(payload)

        def log_message(self, *args):
            pass

    server = HTTPServer(("127.0.0.1", 0), Handler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield f"http://127.0.0.1:{server.server_port}", seen
    server.shutdown()
    server.server_close()


@pytest.mark.asyncio
async def test_retryable_statuses_are_retried(flaky_server):
    base_url, seen = flaky_server
    client = NansenClient(api_key="test-key", base_url=base_url, max_retries=3, retry_delay=0)

    assert await client.post("/x", {"a": 1}) == {"data": ["ok"]}
    assert seen == [{"a": 1}] * 3


@pytest.mark.asyncio
async def test_retries_exhausted_keeps_last_status(flaky_server):
    base_url, seen = flaky_server
    client = NansenClient(api_key="test-key", base_url=base_url, max_retries=1, retry_delay=0)

    with pytest.raises(UpstreamError) as exc_info:
        await client.post("/x", {})

    assert exc_info.value.status == 503
    assert len(seen) == 2
