"""
Tests for newsdesk.market_client.client

HTTP is replaced by patching MarketClient._request; time is driven by a
fake monotonic clock so TTL and spacing behaviour are deterministic.
"""
import asyncio
import hashlib
import hmac
from unittest.mock import AsyncMock, patch

import pytest

from newsdesk.config import MarketApiConfig
from newsdesk.core.types import FetchError
from newsdesk.market_client import MarketClient


# ── Helpers ───────────────────────────────────────────────────────────────────

class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now


def _ticker_payload(*symbols: str, price: str = "100") -> dict:
    return {
        "result": True,
        "data": {
            "tickers": [
                {"symbol": s, "close": price, "open": "90", "volume": "5"}
                for s in symbols
            ]
        },
    }


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sleep(clock):
    async def _sleep(seconds: float) -> None:
        clock.now += seconds

    return AsyncMock(side_effect=_sleep)


def _client(clock, sleep, **overrides) -> MarketClient:
    config = MarketApiConfig(
        base_url="https://api.example.com/api/v1",
        api_key="key",
        api_secret="secret",
        **overrides,
    )
    return MarketClient(config, clock=clock, sleep=sleep, wall_clock=lambda: 1_700_000_000.0)


# ── Signing ───────────────────────────────────────────────────────────────────

def test_sign_is_hmac_sha256_of_timestamp_method_path(clock, sleep):
    client = _client(clock, sleep)
    expected = hmac.new(
        b"secret", b"1700000000000GET/market/tickers", hashlib.sha256
    ).hexdigest()

    assert client.sign("1700000000000", "get", "/market/tickers") == expected


def test_headers_carry_key_timestamp_and_signature(clock, sleep):
    client = _client(clock, sleep)
    headers = client._headers("GET", "/market/tickers")

    assert headers["X-API-Key"] == "key"
    assert headers["X-Timestamp"] == "1700000000000"
    assert headers["X-Signature"] == client.sign("1700000000000", "GET", "/market/tickers")


# ── Tickers ───────────────────────────────────────────────────────────────────

async def test_tickers_keep_only_allow_listed_pairs(clock, sleep):
    client = _client(clock, sleep)
    payload = _ticker_payload("BTC_USDT", "ETH_USDT", "DOGE_USDT", "XRP_USDT")

    with patch.object(client, "_request", AsyncMock(return_value=payload)):
        tickers = await client.get_tickers()

    assert set(tickers) == {"BTC", "ETH"}
    assert tickers["BTC"].price == 100.0


async def test_tickers_within_ttl_return_same_mapping_without_request(clock, sleep):
    client = _client(clock, sleep)
    request = AsyncMock(return_value=_ticker_payload("BTC_USDT"))

    with patch.object(client, "_request", request):
        first = await client.get_tickers()
        clock.now += 179
        second = await client.get_tickers()

    assert first is second
    request.assert_awaited_once()
    assert client.stats.cache_hits == 1


async def test_tickers_refresh_after_ttl(clock, sleep):
    client = _client(clock, sleep)
    request = AsyncMock(
        side_effect=[_ticker_payload("BTC_USDT", price="100"), _ticker_payload("BTC_USDT", price="200")]
    )

    with patch.object(client, "_request", request):
        await client.get_tickers()
        clock.now += 181
        tickers = await client.get_tickers()

    assert request.await_count == 2
    assert tickers["BTC"].price == 200.0


async def test_requests_are_spaced_by_minimum_interval(clock, sleep):
    client = _client(clock, sleep, ticker_ttl_seconds=0)
    request_times = []

    async def _record(path):
        request_times.append(clock.now)
        return _ticker_payload("BTC_USDT")

    with patch.object(client, "_request", AsyncMock(side_effect=_record)):
        await client.get_tickers()
        clock.now += 5
        await client.get_tickers()

    sleep.assert_awaited_once_with(25)
    assert request_times[1] - request_times[0] >= 30


async def test_no_wait_when_interval_already_elapsed(clock, sleep):
    client = _client(clock, sleep, ticker_ttl_seconds=0)

    with patch.object(client, "_request", AsyncMock(return_value=_ticker_payload("BTC_USDT"))):
        await client.get_tickers()
        clock.now += 31
        await client.get_tickers()

    sleep.assert_not_awaited()


async def test_failures_after_success_return_last_good_mapping(clock, sleep):
    client = _client(clock, sleep, ticker_ttl_seconds=0)
    request = AsyncMock(
        side_effect=[
            _ticker_payload("BTC_USDT"),
            FetchError("boom", service="market_api", status=500),
            FetchError("boom", service="market_api", status=500),
        ]
    )

    with patch.object(client, "_request", request):
        good = await client.get_tickers()
        first_failure = await client.get_tickers()
        second_failure = await client.get_tickers()

    assert first_failure == good
    assert second_failure == good
    assert client.stats.requests_failed == 2


async def test_concurrent_callers_after_failure_share_one_attempt(clock, sleep):
    client = _client(clock, sleep)

    async def _always_down(path):
        await asyncio.sleep(0)
        raise FetchError("Market API returned status 503", service="market_api", status=503)

    request = AsyncMock(side_effect=_always_down)

    with patch.object(client, "_request", request):
        await client.get_tickers()
        results = await asyncio.gather(*(client.get_tickers() for _ in range(6)))

    assert request.await_count == 2
    assert all(r == {} for r in results)
    sleep.assert_awaited_once_with(30)


async def test_concurrent_callers_after_failure_keep_stale_snapshot(clock, sleep):
    client = _client(clock, sleep, ticker_ttl_seconds=0)

    calls = []

    async def _flaky(path):
        calls.append(path)
        await asyncio.sleep(0)
        if len(calls) == 1:
            return _ticker_payload("BTC_USDT")
        raise FetchError("Market API returned status 503", service="market_api", status=503)

    request = AsyncMock(side_effect=_flaky)

    with patch.object(client, "_request", request):
        good = await client.get_tickers()
        results = await asyncio.gather(*(client.get_tickers() for _ in range(4)))
        later = await client.get_tickers()

    assert all(r == good for r in results)
    assert later == good
    assert request.await_count == 3


async def test_failure_with_empty_cache_returns_empty_mapping(clock, sleep):
    client = _client(clock, sleep)

    with patch.object(client, "_request", AsyncMock(side_effect=FetchError("down", service="market_api"))):
        tickers = await client.get_tickers()

    assert tickers == {}


async def test_malformed_envelope_is_treated_as_failure(clock, sleep):
    client = _client(clock, sleep)

    with patch.object(client, "_request", AsyncMock(return_value={"data": "nope"})):
        tickers = await client.get_tickers()

    assert tickers == {}
    assert client.stats.requests_failed == 1


# ── Candles ───────────────────────────────────────────────────────────────────

async def test_candles_request_path_and_limit(clock, sleep):
    client = _client(clock, sleep)
    klines = [
        {"time": 1_700_000_000_000 + i * 180_000, "open": "1", "high": "2", "low": "1", "close": "1.5", "volume": "10"}
        for i in range(12)
    ]
    request = AsyncMock(return_value={"data": {"klines": klines}})

    with patch.object(client, "_request", request):
        candles = await client.get_candles("BTC_USDT", "3M", 10)

    request.assert_awaited_once_with("/market/klines/BTC_USDT/3M?limit=10")
    assert len(candles) == 10
    assert candles[0].time > candles[-1].time


async def test_candles_failure_returns_empty_list(clock, sleep):
    client = _client(clock, sleep)

    with patch.object(client, "_request", AsyncMock(side_effect=FetchError("down", service="market_api"))):
        assert await client.get_candles("BTC_USDT") == []
