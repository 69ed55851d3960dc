"""
Market Data Client

Signed, rate-limited, cached access to the exchange market-data API.

The client never raises to callers: ticker failures fall back to the last
good snapshot mapping (possibly empty) and candle failures return an empty
list. Staleness is preferred over unavailability.
"""
from __future__ import annotations

import asyncio
import hashlib
import hmac
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

import aiohttp

from newsdesk.config import MarketApiConfig
from newsdesk.core.types import FetchError, ValidationError
from newsdesk.market_client.normalizer import parse_candles, parse_tickers
from newsdesk.models.market import Candle, MarketSnapshot

logger = logging.getLogger(__name__)

SERVICE = "market_api"


@dataclass
class MarketClientStats:
    """Statistics for the market client."""

    requests_made: int = 0
    requests_failed: int = 0
    cache_hits: int = 0


class MarketClient:
    """
    Exchange API client shared by the news pipeline and the screener.

    Ticker snapshots are cached for ``ticker_ttl_seconds``; outbound ticker
    requests are spaced at least ``min_request_interval_seconds`` apart.
    The clock and sleep functions are injectable for tests.
    """

    def __init__(
        self,
        config: MarketApiConfig,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        wall_clock: Callable[[], float] = time.time,
    ) -> None:
        self._config = config
        self._clock = clock
        self._sleep = sleep
        self._wall_clock = wall_clock
        self._session: Optional[aiohttp.ClientSession] = None

        # Ticker cache and limiter state
        self._tickers: dict[str, MarketSnapshot] = {}
        self._fetched_at: Optional[float] = None
        self._last_request_at: Optional[float] = None
        self._attempts_completed = 0
        self._lock = asyncio.Lock()

        self._stats = MarketClientStats()

    async def __aenter__(self) -> MarketClient:
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        if self._session is not None:
            await self._session.close()
            self._session = None

    @property
    def stats(self) -> MarketClientStats:
        return self._stats

    # ── Signing ──────────────────────────────────────────────────────────────

    def sign(self, timestamp: str, method: str, path: str) -> str:
        """HMAC-SHA256 hex digest of ``{timestamp}{method}{path}``."""
        message = f"{timestamp}{method.upper()}{path}"
        return hmac.new(
            self._config.api_secret.encode("utf-8"),
            message.encode("utf-8"),
            hashlib.sha256,
        ).hexdigest()

    def _headers(self, method: str, path: str) -> dict[str, str]:
        timestamp = str(int(self._wall_clock() * 1000))
        return {
            "X-API-Key": self._config.api_key,
            "X-Timestamp": timestamp,
            "X-Signature": self.sign(timestamp, method, path),
        }

    # ── Transport ────────────────────────────────────────────────────────────

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._config.request_timeout_seconds),
            )
        return self._session

    async def _request(self, path: str) -> Any:
        """
        Signed GET of ``path`` (relative to the base URL, query included).

        Raises:
            FetchError: On network failure or non-2xx status
            ValidationError: If the body is not JSON
        """
        url = f"{self._config.base_url}{path}"
        headers = self._headers("GET", path)
        session = self._get_session()

        try:
            async with session.get(url, headers=headers) as resp:
                if not 200 <= resp.status < 300:
                    raise FetchError(
                        f"Market API returned status {resp.status}",
                        service=SERVICE,
                        status=resp.status,
                        context={"path": path},
                    )
                try:
                    return await resp.json(content_type=None)
                except ValueError as e:
                    raise ValidationError(
                        "Market API response is not JSON",
                        field="body",
                        context={"path": path},
                    ) from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise FetchError(
                f"Market API request failed: {e!r}",
                service=SERVICE,
                context={"path": path},
            ) from e

    # ── Tickers ──────────────────────────────────────────────────────────────

    def _cache_fresh(self) -> bool:
        if self._fetched_at is None:
            return False
        return self._clock() - self._fetched_at < self._config.ticker_ttl_seconds

    async def _wait_for_rate_limit(self) -> None:
        if self._last_request_at is None:
            return
        remaining = self._config.min_request_interval_seconds - (
            self._clock() - self._last_request_at
        )
        if remaining > 0:
            logger.debug(f"Rate limit: waiting {remaining:.1f}s before ticker request")
            await self._sleep(remaining)

    async def get_tickers(self) -> dict[str, MarketSnapshot]:
        """
        Return ``{asset: MarketSnapshot}`` for the allow-listed pairs.

        Inside the TTL the cached mapping is returned as-is. Refreshes are
        serialized so concurrent callers share one outbound request: a caller
        that waited on the lock while another attempt finished takes that
        attempt's outcome (fresh, stale or empty) instead of fetching again.
        """
        if self._cache_fresh():
            self._stats.cache_hits += 1
            return self._tickers

        observed = self._attempts_completed
        async with self._lock:
            if self._cache_fresh() or self._attempts_completed != observed:
                self._stats.cache_hits += 1
                return self._tickers

            await self._wait_for_rate_limit()
            self._last_request_at = self._clock()
            self._stats.requests_made += 1

            try:
                payload = await self._request("/market/tickers")
                tickers = parse_tickers(payload)
            except Exception as e:
                self._stats.requests_failed += 1
                logger.warning(
                    f"Ticker fetch failed, serving {len(self._tickers)} cached snapshot(s): {e}",
                    extra={"error": str(e), "cached": len(self._tickers)},
                )
                return self._tickers
            finally:
                self._attempts_completed += 1

            self._tickers = tickers
            self._fetched_at = self._clock()
            logger.debug(
                f"Fetched {len(tickers)} ticker snapshot(s)",
                extra={"assets": sorted(tickers)},
            )
            return self._tickers

    # ── Candles ──────────────────────────────────────────────────────────────

    async def get_candles(
        self,
        symbol: str,
        interval: str = "3M",
        limit: int = 10,
    ) -> list[Candle]:
        """Return up to ``limit`` candles for ``symbol``, most-recent first."""
        path = f"/market/klines/{symbol}/{interval}?limit={limit}"
        self._stats.requests_made += 1

        try:
            payload = await self._request(path)
            candles = parse_candles(payload)
        except Exception as e:
            self._stats.requests_failed += 1
            logger.warning(
                f"Candle fetch failed for {symbol}: {e}",
                extra={"symbol": symbol, "interval": interval, "error": str(e)},
            )
            return []

        return candles[:limit]
