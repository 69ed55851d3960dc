"""
Anomaly Screener

One screening pass evaluates each symbol's recent candles for proximity to
the local high/low and for volume spikes.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional, Sequence

from newsdesk.config import ScreenerConfig
from newsdesk.models.market import Candle, ScreeningResult

if TYPE_CHECKING:
    from newsdesk.market_client import MarketClient

logger = logging.getLogger(__name__)

# A symbol is reported when either distance is within this many percent.
DISTANCE_THRESHOLD = 100.0


def volume_increase(candles: Sequence[Candle]) -> float:
    """
    Current volume over the mean volume of the earlier candles.

    Returns 0.0 with fewer than two candles or a zero baseline.
    """
    if len(candles) < 2:
        return 0.0
    previous = [c.volume for c in candles[1:]]
    average = sum(previous) / len(previous)
    if average == 0:
        return 0.0
    return candles[0].volume / average


def evaluate(
    symbol: str,
    candles: Sequence[Candle],
    now: Optional[datetime] = None,
) -> Optional[ScreeningResult]:
    """
    Apply the screening rules to candles ordered most-recent first.

    Returns None when there are no candles, an extreme is zero, or the
    price is outside the reporting threshold of both extremes. Volume never
    gates inclusion.
    """
    if not candles:
        return None

    current = candles[0].close
    high = max(c.high for c in candles)
    low = min(c.low for c in candles)

    if high == 0 or low == 0:
        logger.info(
            f"Skipping {symbol}: zero {'high' if high == 0 else 'low'} price",
            extra={"symbol": symbol, "high": high, "low": low},
        )
        return None

    distance_from_high = (high - current) / high * 100
    distance_from_low = (current - low) / low * 100

    if distance_from_high > DISTANCE_THRESHOLD and distance_from_low > DISTANCE_THRESHOLD:
        return None

    return ScreeningResult(
        symbol=symbol,
        last_price=current,
        high_price=high,
        low_price=low,
        distance_from_high=distance_from_high,
        distance_from_low=distance_from_low,
        volume_increase=volume_increase(candles),
        price_position=-1 if distance_from_low <= DISTANCE_THRESHOLD else 1,
        computed_at=now or datetime.now(timezone.utc),
    )


class AnomalyScreener:
    """Runs screening passes over a fixed symbol universe."""

    def __init__(
        self,
        market_client: MarketClient,
        config: Optional[ScreenerConfig] = None,
    ) -> None:
        self._market_client = market_client
        self._config = config or ScreenerConfig()
        self._passes = 0

    @property
    def symbols(self) -> tuple[str, ...]:
        return self._config.symbols

    @property
    def passes(self) -> int:
        return self._passes

    async def screen_symbol(self, symbol: str) -> Optional[ScreeningResult]:
        candles = await self._market_client.get_candles(
            symbol,
            self._config.interval,
            self._config.limit,
        )
        if not candles:
            logger.info(f"No candles for {symbol}, skipping", extra={"symbol": symbol})
            return None

        result = evaluate(symbol, candles)
        if result is not None and result.volume_increase >= self._config.volume_spike_threshold:
            logger.info(
                f"Volume spike on {symbol}: {result.volume_increase:.2f}x",
                extra={"symbol": symbol, "volume_increase": result.volume_increase},
            )
        return result

    async def screen(self, symbols: Optional[Sequence[str]] = None) -> list[ScreeningResult]:
        """
        One screening pass. Symbols that fail or fall outside the reporting
        threshold are omitted; the pass itself never raises.
        """
        results: list[ScreeningResult] = []

        for symbol in symbols if symbols is not None else self._config.symbols:
            try:
                result = await self.screen_symbol(symbol)
            except Exception as e:
                logger.error(
                    f"Screening failed for {symbol}: {e}",
                    extra={"symbol": symbol, "error": str(e)},
                )
                continue
            if result is not None:
                results.append(result)

        self._passes += 1
        logger.debug(
            f"Screening pass complete: {len(results)} result(s)",
            extra={"results": len(results)},
        )
        return results
