"""
Market Data Normalizer

Transforms raw exchange API responses into MarketSnapshot and Candle models.
"""
from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import Any

from newsdesk.core.types import ValidationError
from newsdesk.models.market import Candle, MarketSnapshot

logger = logging.getLogger(__name__)

QUOTE_ASSET = "usdt"

# Normalized upstream symbol -> tracked base asset
ALLOWED_SYMBOLS: dict[str, str] = {
    "btcusdt": "BTC",
    "ethusdt": "ETH",
    "bnbusdt": "BNB",
    "solusdt": "SOL",
    "dotusdt": "DOT",
}

_SEPARATORS = re.compile(r"[_\-/\s]")


def normalize_symbol(symbol: str) -> str:
    """Case-fold and strip separators: ``"BTC_USDT"`` -> ``"btcusdt"``."""
    return _SEPARATORS.sub("", symbol).lower()


def base_asset(symbol: str) -> str:
    """Strip the quote suffix from a normalized pair: ``"btcusdt"`` -> ``"BTC"``."""
    normalized = normalize_symbol(symbol)
    if normalized.endswith(QUOTE_ASSET):
        normalized = normalized[: -len(QUOTE_ASSET)]
    return normalized.upper()


def _to_float(raw: dict[str, Any], *keys: str) -> float:
    """Return the first present key of ``raw`` as a float."""
    for key in keys:
        value = raw.get(key)
        if value is None or value == "":
            continue
        try:
            return float(value)
        except (TypeError, ValueError) as e:
            raise ValidationError(
                f"Non-numeric value for {key}",
                field=key,
                value=value,
            ) from e
    raise ValidationError(f"Missing numeric field: {'/'.join(keys)}", field=keys[0])


def _optional_float(raw: dict[str, Any], key: str) -> float | None:
    try:
        return _to_float(raw, key)
    except ValidationError:
        return None


def parse_time(value: Any) -> datetime:
    """
    Parse an exchange timestamp to a UTC datetime.

    Accepts epoch milliseconds (int or numeric string), epoch seconds, or an
    ISO 8601 string.

    Raises:
        ValidationError: If the value cannot be parsed
    """
    if value is None or value == "":
        raise ValidationError("Timestamp is empty", field="time")

    if isinstance(value, (int, float)) or (isinstance(value, str) and value.isdigit()):
        epoch = float(value)
        # Millisecond timestamps are 13 digits for current dates
        if epoch > 1e11:
            epoch /= 1000.0
        return datetime.fromtimestamp(epoch, tz=timezone.utc)

    if isinstance(value, str):
        ts = value
        if ts.endswith("Z"):
            ts = ts[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(ts)
        except ValueError as e:
            raise ValidationError(
                f"Invalid timestamp format: {value}",
                field="time",
                value=value,
            ) from e
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt

    raise ValidationError("Unsupported timestamp type", field="time", value=value)


def _unwrap(payload: Any, key: str) -> list[Any]:
    """Return the item list from ``{"data": [...]}`` or ``{"data": {key: [...]}}``."""
    if not isinstance(payload, dict):
        raise ValidationError(
            f"Expected dict, got {type(payload).__name__}",
            field="response",
            value=payload,
        )

    data = payload.get("data")
    if isinstance(data, dict):
        data = data.get(key)
    if not isinstance(data, list):
        raise ValidationError(
            f"Missing list at data/{key}",
            field="data",
            value=payload,
        )
    return data


def normalize_ticker(raw: dict[str, Any]) -> MarketSnapshot:
    """
    Transform a single upstream ticker into a MarketSnapshot.

    Raises:
        ValidationError: If required fields are missing or non-numeric
    """
    if not isinstance(raw, dict):
        raise ValidationError("Ticker is not an object", field="ticker", value=raw)

    symbol = raw.get("symbol")
    if not symbol or not isinstance(symbol, str):
        raise ValidationError("Missing required field: symbol", field="symbol")

    price = _to_float(raw, "last", "close", "price")
    if "change" in raw or "priceChangePercent" in raw:
        change = _to_float(raw, "change", "priceChangePercent")
    else:
        open_price = _to_float(raw, "open")
        change = (price - open_price) / open_price * 100 if open_price else 0.0

    return MarketSnapshot(
        asset=base_asset(symbol),
        symbol=symbol,
        price=price,
        change_percent=change,
        volume=_to_float(raw, "volume"),
        high=_optional_float(raw, "high"),
        low=_optional_float(raw, "low"),
    )


def parse_tickers(payload: Any) -> dict[str, MarketSnapshot]:
    """
    Transform a ticker response into ``{asset: MarketSnapshot}``.

    Only allow-listed pairs are kept; malformed tickers are skipped.

    Raises:
        ValidationError: If the response envelope itself is malformed
    """
    snapshots: dict[str, MarketSnapshot] = {}

    for raw in _unwrap(payload, "tickers"):
        symbol = raw.get("symbol", "") if isinstance(raw, dict) else ""
        if normalize_symbol(str(symbol)) not in ALLOWED_SYMBOLS:
            continue

        try:
            snapshot = normalize_ticker(raw)
        except (ValidationError, ValueError) as e:
            logger.warning(
                "Skipping malformed ticker",
                extra={"symbol": symbol, "error": str(e)},
            )
            continue

        snapshots[snapshot.asset] = snapshot

    return snapshots


def normalize_candle(raw: Any) -> Candle:
    """
    Transform one kline into a Candle.

    Accepts an object with time/open/high/low/close/volume keys or a
    ``[time, open, high, low, close, volume]`` array.
    """
    if isinstance(raw, (list, tuple)):
        if len(raw) < 6:
            raise ValidationError("Kline array too short", field="kline", value=raw)
        raw = dict(zip(("time", "open", "high", "low", "close", "volume"), raw))

    if not isinstance(raw, dict):
        raise ValidationError("Kline is not an object", field="kline", value=raw)

    return Candle(
        time=parse_time(raw.get("time")),
        open=_to_float(raw, "open"),
        high=_to_float(raw, "high"),
        low=_to_float(raw, "low"),
        close=_to_float(raw, "close"),
        volume=_to_float(raw, "volume"),
    )


def parse_candles(payload: Any) -> list[Candle]:
    """
    Transform a klines response into candles ordered most-recent first.

    Malformed klines are skipped.

    Raises:
        ValidationError: If the response envelope itself is malformed
    """
    candles: list[Candle] = []

    for raw in _unwrap(payload, "klines"):
        try:
            candles.append(normalize_candle(raw))
        except (ValidationError, ValueError) as e:
            logger.warning("Skipping malformed kline", extra={"error": str(e)})

    candles.sort(key=lambda c: c.time, reverse=True)
    return candles
