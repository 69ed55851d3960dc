"""
Market Data Models

Ticker snapshots, candlesticks and screening results.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class MarketSnapshot:
    """Latest ticker for one tracked base asset (e.g. BTC)."""

    asset: str
    symbol: str
    price: float
    change_percent: float
    volume: float
    high: Optional[float] = None
    low: Optional[float] = None

    def __post_init__(self) -> None:
        if not self.asset:
            raise ValueError("asset must be non-empty string")
        if self.price < 0:
            raise ValueError(f"price must be non-negative, got {self.price}")


@dataclass(frozen=True)
class Candle:
    """One OHLCV sample at a fixed interval."""

    time: datetime
    open: float
    high: float
    low: float
    close: float
    volume: float

    def __post_init__(self) -> None:
        if self.time.tzinfo is None:
            raise ValueError("time must be timezone-aware")
        if self.high < self.low:
            raise ValueError(f"high ({self.high}) must be >= low ({self.low})")
        if self.volume < 0:
            raise ValueError(f"volume must be non-negative, got {self.volume}")


@dataclass(frozen=True)
class ScreeningResult:
    """
    Outcome of screening one symbol.

    Distances are signed percentages. ``price_position`` is -1 when the price
    sits within range of the recent low, +1 otherwise.
    """

    symbol: str
    last_price: float
    high_price: float
    low_price: float
    distance_from_high: float
    distance_from_low: float
    volume_increase: float
    price_position: int
    computed_at: datetime

    def __post_init__(self) -> None:
        if self.price_position not in (-1, 1):
            raise ValueError(
                f"price_position must be -1 or 1, got {self.price_position}"
            )
