"""
Anomaly Screener

Price/volume screening over candlestick data.
"""
from newsdesk.screener.screener import (
    DISTANCE_THRESHOLD,
    AnomalyScreener,
    evaluate,
    volume_increase,
)

__all__ = [
    "DISTANCE_THRESHOLD",
    "AnomalyScreener",
    "evaluate",
    "volume_increase",
]
