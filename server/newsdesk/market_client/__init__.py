"""
Market Client Module

Signed, cached, rate-limited exchange API client.
"""
from newsdesk.market_client.client import MarketClient, MarketClientStats
from newsdesk.market_client.normalizer import (
    ALLOWED_SYMBOLS,
    normalize_symbol,
    parse_candles,
    parse_tickers,
)

__all__ = [
    "ALLOWED_SYMBOLS",
    "MarketClient",
    "MarketClientStats",
    "normalize_symbol",
    "parse_candles",
    "parse_tickers",
]
