"""
Newsdesk Data Models

Frozen dataclasses with validation.
"""
from newsdesk.models.market import Candle, MarketSnapshot, ScreeningResult
from newsdesk.models.news import (
    Article,
    Category,
    ImpactLevel,
    MarketData,
    MarketImpact,
    Sentiment,
    SourceDescriptor,
    SourceKind,
    TrustTier,
)

__all__ = [
    "Article",
    "Candle",
    "Category",
    "ImpactLevel",
    "MarketData",
    "MarketImpact",
    "MarketSnapshot",
    "ScreeningResult",
    "Sentiment",
    "SourceDescriptor",
    "SourceKind",
    "TrustTier",
]
