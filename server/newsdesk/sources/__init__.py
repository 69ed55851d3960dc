"""
Source Registry

Static table of ingestion endpoints, read-only after import.
"""
from __future__ import annotations

from typing import Optional

from newsdesk.models.news import SourceDescriptor, SourceKind, TrustTier

SOURCES: tuple[SourceDescriptor, ...] = (
    SourceDescriptor(
        name="coindesk",
        url="https://www.coindesk.com/arc/outboundfeeds/rss/",
        kind=SourceKind.FEED,
        language="en",
        trust_tier=TrustTier.PRIMARY,
    ),
    SourceDescriptor(
        name="cointelegraph",
        url="https://cointelegraph.com/rss",
        kind=SourceKind.FEED,
        language="en",
        trust_tier=TrustTier.PRIMARY,
    ),
    SourceDescriptor(
        name="decrypt",
        url="https://decrypt.co/feed",
        kind=SourceKind.FEED,
        language="en",
        trust_tier=TrustTier.SECONDARY,
    ),
    SourceDescriptor(
        name="blocktempo",
        url="https://www.blocktempo.com/feed/",
        kind=SourceKind.FEED,
        language="zh",
        trust_tier=TrustTier.SECONDARY,
    ),
    SourceDescriptor(
        name="abmedia",
        url="https://abmedia.io/feed",
        kind=SourceKind.FEED,
        language="zh",
        trust_tier=TrustTier.TERTIARY,
    ),
    SourceDescriptor(
        name="binance",
        url="https://www.binance.com/en/feed",
        kind=SourceKind.PAGE,
        language="en",
        trust_tier=TrustTier.TERTIARY,
    ),
)


def get_sources(kind: Optional[SourceKind] = None) -> tuple[SourceDescriptor, ...]:
    """Return all sources, optionally restricted to one transport kind."""
    if kind is None:
        return SOURCES
    return tuple(s for s in SOURCES if s.kind == kind)


def get_source(name: str) -> Optional[SourceDescriptor]:
    """Look up a source by name."""
    for source in SOURCES:
        if source.name == name:
            return source
    return None


__all__ = ["SOURCES", "get_source", "get_sources"]
