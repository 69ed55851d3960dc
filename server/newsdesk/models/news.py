"""
News Data Models

Core data structures for articles at every pipeline stage.
All models use frozen dataclasses with __post_init__ validation; enrichment
produces new instances via dataclasses.replace().
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class SourceKind(str, Enum):
    """Transport used to ingest a source."""

    FEED = "feed"  # RSS / Atom syndication
    PAGE = "page"  # Rendered HTML page


class TrustTier(str, Enum):
    """Coarse source-credibility bucket, used only for reliability scoring."""

    PRIMARY = "primary"
    SECONDARY = "secondary"
    TERTIARY = "tertiary"


class Category(str, Enum):
    """Closed set of keyword-derived article categories."""

    MARKET = "market"
    TECHNICAL = "technical"
    REGULATORY = "regulatory"
    INDUSTRY = "industry"
    OTHER = "other"


class Sentiment(str, Enum):
    """Sentiment classification."""

    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


class ImpactLevel(str, Enum):
    """Expected market impact of an article."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass(frozen=True)
class SourceDescriptor:
    """Static description of one ingestion endpoint."""

    name: str
    url: str
    kind: SourceKind
    language: str
    trust_tier: TrustTier

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("name must be non-empty string")
        if not self.url.startswith(("http://", "https://")):
            raise ValueError(f"url must be http(s), got {self.url!r}")


@dataclass(frozen=True)
class MarketData:
    """Market snapshot attached to an article, formatted for display."""

    asset: str
    price: str
    change_24h: str
    volume_24h: str


@dataclass(frozen=True)
class MarketImpact:
    """Sentiment and impact judgment for an article."""

    sentiment: Sentiment
    related_assets: tuple[str, ...]
    level: ImpactLevel


@dataclass(frozen=True)
class Article:
    """
    Normalized news article.

    Created un-enriched by an ingestion adapter (reliability 0, no market
    data, no impact) and replaced wholesale by the tagger.
    """

    # Identity: stable hash of the canonical URL
    id: str

    # Content
    title: str
    description: str
    url: str

    # Source information
    source: str
    published_at: datetime
    language: str
    trust_tier: TrustTier

    # Tagger results
    category: Category = Category.OTHER
    reliability: int = 0
    market_data: Optional[MarketData] = None
    impact: Optional[MarketImpact] = None

    def __post_init__(self) -> None:
        """Validate fields."""
        if not self.id:
            raise ValueError("id must be non-empty string")
        if not self.title:
            raise ValueError("title must be non-empty string")
        if self.published_at.tzinfo is None:
            raise ValueError("published_at must be timezone-aware")
        if not (0 <= self.reliability <= 100):
            raise ValueError(
                f"reliability must be in range [0, 100], got {self.reliability}"
            )

    @property
    def text(self) -> str:
        """Title and description joined, as used by every keyword rule."""
        if self.description:
            return f"{self.title} {self.description}"
        return self.title
