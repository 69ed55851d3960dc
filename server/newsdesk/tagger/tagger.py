"""
Article Tagger Engine

Enriches un-enriched Articles with market data, reliability score,
sentiment/impact judgment and category. Every step is a pure function of
the article, the current market snapshot mapping and the current time.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Mapping, Optional

from ..models.market import MarketSnapshot
from ..models.news import (
    Article,
    ImpactLevel,
    MarketData,
    MarketImpact,
    Sentiment,
    TrustTier,
)
from .keywords import (
    ASSET_KEYWORDS,
    HIGH_IMPACT_KEYWORDS,
    MAJOR_ASSETS,
    NEGATIVE_KEYWORDS,
    POSITIVE_KEYWORDS,
    categorize,
    contains_any,
    count_matches,
    mentioned_assets,
)

logger = logging.getLogger(__name__)

TIER_POINTS: dict[TrustTier, int] = {
    TrustTier.PRIMARY: 40,
    TrustTier.SECONDARY: 30,
    TrustTier.TERTIARY: 20,
}
DETAILED_DESCRIPTION_LENGTH = 100
DETAILED_DESCRIPTION_POINTS = 20
MARKET_DATA_POINTS = 20
FRESH_HOUR_POINTS = 20
FRESH_DAY_POINTS = 10


class TaggingError(Exception):
    """Raised when tagging fails critically."""

    pass


@dataclass
class TaggerStats:
    """Statistics for the tagger."""

    items_tagged: int = 0
    items_failed: int = 0
    market_data_attached: int = 0


class ArticleTagger:
    """
    Article tagging orchestrator.

    Transforms an un-enriched Article into an enriched one by:
    1. Attaching the first mentioned asset's market snapshot
    2. Scoring reliability (trust tier, detail, market data, recency)
    3. Classifying sentiment (bilingual keyword counts)
    4. Classifying impact (related assets + high-impact terms)
    5. Tagging the category (ordered keyword table)
    """

    def __init__(self) -> None:
        self._stats = TaggerStats()

    @property
    def stats(self) -> TaggerStats:
        """Get tagger statistics."""
        return self._stats

    def tag(
        self,
        article: Article,
        snapshots: Mapping[str, MarketSnapshot],
        now: Optional[datetime] = None,
    ) -> Article:
        """Run the full tagging pipeline on one article."""
        now = now or datetime.now(timezone.utc)
        try:
            market_data = self.attach_market_data(article, snapshots)
            text = article.text

            enriched = replace(
                article,
                market_data=market_data,
                impact=self.classify_impact(text),
                category=categorize(text),
            )
            enriched = replace(enriched, reliability=self.score_reliability(enriched, now))

            self._stats.items_tagged += 1
            if market_data is not None:
                self._stats.market_data_attached += 1
            return enriched

        except Exception as e:
            self._stats.items_failed += 1
            logger.error(
                f"Tagging failed for article {article.id}: {e}",
                extra={"article_id": article.id, "error": str(e)},
            )
            raise TaggingError(f"Failed to tag article {article.id}") from e

    @staticmethod
    def attach_market_data(
        article: Article,
        snapshots: Mapping[str, MarketSnapshot],
    ) -> Optional[MarketData]:
        """
        Market data for the first asset (in table order) that the article
        mentions and that has a snapshot. At most one asset is attached.
        """
        text = article.text
        for asset, keywords in ASSET_KEYWORDS.items():
            snapshot = snapshots.get(asset)
            if snapshot is None:
                continue
            if contains_any(text, keywords):
                return MarketData(
                    asset=asset,
                    price=f"{snapshot.price:.2f}",
                    change_24h=f"{snapshot.change_percent:.2f}%",
                    volume_24h=str(snapshot.volume),
                )
        return None

    @staticmethod
    def score_reliability(article: Article, now: datetime) -> int:
        """Additive 0-100 reliability score."""
        score = TIER_POINTS.get(article.trust_tier, 0)

        if len(article.description) > DETAILED_DESCRIPTION_LENGTH:
            score += DETAILED_DESCRIPTION_POINTS

        if article.market_data is not None:
            score += MARKET_DATA_POINTS

        age = now - article.published_at
        if age <= timedelta(hours=1):
            score += FRESH_HOUR_POINTS
        elif age <= timedelta(hours=24):
            score += FRESH_DAY_POINTS

        return max(0, min(100, score))

    @staticmethod
    def classify_sentiment(text: str) -> Sentiment:
        """Majority of positive vs negative keyword occurrences; tie is neutral."""
        positive = count_matches(text, POSITIVE_KEYWORDS)
        negative = count_matches(text, NEGATIVE_KEYWORDS)
        if positive > negative:
            return Sentiment.POSITIVE
        if negative > positive:
            return Sentiment.NEGATIVE
        return Sentiment.NEUTRAL

    @classmethod
    def classify_impact(cls, text: str) -> MarketImpact:
        """Related assets, sentiment and impact level for ``text``."""
        related = mentioned_assets(text)
        high_impact = contains_any(text, HIGH_IMPACT_KEYWORDS)

        if MAJOR_ASSETS.intersection(related):
            level = ImpactLevel.HIGH if high_impact else ImpactLevel.MEDIUM
        elif high_impact:
            level = ImpactLevel.MEDIUM
        else:
            level = ImpactLevel.LOW

        return MarketImpact(
            sentiment=cls.classify_sentiment(text),
            related_assets=related,
            level=level,
        )
