"""
News Pipeline

Turns raw per-source article batches into a ranked, enriched, deduplicated
list:

    adapters -> relevance/window filter -> dedupe -> tagger -> rank

process() is pure; crawl_source() and crawl_all() add the I/O around it.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Callable, Iterable, Mapping, Optional, Sequence

from newsdesk.ingestion import FeedAdapter, IngestionAdapter, PageAdapter, within_window
from newsdesk.models.market import MarketSnapshot
from newsdesk.models.news import Article, SourceDescriptor, SourceKind
from newsdesk.sources import SOURCES
from newsdesk.tagger import ArticleTagger, TaggingError
from newsdesk.tagger.keywords import is_relevant

if TYPE_CHECKING:
    from newsdesk.market_client import MarketClient

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def dedupe(articles: Iterable[Article]) -> list[Article]:
    """
    Drop articles whose ``(title, published_at)`` pair was already seen.

    First occurrence wins. The key deliberately ignores the URL-derived id,
    so two different URLs carrying the same headline at the same instant
    collapse into one.
    """
    seen: set[tuple[str, datetime]] = set()
    unique: list[Article] = []
    for article in articles:
        key = (article.title, article.published_at)
        if key in seen:
            continue
        seen.add(key)
        unique.append(article)
    return unique


def rank(articles: Iterable[Article]) -> list[Article]:
    """Reliability descending, ties broken by newest first."""
    return sorted(
        articles,
        key=lambda a: (a.reliability, a.published_at),
        reverse=True,
    )


class NewsPipeline:
    """Relevance & enrichment pipeline over the source registry."""

    def __init__(
        self,
        market_client: MarketClient,
        *,
        sources: Sequence[SourceDescriptor] = SOURCES,
        adapters: Optional[Mapping[SourceKind, IngestionAdapter]] = None,
        tagger: Optional[ArticleTagger] = None,
        retention_hours: int = 24,
        request_timeout_seconds: float = 15.0,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._market_client = market_client
        self._sources = tuple(sources)
        self._adapters: Mapping[SourceKind, IngestionAdapter] = adapters or {
            SourceKind.FEED: FeedAdapter(
                timeout_seconds=request_timeout_seconds,
                retention_hours=retention_hours,
            ),
            SourceKind.PAGE: PageAdapter(retention_hours=retention_hours),
        }
        self._tagger = tagger or ArticleTagger()
        self._retention_hours = retention_hours
        self._clock = clock

    @property
    def sources(self) -> tuple[SourceDescriptor, ...]:
        return self._sources

    @property
    def tagger(self) -> ArticleTagger:
        return self._tagger

    def process(
        self,
        articles: Iterable[Article],
        snapshots: Mapping[str, MarketSnapshot],
        now: Optional[datetime] = None,
    ) -> list[Article]:
        """Filter, dedupe, enrich and rank a batch of un-enriched articles."""
        now = now or self._clock()

        relevant = [
            a for a in articles
            if is_relevant(a.text)
            and within_window(a.published_at, now, self._retention_hours)
        ]

        enriched: list[Article] = []
        for article in dedupe(relevant):
            try:
                enriched.append(self._tagger.tag(article, snapshots, now))
            except TaggingError:
                continue

        return rank(enriched)

    async def fetch_source(self, source: SourceDescriptor) -> list[Article]:
        """Raw adapter output for one source; never raises."""
        adapter = self._adapters.get(source.kind)
        if adapter is None:
            logger.warning(
                f"No adapter registered for {source.kind.value} source {source.name}",
                extra={"source": source.name},
            )
            return []

        try:
            return await adapter.fetch(source)
        except Exception as e:
            logger.error(
                f"Adapter raised for source {source.name}: {e}",
                extra={"source": source.name, "error": str(e)},
                exc_info=True,
            )
            return []

    async def crawl_source(self, source: SourceDescriptor) -> list[Article]:
        """Crawl and enrich one source."""
        raw = await self.fetch_source(source)
        snapshots = await self._market_client.get_tickers()
        return self.process(raw, snapshots)

    async def crawl_all(self) -> list[Article]:
        """Crawl every source concurrently and enrich the combined batch."""
        batches = await asyncio.gather(
            *(self.fetch_source(source) for source in self._sources)
        )
        snapshots = await self._market_client.get_tickers()
        articles = self.process(
            (article for batch in batches for article in batch),
            snapshots,
        )

        logger.info(
            f"Crawl complete: {len(articles)} article(s) from {len(self._sources)} source(s)",
            extra={"articles": len(articles), "sources": len(self._sources)},
        )
        return articles
