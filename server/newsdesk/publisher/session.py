"""
Subscriber Session

Per-subscriber publication loop. Each session owns two repeating tasks:

  news:      crawls every source concurrently; as each source completes,
             its articles are merged into the session's keyed cache and
             the ranked union is pushed as a ``news`` event.
  screening: runs one screening pass and pushes the full replacement
             result list as a ``screening_results`` event.

Both run immediately on start(). stop() cancels them; nothing is pushed
after stop() returns.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any, Callable, Iterable, Protocol, runtime_checkable

from newsdesk.core.scheduler import RepeatingTask
from newsdesk.models.market import ScreeningResult
from newsdesk.models.news import Article, SourceDescriptor
from newsdesk.pipeline import dedupe, rank
from newsdesk.publisher.serializer import NEWS_EVENT, SCREENING_EVENT, articles_payload, screening_payload

if TYPE_CHECKING:
    from newsdesk.pipeline import NewsPipeline
    from newsdesk.screener import AnomalyScreener

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@runtime_checkable
class EventSink(Protocol):
    """Opaque push channel to one or more subscribers."""

    async def publish(self, event: str, payload: Any) -> None:
        """Deliver ``payload`` under ``event``. Fire-and-forget."""
        ...


@dataclass
class SessionStats:
    """Statistics for one subscriber session."""

    news_pushes: int = 0
    screening_pushes: int = 0
    push_failures: int = 0


class SubscriberSession:
    """
    Publication loop for a single subscriber.

    The article cache is keyed by article id: a refreshed crawl replaces
    entries with the same id, other entries are kept until they leave the
    retention window. Repeated pushes are therefore unions, not
    replacements.
    """

    def __init__(
        self,
        sink: EventSink,
        pipeline: NewsPipeline,
        screener: AnomalyScreener,
        *,
        name: str = "subscriber",
        news_refresh_seconds: float = 60.0,
        screening_refresh_seconds: float = 180.0,
        retention_hours: int = 24,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._sink = sink
        self._pipeline = pipeline
        self._screener = screener
        self._name = name
        self._retention = timedelta(hours=retention_hours)
        self._clock = clock

        self._articles: dict[str, Article] = {}
        self._screening: list[ScreeningResult] = []
        self._closed = False
        self._stats = SessionStats()

        self._news_task = RepeatingTask(
            f"{name}:news", news_refresh_seconds, self.refresh_news
        )
        self._screening_task = RepeatingTask(
            f"{name}:screening", screening_refresh_seconds, self.refresh_screening
        )

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    def start(self) -> None:
        """Start both repeating tasks (each fires immediately)."""
        self._news_task.start()
        self._screening_task.start()
        logger.info(f"Session {self._name} started", extra={"session": self._name})

    async def stop(self) -> None:
        """Cancel both tasks; no further pushes happen after this returns."""
        self._closed = True
        await asyncio.gather(self._news_task.cancel(), self._screening_task.cancel())
        logger.info(
            f"Session {self._name} stopped",
            extra={
                "session": self._name,
                "news_pushes": self._stats.news_pushes,
                "screening_pushes": self._stats.screening_pushes,
            },
        )

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def stats(self) -> SessionStats:
        return self._stats

    @property
    def articles(self) -> list[Article]:
        """Current ranked, deduplicated view of the article cache."""
        return rank(dedupe(self._articles.values()))

    @property
    def screening_results(self) -> list[ScreeningResult]:
        return list(self._screening)

    # ── Cache ─────────────────────────────────────────────────────────────────

    def merge(self, articles: Iterable[Article]) -> list[Article]:
        """Union ``articles`` into the cache, evict stale entries, return the view."""
        for article in articles:
            self._articles[article.id] = article

        cutoff = self._clock() - self._retention
        stale = [k for k, a in self._articles.items() if a.published_at < cutoff]
        for key in stale:
            del self._articles[key]

        return self.articles

    # ── Work units ────────────────────────────────────────────────────────────

    async def _crawl_and_push(self, source: SourceDescriptor) -> None:
        articles = await self._pipeline.crawl_source(source)
        if self._closed:
            return
        view = self.merge(articles)
        if await self._push(NEWS_EVENT, articles_payload(view)):
            self._stats.news_pushes += 1

    async def refresh_news(self) -> None:
        """Crawl all sources, pushing incrementally as each completes."""
        results = await asyncio.gather(
            *(self._crawl_and_push(source) for source in self._pipeline.sources),
            return_exceptions=True,
        )
        for source, result in zip(self._pipeline.sources, results):
            if isinstance(result, Exception):
                logger.error(
                    f"News refresh failed for {source.name}: {result}",
                    extra={"session": self._name, "source": source.name},
                )

    async def refresh_screening(self) -> None:
        """Run one screening pass and push the full result list."""
        results = await self._screener.screen()
        if self._closed:
            return
        self._screening = results
        if await self._push(SCREENING_EVENT, screening_payload(results)):
            self._stats.screening_pushes += 1

    async def _push(self, event: str, payload: Any) -> bool:
        if self._closed:
            return False
        try:
            await self._sink.publish(event, payload)
            return True
        except Exception as e:
            self._stats.push_failures += 1
            logger.warning(
                f"Push of {event} failed: {e}",
                extra={"session": self._name, "event": event, "error": str(e)},
            )
            return False
