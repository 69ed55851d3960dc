"""
Feed Adapter

Fetches RSS / Atom syndication feeds with aiohttp and parses them with
feedparser into un-enriched Articles.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Optional

import aiohttp
import feedparser

from newsdesk.core.types import FetchError, ValidationError
from newsdesk.ingestion.base import build_article, clean_description
from newsdesk.models.news import Article, SourceDescriptor

logger = logging.getLogger(__name__)

USER_AGENT = "Mozilla/5.0 (compatible; newsdesk/1.0; +https://github.com/)"
ACCEPT = "application/rss+xml, application/atom+xml, application/xml;q=0.9, */*;q=0.8"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def entry_published_at(entry: Any) -> datetime:
    """
    Publication time of a feedparser entry (falls back to the update time).

    Raises:
        ValidationError: If the entry carries no parseable time
    """
    parsed = entry.get("published_parsed") or entry.get("updated_parsed")
    if not parsed:
        raise ValidationError("Entry has no publication time", field="published")
    return datetime(*parsed[:6], tzinfo=timezone.utc)


class FeedAdapter:
    """Syndication-feed ingestion strategy."""

    def __init__(
        self,
        *,
        timeout_seconds: float = 15.0,
        retention_hours: int = 24,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._timeout_seconds = timeout_seconds
        self._retention_hours = retention_hours
        self._clock = clock

    async def _download(self, url: str) -> str:
        """
        GET the feed document.

        Raises:
            FetchError: On network failure or non-200 status
        """
        headers = {"User-Agent": USER_AGENT, "Accept": ACCEPT}
        timeout = aiohttp.ClientTimeout(total=self._timeout_seconds)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.get(url, headers=headers, allow_redirects=True) as resp:
                    if resp.status != 200:
                        raise FetchError(
                            f"Feed returned status {resp.status}",
                            service="feed",
                            status=resp.status,
                            context={"url": url},
                        )
                    return await resp.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise FetchError(
                f"Feed request failed: {e!r}",
                service="feed",
                context={"url": url},
            ) from e

    def parse(
        self,
        source: SourceDescriptor,
        document: str,
        now: Optional[datetime] = None,
    ) -> list[Article]:
        """Parse a feed document, keeping relevant in-window entries."""
        now = now or self._clock()
        parsed = feedparser.parse(document)
        entries = getattr(parsed, "entries", []) or []

        articles: list[Article] = []
        for entry in entries:
            try:
                article = build_article(
                    source,
                    title=entry.get("title", "") or "",
                    description=clean_description(
                        entry.get("summary") or entry.get("description")
                    ),
                    url=(entry.get("link") or "").strip(),
                    published_at=entry_published_at(entry),
                    now=now,
                    retention_hours=self._retention_hours,
                )
            except (ValidationError, ValueError, TypeError) as e:
                logger.debug(
                    f"Skipping feed entry from {source.name}: {e}",
                    extra={"source": source.name, "error": str(e)},
                )
                continue

            if article is not None:
                articles.append(article)

        return articles

    async def fetch(self, source: SourceDescriptor) -> list[Article]:
        try:
            document = await self._download(source.url)
            articles = self.parse(source, document)
        except Exception as e:
            logger.warning(
                f"Failed to crawl feed {source.name}: {e}",
                extra={"source": source.name, "url": source.url, "error": str(e)},
            )
            return []

        logger.info(
            f"Crawled {len(articles)} relevant article(s) from {source.name}",
            extra={"source": source.name, "articles": len(articles)},
        )
        return articles
