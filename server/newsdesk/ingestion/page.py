"""
Page Adapter

Extracts articles from rendered web pages. Rendering sits behind the
Renderer capability so tests can substitute a stub document; the rendering
context is always released before fetch() returns.
"""
from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncContextManager, AsyncIterator, Callable, Optional, Protocol
from urllib.parse import urljoin

import aiohttp
from bs4 import BeautifulSoup, Tag

from newsdesk.core.types import FetchError
from newsdesk.ingestion.base import build_article, clean_description
from newsdesk.ingestion.feed import USER_AGENT
from newsdesk.models.news import Article, SourceDescriptor

logger = logging.getLogger(__name__)

# Structural selectors for candidate article nodes
ARTICLE_SELECTOR = "article"
HEADLINE_SELECTOR = "h2, h3"
SUMMARY_SELECTOR = "p"
LINK_SELECTOR = "a[href]"
TIME_SELECTOR = "time[datetime]"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Renderer(Protocol):
    """Capability that turns a URL into a DOM-like document."""

    def render(self, url: str) -> AsyncContextManager[BeautifulSoup]:
        """Acquire a rendering context for ``url``; released on exit."""
        ...


class HttpRenderer:
    """
    Renders pages by fetching their HTML in an isolated aiohttp session.

    Each render opens its own session (no shared cookies or connections)
    and closes it when the context exits.
    """

    def __init__(self, timeout_seconds: float = 15.0) -> None:
        self._timeout_seconds = timeout_seconds

    @asynccontextmanager
    async def render(self, url: str) -> AsyncIterator[BeautifulSoup]:
        session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self._timeout_seconds),
            headers={"User-Agent": USER_AGENT},
        )
        try:
            try:
                async with session.get(url, allow_redirects=True) as resp:
                    if resp.status != 200:
                        raise FetchError(
                            f"Page returned status {resp.status}",
                            service="page",
                            status=resp.status,
                            context={"url": url},
                        )
                    markup = await resp.text()
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                raise FetchError(
                    f"Page request failed: {e!r}",
                    service="page",
                    context={"url": url},
                ) from e

            yield BeautifulSoup(markup, "html.parser")
        finally:
            await session.close()


def _parse_datetime_attr(value: str) -> Optional[datetime]:
    ts = value.strip()
    if ts.endswith("Z"):
        ts = ts[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(ts)
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


class PageAdapter:
    """Rendered-page ingestion strategy."""

    def __init__(
        self,
        renderer: Optional[Renderer] = None,
        *,
        retention_hours: int = 24,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._renderer = renderer or HttpRenderer()
        self._retention_hours = retention_hours
        self._clock = clock

    def _node_to_article(
        self,
        source: SourceDescriptor,
        node: Tag,
        now: datetime,
    ) -> Optional[Article]:
        headline = node.select_one(HEADLINE_SELECTOR)
        link = node.select_one(LINK_SELECTOR)
        if headline is None or link is None:
            return None

        summary = node.select_one(SUMMARY_SELECTOR)
        published_at = now
        time_node = node.select_one(TIME_SELECTOR)
        if time_node is not None:
            published_at = _parse_datetime_attr(str(time_node["datetime"])) or now

        return build_article(
            source,
            title=headline.get_text(" ", strip=True),
            description=clean_description(str(summary) if summary else ""),
            url=urljoin(source.url, str(link["href"])),
            published_at=published_at,
            now=now,
            retention_hours=self._retention_hours,
        )

    def extract(
        self,
        source: SourceDescriptor,
        document: BeautifulSoup,
        now: Optional[datetime] = None,
    ) -> list[Article]:
        """Extract relevant in-window articles from a rendered document."""
        now = now or self._clock()
        articles: list[Article] = []

        for node in document.select(ARTICLE_SELECTOR):
            try:
                article = self._node_to_article(source, node, now)
            except (ValueError, KeyError, TypeError) as e:
                logger.debug(
                    f"Skipping page node from {source.name}: {e}",
                    extra={"source": source.name, "error": str(e)},
                )
                continue
            if article is not None:
                articles.append(article)

        return articles

    async def fetch(self, source: SourceDescriptor) -> list[Article]:
        try:
            async with self._renderer.render(source.url) as document:
                articles = self.extract(source, document)
        except Exception as e:
            logger.warning(
                f"Failed to crawl page {source.name}: {e}",
                extra={"source": source.name, "url": source.url, "error": str(e)},
            )
            return []

        logger.info(
            f"Crawled {len(articles)} relevant article(s) from {source.name}",
            extra={"source": source.name, "articles": len(articles)},
        )
        return articles
