"""
Ingestion Base

Adapter protocol and helpers shared by the feed and page adapters.
"""
from __future__ import annotations

import hashlib
import html
import re
from datetime import datetime, timedelta, timezone
from typing import Optional, Protocol, runtime_checkable
from urllib.parse import urlsplit, urlunsplit

from bs4 import BeautifulSoup

from newsdesk.models.news import Article, SourceDescriptor
from newsdesk.tagger.keywords import categorize, is_relevant

# Items dated this far in the future are treated as clock skew, not spam
MAX_FUTURE_SKEW = timedelta(minutes=10)

_WHITESPACE = re.compile(r"\s+")


@runtime_checkable
class IngestionAdapter(Protocol):
    """Fetches un-enriched, relevant, in-window articles from one source."""

    async def fetch(self, source: SourceDescriptor) -> list[Article]:
        """
        Fetch articles from ``source``.

        Must never raise: failures yield an empty list and are logged.
        """
        ...


def canonical_url(url: str) -> str:
    """Lower-case scheme/host, drop the fragment and trailing slash."""
    parts = urlsplit(url.strip())
    path = parts.path.rstrip("/") or "/"
    return urlunsplit(
        (parts.scheme.lower(), parts.netloc.lower(), path, parts.query, "")
    )


def make_article_id(url: str) -> str:
    """Stable identity for an article: SHA-1 of its canonical URL."""
    return hashlib.sha1(canonical_url(url).encode("utf-8")).hexdigest()


def source_host(url: str) -> str:
    return urlsplit(url).hostname or ""


def clean_description(text: Optional[str]) -> str:
    """Decode entities, strip markup and normalize whitespace."""
    if not text:
        return ""
    soup = BeautifulSoup(html.unescape(text), "html.parser")
    return _WHITESPACE.sub(" ", soup.get_text(separator=" ")).strip()


def within_window(
    published_at: datetime,
    now: datetime,
    retention_hours: int,
) -> bool:
    """True if ``published_at`` is inside the retention window ending at ``now``."""
    if published_at > now + MAX_FUTURE_SKEW:
        return False
    return now - published_at <= timedelta(hours=retention_hours)


def build_article(
    source: SourceDescriptor,
    *,
    title: str,
    description: str,
    url: str,
    published_at: datetime,
    now: datetime,
    retention_hours: int,
) -> Optional[Article]:
    """
    Build an un-enriched Article, or None if it fails the window or
    relevance filter.
    """
    title = _WHITESPACE.sub(" ", title).strip()
    if not title or not url:
        return None

    if published_at.tzinfo is None:
        published_at = published_at.replace(tzinfo=timezone.utc)
    if not within_window(published_at, now, retention_hours):
        return None

    text = f"{title} {description}"
    if not is_relevant(text):
        return None

    return Article(
        id=make_article_id(url),
        title=title,
        description=description,
        url=url,
        source=source_host(source.url),
        published_at=published_at,
        language=source.language,
        trust_tier=source.trust_tier,
        category=categorize(text),
    )
