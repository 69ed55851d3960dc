"""
Tests for newsdesk.ingestion.page

A stub Renderer stands in for the browser; it records whether its
rendering context was released.
"""
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from unittest.mock import patch

from bs4 import BeautifulSoup

from newsdesk.core.types import FetchError
from newsdesk.ingestion import PageAdapter
from newsdesk.models import SourceDescriptor, SourceKind, TrustTier

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

SOURCE = SourceDescriptor(
    name="binance",
    url="https://www.binance.com/en/feed",
    kind=SourceKind.PAGE,
    language="en",
    trust_tier=TrustTier.TERTIARY,
)

PAGE = """
<html><body>
  <article>
    <h2>BNB hits new high</h2>
    <p>Binance coin extends its rally.</p>
    <a href="/en/feed/post/1">Read</a>
    <time datetime="2024-05-01T10:00:00Z">2h ago</time>
  </article>
  <article>
    <h3>Solana validators upgrade</h3>
    <a href="https://www.binance.com/en/feed/post/2">Read</a>
  </article>
  <article>
    <h2>Celebrity gossip</h2>
    <a href="/en/feed/post/3">Read</a>
  </article>
  <article>
    <p>No headline here about bitcoin</p>
    <a href="/en/feed/post/4">Read</a>
  </article>
</body></html>
"""


class StubRenderer:
    def __init__(self, markup: str = PAGE, error: Exception | None = None) -> None:
        self._markup = markup
        self._error = error
        self.acquired = 0
        self.released = 0

    @asynccontextmanager
    async def render(self, url: str):
        self.acquired += 1
        try:
            if self._error is not None:
                raise self._error
            yield BeautifulSoup(self._markup, "html.parser")
        finally:
            self.released += 1


# ── extract() ─────────────────────────────────────────────────────────────────

def test_extract_relevant_nodes():
    adapter = PageAdapter(StubRenderer())

    articles = adapter.extract(SOURCE, BeautifulSoup(PAGE, "html.parser"), now=NOW)

    assert [a.title for a in articles] == ["BNB hits new high", "Solana validators upgrade"]
    first, second = articles
    assert first.url == "https://www.binance.com/en/feed/post/1"
    assert first.published_at == datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc)
    assert first.description == "Binance coin extends its rally."
    assert first.source == "www.binance.com"
    # No timestamp on the node: treated as seen now
    assert second.published_at == NOW


def test_extract_keeps_escaped_markup_in_summary_as_text():
    page = """
    <article>
      <h2>Bitcoin explorer redesign</h2>
      <p>Use &amp;lt;b&amp;gt; tags &amp;amp; styles</p>
      <a href="/en/feed/post/9">Read</a>
    </article>
    """
    adapter = PageAdapter(StubRenderer(page))

    [article] = adapter.extract(SOURCE, BeautifulSoup(page, "html.parser"), now=NOW)

    assert article.description == "Use <b> tags & styles"


# ── fetch() ───────────────────────────────────────────────────────────────────

async def test_fetch_releases_rendering_context():
    renderer = StubRenderer()
    adapter = PageAdapter(renderer, clock=lambda: NOW)

    articles = await adapter.fetch(SOURCE)

    assert len(articles) == 2
    assert renderer.acquired == renderer.released == 1


async def test_fetch_render_failure_returns_empty_list():
    renderer = StubRenderer(error=FetchError("Page returned status 403", service="page", status=403))
    adapter = PageAdapter(renderer, clock=lambda: NOW)

    assert await adapter.fetch(SOURCE) == []
    assert renderer.released == 1


async def test_fetch_extraction_failure_still_releases_context():
    renderer = StubRenderer()
    adapter = PageAdapter(renderer, clock=lambda: NOW)

    with patch.object(adapter, "extract", side_effect=RuntimeError("bad DOM")):
        assert await adapter.fetch(SOURCE) == []

    assert renderer.released == 1
