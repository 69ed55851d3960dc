"""
Tests for newsdesk.publisher.session

The pipeline and screener are MagicMocks; the sink records every push.
"""
import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

from newsdesk.ingestion import make_article_id
from newsdesk.models import Article, ScreeningResult, SourceDescriptor, SourceKind, TrustTier
from newsdesk.publisher import SubscriberSession

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

SOURCE_A = SourceDescriptor(
    name="alpha", url="https://alpha.example.com/rss", kind=SourceKind.FEED,
    language="en", trust_tier=TrustTier.PRIMARY,
)
SOURCE_B = SourceDescriptor(
    name="beta", url="https://beta.example.com/rss", kind=SourceKind.FEED,
    language="en", trust_tier=TrustTier.SECONDARY,
)


class RecordingSink:
    def __init__(self, error: Exception | None = None) -> None:
        self.events: list[tuple[str, object]] = []
        self._error = error

    async def publish(self, event, payload):
        if self._error is not None:
            raise self._error
        self.events.append((event, payload))

    def of(self, event: str) -> list:
        return [payload for name, payload in self.events if name == event]


def _article(title: str, url: str, *, reliability: int = 50, published_at: datetime = NOW) -> Article:
    return Article(
        id=make_article_id(url),
        title=title,
        description="",
        url=url,
        source="example.com",
        published_at=published_at,
        language="en",
        trust_tier=TrustTier.PRIMARY,
        reliability=reliability,
    )


def _result(symbol: str = "BTC_USDT") -> ScreeningResult:
    return ScreeningResult(
        symbol=symbol,
        last_price=100.0,
        high_price=110.0,
        low_price=90.0,
        distance_from_high=9.09,
        distance_from_low=11.11,
        volume_increase=1.5,
        price_position=-1,
        computed_at=NOW,
    )


def _pipeline(batches: dict) -> MagicMock:
    pipeline = MagicMock()
    pipeline.sources = tuple(batches)

    async def _crawl(source):
        return batches[source]

    pipeline.crawl_source = AsyncMock(side_effect=_crawl)
    return pipeline


def _screener(results=None) -> MagicMock:
    screener = MagicMock()
    screener.screen = AsyncMock(return_value=results if results is not None else [_result()])
    return screener


def _session(sink, pipeline, screener, **kwargs) -> SubscriberSession:
    kwargs.setdefault("news_refresh_seconds", 60)
    kwargs.setdefault("screening_refresh_seconds", 60)
    return SubscriberSession(sink, pipeline, screener, clock=lambda: NOW, **kwargs)


async def _wait_for(predicate, timeout: float = 1.0) -> None:
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.001)


# ── Cache ─────────────────────────────────────────────────────────────────────

def test_merge_is_a_union_keyed_by_id():
    session = _session(RecordingSink(), _pipeline({}), _screener())
    first = _article("Bitcoin one", "https://a.example.com/1")
    second = _article("Ethereum two", "https://a.example.com/2")

    session.merge([first])
    view = session.merge([second])

    assert {a.id for a in view} == {first.id, second.id}


def test_merge_replaces_same_id_and_reranks():
    session = _session(RecordingSink(), _pipeline({}), _screener())
    original = _article("Bitcoin one", "https://a.example.com/1", reliability=10)
    other = _article("Ethereum two", "https://a.example.com/2", reliability=50)
    refreshed = _article("Bitcoin one", "https://a.example.com/1", reliability=90)

    session.merge([original, other])
    view = session.merge([refreshed])

    assert [a.reliability for a in view] == [90, 50]


def test_merge_evicts_articles_outside_retention():
    session = _session(RecordingSink(), _pipeline({}), _screener())
    stale = _article("Bitcoin old", "https://a.example.com/old", published_at=NOW - timedelta(hours=25))
    fresh = _article("Bitcoin new", "https://a.example.com/new")

    session.merge([stale])
    view = session.merge([fresh])

    assert [a.title for a in view] == ["Bitcoin new"]


def test_merge_dedupes_across_sources():
    session = _session(RecordingSink(), _pipeline({}), _screener())
    a = _article("Bitcoin rally", "https://a.example.com/x")
    b = _article("Bitcoin rally", "https://b.example.com/x")

    assert len(session.merge([a, b])) == 1


# ── Refresh ───────────────────────────────────────────────────────────────────

async def test_refresh_news_pushes_growing_union_per_source():
    a = _article("Bitcoin alpha", "https://alpha.example.com/1", reliability=80)
    b = _article("Solana beta", "https://beta.example.com/1", reliability=40)
    sink = RecordingSink()
    session = _session(sink, _pipeline({SOURCE_A: [a], SOURCE_B: [b]}), _screener())

    await session.refresh_news()

    pushes = sink.of("news")
    assert len(pushes) == 2
    assert len(pushes[0]) == 1
    assert [item["title"] for item in pushes[-1]] == ["Bitcoin alpha", "Solana beta"]
    assert session.stats.news_pushes == 2


async def test_repeated_refresh_never_shrinks_union():
    first = _article("Bitcoin alpha", "https://alpha.example.com/1")
    second = _article("Ethereum alpha", "https://alpha.example.com/2")
    batches = {SOURCE_A: [first]}
    sink = RecordingSink()
    session = _session(sink, _pipeline(batches), _screener())

    await session.refresh_news()
    batches[SOURCE_A] = [second]
    await session.refresh_news()

    assert {item["title"] for item in sink.of("news")[-1]} == {"Bitcoin alpha", "Ethereum alpha"}


async def test_refresh_screening_replaces_results():
    screener = _screener([_result("BTC_USDT"), _result("ETH_USDT")])
    sink = RecordingSink()
    session = _session(sink, _pipeline({}), screener)

    await session.refresh_screening()
    screener.screen.return_value = [_result("DOT_USDT")]
    await session.refresh_screening()

    pushes = sink.of("screening_results")
    assert [r["symbol"] for r in pushes[0]] == ["BTC_USDT", "ETH_USDT"]
    assert [r["symbol"] for r in pushes[1]] == ["DOT_USDT"]
    assert [r.symbol for r in session.screening_results] == ["DOT_USDT"]


async def test_sink_failure_is_counted_not_raised():
    session = _session(RecordingSink(error=ConnectionError("gone")), _pipeline({}), _screener())

    await session.refresh_screening()

    assert session.stats.push_failures == 1
    assert session.stats.screening_pushes == 0


# ── Lifecycle ─────────────────────────────────────────────────────────────────

async def test_start_fires_both_timers_immediately():
    sink = RecordingSink()
    session = _session(sink, _pipeline({SOURCE_A: [_article("Bitcoin", "https://alpha.example.com/1")]}), _screener())

    session.start()
    await _wait_for(lambda: sink.of("news") and sink.of("screening_results"))
    await session.stop()

    assert len(sink.of("news")) == 1
    assert len(sink.of("screening_results")) == 1


async def test_no_pushes_after_stop():
    sink = RecordingSink()
    pipeline = _pipeline({SOURCE_A: [_article("Bitcoin", "https://alpha.example.com/1")]})
    session = _session(sink, pipeline, _screener(), news_refresh_seconds=0.005, screening_refresh_seconds=0.005)

    session.start()
    await _wait_for(lambda: len(sink.events) >= 4)
    await session.stop()
    pushed = len(sink.events)

    await asyncio.sleep(0.03)
    await session.refresh_news()
    await session.refresh_screening()

    assert session.closed
    assert len(sink.events) == pushed


async def test_crawl_finishing_after_stop_is_not_pushed():
    release = asyncio.Event()
    sink = RecordingSink()
    pipeline = MagicMock()
    pipeline.sources = (SOURCE_A,)

    async def _slow_crawl(source):
        await release.wait()
        return [_article("Bitcoin", "https://alpha.example.com/1")]

    pipeline.crawl_source = AsyncMock(side_effect=_slow_crawl)
    session = _session(sink, pipeline, _screener([]))

    pending = asyncio.create_task(session.refresh_news())
    await asyncio.sleep(0)
    await session.stop()
    release.set()
    await pending

    assert sink.of("news") == []
