"""
Newsdesk Service Entry Point

Runs the news desk in a single async event loop:
  - market client: one shared, rate-limited ticker/candle cache
  - websocket server: one subscriber session per connected client
  - redis (optional): one headless session publishing to newsdesk:* channels

Usage:
    cd server
    python -m newsdesk            # serve until SIGINT/SIGTERM
    python -m newsdesk --once     # one crawl + one screening pass, print JSON
"""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import signal

from dotenv import load_dotenv

from newsdesk.config import Settings, load_settings
from newsdesk.market_client import MarketClient
from newsdesk.pipeline import NewsPipeline
from newsdesk.publisher import EventSink, SubscriberSession
from newsdesk.publisher.serializer import articles_payload, screening_payload
from newsdesk.screener import AnomalyScreener

logger = logging.getLogger("newsdesk")

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s — %(message)s"


def build_session_factory(settings: Settings, pipeline: NewsPipeline, screener: AnomalyScreener):
    """Return a callable creating a SubscriberSession bound to a sink."""

    def factory(sink: EventSink, name: str) -> SubscriberSession:
        return SubscriberSession(
            sink,
            pipeline,
            screener,
            name=name,
            news_refresh_seconds=settings.news.refresh_seconds,
            screening_refresh_seconds=settings.screener.refresh_seconds,
            retention_hours=settings.news.retention_hours,
        )

    return factory


async def run_once(settings: Settings) -> dict:
    """One crawl of every source and one screening pass."""
    async with MarketClient(settings.market_api) as market_client:
        pipeline = NewsPipeline(
            market_client,
            retention_hours=settings.news.retention_hours,
            request_timeout_seconds=settings.news.request_timeout_seconds,
        )
        screener = AnomalyScreener(market_client, settings.screener)

        articles = await pipeline.crawl_all()
        results = await screener.screen()

    return {
        "news": articles_payload(articles),
        "screening_results": screening_payload(results),
    }


async def run(settings: Settings) -> None:
    from newsdesk.ws_server import NewsWebSocketServer

    shutdown_event = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, shutdown_event.set)

    market_client = MarketClient(settings.market_api)
    pipeline = NewsPipeline(
        market_client,
        retention_hours=settings.news.retention_hours,
        request_timeout_seconds=settings.news.request_timeout_seconds,
    )
    screener = AnomalyScreener(market_client, settings.screener)
    session_factory = build_session_factory(settings, pipeline, screener)

    # ── WebSocket server ───────────────────────────────────────────
    ws_server = NewsWebSocketServer(
        session_factory,
        host=settings.websocket_server.host,
        port=settings.websocket_server.port,
    )
    await ws_server.start()

    # ── Redis headless session ─────────────────────────────────────
    redis_sink = None
    redis_session = None
    if settings.redis.enabled:
        from newsdesk.pubsub import RedisSink

        redis_sink = RedisSink(settings.redis.url)
        await redis_sink.connect()
        redis_session = session_factory(redis_sink, "redis")
        redis_session.start()
        logger.info("Publishing to Redis channels newsdesk:*")

    # ── Wait for shutdown ──────────────────────────────────────────
    await shutdown_event.wait()

    # ── Teardown ───────────────────────────────────────────────────
    logger.info("Shutting down...")

    if redis_session is not None:
        await redis_session.stop()
    if redis_sink is not None:
        await redis_sink.close()

    await ws_server.stop()
    await market_client.close()

    ws_stats = ws_server.get_stats()
    client_stats = market_client.stats
    tagger_stats = pipeline.tagger.stats
    logger.info(
        f"Final — clients served: {ws_stats.total_connections}, "
        f"messages sent: {ws_stats.messages_sent}, "
        f"market requests: {client_stats.requests_made} "
        f"({client_stats.requests_failed} failed), "
        f"tagged: {tagger_stats.items_tagged}, "
        f"screening passes: {screener.passes}"
    )


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="crypto news desk")
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run one crawl and one screening pass, print JSON and exit",
    )
    parser.add_argument("--env-file", default=".env", help="Path to a .env file")
    args = parser.parse_args(argv)

    load_dotenv(args.env_file)
    settings = load_settings()

    logging.basicConfig(level=settings.log_level, format=LOG_FORMAT)

    if args.once:
        output = asyncio.run(run_once(settings))
        print(json.dumps(output, ensure_ascii=False, indent=2))
        return

    asyncio.run(run(settings))


if __name__ == "__main__":
    main()
