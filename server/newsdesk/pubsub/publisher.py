"""
Redis Event Sink

EventSink implementation that publishes each event to its Redis pub/sub
channel, so any number of downstream consumers can follow one headless
session.

Wire format (envelope):
  {
    "channel": "newsdesk:news",
    "data": [ ...articles... ]
  }

Usage:
    async with RedisSink(redis_url="redis://localhost:6379/0") as sink:
        session = SubscriberSession(sink, pipeline, screener)
        session.start()
"""
from __future__ import annotations

import json
import logging
from typing import Any

from redis.asyncio import Redis
from redis.exceptions import RedisError

from newsdesk.pubsub.channels import channel_for_event

logger = logging.getLogger(__name__)


class PublisherError(Exception):
    """Raised when a publish operation fails."""


class RedisSink:
    """Publishes event payloads to ``newsdesk:{event}`` channels."""

    def __init__(self, redis_url: str) -> None:
        self._redis_url = redis_url
        self._redis: Redis | None = None
        self.deliveries = 0

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    async def connect(self) -> None:
        """Open the Redis connection."""
        self._redis = Redis.from_url(self._redis_url, decode_responses=False)
        try:
            await self._redis.ping()
            logger.info("RedisSink connected to Redis at %s", self._redis_url)
        except RedisError as exc:
            raise PublisherError(f"Cannot connect to Redis: {exc}") from exc

    async def close(self) -> None:
        """Close the Redis connection."""
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
            logger.info("RedisSink disconnected from Redis")

    async def __aenter__(self) -> RedisSink:
        await self.connect()
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.close()

    # ── Publish ───────────────────────────────────────────────────────────────

    async def publish(self, event: str, payload: Any) -> None:
        """
        Publish ``payload`` to the channel for ``event``.

        Raises:
            PublisherError: If not connected, the payload cannot be encoded,
                or Redis returns an error.
        """
        if self._redis is None:
            raise PublisherError("RedisSink is not connected, call connect() first")

        channel = channel_for_event(event)
        try:
            message = json.dumps({"channel": channel, "data": payload}, default=str)
        except (TypeError, ValueError) as exc:
            raise PublisherError(f"Cannot encode payload for '{channel}': {exc}") from exc

        try:
            delivered: int = await self._redis.publish(channel, message)
        except RedisError as exc:
            raise PublisherError(f"Redis publish failed on channel '{channel}'") from exc

        self.deliveries += delivered
        logger.debug("Published to '%s', reached %d subscriber(s)", channel, delivered)
