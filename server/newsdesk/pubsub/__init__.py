"""
newsdesk.pubsub: Redis fan-out for headless sessions.

Public API:
    RedisSink      — EventSink publishing {channel, data} envelopes to newsdesk:{event}
    PublisherError — raised when publishing fails
    channels       — channel name constants
"""
from newsdesk.pubsub.publisher import PublisherError, RedisSink
from newsdesk.pubsub import channels

__all__ = [
    "PublisherError",
    "RedisSink",
    "channels",
]
