"""
newsdesk.publisher: per-subscriber publication loop.

Public API:
    SubscriberSession — drives news and screening refreshes for one subscriber
    EventSink         — push-channel protocol (publish(event, payload))
    serializer        — article / screening result wire format
"""
from newsdesk.publisher.session import EventSink, SessionStats, SubscriberSession
from newsdesk.publisher import serializer

__all__ = [
    "EventSink",
    "SessionStats",
    "SubscriberSession",
    "serializer",
]
