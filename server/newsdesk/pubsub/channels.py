"""
Redis Channel Names

One channel per event type:
  newsdesk:news               ranked article union
  newsdesk:screening_results  latest screening pass
"""
from __future__ import annotations

from newsdesk.publisher.serializer import NEWS_EVENT, SCREENING_EVENT

PREFIX = "newsdesk:"


def channel_for_event(event: str) -> str:
    return f"{PREFIX}{event}"


NEWS = channel_for_event(NEWS_EVENT)
SCREENING_RESULTS = channel_for_event(SCREENING_EVENT)
