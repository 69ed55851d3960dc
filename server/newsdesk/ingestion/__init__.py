"""
Ingestion Adapters

Feed and rendered-page strategies producing un-enriched Articles.
"""
from newsdesk.ingestion.base import (
    IngestionAdapter,
    canonical_url,
    clean_description,
    make_article_id,
    within_window,
)
from newsdesk.ingestion.feed import FeedAdapter
from newsdesk.ingestion.page import HttpRenderer, PageAdapter, Renderer

__all__ = [
    "FeedAdapter",
    "HttpRenderer",
    "IngestionAdapter",
    "PageAdapter",
    "Renderer",
    "canonical_url",
    "clean_description",
    "make_article_id",
    "within_window",
]
