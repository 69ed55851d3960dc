"""
Article Tagger Service

Keyword-driven enrichment engine for crypto news.

Re-exports:
    - ArticleTagger: Main tagging orchestrator
    - TaggerStats: Tagger statistics
    - TaggingError: Tagging error exception

Usage:
    from newsdesk.tagger import ArticleTagger

    tagger = ArticleTagger()
    enriched = tagger.tag(article, snapshots)
"""
from .tagger import ArticleTagger, TaggerStats, TaggingError

__all__ = [
    "ArticleTagger",
    "TaggerStats",
    "TaggingError",
]
