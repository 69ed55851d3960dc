"""
Event Serializer

Converts Articles and ScreeningResults into the plain dicts pushed to
subscribers. Field names use camelCase; the same payloads are sent over
WebSocket and Redis so consumers see one wire format regardless of
transport.
"""
from __future__ import annotations

from typing import Any, Iterable

from newsdesk.models.market import ScreeningResult
from newsdesk.models.news import Article

NEWS_EVENT = "news"
SCREENING_EVENT = "screening_results"


def article_to_dict(article: Article) -> dict[str, Any]:
    """Serialize an Article to a JSON-serializable dict."""
    market_data = None
    if article.market_data is not None:
        market_data = {
            "asset": article.market_data.asset,
            "price": article.market_data.price,
            "change24h": article.market_data.change_24h,
            "volume24h": article.market_data.volume_24h,
        }

    impact = None
    if article.impact is not None:
        impact = {
            "sentiment": article.impact.sentiment.value,
            "relatedAssets": list(article.impact.related_assets),
            "impactLevel": article.impact.level.value,
        }

    return {
        "id": article.id,
        "title": article.title,
        "description": article.description,
        "url": article.url,
        "source": article.source,
        "date": article.published_at.isoformat(),
        "category": article.category.value,
        "language": article.language,
        "trustTier": article.trust_tier.value,
        "reliability": article.reliability,
        "marketData": market_data,
        "marketImpact": impact,
    }


def screening_result_to_dict(result: ScreeningResult) -> dict[str, Any]:
    """Serialize a ScreeningResult to a JSON-serializable dict."""
    return {
        "symbol": result.symbol,
        "lastPrice": f"{result.last_price}",
        "highPrice": f"{result.high_price}",
        "lowPrice": f"{result.low_price}",
        "distanceFromHigh": result.distance_from_high,
        "distanceFromLow": result.distance_from_low,
        "volumeIncrease": result.volume_increase,
        "pricePosition": result.price_position,
        "computedAt": result.computed_at.isoformat(),
    }


def articles_payload(articles: Iterable[Article]) -> list[dict[str, Any]]:
    return [article_to_dict(a) for a in articles]


def screening_payload(results: Iterable[ScreeningResult]) -> list[dict[str, Any]]:
    return [screening_result_to_dict(r) for r in results]
