"""
Newsdesk Configuration

Centralized configuration for the news desk service.
All environment variables MUST be defined here. No os.getenv() calls allowed elsewhere.
"""
from __future__ import annotations

import os
from dataclasses import dataclass


class ConfigurationError(Exception):
    """Raised when configuration values are invalid."""
    pass


def _optional_env(name: str, default: str = "") -> str:
    """Get an optional environment variable with a default."""
    return os.environ.get(name, default)


def _optional_env_int(name: str, default: int) -> int:
    """Get an optional integer environment variable with a default."""
    value = os.environ.get(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"Invalid integer value for {name}: {value}")


def _optional_env_float(name: str, default: float) -> float:
    """Get an optional float environment variable with a default."""
    value = os.environ.get(name)
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        raise ConfigurationError(f"Invalid float value for {name}: {value}")


def _optional_env_list(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    """Get an optional comma-separated environment variable as a tuple."""
    value = os.environ.get(name)
    if not value:
        return default
    return tuple(part.strip() for part in value.split(",") if part.strip())


@dataclass(frozen=True)
class MarketApiConfig:
    """Exchange market-data API configuration.

    Missing credentials are allowed: requests are still signed (with an
    empty secret) and will simply be rejected upstream.
    """
    base_url: str = "https://api.pionex.com/api/v1"
    api_key: str = ""
    api_secret: str = ""
    ticker_ttl_seconds: float = 180.0
    min_request_interval_seconds: float = 30.0
    request_timeout_seconds: float = 10.0


@dataclass(frozen=True)
class NewsConfig:
    """News ingestion configuration."""
    refresh_seconds: float = 60.0
    retention_hours: int = 24
    request_timeout_seconds: float = 15.0


@dataclass(frozen=True)
class ScreenerConfig:
    """Anomaly screener configuration."""
    symbols: tuple[str, ...] = ("BTC_USDT", "ETH_USDT", "BNB_USDT", "SOL_USDT", "DOT_USDT")
    interval: str = "3M"
    limit: int = 10
    refresh_seconds: float = 180.0
    volume_spike_threshold: float = 2.0


@dataclass(frozen=True)
class WebSocketServerConfig:
    """WebSocket server configuration for client connections."""
    host: str
    port: int


@dataclass(frozen=True)
class RedisConfig:
    """Optional Redis fan-out configuration (empty url = disabled)."""
    url: str = ""

    @property
    def enabled(self) -> bool:
        return bool(self.url)


@dataclass(frozen=True)
class Settings:
    """Root configuration container."""
    market_api: MarketApiConfig
    news: NewsConfig
    screener: ScreenerConfig
    websocket_server: WebSocketServerConfig
    redis: RedisConfig
    log_level: str = "INFO"


def load_settings() -> Settings:
    """Load all settings from environment variables."""
    market_api = MarketApiConfig(
        base_url=_optional_env("MARKET_API_BASE_URL", "https://api.pionex.com/api/v1").rstrip("/"),
        api_key=_optional_env("MARKET_API_KEY", ""),
        api_secret=_optional_env("MARKET_API_SECRET", ""),
        ticker_ttl_seconds=_optional_env_float("MARKET_TICKER_TTL_SECONDS", 180.0),
        min_request_interval_seconds=_optional_env_float(
            "MARKET_MIN_REQUEST_INTERVAL_SECONDS", 30.0
        ),
        request_timeout_seconds=_optional_env_float("MARKET_REQUEST_TIMEOUT_SECONDS", 10.0),
    )

    news = NewsConfig(
        refresh_seconds=_optional_env_float("NEWS_REFRESH_SECONDS", 60.0),
        retention_hours=_optional_env_int("NEWS_RETENTION_HOURS", 24),
        request_timeout_seconds=_optional_env_float("NEWS_REQUEST_TIMEOUT_SECONDS", 15.0),
    )

    screener = ScreenerConfig(
        symbols=_optional_env_list("SCREENER_SYMBOLS", ScreenerConfig.symbols),
        interval=_optional_env("SCREENER_INTERVAL", "3M"),
        limit=_optional_env_int("SCREENER_LIMIT", 10),
        refresh_seconds=_optional_env_float("SCREENER_REFRESH_SECONDS", 180.0),
        volume_spike_threshold=_optional_env_float("SCREENER_VOLUME_SPIKE_THRESHOLD", 2.0),
    )

    websocket_server = WebSocketServerConfig(
        host=_optional_env("WS_HOST", "0.0.0.0"),
        port=_optional_env_int("WS_PORT", 8765),
    )

    return Settings(
        market_api=market_api,
        news=news,
        screener=screener,
        websocket_server=websocket_server,
        redis=RedisConfig(url=_optional_env("REDIS_URL", "")),
        log_level=_optional_env("LOG_LEVEL", "INFO").upper(),
    )
