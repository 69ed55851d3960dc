"""
Keyword Tables

Fixed bilingual (English / Traditional Chinese) keyword tables driving
relevance, market enrichment, sentiment, impact and category rules.

ASCII keywords match on word boundaries so that short symbols like "eth"
or "dot" do not fire inside "method" or "anecdote"; CJK keywords have no
word boundaries and match as substrings. Matching is case-insensitive.
"""
from __future__ import annotations

import re
from functools import lru_cache

from newsdesk.models.news import Category

# Tracked asset -> (symbol, English name, localized name, ...).
# Order matters: market enrichment attaches the first match.
ASSET_KEYWORDS: dict[str, tuple[str, ...]] = {
    "BTC": ("btc", "bitcoin", "比特幣"),
    "ETH": ("eth", "ethereum", "以太坊", "以太幣"),
    "BNB": ("bnb", "binance coin", "幣安幣"),
    "SOL": ("sol", "solana", "索拉納"),
    "DOT": ("dot", "polkadot", "波卡"),
}

MAJOR_ASSETS: frozenset[str] = frozenset({"BTC", "ETH"})

POSITIVE_KEYWORDS: tuple[str, ...] = (
    "surge", "surges", "rally", "rallies", "gain", "gains", "bullish",
    "soar", "soars", "jump", "jumps", "rise", "rises", "record high",
    "all-time high", "adoption", "approval", "approved", "upgrade",
    "partnership", "inflow", "inflows",
    "上漲", "大漲", "看漲", "飆升", "利好", "創新高", "突破", "採用", "批准",
)

NEGATIVE_KEYWORDS: tuple[str, ...] = (
    "crash", "crashes", "plunge", "plunges", "drop", "drops", "bearish",
    "fall", "falls", "decline", "declines", "slump", "hack", "hacked",
    "exploit", "ban", "banned", "lawsuit", "fraud", "outflow", "outflows",
    "liquidation", "liquidations",
    "下跌", "大跌", "暴跌", "看跌", "利空", "駭客", "盜", "詐騙", "禁止", "清算",
)

HIGH_IMPACT_KEYWORDS: tuple[str, ...] = (
    "regulation", "regulatory", "sec", "ban", "banned", "hack", "hacked",
    "exploit", "breach", "etf", "lawsuit", "breakthrough", "halving",
    "approval", "approved",
    "監管", "禁令", "禁止", "駭客", "漏洞", "突破", "批准", "減半",
)

# Ordered: the first category whose keywords match wins.
CATEGORY_KEYWORDS: tuple[tuple[Category, tuple[str, ...]], ...] = (
    (Category.MARKET, (
        "price", "market", "trading", "bitcoin", "ethereum", "btc", "eth",
        "價格", "市場", "交易",
    )),
    (Category.TECHNICAL, (
        "blockchain", "protocol", "upgrade", "development", "tech",
        "區塊鏈", "協議", "升級", "技術",
    )),
    (Category.REGULATORY, (
        "regulation", "sec", "law", "government", "policy",
        "監管", "法規", "政府", "政策",
    )),
    (Category.INDUSTRY, (
        "company", "business", "partnership", "launch",
        "公司", "企業", "合作", "推出",
    )),
)


@lru_cache(maxsize=None)
def _pattern(keyword: str) -> re.Pattern[str]:
    escaped = re.escape(keyword.lower())
    if keyword.isascii():
        return re.compile(rf"(?<![a-z0-9]){escaped}(?![a-z0-9])")
    return re.compile(escaped)


def contains_any(text: str, keywords: tuple[str, ...]) -> bool:
    """True if any keyword occurs in ``text``."""
    lowered = text.lower()
    return any(_pattern(k).search(lowered) for k in keywords)


def count_matches(text: str, keywords: tuple[str, ...]) -> int:
    """Total number of keyword occurrences in ``text``."""
    lowered = text.lower()
    return sum(len(_pattern(k).findall(lowered)) for k in keywords)


def mentioned_assets(text: str) -> tuple[str, ...]:
    """Tracked assets mentioned in ``text``, in table order."""
    return tuple(
        asset for asset, keywords in ASSET_KEYWORDS.items()
        if contains_any(text, keywords)
    )


def is_relevant(text: str) -> bool:
    """Relevance filter: at least one tracked asset is mentioned."""
    return any(contains_any(text, keywords) for keywords in ASSET_KEYWORDS.values())


def categorize(text: str) -> Category:
    """First matching category in table order, else OTHER."""
    for category, keywords in CATEGORY_KEYWORDS:
        if contains_any(text, keywords):
            return category
    return Category.OTHER
