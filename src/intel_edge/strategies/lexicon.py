"""Default keyword lists and lookup tables for the detection strategies.

Strategies take these as constructor arguments, so tests and alternate
configurations can pass their own.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

# Tags too generic to define a topic
GENERIC_TAGS: frozenset[str] = frozenset({
    "market", "signal", "update", "analysis", "news", "general", "trade",
})

# Wider denylist for the sentiment-weighted convergence detector
CONVERGENCE_SKIP_TAGS: frozenset[str] = GENERIC_TAGS | frozenset({
    "stock", "stocks", "economy", "finance", "investing", "investment",
})

BULLISH_WORDS: tuple[str, ...] = (
    "beat", "surge", "jump", "rally", "strong", "raised", "bullish", "soar", "boom",
    "gain", "growth", "positive", "upside", "momentum", "buy", "higher",
)

BEARISH_WORDS: tuple[str, ...] = (
    "miss", "drop", "fell", "weak", "lowered", "disappointing", "cut", "bearish",
    "crash", "decline", "loss", "negative", "downside", "sell", "lower", "warning",
    "risk",
)

EARNINGS_KEYWORDS: tuple[str, ...] = (
    "earnings", "beat", "miss", "guidance", "revenue", "eps", "q1", "q2", "q3", "q4",
)

EARNINGS_BULLISH_WORDS: tuple[str, ...] = (
    "beat", "surge", "jump", "rally", "strong", "raised",
)

EARNINGS_BEARISH_WORDS: tuple[str, ...] = (
    "miss", "drop", "fell", "weak", "lowered", "disappointing", "cut",
)

# Matched by substring against lowercased tags
TAG_BULLISH_WORDS: tuple[str, ...] = (
    "bullish", "beat", "rally", "surge", "momentum", "growth",
)

TAG_BEARISH_WORDS: tuple[str, ...] = (
    "bearish", "miss", "crash", "decline", "loss", "warning",
)

# Explicit metadata.sentiment values
SENTIMENT_VALUES: Mapping[str, float] = MappingProxyType({
    "bullish": 1.0,
    "positive": 1.0,
    "bearish": -1.0,
    "negative": -1.0,
    "mixed": 0.0,
    "neutral": 0.0,
})

# Prediction-market theme tag -> correlated equity tickers.
# One canonical entry per theme; rate markets are tagged "fed".
CROSS_MARKET_THEMES: Mapping[str, tuple[str, ...]] = MappingProxyType({
    "btc": ("COIN", "MARA", "RIOT", "MSTR", "BITO", "IBIT"),
    "eth": ("COIN", "ETHE"),
    "crypto": ("COIN", "MARA", "RIOT", "MSTR", "CRCL"),
    "fed": ("TLT", "SHY", "XLF", "KRE"),
    "s&p500": ("SPY", "VOO", "IVV"),
    "nasdaq": ("QQQ", "TQQQ"),
})


def count_keywords(text: str, words: tuple[str, ...]) -> int:
    """Number of distinct ``words`` occurring as substrings of ``text``."""
    return sum(1 for w in words if w in text)
