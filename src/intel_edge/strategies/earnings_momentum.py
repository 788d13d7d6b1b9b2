"""Earnings momentum: repeated earnings chatter pointing one way on a ticker."""

from __future__ import annotations

from collections import defaultdict

from intel_edge.intel.models import IntelEntry
from intel_edge.strategies.base import DetectionContext, Direction, Opportunity
from intel_edge.strategies.lexicon import (
    EARNINGS_BEARISH_WORDS,
    EARNINGS_BULLISH_WORDS,
    EARNINGS_KEYWORDS,
    count_keywords,
)

MIN_SIGNALS = 2
MIN_CONFIDENCE = 0.3


def ticker_tags(entry: IntelEntry) -> list[str]:
    """Distinct ticker-like tags of an entry, uppercased."""
    tickers: dict[str, None] = {}
    for tag in entry.tags:
        if 0 < len(tag) <= 5 and tag.isascii() and tag.isalpha():
            tickers[tag.upper()] = None
    return list(tickers)


class EarningsMomentumStrategy:
    name = "earnings_momentum"

    def __init__(
        self,
        earnings_keywords: tuple[str, ...] = EARNINGS_KEYWORDS,
        bullish_words: tuple[str, ...] = EARNINGS_BULLISH_WORDS,
        bearish_words: tuple[str, ...] = EARNINGS_BEARISH_WORDS,
    ) -> None:
        self._earnings_keywords = earnings_keywords
        self._bullish_words = bullish_words
        self._bearish_words = bearish_words

    def detect(self, ctx: DetectionContext) -> list[Opportunity]:
        by_ticker: dict[str, list[IntelEntry]] = defaultdict(list)
        for entry in ctx.entries:
            text = entry.searchable_text.lower()
            if not any(kw in text for kw in self._earnings_keywords):
                continue
            for ticker in ticker_tags(entry):
                by_ticker[ticker].append(entry)

        opportunities: list[Opportunity] = []

        for ticker in sorted(by_ticker):
            entries = by_ticker[ticker]
            if len(entries) < MIN_SIGNALS:
                continue

            bullish = 0
            bearish = 0
            for entry in entries:
                text = entry.searchable_text.lower()
                bullish += count_keywords(text, self._bullish_words)
                bearish += count_keywords(text, self._bearish_words)

            total = bullish + bearish
            if total == 0:
                continue

            if bullish > bearish:
                direction: Direction | None = Direction.BULLISH
            elif bearish > bullish:
                direction = Direction.BEARISH
            else:
                direction = None
            label = direction.value if direction else "mixed"

            alignment = abs(bullish - bearish) / total
            confidence = min(min(len(entries) / 5.0, 1.0) * (0.5 + 0.5 * alignment), 1.0)
            if confidence < MIN_CONFIDENCE:
                continue

            opportunities.append(Opportunity(
                strategy=self.name,
                signal_type="earnings_momentum",
                title=f"{ticker} — {label} earnings momentum ({len(entries)} signals)",
                description=(
                    f"{len(entries)} entries point {label} for {ticker} "
                    f"(alignment: {alignment * 100:.0f}%, "
                    f"{bullish} bullish / {bearish} bearish hits)"
                ),
                confidence=confidence,
                market_ticker=ticker,
                suggested_direction=direction,
                supporting_entries=tuple(e.id for e in entries),
                detected_at=ctx.now,
            ))

        return opportunities
