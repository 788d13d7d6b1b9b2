"""Cross-market strategy: band-sum arbitrage and cross-asset divergence.

Band-sum arbitrage: mutually exclusive band contracts of one Kalshi series
and expiry (e.g. KXHIGHNY-26FEB27-B38.5, -B40.5, ...) pay out exactly one
winner, so their prices should sum to about 100c. A set well under 100c is
cheap to buy whole; a set well over 100c has bands worth fading. Threshold
contracts (``-T2.75``) are cumulative probabilities and are never summed.

Cross-asset divergence: prediction markets on a theme (btc, fed, ...) and
the equities correlated with it should agree in sentiment. When they do
not, follow the prediction side, which tends to reprice first.
"""

from __future__ import annotations

import logging
import re
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from typing import Mapping

import numpy as np

from intel_edge.common.types import JsonDict
from intel_edge.intel.models import IntelEntry
from intel_edge.strategies.base import DetectionContext, Direction, Opportunity
from intel_edge.strategies.lexicon import (
    CROSS_MARKET_THEMES,
    SENTIMENT_VALUES,
    TAG_BEARISH_WORDS,
    TAG_BULLISH_WORDS,
)

logger = logging.getLogger(__name__)

UNKNOWN_EXPIRY = "unknown"

# Band prices within this range are considered fairly priced
FAIR_SUM_LOW = 95.0
FAIR_SUM_HIGH = 105.0

MIN_BANDS = 2
MIN_SIGNALS_PER_SIDE = 2
DIVERGENCE_THRESHOLD = 0.5

_THRESHOLD_SEGMENT = re.compile(r"^T\d+(?:\.\d+)?$")
_CENT_PRICE = re.compile(r"^(\d+(?:\.\d+)?)(?:c|¢|cents)$")
_TRAILING_PUNCT = ",.;:)"


def is_threshold_contract(ticker: str) -> bool:
    """True for cumulative threshold contracts such as ``KXFED-26MAR-T2.75``."""
    return any(_THRESHOLD_SEGMENT.match(part) for part in ticker.upper().split("-"))


def _ticker_date(segment: str) -> str:
    """``26FEB27`` (optionally followed by a time, ``26DEC31H1600``) -> ISO date.

    Segments that do not start with a ``YYMONDD`` date are returned as-is.
    """
    try:
        return datetime.strptime(segment[:7].upper(), "%y%b%d").date().isoformat()
    except ValueError:
        return segment


def extract_expiry_date(metadata: JsonDict | None, ticker: str) -> str:
    """Expiry date of a contract, or "" if none can be found.

    Prefers ``metadata.close_time`` truncated to its date, falling back to
    the date segment of a ``SERIES-DATE-STRIKE`` ticker.
    """
    close_time = metadata.get("close_time") if isinstance(metadata, dict) else None
    if isinstance(close_time, str) and close_time:
        try:
            return datetime.fromisoformat(close_time.replace("Z", "+00:00")).date().isoformat()
        except ValueError:
            pass
        try:
            return datetime.strptime(close_time[:10], "%Y-%m-%d").date().isoformat()
        except ValueError:
            pass

    parts = ticker.split("-")
    if len(parts) >= 3 and parts[1]:
        return _ticker_date(parts[1])
    return ""


def extract_band_prices(text: str) -> list[float]:
    """Pull cent prices out of free text.

    Recognizes ``28c``, ``28¢``, ``28cents`` and bare numbers after ``bid`` /
    ``ask``. Values outside (0, 100) are ignored.
    """
    prices: list[float] = []
    words = text.lower().split()

    for i, word in enumerate(words):
        stripped = word.rstrip(_TRAILING_PUNCT)
        match = _CENT_PRICE.match(stripped)
        if match:
            price = float(match.group(1))
            if 0.0 < price < 100.0:
                prices.append(price)
            continue

        if word in ("bid", "ask") and i + 1 < len(words):
            following = words[i + 1].rstrip(_TRAILING_PUNCT)
            if _CENT_PRICE.match(following):
                continue  # picked up on its own
            try:
                price = float(following)
            except ValueError:
                continue
            if 0.0 < price < 100.0:
                prices.append(price)

    return prices


def entry_sentiment(
    entry: IntelEntry,
    bullish_words: tuple[str, ...] = TAG_BULLISH_WORDS,
    bearish_words: tuple[str, ...] = TAG_BEARISH_WORDS,
) -> float:
    """Sentiment of an entry in [-1, 1].

    Uses ``metadata.sentiment`` when present, else the balance of bullish and
    bearish keywords found in its tags.
    """
    explicit = entry.meta("sentiment")
    if isinstance(explicit, str):
        return SENTIMENT_VALUES.get(explicit.strip().lower(), 0.0)
    if isinstance(explicit, (int, float)) and not isinstance(explicit, bool):
        return float(min(max(explicit, -1.0), 1.0))

    tags = entry.tags_lower
    bull = sum(1 for t in tags if any(k in t for k in bullish_words))
    bear = sum(1 for t in tags if any(k in t for k in bearish_words))
    total = bull + bear
    if total == 0:
        return 0.0
    return (bull - bear) / total


def _as_float(value: object) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    return None


@dataclass(frozen=True)
class _Band:
    entry_id: str
    price: float


@dataclass(frozen=True)
class _SentimentSignal:
    entry_id: str
    sentiment: float
    confidence: float


class CrossMarketStrategy:
    """Find mispriced band sets and prediction/equity sentiment gaps."""

    name = "cross_market"

    def __init__(
        self,
        themes: Mapping[str, tuple[str, ...]] = CROSS_MARKET_THEMES,
        tag_bullish_words: tuple[str, ...] = TAG_BULLISH_WORDS,
        tag_bearish_words: tuple[str, ...] = TAG_BEARISH_WORDS,
    ) -> None:
        self._themes = themes
        self._tag_bullish_words = tag_bullish_words
        self._tag_bearish_words = tag_bearish_words

    def detect(self, ctx: DetectionContext) -> list[Opportunity]:
        opportunities = self.detect_band_sum_arbitrage(ctx)
        opportunities.extend(self.detect_cross_asset_divergence(ctx))
        return opportunities

    # -- band-sum arbitrage ------------------------------------------------

    @staticmethod
    def _series_of(entry: IntelEntry) -> str | None:
        series = entry.meta("series")
        if isinstance(series, str) and series.lower().startswith("kx"):
            return series.lower()
        for tag in entry.tags_lower:
            if tag.startswith("kx"):
                # Contract tickers carry the series as their first segment
                return tag.split("-")[0]
        return None

    def _band_groups(self, ctx: DetectionContext) -> dict[tuple[str, str], list[_Band]]:
        # Keyed by contract ticker (or entry id when untickered), first quote wins
        groups: dict[tuple[str, str], dict[str, _Band]] = defaultdict(dict)

        for entry in ctx.entries:
            series = self._series_of(entry)
            if series is None:
                continue

            ticker = entry.meta("ticker")
            ticker = ticker if isinstance(ticker, str) else ""
            if is_threshold_contract(ticker):
                logger.debug("Skipping threshold contract %s", ticker)
                continue

            expiry = extract_expiry_date(entry.metadata, ticker) or UNKNOWN_EXPIRY

            price = _as_float(entry.meta("midpoint"))
            if price is None or not 0.0 < price < 100.0:
                text_prices = extract_band_prices(entry.body)
                if not text_prices:
                    continue
                # A bid/ask pair quotes one contract
                price = float(np.mean(text_prices))

            contract = ticker.upper() or entry.id
            groups[(series, expiry)].setdefault(contract, _Band(entry.id, price))

        return {key: list(bands.values()) for key, bands in groups.items()}

    def detect_band_sum_arbitrage(self, ctx: DetectionContext) -> list[Opportunity]:
        opportunities: list[Opportunity] = []

        for (series, expiry), bands in sorted(self._band_groups(ctx).items()):
            if len(bands) < MIN_BANDS:
                continue

            total = sum(b.price for b in bands)
            if FAIR_SUM_LOW <= total <= FAIR_SUM_HIGH:
                continue

            deviation = abs(total - 100.0)
            if deviation > 10.0:
                confidence = 0.8
            elif deviation > 5.0:
                confidence = 0.6
            else:
                confidence = 0.4

            label = series.upper()
            expiry_label = "" if expiry == UNKNOWN_EXPIRY else f" (expiry: {expiry})"
            underpriced = total < 100.0
            if underpriced:
                direction = Direction.YES
                action = (
                    f"Buy all {len(bands)} bands in {label}{expiry_label} "
                    f"(total cost {total:.0f}¢, expected value 100¢)"
                )
            else:
                direction = Direction.NO
                action = (
                    f"Fade/short overpriced bands in {label}{expiry_label} "
                    f"({len(bands)} bands total {total:.0f}¢ > 100¢, sell expensive bands)"
                )

            opportunities.append(Opportunity(
                strategy=self.name,
                signal_type="band_sum_arbitrage",
                title=(
                    f"{label} {expiry} bands sum to {total:.0f}% "
                    f"({len(bands)} bands, deviation: {deviation:.1f}%)"
                ),
                description=(
                    f"{label} band prices for expiry {expiry} ({len(bands)} contracts) "
                    f"sum to {total:.1f}% instead of ~100%. This suggests "
                    f"{'underpricing' if underpriced else 'overpricing'} across the band set."
                ),
                confidence=confidence,
                edge_cents=deviation,
                market_ticker=label,
                suggested_direction=direction,
                suggested_action=action,
                supporting_entries=tuple(b.entry_id for b in bands),
                detected_at=ctx.now,
            ))

        return opportunities

    # -- cross-asset divergence --------------------------------------------

    def detect_cross_asset_divergence(self, ctx: DetectionContext) -> list[Opportunity]:
        prediction: dict[str, list[_SentimentSignal]] = defaultdict(list)
        equity: dict[str, list[_SentimentSignal]] = defaultdict(list)

        for entry in ctx.entries:
            tags = set(entry.tags_lower)
            signal = _SentimentSignal(
                entry_id=entry.id,
                sentiment=entry_sentiment(
                    entry, self._tag_bullish_words, self._tag_bearish_words,
                ),
                confidence=entry.confidence,
            )
            for theme, equities in self._themes.items():
                if theme in tags:
                    prediction[theme].append(signal)
                if any(e.lower() in tags for e in equities):
                    equity[theme].append(signal)

        opportunities: list[Opportunity] = []

        for theme, equities in self._themes.items():
            pred_signals = prediction.get(theme, [])
            eq_signals = equity.get(theme, [])
            if len(pred_signals) < MIN_SIGNALS_PER_SIDE or len(eq_signals) < MIN_SIGNALS_PER_SIDE:
                continue

            pred_sentiment = float(np.mean([s.sentiment for s in pred_signals]))
            eq_sentiment = float(np.mean([s.sentiment for s in eq_signals]))
            divergence = abs(pred_sentiment - eq_sentiment)
            if divergence <= DIVERGENCE_THRESHOLD:
                continue

            signals = pred_signals + eq_signals
            mean_confidence = float(np.mean([s.confidence for s in signals]))
            confidence = float(np.clip(mean_confidence * divergence, 0.1, 0.9))

            pred_label = "bullish" if pred_sentiment > 0 else "bearish"
            eq_label = "bullish" if eq_sentiment > 0 else "bearish"
            direction = Direction.BULLISH if pred_sentiment > 0 else Direction.BEARISH

            opportunities.append(Opportunity(
                strategy=self.name,
                signal_type="cross_asset_divergence",
                title=(
                    f"{theme.upper()} divergence: prediction {pred_label} "
                    f"vs equity {eq_label} ({divergence * 100:.0f}% gap)"
                ),
                description=(
                    f"{theme.upper()} prediction market sentiment ({pred_sentiment:+.2f}) "
                    f"diverges from equity signals ({eq_sentiment:+.2f}). "
                    f"Correlated equities: {', '.join(equities)}. "
                    f"{len(signals)} signals analyzed."
                ),
                confidence=confidence,
                market_ticker=equities[0] if equities else None,
                suggested_direction=direction,
                supporting_entries=tuple(s.entry_id for s in signals),
                detected_at=ctx.now,
            ))

        return opportunities
