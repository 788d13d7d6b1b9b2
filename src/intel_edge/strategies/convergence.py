"""Sentiment-weighted convergence across intel sources.

Clusters entries by tag like tag convergence, but also weighs each entry's
bullish/bearish keywords by recency and scores how well the cluster agrees
on a direction. A cluster that mentions a ticker already held in an open
trade is flagged so the position is not doubled by accident.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime

from intel_edge.intel.models import IntelEntry
from intel_edge.strategies.base import DetectionContext, Direction, Opportunity
from intel_edge.strategies.lexicon import (
    BEARISH_WORDS,
    BULLISH_WORDS,
    CONVERGENCE_SKIP_TAGS,
    count_keywords,
)

logger = logging.getLogger(__name__)

MIN_CLUSTER_SIZE = 3
MIN_SOURCE_DIVERSITY = 2
MIN_CONFIDENCE = 0.4

# exp(-0.02 * h): half-life of roughly 35 hours
DECAY_RATE = 0.02


def time_weight(created_at: datetime, now: datetime) -> float:
    """Recency weight of an entry, 1.0 when fresh."""
    age_hours = max(int((now - created_at).total_seconds() // 3600), 0)
    return math.exp(-DECAY_RATE * age_hours)


def is_ticker_tag(tag: str) -> bool:
    """Short all-caps tags (``NVDA``, ``SPY``) name tradeable tickers."""
    return 0 < len(tag) <= 5 and tag.isascii() and tag.isalpha() and tag.isupper()


@dataclass
class _Cluster:
    topic: str
    entry_ids: list[str] = field(default_factory=list)
    titles: list[str] = field(default_factory=list)
    source_types: set[str] = field(default_factory=set)
    sources: set[str] = field(default_factory=set)
    tickers: set[str] = field(default_factory=set)
    bullish: float = 0.0
    bearish: float = 0.0

    @property
    def diversity(self) -> int:
        return len(self.source_types)

    def alignment(self) -> float:
        total = self.bullish + self.bearish
        if total < 0.01:
            return 0.5  # no directional signal
        return abs(self.bullish - self.bearish) / total

    def dominant_direction(self) -> Direction | None:
        if self.bullish < 0.01 and self.bearish < 0.01:
            return None
        if self.bullish > self.bearish:
            return Direction.BULLISH
        if self.bearish > self.bullish:
            return Direction.BEARISH
        return None


class ConvergenceStrategy:
    """Detect directional agreement across diverse sources on one topic."""

    name = "convergence"

    def __init__(
        self,
        skip_tags: frozenset[str] = CONVERGENCE_SKIP_TAGS,
        bullish_words: tuple[str, ...] = BULLISH_WORDS,
        bearish_words: tuple[str, ...] = BEARISH_WORDS,
    ) -> None:
        self._skip_tags = skip_tags
        self._bullish_words = bullish_words
        self._bearish_words = bearish_words

    def _add_entry(
        self, clusters: dict[str, _Cluster], entry: IntelEntry, now: datetime,
    ) -> None:
        text = entry.searchable_text.lower()
        weight = time_weight(entry.created_at, now)
        bullish = count_keywords(text, self._bullish_words) * weight
        bearish = count_keywords(text, self._bearish_words) * weight

        for tag in entry.tags:
            topic = tag.lower()
            if topic in self._skip_tags or len(topic) < 2:
                continue

            cluster = clusters.setdefault(topic, _Cluster(topic))
            if entry.id in cluster.entry_ids:
                # Same entry tagged "NVDA" and "nvda": count once, keep the ticker
                if is_ticker_tag(tag):
                    cluster.tickers.add(tag)
                continue

            cluster.entry_ids.append(entry.id)
            cluster.titles.append(entry.title)
            cluster.source_types.add(entry.source_type.value)
            if entry.source:
                cluster.sources.add(entry.source)
            cluster.bullish += bullish
            cluster.bearish += bearish
            if is_ticker_tag(tag):
                cluster.tickers.add(tag)

    def detect(self, ctx: DetectionContext) -> list[Opportunity]:
        clusters: dict[str, _Cluster] = {}
        for entry in ctx.entries:
            self._add_entry(clusters, entry, ctx.now)

        held = {t.ticker.upper() for t in ctx.open_trades}
        opportunities: list[Opportunity] = []

        for topic in sorted(clusters):
            cluster = clusters[topic]
            count = len(cluster.entry_ids)
            if count < MIN_CLUSTER_SIZE or cluster.diversity < MIN_SOURCE_DIVERSITY:
                continue

            alignment = cluster.alignment()
            base_confidence = min(count / 10.0, 0.7)
            diversity_boost = 1.0 + 0.15 * (cluster.diversity - 1)
            alignment_factor = 0.5 + 0.5 * alignment
            confidence = min(base_confidence * diversity_boost * alignment_factor, 1.0)
            if confidence < MIN_CONFIDENCE:
                logger.debug("Cluster %r below confidence floor (%.2f)", topic, confidence)
                continue

            direction = cluster.dominant_direction()
            direction_label = direction.value if direction else "mixed"
            tickers = sorted(cluster.tickers)
            overlap = sorted(cluster.tickers & held)

            action_parts: list[str] = []
            if overlap:
                action_parts.append(f"⚠️ Already have position in {overlap[0]}")
            action_parts.append(
                f"Investigate '{topic}' — {direction_label} signals "
                f"from {cluster.diversity} sources"
            )

            opportunities.append(Opportunity(
                strategy=self.name,
                signal_type="cross_intel_convergence",
                title=(
                    f"Convergence: '{topic}' — {count} entries, "
                    f"{cluster.diversity} sources, {direction_label} alignment"
                ),
                description=(
                    f"{count} entries from [{', '.join(sorted(cluster.source_types))}] "
                    f"converge on '{topic}' (alignment: {alignment * 100:.0f}%). "
                    f"Sample: {'; '.join(cluster.titles[:3])}"
                ),
                confidence=confidence,
                market_ticker=tickers[0] if tickers else None,
                suggested_direction=direction,
                suggested_action=". ".join(action_parts),
                supporting_entries=tuple(cluster.entry_ids),
                detected_at=ctx.now,
            ))

        return opportunities
