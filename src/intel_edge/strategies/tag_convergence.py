"""Tag convergence: many entries from different provenances on one tag."""

from __future__ import annotations

import logging
from collections import defaultdict

from intel_edge.intel.models import IntelEntry
from intel_edge.strategies.base import DetectionContext, Opportunity
from intel_edge.strategies.lexicon import GENERIC_TAGS

logger = logging.getLogger(__name__)

MIN_CLUSTER_SIZE = 3
MIN_SOURCE_DIVERSITY = 2
MIN_CONFIDENCE = 0.35


class TagConvergenceStrategy:
    """Flag tags that several independent source types are talking about."""

    name = "tag_convergence"

    def __init__(self, skip_tags: frozenset[str] = GENERIC_TAGS) -> None:
        self._skip_tags = skip_tags

    def _clusters(self, entries: tuple[IntelEntry, ...]) -> dict[str, list[IntelEntry]]:
        clusters: dict[str, list[IntelEntry]] = defaultdict(list)
        for entry in entries:
            seen: set[str] = set()
            for tag in entry.tags_lower:
                if tag in self._skip_tags or len(tag) < 2 or tag in seen:
                    continue
                seen.add(tag)
                clusters[tag].append(entry)
        return clusters

    def detect(self, ctx: DetectionContext) -> list[Opportunity]:
        opportunities: list[Opportunity] = []

        for tag, entries in sorted(self._clusters(ctx.entries).items()):
            if len(entries) < MIN_CLUSTER_SIZE:
                continue

            source_types = sorted({e.source_type.value for e in entries})
            diversity = len(source_types)
            if diversity < MIN_SOURCE_DIVERSITY:
                continue

            base_confidence = min(len(entries) / 8.0, 0.8)
            diversity_boost = 1.0 + 0.15 * (diversity - 1)
            confidence = min(base_confidence * diversity_boost, 1.0)
            if confidence < MIN_CONFIDENCE:
                logger.debug("Tag %r below confidence floor (%.2f)", tag, confidence)
                continue

            opportunities.append(Opportunity(
                strategy=self.name,
                signal_type="tag_convergence",
                title=(
                    f"Convergence on '{tag}' — {len(entries)} entries "
                    f"from {diversity} source types"
                ),
                description=(
                    f"Tag '{tag}' appears in {len(entries)} entries across sources: "
                    f"{', '.join(source_types)}. Multi-source convergence suggests "
                    f"higher signal reliability."
                ),
                confidence=confidence,
                suggested_action=f"Investigate '{tag}' for tradeable thesis",
                supporting_entries=tuple(e.id for e in entries),
                detected_at=ctx.now,
            ))

        return opportunities
