"""Execution pipeline report records."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum

from intel_edge.common.types import JsonDict


class ExecutionMode(Enum):
    DRY_RUN = "dry_run"
    LIVE = "live"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class TradePlan:
    """A sized trade that passed every filter."""

    ticker: str
    direction: str
    size_cents: int
    confidence: float
    score: float
    edge_cents: float | None
    action: str
    description: str


@dataclass(frozen=True)
class SkippedOpportunity:
    """An opportunity left out of the plan, with the reason why."""

    title: str
    confidence: float
    score: float
    reason: str


@dataclass
class ExecutionResult:
    """Outcome of one execution pipeline run.

    Attributes:
        timestamp: RFC 3339 time of the run
        mode: Always dry_run; live execution is not supported
        bankroll_cents: Bankroll used for sizing
        feeds_ingested: Entries ingested by feeds before the scan
        feed_errors: Feed failures reported by the caller
        opportunities_scanned: Opportunities the scan returned
        total_deployment_cents: Sum of planned trade sizes
        trades: Planned trades in score order
        skipped: Skipped opportunities in score order
    """

    timestamp: str
    mode: ExecutionMode
    bankroll_cents: int
    feeds_ingested: int = 0
    feed_errors: list[str] = field(default_factory=list)
    opportunities_scanned: int = 0
    total_deployment_cents: int = 0
    trades: list[TradePlan] = field(default_factory=list)
    skipped: list[SkippedOpportunity] = field(default_factory=list)

    @property
    def trades_qualified(self) -> int:
        return len(self.trades)

    @property
    def trades_skipped(self) -> int:
        return len(self.skipped)

    def to_dict(self) -> JsonDict:
        return {
            "timestamp": self.timestamp,
            "mode": self.mode.value,
            "bankroll_cents": self.bankroll_cents,
            "feeds_ingested": self.feeds_ingested,
            "feed_errors": list(self.feed_errors),
            "opportunities_scanned": self.opportunities_scanned,
            "trades_qualified": self.trades_qualified,
            "trades_skipped": self.trades_skipped,
            "total_deployment_cents": self.total_deployment_cents,
            "trades": [asdict(t) for t in self.trades],
            "skipped": [asdict(s) for s in self.skipped],
        }
