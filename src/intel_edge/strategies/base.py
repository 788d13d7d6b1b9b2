"""Strategy protocol and shared detection types."""

from __future__ import annotations

import dataclasses
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Iterable, Protocol

from intel_edge.common.errors import ValidationError
from intel_edge.common.types import JsonDict
from intel_edge.intel.models import IntelEntry, Trade, TradeDirection, validate_confidence


class Direction(Enum):
    """Suggested side of an opportunity.

    BULLISH/BEARISH describe directional sentiment on an underlying.
    YES/NO describe a side of a binary contract. The two vocabularies are
    only converted explicitly, via ``as_binary`` / ``as_sentiment``.
    """

    BULLISH = "bullish"
    BEARISH = "bearish"
    YES = "yes"
    NO = "no"

    def __str__(self) -> str:
        return self.value

    @property
    def is_binary(self) -> bool:
        return self in (Direction.YES, Direction.NO)

    def as_binary(self) -> Direction:
        """Bullish on a binary contract means buying YES."""
        if self is Direction.BULLISH:
            return Direction.YES
        if self is Direction.BEARISH:
            return Direction.NO
        return self

    def as_sentiment(self) -> Direction:
        if self is Direction.YES:
            return Direction.BULLISH
        if self is Direction.NO:
            return Direction.BEARISH
        return self

    def as_trade_direction(self) -> TradeDirection:
        return {
            Direction.BULLISH: TradeDirection.LONG,
            Direction.BEARISH: TradeDirection.SHORT,
            Direction.YES: TradeDirection.YES,
            Direction.NO: TradeDirection.NO,
        }[self]


def compute_score(
    confidence: float,
    edge_cents: float | None = None,
    liquidity: float | None = None,
) -> float:
    """Composite score: confidence x edge x sqrt(liquidity).

    Without an edge estimate, ``confidence * 100`` stands in for it.
    Unknown liquidity counts as 1.0 (no penalty); thin markets are dampened
    by the square root.
    """
    base = confidence * edge_cents if edge_cents is not None else confidence * 100.0
    liq = 1.0 if liquidity is None else liquidity
    liq_factor = math.sqrt(min(max(liq, 0.0), 1.0))
    return base * liq_factor


def dedupe_ids(ids: Iterable[str]) -> tuple[str, ...]:
    """Unique IDs in order of first appearance."""
    return tuple(dict.fromkeys(ids))


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Opportunity:
    """A candidate trade signal emitted by a strategy.

    Detection fills everything but ``market_price`` and
    ``suggested_size_cents``; price resolution and Kelly sizing attach those
    by producing new values (``with_market_price``, ``with_sizing``).

    Attributes:
        strategy: Name of the strategy that emitted it
        signal_type: Kind of signal (e.g. "band_sum_arbitrage")
        title: Human-readable title, also the ranking tie-breaker
        description: Longer explanation
        confidence: 0-1
        supporting_entries: IDs of the entries behind the signal, never empty
        edge_cents: Estimated edge per contract, if known
        market_ticker: Series or equity ticker to trade
        suggested_direction: Side to take, if any
        suggested_action: Free-text instruction
        liquidity: 0-1, None when volume is unknown
        score: ``compute_score(confidence, edge_cents, liquidity)`` unless given
        market_price: Resolved price in cents
        suggested_size_cents: Kelly-sized position in cents
        detected_at: Detection timestamp
    """

    strategy: str
    signal_type: str
    title: str
    description: str
    confidence: float
    supporting_entries: tuple[str, ...]
    edge_cents: float | None = None
    market_ticker: str | None = None
    suggested_direction: Direction | None = None
    suggested_action: str | None = None
    liquidity: float | None = None
    score: float | None = None
    market_price: float | None = None
    suggested_size_cents: int | None = None
    detected_at: datetime = field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        object.__setattr__(self, "confidence", validate_confidence(self.confidence))
        supporting = dedupe_ids(self.supporting_entries)
        if not supporting:
            raise ValidationError(f"Opportunity {self.title!r} has no supporting entries")
        object.__setattr__(self, "supporting_entries", supporting)
        if self.liquidity is not None and not 0.0 <= self.liquidity <= 1.0:
            raise ValidationError(f"Liquidity must be between 0.0 and 1.0, got {self.liquidity}")
        if self.score is None:
            object.__setattr__(
                self, "score", compute_score(self.confidence, self.edge_cents, self.liquidity)
            )

    def with_market_price(self, price_cents: float) -> Opportunity:
        return dataclasses.replace(self, market_price=price_cents)

    def with_sizing(self, size_cents: int) -> Opportunity:
        return dataclasses.replace(self, suggested_size_cents=size_cents)

    def to_dict(self) -> JsonDict:
        return {
            "strategy": self.strategy,
            "signal_type": self.signal_type,
            "title": self.title,
            "description": self.description,
            "confidence": self.confidence,
            "edge_cents": self.edge_cents,
            "market_ticker": self.market_ticker,
            "suggested_direction": (
                self.suggested_direction.value if self.suggested_direction else None
            ),
            "suggested_action": self.suggested_action,
            "supporting_entries": list(self.supporting_entries),
            "score": self.score,
            "liquidity": self.liquidity,
            "market_price": self.market_price,
            "suggested_size_cents": self.suggested_size_cents,
            "detected_at": self.detected_at.isoformat(),
        }


@dataclass(frozen=True)
class DetectionContext:
    """Read-only snapshot handed to every strategy in a scan."""

    entries: tuple[IntelEntry, ...]
    open_trades: tuple[Trade, ...] = ()
    window_hours: int = 48
    now: datetime = field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        object.__setattr__(self, "entries", tuple(self.entries))
        object.__setattr__(self, "open_trades", tuple(self.open_trades))


class Strategy(Protocol):
    """Protocol for detection strategies run by the scanner.

    Implementations keep no mutable state between calls and never modify
    the context. Errors are raised; the scanner isolates them.
    """

    name: str

    def detect(self, ctx: DetectionContext) -> list[Opportunity]:
        """Scan the context and return zero or more opportunities."""
        ...
