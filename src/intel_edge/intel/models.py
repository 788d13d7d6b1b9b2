"""Intel entry and trade data models."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from intel_edge.common.errors import ValidationError
from intel_edge.common.types import JsonDict


class _ParseableEnum(Enum):
    """Enum parsed case-insensitively from its lowercase string value."""

    @classmethod
    def parse(cls, raw: str):
        value = raw.strip().lower()
        for member in cls:
            if member.value == value:
                return member
        raise ValidationError(f"Unknown {cls.__name__}: {raw!r}")

    def __str__(self) -> str:
        return self.value


class Category(_ParseableEnum):
    """Topic of an intel entry."""

    MARKET = "market"
    NEWSLETTER = "newsletter"
    SOCIAL = "social"
    TRADING = "trading"
    OPPORTUNITY = "opportunity"
    COMPETITOR = "competitor"
    GENERAL = "general"


class SourceType(_ParseableEnum):
    """Provenance of an intel entry."""

    EXTERNAL = "external"
    INTERNAL = "internal"

    @classmethod
    def parse(cls, raw: str) -> SourceType:
        aliases = {"ext": cls.EXTERNAL, "int": cls.INTERNAL}
        alias = aliases.get(raw.strip().lower())
        if alias is not None:
            return alias
        return super().parse(raw)


class TradeDirection(_ParseableEnum):
    LONG = "long"
    SHORT = "short"
    YES = "yes"
    NO = "no"


class TradeOutcome(_ParseableEnum):
    WIN = "win"
    LOSS = "loss"
    SCRATCH = "scratch"


def validate_confidence(value: float) -> float:
    """Return ``value`` as a float, or raise if it is outside [0, 1]."""
    value = float(value)
    if not 0.0 <= value <= 1.0:
        raise ValidationError(f"Confidence must be between 0.0 and 1.0, got {value}")
    return value


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class IntelEntry:
    """A single tagged intelligence record.

    Attributes:
        category: Topic of the entry
        title: Short headline
        body: Free text
        tags: Ordered tags; case is preserved but matching is case-insensitive
        confidence: Reliability of the entry (0-1), validated on construction
        actionable: Whether the author flagged it as tradeable
        source: Optional source name (e.g. "kalshi", "yahoo")
        source_type: External feed or internal note
        metadata: Optional structured payload (prices, tickers, sentiment)
        id: Unique identifier
        created_at: When the entry was recorded
    """

    category: Category
    title: str
    body: str
    tags: tuple[str, ...] = ()
    confidence: float = 0.5
    actionable: bool = False
    source: str | None = None
    source_type: SourceType = SourceType.EXTERNAL
    metadata: JsonDict | None = None
    id: str = field(default_factory=_new_id)
    created_at: datetime = field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        object.__setattr__(self, "confidence", validate_confidence(self.confidence))
        object.__setattr__(self, "tags", tuple(self.tags))

    @property
    def searchable_text(self) -> str:
        return f"{self.title} {self.body}"

    @property
    def tags_lower(self) -> list[str]:
        return [t.lower() for t in self.tags]

    def meta(self, key: str):
        """Look up a metadata field, or None."""
        if not isinstance(self.metadata, dict):
            return None
        return self.metadata.get(key)


@dataclass(frozen=True)
class Trade:
    """A position taken on a market (read-only input to detection)."""

    ticker: str
    direction: TradeDirection
    contracts: int
    entry_price: float
    series_ticker: str | None = None
    thesis: str | None = None
    outcome: TradeOutcome | None = None
    pnl_cents: int | None = None
    exit_price: float | None = None
    id: str = field(default_factory=_new_id)
    created_at: datetime = field(default_factory=_utcnow)
    resolved_at: datetime | None = None

    @property
    def is_resolved(self) -> bool:
        return self.outcome is not None


@dataclass(frozen=True)
class QueryFilter:
    """Entry query filter. Results are newest first."""

    category: Category | None = None
    tag: str | None = None
    since: datetime | None = None
    until: datetime | None = None
    limit: int | None = None


@dataclass(frozen=True)
class TradeFilter:
    since: datetime | None = None
    until: datetime | None = None
    resolved: bool | None = None
    limit: int | None = None
