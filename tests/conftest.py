"""Shared test fixtures."""

from __future__ import annotations

import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from intel_edge.intel.models import Category, IntelEntry, SourceType
from intel_edge.intel.store import IntelStore
from intel_edge.strategies.base import DetectionContext, Opportunity


@pytest.fixture
def now():
    return datetime.now(timezone.utc)


@pytest.fixture
def make_entry(now):
    """Factory for entries; ``age_hours`` sets created_at relative to ``now``."""
    counter = {"n": 0}

    def _make(
        title: str = "Entry",
        body: str = "",
        tags=(),
        source_type: SourceType = SourceType.EXTERNAL,
        category: Category = Category.GENERAL,
        confidence: float = 0.5,
        metadata=None,
        source=None,
        age_hours: float = 0.0,
        id: str | None = None,
    ) -> IntelEntry:
        counter["n"] += 1
        return IntelEntry(
            id=id or f"e{counter['n']}",
            category=category,
            title=title,
            body=body,
            tags=tuple(tags),
            confidence=confidence,
            source=source,
            source_type=source_type,
            metadata=metadata,
            created_at=now - timedelta(hours=age_hours),
        )

    return _make


@pytest.fixture
def make_ctx(now):
    def _make(entries, open_trades=()) -> DetectionContext:
        return DetectionContext(entries=entries, open_trades=open_trades, now=now)

    return _make


@pytest.fixture
def make_opportunity():
    """Factory for opportunities with sensible defaults."""

    def _make(title: str = "Opp", **kwargs) -> Opportunity:
        kwargs.setdefault("strategy", "test")
        kwargs.setdefault("signal_type", "test")
        kwargs.setdefault("description", "")
        kwargs.setdefault("confidence", 0.7)
        kwargs.setdefault("supporting_entries", ("e1",))
        return Opportunity(title=title, **kwargs)

    return _make


@pytest.fixture
def tmp_db():
    """Temporary database file path."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir) / "test_intel.db"


@pytest.fixture
def store(tmp_db):
    return IntelStore(tmp_db)


@pytest.fixture
def band_entries(make_entry):
    """Three KXHIGHNY band contracts for one expiry, midpoints summing to 85c."""
    return [
        make_entry(
            title=f"KXHIGHNY band {strike}",
            tags=("kalshi", "kxhighny"),
            category=Category.MARKET,
            source="kalshi",
            metadata={
                "ticker": f"KXHIGHNY-26FEB27-B{strike}",
                "series": "KXHIGHNY",
                "midpoint": mid,
                "close_time": "2026-02-27T23:59:00Z",
            },
        )
        for strike, mid in (("38.5", 20.0), ("40.5", 30.0), ("42.5", 35.0))
    ]
