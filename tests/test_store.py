"""Tests for the SQLite entry and trade store."""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path

import pytest

from intel_edge.common.errors import RepositoryError
from intel_edge.intel.models import (
    Category,
    QueryFilter,
    SourceType,
    Trade,
    TradeDirection,
    TradeFilter,
    TradeOutcome,
)
from intel_edge.intel.store import IntelStore


@pytest.mark.asyncio
async def test_entry_round_trip(store, make_entry):
    entry = make_entry(
        title="KXHIGHNY band",
        body="bid 28 ask 31",
        tags=("Kalshi", "KXHIGHNY"),
        category=Category.MARKET,
        source="kalshi",
        source_type=SourceType.INTERNAL,
        confidence=0.8,
        metadata={"ticker": "KXHIGHNY-26FEB27-B40.5", "midpoint": 29.5},
    )
    await store.add_entry(entry)

    loaded = await store.get_entry(entry.id)
    assert loaded == entry


@pytest.mark.asyncio
async def test_get_missing_entry(store):
    assert await store.get_entry("nope") is None


@pytest.mark.asyncio
async def test_query_newest_first_with_window(store, make_entry, now):
    old = make_entry(title="old", age_hours=72)
    mid = make_entry(title="mid", age_hours=5)
    new = make_entry(title="new", age_hours=1)
    for e in (old, mid, new):
        await store.add_entry(e)

    recent = await store.query(QueryFilter(since=now - timedelta(hours=48)))
    assert [e.title for e in recent] == ["new", "mid"]

    limited = await store.query(QueryFilter(limit=1))
    assert [e.title for e in limited] == ["new"]

    until = await store.query(QueryFilter(until=now - timedelta(hours=2)))
    assert [e.title for e in until] == ["mid", "old"]


@pytest.mark.asyncio
async def test_query_tag_case_insensitive(store, make_entry):
    await store.add_entry(make_entry(title="a", tags=("NVDA",)))
    await store.add_entry(make_entry(title="b", tags=("amd",)))

    results = await store.query(QueryFilter(tag="nvda"))
    assert [e.title for e in results] == ["a"]
    assert results[0].tags == ("NVDA",)


@pytest.mark.asyncio
async def test_query_by_category(store, make_entry):
    await store.add_entry(make_entry(title="m", category=Category.MARKET))
    await store.add_entry(make_entry(title="s", category=Category.SOCIAL))

    results = await store.query(QueryFilter(category=Category.SOCIAL))
    assert [e.title for e in results] == ["s"]


@pytest.mark.asyncio
async def test_trades_open_and_resolved(store):
    open_trade = Trade(ticker="KXHIGHNY-26FEB27-B40.5", direction=TradeDirection.YES,
                       contracts=10, entry_price=30.0, series_ticker="KXHIGHNY")
    closed = Trade(ticker="NVDA", direction=TradeDirection.LONG, contracts=5, entry_price=120.0)
    await store.add_trade(open_trade)
    await store.add_trade(closed)

    updated = await store.resolve_trade(closed.id, TradeOutcome.WIN, 500, exit_price=130.0)
    assert updated == 1
    assert await store.resolve_trade(closed.id, TradeOutcome.LOSS, -100) == 0

    open_trades = await store.list_trades(TradeFilter(resolved=False))
    assert [t.id for t in open_trades] == [open_trade.id]
    assert open_trades[0].series_ticker == "KXHIGHNY"
    assert not open_trades[0].is_resolved

    resolved = await store.list_trades(TradeFilter(resolved=True))
    assert resolved[0].outcome is TradeOutcome.WIN
    assert resolved[0].pnl_cents == 500
    assert resolved[0].exit_price == 130.0
    assert resolved[0].resolved_at is not None

    assert len(await store.list_trades(TradeFilter())) == 2


@pytest.mark.asyncio
async def test_duplicate_id_raises_repository_error(store, make_entry):
    entry = make_entry(id="dup")
    await store.add_entry(entry)
    with pytest.raises(RepositoryError):
        await store.add_entry(entry)


@pytest.mark.asyncio
async def test_unusable_path_raises_repository_error(tmp_db):
    tmp_db.parent.mkdir(parents=True, exist_ok=True)
    blocker = tmp_db.parent / "blocker"
    blocker.write_text("not a directory")
    store = IntelStore(Path(blocker) / "sub" / "intel.db")
    with pytest.raises(RepositoryError):
        await store.query(QueryFilter())
