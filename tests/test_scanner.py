"""Tests for the opportunity scanner."""

from __future__ import annotations

import threading
import time
from unittest.mock import AsyncMock

import pytest

from intel_edge.common.errors import RepositoryError
from intel_edge.intel.models import SourceType, Trade, TradeDirection
from intel_edge.signals.scanner import rank_opportunities, run_strategies, scan_opportunities
from intel_edge.strategies.base import DetectionContext
from intel_edge.strategies.registry import default_strategies, get_strategy


class _FixedStrategy:
    def __init__(self, name, opportunities):
        self.name = name
        self._opportunities = opportunities

    def detect(self, ctx):
        return list(self._opportunities)


class _FailingStrategy:
    name = "broken"

    def detect(self, ctx):
        raise RuntimeError("boom")


class _SlowStrategy:
    name = "slow"

    def detect(self, ctx):
        time.sleep(0.5)
        return []


class _RecordingStrategy:
    name = "recording"

    def __init__(self):
        self.contexts = []

    def detect(self, ctx):
        self.contexts.append(ctx)
        return []


def _repos(entries=(), trades=()):
    intel_repo = AsyncMock()
    intel_repo.query = AsyncMock(return_value=list(entries))
    trade_repo = AsyncMock()
    trade_repo.list_trades = AsyncMock(return_value=list(trades))
    return intel_repo, trade_repo


class TestRanking:
    def test_sorted_by_score_then_title(self, make_opportunity):
        opps = [
            make_opportunity("b", confidence=0.5),
            make_opportunity("a", confidence=0.5),
            make_opportunity("c", confidence=0.9),
        ]
        assert [o.title for o in rank_opportunities(opps)] == ["c", "a", "b"]

    def test_min_score_and_limit(self, make_opportunity):
        opps = [make_opportunity(f"o{i}", confidence=i / 10) for i in range(10)]
        ranked = rank_opportunities(opps, min_score=50.0, limit=3)
        assert [o.title for o in ranked] == ["o9", "o8", "o7"]

    def test_limit_is_prefix_of_unlimited(self, make_opportunity):
        opps = [make_opportunity(f"o{i}", confidence=(i % 4) / 4) for i in range(12)]
        full = rank_opportunities(opps)
        assert rank_opportunities(opps, limit=5) == full[:5]


@pytest.mark.asyncio
async def test_failing_strategy_is_isolated(make_opportunity, make_entry, now):
    good = _FixedStrategy("good", [make_opportunity("x")])
    ctx = DetectionContext(entries=(make_entry(),), now=now)

    opps, failed = await run_strategies([_FailingStrategy(), good], ctx)

    assert failed == 1
    assert [o.title for o in opps] == ["x"]


@pytest.mark.asyncio
async def test_slow_strategy_times_out(make_opportunity, now):
    good = _FixedStrategy("good", [make_opportunity("x")])
    ctx = DetectionContext(entries=(), now=now)

    opps, failed = await run_strategies([_SlowStrategy(), good], ctx, timeout=0.05)

    assert failed == 1
    assert len(opps) == 1


@pytest.mark.asyncio
async def test_hung_strategy_is_abandoned(now):
    release = threading.Event()

    class _HungStrategy:
        name = "hung"

        def detect(self, ctx):
            release.wait(5.0)
            return []

    started = time.monotonic()
    try:
        opps, failed = await run_strategies(
            [_HungStrategy()], DetectionContext(entries=(), now=now), timeout=0.05,
        )
        elapsed = time.monotonic() - started
        workers = [t for t in threading.enumerate() if t.name == "strategy-hung"]
    finally:
        release.set()

    assert failed == 1
    assert opps == []
    assert elapsed < 1.0
    assert workers and all(t.daemon for t in workers)


@pytest.mark.asyncio
async def test_results_in_registration_order(make_opportunity, now):
    first = _FixedStrategy("first", [make_opportunity("z")])
    second = _FixedStrategy("second", [make_opportunity("a")])
    opps, _ = await run_strategies([first, second], DetectionContext(entries=(), now=now))
    assert [o.title for o in opps] == ["z", "a"]


@pytest.mark.asyncio
async def test_scan_counts_and_ranks(make_opportunity, make_entry):
    intel_repo, trade_repo = _repos(entries=[make_entry(), make_entry()])
    strategies = [
        _FixedStrategy("low", [make_opportunity("low", confidence=0.2)]),
        _FailingStrategy(),
        _FixedStrategy("high", [make_opportunity("high", confidence=0.9)]),
    ]

    scan = await scan_opportunities(intel_repo, trade_repo, strategies, window_hours=24)

    assert scan.entries_scanned == 2
    assert scan.strategies_run == 2
    assert scan.strategies_failed == 1
    assert [o.title for o in scan.opportunities] == ["high", "low"]
    assert scan.total_opportunities == 2
    assert scan.to_dict()["opportunities"][0]["title"] == "high"


@pytest.mark.asyncio
async def test_scan_filters_and_limits(make_opportunity):
    intel_repo, trade_repo = _repos()
    strategy = _FixedStrategy(
        "s", [make_opportunity(f"o{i}", confidence=i / 10) for i in range(10)],
    )

    scan = await scan_opportunities(
        intel_repo, trade_repo, [strategy], window_hours=24, min_score=30.0, result_limit=2,
    )
    assert [o.title for o in scan.opportunities] == ["o9", "o8"]


@pytest.mark.asyncio
async def test_scan_queries_window_and_open_trades(now):
    intel_repo, trade_repo = _repos()
    await scan_opportunities(intel_repo, trade_repo, [], window_hours=12, entry_limit=50)

    entry_filter = intel_repo.query.call_args.args[0]
    assert entry_filter.limit == 50
    assert abs((now - entry_filter.since).total_seconds() - 12 * 3600) < 60

    trade_filter = trade_repo.list_trades.call_args.args[0]
    assert trade_filter.resolved is False
    assert trade_filter.limit == 100


@pytest.mark.asyncio
async def test_context_carries_open_trades(make_entry):
    trade = Trade(ticker="NVDA", direction=TradeDirection.LONG, contracts=1, entry_price=1.0)
    intel_repo, trade_repo = _repos(entries=[make_entry()], trades=[trade])
    recorder = _RecordingStrategy()

    await scan_opportunities(intel_repo, trade_repo, [recorder], window_hours=48)

    ctx = recorder.contexts[0]
    assert ctx.open_trades == (trade,)
    assert ctx.window_hours == 48
    assert len(ctx.entries) == 1


@pytest.mark.asyncio
async def test_repository_error_aborts_scan():
    intel_repo, trade_repo = _repos()
    intel_repo.query = AsyncMock(side_effect=RepositoryError("disk gone"))

    with pytest.raises(RepositoryError):
        await scan_opportunities(intel_repo, trade_repo, default_strategies(), window_hours=48)


@pytest.mark.asyncio
async def test_default_strategies_end_to_end(band_entries, make_entry):
    entries = band_entries + [
        make_entry(tags=("fed",), source_type=SourceType.INTERNAL),
        make_entry(tags=("fed",), source_type=SourceType.EXTERNAL),
        make_entry(tags=("fed",), source_type=SourceType.EXTERNAL),
    ]
    intel_repo, trade_repo = _repos(entries=entries)

    scan = await scan_opportunities(intel_repo, trade_repo, default_strategies(), window_hours=48)

    assert scan.strategies_failed == 0
    assert scan.strategies_run == 4
    strategies = {o.strategy for o in scan.opportunities}
    assert {"cross_market", "tag_convergence"} <= strategies
    scores = [o.score for o in scan.opportunities]
    assert scores == sorted(scores, reverse=True)
    assert all(o.supporting_entries for o in scan.opportunities)


def test_registry_lookup():
    assert [s.name for s in default_strategies()] == [
        "tag_convergence", "convergence", "cross_market", "earnings_momentum",
    ]
    assert get_strategy("cross_market").name == "cross_market"
    assert get_strategy("nope") is None
