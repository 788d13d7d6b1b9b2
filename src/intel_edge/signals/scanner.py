"""Opportunity scanner: run every strategy over one snapshot and rank the output.

Input fetch failures abort the scan. A strategy that raises or overruns its
time budget is logged and counted as failed; the others still report. Each
detector runs on its own daemon thread, so one that never returns is
abandoned rather than waited on at exit.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Sequence

from intel_edge.common.errors import DetectionError
from intel_edge.common.types import JsonDict
from intel_edge.intel.models import QueryFilter, TradeFilter
from intel_edge.intel.repository import IntelRepository, TradeRepository
from intel_edge.strategies.base import DetectionContext, Opportunity, Strategy

logger = logging.getLogger(__name__)

DEFAULT_ENTRY_LIMIT = 500
OPEN_TRADE_LIMIT = 100
DEFAULT_STRATEGY_TIMEOUT = 10.0


@dataclass
class OpportunityScan:
    """Result of one scan across all strategies."""

    scanned_at: datetime
    window_hours: int
    entries_scanned: int
    strategies_run: int
    strategies_failed: int
    opportunities: list[Opportunity] = field(default_factory=list)

    @property
    def total_opportunities(self) -> int:
        return len(self.opportunities)

    def to_dict(self) -> JsonDict:
        return {
            "scanned_at": self.scanned_at.isoformat(),
            "window_hours": self.window_hours,
            "entries_scanned": self.entries_scanned,
            "strategies_run": self.strategies_run,
            "strategies_failed": self.strategies_failed,
            "total_opportunities": self.total_opportunities,
            "opportunities": [o.to_dict() for o in self.opportunities],
        }


def rank_opportunities(
    opportunities: Sequence[Opportunity],
    min_score: float | None = None,
    limit: int | None = None,
) -> list[Opportunity]:
    """Filter by score, sort by score descending then title, and truncate."""
    ranked = [o for o in opportunities if min_score is None or o.score >= min_score]
    ranked.sort(key=lambda o: (-o.score, o.title))
    if limit is not None:
        ranked = ranked[:limit]
    return ranked


def _settle(future: asyncio.Future, result: list[Opportunity] | None, exc: Exception | None) -> None:
    if future.done():
        return
    if exc is not None:
        future.set_exception(exc)
    else:
        future.set_result(result)


def _detect_in_thread(strategy: Strategy, ctx: DetectionContext) -> asyncio.Future:
    """Run ``strategy.detect`` on a daemon thread.

    A hung detector cannot be killed, but as a daemon it does not hold up
    event loop shutdown or interpreter exit; its late result is dropped.
    """
    loop = asyncio.get_running_loop()
    future = loop.create_future()

    def work() -> None:
        try:
            result = strategy.detect(ctx)
        except Exception as exc:
            outcome = (None, exc)
        else:
            outcome = (result, None)
        try:
            loop.call_soon_threadsafe(_settle, future, *outcome)
        except RuntimeError:
            logger.debug("Strategy '%s' finished after its scan ended", strategy.name)

    threading.Thread(target=work, name=f"strategy-{strategy.name}", daemon=True).start()
    return future


async def _run_strategy(
    strategy: Strategy, ctx: DetectionContext, timeout: float,
) -> list[Opportunity]:
    try:
        return await asyncio.wait_for(_detect_in_thread(strategy, ctx), timeout)
    except asyncio.TimeoutError as exc:
        raise DetectionError(f"timed out after {timeout:.1f}s") from exc


async def run_strategies(
    strategies: Sequence[Strategy],
    ctx: DetectionContext,
    timeout: float = DEFAULT_STRATEGY_TIMEOUT,
) -> tuple[list[Opportunity], int]:
    """Run strategies concurrently against one context.

    Returns:
        (opportunities in strategy registration order, number of failures)
    """
    results = await asyncio.gather(
        *(_run_strategy(s, ctx, timeout) for s in strategies),
        return_exceptions=True,
    )

    opportunities: list[Opportunity] = []
    failed = 0
    for strategy, result in zip(strategies, results):
        if isinstance(result, Exception):
            failed += 1
            logger.warning("Strategy '%s' failed: %s", strategy.name, result)
        elif isinstance(result, BaseException):
            raise result
        else:
            logger.debug("Strategy '%s' found %d opportunities", strategy.name, len(result))
            opportunities.extend(result)
    return opportunities, failed


async def scan_opportunities(
    intel_repo: IntelRepository,
    trade_repo: TradeRepository,
    strategies: Sequence[Strategy],
    window_hours: int,
    min_score: float | None = None,
    entry_limit: int | None = None,
    result_limit: int | None = None,
    strategy_timeout: float = DEFAULT_STRATEGY_TIMEOUT,
) -> OpportunityScan:
    """Scan recent intel for opportunities.

    Args:
        intel_repo: Source of entries
        trade_repo: Source of open trades
        strategies: Detectors to run
        window_hours: How far back to look
        min_score: Drop opportunities scoring below this
        entry_limit: Max recent entries to load (default 500)
        result_limit: Max opportunities to return (default unlimited)
        strategy_timeout: Seconds before a strategy counts as failed

    Raises:
        RepositoryError: if entries or trades cannot be loaded
    """
    now = datetime.now(timezone.utc)
    since = now - timedelta(hours=window_hours)

    entries = await intel_repo.query(QueryFilter(
        since=since,
        limit=entry_limit if entry_limit is not None else DEFAULT_ENTRY_LIMIT,
    ))
    open_trades = await trade_repo.list_trades(TradeFilter(
        resolved=False,
        limit=OPEN_TRADE_LIMIT,
    ))

    ctx = DetectionContext(
        entries=tuple(entries),
        open_trades=tuple(open_trades),
        window_hours=window_hours,
        now=now,
    )

    opportunities, failed = await run_strategies(strategies, ctx, strategy_timeout)
    ranked = rank_opportunities(opportunities, min_score, result_limit)

    logger.info(
        "Scanned %d entries with %d strategies (%d failed): %d opportunities",
        len(entries), len(strategies), failed, len(ranked),
    )

    return OpportunityScan(
        scanned_at=now,
        window_hours=window_hours,
        entries_scanned=len(entries),
        strategies_run=len(strategies) - failed,
        strategies_failed=failed,
        opportunities=ranked,
    )
