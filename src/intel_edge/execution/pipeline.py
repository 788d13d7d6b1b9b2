"""Dry-run execution pipeline.

Wires together: opportunity scan → price resolution → Kelly sizing →
trade plan. Price lookups run concurrently under a semaphore, each with its
own timeout, so one unreachable source only costs that opportunity its price.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Sequence

from rich.console import Console

from intel_edge.common.errors import ExecutionError
from intel_edge.execution.models import (
    ExecutionMode,
    ExecutionResult,
    SkippedOpportunity,
    TradePlan,
)
from intel_edge.intel.repository import IntelRepository, TradeRepository
from intel_edge.markets.models import Exchange, MarketResolver, ResolvedMarket
from intel_edge.signals.scanner import scan_opportunities
from intel_edge.sizing.kelly import KellyConfig, compute_kelly
from intel_edge.strategies.base import Direction, Opportunity, Strategy

logger = logging.getLogger(__name__)
console = Console(stderr=True)


@dataclass
class PricingReport:
    """Opportunities after price resolution, in their original order."""

    opportunities: list[Opportunity] = field(default_factory=list)
    resolved: int = 0
    unresolved: int = 0


def size_opportunity(
    opp: Opportunity,
    market: ResolvedMarket,
    bankroll_cents: int,
    kelly_config: KellyConfig,
) -> int | None:
    """Kelly size for an opportunity priced on a binary contract.

    The opportunity's confidence is the estimated probability of its side.
    Bearish / NO signals are sized as a NO purchase at ``100 - price``.
    Equity prices are never sized.
    """
    if market.exchange is not Exchange.KALSHI:
        return None
    price = market.price_cents
    if opp.suggested_direction is not None and opp.suggested_direction.as_binary() is Direction.NO:
        price = 100.0 - price
    sizing = compute_kelly(opp.confidence, price, bankroll_cents, kelly_config)
    if sizing is None:
        return None
    logger.debug(
        "Kelly for %r: %d cents (%s)",
        opp.title, sizing.suggested_size_cents, sizing.binding_constraint,
    )
    return sizing.suggested_size_cents


async def resolve_prices(
    opportunities: Sequence[Opportunity],
    resolver: MarketResolver,
    bankroll_cents: int,
    kelly_config: KellyConfig,
    timeout: float = 5.0,
    concurrency: int = 8,
) -> PricingReport:
    """Attach market prices and, for Kalshi contracts, Kelly sizes.

    Opportunities without a ticker, or already priced, pass through. A lookup
    that fails or times out leaves the opportunity unpriced.
    """
    sem = asyncio.Semaphore(concurrency)

    async def _lookup(ticker: str) -> ResolvedMarket | None:
        async with sem:
            try:
                return await asyncio.wait_for(resolver.resolve(ticker), timeout)
            except asyncio.TimeoutError:
                logger.warning("Price lookup for %s timed out after %.1fs", ticker, timeout)
            except Exception as exc:
                logger.warning("Price lookup for %s failed: %s", ticker, exc)
            return None

    pending = [
        i for i, o in enumerate(opportunities)
        if o.market_ticker and o.market_price is None
    ]
    markets = await asyncio.gather(
        *(_lookup(opportunities[i].market_ticker) for i in pending)
    )

    report = PricingReport(opportunities=list(opportunities))
    for i, market in zip(pending, markets):
        if market is None:
            report.unresolved += 1
            continue
        report.resolved += 1
        opp = opportunities[i].with_market_price(market.price_cents)
        size = size_opportunity(opp, market, bankroll_cents, kelly_config)
        if size is not None:
            opp = opp.with_sizing(size)
        report.opportunities[i] = opp

    return report


def _skip(opp: Opportunity, reason: str) -> SkippedOpportunity:
    return SkippedOpportunity(
        title=opp.title, confidence=opp.confidence, score=opp.score, reason=reason,
    )


def build_trade_plan(
    opportunities: Sequence[Opportunity],
    min_score: float,
    min_confidence: float,
    max_daily_cents: int,
) -> tuple[list[TradePlan], list[SkippedOpportunity], int]:
    """Filter ranked opportunities into a budgeted plan.

    First come, first served in the given (score) order: a trade that would
    push deployment past ``max_daily_cents`` is skipped whole and later,
    cheaper trades are still considered on their own.

    Returns:
        (trades, skipped, total cents deployed)
    """
    trades: list[TradePlan] = []
    skipped: list[SkippedOpportunity] = []
    deployed = 0

    for opp in opportunities:
        if opp.score < min_score:
            skipped.append(_skip(opp, f"Score {opp.score:.2f} < {min_score:.2f} threshold"))
            continue

        if not opp.market_ticker:
            skipped.append(_skip(opp, "No market ticker"))
            continue

        if opp.confidence < min_confidence:
            skipped.append(_skip(
                opp,
                f"Confidence {opp.confidence * 100:.0f}% < "
                f"{min_confidence * 100:.0f}% threshold",
            ))
            continue

        size = opp.suggested_size_cents
        if size is None:
            skipped.append(_skip(opp, "No Kelly sizing available (missing market price)"))
            continue

        if size == 0:
            skipped.append(_skip(opp, "Kelly sizing returned 0 (no edge)"))
            continue

        if deployed + size > max_daily_cents:
            skipped.append(_skip(
                opp,
                f"Daily limit: ${deployed / 100:.2f} deployed + ${size / 100:.2f} "
                f"would exceed ${max_daily_cents / 100:.2f} cap",
            ))
            continue

        direction = opp.suggested_direction.value if opp.suggested_direction else "unknown"
        action = opp.suggested_action or (
            f"Buy {opp.market_ticker} @ {opp.market_price or 0.0:g}¢"
        )
        trades.append(TradePlan(
            ticker=opp.market_ticker,
            direction=direction,
            size_cents=size,
            confidence=opp.confidence,
            score=opp.score,
            edge_cents=opp.edge_cents,
            action=action,
            description=opp.description,
        ))
        deployed += size

    return trades, skipped, deployed


def _clamped(name: str, value: float, low: float, high: float | None = None) -> float:
    clamped = max(value, low) if high is None else min(max(value, low), high)
    if clamped != value:
        logger.warning("%s %s out of range, clamped to %s", name, value, clamped)
        console.print(f"[yellow]{name} {value} out of range, clamped to {clamped}[/yellow]")
    return clamped


async def run_execution(
    intel_repo: IntelRepository,
    trade_repo: TradeRepository,
    resolver: MarketResolver,
    strategies: Sequence[Strategy],
    bankroll_cents: int,
    *,
    mode: ExecutionMode = ExecutionMode.DRY_RUN,
    window_hours: int = 48,
    min_confidence: float = 0.5,
    min_score: float = 0.0,
    max_position_cents: int = 2500,
    max_daily_cents: int = 10_000,
    kelly_config: KellyConfig | None = None,
    entry_limit: int | None = None,
    strategy_timeout: float = 10.0,
    resolver_timeout: float = 5.0,
    resolver_concurrency: int = 8,
    feeds_ingested: int = 0,
    feed_errors: Sequence[str] = (),
) -> ExecutionResult:
    """Run scan → price → size → plan and report every decision.

    Raises:
        ExecutionError: for live mode or non-positive money limits
        RepositoryError: if the scan cannot load its inputs
    """
    if bankroll_cents <= 0:
        raise ExecutionError("bankroll must be > 0")
    if max_daily_cents <= 0:
        raise ExecutionError("max daily deployment must be > 0")
    if max_position_cents <= 0:
        raise ExecutionError("max position must be > 0")
    if mode is ExecutionMode.LIVE:
        raise ExecutionError(
            "Live execution is not implemented. Use dry-run mode to preview trade plans."
        )

    min_confidence = _clamped("min_confidence", min_confidence, 0.0, 1.0)
    min_score = _clamped("min_score", min_score, 0.0)
    base_config = kelly_config or KellyConfig()
    kelly_config = KellyConfig(
        fraction=_clamped("kelly_fraction", base_config.fraction, 0.001, 1.0),
        max_position_cents=max_position_cents,
        min_edge=base_config.min_edge,
        max_bankroll_fraction=base_config.max_bankroll_fraction,
    )

    console.print("[bold]Scanning for opportunities...[/bold]")
    scan = await scan_opportunities(
        intel_repo,
        trade_repo,
        strategies,
        window_hours,
        entry_limit=entry_limit,
        strategy_timeout=strategy_timeout,
    )
    console.print(
        f"  Found [green]{scan.total_opportunities}[/green] opportunities "
        f"from {scan.entries_scanned} entries"
    )
    if scan.strategies_failed:
        console.print(f"  [yellow]{scan.strategies_failed} strategy(ies) failed[/yellow]")

    console.print(f"[bold]Resolving market prices via {resolver.name}...[/bold]")
    pricing = await resolve_prices(
        scan.opportunities,
        resolver,
        bankroll_cents,
        kelly_config,
        timeout=resolver_timeout,
        concurrency=resolver_concurrency,
    )
    console.print(
        f"  Resolved {pricing.resolved} market price(s) ({pricing.unresolved} unresolved)"
    )

    console.print("[bold]Building trade plan...[/bold]")
    trades, skipped, deployed = build_trade_plan(
        pricing.opportunities, min_score, min_confidence, max_daily_cents,
    )

    result = ExecutionResult(
        timestamp=datetime.now(timezone.utc).isoformat(),
        mode=mode,
        bankroll_cents=bankroll_cents,
        feeds_ingested=feeds_ingested,
        feed_errors=list(feed_errors),
        opportunities_scanned=scan.total_opportunities,
        total_deployment_cents=deployed,
        trades=trades,
        skipped=skipped,
    )
    console.print(
        f"  DRY RUN: [green]{result.trades_qualified}[/green] trade(s) qualified, "
        f"${deployed / 100:.2f} total deployment"
    )
    logger.info(
        "Execution dry run: %d qualified, %d skipped, %d cents deployed",
        result.trades_qualified, result.trades_skipped, deployed,
    )
    return result
