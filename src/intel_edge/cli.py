"""Typer CLI: intel-edge add, trade, resolve-trade, opportunities, execute, kelly."""

from __future__ import annotations

import asyncio
import json
from typing import Any, Coroutine, List, Optional

import typer
from rich.console import Console

from intel_edge.common.errors import IntelEdgeError

app = typer.Typer(
    name="intel-edge",
    help="Intel-driven prediction market opportunity scanner and trade planner",
    no_args_is_help=True,
)
console = Console()


def _run(coro: Coroutine[Any, Any, Any]) -> Any:
    """Run a coroutine, turning domain errors into a red message and exit 1."""
    try:
        return asyncio.run(coro)
    except IntelEdgeError as exc:
        console.print(f"[red]Error: {exc}[/red]")
        raise typer.Exit(code=1)


def _dollars_to_cents(value: float) -> int:
    return int(round(value * 100))


@app.command()
def add(
    title: str = typer.Argument(help="Short headline"),
    body: str = typer.Option("", "--body", "-b", help="Entry text"),
    category: str = typer.Option("general", "--category", "-c", help="Entry category"),
    tags: Optional[List[str]] = typer.Option(None, "--tag", "-t", help="Tag (repeatable)"),
    confidence: float = typer.Option(0.5, "--confidence", help="Reliability, 0-1"),
    actionable: bool = typer.Option(False, "--actionable", help="Flag as tradeable"),
    source: Optional[str] = typer.Option(None, "--source", help="Source name"),
    source_type: str = typer.Option("external", "--source-type", help="external or internal"),
    metadata: Optional[str] = typer.Option(None, "--metadata", help="JSON object"),
) -> None:
    """Record an intel entry."""
    from intel_edge.intel.models import Category, IntelEntry, SourceType
    from intel_edge.intel.store import IntelStore

    meta = None
    if metadata is not None:
        try:
            meta = json.loads(metadata)
        except json.JSONDecodeError as exc:
            raise typer.BadParameter(f"invalid JSON: {exc}", param_hint="--metadata")
        if not isinstance(meta, dict):
            raise typer.BadParameter("must be a JSON object", param_hint="--metadata")

    async def _add() -> str:
        entry = IntelEntry(
            category=Category.parse(category),
            title=title,
            body=body,
            tags=tuple(tags or ()),
            confidence=confidence,
            actionable=actionable,
            source=source,
            source_type=SourceType.parse(source_type),
            metadata=meta,
        )
        return await IntelStore().add_entry(entry)

    entry_id = _run(_add())
    console.print(f"[green]Added entry {entry_id}[/green]")


@app.command()
def trade(
    ticker: str = typer.Argument(help="Contract or equity ticker"),
    direction: str = typer.Option(..., "--direction", "-d", help="long, short, yes or no"),
    contracts: int = typer.Option(..., "--contracts", "-n", help="Number of contracts"),
    price: float = typer.Option(..., "--price", "-p", help="Entry price"),
    series: Optional[str] = typer.Option(None, "--series", help="Series ticker"),
    thesis: Optional[str] = typer.Option(None, "--thesis", help="Why the trade was taken"),
) -> None:
    """Record an open trade."""
    from intel_edge.intel.models import Trade, TradeDirection
    from intel_edge.intel.store import IntelStore

    async def _add() -> str:
        return await IntelStore().add_trade(Trade(
            ticker=ticker.upper(),
            direction=TradeDirection.parse(direction),
            contracts=contracts,
            entry_price=price,
            series_ticker=series.upper() if series else None,
            thesis=thesis,
        ))

    trade_id = _run(_add())
    console.print(f"[green]Recorded trade {trade_id}[/green]")


@app.command(name="resolve-trade")
def resolve_trade(
    trade_id: str = typer.Argument(help="Trade ID"),
    outcome: str = typer.Option(..., "--outcome", help="win, loss or scratch"),
    pnl_cents: int = typer.Option(..., "--pnl", help="Realized P&L in cents"),
    exit_price: Optional[float] = typer.Option(None, "--exit-price", help="Exit price"),
) -> None:
    """Close an open trade."""
    from intel_edge.intel.models import TradeOutcome
    from intel_edge.intel.store import IntelStore

    async def _resolve() -> int:
        return await IntelStore().resolve_trade(
            trade_id, TradeOutcome.parse(outcome), pnl_cents, exit_price,
        )

    if _run(_resolve()) == 0:
        console.print(f"[red]No open trade with ID {trade_id}[/red]")
        raise typer.Exit(code=1)
    console.print(f"[green]Resolved trade {trade_id}[/green]")


@app.command()
def opportunities(
    hours: Optional[int] = typer.Option(None, "--hours", "-H", help="Look-back window in hours"),
    min_score: Optional[float] = typer.Option(None, "--min-score", help="Drop lower scores"),
    limit: Optional[int] = typer.Option(None, "--limit", "-l", help="Max opportunities"),
    strategy: Optional[str] = typer.Option(None, "--strategy", "-s", help="Run one strategy"),
    output: str = typer.Option("table", "--output", "-o", help="Output format: table, json"),
) -> None:
    """Scan recent intel for trade opportunities."""
    from intel_edge.config import get_settings
    from intel_edge.execution.formatters import format_scan_json, format_scan_table
    from intel_edge.intel.store import IntelStore
    from intel_edge.signals.scanner import scan_opportunities
    from intel_edge.strategies.registry import default_strategies, get_strategy

    settings = get_settings()
    if strategy is not None:
        selected = get_strategy(strategy)
        if selected is None:
            console.print(f"[red]Unknown strategy '{strategy}'[/red]")
            raise typer.Exit(code=1)
        strategies = [selected]
    else:
        strategies = default_strategies()

    store = IntelStore(settings.db_path)
    scan = _run(scan_opportunities(
        store,
        store,
        strategies,
        hours if hours is not None else settings.window_hours,
        min_score=min_score,
        entry_limit=settings.entry_limit,
        result_limit=limit,
        strategy_timeout=settings.strategy_timeout,
    ))

    if output == "json":
        typer.echo(format_scan_json(scan))
    else:
        format_scan_table(scan, console)


@app.command()
def execute(
    bankroll: float = typer.Option(..., "--bankroll", help="Bankroll in dollars"),
    min_confidence: Optional[float] = typer.Option(None, "--min-confidence", help="0-1"),
    min_score: Optional[float] = typer.Option(None, "--min-score", help="Minimum score"),
    max_position: Optional[float] = typer.Option(
        None, "--max-position", help="Max single position in dollars",
    ),
    max_daily: Optional[float] = typer.Option(
        None, "--max-daily", help="Max total deployment in dollars",
    ),
    kelly_fraction: Optional[float] = typer.Option(
        None, "--kelly-fraction", help="Kelly multiplier (0.5 = half-Kelly)",
    ),
    hours: Optional[int] = typer.Option(None, "--hours", "-H", help="Look-back window in hours"),
    resolver: str = typer.Option("intel", "--resolver", "-r", help="Price source: intel, kalshi"),
    live: bool = typer.Option(False, "--live", help="Place orders (not supported)"),
    output: str = typer.Option("table", "--output", "-o", help="Output format: table, json"),
) -> None:
    """Build a dry-run trade plan: scan, price, size and filter."""
    from intel_edge.config import get_settings
    from intel_edge.execution.formatters import format_execution_json, format_execution_table
    from intel_edge.execution.models import ExecutionMode
    from intel_edge.execution.pipeline import run_execution
    from intel_edge.intel.store import IntelStore
    from intel_edge.markets.intel_resolver import IntelResolver
    from intel_edge.markets.kalshi import KalshiResolver
    from intel_edge.sizing.kelly import KellyConfig
    from intel_edge.strategies.registry import default_strategies

    settings = get_settings()
    store = IntelStore(settings.db_path)

    if resolver == "intel":
        price_source = IntelResolver(store, settings.price_staleness_hours)
    elif resolver == "kalshi":
        price_source = KalshiResolver()
    else:
        console.print(f"[red]Unknown resolver '{resolver}' (use intel or kalshi)[/red]")
        raise typer.Exit(code=1)

    base = settings.kelly_config()
    kelly_config = KellyConfig(
        fraction=kelly_fraction if kelly_fraction is not None else base.fraction,
        max_position_cents=base.max_position_cents,
        min_edge=base.min_edge,
        max_bankroll_fraction=base.max_bankroll_fraction,
    )

    async def _execute():
        try:
            return await run_execution(
                store,
                store,
                price_source,
                default_strategies(),
                _dollars_to_cents(bankroll),
                mode=ExecutionMode.LIVE if live else ExecutionMode.DRY_RUN,
                window_hours=hours if hours is not None else settings.window_hours,
                min_confidence=(
                    min_confidence if min_confidence is not None else settings.min_confidence
                ),
                min_score=min_score if min_score is not None else settings.min_score,
                max_position_cents=(
                    _dollars_to_cents(max_position) if max_position is not None
                    else settings.max_position_cents
                ),
                max_daily_cents=(
                    _dollars_to_cents(max_daily) if max_daily is not None
                    else settings.max_daily_cents
                ),
                kelly_config=kelly_config,
                entry_limit=settings.entry_limit,
                strategy_timeout=settings.strategy_timeout,
                resolver_timeout=settings.resolver_timeout,
                resolver_concurrency=settings.resolver_concurrency,
            )
        finally:
            if isinstance(price_source, KalshiResolver):
                await price_source.close()

    result = _run(_execute())

    if output == "json":
        typer.echo(format_execution_json(result))
    else:
        format_execution_table(result, console)


@app.command()
def kelly(
    probability: float = typer.Argument(help="Estimated probability, 0-1"),
    price: float = typer.Argument(help="Market price in cents"),
    bankroll: float = typer.Option(..., "--bankroll", help="Bankroll in dollars"),
    kelly_fraction: Optional[float] = typer.Option(None, "--kelly-fraction", help="Kelly multiplier"),
    output: str = typer.Option("table", "--output", "-o", help="Output format: table, json"),
) -> None:
    """Size a single YES position with the Kelly criterion."""
    from intel_edge.config import get_settings
    from intel_edge.execution.formatters import format_kelly
    from intel_edge.sizing.kelly import KellyConfig, compute_kelly

    base = get_settings().kelly_config()
    config = KellyConfig(
        fraction=kelly_fraction if kelly_fraction is not None else base.fraction,
        max_position_cents=base.max_position_cents,
        min_edge=base.min_edge,
        max_bankroll_fraction=base.max_bankroll_fraction,
    )

    sizing = compute_kelly(probability, price, _dollars_to_cents(bankroll), config)
    if sizing is None:
        console.print(
            "[red]Invalid inputs: probability must be in (0, 1), price in (0, 100) "
            "and bankroll > 0[/red]"
        )
        raise typer.Exit(code=1)

    if output == "json":
        typer.echo(json.dumps(sizing.to_dict(), indent=2))
    else:
        format_kelly(sizing, console)


if __name__ == "__main__":
    app()
