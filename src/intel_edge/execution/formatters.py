"""Report formatters: Rich table and JSON."""

from __future__ import annotations

import json

from rich.console import Console
from rich.table import Table

from intel_edge.execution.models import ExecutionResult
from intel_edge.signals.scanner import OpportunityScan
from intel_edge.sizing.kelly import BindingConstraint, KellySizing


def _cents(value: float | None) -> str:
    return "" if value is None else f"{value:.1f}¢"


def format_scan_table(scan: OpportunityScan, console: Console | None = None) -> None:
    """Print ranked opportunities as a Rich table (already in score order)."""
    if console is None:
        console = Console()

    if not scan.opportunities:
        console.print(
            f"[yellow]No opportunities in the last {scan.window_hours}h "
            f"({scan.entries_scanned} entries scanned).[/yellow]"
        )
        return

    table = Table(
        title="Intel Edge Opportunities",
        caption=f"Scanned at {scan.scanned_at.strftime('%Y-%m-%d %H:%M UTC')}",
        show_lines=True,
    )

    table.add_column("Score", justify="right", width=7)
    table.add_column("Conf", justify="right", width=5)
    table.add_column("Strategy", width=16)
    table.add_column("Ticker", width=14)
    table.add_column("Dir", width=8)
    table.add_column("Edge", justify="right", width=7)
    table.add_column("Title", width=50, no_wrap=False)

    for o in scan.opportunities:
        direction = str(o.suggested_direction) if o.suggested_direction else ""
        dir_color = "red" if direction in ("bearish", "no") else "green"
        table.add_row(
            f"{o.score:.1f}",
            f"{o.confidence:.0%}",
            o.strategy,
            o.market_ticker or "",
            f"[{dir_color}]{direction}[/{dir_color}]" if direction else "",
            _cents(o.edge_cents),
            o.title[:100],
        )

    console.print(table)
    console.print(
        f"\n[dim]{scan.total_opportunities} opportunity(ies) from "
        f"{scan.entries_scanned} entries; {scan.strategies_run} strategies ran, "
        f"{scan.strategies_failed} failed[/dim]"
    )


def format_scan_json(scan: OpportunityScan) -> str:
    return json.dumps(scan.to_dict(), indent=2)


def format_execution_table(result: ExecutionResult, console: Console | None = None) -> None:
    """Print the trade plan and skip reasons."""
    if console is None:
        console = Console()

    console.print(
        f"[bold]Execution ({result.mode})[/bold]: bankroll ${result.bankroll_cents / 100:.2f}, "
        f"{result.opportunities_scanned} opportunities scanned"
    )
    for err in result.feed_errors:
        console.print(f"  [yellow]feed error: {err}[/yellow]")

    if result.trades:
        table = Table(title="Trade Plan", show_lines=True)
        table.add_column("Ticker", width=14)
        table.add_column("Dir", width=8)
        table.add_column("Size", justify="right", width=9)
        table.add_column("Conf", justify="right", width=5)
        table.add_column("Score", justify="right", width=7)
        table.add_column("Action", width=50, no_wrap=False)
        for t in result.trades:
            table.add_row(
                t.ticker,
                t.direction,
                f"${t.size_cents / 100:.2f}",
                f"{t.confidence:.0%}",
                f"{t.score:.1f}",
                t.action[:100],
            )
        console.print(table)
    else:
        console.print("[yellow]No trades qualified.[/yellow]")

    if result.skipped:
        table = Table(title="Skipped", show_lines=False)
        table.add_column("Score", justify="right", width=7)
        table.add_column("Title", width=50, no_wrap=False)
        table.add_column("Reason", width=40, no_wrap=False)
        for s in result.skipped:
            table.add_row(f"{s.score:.1f}", s.title[:80], s.reason)
        console.print(table)

    console.print(
        f"\n[dim]{result.trades_qualified} qualified, {result.trades_skipped} skipped, "
        f"${result.total_deployment_cents / 100:.2f} total deployment[/dim]"
    )


def format_execution_json(result: ExecutionResult) -> str:
    return json.dumps(result.to_dict(), indent=2)


def format_kelly(sizing: KellySizing, console: Console | None = None) -> None:
    """Print a single Kelly sizing breakdown."""
    if console is None:
        console = Console()

    console.print("[bold]Kelly Sizing[/bold]")
    console.print(f"  Estimated probability: {sizing.estimated_probability:.1%}")
    console.print(f"  Implied probability:   {sizing.implied_probability:.1%}")
    edge_color = "green" if sizing.edge > 0 else "red"
    console.print(f"  Edge:                  [{edge_color}]{sizing.edge:+.1%}[/{edge_color}]")
    console.print(f"  Full Kelly:            {sizing.full_kelly_fraction:.2%}")
    console.print(f"  Adjusted:              {sizing.adjusted_fraction:.2%}")
    console.print(
        f"  Suggested size:        [bold]${sizing.suggested_size_cents / 100:.2f}[/bold]"
    )
    if sizing.binding_constraint is not BindingConstraint.NONE:
        console.print(f"  Binding constraint:    {sizing.binding_constraint}")
