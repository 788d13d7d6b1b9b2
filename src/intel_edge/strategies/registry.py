"""Default strategy set run by the scanner."""

from __future__ import annotations

from intel_edge.strategies.base import Strategy
from intel_edge.strategies.convergence import ConvergenceStrategy
from intel_edge.strategies.cross_market import CrossMarketStrategy
from intel_edge.strategies.earnings_momentum import EarningsMomentumStrategy
from intel_edge.strategies.tag_convergence import TagConvergenceStrategy


def default_strategies() -> list[Strategy]:
    """Fresh instances of every built-in strategy, in run order."""
    return [
        TagConvergenceStrategy(),
        ConvergenceStrategy(),
        CrossMarketStrategy(),
        EarningsMomentumStrategy(),
    ]


def get_strategy(name: str) -> Strategy | None:
    """Look up a built-in strategy by name. Returns None if unknown."""
    for strategy in default_strategies():
        if strategy.name == name:
            return strategy
    return None
