"""Kelly criterion position sizing for binary contracts.

Kelly fraction for a contract bought at ``price`` cents that pays 100c:

    f* = (b * p - q) / b,   b = (100 - price) / price,   q = 1 - p

Half-Kelly is the default: it gives up a little growth for much lower
variance. Two caps then apply in order, a share of bankroll and a hard
per-position limit; the last cap that binds is reported.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from enum import Enum

from intel_edge.common.types import JsonDict


class BindingConstraint(Enum):
    """Which rule determined the final size."""

    NONE = "none"
    BELOW_MIN_EDGE = "below_min_edge"
    NEGATIVE_KELLY = "negative_kelly"
    MAX_BANKROLL_FRACTION = "max_bankroll_fraction"
    MAX_POSITION_CENTS = "max_position_cents"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class KellyConfig:
    """Sizing configuration.

    Attributes:
        fraction: Multiplier on full Kelly (0.5 = half-Kelly), clamped to [0, 1]
        max_position_cents: Hard cap on any single position
        min_edge: Minimum ``p - implied`` before anything is sized
        max_bankroll_fraction: Max share of bankroll in one position
    """

    fraction: float = 0.5
    max_position_cents: int = 2500
    min_edge: float = 0.05
    max_bankroll_fraction: float = 0.25


@dataclass(frozen=True)
class KellySizing:
    full_kelly_fraction: float
    adjusted_fraction: float
    suggested_size_cents: int
    binding_constraint: BindingConstraint
    estimated_probability: float
    implied_probability: float
    edge: float

    def to_dict(self) -> JsonDict:
        data = asdict(self)
        data["binding_constraint"] = self.binding_constraint.value
        return data


def _round_cents(x: float) -> int:
    """Round half away from zero (sizes are never negative)."""
    return int(math.floor(x + 0.5))


def compute_kelly(
    estimated_prob: float,
    market_price_cents: float,
    bankroll_cents: int,
    config: KellyConfig | None = None,
) -> KellySizing | None:
    """Size a YES position on a binary contract.

    Args:
        estimated_prob: Our probability of the outcome, strictly in (0, 1)
        market_price_cents: Contract price, strictly in (0, 100)
        bankroll_cents: Available bankroll, > 0
        config: Sizing configuration (defaults to ``KellyConfig()``)

    Returns:
        None for invalid inputs. Otherwise a KellySizing; a zero size with
        ``BELOW_MIN_EDGE`` or ``NEGATIVE_KELLY`` means "no position".
    """
    if config is None:
        config = KellyConfig()

    if not 0.0 < estimated_prob < 1.0:
        return None
    if not 0.0 < market_price_cents < 100.0:
        return None
    if bankroll_cents <= 0:
        return None

    implied_prob = market_price_cents / 100.0
    edge = estimated_prob - implied_prob

    if edge < config.min_edge:
        return KellySizing(
            full_kelly_fraction=0.0,
            adjusted_fraction=0.0,
            suggested_size_cents=0,
            binding_constraint=BindingConstraint.BELOW_MIN_EDGE,
            estimated_probability=estimated_prob,
            implied_probability=implied_prob,
            edge=edge,
        )

    b = (100.0 - market_price_cents) / market_price_cents
    q = 1.0 - estimated_prob
    full_kelly = (b * estimated_prob - q) / b

    # Only reachable with a negative min_edge
    if full_kelly <= 0.0:
        return KellySizing(
            full_kelly_fraction=full_kelly,
            adjusted_fraction=0.0,
            suggested_size_cents=0,
            binding_constraint=BindingConstraint.NEGATIVE_KELLY,
            estimated_probability=estimated_prob,
            implied_probability=implied_prob,
            edge=edge,
        )

    adjusted = full_kelly * min(max(config.fraction, 0.0), 1.0)
    size = _round_cents(adjusted * bankroll_cents)
    binding = BindingConstraint.NONE

    max_from_bankroll = _round_cents(config.max_bankroll_fraction * bankroll_cents)
    if size > max_from_bankroll:
        size = max_from_bankroll
        binding = BindingConstraint.MAX_BANKROLL_FRACTION

    if size > config.max_position_cents:
        size = config.max_position_cents
        binding = BindingConstraint.MAX_POSITION_CENTS

    return KellySizing(
        full_kelly_fraction=full_kelly,
        adjusted_fraction=adjusted,
        suggested_size_cents=size,
        binding_constraint=binding,
        estimated_probability=estimated_prob,
        implied_probability=implied_prob,
        edge=edge,
    )
