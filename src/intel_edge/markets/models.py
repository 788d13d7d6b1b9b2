"""Resolved market prices and the resolver protocol."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from intel_edge.common.types import JsonDict


class Exchange(Enum):
    """Where a resolved price comes from.

    KALSHI prices are binary-contract cents (1-99) and can feed Kelly sizing.
    EQUITY prices are share prices in cents and are informational only.
    """

    KALSHI = "kalshi"
    EQUITY = "equity"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class ResolvedMarket:
    """A specific tradeable contract with its current price.

    Attributes:
        contract_ticker: e.g. "KXHIGHNY-26FEB28-B44.5" or "IONQ"
        price_cents: 1-99 for Kalshi, share price x 100 for equities
        exchange: Source exchange
        description: Human-readable quote summary
    """

    contract_ticker: str
    price_cents: float
    exchange: Exchange
    description: str = ""

    def to_dict(self) -> JsonDict:
        return {
            "contract_ticker": self.contract_ticker,
            "price_cents": self.price_cents,
            "exchange": self.exchange.value,
            "description": self.description,
        }


class MarketResolver(Protocol):
    """Maps a series or equity ticker to a tradeable contract and price."""

    name: str

    async def resolve(self, ticker: str) -> ResolvedMarket | None:
        """Return a fresh price for ``ticker``, or None if none is available.

        Implementations do not raise for unknown tickers or missing data.
        """
        ...


def is_kalshi_ticker(ticker: str) -> bool:
    """Kalshi series and contract tickers all start with ``KX``."""
    return ticker.upper().startswith("KX")


def kalshi_midpoint(yes_bid: float | None, yes_ask: float | None) -> float | None:
    """Mid price of a Kalshi quote in cents, or None if there is no quote."""
    bid = yes_bid or 0.0
    ask = yes_ask or 0.0
    if bid > 0 and ask > 0:
        return (bid + ask) / 2.0
    if ask > 0:
        return ask
    if bid > 0:
        return bid
    return None
