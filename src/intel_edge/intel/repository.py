"""Storage protocols consumed by the scanner and resolvers."""

from __future__ import annotations

from typing import Protocol

from intel_edge.intel.models import IntelEntry, QueryFilter, Trade, TradeFilter


class IntelRepository(Protocol):
    """Read access to stored intel entries."""

    async def query(self, filter: QueryFilter) -> list[IntelEntry]:
        """Return entries matching ``filter``, newest first.

        Raises:
            RepositoryError: if the underlying store fails
        """
        ...


class TradeRepository(Protocol):
    """Read access to recorded trades."""

    async def list_trades(self, filter: TradeFilter) -> list[Trade]:
        """Return trades matching ``filter``, newest first.

        Raises:
            RepositoryError: if the underlying store fails
        """
        ...
