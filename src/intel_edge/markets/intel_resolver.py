"""Resolve prices from feed entries already stored in the intel repository."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from intel_edge.common.errors import RepositoryError
from intel_edge.intel.models import Category, IntelEntry, QueryFilter
from intel_edge.intel.repository import IntelRepository
from intel_edge.markets.models import Exchange, ResolvedMarket, is_kalshi_ticker

logger = logging.getLogger(__name__)

# Aggregate entries summarizing a whole band set, not a single contract
BAND_SUM_TAG = "band-sum"

KALSHI_QUERY_LIMIT = 200
EQUITY_QUERY_LIMIT = 5


def _number(value: object) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


class IntelResolver:
    """Price lookup against stored feed entries.

    Kalshi series resolve to their most liquid contract (24h volume plus
    open interest); equity tickers resolve to the newest entry carrying a
    ``price`` in dollars. Entries older than ``staleness_hours`` are ignored.
    """

    name = "intel-db"

    def __init__(self, intel_repo: IntelRepository, staleness_hours: float = 24.0) -> None:
        self._repo = intel_repo
        self._staleness = timedelta(hours=staleness_hours)

    async def _recent(self, tag: str, limit: int) -> list[IntelEntry]:
        since = datetime.now(timezone.utc) - self._staleness
        try:
            return await self._repo.query(QueryFilter(
                category=Category.MARKET, tag=tag, since=since, limit=limit,
            ))
        except RepositoryError as exc:
            logger.warning("Price lookup for %s failed: %s", tag, exc)
            return []

    async def resolve(self, ticker: str) -> ResolvedMarket | None:
        if is_kalshi_ticker(ticker):
            return await self._resolve_kalshi(ticker)
        return await self._resolve_equity(ticker)

    async def _resolve_kalshi(self, series: str) -> ResolvedMarket | None:
        best: ResolvedMarket | None = None
        best_liquidity = -1.0

        for entry in await self._recent(series, KALSHI_QUERY_LIMIT):
            if BAND_SUM_TAG in entry.tags_lower:
                continue

            contract = entry.meta("ticker")
            midpoint = _number(entry.meta("midpoint"))
            if not isinstance(contract, str) or midpoint is None:
                continue
            if not 0.0 < midpoint < 100.0:
                continue

            volume = _number(entry.meta("volume_24h")) or 0.0
            open_interest = _number(entry.meta("open_interest")) or 0.0
            liquidity = volume + open_interest
            if liquidity <= best_liquidity:
                continue

            yes_bid = _number(entry.meta("yes_bid"))
            yes_ask = _number(entry.meta("yes_ask"))
            best = ResolvedMarket(
                contract_ticker=contract,
                price_cents=midpoint,
                exchange=Exchange.KALSHI,
                description=(
                    f"{contract} — bid {yes_bid if yes_bid is not None else '?'}¢ / "
                    f"ask {yes_ask if yes_ask is not None else '?'}¢ "
                    f"(OI: {open_interest:.0f}, Vol: {volume:.0f})"
                ),
            )
            best_liquidity = liquidity

        if best is None:
            logger.debug("No fresh Kalshi contract for %s", series)
        return best

    async def _resolve_equity(self, ticker: str) -> ResolvedMarket | None:
        for entry in await self._recent(ticker, EQUITY_QUERY_LIMIT):
            price = _number(entry.meta("price"))
            if price is None or price <= 0:
                continue
            symbol = ticker.upper()
            return ResolvedMarket(
                contract_ticker=symbol,
                price_cents=price * 100.0,
                exchange=Exchange.EQUITY,
                description=f"{symbol} @ ${price:.2f} (from {entry.source or 'feed'} entry)",
            )

        logger.debug("No fresh equity price for %s", ticker)
        return None
