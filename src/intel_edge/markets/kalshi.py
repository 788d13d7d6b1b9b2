"""Live Kalshi quotes from the public trade API (read-only)."""

from __future__ import annotations

import logging

import httpx

from intel_edge.common.http import HttpClient
from intel_edge.config import get_settings
from intel_edge.markets.models import (
    Exchange,
    ResolvedMarket,
    is_kalshi_ticker,
    kalshi_midpoint,
)

logger = logging.getLogger(__name__)


def _int_field(raw: dict, key: str) -> int:
    try:
        return int(raw.get(key) or 0)
    except (TypeError, ValueError):
        return 0


def raw_to_resolved(raw: dict) -> ResolvedMarket | None:
    """Convert a raw Kalshi market dict to a ResolvedMarket.

    Returns None for markets with no quote or a mid price outside (0, 100).
    """
    ticker = raw.get("ticker")
    if not ticker:
        return None
    yes_bid = _int_field(raw, "yes_bid")
    yes_ask = _int_field(raw, "yes_ask")
    midpoint = kalshi_midpoint(yes_bid, yes_ask)
    if midpoint is None or not 0.0 < midpoint < 100.0:
        return None
    return ResolvedMarket(
        contract_ticker=ticker,
        price_cents=midpoint,
        exchange=Exchange.KALSHI,
        description=(
            f"{ticker} — bid {yes_bid}¢ / ask {yes_ask}¢ "
            f"(OI: {_int_field(raw, 'open_interest')}, Vol: {_int_field(raw, 'volume_24h')})"
        ),
    )


def _liquidity(raw: dict) -> int:
    return _int_field(raw, "volume_24h") + _int_field(raw, "open_interest")


class KalshiResolver:
    """Resolve Kalshi series or contract tickers against live quotes.

    A series ticker (``KXHIGHNY``) resolves to its most liquid open contract;
    a contract ticker (``KXHIGHNY-26FEB28-B44.5``) resolves to itself.
    Non-Kalshi tickers and API failures resolve to None.
    """

    name = "kalshi-api"

    def __init__(self, client: HttpClient | None = None) -> None:
        self._client = client

    def _get_client(self) -> HttpClient:
        if self._client is None:
            self._client = HttpClient(base_url=get_settings().kalshi_api_url)
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None

    async def resolve(self, ticker: str) -> ResolvedMarket | None:
        if not is_kalshi_ticker(ticker):
            return None
        ticker = ticker.upper()
        try:
            if "-" in ticker:
                return await self._resolve_contract(ticker)
            return await self._resolve_series(ticker)
        except httpx.HTTPStatusError as exc:
            logger.warning("Kalshi HTTP %d for %s", exc.response.status_code, ticker)
        except httpx.HTTPError as exc:
            logger.warning("Kalshi request failed for %s: %s", ticker, exc)
        except ValueError as exc:
            logger.warning("Kalshi parse error for %s: %s", ticker, exc)
        return None

    async def _resolve_contract(self, ticker: str) -> ResolvedMarket | None:
        resp = await self._get_client().get(f"/markets/{ticker}")
        raw = resp.json().get("market") or {}
        return raw_to_resolved(raw)

    async def _resolve_series(self, series: str) -> ResolvedMarket | None:
        resp = await self._get_client().get(
            "/markets",
            params={"series_ticker": series, "status": "open", "limit": 200},
        )
        markets = resp.json().get("markets") or []

        best: ResolvedMarket | None = None
        best_liquidity = -1
        for raw in markets:
            resolved = raw_to_resolved(raw)
            if resolved is None:
                continue
            liquidity = _liquidity(raw)
            if liquidity > best_liquidity:
                best, best_liquidity = resolved, liquidity

        if best is None:
            logger.debug("No quoted open contract in Kalshi series %s", series)
        return best
