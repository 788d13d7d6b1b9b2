"""SQLite-backed entry and trade store (via aiosqlite)."""

from __future__ import annotations

import json
import logging
import sqlite3
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import AsyncIterator

import aiosqlite

from intel_edge.common.errors import RepositoryError
from intel_edge.config import get_settings
from intel_edge.intel.models import (
    Category,
    IntelEntry,
    QueryFilter,
    SourceType,
    Trade,
    TradeDirection,
    TradeFilter,
    TradeOutcome,
)

logger = logging.getLogger(__name__)

_CREATE_ENTRIES = """
CREATE TABLE IF NOT EXISTS entries (
    id TEXT PRIMARY KEY,
    category TEXT NOT NULL,
    title TEXT NOT NULL,
    body TEXT NOT NULL,
    source TEXT,
    source_type TEXT NOT NULL,
    tags TEXT NOT NULL,  -- JSON array, original case
    confidence REAL NOT NULL,
    actionable INTEGER NOT NULL,
    metadata TEXT,  -- JSON document or NULL
    created_at TEXT NOT NULL
);
"""

_CREATE_ENTRY_TAGS = """
CREATE TABLE IF NOT EXISTS entry_tags (
    entry_id TEXT NOT NULL REFERENCES entries(id),
    tag TEXT NOT NULL,  -- lowercased
    PRIMARY KEY (entry_id, tag)
);
"""

_CREATE_TRADES = """
CREATE TABLE IF NOT EXISTS trades (
    id TEXT PRIMARY KEY,
    ticker TEXT NOT NULL,
    series_ticker TEXT,
    direction TEXT NOT NULL,
    contracts INTEGER NOT NULL,
    entry_price REAL NOT NULL,
    exit_price REAL,
    thesis TEXT,
    outcome TEXT,  -- NULL until resolved
    pnl_cents INTEGER,
    created_at TEXT NOT NULL,
    resolved_at TEXT
);
"""

_CREATE_INDEXES = (
    "CREATE INDEX IF NOT EXISTS idx_entries_created_at ON entries(created_at);",
    "CREATE INDEX IF NOT EXISTS idx_entry_tags_tag ON entry_tags(tag);",
    "CREATE INDEX IF NOT EXISTS idx_trades_created_at ON trades(created_at);",
)

_TS_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


def _to_ts(dt: datetime) -> str:
    """Fixed-width UTC timestamp so text comparison matches time order."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).strftime(_TS_FORMAT)


def _from_ts(s: str | None) -> datetime | None:
    if not s:
        return None
    return datetime.strptime(s, _TS_FORMAT).replace(tzinfo=timezone.utc)


def _row_to_entry(row: aiosqlite.Row) -> IntelEntry:
    return IntelEntry(
        id=row["id"],
        category=Category.parse(row["category"]),
        title=row["title"],
        body=row["body"],
        source=row["source"],
        source_type=SourceType.parse(row["source_type"]),
        tags=tuple(json.loads(row["tags"])),
        confidence=row["confidence"],
        actionable=bool(row["actionable"]),
        metadata=json.loads(row["metadata"]) if row["metadata"] else None,
        created_at=_from_ts(row["created_at"]),
    )


def _row_to_trade(row: aiosqlite.Row) -> Trade:
    return Trade(
        id=row["id"],
        ticker=row["ticker"],
        series_ticker=row["series_ticker"],
        direction=TradeDirection.parse(row["direction"]),
        contracts=row["contracts"],
        entry_price=row["entry_price"],
        exit_price=row["exit_price"],
        thesis=row["thesis"],
        outcome=TradeOutcome.parse(row["outcome"]) if row["outcome"] else None,
        pnl_cents=row["pnl_cents"],
        created_at=_from_ts(row["created_at"]),
        resolved_at=_from_ts(row["resolved_at"]),
    )


class IntelStore:
    """Entry and trade repository on a single SQLite file.

    Implements both ``IntelRepository`` and ``TradeRepository``. Each call
    opens its own connection; writes are serialized by SQLite.
    """

    def __init__(self, db_path: Path | None = None) -> None:
        self._db_path = db_path if db_path is not None else get_settings().db_path
        self._initialized = False

    @asynccontextmanager
    async def _connect(self) -> AsyncIterator[aiosqlite.Connection]:
        try:
            if not self._initialized:
                self._db_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiosqlite.connect(str(self._db_path)) as db:
                db.row_factory = aiosqlite.Row
                if not self._initialized:
                    await db.execute(_CREATE_ENTRIES)
                    await db.execute(_CREATE_ENTRY_TAGS)
                    await db.execute(_CREATE_TRADES)
                    for stmt in _CREATE_INDEXES:
                        await db.execute(stmt)
                    await db.commit()
                    self._initialized = True
                yield db
        except (sqlite3.Error, OSError) as exc:
            raise RepositoryError(f"SQLite store {self._db_path}: {exc}") from exc

    async def add_entry(self, entry: IntelEntry) -> str:
        """Insert an entry. Returns its ID."""
        async with self._connect() as db:
            await db.execute(
                """INSERT INTO entries
                   (id, category, title, body, source, source_type, tags,
                    confidence, actionable, metadata, created_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    entry.id,
                    entry.category.value,
                    entry.title,
                    entry.body,
                    entry.source,
                    entry.source_type.value,
                    json.dumps(list(entry.tags)),
                    entry.confidence,
                    int(entry.actionable),
                    json.dumps(entry.metadata) if entry.metadata is not None else None,
                    _to_ts(entry.created_at),
                ),
            )
            await db.executemany(
                "INSERT OR IGNORE INTO entry_tags (entry_id, tag) VALUES (?, ?)",
                [(entry.id, tag) for tag in set(entry.tags_lower)],
            )
            await db.commit()
        logger.debug("Stored entry %s (%s)", entry.id, entry.title[:60])
        return entry.id

    async def get_entry(self, entry_id: str) -> IntelEntry | None:
        async with self._connect() as db:
            cursor = await db.execute("SELECT * FROM entries WHERE id = ?", (entry_id,))
            row = await cursor.fetchone()
        return _row_to_entry(row) if row is not None else None

    async def query(self, filter: QueryFilter) -> list[IntelEntry]:
        """Return entries matching ``filter``, newest first."""
        clauses: list[str] = []
        params: list[object] = []
        if filter.category is not None:
            clauses.append("category = ?")
            params.append(filter.category.value)
        if filter.tag is not None:
            clauses.append("id IN (SELECT entry_id FROM entry_tags WHERE tag = ?)")
            params.append(filter.tag.lower())
        if filter.since is not None:
            clauses.append("created_at >= ?")
            params.append(_to_ts(filter.since))
        if filter.until is not None:
            clauses.append("created_at <= ?")
            params.append(_to_ts(filter.until))

        sql = "SELECT * FROM entries"
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        sql += " ORDER BY created_at DESC, rowid DESC"
        if filter.limit is not None:
            sql += " LIMIT ?"
            params.append(filter.limit)

        async with self._connect() as db:
            cursor = await db.execute(sql, params)
            rows = await cursor.fetchall()
        return [_row_to_entry(row) for row in rows]

    async def add_trade(self, trade: Trade) -> str:
        """Insert a trade. Returns its ID."""
        async with self._connect() as db:
            await db.execute(
                """INSERT INTO trades
                   (id, ticker, series_ticker, direction, contracts, entry_price,
                    exit_price, thesis, outcome, pnl_cents, created_at, resolved_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    trade.id,
                    trade.ticker,
                    trade.series_ticker,
                    trade.direction.value,
                    trade.contracts,
                    trade.entry_price,
                    trade.exit_price,
                    trade.thesis,
                    trade.outcome.value if trade.outcome else None,
                    trade.pnl_cents,
                    _to_ts(trade.created_at),
                    _to_ts(trade.resolved_at) if trade.resolved_at else None,
                ),
            )
            await db.commit()
        return trade.id

    async def resolve_trade(
        self,
        trade_id: str,
        outcome: TradeOutcome,
        pnl_cents: int,
        exit_price: float | None = None,
    ) -> int:
        """Record the outcome of an open trade.

        Returns:
            Number of rows updated (0 if unknown or already resolved)
        """
        async with self._connect() as db:
            cursor = await db.execute(
                """UPDATE trades
                   SET outcome = ?, pnl_cents = ?, exit_price = ?, resolved_at = ?
                   WHERE id = ? AND outcome IS NULL""",
                (
                    outcome.value,
                    pnl_cents,
                    exit_price,
                    _to_ts(datetime.now(timezone.utc)),
                    trade_id,
                ),
            )
            await db.commit()
            return cursor.rowcount

    async def list_trades(self, filter: TradeFilter) -> list[Trade]:
        """Return trades matching ``filter``, newest first."""
        clauses: list[str] = []
        params: list[object] = []
        if filter.resolved is True:
            clauses.append("outcome IS NOT NULL")
        elif filter.resolved is False:
            clauses.append("outcome IS NULL")
        if filter.since is not None:
            clauses.append("created_at >= ?")
            params.append(_to_ts(filter.since))
        if filter.until is not None:
            clauses.append("created_at <= ?")
            params.append(_to_ts(filter.until))

        sql = "SELECT * FROM trades"
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        sql += " ORDER BY created_at DESC, rowid DESC"
        if filter.limit is not None:
            sql += " LIMIT ?"
            params.append(filter.limit)

        async with self._connect() as db:
            cursor = await db.execute(sql, params)
            rows = await cursor.fetchall()
        return [_row_to_trade(row) for row in rows]
