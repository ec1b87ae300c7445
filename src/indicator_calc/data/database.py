"""Async SQLite database manager for candles and indicator tables.

Uses aiosqlite for non-blocking database operations with WAL mode
for concurrent read/write performance.
"""

import os
import re
from collections.abc import Mapping, Sequence
from typing import Self

import aiosqlite

from indicator_calc.logging import get_logger
from indicator_calc.models import IndicatorKind

logger = get_logger(__name__)

SCHEMA_VERSION = 1

_COLUMN_RE = re.compile(r"^[a-z][a-z0-9_]*$")

_CREATE_TABLES_SQL = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY
);

CREATE TABLE IF NOT EXISTS candles (
    asset TEXT NOT NULL,
    interval TEXT NOT NULL,
    open_time_ms INTEGER NOT NULL,
    close_time_ms INTEGER NOT NULL,
    open TEXT NOT NULL,
    high TEXT NOT NULL,
    low TEXT NOT NULL,
    close TEXT NOT NULL,
    volume TEXT NOT NULL,
    PRIMARY KEY (asset, interval, open_time_ms)
);
"""

_CREATE_INDEXES_SQL = """
CREATE INDEX IF NOT EXISTS idx_candles_pair_close
    ON candles(asset, interval, close_time_ms);
"""

_CREATE_INDICATOR_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS {table} (
    asset TEXT NOT NULL,
    interval TEXT NOT NULL,
    open_time_ms INTEGER NOT NULL,
    close_time_ms INTEGER NOT NULL,
    PRIMARY KEY (asset, interval, open_time_ms, close_time_ms)
)
"""


def indicator_table(kind: IndicatorKind) -> str:
    """Return the table name holding rows for ``kind``."""
    return f"{kind.value}_indicators"


class CandleDatabase:
    """Async SQLite connection manager for candles and indicators.

    Manages database lifecycle including schema creation, WAL mode
    configuration, and clean resource cleanup. Indicator tables get one
    nullable TEXT column per configured period; columns missing from an
    existing table are added on connect.

    Usage:
        async with CandleDatabase("data/candles.db", columns) as db:
            await db.db.execute("SELECT ...")
    """

    def __init__(
        self,
        db_path: str = "data/candles.db",
        indicator_columns: Mapping[IndicatorKind, Sequence[str]] | None = None,
    ) -> None:
        self._db_path = db_path
        self._indicator_columns = dict(indicator_columns or {})
        self._connection: aiosqlite.Connection | None = None

    @property
    def db(self) -> aiosqlite.Connection:
        """Access the raw aiosqlite connection.

        Raises RuntimeError if not connected.
        """
        if self._connection is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._connection

    async def connect(self) -> None:
        """Open database connection, configure pragmas, and create schema.

        Creates the parent directory if it does not exist.
        """
        db_dir = os.path.dirname(self._db_path)
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)

        self._connection = await aiosqlite.connect(self._db_path)

        await self._connection.execute("PRAGMA journal_mode=WAL")
        await self._connection.execute("PRAGMA synchronous=NORMAL")

        await self._create_tables()
        await self._ensure_schema_version()

        logger.info("candle_db_connected", db_path=self._db_path)

    async def close(self) -> None:
        """Close the database connection if open."""
        if self._connection is not None:
            await self._connection.close()
            self._connection = None
            logger.info("candle_db_closed", db_path=self._db_path)

    async def _create_tables(self) -> None:
        """Create candle and indicator tables, adding any missing period columns."""
        assert self._connection is not None
        await self._connection.executescript(_CREATE_TABLES_SQL)
        await self._connection.executescript(_CREATE_INDEXES_SQL)

        for kind in IndicatorKind:
            table = indicator_table(kind)
            await self._connection.execute(
                _CREATE_INDICATOR_TABLE_SQL.format(table=table)
            )
            await self._add_missing_columns(table, self._indicator_columns.get(kind, ()))

        await self._connection.commit()

    async def _add_missing_columns(self, table: str, columns: Sequence[str]) -> None:
        assert self._connection is not None
        cursor = await self._connection.execute(f"PRAGMA table_info({table})")
        existing = {row[1] for row in await cursor.fetchall()}

        for column in columns:
            if not _COLUMN_RE.match(column):
                raise ValueError(f"Invalid indicator column name: {column!r}")
            if column in existing:
                continue
            await self._connection.execute(
                f"ALTER TABLE {table} ADD COLUMN {column} TEXT"
            )
            logger.info("indicator_column_added", table=table, column=column)

    async def _ensure_schema_version(self) -> None:
        """Insert schema version if not already set."""
        assert self._connection is not None
        cursor = await self._connection.execute(
            "SELECT version FROM schema_version LIMIT 1"
        )
        row = await cursor.fetchone()
        if row is None:
            await self._connection.execute(
                "INSERT INTO schema_version (version) VALUES (?)",
                (SCHEMA_VERSION,),
            )
            await self._connection.commit()
            logger.info("schema_version_set", version=SCHEMA_VERSION)

    async def __aenter__(self) -> Self:
        """Async context manager entry."""
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # type: ignore[no-untyped-def]
        """Async context manager exit."""
        await self.close()
