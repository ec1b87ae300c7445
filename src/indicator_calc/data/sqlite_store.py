"""SQLite implementation of CandleStore.

All SQL is isolated behind this class. Prices and indicator values are
stored as TEXT to preserve Decimal precision; timestamps as Unix ms.

One aiosqlite connection is shared by every pair worker, so each
operation holds an asyncio.Lock to keep transactions from interleaving.
"""

import asyncio
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import aiosqlite

from indicator_calc.data.database import CandleDatabase, indicator_table
from indicator_calc.data.models import Candle, IndicatorKey, IndicatorRow
from indicator_calc.data.store import CandleStore
from indicator_calc.exceptions import StoreUnavailableError
from indicator_calc.logging import get_logger
from indicator_calc.models import IndicatorKind

logger = get_logger(__name__)

_KEY_COLUMNS = ("asset", "interval", "open_time_ms", "close_time_ms")
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_MS = timedelta(milliseconds=1)


def to_ms(value: datetime) -> int:
    """Convert an aware datetime to Unix milliseconds."""
    return (value - _EPOCH) // _MS


def from_ms(value: int) -> datetime:
    """Convert Unix milliseconds to an aware UTC datetime."""
    return _EPOCH + timedelta(milliseconds=value)


def _to_text(value: Decimal | None) -> str | None:
    return None if value is None else str(value)


class SqliteCandleStore(CandleStore):
    """Async SQLite store for candles and indicator rows.

    Usage:
        async with CandleDatabase("data/candles.db", columns) as database:
            store = SqliteCandleStore(database)
            candles = await store.fetch_candles("BTCUSDT", "1h", None, 1000)
    """

    def __init__(self, database: CandleDatabase) -> None:
        self._database = database
        self._lock = asyncio.Lock()

    @asynccontextmanager
    async def _guard(self, operation: str, **context: object) -> AsyncIterator[aiosqlite.Connection]:
        """Serialize access and translate backend errors into StoreUnavailableError."""
        async with self._lock:
            db = self._database.db
            try:
                yield db
            except aiosqlite.Error as e:
                logger.error(operation, error=str(e), **context)
                raise StoreUnavailableError(f"{operation}: {e}") from e

    # ──────────────────────────────────────────────
    # Write methods
    # ──────────────────────────────────────────────

    async def insert_candles(self, candles: Sequence[Candle]) -> int:
        """Insert or replace source candles keyed by (asset, interval, open time).

        Returns the number of rows written.
        """
        if not candles:
            return 0

        data = [
            (
                c.asset,
                c.interval,
                to_ms(c.open_time),
                to_ms(c.close_time),
                str(c.open),
                str(c.high),
                str(c.low),
                str(c.close),
                str(c.volume),
            )
            for c in candles
        ]

        async with self._guard("insert_candles_failed", total=len(candles)) as db:
            try:
                await db.executemany(
                    "INSERT OR REPLACE INTO candles "
                    "(asset, interval, open_time_ms, close_time_ms, open, high, low, close, volume) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                    data,
                )
                await db.commit()
            except BaseException:
                await db.rollback()
                raise

        logger.debug("inserted_candles", total=len(candles))
        return len(candles)

    async def upsert_indicator_rows(
        self, kind: IndicatorKind, rows: Sequence[IndicatorRow]
    ) -> None:
        """Upsert indicator rows for ``kind`` in a single transaction.

        Existing rows are updated in place (never deleted and re-inserted);
        every listed column is overwritten, None included.
        """
        if not rows:
            return

        table = indicator_table(kind)
        first = rows[0].key

        async with self._guard(
            "upsert_indicators_failed",
            asset=first.asset,
            timeframe=first.interval,
            indicator=kind.value,
        ) as db:
            try:
                await db.execute("BEGIN")
                for row in rows:
                    await db.execute(self._upsert_sql(table, list(row.values)), self._upsert_params(row))
                await db.commit()
            except BaseException:
                # never leave the shared connection inside a transaction
                await db.rollback()
                raise

        logger.debug(
            "upserted_indicator_rows",
            asset=first.asset,
            timeframe=first.interval,
            indicator=kind.value,
            rows=len(rows),
        )

    @staticmethod
    def _upsert_sql(table: str, columns: list[str]) -> str:
        all_columns = [*_KEY_COLUMNS, *columns]
        placeholders = ", ".join("?" for _ in all_columns)
        conflict = ", ".join(_KEY_COLUMNS)
        if not columns:
            return (
                f"INSERT INTO {table} ({', '.join(all_columns)}) VALUES ({placeholders}) "
                f"ON CONFLICT ({conflict}) DO NOTHING"
            )
        updates = ", ".join(f"{c} = excluded.{c}" for c in columns)
        return (
            f"INSERT INTO {table} ({', '.join(all_columns)}) VALUES ({placeholders}) "
            f"ON CONFLICT ({conflict}) DO UPDATE SET {updates}"
        )

    @staticmethod
    def _upsert_params(row: IndicatorRow) -> tuple:
        key = row.key
        return (
            key.asset,
            key.interval,
            to_ms(key.open_time),
            to_ms(key.close_time),
            *(_to_text(v) for v in row.values.values()),
        )

    # ──────────────────────────────────────────────
    # Read methods
    # ──────────────────────────────────────────────

    async def fetch_candles(
        self,
        asset: str,
        timeframe: str,
        since: datetime | None,
        limit: int,
    ) -> list[Candle]:
        """Query up to ``limit`` candles closing at or after ``since``, ordered by open time."""
        conditions = ["asset = ?", "interval = ?"]
        params: list = [asset, timeframe]

        if since is not None:
            conditions.append("close_time_ms >= ?")
            params.append(to_ms(since))

        where = " AND ".join(conditions)
        params.append(limit)

        async with self._guard(
            "fetch_candles_failed", asset=asset, timeframe=timeframe, since=str(since)
        ) as db:
            cursor = await db.execute(
                f"SELECT asset, interval, open_time_ms, close_time_ms, open, high, low, close, volume "
                f"FROM candles WHERE {where} ORDER BY open_time_ms ASC LIMIT ?",
                params,
            )
            rows = await cursor.fetchall()

        return [
            Candle(
                asset=row[0],
                interval=row[1],
                open_time=from_ms(row[2]),
                close_time=from_ms(row[3]),
                open=Decimal(row[4]),
                high=Decimal(row[5]),
                low=Decimal(row[6]),
                close=Decimal(row[7]),
                volume=Decimal(row[8]),
            )
            for row in rows
        ]

    async def count_candles(self, asset: str, timeframe: str) -> int:
        """Return the number of stored candles for a pair."""
        async with self._guard("count_candles_failed", asset=asset, timeframe=timeframe) as db:
            cursor = await db.execute(
                "SELECT COUNT(*) FROM candles WHERE asset = ? AND interval = ?",
                (asset, timeframe),
            )
            row = await cursor.fetchone()
        return row[0] if row else 0

    async def get_indicator_rows(
        self, kind: IndicatorKind, asset: str, timeframe: str
    ) -> list[IndicatorRow]:
        """Return persisted rows for a pair ordered by close time.

        Column values are restored as Decimal (or None).
        """
        table = indicator_table(kind)
        async with self._guard(
            "get_indicator_rows_failed", asset=asset, timeframe=timeframe, indicator=kind.value
        ) as db:
            cursor = await db.execute(
                f"SELECT * FROM {table} WHERE asset = ? AND interval = ? ORDER BY close_time_ms ASC",
                (asset, timeframe),
            )
            names = [d[0] for d in cursor.description]
            rows = await cursor.fetchall()

        result: list[IndicatorRow] = []
        for row in rows:
            record = dict(zip(names, row))
            key = IndicatorKey(
                asset=record.pop("asset"),
                interval=record.pop("interval"),
                open_time=from_ms(record.pop("open_time_ms")),
                close_time=from_ms(record.pop("close_time_ms")),
            )
            values = {
                name: Decimal(value) if value is not None else None
                for name, value in record.items()
            }
            result.append(IndicatorRow(key=key, values=values))
        return result
