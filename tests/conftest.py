"""Shared test fixtures for the indicator calculator."""

from collections.abc import AsyncIterator, Callable, Sequence
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
import pytest_asyncio

from indicator_calc.config import AppSettings, CalculatorSettings, SupervisorSettings
from indicator_calc.data.database import CandleDatabase
from indicator_calc.data.models import Candle, IndicatorKey, IndicatorRow
from indicator_calc.data.sqlite_store import SqliteCandleStore
from indicator_calc.data.store import CandleStore
from indicator_calc.exceptions import StoreUnavailableError
from indicator_calc.merger import IndicatorColumns
from indicator_calc.models import IndicatorConfig, IndicatorKind

#: Fixed "now" used by continuity and worker tests.
NOW = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)


class InMemoryCandleStore(CandleStore):
    """CandleStore double keeping candles and indicator rows in dicts.

    ``fail_fetches`` / ``fail_upserts`` make the next N calls raise
    StoreUnavailableError.
    """

    def __init__(self, candles: Sequence[Candle] = ()) -> None:
        self.candles: list[Candle] = sorted(candles, key=lambda c: c.open_time)
        self.rows: dict[IndicatorKind, dict[IndicatorKey, dict[str, Decimal | None]]] = {
            kind: {} for kind in IndicatorKind
        }
        self.fetch_calls: list[tuple[str, str, datetime | None, int]] = []
        self.fail_fetches = 0
        self.fail_upserts = 0

    def add(self, candles: Sequence[Candle]) -> None:
        self.candles = sorted([*self.candles, *candles], key=lambda c: c.open_time)

    async def fetch_candles(self, asset, timeframe, since, limit):  # type: ignore[no-untyped-def]
        self.fetch_calls.append((asset, timeframe, since, limit))
        if self.fail_fetches > 0:
            self.fail_fetches -= 1
            raise StoreUnavailableError("store down")
        matching = [
            c
            for c in self.candles
            if c.asset == asset
            and c.interval == timeframe
            and (since is None or c.close_time >= since)
        ]
        return matching[:limit]

    async def count_candles(self, asset, timeframe):  # type: ignore[no-untyped-def]
        return sum(1 for c in self.candles if c.asset == asset and c.interval == timeframe)

    async def upsert_indicator_rows(self, kind, rows):  # type: ignore[no-untyped-def]
        if self.fail_upserts > 0:
            self.fail_upserts -= 1
            raise StoreUnavailableError("store down")
        table = self.rows[kind]
        for row in rows:
            table.setdefault(row.key, {}).update(row.values)


def make_candle(
    close_time: datetime,
    close: Decimal | int | str = 100,
    asset: str = "BTCUSDT",
    interval: str = "1h",
    period: timedelta = timedelta(hours=1),
    high: Decimal | None = None,
    low: Decimal | None = None,
) -> Candle:
    """Build a candle; high/low default to close +/- 1."""
    close_dec = Decimal(str(close))
    return Candle(
        asset=asset,
        interval=interval,
        open_time=close_time - period,
        close_time=close_time,
        open=close_dec,
        high=high if high is not None else close_dec + 1,
        low=low if low is not None else close_dec - 1,
        close=close_dec,
        volume=Decimal("10"),
    )


def hourly(
    start: datetime,
    count: int,
    asset: str = "BTCUSDT",
    closes: Sequence[int | str | Decimal] | None = None,
) -> list[Candle]:
    """``count`` contiguous hourly candles, the first closing at ``start``."""
    return [
        make_candle(
            start + timedelta(hours=i),
            close=closes[i] if closes is not None else 100 + i,
            asset=asset,
        )
        for i in range(count)
    ]


@pytest.fixture
def candle_factory() -> Callable[..., Candle]:
    return make_candle


@pytest.fixture
def hourly_candles() -> Callable[..., list[Candle]]:
    return hourly


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def indicator_config() -> IndicatorConfig:
    """Small period set so short windows exercise warm-up."""
    return IndicatorConfig(
        ema_periods=frozenset({3, 5}),
        sma_periods=frozenset({3, 5}),
        atr_periods=frozenset({3}),
    )


@pytest.fixture
def indicator_columns(indicator_config: IndicatorConfig) -> IndicatorColumns:
    return IndicatorColumns.from_config(indicator_config)


@pytest.fixture
def memory_store() -> InMemoryCandleStore:
    return InMemoryCandleStore()


@pytest_asyncio.fixture
async def sqlite_store(indicator_columns: IndicatorColumns) -> AsyncIterator[SqliteCandleStore]:
    """SqliteCandleStore over a fresh in-memory database."""
    async with CandleDatabase(":memory:", indicator_columns.as_table_columns()) as database:
        yield SqliteCandleStore(database)


@pytest.fixture
def mock_settings() -> AppSettings:
    """Return AppSettings with test defaults (two assets, fast loops)."""
    return AppSettings(
        log_level="DEBUG",
        calculator=CalculatorSettings(
            assets=["BTCUSDT", "ETHUSDT"],
            timeframes=["1h", "4h"],
            amount_of_data=10,
            cycle_delay=0.0,
            retry_delay=0.0,
        ),
        supervisor=SupervisorSettings(poll_interval=0.01, startup_delay=0.0),
    )
