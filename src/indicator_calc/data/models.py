"""Data models for source candles and persisted indicator rows.

CRITICAL: All price and indicator values use Decimal. Never use float.
Timestamps are timezone-aware UTC datetimes in memory and Unix
milliseconds in SQLite.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal


@dataclass(frozen=True)
class Candle:
    """A single closed (or closing) OHLCV candle.

    Equality and hashing use only the identity fields (asset, interval,
    open_time, close_time), so a re-fetched candle with revised prices
    compares equal to the stale copy it replaces.
    """

    asset: str
    interval: str
    open_time: datetime
    close_time: datetime
    open: Decimal = field(compare=False)
    high: Decimal = field(compare=False)
    low: Decimal = field(compare=False)
    close: Decimal = field(compare=False)
    volume: Decimal = field(compare=False)


@dataclass(frozen=True)
class IndicatorKey:
    """Composite key of a persisted indicator row."""

    asset: str
    interval: str
    open_time: datetime
    close_time: datetime

    @classmethod
    def for_candle(cls, candle: Candle) -> "IndicatorKey":
        return cls(candle.asset, candle.interval, candle.open_time, candle.close_time)


@dataclass
class IndicatorRow:
    """One indicator row ready to upsert.

    ``values`` maps column name (e.g. ``ema_12``) to a nullable Decimal.
    A None value is written as NULL, overwriting any earlier value.
    """

    key: IndicatorKey
    values: dict[str, Decimal | None]
