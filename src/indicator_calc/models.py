"""Shared models for the indicator calculator: kinds, periods, pairs and results."""

from dataclasses import dataclass, field
from datetime import timedelta
from decimal import Decimal
from enum import Enum

from indicator_calc.exceptions import ConfigurationError


class IndicatorKind(str, Enum):
    """Closed set of indicator kinds, one persisted table each."""

    EMA = "ema"
    SMA = "sma"
    ATR = "atr"


class WorkerState(str, Enum):
    """PairWorker cycle states."""

    FETCHING = "fetching"
    MERGING = "merging"
    COMPUTING = "computing"
    UPSERTING = "upserting"
    SLEEPING = "sleeping"
    DRAINED = "drained"


#: Nominal period length per timeframe label.
TIMEFRAME_PERIODS: dict[str, timedelta] = {
    "5m": timedelta(minutes=5),
    "15m": timedelta(minutes=15),
    "1h": timedelta(hours=1),
    "4h": timedelta(hours=4),
    "1d": timedelta(days=1),
}


def period_length(timeframe: str) -> timedelta | None:
    """Return the nominal period for a timeframe label, or None if unknown."""
    return TIMEFRAME_PERIODS.get(timeframe)


@dataclass(frozen=True)
class PairKey:
    """One (asset, timeframe) combination, the unit of independent work."""

    asset: str
    timeframe: str

    def __str__(self) -> str:
        return f"{self.asset}|{self.timeframe}"


@dataclass(frozen=True)
class IndicatorConfig:
    """Lookback periods to compute for each indicator kind."""

    ema_periods: frozenset[int] = frozenset({5, 9, 12, 20, 26, 50, 75, 200})
    sma_periods: frozenset[int] = frozenset({5, 9, 12, 20, 26, 50, 75, 200})
    atr_periods: frozenset[int] = frozenset({14})

    def periods(self, kind: IndicatorKind) -> frozenset[int]:
        """Return the configured periods for ``kind``."""
        match kind:
            case IndicatorKind.EMA:
                return self.ema_periods
            case IndicatorKind.SMA:
                return self.sma_periods
            case IndicatorKind.ATR:
                return self.atr_periods
        raise ConfigurationError(f"Unknown indicator kind: {kind!r}")


@dataclass
class IndicatorResult:
    """Computed values for one candle, keyed by period per kind.

    A None value means the window lacked enough history for that period.
    """

    ema: dict[int, Decimal | None] = field(default_factory=dict)
    sma: dict[int, Decimal | None] = field(default_factory=dict)
    atr: dict[int, Decimal | None] = field(default_factory=dict)

    def for_kind(self, kind: IndicatorKind) -> dict[int, Decimal | None]:
        match kind:
            case IndicatorKind.EMA:
                return self.ema
            case IndicatorKind.SMA:
                return self.sma
            case IndicatorKind.ATR:
                return self.atr
        raise ConfigurationError(f"Unknown indicator kind: {kind!r}")
