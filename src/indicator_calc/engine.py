"""Indicator recomputation over a quote window.

Every configured series is rebuilt from the whole window on each cycle, so
values always read as if computed from the full available history, not
just the newly arrived candles. Pure function of window contents and
config: no I/O.
"""

from collections.abc import Sequence
from datetime import datetime
from decimal import Decimal

from indicator_calc.data.models import Candle
from indicator_calc.exceptions import ConfigurationError
from indicator_calc.indicators import compute_atr, compute_ema, compute_sma
from indicator_calc.models import IndicatorConfig, IndicatorKind, IndicatorResult

Series = dict[datetime, Decimal | None]


def _by_close(window: Sequence[Candle], values: list[Decimal | None]) -> Series:
    return {candle.close_time: value for candle, value in zip(window, values)}


def _series(
    kind: IndicatorKind, window: Sequence[Candle], closes: list[Decimal], period: int
) -> Series:
    match kind:
        case IndicatorKind.EMA:
            return _by_close(window, compute_ema(closes, period))
        case IndicatorKind.SMA:
            return _by_close(window, compute_sma(closes, period))
        case IndicatorKind.ATR:
            return _by_close(window, compute_atr(window, period))
    raise ConfigurationError(f"Unknown indicator kind: {kind!r}")


def compute_indicators(
    window: Sequence[Candle], config: IndicatorConfig
) -> dict[Candle, IndicatorResult]:
    """Compute every configured indicator period for every candle in ``window``.

    Args:
        window: Candles ordered by close time.
        config: Periods to compute per indicator kind.

    Returns:
        Mapping from candle to its IndicatorResult. A period whose warm-up
        is not met at that candle maps to None.
    """
    closes = [candle.close for candle in window]

    series: dict[IndicatorKind, dict[int, Series]] = {
        kind: {period: _series(kind, window, closes, period) for period in config.periods(kind)}
        for kind in IndicatorKind
    }

    results: dict[Candle, IndicatorResult] = {}
    for candle in window:
        result = IndicatorResult()
        for kind, by_period in series.items():
            target = result.for_kind(kind)
            for period, values in sorted(by_period.items()):
                target[period] = values.get(candle.close_time)
        results[candle] = result
    return results


def values_for_kind(
    results: dict[Candle, IndicatorResult], kind: IndicatorKind
) -> dict[Candle, dict[int, Decimal | None]]:
    """Project engine output onto one indicator kind for the upsert merger."""
    return {candle: result.for_kind(kind) for candle, result in results.items()}
