"""Moving average and volatility series over Decimal candle data.

Each function returns a list aligned with its input, holding None wherever
the lookback period has not yet been satisfied. Intermediate results are
quantized to 12 decimal places to prevent Decimal precision explosion.

CRITICAL: All computations use Decimal. Never use float.
"""

from collections.abc import Sequence
from decimal import Decimal

from indicator_calc.data.models import Candle

#: Precision limit for indicator results (12 decimal places).
_QUANTIZE = Decimal("0.000000000001")


def compute_sma(values: Sequence[Decimal], period: int) -> list[Decimal | None]:
    """Simple moving average of the last ``period`` values.

    The first ``period - 1`` entries are None.
    """
    result: list[Decimal | None] = [None] * len(values)
    if period <= 0 or len(values) < period:
        return result

    divisor = Decimal(period)
    window_sum = sum(values[:period], Decimal("0"))
    result[period - 1] = (window_sum / divisor).quantize(_QUANTIZE)

    for i in range(period, len(values)):
        window_sum += values[i] - values[i - period]
        result[i] = (window_sum / divisor).quantize(_QUANTIZE)

    return result


def compute_ema(values: Sequence[Decimal], period: int) -> list[Decimal | None]:
    """Exponential moving average seeded with the SMA of the first ``period`` values.

    Uses the standard recursive formula:
        k = 2 / (period + 1)
        EMA_t = value_t * k + EMA_{t-1} * (1 - k)

    The first ``period - 1`` entries are None.
    """
    result: list[Decimal | None] = [None] * len(values)
    if period <= 0 or len(values) < period:
        return result

    k = Decimal("2") / (Decimal(period) + Decimal("1"))
    one_minus_k = Decimal("1") - k

    ema = (sum(values[:period], Decimal("0")) / Decimal(period)).quantize(_QUANTIZE)
    result[period - 1] = ema
    for i in range(period, len(values)):
        ema = (values[i] * k + ema * one_minus_k).quantize(_QUANTIZE)
        result[i] = ema

    return result


def true_ranges(candles: Sequence[Candle]) -> list[Decimal | None]:
    """True range per candle; None for the first candle (no previous close)."""
    result: list[Decimal | None] = []
    previous_close: Decimal | None = None
    for candle in candles:
        if previous_close is None:
            result.append(None)
        else:
            result.append(
                max(
                    candle.high - candle.low,
                    abs(candle.high - previous_close),
                    abs(candle.low - previous_close),
                )
            )
        previous_close = candle.close
    return result


def compute_atr(candles: Sequence[Candle], period: int) -> list[Decimal | None]:
    """Average true range with Wilder smoothing.

    The first value sits at index ``period`` (it needs ``period`` true ranges,
    and the first candle has none) and is their plain mean. After that:
        ATR_t = (ATR_{t-1} * (period - 1) + TR_t) / period
    """
    result: list[Decimal | None] = [None] * len(candles)
    if period <= 0 or len(candles) <= period:
        return result

    ranges = true_ranges(candles)
    divisor = Decimal(period)

    atr = (sum(ranges[1 : period + 1], Decimal("0")) / divisor).quantize(_QUANTIZE)  # type: ignore[arg-type]
    result[period] = atr
    for i in range(period + 1, len(candles)):
        atr = ((atr * (divisor - 1) + ranges[i]) / divisor).quantize(_QUANTIZE)  # type: ignore[operator]
        result[i] = atr

    return result
