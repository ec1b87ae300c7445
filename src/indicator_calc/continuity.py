"""Live-edge continuity check for freshly fetched candle batches.

Candles that closed recently may still be revised at the source. Before a
batch is merged into a window it is cut at the first candle that looks like
the live edge of the series:

- Cold start (no checkpoint yet): stop at the first candle if it closes in
  the current or the previous month of the current year. Indicators are
  never seeded from history that is still settling.
- Warm start: stop at the first candle whose gap to the previous close
  exceeds the nominal timeframe period, when that candle closes in the
  current month and the previous close does not.

A cut is a normal signal, never an error.
"""

from collections.abc import Sequence
from datetime import datetime

from indicator_calc.data.models import Candle
from indicator_calc.logging import get_logger
from indicator_calc.models import period_length

logger = get_logger(__name__)


def _in_current_month(moment: datetime, now: datetime) -> bool:
    return moment.year == now.year and moment.month == now.month


def truncate_incomplete(
    batch: Sequence[Candle],
    timeframe: str,
    checkpoint: datetime | None,
    now: datetime,
    asset: str = "",
) -> list[Candle]:
    """Return the prefix of ``batch`` that is safe to compute on.

    Args:
        batch: Candles ordered ascending by open time.
        timeframe: Timeframe label (``5m``, ``15m``, ``1h``, ``4h``, ``1d``).
        checkpoint: Close time of the newest final candle, None on cold start.
        now: Reference time for the current year/month checks.
        asset: Asset symbol, for log context only.

    Returns:
        The accepted prefix. Empty when the timeframe is not recognized.
    """
    period = period_length(timeframe)
    if period is None:
        logger.warning(
            "timeframe_not_translatable",
            asset=asset,
            timeframe=timeframe,
            last_close=str(checkpoint),
        )
        return []

    accepted: list[Candle] = []
    previous_close = checkpoint

    for candle in batch:
        close = candle.close_time

        if previous_close is None:
            if close.year == now.year and close.month in (now.month, now.month - 1):
                logger.debug(
                    "cold_start_too_recent",
                    asset=asset,
                    timeframe=timeframe,
                    close_time=str(close),
                )
                break
        else:
            gap = close - previous_close
            if (
                gap > period
                and _in_current_month(close, now)
                and not _in_current_month(previous_close, now)
            ):
                logger.debug(
                    "live_edge_gap",
                    asset=asset,
                    timeframe=timeframe,
                    close_time=str(close),
                    previous_close=str(previous_close),
                    gap=str(gap),
                )
                break

        accepted.append(candle)
        previous_close = close

    return accepted
