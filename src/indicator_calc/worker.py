"""Poll -> fetch -> merge -> compute -> upsert -> sleep loop for one pair.

Each PairWorker exclusively owns its QuoteWindow and checkpoint; nothing is
shared with other pairs, so there is no locking on hot state. Within a pair
every step is strictly sequential.

Cycle:
  1. FETCHING: page of up to ``amount_of_data`` candles closing at or after
     the checkpoint, cut at the live edge. Empty batch -> DRAINED.
  2. MERGING: merge into the window. On a full page, evict candles older
     than the checkpoint and advance the checkpoint to the batch's last close.
  3. COMPUTING: all indicator series over the window snapshot.
  4. UPSERTING: EMA, SMA, ATR, each retried independently.
  5. SLEEPING: fixed pause, then back to FETCHING.
"""

import asyncio
from collections.abc import Callable
from datetime import datetime, timezone

from indicator_calc.continuity import truncate_incomplete
from indicator_calc.data.store import CandleStore
from indicator_calc.engine import compute_indicators, values_for_kind
from indicator_calc.logging import get_logger, pair_context
from indicator_calc.merger import UpsertMerger
from indicator_calc.models import IndicatorConfig, IndicatorKind, PairKey, WorkerState
from indicator_calc.retry import retry
from indicator_calc.window import QuoteWindow

logger = get_logger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class PairWorker:
    """Keeps the indicators of one (asset, timeframe) pair up to date.

    Args:
        pair: The pair this worker owns.
        store: Candle source and indicator sink.
        merger: Writes computed values back to the store.
        config: Indicator periods to compute.
        amount_of_data: Page size per fetch; a full page advances the checkpoint.
        cycle_delay: Seconds to sleep between cycles.
        retry_delay: Fixed delay between store retries.
        clock: Returns the current time; drives the live-edge checks.
    """

    def __init__(
        self,
        pair: PairKey,
        store: CandleStore,
        merger: UpsertMerger,
        config: IndicatorConfig,
        amount_of_data: int = 1000,
        cycle_delay: float = 2.0,
        retry_delay: float = 1.0,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._pair = pair
        self._store = store
        self._merger = merger
        self._config = config
        self._amount_of_data = amount_of_data
        self._cycle_delay = cycle_delay
        self._retry_delay = retry_delay
        self._clock = clock
        self._window = QuoteWindow()
        self._checkpoint: datetime | None = None
        self._state = WorkerState.FETCHING
        self._cycles = 0

    @property
    def pair(self) -> PairKey:
        return self._pair

    @property
    def state(self) -> WorkerState:
        return self._state

    @property
    def checkpoint(self) -> datetime | None:
        """Close time of the newest candle considered final; None until the first full page."""
        return self._checkpoint

    @property
    def window(self) -> QuoteWindow:
        return self._window

    @property
    def cycles(self) -> int:
        """Number of completed (non-drained) cycles."""
        return self._cycles

    async def run(self) -> None:
        """Run cycles until a fetch comes back empty."""
        with pair_context(self._pair.asset, self._pair.timeframe):
            logger.debug("worker_started", amount_of_data=self._amount_of_data)
            while await self.run_cycle():
                self._state = WorkerState.SLEEPING
                await asyncio.sleep(self._cycle_delay)
            logger.debug("worker_drained", last_close=str(self._checkpoint))

    async def run_cycle(self) -> bool:
        """Execute one fetch/merge/compute/upsert pass.

        Returns:
            False when the fetch produced no candles (DRAINED), True otherwise.
        """
        asset, timeframe = self._pair.asset, self._pair.timeframe
        checkpoint = self._checkpoint

        self._state = WorkerState.FETCHING
        logger.debug("getting_data", last_close=str(checkpoint))
        raw = await retry(
            lambda: self._store.fetch_candles(asset, timeframe, checkpoint, self._amount_of_data),
            self._retry_delay,
            operation="fetch_candles",
        )
        batch = truncate_incomplete(raw, timeframe, checkpoint, self._clock(), asset=asset)
        logger.debug(
            "got_data",
            fetched=len(raw),
            accepted=len(batch),
            last_date=str(batch[-1].close_time) if batch else None,
        )

        if not batch:
            self._state = WorkerState.DRAINED
            return False

        self._state = WorkerState.MERGING
        self._window.merge(batch)
        full_page = len(batch) == self._amount_of_data
        if full_page:
            evicted = self._window.evict_before(checkpoint)
            last_close = batch[-1].close_time
            if checkpoint is None or last_close > checkpoint:
                self._checkpoint = last_close
            logger.debug(
                "checkpoint_advanced",
                last_close=str(self._checkpoint),
                evicted=evicted,
            )

        self._state = WorkerState.COMPUTING
        results = compute_indicators(self._window.snapshot(), self._config)

        self._state = WorkerState.UPSERTING
        for kind in IndicatorKind:
            values = values_for_kind(results, kind)
            await retry(
                lambda: self._merger.merge(kind, values),
                self._retry_delay,
                operation="upsert_indicators",
                indicator=kind.value,
            )

        logger.debug(
            "wrote_to_db",
            last_date=str(self._window.last_close),
            window_size=len(self._window),
        )

        if full_page:
            await self._report_progress()

        self._cycles += 1
        return True

    async def _report_progress(self) -> None:
        total = await retry(
            lambda: self._store.count_candles(self._pair.asset, self._pair.timeframe),
            self._retry_delay,
            operation="count_candles",
        )
        logger.info(
            "pair_progress",
            last_close=str(self._checkpoint),
            window_size=len(self._window),
            total_candles=total,
        )
