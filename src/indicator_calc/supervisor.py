"""Keeps one live PairWorker task per configured pair.

The registry of worker tasks is mutated only by the supervisor's own loop.
A worker that finished (drained), crashed or was cancelled is replaced by
a fresh worker for the same pair. The replacement starts cold: its window
and checkpoint are rebuilt from the store, not carried over.
"""

import asyncio
from collections.abc import Callable, Iterable

from indicator_calc.logging import get_logger
from indicator_calc.models import PairKey
from indicator_calc.worker import PairWorker

logger = get_logger(__name__)

WorkerFactory = Callable[[PairKey], PairWorker]


class Supervisor:
    """Starts, watches and restarts pair workers.

    Args:
        pairs: The (asset, timeframe) pairs to keep running.
        worker_factory: Builds a fresh PairWorker for a pair.
        poll_interval: Seconds between liveness scans.
        startup_delay: Seconds to wait after start before the first scan.
    """

    def __init__(
        self,
        pairs: Iterable[PairKey],
        worker_factory: WorkerFactory,
        poll_interval: float = 0.5,
        startup_delay: float = 0.0,
    ) -> None:
        self._pairs = list(dict.fromkeys(pairs))
        self._worker_factory = worker_factory
        self._poll_interval = poll_interval
        self._startup_delay = startup_delay
        self._workers: dict[PairKey, PairWorker] = {}
        self._tasks: dict[PairKey, asyncio.Task[None]] = {}
        self._restarts: dict[PairKey, int] = {}
        self._running = False

    @property
    def workers(self) -> dict[PairKey, PairWorker]:
        """Current worker per pair (read-only view for inspection)."""
        return dict(self._workers)

    def restarts(self, pair: PairKey) -> int:
        """Number of times ``pair``'s worker has been replaced."""
        return self._restarts.get(pair, 0)

    def start(self) -> None:
        """Spawn one worker task per pair. Must be called inside a running loop."""
        for pair in self._pairs:
            self._spawn(pair)
        logger.info("supervisor_started", pairs=len(self._pairs))

    def _spawn(self, pair: PairKey) -> None:
        worker = self._worker_factory(pair)
        self._workers[pair] = worker
        self._tasks[pair] = asyncio.create_task(worker.run(), name=f"worker-{pair}")

    def scan_once(self) -> PairKey | None:
        """Restart the first worker that is no longer running.

        At most one worker is replaced per pass. Returns the restarted pair,
        or None if every worker is alive.
        """
        for pair, task in self._tasks.items():
            if not task.done():
                continue

            if task.cancelled():
                logger.warning("worker_cancelled", asset=pair.asset, timeframe=pair.timeframe)
            elif (exc := task.exception()) is not None:
                logger.error(
                    "worker_crashed",
                    asset=pair.asset,
                    timeframe=pair.timeframe,
                    exc_info=exc,
                )
            else:
                logger.debug("worker_finished", asset=pair.asset, timeframe=pair.timeframe)

            self._restarts[pair] = self._restarts.get(pair, 0) + 1
            self._spawn(pair)
            logger.debug(
                "worker_restarted",
                asset=pair.asset,
                timeframe=pair.timeframe,
                restarts=self._restarts[pair],
            )
            return pair

        return None

    async def run(self) -> None:
        """Start all workers, then scan for dead ones until stop() is called."""
        self._running = True
        self.start()
        try:
            if self._startup_delay > 0:
                await asyncio.sleep(self._startup_delay)
            while self._running:
                self.scan_once()
                await asyncio.sleep(self._poll_interval)
        finally:
            await self._cancel_workers()
            logger.info("supervisor_stopped")

    async def stop(self) -> None:
        """Signal the scan loop to stop; run() cancels the workers on exit."""
        self._running = False

    async def _cancel_workers(self) -> None:
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
