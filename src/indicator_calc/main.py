"""Entry point for the indicator calculator.

Wires settings, logging, the SQLite candle store and the supervisor, then
runs until SIGINT/SIGTERM.

Component wiring order:
1. AppSettings (configuration)
2. Logging setup
3. IndicatorConfig and IndicatorColumns (period -> column mapping)
4. CandleDatabase (schema incl. indicator columns) and SqliteCandleStore
5. UpsertMerger
6. Supervisor with a PairWorker factory, one pair per asset x timeframe
"""

import asyncio
import signal
from functools import partial

from indicator_calc.config import AppSettings
from indicator_calc.data.database import CandleDatabase
from indicator_calc.data.sqlite_store import SqliteCandleStore
from indicator_calc.logging import get_logger, setup_logging
from indicator_calc.merger import IndicatorColumns, UpsertMerger
from indicator_calc.models import IndicatorConfig, PairKey
from indicator_calc.supervisor import Supervisor
from indicator_calc.worker import PairWorker


def build_indicator_config(settings: AppSettings) -> IndicatorConfig:
    """Translate indicator settings into an immutable IndicatorConfig."""
    return IndicatorConfig(
        ema_periods=frozenset(settings.indicators.ema_periods),
        sma_periods=frozenset(settings.indicators.sma_periods),
        atr_periods=frozenset(settings.indicators.atr_periods),
    )


def build_pairs(settings: AppSettings) -> list[PairKey]:
    """Every configured asset paired with every configured timeframe."""
    return [
        PairKey(asset, timeframe)
        for asset in settings.calculator.assets
        for timeframe in settings.calculator.timeframes
    ]


def _make_worker(
    pair: PairKey,
    store: SqliteCandleStore,
    merger: UpsertMerger,
    config: IndicatorConfig,
    settings: AppSettings,
) -> PairWorker:
    return PairWorker(
        pair=pair,
        store=store,
        merger=merger,
        config=config,
        amount_of_data=settings.calculator.amount_of_data,
        cycle_delay=settings.calculator.cycle_delay,
        retry_delay=settings.calculator.retry_delay,
    )


def _setup_signal_handlers(supervisor: Supervisor) -> None:
    """Register SIGINT/SIGTERM to stop the supervisor gracefully.

    Must be called after the asyncio event loop is running.
    """
    logger = get_logger("indicator_calc.main")
    loop = asyncio.get_running_loop()

    def _graceful_handler() -> None:
        logger.info("graceful_shutdown_signal")
        asyncio.create_task(supervisor.stop())

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _graceful_handler)


async def run() -> None:
    """Run the indicator calculator until a shutdown signal arrives."""
    settings = AppSettings()

    setup_logging(settings.log_level)
    logger = get_logger("indicator_calc.main")

    config = build_indicator_config(settings)
    columns = IndicatorColumns.from_config(config)
    pairs = build_pairs(settings)

    async with CandleDatabase(settings.store.db_path, columns.as_table_columns()) as database:
        store = SqliteCandleStore(database)
        merger = UpsertMerger(store, columns)

        supervisor = Supervisor(
            pairs,
            partial(_make_worker, store=store, merger=merger, config=config, settings=settings),
            poll_interval=settings.supervisor.poll_interval,
            startup_delay=settings.supervisor.startup_delay,
        )
        _setup_signal_handlers(supervisor)

        logger.info(
            "indicator_calculator_starting",
            pairs=len(pairs),
            amount_of_data=settings.calculator.amount_of_data,
            db_path=settings.store.db_path,
        )
        await supervisor.run()

    logger.info("indicator_calculator_stopped")


def main() -> None:
    """Synchronous entry point."""
    asyncio.run(run())


if __name__ == "__main__":
    main()
