"""Logging for the indicator calculator.

Every pair worker runs as its own asyncio task. Log events emitted while a
worker runs carry its ``asset`` and ``timeframe`` via structlog contextvars,
so interleaved output from many pairs stays attributable without threading
the pair through every call.
"""

import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager

import structlog


def setup_logging(log_level: str = "INFO") -> None:
    """Route structlog and stdlib logging through one stream handler.

    LOG_FORMAT=json renders one JSON object per event for log shippers;
    anything else uses the console renderer. The supervisor, the workers
    and aiosqlite all share the root handler.
    """
    log_format = os.environ.get("LOG_FORMAT", "console").lower()

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if log_format == "json":
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    # aiosqlite logs every statement at DEBUG
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a bound structlog logger with the given name."""
    return structlog.get_logger(name)


@contextmanager
def pair_context(asset: str, timeframe: str) -> Iterator[None]:
    """Bind ``asset`` and ``timeframe`` to every event logged inside the block.

    The binding lives in the current task's context, so concurrent workers
    never see each other's pair.
    """
    with structlog.contextvars.bound_contextvars(asset=asset, timeframe=timeframe):
        yield
