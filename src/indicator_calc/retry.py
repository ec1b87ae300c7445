"""Fixed-delay retry around candle store I/O.

Store failures are treated as transient and retried with no attempt cap;
a worker blocks on the store until it comes back or the task is cancelled.
Anything else (configuration or programming errors) propagates at once.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

from indicator_calc.exceptions import StoreUnavailableError
from indicator_calc.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


async def retry(
    operation: Callable[[], Awaitable[T]],
    delay: float,
    /,
    **context: object,
) -> T:
    """Await ``operation()`` until it succeeds, sleeping ``delay`` seconds between attempts.

    Args:
        operation: Zero-argument coroutine factory; called once per attempt.
        delay: Fixed pause between attempts in seconds.
        **context: Extra key/values bound to the retry log events. May
            include ``operation`` to name the wrapped call.

    Raises:
        Any exception other than StoreUnavailableError, unchanged.
    """
    attempt = 0
    while True:
        attempt += 1
        try:
            return await operation()
        except StoreUnavailableError as e:
            logger.warning(
                "store_retry",
                attempt=attempt,
                delay=delay,
                error=str(e),
                **context,
            )
            await asyncio.sleep(delay)
