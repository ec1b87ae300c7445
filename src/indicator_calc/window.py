"""Per-pair sliding quote store.

A QuoteWindow is owned by exactly one PairWorker and is never touched by
another task, so it carries no locking.
"""

import bisect
from collections.abc import Iterable
from datetime import datetime

from indicator_calc.data.models import Candle


class QuoteWindow:
    """Ordered set of candles, unique by close time.

    Merging a batch replaces any candle sharing a close time with the
    freshly fetched copy, so re-fetching overlapping history never
    duplicates rows and revised prices win.
    """

    def __init__(self) -> None:
        self._closes: list[datetime] = []
        self._candles: dict[datetime, Candle] = {}

    def merge(self, batch: Iterable[Candle]) -> None:
        """Replace overlapping candles with ``batch`` and insert the rest."""
        for candle in batch:
            key = candle.close_time
            if key not in self._candles:
                bisect.insort(self._closes, key)
            self._candles[key] = candle

    def evict_before(self, checkpoint: datetime | None) -> int:
        """Drop candles closing strictly before ``checkpoint``.

        Returns the number of evicted candles. A None checkpoint evicts nothing.
        """
        if checkpoint is None:
            return 0
        cut = bisect.bisect_left(self._closes, checkpoint)
        for key in self._closes[:cut]:
            del self._candles[key]
        del self._closes[:cut]
        return cut

    def snapshot(self) -> list[Candle]:
        """Return the candles ordered by close time."""
        return [self._candles[key] for key in self._closes]

    @property
    def last_close(self) -> datetime | None:
        return self._closes[-1] if self._closes else None

    def __len__(self) -> int:
        return len(self._closes)

    def __contains__(self, candle: object) -> bool:
        return isinstance(candle, Candle) and self._candles.get(candle.close_time) == candle
