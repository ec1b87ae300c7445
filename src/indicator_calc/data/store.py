"""Abstract candle store interface.

The window engine depends only on this contract, keeping SQL and
connection handling isolated in the concrete implementation.
Implementations raise StoreUnavailableError for any backend failure.
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from datetime import datetime

from indicator_calc.data.models import Candle, IndicatorRow
from indicator_calc.models import IndicatorKind


class CandleStore(ABC):
    """Abstract base class for candle sources and indicator sinks."""

    @abstractmethod
    async def fetch_candles(
        self,
        asset: str,
        timeframe: str,
        since: datetime | None,
        limit: int,
    ) -> list[Candle]:
        """Return up to ``limit`` candles with close time >= ``since``, ascending by open time.

        ``since=None`` means no lower bound.
        """
        ...

    @abstractmethod
    async def count_candles(self, asset: str, timeframe: str) -> int:
        """Return the total number of stored candles for a pair."""
        ...

    @abstractmethod
    async def upsert_indicator_rows(
        self, kind: IndicatorKind, rows: Sequence[IndicatorRow]
    ) -> None:
        """Update rows found by composite key in place, insert the rest.

        All rows are written in one transaction; on failure nothing is written.
        """
        ...
