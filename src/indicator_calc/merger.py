"""Maps computed indicator values onto persisted rows and upserts them.

Column selection uses an explicit period -> column mapping built once from
the configured periods (``ema_12`` holds the 12-period EMA). Rows are keyed
by (asset, interval, open time, close time); the store updates matching
rows in place and inserts the rest, one transaction per indicator kind.
"""

from collections.abc import Mapping
from decimal import Decimal

from indicator_calc.data.models import Candle, IndicatorKey, IndicatorRow
from indicator_calc.data.store import CandleStore
from indicator_calc.exceptions import ConfigurationError
from indicator_calc.logging import get_logger
from indicator_calc.models import IndicatorConfig, IndicatorKind

logger = get_logger(__name__)


def column_name(kind: IndicatorKind, period: int) -> str:
    """Return the column holding ``period`` for ``kind`` (e.g. ``ema_12``)."""
    return f"{kind.value}_{period}"


class IndicatorColumns:
    """Period to column mapping per indicator kind.

    Built once at startup; used both to create table columns and to select
    the column each computed period is written to.
    """

    def __init__(self, mapping: Mapping[IndicatorKind, Mapping[int, str]]) -> None:
        self._mapping: dict[IndicatorKind, dict[int, str]] = {}
        for kind, by_period in mapping.items():
            columns = list(by_period.values())
            if len(set(columns)) != len(columns):
                raise ConfigurationError(f"Duplicate {kind.value} columns: {sorted(columns)}")
            self._mapping[kind] = dict(sorted(by_period.items()))

    @classmethod
    def from_config(cls, config: IndicatorConfig) -> "IndicatorColumns":
        return cls(
            {
                kind: {period: column_name(kind, period) for period in config.periods(kind)}
                for kind in IndicatorKind
            }
        )

    def column(self, kind: IndicatorKind, period: int) -> str:
        """Return the column for ``period``; unknown kinds or periods are configuration errors."""
        try:
            return self._mapping[kind][period]
        except KeyError:
            raise ConfigurationError(
                f"No {getattr(kind, 'value', kind)} column configured for period {period}"
            ) from None

    def columns(self, kind: IndicatorKind) -> list[str]:
        return list(self._mapping.get(kind, {}).values())

    def as_table_columns(self) -> dict[IndicatorKind, list[str]]:
        """Column lists per kind, as CandleDatabase expects them."""
        return {kind: self.columns(kind) for kind in self._mapping}


class UpsertMerger:
    """Writes computed indicator values to the candle store.

    Args:
        store: Destination for indicator rows.
        columns: Period to column mapping.
    """

    def __init__(self, store: CandleStore, columns: IndicatorColumns) -> None:
        self._store = store
        self._columns = columns

    def build_rows(
        self,
        kind: IndicatorKind,
        values: Mapping[Candle, Mapping[int, Decimal | None]],
    ) -> list[IndicatorRow]:
        """Convert per-candle period values into keyed rows.

        Raises:
            ConfigurationError: If ``kind`` is not an IndicatorKind or a period
                has no configured column.
        """
        if not isinstance(kind, IndicatorKind):
            raise ConfigurationError(f"Unknown indicator kind: {kind!r}")

        rows: list[IndicatorRow] = []
        for candle, by_period in values.items():
            rows.append(
                IndicatorRow(
                    key=IndicatorKey.for_candle(candle),
                    values={
                        self._columns.column(kind, period): value
                        for period, value in sorted(by_period.items())
                    },
                )
            )
        return rows

    async def merge(
        self,
        kind: IndicatorKind,
        values: Mapping[Candle, Mapping[int, Decimal | None]],
    ) -> int:
        """Upsert ``values`` for ``kind`` as one all-or-nothing batch.

        Returns the number of rows written. Empty input is a no-op.
        """
        rows = self.build_rows(kind, values)
        if not rows:
            return 0

        await self._store.upsert_indicator_rows(kind, rows)
        logger.debug(
            "indicators_merged",
            asset=rows[0].key.asset,
            timeframe=rows[0].key.interval,
            indicator=kind.value,
            rows=len(rows),
        )
        return len(rows)
