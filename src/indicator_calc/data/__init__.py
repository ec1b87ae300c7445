"""Candle persistence layer.

Provides the candle and indicator row models, the abstract CandleStore
contract, and its SQLite implementation.
"""

from indicator_calc.data.database import CandleDatabase
from indicator_calc.data.models import Candle, IndicatorKey, IndicatorRow
from indicator_calc.data.sqlite_store import SqliteCandleStore
from indicator_calc.data.store import CandleStore

__all__ = [
    "Candle",
    "CandleDatabase",
    "CandleStore",
    "IndicatorKey",
    "IndicatorRow",
    "SqliteCandleStore",
]
