"""Incremental EMA/SMA/ATR calculator over rolling candle windows."""

__version__ = "0.1.0"
