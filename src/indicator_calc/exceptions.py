"""Custom exceptions for the indicator calculator.

Kept in one module so the store, retry and worker layers can share them
without importing each other.
"""


class CalculatorError(Exception):
    """Base exception for all calculator errors."""


class StoreUnavailableError(CalculatorError):
    """Raised when the candle store cannot be reached or a query fails.

    Treated as transient: callers retry it indefinitely.
    """


class ConfigurationError(CalculatorError):
    """Raised for invalid configuration (unknown timeframe, kind or period).

    Never retried.
    """
