"""Configuration system using pydantic-settings with environment variable loading."""

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_DEFAULT_MA_PERIODS = [5, 9, 12, 20, 26, 50, 75, 200]


class StoreSettings(BaseSettings):
    """SQLite candle store location."""

    model_config = SettingsConfigDict(env_prefix="STORE_")

    db_path: str = "data/candles.db"


class CalculatorSettings(BaseSettings):
    """Per-pair worker parameters.

    Every asset is paired with every timeframe, one worker per pair.
    All fields configurable via CALC_ environment variable prefix.
    """

    model_config = SettingsConfigDict(env_prefix="CALC_")

    assets: list[str] = ["BTCUSDT", "ETHUSDT"]
    timeframes: list[str] = ["5m", "15m", "1h", "4h", "1d"]
    amount_of_data: int = 1000  # page size per fetch
    cycle_delay: float = 2.0  # seconds between worker cycles
    retry_delay: float = 1.0  # fixed delay between store retries

    @field_validator("amount_of_data")
    @classmethod
    def _positive_page(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("amount_of_data must be positive")
        return value


class SupervisorSettings(BaseSettings):
    """Worker liveness polling."""

    model_config = SettingsConfigDict(env_prefix="SUPERVISOR_")

    poll_interval: float = 0.5
    startup_delay: float = 5.0  # grace period before the first scan


class IndicatorSettings(BaseSettings):
    """Lookback periods per indicator kind.

    Each period becomes one column in the matching indicator table.
    """

    model_config = SettingsConfigDict(env_prefix="INDICATOR_")

    ema_periods: list[int] = list(_DEFAULT_MA_PERIODS)
    sma_periods: list[int] = list(_DEFAULT_MA_PERIODS)
    atr_periods: list[int] = [14]

    @field_validator("ema_periods", "sma_periods", "atr_periods")
    @classmethod
    def _positive_periods(cls, value: list[int]) -> list[int]:
        if any(p <= 0 for p in value):
            raise ValueError("indicator periods must be positive")
        return value


class AppSettings(BaseSettings):
    """Root application settings, composing all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    log_level: str = "INFO"
    store: StoreSettings = StoreSettings()
    calculator: CalculatorSettings = CalculatorSettings()
    supervisor: SupervisorSettings = SupervisorSettings()
    indicators: IndicatorSettings = IndicatorSettings()
