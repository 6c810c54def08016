"""
Configuration Management for SpreadLab.

Uses pydantic-settings for environment variable loading and validation.
Engine tuning lives in explicit dataclasses (RatingConfig, BacktestConfig,
...) next to the code that consumes them; the values here only seed
their defaults for command-line runs.
"""

from typing import Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application Settings.

    Loads configuration from environment variables (prefixed with
    ``SPREADLAB_``) and an optional .env file.
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="SPREADLAB_",
        case_sensitive=True,
        extra="ignore"
    )

    # App Info
    APP_NAME: str = "SpreadLab"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # Bet selection defaults
    MIN_EDGE: float = Field(default=3.0, ge=0.0)
    MAX_EDGE: Optional[float] = None
    LINE_SOURCE: str = "open"
    STAKE_UNITS: float = Field(default=1.0, gt=0.0)
    DEFAULT_PRICE: int = -110

    # Parameter sweeps
    SWEEP_MAX_WORKERS: Optional[int] = None

    # Output
    RESULTS_DIR: str = "results"

    @field_validator("LOG_LEVEL")
    @classmethod
    def _normalise_level(cls, value: str) -> str:
        return value.upper()

    @field_validator("LINE_SOURCE")
    @classmethod
    def _check_line_source(cls, value: str) -> str:
        value = value.lower()
        if value not in ("open", "close"):
            raise ValueError("LINE_SOURCE must be 'open' or 'close'")
        return value


settings = Settings()
