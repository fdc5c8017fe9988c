"""Application configuration."""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="SIGNALS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Bulk screening
    screener_concurrency: int = 10
    min_trading_value: float = 0.0  # millions, 0 = no filter

    # Live bot
    poll_interval_seconds: float = 60.0
    confidence_threshold: float = 70.0
    market_open_hour: int = 9
    market_close_hour: int = 15
    history_lookback: int = 300
    bot_config_path: Path | None = None
    prices_dir: Path | None = None

    # Logging
    debug: bool = False


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
