"""Backtest-specific configuration.

Independent of app/config.py. Defaults for a run come from BACKTEST_*
environment variables (or .env); a BacktestConfig can override each.
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from decimal import Decimal

from pydantic_settings import BaseSettings, SettingsConfigDict

from signal_core.errors import InvalidParameterError
from signal_core.models.config import StrategyConfig


class BacktestSettings(BaseSettings):
    """Backtest configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="BACKTEST_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    initial_capital: Decimal = Decimal("100000000")
    # Charged on both legs, e.g. 0.15% = 0.0015
    commission: Decimal = Decimal("0.0015")
    # Fraction of available cash committed per BUY
    risk_per_trade: Decimal = Decimal("0.1")
    # Price points loaded per symbol (covers indicator warmup)
    history_lookback: int = 600


_settings: BacktestSettings | None = None


def get_backtest_settings() -> BacktestSettings:
    """Get cached backtest settings instance."""
    global _settings
    if _settings is None:
        _settings = BacktestSettings()
    return _settings


@dataclass
class BacktestConfig:
    """Configuration for a backtest run.

    Unset money/rate fields fall back to BacktestSettings.
    """

    strategy: StrategyConfig
    symbols: list[str]
    start_date: dt.date
    end_date: dt.date
    initial_capital: Decimal | None = None
    commission: Decimal | None = None
    risk_per_trade: Decimal | None = None
    history_lookback: int | None = None
    name: str = field(default="")

    def __post_init__(self) -> None:
        settings = get_backtest_settings()
        if self.initial_capital is None:
            self.initial_capital = settings.initial_capital
        if self.commission is None:
            self.commission = settings.commission
        if self.risk_per_trade is None:
            self.risk_per_trade = settings.risk_per_trade
        if self.history_lookback is None:
            self.history_lookback = settings.history_lookback

        self.initial_capital = Decimal(str(self.initial_capital))
        self.commission = Decimal(str(self.commission))
        self.risk_per_trade = Decimal(str(self.risk_per_trade))

        if self.end_date < self.start_date:
            raise InvalidParameterError(
                f"end_date {self.end_date} is before start_date {self.start_date}"
            )
        if self.initial_capital <= 0:
            raise InvalidParameterError(
                f"initial_capital must be positive, got {self.initial_capital}"
            )
        if self.commission < 0:
            raise InvalidParameterError(f"commission must be >= 0, got {self.commission}")
        if not Decimal("0") < self.risk_per_trade <= Decimal("1"):
            raise InvalidParameterError(
                f"risk_per_trade must be in (0, 1], got {self.risk_per_trade}"
            )
        if not self.name:
            self.name = (
                f"{self.strategy.label} {self.start_date:%Y-%m-%d}..{self.end_date:%Y-%m-%d}"
            )

    @property
    def days(self) -> int:
        return (self.end_date - self.start_date).days
