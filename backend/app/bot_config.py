"""Live bot configuration loaded from bot.yaml.

Supports:
- A list of trading rule strategies (type + parameters), each optionally
  restricted to a subset of symbols
- A tracked-symbol list (empty = every symbol the data source lists)
- No YAML file = no strategies, the bot idles
"""

import logging
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

from signal_core.models.config import StrategyConfig, StrategyType

logger = logging.getLogger(__name__)


class StrategyEntry(BaseModel):
    """A single strategy entry in the YAML config."""

    id: int | None = None
    name: str = ""
    type: StrategyType
    enabled: bool = True
    parameters: dict[str, Any] = Field(default_factory=dict)
    symbols: list[str] = Field(default_factory=list)  # empty = all tracked symbols

    def to_strategy_config(self) -> StrategyConfig:
        return StrategyConfig(
            id=self.id,
            name=self.name,
            type=self.type,
            is_active=self.enabled,
            parameters=self.parameters,
        )


class BotConfig(BaseModel):
    """Top-level bot.yaml configuration."""

    symbols: list[str] = Field(default_factory=list)
    strategies: list[StrategyEntry] = Field(default_factory=list)

    @model_validator(mode="after")
    def _validate(self):
        labels = [s.to_strategy_config().label for s in self.strategies]
        duplicates = sorted({n for n in labels if labels.count(n) > 1})
        if duplicates:
            raise ValueError(f"duplicate strategy names: {duplicates} (set a unique name)")
        return self

    def get_active_strategies(self) -> list[StrategyConfig]:
        """Return strategy configs with enabled=True."""
        return [s.to_strategy_config() for s in self.strategies if s.enabled]

    def symbols_by_strategy(self) -> dict[str, list[str]]:
        """Per-strategy symbol restrictions, keyed by strategy label."""
        return {
            s.to_strategy_config().label: list(s.symbols)
            for s in self.strategies
            if s.enabled and s.symbols
        }


_DEFAULT_PATH = Path(__file__).parent.parent / "bot.yaml"


def load_bot_config(path: Path | None = None) -> BotConfig:
    """Load bot config from YAML file.

    Falls back to defaults (no strategies) if the file doesn't exist.
    """
    config_path = Path(path) if path else _DEFAULT_PATH

    # Load the sibling .env so SIGNALS_* settings apply
    env_path = config_path.parent / ".env"
    load_dotenv(env_path, override=False)

    if not config_path.exists():
        logger.info(
            "No bot.yaml found at %s, using defaults (no strategies)",
            config_path,
        )
        return BotConfig()

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    config = BotConfig(**raw)
    logger.info(
        "Loaded bot config: %d strategies (%d enabled), %d symbols",
        len(config.strategies),
        len(config.get_active_strategies()),
        len(config.symbols),
    )
    return config
