"""Trading strategy configuration models.

Each strategy type owns a typed parameter model. Raw JSON-shaped
parameters are validated into it when the config is loaded; missing
keys fall back to the defaults below.
"""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from signal_core.errors import InvalidParameterError


class StrategyType(str, Enum):
    """Trading rule types runnable by the backtester and the live bot."""

    SMA_CROSSOVER = "sma_crossover"
    RSI_STRATEGY = "rsi_strategy"
    MACD_STRATEGY = "macd_strategy"
    BREAKOUT_STRATEGY = "breakout_strategy"


class SmaCrossoverParams(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    short_period: int = Field(default=20, ge=1)
    long_period: int = Field(default=50, ge=2)

    @model_validator(mode="after")
    def _check_order(self) -> "SmaCrossoverParams":
        if self.short_period >= self.long_period:
            raise ValueError(
                f"short_period ({self.short_period}) must be below long_period ({self.long_period})"
            )
        return self


class RsiParams(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    period: int = Field(default=14, ge=1)
    oversold: Decimal = Decimal("30")
    overbought: Decimal = Decimal("70")

    @model_validator(mode="after")
    def _check_bounds(self) -> "RsiParams":
        if not Decimal("0") <= self.oversold < self.overbought <= Decimal("100"):
            raise ValueError(
                f"need 0 <= oversold < overbought <= 100, got {self.oversold}/{self.overbought}"
            )
        return self


class MacdParams(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    # When set, BUY also needs MACD > 0 and SELL needs MACD < 0
    require_macd_confirmation: bool = False


class BreakoutParams(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    period: int = Field(default=20, ge=1)


StrategyParams = Union[SmaCrossoverParams, RsiParams, MacdParams, BreakoutParams]

PARAMS_BY_TYPE: dict[StrategyType, type[BaseModel]] = {
    StrategyType.SMA_CROSSOVER: SmaCrossoverParams,
    StrategyType.RSI_STRATEGY: RsiParams,
    StrategyType.MACD_STRATEGY: MacdParams,
    StrategyType.BREAKOUT_STRATEGY: BreakoutParams,
}


def parse_strategy_params(
    strategy_type: StrategyType | str, raw: dict[str, Any] | None
) -> StrategyParams:
    """Validate raw parameters for a strategy type.

    Raises:
        InvalidParameterError: unknown type or malformed values
    """
    try:
        params_cls = PARAMS_BY_TYPE[StrategyType(strategy_type)]
    except ValueError:
        raise InvalidParameterError(f"Unknown strategy type '{strategy_type}'") from None
    try:
        return params_cls.model_validate(raw or {})
    except ValidationError as e:
        raise InvalidParameterError(
            f"Invalid parameters for {StrategyType(strategy_type).value}: {e}"
        ) from e


class StrategyConfig(BaseModel):
    """A named strategy instance: a type tag plus its typed parameters."""

    model_config = ConfigDict(frozen=True)

    id: int | None = None
    name: str = ""
    type: StrategyType
    is_active: bool = True
    parameters: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _validate_parameters(self) -> "StrategyConfig":
        # Surface malformed parameters at load time
        self.typed_params()
        return self

    def typed_params(self) -> StrategyParams:
        return parse_strategy_params(self.type, self.parameters)

    @property
    def label(self) -> str:
        return self.name or self.type.value
