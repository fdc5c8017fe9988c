"""Signal models produced by strategies, rules and templates."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class SignalType(str, Enum):
    """Signal direction."""

    BUY = "BUY"
    SELL = "SELL"
    HOLD = "HOLD"
    STRONG_BUY = "STRONG_BUY"
    STRONG_SELL = "STRONG_SELL"
    ALERT = "ALERT"

    @property
    def is_buy_like(self) -> bool:
        return self in (SignalType.BUY, SignalType.STRONG_BUY)

    @property
    def is_sell_like(self) -> bool:
        return self in (SignalType.SELL, SignalType.STRONG_SELL)


class StrategySignal(BaseModel):
    """Output of a built-in scoring strategy for one snapshot."""

    model_config = ConfigDict(frozen=True)

    symbol: str
    strategy: str
    signal_type: SignalType
    strength: int = Field(ge=0, le=100)
    confidence: float = Field(ge=0.0, le=1.0)
    reasons: list[str] = Field(default_factory=list)
    current_price: float = 0.0
    target_price: float = 0.0
    stop_loss: float = 0.0
    indicators: dict[str, float] = Field(default_factory=dict)

    @property
    def direction(self) -> SignalType:
        return self.signal_type


class RuleSignal(BaseModel):
    """Output of evaluating a signal rule or template against one symbol."""

    model_config = ConfigDict(frozen=True)

    stock_code: str
    signal_type: SignalType
    rule_id: int | None = None
    template_id: int | None = None
    source_name: str = ""
    score: int = 0
    max_score: int = 0
    confidence: float = 0.0
    current_price: float = 0.0
    target_price: float | None = None
    stop_loss: float | None = None
    reasons: list[str] = Field(default_factory=list)
    indicators_snapshot: dict[str, float] = Field(default_factory=dict)

    @property
    def score_percent(self) -> int:
        if self.max_score <= 0:
            return 0
        return self.score * 100 // self.max_score


class BotSignal(BaseModel):
    """Actionable signal emitted by the live polling bot."""

    model_config = ConfigDict(frozen=True)

    symbol: str
    strategy_id: int | None = None
    strategy_name: str
    signal_type: SignalType
    confidence: Decimal
    price: Decimal
    target_price: Decimal
    stop_loss: Decimal
    reason: str = ""
    price_date: date
    created_at: datetime
