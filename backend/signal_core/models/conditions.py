"""Condition, group, rule and template models for rule-based signals."""

from __future__ import annotations

import json
from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from signal_core.models.signal import SignalType
from signal_core.models.snapshot import IndicatorType


class ConditionOperator(str, Enum):
    """Comparison operators for a single condition."""

    EQ = "eq"
    NEQ = "neq"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    BETWEEN = "between"
    CROSS_ABOVE = "cross_above"
    CROSS_BELOW = "cross_below"


class LogicalOperator(str, Enum):
    AND = "AND"
    OR = "OR"


class SignalCondition(BaseModel):
    """One atomic indicator comparison.

    ``logical_operator`` joins this condition's result onto the running
    result of the conditions before it in the group.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: int | None = None
    name: str = ""
    indicator: IndicatorType
    operator: ConditionOperator
    value: float = 0.0
    value2: float = 0.0
    compare_indicator: IndicatorType | None = None
    logical_operator: LogicalOperator = LogicalOperator.AND
    weight: int = Field(default=1, ge=0)
    is_required: bool = Field(
        default=False, validation_alias=AliasChoices("is_required", "required")
    )
    order_index: int = 0

    @field_validator("compare_indicator", mode="before")
    @classmethod
    def _blank_compare(cls, value: Any) -> Any:
        return value or None


class SignalConditionGroup(BaseModel):
    """Reusable ordered set of conditions."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str = ""
    signal_type: SignalType | None = None
    is_active: bool = True
    priority: int = 0
    conditions: list[SignalCondition] = Field(default_factory=list)

    def ordered_conditions(self) -> list[SignalCondition]:
        """Conditions in ascending order_index (stable for ties)."""
        return sorted(self.conditions, key=lambda c: c.order_index)


class GroupConfig(BaseModel):
    """Reference from a rule to one of its condition groups."""

    model_config = ConfigDict(frozen=True)

    group_id: int
    logic: LogicalOperator = LogicalOperator.AND
    required: bool = False


def _parse_json_list(value: Any) -> Any:
    if isinstance(value, (str, bytes)):
        return json.loads(value) if value.strip() else []
    return value


class SignalRule(BaseModel):
    """Named combination of condition groups with a pass threshold."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str = ""
    signal_type: SignalType = SignalType.BUY
    strategy_type: str = ""
    min_score: int = Field(default=60, ge=0, le=100)
    target_percent: float = 10.0
    stop_loss_percent: float = 5.0
    is_active: bool = True
    priority: int = 0
    condition_groups: list[GroupConfig] = Field(default_factory=list)

    @field_validator("condition_groups", mode="before")
    @classmethod
    def _parse_groups(cls, value: Any) -> Any:
        return _parse_json_list(value)


class SignalTemplate(BaseModel):
    """Rule-independent condition list with category-driven target/stop."""

    model_config = ConfigDict(frozen=True)

    id: int | None = None
    name: str
    description: str = ""
    category: str = "custom"
    is_built_in: bool = False
    conditions: list[SignalCondition] = Field(default_factory=list)

    @field_validator("conditions", mode="before")
    @classmethod
    def _parse_conditions(cls, value: Any) -> Any:
        return _parse_json_list(value)


BUILT_IN_TEMPLATES: list[SignalTemplate] = [
    SignalTemplate(
        name="RSI Oversold Bounce",
        description="Buy when RSI < 30 and starts recovering",
        category="reversal",
        is_built_in=True,
        conditions=[
            {"indicator": "RSI", "operator": "lt", "value": 30, "weight": 30, "required": True},
            {"indicator": "MA50", "operator": "gt", "compare_indicator": "MA200", "weight": 20},
            {"indicator": "VOL_RATIO", "operator": "gte", "value": 1.2, "weight": 15},
        ],
    ),
    SignalTemplate(
        name="Golden Cross",
        description="MA50 crosses above MA200 with volume confirmation",
        category="trend",
        is_built_in=True,
        conditions=[
            {"indicator": "MA50", "operator": "cross_above", "compare_indicator": "MA200", "weight": 40, "required": True},
            {"indicator": "MACD_HISTOGRAM", "operator": "gt", "value": 0, "weight": 20},
            {"indicator": "VOL_RATIO", "operator": "gte", "value": 1.5, "weight": 20},
        ],
    ),
    SignalTemplate(
        name="Momentum Leader",
        description="Strong relative strength across all timeframes",
        category="momentum",
        is_built_in=True,
        conditions=[
            {"indicator": "RS_AVG", "operator": "gte", "value": 80, "weight": 30, "required": True},
            {"indicator": "RS_3D", "operator": "gte", "value": 70, "weight": 20},
            {"indicator": "TRADING_VALUE", "operator": "gte", "value": 1, "weight": 10},
        ],
    ),
    SignalTemplate(
        name="Volume Breakout",
        description="Price breakout with significant volume spike",
        category="breakout",
        is_built_in=True,
        conditions=[
            {"indicator": "VOL_RATIO", "operator": "gte", "value": 2, "weight": 35, "required": True},
            {"indicator": "RS_3D", "operator": "gte", "value": 85, "weight": 25},
            {"indicator": "PRICE", "operator": "gt", "compare_indicator": "MA10", "weight": 15},
            {"indicator": "MACD_HISTOGRAM", "operator": "gt", "value": 0, "weight": 15},
        ],
    ),
    SignalTemplate(
        name="Death Cross Warning",
        description="MA50 crosses below MA200 - bearish signal",
        category="trend",
        is_built_in=True,
        conditions=[
            {"indicator": "MA50", "operator": "cross_below", "compare_indicator": "MA200", "weight": 40, "required": True},
            {"indicator": "MACD_HISTOGRAM", "operator": "lt", "value": 0, "weight": 20},
            {"indicator": "RSI", "operator": "lt", "value": 50, "weight": 15},
        ],
    ),
    SignalTemplate(
        name="Overbought Reversal",
        description="RSI overbought with potential pullback",
        category="reversal",
        is_built_in=True,
        conditions=[
            {"indicator": "RSI", "operator": "gt", "value": 70, "weight": 30, "required": True},
            {"indicator": "PRICE_CHANGE", "operator": "gt", "value": 5, "weight": 20},
            {"indicator": "RS_3D", "operator": "gte", "value": 90, "weight": 15},
        ],
    ),
    SignalTemplate(
        name="Trend Continuation",
        description="Strong trend with healthy pullback",
        category="trend",
        is_built_in=True,
        conditions=[
            {"indicator": "MA50", "operator": "gt", "compare_indicator": "MA200", "weight": 20, "required": True},
            {"indicator": "PRICE", "operator": "between", "value": 0.95, "value2": 1.05, "compare_indicator": "MA50", "weight": 25},
            {"indicator": "RSI", "operator": "between", "value": 40, "value2": 60, "weight": 20},
            {"indicator": "MACD_HISTOGRAM", "operator": "gt", "value": 0, "weight": 15},
        ],
    ),
    SignalTemplate(
        name="Value + Momentum",
        description="Undervalued with improving momentum",
        category="custom",
        is_built_in=True,
        conditions=[
            {"indicator": "RS_1Y", "operator": "lt", "value": 50, "weight": 20},
            {"indicator": "RS_1M", "operator": "gte", "value": 60, "weight": 25},
            {"indicator": "RS_3D", "operator": "gte", "value": 70, "weight": 25},
            {"indicator": "VOL_RATIO", "operator": "gte", "value": 1.3, "weight": 15},
        ],
    ),
]
