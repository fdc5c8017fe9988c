"""Filters applied to snapshots and strategy signals during screening.

Numeric thresholds use 0 to mean "not set", matching how screening
requests are usually filled in. MACD histogram bounds and the boolean
flags use None for "not set" since 0 / False are meaningful there.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from signal_core.models.signal import SignalType, StrategySignal
from signal_core.models.snapshot import IndicatorSnapshot


def _outside(value: float, low: float, high: float) -> bool:
    return (low > 0 and value < low) or (high > 0 and value > high)


def _fails_price_vs_ma(price: float, ma: float, want_above: bool | None) -> bool:
    if want_above is None or ma <= 0:
        return False
    return price <= ma if want_above else price > ma


class IndicatorFilter(BaseModel):
    """Range filters over indicator snapshots (RS values are ranks)."""

    model_config = ConfigDict(frozen=True)

    rs_avg_min: float = 0.0
    rs_avg_max: float = 0.0
    rs_3d_min: float = 0.0
    rs_3d_max: float = 0.0
    rs_1m_min: float = 0.0
    rs_1m_max: float = 0.0
    rs_3m_min: float = 0.0
    rs_3m_max: float = 0.0
    rs_1y_min: float = 0.0
    rs_1y_max: float = 0.0

    rsi_min: float = 0.0
    rsi_max: float = 0.0

    macd_hist_min: float | None = None
    macd_hist_max: float | None = None
    macd_hist_positive: bool | None = None

    min_volume: float = 0.0
    min_trading_value: float = 0.0

    # Only a True flag filters; False is treated as unset
    ma10_above_ma30: bool | None = None
    ma50_above_ma200: bool | None = None

    # Ignored for symbols whose MA is 0
    above_ma50: bool | None = None
    above_ma200: bool | None = None

    def matches(self, s: IndicatorSnapshot) -> bool:
        if _outside(s.rs_avg, self.rs_avg_min, self.rs_avg_max):
            return False
        if _outside(s.rs_3d_rank, self.rs_3d_min, self.rs_3d_max):
            return False
        if _outside(s.rs_1m_rank, self.rs_1m_min, self.rs_1m_max):
            return False
        if _outside(s.rs_3m_rank, self.rs_3m_min, self.rs_3m_max):
            return False
        if _outside(s.rs_1y_rank, self.rs_1y_min, self.rs_1y_max):
            return False
        if _outside(s.rsi, self.rsi_min, self.rsi_max):
            return False

        if self.macd_hist_min is not None and s.macd_hist < self.macd_hist_min:
            return False
        if self.macd_hist_max is not None and s.macd_hist > self.macd_hist_max:
            return False
        if self.macd_hist_positive is not None and (s.macd_hist > 0) != self.macd_hist_positive:
            return False

        if self.min_volume > 0 and s.avg_volume < self.min_volume:
            return False
        if self.min_trading_value > 0 and s.avg_trading_value < self.min_trading_value:
            return False

        if self.ma10_above_ma30 and not s.ma10_above_ma30:
            return False
        if self.ma50_above_ma200 and not s.ma50_above_ma200:
            return False

        if _fails_price_vs_ma(s.current_price, s.ma50, self.above_ma50):
            return False
        if _fails_price_vs_ma(s.current_price, s.ma200, self.above_ma200):
            return False
        return True


class SignalFilter(BaseModel):
    """Post-filter for bulk strategy signal generation."""

    model_config = ConfigDict(frozen=True)

    min_strength: int = Field(default=0, ge=0, le=100)
    min_confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    signal_types: list[SignalType] = Field(default_factory=list)
    min_trading_value: float = 0.0
    limit: int = Field(default=0, ge=0)

    def matches(self, signal: StrategySignal) -> bool:
        if signal.strength < self.min_strength:
            return False
        if signal.confidence < self.min_confidence:
            return False
        if self.signal_types and signal.signal_type not in self.signal_types:
            return False
        return True
