"""Indicator snapshot model consumed by strategies and condition evaluation."""

from __future__ import annotations

from datetime import date
from enum import Enum

from pydantic import BaseModel, ConfigDict


class IndicatorType(str, Enum):
    """Indicators a signal condition can reference."""

    RSI = "RSI"
    MACD = "MACD"
    MACD_SIGNAL = "MACD_SIGNAL"
    MACD_HISTOGRAM = "MACD_HISTOGRAM"
    MA10 = "MA10"
    MA30 = "MA30"
    MA50 = "MA50"
    MA200 = "MA200"
    RS_3D = "RS_3D"
    RS_1M = "RS_1M"
    RS_3M = "RS_3M"
    RS_1Y = "RS_1Y"
    RS_AVG = "RS_AVG"
    VOLUME = "VOLUME"
    VOL_RATIO = "VOL_RATIO"
    PRICE = "PRICE"
    PRICE_CHANGE = "PRICE_CHANGE"
    TRADING_VALUE = "TRADING_VALUE"


# RS_* conditions read percentile ranks, not raw % changes.
# PRICE_CHANGE reads the 3-day change.
_FIELD_BY_INDICATOR: dict[IndicatorType, str] = {
    IndicatorType.RSI: "rsi",
    IndicatorType.MACD: "macd",
    IndicatorType.MACD_SIGNAL: "macd_signal",
    IndicatorType.MACD_HISTOGRAM: "macd_hist",
    IndicatorType.MA10: "ma10",
    IndicatorType.MA30: "ma30",
    IndicatorType.MA50: "ma50",
    IndicatorType.MA200: "ma200",
    IndicatorType.RS_3D: "rs_3d_rank",
    IndicatorType.RS_1M: "rs_1m_rank",
    IndicatorType.RS_3M: "rs_3m_rank",
    IndicatorType.RS_1Y: "rs_1y_rank",
    IndicatorType.RS_AVG: "rs_avg",
    IndicatorType.VOLUME: "avg_volume",
    IndicatorType.VOL_RATIO: "vol_ratio",
    IndicatorType.PRICE: "current_price",
    IndicatorType.PRICE_CHANGE: "rs_3d",
    IndicatorType.TRADING_VALUE: "avg_trading_value",
}


class IndicatorSnapshot(BaseModel):
    """Derived indicator values for one symbol at one point in time.

    Produced from a price window (see ``signal_core.indicators.snapshot``)
    or supplied precomputed by the data layer. Never mutated after creation.
    """

    model_config = ConfigDict(frozen=True)

    symbol: str
    as_of: date | None = None

    current_price: float = 0.0
    price_change: float = 0.0

    # Percentage price change over 3 / 22 / 66 / 252 bars
    rs_3d: float = 0.0
    rs_1m: float = 0.0
    rs_3m: float = 0.0
    rs_1y: float = 0.0

    # Percentile ranks across the universe (1-100)
    rs_3d_rank: float = 0.0
    rs_1m_rank: float = 0.0
    rs_3m_rank: float = 0.0
    rs_1y_rank: float = 0.0
    rs_avg: float = 0.0

    rsi: float = 50.0
    macd: float = 0.0
    macd_signal: float = 0.0
    macd_hist: float = 0.0

    avg_volume: float = 0.0
    avg_trading_value: float = 0.0
    vol_ratio: float = 0.0

    ma10: float = 0.0
    ma30: float = 0.0
    ma50: float = 0.0
    ma200: float = 0.0
    ma10_above_ma30: bool = False
    ma50_above_ma200: bool = False

    def value_of(self, indicator: IndicatorType | str) -> float:
        """Read the value a condition on ``indicator`` compares against.

        Unknown indicator names read as 0.
        """
        try:
            field = _FIELD_BY_INDICATOR[IndicatorType(indicator)]
        except ValueError:
            return 0.0
        return float(getattr(self, field))

    def key_indicators(self) -> dict[str, float]:
        """Subset of values attached to emitted signals."""
        return {
            "rsi": self.rsi,
            "macd_hist": self.macd_hist,
            "rs_avg": self.rs_avg,
            "vol_ratio": self.vol_ratio,
            "ma50": self.ma50,
            "ma200": self.ma200,
        }
