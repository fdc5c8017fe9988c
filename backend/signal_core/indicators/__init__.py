"""Technical indicators and snapshot building (pure math, no I/O)."""

from signal_core.indicators.indicators import (
    BollingerBands,
    IndicatorEngine,
    MACDResult,
    StochasticResult,
    bollinger_bands,
    ema,
    highest_high,
    lowest_low,
    macd,
    rsi,
    sma,
    stochastic,
)
from signal_core.indicators.snapshot import assign_rs_ranks, build_snapshot

__all__ = [
    "BollingerBands",
    "IndicatorEngine",
    "MACDResult",
    "StochasticResult",
    "bollinger_bands",
    "ema",
    "highest_high",
    "lowest_low",
    "macd",
    "rsi",
    "sma",
    "stochastic",
    "assign_rs_ranks",
    "build_snapshot",
]
