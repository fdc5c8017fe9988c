"""Two-state trading rules run by the backtester and the live bot.

Each rule looks at a symbol's indicator engine as of a date and returns
BUY, SELL or HOLD with a 0-100 confidence. Any window that is too short
reads as HOLD.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Callable

from signal_core.errors import InsufficientDataError
from signal_core.indicators.indicators import IndicatorEngine, highest_high, lowest_low
from signal_core.models.config import (
    BreakoutParams,
    MacdParams,
    RsiParams,
    SmaCrossoverParams,
    StrategyConfig,
    StrategyParams,
    StrategyType,
)
from signal_core.models.signal import SignalType

logger = logging.getLogger(__name__)

_ZERO = Decimal("0")
_HUNDRED = Decimal("100")


@dataclass(frozen=True)
class TradingDecision:
    signal: SignalType
    confidence: Decimal = _ZERO
    reason: str = ""

    @property
    def is_actionable(self) -> bool:
        return self.signal in (SignalType.BUY, SignalType.SELL)


HOLD = TradingDecision(SignalType.HOLD)


def _capped(value: Decimal) -> Decimal:
    return min(value, _HUNDRED)


def sma_crossover(
    engine: IndicatorEngine, as_of: date, params: SmaCrossoverParams
) -> TradingDecision:
    """Short SMA crossing the long SMA versus the previous trading day."""
    prev_day = engine.history.previous_date(as_of)
    if prev_day is None:
        return HOLD
    short_now = engine.sma(params.short_period, as_of)
    long_now = engine.sma(params.long_period, as_of)
    short_prev = engine.sma(params.short_period, prev_day)
    long_prev = engine.sma(params.long_period, prev_day)

    distance = abs((short_now - long_now) / long_now * _HUNDRED) if long_now else _ZERO
    confidence = _capped(Decimal("70") + distance * Decimal("3"))
    if short_prev <= long_prev and short_now > long_now:
        return TradingDecision(
            SignalType.BUY,
            confidence,
            f"SMA{params.short_period} crossed above SMA{params.long_period}",
        )
    if short_prev >= long_prev and short_now < long_now:
        return TradingDecision(
            SignalType.SELL,
            confidence,
            f"SMA{params.short_period} crossed below SMA{params.long_period}",
        )
    return HOLD


def rsi_strategy(engine: IndicatorEngine, as_of: date, params: RsiParams) -> TradingDecision:
    """Buy oversold, sell overbought."""
    value = engine.rsi(params.period, as_of)
    if value < params.oversold:
        confidence = _capped(Decimal("70") + (params.oversold - value) * Decimal("2"))
        return TradingDecision(SignalType.BUY, confidence, f"RSI oversold at {value:.2f}")
    if value > params.overbought:
        confidence = _capped(Decimal("70") + (value - params.overbought) * Decimal("2"))
        return TradingDecision(SignalType.SELL, confidence, f"RSI overbought at {value:.2f}")
    return HOLD


def macd_strategy(engine: IndicatorEngine, as_of: date, params: MacdParams) -> TradingDecision:
    """Follow the sign of the MACD histogram."""
    result = engine.macd(as_of)
    confidence = _capped(Decimal("75") + abs(result.histogram) * Decimal("5"))
    confirm = params.require_macd_confirmation
    if result.histogram > 0 and (not confirm or result.macd > 0):
        return TradingDecision(SignalType.BUY, confidence, "MACD bullish crossover")
    if result.histogram < 0 and (not confirm or result.macd < 0):
        return TradingDecision(SignalType.SELL, confidence, "MACD bearish crossover")
    return HOLD


def breakout_strategy(
    engine: IndicatorEngine, as_of: date, params: BreakoutParams
) -> TradingDecision:
    """Close beyond the high/low range of the preceding ``period`` bars."""
    window = engine.history.window(as_of, params.period + 1)
    if len(window) < params.period + 1:
        raise InsufficientDataError(params.period + 1, len(window), "breakout range")
    today, prior = window[-1], window[:-1]
    resistance = highest_high(prior)
    support = lowest_low(prior)

    if today.close > resistance and resistance > 0:
        distance = (today.close - resistance) / resistance * _HUNDRED
        return TradingDecision(
            SignalType.BUY,
            _capped(Decimal("75") + distance * Decimal("10")),
            f"Breakout above {params.period}-day high",
        )
    if today.close < support and support > 0:
        distance = (support - today.close) / support * _HUNDRED
        return TradingDecision(
            SignalType.SELL,
            _capped(Decimal("75") + distance * Decimal("10")),
            f"Breakdown below {params.period}-day low",
        )
    return HOLD


_RULES: dict[StrategyType, Callable[[IndicatorEngine, date, StrategyParams], TradingDecision]] = {
    StrategyType.SMA_CROSSOVER: sma_crossover,
    StrategyType.RSI_STRATEGY: rsi_strategy,
    StrategyType.MACD_STRATEGY: macd_strategy,
    StrategyType.BREAKOUT_STRATEGY: breakout_strategy,
}


def evaluate_trading_rule(
    config: StrategyConfig,
    engine: IndicatorEngine,
    as_of: date,
    params: StrategyParams | None = None,
) -> TradingDecision:
    """Run the configured rule; too little history reads as HOLD.

    ``params`` lets a caller pass pre-parsed parameters to skip re-validation.
    """
    rule = _RULES[config.type]
    try:
        return rule(engine, as_of, params or config.typed_params())
    except InsufficientDataError as e:
        logger.debug(f"{config.label} {engine.symbol} {as_of}: HOLD ({e})")
        return HOLD
