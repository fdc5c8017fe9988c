"""Trend-following strategy: moving-average alignment plus MACD."""

from __future__ import annotations

from signal_core.models.signal import SignalType, StrategySignal
from signal_core.models.snapshot import IndicatorSnapshot
from signal_core.strategy.scoring import ScoreCard, build_signal, direction_from_strength

NAME = "trend_following"


def evaluate(snapshot: IndicatorSnapshot) -> StrategySignal:
    card = ScoreCard()
    price = snapshot.current_price

    card.rule(20)
    if snapshot.ma10_above_ma30:
        card.add(20, "MA10 > MA30 (Short-term uptrend)")
    else:
        card.note("MA10 < MA30 (Short-term downtrend)")

    card.rule(25)
    if snapshot.ma50_above_ma200:
        card.add(25, "MA50 > MA200 (Golden Cross - Bullish)")
    else:
        card.note("MA50 < MA200 (Death Cross - Bearish)")

    card.rule(20)
    if snapshot.ma50 > 0 and price > snapshot.ma50:
        card.add(20, "Price above MA50")

    card.rule(15)
    if snapshot.ma200 > 0 and price > snapshot.ma200:
        card.add(15, "Price above MA200 (Long-term uptrend)")

    card.rule(20)
    if snapshot.macd_hist > 0:
        card.add(20, "MACD Histogram positive (Bullish momentum)")
    elif snapshot.macd_hist < -0.5:
        card.note("MACD Histogram negative (Bearish momentum)")

    strength = card.strength
    signal_type = direction_from_strength(strength)
    target = stop = 0.0
    if signal_type.is_buy_like:
        multiplier = 1.12 if signal_type == SignalType.STRONG_BUY else 1.08
        target = price * multiplier
        # Stop just under MA50; fall back to 5% when MA50 is unknown
        stop = snapshot.ma50 * 0.98 if snapshot.ma50 > 0 else price * 0.95

    return build_signal(
        NAME, snapshot, signal_type, strength, card.confidence, card.reasons, target, stop
    )
