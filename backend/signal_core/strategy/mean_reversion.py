"""Mean-reversion strategy: RSI extremes and deviation from MA50.

Starts from a neutral score of 50 out of 100. Direction is driven by RSI
and the MA50 deviation directly rather than the shared strength bands.
"""

from __future__ import annotations

from signal_core.models.signal import SignalType, StrategySignal
from signal_core.models.snapshot import IndicatorSnapshot
from signal_core.strategy.scoring import ScoreCard, build_signal, clamp

NAME = "mean_reversion"


def ma50_deviation(snapshot: IndicatorSnapshot) -> float:
    """Percent distance of price from MA50 (0 when MA50 is unknown)."""
    if snapshot.ma50 <= 0:
        return 0.0
    return (snapshot.current_price - snapshot.ma50) / snapshot.ma50 * 100


def evaluate(snapshot: IndicatorSnapshot) -> StrategySignal:
    card = ScoreCard(score=50.0, max_score=100.0)
    rsi = snapshot.rsi
    deviation = ma50_deviation(snapshot)

    if rsi < 30:
        card.add(30, "RSI < 30 (Oversold - Potential bounce)")
    elif rsi < 40:
        card.add(15, "RSI < 40 (Approaching oversold)")
    elif rsi > 70:
        card.add(-30, "RSI > 70 (Overbought - Potential pullback)")
    elif rsi > 60:
        card.add(-15, "RSI > 60 (Approaching overbought)")

    if deviation < -10:
        card.add(20, "Price >10% below MA50 (Potential reversion)")
    elif deviation < -5:
        card.add(10)
    elif deviation > 10:
        card.add(-20, "Price >10% above MA50 (Extended)")
    elif deviation > 5:
        card.add(-10)

    if snapshot.ma50_above_ma200 and rsi < 40:
        card.add(10, "Oversold in uptrend (High probability bounce)")

    strength = int(clamp(card.score, 0, 100))
    price = snapshot.current_price
    target = stop = 0.0
    if rsi < 30 and deviation < -5:
        signal_type = SignalType.STRONG_BUY
        target, stop = snapshot.ma50, price * 0.93
    elif rsi < 40:
        signal_type = SignalType.BUY
        target, stop = snapshot.ma50 * 0.98, price * 0.95
    elif rsi > 70 and deviation > 5:
        signal_type = SignalType.STRONG_SELL
    elif rsi > 60:
        signal_type = SignalType.SELL
    else:
        signal_type = SignalType.HOLD

    return build_signal(
        NAME, snapshot, signal_type, strength, card.confidence, card.reasons, target, stop
    )
