"""Composite strategy: weighted blend of the four scoring strategies.

Strength and confidence are fixed-weight averages of the sub-strategies.
Direction needs both the blended strength and enough sub-strategy votes.
"""

from __future__ import annotations

from signal_core.models.signal import SignalType, StrategySignal
from signal_core.models.snapshot import IndicatorSnapshot
from signal_core.strategy import breakout, mean_reversion, momentum, trend_following
from signal_core.strategy.scoring import build_signal

NAME = "composite"

WEIGHTS = {
    momentum.NAME: 0.30,
    trend_following.NAME: 0.35,
    mean_reversion.NAME: 0.15,
    breakout.NAME: 0.20,
}

_VOTES = {
    SignalType.STRONG_BUY: (2, 0),
    SignalType.BUY: (1, 0),
    SignalType.STRONG_SELL: (0, 2),
    SignalType.SELL: (0, 1),
}


def blend_strength(parts: dict[str, StrategySignal]) -> int:
    return int(sum(parts[name].strength * weight for name, weight in WEIGHTS.items()))


def blend_confidence(parts: dict[str, StrategySignal]) -> float:
    return sum(parts[name].confidence * weight for name, weight in WEIGHTS.items())


def count_votes(parts: dict[str, StrategySignal]) -> tuple[int, int]:
    """Return (buy_votes, sell_votes): strong signals count twice."""
    buy_votes = sell_votes = 0
    for signal in parts.values():
        buy, sell = _VOTES.get(signal.signal_type, (0, 0))
        buy_votes += buy
        sell_votes += sell
    return buy_votes, sell_votes


def evaluate(snapshot: IndicatorSnapshot) -> StrategySignal:
    parts = {
        momentum.NAME: momentum.evaluate(snapshot),
        trend_following.NAME: trend_following.evaluate(snapshot),
        mean_reversion.NAME: mean_reversion.evaluate(snapshot),
        breakout.NAME: breakout.evaluate(snapshot),
    }
    strength = blend_strength(parts)
    confidence = blend_confidence(parts)

    reasons: list[str] = []
    for name, label, floor in (
        (momentum.NAME, "Momentum", 60),
        (trend_following.NAME, "Trend", 60),
        (breakout.NAME, "Breakout", 70),
    ):
        part = parts[name]
        if part.strength >= floor and part.reasons:
            reasons.append(f"[{label}] {part.reasons[0]}")

    buy_votes, sell_votes = count_votes(parts)
    price = snapshot.current_price
    target = stop = 0.0
    if strength >= 75 and buy_votes >= 4:
        signal_type = SignalType.STRONG_BUY
        target, stop = price * 1.15, price * 0.95
    elif strength >= 60 and buy_votes >= 2:
        signal_type = SignalType.BUY
        target, stop = price * 1.10, price * 0.95
    elif strength <= 25 and sell_votes >= 4:
        signal_type = SignalType.STRONG_SELL
    elif strength <= 40 and sell_votes >= 2:
        signal_type = SignalType.SELL
    else:
        signal_type = SignalType.HOLD

    return build_signal(
        NAME, snapshot, signal_type, strength, confidence, reasons, target, stop
    )
