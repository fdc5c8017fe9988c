"""Momentum strategy: relative-strength ranks with volume confirmation."""

from __future__ import annotations

from signal_core.models.signal import SignalType, StrategySignal
from signal_core.models.snapshot import IndicatorSnapshot
from signal_core.strategy.scoring import ScoreCard, build_signal, direction_from_strength

NAME = "momentum"


def evaluate(snapshot: IndicatorSnapshot) -> StrategySignal:
    card = ScoreCard()

    card.rule(30)
    if snapshot.rs_avg >= 80:
        card.add(30, "RS Avg >= 80 (Strong momentum)")
    elif snapshot.rs_avg >= 60:
        card.add(20, "RS Avg >= 60 (Good momentum)")
    elif snapshot.rs_avg >= 40:
        card.add(10)
    elif snapshot.rs_avg < 20:
        card.add(-10, "RS Avg < 20 (Weak momentum)")

    card.rule(25)
    if snapshot.rs_1y_rank >= 80:
        card.add(25, "RS 1Y >= 80 (Strong yearly performance)")
    elif snapshot.rs_1y_rank >= 60:
        card.add(15)
    elif snapshot.rs_1y_rank < 30:
        card.add(-10)

    card.rule(20)
    if snapshot.rs_3m_rank >= 70:
        card.add(20, "RS 3M >= 70 (Strong quarterly momentum)")
    elif snapshot.rs_3m_rank >= 50:
        card.add(10)
    elif snapshot.rs_3m_rank < 30:
        card.add(-5)

    card.rule(15)
    if snapshot.rs_3d_rank >= 80:
        card.add(15, "RS 3D >= 80 (Recent strength)")
    elif snapshot.rs_3d_rank >= 60:
        card.add(10)

    card.rule(10)
    if snapshot.vol_ratio >= 1.5:
        card.add(10, "Volume 1.5x above average")
    elif snapshot.vol_ratio >= 1.0:
        card.add(5)

    strength = card.strength
    signal_type = direction_from_strength(strength)
    price = snapshot.current_price
    target = stop = 0.0
    if signal_type == SignalType.STRONG_BUY:
        target, stop = price * 1.15, price * 0.95
    elif signal_type == SignalType.BUY:
        target, stop = price * 1.10, price * 0.95

    return build_signal(
        NAME, snapshot, signal_type, strength, card.confidence, card.reasons, target, stop
    )
