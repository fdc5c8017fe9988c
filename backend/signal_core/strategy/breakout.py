"""Breakout strategy: volume spikes with short-term momentum."""

from __future__ import annotations

from signal_core.models.signal import SignalType, StrategySignal
from signal_core.models.snapshot import IndicatorSnapshot
from signal_core.strategy.scoring import ScoreCard, build_signal

NAME = "breakout"


def evaluate(snapshot: IndicatorSnapshot) -> StrategySignal:
    card = ScoreCard()
    price = snapshot.current_price

    card.rule(35)
    if snapshot.vol_ratio >= 2.0:
        card.add(35, "Volume 2x+ above average (Strong breakout)")
    elif snapshot.vol_ratio >= 1.5:
        card.add(25, "Volume 1.5x above average")
    elif snapshot.vol_ratio >= 1.2:
        card.add(15)

    card.rule(30)
    if snapshot.rs_3d_rank >= 90:
        card.add(30, "RS 3D >= 90 (Explosive short-term momentum)")
    elif snapshot.rs_3d_rank >= 80:
        card.add(25, "RS 3D >= 80 (Strong short-term momentum)")
    elif snapshot.rs_3d_rank >= 70:
        card.add(15)

    card.rule(20)
    if price > snapshot.ma10 and price > snapshot.ma30 and price > snapshot.ma50:
        card.add(20, "Price above all major MAs")

    card.rule(15)
    if snapshot.macd_hist > 0.5:
        card.add(15, "MACD strongly bullish")
    elif snapshot.macd_hist > 0:
        card.add(10)

    strength = card.strength
    target = stop = 0.0
    if strength >= 75 and snapshot.vol_ratio >= 1.5:
        signal_type = SignalType.STRONG_BUY
        target, stop = price * 1.20, price * 0.92
    elif strength >= 60:
        signal_type = SignalType.BUY
        target, stop = price * 1.12, price * 0.95
    elif strength <= 30:
        signal_type = SignalType.SELL
    else:
        signal_type = SignalType.HOLD

    return build_signal(
        NAME, snapshot, signal_type, strength, card.confidence, card.reasons, target, stop
    )
