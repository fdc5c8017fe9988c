"""Shared scoring helpers for the built-in strategies."""

from __future__ import annotations

from dataclasses import dataclass, field

from signal_core.models.signal import SignalType, StrategySignal
from signal_core.models.snapshot import IndicatorSnapshot


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


@dataclass
class ScoreCard:
    """Running additive score against a running maximum.

    Each ``rule`` call declares the points a rule could contribute to the
    maximum, then ``add`` credits (or debits) what it actually earned.
    """

    score: float = 0.0
    max_score: float = 0.0
    reasons: list[str] = field(default_factory=list)

    def rule(self, weight: float) -> None:
        self.max_score += weight

    def add(self, points: float, reason: str | None = None) -> None:
        self.score += points
        if reason:
            self.reasons.append(reason)

    def note(self, reason: str) -> None:
        self.reasons.append(reason)

    @property
    def strength(self) -> int:
        if self.max_score <= 0:
            return 0
        return int(clamp(self.score / self.max_score * 100, 0, 100))

    @property
    def confidence(self) -> float:
        if self.max_score <= 0:
            return 0.0
        return clamp(self.score / self.max_score, 0.0, 1.0)


def direction_from_strength(strength: int) -> SignalType:
    """Map a 0-100 strength onto a signal direction."""
    if strength >= 80:
        return SignalType.STRONG_BUY
    if strength >= 60:
        return SignalType.BUY
    if strength <= 20:
        return SignalType.STRONG_SELL
    if strength <= 40:
        return SignalType.SELL
    return SignalType.HOLD


def build_signal(
    strategy: str,
    snapshot: IndicatorSnapshot,
    signal_type: SignalType,
    strength: int,
    confidence: float,
    reasons: list[str],
    target_price: float = 0.0,
    stop_loss: float = 0.0,
) -> StrategySignal:
    return StrategySignal(
        symbol=snapshot.symbol,
        strategy=strategy,
        signal_type=signal_type,
        strength=int(clamp(strength, 0, 100)),
        confidence=clamp(confidence, 0.0, 1.0),
        reasons=reasons,
        current_price=snapshot.current_price,
        target_price=target_price,
        stop_loss=stop_loss,
        indicators=snapshot.key_indicators(),
    )
