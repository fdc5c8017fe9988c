"""Tests for the built-in scoring strategies and their registry."""

import pytest

from signal_core.errors import NotFoundError
from signal_core.models.signal import SignalType
from signal_core.models.snapshot import IndicatorSnapshot
from signal_core.strategy import (
    StrategyName,
    generate_strategy_signal,
    get_strategy,
    list_strategies,
    resolve_strategy,
)
from signal_core.strategy import breakout, composite, mean_reversion, momentum, trend_following
from signal_core.strategy.scoring import ScoreCard, direction_from_strength


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def bullish_snapshot(**overrides) -> IndicatorSnapshot:
    """A snapshot every strategy reads as strongly bullish (except mean reversion)."""
    values = dict(
        symbol="VNM",
        current_price=110.0,
        rs_avg=90.0,
        rs_3d_rank=95.0,
        rs_1m_rank=85.0,
        rs_3m_rank=90.0,
        rs_1y_rank=90.0,
        rsi=55.0,
        macd=2.0,
        macd_signal=1.0,
        macd_hist=1.0,
        vol_ratio=2.5,
        ma10=105.0,
        ma30=102.0,
        ma50=100.0,
        ma200=90.0,
        ma10_above_ma30=True,
        ma50_above_ma200=True,
    )
    values.update(overrides)
    return IndicatorSnapshot(**values)


def bearish_snapshot(**overrides) -> IndicatorSnapshot:
    values = dict(
        symbol="HPG",
        current_price=80.0,
        rs_avg=10.0,
        rs_3d_rank=10.0,
        rs_1m_rank=10.0,
        rs_3m_rank=10.0,
        rs_1y_rank=10.0,
        rsi=75.0,
        macd_hist=-1.0,
        vol_ratio=0.5,
        ma10=85.0,
        ma30=90.0,
        ma50=95.0,
        ma200=100.0,
    )
    values.update(overrides)
    return IndicatorSnapshot(**values)


# ---------------------------------------------------------------------------
# Scoring helpers
# ---------------------------------------------------------------------------

class TestScoreCard:
    def test_strength_and_confidence(self):
        card = ScoreCard()
        card.rule(40)
        card.add(30, "hit")
        card.rule(60)
        assert card.strength == 30
        assert card.confidence == pytest.approx(0.3)
        assert card.reasons == ["hit"]

    def test_negative_score_clamps_to_zero(self):
        card = ScoreCard()
        card.rule(10)
        card.add(-20)
        assert card.strength == 0
        assert card.confidence == 0.0

    def test_empty_card(self):
        assert ScoreCard().strength == 0

    @pytest.mark.parametrize(
        "strength, expected",
        [
            (80, SignalType.STRONG_BUY),
            (60, SignalType.BUY),
            (50, SignalType.HOLD),
            (40, SignalType.SELL),
            (20, SignalType.STRONG_SELL),
        ],
    )
    def test_direction_bands(self, strength, expected):
        assert direction_from_strength(strength) == expected


# ---------------------------------------------------------------------------
# Individual strategies
# ---------------------------------------------------------------------------

class TestMomentum:
    def test_strong_buy(self):
        signal = momentum.evaluate(bullish_snapshot(vol_ratio=1.6))
        assert signal.strength == 100
        assert signal.signal_type == SignalType.STRONG_BUY
        assert signal.target_price == pytest.approx(110.0 * 1.15)
        assert signal.stop_loss == pytest.approx(110.0 * 0.95)
        assert "RS Avg >= 80 (Strong momentum)" in signal.reasons

    def test_weak_momentum_is_sell_without_levels(self):
        signal = momentum.evaluate(bearish_snapshot())
        assert signal.strength == 0
        assert signal.signal_type == SignalType.STRONG_SELL
        assert signal.target_price == 0.0
        assert signal.stop_loss == 0.0


class TestTrendFollowing:
    def test_fully_aligned_trend(self):
        signal = trend_following.evaluate(bullish_snapshot())
        assert signal.strength == 100
        assert signal.signal_type == SignalType.STRONG_BUY
        assert signal.target_price == pytest.approx(110.0 * 1.12)
        # Stop just under MA50
        assert signal.stop_loss == pytest.approx(98.0)

    def test_stop_falls_back_without_ma50(self):
        signal = trend_following.evaluate(bullish_snapshot(ma50=0.0))
        # MA50 rule no longer scores: 80/100
        assert signal.strength == 80
        assert signal.stop_loss == pytest.approx(110.0 * 0.95)

    def test_downtrend(self):
        signal = trend_following.evaluate(bearish_snapshot())
        assert signal.strength == 0
        assert signal.signal_type == SignalType.STRONG_SELL
        assert "MA50 < MA200 (Death Cross - Bearish)" in signal.reasons


class TestMeanReversion:
    def test_oversold_below_ma50(self):
        signal = mean_reversion.evaluate(
            bullish_snapshot(rsi=25.0, current_price=85.0, ma50=100.0)
        )
        assert signal.signal_type == SignalType.STRONG_BUY
        assert signal.strength == 100
        assert signal.target_price == pytest.approx(100.0)
        assert signal.stop_loss == pytest.approx(85.0 * 0.93)

    def test_neutral_is_hold(self):
        signal = mean_reversion.evaluate(
            IndicatorSnapshot(symbol="VNM", rsi=50.0, current_price=100.0, ma50=100.0)
        )
        assert signal.signal_type == SignalType.HOLD
        assert signal.strength == 50

    def test_overbought_extended(self):
        signal = mean_reversion.evaluate(
            IndicatorSnapshot(symbol="VNM", rsi=75.0, current_price=120.0, ma50=100.0)
        )
        assert signal.signal_type == SignalType.STRONG_SELL
        assert signal.strength == 0
        assert signal.target_price == 0.0

    def test_ma50_deviation_unknown_ma(self):
        assert mean_reversion.ma50_deviation(IndicatorSnapshot(symbol="VNM", current_price=10.0)) == 0.0


class TestBreakout:
    def test_explosive_breakout(self):
        signal = breakout.evaluate(bullish_snapshot())
        assert signal.strength == 100
        assert signal.signal_type == SignalType.STRONG_BUY
        assert signal.target_price == pytest.approx(110.0 * 1.20)
        assert signal.stop_loss == pytest.approx(110.0 * 0.92)

    def test_no_volume_no_momentum_is_sell(self):
        signal = breakout.evaluate(bearish_snapshot())
        assert signal.signal_type == SignalType.SELL
        assert signal.stop_loss == 0.0


class TestComposite:
    @pytest.mark.parametrize("make_snapshot", [bullish_snapshot, bearish_snapshot])
    def test_blend_uses_fixed_weights(self, make_snapshot):
        snap = make_snapshot()
        m = momentum.evaluate(snap)
        t = trend_following.evaluate(snap)
        mr = mean_reversion.evaluate(snap)
        b = breakout.evaluate(snap)

        signal = composite.evaluate(snap)

        assert signal.strength == int(
            0.30 * m.strength + 0.35 * t.strength + 0.15 * mr.strength + 0.20 * b.strength
        )
        assert signal.confidence == pytest.approx(
            0.30 * m.confidence + 0.35 * t.confidence
            + 0.15 * mr.confidence + 0.20 * b.confidence
        )

    def test_strong_buy_needs_votes(self):
        signal = composite.evaluate(bullish_snapshot())
        assert signal.strength >= 75
        assert signal.signal_type == SignalType.STRONG_BUY
        assert signal.target_price == pytest.approx(110.0 * 1.15)
        assert any(r.startswith("[Momentum]") for r in signal.reasons)

    def test_bearish_blend(self):
        signal = composite.evaluate(bearish_snapshot())
        assert signal.signal_type in (SignalType.SELL, SignalType.STRONG_SELL)
        assert signal.target_price == 0.0

    def test_vote_counting(self):
        snap = bullish_snapshot()
        parts = {
            momentum.NAME: momentum.evaluate(snap),       # STRONG_BUY
            trend_following.NAME: trend_following.evaluate(snap),  # STRONG_BUY
            mean_reversion.NAME: mean_reversion.evaluate(snap),    # HOLD
            breakout.NAME: breakout.evaluate(snap),       # STRONG_BUY
        }
        assert composite.count_votes(parts) == (6, 0)


class TestStrategyBounds:
    @pytest.mark.parametrize("name", list_strategies())
    @pytest.mark.parametrize(
        "snap",
        [
            IndicatorSnapshot(symbol="ZERO"),
            bullish_snapshot(),
            bearish_snapshot(),
            bullish_snapshot(rsi=5.0, current_price=50.0),
        ],
    )
    def test_strength_and_confidence_in_range(self, name, snap):
        signal = generate_strategy_signal(name, snap)
        assert 0 <= signal.strength <= 100
        assert 0.0 <= signal.confidence <= 1.0
        assert signal.symbol == snap.symbol
        assert signal.strategy == name


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

class TestRegistry:
    def test_list_strategies(self):
        assert list_strategies() == [
            "momentum", "trend_following", "mean_reversion", "breakout", "composite",
        ]

    def test_resolve_and_get(self):
        assert resolve_strategy("composite") == StrategyName.COMPOSITE
        assert get_strategy(StrategyName.MOMENTUM) is momentum.evaluate

    def test_unknown_strategy(self):
        with pytest.raises(NotFoundError, match="Available"):
            resolve_strategy("magic")
        with pytest.raises(NotFoundError):
            generate_strategy_signal("magic", bullish_snapshot())
