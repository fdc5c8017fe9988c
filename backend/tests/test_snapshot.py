"""Tests for snapshot building and relative-strength ranking."""

import pytest
from datetime import date, timedelta
from decimal import Decimal

from signal_core.errors import InsufficientDataError
from signal_core.indicators import assign_rs_ranks, build_snapshot
from signal_core.models.price import PriceHistory, PricePoint
from signal_core.models.snapshot import IndicatorSnapshot, IndicatorType


def make_history(closes, symbol: str = "VNM", volume: int = 10000) -> PriceHistory:
    start = date(2024, 1, 1)
    points = []
    for i, c in enumerate(closes):
        close = Decimal(str(c))
        points.append(PricePoint(
            symbol=symbol,
            date=start + timedelta(days=i),
            open=close,
            high=close + 1,
            low=close - 1,
            close=close,
            volume=Decimal(volume),
        ))
    return PriceHistory.from_points(symbol, points)


class TestBuildSnapshot:
    def test_requires_ten_points(self):
        with pytest.raises(InsufficientDataError):
            build_snapshot(make_history(range(100, 109)))

    def test_empty_history(self):
        with pytest.raises(InsufficientDataError):
            build_snapshot(PriceHistory(symbol="VNM"))

    def test_rising_series(self):
        history = make_history(range(100, 130))  # 30 rising closes, last 129
        snap = build_snapshot(history)

        assert snap.symbol == "VNM"
        assert snap.as_of == date(2024, 1, 30)
        assert snap.current_price == 129.0
        assert snap.rsi == 100.0
        # 3 bars ago close was 126
        assert snap.rs_3d == pytest.approx(round(3 / 126 * 100, 2))
        assert snap.price_change == pytest.approx(round(1 / 128 * 100, 2))
        # Not enough history for the longer horizons
        assert snap.rs_1m > 0
        assert snap.rs_3m == 0.0
        assert snap.rs_1y == 0.0

        assert snap.ma10 == pytest.approx(124.5)
        assert snap.ma30 == pytest.approx(114.5)
        assert snap.ma50 == 0.0
        assert snap.ma200 == 0.0
        assert snap.ma10_above_ma30 is True
        assert snap.ma50_above_ma200 is False
        assert snap.macd > 0

    def test_volume_and_trading_value(self):
        snap = build_snapshot(make_history([100] * 20, volume=10000))
        assert snap.avg_volume == 10000.0
        assert snap.vol_ratio == 1.0
        # 100 * 10000 = 1,000,000 -> 1 (millions)
        assert snap.avg_trading_value == 1.0

    def test_as_of_uses_earlier_bars(self):
        history = make_history(range(100, 130))
        snap = build_snapshot(history, as_of=date(2024, 1, 15))
        assert snap.current_price == 114.0

    def test_short_history_defaults(self):
        snap = build_snapshot(make_history(range(100, 110)))
        # RSI needs 15 closes, MACD 26
        assert snap.rsi == 50.0
        assert snap.macd == 0.0
        assert snap.ma10 == pytest.approx(104.5)
        assert snap.ma30 == 0.0
        assert snap.ma10_above_ma30 is False


class TestAssignRsRanks:
    def test_percentile_ranks(self):
        snapshots = {
            "AAA": IndicatorSnapshot(symbol="AAA", rs_3d=1.0, rs_1m=-5.0),
            "BBB": IndicatorSnapshot(symbol="BBB", rs_3d=2.0, rs_1m=10.0),
            "CCC": IndicatorSnapshot(symbol="CCC", rs_3d=3.0, rs_1m=0.0),
        }
        ranked = assign_rs_ranks(snapshots)

        assert ranked["AAA"].rs_3d_rank == 33.0
        assert ranked["BBB"].rs_3d_rank == 67.0
        assert ranked["CCC"].rs_3d_rank == 100.0

        assert ranked["AAA"].rs_1m_rank == 33.0
        assert ranked["CCC"].rs_1m_rank == 67.0
        assert ranked["BBB"].rs_1m_rank == 100.0

    def test_rs_avg_is_mean_of_ranks(self):
        ranked = assign_rs_ranks({"AAA": IndicatorSnapshot(symbol="AAA")})
        snap = ranked["AAA"]
        assert snap.rs_3d_rank == snap.rs_1m_rank == snap.rs_3m_rank == snap.rs_1y_rank == 100.0
        assert snap.rs_avg == 100.0

    def test_inputs_not_modified(self):
        original = IndicatorSnapshot(symbol="AAA", rs_3d=1.0)
        assign_rs_ranks({"AAA": original})
        assert original.rs_3d_rank == 0.0

    def test_empty(self):
        assert assign_rs_ranks({}) == {}


class TestValueOf:
    def test_rs_conditions_read_ranks(self):
        snap = IndicatorSnapshot(symbol="AAA", rs_3d=12.0, rs_3d_rank=80.0)
        assert snap.value_of(IndicatorType.RS_3D) == 80.0
        assert snap.value_of("PRICE_CHANGE") == 12.0

    def test_unknown_indicator_reads_zero(self):
        assert IndicatorSnapshot(symbol="AAA", rsi=40.0).value_of("BOGUS") == 0.0
