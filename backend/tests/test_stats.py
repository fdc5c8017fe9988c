"""Tests for StatisticsCalculator and report formatting."""

import json
import math

import pytest
from datetime import date
from decimal import Decimal

from backtest.config import BacktestConfig
from backtest.engine import BacktestState, TradeRecord
from backtest.report import ReportFormatter
from backtest.stats import SHARPE_LIKE_OFFSET, StatisticsCalculator, SymbolStats, annualize
from signal_core.models.config import StrategyConfig, StrategyType
from signal_core.models.signal import SignalType


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def make_config(start: date = date(2024, 1, 1), end: date = date(2024, 12, 31)) -> BacktestConfig:
    return BacktestConfig(
        strategy=StrategyConfig(name="sma", type=StrategyType.SMA_CROSSOVER),
        symbols=["VNM", "FPT"],
        start_date=start,
        end_date=end,
        initial_capital=Decimal("1000000"),
        commission=Decimal("0.001"),
        risk_per_trade=Decimal("0.1"),
    )


def buy(symbol: str, commission: str = "10") -> TradeRecord:
    return TradeRecord(
        side=SignalType.BUY,
        symbol=symbol,
        date=date(2024, 2, 1),
        quantity=100,
        price=Decimal("100"),
        commission=Decimal(commission),
    )


def sell(symbol: str, pnl: str, commission: str = "10") -> TradeRecord:
    return TradeRecord(
        side=SignalType.SELL,
        symbol=symbol,
        date=date(2024, 3, 1),
        quantity=100,
        price=Decimal("110"),
        commission=Decimal(commission),
        entry_price=Decimal("100"),
        gross_pnl=Decimal(pnl) + 20,
        pnl=Decimal(pnl),
    )


def make_state(trades, equity: str = "1100000", max_drawdown: str = "0.05") -> BacktestState:
    state = BacktestState.start(Decimal("1000000"))
    state.trades = list(trades)
    state.cash = Decimal(equity)
    state.equity = Decimal(equity)
    state.max_drawdown = Decimal(max_drawdown)
    state.daily_equity = {date(2024, 1, 1): Decimal("1000000"), date(2024, 12, 31): Decimal(equity)}
    return state


# ---------------------------------------------------------------------------
# StatisticsCalculator
# ---------------------------------------------------------------------------

class TestStatisticsCalculator:
    def test_trade_metrics(self):
        trades = [
            buy("VNM"), sell("VNM", "300"),
            buy("VNM"), sell("VNM", "-100"),
            buy("FPT"), sell("FPT", "100"),
        ]
        result = StatisticsCalculator().calculate(make_state(trades), make_config())

        assert result.total_trades == 3
        assert result.winning_trades == 2
        assert result.losing_trades == 1
        assert result.win_rate == Decimal(2) / Decimal(3)
        assert result.avg_win == Decimal("200")
        # Average loss is reported as a positive amount
        assert result.avg_loss == Decimal("100")
        assert result.profit_factor == Decimal("4")
        assert result.total_commission == Decimal("60")

    def test_returns(self):
        result = StatisticsCalculator().calculate(make_state([]), make_config())
        assert result.final_capital == Decimal("1100000")
        assert result.total_return == Decimal("0.1")
        assert result.max_drawdown == Decimal("0.05")
        assert result.sharpe_like == Decimal("0.1") / (Decimal("0.05") + SHARPE_LIKE_OFFSET)
        # 365 days -> annual equals total
        assert float(result.annual_return) == pytest.approx(0.1, rel=1e-6)

    def test_no_trades(self):
        result = StatisticsCalculator().calculate(make_state([], equity="1000000"), make_config())
        assert result.total_trades == 0
        assert result.win_rate == 0
        assert result.profit_factor == 0
        assert result.by_symbol == []

    def test_profit_factor_zero_without_losses(self):
        result = StatisticsCalculator().calculate(
            make_state([buy("VNM"), sell("VNM", "50")]), make_config()
        )
        assert result.profit_factor == 0
        assert result.avg_loss == 0

    def test_zero_pnl_counts_as_loss(self):
        result = StatisticsCalculator().calculate(
            make_state([buy("VNM"), sell("VNM", "0")]), make_config()
        )
        assert result.losing_trades == 1
        assert result.winning_trades == 0

    def test_by_symbol_sorted_by_pnl(self):
        trades = [
            buy("VNM"), sell("VNM", "-100"),
            buy("FPT"), sell("FPT", "250"),
        ]
        result = StatisticsCalculator().calculate(make_state(trades), make_config())
        assert [s.symbol for s in result.by_symbol] == ["FPT", "VNM"]
        assert result.by_symbol[0].win_rate == 100.0
        assert result.by_symbol[1].losses == 1

    def test_metadata(self):
        result = StatisticsCalculator().calculate(make_state([]), make_config())
        assert result.strategy == "sma"
        assert result.symbols == ["VNM", "FPT"]
        assert result.initial_capital == Decimal("1000000")
        assert len(result.daily_equity) == 2


class TestAnnualize:
    def test_zero_days_returns_total(self):
        assert annualize(Decimal("0.2"), 0) == Decimal("0.2")

    def test_compounding(self):
        # Two years at 21% total -> 10% a year
        assert float(annualize(Decimal("0.21"), 730)) == pytest.approx(0.1, rel=1e-9)

    def test_total_loss(self):
        assert annualize(Decimal("-1"), 100) == Decimal("-1")

    def test_overflow_is_infinite(self):
        assert math.isinf(float(annualize(Decimal("1000000"), 1)))


class TestSymbolStats:
    def test_win_rate_without_trades(self):
        assert SymbolStats(symbol="VNM").win_rate == 0.0


# ---------------------------------------------------------------------------
# Report
# ---------------------------------------------------------------------------

class TestReportFormatter:
    @pytest.fixture
    def result(self):
        trades = [buy("VNM"), sell("VNM", "300")]
        return StatisticsCalculator().calculate(make_state(trades), make_config())

    def test_to_dict(self, result):
        data = ReportFormatter.to_dict(result)
        assert set(data) == {"metadata", "overall", "by_symbol", "trades", "daily_equity"}
        assert data["metadata"]["start_date"] == "2024-01-01"
        assert data["overall"]["total_trades"] == 1
        assert data["trades"][1]["side"] == "SELL"
        assert "2024-12-31" in data["daily_equity"]

    def test_save_json(self, result, tmp_path):
        path = tmp_path / "result.json"
        ReportFormatter.save_json(result, str(path))
        data = json.loads(path.read_text())
        assert data["overall"]["final_capital"] == pytest.approx(1100000.0)
        assert data["by_symbol"][0]["symbol"] == "VNM"

    def test_print_console(self, result, capsys):
        ReportFormatter.print_console(result)
        out = capsys.readouterr().out
        assert "BACKTEST RESULTS: sma" in out
        assert "BY SYMBOL" in out
        assert "TRADE LOG" in out
