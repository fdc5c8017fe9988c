"""Statistics calculator for backtest results.

Computes return, drawdown and closed-trade metrics from a finished
BacktestState. Only SELL records (closed round trips) count as trades;
a trade wins when its net pnl is positive.
"""

from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass, field
from decimal import Decimal

from backtest.config import BacktestConfig
from backtest.engine import BacktestState, TradeRecord

logger = logging.getLogger(__name__)

# Denominator offset for the drawdown-scaled return ratio
SHARPE_LIKE_OFFSET = Decimal("0.01")

_ZERO = Decimal("0")


@dataclass
class SymbolStats:
    symbol: str
    trades: int = 0
    wins: int = 0
    losses: int = 0
    pnl: Decimal = _ZERO

    @property
    def win_rate(self) -> float:
        return (self.wins / self.trades * 100) if self.trades > 0 else 0.0


@dataclass
class BacktestResult:
    """Complete backtest results."""

    # Metadata
    name: str
    strategy: str
    start_date: dt.date
    end_date: dt.date
    symbols: list[str]
    initial_capital: Decimal

    # Overall
    final_capital: Decimal = _ZERO
    total_return: Decimal = _ZERO
    annual_return: Decimal = _ZERO
    max_drawdown: Decimal = _ZERO
    total_trades: int = 0
    winning_trades: int = 0
    losing_trades: int = 0
    win_rate: Decimal = _ZERO
    avg_win: Decimal = _ZERO
    avg_loss: Decimal = _ZERO
    profit_factor: Decimal = _ZERO
    sharpe_like: Decimal = _ZERO
    total_commission: Decimal = _ZERO

    # Breakdowns
    by_symbol: list[SymbolStats] = field(default_factory=list)

    trade_log: list[TradeRecord] = field(default_factory=list)
    daily_equity: dict[dt.date, Decimal] = field(default_factory=dict)


class StatisticsCalculator:
    """Calculate backtest statistics."""

    def calculate(self, state: BacktestState, config: BacktestConfig) -> BacktestResult:
        result = BacktestResult(
            name=config.name,
            strategy=config.strategy.label,
            start_date=config.start_date,
            end_date=config.end_date,
            symbols=list(config.symbols),
            initial_capital=config.initial_capital,
            trade_log=list(state.trades),
            daily_equity=dict(state.daily_equity),
        )
        self._calc_returns(result, state, config)
        self._calc_trades(result, state)
        self._calc_by_symbol(result, state)
        return result

    def _calc_returns(
        self, result: BacktestResult, state: BacktestState, config: BacktestConfig
    ) -> None:
        result.final_capital = state.equity
        result.max_drawdown = state.max_drawdown
        result.total_return = (state.equity - config.initial_capital) / config.initial_capital
        result.annual_return = annualize(result.total_return, config.days)
        result.sharpe_like = result.total_return / (state.max_drawdown + SHARPE_LIKE_OFFSET)
        result.total_commission = sum((t.commission for t in state.trades), _ZERO)

    def _calc_trades(self, result: BacktestResult, state: BacktestState) -> None:
        closed = state.closed_trades
        wins = [t.pnl for t in closed if t.pnl > 0]
        losses = [-t.pnl for t in closed if t.pnl <= 0]

        result.total_trades = len(closed)
        result.winning_trades = len(wins)
        result.losing_trades = len(losses)
        if closed:
            result.win_rate = Decimal(len(wins)) / Decimal(len(closed))

        total_win = sum(wins, _ZERO)
        total_loss = sum(losses, _ZERO)
        if wins:
            result.avg_win = total_win / len(wins)
        if losses:
            result.avg_loss = total_loss / len(losses)
        # Stays 0 when nothing was lost
        if total_loss > 0:
            result.profit_factor = total_win / total_loss

    def _calc_by_symbol(self, result: BacktestResult, state: BacktestState) -> None:
        groups: dict[str, SymbolStats] = {}
        for trade in state.closed_trades:
            stats = groups.setdefault(trade.symbol, SymbolStats(symbol=trade.symbol))
            stats.trades += 1
            stats.pnl += trade.pnl
            if trade.pnl > 0:
                stats.wins += 1
            else:
                stats.losses += 1
        result.by_symbol = sorted(groups.values(), key=lambda s: s.pnl, reverse=True)


def annualize(total_return: Decimal, days: int) -> Decimal:
    """Compound a total return to a yearly rate.

    ``(1 + total_return) ** (365 / days) - 1``; with no elapsed days the
    total return is returned unchanged.
    """
    if days <= 0:
        return total_return
    base = 1.0 + float(total_return)
    if base <= 0:
        return Decimal("-1")
    try:
        return Decimal(str(base ** (365.0 / days) - 1.0))
    except OverflowError:
        logger.warning(f"Annualized return overflow for total_return={total_return} days={days}")
        return Decimal(str(float("inf")))
