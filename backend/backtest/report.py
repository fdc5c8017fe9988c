"""Report formatting for backtest results.

Outputs results to console (formatted tables) and JSON files.
"""

from __future__ import annotations

import datetime as dt
import json
from decimal import Decimal
from enum import Enum

from backtest.stats import BacktestResult


class DecimalEncoder(json.JSONEncoder):
    def default(self, obj):
        if isinstance(obj, Decimal):
            return float(obj)
        if isinstance(obj, (dt.datetime, dt.date)):
            return obj.isoformat()
        if isinstance(obj, Enum):
            return obj.value
        return super().default(obj)


class ReportFormatter:
    """Format backtest results for display and export."""

    @staticmethod
    def print_console(result: BacktestResult) -> None:
        """Print formatted report to console."""
        print("\n" + "=" * 70)
        print(f"  BACKTEST RESULTS: {result.strategy}")
        print("=" * 70)
        print(f"  Period: {result.start_date:%Y-%m-%d} -> {result.end_date:%Y-%m-%d}")
        print(f"  Symbols: {', '.join(result.symbols)}")

        # Overall
        print("\n" + "-" * 70)
        print("  OVERALL")
        print("-" * 70)
        print(f"  Initial capital: {result.initial_capital:,.0f}")
        print(f"  Final capital:   {result.final_capital:,.0f}")
        print(f"  Total return:    {result.total_return:+.2%}")
        print(f"  Annual return:   {result.annual_return:+.2%}")
        print(f"  Max drawdown:    {result.max_drawdown:.2%}")
        print(f"  Sharpe-like:     {result.sharpe_like:.2f}")
        print(f"  Commission paid: {result.total_commission:,.0f}")

        print("\n" + "-" * 70)
        print("  TRADES")
        print("-" * 70)
        print(f"  Closed trades:  {result.total_trades}")
        print(f"  Winning:        {result.winning_trades}")
        print(f"  Losing:         {result.losing_trades}")
        print(f"  Win rate:       {result.win_rate:.1%}")
        print(f"  Avg win:        {result.avg_win:,.0f}")
        print(f"  Avg loss:       {result.avg_loss:,.0f}")
        print(f"  Profit factor:  {result.profit_factor:.2f}")

        # By Symbol
        if result.by_symbol:
            print("\n" + "-" * 70)
            print("  BY SYMBOL")
            print("-" * 70)
            print(f"  {'Symbol':<12} {'Trades':>6} {'Wins':>6} {'Losses':>6} {'Win%':>8} {'PnL':>16}")
            for s in result.by_symbol:
                print(
                    f"  {s.symbol:<12} {s.trades:>6} {s.wins:>6} {s.losses:>6} "
                    f"{s.win_rate:>7.1f}% {s.pnl:>16,.0f}"
                )

        # Trade log (last 10)
        if result.trade_log:
            print("\n" + "-" * 70)
            print("  TRADE LOG (last 10)")
            print("-" * 70)
            print(f"  {'Date':<12} {'Side':<5} {'Symbol':<8} {'Qty':>10} {'Price':>12} {'PnL':>16}")
            for t in result.trade_log[-10:]:
                pnl = f"{t.pnl:>16,.0f}" if t.is_close else f"{'':>16}"
                print(
                    f"  {t.date:%Y-%m-%d}   {t.side.value:<5} {t.symbol:<8} "
                    f"{t.quantity:>10,} {t.price:>12,.2f} {pnl}"
                )

        print("\n" + "=" * 70)

    @staticmethod
    def to_dict(result: BacktestResult) -> dict:
        """Convert results to JSON-serializable dict."""
        return {
            "metadata": {
                "name": result.name,
                "strategy": result.strategy,
                "start_date": result.start_date.isoformat(),
                "end_date": result.end_date.isoformat(),
                "symbols": result.symbols,
                "initial_capital": result.initial_capital,
            },
            "overall": {
                "final_capital": result.final_capital,
                "total_return": result.total_return,
                "annual_return": result.annual_return,
                "max_drawdown": result.max_drawdown,
                "sharpe_like": result.sharpe_like,
                "total_commission": result.total_commission,
                "total_trades": result.total_trades,
                "winning_trades": result.winning_trades,
                "losing_trades": result.losing_trades,
                "win_rate": result.win_rate,
                "avg_win": result.avg_win,
                "avg_loss": result.avg_loss,
                "profit_factor": result.profit_factor,
            },
            "by_symbol": [
                {
                    "symbol": s.symbol,
                    "trades": s.trades,
                    "wins": s.wins,
                    "losses": s.losses,
                    "win_rate": round(s.win_rate, 2),
                    "pnl": s.pnl,
                }
                for s in result.by_symbol
            ],
            "trades": [
                {
                    "side": t.side.value,
                    "symbol": t.symbol,
                    "date": t.date.isoformat(),
                    "quantity": t.quantity,
                    "price": t.price,
                    "commission": t.commission,
                    "entry_price": t.entry_price,
                    "gross_pnl": t.gross_pnl,
                    "pnl": t.pnl,
                    "reason": t.reason,
                }
                for t in result.trade_log
            ],
            "daily_equity": {
                day.isoformat(): equity for day, equity in result.daily_equity.items()
            },
        }

    @staticmethod
    def save_json(result: BacktestResult, filepath: str) -> None:
        """Save results to JSON file."""
        data = ReportFormatter.to_dict(result)
        with open(filepath, "w") as f:
            json.dump(data, f, indent=2, cls=DecimalEncoder)
        print(f"\nResults saved to {filepath}")
