"""Backtesting system for daily equity trading rules.

Fully independent of app/; only depends on signal_core/ for business logic.

Usage:
    python -m backtest --prices data/ --symbols VNM --start 2024-01-01 --end 2024-12-31
"""

from backtest.config import BacktestConfig
from backtest.runner import BacktestRunner, run_backtest
from backtest.stats import BacktestResult

__all__ = ["BacktestConfig", "BacktestRunner", "BacktestResult", "run_backtest"]
