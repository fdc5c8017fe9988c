"""Built-in strategies.

Public API:
- StrategyName: closed set of scoring strategies (momentum, trend_following,
  mean_reversion, breakout, composite)
- generate_strategy_signal: evaluate a scoring strategy on a snapshot
- list_strategies / get_strategy / resolve_strategy: table lookups
- evaluate_trading_rule: two-state BUY/SELL/HOLD rules for backtests and the bot
"""

from signal_core.strategy.registry import (
    StrategyFn,
    StrategyName,
    generate_strategy_signal,
    get_strategy,
    list_strategies,
    resolve_strategy,
)
from signal_core.strategy.trading_rules import TradingDecision, evaluate_trading_rule

__all__ = [
    "StrategyFn",
    "StrategyName",
    "generate_strategy_signal",
    "get_strategy",
    "list_strategies",
    "resolve_strategy",
    "TradingDecision",
    "evaluate_trading_rule",
]
