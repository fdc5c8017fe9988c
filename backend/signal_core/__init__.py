"""Pure evaluation core: price models, indicators, strategies and conditions.

Nothing here performs I/O. The backtester (backtest/) and the screener
and live bot (app/) both build on it, so a rule evaluated in a backtest
behaves exactly as it does live.
"""
