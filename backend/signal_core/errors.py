"""Error taxonomy shared by indicators, strategies, conditions and backtests."""

from __future__ import annotations


class SignalCoreError(Exception):
    """Base class for all errors raised by the evaluation core."""


class InsufficientDataError(SignalCoreError):
    """A price window holds fewer points than a calculation requires.

    Never fatal: callers treat it as HOLD or skip the symbol.
    """

    def __init__(self, required: int, available: int, what: str = "calculation"):
        self.required = required
        self.available = available
        super().__init__(
            f"Insufficient data for {what}: need {required} points, have {available}"
        )


class NotFoundError(SignalCoreError, LookupError):
    """A referenced strategy, group, rule, template or symbol does not exist."""

    def __init__(self, kind: str, key: object, detail: str = ""):
        self.kind = kind
        self.key = key
        message = f"{kind} '{key}' not found"
        super().__init__(f"{message}. {detail}" if detail else message)


class InvalidParameterError(SignalCoreError, ValueError):
    """Malformed strategy parameters, periods or condition operators."""


class ExecutionRejected(SignalCoreError):
    """A simulated order could not be funded or sized (skipped silently)."""


class OperationCancelled(SignalCoreError):
    """A backtest run or bulk screen observed its cancellation signal."""
