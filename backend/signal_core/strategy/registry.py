"""Fixed table of the built-in scoring strategies.

The set is closed: strategies are looked up through ``StrategyName``
rather than registered at runtime.

Usage:
    signal = generate_strategy_signal("composite", snapshot)
    names = list_strategies()
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable

from signal_core.errors import NotFoundError
from signal_core.models.signal import StrategySignal
from signal_core.models.snapshot import IndicatorSnapshot
from signal_core.strategy import (
    breakout,
    composite,
    mean_reversion,
    momentum,
    trend_following,
)

logger = logging.getLogger(__name__)

StrategyFn = Callable[[IndicatorSnapshot], StrategySignal]


class StrategyName(str, Enum):
    MOMENTUM = momentum.NAME
    TREND_FOLLOWING = trend_following.NAME
    MEAN_REVERSION = mean_reversion.NAME
    BREAKOUT = breakout.NAME
    COMPOSITE = composite.NAME


_STRATEGIES: dict[StrategyName, StrategyFn] = {
    StrategyName.MOMENTUM: momentum.evaluate,
    StrategyName.TREND_FOLLOWING: trend_following.evaluate,
    StrategyName.MEAN_REVERSION: mean_reversion.evaluate,
    StrategyName.BREAKOUT: breakout.evaluate,
    StrategyName.COMPOSITE: composite.evaluate,
}


def resolve_strategy(name: StrategyName | str) -> StrategyName:
    """Resolve a strategy name.

    Raises:
        NotFoundError: If the name is not one of the built-in strategies.
    """
    try:
        return StrategyName(name)
    except ValueError:
        available = ", ".join(list_strategies())
        raise NotFoundError("strategy", name, f"Available: {available}") from None


def get_strategy(name: StrategyName | str) -> StrategyFn:
    return _STRATEGIES[resolve_strategy(name)]


def generate_strategy_signal(
    name: StrategyName | str, snapshot: IndicatorSnapshot
) -> StrategySignal:
    """Evaluate one built-in strategy against a snapshot."""
    signal = get_strategy(name)(snapshot)
    logger.debug(
        f"{signal.strategy} {snapshot.symbol}: {signal.signal_type.value} "
        f"strength={signal.strength} confidence={signal.confidence:.2f}"
    )
    return signal


def list_strategies() -> list[str]:
    """Return the built-in strategy names."""
    return [name.value for name in StrategyName]
