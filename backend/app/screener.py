"""Bulk screening of the symbol universe.

Evaluates one signal rule, one signal template or one scoring strategy
against every symbol's latest indicator snapshot. Evaluations fan out on
asyncio under a semaphore; results are collected under a lock, then
sorted best-first and truncated.

Definitions (rule, its groups, template) are loaded up front, so a
missing definition fails the whole screen before any symbol runs. A
failure for one symbol is logged and skipped.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, Iterable, TypeVar

from signal_core.conditions import evaluate_rule, evaluate_template
from signal_core.errors import OperationCancelled
from signal_core.models.conditions import SignalConditionGroup
from signal_core.models.filters import IndicatorFilter, SignalFilter
from signal_core.models.signal import RuleSignal, SignalType, StrategySignal
from signal_core.models.snapshot import IndicatorSnapshot
from signal_core.strategy import StrategyName, generate_strategy_signal, resolve_strategy

from app.config import get_settings
from app.market_data import MarketDataSource, SignalDefinitionStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

BUY_TYPES = [SignalType.BUY, SignalType.STRONG_BUY]
SELL_TYPES = [SignalType.SELL, SignalType.STRONG_SELL]


def filter_symbols(
    snapshots: dict[str, IndicatorSnapshot], indicator_filter: IndicatorFilter
) -> list[str]:
    """Symbols whose snapshot passes every set threshold, sorted."""
    return sorted(symbol for symbol, s in snapshots.items() if indicator_filter.matches(s))


class BulkScreener:
    """Screen all symbols against a rule, template or strategy.

    The screener owns no cached state: every call reads the current
    snapshots from ``market_data``.
    """

    def __init__(
        self,
        market_data: MarketDataSource,
        definitions: SignalDefinitionStore | None = None,
        concurrency: int | None = None,
    ):
        self._market_data = market_data
        self._definitions = definitions
        self.concurrency = concurrency or get_settings().screener_concurrency
        if self.concurrency < 1:
            raise ValueError(f"concurrency must be >= 1, got {self.concurrency}")

    # ------------------------------------------------------------------
    # Rule / template screening
    # ------------------------------------------------------------------

    async def screen_rule(
        self,
        rule_id: int,
        min_trading_value: float = 0.0,
        limit: int = 0,
        cancel_event: asyncio.Event | None = None,
    ) -> list[RuleSignal]:
        """Screen every symbol with one signal rule, best score first.

        Raises:
            NotFoundError: the rule or one of its groups does not exist
            OperationCancelled: cancel_event was set during the screen
        """
        definitions = self._require_definitions()
        rule = await definitions.load_signal_rule(rule_id)
        groups: dict[int, SignalConditionGroup] = {}
        for config in rule.condition_groups:
            groups[config.group_id] = await definitions.load_condition_group(config.group_id)

        def evaluate(snapshot: IndicatorSnapshot) -> RuleSignal | None:
            return evaluate_rule(rule, groups, snapshot)

        signals = await self._screen(
            f"rule {rule_id}", evaluate, min_trading_value, cancel_event
        )
        signals.sort(key=lambda s: s.score, reverse=True)
        return _truncate(signals, limit)

    async def screen_template(
        self,
        template_id: int,
        min_trading_value: float = 0.0,
        limit: int = 0,
        cancel_event: asyncio.Event | None = None,
    ) -> list[RuleSignal]:
        """Screen every symbol with one signal template, best confidence first.

        Raises:
            NotFoundError: the template does not exist
            OperationCancelled: cancel_event was set during the screen
        """
        template = await self._require_definitions().load_signal_template(template_id)

        def evaluate(snapshot: IndicatorSnapshot) -> RuleSignal | None:
            return evaluate_template(template, snapshot)

        signals = await self._screen(
            f"template {template_id}", evaluate, min_trading_value, cancel_event
        )
        signals.sort(key=lambda s: s.confidence, reverse=True)
        return _truncate(signals, limit)

    async def screen_all_symbols(
        self,
        rule_id: int | None = None,
        template_id: int | None = None,
        min_trading_value: float = 0.0,
        limit: int = 0,
        cancel_event: asyncio.Event | None = None,
    ) -> list[RuleSignal]:
        """Screen with exactly one of a rule or a template."""
        if (rule_id is None) == (template_id is None):
            raise ValueError("Pass exactly one of rule_id or template_id")
        if rule_id is not None:
            return await self.screen_rule(rule_id, min_trading_value, limit, cancel_event)
        return await self.screen_template(template_id, min_trading_value, limit, cancel_event)

    # ------------------------------------------------------------------
    # Strategy signal generation
    # ------------------------------------------------------------------

    async def generate_all_signals(
        self,
        strategy: StrategyName | str = StrategyName.COMPOSITE,
        signal_filter: SignalFilter | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> list[StrategySignal]:
        """Run one scoring strategy over every symbol, strongest first.

        Raises:
            NotFoundError: unknown strategy name
        """
        name = resolve_strategy(strategy)
        signal_filter = signal_filter or SignalFilter()

        def evaluate(snapshot: IndicatorSnapshot) -> StrategySignal | None:
            signal = generate_strategy_signal(name, snapshot)
            return signal if signal_filter.matches(signal) else None

        signals = await self._screen(
            f"strategy {name.value}", evaluate, signal_filter.min_trading_value, cancel_event
        )
        signals.sort(key=lambda s: s.strength, reverse=True)
        return _truncate(signals, signal_filter.limit)

    async def get_buy_signals(
        self, min_strength: int = 0, limit: int = 0, min_trading_value: float | None = None
    ) -> list[StrategySignal]:
        """BUY and STRONG_BUY composite signals."""
        return await self.generate_all_signals(
            StrategyName.COMPOSITE,
            self._direction_filter(BUY_TYPES, min_strength, limit, min_trading_value),
        )

    async def get_sell_signals(
        self, min_strength: int = 0, limit: int = 0, min_trading_value: float | None = None
    ) -> list[StrategySignal]:
        """SELL and STRONG_SELL composite signals."""
        return await self.generate_all_signals(
            StrategyName.COMPOSITE,
            self._direction_filter(SELL_TYPES, min_strength, limit, min_trading_value),
        )

    async def filter_symbols(self, indicator_filter: IndicatorFilter) -> list[str]:
        """Symbols whose latest snapshot passes the indicator filter."""
        snapshots = await self._market_data.get_all_indicator_snapshots()
        return filter_symbols(snapshots, indicator_filter)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _direction_filter(
        types: list[SignalType], min_strength: int, limit: int, min_trading_value: float | None
    ) -> SignalFilter:
        if min_trading_value is None:
            min_trading_value = get_settings().min_trading_value
        return SignalFilter(
            min_strength=min_strength,
            signal_types=types,
            min_trading_value=min_trading_value,
            limit=limit,
        )

    def _require_definitions(self) -> SignalDefinitionStore:
        if self._definitions is None:
            raise RuntimeError("BulkScreener needs a SignalDefinitionStore for rules and templates")
        return self._definitions

    async def _screen(
        self,
        label: str,
        evaluate: Callable[[IndicatorSnapshot], T | None],
        min_trading_value: float,
        cancel_event: asyncio.Event | None,
    ) -> list[T]:
        """Evaluate every eligible snapshot concurrently and collect the hits."""
        start_time = time.time()
        snapshots = await self._market_data.get_all_indicator_snapshots()
        eligible = [
            s for s in snapshots.values()
            if not (min_trading_value > 0 and s.avg_trading_value < min_trading_value)
        ]
        logger.info(
            f"Screening {len(eligible)}/{len(snapshots)} symbols with {label} "
            f"(concurrency={self.concurrency})"
        )

        semaphore = asyncio.Semaphore(self.concurrency)
        lock = asyncio.Lock()
        results: list[T] = []

        async def _evaluate_one(snapshot: IndicatorSnapshot) -> None:
            async with semaphore:
                if cancel_event is not None and cancel_event.is_set():
                    return
                try:
                    hit = evaluate(snapshot)
                except Exception:
                    logger.error(f"[{snapshot.symbol}] {label} evaluation failed", exc_info=True)
                    return
                if hit is not None:
                    async with lock:
                        results.append(hit)
                # Yield so other tasks (and a canceller) can run
                await asyncio.sleep(0)

        await _gather(_evaluate_one(s) for s in eligible)

        if cancel_event is not None and cancel_event.is_set():
            logger.info(f"Screen with {label} cancelled after {len(results)} hits")
            raise OperationCancelled(f"Screen with {label} cancelled")

        logger.info(
            f"Screen with {label}: {len(results)} signals in {time.time() - start_time:.2f}s"
        )
        return results


async def _gather(coros: Iterable[Awaitable[None]]) -> None:
    outcomes = await asyncio.gather(*coros, return_exceptions=True)
    for outcome in outcomes:
        if isinstance(outcome, Exception):
            logger.error(f"Screen task failed: {outcome!r}")
        elif isinstance(outcome, BaseException):
            raise outcome


def _truncate(items: list[T], limit: int) -> list[T]:
    return items[:limit] if limit > 0 else items
