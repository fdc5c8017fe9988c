"""Data interfaces consumed by the screener and the live bot.

Storage technology is outside this package: anything satisfying the
protocols below can back a screen or a bot. The in-memory versions are
used by the CLI entry points and the tests.
"""

from __future__ import annotations

import csv
import datetime as dt
import logging
from pathlib import Path
from typing import Iterable, Mapping, Protocol, runtime_checkable

from signal_core.errors import InsufficientDataError, NotFoundError
from signal_core.indicators.snapshot import assign_rs_ranks, build_snapshot
from signal_core.models.conditions import (
    BUILT_IN_TEMPLATES,
    SignalConditionGroup,
    SignalRule,
    SignalTemplate,
)
from signal_core.models.converters import rows_to_history
from signal_core.models.price import PriceHistory, PricePoint
from signal_core.models.snapshot import IndicatorSnapshot

logger = logging.getLogger(__name__)


@runtime_checkable
class MarketDataSource(Protocol):
    """Read access to prices and precomputed indicator snapshots."""

    async def list_symbols(self) -> list[str]:
        """Symbols currently tracked (active listings)."""
        ...

    async def get_price_window(
        self, symbol: str, as_of: dt.date, max_points: int
    ) -> list[PricePoint]:
        """Up to max_points bars dated on or before as_of, newest first."""
        ...

    async def get_indicator_snapshot(self, symbol: str) -> IndicatorSnapshot:
        """Latest snapshot for one symbol. Raises NotFoundError if absent."""
        ...

    async def get_all_indicator_snapshots(self) -> dict[str, IndicatorSnapshot]:
        """Latest snapshot for every symbol that has one."""
        ...


@runtime_checkable
class SignalDefinitionStore(Protocol):
    """Read access to stored condition groups, rules and templates.

    Every loader raises NotFoundError for an unknown id.
    """

    async def load_condition_group(self, group_id: int) -> SignalConditionGroup: ...

    async def load_signal_rule(self, rule_id: int) -> SignalRule: ...

    async def load_signal_template(self, template_id: int) -> SignalTemplate: ...


class InMemoryMarketData:
    """MarketDataSource over a fixed set of price histories.

    Snapshots are built from the histories on first use (with relative
    strength ranks assigned across the whole set) unless supplied.
    """

    def __init__(
        self,
        histories: Mapping[str, PriceHistory] | None = None,
        snapshots: Mapping[str, IndicatorSnapshot] | None = None,
    ):
        self._histories: dict[str, PriceHistory] = dict(histories or {})
        self._snapshots: dict[str, IndicatorSnapshot] | None = (
            dict(snapshots) if snapshots is not None else None
        )

    @classmethod
    def from_histories(cls, histories: Iterable[PriceHistory]) -> "InMemoryMarketData":
        return cls({h.symbol: h for h in histories})

    def add_history(self, history: PriceHistory) -> None:
        self._histories[history.symbol] = history
        self._snapshots = None

    async def list_symbols(self) -> list[str]:
        symbols = set(self._histories)
        if self._snapshots is not None:
            symbols.update(self._snapshots)
        return sorted(symbols)

    async def get_price_window(
        self, symbol: str, as_of: dt.date, max_points: int
    ) -> list[PricePoint]:
        history = self._histories.get(symbol)
        if history is None:
            return []
        return list(reversed(history.window(as_of, max_points)))

    async def get_indicator_snapshot(self, symbol: str) -> IndicatorSnapshot:
        snapshots = self._ensure_snapshots()
        try:
            return snapshots[symbol]
        except KeyError:
            raise NotFoundError("indicator snapshot", symbol) from None

    async def get_all_indicator_snapshots(self) -> dict[str, IndicatorSnapshot]:
        return dict(self._ensure_snapshots())

    def _ensure_snapshots(self) -> dict[str, IndicatorSnapshot]:
        if self._snapshots is None:
            raw: dict[str, IndicatorSnapshot] = {}
            for symbol, history in self._histories.items():
                try:
                    raw[symbol] = build_snapshot(history)
                except InsufficientDataError as e:
                    logger.debug(f"[{symbol}] No snapshot: {e}")
            self._snapshots = assign_rs_ranks(raw)
            logger.info(f"Built {len(self._snapshots)} indicator snapshots")
        return self._snapshots


class InMemoryDefinitionStore:
    """SignalDefinitionStore over in-memory dictionaries.

    Built-in templates are registered under ids 1..N unless
    ``include_built_in`` is False; explicit templates keep their own ids.
    """

    def __init__(
        self,
        groups: Iterable[SignalConditionGroup] = (),
        rules: Iterable[SignalRule] = (),
        templates: Iterable[SignalTemplate] = (),
        include_built_in: bool = True,
    ):
        self._groups = {g.id: g for g in groups}
        self._rules = {r.id: r for r in rules}
        self._templates: dict[int, SignalTemplate] = {}
        if include_built_in:
            for i, template in enumerate(BUILT_IN_TEMPLATES, start=1):
                self._templates[i] = template.model_copy(update={"id": i})
        for template in templates:
            if template.id is None:
                raise ValueError(f"Template '{template.name}' needs an id")
            self._templates[template.id] = template

    async def load_condition_group(self, group_id: int) -> SignalConditionGroup:
        try:
            return self._groups[group_id]
        except KeyError:
            raise NotFoundError("condition group", group_id) from None

    async def load_signal_rule(self, rule_id: int) -> SignalRule:
        try:
            return self._rules[rule_id]
        except KeyError:
            raise NotFoundError("signal rule", rule_id) from None

    async def load_signal_template(self, template_id: int) -> SignalTemplate:
        try:
            return self._templates[template_id]
        except KeyError:
            raise NotFoundError("signal template", template_id) from None

    async def list_signal_rules(self) -> list[SignalRule]:
        return list(self._rules.values())


def load_price_dir(directory: str | Path) -> InMemoryMarketData:
    """Load every ``<SYMBOL>.csv`` in a directory into an InMemoryMarketData."""
    histories: list[PriceHistory] = []
    for path in sorted(Path(directory).glob("*.csv")):
        symbol = path.stem.upper()
        try:
            with open(path, newline="", encoding="utf-8") as f:
                histories.append(rows_to_history(symbol, csv.DictReader(f)))
        except (OSError, ValueError) as e:
            logger.error(f"[{symbol}] Skipping {path.name}: {e}")
    logger.info(f"Loaded {len(histories)} price files from {directory}")
    return InMemoryMarketData.from_histories(histories)
