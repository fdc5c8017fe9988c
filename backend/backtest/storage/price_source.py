"""Price data sources for backtesting.

Reads daily bars from a directory of per-symbol CSV files
(``<dir>/<SYMBOL>.csv``). No app/ dependency.
"""

from __future__ import annotations

import asyncio
import csv
import datetime as dt
import logging
from pathlib import Path
from typing import Protocol, runtime_checkable

from signal_core.models.converters import rows_to_history
from signal_core.models.price import PriceHistory, PricePoint

logger = logging.getLogger(__name__)


@runtime_checkable
class PriceSource(Protocol):
    """Protocol for daily price access."""

    async def get_price_window(
        self, symbol: str, as_of: dt.date, max_points: int
    ) -> list[PricePoint]:
        """Up to max_points bars dated on or before as_of, newest first."""
        ...


def load_price_csv(path: str | Path, symbol: str | None = None) -> PriceHistory:
    """Load one symbol's history from a CSV file.

    The symbol defaults to the file stem, upper-cased.
    """
    path = Path(path)
    symbol = symbol or path.stem.upper()
    with open(path, newline="", encoding="utf-8") as f:
        return rows_to_history(symbol, csv.DictReader(f))


class CsvPriceSource:
    """Serve price windows from ``<directory>/<SYMBOL>.csv``.

    Files are parsed once on first access and cached.
    """

    def __init__(self, directory: str | Path):
        self._directory = Path(directory)
        self._histories: dict[str, PriceHistory | None] = {}

    def _path_for(self, symbol: str) -> Path | None:
        for name in (f"{symbol}.csv", f"{symbol.upper()}.csv", f"{symbol.lower()}.csv"):
            path = self._directory / name
            if path.is_file():
                return path
        return None

    async def load(self, symbol: str) -> PriceHistory | None:
        if symbol not in self._histories:
            path = self._path_for(symbol)
            if path is None:
                logger.warning(f"[{symbol}] No price file in {self._directory}")
                self._histories[symbol] = None
            else:
                history = await asyncio.to_thread(load_price_csv, path, symbol)
                logger.debug(f"[{symbol}] Loaded {len(history)} bars from {path}")
                self._histories[symbol] = history
        return self._histories[symbol]

    async def get_price_window(
        self, symbol: str, as_of: dt.date, max_points: int
    ) -> list[PricePoint]:
        history = await self.load(symbol)
        if history is None:
            return []
        return list(reversed(history.window(as_of, max_points)))
