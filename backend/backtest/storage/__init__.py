"""Backtest storage layer, independent of app/.

Price data is read through the PriceSource protocol.
"""

from backtest.storage.price_source import CsvPriceSource, PriceSource, load_price_csv

__all__ = [
    "CsvPriceSource",
    "PriceSource",
    "load_price_csv",
]
