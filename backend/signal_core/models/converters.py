"""Converters between flat tabular rows and price models.

Rows come from CSV exports or database cursors and use plain strings:

    date,open,high,low,close,volume[,value][,symbol]

Conversion helpers here are pure; callers own opening files.
"""

from __future__ import annotations

import datetime as dt
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Mapping

from signal_core.errors import InvalidParameterError
from signal_core.models.price import PriceHistory, PricePoint

PRICE_COLUMNS = ("date", "open", "high", "low", "close", "volume", "value")


# =============================================================================
# Scalar helpers
# =============================================================================

def parse_decimal(raw: Any, column: str) -> Decimal:
    """Parse a numeric cell, tolerating thousands separators."""
    if isinstance(raw, Decimal):
        return raw
    text = str(raw).strip().replace(",", "")
    try:
        return Decimal(text)
    except InvalidOperation:
        raise InvalidParameterError(f"Invalid number in column '{column}': {raw!r}") from None


def parse_day(raw: Any) -> dt.date:
    """Parse YYYY-MM-DD (a trailing time part is ignored)."""
    if isinstance(raw, dt.datetime):
        return raw.date()
    if isinstance(raw, dt.date):
        return raw
    text = str(raw).strip()[:10]
    try:
        return dt.date.fromisoformat(text)
    except ValueError:
        raise InvalidParameterError(f"Invalid date: {raw!r} (expected YYYY-MM-DD)") from None


# =============================================================================
# Row conversions
# =============================================================================

def row_to_price_point(row: Mapping[str, Any], symbol: str | None = None) -> PricePoint:
    """Convert one row to a PricePoint.

    ``symbol`` overrides any symbol column in the row. ``volume`` and
    ``value`` are optional. Header case is ignored.
    """
    row = {str(k).strip().lower(): v for k, v in row.items() if k is not None}
    row_symbol = symbol or str(row.get("symbol") or "").strip()
    if not row_symbol:
        raise InvalidParameterError("Price row has no symbol")
    missing = [c for c in ("date", "open", "high", "low", "close") if c not in row]
    if missing:
        raise InvalidParameterError(f"Price row missing columns: {', '.join(missing)}")
    value = row.get("value")
    volume = row.get("volume")
    return PricePoint(
        symbol=row_symbol,
        date=parse_day(row["date"]),
        open=parse_decimal(row["open"], "open"),
        high=parse_decimal(row["high"], "high"),
        low=parse_decimal(row["low"], "low"),
        close=parse_decimal(row["close"], "close"),
        volume=parse_decimal(volume, "volume") if volume not in (None, "") else Decimal("0"),
        value=parse_decimal(value, "value") if value not in (None, "") else None,
    )


def price_point_to_row(point: PricePoint) -> dict[str, str]:
    """Convert a PricePoint to a flat string row (inverse of row_to_price_point)."""
    return {
        "date": point.date.isoformat(),
        "open": str(point.open),
        "high": str(point.high),
        "low": str(point.low),
        "close": str(point.close),
        "volume": str(point.volume),
        "value": "" if point.value is None else str(point.value),
    }


def rows_to_history(symbol: str, rows: Iterable[Mapping[str, Any]]) -> PriceHistory:
    """Build a PriceHistory from rows in any date order."""
    return PriceHistory.from_points(symbol, (row_to_price_point(r, symbol) for r in rows))
