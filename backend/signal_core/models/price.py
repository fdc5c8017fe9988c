"""Daily OHLCV price models."""

from __future__ import annotations

import datetime as dt
from bisect import bisect_right
from decimal import Decimal
from typing import Any, Iterable

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, ValidationInfo, field_validator


class PricePoint(BaseModel):
    """One trading day's OHLCV bar for one symbol."""

    model_config = ConfigDict(frozen=True)

    symbol: str
    date: dt.date
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    volume: Decimal = Decimal("0")
    value: Decimal | None = None

    @property
    def trading_value(self) -> Decimal:
        """Traded value for the day, close * volume when the feed omits it."""
        if self.value is not None:
            return self.value
        return self.close * self.volume


class PriceHistory(BaseModel):
    """Chronological price history for a single symbol.

    Accepts points in any order (data sources return them newest first)
    and keeps them sorted by date. Dates must be unique.
    """

    symbol: str
    points: list[PricePoint] = Field(default_factory=list)

    _dates: list[dt.date] = PrivateAttr(default_factory=list)

    @field_validator("points")
    @classmethod
    def _sort_points(cls, points: list[PricePoint], info: ValidationInfo) -> list[PricePoint]:
        ordered = sorted(points, key=lambda p: p.date)
        for prev, cur in zip(ordered, ordered[1:]):
            if prev.date == cur.date:
                raise ValueError(
                    f"Duplicate price for {info.data.get('symbol')} on {cur.date.isoformat()}"
                )
        return ordered

    def model_post_init(self, __context: Any) -> None:
        self._dates = [p.date for p in self.points]

    @classmethod
    def from_points(cls, symbol: str, points: Iterable[PricePoint]) -> "PriceHistory":
        return cls(symbol=symbol, points=list(points))

    def _end_index(self, as_of: dt.date) -> int:
        """Index one past the last point dated at or before as_of."""
        return bisect_right(self._dates, as_of)

    def window(self, as_of: dt.date, max_points: int | None = None) -> list[PricePoint]:
        """Get up to max_points most recent points ending at as_of, oldest first."""
        end = self._end_index(as_of)
        if max_points is None:
            return self.points[:end]
        return self.points[max(0, end - max_points):end]

    def closes(self, as_of: dt.date, max_points: int | None = None) -> list[Decimal]:
        """Get close prices of window(), oldest first."""
        return [p.close for p in self.window(as_of, max_points)]

    def point_on(self, day: dt.date) -> PricePoint | None:
        """Get the bar dated exactly on day, if any."""
        end = self._end_index(day)
        if end and self._dates[end - 1] == day:
            return self.points[end - 1]
        return None

    def latest_on_or_before(self, as_of: dt.date) -> PricePoint | None:
        end = self._end_index(as_of)
        return self.points[end - 1] if end else None

    def previous_date(self, as_of: dt.date) -> dt.date | None:
        """Get the date of the last bar strictly before as_of."""
        end = self._end_index(as_of)
        if end and self._dates[end - 1] == as_of:
            end -= 1
        return self._dates[end - 1] if end else None

    @property
    def latest(self) -> PricePoint | None:
        return self.points[-1] if self.points else None

    def __len__(self) -> int:
        return len(self.points)
