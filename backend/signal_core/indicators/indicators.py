"""Technical indicators over daily closes.

All price math is Decimal. Only the Bollinger standard deviation goes
through float (numpy) for the square root.

Functions take closes in chronological order (oldest first) and return
the indicator value at the last element. ``IndicatorEngine`` binds them
to a symbol's ``PriceHistory`` so callers can ask for a value as of a date.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Sequence

import numpy as np

from signal_core.errors import InsufficientDataError, InvalidParameterError
from signal_core.models.price import PriceHistory, PricePoint

MACD_FAST = 12
MACD_SLOW = 26
# Fixed-ratio signal line and %D (not smoothed averages)
MACD_SIGNAL_RATIO = Decimal("0.9")
STOCHASTIC_D_RATIO = Decimal("0.85")
BOLLINGER_WIDTH = Decimal("2")

_HUNDRED = Decimal("100")


@dataclass(frozen=True)
class MACDResult:
    macd: Decimal
    signal: Decimal
    histogram: Decimal


@dataclass(frozen=True)
class BollingerBands:
    upper: Decimal
    middle: Decimal
    lower: Decimal


@dataclass(frozen=True)
class StochasticResult:
    k: Decimal
    d: Decimal


def _check_period(period: int) -> None:
    if period < 1:
        raise InvalidParameterError(f"period must be >= 1, got {period}")


def sma(closes: Sequence[Decimal], period: int) -> Decimal:
    """Arithmetic mean of the last ``period`` closes.

    Raises:
        InsufficientDataError: fewer than ``period`` closes
    """
    _check_period(period)
    if len(closes) < period:
        raise InsufficientDataError(period, len(closes), f"SMA{period}")
    window = closes[-period:]
    return sum(window, Decimal("0")) / Decimal(period)


def ema(closes: Sequence[Decimal], period: int) -> Decimal:
    """Exponential moving average at the last close.

    Uses up to 3 x period trailing closes, seeded with the oldest of them.
    """
    _check_period(period)
    if len(closes) < period:
        raise InsufficientDataError(period, len(closes), f"EMA{period}")
    window = closes[-3 * period:]
    multiplier = Decimal(2) / Decimal(period + 1)
    value = window[0]
    for close in window[1:]:
        value = (close - value) * multiplier + value
    return value


def rsi(closes: Sequence[Decimal], period: int = 14) -> Decimal:
    """Relative Strength Index from simple average gain and loss.

    Uses the last period + 1 closes. Returns 100 when there are no losses.
    """
    _check_period(period)
    if len(closes) < period + 1:
        raise InsufficientDataError(period + 1, len(closes), f"RSI{period}")
    window = closes[-(period + 1):]
    gains = Decimal("0")
    losses = Decimal("0")
    for prev, cur in zip(window, window[1:]):
        change = cur - prev
        if change > 0:
            gains += change
        else:
            losses -= change

    avg_gain = gains / Decimal(period)
    avg_loss = losses / Decimal(period)
    if avg_loss == 0:
        return _HUNDRED
    rs = avg_gain / avg_loss
    return _HUNDRED - _HUNDRED / (Decimal(1) + rs)


def macd(closes: Sequence[Decimal]) -> MACDResult:
    """MACD line (EMA12 - EMA26) with a fixed-ratio signal line."""
    line = ema(closes, MACD_FAST) - ema(closes, MACD_SLOW)
    signal = line * MACD_SIGNAL_RATIO
    return MACDResult(macd=line, signal=signal, histogram=line - signal)


def bollinger_bands(closes: Sequence[Decimal], period: int = 20) -> BollingerBands:
    """SMA middle band +/- 2 population standard deviations."""
    middle = sma(closes, period)
    window = np.array([float(c) for c in closes[-period:]], dtype=np.float64)
    std_dev = Decimal(str(float(np.std(window))))
    band = BOLLINGER_WIDTH * std_dev
    return BollingerBands(upper=middle + band, middle=middle, lower=middle - band)


def stochastic(points: Sequence[PricePoint], period: int = 14) -> StochasticResult:
    """Stochastic %K over the window's high/low range, %D = %K x 0.85.

    A flat window (highest high == lowest low) reads as %K = 50.
    """
    _check_period(period)
    if len(points) < period:
        raise InsufficientDataError(period, len(points), f"Stochastic{period}")
    window = points[-period:]
    high = highest_high(window)
    low = lowest_low(window)
    price_range = high - low
    if price_range == 0:
        k = Decimal("50")
    else:
        k = (window[-1].close - low) / price_range * _HUNDRED
    return StochasticResult(k=k, d=k * STOCHASTIC_D_RATIO)


def highest_high(points: Sequence[PricePoint]) -> Decimal:
    return max(p.high for p in points)


def lowest_low(points: Sequence[PricePoint]) -> Decimal:
    return min(p.low for p in points)


class IndicatorEngine:
    """Indicator calculator bound to one symbol's price history.

    Every call reads the trailing window ending at (and including) the
    requested date. The engine holds no mutable state, so repeated calls
    return identical values and one engine can serve concurrent readers.
    """

    def __init__(self, history: PriceHistory):
        self.history = history

    @property
    def symbol(self) -> str:
        return self.history.symbol

    def sma(self, period: int, as_of: date) -> Decimal:
        return sma(self.history.closes(as_of, period), period)

    def ema(self, period: int, as_of: date) -> Decimal:
        return ema(self.history.closes(as_of, 3 * period), period)

    def rsi(self, period: int, as_of: date) -> Decimal:
        return rsi(self.history.closes(as_of, period + 1), period)

    def macd(self, as_of: date) -> MACDResult:
        return macd(self.history.closes(as_of, 3 * MACD_SLOW))

    def bollinger_bands(self, period: int, as_of: date) -> BollingerBands:
        return bollinger_bands(self.history.closes(as_of, period), period)

    def stochastic(self, period: int, as_of: date) -> StochasticResult:
        return stochastic(self.history.window(as_of, period), period)

    def calculate_all(self, as_of: date) -> dict[str, Decimal]:
        """Standard indicator set at a date.

        Indicators whose window is too short are left out.

        Returns:
            Dict with keys like sma_20, ema_12, rsi_14, macd, macd_signal,
            macd_histogram.
        """
        result: dict[str, Decimal] = {}
        for period in (10, 20, 50, 200):
            try:
                result[f"sma_{period}"] = self.sma(period, as_of)
            except InsufficientDataError:
                pass
        for period in (12, 26, 50):
            try:
                result[f"ema_{period}"] = self.ema(period, as_of)
            except InsufficientDataError:
                pass
        try:
            result["rsi_14"] = self.rsi(14, as_of)
        except InsufficientDataError:
            pass
        try:
            m = self.macd(as_of)
        except InsufficientDataError:
            return result
        result["macd"] = m.macd
        result["macd_signal"] = m.signal
        result["macd_histogram"] = m.histogram
        return result
