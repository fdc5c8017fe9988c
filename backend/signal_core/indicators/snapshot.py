"""Build indicator snapshots from price history and rank relative strength.

Snapshots feed the scoring strategies and the condition evaluator. A
single-symbol snapshot carries raw % changes; ``assign_rs_ranks`` turns
those into universe-wide percentile ranks.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Mapping

from signal_core.errors import InsufficientDataError
from signal_core.indicators.indicators import macd, rsi, sma
from signal_core.models.price import PriceHistory
from signal_core.models.snapshot import IndicatorSnapshot

logger = logging.getLogger(__name__)

MIN_SNAPSHOT_POINTS = 10
VOLUME_AVG_PERIOD = 5

# Lookbacks in trading days
RS_HORIZONS = {"rs_3d": 3, "rs_1m": 22, "rs_3m": 66, "rs_1y": 252}
MA_PERIODS = (10, 30, 50, 200)
# Trading value is reported in millions
TRADING_VALUE_UNIT = Decimal("1000000")


def _round(value: Decimal | float, digits: int = 2) -> float:
    return round(float(value), digits)


def _price_change(closes: list[Decimal], period: int) -> float:
    """Percent change from ``period`` bars ago to the last close (0 if unknown)."""
    if len(closes) <= period:
        return 0.0
    past = closes[-(period + 1)]
    if past == 0:
        return 0.0
    return _round((closes[-1] - past) / past * 100)


def _sma_or_zero(closes: list[Decimal], period: int) -> float:
    try:
        return _round(sma(closes, period))
    except InsufficientDataError:
        return 0.0


def build_snapshot(history: PriceHistory, as_of: date | None = None) -> IndicatorSnapshot:
    """Compute a snapshot for one symbol at as_of (default: latest bar).

    RS ranks are left at 0; run ``assign_rs_ranks`` over the universe.

    Raises:
        InsufficientDataError: fewer than 10 bars at or before as_of
    """
    if as_of is None:
        if history.latest is None:
            raise InsufficientDataError(MIN_SNAPSHOT_POINTS, 0, "snapshot")
        as_of = history.latest.date

    points = history.window(as_of)
    if len(points) < MIN_SNAPSHOT_POINTS:
        raise InsufficientDataError(MIN_SNAPSHOT_POINTS, len(points), "snapshot")

    closes = [p.close for p in points]
    volumes = [p.volume for p in points]

    try:
        rsi_value = _round(rsi(closes, 14))
    except InsufficientDataError:
        rsi_value = 50.0

    try:
        m = macd(closes)
        macd_line, macd_signal, macd_hist = (
            _round(m.macd), _round(m.signal), _round(m.histogram)
        )
    except InsufficientDataError:
        macd_line = macd_signal = macd_hist = 0.0

    recent = points[-VOLUME_AVG_PERIOD:]
    avg_volume = sum((p.volume for p in recent), Decimal("0")) / len(recent)
    vol_ratio = 0.0
    if avg_volume > 0 and volumes[-1] > 0:
        vol_ratio = _round(volumes[-1] / avg_volume)
    avg_trading_value = (
        sum((p.volume * p.close for p in recent), Decimal("0"))
        / len(recent)
        / TRADING_VALUE_UNIT
    )

    mas = {period: _sma_or_zero(closes, period) for period in MA_PERIODS}

    return IndicatorSnapshot(
        symbol=history.symbol,
        as_of=as_of,
        current_price=float(closes[-1]),
        price_change=_price_change(closes, 1),
        **{name: _price_change(closes, period) for name, period in RS_HORIZONS.items()},
        rsi=rsi_value,
        macd=macd_line,
        macd_signal=macd_signal,
        macd_hist=macd_hist,
        avg_volume=float(round(avg_volume)),
        avg_trading_value=_round(avg_trading_value),
        vol_ratio=vol_ratio,
        ma10=mas[10],
        ma30=mas[30],
        ma50=mas[50],
        ma200=mas[200],
        ma10_above_ma30=mas[10] > 0 and mas[30] > 0 and mas[10] >= mas[30],
        ma50_above_ma200=mas[50] > 0 and mas[200] > 0 and mas[50] >= mas[200],
    )


def assign_rs_ranks(snapshots: Mapping[str, IndicatorSnapshot]) -> dict[str, IndicatorSnapshot]:
    """Rank each RS horizon across the universe as a 1-100 percentile.

    Higher % change ranks higher. ``rs_avg`` is the rounded mean of the four
    ranks. Returns new snapshots; inputs are not modified.
    """
    if not snapshots:
        return {}

    total = len(snapshots)
    ranks: dict[str, dict[str, float]] = {symbol: {} for symbol in snapshots}
    for field in RS_HORIZONS:
        ordered = sorted(snapshots, key=lambda s: getattr(snapshots[s], field))
        for i, symbol in enumerate(ordered):
            ranks[symbol][f"{field}_rank"] = float(round((i + 1) / total * 100))

    ranked: dict[str, IndicatorSnapshot] = {}
    for symbol, snap in snapshots.items():
        update = ranks[symbol]
        update["rs_avg"] = float(round(sum(update.values()) / len(RS_HORIZONS)))
        ranked[symbol] = snap.model_copy(update=update)

    logger.debug(f"Assigned RS ranks across {total} symbols")
    return ranked
