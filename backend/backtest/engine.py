"""Day-by-day portfolio simulation.

Walks calendar days from start to end (weekends skipped). For each day
and each symbol with a bar on that day:
1. Mark any open position to the close
2. Evaluate the configured trading rule as of that day
3. BUY opens a position when there is cash and none is open; SELL
   closes an open position
Daily equity and running max drawdown are tracked after each day. Open
positions are force-closed at the latest price on or before end_date.
"""

from __future__ import annotations

import asyncio
import datetime as dt
import logging
from dataclasses import dataclass, field
from decimal import ROUND_FLOOR, Decimal
from typing import Awaitable, Callable, Mapping

from signal_core.errors import ExecutionRejected, OperationCancelled
from signal_core.indicators.indicators import IndicatorEngine
from signal_core.models.price import PriceHistory, PricePoint
from signal_core.models.signal import SignalType
from signal_core.strategy.trading_rules import evaluate_trading_rule

from backtest.config import BacktestConfig

logger = logging.getLogger(__name__)

TradeCallback = Callable[["TradeRecord"], Awaitable[None]]

FORCED_CLOSE_REASON = "Forced close at end date"

_ZERO = Decimal("0")


@dataclass
class Position:
    """An open long position in one symbol."""

    symbol: str
    quantity: int
    entry_price: Decimal
    entry_date: dt.date
    entry_commission: Decimal
    current_price: Decimal

    @property
    def market_value(self) -> Decimal:
        return self.current_price * self.quantity

    @property
    def unrealized_pnl(self) -> Decimal:
        return (self.current_price - self.entry_price) * self.quantity


@dataclass
class TradeRecord:
    """One executed simulated order.

    ``commission`` is this leg's commission only. SELL records also carry
    the realized result: ``gross_pnl`` before any commission and ``pnl``
    net of both the entry and exit commissions.
    """

    side: SignalType
    symbol: str
    date: dt.date
    quantity: int
    price: Decimal
    commission: Decimal
    reason: str = ""
    entry_price: Decimal | None = None
    gross_pnl: Decimal = _ZERO
    pnl: Decimal = _ZERO

    @property
    def is_close(self) -> bool:
        return self.side == SignalType.SELL


@dataclass
class BacktestState:
    """Mutable portfolio state owned by a single run."""

    cash: Decimal
    equity: Decimal
    max_equity: Decimal
    max_drawdown: Decimal = _ZERO
    positions: dict[str, Position] = field(default_factory=dict)
    trades: list[TradeRecord] = field(default_factory=list)
    daily_equity: dict[dt.date, Decimal] = field(default_factory=dict)

    @classmethod
    def start(cls, initial_capital: Decimal) -> "BacktestState":
        return cls(cash=initial_capital, equity=initial_capital, max_equity=initial_capital)

    @property
    def closed_trades(self) -> list[TradeRecord]:
        return [t for t in self.trades if t.is_close]

    def mark_equity(self) -> Decimal:
        self.equity = self.cash + sum(
            (p.market_value for p in self.positions.values()), _ZERO
        )
        return self.equity


def trading_days(start: dt.date, end: dt.date):
    """Yield calendar days start..end inclusive, skipping Saturday and Sunday."""
    day = start
    while day <= end:
        if day.weekday() < 5:
            yield day
        day += dt.timedelta(days=1)


class BacktestEngine:
    """Simulate one strategy over a set of symbol histories.

    The engine holds no state between runs; each ``run`` builds a fresh
    BacktestState.
    """

    def __init__(self, config: BacktestConfig):
        self.config = config
        self._params = config.strategy.typed_params()

    async def run(
        self,
        histories: Mapping[str, PriceHistory],
        cancel_event: asyncio.Event | None = None,
        on_trade: TradeCallback | None = None,
    ) -> BacktestState:
        """Run the day loop and return the final state.

        Symbols are processed in config order; symbols without a history
        are skipped. Trades are delivered to ``on_trade`` as they execute.

        Raises:
            OperationCancelled: cancel_event was set before a day started
        """
        config = self.config
        state = BacktestState.start(config.initial_capital)
        symbols = [s for s in config.symbols if s in histories]
        engines = {s: IndicatorEngine(histories[s]) for s in symbols}

        for day in trading_days(config.start_date, config.end_date):
            if cancel_event is not None and cancel_event.is_set():
                logger.info(f"Backtest cancelled at {day} after {len(state.trades)} trades")
                raise OperationCancelled(f"Backtest cancelled at {day}")

            for symbol in symbols:
                point = histories[symbol].point_on(day)
                if point is None:
                    continue
                try:
                    await self._process_bar(state, engines[symbol], point, on_trade)
                except Exception:
                    logger.error(f"[{symbol}] {day}: bar processing failed", exc_info=True)

            self._record_day(state, day)
            # Let a canceller (or other tasks) run between days
            await asyncio.sleep(0)

        await self._close_all(state, histories, on_trade)
        state.mark_equity()
        return state

    async def _process_bar(
        self,
        state: BacktestState,
        engine: IndicatorEngine,
        point: PricePoint,
        on_trade: TradeCallback | None,
    ) -> None:
        position = state.positions.get(point.symbol)
        if position is not None:
            position.current_price = point.close

        decision = evaluate_trading_rule(self.config.strategy, engine, point.date, self._params)
        trade: TradeRecord | None = None
        try:
            if decision.signal == SignalType.BUY and state.cash > 0:
                trade = self._execute_buy(state, point, decision.reason)
            elif decision.signal == SignalType.SELL and position is not None:
                trade = self._execute_sell(state, point, point.close, decision.reason)
        except ExecutionRejected as e:
            logger.debug(f"[{point.symbol}] {point.date}: {decision.signal.value} rejected ({e})")
            return

        if trade is not None:
            await self._deliver(trade, on_trade)

    def _execute_buy(self, state: BacktestState, point: PricePoint, reason: str) -> TradeRecord:
        if point.symbol in state.positions:
            raise ExecutionRejected(f"position already open in {point.symbol}")
        if point.close <= 0:
            raise ExecutionRejected(f"non-positive close {point.close}")

        budget = state.cash * self.config.risk_per_trade
        quantity = int((budget / point.close).to_integral_value(rounding=ROUND_FLOOR))
        if quantity <= 0:
            raise ExecutionRejected(f"budget {budget} buys no shares at {point.close}")

        cost = point.close * quantity
        commission = cost * self.config.commission
        if cost + commission > state.cash:
            raise ExecutionRejected(f"cost {cost + commission} exceeds cash {state.cash}")

        state.cash -= cost + commission
        state.positions[point.symbol] = Position(
            symbol=point.symbol,
            quantity=quantity,
            entry_price=point.close,
            entry_date=point.date,
            entry_commission=commission,
            current_price=point.close,
        )
        trade = TradeRecord(
            side=SignalType.BUY,
            symbol=point.symbol,
            date=point.date,
            quantity=quantity,
            price=point.close,
            commission=commission,
            reason=reason,
        )
        state.trades.append(trade)
        logger.debug(f"[{point.symbol}] {point.date}: BUY {quantity} @ {point.close}")
        return trade

    def _execute_sell(
        self, state: BacktestState, point: PricePoint, price: Decimal, reason: str
    ) -> TradeRecord:
        position = state.positions.pop(point.symbol)
        position.current_price = price

        revenue = price * position.quantity
        commission = revenue * self.config.commission
        gross_pnl = (price - position.entry_price) * position.quantity

        state.cash += revenue - commission
        trade = TradeRecord(
            side=SignalType.SELL,
            symbol=point.symbol,
            date=point.date,
            quantity=position.quantity,
            price=price,
            commission=commission,
            reason=reason,
            entry_price=position.entry_price,
            gross_pnl=gross_pnl,
            pnl=gross_pnl - position.entry_commission - commission,
        )
        state.trades.append(trade)
        logger.debug(
            f"[{point.symbol}] {point.date}: SELL {position.quantity} @ {price} pnl={trade.pnl}"
        )
        return trade

    def _record_day(self, state: BacktestState, day: dt.date) -> None:
        equity = state.mark_equity()
        state.daily_equity[day] = equity
        if equity > state.max_equity:
            state.max_equity = equity
        drawdown = (state.max_equity - equity) / state.max_equity
        if drawdown > state.max_drawdown:
            state.max_drawdown = drawdown

    async def _close_all(
        self,
        state: BacktestState,
        histories: Mapping[str, PriceHistory],
        on_trade: TradeCallback | None,
    ) -> None:
        """Liquidate every open position at its latest price on or before end_date."""
        for symbol in list(state.positions):
            point = histories[symbol].latest_on_or_before(self.config.end_date)
            if point is None:
                logger.warning(f"[{symbol}] No price on or before {self.config.end_date}")
                continue
            trade = self._execute_sell(state, point, point.close, FORCED_CLOSE_REASON)
            await self._deliver(trade, on_trade)

    @staticmethod
    async def _deliver(trade: TradeRecord, on_trade: TradeCallback | None) -> None:
        if on_trade is None:
            return
        try:
            await on_trade(trade)
        except Exception:
            logger.error(f"Trade callback failed for {trade.symbol} {trade.date}", exc_info=True)
