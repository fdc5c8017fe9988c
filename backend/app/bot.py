"""Live polling trading bot.

Every poll interval during market hours (weekdays, 09:00-15:00 local by
default) the bot evaluates each active trading rule against the latest
bar of each tracked symbol and emits a BotSignal for every BUY/SELL
whose confidence clears the threshold. Signals go to a SignalSink; order
routing is outside this package.

Usage:
    python -m app.bot --prices data/ --config bot.yaml
    python -m app.bot --prices data/ --config bot.yaml --once
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Callable, Mapping, Protocol, Sequence, runtime_checkable

from signal_core.indicators.indicators import IndicatorEngine
from signal_core.models.config import StrategyConfig
from signal_core.models.price import PriceHistory
from signal_core.models.signal import BotSignal, SignalType
from signal_core.strategy import evaluate_trading_rule

from app.config import Settings, get_settings
from app.market_data import MarketDataSource

logger = logging.getLogger(__name__)

# target, stop multipliers on the latest close
PRICE_LEVELS: dict[SignalType, tuple[Decimal, Decimal]] = {
    SignalType.BUY: (Decimal("1.05"), Decimal("0.97")),
    SignalType.SELL: (Decimal("0.95"), Decimal("1.03")),
}


@runtime_checkable
class SignalSink(Protocol):
    """Receiver for signals emitted by the bot."""

    async def emit(self, signal: BotSignal) -> None: ...


class LoggingSignalSink:
    """Log each signal at INFO."""

    async def emit(self, signal: BotSignal) -> None:
        logger.info(
            f"{signal.signal_type.value} {signal.symbol} @ {signal.price} "
            f"[{signal.strategy_name}] confidence={signal.confidence:.2f} "
            f"target={signal.target_price:.2f} stop={signal.stop_loss:.2f}: {signal.reason}"
        )


class CollectingSignalSink:
    """Keep emitted signals in memory."""

    def __init__(self):
        self.signals: list[BotSignal] = []

    async def emit(self, signal: BotSignal) -> None:
        self.signals.append(signal)


class TradingBot:
    """Poll trading rules during market hours and emit actionable signals."""

    def __init__(
        self,
        market_data: MarketDataSource,
        strategies: Sequence[StrategyConfig],
        sink: SignalSink,
        settings: Settings | None = None,
        symbols: Sequence[str] | None = None,
        symbols_by_strategy: Mapping[str, Sequence[str]] | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._market_data = market_data
        self._strategies = [s for s in strategies if s.is_active]
        self._sink = sink
        self.settings = settings or get_settings()
        self._symbols = list(symbols) if symbols else None
        self._symbols_by_strategy = {k: list(v) for k, v in (symbols_by_strategy or {}).items()}
        self._clock = clock
        self._threshold = Decimal(str(self.settings.confidence_threshold))

        self._task: asyncio.Task | None = None
        self._cycle_lock = asyncio.Lock()

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start the polling loop in the background.

        Raises:
            RuntimeError: the bot is already running
        """
        if self.is_running:
            raise RuntimeError("Trading bot is already running")
        self._task = asyncio.create_task(self._run_loop())
        logger.info(
            f"Trading bot started: {len(self._strategies)} strategies, "
            f"poll every {self.settings.poll_interval_seconds:.0f}s"
        )

    async def stop(self) -> None:
        """Stop the polling loop. No-op when not running."""
        if not self.is_running:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Trading bot stopped")

    async def _run_loop(self) -> None:
        while True:
            try:
                await asyncio.sleep(self.settings.poll_interval_seconds)
                await self.run_cycle(self._clock())
            except asyncio.CancelledError:
                break
            except Exception:
                logger.error("Trading cycle failed", exc_info=True)

    def is_market_open(self, now: datetime) -> bool:
        if now.weekday() >= 5:
            return False
        return self.settings.market_open_hour <= now.hour < self.settings.market_close_hour

    async def run_cycle(self, now: datetime | None = None, force: bool = False) -> list[BotSignal]:
        """Run one trading cycle and return the emitted signals.

        Skipped outside market hours (unless ``force``), and while a
        previous cycle is still running.
        """
        now = now or self._clock()
        if not force and not self.is_market_open(now):
            logger.debug(f"Market closed at {now:%a %H:%M}, skipping cycle")
            return []
        if self._cycle_lock.locked():
            logger.warning("Previous trading cycle still running, skipping")
            return []

        async with self._cycle_lock:
            logger.info("Executing trading cycle...")
            tracked = self._symbols or await self._market_data.list_symbols()
            histories: dict[str, PriceHistory | None] = {}
            emitted: list[BotSignal] = []
            for strategy in self._strategies:
                for symbol in self._symbols_by_strategy.get(strategy.label, tracked):
                    try:
                        signal = await self._evaluate(strategy, symbol, now, histories)
                        if signal is not None:
                            await self._sink.emit(signal)
                            emitted.append(signal)
                    except Exception:
                        logger.error(f"[{symbol}] {strategy.label} failed", exc_info=True)
            logger.info(f"Trading cycle done: {len(emitted)} signals")
            return emitted

    async def _evaluate(
        self,
        strategy: StrategyConfig,
        symbol: str,
        now: datetime,
        histories: dict[str, PriceHistory | None],
    ) -> BotSignal | None:
        if symbol not in histories:
            points = await self._market_data.get_price_window(
                symbol, now.date(), self.settings.history_lookback
            )
            histories[symbol] = PriceHistory.from_points(symbol, points) if points else None
        history = histories[symbol]
        if history is None or history.latest is None:
            return None

        latest = history.latest
        decision = evaluate_trading_rule(strategy, IndicatorEngine(history), latest.date)
        if not decision.is_actionable or decision.confidence <= self._threshold:
            return None

        target_mult, stop_mult = PRICE_LEVELS[decision.signal]
        return BotSignal(
            symbol=symbol,
            strategy_id=strategy.id,
            strategy_name=strategy.label,
            signal_type=decision.signal,
            confidence=decision.confidence,
            price=latest.close,
            target_price=latest.close * target_mult,
            stop_loss=latest.close * stop_mult,
            reason=decision.reason,
            price_date=latest.date,
            created_at=now,
        )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Live polling trading bot")
    parser.add_argument(
        "--prices",
        type=Path,
        default=None,
        help="Directory of <SYMBOL>.csv price files (default: SIGNALS_PRICES_DIR)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="bot.yaml path (default: SIGNALS_BOT_CONFIG_PATH or backend/bot.yaml)",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single cycle now (ignores market hours) and exit",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose logging",
    )
    return parser.parse_args(argv)


async def main() -> None:
    from app.bot_config import load_bot_config
    from app.market_data import load_price_dir

    args = parse_args()
    settings = get_settings()

    level = logging.DEBUG if (args.verbose or settings.debug) else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    config = load_bot_config(args.config or settings.bot_config_path)
    prices_dir = args.prices or settings.prices_dir
    if prices_dir is None:
        raise SystemExit("Error: --prices or SIGNALS_PRICES_DIR is required")

    bot = TradingBot(
        market_data=load_price_dir(prices_dir),
        strategies=config.get_active_strategies(),
        sink=LoggingSignalSink(),
        settings=settings,
        symbols=config.symbols,
        symbols_by_strategy=config.symbols_by_strategy(),
    )

    if args.once:
        await bot.run_cycle(force=True)
        return

    await bot.start()
    try:
        while bot.is_running:
            await asyncio.sleep(1.0)
    finally:
        await bot.stop()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
