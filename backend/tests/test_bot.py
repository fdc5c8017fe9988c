"""Tests for the live polling TradingBot."""

import asyncio
import pytest
from datetime import date, datetime, timedelta
from decimal import Decimal

from app.bot import CollectingSignalSink, LoggingSignalSink, SignalSink, TradingBot, parse_args
from app.config import Settings
from app.market_data import InMemoryMarketData
from signal_core.models.config import StrategyConfig, StrategyType
from signal_core.models.price import PriceHistory, PricePoint
from signal_core.models.signal import BotSignal, SignalType


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

MONDAY = date(2024, 1, 1)
# Wednesday, mid-session; the last bar is dated today
WEDNESDAY_10AM = datetime(2024, 1, 3, 10, 0)


def make_history(symbol: str, closes) -> PriceHistory:
    points = []
    for i, c in enumerate(closes):
        close = Decimal(str(c))
        points.append(PricePoint(
            symbol=symbol,
            date=MONDAY + timedelta(days=i),
            open=close,
            high=close + 1,
            low=close - 1,
            close=close,
            volume=Decimal("1000"),
        ))
    return PriceHistory.from_points(symbol, points)


def make_market() -> InMemoryMarketData:
    # RSI(2): AAA falls twice -> RSI 0 -> BUY; BBB rises twice -> RSI 100 -> SELL
    return InMemoryMarketData.from_histories([
        make_history("AAA", [100, 95, 90]),
        make_history("BBB", [90, 95, 100]),
    ])


def rsi_strategy(name: str = "rsi2", **kwargs) -> StrategyConfig:
    return StrategyConfig(
        id=7, name=name, type=StrategyType.RSI_STRATEGY, parameters={"period": 2}, **kwargs
    )


def make_settings(**overrides) -> Settings:
    values = dict(
        poll_interval_seconds=0.01,
        confidence_threshold=70.0,
        market_open_hour=9,
        market_close_hour=15,
        history_lookback=50,
    )
    values.update(overrides)
    return Settings(**values)


def make_bot(
    market=None, strategies=None, sink=None, settings=None, **kwargs
) -> TradingBot:
    return TradingBot(
        market_data=market or make_market(),
        strategies=strategies if strategies is not None else [rsi_strategy()],
        sink=sink or CollectingSignalSink(),
        settings=settings or make_settings(),
        clock=lambda: WEDNESDAY_10AM,
        **kwargs,
    )


# ---------------------------------------------------------------------------
# Market hours
# ---------------------------------------------------------------------------

class TestMarketHours:
    @pytest.mark.parametrize("now, expected", [
        (datetime(2024, 1, 3, 10, 0), True),
        (datetime(2024, 1, 3, 9, 0), True),
        (datetime(2024, 1, 3, 14, 59), True),
        (datetime(2024, 1, 3, 8, 59), False),
        (datetime(2024, 1, 3, 15, 0), False),
        (datetime(2024, 1, 6, 10, 0), False),  # Saturday
        (datetime(2024, 1, 7, 10, 0), False),  # Sunday
    ])
    def test_is_market_open(self, now, expected):
        assert make_bot().is_market_open(now) is expected


# ---------------------------------------------------------------------------
# Trading cycle
# ---------------------------------------------------------------------------

class TestRunCycle:
    """Tests for TradingBot.run_cycle."""

    @pytest.mark.asyncio
    async def test_emits_buy_and_sell(self):
        sink = CollectingSignalSink()
        signals = await make_bot(sink=sink).run_cycle(WEDNESDAY_10AM)

        assert sink.signals == signals
        by_symbol = {s.symbol: s for s in signals}
        assert set(by_symbol) == {"AAA", "BBB"}

        buy = by_symbol["AAA"]
        assert buy.signal_type == SignalType.BUY
        assert buy.confidence == Decimal("100")
        assert buy.price == Decimal("90")
        assert buy.target_price == Decimal("94.50")
        assert buy.stop_loss == Decimal("87.30")
        assert buy.strategy_id == 7
        assert buy.strategy_name == "rsi2"
        assert buy.price_date == date(2024, 1, 3)
        assert buy.created_at == WEDNESDAY_10AM
        assert "oversold" in buy.reason

        sell = by_symbol["BBB"]
        assert sell.signal_type == SignalType.SELL
        assert sell.target_price == Decimal("95.00")
        assert sell.stop_loss == Decimal("103.00")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("now", [
        datetime(2024, 1, 6, 10, 0),
        datetime(2024, 1, 3, 15, 0),
        datetime(2024, 1, 3, 8, 59),
    ])
    async def test_skipped_outside_market_hours(self, now):
        sink = CollectingSignalSink()
        assert await make_bot(sink=sink).run_cycle(now) == []
        assert sink.signals == []

    @pytest.mark.asyncio
    async def test_force_ignores_market_hours(self):
        signals = await make_bot().run_cycle(datetime(2024, 1, 6, 10, 0), force=True)
        assert {s.symbol for s in signals} == {"AAA", "BBB"}

    @pytest.mark.asyncio
    async def test_defaults_to_clock(self):
        signals = await make_bot().run_cycle()
        assert all(s.created_at == WEDNESDAY_10AM for s in signals)
        assert len(signals) == 2

    @pytest.mark.asyncio
    async def test_confidence_must_exceed_threshold(self):
        bot = make_bot(settings=make_settings(confidence_threshold=100.0))
        assert await bot.run_cycle(WEDNESDAY_10AM) == []

    @pytest.mark.asyncio
    async def test_hold_emits_nothing(self):
        market = InMemoryMarketData.from_histories([make_history("FLAT", [100, 101, 100])])
        assert await make_bot(market=market).run_cycle(WEDNESDAY_10AM) == []

    @pytest.mark.asyncio
    async def test_symbols_restrict_tracking(self):
        signals = await make_bot(symbols=["AAA", "ZZZ"]).run_cycle(WEDNESDAY_10AM)
        # ZZZ has no prices and is skipped
        assert [s.symbol for s in signals] == ["AAA"]

    @pytest.mark.asyncio
    async def test_symbols_by_strategy(self):
        strategies = [rsi_strategy("dip"), rsi_strategy("all")]
        bot = make_bot(strategies=strategies, symbols_by_strategy={"dip": ["BBB"]})
        signals = await bot.run_cycle(WEDNESDAY_10AM)
        pairs = sorted((s.strategy_name, s.symbol) for s in signals)
        assert pairs == [("all", "AAA"), ("all", "BBB"), ("dip", "BBB")]

    @pytest.mark.asyncio
    async def test_inactive_strategies_ignored(self):
        bot = make_bot(strategies=[rsi_strategy(is_active=False)])
        assert await bot.run_cycle(WEDNESDAY_10AM) == []

    @pytest.mark.asyncio
    async def test_sink_failure_is_isolated(self):
        class FlakySink(CollectingSignalSink):
            async def emit(self, signal: BotSignal) -> None:
                if signal.symbol == "AAA":
                    raise ConnectionError("broker down")
                await super().emit(signal)

        sink = FlakySink()
        signals = await make_bot(sink=sink).run_cycle(WEDNESDAY_10AM)
        assert [s.symbol for s in signals] == ["BBB"]
        assert [s.symbol for s in sink.signals] == ["BBB"]

    @pytest.mark.asyncio
    async def test_overlapping_cycle_skipped(self):
        release = asyncio.Event()

        class SlowMarket(InMemoryMarketData):
            async def list_symbols(self):
                await release.wait()
                return await super().list_symbols()

        market = SlowMarket(histories={"AAA": make_history("AAA", [100, 95, 90])})
        bot = make_bot(market=market)

        first = asyncio.create_task(bot.run_cycle(WEDNESDAY_10AM))
        await asyncio.sleep(0)
        assert await bot.run_cycle(WEDNESDAY_10AM) == []

        release.set()
        assert [s.symbol for s in await first] == ["AAA"]

    @pytest.mark.asyncio
    async def test_logging_sink(self):
        signals = await make_bot(sink=LoggingSignalSink()).run_cycle(WEDNESDAY_10AM)
        assert len(signals) == 2

    def test_sinks_satisfy_protocol(self):
        assert isinstance(CollectingSignalSink(), SignalSink)
        assert isinstance(LoggingSignalSink(), SignalSink)


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------

class TestLifecycle:
    @pytest.mark.asyncio
    async def test_start_and_stop(self):
        bot = make_bot()
        assert not bot.is_running

        await bot.start()
        assert bot.is_running
        with pytest.raises(RuntimeError):
            await bot.start()

        await bot.stop()
        assert not bot.is_running
        # Stopping twice is harmless
        await bot.stop()

    @pytest.mark.asyncio
    async def test_loop_runs_cycles(self):
        sink = CollectingSignalSink()
        bot = make_bot(sink=sink)
        await bot.start()
        await asyncio.sleep(0.1)
        await bot.stop()

        assert len(sink.signals) >= 2
        assert {s.symbol for s in sink.signals} == {"AAA", "BBB"}

    @pytest.mark.asyncio
    async def test_loop_survives_cycle_errors(self):
        class BrokenMarket(InMemoryMarketData):
            async def list_symbols(self):
                raise OSError("feed unavailable")

        bot = make_bot(market=BrokenMarket())
        await bot.start()
        await asyncio.sleep(0.05)
        assert bot.is_running
        await bot.stop()


class TestParseArgs:
    def test_defaults(self):
        args = parse_args([])
        assert args.prices is None
        assert args.config is None
        assert args.once is False

    def test_once(self):
        args = parse_args(["--prices", "data", "--once", "-v"])
        assert str(args.prices) == "data"
        assert args.once is True
        assert args.verbose is True
