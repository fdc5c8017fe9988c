"""BacktestRunner: orchestrates a full backtest run.

Independent of app/. Uses:
- backtest/storage for price access (any PriceSource)
- backtest/engine for the day loop
- signal_core/ for pure business logic

Each run gets a unique run_id for log correlation.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
import time
from datetime import datetime, timezone

from signal_core.errors import InvalidParameterError
from signal_core.models.price import PriceHistory

from backtest.config import BacktestConfig
from backtest.engine import BacktestEngine, TradeCallback, trading_days
from backtest.stats import BacktestResult, StatisticsCalculator
from backtest.storage.price_source import PriceSource

logger = logging.getLogger(__name__)


def generate_run_id(config: BacktestConfig) -> str:
    """Generate a unique run ID from config + timestamp."""
    key = (
        f"{config.start_date.isoformat()}"
        f":{config.end_date.isoformat()}"
        f":{','.join(config.symbols)}"
        f":{config.strategy.model_dump_json()}"
        f":{datetime.now(timezone.utc).isoformat()}"
    )
    return hashlib.sha256(key.encode()).hexdigest()[:16]


class BacktestRunner:
    """Load histories, run the engine and compute statistics."""

    def __init__(self, config: BacktestConfig, price_source: PriceSource):
        self.config = config
        self._price_source = price_source

    async def run(
        self,
        cancel_event: asyncio.Event | None = None,
        on_trade: TradeCallback | None = None,
    ) -> BacktestResult:
        """Execute the full backtest pipeline.

        Raises:
            InvalidParameterError: the strategy is inactive
            OperationCancelled: cancel_event was set mid-run
        """
        config = self.config
        if not config.strategy.is_active:
            raise InvalidParameterError(f"Strategy '{config.strategy.label}' is inactive")

        start_time = time.time()
        run_id = generate_run_id(config)
        logger.info(
            f"Starting backtest run={run_id}: {config.strategy.label} {config.symbols} "
            f"{config.start_date:%Y-%m-%d} -> {config.end_date:%Y-%m-%d}"
        )

        histories = await self._load_histories()
        engine = BacktestEngine(config)
        state = await engine.run(histories, cancel_event=cancel_event, on_trade=on_trade)

        result = StatisticsCalculator().calculate(state, config)
        elapsed = time.time() - start_time
        logger.info(
            f"Backtest run={run_id} completed in {elapsed:.1f}s: "
            f"{result.total_trades} closed trades, return {result.total_return:.2%}"
        )
        return result

    async def _load_histories(self) -> dict[str, PriceHistory]:
        """Load each symbol's bars up to end_date.

        The request covers every trading day of the run plus
        ``history_lookback`` warmup bars before start_date. Symbols without
        data (or whose load fails) are skipped.
        """
        config = self.config
        max_points = config.history_lookback + sum(
            1 for _ in trading_days(config.start_date, config.end_date)
        )
        histories: dict[str, PriceHistory] = {}
        for symbol in config.symbols:
            try:
                points = await self._price_source.get_price_window(
                    symbol, config.end_date, max_points
                )
            except Exception:
                logger.error(f"[{symbol}] Price load failed", exc_info=True)
                continue
            if not points:
                logger.warning(f"[{symbol}] No price data up to {config.end_date}")
                continue
            histories[symbol] = PriceHistory.from_points(symbol, points)
            logger.info(f"[{symbol}] Loaded {len(points):,} bars")
        return histories


async def run_backtest(
    config: BacktestConfig,
    price_source: PriceSource,
    cancel_event: asyncio.Event | None = None,
    on_trade: TradeCallback | None = None,
) -> BacktestResult:
    """Run a single backtest and return its result."""
    runner = BacktestRunner(config, price_source)
    return await runner.run(cancel_event=cancel_event, on_trade=on_trade)
