"""CLI entry point for the backtesting system.

Reads daily prices from a directory of per-symbol CSV files
(``<dir>/<SYMBOL>.csv`` with date,open,high,low,close,volume[,value]).

Usage:
    python -m backtest --prices data/ --symbols VNM,FPT --start 2024-01-01 --end 2024-12-31
    python -m backtest --prices data/ --strategy-type rsi_strategy --params '{"oversold": 25}' ...
    python -m backtest --prices data/ --symbols VNM --start 2024-01-01 --end 2024-06-30 -o out.json
"""

import argparse
import asyncio
import json
import logging
import os
import sys
from datetime import date, datetime
from decimal import Decimal

# Add backend to Python path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from signal_core.errors import SignalCoreError
from signal_core.models.config import StrategyConfig, StrategyType

from backtest.config import BacktestConfig
from backtest.report import ReportFormatter
from backtest.runner import run_backtest
from backtest.storage.price_source import CsvPriceSource


def parse_date(date_str: str) -> date:
    """Parse YYYY-MM-DD to a date."""
    try:
        return datetime.strptime(date_str, "%Y-%m-%d").date()
    except ValueError:
        raise argparse.ArgumentTypeError(
            f"Invalid date format: {date_str} (expected YYYY-MM-DD)"
        )


def parse_params(raw: str) -> dict:
    """Parse a JSON object of strategy parameters."""
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as e:
        raise argparse.ArgumentTypeError(f"Invalid --params JSON: {e}")
    if not isinstance(value, dict):
        raise argparse.ArgumentTypeError("--params must be a JSON object")
    return value


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Backtest a trading rule over daily equity prices",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m backtest --prices data/ --symbols VNM --start 2024-01-01 --end 2024-12-31
  python -m backtest --prices data/ --symbols VNM,FPT --strategy-type macd_strategy \\
      --start 2024-01-01 --end 2024-12-31 --output result.json
        """,
    )
    parser.add_argument(
        "--prices",
        type=str,
        required=True,
        help="Directory of <SYMBOL>.csv price files",
    )
    parser.add_argument(
        "--symbols",
        type=str,
        required=True,
        help="Comma-separated symbols",
    )
    parser.add_argument(
        "--start",
        type=parse_date,
        required=True,
        help="Start date (YYYY-MM-DD)",
    )
    parser.add_argument(
        "--end",
        type=parse_date,
        required=True,
        help="End date (YYYY-MM-DD)",
    )
    parser.add_argument(
        "--strategy-type",
        type=str,
        default=StrategyType.SMA_CROSSOVER.value,
        choices=[t.value for t in StrategyType],
        help="Trading rule (default: sma_crossover)",
    )
    parser.add_argument(
        "--params",
        type=parse_params,
        default={},
        help="Strategy parameters as a JSON object",
    )
    parser.add_argument(
        "--capital",
        type=Decimal,
        default=None,
        help="Initial capital (default: BACKTEST_INITIAL_CAPITAL)",
    )
    parser.add_argument(
        "--commission",
        type=Decimal,
        default=None,
        help="Commission rate per leg (default: BACKTEST_COMMISSION)",
    )
    parser.add_argument(
        "--risk",
        type=Decimal,
        default=None,
        help="Fraction of cash per BUY (default: BACKTEST_RISK_PER_TRADE)",
    )
    parser.add_argument(
        "--output", "-o",
        type=str,
        default=None,
        help="Output file path for JSON results",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose logging",
    )
    return parser.parse_args(argv)


async def cmd_run_backtest(args: argparse.Namespace) -> int:
    """Run a backtest. Returns the process exit code."""
    symbols = [s.strip() for s in args.symbols.split(",") if s.strip()]

    try:
        strategy = StrategyConfig(
            name=args.strategy_type,
            type=StrategyType(args.strategy_type),
            parameters=args.params,
        )
        config = BacktestConfig(
            strategy=strategy,
            symbols=symbols,
            start_date=args.start,
            end_date=args.end,
            initial_capital=args.capital,
            commission=args.commission,
            risk_per_trade=args.risk,
        )
    except (SignalCoreError, ValueError) as e:
        print(f"Error: {e}")
        return 1

    print(f"\nBacktest: {', '.join(symbols)}")
    print(f"Period: {args.start:%Y-%m-%d} -> {args.end:%Y-%m-%d}")
    print(f"Strategy: {strategy.label} {strategy.typed_params().model_dump()}")

    print("\nRunning backtest...")
    result = await run_backtest(config, CsvPriceSource(args.prices))

    ReportFormatter.print_console(result)

    if args.output:
        ReportFormatter.save_json(result, args.output)
    return 0


async def main() -> int:
    args = parse_args()

    # Configure logging
    level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    return await cmd_run_backtest(args)


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
