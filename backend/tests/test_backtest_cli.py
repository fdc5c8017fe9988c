"""Tests for the ``python -m backtest`` entry point."""

import argparse
import json

import pytest
from datetime import date

from backtest.__main__ import cmd_run_backtest, parse_args, parse_date, parse_params


# Weekdays 2024-01-01 .. 2024-01-09; RSI(2) buys twice and sells twice
CSV_ROWS = [
    ("2024-01-01", 100),
    ("2024-01-02", 95),
    ("2024-01-03", 90),
    ("2024-01-04", 95),
    ("2024-01-05", 100),
    ("2024-01-08", 95),
    ("2024-01-09", 90),
]


def write_prices(directory) -> None:
    lines = ["date,open,high,low,close,volume"]
    for day, close in CSV_ROWS:
        lines.append(f"{day},{close},{close + 1},{close - 1},{close},100000")
    (directory / "VNM.csv").write_text("\n".join(lines) + "\n", encoding="utf-8")


def base_argv(prices) -> list[str]:
    return [
        "--prices", str(prices),
        "--symbols", "VNM",
        "--start", "2024-01-01",
        "--end", "2024-01-09",
    ]


class TestArgumentParsing:
    def test_parse_date(self):
        assert parse_date("2024-03-15") == date(2024, 3, 15)
        with pytest.raises(argparse.ArgumentTypeError):
            parse_date("15/03/2024")

    def test_parse_params(self):
        assert parse_params('{"period": 2}') == {"period": 2}
        with pytest.raises(argparse.ArgumentTypeError):
            parse_params("[1, 2]")
        with pytest.raises(argparse.ArgumentTypeError):
            parse_params("{not json")

    def test_defaults(self, tmp_path):
        args = parse_args(base_argv(tmp_path))
        assert args.strategy_type == "sma_crossover"
        assert args.params == {}
        assert args.capital is None
        assert args.output is None

    def test_unknown_strategy_type(self, tmp_path):
        with pytest.raises(SystemExit):
            parse_args(base_argv(tmp_path) + ["--strategy-type", "martingale"])


class TestRunBacktestCommand:
    @pytest.mark.asyncio
    async def test_run_and_save(self, tmp_path, capsys):
        write_prices(tmp_path)
        output = tmp_path / "result.json"
        args = parse_args(base_argv(tmp_path) + [
            "--strategy-type", "rsi_strategy",
            "--params", '{"period": 2}',
            "--capital", "100000000",
            "--output", str(output),
        ])

        assert await cmd_run_backtest(args) == 0
        assert "BACKTEST RESULTS: rsi_strategy" in capsys.readouterr().out

        data = json.loads(output.read_text())
        assert data["overall"]["total_trades"] == 2
        assert data["metadata"]["symbols"] == ["VNM"]

    @pytest.mark.asyncio
    async def test_invalid_parameters_exit_code(self, tmp_path, capsys):
        args = parse_args(base_argv(tmp_path) + [
            "--params", '{"short_period": 50, "long_period": 20}',
        ])
        assert await cmd_run_backtest(args) == 1
        assert "Error:" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_inverted_dates_exit_code(self, tmp_path):
        argv = base_argv(tmp_path)
        argv[argv.index("--start") + 1] = "2024-02-01"
        assert await cmd_run_backtest(parse_args(argv)) == 1
