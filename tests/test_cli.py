"""Tests for the command-line interface."""

import csv
import json
import logging
from decimal import Decimal
from pathlib import Path

import click
import pytest
from click.testing import CliRunner

from cashflow_calc.main import cli, parse_amount, parse_scenario_opts


@pytest.fixture(autouse=True)
def restore_root_logger():
    """The CLI reconfigures the root logger; put it back after each test."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


class TestParsing:
    """Tests for option parsing helpers."""

    def test_parse_amount_suffixes(self) -> None:
        assert parse_amount("250k") == Decimal("250000")
        assert parse_amount("1.5m") == Decimal("1500000")
        assert parse_amount("12,500") == Decimal("12500")

    def test_parse_amount_invalid(self) -> None:
        with pytest.raises(click.BadParameter):
            parse_amount("lots")

    def test_parse_scenario(self) -> None:
        params = parse_scenario_opts("-p 250k -r 6.5 -t 30 --prepayment 200")
        assert params["principal"] == "250k"
        assert params["rate"] == 6.5
        assert params["term"] == 30.0
        assert params["prepayment"] == "200"
        assert params["frequency"] == "monthly"

    def test_parse_scenario_missing_option(self) -> None:
        with pytest.raises(click.BadParameter):
            parse_scenario_opts("-p 250k -r 6.5")

    def test_parse_scenario_unknown_option(self) -> None:
        with pytest.raises(click.BadParameter):
            parse_scenario_opts("-p 250k -r 6.5 -t 30 --balloon 5")


class TestScheduleCommand:
    """Tests for the schedule and summary commands."""

    def test_prints_summary_and_rows(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["schedule", "-p", "250k", "-r", "6.5", "-t", "30", "-s", "2025-01-01"])
        assert result.exit_code == 0, result.output
        assert "Summary" in result.output
        assert "$1,580.17" in result.output
        assert "showing first 120 rows" in result.output

    def test_export_csv(self, runner: CliRunner, tmp_path: Path) -> None:
        path = tmp_path / "schedule.csv"
        result = runner.invoke(
            cli, ["schedule", "-p", "12000", "-r", "6", "-t", "1", "-s", "2025-01", "--output", str(path)]
        )
        assert result.exit_code == 0, result.output
        with path.open(encoding="utf-8") as f:
            rows = list(csv.reader(f))
        assert rows[0][0] == "Period"
        assert len(rows) == 13
        assert rows[1][1] == "2025-01-01"

    def test_export_json(self, runner: CliRunner, tmp_path: Path) -> None:
        path = tmp_path / "schedule.json"
        result = runner.invoke(
            cli, ["schedule", "-p", "12000", "-r", "6", "-t", "1", "-s", "2025-01", "--output", str(path)]
        )
        assert result.exit_code == 0, result.output
        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["summary"]["number_of_payments"] == 12
        assert len(data["schedule"]) == 12
        assert data["schedule"][0]["phase"] == "amortizing"

    def test_unsupported_output(self, runner: CliRunner, tmp_path: Path) -> None:
        path = tmp_path / "schedule.txt"
        result = runner.invoke(cli, ["schedule", "-p", "12000", "-r", "6", "-t", "1", "--output", str(path)])
        assert result.exit_code != 0

    def test_summary(self, runner: CliRunner) -> None:
        result = runner.invoke(
            cli, ["summary", "-p", "250k", "-r", "6.5", "-t", "30", "-s", "2025-01", "--prepayment", "200"]
        )
        assert result.exit_code == 0, result.output
        assert "Loan to value" in result.output
        assert "Interest saved" in result.output

    def test_invalid_rate(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["summary", "-p", "250k", "-r", "-1", "-t", "30"])
        assert result.exit_code == 1
        assert "negative" in result.output

    def test_compare(self, runner: CliRunner) -> None:
        result = runner.invoke(
            cli,
            [
                "compare",
                "--scenario1",
                "-p 250k -r 6.5 -t 30 -s 2025-01",
                "--scenario2",
                "-p 250k -r 6.5 -t 30 -s 2025-01 --prepayment 200",
            ],
        )
        assert result.exit_code == 0, result.output
        assert "Comparison" in result.output
        assert "total_interest" in result.output


class TestOtherCommands:
    """Tests for heloc, payoff, solve, xirr and pension."""

    def test_heloc(self, runner: CliRunner) -> None:
        result = runner.invoke(
            cli,
            ["heloc", "--home-value", "400k", "--mortgage-balance", "100k", "-a", "60k", "-r", "6", "-s", "2025-01"],
        )
        assert result.exit_code == 0, result.output
        assert "Combined LTV" in result.output
        assert "draw" in result.output

    def test_heloc_over_limit(self, runner: CliRunner) -> None:
        result = runner.invoke(
            cli, ["heloc", "--home-value", "300k", "--mortgage-balance", "200k", "-a", "90k", "-r", "7"]
        )
        assert result.exit_code == 1
        assert "85%" in result.output

    def test_payoff_insufficient_payment(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["payoff", "-b", "10000", "-r", "24", "--payment", "200"])
        assert result.exit_code == 1
        assert "minimum payment: $201.00" in result.output

    def test_payoff_percent(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["payoff", "-b", "5000", "-r", "18", "--percent", "1", "-s", "2025-01"])
        assert result.exit_code == 0, result.output
        assert "Payment            : $125.00" in result.output

    def test_payoff_requires_one_policy(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["payoff", "-b", "5000", "-r", "18"])
        assert result.exit_code == 2

    def test_solve_rate(self, runner: CliRunner) -> None:
        result = runner.invoke(
            cli,
            ["solve", "--solve-for", "rate", "--starting-amount", "20000", "-c", "1000", "-t", "10", "--target", "200000"],
        )
        assert result.exit_code == 0, result.output
        assert "Annual rate" in result.output

    def test_solve_future_value(self, runner: CliRunner) -> None:
        result = runner.invoke(
            cli, ["solve", "--solve-for", "future_value", "--starting-amount", "1000", "-r", "10", "-t", "2"]
        )
        assert result.exit_code == 0, result.output
        assert "$1,210.00" in result.output

    def test_xirr(self, runner: CliRunner) -> None:
        result = runner.invoke(
            cli,
            [
                "xirr",
                "--start-balance", "10000",
                "--start-date", "2020-01-01",
                "--end-balance", "12000",
                "--end-date", "2022-01-01",
                "--deposit", "2021-01-01:1000",
            ],
        )
        assert result.exit_code == 0, result.output
        assert "Annual return      : +" in result.output
        assert "731 days" in result.output

    def test_pension(self, runner: CliRunner) -> None:
        result = runner.invoke(
            cli, ["pension", "--lump-sum", "200k", "--return", "5", "--monthly-pension", "1200"]
        )
        assert result.exit_code == 0, result.output
        assert "Better option      : Lump sum" in result.output

    def test_bad_environment(self, runner: CliRunner) -> None:
        result = runner.invoke(
            cli, ["pension", "--lump-sum", "1", "--return", "5", "--monthly-pension", "1"],
            env={"CASHFLOW_CALC_LOG_FORMAT": "xml"},
        )
        assert result.exit_code == 1
        assert "Unknown log format" in result.output
