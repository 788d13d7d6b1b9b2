"""Tests for CLI commands against a temporary database."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from intel_edge.cli import app
from intel_edge.execution.models import ExecutionMode, ExecutionResult, TradePlan

runner = CliRunner()


@pytest.fixture(autouse=True)
def db_env(tmp_db, monkeypatch):
    monkeypatch.setenv("INTEL_EDGE_DB_PATH", str(tmp_db))
    return tmp_db


class TestAddCommand:
    def test_add_entries_then_scan_json(self):
        for source_type in ("internal", "external", "ext"):
            result = runner.invoke(app, [
                "add", "Fed minutes", "--tag", "fed", "--tag", "rates",
                "--source-type", source_type, "--category", "Newsletter",
            ])
            assert result.exit_code == 0, result.output
            assert "Added entry" in result.output

        result = runner.invoke(app, ["opportunities", "--output", "json"])

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["entries_scanned"] == 3
        assert data["strategies_run"] == 4
        titles = [o["title"] for o in data["opportunities"]]
        assert "Convergence on 'fed' — 3 entries from 2 source types" in titles

    def test_invalid_confidence(self):
        result = runner.invoke(app, ["add", "x", "--confidence", "1.5"])
        assert result.exit_code == 1
        assert "Confidence must be between" in result.output

    def test_unknown_category(self):
        result = runner.invoke(app, ["add", "x", "--category", "weather"])
        assert result.exit_code == 1
        assert "Unknown Category" in result.output

    def test_bad_metadata(self):
        result = runner.invoke(app, ["add", "x", "--metadata", "{not json"])
        assert result.exit_code == 2

    def test_metadata_stored(self):
        result = runner.invoke(app, [
            "add", "IONQ quote", "--tag", "IONQ", "--category", "market",
            "--metadata", '{"price": 12.5}',
        ])
        assert result.exit_code == 0, result.output


class TestTradeCommands:
    def test_record_and_resolve(self):
        result = runner.invoke(app, [
            "trade", "kxhighny-26feb27-b40.5", "--direction", "yes",
            "--contracts", "10", "--price", "30",
        ])
        assert result.exit_code == 0, result.output
        trade_id = result.output.strip().split()[-1]

        result = runner.invoke(app, ["resolve-trade", trade_id, "--outcome", "win", "--pnl", "700"])
        assert result.exit_code == 0, result.output
        assert "Resolved trade" in result.output

        result = runner.invoke(app, ["resolve-trade", trade_id, "--outcome", "loss", "--pnl", "0"])
        assert result.exit_code == 1

    def test_bad_direction(self):
        result = runner.invoke(app, [
            "trade", "NVDA", "--direction", "sideways", "--contracts", "1", "--price", "1",
        ])
        assert result.exit_code == 1
        assert "Unknown TradeDirection" in result.output


class TestOpportunitiesCommand:
    def test_empty_table(self):
        result = runner.invoke(app, ["opportunities"])
        assert result.exit_code == 0
        assert "No opportunities" in result.output

    def test_unknown_strategy(self):
        result = runner.invoke(app, ["opportunities", "--strategy", "nope"])
        assert result.exit_code == 1


class TestExecuteCommand:
    def test_json_output_with_dollar_options(self):
        plan = ExecutionResult(
            timestamp=datetime.now(timezone.utc).isoformat(),
            mode=ExecutionMode.DRY_RUN,
            bankroll_cents=10_000,
            opportunities_scanned=1,
            total_deployment_cents=2500,
            trades=[TradePlan(
                ticker="KXHIGHNY", direction="yes", size_cents=2500, confidence=0.8,
                score=12.0, edge_cents=15.0, action="Buy all 3 bands", description="",
            )],
        )

        async def mock_run(*args, **kwargs):
            mock_run.args = args
            mock_run.kwargs = kwargs
            return plan

        with patch("intel_edge.execution.pipeline.run_execution", side_effect=mock_run):
            result = runner.invoke(app, [
                "execute", "--bankroll", "100", "--max-daily", "50",
                "--max-position", "10", "--output", "json",
            ])

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["trades_qualified"] == 1
        assert data["trades"][0]["ticker"] == "KXHIGHNY"
        assert mock_run.args[4] == 10_000
        assert mock_run.kwargs["max_daily_cents"] == 5000
        assert mock_run.kwargs["max_position_cents"] == 1000
        assert mock_run.kwargs["mode"] is ExecutionMode.DRY_RUN

    def test_live_rejected(self):
        result = runner.invoke(app, ["execute", "--bankroll", "100", "--live"])
        assert result.exit_code == 1
        assert "Live execution is not implemented" in result.output

    def test_unknown_resolver(self):
        result = runner.invoke(app, ["execute", "--bankroll", "100", "--resolver", "nyse"])
        assert result.exit_code == 1

    def test_empty_plan_table(self):
        result = runner.invoke(app, ["execute", "--bankroll", "100"])
        assert result.exit_code == 0, result.output
        assert "No trades qualified" in result.output


class TestKellyCommand:
    def test_json(self):
        result = runner.invoke(app, ["kelly", "0.65", "50", "--bankroll", "1000", "--output", "json"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["suggested_size_cents"] == 2500
        assert data["binding_constraint"] == "max_position_cents"

    def test_table(self):
        result = runner.invoke(app, ["kelly", "0.65", "50", "--bankroll", "100"])
        assert result.exit_code == 0
        assert "Suggested size" in result.output
        assert "$15.00" in result.output

    def test_invalid_inputs(self):
        result = runner.invoke(app, ["kelly", "1.5", "50", "--bankroll", "100"])
        assert result.exit_code == 1
        assert "Invalid inputs" in result.output
