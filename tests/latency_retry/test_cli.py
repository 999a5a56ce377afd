"""Tests for the ``latency-retry`` command line."""

from __future__ import annotations

import json
import logging

import pytest
from typer.testing import CliRunner

from LatencyRetry.cli import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def _isolate(monkeypatch: pytest.MonkeyPatch):
    """Clear budget overrides and undo the CLI's logging setup afterwards."""

    monkeypatch.delenv("LATENCYRETRY_MAX_UNIQUE_EXPECTED", raising=False)
    monkeypatch.delenv("LATENCYRETRY_MAX_ACQUISITION_ATTEMPTS", raising=False)
    yield
    package_logger = logging.getLogger("LatencyRetry")
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
    package_logger.setLevel(logging.NOTSET)
    package_logger.propagate = True


def test_simulate_routes_every_lookup_to_the_writer() -> None:
    result = runner.invoke(app, ["simulate", "--servers", "3", "--lookups", "25", "--seed", "7"])

    assert result.exit_code == 0, result.output
    summary = json.loads(result.stdout)
    assert summary["succeeded"] == 25
    assert summary["failed"] == 0
    assert summary["leaked"] == 0
    assert summary["max_unique_expected"] == 3
    assert 25 <= summary["attempts"] <= 75


def test_simulate_without_retries_misses_some_lookups() -> None:
    result = runner.invoke(
        app,
        ["simulate", "--servers", "3", "--lookups", "40", "--seed", "3", "--max-unique-expected", "1"],
    )

    assert result.exit_code == 0, result.output
    summary = json.loads(result.stdout)
    assert summary["attempts"] == 40
    assert summary["succeeded"] + summary["failed"] == 40
    assert summary["failed"] > 0
    assert summary["leaked"] == 0


def test_simulate_rejects_unbounded_search() -> None:
    result = runner.invoke(
        app, ["simulate", "--servers", "2", "--max-unique-expected", "3", "--lookups", "1"]
    )

    assert result.exit_code == 2


def test_simulate_rejects_invalid_budget() -> None:
    result = runner.invoke(app, ["simulate", "--max-acquisition-attempts", "-1"])

    assert result.exit_code == 2


def test_config_show_applies_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LATENCYRETRY_MAX_ACQUISITION_ATTEMPTS", "12")

    result = runner.invoke(app, ["config", "show"])

    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout) == {"max_acquisition_attempts": 12, "max_unique_expected": 3}


def test_simulate_emits_json_log_lines() -> None:
    result = runner.invoke(
        app,
        [
            "simulate",
            "--servers",
            "3",
            "--lookups",
            "10",
            "--seed",
            "7",
            "--json-logs",
            "--log-level",
            "DEBUG",
        ],
    )

    assert result.exit_code == 0, result.output
    records = [json.loads(line) for line in result.output.splitlines() if line.startswith('{"')]
    assert records
    assert all(record["logger"].startswith("LatencyRetry") for record in records)
    assert {"timestamp", "level", "message"} <= set(records[0])
    assert any(record["level"] == "DEBUG" for record in records)
