"""Unit tests for CLI command handling."""

from __future__ import annotations

import json

import pytest

from cli.main import main
from tests.event_factory import BASE_TIME, USER, receipt_event


@pytest.fixture(autouse=True)
def _no_scheduling_delays(monkeypatch) -> None:
    monkeypatch.setenv("ZAPLYTICS_AUTO_LOAD_DELAY_SECONDS", "0")
    monkeypatch.setenv("ZAPLYTICS_BATCH_DELAY_SECONDS", "0")


def _events() -> list:
    return [receipt_event(f"r{index}", BASE_TIME - index * 3600, sats=10) for index in range(12)]


def test_cli_analyze_prints_snapshot_payload(events_file, capsys) -> None:
    """CLI analyze should print the snapshot JSON for the window."""
    events_path = events_file(_events())
    args = ["analyze", str(events_path), "--user", USER, "--range", "24h", "--now", str(BASE_TIME)]

    exit_code = main(args)
    payload = json.loads(capsys.readouterr().out)

    assert (exit_code, payload["summary"]["total_amount"]) == (0, 120)


def test_cli_analyze_writes_output_file(events_file, tmp_path, capsys) -> None:
    """CLI analyze should write the snapshot and print its path."""
    events_path = events_file(_events())
    output_path = tmp_path / "snapshot.json"
    args = [
        "analyze",
        str(events_path),
        "--user",
        USER,
        "--range",
        "custom",
        "--since",
        str(BASE_TIME - 3 * 3600),
        "--until",
        str(BASE_TIME),
        "--output",
        str(output_path),
    ]

    exit_code = main(args)
    output = capsys.readouterr().out.strip()

    assert (exit_code, output, json.loads(output_path.read_text())["summary"]["record_count"]) == (
        0,
        f"snapshot_path={output_path}",
        4,
    )


def test_cli_analyze_reports_missing_events_file(tmp_path, capsys) -> None:
    """CLI analyze should report domain errors with exit code 1."""
    args = ["analyze", str(tmp_path / "missing.jsonl"), "--user", USER]

    exit_code = main(args)
    output = capsys.readouterr().out

    assert exit_code == 1 and output.startswith("zaplytics_error=")


def test_cli_analyze_rejects_incomplete_custom_range(events_file) -> None:
    """Custom ranges without both bounds should fail cleanly."""
    events_path = events_file(_events())
    args = ["analyze", str(events_path), "--user", USER, "--range", "custom", "--since", "1"]

    exit_code = main(args)

    assert exit_code == 1


def test_cli_ranges_lists_range_names(capsys) -> None:
    """CLI ranges should print one supported range per line."""
    exit_code = main(["ranges"])
    output = capsys.readouterr().out.split()

    assert (exit_code, output) == (0, ["24h", "7d", "30d", "90d", "custom"])
