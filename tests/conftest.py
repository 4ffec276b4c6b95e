"""Pytest configuration and shared fixtures for Zaplytics tests."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Callable, Sequence

import pytest

from tests.event_factory import write_events_jsonl


def pytest_sessionstart() -> None:
    """Put the src layout on sys.path so packages import without install."""
    src_path = Path(__file__).resolve().parents[1] / "src"
    if str(src_path) not in sys.path:
        sys.path.insert(0, str(src_path))


@pytest.fixture
def events_file(tmp_path: Path) -> Callable[[Sequence[dict[str, Any]]], Path]:
    """Return a writer dumping raw events into a JSONL file under tmp_path."""

    def write(events: Sequence[dict[str, Any]]) -> Path:
        return write_events_jsonl(tmp_path / "events.jsonl", events)

    return write
