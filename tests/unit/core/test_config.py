"""Unit tests for core config parsing."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from core.config import ZaplyticsConfig, load_config_file
from core.errors import ZaplyticsConfigError


def test_from_env_reads_batch_size(monkeypatch: pytest.MonkeyPatch) -> None:
    """Config should resolve integer tunables from environment."""
    monkeypatch.setenv("ZAPLYTICS_INITIAL_BATCH_SIZE", "600")

    config = ZaplyticsConfig.from_env()

    assert config.initial_batch_size == 600


def test_from_env_reads_float_tolerance(monkeypatch: pytest.MonkeyPatch) -> None:
    """Config should parse float tunables from environment."""
    monkeypatch.setenv("ZAPLYTICS_BATCH_DELAY_SECONDS", "0.75")

    config = ZaplyticsConfig.from_env()

    assert config.batch_delay_seconds == 0.75


def test_from_env_raises_for_invalid_number(monkeypatch: pytest.MonkeyPatch) -> None:
    """Config should fail for non-numeric environment values."""
    monkeypatch.setenv("ZAPLYTICS_MAX_BATCH_SIZE", "lots")

    with pytest.raises(ZaplyticsConfigError):
        ZaplyticsConfig.from_env()

    assert os.getenv("ZAPLYTICS_MAX_BATCH_SIZE") == "lots"


def test_config_rejects_inverted_batch_bounds() -> None:
    """Config should fail when the minimum batch exceeds the maximum."""
    with pytest.raises(ZaplyticsConfigError):
        ZaplyticsConfig(min_batch_size=500, max_batch_size=100)


def test_with_overrides_rejects_unknown_key() -> None:
    """Overrides should name only known config fields."""
    with pytest.raises(ZaplyticsConfigError, match="Unknown config key"):
        ZaplyticsConfig().with_overrides({"page_size": 10})


def test_load_config_file_applies_yaml_overrides(tmp_path: Path) -> None:
    """YAML overrides should replace matching fields."""
    config_path = tmp_path / "zaplytics.yaml"
    config_path.write_text(
        "boundary_tolerance_seconds: 600\nwhale_threshold: 5000\n", encoding="utf-8"
    )

    config = load_config_file(str(config_path), base=ZaplyticsConfig())

    assert (config.boundary_tolerance_seconds, config.whale_threshold) == (600, 5000)


def test_load_config_file_rejects_float_for_int_field(tmp_path: Path) -> None:
    """Integer fields should not accept fractional YAML values."""
    config_path = tmp_path / "zaplytics.yaml"
    config_path.write_text("min_batch_size: 12.5\n", encoding="utf-8")

    with pytest.raises(ZaplyticsConfigError):
        load_config_file(str(config_path), base=ZaplyticsConfig())


def test_load_config_file_rejects_non_mapping(tmp_path: Path) -> None:
    """Config files must hold a top-level mapping."""
    config_path = tmp_path / "zaplytics.yaml"
    config_path.write_text("- 1\n- 2\n", encoding="utf-8")

    with pytest.raises(ZaplyticsConfigError, match="expected a mapping"):
        load_config_file(str(config_path), base=ZaplyticsConfig())


def test_load_config_file_raises_for_missing_file(tmp_path: Path) -> None:
    """Missing config files should fail with a config error."""
    with pytest.raises(ZaplyticsConfigError, match="does not exist"):
        load_config_file(str(tmp_path / "missing.yaml"))
