"""Runtime configuration model for Zaplytics.

This module owns all environment variable and config-file parsing.
Other modules consume a typed config object instead of raw env reads.
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
import os
from pathlib import Path
from typing import Mapping, cast

import yaml

from core.constants import (
    DEFAULT_AUTO_LOAD_DELAY_SECONDS,
    DEFAULT_BATCH_DELAY_SECONDS,
    DEFAULT_BATCH_TIMEOUT_SECONDS,
    DEFAULT_BOUNDARY_TOLERANCE_SECONDS,
    DEFAULT_CONTENT_CHUNK_SIZE,
    DEFAULT_CONTENT_TIMEOUT_SECONDS,
    DEFAULT_ENRICHMENT_MAX_CONCURRENCY,
    DEFAULT_ENRICHMENT_PAUSE_SECONDS,
    DEFAULT_ENTITY_CACHE_MAX_ENTRIES,
    DEFAULT_INITIAL_BATCH_SIZE,
    DEFAULT_MAX_BACKOFF_SECONDS,
    DEFAULT_MAX_BATCH_SIZE,
    DEFAULT_MAX_CONSECUTIVE_FAILURES,
    DEFAULT_MIN_BATCH_SIZE,
    DEFAULT_PROFILE_CHUNK_SIZE,
    DEFAULT_PROFILE_TIMEOUT_SECONDS,
    DEFAULT_SUBSTANTIAL_BATCH_MIN_COUNT,
    DEFAULT_SUBSTANTIAL_BATCH_RATIO,
    DEFAULT_WHALE_THRESHOLD,
)
from core.errors import ZaplyticsConfigError

_ENV_PREFIX = "ZAPLYTICS_"


@dataclass(frozen=True)
class ZaplyticsConfig:
    """Validated runtime configuration.

    Attributes:
        initial_batch_size: Page size requested before a limit is detected.
        min_batch_size: Floor for detected limits and automatic batches.
        max_batch_size: Cap on any single page request.
        batch_timeout_seconds: Timeout for one ingestion query.
        batch_delay_seconds: Pause between chained automatic batches.
        auto_load_delay_seconds: Delay before the first automatic batch.
        max_backoff_seconds: Cap on failure back-off delays.
        max_consecutive_failures: Failures that disable auto-load.
        boundary_tolerance_seconds: Slack when deciding a window start is reached.
        substantial_batch_ratio: Share of the request that keeps auto-load going.
        substantial_batch_min_count: Absolute count that keeps auto-load going.
        content_chunk_size: Content ids per lookup request.
        profile_chunk_size: Actor ids per lookup request.
        enrichment_max_concurrency: Simultaneous lookup requests.
        enrichment_pause_seconds: Pause between lookup request groups.
        content_timeout_seconds: Timeout for one content lookup.
        profile_timeout_seconds: Timeout for one profile lookup.
        entity_cache_max_entries: LRU bound for each entity cache.
        whale_threshold: Lifetime amount that marks a whale.
    """

    initial_batch_size: int = DEFAULT_INITIAL_BATCH_SIZE
    min_batch_size: int = DEFAULT_MIN_BATCH_SIZE
    max_batch_size: int = DEFAULT_MAX_BATCH_SIZE
    batch_timeout_seconds: float = DEFAULT_BATCH_TIMEOUT_SECONDS
    batch_delay_seconds: float = DEFAULT_BATCH_DELAY_SECONDS
    auto_load_delay_seconds: float = DEFAULT_AUTO_LOAD_DELAY_SECONDS
    max_backoff_seconds: float = DEFAULT_MAX_BACKOFF_SECONDS
    max_consecutive_failures: int = DEFAULT_MAX_CONSECUTIVE_FAILURES
    boundary_tolerance_seconds: int = DEFAULT_BOUNDARY_TOLERANCE_SECONDS
    substantial_batch_ratio: float = DEFAULT_SUBSTANTIAL_BATCH_RATIO
    substantial_batch_min_count: int = DEFAULT_SUBSTANTIAL_BATCH_MIN_COUNT
    content_chunk_size: int = DEFAULT_CONTENT_CHUNK_SIZE
    profile_chunk_size: int = DEFAULT_PROFILE_CHUNK_SIZE
    enrichment_max_concurrency: int = DEFAULT_ENRICHMENT_MAX_CONCURRENCY
    enrichment_pause_seconds: float = DEFAULT_ENRICHMENT_PAUSE_SECONDS
    content_timeout_seconds: float = DEFAULT_CONTENT_TIMEOUT_SECONDS
    profile_timeout_seconds: float = DEFAULT_PROFILE_TIMEOUT_SECONDS
    entity_cache_max_entries: int = DEFAULT_ENTITY_CACHE_MAX_ENTRIES
    whale_threshold: int = DEFAULT_WHALE_THRESHOLD

    def __post_init__(self) -> None:
        _validate_config(self)

    @classmethod
    def from_env(cls) -> "ZaplyticsConfig":
        """Build config from process environment variables.

        Every field can be overridden with ``ZAPLYTICS_<FIELD_NAME>``.

        Returns:
            A validated config object.

        Raises:
            ZaplyticsConfigError: If environment values are invalid.
        """
        overrides: dict[str, object] = {}
        for config_field in fields(cls):
            env_name = _ENV_PREFIX + config_field.name.upper()
            raw_value = os.getenv(env_name)
            if raw_value is None:
                continue
            overrides[config_field.name] = _parse_number(
                env_name, raw_value, _field_kind(config_field.name)
            )
        return cls(**cast(dict, overrides))

    def with_overrides(self, overrides: Mapping[str, object]) -> "ZaplyticsConfig":
        """Return a copy with validated field overrides applied.

        Args:
            overrides: Field name to value mapping.

        Returns:
            Updated config object.

        Raises:
            ZaplyticsConfigError: If a key is unknown or a value has the wrong type.
        """
        known_fields = {config_field.name for config_field in fields(self)}
        parsed: dict[str, object] = {}
        for key, value in overrides.items():
            if key not in known_fields:
                supported = ", ".join(sorted(known_fields))
                raise ZaplyticsConfigError(
                    f"Unknown config key '{key}'. Supported keys: {supported}."
                )
            parsed[key] = _coerce_value(key, value, _field_kind(key))
        return replace(self, **cast(dict, parsed))


def load_config_file(config_path: str, base: ZaplyticsConfig | None = None) -> ZaplyticsConfig:
    """Load a YAML mapping of config overrides from disk.

    Args:
        config_path: Path to a YAML file with top-level field overrides.
        base: Config the overrides apply to, environment config by default.

    Returns:
        Validated config object.

    Raises:
        ZaplyticsConfigError: If the file is missing, unparsable, or invalid.
    """
    config_file = Path(config_path).expanduser().resolve()
    if not config_file.exists():
        raise ZaplyticsConfigError(
            f"Config file does not exist at {config_file}. Provide a valid YAML file path."
        )
    try:
        payload = yaml.safe_load(config_file.read_text(encoding="utf-8"))
    except OSError as error:
        raise ZaplyticsConfigError(
            f"Failed to read config at {config_file}: {error}. Check file permissions and retry."
        ) from error
    except yaml.YAMLError as error:
        raise ZaplyticsConfigError(
            f"Failed to parse YAML config at {config_file}: {error}. Fix YAML syntax and retry."
        ) from error
    base_config = base or ZaplyticsConfig.from_env()
    if payload is None:
        return base_config
    if not isinstance(payload, Mapping):
        raise ZaplyticsConfigError(
            f"Invalid config at {config_file}: expected a mapping, "
            f"got {type(payload).__name__}."
        )
    return base_config.with_overrides({str(key): value for key, value in payload.items()})


def _field_kind(name: str) -> type:
    """Return the numeric type of a config field."""
    default_value = getattr(ZaplyticsConfig, name)
    return float if isinstance(default_value, float) else int


def _parse_number(env_name: str, raw_value: str, kind: type) -> int | float:
    """Parse one numeric environment value.

    Raises:
        ZaplyticsConfigError: If value cannot be parsed.
    """
    try:
        return kind(raw_value)
    except ValueError as error:
        raise ZaplyticsConfigError(
            f"Invalid {env_name} value: expected {kind.__name__}, got '{raw_value}'. "
            f"Set {env_name} to a numeric value."
        ) from error


def _coerce_value(key: str, value: object, kind: type) -> int | float:
    """Validate one config-file value against the field type."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ZaplyticsConfigError(
            f"Config key '{key}' must be a number, got {type(value).__name__}."
        )
    if kind is int and not isinstance(value, int):
        raise ZaplyticsConfigError(f"Config key '{key}' must be an integer, got {value}.")
    return kind(value)


def _validate_config(config: ZaplyticsConfig) -> None:
    """Check cross-field invariants.

    Raises:
        ZaplyticsConfigError: If any bound is out of range.
    """
    for config_field in fields(config):
        value = getattr(config, config_field.name)
        if value < 0:
            raise ZaplyticsConfigError(
                f"Config field '{config_field.name}' must not be negative, got {value}."
            )
    if config.min_batch_size < 1 or config.initial_batch_size < 1:
        raise ZaplyticsConfigError("Batch sizes must be at least 1.")
    if config.min_batch_size > config.max_batch_size:
        raise ZaplyticsConfigError(
            f"min_batch_size ({config.min_batch_size}) must not exceed "
            f"max_batch_size ({config.max_batch_size})."
        )
    if config.content_chunk_size < 1 or config.profile_chunk_size < 1:
        raise ZaplyticsConfigError("Lookup chunk sizes must be at least 1.")
    if config.enrichment_max_concurrency < 1:
        raise ZaplyticsConfigError("enrichment_max_concurrency must be at least 1.")
    if config.max_consecutive_failures < 1:
        raise ZaplyticsConfigError("max_consecutive_failures must be at least 1.")
