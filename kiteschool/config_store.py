"""
Kite School - Configuration Store

School settings read from config/school.yaml (or KITESCHOOL_CONFIG):
- Operating window (bookable hours)
- Lesson locations
- Scheduling parameters (step, minimum duration, alternatives, defaults)

Values in the file are merged over the built-in defaults, so a partial file
only needs the keys it changes. A missing or unreadable file falls back to
the defaults with a warning.
"""

import copy
import logging
from pathlib import Path
from typing import Any

import yaml

from kiteschool import paths
from kiteschool.scheduling.models import DEFAULT_LOCATIONS, OperatingWindow

logger = logging.getLogger(__name__)

_cache: dict | None = None


def _default_config() -> dict:
    return {
        "operating_window": {"start": "09:00", "end": "21:00"},
        "locations": list(DEFAULT_LOCATIONS),
        "scheduling": {
            "step_minutes": 15,
            "min_duration_minutes": 15,
            "max_alternatives": 3,
            "default_start_time": "10:00",
            "duration_by_capacity": {1: 120, 2: 180, 3: 240},
        },
    }


def _merge(base: dict, override: dict) -> dict:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _read_file(config_path: Path) -> dict:
    if not config_path.exists():
        logger.warning("School config not found at %s, using defaults", config_path)
        return {}
    try:
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
    except (yaml.YAMLError, OSError) as exc:
        logger.error("Failed to load school config %s: %s", config_path, exc)
        return {}
    if not isinstance(data, dict):
        logger.error("School config %s is not a mapping, using defaults", config_path)
        return {}
    return data


def load_config(config_path: Path | None = None) -> dict:
    """Load configuration. Without an explicit path the result is cached."""
    global _cache
    if config_path is None and _cache is not None:
        return _cache

    config = _merge(_default_config(), _read_file(config_path or paths.config_path()))
    if config_path is None:
        _cache = config
    return config


def reload() -> dict:
    global _cache
    _cache = None
    return load_config()


def get(path: str, default: Any = None) -> Any:
    """
    Get a config value by dot-separated path.

    Example: get("scheduling.step_minutes")
    """
    value = load_config()
    for part in path.split("."):
        if isinstance(value, dict) and part in value:
            value = value[part]
        else:
            return default
    return value


def get_operating_window(config: dict | None = None) -> OperatingWindow:
    """Operating window from config. Raises ValueError for a malformed window."""
    config = config or load_config()
    window = config.get("operating_window") or {}
    return OperatingWindow(
        start=str(window.get("start", "09:00")),
        end=str(window.get("end", "21:00")),
        locations=tuple(config.get("locations") or DEFAULT_LOCATIONS),
    )


def get_duration_by_capacity() -> dict[int, int]:
    table = get("scheduling.duration_by_capacity", {}) or {}
    return {int(k): int(v) for k, v in table.items()}


def validate_config(config: dict) -> tuple[bool, list[str]]:
    """Validate configuration structure and values."""
    errors = []

    try:
        get_operating_window(config)
    except ValueError as e:
        errors.append(f"operating_window: {e}")

    if not config.get("locations"):
        errors.append("locations must list at least one location")

    scheduling = config.get("scheduling", {})
    for key in ("step_minutes", "min_duration_minutes", "max_alternatives"):
        value = scheduling.get(key)
        if not isinstance(value, int) or value <= 0:
            errors.append(f"scheduling.{key} must be a positive integer, got {value!r}")

    step = scheduling.get("step_minutes")
    min_duration = scheduling.get("min_duration_minutes")
    if isinstance(step, int) and isinstance(min_duration, int) and step > 0 and min_duration % step:
        errors.append("scheduling.min_duration_minutes must be a multiple of step_minutes")

    durations = scheduling.get("duration_by_capacity") or {}
    if not durations:
        errors.append("scheduling.duration_by_capacity must not be empty")
    for capacity, minutes in durations.items():
        if int(minutes) <= 0:
            errors.append(f"duration for capacity {capacity} must be positive")

    return len(errors) == 0, errors
