"""Configuration manager for FormsGraph using TOML files."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict

import toml

from .errors import ConfigError
from .hierarchy import MAX_CALL_DEPTH

logger = logging.getLogger(__name__)


DEFAULT_ANALYSIS_CONFIG: Dict[str, Any] = {
    "max_hierarchy_depth": 3,
    "priority_limit": 20,
    "effort_overhead": 1.3,
    "excerpt_limit": 5,
}

# Accepted types per key, used to coerce values typed on the command line
_KEY_TYPES = {
    "max_hierarchy_depth": int,
    "priority_limit": int,
    "effort_overhead": float,
    "excerpt_limit": int,
}

# Inclusive upper bounds for keys that have one
_KEY_MAXIMUMS = {
    "max_hierarchy_depth": MAX_CALL_DEPTH,
}


def load_full_config(config_file: Path) -> Dict[str, Any]:
    """Load the entire TOML config (all sections)."""
    if not config_file.exists():
        return {}
    try:
        with open(config_file, "r", encoding="utf-8") as f:
            return toml.load(f)
    except (OSError, toml.TomlDecodeError) as exc:
        logger.warning("Ignoring unreadable config file %s: %s", config_file, exc)
        return {}


def load_analysis_config(config_file: Path) -> Dict[str, Any]:
    """Load the ``[analysis]`` section merged over the defaults.

    Unknown keys are ignored; values of the wrong type fall back to the
    default for that key.
    """
    merged = DEFAULT_ANALYSIS_CONFIG.copy()
    section = load_full_config(config_file).get("analysis", {})
    if not isinstance(section, dict):
        return merged

    for key, value in section.items():
        if key not in _KEY_TYPES:
            continue
        try:
            merged[key] = coerce_value(key, value)
        except ConfigError as exc:
            logger.warning("%s; using default %r", exc, merged[key])
    return merged


def coerce_value(key: str, value: Any) -> Any:
    """Convert *value* to the type expected for *key*."""
    expected = _KEY_TYPES.get(key)
    if expected is None:
        raise ConfigError(
            f"Unknown setting '{key}'. Valid keys: {', '.join(sorted(_KEY_TYPES))}"
        )
    try:
        converted = expected(value)
    except (TypeError, ValueError):
        raise ConfigError(f"Invalid value for '{key}': {value!r}") from None
    if converted <= 0:
        raise ConfigError(f"Value for '{key}' must be positive, got {value!r}")
    maximum = _KEY_MAXIMUMS.get(key)
    if maximum is not None and converted > maximum:
        raise ConfigError(f"Value for '{key}' must be at most {maximum}, got {value!r}")
    return converted


def save_analysis_config(config_file: Path, key: str, value: Any) -> Dict[str, Any]:
    """Persist one ``[analysis]`` setting, preserving other sections.

    Returns:
        The updated ``[analysis]`` section.
    """
    converted = coerce_value(key, value)
    config = load_full_config(config_file)
    section = config.setdefault("analysis", {})
    section[key] = converted

    config_file.parent.mkdir(parents=True, exist_ok=True)
    with open(config_file, "w", encoding="utf-8") as f:
        toml.dump(config, f)
    return section
