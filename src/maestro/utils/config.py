"""
Configuration loading.
Loads YAML configs, deep-merges them over built-in defaults and validates
critical fields (warnings only, never fatal).
"""

import os
import copy
import logging

import yaml

from maestro.core.errors import ConfigError

logger = logging.getLogger(__name__)

_BASE_DIR = os.path.dirname(os.path.dirname(os.path.dirname(os.path.dirname(
    os.path.abspath(__file__)))))
DEFAULT_CONFIG_PATH = os.path.join(_BASE_DIR, "config", "config.yaml")

DEFAULTS = {
    "controller": {
        "tick_interval_ms": 50,
        "default_volume": 0.6,
        "default_rate": 1.0,
        "initial_mode": "slider",
        "tracking_enabled": True,
    },
    "smoothing": {
        "volume_step": 0.02,
        "volume_tolerance": 0.01,
        "rate_step": 0.05,
        "rate_tolerance": 0.02,
    },
    "fade": {
        "steps": 10,
        "step_interval_ms": 50,
    },
    "static": {
        "volume_tiers": {1: 0.25, 2: 0.5, 3: 0.75, 4: 1.0},
        "rate_tiers": {1: 0.5, 2: 0.75, 3: 1.0, 4: 1.5},
    },
    "slider": {
        "deadzone_x": 15,
        "deadzone_y": 10,
        "rate_gain": 0.005,
        "volume_gain": 0.002,
    },
    "pose": {
        "mirror_correction": True,
        "canvas_width": 640,
        "canvas_height": 480,
    },
    "player": {
        "backend": "simulated",
        "service_name": "org.mpris.MediaPlayer2.vlc",
        "poll_interval_ms": 250,
    },
    "logging": {
        "level": "INFO",
        "file": None,
        "max_size_mb": 10,
        "backup_count": 3,
    },
}

# Schema: sections and their expected field types
_CONFIG_SCHEMA = {
    "controller": {
        "tick_interval_ms": int,
        "default_volume": float,
        "default_rate": float,
        "initial_mode": str,
        "tracking_enabled": bool,
    },
    "smoothing": {
        "volume_step": float,
        "volume_tolerance": float,
        "rate_step": float,
        "rate_tolerance": float,
    },
    "fade": {
        "steps": int,
        "step_interval_ms": int,
    },
    "static": {
        "volume_tiers": dict,
        "rate_tiers": dict,
    },
    "slider": {
        "deadzone_x": float,
        "deadzone_y": float,
        "rate_gain": float,
        "volume_gain": float,
    },
    "pose": {
        "mirror_correction": bool,
        "canvas_width": int,
        "canvas_height": int,
    },
    "player": {
        "backend": str,
        "service_name": str,
    },
}


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge override into base dict."""
    merged = base.copy()
    for key, value in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def config_section(config, name: str) -> dict:
    """Return ``config[name]`` if it is a mapping, else an empty one."""
    section = config.get(name, {}) if isinstance(config, dict) else {}
    if not isinstance(section, dict):
        logger.warning("Config section '%s' is not a mapping, using defaults", name)
        return {}
    return section


def config_value(section: dict, key: str, default):
    """Read ``section[key]``, falling back to ``default`` when the type is wrong.

    The type is taken from ``default``; ints are accepted for floats, bools
    only for bools.
    """
    value = section.get(key, default) if isinstance(section, dict) else default
    expected = type(default)
    if isinstance(value, bool) != isinstance(default, bool):
        pass
    elif expected is float and isinstance(value, (int, float)):
        return float(value)
    elif isinstance(value, expected):
        return value
    logger.warning("Config %s=%r is not a %s, using default %r",
                   key, value, expected.__name__, default)
    return default


def validate_config(data: dict) -> list:
    """Check critical config fields against the schema.

    Returns the list of warnings (also logged). Never raises.
    """
    warnings = []
    for section_name, fields in _CONFIG_SCHEMA.items():
        section = data.get(section_name)
        if section is None:
            warnings.append(f"Missing config section: '{section_name}'")
            continue
        if not isinstance(section, dict):
            warnings.append(f"Section '{section_name}' should be a dict, got {type(section).__name__}")
            continue
        for field_name, expected_type in fields.items():
            if field_name not in section:
                continue
            value = section[field_name]
            # bool is an int subclass; only accept it where bool is expected
            if isinstance(value, bool) and expected_type is not bool:
                pass
            # Allow int where float is expected
            elif expected_type is float and isinstance(value, (int, float)):
                continue
            elif isinstance(value, expected_type):
                continue
            warnings.append(
                f"{section_name}.{field_name}: expected {expected_type.__name__}, "
                f"got {type(value).__name__} ({value!r})"
            )

    if warnings:
        for w in warnings:
            logger.warning("Config validation: %s", w)
    else:
        logger.debug("Config validation passed")
    return warnings


def load_config(config_path=None, required: bool = False) -> dict:
    """Load configuration from YAML, merged over ``DEFAULTS``.

    Args:
        config_path: YAML file; defaults to ``config/config.yaml``
        required: Raise ConfigError instead of falling back to defaults
            when the file is missing

    Raises:
        ConfigError: if the file cannot be parsed, or is missing and required
    """
    config_path = config_path or DEFAULT_CONFIG_PATH

    try:
        with open(config_path, "r") as f:
            data = yaml.safe_load(f) or {}
        logger.info("Loaded config from %s", config_path)
    except FileNotFoundError:
        if required:
            raise ConfigError(f"Config file not found: {config_path}")
        logger.warning("Config file not found: %s, using defaults", config_path)
        data = {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config root must be a mapping, got {type(data).__name__}")

    merged = _deep_merge(copy.deepcopy(DEFAULTS), data)
    validate_config(merged)
    return merged
