"""
Configuration loading with multi-layer merging.

Implements the configuration precedence chain:
    defaults < user config < project config < env vars
"""

import json
import logging
import os
import shutil
from pathlib import Path
from typing import Any

from devark.core.settings.store import deep_merge
from devark.utils.atomic import atomic_write_json

from .models import DevarkConfig

logger = logging.getLogger(__name__)

# Global cache to avoid reloading config multiple times per process
_config_cache: DevarkConfig | None = None

# Fallback invocation when devark is not on PATH
NPX_INVOCATION = "npx devark-cli"


def get_xdg_config_home() -> Path:
    """
    Get XDG config home directory.

    Returns:
        Path to config directory (defaults to ~/.config)
    """
    if xdg_home := os.environ.get("XDG_CONFIG_HOME"):
        return Path(xdg_home)
    return Path.home() / ".config"


def get_user_config_path() -> Path:
    """
    Get path to user configuration file.

    Returns:
        Path to ~/.config/devark/config.json (or XDG equivalent)
    """
    return get_xdg_config_home() / "devark" / "config.json"


def get_project_config_path(cwd: Path | None = None) -> Path:
    """
    Get path to project configuration file.

    Args:
        cwd: Project directory (defaults to current directory)

    Returns:
        Path to .devark.json in the project root
    """
    if cwd is None:
        cwd = Path.cwd()
    return cwd / ".devark.json"


def get_state_dir() -> Path:
    """
    Get devark's private state directory.

    Holds the hook sync record and trigger locks. ``DEVARK_HOME`` overrides
    the default of ~/.devark.
    """
    if devark_home := os.environ.get("DEVARK_HOME"):
        return Path(devark_home)
    return Path.home() / ".devark"


def load_json_file(path: Path) -> dict[str, Any] | None:
    """
    Load a JSON file, returning None if it doesn't exist or is invalid.

    Args:
        path: Path to JSON file

    Returns:
        Parsed JSON as dict, or None if file doesn't exist or can't be parsed
    """
    if not path.exists():
        return None

    try:
        with path.open(encoding="utf-8") as f:
            data = json.load(f)
            if isinstance(data, dict):
                return data
            return None
    except (json.JSONDecodeError, OSError) as e:
        # Config system should be resilient
        logger.warning(f"Failed to parse config at {path}: {e}")
        return None


def apply_env_overrides(config_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Apply environment variable overrides to configuration.

    Env vars have the highest precedence and override all config files.

    Supported env vars:
        DEVARK_CLI_PATH - overrides cli_path
        DEVARK_DEFAULT_LAYER - overrides default_layer
        DEVARK_LOCK_STALE_SECONDS - overrides lock_stale_seconds

    Args:
        config_dict: Configuration dictionary to override

    Returns:
        Configuration dictionary with env var overrides applied
    """
    result = config_dict.copy()

    if cli_path := os.environ.get("DEVARK_CLI_PATH"):
        result["cli_path"] = cli_path

    if layer := os.environ.get("DEVARK_DEFAULT_LAYER"):
        result["default_layer"] = layer

    if stale_str := os.environ.get("DEVARK_LOCK_STALE_SECONDS"):
        try:
            stale = int(stale_str)
            if stale < 1:
                logger.warning(f"DEVARK_LOCK_STALE_SECONDS must be >= 1, got {stale}, ignoring")
            else:
                result["lock_stale_seconds"] = stale
        except ValueError:
            logger.warning(f"Invalid DEVARK_LOCK_STALE_SECONDS value '{stale_str}', ignoring")

    return result


def load_config(project_dir: Path | None = None, use_cache: bool = True) -> DevarkConfig:
    """
    Load configuration with multi-layer merging.

    Configuration precedence (highest to lowest):
        1. Environment variables (DEVARK_*)
        2. Project config (.devark.json)
        3. User config (~/.config/devark/config.json)
        4. Model defaults

    Args:
        project_dir: Project directory to load .devark.json from (defaults to cwd)
        use_cache: If True, return cached config from previous load

    Returns:
        Validated DevarkConfig instance

    Raises:
        ValidationError: If the merged config fails Pydantic validation
    """
    global _config_cache

    if use_cache and _config_cache is not None:
        return _config_cache

    merged: dict[str, Any] = {}

    if user_config := load_json_file(get_user_config_path()):
        merged = deep_merge(merged, user_config)

    if project_config := load_json_file(get_project_config_path(project_dir)):
        merged = deep_merge(merged, project_config)

    merged = apply_env_overrides(merged)

    config = DevarkConfig(**merged)

    _config_cache = config

    return config


def clear_cache() -> None:
    """
    Clear the cached configuration.

    Useful for testing or when config files change during execution.
    """
    global _config_cache
    _config_cache = None


def set_config_value(key: str, value: Any) -> DevarkConfig:
    """
    Persist one setting to the user config file.

    The value is validated through DevarkConfig before anything is written,
    and unrelated keys already in the file are kept.

    Args:
        key: DevarkConfig field name
        value: New value (strings are coerced by the model)

    Returns:
        The validated user-level configuration

    Raises:
        KeyError: If ``key`` is not a configuration field
        ValidationError: If ``value`` is invalid for ``key``
        OSError: If the config file cannot be written
    """
    if key not in DevarkConfig.model_fields:
        raise KeyError(key)

    path = get_user_config_path()
    current = load_json_file(path) or {}
    updated = {**current, key: value}

    validated = DevarkConfig(**updated)
    # Store the normalized form (lists, enum values) rather than raw input
    updated[key] = validated.model_dump(mode="json")[key]

    atomic_write_json(path, updated)
    clear_cache()
    logger.debug(f"Set {key} in {path}")
    return validated


def resolve_cli_path(config: DevarkConfig) -> str:
    """
    Resolve the canonical devark invocation.

    Order: configured ``cli_path``, then ``devark`` on PATH, then
    ``npx devark-cli``.
    """
    if config.cli_path:
        return config.cli_path
    if found := shutil.which("devark"):
        return found
    return NPX_INVOCATION
