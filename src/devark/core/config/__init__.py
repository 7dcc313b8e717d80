"""
Configuration models and loading.

This module provides the Pydantic model for devark configuration with
multi-layer merging: defaults < user < project < env vars.
"""

from .loader import (
    NPX_INVOCATION,
    clear_cache,
    get_project_config_path,
    get_state_dir,
    get_user_config_path,
    get_xdg_config_home,
    load_config,
    resolve_cli_path,
    set_config_value,
)
from .models import DevarkConfig

__all__ = [
    # Models
    "DevarkConfig",
    # Loader functions
    "NPX_INVOCATION",
    "clear_cache",
    "get_project_config_path",
    "get_state_dir",
    "get_user_config_path",
    "get_xdg_config_home",
    "load_config",
    "resolve_cli_path",
    "set_config_value",
]
