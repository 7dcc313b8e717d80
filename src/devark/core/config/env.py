"""
Layered .env loading for devark.

Variables from .env files only fill gaps in the process environment: a
variable exported in the shell is never replaced. Project files override user
files, so the effective order is:

    os.environ (pre-existing) > project .env > user .env
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from pathlib import Path

from dotenv import dotenv_values

from .loader import get_xdg_config_home

logger = logging.getLogger(__name__)

ENV_FILE = ".env"


def get_user_env_path() -> Path:
    """Path to the user-level .env file (~/.config/devark/.env)."""
    return get_xdg_config_home() / "devark" / ENV_FILE


def read_env_file(path: Path) -> dict[str, str]:
    """Parse one .env file. Keys without a value are skipped."""
    if not path.is_file():
        return {}
    return {
        str(key): str(value)
        for key, value in dotenv_values(path).items()
        if key and value is not None
    }


def load_layered_env(
    *,
    project_dir: Path | None = None,
    user_env_paths: Iterable[Path] | None = None,
    project_env_paths: Iterable[Path] | None = None,
) -> dict[str, Path]:
    """
    Load DEVARK_* (and any other) variables from user and project .env files.

    Args:
        project_dir: Base directory for the default project .env (defaults to cwd)
        user_env_paths: Explicit user .env files
        project_env_paths: Explicit project .env files

    Returns:
        Mapping of each variable that was set to the file it came from
    """
    if user_env_paths is None:
        user_env_paths = [get_user_env_path()]
    if project_env_paths is None:
        project_env_paths = [(project_dir or Path.cwd()) / ENV_FILE]

    exported = set(os.environ)
    sources: dict[str, Path] = {}

    # Later files win over earlier ones
    for path in [*map(Path, user_env_paths), *map(Path, project_env_paths)]:
        for key, value in read_env_file(path).items():
            if key in exported:
                continue
            os.environ[key] = value
            sources[key] = path

    for key, path in sources.items():
        logger.debug(f"Loaded {key} from {path}")

    return sources
