"""
Layered settings store for the host assistant's settings.json files.

Reads each settings layer independently, merges them by precedence for
reporting, and writes a single layer back atomically.

Implementation:
    - Missing or unparseable files load as ``None`` (absent), never as errors
    - ``load_merged`` fills gaps from lower layers; a higher layer always wins
    - ``write`` serializes, writes a temp file next to the target and renames
      it over the target; failures raise PersistenceFailedError and leave the
      previous file intact
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any

from devark.core.settings.models import SettingsLayer
from devark.utils.atomic import atomic_write_json

logger = logging.getLogger(__name__)

SETTINGS_DIR = ".claude"
SETTINGS_FILE = "settings.json"
LOCAL_SETTINGS_FILE = "settings.local.json"
MANAGED_SETTINGS_FILE = "managed-settings.json"


class PersistenceFailedError(Exception):
    """
    Raised when a settings document could not be written.

    The destination file is unchanged when this is raised.

    Attributes:
        path: File that was being written
        cause: Underlying exception
    """

    def __init__(self, path: Path, cause: Exception) -> None:
        self.path = path
        self.cause = cause
        super().__init__(f"Failed to write {path}: {cause}")


def get_enterprise_settings_path() -> Path:
    """
    Get the OS-specific path of the enterprise-managed settings file.

    Returns:
        Path to managed-settings.json for the current platform
    """
    if sys.platform == "darwin":
        return Path("/Library/Application Support/ClaudeCode") / MANAGED_SETTINGS_FILE
    if sys.platform == "win32":
        return Path("C:/ProgramData/ClaudeCode") / MANAGED_SETTINGS_FILE
    return Path("/etc/claude-code") / MANAGED_SETTINGS_FILE


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Deep merge two dictionaries.

    Values in `override` take precedence over values in `base`. Nested dicts
    are merged recursively; lists and scalars from `override` replace those in
    `base` as a whole.

    Args:
        base: Base dictionary (lower priority)
        override: Override dictionary (higher priority)

    Returns:
        New merged dictionary; neither input is modified

    Example:
        >>> deep_merge({"a": 1, "b": {"x": 10}}, {"b": {"y": 2}})
        {'a': 1, 'b': {'x': 10, 'y': 2}}
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value

    return result


class SettingsStore:
    """
    Store for the host's layered settings documents.

    Each layer is an independent JSON document (or absent). Install and
    uninstall always target exactly one layer; ``load_merged`` exists only for
    status and validation reporting.

    Example:
        >>> store = SettingsStore(project_dir=Path.cwd())
        >>> doc = store.load(SettingsLayer.USER) or {}
        >>> doc.setdefault("hooks", {})
        >>> store.write(SettingsLayer.USER, doc)
    """

    def __init__(
        self,
        project_dir: Path | None = None,
        home_dir: Path | None = None,
        enterprise_path: Path | None = None,
    ) -> None:
        """
        Initialize SettingsStore.

        Args:
            project_dir: Project root holding .claude/ (defaults to cwd)
            home_dir: Home directory holding the user layer (defaults to ~)
            enterprise_path: Override for the managed settings file
        """
        self.project_dir = project_dir or Path.cwd()
        self.home_dir = home_dir or Path.home()
        self._paths: dict[SettingsLayer, Path] = {
            SettingsLayer.ENTERPRISE: enterprise_path or get_enterprise_settings_path(),
            SettingsLayer.LOCAL: self.project_dir / SETTINGS_DIR / LOCAL_SETTINGS_FILE,
            SettingsLayer.PROJECT: self.project_dir / SETTINGS_DIR / SETTINGS_FILE,
            SettingsLayer.USER: self.home_dir / SETTINGS_DIR / SETTINGS_FILE,
        }

    def path_for(self, layer: SettingsLayer) -> Path:
        """Get the settings file path for a layer."""
        return self._paths[SettingsLayer(layer)]

    def load(self, layer: SettingsLayer) -> dict[str, Any] | None:
        """
        Load one layer's settings document.

        Args:
            layer: Layer to load

        Returns:
            Parsed document, or None if the file is missing, unreadable,
            not valid JSON, or not a JSON object
        """
        path = self.path_for(layer)

        try:
            content = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.debug(f"Could not read {path}: {e}")
            return None

        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            logger.debug(f"Ignoring malformed settings at {path}: {e}")
            return None

        if not isinstance(data, dict):
            logger.debug(f"Ignoring settings at {path}: top level is not an object")
            return None

        return data

    def load_all(self) -> dict[SettingsLayer, dict[str, Any] | None]:
        """Load every layer, keyed by layer in precedence order."""
        return {layer: self.load(layer) for layer in SettingsLayer.by_precedence()}

    def load_merged(self) -> dict[str, Any]:
        """
        Build the effective settings as the host sees them.

        Lower layers only fill gaps: a key populated in a higher layer is
        never overridden.

        Returns:
            Merged document ({} when no layer exists)
        """
        merged: dict[str, Any] = {}
        for layer in reversed(SettingsLayer.by_precedence()):
            document = self.load(layer)
            if document:
                merged = deep_merge(merged, document)
        return merged

    def write(self, layer: SettingsLayer, document: dict[str, Any]) -> Path:
        """
        Write one layer's settings document atomically.

        Args:
            layer: Layer to write
            document: Full settings document

        Returns:
            Path that was written

        Raises:
            PersistenceFailedError: If serialization, the temp write or the
                rename fails. The previous document is left intact.
        """
        path = self.path_for(layer)
        try:
            atomic_write_json(path, document)
        except (OSError, TypeError, ValueError) as e:
            raise PersistenceFailedError(path, e) from e

        logger.debug(f"Wrote settings to {path}")
        return path
