"""
Layered settings access for the host assistant.

Provides the SettingsStore that reads, merges and atomically writes the
enterprise, project-local, project and user settings.json files, plus the
models describing the hook section of those files.
"""

from devark.core.settings.models import (
    DEFAULT_TRIGGERS,
    HookEntry,
    MatcherGroup,
    SettingsLayer,
    Trigger,
)
from devark.core.settings.store import (
    PersistenceFailedError,
    SettingsStore,
    deep_merge,
    get_enterprise_settings_path,
)

__all__ = [
    "DEFAULT_TRIGGERS",
    "HookEntry",
    "MatcherGroup",
    "SettingsLayer",
    "Trigger",
    "PersistenceFailedError",
    "SettingsStore",
    "deep_merge",
    "get_enterprise_settings_path",
]
