"""
Pytest configuration and shared fixtures.

Provides isolated home/project directories, a settings store whose
enterprise layer lives in a temp dir, and helpers for writing settings files.
"""

import json
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import pytest

from devark.core.config import clear_cache
from devark.core.hooks import HookPredicate
from devark.core.settings import SettingsStore

CLI_PATH = "/usr/local/bin/devark"

# ==============================================================================
# Environment Isolation
# ==============================================================================


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """
    Point every user-level location at the test's temp directory.

    HOME, XDG_CONFIG_HOME and DEVARK_HOME are redirected and DEVARK_* overrides
    are cleared, so no test reads or writes the real ~/.claude or ~/.config.
    """
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    monkeypatch.setenv("DEVARK_HOME", str(tmp_path / "state"))
    for name in ("DEVARK_CLI_PATH", "DEVARK_DEFAULT_LAYER", "DEVARK_LOCK_STALE_SECONDS"):
        monkeypatch.delenv(name, raising=False)

    clear_cache()
    yield
    clear_cache()


# ==============================================================================
# Directory Fixtures
# ==============================================================================


@pytest.fixture
def home_dir(tmp_path: Path) -> Path:
    """The isolated home directory (user settings live in .claude/ below it)."""
    return tmp_path / "home"


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """A project directory with a .git marker."""
    project = tmp_path / "project"
    (project / ".git").mkdir(parents=True)
    return project


@pytest.fixture
def enterprise_path(tmp_path: Path) -> Path:
    """Location of the managed settings file for tests."""
    return tmp_path / "managed" / "managed-settings.json"


@pytest.fixture
def store(project_dir: Path, home_dir: Path, enterprise_path: Path) -> SettingsStore:
    """Settings store with every layer inside tmp_path."""
    return SettingsStore(
        project_dir=project_dir,
        home_dir=home_dir,
        enterprise_path=enterprise_path,
    )


@pytest.fixture
def predicate() -> HookPredicate:
    """Ownership predicate with the default patterns and a configured CLI path."""
    return HookPredicate(cli_path=CLI_PATH)


# ==============================================================================
# Helpers
# ==============================================================================


@pytest.fixture
def write_json() -> Callable[[Path, Any], Path]:
    """Write a JSON document, creating parent directories."""

    def _write(path: Path, data: Any) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data, indent=2))
        return path

    return _write


@pytest.fixture
def read_json() -> Callable[[Path], Any]:
    """Read a JSON document."""

    def _read(path: Path) -> Any:
        return json.loads(path.read_text())

    return _read


class FixedClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 14, 10, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


@pytest.fixture
def clock() -> FixedClock:
    """A controllable clock starting at 2026-01-14 10:00 UTC."""
    return FixedClock()
