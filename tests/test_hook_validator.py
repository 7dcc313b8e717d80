"""
Tests for hook status and validation.

Both read the merged view of every settings layer, the way the host does.
"""

from pathlib import Path
from unittest.mock import patch

import pytest

from devark.core.hooks import (
    HOOK_VERSION,
    HookErrorCode,
    HookPredicate,
    get_hook_status,
    hook_version,
    install_hook,
    install_hooks,
    layers_with_hooks,
    uninstall_hooks,
    validate_hooks,
)
from devark.core.settings import SettingsLayer, SettingsStore, Trigger


@pytest.fixture
def cli_path(tmp_path: Path) -> str:
    """An existing devark executable."""
    cli = tmp_path / "bin" / "devark"
    cli.parent.mkdir()
    cli.write_text("#!/bin/sh\n")
    cli.chmod(0o755)
    return str(cli)


def _settings(*commands: str, trigger: str = "SessionStart") -> dict:
    return {
        "hooks": {
            trigger: [{"matcher": "", "hooks": [{"type": "command", "command": c} for c in commands]}]
        }
    }


class TestHookStatus:
    """Tests for get_hook_status."""

    def test_nothing_installed(self, store: SettingsStore, predicate: HookPredicate) -> None:
        status = get_hook_status(store, predicate)

        assert not status.installed
        assert len(status.triggers) == len(Trigger)
        assert status.hook_version is None
        assert not status.outdated

    def test_install_then_uninstall(self, store: SettingsStore, predicate: HookPredicate) -> None:
        """Test status follows an install/uninstall round trip."""
        install_hook(store, Trigger.SESSION_START, "/usr/local/bin/devark send")

        status = get_hook_status(store, predicate)
        assert status.installed
        assert status.is_installed("SessionStart")
        assert not status.is_installed("SessionEnd")

        uninstall_hooks(store, predicate)

        status = get_hook_status(store, predicate)
        assert not status.installed
        assert not status.is_installed("SessionStart")

    def test_sources(self, store: SettingsStore, predicate: HookPredicate, cli_path: str) -> None:
        install_hooks(store, cli_path, layer=SettingsLayer.PROJECT, triggers=[Trigger.STOP])
        install_hooks(store, cli_path, layer=SettingsLayer.USER, triggers=[Trigger.STOP])

        trigger_status = get_hook_status(store, HookPredicate(cli_path=cli_path)).for_trigger("Stop")

        assert trigger_status is not None
        assert trigger_status.sources == ["project", "user"]
        # Merged view: the project layer's Stop list replaces the user one
        assert len(trigger_status.commands) == 1

    def test_shadowed_by_higher_layer(
        self, store: SettingsStore, predicate: HookPredicate, write_json
    ) -> None:
        """Test a higher layer's foreign hooks hide devark's hook in a lower one."""
        write_json(store.path_for(SettingsLayer.USER), _settings("devark send"))
        write_json(store.path_for(SettingsLayer.LOCAL), _settings("other-tool start"))

        trigger_status = get_hook_status(store, predicate).for_trigger("SessionStart")

        assert trigger_status is not None
        assert not trigger_status.installed
        assert trigger_status.sources == ["user"]

    def test_outdated_hooks(self, store: SettingsStore, predicate: HookPredicate, write_json) -> None:
        write_json(
            store.path_for(SettingsLayer.USER),
            _settings("npx devark-cli send --silent --hook-trigger=sessionstart"),
        )

        status = get_hook_status(store, predicate)

        assert status.hook_version == 1
        assert status.outdated

    def test_current_hooks(self, store: SettingsStore, predicate: HookPredicate) -> None:
        install_hooks(store, "/usr/local/bin/devark")

        status = get_hook_status(store, predicate)

        assert status.hook_version == HOOK_VERSION
        assert not status.outdated


class TestHookVersion:
    """Tests for the registry version marker."""

    @pytest.mark.parametrize(
        ("command", "expected"),
        [
            ("devark send --hook-version=2", 2),
            ("devark send --hook-version 3 --silent", 3),
            ("devark send --silent", 1),
        ],
    )
    def test_hook_version(self, command: str, expected: int) -> None:
        assert hook_version(command) == expected


class TestValidateHooks:
    """Tests for validate_hooks."""

    def test_no_hooks_installed(self, store: SettingsStore, predicate: HookPredicate) -> None:
        result = validate_hooks(store, predicate, "/usr/local/bin/devark")

        assert not result.valid
        assert result.messages == ["No hooks installed"]
        assert result.errors[0].code == HookErrorCode.NO_HOOKS_INSTALLED

    def test_valid_install(self, store: SettingsStore, cli_path: str) -> None:
        install_hooks(store, cli_path)

        result = validate_hooks(store, HookPredicate(cli_path=cli_path), cli_path)

        assert result.valid
        assert result.errors == []
        assert result.hooks_checked == 3

    def test_command_not_found(self, store: SettingsStore, tmp_path: Path) -> None:
        """Test a missing executable is reported once, not once per hook."""
        missing = str(tmp_path / "gone" / "devark")
        install_hooks(store, missing)

        result = validate_hooks(store, HookPredicate(cli_path=missing), missing)

        assert not result.valid
        assert result.messages == [f"CLI command not found: {missing}"]
        assert result.errors[0].code == HookErrorCode.COMMAND_NOT_FOUND

    def test_path_mismatch(
        self, store: SettingsStore, cli_path: str, write_json
    ) -> None:
        """Test hooks left behind by a devark installed elsewhere."""
        write_json(
            store.path_for(SettingsLayer.USER),
            _settings("/different/path/devark send", trigger="PreCompact"),
        )

        result = validate_hooks(store, HookPredicate(cli_path=cli_path), cli_path)

        assert not result.valid
        assert "PreCompact hook uses different CLI path: /different/path/devark send" in (
            result.messages
        )
        assert "CLI command not found: /different/path/devark" in result.messages
        codes = {issue.code for issue in result.errors}
        assert codes == {HookErrorCode.PATH_MISMATCH, HookErrorCode.COMMAND_NOT_FOUND}

    def test_path_mismatch_ignores_cli_path_in_arguments(
        self, store: SettingsStore, cli_path: str, write_json
    ) -> None:
        """Test a hook only passing the CLI path as an argument still mismatches."""
        command = f"devark send --config {cli_path}"
        write_json(store.path_for(SettingsLayer.USER), _settings(command, trigger="Stop"))

        with patch("devark.core.hooks.validator.shutil.which", return_value="/usr/bin/devark"):
            result = validate_hooks(store, HookPredicate(cli_path=cli_path), cli_path)

        assert result.messages == [f"Stop hook uses different CLI path: {command}"]
        assert result.errors[0].code == HookErrorCode.PATH_MISMATCH

    def test_package_invocation_checks_launcher(self, store: SettingsStore) -> None:
        """Test npx-style hooks only require the launcher to be on PATH."""
        install_hooks(store, "npx devark-cli")

        with patch("devark.core.hooks.validator.shutil.which", return_value="/usr/bin/npx") as which:
            result = validate_hooks(store, HookPredicate(cli_path="npx devark-cli"), "npx devark-cli")

        assert result.valid
        which.assert_called_with("npx")

    def test_missing_launcher(self, store: SettingsStore) -> None:
        install_hooks(store, "npx devark-cli", triggers=[Trigger.STOP])

        with patch("devark.core.hooks.validator.shutil.which", return_value=None):
            result = validate_hooks(store, HookPredicate(), "npx devark-cli")

        assert result.messages == ["CLI command not found: npx"]

    def test_reads_all_layers(self, store: SettingsStore, cli_path: str) -> None:
        install_hooks(store, cli_path, layer=SettingsLayer.LOCAL, triggers=[Trigger.STOP])

        result = validate_hooks(store, HookPredicate(cli_path=cli_path), cli_path)

        assert result.valid
        assert result.hooks_checked == 1


class TestLayersWithHooks:
    """Tests for layers_with_hooks."""

    def test_reports_layers(self, store: SettingsStore, predicate: HookPredicate) -> None:
        install_hooks(store, "/usr/local/bin/devark", layer=SettingsLayer.PROJECT)
        install_hook(store, "Stop", "echo not-ours", layer=SettingsLayer.LOCAL)

        assert layers_with_hooks(store, predicate) == [SettingsLayer.PROJECT]
