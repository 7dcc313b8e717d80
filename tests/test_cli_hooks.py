"""
Tests for CLI hooks commands.

Runs `devark hooks install|uninstall|status|validate` end to end against
settings files in a temp home and project.
"""

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from devark.cli import app
from devark.core.lock import ConcurrencyGuard

runner = CliRunner()


@pytest.fixture
def cli_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> str:
    """An existing devark executable, configured via DEVARK_CLI_PATH."""
    cli = tmp_path / "bin" / "devark"
    cli.parent.mkdir()
    cli.write_text("#!/bin/sh\n")
    cli.chmod(0o755)
    monkeypatch.setenv("DEVARK_CLI_PATH", str(cli))
    monkeypatch.setattr(
        "devark.core.settings.store.get_enterprise_settings_path",
        lambda: tmp_path / "managed" / "managed-settings.json",
    )
    return str(cli)


@pytest.fixture
def user_settings(home_dir: Path) -> Path:
    return home_dir / ".claude" / "settings.json"


@pytest.fixture
def project_settings(project_dir: Path) -> Path:
    return project_dir.resolve() / ".claude" / "settings.json"


def invoke(project_dir: Path, *args: str):
    return runner.invoke(app, ["--project", str(project_dir), "hooks", *args])


class TestHooksInstall:
    """Tests for `devark hooks install`."""

    def test_install_defaults(
        self, cli_path: str, project_dir: Path, user_settings: Path, read_json
    ) -> None:
        result = invoke(project_dir, "install")

        assert result.exit_code == 0
        assert "Installed 3 hooks" in result.output
        hooks = read_json(user_settings)["hooks"]
        assert list(hooks) == ["SessionStart", "PreCompact", "SessionEnd"]
        assert hooks["SessionEnd"][0]["hooks"][0]["command"].startswith(cli_path)

    def test_install_twice(self, cli_path: str, project_dir: Path) -> None:
        invoke(project_dir, "install")

        result = invoke(project_dir, "install")

        assert result.exit_code == 0
        assert "All hooks already configured" in result.output

    def test_install_project_layer_options(
        self, cli_path: str, project_dir: Path, project_settings: Path, user_settings: Path, read_json
    ) -> None:
        result = invoke(
            project_dir,
            "install",
            "--layer",
            "project",
            "-t",
            "Stop",
            "--matcher",
            "Bash",
            "--timeout",
            "15",
        )

        assert result.exit_code == 0
        assert not user_settings.exists()
        group = read_json(project_settings)["hooks"]["Stop"][0]
        assert group["matcher"] == "Bash"
        assert group["hooks"][0]["timeout"] == 15

    def test_install_custom_command(
        self, cli_path: str, project_dir: Path, user_settings: Path, read_json
    ) -> None:
        result = invoke(
            project_dir, "install", "-t", "SessionStart", "--command", "devark send --now"
        )

        assert result.exit_code == 0
        hooks = read_json(user_settings)["hooks"]
        assert hooks == {
            "SessionStart": [
                {"matcher": "", "hooks": [{"type": "command", "command": "devark send --now"}]}
            ]
        }

    def test_enterprise_layer_rejected(self, cli_path: str, project_dir: Path) -> None:
        result = invoke(project_dir, "install", "--layer", "enterprise")

        assert result.exit_code == 1
        assert "read-only" in result.output

    def test_locked_settings(self, cli_path: str, project_dir: Path, user_settings: Path) -> None:
        ConcurrencyGuard.for_file(user_settings, owner_id="other:1").acquire()

        result = invoke(project_dir, "install")

        assert result.exit_code == 1
        assert "locked" in result.output
        assert not user_settings.exists()


class TestHooksUninstall:
    """Tests for `devark hooks uninstall`."""

    def test_uninstall(self, cli_path: str, project_dir: Path, user_settings: Path, read_json) -> None:
        invoke(project_dir, "install")

        result = invoke(project_dir, "uninstall")

        assert result.exit_code == 0
        assert "Removed 3 hooks" in result.output
        assert read_json(user_settings) == {}

    def test_nothing_to_uninstall(self, cli_path: str, project_dir: Path) -> None:
        result = invoke(project_dir, "uninstall")

        assert result.exit_code == 1
        assert "No devark hooks found to uninstall" in result.output

    def test_hint_other_layers(self, cli_path: str, project_dir: Path) -> None:
        """Test uninstall points at layers that do hold devark hooks."""
        invoke(project_dir, "install", "--layer", "project")

        result = invoke(project_dir, "uninstall")

        assert result.exit_code == 1
        assert "devark hooks found in: project" in result.output

    def test_preserves_foreign_hooks(
        self, cli_path: str, project_dir: Path, user_settings: Path, write_json, read_json
    ) -> None:
        foreign = {"matcher": "", "hooks": [{"type": "command", "command": "echo keep"}]}
        write_json(user_settings, {"model": "opus", "hooks": {"Stop": [foreign]}})
        invoke(project_dir, "install")

        result = invoke(project_dir, "uninstall")

        assert result.exit_code == 0
        assert read_json(user_settings) == {"model": "opus", "hooks": {"Stop": [foreign]}}


class TestHooksStatus:
    """Tests for `devark hooks status`."""

    def test_no_hooks(self, cli_path: str, project_dir: Path) -> None:
        result = invoke(project_dir, "status")

        assert result.exit_code == 0
        assert "No devark hooks installed" in result.output

    def test_table(self, cli_path: str, project_dir: Path) -> None:
        invoke(project_dir, "install")

        result = invoke(project_dir, "status")

        assert result.exit_code == 0
        assert "SessionStart" in result.output
        assert "PreCompact" in result.output

    def test_json(self, cli_path: str, project_dir: Path) -> None:
        invoke(project_dir, "install", "-t", "Stop")

        result = invoke(project_dir, "status", "--json")

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["installed"] is True
        stop = next(t for t in data["triggers"] if t["trigger"] == "Stop")
        assert stop["installed"] is True
        assert stop["sources"] == ["user"]


class TestHooksValidate:
    """Tests for `devark hooks validate`."""

    def test_valid(self, cli_path: str, project_dir: Path) -> None:
        invoke(project_dir, "install")

        result = invoke(project_dir, "validate")

        assert result.exit_code == 0
        assert "validated successfully" in result.output

    def test_no_hooks(self, cli_path: str, project_dir: Path) -> None:
        result = invoke(project_dir, "validate")

        assert result.exit_code == 1
        assert "No hooks installed" in result.output

    def test_mismatch(
        self, cli_path: str, project_dir: Path, user_settings: Path, write_json
    ) -> None:
        write_json(
            user_settings,
            {
                "hooks": {
                    "PreCompact": [
                        {
                            "matcher": "",
                            "hooks": [{"type": "command", "command": "/old/devark send"}],
                        }
                    ]
                }
            },
        )

        result = invoke(project_dir, "validate")

        assert result.exit_code == 1
        assert "Found 2 error(s)" in result.output


class TestMainApp:
    """Tests for the top-level app."""

    def test_version(self) -> None:
        from devark import __version__

        result = runner.invoke(app, ["version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_debug_flag(self, cli_path: str, project_dir: Path) -> None:
        result = runner.invoke(app, ["--debug", "--project", str(project_dir), "hooks", "status"])

        assert result.exit_code == 0
