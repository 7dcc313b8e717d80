"""
Tests for the layered settings store.

Tests cover:
- Layer paths and precedence order
- Tolerant loading: missing, malformed and non-object documents
- Merged view: higher layers win, lower layers fill gaps
- Atomic writes: failures leave the previous document intact
"""

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from devark.core.settings import (
    PersistenceFailedError,
    SettingsLayer,
    SettingsStore,
    deep_merge,
)


def _hook(command: str) -> dict:
    return {"matcher": "", "hooks": [{"type": "command", "command": command}]}


class TestLayerPaths:
    """Tests for where each layer lives."""

    def test_paths(
        self, store: SettingsStore, project_dir: Path, home_dir: Path, enterprise_path: Path
    ) -> None:
        """Test each layer maps to its own file."""
        assert store.path_for(SettingsLayer.USER) == home_dir / ".claude" / "settings.json"
        assert store.path_for(SettingsLayer.PROJECT) == project_dir / ".claude" / "settings.json"
        assert (
            store.path_for(SettingsLayer.LOCAL)
            == project_dir / ".claude" / "settings.local.json"
        )
        assert store.path_for(SettingsLayer.ENTERPRISE) == enterprise_path

    def test_path_for_accepts_layer_value(self, store: SettingsStore) -> None:
        """Test layers can be given by their string value."""
        assert store.path_for("project") == store.path_for(SettingsLayer.PROJECT)  # type: ignore[arg-type]

    def test_precedence_order(self) -> None:
        """Test layers are ordered from highest to lowest precedence."""
        assert SettingsLayer.by_precedence() == [
            SettingsLayer.ENTERPRISE,
            SettingsLayer.LOCAL,
            SettingsLayer.PROJECT,
            SettingsLayer.USER,
        ]


class TestLoad:
    """Tests for loading a single layer."""

    def test_missing_file_is_absent(self, store: SettingsStore) -> None:
        assert store.load(SettingsLayer.USER) is None

    def test_invalid_json_is_absent(self, store: SettingsStore) -> None:
        """Test a malformed document loads as absent rather than raising."""
        path = store.path_for(SettingsLayer.USER)
        path.parent.mkdir(parents=True)
        path.write_text("{ invalid json }")

        assert store.load(SettingsLayer.USER) is None

    def test_non_object_is_absent(self, store: SettingsStore, write_json) -> None:
        write_json(store.path_for(SettingsLayer.PROJECT), ["not", "an", "object"])

        assert store.load(SettingsLayer.PROJECT) is None

    def test_loads_document(self, store: SettingsStore, write_json) -> None:
        doc = {"model": "opus", "hooks": {"Stop": [_hook("other-tool")]}}
        write_json(store.path_for(SettingsLayer.USER), doc)

        assert store.load(SettingsLayer.USER) == doc

    def test_load_all(self, store: SettingsStore, write_json) -> None:
        """Test every layer is reported, absent ones as None."""
        write_json(store.path_for(SettingsLayer.LOCAL), {"a": 1})

        loaded = store.load_all()

        assert list(loaded) == SettingsLayer.by_precedence()
        assert loaded[SettingsLayer.LOCAL] == {"a": 1}
        assert loaded[SettingsLayer.USER] is None


class TestLoadMerged:
    """Tests for the effective (merged) settings view."""

    def test_no_layers(self, store: SettingsStore) -> None:
        assert store.load_merged() == {}

    def test_higher_layer_wins(self, store: SettingsStore, write_json) -> None:
        """Test a populated key in a higher layer is never overridden."""
        write_json(store.path_for(SettingsLayer.USER), {"model": "sonnet", "theme": "dark"})
        write_json(store.path_for(SettingsLayer.PROJECT), {"model": "opus"})

        merged = store.load_merged()

        assert merged == {"model": "opus", "theme": "dark"}

    def test_enterprise_overrides_everything(self, store: SettingsStore, write_json) -> None:
        write_json(store.path_for(SettingsLayer.USER), {"hooks": {"Stop": [_hook("user-stop")]}})
        write_json(
            store.path_for(SettingsLayer.LOCAL), {"hooks": {"Stop": [_hook("local-stop")]}}
        )
        write_json(
            store.path_for(SettingsLayer.ENTERPRISE),
            {"hooks": {"Stop": [_hook("managed-stop")]}},
        )

        merged = store.load_merged()

        assert merged["hooks"]["Stop"] == [_hook("managed-stop")]

    def test_lower_layer_fills_gaps(self, store: SettingsStore, write_json) -> None:
        """Test triggers only present in a lower layer show through."""
        write_json(
            store.path_for(SettingsLayer.USER),
            {"hooks": {"SessionStart": [_hook("devark send")], "Stop": [_hook("user-stop")]}},
        )
        write_json(store.path_for(SettingsLayer.PROJECT), {"hooks": {"Stop": [_hook("proj")]}})

        merged = store.load_merged()

        assert merged["hooks"]["SessionStart"] == [_hook("devark send")]
        assert merged["hooks"]["Stop"] == [_hook("proj")]

    def test_malformed_layer_is_skipped(self, store: SettingsStore, write_json) -> None:
        write_json(store.path_for(SettingsLayer.USER), {"model": "sonnet"})
        path = store.path_for(SettingsLayer.PROJECT)
        path.parent.mkdir(parents=True)
        path.write_text("{")

        assert store.load_merged() == {"model": "sonnet"}


class TestDeepMerge:
    """Tests for deep_merge."""

    def test_nested_dicts_merge(self) -> None:
        assert deep_merge({"a": 1, "b": {"x": 10}}, {"b": {"y": 2}}) == {
            "a": 1,
            "b": {"x": 10, "y": 2},
        }

    def test_lists_replace(self) -> None:
        assert deep_merge({"a": [1, 2]}, {"a": [3]}) == {"a": [3]}

    def test_inputs_not_modified(self) -> None:
        base = {"b": {"x": 1}}
        deep_merge(base, {"b": {"y": 2}})
        assert base == {"b": {"x": 1}}


class TestWrite:
    """Tests for atomic writes."""

    def test_creates_directories(self, store: SettingsStore, read_json) -> None:
        path = store.write(SettingsLayer.PROJECT, {"hooks": {}})

        assert path == store.path_for(SettingsLayer.PROJECT)
        assert read_json(path) == {"hooks": {}}

    def test_preserves_unicode(self, store: SettingsStore) -> None:
        path = store.write(SettingsLayer.USER, {"statusLine": "✓ ready"})

        assert "✓ ready" in path.read_text(encoding="utf-8")

    def test_failed_rename_leaves_previous_document(
        self, store: SettingsStore, write_json, read_json
    ) -> None:
        """Test a write that fails mid-way keeps the old file byte-for-byte."""
        path = write_json(store.path_for(SettingsLayer.USER), {"model": "sonnet"})
        before = path.read_bytes()

        with patch("devark.utils.atomic.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(PersistenceFailedError) as exc_info:
                store.write(SettingsLayer.USER, {"model": "opus"})

        assert path.read_bytes() == before
        assert exc_info.value.path == path
        assert "disk full" in str(exc_info.value)
        # No temp files left behind
        assert [p.name for p in path.parent.iterdir()] == ["settings.json"]

    def test_unserializable_document(self, store: SettingsStore) -> None:
        """Test serialization errors are reported before anything is written."""
        with pytest.raises(PersistenceFailedError):
            store.write(SettingsLayer.USER, {"bad": {1, 2}})

        assert not store.path_for(SettingsLayer.USER).exists()

    def test_output_is_json(self, store: SettingsStore) -> None:
        path = store.write(SettingsLayer.USER, {"a": [1, 2]})

        assert json.loads(path.read_text()) == {"a": [1, 2]}
