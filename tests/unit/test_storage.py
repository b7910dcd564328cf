"""Tests for dialog files and record lookup."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest

from dialogforge.models import Character, Scene
from dialogforge.storage import (
    DialogFileError,
    DirectoryRecords,
    InMemoryRecords,
    RecordLookup,
    dialog_file_path,
    load_dialog,
    save_dialog,
)

if TYPE_CHECKING:
    from pathlib import Path

    from dialogforge.models import DialogGraph


class TestDialogFiles:
    """Test dialog load/save."""

    def test_save_then_load(self, tmp_path: Path, linear_dialog: DialogGraph) -> None:
        path = dialog_file_path(tmp_path / "dialogs", linear_dialog.id)

        written = save_dialog(linear_dialog, path)
        loaded = load_dialog(written)

        assert written.name == "test_dialog.dialog.json"
        assert loaded.model_dump() == linear_dialog.model_dump()
        assert not path.with_suffix(".json.tmp").exists()

    def test_saved_file_uses_wire_names(self, tmp_path: Path, linear_dialog: DialogGraph) -> None:
        path = save_dialog(linear_dialog, tmp_path / "d.dialog.json")

        data = json.loads(path.read_text())

        assert data["rootNodeId"] == "hello"
        assert data["nodes"]["hello"]["childNodeIds"] == ["hi"]

    def test_load_does_not_repair_root(self, tmp_path: Path, linear_dialog: DialogGraph) -> None:
        linear_dialog.root_node_id = "deleted"
        path = save_dialog(linear_dialog, tmp_path / "d.dialog.json")

        assert load_dialog(path).root_node_id == "deleted"

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(DialogFileError, match="File not found"):
            load_dialog(tmp_path / "nope.dialog.json")

    @pytest.mark.parametrize(
        ("content", "reason"),
        [
            ("{not json", "Expecting property name"),
            ("[1, 2]", "Expected a JSON object"),
            ('{"id": "d", "nodes": {"a": {"kind": "teleport", "id": "a"}}}', "Invalid dialog"),
        ],
    )
    def test_invalid_content(self, tmp_path: Path, content: str, reason: str) -> None:
        path = tmp_path / "bad.dialog.json"
        path.write_text(content)

        with pytest.raises(DialogFileError) as exc_info:
            load_dialog(path)

        assert exc_info.value.path == path
        assert reason in exc_info.value.reason


class TestInMemoryRecords:
    """Test the in-memory lookup."""

    def test_lookup(self, records: InMemoryRecords) -> None:
        assert isinstance(records, RecordLookup)
        character = records.get_character("char_merchant")
        assert character is not None
        assert character.name == "Old Merchant"
        assert records.get_character("missing") is None
        assert records.get_scene("scene_market") is not None

    def test_accepts_mappings(self) -> None:
        records = InMemoryRecords(characters={"c": Character(id="c", name="Cat")})
        records.add_scene(Scene(id="s"))

        assert records.get_character("c") is not None
        assert records.get_scene("s") is not None


class TestDirectoryRecords:
    """Test the on-disk record layout."""

    def test_reads_character_and_scene(self, tmp_path: Path) -> None:
        (tmp_path / "char_1").mkdir()
        (tmp_path / "char_1" / "character.json").write_text(
            json.dumps({"id": "char_1", "name": "Guard", "visualPrompt": "armor"})
        )
        (tmp_path / "scenes").mkdir()
        (tmp_path / "scenes" / "gate.json").write_text(
            json.dumps({"id": "gate", "description": "The city gate"})
        )
        records = DirectoryRecords(tmp_path)

        character = records.get_character("char_1")
        scene = records.get_scene("gate")

        assert character is not None
        assert character.visual_prompt == "armor"
        assert scene is not None
        assert scene.description == "The city gate"
        assert records.list_character_ids() == ["char_1"]

    def test_missing_and_invalid_records_are_none(self, tmp_path: Path) -> None:
        (tmp_path / "broken").mkdir()
        (tmp_path / "broken" / "character.json").write_text("{")
        records = DirectoryRecords(tmp_path)

        assert records.get_character("broken") is None
        assert records.get_character("absent") is None
        assert records.get_scene("absent") is None

    def test_missing_base_dir_lists_nothing(self, tmp_path: Path) -> None:
        assert DirectoryRecords(tmp_path / "none").list_character_ids() == []
