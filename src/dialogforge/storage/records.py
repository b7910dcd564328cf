"""Character and scene lookup.

The compiler and the prompt builder look records up by ID through the
:class:`RecordLookup` protocol. ``InMemoryRecords`` serves tests and
embedding applications; ``DirectoryRecords`` reads the on-disk layout the
editor writes::

    <base>/<character_id>/character.json
    <base>/scenes/<scene_id>.json
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Protocol, TypeVar, runtime_checkable

from pydantic import ValidationError

from dialogforge.models.records import Character, Scene
from dialogforge.observability.logging import get_logger

if TYPE_CHECKING:
    from pathlib import Path

log = get_logger(__name__)

R = TypeVar("R", Character, Scene)


@runtime_checkable
class RecordLookup(Protocol):
    """Read-only access to characters and scenes by ID."""

    def get_character(self, character_id: str) -> Character | None:
        """Get a character, or None if unknown."""
        ...

    def get_scene(self, scene_id: str) -> Scene | None:
        """Get a scene, or None if unknown."""
        ...


class InMemoryRecords:
    """Records held in dicts keyed by ID."""

    def __init__(
        self,
        characters: dict[str, Character] | list[Character] | None = None,
        scenes: dict[str, Scene] | list[Scene] | None = None,
    ) -> None:
        self.characters = _index(characters)
        self.scenes = _index(scenes)

    def get_character(self, character_id: str) -> Character | None:
        return self.characters.get(character_id)

    def get_scene(self, scene_id: str) -> Scene | None:
        return self.scenes.get(scene_id)

    def add_character(self, character: Character) -> None:
        self.characters[character.id] = character

    def add_scene(self, scene: Scene) -> None:
        self.scenes[scene.id] = scene


class DirectoryRecords:
    """Records stored as JSON files under a base directory.

    Unreadable or invalid files are logged and treated as missing records.
    Loaded records are cached for the lifetime of the instance.
    """

    def __init__(self, base_path: Path) -> None:
        self.base_path = base_path
        self._characters: dict[str, Character | None] = {}
        self._scenes: dict[str, Scene | None] = {}

    def get_character(self, character_id: str) -> Character | None:
        if character_id not in self._characters:
            path = self.base_path / character_id / "character.json"
            self._characters[character_id] = _read_record(path, Character)
        return self._characters[character_id]

    def get_scene(self, scene_id: str) -> Scene | None:
        if scene_id not in self._scenes:
            path = self.base_path / "scenes" / f"{scene_id}.json"
            self._scenes[scene_id] = _read_record(path, Scene)
        return self._scenes[scene_id]

    def list_character_ids(self) -> list[str]:
        """IDs of every character directory that holds a character.json."""
        if not self.base_path.exists():
            return []
        return sorted(
            entry.name
            for entry in self.base_path.iterdir()
            if entry.is_dir() and (entry / "character.json").exists()
        )


def _index(records: dict[str, R] | list[R] | None) -> dict[str, R]:
    if records is None:
        return {}
    if isinstance(records, dict):
        return dict(records)
    return {record.id: record for record in records}


def _read_record(path: Path, model: type[R]) -> R | None:
    if not path.exists():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return model.model_validate(data)
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        log.warning("record_load_failed", path=str(path), error=str(e))
        return None
