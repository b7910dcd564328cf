"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from pathlib import Path

import pytest

from dialogforge.graph.store import DialogStore
from dialogforge.models import (
    Character,
    DialogGraph,
    DialogNode,
    DialogueNode,
    Scene,
    Speaker,
    new_dialog,
)
from dialogforge.storage import InMemoryRecords

BuildDialog = Callable[..., DialogGraph]


@pytest.fixture(autouse=True)
def clear_dialogforge_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep directory overrides from the developer's shell out of tests."""
    monkeypatch.delenv("DIALOGFORGE_RECORDS_DIR", raising=False)
    monkeypatch.delenv("DIALOGFORGE_OUTPUT_DIR", raising=False)


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def build_dialog() -> BuildDialog:
    """Factory building a dialog through the store so edges stay symmetric.

    Nodes are added in order (the first becomes root unless *root* is given),
    then each ``(parent, child)`` edge is linked.
    """

    def build(
        nodes: Iterable[DialogNode],
        edges: Iterable[tuple[str, str]] = (),
        *,
        root: str | None = None,
        character_id: str | None = None,
        scene_id: str | None = None,
    ) -> DialogGraph:
        graph = new_dialog(character_id=character_id, dialog_id="test_dialog")
        graph.scene_id = scene_id
        store = DialogStore(graph)
        for node in nodes:
            store.add_node(node)
        for parent_id, child_id in edges:
            store.link_nodes(parent_id, child_id)
        if root is not None:
            store.graph.root_node_id = root
        return store.graph

    return build


@pytest.fixture
def linear_dialog(build_dialog: BuildDialog) -> DialogGraph:
    """NPC "Hello" -> Player "Hi there" -> NPC "Goodbye"."""
    return build_dialog(
        [
            DialogueNode(id="hello", speaker=Speaker.NPC, text="Hello"),
            DialogueNode(id="hi", speaker=Speaker.PLAYER, text="Hi there"),
            DialogueNode(id="bye", speaker=Speaker.NPC, text="Goodbye"),
        ],
        [("hello", "hi"), ("hi", "bye")],
    )


@pytest.fixture
def records() -> InMemoryRecords:
    """A merchant character and a market scene."""
    return InMemoryRecords(
        characters=[
            Character(id="char_merchant", name="Old Merchant", personality="Grumpy but fair"),
        ],
        scenes=[Scene(id="scene_market", description="A busy market at dawn")],
    )
