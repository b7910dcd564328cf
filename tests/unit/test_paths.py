"""Tests for read-only dialog traversals."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from dialogforge.graph.paths import (
    as_number,
    calculate_variables,
    collect_scene_descriptions,
    find_root_id,
    get_all_reachable_nodes,
    get_conversation_history,
    get_node_path,
)
from dialogforge.models import (
    ChangeVariableNode,
    DialogueNode,
    PlaySoundNode,
    SceneDescriptionNode,
    SetBackgroundNode,
    SetVariableNode,
    Speaker,
    VariableOp,
    is_dialogue,
)

if TYPE_CHECKING:
    from dialogforge.models import DialogGraph
    from tests.conftest import BuildDialog


def npc(node_id: str, text: str = "") -> DialogueNode:
    return DialogueNode(id=node_id, speaker=Speaker.NPC, text=text or node_id)


def player(node_id: str, text: str = "") -> DialogueNode:
    return DialogueNode(id=node_id, speaker=Speaker.PLAYER, text=text or node_id)


def ids(nodes: list) -> list[str]:
    return [n.id for n in nodes]


@pytest.fixture
def effect_dialog(build_dialog: BuildDialog) -> DialogGraph:
    """root -> p1 -> n2, with side effects hanging off the path.

    root has children [set_gold, bg]; set_gold has child [sound] (one hop
    further); n2 has parent-side effect [desc] (desc -> n2).
    """
    return build_dialog(
        [
            npc("root", "Welcome"),
            SetVariableNode(id="set_gold", name="gold", value=10),
            SetBackgroundNode(id="bg", image="market"),
            PlaySoundNode(id="sound", file="coins.ogg"),
            player("p1", "Buy"),
            npc("n2", "Thanks"),
            SceneDescriptionNode(id="desc", text="  The stall is crowded.  "),
            ChangeVariableNode(id="spend", name="gold", op=VariableOp.SUBTRACT, value=3),
            npc("elsewhere", "Unrelated"),
        ],
        [
            ("root", "set_gold"),
            ("root", "bg"),
            ("set_gold", "sound"),
            ("root", "p1"),
            ("p1", "n2"),
            ("desc", "n2"),
            ("n2", "spend"),
        ],
        root="root",
    )


class TestNodePath:
    """Test root-to-target path finding."""

    def test_path_to_self_is_root_only(self, linear_dialog: DialogGraph) -> None:
        path = get_node_path(linear_dialog, "hello", "hello")
        assert ids(path) == ["hello"]

    def test_linear_path(self, linear_dialog: DialogGraph) -> None:
        path = get_node_path(linear_dialog, "hello", "bye")
        assert ids(path) == ["hello", "hi", "bye"]

    def test_merge_point_returns_one_real_path(self, build_dialog: BuildDialog) -> None:
        graph = build_dialog(
            [npc("r"), player("a"), player("b"), npc("m")],
            [("r", "a"), ("r", "b"), ("a", "m"), ("b", "m")],
        )

        path = ids(get_node_path(graph, "r", "m"))

        assert path[0] == "r" and path[-1] == "m"
        assert path in (["r", "a", "m"], ["r", "b", "m"])

    def test_cycle_terminates(self, build_dialog: BuildDialog) -> None:
        """A 'return to hub' loop doesn't trap the search."""
        graph = build_dialog(
            [npc("hub"), player("ask"), npc("answer"), npc("exit")],
            [("hub", "ask"), ("ask", "answer"), ("answer", "hub"), ("answer", "exit")],
            root="hub",
        )

        assert ids(get_node_path(graph, "hub", "exit")) == ["hub", "ask", "answer", "exit"]

    def test_path_ignores_stale_parent_lists(self, build_dialog: BuildDialog) -> None:
        """Paths follow child edges even when parent lists are stale."""
        graph = build_dialog([npc("a"), npc("b")], [("a", "b")])
        graph.nodes["b"].parent_node_ids = []

        assert ids(get_node_path(graph, "a", "b")) == ["a", "b"]

    def test_unreachable_target(self, build_dialog: BuildDialog) -> None:
        graph = build_dialog([npc("a"), npc("island")])
        assert get_node_path(graph, "a", "island") == []

    @pytest.mark.parametrize(("root", "target"), [(None, "a"), ("ghost", "a"), ("a", "ghost")])
    def test_missing_endpoints(
        self, build_dialog: BuildDialog, root: str | None, target: str
    ) -> None:
        graph = build_dialog([npc("a")])
        assert get_node_path(graph, root, target) == []


class TestConversationHistory:
    """Test dialogue-only history."""

    def test_history_is_dialogue_only(self, effect_dialog: DialogGraph) -> None:
        history = get_conversation_history(effect_dialog, "n2")

        assert ids(history) == ["root", "p1", "n2"]
        assert all(is_dialogue(n) for n in history)

    def test_side_effects_on_path_are_skipped(self, build_dialog: BuildDialog) -> None:
        graph = build_dialog(
            [npc("a"), SetBackgroundNode(id="bg", image="x"), npc("b")],
            [("a", "bg"), ("bg", "b")],
        )

        assert ids(get_conversation_history(graph, "b")) == ["a", "b"]

    def test_history_uses_repaired_root(self, linear_dialog: DialogGraph) -> None:
        linear_dialog.root_node_id = "deleted"

        assert find_root_id(linear_dialog) == "hello"
        assert ids(get_conversation_history(linear_dialog, "bye")) == ["hello", "hi", "bye"]
        assert linear_dialog.root_node_id == "deleted"

    def test_unreachable_target_has_empty_history(self, build_dialog: BuildDialog) -> None:
        graph = build_dialog([npc("a"), npc("island")])
        assert get_conversation_history(graph, "island") == []


class TestReachableNodes:
    """Test the reachable set."""

    def test_path_first_then_effects_by_owner(self, effect_dialog: DialogGraph) -> None:
        reachable = ids(get_all_reachable_nodes(effect_dialog, "n2"))

        assert reachable[:3] == ["root", "p1", "n2"]
        assert reachable[3:] == ["set_gold", "bg", "sound", "spend", "desc"]

    def test_no_duplicates_and_no_unrelated_nodes(self, effect_dialog: DialogGraph) -> None:
        reachable = ids(get_all_reachable_nodes(effect_dialog, "n2"))

        assert len(reachable) == len(set(reachable))
        assert "elsewhere" not in reachable

    def test_target_restricts_effects(self, effect_dialog: DialogGraph) -> None:
        reachable = ids(get_all_reachable_nodes(effect_dialog, "p1"))

        assert "spend" not in reachable
        assert "desc" not in reachable


class TestVariables:
    """Test variable folding."""

    def test_set_then_change(self, effect_dialog: DialogGraph) -> None:
        assert calculate_variables(effect_dialog, "n2") == {"gold": 7}

    def test_no_variable_nodes_gives_empty_mapping(self, linear_dialog: DialogGraph) -> None:
        assert calculate_variables(linear_dialog, "bye") == {}

    def test_change_of_unset_variable_starts_from_zero(self, build_dialog: BuildDialog) -> None:
        """add 5 to a never-set variable yields 5."""
        graph = build_dialog(
            [npc("a"), ChangeVariableNode(id="c", name="score", op=VariableOp.ADD, value=5)],
            [("a", "c")],
        )

        assert calculate_variables(graph, "a") == {"score": 5}

    def test_change_skips_non_numeric_current_value(self, build_dialog: BuildDialog) -> None:
        graph = build_dialog(
            [
                npc("a"),
                SetVariableNode(id="s", name="mood", value="angry"),
                ChangeVariableNode(id="c", name="mood", value=1),
            ],
            [("a", "s"), ("a", "c")],
        )

        assert calculate_variables(graph, "a") == {"mood": "angry"}

    def test_numeric_strings_are_parsed(self, build_dialog: BuildDialog) -> None:
        graph = build_dialog(
            [
                npc("a"),
                SetVariableNode(id="s", name="gold", value="10"),
                ChangeVariableNode(id="c", name="gold", op=VariableOp.SUBTRACT, value="2.5"),
            ],
            [("a", "s"), ("a", "c")],
        )

        assert calculate_variables(graph, "a") == {"gold": 7.5}


class TestSceneDescriptions:
    """Test scene description collection."""

    def test_descriptions_in_order_and_trimmed(self, effect_dialog: DialogGraph) -> None:
        assert collect_scene_descriptions(effect_dialog, "n2") == ["The stall is crowded."]

    def test_blank_descriptions_are_skipped(self, build_dialog: BuildDialog) -> None:
        graph = build_dialog(
            [npc("a"), SceneDescriptionNode(id="d", text="   ")],
            [("a", "d")],
        )

        assert collect_scene_descriptions(graph, "a") == []


class TestAsNumber:
    """Test numeric interpretation."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [(5, 5), (2.5, 2.5), ("7", 7), (" 3.25 ", 3.25), ("abc", None), (True, None), (None, None)],
    )
    def test_as_number(self, value: object, expected: object) -> None:
        assert as_number(value) == expected

    def test_non_finite_strings_are_rejected(self) -> None:
        assert as_number("nan") is None
        assert as_number("inf") is None
