"""Dialog graph node types.

A node is a tagged union discriminated by ``kind``. ``dialogue`` nodes carry
a speaker and a spoken line; every other kind is a side-effect node that
changes variables or the environment and is invisible to conversation paths.

Field names are snake_case in Python and camelCase on the wire.
"""

from __future__ import annotations

import time
import uuid
from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel

WIRE_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True)

ScalarValue = bool | int | float | str
ComparisonOperator = Literal["==", "!=", ">", "<", ">=", "<="]
COMPARISON_OPERATORS: tuple[str, ...] = ("==", "!=", ">", "<", ">=", "<=")


class Speaker(StrEnum):
    """Who speaks a dialogue line."""

    NPC = "npc"
    PLAYER = "player"


class VariableOp(StrEnum):
    """Arithmetic applied by a change-variable node."""

    ADD = "add"
    SUBTRACT = "subtract"


def now_ms() -> int:
    """Current time in integer milliseconds since the epoch."""
    return int(time.time() * 1000)


def new_node_id() -> str:
    """Generate a process-unique node ID."""
    return f"node_{uuid.uuid4().hex[:16]}"


class NodeBase(BaseModel):
    """Identity and edge fields shared by every node kind."""

    model_config = WIRE_CONFIG

    id: str = Field(min_length=1)
    child_node_ids: list[str] = Field(default_factory=list)
    parent_node_ids: list[str] = Field(default_factory=list)
    created_at: int = Field(default_factory=now_ms)
    updated_at: int = Field(default_factory=now_ms)


class DialogueNode(NodeBase):
    """A spoken line by an NPC or the player."""

    kind: Literal["dialogue"] = "dialogue"
    speaker: Speaker
    text: str = ""
    character_id: str | None = None
    emotion: str | None = None
    show_avatar: bool | None = None


class SetVariableNode(NodeBase):
    kind: Literal["set_variable"] = "set_variable"
    name: str = ""
    value: ScalarValue | None = None


class ChangeVariableNode(NodeBase):
    kind: Literal["change_variable"] = "change_variable"
    name: str = ""
    op: VariableOp = VariableOp.ADD
    value: ScalarValue | None = 0


class SetBackgroundNode(NodeBase):
    kind: Literal["set_background"] = "set_background"
    image: str = ""


class PlaySoundNode(NodeBase):
    kind: Literal["play_sound"] = "play_sound"
    file: str = ""


class SetMusicNode(NodeBase):
    """Start a music track, optionally fading in/out (seconds)."""

    kind: Literal["set_music"] = "set_music"
    file: str = ""
    fade_in: float | None = None
    fade_out: float | None = None


class IfStatementNode(NodeBase):
    """Conditional branch.

    Children are ordered ``[true_branch, false_branch]``; either may be absent.
    """

    kind: Literal["if_statement"] = "if_statement"
    variable: str = ""
    operator: ComparisonOperator = "=="
    value: ScalarValue | None = None


class SwitchCaseBranch(BaseModel):
    """One case of a switch: a value and an optional explicit target node."""

    model_config = WIRE_CONFIG

    value: ScalarValue
    node_id: str | None = None


class SwitchCaseNode(NodeBase):
    """Multi-way branch on a variable.

    A case without ``node_id`` falls back to the child at the same index.
    Children beyond the declared cases form the implicit ``else`` branch.
    """

    kind: Literal["switch_case"] = "switch_case"
    variable: str = ""
    cases: list[SwitchCaseBranch] = Field(default_factory=list)


class SceneDescriptionNode(NodeBase):
    kind: Literal["scene_description"] = "scene_description"
    text: str = ""


DialogNode = Annotated[
    DialogueNode
    | SetVariableNode
    | ChangeVariableNode
    | SetBackgroundNode
    | PlaySoundNode
    | SetMusicNode
    | IfStatementNode
    | SwitchCaseNode
    | SceneDescriptionNode,
    Field(discriminator="kind"),
]

NODE_ADAPTER: TypeAdapter[DialogNode] = TypeAdapter(DialogNode)

NODE_KINDS: tuple[str, ...] = (
    "dialogue",
    "set_variable",
    "change_variable",
    "set_background",
    "play_sound",
    "set_music",
    "if_statement",
    "switch_case",
    "scene_description",
)

# Fields that only link/unlink or node creation may change.
IDENTITY_FIELDS = frozenset({"id", "kind", "child_node_ids", "parent_node_ids", "created_at"})


# ---------------------------------------------------------------------------
# Predicates
# ---------------------------------------------------------------------------


def is_dialogue(node: DialogNode | None) -> bool:
    return isinstance(node, DialogueNode)


def is_npc(node: DialogNode | None) -> bool:
    return isinstance(node, DialogueNode) and node.speaker == Speaker.NPC


def is_player(node: DialogNode | None) -> bool:
    return isinstance(node, DialogueNode) and node.speaker == Speaker.PLAYER


def is_side_effect(node: DialogNode | None) -> bool:
    """True for any existing non-dialogue node."""
    return node is not None and not isinstance(node, DialogueNode)


def is_branch(node: DialogNode | None) -> bool:
    """True for nodes that compile to conditional control flow."""
    return isinstance(node, IfStatementNode | SwitchCaseNode)


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


def create_node(kind: str, **fields: Any) -> DialogNode:
    """Create a node of any kind with a fresh ID and timestamps.

    Args:
        kind: One of :data:`NODE_KINDS`.
        **fields: Kind-specific fields (snake_case).

    Returns:
        Validated node instance.

    Raises:
        ValueError: If *kind* is unknown.
        pydantic.ValidationError: If the fields don't fit the kind.
    """
    if kind not in NODE_KINDS:
        msg = f"Unknown node kind '{kind}'. Supported: {', '.join(NODE_KINDS)}"
        raise ValueError(msg)
    stamp = now_ms()
    data: dict[str, Any] = {"id": new_node_id(), "created_at": stamp, "updated_at": stamp}
    data.update(fields)
    data["kind"] = kind
    return NODE_ADAPTER.validate_python(data)


def create_dialogue_node(
    speaker: Speaker | str,
    text: str,
    parent_node_ids: list[str] | tuple[str, ...] = (),
) -> DialogueNode:
    """Create a dialogue node, optionally pre-declaring its parents."""
    node = create_node(
        "dialogue",
        speaker=Speaker(speaker),
        text=text,
        parent_node_ids=list(parent_node_ids),
    )
    assert isinstance(node, DialogueNode)
    return node


def node_to_dict(node: DialogNode) -> dict[str, Any]:
    """Serialize a node to its wire format (camelCase, unset fields omitted)."""
    return node.model_dump(mode="json", by_alias=True, exclude_none=True)
