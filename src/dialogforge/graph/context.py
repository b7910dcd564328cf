"""Dialog context formatting for AI prompts.

Turns the derived facts of a node (its conversation so far, the variables
and scene descriptions in effect, the speaking character) into the text
blocks the AI-integration collaborator sends to a model. Nothing here calls
a model.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from dialogforge.graph.paths import (
    calculate_variables,
    collect_scene_descriptions,
    find_root_id,
    get_conversation_history,
)
from dialogforge.models.nodes import DialogueNode, Speaker

if TYPE_CHECKING:
    from dialogforge.models.dialog import DialogGraph
    from dialogforge.models.nodes import DialogNode
    from dialogforge.models.records import Character, Scene
    from dialogforge.storage.records import RecordLookup

_SPEAKER_LABELS = {Speaker.NPC: "NPC", Speaker.PLAYER: "Player"}


def get_last_npc_character_id(graph: DialogGraph, target_id: str) -> str | None:
    """Character of the most recent NPC line up to and including *target_id*."""
    for node in reversed(get_conversation_history(graph, target_id)):
        if isinstance(node, DialogueNode) and node.speaker == Speaker.NPC and node.character_id:
            return node.character_id
    return None


def generate_node_context(graph: DialogGraph, target_id: str) -> str:
    """Transcript of the conversation leading to *target_id*.

    One ``"NPC: text"`` / ``"Player: text"`` entry per line, separated by a
    blank line. Empty when the node is unreachable.
    """
    parts = [
        f"{_SPEAKER_LABELS[node.speaker]}: {node.text}"
        for node in get_conversation_history(graph, target_id)
        if isinstance(node, DialogueNode)
    ]
    return "\n\n".join(parts)


def node_tree_to_linear_chat(graph: DialogGraph) -> list[DialogNode]:
    """Follow first children from the root to produce a single chat thread.

    Used by the linear chat view. Stops at a leaf or on returning to a node
    already in the thread.
    """
    chat: list[DialogNode] = []
    seen: set[str] = set()
    node = graph.get_node(find_root_id(graph))
    while node is not None and node.id not in seen:
        seen.add(node.id)
        chat.append(node)
        node = graph.get_node(node.child_node_ids[0]) if node.child_node_ids else None
    return chat


@dataclass
class PromptContext:
    """Everything an AI call needs to know about a node's situation.

    Attributes:
        target_id: Node the context was built for.
        transcript: Output of :func:`generate_node_context`.
        variables: Variable values in effect at the node.
        scene_descriptions: Reachable scene-description texts in order.
        character: Character of the latest NPC line, or the dialog's character.
        scene: The dialog's scene, if any.
    """

    target_id: str
    transcript: str = ""
    variables: dict[str, Any] = field(default_factory=dict)
    scene_descriptions: list[str] = field(default_factory=list)
    character: Character | None = None
    scene: Scene | None = None

    def format_state(self) -> str:
        """Render character, scene, descriptions and variables as a prompt block.

        The descriptions and variables sections are always present so a model
        knows they were considered even when empty.
        """
        lines: list[str] = []
        if self.character is not None:
            lines.append(f"Character: {self.character.name}")
            if self.character.personality:
                lines.append(f"Personality: {self.character.personality}")
        if self.scene is not None and self.scene.description:
            if lines:
                lines.append("")
            lines.append(f"Scene Context: {self.scene.description}")

        if lines:
            lines.append("")
        lines.append("Scene Descriptions:")
        if self.scene_descriptions:
            lines.extend(f"{i}. {text}" for i, text in enumerate(self.scene_descriptions, 1))
        else:
            lines.append("(None specified)")

        lines.append("")
        lines.append("Current Variables/State:")
        if self.variables:
            lines.extend(f"- {name} = {value}" for name, value in self.variables.items())
        else:
            lines.append("(No variables set)")
        return "\n".join(lines)


def build_prompt_context(
    graph: DialogGraph,
    target_id: str,
    records: RecordLookup | None = None,
) -> PromptContext:
    """Collect the prompt context for *target_id*.

    Args:
        graph: Dialog to read.
        target_id: Node the AI call is about.
        records: Character/scene lookup. Without one, character and scene
            are left empty.

    Returns:
        Context with transcript, variables and scene descriptions filled in.
    """
    context = PromptContext(
        target_id=target_id,
        transcript=generate_node_context(graph, target_id),
        variables=calculate_variables(graph, target_id),
        scene_descriptions=collect_scene_descriptions(graph, target_id),
    )
    if records is None:
        return context

    character_id = get_last_npc_character_id(graph, target_id) or graph.character_id
    if character_id:
        context.character = records.get_character(character_id)
    if graph.scene_id:
        context.scene = records.get_scene(graph.scene_id)
    return context
