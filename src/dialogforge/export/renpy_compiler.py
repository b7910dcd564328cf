"""Dialog graph to Ren'Py script compiler.

Linearises a rooted, possibly cyclic dialog graph into a Ren'Py script:

1. Variable discovery. Every variable referenced by a node reachable from
   the root is initialised to ``0`` at the top of ``label start``.
2. Merge-node labelling. Dialogue nodes with several parents, and dialogue
   nodes a loop returns to, get their own ``label`` block. Every arrival at
   such a node emits ``jump <label>`` instead of inlining it.
3. Depth-first emission from the root, dispatching on node kind. Player
   fan-out under an NPC becomes a ``menu:``; if/switch nodes become
   ``if``/``elif``/``else`` chains.

The compiler never raises on a malformed subgraph. Dangling references are
skipped, incomplete conditions become comments, and empty blocks get
``pass``, so a graph with a valid root always yields a complete script.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from dialogforge.config import CompilerConfig
from dialogforge.export.renpy_syntax import (
    background_tag,
    emotion_tag,
    escape_text,
    format_number,
    format_value,
    is_statement,
    label_base,
    pad,
    quote,
    sanitize_identifier,
)
from dialogforge.graph.errors import IssueKind
from dialogforge.graph.paths import as_number
from dialogforge.models.nodes import (
    ChangeVariableNode,
    DialogueNode,
    IfStatementNode,
    PlaySoundNode,
    SceneDescriptionNode,
    SetBackgroundNode,
    SetMusicNode,
    SetVariableNode,
    Speaker,
    SwitchCaseNode,
    VariableOp,
    is_branch,
    is_dialogue,
    is_npc,
    is_player,
    is_side_effect,
)
from dialogforge.observability.logging import get_logger

if TYPE_CHECKING:
    from dialogforge.models.dialog import DialogGraph
    from dialogforge.models.nodes import DialogNode
    from dialogforge.storage.records import RecordLookup

log = get_logger(__name__)

SCREEN_TRANSFORM = "Transform(xsize=config.screen_width, ysize=config.screen_height)"


@dataclass
class _EmissionContext:
    """Bookkeeping for one emission walk (the main flow or one label body).

    Attributes:
        emitted_effects: Side-effect nodes whose effect is already in the output.
        active: Nodes on the current traversal stack.
    """

    emitted_effects: set[str] = field(default_factory=set)
    active: set[str] = field(default_factory=set)


class RenPyCompiler:
    """Compile one dialog graph to Ren'Py script text.

    A compiler instance is single-use: build it, call :meth:`compile`.
    """

    def __init__(
        self,
        graph: DialogGraph,
        records: RecordLookup | None = None,
        config: CompilerConfig | None = None,
    ) -> None:
        self.graph = graph
        self.records = records
        self.config = config or CompilerConfig()
        self.root_id = graph.find_root_id()
        self._characters: dict[str, str] = {}
        self._declarations: list[str] = []
        self._variables: list[str] = []
        self._variable_names: dict[str, str] = {}
        self._labels: dict[str, str] = {}
        self._pending_labels: list[str] = []

    def compile(self) -> str:
        """Produce the complete script."""
        self._declare_characters()
        self._variables = self._discover_variables()
        self._labels = self._assign_labels()

        lines: list[str] = [self.config.header, "", ""]
        lines.extend(self._character_lines())
        lines.extend(self._scene_lines())
        lines.extend(
            [
                "transform half_size:",
                f"    zoom {format_number(self.config.sprite_zoom)}",
                "    xalign 0.5",
                "    yalign 0.0",
                "",
                "# The game starts here.",
                "",
                "label start:",
                "",
            ]
        )

        if self._variables:
            lines.append(f"{pad(1)}# Initialize variables")
            lines.extend(f"{pad(1)}$ {name} = 0" for name in self._variables)
            lines.append("")

        if self.root_id is None:
            lines.append(f"{pad(1)}# No dialog nodes found.")
        else:
            lines.extend(self._emit_node(self.root_id, 1, _EmissionContext()))

        lines.extend(["", f"{pad(1)}# This ends the game.", f"{pad(1)}return", ""])
        lines.extend(self._label_blocks())

        log.info(
            "renpy_compile_complete",
            dialog=self.graph.id,
            nodes=len(self.graph.nodes),
            labels=len(self._labels),
            variables=len(self._variables),
        )
        return "\n".join(lines)

    # -------------------------------------------------------------------------
    # Preparation
    # -------------------------------------------------------------------------

    def _declare_characters(self) -> None:
        """Map character IDs used by NPC lines to unique variable names."""
        if self.records is None:
            return
        for node in self.graph.nodes.values():
            if not isinstance(node, DialogueNode) or node.speaker != Speaker.NPC:
                continue
            char_id = node.character_id
            if not char_id or char_id in self._characters:
                continue
            character = self.records.get_character(char_id)
            if character is None:
                log.debug("character_not_found", character_id=char_id, node_id=node.id)
                continue
            var = _unique(sanitize_identifier(character.name), set(self._characters.values()))
            self._characters[char_id] = var
            self._declarations.append(f"define {var} = Character({quote(character.name)})")

    def _character_lines(self) -> list[str]:
        if not self._declarations:
            return []
        return [
            "# Declare characters used by this game. The color argument colorizes the",
            "# name of the character.",
            "",
            *self._declarations,
            "",
        ]

    def _scene_lines(self) -> list[str]:
        if not self.graph.scene_id or self.records is None:
            return []
        scene = self.records.get_scene(self.graph.scene_id)
        if scene is None or not scene.description.strip():
            return []
        return [f"# Scene: {escape_text(scene.description.strip(), text_tags=False)}", ""]

    def _successors(self, node: DialogNode) -> list[str]:
        targets = list(node.child_node_ids)
        if isinstance(node, SwitchCaseNode):
            targets.extend(case.node_id for case in node.cases if case.node_id)
        return [t for t in targets if t in self.graph.nodes]

    def _discover_variables(self) -> list[str]:
        """Sanitised variable names referenced from the root, in preorder."""
        found: dict[str, None] = {}
        if self.root_id is None:
            return []
        seen: set[str] = set()
        stack = [self.root_id]
        while stack:
            node_id = stack.pop()
            if node_id in seen:
                continue
            seen.add(node_id)
            node = self.graph.nodes[node_id]
            name = ""
            if isinstance(node, SetVariableNode | ChangeVariableNode):
                name = node.name
            elif isinstance(node, IfStatementNode | SwitchCaseNode):
                name = node.variable
            if name.strip():
                found.setdefault(self._variable(name), None)
            stack.extend(reversed(self._successors(node)))
        return list(found)

    def _variable(self, name: str) -> str:
        """Script name for a story variable, kept apart from character names.

        Names that sanitise alike share one variable. A name taken by a
        character declaration gets a numeric suffix.
        """
        base = sanitize_identifier(name, fallback="var")
        if base not in self._variable_names:
            taken = set(self._characters.values()) | set(self._variable_names.values())
            self._variable_names[base] = _unique(base, taken)
        return self._variable_names[base]

    def _assign_labels(self) -> dict[str, str]:
        """Give every merge node a unique label name."""
        merge_ids = [
            nid
            for nid, node in self.graph.nodes.items()
            if is_dialogue(node) and len(self.graph.parents_of(nid)) > 1
        ]
        for nid in self._loop_entries():
            if nid not in merge_ids:
                merge_ids.append(nid)

        labels: dict[str, str] = {}
        taken = {"start"}
        for nid in merge_ids:
            name = _unique(label_base(nid), taken)
            taken.add(name)
            labels[nid] = name
        return labels

    def _loop_entries(self) -> list[str]:
        """Dialogue nodes targeted by a back edge of a DFS from the root."""
        if self.root_id is None:
            return []
        entries: list[str] = []
        on_stack = {self.root_id}
        done: set[str] = set()
        frames = [(self.root_id, iter(self._successors(self.graph.nodes[self.root_id])))]
        while frames:
            node_id, successors = frames[-1]
            next_id = next(successors, None)
            if next_id is None:
                frames.pop()
                on_stack.discard(node_id)
                done.add(node_id)
                continue
            if next_id in on_stack:
                if is_dialogue(self.graph.nodes[next_id]) and next_id not in entries:
                    entries.append(next_id)
                continue
            if next_id in done:
                continue
            on_stack.add(next_id)
            frames.append((next_id, iter(self._successors(self.graph.nodes[next_id]))))
        return entries

    def _label_blocks(self) -> list[str]:
        """Emit each referenced label once, including labels referenced from labels."""
        lines: list[str] = []
        defined: set[str] = set()
        while self._pending_labels:
            node_id = self._pending_labels.pop(0)
            if node_id in defined:
                continue
            defined.add(node_id)
            lines.extend(["", f"label {self._labels[node_id]}:", ""])
            body = self._emit_node(node_id, 1, _EmissionContext(), defining=True)
            lines.extend(body)
            lines.extend([f"{pad(1)}return", ""])
        return lines

    # -------------------------------------------------------------------------
    # Emission
    # -------------------------------------------------------------------------

    def _jump(self, node_id: str, indent: int) -> list[str]:
        if node_id not in self._pending_labels:
            self._pending_labels.append(node_id)
        return [f"{pad(indent)}jump {self._labels[node_id]}"]

    def _emit_node(
        self,
        node_id: str,
        indent: int,
        ctx: _EmissionContext,
        *,
        defining: bool = False,
    ) -> list[str]:
        node = self.graph.nodes.get(node_id)
        if node is None:
            log.debug("dangling_node_skipped", issue=IssueKind.DANGLING_REFERENCE, node_id=node_id)
            return []
        if node_id in self._labels and not defining:
            return self._jump(node_id, indent)
        if node_id in ctx.active:
            return [f"{pad(indent)}# Loop back to {node_id}"]

        ctx.active.add(node_id)
        try:
            if isinstance(node, DialogueNode):
                if node.speaker == Speaker.NPC:
                    return self._emit_npc(node, indent, ctx)
                return self._emit_player(node, indent, ctx)
            if isinstance(node, IfStatementNode):
                return self._emit_if(node, indent, ctx)
            if isinstance(node, SwitchCaseNode):
                return self._emit_switch(node, indent, ctx)
            return self._emit_effect_node(node, indent, ctx)
        finally:
            ctx.active.discard(node_id)

    def _emit_npc(self, node: DialogueNode, indent: int, ctx: _EmissionContext) -> list[str]:
        lines: list[str] = []
        var = self._characters.get(node.character_id or "")

        if node.show_avatar and node.emotion:
            lines.extend(self._backgrounds_before(node, indent, ctx))
            if var is not None:
                lines.append(f"{pad(indent)}show {var} {emotion_tag(node.emotion)} at half_size")
                lines.append(f"{pad(indent)}with {self.config.transition}")

        text = quote(node.text)
        lines.append(f"{pad(indent)}{var} {text}" if var is not None else f"{pad(indent)}{text}")
        lines.extend(self._emit_children(node, indent, ctx))
        return lines

    def _backgrounds_before(
        self, node: DialogueNode, indent: int, ctx: _EmissionContext
    ) -> list[str]:
        """Pending background changes that must precede this NPC's avatar."""
        candidates = [
            c for c in self.graph.children_of(node.id) if isinstance(c, SetBackgroundNode)
        ]
        for parent in self.graph.parents_of(node.id):
            if not is_player(parent):
                continue
            for previous in self.graph.parents_of(parent.id):
                if is_npc(previous):
                    candidates.extend(
                        c
                        for c in self.graph.children_of(previous.id)
                        if isinstance(c, SetBackgroundNode)
                    )

        lines: list[str] = []
        for background in candidates:
            lines.extend(self._effect(background, indent, ctx))
        return lines

    def _emit_player(self, node: DialogueNode, indent: int, ctx: _EmissionContext) -> list[str]:
        """A player line reached outside a menu."""
        lines: list[str] = []
        if node.text.strip():
            if self._is_linear_continuation(node):
                lines.append(f"{pad(indent)}{quote(node.text)}")
            else:
                choice = escape_text(node.text, text_tags=False)
                lines.append(f"{pad(indent)}# Player choice: {choice}")
        lines.extend(self._emit_children(node, indent, ctx))
        return lines

    def _is_linear_continuation(self, node: DialogueNode) -> bool:
        parents = self.graph.parents_of(node.id)
        if len(parents) != 1:
            return False
        siblings = [c.id for c in self.graph.children_of(parents[0].id) if is_dialogue(c)]
        return siblings == [node.id]

    def _emit_children(self, node: DialogueNode, indent: int, ctx: _EmissionContext) -> list[str]:
        children = self.graph.children_of(node.id)
        effects = [c for c in children if is_side_effect(c)]
        dialogue = [c for c in children if isinstance(c, DialogueNode)]

        lines: list[str] = []
        for effect in effects:
            if dialogue and not is_branch(effect):
                lines.extend(self._effect(effect, indent, ctx))
            else:
                lines.extend(self._emit_node(effect.id, indent, ctx))

        if len(dialogue) == 1:
            lines.extend(self._emit_node(dialogue[0].id, indent, ctx))
        elif len(dialogue) > 1:
            if node.speaker == Speaker.NPC and all(is_player(c) for c in dialogue):
                lines.extend(self._emit_menu(dialogue, indent, ctx))
            elif node.speaker == Speaker.PLAYER:
                for child in dialogue:
                    lines.extend(self._emit_node(child.id, indent, ctx))
            else:
                lines.append(
                    f"{pad(indent)}# Note: Multiple dialog paths available, following first path"
                )
                lines.extend(self._emit_node(dialogue[0].id, indent, ctx))
        return lines

    def _emit_menu(
        self, choices: list[DialogueNode], indent: int, ctx: _EmissionContext
    ) -> list[str]:
        lines = [f"{pad(indent)}menu:"]
        for choice in choices:
            lines.append(f"{pad(indent + 1)}{quote(choice.text)}:")
            if choice.id in self._labels:
                body = self._jump(choice.id, indent + 2)
            elif choice.id in ctx.active:
                body = [f"{pad(indent + 2)}# Loop back to {choice.id}"]
            else:
                ctx.active.add(choice.id)
                try:
                    body = self._emit_children(choice, indent + 2, ctx)
                finally:
                    ctx.active.discard(choice.id)
            lines.extend(_block(body, indent + 2))
        return lines

    def _emit_if(self, node: IfStatementNode, indent: int, ctx: _EmissionContext) -> list[str]:
        if not node.variable.strip() or node.value is None:
            lines = [f"{pad(indent)}# Note: Incomplete condition, following first path"]
            if node.child_node_ids:
                lines.extend(self._emit_node(node.child_node_ids[0], indent, ctx))
            return lines

        var = self._variable(node.variable)
        if node.operator not in ("==", "!=") and as_number(node.value) is None:
            log.debug(
                "condition_not_numeric",
                issue=IssueKind.UNRESOLVED_EXPRESSION,
                node_id=node.id,
                value=node.value,
            )
        lines = [f"{pad(indent)}if {var} {node.operator} {format_value(node.value)}:"]
        true_branch: list[str] = []
        if node.child_node_ids:
            true_branch = self._emit_node(node.child_node_ids[0], indent + 1, ctx)
        lines.extend(_block(true_branch, indent + 1))

        if len(node.child_node_ids) > 1:
            lines.append(f"{pad(indent)}else:")
            false_branch = self._emit_node(node.child_node_ids[1], indent + 1, ctx)
            lines.extend(_block(false_branch, indent + 1))
        return lines

    def _emit_switch(self, node: SwitchCaseNode, indent: int, ctx: _EmissionContext) -> list[str]:
        children = node.child_node_ids
        if not node.variable.strip() or not node.cases:
            lines = [f"{pad(indent)}# Note: Switch without cases, following first path"]
            if children:
                lines.extend(self._emit_node(children[0], indent, ctx))
            return lines

        var = self._variable(node.variable)
        lines: list[str] = []
        for index, case in enumerate(node.cases):
            keyword = "if" if index == 0 else "elif"
            lines.append(f"{pad(indent)}{keyword} {var} == {format_value(case.value)}:")
            target = case.node_id or (children[index] if index < len(children) else None)
            body = self._emit_node(target, indent + 1, ctx) if target else []
            lines.extend(_block(body, indent + 1))

        if len(children) > len(node.cases):
            lines.append(f"{pad(indent)}else:")
            body = self._emit_node(children[len(node.cases)], indent + 1, ctx)
            lines.extend(_block(body, indent + 1))
        return lines

    def _emit_effect_node(
        self, node: DialogNode, indent: int, ctx: _EmissionContext
    ) -> list[str]:
        """A side effect followed by its continuation."""
        lines = self._effect(node, indent, ctx)
        children = node.child_node_ids
        if len(children) > 1:
            lines.append(f"{pad(indent)}# Note: Multiple paths available, following first path")
        if children:
            lines.extend(self._emit_node(children[0], indent, ctx))
        return lines

    def _effect(self, node: DialogNode, indent: int, ctx: _EmissionContext) -> list[str]:
        """The immediate statement of a side-effect node, at most once per context."""
        if node.id in ctx.emitted_effects:
            return []
        ctx.emitted_effects.add(node.id)
        prefix = pad(indent)

        if isinstance(node, SetVariableNode):
            if not node.name.strip():
                return []
            var = self._variable(node.name)
            return [f"{prefix}$ {var} = {format_value(node.value)}"]

        if isinstance(node, ChangeVariableNode):
            if not node.name.strip():
                return []
            var = self._variable(node.name)
            delta = as_number(node.value)
            if delta is None:
                return [f"{prefix}# Skipped change of {var}: non-numeric value"]
            op = "-=" if node.op == VariableOp.SUBTRACT else "+="
            return [f"{prefix}$ {var} {op} {format_number(delta)}"]

        if isinstance(node, SetBackgroundNode):
            if not node.image.strip():
                return []
            return [
                f"{prefix}scene {background_tag(node.image)} at {SCREEN_TRANSFORM}",
                f"{prefix}with {self.config.transition}",
            ]

        if isinstance(node, PlaySoundNode):
            if not node.file.strip():
                return []
            return [f"{prefix}play sound {quote(node.file.strip(), text_tags=False)}"]

        if isinstance(node, SetMusicNode):
            if not node.file.strip():
                return []
            statement = f"{prefix}play music {quote(node.file.strip(), text_tags=False)}"
            if node.fade_in:
                statement += f" fadein {format_number(node.fade_in)}"
            if node.fade_out:
                statement += f" fadeout {format_number(node.fade_out)}"
            return [statement]

        if isinstance(node, SceneDescriptionNode):
            if not node.text.strip():
                return []
            description = escape_text(node.text.strip(), text_tags=False)
            return [f"{prefix}# Scene Description: {description}"]

        return []


def _block(body: list[str], indent: int) -> list[str]:
    """Body lines of an indented block, with ``pass`` if it has no statement."""
    if any(is_statement(line) for line in body):
        return body
    return [*body, f"{pad(indent)}pass"]


def _unique(name: str, taken: set[str]) -> str:
    if name not in taken:
        return name
    n = 2
    while f"{name}_{n}" in taken:
        n += 1
    return f"{name}_{n}"


def compile_to_renpy(
    graph: DialogGraph,
    records: RecordLookup | None = None,
    config: CompilerConfig | None = None,
) -> str:
    """Compile *graph* to Ren'Py script text.

    Args:
        graph: Dialog to compile. Not modified.
        records: Character/scene lookup for declarations and the scene comment.
        config: Output options.

    Returns:
        The complete script.
    """
    return RenPyCompiler(graph, records, config).compile()
