"""Data models for dialog graphs and the records they reference."""

from dialogforge.models.dialog import DialogGraph, NodePosition, new_dialog
from dialogforge.models.nodes import (
    COMPARISON_OPERATORS,
    NODE_ADAPTER,
    NODE_KINDS,
    ChangeVariableNode,
    DialogNode,
    DialogueNode,
    IfStatementNode,
    PlaySoundNode,
    SceneDescriptionNode,
    SetBackgroundNode,
    SetMusicNode,
    SetVariableNode,
    Speaker,
    SwitchCaseBranch,
    SwitchCaseNode,
    VariableOp,
    create_dialogue_node,
    create_node,
    is_branch,
    is_dialogue,
    is_npc,
    is_player,
    is_side_effect,
    new_node_id,
    node_to_dict,
    now_ms,
)
from dialogforge.models.records import Character, Scene

__all__ = [
    "COMPARISON_OPERATORS",
    "NODE_ADAPTER",
    "NODE_KINDS",
    "ChangeVariableNode",
    "Character",
    "DialogGraph",
    "DialogNode",
    "DialogueNode",
    "IfStatementNode",
    "NodePosition",
    "PlaySoundNode",
    "Scene",
    "SceneDescriptionNode",
    "SetBackgroundNode",
    "SetMusicNode",
    "SetVariableNode",
    "Speaker",
    "SwitchCaseBranch",
    "SwitchCaseNode",
    "VariableOp",
    "create_dialogue_node",
    "create_node",
    "is_branch",
    "is_dialogue",
    "is_npc",
    "is_player",
    "is_side_effect",
    "new_dialog",
    "new_node_id",
    "node_to_dict",
    "now_ms",
]
