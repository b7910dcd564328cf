"""Dialog graph store, traversals and validation."""

from __future__ import annotations

from dialogforge.graph.context import (
    PromptContext,
    build_prompt_context,
    generate_node_context,
    get_last_npc_character_id,
    node_tree_to_linear_chat,
)
from dialogforge.graph.errors import (
    DialogGraphError,
    InvalidEdgeError,
    IssueKind,
    NodeNotFoundError,
)
from dialogforge.graph.history import DEFAULT_HISTORY_LIMIT, HistoryStack
from dialogforge.graph.paths import (
    calculate_variables,
    collect_scene_descriptions,
    find_root_id,
    get_all_reachable_nodes,
    get_conversation_history,
    get_node_path,
)
from dialogforge.graph.store import DialogStore, repair_root
from dialogforge.graph.validation import ValidationCheck, ValidationReport, validate_dialog

__all__ = [
    "DEFAULT_HISTORY_LIMIT",
    "DialogGraphError",
    "DialogStore",
    "HistoryStack",
    "InvalidEdgeError",
    "IssueKind",
    "NodeNotFoundError",
    "PromptContext",
    "ValidationCheck",
    "ValidationReport",
    "build_prompt_context",
    "calculate_variables",
    "collect_scene_descriptions",
    "find_root_id",
    "generate_node_context",
    "get_all_reachable_nodes",
    "get_conversation_history",
    "get_last_npc_character_id",
    "get_node_path",
    "node_tree_to_linear_chat",
    "repair_root",
    "validate_dialog",
]
