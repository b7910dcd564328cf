"""Read-only traversals over a dialog graph.

Pure functions that never modify the graph and never raise: missing roots,
missing targets and unreachable nodes produce empty results. They compute
what the player has seen and what state they carry at a given node, which
the AI-integration code turns into prompts.

The *reachable set* of a target is its conversation path plus the
side-effect nodes hanging off that path (directly, or one hop further).
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Any

from dialogforge.models.nodes import (
    ChangeVariableNode,
    SceneDescriptionNode,
    SetVariableNode,
    VariableOp,
    is_dialogue,
    is_side_effect,
)
from dialogforge.observability.logging import get_logger

if TYPE_CHECKING:
    from dialogforge.models.dialog import DialogGraph
    from dialogforge.models.nodes import DialogNode

log = get_logger(__name__)


def find_root_id(graph: DialogGraph) -> str | None:
    """Resolve the effective root for read-only callers.

    Same policy as the store's root repair, without modifying the graph.
    """
    return graph.find_root_id()


def get_node_path(graph: DialogGraph, root_id: str | None, target_id: str) -> list[DialogNode]:
    """Find a path of real edges from *root_id* to *target_id*.

    A target may have several parents (merge point) and the graph may
    contain cycles. The search first walks backward from the target along
    a reverse adjacency built from ``child_node_ids``; if that never reaches
    the root it falls back to a forward DFS from the root.

    Args:
        graph: Graph to search.
        root_id: Start of the path.
        target_id: End of the path.

    Returns:
        Nodes from root to target inclusive, or ``[]`` if no path exists.
    """
    nodes = graph.nodes
    if root_id is None or root_id not in nodes or target_id not in nodes:
        return []
    if root_id == target_id:
        return [nodes[root_id]]

    path_ids = _backward_path(graph, root_id, target_id)
    if path_ids is None:
        path_ids = _forward_path(graph, root_id, target_id)
    if path_ids is None:
        log.debug("node_path_not_found", root=root_id, target=target_id)
        return []
    return [nodes[nid] for nid in path_ids]


def _reverse_adjacency(graph: DialogGraph) -> dict[str, list[str]]:
    """Map each node to the parents that list it as a child."""
    parents: dict[str, list[str]] = {nid: [] for nid in graph.nodes}
    for nid, node in graph.nodes.items():
        for cid in node.child_node_ids:
            if cid in parents and nid not in parents[cid]:
                parents[cid].append(nid)
    return parents


def _backward_path(graph: DialogGraph, root_id: str, target_id: str) -> list[str] | None:
    parents = _reverse_adjacency(graph)
    visited: set[str] = set()
    trail: list[str] = []

    # Iterative DFS: each frame is (node_id, iterator over its parents)
    visited.add(target_id)
    trail.append(target_id)
    stack = [iter(parents[target_id])]
    while stack:
        next_id = next(stack[-1], None)
        if next_id is None:
            stack.pop()
            trail.pop()
            continue
        if next_id in visited:
            continue
        visited.add(next_id)
        trail.append(next_id)
        if next_id == root_id:
            return list(reversed(trail))
        stack.append(iter(parents[next_id]))
    return None


def _forward_path(graph: DialogGraph, root_id: str, target_id: str) -> list[str] | None:
    nodes = graph.nodes
    visited = {root_id}
    trail = [root_id]
    stack = [iter(nodes[root_id].child_node_ids)]
    while stack:
        next_id = next(stack[-1], None)
        if next_id is None:
            stack.pop()
            trail.pop()
            continue
        if next_id in visited or next_id not in nodes:
            continue
        visited.add(next_id)
        trail.append(next_id)
        if next_id == target_id:
            return trail
        stack.append(iter(nodes[next_id].child_node_ids))
    return None


def get_conversation_history(graph: DialogGraph, target_id: str) -> list[DialogNode]:
    """Dialogue nodes on the path from the resolved root to *target_id*.

    Side-effect nodes on the path are skipped.
    """
    path = get_node_path(graph, find_root_id(graph), target_id)
    return [node for node in path if is_dialogue(node)]


def get_all_reachable_nodes(graph: DialogGraph, target_id: str) -> list[DialogNode]:
    """The conversation path plus the side-effect nodes attached to it.

    For each path node in order, its side-effect children and parents are
    added, then side-effect neighbours of those one hop further.

    Returns:
        Path nodes first in path order, then side-effect nodes grouped by
        the path node that owns them. No node appears twice.
    """
    history = get_conversation_history(graph, target_id)
    ordered: dict[str, DialogNode] = {node.id: node for node in history}

    for path_node in history:
        direct = _side_effect_neighbours(graph, path_node)
        for effect in direct:
            ordered.setdefault(effect.id, effect)
        for effect in direct:
            for further in _side_effect_neighbours(graph, effect):
                ordered.setdefault(further.id, further)
    return list(ordered.values())


def _side_effect_neighbours(graph: DialogGraph, node: DialogNode) -> list[DialogNode]:
    neighbours = graph.children_of(node.id) + graph.parents_of(node.id)
    return [n for n in neighbours if is_side_effect(n)]


def calculate_variables(graph: DialogGraph, target_id: str) -> dict[str, Any]:
    """Fold variable nodes in the reachable set of *target_id*.

    ``set_variable`` overwrites. ``change_variable`` treats an unset variable
    as ``0`` and adds or subtracts; it leaves the value untouched when the
    current value or the delta is not numeric.

    Returns:
        Variable name to value. Empty when no variable node is reachable.
    """
    variables: dict[str, Any] = {}
    for node in get_all_reachable_nodes(graph, target_id):
        if isinstance(node, SetVariableNode):
            if node.name:
                variables[node.name] = node.value
        elif isinstance(node, ChangeVariableNode):
            if not node.name:
                continue
            current = as_number(variables.get(node.name, 0))
            delta = as_number(node.value)
            if current is None or delta is None:
                log.debug("change_variable_skipped", variable=node.name, node_id=node.id)
                continue
            variables[node.name] = current + delta if node.op == VariableOp.ADD else current - delta
    return variables


def collect_scene_descriptions(graph: DialogGraph, target_id: str) -> list[str]:
    """Texts of the scene-description nodes reachable from *target_id*, in order."""
    return [
        node.text.strip()
        for node in get_all_reachable_nodes(graph, target_id)
        if isinstance(node, SceneDescriptionNode) and node.text.strip()
    ]


def as_number(value: Any) -> int | float | None:
    """Interpret *value* as a number, or None if it isn't one.

    Booleans are not numbers here. Numeric strings are parsed, integers
    preferred over floats.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int | float):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            number = float(text)
        except ValueError:
            return None
        return number if math.isfinite(number) else None
    return None
