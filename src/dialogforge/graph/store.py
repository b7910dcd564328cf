"""Mutable dialog graph store with bounded undo/redo.

The store owns exactly one live :class:`DialogGraph` and exposes the
mutation operations the editor and AI-integration code call between async
boundaries. Each operation is synchronous and leaves the graph with
symmetric edges.

Preconditions that fail (a missing node, a self-link) are silent no-ops by
default: the operation returns False and logs at debug level. A store built
with ``strict=True`` raises instead. There is no internal locking; callers
serialize mutations.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from dialogforge.graph.errors import InvalidEdgeError, IssueKind, NodeNotFoundError
from dialogforge.graph.history import DEFAULT_HISTORY_LIMIT, HistoryStack
from dialogforge.models.dialog import DialogGraph, NodePosition, new_dialog
from dialogforge.models.nodes import IDENTITY_FIELDS, NODE_ADAPTER, now_ms
from dialogforge.observability.logging import get_logger

if TYPE_CHECKING:
    from dialogforge.models.nodes import DialogNode

log = get_logger(__name__)

PositionLike = NodePosition | Mapping[str, float] | tuple[float, float]


def repair_root(graph: DialogGraph) -> bool:
    """Apply the root-repair policy in place.

    A root pointing to a missing node is cleared. A graph without a root but
    with nodes gets the parentless node with the lowest ID as root.

    Args:
        graph: Graph to repair.

    Returns:
        True if the root was changed.
    """
    original = graph.root_node_id
    if original is not None and original not in graph.nodes:
        log.info(
            "root_cleared",
            issue=IssueKind.STRUCTURAL_INCONSISTENCY,
            dialog=graph.id,
            root=original,
        )
        graph.root_node_id = None
    if graph.root_node_id is None and graph.nodes:
        graph.root_node_id = graph.find_root_id()
        if graph.root_node_id is not None:
            log.info(
                "root_selected",
                issue=IssueKind.STRUCTURAL_INCONSISTENCY,
                dialog=graph.id,
                root=graph.root_node_id,
            )
    return graph.root_node_id != original


class DialogStore:
    """The canonical dialog graph and its mutation operations.

    Attributes:
        history: Undo/redo snapshots of the graph.
        strict: Raise on failed preconditions instead of no-op.
    """

    def __init__(
        self,
        graph: DialogGraph | None = None,
        *,
        strict: bool = False,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
    ) -> None:
        self._graph = graph if graph is not None else new_dialog()
        self.strict = strict
        self.history = HistoryStack(limit=history_limit)

    def __repr__(self) -> str:
        return (
            f"DialogStore(dialog={self._graph.id!r}, nodes={len(self._graph.nodes)}, "
            f"root={self._graph.root_node_id!r}, history={len(self.history)})"
        )

    @property
    def graph(self) -> DialogGraph:
        """The live graph. Read through it; mutate through the store."""
        return self._graph

    def snapshot(self) -> DialogGraph:
        """Deep, independent copy of the live graph."""
        return self._graph.model_copy(deep=True)

    def load(self, graph: DialogGraph) -> None:
        """Replace the live graph wholesale (e.g. after import).

        Applies the root-repair policy and clears history, since snapshots
        of a different dialog are meaningless for undo.
        """
        repair_root(graph)
        self._graph = graph
        self.history.clear()
        log.debug("dialog_loaded", dialog=graph.id, nodes=len(graph.nodes))

    # -------------------------------------------------------------------------
    # Node Operations
    # -------------------------------------------------------------------------

    def get_node(self, node_id: str) -> DialogNode | None:
        return self._graph.nodes.get(node_id)

    def add_node(self, node: DialogNode) -> bool:
        """Insert a node; the first node of a rootless graph becomes root.

        Edges the node already declares are mirrored onto existing neighbours.
        Declared neighbours that don't exist are dropped.

        Returns:
            Always True.
        """
        graph = self._graph
        if node.id in graph.nodes:
            log.warning("node_replaced", node_id=node.id)
            self._detach(node.id)

        node.parent_node_ids = _dedupe(
            pid for pid in node.parent_node_ids if pid in graph.nodes and pid != node.id
        )
        node.child_node_ids = _dedupe(
            cid for cid in node.child_node_ids if cid in graph.nodes and cid != node.id
        )
        graph.nodes[node.id] = node
        for pid in node.parent_node_ids:
            parent = graph.nodes[pid]
            if node.id not in parent.child_node_ids:
                parent.child_node_ids.append(node.id)
        for cid in node.child_node_ids:
            child = graph.nodes[cid]
            if node.id not in child.parent_node_ids:
                child.parent_node_ids.append(node.id)

        if graph.root_node_id is None:
            graph.root_node_id = node.id
        self._touch()
        log.debug("node_added", node_id=node.id, kind=node.kind)
        return True

    def update_node(self, node_id: str, **updates: Any) -> bool:
        """Merge fields into a node and bump its ``updated_at``.

        Identity and edge fields are ignored; edges change only through
        :meth:`link_nodes` / :meth:`unlink_nodes`.

        Returns:
            True if the node exists and was updated.

        Raises:
            pydantic.ValidationError: If the merged fields are invalid for the kind.
        """
        node = self._graph.nodes.get(node_id)
        if node is None:
            return self._missing(node_id, "update_node")

        ignored = sorted(set(updates) & IDENTITY_FIELDS)
        if ignored:
            log.debug("update_fields_ignored", node_id=node_id, fields=ignored)
        merged = node.model_dump()
        merged.update({k: v for k, v in updates.items() if k not in IDENTITY_FIELDS})
        merged["updated_at"] = now_ms()
        self._graph.nodes[node_id] = NODE_ADAPTER.validate_python(merged)
        self._touch()
        return True

    def delete_node(self, node_id: str) -> bool:
        """Remove a node after stripping it from every neighbour's edge lists.

        If the node was the root, the root is re-selected by the repair policy.

        Returns:
            True if the node existed.
        """
        if node_id not in self._graph.nodes:
            return self._missing(node_id, "delete_node")

        self._detach(node_id)
        del self._graph.nodes[node_id]
        self._graph.node_positions.pop(node_id, None)
        if self._graph.root_node_id == node_id:
            self._graph.root_node_id = None
            repair_root(self._graph)
        self._touch()
        log.debug("node_deleted", node_id=node_id)
        return True

    # -------------------------------------------------------------------------
    # Edge Operations
    # -------------------------------------------------------------------------

    def link_nodes(self, parent_id: str, child_id: str) -> bool:
        """Add the edge ``parent -> child`` in both directions (idempotent).

        Returns:
            True if both endpoints exist and are distinct.
        """
        if not self._check_endpoints(parent_id, child_id, "link_nodes"):
            return False
        parent = self._graph.nodes[parent_id]
        child = self._graph.nodes[child_id]
        if child_id not in parent.child_node_ids:
            parent.child_node_ids.append(child_id)
        if parent_id not in child.parent_node_ids:
            child.parent_node_ids.append(parent_id)
        self._touch()
        return True

    def unlink_nodes(self, parent_id: str, child_id: str) -> bool:
        """Remove the edge ``parent -> child`` in both directions (idempotent).

        Returns:
            True if both endpoints exist and are distinct.
        """
        if not self._check_endpoints(parent_id, child_id, "unlink_nodes"):
            return False
        parent = self._graph.nodes[parent_id]
        child = self._graph.nodes[child_id]
        parent.child_node_ids = [cid for cid in parent.child_node_ids if cid != child_id]
        child.parent_node_ids = [pid for pid in child.parent_node_ids if pid != parent_id]
        self._touch()
        return True

    def update_node_positions(self, positions: Mapping[str, PositionLike]) -> None:
        """Merge layout coordinates. Never affects graph shape."""
        for node_id, position in positions.items():
            self._graph.node_positions[node_id] = _to_position(position)
        self._touch()

    # -------------------------------------------------------------------------
    # History
    # -------------------------------------------------------------------------

    def save_to_history(self) -> None:
        """Push a deep copy of the live graph onto the history stack."""
        self.history.push(self._graph)

    def undo(self) -> bool:
        """Restore the previous snapshot.

        If the live graph has changed since the current snapshot, it is saved
        first so :meth:`redo` can return to it.

        Returns:
            True if the live graph was replaced.
        """
        current = self.history.current()
        if current is not None and current.model_dump() != self._graph.model_dump():
            self.history.push(self._graph)
        restored = self.history.undo()
        if restored is None:
            return False
        self._graph = restored
        log.debug("undo", index=self.history.index)
        return True

    def redo(self) -> bool:
        """Re-apply the next snapshot.

        Returns:
            True if the live graph was replaced.
        """
        restored = self.history.redo()
        if restored is None:
            return False
        self._graph = restored
        log.debug("redo", index=self.history.index)
        return True

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _touch(self) -> None:
        self._graph.updated_at = now_ms()

    def _detach(self, node_id: str) -> None:
        """Strip *node_id* from its neighbours' edge lists."""
        node = self._graph.nodes[node_id]
        for pid in node.parent_node_ids:
            parent = self._graph.nodes.get(pid)
            if parent is not None:
                parent.child_node_ids = [cid for cid in parent.child_node_ids if cid != node_id]
        for cid in node.child_node_ids:
            child = self._graph.nodes.get(cid)
            if child is not None:
                child.parent_node_ids = [pid for pid in child.parent_node_ids if pid != node_id]

    def _check_endpoints(self, parent_id: str, child_id: str, operation: str) -> bool:
        for node_id in (parent_id, child_id):
            if node_id not in self._graph.nodes:
                return self._missing(node_id, operation)
        if parent_id == child_id:
            if self.strict:
                raise InvalidEdgeError(parent_id, child_id)
            log.debug("self_link_skipped", node_id=parent_id, operation=operation)
            return False
        return True

    def _missing(self, node_id: str, operation: str) -> bool:
        if self.strict:
            raise NodeNotFoundError(
                node_id, operation=operation, available=list(self._graph.nodes)
            )
        log.debug("node_missing", node_id=node_id, operation=operation)
        return False


def _dedupe(ids: Any) -> list[str]:
    seen: dict[str, None] = {}
    for item in ids:
        seen.setdefault(item, None)
    return list(seen)


def _to_position(position: PositionLike) -> NodePosition:
    if isinstance(position, NodePosition):
        return position.model_copy()
    if isinstance(position, tuple):
        x, y = position
        return NodePosition(x=x, y=y)
    return NodePosition.model_validate(dict(position))
