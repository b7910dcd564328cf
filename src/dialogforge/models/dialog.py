"""The dialog graph document.

A dialog is an arena of nodes keyed by stable IDs. Edges are ID lists kept
symmetric: every ``child_node_ids`` entry appears in the child's
``parent_node_ids`` and vice versa.

This is also the persistence format::

    {id, characterId?, rootNodeId, nodes: {id: Node}, nodePositions?,
     sceneId?, createdAt, updatedAt}
"""

from __future__ import annotations

import uuid
from typing import Any

from pydantic import BaseModel, Field

from dialogforge.models.nodes import WIRE_CONFIG, DialogNode, now_ms


class NodePosition(BaseModel):
    """Cosmetic layout coordinates of a node in the editor."""

    model_config = WIRE_CONFIG

    x: float = 0.0
    y: float = 0.0


class DialogGraph(BaseModel):
    """A rooted, possibly cyclic graph of dialog nodes."""

    model_config = WIRE_CONFIG

    id: str = Field(min_length=1)
    character_id: str | None = None
    root_node_id: str | None = None
    nodes: dict[str, DialogNode] = Field(default_factory=dict)
    node_positions: dict[str, NodePosition] = Field(default_factory=dict)
    scene_id: str | None = None
    created_at: int = Field(default_factory=now_ms)
    updated_at: int = Field(default_factory=now_ms)

    def get_node(self, node_id: str | None) -> DialogNode | None:
        """Get a node by ID, or None if absent."""
        if node_id is None:
            return None
        return self.nodes.get(node_id)

    def has_node(self, node_id: str | None) -> bool:
        return node_id is not None and node_id in self.nodes

    def children_of(self, node_id: str) -> list[DialogNode]:
        """Existing children of a node in declared order (dangling IDs skipped)."""
        node = self.nodes.get(node_id)
        if node is None:
            return []
        return [self.nodes[cid] for cid in node.child_node_ids if cid in self.nodes]

    def parents_of(self, node_id: str) -> list[DialogNode]:
        """Existing parents of a node in declared order (dangling IDs skipped)."""
        node = self.nodes.get(node_id)
        if node is None:
            return []
        return [self.nodes[pid] for pid in node.parent_node_ids if pid in self.nodes]

    def find_root_id(self) -> str | None:
        """Resolve the effective root without modifying the graph.

        Returns the stored root when it references an existing node. Otherwise
        picks the parentless node with the lowest ID, or None for an empty or
        fully cyclic graph.
        """
        if self.root_node_id is not None and self.root_node_id in self.nodes:
            return self.root_node_id
        parentless = sorted(nid for nid, node in self.nodes.items() if not node.parent_node_ids)
        return parentless[0] if parentless else None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the JSON persistence format."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DialogGraph:
        """Parse the JSON persistence format."""
        return cls.model_validate(data)


def new_dialog(character_id: str | None = None, dialog_id: str | None = None) -> DialogGraph:
    """Create an empty dialog with no root."""
    stamp = now_ms()
    return DialogGraph(
        id=dialog_id or f"dialog_{uuid.uuid4().hex[:12]}",
        character_id=character_id,
        created_at=stamp,
        updated_at=stamp,
    )
