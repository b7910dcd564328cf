"""Dialog graph error types and issue taxonomy.

Most graph problems are not raised: the store repairs a broken root,
traversals skip dangling references and the compiler degrades to comments.
:class:`IssueKind` names those cases so validation reports and log events
can refer to them. Exceptions are reserved for callers that opt into a
strict contract.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from difflib import get_close_matches
from enum import StrEnum


class IssueKind(StrEnum):
    """Categories of graph problems the core tolerates."""

    STRUCTURAL_INCONSISTENCY = "structural_inconsistency"
    """Root missing or invalid. Auto-repaired on load, never raised."""

    DANGLING_REFERENCE = "dangling_reference"
    """An edge or switch case points to a nonexistent node. Skipped."""

    UNRESOLVED_EXPRESSION = "unresolved_expression"
    """A condition value that isn't numeric. Treated as a string literal."""

    ASYMMETRIC_EDGE = "asymmetric_edge"
    """A child edge without the matching parent edge, or vice versa."""


class DialogGraphError(Exception):
    """Base class for dialog graph errors."""


@dataclass
class NodeNotFoundError(DialogGraphError):
    """Raised by a strict store when an operation references a missing node.

    Attributes:
        node_id: The ID that was referenced but doesn't exist.
        operation: The store operation that was attempted.
        available: Valid node IDs, used for suggestions.
    """

    node_id: str
    operation: str = ""
    available: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        msg = f"Node '{self.node_id}' not found"
        if self.operation:
            msg += f" ({self.operation})"
        suggestions = self.suggestions()
        if suggestions:
            msg += f"; did you mean: {', '.join(suggestions)}"
        return msg

    def suggestions(self) -> list[str]:
        """Find similar IDs that might be typos."""
        return get_close_matches(self.node_id, self.available, n=3, cutoff=0.6)


@dataclass
class InvalidEdgeError(DialogGraphError):
    """Raised by a strict store when linking a node to itself."""

    parent_id: str
    child_id: str

    def __post_init__(self) -> None:
        super().__init__(f"Cannot link node '{self.parent_id}' to itself")
