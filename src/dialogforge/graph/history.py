"""Bounded linear undo/redo history of whole-graph snapshots.

Snapshots are deep copies, so mutating the live graph can never corrupt a
stored entry and restoring an entry never aliases it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from dialogforge.observability.logging import get_logger

if TYPE_CHECKING:
    from dialogforge.models.dialog import DialogGraph

log = get_logger(__name__)

DEFAULT_HISTORY_LIMIT = 50


class HistoryStack:
    """Append-only ring of graph snapshots with a current index.

    Pushing after an undo discards the orphaned "future" entries. Once the
    count exceeds ``limit`` the oldest entry is evicted and the index moves
    down by one.
    """

    def __init__(self, limit: int = DEFAULT_HISTORY_LIMIT) -> None:
        if limit < 1:
            raise ValueError(f"History limit must be at least 1, got {limit}")
        self.limit = limit
        self._entries: list[DialogGraph] = []
        self._index = -1

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return (
            f"HistoryStack(entries={len(self._entries)}, index={self._index}, limit={self.limit})"
        )

    @property
    def index(self) -> int:
        """Index of the current entry, -1 when empty."""
        return self._index

    @property
    def can_undo(self) -> bool:
        return self._index > 0

    @property
    def can_redo(self) -> bool:
        return self._index < len(self._entries) - 1

    def current(self) -> DialogGraph | None:
        """The snapshot at the current index (not a copy), or None if empty."""
        if self._index < 0:
            return None
        return self._entries[self._index]

    def push(self, graph: DialogGraph) -> None:
        """Store a deep copy of *graph* as the newest entry."""
        del self._entries[self._index + 1 :]
        self._entries.append(graph.model_copy(deep=True))
        self._index = len(self._entries) - 1
        if len(self._entries) > self.limit:
            self._entries.pop(0)
            self._index -= 1
            log.debug("history_evicted_oldest", limit=self.limit)

    def undo(self) -> DialogGraph | None:
        """Step back one entry.

        Returns:
            Deep copy of the entry now current, or None at the lower boundary.
        """
        if not self.can_undo:
            return None
        self._index -= 1
        return self._entries[self._index].model_copy(deep=True)

    def redo(self) -> DialogGraph | None:
        """Step forward one entry.

        Returns:
            Deep copy of the entry now current, or None at the upper boundary.
        """
        if not self.can_redo:
            return None
        self._index += 1
        return self._entries[self._index].model_copy(deep=True)

    def clear(self) -> None:
        self._entries.clear()
        self._index = -1
