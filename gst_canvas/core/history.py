"""Bounded linear undo/redo stack of serialized scene snapshots."""

from __future__ import annotations

from typing import List, Optional

HISTORY_LIMIT = 50


class History:
    """
    A list of snapshots plus a cursor.

    Pushing after an undo drops every entry above the cursor. When the
    stack grows past ``limit`` the oldest entry is evicted, so at most
    ``limit`` snapshots are ever reachable.
    """

    def __init__(self, limit: int = HISTORY_LIMIT):
        if limit < 1:
            raise ValueError("History limit must be at least 1")
        self.limit = limit
        self._entries: List[str] = []
        self._index = -1

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def index(self) -> int:
        return self._index

    @property
    def current(self) -> Optional[str]:
        if self._index < 0:
            return None
        return self._entries[self._index]

    def entries(self) -> List[str]:
        return list(self._entries)

    # ------------------------------------------------------------------
    def reset(self, snapshot: str) -> None:
        self._entries = [snapshot]
        self._index = 0

    def push(self, snapshot: str) -> None:
        del self._entries[self._index + 1:]
        self._entries.append(snapshot)
        if len(self._entries) > self.limit:
            del self._entries[: len(self._entries) - self.limit]
        self._index = len(self._entries) - 1

    def can_undo(self) -> bool:
        return self._index > 0

    def can_redo(self) -> bool:
        return self._index < len(self._entries) - 1

    def undo(self) -> Optional[str]:
        """Step the cursor back; ``None`` at the bottom of the stack."""
        if not self.can_undo():
            return None
        self._index -= 1
        return self._entries[self._index]

    def redo(self) -> Optional[str]:
        if not self.can_redo():
            return None
        self._index += 1
        return self._entries[self._index]
