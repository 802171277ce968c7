"""Bounded undo/redo history of applied transformations."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import Optional

from .models.edit_state import EditState

logger = logging.getLogger("vioraedit")

DEFAULT_CAPACITY = 50


@dataclass
class HistoryEntry:
    """State and media location before and after one applied transformation.

    ``post_location`` stays unset until the run that produced it succeeds;
    only completed entries can be recorded.
    """
    pre_state: EditState
    pre_location: str
    post_state: EditState
    post_location: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return bool(self.post_location)

    def complete(self, post_location: str) -> "HistoryEntry":
        """Bind the output location; allowed once."""
        if self.post_location:
            raise ValueError("History entry already has an output location")
        if not post_location:
            raise ValueError("Output location cannot be empty")
        self.post_location = post_location
        return self


class EditHistory:
    """Undo stack feeding a redo stack, both LIFO.

    Recording a new entry drops every redo entry, and the undo stack keeps
    at most ``capacity`` entries, evicting the oldest first. Both
    ``undo`` and ``redo`` only move entries between the stacks; swapping
    the working media location is the caller's job.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError("History capacity must be at least 1")
        self.capacity = capacity
        self._undo: deque[HistoryEntry] = deque(maxlen=capacity)
        self._redo: deque[HistoryEntry] = deque(maxlen=capacity)

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    def __len__(self) -> int:
        return len(self._undo)

    @property
    def redo_depth(self) -> int:
        return len(self._redo)

    def record(self, entry: HistoryEntry) -> None:
        """Push a completed entry and invalidate the redo branch."""
        if not entry.is_complete:
            raise ValueError("Cannot record an entry without an output location")
        if len(self._undo) == self.capacity:
            logger.debug("History full, evicting oldest entry")
        self._undo.append(entry)
        self._redo.clear()

    def record_applied(
        self,
        pre_state: EditState,
        pre_location: str,
        post_state: EditState,
        post_location: str,
    ) -> HistoryEntry:
        entry = HistoryEntry(pre_state, pre_location, post_state).complete(post_location)
        self.record(entry)
        return entry

    def undo(self) -> Optional[tuple[EditState, str]]:
        """Pop the latest entry onto the redo stack.

        Returns:
            ``(pre_state, pre_location)`` to restore, or None if there is
            nothing to undo.
        """
        if not self._undo:
            return None
        entry = self._undo.pop()
        self._redo.append(entry)
        return entry.pre_state, entry.pre_location

    def redo(self) -> Optional[tuple[EditState, str]]:
        """Mirror of :meth:`undo`; returns ``(post_state, post_location)``."""
        if not self._redo:
            return None
        entry = self._redo.pop()
        self._undo.append(entry)
        return entry.post_state, entry.post_location

    def clear(self) -> None:
        self._undo.clear()
        self._redo.clear()
