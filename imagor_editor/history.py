"""
Undo/redo history of composition snapshots.

Snapshots are immutable (frozen dataclasses and tuples), so the history
stores them directly instead of deep-copying.  Saving a new snapshot
after an undo discards the redo branch.
"""

import logging
from dataclasses import dataclass

from imagor_editor.config import MAX_HISTORY
from imagor_editor.models import Layer, TransformParameters

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Snapshot:
    """Everything undo restores."""
    base: TransformParameters
    layers: tuple[Layer, ...]
    editing_context: str | None
    description: str = ""


class HistoryManager:
    """Linear undo/redo stack with a fixed depth."""

    def __init__(self, max_history: int = MAX_HISTORY):
        self.max_history = max_history
        self._undo: list[Snapshot] = []
        self._redo: list[Snapshot] = []

    def record(self, snapshot: Snapshot) -> None:
        """Remember the state *before* a change."""
        self._undo.append(snapshot)
        if len(self._undo) > self.max_history:
            self._undo.pop(0)
        self._redo.clear()
        logger.debug("History saved: %s (%d undo step(s))", snapshot.description, len(self._undo))

    def undo(self, current: Snapshot) -> Snapshot | None:
        """Return the state to restore, pushing *current* onto the redo stack."""
        if not self._undo:
            return None
        self._redo.append(current)
        return self._undo.pop()

    def redo(self, current: Snapshot) -> Snapshot | None:
        if not self._redo:
            return None
        self._undo.append(current)
        return self._redo.pop()

    def can_undo(self) -> bool:
        return bool(self._undo)

    def can_redo(self) -> bool:
        return bool(self._redo)

    def clear(self) -> None:
        self._undo.clear()
        self._redo.clear()
