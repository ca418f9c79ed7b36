"""Undo/Redo history for mindcanvas documents."""

from typing import Optional, List, Callable

from mindcanvas.models import Snapshot


DEFAULT_CAPACITY = 50


class HistoryStack:
    """Bounded list of snapshots with a cursor on the current one."""

    def __init__(self, initial: Snapshot, capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self._history: List[Snapshot] = [initial]
        self._descriptions: List[str] = [""]
        self._cursor = 0
        self._is_applying = False

        # Callbacks
        self.on_state_changed: Optional[Callable[[Snapshot], None]] = None

    def __len__(self) -> int:
        return len(self._history)

    @property
    def current(self) -> Snapshot:
        return self._history[self._cursor]

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def can_undo(self) -> bool:
        """Check if undo is available."""
        return self._cursor > 0

    @property
    def can_redo(self) -> bool:
        """Check if redo is available."""
        return self._cursor < len(self._history) - 1

    @property
    def undo_description(self) -> str:
        """Get description of the edit an undo would revert."""
        if self.can_undo:
            return self._descriptions[self._cursor]
        return ""

    @property
    def redo_description(self) -> str:
        """Get description of the edit a redo would reapply."""
        if self.can_redo:
            return self._descriptions[self._cursor + 1]
        return ""

    @property
    def is_applying(self) -> bool:
        """True while observers are reacting to an undo, redo or reset."""
        return self._is_applying

    def push(self, snapshot: Snapshot, description: str = "") -> bool:
        """Record a new snapshot, dropping the redo tail.

        Ignored while an undo/redo is being applied, so observers that react
        to the restored state cannot write it back as a fresh edit.
        """
        if self._is_applying:
            return False

        del self._history[self._cursor + 1:]
        del self._descriptions[self._cursor + 1:]
        self._history.append(snapshot)
        self._descriptions.append(description)

        # Trim history if needed
        while len(self._history) > self.capacity:
            self._history.pop(0)
            self._descriptions.pop(0)
        self._cursor = len(self._history) - 1

        self._notify_changed(applying=False)
        return True

    def undo(self) -> Optional[Snapshot]:
        """Step back one snapshot and return it."""
        if not self.can_undo:
            return None
        self._cursor -= 1
        self._notify_changed(applying=True)
        return self.current

    def redo(self) -> Optional[Snapshot]:
        """Step forward one snapshot and return it."""
        if not self.can_redo:
            return None
        self._cursor += 1
        self._notify_changed(applying=True)
        return self.current

    def reset(self, snapshot: Snapshot):
        """Clear all history and start over from ``snapshot``."""
        self._history = [snapshot]
        self._descriptions = [""]
        self._cursor = 0
        self._notify_changed(applying=True)

    def _notify_changed(self, applying: bool):
        """Notify that the current snapshot changed."""
        if not self.on_state_changed:
            return
        self._is_applying = applying
        try:
            self.on_state_changed(self.current)
        finally:
            self._is_applying = False
