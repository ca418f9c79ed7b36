"""Debounced persistence on the GLib main loop."""

import logging
import sqlite3
from typing import Callable, Optional

from gi.repository import GLib

from mindcanvas.payload import PayloadError

logger = logging.getLogger("mindcanvas.autosave")


class DebouncedSaver:
    """Run ``save`` once the document has been quiet for ``delay_ms``.

    Every ``schedule`` call cancels the armed timer and starts a new one, so
    a burst of edits produces a single write. Failed writes are logged and
    not retried.
    """

    def __init__(self, save: Callable[[], None], delay_ms: int = 1000):
        self._save = save
        self.delay_ms = delay_ms
        self._timeout_id: Optional[int] = None

    @property
    def pending(self) -> bool:
        return self._timeout_id is not None

    def schedule(self):
        """Arm (or re-arm) the save timer."""
        self.cancel()
        self._timeout_id = GLib.timeout_add(self.delay_ms, self._on_timeout)

    def cancel(self):
        """Drop a pending save without running it."""
        if self._timeout_id:
            GLib.source_remove(self._timeout_id)
            self._timeout_id = None

    def flush(self) -> bool:
        """Run a pending save right away. Returns True if one was pending."""
        if not self.pending:
            return False
        self.cancel()
        self._run()
        return True

    def _on_timeout(self) -> bool:
        self._timeout_id = None
        self._run()
        return GLib.SOURCE_REMOVE

    def _run(self):
        try:
            self._save()
        except (sqlite3.Error, OSError, PayloadError):
            logger.exception("Autosave failed")
