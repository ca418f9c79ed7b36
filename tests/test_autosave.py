"""
Tests for debounced persistence on the GLib main loop.
"""
import sqlite3

import pytest

GLib = pytest.importorskip("gi.repository.GLib")

from mindcanvas.autosave import DebouncedSaver
from mindcanvas.payload import PayloadError


def run_loop(ms):
    """Spin the default main loop for ``ms`` milliseconds."""
    loop = GLib.MainLoop()
    GLib.timeout_add(ms, loop.quit)
    loop.run()


class TestDebouncedSaver:
    """Test coalescing, flushing and failure handling."""

    def test_burst_is_coalesced(self):
        calls = []
        saver = DebouncedSaver(lambda: calls.append(1), delay_ms=30)
        for _ in range(5):
            saver.schedule()
        assert saver.pending
        run_loop(200)
        assert calls == [1]
        assert not saver.pending

    def test_flush_runs_immediately(self):
        calls = []
        saver = DebouncedSaver(lambda: calls.append(1), delay_ms=10000)
        saver.schedule()
        assert saver.flush()
        assert calls == [1]
        assert not saver.flush()

    def test_cancel_drops_pending(self):
        calls = []
        saver = DebouncedSaver(lambda: calls.append(1), delay_ms=20)
        saver.schedule()
        saver.cancel()
        run_loop(100)
        assert calls == []

    def test_failure_is_logged_not_raised(self, caplog):
        def broken():
            raise sqlite3.OperationalError("disk I/O error")

        saver = DebouncedSaver(broken, delay_ms=10000)
        saver.schedule()
        saver.flush()
        assert "Autosave failed" in caplog.text

    def test_unserializable_document_is_logged(self, caplog):
        def too_deep():
            raise PayloadError("Document tree is nested too deeply to serialize")

        saver = DebouncedSaver(too_deep, delay_ms=10000)
        saver.schedule()
        assert saver.flush()
        assert "Autosave failed" in caplog.text
