"""
Tests for the bounded undo/redo history.
"""
import pytest

from mindcanvas.history import HistoryStack
from mindcanvas.models import Node, Snapshot


def snap(label):
    return Snapshot([Node(id="R", text=str(label))], [])


class TestBasics:
    """Test push, undo and redo."""

    def test_starts_with_initial(self):
        history = HistoryStack(snap(0))
        assert len(history) == 1
        assert history.current == snap(0)
        assert not history.can_undo
        assert not history.can_redo
        assert history.undo() is None
        assert history.redo() is None

    def test_undo_redo(self):
        history = HistoryStack(snap(0))
        history.push(snap(1), "one")
        history.push(snap(2), "two")
        assert history.undo_description == "two"
        assert history.undo() == snap(1)
        assert history.redo_description == "two"
        assert history.undo() == snap(0)
        assert not history.can_undo
        assert history.redo() == snap(1)
        assert history.cursor == 1

    def test_push_discards_redo_tail(self):
        history = HistoryStack(snap(0))
        history.push(snap(1))
        history.push(snap(2))
        history.undo()
        history.push(snap(3))
        assert not history.can_redo
        assert len(history) == 3
        assert history.current == snap(3)

    def test_invalid_capacity(self):
        with pytest.raises(ValueError):
            HistoryStack(snap(0), capacity=0)


class TestBounds:
    """Test capacity eviction."""

    @pytest.mark.parametrize("extra", [1, 7])
    def test_capacity_is_respected(self, extra):
        history = HistoryStack(snap(0), capacity=50)
        for i in range(1, 50 + extra + 1):
            history.push(snap(i))
        assert len(history) == 50
        assert history.can_undo
        assert history.current == snap(50 + extra)

        for _ in range(49):
            assert history.undo() is not None
        assert not history.can_undo
        assert history.current == snap(extra + 1)
        assert history.undo() is None
        assert 0 <= history.cursor < len(history)

    def test_cursor_stays_on_pushed_after_eviction(self):
        history = HistoryStack(snap(0), capacity=3)
        for i in range(1, 6):
            history.push(snap(i))
        assert history.cursor == 2
        assert history.current == snap(5)


class TestReentrancy:
    """Test that observers of undo/redo cannot push."""

    def test_push_during_undo_is_ignored(self):
        history = HistoryStack(snap(0))
        history.push(snap(1))
        attempts = []

        def observer(current):
            attempts.append(history.push(Snapshot(current.nodes, current.connections)))

        history.on_state_changed = observer
        history.undo()
        assert attempts == [False]
        assert history.can_redo
        assert len(history) == 2

        # The guard is one-shot: regular pushes work again afterwards.
        history.on_state_changed = None
        assert history.push(snap(9))
        assert not history.can_redo

    def test_observer_sees_pushes(self):
        history = HistoryStack(snap(0))
        seen = []
        history.on_state_changed = seen.append
        history.push(snap(1))
        history.undo()
        history.redo()
        assert seen == [snap(1), snap(0), snap(1)]

    def test_reset(self):
        history = HistoryStack(snap(0))
        history.push(snap(1))
        history.reset(snap(7))
        assert len(history) == 1
        assert history.current == snap(7)
        assert not history.can_undo
