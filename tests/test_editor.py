"""
Tests for the editing session: history, autosave wiring and map switching.
"""
import json

import pytest

pytest.importorskip("gi.repository.GLib")

from mindcanvas.catalog import map_key
from mindcanvas.config import Settings
from mindcanvas.editor import MindMapEditor
from mindcanvas.graph import find_root


@pytest.fixture
def editor(storage):
    ed = MindMapEditor(storage, "alice", Settings(owner_id="alice", autosave_delay_ms=10000))
    ed.open()
    yield ed
    ed.saver.cancel()


class TestEditing:
    """Test edits flowing into history."""

    def test_open_seeds_single_root(self, editor):
        assert len(editor.nodes) == 1
        assert not editor.can_undo

    def test_add_child_and_undo(self, editor):
        root = find_root(editor.snapshot)
        child = editor.add_child_node(root.id)
        assert editor.snapshot.get(child).parent_id == root.id
        assert editor.selected_nodes == [child]
        assert editor.undo()
        assert editor.snapshot.get(child) is None
        assert editor.redo()
        assert editor.snapshot.get(child) is not None

    def test_rejected_edit_records_nothing(self, editor):
        root = find_root(editor.snapshot)
        assert not editor.delete_selected([root.id])
        assert not editor.add_connection(root.id, root.id)
        assert len(editor.history) == 1

    def test_sibling_of_root_is_child(self, editor):
        root = find_root(editor.snapshot)
        node_id = editor.add_sibling_node(root.id)
        assert editor.snapshot.get(node_id).parent_id == root.id

    def test_cut_and_paste(self, editor):
        root = find_root(editor.snapshot)
        child = editor.add_child_node(root.id)
        editor.selected_nodes = [child]
        assert editor.cut_selected()
        assert editor.snapshot.get(child) is None
        pasted = editor.paste()
        assert len(pasted) == 1
        assert editor.snapshot.get(pasted[0]).parent_id is None

    def test_edit_arms_autosave(self, editor):
        root = find_root(editor.snapshot)
        assert not editor.saver.pending
        editor.update_node(root.id, text="Plan")
        assert editor.saver.pending


class TestDragging:
    """Test drag commit into history."""

    def test_click_without_move_records_nothing(self, editor):
        root = find_root(editor.snapshot)
        editor.begin_drag(root.id, 5, 5)
        assert not editor.end_drag()
        assert not editor.can_undo

    def test_drag_commits_one_entry(self, editor):
        root = find_root(editor.snapshot)
        child = editor.add_child_node(root.id)
        editor.begin_drag(root.id, 0, 0)
        editor.drag_to(10, 0)
        editor.drag_to(20, 0)
        assert editor.nodes != editor.snapshot.nodes
        assert editor.end_drag()
        assert editor.snapshot.get(root.id).x == root.x + 20
        assert len(editor.history) == 3
        editor.undo()
        assert editor.snapshot.get(child) is not None
        assert editor.snapshot.get(root.id).x == root.x


class TestPersistence:
    """Test saving and map switching."""

    def test_flush_writes_payload(self, storage, editor):
        root = find_root(editor.snapshot)
        editor.update_node(root.id, text="Saved text")
        editor.close()
        assert "Saved text" in storage.get(map_key("alice", editor.current_map_id))

    def test_undo_saves_but_does_not_push(self, storage, editor):
        root = find_root(editor.snapshot)
        editor.update_node(root.id, text="v1")
        editor.saver.flush()
        editor.undo()
        assert editor.saver.pending
        assert editor.can_redo
        editor.saver.flush()
        assert "v1" not in storage.get(map_key("alice", editor.current_map_id))

    def test_switch_flushes_and_reloads(self, storage, editor):
        first = editor.current_map_id
        root = find_root(editor.snapshot)
        editor.update_node(root.id, text="First map")
        second = editor.create_map("Second")
        assert "First map" in storage.get(map_key("alice", first))
        assert editor.current_map_id == second
        assert not editor.can_undo

        assert editor.switch_map(first)
        assert find_root(editor.snapshot).text == "First map"
        assert not editor.can_undo

    def test_delete_current_map_loads_fallback(self, editor):
        first = editor.current_map_id
        second = editor.create_map("Second")
        assert editor.delete_map(second)
        assert editor.current_map_id == first
        assert not editor.delete_map(first)

    def test_refused_delete_keeps_pending_edits(self, storage, editor):
        root = find_root(editor.snapshot)
        editor.add_child_node(root.id)
        assert not editor.delete_map(editor.current_map_id)
        assert editor.saver.pending
        editor.close()
        stored = json.loads(storage.get(map_key("alice", editor.current_map_id)))
        assert stored["metadata"]["nodeCount"] == 2

    def test_save_as(self, editor):
        root = find_root(editor.snapshot)
        editor.update_node(root.id, text="Keep me")
        new_id = editor.save_as("Copy")
        assert editor.current_map_id == new_id
        assert find_root(editor.snapshot).text == "Keep me"

    def test_export_and_import_file(self, tmp_path, editor):
        root = find_root(editor.snapshot)
        editor.add_child_node(root.id, "Exported")
        path = editor.export_to_file(tmp_path / "map.json")
        editor.undo()
        assert editor.import_from_file(path)
        assert any(n.text == "Exported" for n in editor.nodes)
        assert editor.can_undo
