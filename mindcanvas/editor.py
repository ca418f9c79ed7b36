"""Editing session: the active map, its history and autosave."""

import logging
from typing import Optional, List, Callable, Iterable, Tuple

from mindcanvas import graph
from mindcanvas.autosave import DebouncedSaver
from mindcanvas.catalog import MapCatalog, MigrationResult
from mindcanvas.config import Settings
from mindcanvas.drag import DragSession
from mindcanvas.history import HistoryStack
from mindcanvas.models import Node, Connection, Snapshot, Clipboard
from mindcanvas.payload import encode_document, load_from_file, save_to_file
from mindcanvas.storage import StorageAdapter

logger = logging.getLogger("mindcanvas.editor")


class MindMapEditor:
    """Owns the history of the active map and routes edits through it.

    Every committed edit lands in the history, and the history observer arms
    the debounced save. Switching maps flushes the pending save and then
    rebuilds the history from the newly loaded document.
    """

    def __init__(self, storage: StorageAdapter, owner_id: Optional[str] = None,
                 settings: Optional[Settings] = None):
        self.settings = settings or Settings()
        self.catalog = MapCatalog(storage, owner_id or self.settings.owner_id)
        self.history: Optional[HistoryStack] = None
        self.drag = DragSession()
        self.saver = DebouncedSaver(self.save, self.settings.autosave_delay_ms)

        self.selected_nodes: List[str] = []
        self.selected_connection: Optional[str] = None
        self.clipboard = Clipboard()

        # Callbacks
        self.on_changed: Optional[Callable[[Snapshot], None]] = None
        self.on_map_loaded: Optional[Callable[[str], None]] = None

    def open(self) -> MigrationResult:
        """Load the owner's catalog and the current map."""
        result = self.catalog.load()
        if result.migrated:
            logger.info("Legacy document adopted as map %s", result.map_id)
        self._load_current()
        return result

    def close(self):
        """Write any pending changes."""
        self.saver.flush()

    # ==================== State ====================

    @property
    def snapshot(self) -> Snapshot:
        return self.history.current

    @property
    def nodes(self) -> Tuple[Node, ...]:
        """Nodes to draw; a drag in progress shows its preview."""
        if self.drag.active:
            return tuple(self.drag.preview_nodes())
        return self.snapshot.nodes

    @property
    def connections(self) -> Tuple[Connection, ...]:
        return self.snapshot.connections

    @property
    def current_map_id(self) -> Optional[str]:
        return self.catalog.current_map_id

    @property
    def can_undo(self) -> bool:
        return self.history.can_undo

    @property
    def can_redo(self) -> bool:
        return self.history.can_redo

    def commit(self, snapshot: Snapshot, description: str = "") -> bool:
        """Record ``snapshot`` as the next history entry.

        Returns False when the edit was rejected (the operation handed back
        the current snapshot) or when an undo/redo is being applied.
        """
        if snapshot is self.snapshot:
            return False
        return self.history.push(snapshot, description)

    # ==================== Node Operations ====================

    def add_node(self, parent_id: Optional[str] = None, text: str = graph.DEFAULT_NODE_TEXT,
                 position: Optional[Tuple[float, float]] = None) -> Optional[str]:
        snapshot, node_id = graph.add_node(self.snapshot, parent_id, text, position)
        if self.commit(snapshot, "Add node"):
            self.selected_nodes = [node_id]
            return node_id
        return None

    def add_child_node(self, parent_id: str, text: str = graph.DEFAULT_NODE_TEXT) -> Optional[str]:
        snapshot, node_id = graph.add_child_node(self.snapshot, parent_id, text)
        if self.commit(snapshot, "Add child"):
            self.selected_nodes = [node_id]
            return node_id
        return None

    def add_sibling_node(self, node_id: str) -> Optional[str]:
        """Add a node next to ``node_id``; a root gets a child instead."""
        node = self.snapshot.get(node_id)
        if node is None:
            return None
        return self.add_child_node(node.parent_id or node.id)

    def update_node(self, node_id: str, **fields) -> bool:
        return self.commit(graph.update_node(self.snapshot, node_id, **fields), "Edit node")

    def update_nodes_style(self, node_ids: Iterable[str], style_updates: dict) -> bool:
        return self.commit(graph.update_nodes_style(self.snapshot, node_ids, style_updates),
                           "Change style")

    def toggle_detached(self, node_id: str) -> bool:
        return self.commit(graph.toggle_detached(self.snapshot, node_id), "Toggle detached")

    def delete_selected(self, node_ids: Optional[Iterable[str]] = None) -> bool:
        ids = list(self.selected_nodes if node_ids is None else node_ids)
        if not self.commit(graph.delete_selected(self.snapshot, ids), "Delete nodes"):
            return False
        self.selected_nodes = []
        return True

    def reorder_siblings(self, node_id: str, direction: int) -> bool:
        return self.commit(graph.reorder_siblings(self.snapshot, node_id, direction), "Reorder")

    def auto_arrange(self, root_id: Optional[str] = None) -> bool:
        return self.commit(graph.auto_arrange(self.snapshot, root_id), "Auto arrange")

    # ==================== Connections ====================

    def add_connection(self, from_id: str, to_id: str) -> bool:
        return self.commit(graph.add_connection(self.snapshot, from_id, to_id), "Connect")

    def update_connection(self, connection_id: str, **fields) -> bool:
        return self.commit(graph.update_connection(self.snapshot, connection_id, **fields),
                           "Edit connection")

    def delete_connection(self, connection_id: str) -> bool:
        if not self.commit(graph.delete_connection(self.snapshot, connection_id),
                           "Delete connection"):
            return False
        if self.selected_connection == connection_id:
            self.selected_connection = None
        return True

    # ==================== Clipboard ====================

    def copy_selected(self) -> bool:
        if not self.selected_nodes:
            return False
        self.clipboard = graph.copy_selection(self.snapshot, self.selected_nodes)
        return bool(self.clipboard)

    def cut_selected(self) -> bool:
        if not self.copy_selected():
            return False
        return self.delete_selected()

    def paste(self) -> List[str]:
        snapshot, new_ids = graph.paste_clipboard(self.snapshot, self.clipboard)
        if not self.commit(snapshot, "Paste"):
            return []
        self.selected_nodes = new_ids
        return new_ids

    # ==================== Undo / Redo ====================

    def undo(self) -> bool:
        return self.history.undo() is not None

    def redo(self) -> bool:
        return self.history.redo() is not None

    # ==================== Dragging ====================

    def begin_drag(self, node_id: str, pointer_x: float, pointer_y: float) -> bool:
        return self.drag.begin(node_id, pointer_x, pointer_y, self.snapshot)

    def drag_to(self, pointer_x: float, pointer_y: float, scale: float = 1.0,
                move_children: bool = True) -> dict:
        return self.drag.move(pointer_x, pointer_y, scale, move_children)

    def end_drag(self) -> bool:
        """Commit the drag; a drag that went nowhere records nothing."""
        snapshot = self.drag.end()
        if snapshot is None:
            return False
        return self.commit(snapshot, "Move node")

    def cancel_drag(self):
        self.drag.cancel()

    # ==================== Maps ====================

    def save(self):
        """Persist the active document now."""
        if self.history is None or self.current_map_id is None:
            return
        snapshot = self.snapshot
        self.catalog.save_map_payload(self.current_map_id, snapshot.nodes, snapshot.connections)
        logger.debug("Saved map %s (%d nodes)", self.current_map_id, len(snapshot.nodes))

    def switch_map(self, map_id: str) -> bool:
        if map_id == self.current_map_id:
            return False
        if self.catalog.get_entry(map_id) is None:
            return False
        self.saver.flush()
        self.drag.cancel()
        self.catalog.switch_map(map_id)
        self._load_current()
        return True

    def create_map(self, name: str) -> Optional[str]:
        self.saver.flush()
        map_id = self.catalog.create_map(name)
        if map_id is not None:
            self._load_current()
        return map_id

    def save_as(self, name: str) -> Optional[str]:
        """Store the current document as a new map and continue editing it."""
        self.saver.flush()
        snapshot = self.snapshot
        map_id = self.catalog.create_map_with_payload(name, snapshot.nodes, snapshot.connections)
        if map_id is not None:
            self._load_current()
        return map_id

    def delete_map(self, map_id: str) -> bool:
        was_current = map_id == self.current_map_id
        if not self.catalog.delete_map(map_id):
            return False
        if was_current:
            # Pending edits belong to the map that is gone
            self.saver.cancel()
            self._load_current()
        return True

    def rename_map(self, map_id: str, name: str) -> bool:
        return self.catalog.rename_map(map_id, name)

    # ==================== Files ====================

    def export_payload(self) -> dict:
        snapshot = self.snapshot
        return encode_document(snapshot.nodes, snapshot.connections)

    def export_to_file(self, path):
        return save_to_file(path, self.export_payload())

    def import_from_file(self, path) -> bool:
        """Replace the current document with a file's contents (undoable)."""
        loaded = load_from_file(path)
        if not loaded.snapshot.nodes:
            return False
        return self.commit(loaded.snapshot, "Import")

    # ==================== Internals ====================

    def _load_current(self):
        map_id = self.catalog.current_map_id
        loaded = self.catalog.load_map_payload(map_id)
        if loaded is None or not loaded.snapshot.nodes:
            snapshot = graph.new_document()
        else:
            snapshot = loaded.snapshot

        self.history = HistoryStack(snapshot, self.settings.history_capacity)
        self.history.on_state_changed = self._on_state_changed
        self.selected_nodes = []
        self.selected_connection = None
        if self.on_map_loaded:
            self.on_map_loaded(map_id)

    def _on_state_changed(self, snapshot: Snapshot):
        self.saver.schedule()
        if self.on_changed:
            self.on_changed(snapshot)
