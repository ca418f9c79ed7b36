"""Structural edits and hierarchy queries over document snapshots.

Every edit is a pure function ``(snapshot, args) -> snapshot``. An edit that
is not allowed (deleting the root, a self-loop connection, an unknown id)
hands back the very same snapshot object, so callers can test
``result is snapshot`` to decide whether there is anything to record.
"""

import math
from dataclasses import replace, fields as dataclass_fields
from typing import Optional, List, Tuple, Iterable, Dict, Any

from mindcanvas.models import (
    Node, Connection, Snapshot, Clipboard, generate_id, now_iso,
)


# Placement
CHILD_DISTANCE = 150
CHILD_ANGLE_STEP = 45  # degrees per existing sibling
DEFAULT_CHILD_OFFSET = 200
PASTE_OFFSET = 50

# Auto-arrange
LAYOUT_HORIZONTAL_SPACING = 200
LAYOUT_VERTICAL_SPACING = 120

DEFAULT_NODE_TEXT = "New topic"
DEFAULT_ROOT_TEXT = "Central topic"

DEFAULT_NODE_STYLE = {
    "backgroundColor": "#1e293b",
    "borderColor": "#3b82f6",
    "borderWidth": 2,
    "borderRadius": 8,
    "color": "#ffffff",
    "fontSize": 14,
    "fontWeight": "normal",
    "fontStyle": "normal",
    "textDecoration": "none",
    "fontFamily": "Inter",
    "shape": "rectangle",  # rectangle, circle, diamond
    "width": 140,
    "padding": 12,
}

ROOT_NODE_STYLE = {
    **DEFAULT_NODE_STYLE,
    "backgroundColor": "#3b82f6",
    "borderColor": "#60a5fa",
    "width": 180,
    "fontSize": 16,
    "fontWeight": "600",
}

DEFAULT_CONNECTION_STYLE = {"color": "#f59e0b", "width": 2, "dashed": True}


# ==================== Construction ====================

def create_root_node(text: str = DEFAULT_ROOT_TEXT, x: float = 0.0, y: float = 0.0) -> Node:
    """Create a parentless node carrying the root style."""
    return Node(id=generate_id(), text=text, x=x, y=y, style=dict(ROOT_NODE_STYLE))


def new_document(x: float = 0.0, y: float = 0.0) -> Snapshot:
    """A fresh document holding a single root node."""
    return Snapshot([create_root_node(x=x, y=y)], [])


# ==================== Queries ====================

def find_root(snapshot: Snapshot) -> Optional[Node]:
    """Return the primary root: the first parentless node in document order."""
    for node in snapshot.nodes:
        if node.parent_id is None:
            return node
    return None


def children(snapshot: Snapshot, node_id: str, include_detached: bool = True) -> List[Node]:
    kids = snapshot.children_of(node_id)
    if include_detached:
        return kids
    return [n for n in kids if not n.is_detached]


def get_descendants(snapshot: Snapshot, node_id: str) -> List[str]:
    """Return ids of all nodes below ``node_id``, depth first."""
    index = snapshot.children_index
    result: List[str] = []
    seen = {node_id}
    stack = list(reversed(index.get(node_id, ())))
    while stack:
        child_id = stack.pop()
        if child_id in seen:
            continue
        seen.add(child_id)
        result.append(child_id)
        stack.extend(reversed(index.get(child_id, ())))
    return result


def get_path_to_root(snapshot: Snapshot, node_id: str) -> List[str]:
    """Return ids from the topmost ancestor down to ``node_id``."""
    path: List[str] = []
    seen = set()
    current = snapshot.get(node_id)
    while current is not None and current.id not in seen:
        seen.add(current.id)
        path.append(current.id)
        current = snapshot.get(current.parent_id)
    path.reverse()
    return path


# ==================== Node Operations ====================

def add_node(snapshot: Snapshot, parent_id: Optional[str] = None,
             text: str = DEFAULT_NODE_TEXT,
             position: Optional[Tuple[float, float]] = None) -> Tuple[Snapshot, Optional[str]]:
    """Append a node, either under ``parent_id`` or as a floating root.

    A floating root is placed at ``position`` (the caller's viewport centre).
    A child without an explicit position goes to the right of its parent.
    """
    parent = snapshot.get(parent_id)
    if parent_id is not None and parent is None:
        return snapshot, None

    if position is not None:
        x, y = position
    elif parent is not None:
        x, y = parent.x + DEFAULT_CHILD_OFFSET, parent.y
    else:
        x, y = 0.0, 0.0

    node = Node(id=generate_id(), text=text, x=float(x), y=float(y), parent_id=parent_id)
    return snapshot.with_nodes(snapshot.nodes + (node,)), node.id


def add_child_node(snapshot: Snapshot, parent_id: str,
                   text: str = DEFAULT_NODE_TEXT) -> Tuple[Snapshot, Optional[str]]:
    """Add a child fanned out around its parent.

    The n-th attached child sits ``CHILD_DISTANCE`` away at n * 45 degrees.
    """
    parent = snapshot.get(parent_id)
    if parent is None:
        return snapshot, None

    index = len(children(snapshot, parent_id, include_detached=False))
    angle = math.radians(index * CHILD_ANGLE_STEP)
    position = (
        parent.x + math.cos(angle) * CHILD_DISTANCE,
        parent.y + math.sin(angle) * CHILD_DISTANCE,
    )
    return add_node(snapshot, parent_id, text, position)


def update_node(snapshot: Snapshot, node_id: str, **fields) -> Snapshot:
    """Shallow-merge ``fields`` into one node. The id itself never changes.

    Keys that are not node attributes are kept in ``extra`` so they are
    persisted along with the node.
    """
    fields.pop("id", None)
    node = snapshot.get(node_id)
    if node is None or not fields:
        return snapshot
    known = {f.name for f in dataclass_fields(Node)}
    extra = {k: v for k, v in fields.items() if k not in known}
    changes = {k: v for k, v in fields.items() if k in known}
    if extra:
        changes["extra"] = {**changes.get("extra", node.extra), **extra}
    updated = replace(node, **changes)
    return snapshot.with_nodes(updated if n.id == node_id else n for n in snapshot.nodes)


def update_nodes_style(snapshot: Snapshot, node_ids: Iterable[str],
                       style_updates: Dict[str, Any]) -> Snapshot:
    """Merge ``style_updates`` into the style of every listed node."""
    ids = set(node_ids) & set(snapshot.node_by_id)
    if not ids:
        return snapshot
    return snapshot.with_nodes(
        replace(n, style={**n.style, **style_updates}) if n.id in ids else n
        for n in snapshot.nodes
    )


def toggle_detached(snapshot: Snapshot, node_id: str) -> Snapshot:
    node = snapshot.get(node_id)
    if node is None:
        return snapshot
    return update_node(snapshot, node_id, is_detached=not node.is_detached)


def delete_selected(snapshot: Snapshot, node_ids: Iterable[str]) -> Snapshot:
    """Delete the selection together with every descendant.

    All or nothing: if the root is selected the snapshot comes back
    unchanged.
    """
    selected = [i for i in node_ids if i in snapshot.node_by_id]
    if not selected:
        return snapshot

    root = find_root(snapshot)
    if root is not None and root.id in selected:
        return snapshot

    doomed = set(selected)
    for node_id in selected:
        doomed.update(get_descendants(snapshot, node_id))

    return Snapshot(
        [n for n in snapshot.nodes if n.id not in doomed],
        [c for c in snapshot.connections if not c.touches(doomed)],
    )


def reorder_siblings(snapshot: Snapshot, node_id: str, direction: int) -> Snapshot:
    """Swap a node's ``order`` with the sibling ``direction`` steps away."""
    node = snapshot.get(node_id)
    if node is None or node.parent_id is None:
        return snapshot

    siblings = snapshot.children_of(node.parent_id)
    current = next(i for i, n in enumerate(siblings) if n.id == node_id)
    target = current + direction
    if target < 0 or target >= len(siblings):
        return snapshot

    other_id = siblings[target].id
    nodes = []
    for n in snapshot.nodes:
        if n.id == node_id:
            n = replace(n, order=target)
        elif n.id == other_id:
            n = replace(n, order=current)
        nodes.append(n)
    nodes.sort(key=lambda n: n.order or 0)
    return snapshot.with_nodes(nodes)


def auto_arrange(snapshot: Snapshot, root_id: Optional[str] = None) -> Snapshot:
    """Lay a subtree out as a left-to-right tree.

    Depth sets x, siblings are spread vertically around their parent's row.
    Detached children keep their position.
    """
    root = snapshot.get(root_id) if root_id else find_root(snapshot)
    if root is None:
        return snapshot

    positions: Dict[str, Tuple[float, float]] = {}

    def place(node: Node, level: int, sibling_index: int, total: int):
        positions[node.id] = (
            level * LAYOUT_HORIZONTAL_SPACING,
            (sibling_index - (total - 1) / 2) * LAYOUT_VERTICAL_SPACING,
        )
        kids = [c for c in children(snapshot, node.id, include_detached=False)
                if c.id not in positions]
        for idx, child in enumerate(kids):
            place(child, level + 1, idx, len(kids))

    place(root, 0, 0, 1)
    return snapshot.with_nodes(
        n.moved(*positions[n.id]) if n.id in positions else n for n in snapshot.nodes
    )


# ==================== Connection Operations ====================

def add_connection(snapshot: Snapshot, from_id: str, to_id: str, text: str = "") -> Snapshot:
    """Connect two nodes unless that would be a self-loop or a duplicate."""
    if from_id == to_id:
        return snapshot
    if from_id not in snapshot.node_by_id or to_id not in snapshot.node_by_id:
        return snapshot
    if any(c.joins(from_id, to_id) for c in snapshot.connections):
        return snapshot

    connection = Connection(
        id=generate_id(), from_id=from_id, to_id=to_id,
        text=text, style=dict(DEFAULT_CONNECTION_STYLE),
    )
    return snapshot.with_connections(snapshot.connections + (connection,))


def update_connection(snapshot: Snapshot, connection_id: str, **fields) -> Snapshot:
    fields.pop("id", None)
    if not fields or not any(c.id == connection_id for c in snapshot.connections):
        return snapshot
    return snapshot.with_connections(
        replace(c, **fields) if c.id == connection_id else c
        for c in snapshot.connections
    )


def delete_connection(snapshot: Snapshot, connection_id: str) -> Snapshot:
    remaining = [c for c in snapshot.connections if c.id != connection_id]
    if len(remaining) == len(snapshot.connections):
        return snapshot
    return snapshot.with_connections(remaining)


# ==================== Clipboard ====================

def copy_selection(snapshot: Snapshot, node_ids: Iterable[str]) -> Clipboard:
    """Capture the selected nodes and the connections running between them."""
    ids = set(node_ids)
    return Clipboard(
        nodes=tuple(n for n in snapshot.nodes if n.id in ids),
        connections=tuple(c for c in snapshot.connections
                          if c.from_id in ids and c.to_id in ids),
        timestamp=now_iso(),
    )


def paste_clipboard(snapshot: Snapshot, clipboard: Clipboard,
                    offset: float = PASTE_OFFSET) -> Tuple[Snapshot, List[str]]:
    """Insert fresh copies of the clipboard contents.

    Parent links survive only when the parent was copied too; everything
    else becomes a floating root.
    """
    if not clipboard:
        return snapshot, []

    id_map = {n.id: generate_id() for n in clipboard.nodes}
    pasted = [
        replace(
            n,
            id=id_map[n.id],
            parent_id=id_map.get(n.parent_id) if n.parent_id else None,
            x=n.x + offset,
            y=n.y + offset,
        )
        for n in clipboard.nodes
    ]
    connections = [
        replace(c, id=generate_id(), from_id=id_map[c.from_id], to_id=id_map[c.to_id])
        for c in clipboard.connections
    ]
    new_snapshot = Snapshot(snapshot.nodes + tuple(pasted),
                            snapshot.connections + tuple(connections))
    return new_snapshot, [n.id for n in pasted]


def cut_selection(snapshot: Snapshot, node_ids: Iterable[str]) -> Tuple[Snapshot, Clipboard]:
    """Copy then delete; the clipboard is filled even when the delete is refused."""
    node_ids = list(node_ids)
    clipboard = copy_selection(snapshot, node_ids)
    return delete_selected(snapshot, node_ids), clipboard


def reassign_ids(snapshot: Snapshot) -> Snapshot:
    """Return a copy of the document where every node and connection has a new id."""
    id_map = {n.id: generate_id() for n in snapshot.nodes}
    nodes = [
        replace(n, id=id_map[n.id], parent_id=id_map.get(n.parent_id, n.parent_id))
        for n in snapshot.nodes
    ]
    connections = [
        replace(c, id=generate_id(),
                from_id=id_map.get(c.from_id, c.from_id),
                to_id=id_map.get(c.to_id, c.to_id))
        for c in snapshot.connections
    ]
    return Snapshot(nodes, connections)
