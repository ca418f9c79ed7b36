"""Interactive node dragging.

A drag works against the snapshot captured at ``begin``: every pointer move
recomputes positions from that baseline, so rounding never accumulates, and
nothing reaches the undo history until ``end`` hands back a snapshot.
"""

from typing import Optional, Dict, List

from mindcanvas.models import Node, Snapshot


class DragSession:
    """Transient state of the one drag in progress."""

    def __init__(self):
        self._baseline: Optional[Snapshot] = None
        self.node_id: Optional[str] = None
        self.start_pointer_x = 0.0
        self.start_pointer_y = 0.0
        self.start_node_x = 0.0
        self.start_node_y = 0.0
        self.has_moved = False
        self._moved: Dict[str, Node] = {}

    @property
    def active(self) -> bool:
        return self._baseline is not None

    def begin(self, node_id: str, pointer_x: float, pointer_y: float,
              snapshot: Snapshot) -> bool:
        """Start dragging ``node_id``. Returns False for an unknown node."""
        node = snapshot.get(node_id)
        if node is None:
            self._clear()
            return False

        self._baseline = snapshot
        self.node_id = node_id
        self.start_pointer_x = pointer_x
        self.start_pointer_y = pointer_y
        self.start_node_x = node.x
        self.start_node_y = node.y
        self.has_moved = False
        self._moved = {}
        return True

    def move(self, pointer_x: float, pointer_y: float, scale: float = 1.0,
             propagate_to_children: bool = True) -> Dict[str, Node]:
        """Apply the pointer delta and return the nodes it displaces.

        Only the dragged node and its direct, attached children move;
        grandchildren stay where they are.
        """
        if not self.active:
            return {}

        scale = scale or 1.0
        dx = (pointer_x - self.start_pointer_x) / scale
        dy = (pointer_y - self.start_pointer_y) / scale

        baseline = self._baseline
        dragged = baseline.get(self.node_id)
        moved = {dragged.id: dragged.moved(self.start_node_x + dx, self.start_node_y + dy)}

        if propagate_to_children and not dragged.is_detached:
            for child in baseline.children_of(dragged.id):
                if child.is_detached:
                    continue
                moved[child.id] = child.moved(child.x + dx, child.y + dy)

        self._moved = moved
        self.has_moved = self.has_moved or bool(dx or dy)
        return dict(moved)

    def preview_nodes(self) -> List[Node]:
        """Full node list as it would look if the drag ended now."""
        if not self.active:
            return []
        moved = self._moved
        return [moved.get(n.id, n) for n in self._baseline.nodes]

    def end(self) -> Optional[Snapshot]:
        """Finish the drag.

        Returns the committed snapshot, or None when the pointer never moved
        so the caller does not record an empty edit.
        """
        try:
            if not self.active or not self.has_moved or not self._displaced():
                return None
            return self._baseline.with_nodes(self.preview_nodes())
        finally:
            self._clear()

    def cancel(self):
        """Abandon the drag without producing a snapshot."""
        self._clear()

    def _displaced(self) -> bool:
        baseline = self._baseline
        for node_id, node in self._moved.items():
            original = baseline.get(node_id)
            if (node.x, node.y) != (original.x, original.y):
                return True
        return False

    def _clear(self):
        self._baseline = None
        self.node_id = None
        self.has_moved = False
        self._moved = {}
