"""Document data model for mindcanvas."""

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Optional, List, Dict, Tuple, Any


# Keys a persisted node may carry that map onto Node fields.
NODE_KEYS = ("id", "text", "x", "y", "parentId", "isDetached", "style", "order", "collapsed")


def generate_id() -> str:
    """Return a fresh opaque identifier."""
    return str(uuid.uuid4())


def now_iso() -> str:
    return datetime.now().isoformat()


@dataclass(frozen=True)
class Node:
    """A positioned, styled element of a document."""
    id: str
    text: str = "New topic"
    x: float = 0.0
    y: float = 0.0
    parent_id: Optional[str] = None
    is_detached: bool = False
    style: Dict[str, Any] = field(default_factory=dict)
    order: int = 0
    collapsed: bool = False
    extra: Dict[str, Any] = field(default_factory=dict)  # unknown persisted keys

    @property
    def is_root(self) -> bool:
        return self.parent_id is None

    def moved(self, x: float, y: float) -> "Node":
        return replace(self, x=x, y=y)

    def to_dict(self) -> dict:
        data = dict(self.extra)
        data.update({
            "id": self.id,
            "text": self.text,
            "x": self.x,
            "y": self.y,
            "parentId": self.parent_id,
            "isDetached": self.is_detached,
            "style": dict(self.style),
            "order": self.order,
            "collapsed": self.collapsed,
        })
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Node":
        style = data.get("style")
        return cls(
            id=str(data["id"]),
            text=str(data.get("text", "")),
            x=float(data.get("x") or 0.0),
            y=float(data.get("y") or 0.0),
            parent_id=data.get("parentId") or None,
            is_detached=bool(data.get("isDetached", False)),
            style=dict(style) if isinstance(style, dict) else {},
            order=int(data.get("order") or 0),
            collapsed=bool(data.get("collapsed", False)),
            extra={k: v for k, v in data.items() if k not in NODE_KEYS and k != "children"},
        )


@dataclass(frozen=True)
class Connection:
    """A free-form labelled edge between two nodes, outside the hierarchy."""
    id: str
    from_id: str
    to_id: str
    text: str = ""
    style: Dict[str, Any] = field(default_factory=dict)

    def touches(self, node_ids) -> bool:
        return self.from_id in node_ids or self.to_id in node_ids

    def joins(self, a: str, b: str) -> bool:
        """Check if this connection joins the unordered pair (a, b)."""
        return {self.from_id, self.to_id} == {a, b}

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "from": self.from_id,
            "to": self.to_id,
            "style": dict(self.style),
        }
        if self.text:
            data["text"] = self.text
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Connection":
        style = data.get("style")
        return cls(
            id=str(data["id"]),
            from_id=str(data["from"]),
            to_id=str(data["to"]),
            text=str(data.get("text") or ""),
            style=dict(style) if isinstance(style, dict) else {},
        )


class Snapshot:
    """Immutable {nodes, connections} pair for one point in history.

    The id index and the children index are built on first use and cached,
    which is safe because a snapshot never changes after construction.
    """

    __slots__ = ("nodes", "connections", "_by_id", "_children")

    def __init__(self, nodes=(), connections=()):
        object.__setattr__(self, "nodes", tuple(nodes))
        object.__setattr__(self, "connections", tuple(connections))
        object.__setattr__(self, "_by_id", None)
        object.__setattr__(self, "_children", None)

    def __setattr__(self, name, value):
        raise AttributeError("Snapshot is immutable")

    def __eq__(self, other):
        if not isinstance(other, Snapshot):
            return NotImplemented
        return self.nodes == other.nodes and self.connections == other.connections

    __hash__ = None

    def __repr__(self):
        return f"Snapshot(nodes={len(self.nodes)}, connections={len(self.connections)})"

    @property
    def node_by_id(self) -> Dict[str, Node]:
        if self._by_id is None:
            object.__setattr__(self, "_by_id", {n.id: n for n in self.nodes})
        return self._by_id

    @property
    def children_index(self) -> Dict[Optional[str], List[str]]:
        """Map parent id to the ordered list of its child ids."""
        if self._children is None:
            index: Dict[Optional[str], List[str]] = {}
            for node in self.nodes:
                index.setdefault(node.parent_id, []).append(node.id)
            object.__setattr__(self, "_children", index)
        return self._children

    def get(self, node_id: Optional[str]) -> Optional[Node]:
        if node_id is None:
            return None
        return self.node_by_id.get(node_id)

    def children_of(self, node_id: str) -> List[Node]:
        by_id = self.node_by_id
        return [by_id[cid] for cid in self.children_index.get(node_id, ())]

    def with_nodes(self, nodes) -> "Snapshot":
        return Snapshot(nodes, self.connections)

    def with_connections(self, connections) -> "Snapshot":
        return Snapshot(self.nodes, connections)


@dataclass
class MapEntry:
    """Catalog metadata for one stored document."""
    id: str
    name: str = "New map"
    created_at: str = ""
    updated_at: str = ""
    owner_id: str = ""

    def touch(self):
        self.updated_at = now_iso()

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "ownerId": self.owner_id,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "MapEntry":
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", "")),
            created_at=data.get("createdAt", ""),
            updated_at=data.get("updatedAt", ""),
            owner_id=str(data.get("ownerId", "")),
        )


@dataclass
class LoadedDocument:
    """Result of decoding a stored payload."""
    snapshot: Snapshot
    ok: bool = True
    legacy: bool = False
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class Clipboard:
    """Nodes and internal connections captured by a copy."""
    nodes: Tuple[Node, ...] = ()
    connections: Tuple[Connection, ...] = ()
    timestamp: str = ""

    def __bool__(self) -> bool:
        return bool(self.nodes)
