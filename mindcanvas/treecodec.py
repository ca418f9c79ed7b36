"""Conversion between the flat node list and the nested storage tree."""

import logging
from typing import Iterable, List, Dict, Optional, Tuple

from mindcanvas.models import Node

logger = logging.getLogger("mindcanvas.treecodec")


def to_tree(nodes: Iterable[Node]) -> List[dict]:
    """Nest nodes under their parents.

    Children keep the order they have in ``nodes``. A node whose parent is
    not in the batch becomes an additional root. Nodes caught in a parent
    cycle are unreachable from any root and are left out.
    """
    nodes = list(nodes)
    tree_nodes: Dict[str, dict] = {}
    for node in nodes:
        data = node.to_dict()
        data.pop("parentId", None)
        data["children"] = []
        tree_nodes[node.id] = data

    roots = []
    for node in nodes:
        tree_node = tree_nodes[node.id]
        if node.parent_id is not None and node.parent_id in tree_nodes:
            tree_nodes[node.parent_id]["children"].append(tree_node)
        else:
            roots.append(tree_node)

    dropped = len(nodes) - _count(roots)
    if dropped:
        logger.warning("Dropped %d node(s) unreachable from any root", dropped)
    return roots


def to_flat(roots: Iterable[dict]) -> List[Node]:
    """Pre-order walk of a nested tree back into a flat node list."""
    result: List[Node] = []
    stack: List[Tuple[dict, Optional[str]]] = [(root, None) for root in reversed(list(roots))]
    while stack:
        tree_node, parent_id = stack.pop()
        data = {k: v for k, v in tree_node.items() if k != "children"}
        data["parentId"] = parent_id
        node = Node.from_dict(data)
        result.append(node)
        children = tree_node.get("children") or ()
        stack.extend((child, node.id) for child in reversed(list(children)))
    return result


def find_unreachable(nodes: Iterable[Node]) -> List[str]:
    """Return ids of nodes that ``to_tree`` would drop."""
    nodes = list(nodes)
    known = {n.id for n in nodes}
    children: Dict[str, List[str]] = {}
    reachable = set()
    stack = []
    for node in nodes:
        if node.parent_id is not None and node.parent_id in known:
            children.setdefault(node.parent_id, []).append(node.id)
        else:
            stack.append(node.id)

    while stack:
        node_id = stack.pop()
        if node_id in reachable:
            continue
        reachable.add(node_id)
        stack.extend(children.get(node_id, ()))

    return [n.id for n in nodes if n.id not in reachable]


def _count(roots: List[dict]) -> int:
    total = 0
    stack = list(roots)
    while stack:
        tree_node = stack.pop()
        total += 1
        stack.extend(tree_node["children"])
    return total
