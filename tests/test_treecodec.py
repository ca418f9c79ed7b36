"""
Tests for the flat <-> nested tree conversion.

Tests:
- Round trip of a single connected tree
- Child order follows input order
- Dangling parents become extra roots
- Cycles are dropped and reported
"""
import logging

from mindcanvas import treecodec
from mindcanvas.models import Node


def _pairs(nodes):
    return {(n.id, n.parent_id) for n in nodes}


class TestToTree:
    """Test nesting flat nodes."""

    def test_single_root(self, family):
        roots = treecodec.to_tree(family.nodes)
        assert [r["id"] for r in roots] == ["R"]
        assert [c["id"] for c in roots[0]["children"]] == ["A", "C"]
        assert roots[0]["children"][0]["children"][0]["id"] == "B"

    def test_parent_id_not_stored(self, family):
        roots = treecodec.to_tree(family.nodes)
        assert "parentId" not in roots[0]
        assert "parentId" not in roots[0]["children"][0]

    def test_children_keep_input_order_not_order_field(self):
        nodes = [
            Node(id="R"),
            Node(id="x", parent_id="R", order=5),
            Node(id="y", parent_id="R", order=1),
        ]
        roots = treecodec.to_tree(nodes)
        assert [c["id"] for c in roots[0]["children"]] == ["x", "y"]

    def test_dangling_parent_becomes_root(self):
        nodes = [Node(id="R"), Node(id="lost", parent_id="gone")]
        roots = treecodec.to_tree(nodes)
        assert [r["id"] for r in roots] == ["R", "lost"]

    def test_cycle_is_dropped_with_warning(self, caplog):
        nodes = [
            Node(id="R"),
            Node(id="p", parent_id="q"),
            Node(id="q", parent_id="p"),
        ]
        with caplog.at_level(logging.WARNING, logger="mindcanvas.treecodec"):
            roots = treecodec.to_tree(nodes)
        assert [r["id"] for r in roots] == ["R"]
        assert "Dropped 2 node(s)" in caplog.text


class TestToFlat:
    """Test flattening nested trees."""

    def test_round_trip(self, family):
        flat = treecodec.to_flat(treecodec.to_tree(family.nodes))
        assert _pairs(flat) == _pairs(family.nodes)
        by_id = {n.id: n for n in flat}
        for node in family.nodes:
            assert by_id[node.id] == node

    def test_preorder(self, family):
        flat = treecodec.to_flat(treecodec.to_tree(family.nodes))
        assert [n.id for n in flat] == ["R", "A", "B", "C"]

    def test_stamps_parent_from_context(self):
        tree = [{"id": "r", "text": "r", "parentId": "bogus",
                 "children": [{"id": "k", "text": "k"}]}]
        flat = treecodec.to_flat(tree)
        assert flat[0].parent_id is None
        assert flat[1].parent_id == "r"

    def test_unknown_fields_survive(self):
        tree = [{"id": "r", "text": "r", "note": "keep me", "children": []}]
        flat = treecodec.to_flat(tree)
        assert flat[0].extra == {"note": "keep me"}
        again = treecodec.to_tree(flat)
        assert again[0]["note"] == "keep me"

    def test_deep_chain_round_trip(self, deep_chain):
        flat = treecodec.to_flat(treecodec.to_tree(deep_chain))
        assert [n.id for n in flat] == [n.id for n in deep_chain]
        assert flat[-1].parent_id == "n598"


class TestFindUnreachable:
    """Test detection of nodes a round trip would lose."""

    def test_connected_tree(self, family):
        assert treecodec.find_unreachable(family.nodes) == []

    def test_cycle(self):
        nodes = [Node(id="R"), Node(id="p", parent_id="q"), Node(id="q", parent_id="p")]
        assert treecodec.find_unreachable(nodes) == ["p", "q"]
