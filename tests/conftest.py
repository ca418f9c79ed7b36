"""
Pytest configuration and shared fixtures for the mindcanvas test suite.
"""
import sys
from pathlib import Path

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from mindcanvas.models import Node, Connection, Snapshot
from mindcanvas.storage import MemoryStorage


@pytest.fixture
def storage():
    """Provide an empty in-memory store."""
    return MemoryStorage()


@pytest.fixture
def temp_db(tmp_path):
    """Path for a throwaway SQLite store."""
    return tmp_path / "mindcanvas.db"


@pytest.fixture
def family():
    """Root R with child A, grandchild B, a second child C and one connection B-C.

    R(0,0) -> A(100,0) -> B(200,0)
           -> C(0,100)
    """
    nodes = [
        Node(id="R", text="Root", x=0.0, y=0.0),
        Node(id="A", text="A", x=100.0, y=0.0, parent_id="R"),
        Node(id="B", text="B", x=200.0, y=0.0, parent_id="A"),
        Node(id="C", text="C", x=0.0, y=100.0, parent_id="R", order=1),
    ]
    connections = [Connection(id="c1", from_id="B", to_id="C")]
    return Snapshot(nodes, connections)


@pytest.fixture
def deep_chain():
    """600 nodes, each the only child of the one before it."""
    nodes = [Node(id="n0", text="n0")]
    for i in range(1, 600):
        nodes.append(Node(id=f"n{i}", text=f"n{i}", parent_id=f"n{i - 1}"))
    return nodes
