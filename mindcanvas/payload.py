"""Stored document payloads and JSON file export/import."""

import json
import logging
import sys
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional, Union

from mindcanvas import treecodec
from mindcanvas.graph import new_document
from mindcanvas.models import Node, Connection, Snapshot, LoadedDocument, now_iso

logger = logging.getLogger("mindcanvas.payload")

PAYLOAD_VERSION = "2.0"

# Extra interpreter frames granted while (de)serializing a nested tree.
NESTING_HEADROOM = 5000


class PayloadError(ValueError):
    """A document payload could not be understood."""


def encode_document(nodes: Iterable[Node], connections: Iterable[Connection]) -> dict:
    """Build the persisted form of a document."""
    nodes = list(nodes)
    connections = list(connections)
    return {
        "version": PAYLOAD_VERSION,
        "timestamp": now_iso(),
        "tree": treecodec.to_tree(nodes),
        "connections": [c.to_dict() for c in connections],
        "metadata": {
            "nodeCount": len(nodes),
            "connectionCount": len(connections),
        },
    }


@contextmanager
def _nesting_headroom():
    """Let the json module follow a parent chain deeper than the default limit."""
    limit = sys.getrecursionlimit()
    sys.setrecursionlimit(limit + NESTING_HEADROOM)
    try:
        yield
    finally:
        sys.setrecursionlimit(limit)


def dumps(payload: dict, indent: Optional[int] = None) -> str:
    """Serialize a payload. Raises PayloadError if the tree is too deep."""
    try:
        with _nesting_headroom():
            return json.dumps(payload, indent=indent, ensure_ascii=False)
    except RecursionError as exc:
        raise PayloadError("Document tree is nested too deeply to serialize") from exc


def parse_document(data: Union[str, bytes, dict, list]) -> LoadedDocument:
    """Decode a payload, raising PayloadError when it is unusable."""
    if isinstance(data, (str, bytes)):
        try:
            with _nesting_headroom():
                data = json.loads(data)
        except json.JSONDecodeError as exc:
            raise PayloadError(f"Payload is not valid JSON: {exc}") from exc
        except RecursionError as exc:
            raise PayloadError("Payload is nested too deeply") from exc
        except UnicodeDecodeError as exc:
            raise PayloadError(f"Payload is not valid UTF-8: {exc}") from exc

    try:
        # Pre-catalog payloads were a bare list of flat nodes
        if isinstance(data, list):
            return LoadedDocument(
                snapshot=Snapshot([Node.from_dict(n) for n in data], []),
                legacy=True,
            )

        if not isinstance(data, dict):
            raise PayloadError(f"Payload must be an object, got {type(data).__name__}")
        tree = data.get("tree")
        if not isinstance(tree, list):
            raise PayloadError("Payload has no 'tree' list")

        nodes = treecodec.to_flat(tree)
        connections = [Connection.from_dict(c) for c in data.get("connections") or []]
    except PayloadError:
        raise
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise PayloadError(f"Malformed payload: {exc}") from exc

    metadata = data.get("metadata")
    return LoadedDocument(
        snapshot=Snapshot(nodes, connections),
        metadata=metadata if isinstance(metadata, dict) else {},
    )


def decode_document(raw: Optional[str]) -> Optional[LoadedDocument]:
    """Decode a stored payload, never raising.

    Returns None when nothing is stored. A corrupt payload degrades to a
    fresh single-root document flagged ``ok=False``; the stored value itself
    is left alone. A readable payload without any node is also replaced by a
    fresh root, so a loaded document always has one.
    """
    if raw is None:
        return None
    try:
        loaded = parse_document(raw)
    except PayloadError as exc:
        logger.warning("Falling back to a blank document: %s", exc)
        return LoadedDocument(snapshot=new_document(), ok=False)

    if not loaded.snapshot.nodes:
        loaded.snapshot = new_document()
    return loaded


# ==================== Files ====================

def default_export_name() -> str:
    return f"mindmap_{datetime.now().strftime('%Y-%m-%d')}.json"


def save_to_file(path: Union[str, Path], payload: dict) -> Path:
    """Write a payload as pretty-printed JSON."""
    path = Path(path).expanduser()
    if path.is_dir():
        path = path / default_export_name()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(dumps(payload, indent=2), encoding="utf-8")
    return path


def load_from_file(path: Union[str, Path]) -> LoadedDocument:
    """Read and strictly decode a payload file."""
    path = Path(path).expanduser()
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise PayloadError(f"Failed to read {path}: {exc}") from exc
    except UnicodeDecodeError as exc:
        raise PayloadError(f"{path} is not valid UTF-8: {exc}") from exc
    return parse_document(text)
