"""Per-owner catalog of stored mind maps."""

import json
import logging
from dataclasses import dataclass
from typing import Optional, List, Iterable

from mindcanvas import graph
from mindcanvas.models import (
    MapEntry, Node, Connection, LoadedDocument, generate_id, now_iso,
)
from mindcanvas.payload import encode_document, decode_document, parse_document, dumps, PayloadError
from mindcanvas.storage import StorageAdapter

logger = logging.getLogger("mindcanvas.catalog")

DEFAULT_MAP_NAME = "New map"
MIGRATED_MAP_NAME = "My first map"


def catalog_key(owner_id: str) -> str:
    return f"mindmap_catalog_{owner_id}"


def map_key(owner_id: str, map_id: str) -> str:
    return f"mindmap_map_{owner_id}_{map_id}"


def legacy_key(owner_id: str) -> str:
    return f"mindmap_data_{owner_id}"


@dataclass(frozen=True)
class MigrationResult:
    """What happened when the catalog was first opened."""
    created: bool           # no catalog existed, a first map was made
    migrated: bool          # a legacy single-document payload was adopted
    map_id: Optional[str] = None
    recovered: bool = False  # the stored catalog was unreadable


class MapCatalog:
    """Metadata list of an owner's maps plus the currently active map id."""

    def __init__(self, storage: StorageAdapter, owner_id: str):
        self.storage = storage
        self.owner_id = owner_id
        self.maps: List[MapEntry] = []
        self.current_map_id: Optional[str] = None
        self.is_loaded = False

    # ==================== Loading ====================

    def load(self) -> MigrationResult:
        """Read the catalog, creating or migrating a first map if needed."""
        raw = self.storage.get(catalog_key(self.owner_id))
        if raw is not None:
            try:
                data = json.loads(raw)
                self.maps = [MapEntry.from_dict(m) for m in data.get("maps") or []]
                self.current_map_id = data.get("currentMapId")
            except (json.JSONDecodeError, AttributeError, KeyError, TypeError) as exc:
                logger.error("Failed to load catalog for %s: %s", self.owner_id, exc)
                result = self.migrate_legacy()
                return MigrationResult(result.created, result.migrated, result.map_id, recovered=True)

            if self.maps:
                if self.get_entry(self.current_map_id) is None:
                    self.current_map_id = self.maps[0].id
                self.is_loaded = True
                return MigrationResult(created=False, migrated=False, map_id=self.current_map_id)

        return self.migrate_legacy()

    def migrate_legacy(self) -> MigrationResult:
        """Start the catalog with one map.

        A pre-catalog payload stored under the legacy key becomes that map and
        the legacy key is removed. This happens once and cannot be undone.
        """
        old_data = self.storage.get(legacy_key(self.owner_id))
        entry = self._new_entry(MIGRATED_MAP_NAME if old_data is not None else DEFAULT_MAP_NAME)

        if old_data is not None:
            self.storage.set(map_key(self.owner_id, entry.id), old_data)
            self.storage.remove(legacy_key(self.owner_id))
            logger.info("Migrated legacy document of %s into map %s", self.owner_id, entry.id)
        else:
            self._write_payload(entry.id, graph.new_document().nodes, ())

        self.maps = [entry]
        self.current_map_id = entry.id
        self._save_catalog()
        self.is_loaded = True
        return MigrationResult(created=True, migrated=old_data is not None, map_id=entry.id)

    # ==================== Queries ====================

    def get_entry(self, map_id: Optional[str]) -> Optional[MapEntry]:
        for entry in self.maps:
            if entry.id == map_id:
                return entry
        return None

    @property
    def current_entry(self) -> Optional[MapEntry]:
        return self.get_entry(self.current_map_id)

    def __len__(self) -> int:
        return len(self.maps)

    # ==================== Map Operations ====================

    def create_map(self, name: str = DEFAULT_MAP_NAME) -> Optional[str]:
        """Create a map holding a single root node and make it current."""
        root = graph.new_document()
        return self.create_map_with_payload(name, root.nodes, root.connections)

    def create_map_with_payload(self, name: str, nodes: Iterable[Node],
                                connections: Iterable[Connection]) -> Optional[str]:
        """Store the given document as a new map and make it current."""
        name = (name or "").strip()
        if not name:
            return None

        entry = self._new_entry(name)
        self._write_payload(entry.id, nodes, connections)
        self.maps.append(entry)
        self.current_map_id = entry.id
        self._save_catalog()
        logger.info("Created map %s (%s)", entry.id, name)
        return entry.id

    def delete_map(self, map_id: str) -> bool:
        """Delete a map and its payload. The last map cannot be deleted."""
        if len(self.maps) <= 1 or self.get_entry(map_id) is None:
            return False

        self.storage.remove(map_key(self.owner_id, map_id))
        self.maps = [m for m in self.maps if m.id != map_id]
        if self.current_map_id == map_id:
            self.current_map_id = self.maps[0].id
        self._save_catalog()
        logger.info("Deleted map %s", map_id)
        return True

    def rename_map(self, map_id: str, new_name: str) -> bool:
        entry = self.get_entry(map_id)
        new_name = (new_name or "").strip()
        if entry is None or not new_name:
            return False
        entry.name = new_name
        entry.touch()
        self._save_catalog()
        return True

    def duplicate_map(self, map_id: str, new_name: Optional[str] = None) -> Optional[str]:
        """Copy a map under fresh node and connection ids."""
        entry = self.get_entry(map_id)
        loaded = self.load_map_payload(map_id)
        if entry is None or loaded is None:
            return None
        copy = graph.reassign_ids(loaded.snapshot)
        return self.create_map_with_payload(new_name or f"{entry.name} (copy)",
                                            copy.nodes, copy.connections)

    def switch_map(self, map_id: str) -> bool:
        """Make ``map_id`` current. Loading its payload is a separate step."""
        if self.get_entry(map_id) is None:
            return False
        self.current_map_id = map_id
        self._save_catalog()
        return True

    # ==================== Payloads ====================

    def load_map_payload(self, map_id: str) -> Optional[LoadedDocument]:
        """Decode the stored document of ``map_id``; None if nothing is stored."""
        return decode_document(self.storage.get(map_key(self.owner_id, map_id)))

    def save_map_payload(self, map_id: str, nodes: Iterable[Node],
                         connections: Iterable[Connection]) -> bool:
        entry = self.get_entry(map_id)
        if entry is None:
            return False
        self._write_payload(map_id, nodes, connections)
        entry.touch()
        self._save_catalog()
        return True

    def export_map(self, map_id: str) -> Optional[dict]:
        """Return the payload of ``map_id`` in its file export form."""
        loaded = self.load_map_payload(map_id)
        if loaded is None:
            return None
        return encode_document(loaded.snapshot.nodes, loaded.snapshot.connections)

    def import_map(self, payload, name: str) -> Optional[str]:
        """Create a map from an exported payload. Raises PayloadError if unusable."""
        loaded = parse_document(payload)
        if not loaded.snapshot.nodes:
            raise PayloadError("Payload contains no nodes")
        return self.create_map_with_payload(name, loaded.snapshot.nodes,
                                            loaded.snapshot.connections)

    # ==================== Internals ====================

    def _new_entry(self, name: str) -> MapEntry:
        now = now_iso()
        return MapEntry(id=generate_id(), name=name, created_at=now,
                        updated_at=now, owner_id=self.owner_id)

    def _write_payload(self, map_id: str, nodes, connections):
        payload = encode_document(nodes, connections)
        self.storage.set(map_key(self.owner_id, map_id), dumps(payload))

    def _save_catalog(self):
        catalog = {
            "maps": [m.to_dict() for m in self.maps],
            "currentMapId": self.current_map_id,
            "updatedAt": now_iso(),
        }
        self.storage.set(catalog_key(self.owner_id), json.dumps(catalog, ensure_ascii=False))
