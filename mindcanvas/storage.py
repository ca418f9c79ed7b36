"""Key/value persistence for mindcanvas.

The catalog and the documents only need ``get``, ``set`` and ``remove`` on
string values. Writes are independent: updating a payload and then the
catalog are two separate calls with no transaction spanning both.
"""

import logging
import sqlite3
from pathlib import Path
from typing import Optional, Dict, List, Protocol

from mindcanvas.config import get_db_path

logger = logging.getLogger("mindcanvas.storage")


class StorageAdapter(Protocol):
    """What the engine expects from a storage backend."""

    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class MemoryStorage:
    """Dictionary-backed storage, used for tests and scratch sessions."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str):
        self._data[key] = value

    def remove(self, key: str):
        self._data.pop(key, None)

    def keys(self, prefix: str = "") -> List[str]:
        return sorted(k for k in self._data if k.startswith(prefix))

    def __contains__(self, key: str) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)


class SqliteStorage:
    """Storage backed by a single key/value table in SQLite."""

    def __init__(self, db_path: Optional[Path] = None):
        self.db_path = db_path or get_db_path()
        self._conn: Optional[sqlite3.Connection] = None
        self._init_db()

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = sqlite3.connect(str(self.db_path))
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA journal_mode = WAL")
        return self._conn

    def _init_db(self):
        """Initialize the database schema."""
        self.conn.executescript("""
            CREATE TABLE IF NOT EXISTS kv (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                modified_at DATETIME DEFAULT CURRENT_TIMESTAMP
            );
        """)
        self.conn.commit()

    def close(self):
        """Close the database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def get(self, key: str) -> Optional[str]:
        cursor = self.conn.cursor()
        cursor.execute("SELECT value FROM kv WHERE key = ?", (key,))
        row = cursor.fetchone()
        return row["value"] if row else None

    def set(self, key: str, value: str):
        self.conn.execute(
            """INSERT INTO kv (key, value, modified_at) VALUES (?, ?, CURRENT_TIMESTAMP)
               ON CONFLICT(key) DO UPDATE SET value = excluded.value,
               modified_at = excluded.modified_at""",
            (key, value)
        )
        self.conn.commit()
        logger.debug("Stored %s (%d bytes)", key, len(value))

    def remove(self, key: str):
        self.conn.execute("DELETE FROM kv WHERE key = ?", (key,))
        self.conn.commit()

    def keys(self, prefix: str = "") -> List[str]:
        cursor = self.conn.cursor()
        cursor.execute(
            "SELECT key FROM kv WHERE substr(key, 1, ?) = ? ORDER BY key",
            (len(prefix), prefix)
        )
        return [row["key"] for row in cursor.fetchall()]

    def integrity_ok(self) -> bool:
        try:
            row = self.conn.execute("PRAGMA integrity_check").fetchone()
        except sqlite3.Error:
            return False
        return bool(row) and str(row[0]).lower() == "ok"
