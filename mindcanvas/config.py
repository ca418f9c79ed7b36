"""Runtime configuration for mindcanvas."""

import getpass
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


def get_data_dir() -> Path:
    """Get the application data directory."""
    override = os.environ.get("MINDCANVAS_DATA_DIR")
    data_dir = Path(override).expanduser() if override else Path.home() / ".local" / "share" / "mindcanvas"
    data_dir.mkdir(parents=True, exist_ok=True)
    (data_dir / "exports").mkdir(exist_ok=True)
    (data_dir / "backups").mkdir(exist_ok=True)
    return data_dir


def get_db_path() -> Path:
    """Get the key/value store file path."""
    return get_data_dir() / "mindcanvas.db"


def default_owner_id() -> str:
    owner = os.environ.get("MINDCANVAS_OWNER")
    if owner:
        return owner
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return "local"


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        return default


@dataclass
class Settings:
    """Tunables for an editing session."""
    history_capacity: int = 50
    autosave_delay_ms: int = 1000
    owner_id: str = field(default_factory=default_owner_id)
    db_path: Optional[Path] = None

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            history_capacity=max(1, _env_int("MINDCANVAS_HISTORY", 50)),
            autosave_delay_ms=max(0, _env_int("MINDCANVAS_AUTOSAVE_MS", 1000)),
        )

    def resolve_db_path(self) -> Path:
        return self.db_path or get_db_path()
