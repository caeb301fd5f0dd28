"""
Storage Backend Module

Provides the abstract storage interface and implementations for in-memory
(testing), JSON file and SQLite persistence. Backends hold the whole platform
state and exchange it as a plain dictionary:

    {"settings": {...}, "accounts": {user_id: {...}}, "admin": {...}}

No partial-write guarantees are made; a failed read or write surfaces as
StorageUnavailable.
"""

from abc import ABC, abstractmethod
from typing import Dict, Any, Union
from pathlib import Path
from contextlib import contextmanager
import copy
import json
import sqlite3
import threading

from .errors import StorageUnavailable


STATE_SECTIONS = ("settings", "accounts", "admin")


def empty_state() -> Dict[str, Any]:
    """State of a freshly initialized platform"""
    return {
        "settings": {"ratingEnabled": True, "withdrawEnabled": True},
        "accounts": {},
        "admin": {"session_id": None},
    }


def normalize_state(raw: Any) -> Dict[str, Any]:
    """Fill in missing sections of a loaded state"""
    if not isinstance(raw, dict):
        raise StorageUnavailable("Stored state is not a JSON object")

    state = empty_state()
    # Legacy files keep accounts under "users"
    if "accounts" not in raw and isinstance(raw.get("users"), dict):
        raw = dict(raw, accounts=raw["users"])
    for section in ("settings", "admin"):
        if isinstance(raw.get(section), dict):
            state[section].update(raw[section])
    if isinstance(raw.get("accounts"), dict):
        state["accounts"] = raw["accounts"]
    return state


class StorageInterface(ABC):
    """Abstract interface for storage backends"""

    def __init__(self):
        self._lock = threading.RLock()

    @contextmanager
    def atomic(self):
        """Hold the storage lock across a load-modify-save sequence"""
        with self._lock:
            yield

    @abstractmethod
    def load(self) -> Dict[str, Any]:
        """Load the full platform state"""
        pass

    @abstractmethod
    def save(self, state: Dict[str, Any]) -> None:
        """Replace the stored platform state"""
        pass

    def close(self) -> None:
        """Close storage connection (default no-op)"""
        pass


class InMemoryStorage(StorageInterface):
    """In-memory storage implementation for testing"""

    def __init__(self, initial_state: Dict[str, Any] = None):
        super().__init__()
        self._state = normalize_state(initial_state) if initial_state else empty_state()

    def load(self) -> Dict[str, Any]:
        with self._lock:
            # Deep copy to prevent external mutation
            return copy.deepcopy(self._state)

    def save(self, state: Dict[str, Any]) -> None:
        with self._lock:
            # Round-trip through JSON so memory holds exactly what a file would
            self._state = json.loads(json.dumps(state))


class JSONFileStorage(StorageInterface):
    """Flat JSON file storage, pretty-printed with two-space indent"""

    def __init__(self, path: Union[str, Path] = "database.json"):
        self.path = Path(path)
        super().__init__()

    def _ensure_file(self) -> None:
        if not self.path.exists():
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._write(empty_state())

    def _write(self, state: Dict[str, Any]) -> None:
        self.path.write_text(json.dumps(state, indent=2), encoding="utf-8")

    def load(self) -> Dict[str, Any]:
        with self._lock:
            try:
                self._ensure_file()
                raw = json.loads(self.path.read_text(encoding="utf-8"))
            except (OSError, ValueError) as e:
                raise StorageUnavailable(f"Cannot read {self.path}: {e}") from e
            return normalize_state(raw)

    def save(self, state: Dict[str, Any]) -> None:
        with self._lock:
            try:
                self._write(state)
            except (OSError, TypeError, ValueError) as e:
                raise StorageUnavailable(f"Cannot write {self.path}: {e}") from e


class SQLiteStorage(StorageInterface):
    """SQLite storage implementation, one row per state section"""

    def __init__(self, db_path: Union[str, Path] = ":memory:"):
        self.db_path = str(db_path)
        super().__init__()
        try:
            self._connection = sqlite3.connect(self.db_path, check_same_thread=False)
            self._connection.row_factory = sqlite3.Row
            self._connection.execute("""
                CREATE TABLE IF NOT EXISTS ledger_state (
                    section TEXT PRIMARY KEY,
                    data TEXT NOT NULL
                )
            """)
            self._connection.commit()
        except sqlite3.Error as e:
            raise StorageUnavailable(f"Cannot open {self.db_path}: {e}") from e

    def load(self) -> Dict[str, Any]:
        with self._lock:
            if self._connection is None:
                raise StorageUnavailable("Storage is closed")
            try:
                rows = self._connection.execute(
                    "SELECT section, data FROM ledger_state"
                ).fetchall()
                raw = {row["section"]: json.loads(row["data"]) for row in rows}
            except (sqlite3.Error, ValueError) as e:
                raise StorageUnavailable(f"Cannot read {self.db_path}: {e}") from e
            return normalize_state(raw)

    def save(self, state: Dict[str, Any]) -> None:
        with self._lock:
            if self._connection is None:
                raise StorageUnavailable("Storage is closed")
            try:
                for section in STATE_SECTIONS:
                    self._connection.execute(
                        "INSERT OR REPLACE INTO ledger_state (section, data) VALUES (?, ?)",
                        (section, json.dumps(state.get(section, {})))
                    )
                self._connection.commit()
            except sqlite3.Error as e:
                self._connection.rollback()
                raise StorageUnavailable(f"Cannot write {self.db_path}: {e}") from e

    def close(self) -> None:
        with self._lock:
            if self._connection:
                self._connection.close()
                self._connection = None


def create_storage(config) -> StorageInterface:
    """Build the storage backend named by config.storage_backend"""
    backend = config.storage_backend.lower()
    if backend == "memory":
        return InMemoryStorage()
    if backend == "json":
        return JSONFileStorage(config.data_file)
    if backend == "sqlite":
        return SQLiteStorage(config.sqlite_path)
    raise ValueError(f"Unknown storage backend: {config.storage_backend}")
