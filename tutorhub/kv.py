"""
Small key-value capability for device-local state.

The core only needs ``get(key)`` and ``set(key, value)``; callers inject an
implementation so progress handling can be exercised with the in-memory
fake and persisted with the SQLite one.
"""

from typing import Dict, Optional, Protocol

from tutorhub import db


class KeyValueStore(Protocol):
    """Minimal string key-value interface."""

    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...


class InMemoryKeyValueStore:
    """Dictionary-backed store; state lives as long as the object."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value


class SqliteKeyValueStore:
    """Persists entries in the ``KeyValue`` table of the TutorHub database."""

    def __init__(self, db_path: str) -> None:
        self.db_path = db_path
        conn = db.get_connection(db_path)
        try:
            db.migrate_db(conn)
        finally:
            conn.close()

    def get(self, key: str) -> Optional[str]:
        conn = db.get_connection(self.db_path)
        try:
            return db.get_value(conn, key)
        finally:
            conn.close()

    def set(self, key: str, value: str) -> None:
        conn = db.get_connection(self.db_path)
        try:
            db.set_value(conn, key, value)
        finally:
            conn.close()
