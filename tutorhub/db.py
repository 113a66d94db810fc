"""
Database module for TutorHub.

``UserTutorials`` table (schema version 1) with secondary indexes on
``title`` and ``created_at``, a ``KeyValue`` table backing small
device-local entries such as learning progress, and the learner-data
tables ``Notes`` (indexed by tutorial) and ``Favorites`` (one row per
tutorial).

All helpers are synchronous; ``tutorhub.store`` runs them off the event
loop.
"""

import json
import logging
import os
import sqlite3
import time
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1

# =========================================================================
# Schema constants
# =========================================================================

_CREATE_USER_TUTORIALS = """\
CREATE TABLE IF NOT EXISTS UserTutorials (
    id          TEXT    PRIMARY KEY,
    title       TEXT    NOT NULL,
    content     TEXT    NOT NULL,
    category    TEXT    NOT NULL,
    difficulty  TEXT    CHECK(difficulty IN ('Beginner','Intermediate',
                                             'Advanced','Expert')),
    tags        TEXT    NOT NULL DEFAULT '[]',
    created_at  TEXT    NOT NULL,
    updated_at  TEXT    NOT NULL
);
"""

_CREATE_IDX_TITLE = """\
CREATE INDEX IF NOT EXISTS idx_user_tutorials_title
    ON UserTutorials(title);
"""

_CREATE_IDX_CREATED_AT = """\
CREATE INDEX IF NOT EXISTS idx_user_tutorials_created_at
    ON UserTutorials(created_at);
"""

_CREATE_KEY_VALUE = """\
CREATE TABLE IF NOT EXISTS KeyValue (
    key    TEXT PRIMARY KEY,
    value  TEXT NOT NULL
);
"""

_CREATE_NOTES = """\
CREATE TABLE IF NOT EXISTS Notes (
    id              TEXT PRIMARY KEY,
    tutorial_id     TEXT NOT NULL,
    tutorial_title  TEXT NOT NULL DEFAULT '',
    selected_text   TEXT NOT NULL DEFAULT '',
    note_content    TEXT NOT NULL,
    created_at      TEXT NOT NULL,
    updated_at      TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_notes_tutorial_id ON Notes(tutorial_id);
CREATE INDEX IF NOT EXISTS idx_notes_created_at  ON Notes(created_at);
"""

_CREATE_FAVORITES = """\
CREATE TABLE IF NOT EXISTS Favorites (
    id                 TEXT PRIMARY KEY,
    tutorial_id        TEXT NOT NULL UNIQUE,
    tutorial_title     TEXT NOT NULL DEFAULT '',
    tutorial_category  TEXT,
    added_at           TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_favorites_added_at ON Favorites(added_at);
"""


# =========================================================================
# Connection helper
# =========================================================================


def get_connection(db_path: str) -> sqlite3.Connection:
    """Return a new SQLite connection with WAL mode and row-factory enabled."""
    if db_path != ":memory:":
        os.makedirs(os.path.dirname(os.path.abspath(db_path)), exist_ok=True)
    conn = sqlite3.connect(db_path, timeout=10)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL;")
    return conn


# =========================================================================
# Migration
# =========================================================================


def migrate_db(conn: sqlite3.Connection) -> None:
    """Create (or verify) the schema at ``SCHEMA_VERSION``.

    Raises:
        sqlite3.DatabaseError: The file was written by a newer schema.
    """
    current = int(conn.execute("PRAGMA user_version").fetchone()[0])
    if current > SCHEMA_VERSION:
        raise sqlite3.DatabaseError(
            f"Database schema version {current} is newer than supported {SCHEMA_VERSION}."
        )
    conn.execute(_CREATE_USER_TUTORIALS)
    conn.execute(_CREATE_IDX_TITLE)
    conn.execute(_CREATE_IDX_CREATED_AT)
    conn.execute(_CREATE_KEY_VALUE)
    conn.executescript(_CREATE_NOTES)
    conn.executescript(_CREATE_FAVORITES)
    conn.execute(f"PRAGMA user_version = {SCHEMA_VERSION}")
    conn.commit()
    if current < SCHEMA_VERSION:
        logger.info("Schema migrated from v%d to v%d.", current, SCHEMA_VERSION)


# =========================================================================
# Lock-retry helper
# =========================================================================

_SQLITE_LOCK_RETRIES = 5
_SQLITE_LOCK_BASE_DELAY = 0.1


def _retry_on_lock(fn, *args, **kwargs):  # type: ignore[no-untyped-def]
    """Wrap *fn* with SQLite-lock retry."""
    for attempt in range(1, _SQLITE_LOCK_RETRIES + 1):
        try:
            return fn(*args, **kwargs)
        except sqlite3.OperationalError as exc:
            if "locked" in str(exc).lower() and attempt < _SQLITE_LOCK_RETRIES:
                delay = _SQLITE_LOCK_BASE_DELAY * (2 ** (attempt - 1))
                logger.warning(
                    "SQLite locked (attempt %d/%d); retrying in %.2fs",
                    attempt, _SQLITE_LOCK_RETRIES, delay,
                )
                time.sleep(delay)
            else:
                raise


# =========================================================================
# User tutorial helpers
# =========================================================================


def _row_to_user_tutorial(row: sqlite3.Row) -> Dict[str, Any]:
    """Row as a dict with ``tags`` decoded; undecodable tags stay as raw text."""
    record = dict(row)
    try:
        record["tags"] = json.loads(record["tags"] or "[]")
    except ValueError:
        logger.warning("Undecodable tags on user tutorial %s.", record.get("id"))
    return record


def upsert_user_tutorial(conn: sqlite3.Connection, record: Dict[str, Any]) -> None:
    """Create or replace the row keyed by ``record['id']``."""

    def _do_upsert() -> None:
        conn.execute(
            """
            INSERT INTO UserTutorials
                (id, title, content, category, difficulty, tags, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                title      = excluded.title,
                content    = excluded.content,
                category   = excluded.category,
                difficulty = excluded.difficulty,
                tags       = excluded.tags,
                created_at = excluded.created_at,
                updated_at = excluded.updated_at
            """,
            (
                record["id"],
                record["title"],
                record["content"],
                record["category"],
                record["difficulty"],
                json.dumps(list(record.get("tags") or []), ensure_ascii=False),
                record["created_at"],
                record["updated_at"],
            ),
        )
        conn.commit()

    _retry_on_lock(_do_upsert)


def get_user_tutorial(conn: sqlite3.Connection, tutorial_id: str) -> Optional[Dict[str, Any]]:
    """Return the row for *tutorial_id*, or ``None``."""
    row = conn.execute(
        "SELECT * FROM UserTutorials WHERE id = ?", (tutorial_id,)
    ).fetchone()
    return _row_to_user_tutorial(row) if row else None


def get_all_user_tutorials(conn: sqlite3.Connection) -> List[Dict[str, Any]]:
    """Return every user tutorial ordered by creation time."""
    rows = conn.execute(
        "SELECT * FROM UserTutorials ORDER BY created_at, id"
    ).fetchall()
    return [_row_to_user_tutorial(r) for r in rows]


def delete_user_tutorial(conn: sqlite3.Connection, tutorial_id: str) -> bool:
    """Delete one row. Returns ``True`` if a row was removed."""

    def _do_delete() -> bool:
        cursor = conn.execute("DELETE FROM UserTutorials WHERE id = ?", (tutorial_id,))
        conn.commit()
        return cursor.rowcount > 0

    return _retry_on_lock(_do_delete)


def delete_all_user_tutorials(conn: sqlite3.Connection) -> int:
    """Remove every user tutorial. Returns the number of rows removed."""

    def _do_clear() -> int:
        cursor = conn.execute("DELETE FROM UserTutorials")
        conn.commit()
        return cursor.rowcount

    return _retry_on_lock(_do_clear)


# =========================================================================
# Key-value helpers
# =========================================================================


def get_value(conn: sqlite3.Connection, key: str) -> Optional[str]:
    """Return the stored string for *key*, or ``None``."""
    row = conn.execute("SELECT value FROM KeyValue WHERE key = ?", (key,)).fetchone()
    return str(row["value"]) if row else None


def set_value(conn: sqlite3.Connection, key: str, value: str) -> None:
    """Create or replace the entry for *key*."""

    def _do_set() -> None:
        conn.execute(
            "INSERT OR REPLACE INTO KeyValue (key, value) VALUES (?, ?)",
            (key, value),
        )
        conn.commit()

    _retry_on_lock(_do_set)



# =========================================================================
# Note helpers
# =========================================================================


def upsert_note(conn: sqlite3.Connection, record: Dict[str, Any]) -> None:
    """Create or replace the note keyed by ``record['id']``."""

    def _do_upsert() -> None:
        conn.execute(
            """
            INSERT OR REPLACE INTO Notes
                (id, tutorial_id, tutorial_title, selected_text, note_content,
                 created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                record["id"],
                record["tutorial_id"],
                record.get("tutorial_title") or "",
                record.get("selected_text") or "",
                record["note_content"],
                record["created_at"],
                record["updated_at"],
            ),
        )
        conn.commit()

    _retry_on_lock(_do_upsert)


def get_note(conn: sqlite3.Connection, note_id: str) -> Optional[Dict[str, Any]]:
    row = conn.execute("SELECT * FROM Notes WHERE id = ?", (note_id,)).fetchone()
    return dict(row) if row else None


def get_notes(conn: sqlite3.Connection, tutorial_id: Optional[str] = None) -> List[Dict[str, Any]]:
    """Return notes oldest first, optionally only those for *tutorial_id*."""
    if tutorial_id is None:
        rows = conn.execute("SELECT * FROM Notes ORDER BY created_at, id").fetchall()
    else:
        rows = conn.execute(
            "SELECT * FROM Notes WHERE tutorial_id = ? ORDER BY created_at, id",
            (tutorial_id,),
        ).fetchall()
    return [dict(r) for r in rows]


def delete_note(conn: sqlite3.Connection, note_id: str) -> bool:
    def _do_delete() -> bool:
        cursor = conn.execute("DELETE FROM Notes WHERE id = ?", (note_id,))
        conn.commit()
        return cursor.rowcount > 0

    return _retry_on_lock(_do_delete)


def delete_all_notes(conn: sqlite3.Connection) -> int:
    def _do_clear() -> int:
        cursor = conn.execute("DELETE FROM Notes")
        conn.commit()
        return cursor.rowcount

    return _retry_on_lock(_do_clear)


# =========================================================================
# Favorite helpers
# =========================================================================


def upsert_favorite(conn: sqlite3.Connection, record: Dict[str, Any]) -> None:
    """Create or replace a favorite; an existing row for the tutorial is replaced."""

    def _do_upsert() -> None:
        conn.execute("DELETE FROM Favorites WHERE tutorial_id = ? AND id != ?",
                     (record["tutorial_id"], record["id"]))
        conn.execute(
            """
            INSERT OR REPLACE INTO Favorites
                (id, tutorial_id, tutorial_title, tutorial_category, added_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                record["id"],
                record["tutorial_id"],
                record.get("tutorial_title") or "",
                record.get("tutorial_category"),
                record["added_at"],
            ),
        )
        conn.commit()

    _retry_on_lock(_do_upsert)


def get_favorite_by_tutorial(conn: sqlite3.Connection, tutorial_id: str) -> Optional[Dict[str, Any]]:
    row = conn.execute(
        "SELECT * FROM Favorites WHERE tutorial_id = ?", (tutorial_id,)
    ).fetchone()
    return dict(row) if row else None


def get_favorites(conn: sqlite3.Connection) -> List[Dict[str, Any]]:
    """Return favorites, most recently added first."""
    rows = conn.execute("SELECT * FROM Favorites ORDER BY added_at DESC, id").fetchall()
    return [dict(r) for r in rows]


def count_favorites(conn: sqlite3.Connection) -> int:
    return int(conn.execute("SELECT COUNT(*) FROM Favorites").fetchone()[0])


def delete_favorite(conn: sqlite3.Connection, favorite_id: str) -> bool:
    def _do_delete() -> bool:
        cursor = conn.execute("DELETE FROM Favorites WHERE id = ?", (favorite_id,))
        conn.commit()
        return cursor.rowcount > 0

    return _retry_on_lock(_do_delete)


def delete_favorite_by_tutorial(conn: sqlite3.Connection, tutorial_id: str) -> bool:
    def _do_delete() -> bool:
        cursor = conn.execute("DELETE FROM Favorites WHERE tutorial_id = ?", (tutorial_id,))
        conn.commit()
        return cursor.rowcount > 0

    return _retry_on_lock(_do_delete)


def delete_all_favorites(conn: sqlite3.Connection) -> int:
    def _do_clear() -> int:
        cursor = conn.execute("DELETE FROM Favorites")
        conn.commit()
        return cursor.rowcount

    return _retry_on_lock(_do_clear)
