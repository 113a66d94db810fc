"""
pytest suite for the user tutorial store and its SQLite helpers.

Uses temporary database files; no network needed.
"""

import asyncio
import os
import sqlite3
import sys
from datetime import datetime

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from tutorhub import db
from tutorhub.catalog import load_all_tutorials
from tutorhub.errors import RecordCorruptError, RecordNotFoundError, StoreUnavailableError
from tutorhub.models import Difficulty, UserTutorial
from tutorhub.registry import default_registry
from tutorhub.store import UserTutorialStore


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def tmp_db(tmp_path):
    """Return a database path inside a temporary directory."""
    return str(tmp_path / "test_tutorhub.db")


@pytest.fixture()
def conn(tmp_db):
    """Migrated connection to a fresh database."""
    c = db.get_connection(tmp_db)
    db.migrate_db(c)
    yield c
    c.close()


def _insert_raw(db_path, tid, difficulty="Beginner", tags="[]"):
    """Write a row straight to SQLite, bypassing model validation."""
    c = db.get_connection(db_path)
    try:
        db.migrate_db(c)
        c.execute(
            "INSERT INTO UserTutorials "
            "(id, title, content, category, difficulty, tags, created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
            (tid, "Raw", "# Raw\n\nbody", "My tutorials", difficulty, tags,
             "2024-01-01T00:00:00+00:00", "2024-01-01T00:00:00+00:00"),
        )
        c.commit()
    finally:
        c.close()


def _record(tid="user_1", content="# Notes\n\nbody", created="2024-01-01T00:00:00+00:00", **kw):
    values = dict(
        id=tid,
        title=kw.pop("title", "Notes"),
        content=content,
        category="My tutorials",
        difficulty=Difficulty.BEGINNER,
        tags=["sql"],
        created_at=created,
        updated_at=created,
    )
    values.update(kw)
    return UserTutorial(**values)


# ---------------------------------------------------------------------------
# Tests: schema & raw helpers
# ---------------------------------------------------------------------------


class TestSchema:
    """Migration and index creation."""

    def test_tables_and_indexes_created(self, conn):
        names = {
            r["name"]
            for r in conn.execute("SELECT name FROM sqlite_master WHERE type IN ('table', 'index')")
        }
        assert {"UserTutorials", "KeyValue"} <= names
        assert {"idx_user_tutorials_title", "idx_user_tutorials_created_at"} <= names

    def test_user_version_set(self, conn):
        assert conn.execute("PRAGMA user_version").fetchone()[0] == db.SCHEMA_VERSION

    def test_migrate_is_idempotent(self, conn):
        db.migrate_db(conn)
        assert conn.execute("PRAGMA user_version").fetchone()[0] == db.SCHEMA_VERSION

    def test_newer_schema_rejected(self, tmp_db):
        c = sqlite3.connect(tmp_db)
        c.execute("PRAGMA user_version = 7")
        c.commit()
        c.close()
        c = db.get_connection(tmp_db)
        try:
            with pytest.raises(sqlite3.DatabaseError):
                db.migrate_db(c)
        finally:
            c.close()


class TestRawHelpers:
    """Direct CRUD on the UserTutorials and KeyValue tables."""

    def test_upsert_and_get_roundtrip_tags(self, conn):
        db.upsert_user_tutorial(conn, _record(tags=["a", "b"]).model_dump(mode="json"))
        row = db.get_user_tutorial(conn, "user_1")
        assert row["tags"] == ["a", "b"]
        assert row["difficulty"] == "Beginner"

    def test_upsert_replaces(self, conn):
        db.upsert_user_tutorial(conn, _record().model_dump(mode="json"))
        db.upsert_user_tutorial(conn, _record(title="Renamed").model_dump(mode="json"))
        rows = db.get_all_user_tutorials(conn)
        assert len(rows) == 1
        assert rows[0]["title"] == "Renamed"

    def test_delete_reports_removal(self, conn):
        db.upsert_user_tutorial(conn, _record().model_dump(mode="json"))
        assert db.delete_user_tutorial(conn, "user_1") is True
        assert db.delete_user_tutorial(conn, "user_1") is False

    def test_key_value(self, conn):
        assert db.get_value(conn, "k") is None
        db.set_value(conn, "k", "v1")
        db.set_value(conn, "k", "v2")
        assert db.get_value(conn, "k") == "v2"


# ---------------------------------------------------------------------------
# Tests: async store
# ---------------------------------------------------------------------------


class TestUserTutorialStore:
    """put / get_all / get_by_id / delete semantics."""

    def test_put_then_get(self, tmp_db):
        store = UserTutorialStore(tmp_db)
        record = _record()
        stored = asyncio.run(store.put(record))
        assert stored == record
        assert asyncio.run(store.get_by_id("user_1")) == record

    def test_get_missing_returns_none(self, tmp_db):
        store = UserTutorialStore(tmp_db)
        assert asyncio.run(store.get_by_id("nope")) is None
        with pytest.raises(RecordNotFoundError):
            asyncio.run(store.require("nope"))

    def test_replace_keeps_created_at_and_advances_updated_at(self, tmp_db):
        store = UserTutorialStore(tmp_db)
        first = _record(created="2030-01-01T00:00:00+00:00")
        asyncio.run(store.put(first))

        replacement = _record(
            title="Second draft", created="2030-06-01T00:00:00+00:00"
        )
        stored = asyncio.run(store.put(replacement))
        fetched = asyncio.run(store.get_by_id("user_1"))

        assert fetched.title == "Second draft"
        assert fetched.created_at == first.created_at
        assert fetched.updated_at != first.updated_at
        assert datetime.fromisoformat(fetched.updated_at) > datetime.fromisoformat(first.updated_at)
        assert stored == fetched

    def test_get_all_ordered_by_creation(self, tmp_db):
        store = UserTutorialStore(tmp_db)

        async def scenario():
            await store.put(_record("user_b", created="2024-03-01T00:00:00+00:00"))
            await store.put(_record("user_a", created="2024-01-01T00:00:00+00:00"))
            await store.put(_record("user_c", created="2024-02-01T00:00:00+00:00"))
            return await store.get_all()

        assert [r.id for r in asyncio.run(scenario())] == ["user_a", "user_c", "user_b"]

    def test_get_all_empty(self, tmp_db):
        assert asyncio.run(UserTutorialStore(tmp_db).get_all()) == []

    def test_delete(self, tmp_db):
        store = UserTutorialStore(tmp_db)

        async def scenario():
            await store.put(_record())
            removed = await store.delete("user_1")
            again = await store.delete("user_1")
            return removed, again, await store.get_by_id("user_1")

        removed, again, remaining = asyncio.run(scenario())
        assert removed is True
        assert again is False
        assert remaining is None

    def test_concurrent_writes_last_writer_wins(self, tmp_db):
        store = UserTutorialStore(tmp_db)

        async def scenario():
            await asyncio.gather(
                *(store.put(_record(title=f"draft {i}")) for i in range(5))
            )
            return await store.get_all()

        records = asyncio.run(scenario())
        assert len(records) == 1
        assert records[0].title == "draft 4"

    def test_persists_across_instances(self, tmp_db):
        asyncio.run(UserTutorialStore(tmp_db).put(_record()))
        assert asyncio.run(UserTutorialStore(tmp_db).get_by_id("user_1")) is not None

    def test_write_locks_released_after_use(self, tmp_db):
        store = UserTutorialStore(tmp_db)

        async def scenario():
            await asyncio.gather(
                *(store.put(_record(f"user_{i % 3}", title=f"draft {i}")) for i in range(9))
            )
            await store.delete("user_0")

        asyncio.run(scenario())
        assert store._id_locks == {}
        assert store._lock_users == {}


class TestStoreFailures:
    """Storage errors surface as StoreUnavailableError."""

    def test_directory_path_is_unavailable(self, tmp_path):
        store = UserTutorialStore(str(tmp_path))
        with pytest.raises(StoreUnavailableError):
            asyncio.run(store.get_all())

    def test_write_failure_is_reported(self, tmp_path):
        store = UserTutorialStore(str(tmp_path))
        with pytest.raises(StoreUnavailableError) as excinfo:
            asyncio.run(store.put(_record()))
        assert excinfo.value.original is not None

    def test_newer_schema_is_unavailable(self, tmp_db):
        c = sqlite3.connect(tmp_db)
        c.execute("PRAGMA user_version = 99")
        c.commit()
        c.close()
        with pytest.raises(StoreUnavailableError):
            asyncio.run(UserTutorialStore(tmp_db).get_all())

    def test_catalog_degrades_to_builtins(self, tmp_path):
        store = UserTutorialStore(str(tmp_path))
        catalog = asyncio.run(load_all_tutorials(default_registry, store))
        assert [t.id for t in catalog] == [t.id for t in default_registry]


class TestCorruptRows:
    """Rows that exist but no longer decode into a UserTutorial."""

    def test_undecodable_tags_left_raw(self, conn, tmp_db):
        _insert_raw(tmp_db, "user_bad", tags="not json")
        assert db.get_user_tutorial(conn, "user_bad")["tags"] == "not json"

    @pytest.mark.parametrize(
        "difficulty,tags",
        [(None, "[]"), ("Beginner", "not json"), ("Beginner", '{"a": 1}')],
    )
    def test_get_all_skips_corrupt_rows(self, tmp_db, difficulty, tags):
        store = UserTutorialStore(tmp_db)
        asyncio.run(store.put(_record("user_good")))
        _insert_raw(tmp_db, "user_bad", difficulty=difficulty, tags=tags)

        assert [r.id for r in asyncio.run(store.get_all())] == ["user_good"]

    def test_get_by_id_reports_corruption(self, tmp_db):
        _insert_raw(tmp_db, "user_bad", difficulty=None)
        store = UserTutorialStore(tmp_db)
        with pytest.raises(RecordCorruptError) as excinfo:
            asyncio.run(store.get_by_id("user_bad"))
        assert excinfo.value.record_id == "user_bad"
        assert isinstance(excinfo.value, StoreUnavailableError)

    def test_catalog_keeps_readable_records(self, tmp_db):
        store = UserTutorialStore(tmp_db)
        asyncio.run(store.put(_record("user_good")))
        _insert_raw(tmp_db, "user_bad", tags="not json")

        ids = [t.id for t in asyncio.run(load_all_tutorials(default_registry, store))]
        assert ids == [t.id for t in default_registry] + ["user_good"]

    def test_put_overwrites_corrupt_row(self, tmp_db):
        _insert_raw(tmp_db, "user_1", difficulty=None)
        store = UserTutorialStore(tmp_db)
        stored = asyncio.run(store.put(_record()))
        assert asyncio.run(store.get_by_id("user_1")) == stored
