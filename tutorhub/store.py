"""
Durable per-device store of user-authored tutorials.

``UserTutorialStore`` exposes an async API over the SQLite helpers in
``tutorhub.db``. Every call runs in a worker thread with its own
connection, so the event loop never blocks on disk I/O. Writes to the same
id are serialised (last writer wins); ``created_at`` survives a replace
while ``updated_at`` always moves forward.

Rows that no longer decode into a valid record (an older or damaged file)
are skipped by ``get_all`` and reported as ``RecordCorruptError`` by
``get_by_id``; ``put`` overwrites them.
"""

import asyncio
import contextlib
import logging
import sqlite3
from datetime import datetime, timedelta, timezone
from typing import Any, AsyncIterator, Callable, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from tutorhub import db
from tutorhub.errors import RecordCorruptError, RecordNotFoundError, StoreUnavailableError
from tutorhub.models import UserTutorial

logger = logging.getLogger(__name__)

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def advance_timestamp(*floor: str) -> str:
    """Return the current time, nudged past every parseable timestamp in *floor*."""
    now = datetime.now(timezone.utc)
    parsed = []
    for ts in floor:
        try:
            parsed.append(datetime.fromisoformat(ts))
        except (TypeError, ValueError):
            continue
    if parsed:
        latest = max(parsed)
        if now <= latest:
            now = latest + timedelta(microseconds=1)
    return now.isoformat()


class SqliteStore:
    """Shared plumbing: threaded calls, lazy schema, per-key write locks."""

    def __init__(self, db_path: str) -> None:
        self.db_path = db_path
        self._schema_ready = False
        self._schema_lock = asyncio.Lock()
        self._id_locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Dict[str, int] = {}

    def _run(self, operation: str, fn: Callable[[sqlite3.Connection], T]) -> T:
        """Open a connection, run *fn*, translate storage failures."""
        try:
            conn = db.get_connection(self.db_path)
        except (sqlite3.Error, OSError) as exc:
            raise StoreUnavailableError(operation, exc) from exc
        try:
            return fn(conn)
        except sqlite3.Error as exc:
            raise StoreUnavailableError(operation, exc) from exc
        finally:
            conn.close()

    async def _call(self, operation: str, fn: Callable[[sqlite3.Connection], T]) -> T:
        await self._ensure_schema()
        return await asyncio.to_thread(self._run, operation, fn)

    async def _ensure_schema(self) -> None:
        if self._schema_ready:
            return
        async with self._schema_lock:
            if not self._schema_ready:
                await asyncio.to_thread(self._run, "open", db.migrate_db)
                self._schema_ready = True

    @contextlib.asynccontextmanager
    async def _exclusive(self, key: str) -> AsyncIterator[None]:
        """Serialise writers on *key*; the lock is dropped once nobody holds or awaits it."""
        lock = self._id_locks.get(key)
        if lock is None:
            lock = self._id_locks[key] = asyncio.Lock()
        self._lock_users[key] = self._lock_users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[key] -= 1
            if self._lock_users[key] == 0:
                del self._lock_users[key]
                del self._id_locks[key]

    @staticmethod
    def _decode(model: Type[M], row: Dict[str, Any], operation: str) -> M:
        """Validate *row* as *model* or raise ``RecordCorruptError``."""
        try:
            return model.model_validate(row)
        except ValidationError as exc:
            raise RecordCorruptError(operation, str(row.get("id")), exc) from exc

    def _decode_all(self, model: Type[M], rows: List[Dict[str, Any]], operation: str) -> List[M]:
        """Decode *rows*, skipping (and logging) any that are corrupt."""
        records: List[M] = []
        for row in rows:
            try:
                records.append(self._decode(model, row, operation))
            except RecordCorruptError as exc:
                logger.warning("Skipping %s: %s", model.__name__, exc)
        return records


class UserTutorialStore(SqliteStore):
    """Async create-or-replace / read / delete access to ``UserTutorials``."""

    async def _existing(self, tutorial_id: str) -> Optional[UserTutorial]:
        try:
            return await self.get_by_id(tutorial_id)
        except RecordCorruptError as exc:
            logger.warning("Overwriting corrupt user tutorial %s: %s", tutorial_id, exc.original)
            return None

    async def put(self, tutorial: UserTutorial) -> UserTutorial:
        """Create or replace *tutorial*; returns the record as stored.

        Raises:
            StoreUnavailableError: The write could not be committed.
        """
        async with self._exclusive(tutorial.id):
            existing = await self._existing(tutorial.id)
            if existing is None:
                stored = tutorial
            else:
                stored = tutorial.model_copy(
                    update={
                        "created_at": existing.created_at,
                        "updated_at": advance_timestamp(
                            existing.created_at, existing.updated_at
                        ),
                    }
                )
            payload = stored.model_dump(mode="json")
            await self._call("put", lambda conn: db.upsert_user_tutorial(conn, payload))
        logger.info(
            "%s user tutorial %s (%d chars).",
            "Replaced" if existing else "Created", stored.id, len(stored.content),
        )
        return stored

    async def get_all(self) -> List[UserTutorial]:
        """Return every readable stored tutorial, oldest first.

        Corrupt rows are skipped with a warning.

        Raises:
            StoreUnavailableError: The store could not be read.
        """
        rows = await self._call("get_all", db.get_all_user_tutorials)
        return self._decode_all(UserTutorial, rows, "get_all")

    async def get_by_id(self, tutorial_id: str) -> Optional[UserTutorial]:
        """Return the stored tutorial with *tutorial_id*, or ``None``.

        Raises:
            RecordCorruptError: The row exists but is not a valid record.
        """
        row = await self._call("get_by_id", lambda conn: db.get_user_tutorial(conn, tutorial_id))
        return self._decode(UserTutorial, row, "get_by_id") if row else None

    async def require(self, tutorial_id: str) -> UserTutorial:
        """Like :meth:`get_by_id` but raise ``RecordNotFoundError`` when absent."""
        record = await self.get_by_id(tutorial_id)
        if record is None:
            raise RecordNotFoundError(tutorial_id)
        return record

    async def delete(self, tutorial_id: str) -> bool:
        """Delete *tutorial_id*. Returns ``True`` if a record was removed.

        Raises:
            StoreUnavailableError: The delete could not be committed.
        """
        async with self._exclusive(tutorial_id):
            removed = await self._call(
                "delete", lambda conn: db.delete_user_tutorial(conn, tutorial_id)
            )
        if removed:
            logger.info("Deleted user tutorial %s.", tutorial_id)
        else:
            logger.debug("Delete of unknown user tutorial %s ignored.", tutorial_id)
        return removed

    async def clear(self) -> int:
        """Delete every user tutorial; returns how many were removed."""
        removed = await self._call("clear", db.delete_all_user_tutorials)
        logger.info("Cleared %d user tutorial(s).", removed)
        return removed
