"""
Learner-owned annotations: per-tutorial notes and favorites.

Both live in the TutorHub database next to user tutorials and share the
async plumbing of ``tutorhub.store.SqliteStore``.
"""

import logging
import uuid
from typing import List, Optional

from tutorhub import db
from tutorhub.models import Favorite, Note, TutorialMetadata
from tutorhub.store import SqliteStore, advance_timestamp, utc_now_iso

logger = logging.getLogger(__name__)


def _new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


# =========================================================================
# Notes
# =========================================================================


class NoteStore(SqliteStore):
    """Async access to the ``Notes`` table."""

    async def add(
        self,
        tutorial: TutorialMetadata,
        note_content: str,
        selected_text: str = "",
    ) -> Note:
        """Create a note on *tutorial*.

        Raises:
            ValueError: Empty note text.
        """
        if not note_content or not note_content.strip():
            raise ValueError("Note text is empty.")
        now = utc_now_iso()
        note = Note(
            id=_new_id("note"),
            tutorial_id=tutorial.id,
            tutorial_title=tutorial.title,
            selected_text=selected_text,
            note_content=note_content,
            created_at=now,
            updated_at=now,
        )
        return await self.save(note)

    async def save(self, note: Note) -> Note:
        """Create or replace *note* as given."""
        async with self._exclusive(note.id):
            payload = note.model_dump(mode="json")
            await self._call("save_note", lambda conn: db.upsert_note(conn, payload))
        logger.info("Saved note %s on %s.", note.id, note.tutorial_id)
        return note

    async def edit(self, note_id: str, note_content: str) -> Optional[Note]:
        """Replace the text of *note_id*; ``None`` if it does not exist."""
        async with self._exclusive(note_id):
            existing = await self.get_by_id(note_id)
            if existing is None:
                return None
            updated = existing.model_copy(
                update={
                    "note_content": note_content,
                    "updated_at": advance_timestamp(existing.created_at, existing.updated_at),
                }
            )
            payload = updated.model_dump(mode="json")
            await self._call("edit_note", lambda conn: db.upsert_note(conn, payload))
        return updated

    async def get_by_id(self, note_id: str) -> Optional[Note]:
        row = await self._call("get_note", lambda conn: db.get_note(conn, note_id))
        return self._decode(Note, row, "get_note") if row else None

    async def get_all(self) -> List[Note]:
        rows = await self._call("get_notes", db.get_notes)
        return self._decode_all(Note, rows, "get_notes")

    async def get_by_tutorial(self, tutorial_id: str) -> List[Note]:
        rows = await self._call("get_notes", lambda conn: db.get_notes(conn, tutorial_id))
        return self._decode_all(Note, rows, "get_notes")

    async def delete(self, note_id: str) -> bool:
        async with self._exclusive(note_id):
            return await self._call("delete_note", lambda conn: db.delete_note(conn, note_id))

    async def clear(self) -> int:
        return await self._call("clear_notes", db.delete_all_notes)


# =========================================================================
# Favorites
# =========================================================================


class FavoriteStore(SqliteStore):
    """Async access to the ``Favorites`` table (one row per tutorial)."""

    async def add(self, tutorial: TutorialMetadata) -> Favorite:
        """Favorite *tutorial*; adding it again returns the existing entry."""
        async with self._exclusive(tutorial.id):
            existing = await self.get_by_tutorial(tutorial.id)
            if existing is not None:
                return existing
            favorite = Favorite(
                id=_new_id("fav"),
                tutorial_id=tutorial.id,
                tutorial_title=tutorial.title,
                tutorial_category=tutorial.category,
                added_at=utc_now_iso(),
            )
            await self._save_unlocked(favorite)
        return favorite

    async def save(self, favorite: Favorite) -> Favorite:
        """Store *favorite* as given, replacing any entry for the same tutorial."""
        async with self._exclusive(favorite.tutorial_id):
            await self._save_unlocked(favorite)
        return favorite

    async def _save_unlocked(self, favorite: Favorite) -> None:
        payload = favorite.model_dump(mode="json")
        await self._call("save_favorite", lambda conn: db.upsert_favorite(conn, payload))
        logger.info("Favorited %s.", favorite.tutorial_id)

    async def get_by_tutorial(self, tutorial_id: str) -> Optional[Favorite]:
        row = await self._call(
            "get_favorite", lambda conn: db.get_favorite_by_tutorial(conn, tutorial_id)
        )
        return self._decode(Favorite, row, "get_favorite") if row else None

    async def get_all(self) -> List[Favorite]:
        """Favorites, most recently added first."""
        rows = await self._call("get_favorites", db.get_favorites)
        return self._decode_all(Favorite, rows, "get_favorites")

    async def is_favorite(self, tutorial_id: str) -> bool:
        return await self.get_by_tutorial(tutorial_id) is not None

    async def count(self) -> int:
        return await self._call("count_favorites", db.count_favorites)

    async def remove(self, favorite_id: str) -> bool:
        return await self._call("remove_favorite", lambda conn: db.delete_favorite(conn, favorite_id))

    async def remove_by_tutorial(self, tutorial_id: str) -> bool:
        async with self._exclusive(tutorial_id):
            return await self._call(
                "remove_favorite", lambda conn: db.delete_favorite_by_tutorial(conn, tutorial_id)
            )

    async def clear(self) -> int:
        return await self._call("clear_favorites", db.delete_all_favorites)
