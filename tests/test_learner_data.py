"""
pytest suite for notes and favorites.

Uses temporary database files; no network needed.
"""

import asyncio
import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from tutorhub import db
from tutorhub.learner_data import FavoriteStore, NoteStore
from tutorhub.models import Difficulty, Favorite, Note, TutorialMetadata


@pytest.fixture()
def tmp_db(tmp_path):
    """Return a database path inside a temporary directory."""
    return str(tmp_path / "test_tutorhub.db")


def _t(tid, category="Basics"):
    return TutorialMetadata(
        id=tid, title=tid.title(), category=category, difficulty=Difficulty.BEGINNER
    )


def _note(nid, tid="intro", created="2024-01-01T00:00:00+00:00", text="remember this"):
    return Note(
        id=nid,
        tutorial_id=tid,
        tutorial_title=tid.title(),
        note_content=text,
        created_at=created,
        updated_at=created,
    )


# ---------------------------------------------------------------------------
# Tests: notes
# ---------------------------------------------------------------------------


class TestNoteStore:
    """add / edit / lookup / delete semantics."""

    def test_add_and_fetch(self, tmp_db):
        store = NoteStore(tmp_db)
        note = asyncio.run(store.add(_t("intro"), "SELECT is lazy", selected_text="SELECT"))
        assert note.id.startswith("note_")
        assert note.tutorial_title == "Intro"
        assert note.created_at == note.updated_at
        assert asyncio.run(store.get_by_id(note.id)) == note

    def test_empty_note_rejected(self, tmp_db):
        with pytest.raises(ValueError):
            asyncio.run(NoteStore(tmp_db).add(_t("intro"), "   "))

    def test_by_tutorial_oldest_first(self, tmp_db):
        store = NoteStore(tmp_db)

        async def scenario():
            await store.save(_note("n2", created="2024-02-01T00:00:00+00:00"))
            await store.save(_note("n1", created="2024-01-01T00:00:00+00:00"))
            await store.save(_note("n3", tid="joins"))
            return await store.get_by_tutorial("intro"), await store.get_all()

        intro, everything = asyncio.run(scenario())
        assert [n.id for n in intro] == ["n1", "n2"]
        assert len(everything) == 3

    def test_edit_moves_updated_at(self, tmp_db):
        store = NoteStore(tmp_db)
        asyncio.run(store.save(_note("n1")))
        edited = asyncio.run(store.edit("n1", "revised"))
        assert edited.note_content == "revised"
        assert edited.created_at == "2024-01-01T00:00:00+00:00"
        assert edited.updated_at > edited.created_at
        assert asyncio.run(store.get_by_id("n1")) == edited

    def test_edit_unknown_returns_none(self, tmp_db):
        assert asyncio.run(NoteStore(tmp_db).edit("ghost", "text")) is None

    def test_delete_and_clear(self, tmp_db):
        store = NoteStore(tmp_db)

        async def scenario():
            await store.save(_note("n1"))
            await store.save(_note("n2"))
            removed = await store.delete("n1")
            again = await store.delete("n1")
            cleared = await store.clear()
            return removed, again, cleared, await store.get_all()

        assert asyncio.run(scenario()) == (True, False, 1, [])

    def test_corrupt_note_skipped_in_listing(self, tmp_db):
        store = NoteStore(tmp_db)
        asyncio.run(store.save(_note("n1")))
        conn = db.get_connection(tmp_db)
        conn.execute(
            "INSERT INTO Notes (id, tutorial_id, tutorial_title, selected_text, "
            "note_content, created_at, updated_at) VALUES ('n2', 'intro', '', '', 42, 'x', 'x')"
        )
        conn.commit()
        conn.close()
        assert [n.id for n in asyncio.run(store.get_all())] == ["n1"]


# ---------------------------------------------------------------------------
# Tests: favorites
# ---------------------------------------------------------------------------


class TestFavoriteStore:
    """One favorite per tutorial, newest first."""

    def test_add_is_idempotent(self, tmp_db):
        store = FavoriteStore(tmp_db)

        async def scenario():
            first = await store.add(_t("intro"))
            second = await store.add(_t("intro"))
            return first, second, await store.count()

        first, second, count = asyncio.run(scenario())
        assert first == second
        assert first.tutorial_category == "Basics"
        assert count == 1

    def test_is_favorite_and_remove_by_tutorial(self, tmp_db):
        store = FavoriteStore(tmp_db)

        async def scenario():
            await store.add(_t("intro"))
            before = await store.is_favorite("intro")
            removed = await store.remove_by_tutorial("intro")
            after = await store.is_favorite("intro")
            return before, removed, after

        assert asyncio.run(scenario()) == (True, True, False)

    def test_remove_by_id(self, tmp_db):
        store = FavoriteStore(tmp_db)
        favorite = asyncio.run(store.add(_t("intro")))
        assert asyncio.run(store.remove(favorite.id)) is True
        assert asyncio.run(store.remove(favorite.id)) is False
        assert asyncio.run(store.count()) == 0

    def test_listing_newest_first(self, tmp_db):
        store = FavoriteStore(tmp_db)

        async def scenario():
            await store.save(Favorite(id="f1", tutorial_id="a", added_at="2024-01-01T00:00:00+00:00"))
            await store.save(Favorite(id="f2", tutorial_id="b", added_at="2024-03-01T00:00:00+00:00"))
            await store.save(Favorite(id="f3", tutorial_id="c", added_at="2024-02-01T00:00:00+00:00"))
            return await store.get_all()

        assert [f.tutorial_id for f in asyncio.run(scenario())] == ["b", "c", "a"]

    def test_save_replaces_entry_for_same_tutorial(self, tmp_db):
        store = FavoriteStore(tmp_db)

        async def scenario():
            await store.save(Favorite(id="f1", tutorial_id="a", added_at="2024-01-01T00:00:00+00:00"))
            await store.save(Favorite(id="f9", tutorial_id="a", added_at="2024-05-01T00:00:00+00:00"))
            return await store.get_all()

        assert [f.id for f in asyncio.run(scenario())] == ["f9"]

    def test_concurrent_adds_keep_one_row(self, tmp_db):
        store = FavoriteStore(tmp_db)

        async def scenario():
            await asyncio.gather(*(store.add(_t("intro")) for _ in range(5)))
            return await store.count()

        assert asyncio.run(scenario()) == 1
        assert store._id_locks == {}
