"""
Backup and restore of everything a learner has produced.

An export is a versioned JSON envelope::

    {"version": "1.0.0", "exportedAt": "...",
     "data": {"userTutorials": [...], "progress": {...},
              "notes": [...], "favorites": [...]}}

Sections can be exported selectively; a missing section is left untouched
on import. Importing either merges (existing records win, only unknown ones
are added) or replaces each present section wholesale.
"""

import logging
from datetime import datetime, timezone
from typing import Iterable, Optional

from pydantic import ValidationError

from tutorhub.errors import DataImportError
from tutorhub.learner_data import FavoriteStore, NoteStore
from tutorhub.models import (
    DataSection,
    ImportMode,
    ImportResult,
    LearnDataExport,
    LearnDataPayload,
    LearnDataStats,
)
from tutorhub.progress import ProgressTracker
from tutorhub.store import UserTutorialStore

logger = logging.getLogger(__name__)

EXPORT_VERSION = "1.0.0"
ALL_SECTIONS = ("user_tutorials", "progress", "notes", "favorites")


def _supported(version: str) -> bool:
    return version.split(".", 1)[0] == EXPORT_VERSION.split(".", 1)[0]


class LearnDataManager:
    """Exports, imports, counts and clears learner data across all stores."""

    def __init__(
        self,
        tutorials: UserTutorialStore,
        progress: ProgressTracker,
        notes: NoteStore,
        favorites: FavoriteStore,
    ) -> None:
        self.tutorials = tutorials
        self.progress = progress
        self.notes = notes
        self.favorites = favorites

    @classmethod
    def for_database(cls, db_path: str, progress: ProgressTracker) -> "LearnDataManager":
        return cls(UserTutorialStore(db_path), progress, NoteStore(db_path), FavoriteStore(db_path))

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    async def export_data(self, sections: Optional[Iterable[DataSection]] = None) -> LearnDataExport:
        """Snapshot the requested *sections* (all of them by default)."""
        wanted = set(ALL_SECTIONS if sections is None else sections)
        unknown = wanted - set(ALL_SECTIONS)
        if unknown:
            raise ValueError(f"Unknown data section(s): {', '.join(sorted(unknown))}")

        payload = LearnDataPayload()
        if "user_tutorials" in wanted:
            payload.user_tutorials = await self.tutorials.get_all()
        if "progress" in wanted:
            payload.progress = self.progress.load()
        if "notes" in wanted:
            payload.notes = await self.notes.get_all()
        if "favorites" in wanted:
            payload.favorites = await self.favorites.get_all()

        logger.info("Exported learner data: %s", ", ".join(sorted(wanted)))
        return LearnDataExport(
            version=EXPORT_VERSION,
            exported_at=datetime.now(timezone.utc).isoformat(),
            data=payload,
        )

    async def export_json(self, sections: Optional[Iterable[DataSection]] = None) -> str:
        export = await self.export_data(sections)
        return export.model_dump_json(by_alias=True, exclude_none=True, indent=2)

    # ------------------------------------------------------------------
    # Import
    # ------------------------------------------------------------------

    @staticmethod
    def parse(json_text: str) -> LearnDataExport:
        """Validate an export document.

        Raises:
            DataImportError: Not JSON, wrong shape, or an unsupported version.
        """
        try:
            export = LearnDataExport.model_validate_json(json_text)
        except ValidationError as exc:
            raise DataImportError(f"Invalid learner-data export: {exc.error_count()} problem(s); {exc}") from exc
        if not _supported(export.version):
            raise DataImportError(f"Unsupported export version {export.version!r}.")
        return export

    async def import_json(self, json_text: str, mode: ImportMode = "merge") -> ImportResult:
        return await self.import_data(self.parse(json_text), mode)

    async def import_data(self, export: LearnDataExport, mode: ImportMode = "merge") -> ImportResult:
        """Write the sections present in *export* according to *mode*."""
        replace = mode == "replace"
        result = ImportResult(mode=mode)
        data = export.data

        if data.user_tutorials is not None:
            if replace:
                await self.tutorials.clear()
                known = set()
            else:
                known = {t.id for t in await self.tutorials.get_all()}
            count = 0
            for record in data.user_tutorials:
                if record.id in known:
                    continue
                await self.tutorials.put(record)
                known.add(record.id)
                count += 1
            result.imported["user_tutorials"] = count

        if data.progress is not None:
            result.imported["progress"] = self.progress.import_records(data.progress, replace=replace)

        if data.notes is not None:
            if replace:
                await self.notes.clear()
                known = set()
            else:
                known = {n.id for n in await self.notes.get_all()}
            count = 0
            for note in data.notes:
                if note.id in known:
                    continue
                await self.notes.save(note)
                known.add(note.id)
                count += 1
            result.imported["notes"] = count

        if data.favorites is not None:
            if replace:
                await self.favorites.clear()
                known = set()
            else:
                known = {f.tutorial_id for f in await self.favorites.get_all()}
            count = 0
            for favorite in data.favorites:
                if favorite.tutorial_id in known:
                    continue
                await self.favorites.save(favorite)
                known.add(favorite.tutorial_id)
                count += 1
            result.imported["favorites"] = count

        logger.info("Imported learner data (%s): %s", mode, result.imported)
        return result

    # ------------------------------------------------------------------
    # Housekeeping
    # ------------------------------------------------------------------

    async def stats(self) -> LearnDataStats:
        return LearnDataStats(
            user_tutorials=len(await self.tutorials.get_all()),
            progress=len(self.progress.load()),
            notes=len(await self.notes.get_all()),
            favorites=await self.favorites.count(),
        )

    async def clear_all(self) -> None:
        """Remove every learner-owned record and all progress."""
        await self.tutorials.clear()
        await self.notes.clear()
        await self.favorites.clear()
        self.progress.reset()
        logger.info("Cleared all learner data.")
