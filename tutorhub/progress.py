"""
Learning progress stored under a single key-value entry.

The entry ``tutorial_progress`` holds a JSON object mapping tutorial id to
``{"completedAt": <iso timestamp>}``. A missing or unreadable entry means
nothing has been completed yet.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Dict, Optional, Set

from pydantic import ValidationError

from tutorhub.kv import KeyValueStore
from tutorhub.models import CompletionRecord

logger = logging.getLogger(__name__)

PROGRESS_KEY = "tutorial_progress"


class ProgressTracker:
    """Reads and records per-device tutorial completion."""

    def __init__(self, kv: KeyValueStore, key: str = PROGRESS_KEY) -> None:
        self._kv = kv
        self._key = key

    def load(self) -> Dict[str, CompletionRecord]:
        """Return the completion map, degrading to empty on malformed data."""
        raw = self._kv.get(self._key)
        if not raw:
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.warning("Ignoring unreadable progress entry %r: %s", self._key, exc)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring progress entry %r: expected a JSON object.", self._key)
            return {}

        records: Dict[str, CompletionRecord] = {}
        for tutorial_id, value in data.items():
            try:
                records[str(tutorial_id)] = CompletionRecord.model_validate(value)
            except ValidationError:
                logger.warning("Skipping malformed progress record for %s.", tutorial_id)
        return records

    def _save(self, records: Dict[str, CompletionRecord]) -> None:
        payload = {k: v.model_dump(by_alias=True) for k, v in records.items()}
        self._kv.set(self._key, json.dumps(payload))

    def completed_ids(self) -> Set[str]:
        return set(self.load())

    def completed_at(self, tutorial_id: str) -> Optional[str]:
        record = self.load().get(tutorial_id)
        return record.completed_at if record else None

    def is_completed(self, tutorial_id: str) -> bool:
        return tutorial_id in self.load()

    def mark_completed(self, tutorial_id: str) -> CompletionRecord:
        """Record that the user finished *tutorial_id*.

        Completing an already-completed tutorial keeps the first timestamp.
        """
        records = self.load()
        existing = records.get(tutorial_id)
        if existing is not None:
            return existing
        record = CompletionRecord(completed_at=datetime.now(timezone.utc).isoformat())
        records[tutorial_id] = record
        self._save(records)
        logger.info("Marked %s completed.", tutorial_id)
        return record

    def reset(self, tutorial_id: Optional[str] = None) -> None:
        """Forget completion of *tutorial_id*, or of everything when ``None``."""
        records = self.load()
        if tutorial_id is None:
            records = {}
        else:
            records.pop(tutorial_id, None)
        self._save(records)

    def import_records(self, records: Dict[str, CompletionRecord], replace: bool = False) -> int:
        """Bring in *records*; returns how many entries were written.

        Merging keeps every existing entry and adds only unknown ids.
        Replacing discards the current map first.
        """
        current = {} if replace else self.load()
        added = {k: v for k, v in records.items() if k not in current}
        current.update(added)
        self._save(current)
        return len(added)
