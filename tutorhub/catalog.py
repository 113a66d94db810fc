"""
The working catalog: built-in registry merged with user-authored records.

``merge_catalog`` is a pure function computed fresh on every call; nothing
here caches a merged view between calls.
"""

import logging
from typing import Dict, Iterable, List, Mapping, Optional, Set

from tutorhub.embedded_content import EMBEDDED_CONTENT
from tutorhub.errors import StoreUnavailableError
from tutorhub.models import CatalogStats, Difficulty, TutorialMetadata, UserTutorial
from tutorhub.registry import TutorialRegistry
from tutorhub.store import UserTutorialStore

logger = logging.getLogger(__name__)

USER_TUTORIAL_ORDER = 999
DESCRIPTION_PREVIEW_CHARS = 100


def user_tutorial_to_metadata(record: UserTutorial) -> TutorialMetadata:
    """Project a stored user tutorial onto catalog metadata."""
    description = record.content[:DESCRIPTION_PREVIEW_CHARS]
    if len(record.content) > DESCRIPTION_PREVIEW_CHARS:
        description += "..."
    return TutorialMetadata(
        id=record.id,
        title=record.title,
        description=description,
        category=record.category,
        difficulty=record.difficulty,
        tags=list(record.tags),
        order=USER_TUTORIAL_ORDER,
        content_locator="",
        is_user_authored=True,
    )


def merge_catalog(
    registry: Iterable[TutorialMetadata],
    user_records: Iterable[UserTutorial],
) -> List[TutorialMetadata]:
    """Built-ins first, then user records; a colliding user id is dropped."""
    catalog = list(registry)
    seen: Set[str] = {t.id for t in catalog}
    for record in user_records:
        if record.id in seen:
            logger.warning("User tutorial id %s collides with an existing tutorial; skipped.", record.id)
            continue
        seen.add(record.id)
        catalog.append(user_tutorial_to_metadata(record))
    return catalog


async def load_user_records(store: Optional[UserTutorialStore]) -> List[UserTutorial]:
    """Read all user tutorials, degrading to an empty list if the store fails."""
    if store is None:
        return []
    try:
        return await store.get_all()
    except StoreUnavailableError:
        logger.error("Failed to load user tutorials; continuing with built-ins only.", exc_info=True)
        return []


async def load_all_tutorials(
    registry: TutorialRegistry,
    store: Optional[UserTutorialStore],
) -> List[TutorialMetadata]:
    """Merge the registry with whatever the store can currently provide."""
    return merge_catalog(registry, await load_user_records(store))


def content_map(
    user_records: Iterable[UserTutorial] = (),
    embedded: Optional[Mapping[str, str]] = None,
) -> Dict[str, str]:
    """Snapshot of searchable bodies: embedded documents plus user content."""
    contents = dict(EMBEDDED_CONTENT if embedded is None else embedded)
    for record in user_records:
        contents.setdefault(record.id, record.content)
    return contents


# =========================================================================
# Filtering & statistics
# =========================================================================


def filter_catalog(
    catalog: Iterable[TutorialMetadata],
    category: Optional[str] = None,
    difficulty: Optional[Difficulty] = None,
) -> List[TutorialMetadata]:
    result = list(catalog)
    if category:
        result = [t for t in result if t.category == category]
    if difficulty:
        result = [t for t in result if t.difficulty == difficulty]
    return result


def categories(catalog: Iterable[TutorialMetadata]) -> List[str]:
    """Distinct categories in first-seen order."""
    return list(dict.fromkeys(t.category for t in catalog))


def catalog_stats(catalog: Iterable[TutorialMetadata], completed: Set[str]) -> CatalogStats:
    stats = CatalogStats()
    for t in catalog:
        stats.total += 1
        stats.by_difficulty[t.difficulty.value] += 1
        if t.is_user_authored:
            stats.user_authored += 1
        if t.id in completed:
            stats.completed += 1
    return stats
