"""
Built-in tutorial catalog.

The registry is immutable after construction: lookups, category and
difficulty grouping, tag listing and "what next" recommendations over the
records it was given. Adding a built-in tutorial only means adding an
entry to ``BUILTIN_TUTORIALS``.
"""

import logging
from typing import Dict, Iterable, List, Optional, Tuple

from tutorhub.models import Difficulty, TutorialMetadata, TutorialSection

logger = logging.getLogger(__name__)

MUST_LEARN_TAG = "getting-started"

# =========================================================================
# Built-in records
# =========================================================================

TUTORIAL_FILE_MAP: Dict[str, str] = {
    "duckdb-basics": "/docs/001-duckdb-basics.md",
    "philosophy-db": "/docs/002-philosophy-db.md",
}

BUILTIN_TUTORIALS: Tuple[TutorialMetadata, ...] = (
    TutorialMetadata(
        id="duckdb-basics",
        title="DuckDB SQL: The Complete Beginner Tutorial",
        description=(
            "From setup to advanced features: databases, CRUD, joins, views "
            "and transactions. Designed for complete beginners and the "
            "recommended first course."
        ),
        category="Getting started",
        difficulty=Difficulty.BEGINNER,
        tags=["SQL", "DuckDB", "database", "CRUD", "JOIN", "transactions", MUST_LEARN_TAG],
        order=1,
        content_locator=TUTORIAL_FILE_MAP["duckdb-basics"],
        estimated_time="2-3 hours",
        sections=[
            TutorialSection(id="env", title="Getting set up", anchor="1-getting-set-up"),
            TutorialSection(id="ddl", title="Databases and tables", anchor="2-databases-and-tables"),
            TutorialSection(id="crud", title="CRUD", anchor="3-crud"),
            TutorialSection(id="join", title="Joins", anchor="4-joins"),
            TutorialSection(id="view", title="Views", anchor="5-views"),
            TutorialSection(id="transaction", title="Transactions", anchor="6-transactions"),
            TutorialSection(id="advanced", title="Advanced features", anchor="7-advanced-features"),
        ],
        prerequisites=[],
        learning_outcomes=[
            "Install and configure DuckDB",
            "Operate on databases fluently with SQL",
            "Understand relational design principles",
            "Create, read, update and delete rows independently",
        ],
    ),
    TutorialMetadata(
        id="philosophy-db",
        title="Philosophy Database Primer",
        description=(
            "Learn database design through philosophy: build a minimal "
            "runnable universe and model ontological concepts."
        ),
        category="Intermediate",
        difficulty=Difficulty.INTERMEDIATE,
        tags=["database design", "philosophy", "DDL", "recursive queries"],
        order=2,
        content_locator=TUTORIAL_FILE_MAP["philosophy-db"],
        estimated_time="1-2 hours",
        prerequisites=["duckdb-basics"],
        learning_outcomes=[
            "Design entities, attributes and relationships",
            "Model many-to-many relationships",
            "Simplify complex queries with views",
        ],
    ),
)


# =========================================================================
# Registry
# =========================================================================


class TutorialRegistry:
    """Synchronous, read-only view over a fixed set of tutorial records."""

    def __init__(self, tutorials: Optional[Iterable[TutorialMetadata]] = None) -> None:
        records = tuple(BUILTIN_TUTORIALS if tutorials is None else tutorials)
        by_id: Dict[str, TutorialMetadata] = {}
        for record in records:
            if record.id in by_id:
                raise ValueError(f"Duplicate tutorial id: {record.id}")
            if record.id in record.prerequisites:
                raise ValueError(f"Tutorial '{record.id}' lists itself as a prerequisite.")
            by_id[record.id] = record
        self._tutorials = records
        self._by_id = by_id

    def __len__(self) -> int:
        return len(self._tutorials)

    def __iter__(self):
        return iter(self._tutorials)

    def __contains__(self, tutorial_id: object) -> bool:
        return tutorial_id in self._by_id

    @property
    def tutorials(self) -> List[TutorialMetadata]:
        return list(self._tutorials)

    def get(self, tutorial_id: str) -> Optional[TutorialMetadata]:
        """Return the tutorial with *tutorial_id*, or ``None``."""
        return self._by_id.get(tutorial_id)

    def by_category(self) -> Dict[str, List[TutorialMetadata]]:
        """Group tutorials by category, preserving registry order."""
        groups: Dict[str, List[TutorialMetadata]] = {}
        for t in self._tutorials:
            groups.setdefault(t.category, []).append(t)
        return groups

    def difficulty_groups(self) -> Dict[Difficulty, List[TutorialMetadata]]:
        """Group tutorials under every difficulty level (empty lists included)."""
        return {
            level: [t for t in self._tutorials if t.difficulty == level]
            for level in Difficulty
        }

    def all_tags(self) -> List[str]:
        """Return the sorted set of tags used by any tutorial."""
        return sorted({tag for t in self._tutorials for tag in t.tags})

    def next_tutorial(self, current_id: str) -> Optional[TutorialMetadata]:
        """Suggest what to study after *current_id*.

        Same category with a higher ``order`` first, then any tutorial with
        a higher ``order``, wrapping to the first tutorial.
        """
        if not self._tutorials:
            return None
        current = self._by_id.get(current_id)
        if current is None:
            return self._tutorials[0]

        for t in self._tutorials:
            if t.category == current.category and t.order > current.order:
                return t
        for t in self._tutorials:
            if t.order > current.order:
                return t
        return self._tutorials[0]

    def recommended_first(self) -> Optional[TutorialMetadata]:
        """Best first lesson: a must-learn Beginner tutorial, else any Beginner."""
        beginners = [t for t in self._tutorials if t.difficulty == Difficulty.BEGINNER]
        for t in beginners:
            if MUST_LEARN_TAG in t.tags:
                return t
        if beginners:
            return beginners[0]
        return self._tutorials[0] if self._tutorials else None


default_registry = TutorialRegistry()
