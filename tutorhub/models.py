"""
Pydantic models for TutorHub.

Catalog: tutorial metadata, user-authored records, catalog statistics.
Content: resolved content snapshots.
Discovery: search results and learning paths.
Learner data: notes, favorites and the export envelope.
"""

from enum import Enum
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


# =========================================================================
# Catalog Literals & Models
# =========================================================================


class Difficulty(str, Enum):
    """Ordered difficulty enumeration (Beginner < ... < Expert)."""

    BEGINNER = "Beginner"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"
    EXPERT = "Expert"

    @property
    def rank(self) -> int:
        return _DIFFICULTY_RANK[self]


_DIFFICULTY_RANK = {
    Difficulty.BEGINNER: 0,
    Difficulty.INTERMEDIATE: 1,
    Difficulty.ADVANCED: 2,
    Difficulty.EXPERT: 3,
}

MatchType = Literal["title", "description", "tag", "content"]
ContentSource = Literal["user_store", "network", "embedded", "override", "placeholder"]
ResolveStatus = Literal["ok", "unavailable"]


class TutorialSection(BaseModel):
    """One navigable heading inside a tutorial document."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    anchor: str


class TutorialMetadata(BaseModel):
    """Identifies one learning unit in the catalog."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: str = ""
    category: str
    difficulty: Difficulty
    tags: List[str] = Field(default_factory=list)
    order: int = 0
    content_locator: str = ""
    prerequisites: List[str] = Field(default_factory=list)
    is_user_authored: bool = False
    estimated_time: Optional[str] = None
    learning_outcomes: List[str] = Field(default_factory=list)
    sections: List[TutorialSection] = Field(default_factory=list)


class UserTutorial(BaseModel):
    """Mirrors a single row of the ``UserTutorials`` table."""

    id: str
    title: str
    content: str
    category: str
    difficulty: Difficulty
    tags: List[str] = Field(default_factory=list)
    created_at: str
    updated_at: str


class CompletionRecord(BaseModel):
    """Progress entry for one tutorial, serialised as ``{"completedAt": ...}``."""

    model_config = ConfigDict(populate_by_name=True)

    completed_at: str = Field(alias="completedAt")


class CatalogStats(BaseModel):
    """Aggregate counts shown on the catalog home screen."""

    total: int = 0
    completed: int = 0
    user_authored: int = 0
    by_difficulty: Dict[str, int] = Field(
        default_factory=lambda: {d.value: 0 for d in Difficulty}
    )


# =========================================================================
# Content Models
# =========================================================================


class ResolvedContent(BaseModel):
    """Outcome of resolving one tutorial's body text.

    ``status == "ok"`` guarantees ``text`` passed the minimum-length check.
    An ``"unavailable"`` result may still carry informational ``text``
    (the placeholder document) which must not be treated as loaded content.
    """

    tutorial_id: str
    status: ResolveStatus
    source: ContentSource
    text: str = ""
    error: Optional[str] = None
    attempted: List[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status == "ok"


# =========================================================================
# Discovery Models
# =========================================================================


class SearchResult(TutorialMetadata):
    """A tutorial that matched a query, with how it matched."""

    match_type: MatchType
    matching_excerpt: Optional[str] = None


class LearningPath(BaseModel):
    """Dependency-respecting ordering of the whole catalog plus diagnostics."""

    tutorials: List[TutorialMetadata] = Field(default_factory=list)
    cycle_detected: bool = False
    suppressed_edges: List[List[str]] = Field(default_factory=list)
    missing_prerequisites: Dict[str, List[str]] = Field(default_factory=dict)

    @property
    def ids(self) -> List[str]:
        return [t.id for t in self.tutorials]

    def __len__(self) -> int:
        return len(self.tutorials)


# =========================================================================
# Learner Data Models
# =========================================================================


class Note(BaseModel):
    """A learner's note on a passage of one tutorial."""

    id: str
    tutorial_id: str
    tutorial_title: str = ""
    selected_text: str = ""
    note_content: str
    created_at: str
    updated_at: str


class Favorite(BaseModel):
    """A bookmarked tutorial; at most one per ``tutorial_id``."""

    id: str
    tutorial_id: str
    tutorial_title: str = ""
    tutorial_category: Optional[str] = None
    added_at: str


DataSection = Literal["user_tutorials", "progress", "notes", "favorites"]
ImportMode = Literal["merge", "replace"]


class LearnDataPayload(BaseModel):
    """Sections of an export; a missing section was not exported."""

    model_config = ConfigDict(populate_by_name=True)

    user_tutorials: Optional[List[UserTutorial]] = Field(default=None, alias="userTutorials")
    progress: Optional[Dict[str, CompletionRecord]] = None
    notes: Optional[List[Note]] = None
    favorites: Optional[List[Favorite]] = None


class LearnDataExport(BaseModel):
    """Versioned envelope written by ``export`` and read by ``import``."""

    model_config = ConfigDict(populate_by_name=True)

    version: str
    exported_at: str = Field(alias="exportedAt")
    data: LearnDataPayload


class ImportResult(BaseModel):
    """Per-section count of records written by an import."""

    mode: ImportMode
    imported: Dict[str, int] = Field(default_factory=dict)


class LearnDataStats(BaseModel):
    user_tutorials: int = 0
    progress: int = 0
    notes: int = 0
    favorites: int = 0
