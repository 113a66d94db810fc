"""
Helpers for turning uploaded Markdown into ``UserTutorial`` records.
"""

import random
import re
import string
import time
from typing import Iterable, Optional, Union

from tutorhub.models import Difficulty, UserTutorial
from tutorhub.store import utc_now_iso

DEFAULT_TITLE = "Untitled tutorial"
DEFAULT_CATEGORY = "My tutorials"

_ADVANCED_KEYWORDS = (
    "advanced", "complex", "optimiz", "performance", "partition", "lateral",
    "recursive", "window function", "vectoriz",
)
_INTERMEDIATE_KEYWORDS = (
    "intermediate", "join", "subquery", "view", "transaction", "aggregat",
)
_HEADING_RE = re.compile(r"^#\s+(.+)$", re.MULTILINE)
# "Category: X" as a front-matter key or a plain or bold Markdown line.
_CATEGORY_RE = re.compile(
    r"^[ \t]*(?:\*\*)?category(?:\*\*)?[ \t]*:[ \t]*(?:\*\*)?(.+?)[ \t]*$",
    re.IGNORECASE | re.MULTILINE,
)
_ID_ALPHABET = string.digits + string.ascii_lowercase


def generate_tutorial_id() -> str:
    """Return ``user_<epoch-ms>_<9 base36 chars>``."""
    suffix = "".join(random.choices(_ID_ALPHABET, k=9))
    return f"user_{int(time.time() * 1000)}_{suffix}"


def extract_title_from_markdown(content: str) -> str:
    """First level-one heading, or ``DEFAULT_TITLE``."""
    match = _HEADING_RE.search(content)
    return match.group(1).strip() if match else DEFAULT_TITLE


def extract_difficulty_from_markdown(content: str) -> Difficulty:
    """Guess a difficulty from keywords; advanced keywords win."""
    lower = content.lower()
    if any(kw in lower for kw in _ADVANCED_KEYWORDS):
        return Difficulty.ADVANCED
    if any(kw in lower for kw in _INTERMEDIATE_KEYWORDS):
        return Difficulty.INTERMEDIATE
    return Difficulty.BEGINNER


def extract_category_from_markdown(content: str) -> str:
    """Value of the first ``Category:`` line, or ``DEFAULT_CATEGORY``."""
    match = _CATEGORY_RE.search(content)
    if match:
        category = match.group(1).strip("*\"' ").strip()
        if category:
            return category
    return DEFAULT_CATEGORY


def parse_tags(tags: Union[str, Iterable[str], None]) -> list:
    """Accept ``"a, b"`` or an iterable; drop blanks."""
    if tags is None:
        return []
    items = tags.split(",") if isinstance(tags, str) else tags
    return [t.strip() for t in items if t and t.strip()]


def new_user_tutorial(
    content: str,
    title: Optional[str] = None,
    category: Optional[str] = None,
    difficulty: Optional[Difficulty] = None,
    tags: Union[str, Iterable[str], None] = None,
    tutorial_id: Optional[str] = None,
) -> UserTutorial:
    """Build a fresh record, inferring missing fields from *content*.

    Raises:
        ValueError: Empty content or blank title.
    """
    if not content or not content.strip():
        raise ValueError("Tutorial content is empty.")
    resolved_title = (title if title is not None else extract_title_from_markdown(content)).strip()
    if not resolved_title:
        raise ValueError("Tutorial title is required.")

    now = utc_now_iso()
    return UserTutorial(
        id=tutorial_id or generate_tutorial_id(),
        title=resolved_title,
        content=content,
        category=category or extract_category_from_markdown(content),
        difficulty=difficulty or extract_difficulty_from_markdown(content),
        tags=parse_tags(tags),
        created_at=now,
        updated_at=now,
    )
