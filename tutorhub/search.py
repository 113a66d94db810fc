"""
Free-text search over the catalog.

Each tutorial contributes at most one result, matched case-insensitively
in this order: title, description, any tag, full content. Only content
matches carry an excerpt. Results keep the catalog's order.
"""

import logging
from typing import Iterable, List, Mapping, Optional

from tutorhub.embedded_content import EMBEDDED_CONTENT
from tutorhub.models import SearchResult, TutorialMetadata

logger = logging.getLogger(__name__)

EXCERPT_BEFORE = 40
EXCERPT_AFTER = 60
ELLIPSIS = "..."


def extract_excerpt(content: str, index: int, query_length: int) -> str:
    """Window around a match at *index*, with ellipses where it is cut."""
    start = max(0, index - EXCERPT_BEFORE)
    end = min(len(content), index + query_length + EXCERPT_AFTER)
    snippet = content[start:end]
    if start > 0:
        snippet = ELLIPSIS + snippet
    if end < len(content):
        snippet = snippet + ELLIPSIS
    return snippet


def match_tutorial(
    tutorial: TutorialMetadata,
    query: str,
    content: Optional[str] = None,
) -> Optional[SearchResult]:
    """Return the first-tier match of *query* against *tutorial*, if any."""
    lower = query.lower()
    base = tutorial.model_dump()

    if lower in tutorial.title.lower():
        return SearchResult(**base, match_type="title")
    if lower in tutorial.description.lower():
        return SearchResult(**base, match_type="description")
    if any(lower in tag.lower() for tag in tutorial.tags):
        return SearchResult(**base, match_type="tag")

    if content:
        index = content.lower().find(lower)
        if index != -1:
            return SearchResult(
                **base,
                match_type="content",
                matching_excerpt=extract_excerpt(content, index, len(query)),
            )
    return None


def search(
    query: str,
    all_tutorials: Iterable[TutorialMetadata],
    contents: Optional[Mapping[str, str]] = None,
) -> List[SearchResult]:
    """Search *all_tutorials* for *query*.

    Args:
        query: Free text; blank queries match nothing.
        all_tutorials: The merged catalog, in display order.
        contents: Tutorial id to full body. Defaults to the embedded table.
    """
    if not query.strip():
        return []
    bodies = EMBEDDED_CONTENT if contents is None else contents

    results: List[SearchResult] = []
    for tutorial in all_tutorials:
        result = match_tutorial(tutorial, query, bodies.get(tutorial.id))
        if result is not None:
            results.append(result)
    logger.debug("Search %r matched %d tutorial(s).", query, len(results))
    return results
