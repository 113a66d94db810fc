"""
Learning-path construction.

``build_path`` orders the whole catalog so that prerequisites come before
the tutorials that need them:

1. Sort: Beginner tutorials first, then by ``order`` (stable).
2. Walk the sorted list depth-first; before placing a tutorial, place each
   of its prerequisites in declared order.

The walk uses an explicit stack and a visited set, so it terminates on any
graph. A prerequisite that is already visited but not yet placed closes a
cycle; that edge is suppressed and recorded. Unknown prerequisite ids are
treated as satisfied and recorded too.
"""

import logging
from typing import Dict, Iterable, Iterator, List, Optional, Set, Tuple

from tutorhub.models import Difficulty, LearningPath, TutorialMetadata

logger = logging.getLogger(__name__)


def path_sort_key(tutorial: TutorialMetadata) -> Tuple[bool, int]:
    return (tutorial.difficulty != Difficulty.BEGINNER, tutorial.order)


def build_path(
    all_tutorials: Iterable[TutorialMetadata],
    completed: Optional[Set[str]] = None,
) -> LearningPath:
    """Return every tutorial exactly once in dependency-respecting order.

    *completed* is accepted for interface symmetry with the unlocking
    helpers; it does not change path membership or order.
    """
    tutorials = list(all_tutorials)
    by_id: Dict[str, TutorialMetadata] = {}
    for t in tutorials:
        by_id.setdefault(t.id, t)

    ordered = sorted(by_id.values(), key=path_sort_key)

    path: List[TutorialMetadata] = []
    visited: Set[str] = set()
    placed: Set[str] = set()
    suppressed: List[List[str]] = []
    missing: Dict[str, List[str]] = {}

    for root in ordered:
        if root.id in visited:
            continue
        visited.add(root.id)
        stack: List[Tuple[TutorialMetadata, Iterator[str]]] = [(root, iter(root.prerequisites))]

        while stack:
            node, pending = stack[-1]
            descended = False
            for prereq_id in pending:
                prereq = by_id.get(prereq_id)
                if prereq is None:
                    missing.setdefault(node.id, []).append(prereq_id)
                    continue
                if prereq_id in visited:
                    if prereq_id not in placed:
                        suppressed.append([node.id, prereq_id])
                    continue
                visited.add(prereq_id)
                stack.append((prereq, iter(prereq.prerequisites)))
                descended = True
                break
            if not descended:
                stack.pop()
                path.append(node)
                placed.add(node.id)

    if suppressed:
        logger.warning(
            "Prerequisite cycle(s) suppressed while building path: %s",
            ", ".join(f"{a} -> {b}" for a, b in suppressed),
        )
    if missing:
        logger.warning("Unknown prerequisites treated as satisfied: %s", missing)

    return LearningPath(
        tutorials=path,
        cycle_detected=bool(suppressed),
        suppressed_edges=suppressed,
        missing_prerequisites=missing,
    )


# =========================================================================
# Unlocking helpers
# =========================================================================


def prerequisites_met(tutorial: TutorialMetadata, completed: Set[str]) -> bool:
    """True when *tutorial* has no prerequisites or all are completed."""
    return all(p in completed for p in tutorial.prerequisites)


def unlocked_tutorials(
    all_tutorials: Iterable[TutorialMetadata], completed: Set[str]
) -> List[TutorialMetadata]:
    return [t for t in all_tutorials if prerequisites_met(t, completed)]


def beginner_tutorials(all_tutorials: Iterable[TutorialMetadata]) -> List[TutorialMetadata]:
    return [t for t in all_tutorials if t.difficulty == Difficulty.BEGINNER]


def advanced_tutorials(
    all_tutorials: Iterable[TutorialMetadata], completed: Set[str]
) -> List[TutorialMetadata]:
    """Intermediate/Advanced tutorials whose prerequisites are completed."""
    return [
        t for t in all_tutorials
        if t.difficulty in (Difficulty.INTERMEDIATE, Difficulty.ADVANCED)
        and prerequisites_met(t, completed)
    ]


def next_in_path(path: LearningPath, completed: Set[str]) -> Optional[TutorialMetadata]:
    """First tutorial in *path* not yet completed whose prerequisites are met."""
    for t in path.tutorials:
        if t.id not in completed and prerequisites_met(t, completed):
            return t
    return None
