"""
Catalog integrity checks on the prerequisite graph.

Uses ``networkx.DiGraph`` with an edge ``prerequisite -> dependent`` for
every declared prerequisite that exists in the catalog.
"""

import logging
from typing import Any, Dict, Iterable, List

import networkx as nx

from tutorhub.models import TutorialMetadata

logger = logging.getLogger(__name__)


def build_prerequisite_graph(tutorials: Iterable[TutorialMetadata]) -> nx.DiGraph:
    """Return the prerequisite graph; unknown prerequisite ids are skipped."""
    records = list(tutorials)
    known = {t.id for t in records}
    G = nx.DiGraph()
    for t in records:
        G.add_node(t.id)
    for t in records:
        for prereq in t.prerequisites:
            if prereq in known:
                G.add_edge(prereq, t.id)
    return G


def find_cycles(tutorials: Iterable[TutorialMetadata]) -> List[List[str]]:
    """Every elementary prerequisite cycle, each as a list of ids."""
    G = build_prerequisite_graph(tutorials)
    return [sorted(cycle) for cycle in nx.simple_cycles(G)]


def validate_catalog(tutorials: Iterable[TutorialMetadata]) -> Dict[str, Any]:
    """Report data-integrity defects without failing.

    Returns dict with: ``self_references``, ``missing_prerequisites``,
    ``cycles``, ``is_dag``.
    """
    records = list(tutorials)
    known = {t.id for t in records}

    self_refs = [t.id for t in records if t.id in t.prerequisites]
    missing = {
        t.id: [p for p in t.prerequisites if p not in known]
        for t in records
        if any(p not in known for p in t.prerequisites)
    }
    cycles = find_cycles(records)

    report = {
        "self_references": self_refs,
        "missing_prerequisites": missing,
        "cycles": cycles,
        "is_dag": not cycles,
    }
    if self_refs or missing or cycles:
        logger.warning(
            "Catalog integrity: %d self-reference(s), %d tutorial(s) with missing "
            "prerequisites, %d cycle(s).",
            len(self_refs), len(missing), len(cycles),
        )
    return report


def compute_metrics(tutorials: Iterable[TutorialMetadata]) -> Dict[str, Any]:
    """Compute prerequisite-graph summary metrics.

    Returns dict with: total_tutorials, total_edges, max_depth,
    isolated_count.
    """
    G = build_prerequisite_graph(tutorials)
    total_edges = G.number_of_edges()
    if total_edges > 0 and nx.is_directed_acyclic_graph(G):
        max_depth = nx.dag_longest_path_length(G)
    else:
        max_depth = 0
    return {
        "total_tutorials": G.number_of_nodes(),
        "total_edges": total_edges,
        "max_depth": max_depth,
        "isolated_count": nx.number_of_isolates(G),
    }
