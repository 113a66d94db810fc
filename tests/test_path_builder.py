"""
pytest suite for learning-path construction and prerequisite validation.

Pure in-memory data: no database or network needed.
"""

import os
import random
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from tutorhub.dag_validator import compute_metrics, find_cycles, validate_catalog
from tutorhub.models import Difficulty, TutorialMetadata
from tutorhub.path_builder import (
    advanced_tutorials,
    beginner_tutorials,
    build_path,
    next_in_path,
    prerequisites_met,
    unlocked_tutorials,
)


# =========================================================================
# Helpers
# =========================================================================


def _t(tid, difficulty="Beginner", order=0, prerequisites=()):
    return TutorialMetadata(
        id=tid,
        title=f"Tutorial {tid}",
        category="test",
        difficulty=Difficulty(difficulty),
        order=order,
        prerequisites=list(prerequisites),
    )


def _assert_permutation(path, tutorials):
    ids = path.ids
    assert len(ids) == len(tutorials)
    assert sorted(ids) == sorted(t.id for t in tutorials)


# =========================================================================
# Test: Ordering
# =========================================================================


class TestBuildPathOrdering:
    """Difficulty/order sort and depth-first prerequisite expansion."""

    def test_empty_catalog(self):
        path = build_path([])
        assert path.ids == []
        assert path.cycle_detected is False

    def test_beginners_first_then_order(self):
        tutorials = [
            _t("adv", "Advanced", order=1),
            _t("beg2", "Beginner", order=2),
            _t("int", "Intermediate", order=0),
            _t("beg1", "Beginner", order=5),
        ]
        path = build_path(tutorials)
        assert path.ids == ["beg2", "beg1", "int", "adv"]

    def test_prerequisites_expanded_before_dependent(self):
        tutorials = [
            _t("a", "Beginner", order=2),
            _t("b", "Intermediate", order=1, prerequisites=["c"]),
            _t("c", "Advanced", order=3),
            _t("d", "Beginner", order=1),
        ]
        path = build_path(tutorials)
        assert path.ids == ["d", "a", "c", "b"]

    def test_prerequisites_visited_in_declared_order(self):
        tutorials = [
            _t("top", "Beginner", order=0, prerequisites=["z", "y"]),
            _t("y", "Expert", order=1),
            _t("z", "Expert", order=2),
        ]
        assert build_path(tutorials).ids == ["z", "y", "top"]

    def test_builtin_catalog_orders_basics_first(self):
        from tutorhub.registry import default_registry

        path = build_path(default_registry)
        assert path.ids == ["duckdb-basics", "philosophy-db"]

    def test_completed_does_not_filter(self):
        tutorials = [_t("a"), _t("b", prerequisites=["a"])]
        assert build_path(tutorials, {"a", "b"}).ids == build_path(tutorials).ids

    def test_every_prerequisite_precedes_dependent(self):
        tutorials = [
            _t("sql", "Beginner", 1),
            _t("joins", "Intermediate", 2, ["sql"]),
            _t("views", "Intermediate", 3, ["sql"]),
            _t("windows", "Advanced", 4, ["joins", "views"]),
            _t("tuning", "Expert", 0, ["windows"]),
        ]
        path = build_path(tutorials)
        index = {tid: i for i, tid in enumerate(path.ids)}
        for t in tutorials:
            for p in t.prerequisites:
                assert index[p] < index[t.id]
        assert path.cycle_detected is False


# =========================================================================
# Test: Degraded data
# =========================================================================


class TestBuildPathDegradedData:
    """Cycles and unknown prerequisites never loop or raise."""

    def test_two_node_cycle_terminates_without_duplicates(self):
        tutorials = [
            _t("A", order=1, prerequisites=["B"]),
            _t("B", order=2, prerequisites=["A"]),
        ]
        path = build_path(tutorials)
        _assert_permutation(path, tutorials)
        assert path.ids == ["B", "A"]
        assert path.cycle_detected is True
        assert path.suppressed_edges == [["B", "A"]]

    def test_self_reference_is_suppressed(self):
        tutorials = [_t("loop", prerequisites=["loop"])]
        path = build_path(tutorials)
        assert path.ids == ["loop"]
        assert path.cycle_detected is True

    def test_missing_prerequisite_treated_as_satisfied(self):
        tutorials = [_t("a", prerequisites=["ghost"]), _t("b")]
        path = build_path(tutorials)
        _assert_permutation(path, tutorials)
        assert path.missing_prerequisites == {"a": ["ghost"]}
        assert path.cycle_detected is False

    def test_long_chain_does_not_hit_recursion_limit(self):
        n = sys.getrecursionlimit() + 500
        tutorials = [
            _t(f"t{i}", order=i, prerequisites=[f"t{i + 1}"] if i + 1 < n else [])
            for i in range(n)
        ]
        path = build_path(tutorials)
        assert len(path) == n
        assert path.ids[0] == f"t{n - 1}"

    @pytest.mark.parametrize("seed", [1, 7, 42, 1234])
    def test_random_graphs_are_permutations(self, seed):
        rng = random.Random(seed)
        ids = [f"n{i}" for i in range(30)]
        tutorials = [
            _t(
                tid,
                rng.choice(list(Difficulty)).value,
                order=rng.randint(0, 10),
                prerequisites=rng.sample(ids, rng.randint(0, 3)),
            )
            for tid in ids
        ]
        path = build_path(tutorials)
        _assert_permutation(path, tutorials)

        if not path.cycle_detected:
            index = {tid: i for i, tid in enumerate(path.ids)}
            for t in tutorials:
                for p in t.prerequisites:
                    assert index[p] < index[t.id]


# =========================================================================
# Test: Unlocking helpers
# =========================================================================


class TestUnlocking:
    """Prerequisite checks against the completed set."""

    def test_prerequisites_met(self):
        t = _t("b", prerequisites=["a"])
        assert prerequisites_met(t, {"a"})
        assert not prerequisites_met(t, set())
        assert prerequisites_met(_t("free"), set())

    def test_unlocked_and_groupings(self):
        tutorials = [
            _t("a", "Beginner"),
            _t("b", "Intermediate", prerequisites=["a"]),
            _t("c", "Advanced", prerequisites=["b"]),
            _t("d", "Expert"),
        ]
        assert [t.id for t in unlocked_tutorials(tutorials, set())] == ["a", "d"]
        assert [t.id for t in beginner_tutorials(tutorials)] == ["a"]
        assert [t.id for t in advanced_tutorials(tutorials, {"a"})] == ["b"]
        assert [t.id for t in advanced_tutorials(tutorials, {"a", "b"})] == ["b", "c"]

    def test_next_in_path(self):
        tutorials = [_t("a", order=1), _t("b", order=2, prerequisites=["a"])]
        path = build_path(tutorials)
        assert next_in_path(path, set()).id == "a"
        assert next_in_path(path, {"a"}).id == "b"
        assert next_in_path(path, {"a", "b"}) is None


# =========================================================================
# Test: Catalog validation
# =========================================================================


class TestCatalogValidation:
    """networkx-based integrity report."""

    def test_clean_catalog(self):
        tutorials = [_t("a"), _t("b", prerequisites=["a"])]
        report = validate_catalog(tutorials)
        assert report["is_dag"] is True
        assert report["cycles"] == []
        assert report["missing_prerequisites"] == {}

    def test_cycle_reported(self):
        tutorials = [_t("a", prerequisites=["b"]), _t("b", prerequisites=["a"])]
        assert find_cycles(tutorials) == [["a", "b"]]
        assert validate_catalog(tutorials)["is_dag"] is False

    def test_missing_and_self_reference_reported(self):
        tutorials = [_t("a", prerequisites=["a"]), _t("b", prerequisites=["nope"])]
        report = validate_catalog(tutorials)
        assert report["self_references"] == ["a"]
        assert report["missing_prerequisites"] == {"b": ["nope"]}

    def test_metrics(self):
        tutorials = [
            _t("a"),
            _t("b", prerequisites=["a"]),
            _t("c", prerequisites=["b"]),
            _t("lonely"),
        ]
        metrics = compute_metrics(tutorials)
        assert metrics["total_tutorials"] == 4
        assert metrics["total_edges"] == 2
        assert metrics["max_depth"] == 2
        assert metrics["isolated_count"] == 1
