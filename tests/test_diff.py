"""Tests for per-step category assignment and change inference."""

import pytest

from engine.diff import (
    PROVENANCE_EXPLICIT,
    PROVENANCE_INFERRED,
    PROVENANCE_NONE,
    changed_keys,
    compute,
)
from engine.families import distance_matrix
from steptrace import IndexOutOfRange

from conftest import family_of, load


class TestCategoricalProjection:
    def test_bfs_first_step(self):
        trace, family = load("bfs"), family_of("bfs")
        a = compute(trace, 0, family)
        assert a.tags["A"] == {"visited"}
        assert a.tags["B"] == {"frontier"}
        assert a.tags["C"] == {"frontier"}
        assert a.tags["D"] == {"unvisited"}
        assert a.tags["A-B"] == {"tree-edge"}
        assert a.tags["D-E"] == {"idle"}
        assert a.roles == {"A": "start"}
        assert a.next_suggestion == "B"
        assert a.provenance == PROVENANCE_NONE

    def test_bfs_levels_become_annotations(self):
        a = compute(load("bfs"), 1, family_of("bfs"))
        assert a.annotations["A"] == "L0"
        assert a.annotations["D"] == "L2"

    def test_dfs_order_annotations(self):
        a = compute(load("dfs"), 0, family_of("dfs"))
        assert a.annotations["A"] == "#1"

    def test_every_present_entity_has_a_tag(self):
        trace, family = load("prims"), family_of("prims")
        for i in range(len(trace)):
            a = compute(trace, i, family)
            assert all(a.tags[e.id] for e in a.entities)

    def test_with_tag(self):
        a = compute(load("bfs"), 3, family_of("bfs"))
        assert a.with_tag("frontier") == ["E"]
        assert sorted(a.with_tag("visited")) == ["A", "B", "C", "D"]


class TestCumulativeInference:
    def test_first_step_reports_nothing(self):
        a = compute(load("bellman_ford"), 0, family_of("bellman_ford"))
        assert a.updated == frozenset()
        assert a.changed_keys == frozenset()
        assert a.provenance == PROVENANCE_NONE

    def test_reports_every_differing_key(self):
        a = compute(load("bellman_ford"), 3, family_of("bellman_ford"))
        assert a.changed_keys == {("distances", "C"), ("predecessor", "C")}
        assert a.updated == {"C"}
        assert "updated" in a.tags["C"]
        assert a.provenance == PROVENANCE_INFERRED

    def test_multiple_nodes_change_together(self):
        # step 2 of Bellman-Ford sets dist[B] and pred[B]
        a = compute(load("bellman_ford"), 1, family_of("bellman_ford"))
        assert a.updated == {"B"}

    def test_unchanged_step_is_inferred_but_empty(self):
        a = compute(load("bellman_ford"), 7, family_of("bellman_ford"))
        assert a.provenance == PROVENANCE_INFERRED
        assert a.updated == frozenset()

    def test_distance_annotations(self):
        a = compute(load("bellman_ford"), 0, family_of("bellman_ford"))
        assert a.annotations["A"] == "0"
        assert a.annotations["B"] == "∞"


class TestMatrixCells:
    def test_explicit_marker_wins(self):
        a = compute(load("floyd_warshall"), 2, family_of("floyd_warshall"))
        assert a.provenance == PROVENANCE_EXPLICIT
        assert a.updated == {"A:C"}
        assert {"endpoint"} <= a.tags["A"]
        assert {"endpoint"} <= a.tags["C"]
        assert "intermediate" in a.tags["B"]

    def test_inferred_cell(self):
        a = compute(load("floyd_warshall"), 1, family_of("floyd_warshall"))
        assert a.provenance == PROVENANCE_INFERRED
        assert a.changed_keys == {("distances", "C", "B")}
        assert a.updated == {"C:B"}
        assert a.tags["C:B"] == {"updated"}
        assert a.tags["A:B"] == {"unchanged"}

    def test_last_cell_inferred(self):
        a = compute(load("floyd_warshall"), 3, family_of("floyd_warshall"))
        assert a.updated == {"B:A"}

    def test_flat_and_nested_matrices_agree(self):
        trace_input = {"nodes": ["A", "B"]}
        nested = distance_matrix(trace_input, {"A": {"B": 3}})
        flat = distance_matrix(trace_input, {"A-B": 3})
        assert nested == flat == {"A": {"A": 0, "B": 3}, "B": {"A": None, "B": 0}}


class TestPurity:
    def test_seek_order_does_not_matter(self):
        trace, family = load("bellman_ford"), family_of("bellman_ford")
        first = compute(trace, 4, family)
        for i in (7, 0, 2, 6):
            compute(trace, i, family)
        assert compute(trace, 4, family) == first

    @pytest.mark.parametrize("index", [-1, 8, 100])
    def test_out_of_range(self, index):
        with pytest.raises(IndexOutOfRange):
            compute(load("bellman_ford"), index, family_of("bellman_ford"))


class TestChangedKeys:
    def test_nested_paths(self):
        before = {"a": {"x": 1}, "b": 2}
        after = {"a": {"x": 2, "y": 3}, "b": 2}
        assert changed_keys(before, after) == {("a", "x"), ("a", "y")}

    def test_removed_key(self):
        assert changed_keys({"a": 1}, {}) == {("a",)}

    def test_none_is_a_value(self):
        assert changed_keys({"a": None}, {"a": None}) == set()
        assert changed_keys({"a": None}, {"a": 0}) == {("a",)}
