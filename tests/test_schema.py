"""Tests for trace parsing and validation."""

import copy
import json

import pytest

from engine import get_family
from steptrace import IndexOutOfRange, SchemaError, load_trace, parse_trace

GRAPH = get_family("graph_search")
BUBBLE = get_family("bubble_sort")


def _graph_raw(steps=None):
    return {
        "name": "tiny",
        "input": {"nodes": ["A", "B", "C"], "edges": [["A", "B"], ["B", "C"]], "start_node": "A"},
        "steps": steps if steps is not None else [
            {
                "step_number": 1,
                "actions": ["Start at A.", "init"],
                "state": {"queue": ["B"], "visited": ["A"]},
                "next_suggestion": "B",
            },
            {
                "step_number": 2,
                "actions": ["Visit B.", "pop B"],
                "state": {"queue": ["C"], "visited": ["A", "B"], "predecessor": {"B": "A", "C": "B"}},
                "next_suggestion": None,
            },
        ],
    }


class TestValidTraces:
    def test_parses_steps_in_order(self):
        trace = parse_trace(_graph_raw(), "tiny", GRAPH)
        assert len(trace) == 2
        assert [s.step_number for s in trace.steps] == [1, 2]
        assert trace.name == "tiny"
        assert trace.step(0).action(1) == "init"
        assert trace.step(0).next_suggestion == "B"
        assert trace.step(1).next_suggestion is None

    def test_meta_steps_alias(self):
        raw = _graph_raw()
        raw["meta"] = {"steps": raw.pop("steps")}
        assert len(parse_trace(raw, "tiny", GRAPH)) == 2

    def test_integer_next_suggestion_becomes_string_id(self):
        raw = {
            "input": {"array": [3, 1, 2]},
            "steps": [{
                "step_number": 1, "actions": ["a", "b"],
                "state": {"array": [3, 1, 2], "comparing": [0, 1], "swapped": False, "sorted_count": 0},
                "next_suggestion": 1,
            }],
        }
        trace = parse_trace(raw, "bubble", BUBBLE)
        assert trace.step(0).next_suggestion == "1"

    def test_trace_is_isolated_from_raw_data(self):
        raw = _graph_raw()
        trace = parse_trace(raw, "tiny", GRAPH)
        raw["steps"][0]["state"]["visited"].append("C")
        raw["input"]["nodes"].append("Z")
        assert trace.step(0).state["visited"] == ["A"]
        assert trace.input["nodes"] == ["A", "B", "C"]

    def test_step_index_outside_range_raises(self):
        trace = parse_trace(_graph_raw(), "tiny", GRAPH)
        with pytest.raises(IndexOutOfRange):
            trace.step(2)
        with pytest.raises(IndexError):
            trace.step(-1)

    def test_detail_level_count_is_configurable(self):
        raw = _graph_raw()
        for step in raw["steps"]:
            step["actions"].append("expert text")
        trace = parse_trace(raw, "tiny", GRAPH, detail_levels=3)
        assert trace.step(1).action(2) == "expert text"


class TestRejectedTraces:
    def test_empty_steps(self):
        with pytest.raises(SchemaError, match="no steps"):
            parse_trace(_graph_raw(steps=[]), "tiny", GRAPH)

    def test_missing_input(self):
        raw = _graph_raw()
        del raw["input"]
        with pytest.raises(SchemaError):
            parse_trace(raw, "tiny", GRAPH)

    def test_step_numbers_must_start_at_one(self):
        raw = _graph_raw()
        raw["steps"][0]["step_number"] = 0
        with pytest.raises(SchemaError, match="step_number"):
            parse_trace(raw, "tiny", GRAPH)

    def test_step_numbers_without_gaps(self):
        raw = _graph_raw()
        raw["steps"][1]["step_number"] = 3
        with pytest.raises(SchemaError) as info:
            parse_trace(raw, "tiny", GRAPH)
        assert info.value.details["step_index"] == 1

    def test_action_count_mismatch(self):
        raw = _graph_raw()
        raw["steps"][1]["actions"] = ["only one"]
        with pytest.raises(SchemaError, match="expected 2 actions"):
            parse_trace(raw, "tiny", GRAPH)

    def test_state_reference_to_unknown_entity(self):
        raw = _graph_raw()
        raw["steps"][1]["state"]["visited"] = ["A", "Z"]
        with pytest.raises(SchemaError) as info:
            parse_trace(raw, "tiny", GRAPH)
        assert info.value.details["field"] == "visited"
        assert info.value.details["ref"] == "Z"

    def test_edge_id_is_not_a_node_reference(self):
        raw = _graph_raw()
        raw["steps"][1]["state"]["visited"] = ["A", "A-B"]
        with pytest.raises(SchemaError) as info:
            parse_trace(raw, "tiny", GRAPH)
        assert info.value.details["ref"] == "A-B"

    def test_edge_id_in_queue_is_rejected(self):
        raw = _graph_raw()
        raw["steps"][0]["state"]["queue"] = ["B-C"]
        with pytest.raises(SchemaError, match="'B-C'"):
            parse_trace(raw, "tiny", GRAPH)

    def test_link_id_is_not_a_list_node_reference(self):
        raw = {
            "input": {
                "nodes": [{"id": "n1", "value": 1, "next": "n2"}, {"id": "n2", "value": 2, "next": None}],
                "head": "n1",
            },
            "steps": [{
                "step_number": 1, "actions": ["a", "b"],
                "state": {"current_node": "n1->n2", "visited_nodes": []},
            }],
        }
        with pytest.raises(SchemaError):
            parse_trace(raw, "list", get_family("linked_list"))

    def test_predecessor_reference_to_unknown_entity(self):
        raw = _graph_raw()
        raw["steps"][1]["state"]["predecessor"] = {"B": "Q"}
        with pytest.raises(SchemaError, match="'Q'"):
            parse_trace(raw, "tiny", GRAPH)

    def test_comparing_index_outside_array(self):
        raw = {
            "input": {"array": [3, 1]},
            "steps": [{
                "step_number": 1, "actions": ["a", "b"],
                "state": {"comparing": [1, 2], "swapped": False},
            }],
        }
        with pytest.raises(SchemaError, match="comparing"):
            parse_trace(raw, "bubble", BUBBLE)

    def test_next_suggestion_unknown(self):
        raw = _graph_raw()
        raw["steps"][0]["next_suggestion"] = "Q"
        with pytest.raises(SchemaError, match="next_suggestion"):
            parse_trace(raw, "tiny", GRAPH)

    def test_malformed_input_is_a_schema_error(self):
        raw = _graph_raw()
        del raw["input"]["nodes"]
        with pytest.raises(SchemaError, match="malformed"):
            parse_trace(raw, "tiny", GRAPH)


class TestLoadTrace:
    def test_round_trip_from_disk(self, tmp_path):
        path = tmp_path / "tiny.json"
        path.write_text(json.dumps(_graph_raw()), encoding="utf-8")
        trace = load_trace(path, "tiny", GRAPH)
        assert trace.key == "tiny"
        assert len(trace) == 2

    def test_unreadable_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(SchemaError, match="Cannot read"):
            load_trace(path, "broken", GRAPH)

    def test_missing_file(self, tmp_path):
        with pytest.raises(SchemaError):
            load_trace(tmp_path / "absent.json", "absent", GRAPH)

    def test_raw_is_not_mutated(self):
        raw = _graph_raw()
        before = copy.deepcopy(raw)
        parse_trace(raw, "tiny", GRAPH)
        assert raw == before
