"""
schema.py — Trace Schema Boundary
==================================
Pure validation / parsing: raw JSON-shaped data → StepTrace, or SchemaError.

A trace file looks like

    {
      "name":  "Breadth First Search (BFS)",
      "input": {"nodes": [...], "edges": [...], "start_node": "A"},
      "steps": [
        {"step_number": 1, "actions": ["...", "..."],
         "state": {...}, "next_suggestion": "B"},
        ...
      ]
    }

`meta.steps` is accepted in place of `steps` (older exports nest them).

Rejected when:
  • steps is missing or empty
  • step_number values are not exactly 1, 2, 3, …
  • any actions list length differs from the detail-level count
  • a state field (or next_suggestion) refers to an entity the input
    does not define

Which state fields are references depends on the algorithm family, so
the caller passes the family in; it must offer
`entity_ids(input) -> set` and `references(input, state) -> [(field, id)]`.
A family may narrow what references resolve against with
`reference_ids(input)`: graph fields name nodes, never edges.
"""

import copy
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from steptrace.errors import SchemaError
from steptrace.step import Step, StepTrace

logger = logging.getLogger(__name__)


def parse_trace(raw: Dict[str, Any], key: str, family, detail_levels: int = 2) -> StepTrace:
    """Validate `raw` and build an immutable StepTrace."""
    if not isinstance(raw, dict):
        raise SchemaError("Trace must be a JSON object", {"key": key})

    trace_input = raw.get("input")
    if not isinstance(trace_input, dict):
        raise SchemaError("Trace is missing its 'input' object", {"key": key})

    raw_steps = raw.get("steps")
    if raw_steps is None and isinstance(raw.get("meta"), dict):
        raw_steps = raw["meta"].get("steps")
    if not isinstance(raw_steps, list) or not raw_steps:
        raise SchemaError("Trace has no steps", {"key": key})

    try:
        known_ids = set(family.entity_ids(trace_input))
        # node-valued fields (visited, queue, predecessor, …) must not name an edge
        referable = set(family.reference_ids(trace_input)) if family.reference_ids else known_ids
    except (KeyError, TypeError, ValueError) as exc:
        raise SchemaError(f"Trace input is malformed: {exc!r}", {"key": key}) from exc
    steps: List[Step] = []

    for position, raw_step in enumerate(raw_steps):
        where = {"key": key, "step_index": position}
        if not isinstance(raw_step, dict):
            raise SchemaError("Step must be an object", where)

        number = raw_step.get("step_number")
        if isinstance(number, bool) or not isinstance(number, int) or number != position + 1:
            raise SchemaError(
                f"step_number must increase from 1 without gaps; got {number!r} at position {position}",
                where,
            )

        actions = raw_step.get("actions")
        if not isinstance(actions, list) or not all(isinstance(a, str) for a in actions):
            raise SchemaError("actions must be a list of strings", where)
        if len(actions) != detail_levels:
            raise SchemaError(
                f"expected {detail_levels} actions, got {len(actions)}",
                where,
            )

        state = raw_step.get("state")
        if not isinstance(state, dict):
            raise SchemaError("state must be an object", where)

        try:
            refs = list(family.references(trace_input, state))
        except (KeyError, TypeError, ValueError) as exc:
            raise SchemaError(f"state is malformed: {exc!r}", where) from exc
        for field_name, ref in refs:
            if ref not in referable:
                raise SchemaError(
                    f"state.{field_name} refers to unknown entity {ref!r}",
                    dict(where, field=field_name, ref=ref),
                )

        suggestion = _normalise_id(raw_step.get("next_suggestion"))
        if suggestion is not None and suggestion not in known_ids:
            raise SchemaError(
                f"next_suggestion refers to unknown entity {suggestion!r}",
                dict(where, field="next_suggestion", ref=suggestion),
            )

        steps.append(Step(
            step_number=number,
            actions=tuple(actions),
            state=copy.deepcopy(state),
            next_suggestion=suggestion,
        ))

    _log_deltas(key, steps)
    return StepTrace(
        key=key,
        name=str(raw.get("name", key)),
        input=copy.deepcopy(trace_input),
        steps=tuple(steps),
    )


def load_trace(path: Path, key: str, family, detail_levels: int = 2) -> StepTrace:
    """Read a trace file from disk and parse it."""
    try:
        with open(path, encoding="utf-8") as fh:
            raw = json.load(fh)
    except (OSError, ValueError) as exc:
        raise SchemaError(f"Cannot read trace file {path}: {exc}", {"key": key}) from exc

    trace = parse_trace(raw, key, family, detail_levels)
    logger.info("Loaded trace %s (%d steps) from %s", key, len(trace), path)
    return trace


# ---------------------------------------------------------------------------
# Internal
# ---------------------------------------------------------------------------
def _normalise_id(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def _log_deltas(key: str, steps: List[Step]) -> None:
    # Consecutive steps are assumed to differ by one atomic operation.
    # We only report how many top-level fields moved; nothing is enforced.
    if not logger.isEnabledFor(logging.DEBUG):
        return
    for prev, curr in zip(steps, steps[1:]):
        fields = set(prev.state) | set(curr.state)
        moved = sorted(f for f in fields if prev.state.get(f) != curr.state.get(f))
        logger.debug("%s step %d → %d changed %s", key, prev.step_number, curr.step_number, moved)
