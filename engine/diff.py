"""
diff.py — Diff Engine
======================
(trace, step index, family) → CategoryAssignment.

Two sources of "what happened at this step":

  • explicit  – the family's projector reads categorical fields
                (visited, comparing, …) or an explicit change marker
                such as Floyd–Warshall's `updated_cell`.
  • inferred  – for families that declare cumulative fields (full
                distance tables, predecessor maps), step i is compared
                with step i-1 key by key.  EVERY differing key path is
                reported; nothing is picked arbitrarily.

compute() is a pure function: no cache, no history.  Seeking back to an
earlier index gives exactly what it gave the first time.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterator, List, Optional, Set, Tuple

from engine.entity import Entity
from engine.families import FamilyConfig, KeyPath
from steptrace.step import StepTrace

PROVENANCE_EXPLICIT = "explicit"
PROVENANCE_INFERRED = "inferred"
PROVENANCE_NONE     = "none"


@dataclass(frozen=True)
class CategoryAssignment:
    """
    Attributes:
        step_index      : The step this assignment describes.
        entities        : Entities present at this step, in draw order.
        tags            : entity id → tags (never empty for a present entity).
        roles           : entity id → static role (pivot, key, min, start, head, …).
        annotations     : entity id → short pointer text ("i", "L1", "4", …).
        updated         : Entity ids marked "just updated".
        changed_keys    : State key paths behind `updated`.
        provenance      : "explicit" if the trace said what changed,
                          "inferred" if it was diffed, "none" otherwise.
        next_suggestion : Entity id the algorithm will touch next.
    """

    step_index:      int
    entities:        Tuple[Entity, ...]
    tags:            Dict[str, FrozenSet[str]]
    roles:           Dict[str, str]                 = field(default_factory=dict)
    annotations:     Dict[str, str]                 = field(default_factory=dict)
    updated:         FrozenSet[str]                 = frozenset()
    changed_keys:    FrozenSet[KeyPath]             = frozenset()
    provenance:      str                            = PROVENANCE_NONE
    next_suggestion: Optional[str]                  = None

    def categories(self, entity_id: str) -> FrozenSet[str]:
        """Tags plus the role, the full input to the encoder."""
        role = self.roles.get(entity_id)
        tags = self.tags.get(entity_id, frozenset())
        return tags | {role} if role else tags

    def with_tag(self, tag: str) -> List[str]:
        return [eid for eid, tags in self.tags.items() if tag in tags]


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------
def compute(trace: StepTrace, step_index: int, family: FamilyConfig) -> CategoryAssignment:
    """Raises IndexOutOfRange for an index outside [0, len(trace))."""
    step = trace.step(step_index)
    state = step.state

    entities = tuple(family.entities(trace.input, state))
    present = {e.id for e in entities}
    proj = family.project(trace.input, state)

    if proj.updated_keys is not None:
        changed = frozenset(proj.updated_keys)
        provenance = PROVENANCE_EXPLICIT
    elif family.cumulative is not None and step_index > 0:
        before = family.cumulative(trace.input, trace.step(step_index - 1).state)
        after = family.cumulative(trace.input, state)
        changed = frozenset(changed_keys(before, after))
        provenance = PROVENANCE_INFERRED
    else:
        changed = frozenset()
        provenance = PROVENANCE_NONE

    updated: Set[str] = set()
    for key in changed:
        updated.update(eid for eid in family.key_entity(trace.input, key) if eid in present)

    tags: Dict[str, Set[str]] = {eid: set(proj.tags.get(eid, ())) for eid in present}
    for eid in updated:
        tags[eid].add("updated")
    if family.updated_tags is not None and updated:
        for eid, extra in family.updated_tags(trace.input, frozenset(updated)).items():
            if eid in tags:
                tags[eid].update(extra)
    for e in entities:
        if not tags[e.id]:
            tags[e.id].add(family.default_tags[e.kind])

    return CategoryAssignment(
        step_index=step_index,
        entities=entities,
        tags={eid: frozenset(t) for eid, t in tags.items()},
        roles={eid: r for eid, r in proj.roles.items() if eid in present},
        annotations={eid: a for eid, a in proj.annotations.items() if eid in present},
        updated=frozenset(updated),
        changed_keys=changed,
        provenance=provenance,
        next_suggestion=step.next_suggestion,
    )


# ---------------------------------------------------------------------------
# Key-path diffing
# ---------------------------------------------------------------------------
def flatten(value: Any, prefix: KeyPath = ()) -> Iterator[Tuple[KeyPath, Any]]:
    """Dicts are walked key by key; anything else is a leaf."""
    if isinstance(value, dict):
        for k, v in value.items():
            yield from flatten(v, prefix + (str(k),))
    else:
        yield prefix, value


def changed_keys(before: Dict[str, Any], after: Dict[str, Any]) -> Set[KeyPath]:
    """Every key path whose leaf value differs, appears, or disappears."""
    old = dict(flatten(before))
    new = dict(flatten(after))
    return {key for key in old.keys() | new.keys() if old.get(key, _MISSING) != new.get(key, _MISSING)}


class _Missing:
    def __repr__(self) -> str:
        return "<missing>"


_MISSING = _Missing()
