"""
step.py — Step Trace Snapshot
==============================
A StepTrace is the immutable, precomputed record of one algorithm run.
Each Step is a frozen-in-time picture of the algorithm's state:

    • step_number     – 1-based ordinal, strictly increasing
    • actions         – narration text, one entry per detail level
    • state           – algorithm-specific dict (queue, visited, array, …)
    • next_suggestion – entity id the algorithm will touch next (or None)

Design decisions:
  - Step and StepTrace are plain frozen dataclasses.  They are SNAPSHOTS;
    the schema parser is the only writer, everything else is a reader.
  - `state` stays a free-form dict so every algorithm family can carry
    whatever it needs.  The family configuration in engine/families.py
    knows how to read it.
  - next_suggestion is normalised to a string id (array traces give an
    integer index) so every component compares ids of one type.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from steptrace.errors import IndexOutOfRange


@dataclass(frozen=True)
class Step:
    """
    Attributes:
        step_number     : 1-based position of this step in the run.
        actions         : Narration strings indexed by detail level.
        state           : Algorithm-specific snapshot.
        next_suggestion : Id of the entity the algorithm will touch next.
    """

    step_number:     int                = 1
    actions:         Tuple[str, ...]    = ()
    state:           Dict[str, Any]     = field(default_factory=dict)
    next_suggestion: Optional[str]      = None

    def action(self, level: int) -> str:
        return self.actions[level]


@dataclass(frozen=True)
class StepTrace:
    """
    Attributes:
        key    : Registry key of the visualizer this trace drives.
        name   : Display name, e.g. "Breadth First Search (BFS)".
        input  : The initial problem instance (nodes/edges, array, list, …).
        steps  : Ordered, non-empty sequence of Steps.
    """

    key:    str
    name:   str
    input:  Dict[str, Any]
    steps:  Tuple[Step, ...]

    def __len__(self) -> int:
        return len(self.steps)

    @property
    def last_index(self) -> int:
        return len(self.steps) - 1

    def step(self, index: int) -> Step:
        """Return steps[index]; negative indices are NOT wrapped."""
        if not 0 <= index < len(self.steps):
            raise IndexOutOfRange(index, len(self.steps))
        return self.steps[index]
