"""
store.py — Layout Store
========================
Keyed position table for every drawable entity of one diagram.

    store = LayoutStore(width=600, height=400)
    store.initialize(["A", "B", "C"], LayoutHint(kind="circle"))
    store.get("A")           → Position(x=300.0, y=60.0, pinned=False)
    store.pin("A", 120, 80)  # drag start / move
    store.relax(RelaxConstraints(edges=[("A", "B")], iterations=5))
    store.unpin("A")         # drag end

Design decisions:
  - Positions live HERE and nowhere else.  Entities are looked up by id;
    nothing in the trace or the renderer holds a mutable coordinate.
  - initialize() only fills ids that have no position yet, so it is
    idempotent and safe to call on every frame.
  - Step changes never move anything.  Only relax(), pin() and reset()
    change a stored position.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from steptrace.errors import UnknownEntity
from layout.solvers import circle_positions, slot_positions, tree_positions, relax_positions

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Value types
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class Position:
    x:      float
    y:      float
    pinned: bool = False


@dataclass(frozen=True)
class LayoutHint:
    """
    How to place ids that have no position yet.

    kind:
        "circle" – graph nodes on a circle
        "slots"  – `slots[id] = (row, col)` grid cells
        "tree"   – `parents[id] = parent id or None`
    """

    kind:       str
    slots:      Mapping[str, Tuple[int, int]]   = field(default_factory=dict)
    parents:    Mapping[str, Optional[str]]     = field(default_factory=dict)
    slot_width: float                           = 60.0
    row_height: float                           = 90.0
    margin:     float                           = 40.0
    top:        Optional[float]                 = None


@dataclass(frozen=True)
class RelaxConstraints:
    edges:      Sequence[Tuple[str, str]] = ()
    iterations: int                       = 5


# ---------------------------------------------------------------------------
# LayoutStore
# ---------------------------------------------------------------------------
class LayoutStore:
    """
    Attributes:
        width, height : Canvas size the positions are laid out in.
        seed          : Seed handed to the force solver.
    """

    def __init__(self, width: float = 600, height: float = 400, seed: int = 42):
        self.width:      float               = width
        self.height:     float               = height
        self.seed:       int                 = seed
        self._positions: Dict[str, Position] = {}

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def get(self, entity_id: str) -> Position:
        try:
            return self._positions[entity_id]
        except KeyError:
            raise UnknownEntity(entity_id) from None

    def has(self, entity_id: str) -> bool:
        return entity_id in self._positions

    def positions(self) -> Dict[str, Position]:
        """Snapshot copy of every stored position."""
        return dict(self._positions)

    def pinned_ids(self) -> List[str]:
        return [eid for eid, pos in self._positions.items() if pos.pinned]

    def __len__(self) -> int:
        return len(self._positions)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def initialize(self, entity_ids: Sequence[str], hint: LayoutHint) -> List[str]:
        """
        Give every id without a position one computed from `hint`.
        Returns the ids that were newly placed.
        """
        ids = list(dict.fromkeys(entity_ids))
        missing = [eid for eid in ids if eid not in self._positions]
        if not missing:
            return []

        if hint.kind == "circle":
            # the circle depends on the full id list, not just the gaps
            placed = circle_positions(ids, self.width, self.height)
        elif hint.kind == "slots":
            placed = slot_positions(
                missing, hint.slots, hint.slot_width, hint.row_height, hint.margin, hint.top,
            )
        elif hint.kind == "tree":
            placed = tree_positions(missing, hint.parents, self.width, self.height, hint.margin)
        else:
            raise ValueError(f"Unknown layout kind: {hint.kind!r}")

        for eid in missing:
            x, y = placed[eid]
            self._positions[eid] = Position(x=x, y=y)
        return missing

    def relax(self, constraints: RelaxConstraints) -> None:
        """Settle every unpinned position; pinned ones stay exactly put."""
        if not self._positions:
            return
        pinned = set(self.pinned_ids())
        current = {eid: (p.x, p.y) for eid, p in self._positions.items()}
        settled = relax_positions(
            current,
            constraints.edges,
            pinned,
            self.width,
            self.height,
            constraints.iterations,
            self.seed,
        )
        for eid, (x, y) in settled.items():
            if eid not in pinned:
                self._positions[eid] = Position(x=x, y=y)

    def pin(self, entity_id: str, x: float, y: float) -> Position:
        self.get(entity_id)
        pos = Position(x=float(x), y=float(y), pinned=True)
        self._positions[entity_id] = pos
        logger.debug("Pinned %s at (%.1f, %.1f)", entity_id, pos.x, pos.y)
        return pos

    def unpin(self, entity_id: str) -> Position:
        pos = replace(self.get(entity_id), pinned=False)
        self._positions[entity_id] = pos
        logger.debug("Unpinned %s", entity_id)
        return pos

    def reset(self) -> None:
        """Forget every position; the next initialize() starts from scratch."""
        logger.debug("Layout reset (%d positions dropped)", len(self._positions))
        self._positions.clear()
