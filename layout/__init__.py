"""
layout/
-------
Persistent entity positions and the solvers that compute them.

    from layout import LayoutStore, LayoutHint, RelaxConstraints
"""

from layout.store import LayoutStore, LayoutHint, Position, RelaxConstraints
from layout.solvers import circle_positions, slot_positions, tree_positions, relax_positions

__all__ = [
    "LayoutStore",
    "LayoutHint",
    "Position",
    "RelaxConstraints",
    "circle_positions",
    "slot_positions",
    "tree_positions",
    "relax_positions",
]
