"""
entity.py — Renderable Entities
================================
One Entity per drawable thing in a diagram.

    kind        what it is                           positioned by
    ─────────   ──────────────────────────────────   ──────────────────
    node        graph node                           LayoutStore
    edge        graph edge (source → target)         its endpoints
    cell        Floyd–Warshall matrix cell           its (row, col)
    bar         array cell drawn as a bar            LayoutStore
    aux         merge-sort auxiliary array cell      LayoutStore
    tree_node   merge-sort recursion-tree node       LayoutStore
    branch      parent → child line in a tree        its endpoints
    list_node   linked-list node                     LayoutStore
    link        next pointer between list nodes      its endpoints

Ids are strings, unique within one diagram and stable for the whole
trace.  An array cell's id is its index, never its value.
"""

from dataclasses import dataclass
from typing import Any, Optional


POSITIONED_KINDS = frozenset({"node", "bar", "aux", "tree_node", "list_node"})
CONNECTOR_KINDS  = frozenset({"edge", "branch", "link"})


@dataclass(frozen=True)
class Entity:
    """
    Attributes:
        id       : Stable id, e.g. "A", "A-B", "3", "left:0", "0-3", "n2".
        kind     : One of the kinds in the table above.
        label    : Text drawn on the entity for the current step.
        value    : Numeric value for bars / list nodes (step-scoped).
        source   : Start entity id for connectors.
        target   : End entity id for connectors (list nodes: next id).
        weight   : Edge weight, or None when unweighted.
        directed : Draw an arrowhead on connectors.
        row, col : Grid coordinates for matrix cells and slot rows.
        group    : Sub-row name for auxiliary cells ("left", "right", "merged").
    """

    id:       str
    kind:     str
    label:    str            = ""
    value:    Any            = None
    source:   Optional[str]  = None
    target:   Optional[str]  = None
    weight:   Optional[float] = None
    directed: bool           = False
    row:      int            = -1
    col:      int            = -1
    group:    str            = ""

    @property
    def positioned(self) -> bool:
        return self.kind in POSITIONED_KINDS

    @property
    def is_connector(self) -> bool:
        return self.kind in CONNECTOR_KINDS
