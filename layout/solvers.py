"""
solvers.py — Layout Solvers
============================
Stateless position generators used by the LayoutStore.

    circle_positions  – nodes evenly spaced on a circle (graphs)
    slot_positions    – row/column grid slots (bars, list nodes, aux rows)
    tree_positions    – tidy top-down layout from a parent map
    relax_positions   – force-directed settling via networkx.spring_layout

Every solver is deterministic for identical input: no jitter, and the
force solver is always seeded.
"""

import math
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

import networkx as nx
import numpy as np

Point = Tuple[float, float]


# ---------------------------------------------------------------------------
# Circle
# ---------------------------------------------------------------------------
def circle_positions(ids: Sequence[str], width: float, height: float) -> Dict[str, Point]:
    """Place ids clockwise on a circle centred in the canvas."""
    n = len(ids)
    if n == 0:
        return {}
    cx, cy = width / 2, height / 2
    if n == 1:
        return {ids[0]: (cx, cy)}

    radius = min(width, height) * 0.35
    out: Dict[str, Point] = {}
    for i, eid in enumerate(ids):
        # start at 12 o'clock so the first node sits on top
        angle = 2 * math.pi * i / n - math.pi / 2
        out[eid] = (cx + radius * math.cos(angle), cy + radius * math.sin(angle))
    return out


# ---------------------------------------------------------------------------
# Slots
# ---------------------------------------------------------------------------
def slot_positions(
    ids: Iterable[str],
    slots: Mapping[str, Tuple[int, int]],
    slot_width: float,
    row_height: float,
    margin: float,
    top: Optional[float] = None,
) -> Dict[str, Point]:
    """
    `slots` maps id → (row, col).  The returned point is the centre of
    the slot's column and the top of its row.  Rows start at `top`
    (default: the margin).
    """
    y0 = margin if top is None else top
    out: Dict[str, Point] = {}
    for eid in ids:
        row, col = slots[eid]
        out[eid] = (margin + col * slot_width + slot_width / 2, y0 + row * row_height)
    return out


# ---------------------------------------------------------------------------
# Tree
# ---------------------------------------------------------------------------
def tree_positions(
    ids: Iterable[str],
    parents: Mapping[str, Optional[str]],
    width: float,
    height: float,
    margin: float,
) -> Dict[str, Point]:
    """
    Leaves are spaced evenly left to right in depth-first order, each
    parent is centred over its children, and depth maps to y.

    `parents` must cover the whole tree (every node, root → None) even
    when only some ids are requested; child order is the map's order.
    """
    children: Dict[str, List[str]] = {nid: [] for nid in parents}
    roots: List[str] = []
    for nid, parent in parents.items():
        if parent is None:
            roots.append(nid)
        else:
            children[parent].append(nid)

    depth: Dict[str, int] = {}
    leaf_slot: Dict[str, float] = {}
    leaves: List[str] = []

    def walk(nid: str, d: int) -> None:
        depth[nid] = d
        if not children[nid]:
            leaves.append(nid)
            return
        for child in children[nid]:
            walk(child, d + 1)

    for root in roots:
        walk(root, 0)

    for i, leaf in enumerate(leaves):
        leaf_slot[leaf] = float(i)

    def centre(nid: str) -> float:
        if nid in leaf_slot:
            return leaf_slot[nid]
        kids = [centre(c) for c in children[nid]]
        leaf_slot[nid] = (kids[0] + kids[-1]) / 2
        return leaf_slot[nid]

    for root in roots:
        centre(root)

    max_depth = max(depth.values(), default=0)
    usable_w = width - 2 * margin
    usable_h = height - 2 * margin
    step_x = usable_w / max(len(leaves), 1)
    step_y = usable_h / max(max_depth, 1)

    out: Dict[str, Point] = {}
    for nid in ids:
        out[nid] = (margin + step_x * (leaf_slot[nid] + 0.5), margin + step_y * depth[nid])
    return out


# ---------------------------------------------------------------------------
# Force relaxation
# ---------------------------------------------------------------------------
def relax_positions(
    positions: Mapping[str, Point],
    edges: Iterable[Tuple[str, str]],
    pinned: Set[str],
    width: float,
    height: float,
    iterations: int,
    seed: int,
    margin: float = 30.0,
) -> Dict[str, Point]:
    """
    Run `iterations` Fruchterman–Reingold steps starting from `positions`.

    Pinned ids are passed to networkx as `fixed` and come back untouched.
    Coordinates are normalised to the unit square before solving and
    mapped back (clamped inside the margin) afterwards.
    """
    ids = list(positions)
    if len(ids) < 2 or iterations <= 0:
        return dict(positions)

    G = nx.Graph()
    G.add_nodes_from(ids)
    G.add_edges_from((s, t) for s, t in edges if s in positions and t in positions and s != t)

    norm = {nid: (x / width, y / height) for nid, (x, y) in positions.items()}
    fixed = [nid for nid in ids if nid in pinned] or None

    solved = nx.spring_layout(
        G,
        k=1.0 / math.sqrt(len(ids)),
        pos=norm,
        fixed=fixed,
        iterations=iterations,
        scale=None,
        seed=seed,
    )

    out: Dict[str, Point] = {}
    lo = np.array([margin, margin])
    hi = np.array([width - margin, height - margin])
    for nid in ids:
        if nid in pinned:
            out[nid] = positions[nid]
            continue
        xy = np.clip(np.asarray(solved[nid]) * np.array([width, height]), lo, hi)
        out[nid] = (float(xy[0]), float(xy[1]))
    return out
