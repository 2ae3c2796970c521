"""
families.py — Algorithm Family Configuration
=============================================
One FamilyConfig per algorithm family.  The engine is generic; a family
tells it everything algorithm-specific:

    shape              – which renderer adapter draws it
    default_tags       – tag given to an entity the projector left untagged
    fill_precedence    – highest-first order deciding the fill colour
    stroke_precedence  – highest-first order deciding the outline
    styles             – tag / role → StyleRule (palette keys, not colours)
    entity_ids(input)           – every id the diagram can ever contain
    reference_ids(input)        – ids state fields may name (default: entity_ids)
    entities(input, state)      – the entities present at this step
    references(input, state)    – [(field, id)] the schema must resolve
    project(input, state)       – Projection: tags, roles, annotations
    cumulative(input, state)    – fields diffed step-to-step, or None
    key_entity(input, key)      – changed key path → entity ids
    layout_hint(input, w, h)    – how the LayoutStore places entities
    relax_edges(input)          – force-layout springs, or None (static)

Precedence tables (highest first):

    graph_search    visited > frontier > unvisited          stroke: start
                    edges: tree-edge > idle
    shortest_path   updated > settled > unsettled           stroke: relaxed > start
                    edges: relaxed > tree-edge > idle
    all_pairs       intermediate > endpoint > idle
                    cells: updated > unchanged
    mst             in-tree > outside                       stroke: start
                    edges: tree-edge > candidate > idle
    sorts           pivot/key/min > swapped > shifted > comparing > sorted
                    > partition > current > unsorted
    merge_sort      comparing > sorted > active-range > unsorted
                    aux rows: left | right | merged
    merge_sort_tree merging > active > sorted > pending     branches: split > idle
    linear_search   found > current > checked > unchecked
    binary_search   found > middle > search-range > excluded   stroke: boundary
    linked_list     found > current > visited > unvisited   stroke: head
                    links: traversed > idle

The "next" rule is shared: the next-suggestion outline always wins the
stroke channel and never touches the fill.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Mapping, Optional, Set, Tuple

from engine.entity import Entity
from layout.store import LayoutHint

KeyPath = Tuple[str, ...]


# ---------------------------------------------------------------------------
# Config types
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class StyleRule:
    """Palette keys for one category.  None means "use the kind's default"."""

    fill:         Optional[str]   = None
    stroke:       Optional[str]   = None
    stroke_width: Optional[float] = None
    opacity:      float           = 1.0


@dataclass
class Projection:
    """What a family reads straight out of one step's state."""

    tags:         Dict[str, Set[str]]    = field(default_factory=dict)
    roles:        Dict[str, str]         = field(default_factory=dict)
    annotations:  Dict[str, str]         = field(default_factory=dict)
    updated_keys: Optional[Set[KeyPath]] = None   # set when the trace says what changed

    def tag(self, entity_id: str, *tags: str) -> None:
        self.tags.setdefault(entity_id, set()).update(tags)

    def note(self, entity_id: str, text: str) -> None:
        prev = self.annotations.get(entity_id)
        self.annotations[entity_id] = f"{prev},{text}" if prev else text


def _no_keys(trace_input: Dict[str, Any], key: KeyPath) -> List[str]:
    return []


def _same_size(trace_input: Dict[str, Any], width: float, height: float) -> Tuple[float, float]:
    return width, height


@dataclass(frozen=True)
class FamilyConfig:
    key:               str
    shape:             str                                    # graph | bars | tree | list
    default_tags:      Mapping[str, str]
    fill_precedence:   Tuple[str, ...]
    stroke_precedence: Tuple[str, ...]
    styles:            Mapping[str, StyleRule]
    entity_ids:        Callable[[Dict[str, Any]], List[str]]
    entities:          Callable[[Dict[str, Any], Dict[str, Any]], List[Entity]]
    references:        Callable[[Dict[str, Any], Dict[str, Any]], List[Tuple[str, str]]]
    project:           Callable[[Dict[str, Any], Dict[str, Any]], Projection]
    layout_hint:       Callable[[Dict[str, Any], float, float], LayoutHint]
    cumulative:        Optional[Callable[[Dict[str, Any], Dict[str, Any]], Dict[str, Any]]] = None
    key_entity:        Callable[[Dict[str, Any], KeyPath], List[str]] = _no_keys
    updated_tags:      Optional[Callable[[Dict[str, Any], FrozenSet[str]], Dict[str, Set[str]]]] = None
    relax_edges:       Optional[Callable[[Dict[str, Any]], List[Tuple[str, str]]]] = None
    reference_ids:     Optional[Callable[[Dict[str, Any]], List[str]]] = None
    layout_size:       Callable[[Dict[str, Any], float, float], Tuple[float, float]] = _same_size
    canvas_size:       Callable[[Dict[str, Any], float, float], Tuple[float, float]] = _same_size

    @property
    def vocabulary(self) -> FrozenSet[str]:
        return frozenset(self.styles)

    @property
    def force_layout(self) -> bool:
        return self.relax_edges is not None


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------
NEXT_RULE = StyleRule(stroke="next", stroke_width=4)


def fmt_value(value: Any) -> str:
    """Display form of a distance / array value; None is infinity."""
    if value is None:
        return "∞"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _ids(values: Optional[Iterable[Any]]) -> List[str]:
    return [str(v) for v in (values or [])]


def _index(value: Any) -> Optional[str]:
    if value is None or isinstance(value, bool):
        return None
    return str(int(value))


def _styles(**rules: StyleRule) -> Dict[str, StyleRule]:
    table = {name.replace("_", "-"): rule for name, rule in rules.items()}
    table["next"] = NEXT_RULE
    return table


# ---------------------------------------------------------------------------
# Graph helpers
# ---------------------------------------------------------------------------
def edge_id(source: str, target: str) -> str:
    return f"{source}-{target}"


def graph_nodes(trace_input: Dict[str, Any]) -> List[str]:
    return _ids(trace_input["nodes"])


def graph_edges(trace_input: Dict[str, Any]) -> List[Tuple[str, str, Optional[float]]]:
    out = []
    for raw in trace_input.get("edges", []):
        weight = raw[2] if len(raw) > 2 else None
        out.append((str(raw[0]), str(raw[1]), weight))
    return out


def _edge_lookup(trace_input: Dict[str, Any]) -> Dict[Tuple[str, str], str]:
    """(u, v) → edge id; undirected graphs answer both directions."""
    directed = bool(trace_input.get("directed", False))
    table: Dict[Tuple[str, str], str] = {}
    for s, t, _ in graph_edges(trace_input):
        table[(s, t)] = edge_id(s, t)
        if not directed:
            table.setdefault((t, s), edge_id(s, t))
    return table


def _graph_entity_ids(trace_input: Dict[str, Any]) -> List[str]:
    return graph_nodes(trace_input) + [edge_id(s, t) for s, t, _ in graph_edges(trace_input)]


def _graph_entities(trace_input: Dict[str, Any], state: Dict[str, Any]) -> List[Entity]:
    directed = bool(trace_input.get("directed", False))
    out = [Entity(id=n, kind="node", label=n) for n in graph_nodes(trace_input)]
    for s, t, w in graph_edges(trace_input):
        out.append(Entity(
            id=edge_id(s, t), kind="edge", source=s, target=t, weight=w, directed=directed,
            label="" if w is None else fmt_value(w),
        ))
    return out


def _graph_hint(trace_input: Dict[str, Any], width: float, height: float) -> LayoutHint:
    return LayoutHint(kind="circle")


def _graph_springs(trace_input: Dict[str, Any]) -> List[Tuple[str, str]]:
    return [(s, t) for s, t, _ in graph_edges(trace_input)]


def _tag_tree_edges(p: Projection, trace_input: Dict[str, Any], predecessor: Optional[Dict[str, Any]]) -> None:
    lookup = _edge_lookup(trace_input)
    for child, parent in (predecessor or {}).items():
        if parent is None:
            continue
        eid = lookup.get((str(parent), str(child)))
        if eid:
            p.tag(eid, "tree-edge")


def _node_key(trace_input: Dict[str, Any], key: KeyPath) -> List[str]:
    # ("distances", "B") / ("predecessor", "B") → node B
    if len(key) >= 2 and key[1] in graph_nodes(trace_input):
        return [key[1]]
    return []


# ---------------------------------------------------------------------------
# graph_search  (BFS, DFS)
# ---------------------------------------------------------------------------
def _graph_search_refs(trace_input, state):
    refs = []
    for name in ("queue", "stack", "visited", "order"):
        refs += [(name, n) for n in _ids(state.get(name))]
    for child, parent in (state.get("predecessor") or {}).items():
        refs.append(("predecessor", str(child)))
        if parent is not None:
            refs.append(("predecessor", str(parent)))
    refs += [("level", str(n)) for n in (state.get("level") or {})]
    return refs


def _graph_search_project(trace_input, state):
    p = Projection()
    frontier = state.get("queue", state.get("stack"))
    for n in _ids(frontier):
        p.tag(n, "frontier")
    for n in _ids(state.get("visited")):
        p.tag(n, "visited")
    if trace_input.get("start_node") is not None:
        p.roles[str(trace_input["start_node"])] = "start"
    _tag_tree_edges(p, trace_input, state.get("predecessor"))

    levels = state.get("level")
    if levels:
        for n, level in levels.items():
            p.note(str(n), f"L{level}")
    else:
        for pos, n in enumerate(_ids(state.get("order") or state.get("visited")), start=1):
            p.note(n, f"#{pos}")
    return p


GRAPH_SEARCH = FamilyConfig(
    key="graph_search",
    shape="graph",
    default_tags={"node": "unvisited", "edge": "idle"},
    fill_precedence=("visited", "frontier", "unvisited", "tree-edge", "idle"),
    stroke_precedence=("start",),
    styles=_styles(
        visited=StyleRule(fill="visited"),
        frontier=StyleRule(fill="frontier"),
        unvisited=StyleRule(fill="base"),
        start=StyleRule(stroke="start", stroke_width=3),
        tree_edge=StyleRule(stroke="tree", stroke_width=4),
        idle=StyleRule(),
    ),
    entity_ids=_graph_entity_ids,
    entities=_graph_entities,
    references=_graph_search_refs,
    project=_graph_search_project,
    layout_hint=_graph_hint,
    reference_ids=graph_nodes,
    relax_edges=_graph_springs,
)


# ---------------------------------------------------------------------------
# shortest_path  (Bellman–Ford)
# ---------------------------------------------------------------------------
def _shortest_path_refs(trace_input, state):
    refs = [("distances", str(n)) for n in (state.get("distances") or {})]
    for child, parent in (state.get("predecessor") or {}).items():
        refs.append(("predecessor", str(child)))
        if parent is not None:
            refs.append(("predecessor", str(parent)))
    refs += [("relaxed_edge", n) for n in _ids(state.get("relaxed_edge"))]
    return refs


def _shortest_path_project(trace_input, state):
    p = Projection()
    for n, dist in (state.get("distances") or {}).items():
        p.tag(str(n), "settled" if dist is not None else "unsettled")
        p.note(str(n), fmt_value(dist))
    if trace_input.get("start_node") is not None:
        p.roles[str(trace_input["start_node"])] = "start"
    _tag_tree_edges(p, trace_input, state.get("predecessor"))

    relaxed = _ids(state.get("relaxed_edge"))
    if len(relaxed) == 2:
        u, v = relaxed
        p.tag(u, "relaxed")
        p.tag(v, "relaxed")
        eid = _edge_lookup(trace_input).get((u, v))
        if eid:
            p.tag(eid, "relaxed")
    return p


def _shortest_path_cumulative(trace_input, state):
    return {
        "distances":   state.get("distances") or {},
        "predecessor": state.get("predecessor") or {},
    }


SHORTEST_PATH = FamilyConfig(
    key="shortest_path",
    shape="graph",
    default_tags={"node": "unsettled", "edge": "idle"},
    fill_precedence=("updated", "settled", "unsettled", "relaxed", "tree-edge", "idle"),
    stroke_precedence=("relaxed", "start"),
    styles=_styles(
        updated=StyleRule(fill="updated"),
        settled=StyleRule(fill="settled"),
        unsettled=StyleRule(fill="base"),
        relaxed=StyleRule(stroke="relaxed", stroke_width=4),
        start=StyleRule(stroke="start", stroke_width=3),
        tree_edge=StyleRule(stroke="tree", stroke_width=3),
        idle=StyleRule(),
    ),
    entity_ids=_graph_entity_ids,
    entities=_graph_entities,
    references=_shortest_path_refs,
    project=_shortest_path_project,
    layout_hint=_graph_hint,
    reference_ids=graph_nodes,
    cumulative=_shortest_path_cumulative,
    key_entity=_node_key,
    relax_edges=_graph_springs,
)


# ---------------------------------------------------------------------------
# all_pairs  (Floyd–Warshall)
# ---------------------------------------------------------------------------
MATRIX_CELL = 40


def cell_id(i: str, j: str) -> str:
    return f"{i}:{j}"


def split_pair(key: str, nodes: List[str]) -> Optional[Tuple[str, str]]:
    """"A-B" → ("A", "B") when both halves are node ids."""
    for pos, ch in enumerate(key):
        if ch == "-" and key[:pos] in nodes and key[pos + 1:] in nodes:
            return key[:pos], key[pos + 1:]
    return None


def distance_matrix(trace_input: Dict[str, Any], raw: Optional[Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
    """
    Normalise nested {"A": {"B": 3}} or flat {"A-B": 3} distances to a
    full nested matrix; missing cells are 0 on the diagonal, ∞ (None)
    elsewhere.
    """
    nodes = graph_nodes(trace_input)
    matrix = {i: {j: (0 if i == j else None) for j in nodes} for i in nodes}
    for key, value in (raw or {}).items():
        if isinstance(value, dict):
            for j, d in value.items():
                matrix[str(key)][str(j)] = d
        else:
            pair = split_pair(str(key), nodes)
            if pair is None:
                raise KeyError(key)
            matrix[pair[0]][pair[1]] = value
    return matrix


def _all_pairs_entity_ids(trace_input):
    nodes = graph_nodes(trace_input)
    return _graph_entity_ids(trace_input) + [cell_id(i, j) for i in nodes for j in nodes]


def _all_pairs_entities(trace_input, state):
    nodes = graph_nodes(trace_input)
    matrix = distance_matrix(trace_input, state.get("distances"))
    out = _graph_entities(trace_input, state)
    for r, i in enumerate(nodes):
        for c, j in enumerate(nodes):
            out.append(Entity(
                id=cell_id(i, j), kind="cell", label=fmt_value(matrix[i][j]),
                value=matrix[i][j], row=r, col=c,
            ))
    return out


def _all_pairs_refs(trace_input, state):
    nodes = graph_nodes(trace_input)
    refs = []
    for key, value in (state.get("distances") or {}).items():
        if isinstance(value, dict):
            refs.append(("distances", str(key)))
            refs += [("distances", str(j)) for j in value]
        else:
            pair = split_pair(str(key), nodes)
            refs += [("distances", n) for n in (pair or (str(key),))]
    if state.get("k") is not None:
        refs.append(("k", str(state["k"])))
    refs += [("updated_cell", n) for n in _ids(state.get("updated_cell"))]
    return refs


def _all_pairs_project(trace_input, state):
    p = Projection()
    k = state.get("k")
    if k is not None:
        p.tag(str(k), "intermediate")
        p.note(str(k), "k")
    cell = _ids(state.get("updated_cell"))
    if len(cell) == 2:
        p.updated_keys = {("distances", cell[0], cell[1])}
    return p


def _all_pairs_cumulative(trace_input, state):
    return {"distances": distance_matrix(trace_input, state.get("distances"))}


def _all_pairs_key(trace_input, key):
    if len(key) == 3 and key[0] == "distances":
        return [cell_id(key[1], key[2])]
    return []


def _all_pairs_endpoints(trace_input, updated):
    nodes = graph_nodes(trace_input)
    extra: Dict[str, Set[str]] = {}
    for i in nodes:
        for j in nodes:
            if cell_id(i, j) in updated:
                extra.setdefault(i, set()).add("endpoint")
                extra.setdefault(j, set()).add("endpoint")
    return extra


def _all_pairs_canvas(trace_input, width, height):
    n = len(graph_nodes(trace_input))
    return width + n * MATRIX_CELL + 80, max(height, n * MATRIX_CELL + 100)


ALL_PAIRS = FamilyConfig(
    key="all_pairs",
    shape="graph",
    default_tags={"node": "idle", "edge": "idle", "cell": "unchanged"},
    fill_precedence=("intermediate", "endpoint", "idle", "updated", "unchanged"),
    stroke_precedence=(),
    styles=_styles(
        intermediate=StyleRule(fill="intermediate"),
        endpoint=StyleRule(fill="endpoint"),
        idle=StyleRule(fill="base"),
        updated=StyleRule(fill="updated", stroke="relaxed", stroke_width=2),
        unchanged=StyleRule(fill="cell"),
    ),
    entity_ids=_all_pairs_entity_ids,
    entities=_all_pairs_entities,
    references=_all_pairs_refs,
    project=_all_pairs_project,
    layout_hint=_graph_hint,
    reference_ids=graph_nodes,
    cumulative=_all_pairs_cumulative,
    key_entity=_all_pairs_key,
    updated_tags=_all_pairs_endpoints,
    relax_edges=_graph_springs,
    canvas_size=_all_pairs_canvas,
)


# ---------------------------------------------------------------------------
# mst  (Prim's)
# ---------------------------------------------------------------------------
def _mst_refs(trace_input, state):
    refs = [("mst_nodes", n) for n in _ids(state.get("mst_nodes"))]
    for name in ("mst_edges", "candidate_edges"):
        for raw in state.get(name) or []:
            refs += [(name, str(raw[0])), (name, str(raw[1]))]
    return refs


def _mst_project(trace_input, state):
    p = Projection()
    for n in _ids(state.get("mst_nodes")):
        p.tag(n, "in-tree")
    if trace_input.get("start_node") is not None:
        p.roles[str(trace_input["start_node"])] = "start"
    lookup = _edge_lookup(trace_input)
    for name, tag in (("mst_edges", "tree-edge"), ("candidate_edges", "candidate")):
        for raw in state.get(name) or []:
            eid = lookup.get((str(raw[0]), str(raw[1])))
            if eid:
                p.tag(eid, tag)
    return p


MST = FamilyConfig(
    key="mst",
    shape="graph",
    default_tags={"node": "outside", "edge": "idle"},
    fill_precedence=("in-tree", "outside", "tree-edge", "candidate", "idle"),
    stroke_precedence=("start",),
    styles=_styles(
        in_tree=StyleRule(fill="visited"),
        outside=StyleRule(fill="base"),
        start=StyleRule(stroke="start", stroke_width=3),
        tree_edge=StyleRule(stroke="tree", stroke_width=5),
        candidate=StyleRule(stroke="candidate", stroke_width=3),
        idle=StyleRule(opacity=0.6),
    ),
    entity_ids=_graph_entity_ids,
    entities=_graph_entities,
    references=_mst_refs,
    project=_mst_project,
    layout_hint=_graph_hint,
    reference_ids=graph_nodes,
    relax_edges=_graph_springs,
)


# ---------------------------------------------------------------------------
# Bar-array helpers
# ---------------------------------------------------------------------------
BAR_SLOT    = 60.0
BAR_ROW     = 220.0
BAR_MARGIN  = 40.0


def array_of(trace_input: Dict[str, Any], state: Dict[str, Any]) -> List[Any]:
    arr = state.get("array")
    return list(arr) if arr is not None else list(trace_input["array"])


def _array_ids(trace_input):
    return [str(i) for i in range(len(trace_input["array"]))]


def _bar_entities(trace_input, state):
    return [
        Entity(id=str(i), kind="bar", label=fmt_value(v), value=v, row=0, col=i)
        for i, v in enumerate(array_of(trace_input, state))
    ]


def _bar_hint(trace_input, width, height):
    slots = {str(i): (0, i) for i in range(len(trace_input["array"]))}
    return LayoutHint(kind="slots", slots=slots, slot_width=BAR_SLOT, row_height=BAR_ROW, margin=BAR_MARGIN)


def _bar_size(trace_input, width, height):
    n = len(trace_input["array"])
    return 2 * BAR_MARGIN + n * BAR_SLOT, 2 * BAR_MARGIN + BAR_ROW


def _index_refs(state: Dict[str, Any], *names: str) -> List[Tuple[str, str]]:
    """Resolve scalar or list index fields to (field, "i") references."""
    refs = []
    for name in names:
        value = state.get(name)
        values = value if isinstance(value, list) else [value]
        for v in values:
            idx = _index(v)
            if idx is not None:
                refs.append((name, idx))
    return refs


def _tag_indices(p: Projection, values: Optional[Iterable[Any]], *tags: str) -> None:
    for v in values or []:
        p.tag(str(int(v)), *tags)


def _array_len_refs(trace_input, state):
    # an array snapshot of the wrong length would reference cells that do not exist
    arr = state.get("array")
    if arr is not None and len(arr) != len(trace_input["array"]):
        return [("array", f"#{len(arr)}")]
    return []


SORT_PRECEDENCE = (
    "pivot", "key", "min", "swapped", "shifted", "comparing",
    "sorted", "partition", "current", "unsorted",
)

SORT_STYLES = _styles(
    pivot=StyleRule(fill="pivot"),
    key=StyleRule(fill="key"),
    min=StyleRule(fill="min"),
    swapped=StyleRule(fill="swapped"),
    shifted=StyleRule(fill="shifted"),
    comparing=StyleRule(fill="comparing"),
    sorted=StyleRule(fill="sorted"),
    partition=StyleRule(fill="partition"),
    current=StyleRule(fill="current"),
    unsorted=StyleRule(fill="unsorted"),
)


def _sort_family(key: str, refs, project) -> FamilyConfig:
    return FamilyConfig(
        key=key,
        shape="bars",
        default_tags={"bar": "unsorted"},
        fill_precedence=SORT_PRECEDENCE,
        stroke_precedence=(),
        styles=SORT_STYLES,
        entity_ids=_array_ids,
        entities=_bar_entities,
        references=lambda i, s: _array_len_refs(i, s) + refs(i, s),
        project=project,
        layout_hint=_bar_hint,
        layout_size=_bar_size,
        canvas_size=_bar_size,
    )


# ---------------------------------------------------------------------------
# Sorts
# ---------------------------------------------------------------------------
def _bubble_project(trace_input, state):
    p = Projection()
    n = len(array_of(trace_input, state))
    for i in range(n - int(state.get("sorted_count") or 0), n):
        p.tag(str(i), "sorted")
    tags = ("comparing", "swapped") if state.get("swapped") else ("comparing",)
    _tag_indices(p, state.get("comparing"), *tags)
    return p


def _selection_project(trace_input, state):
    p = Projection()
    for i in range(int(state.get("sorted_count") or 0)):
        p.tag(str(i), "sorted")
    tags = ("comparing", "swapped") if state.get("swapped") else ("comparing",)
    _tag_indices(p, state.get("comparing"), *tags)
    current = _index(state.get("current_index"))
    if current is not None:
        p.tag(current, "current")
        p.note(current, "i")
    low = _index(state.get("min_index"))
    if low is not None:
        p.roles[low] = "min"
        p.note(low, "min")
    return p


def _insertion_project(trace_input, state):
    p = Projection()
    for i in range(int(state.get("sorted_count") or 0)):
        p.tag(str(i), "sorted")
    tags = ("comparing", "shifted") if state.get("swapped") else ("comparing",)
    _tag_indices(p, state.get("comparing"), *tags)
    key = _index(state.get("key_index"))
    if key is not None:
        p.roles[key] = "key"
        p.note(key, "key")
    return p


def _quick_project(trace_input, state):
    p = Projection()
    n = len(array_of(trace_input, state))
    bounds = state.get("partition_range")
    if bounds:
        for i in range(int(bounds[0]), int(bounds[1]) + 1):
            p.tag(str(i), "partition")
    _tag_indices(p, state.get("sorted_indices"), "sorted")
    _tag_indices(p, state.get("comparing"), "comparing")
    _tag_indices(p, state.get("swapped"), "swapped")
    j = _index(state.get("j"))
    if j is not None:
        p.tag(j, "current")
        p.note(j, "j")
    i = state.get("i")
    if i is not None and 0 <= int(i) < n:
        p.note(str(int(i)), "i")
    pivot = _index(state.get("pivot_index"))
    if pivot is not None and state.get("partitioning"):
        p.roles[pivot] = "pivot"
        p.note(pivot, "pivot")
    return p


BUBBLE_SORT = _sort_family(
    "bubble_sort",
    lambda i, s: _index_refs(s, "comparing"),
    _bubble_project,
)

SELECTION_SORT = _sort_family(
    "selection_sort",
    lambda i, s: _index_refs(s, "comparing", "current_index", "min_index"),
    _selection_project,
)

INSERTION_SORT = _sort_family(
    "insertion_sort",
    lambda i, s: _index_refs(s, "comparing", "key_index"),
    _insertion_project,
)

QUICK_SORT = _sort_family(
    "quick_sort",
    lambda i, s: _index_refs(s, "comparing", "swapped", "sorted_indices", "pivot_index", "j", "partition_range"),
    _quick_project,
)


# ---------------------------------------------------------------------------
# merge_sort  (bars + auxiliary rows)
# ---------------------------------------------------------------------------
AUX_ROWS = (("left", 1), ("right", 1), ("merged", 2))
MERGE_ROW = 150.0


def _aux_slots(n: int) -> Dict[str, Tuple[int, int]]:
    half = (n + 1) // 2
    slots = {str(i): (0, i) for i in range(n)}
    for k in range(n):
        slots[f"left:{k}"] = (1, k)
        slots[f"right:{k}"] = (1, half + 1 + k)
        slots[f"merged:{k}"] = (2, k)
    return slots


def _merge_ids(trace_input):
    n = len(trace_input["array"])
    return list(_aux_slots(n))


def _merge_entities(trace_input, state):
    out = _bar_entities(trace_input, state)
    for group, row in AUX_ROWS:
        for k, v in enumerate(state.get(f"{group}_array") or []):
            out.append(Entity(
                id=f"{group}:{k}", kind="aux", label=fmt_value(v), value=v,
                row=row, col=k, group=group,
            ))
    return out


def _merge_refs(trace_input, state):
    refs = _array_len_refs(trace_input, state) + _index_refs(state, "comparing", "active_range")
    for bounds in state.get("sorted_ranges") or []:
        refs += [("sorted_ranges", str(int(b))) for b in bounds]
    n = len(trace_input["array"])
    for group, _ in AUX_ROWS:
        if len(state.get(f"{group}_array") or []) > n:
            refs.append((f"{group}_array", f"{group}:{n}"))
    return refs


def _in_ranges(i: int, ranges: Optional[Iterable[Iterable[Any]]]) -> bool:
    return any(int(lo) <= i <= int(hi) for lo, hi in (ranges or []))


def _merge_project(trace_input, state):
    p = Projection()
    n = len(array_of(trace_input, state))
    active = state.get("active_range")
    for i in range(n):
        if _in_ranges(i, state.get("sorted_ranges")):
            p.tag(str(i), "sorted")
        if active and int(active[0]) <= i <= int(active[1]):
            p.tag(str(i), "active-range")
    _tag_indices(p, state.get("comparing"), "comparing")
    for group, _ in AUX_ROWS:
        for k in range(len(state.get(f"{group}_array") or [])):
            p.tag(f"{group}:{k}", group)
    return p


def _merge_hint(trace_input, width, height):
    return LayoutHint(
        kind="slots", slots=_aux_slots(len(trace_input["array"])),
        slot_width=BAR_SLOT, row_height=MERGE_ROW, margin=BAR_MARGIN,
    )


def _merge_size(trace_input, width, height):
    n = len(trace_input["array"])
    return 2 * BAR_MARGIN + (n + 2) * BAR_SLOT, 2 * BAR_MARGIN + 3 * MERGE_ROW


MERGE_SORT = FamilyConfig(
    key="merge_sort",
    shape="bars",
    default_tags={"bar": "unsorted", "aux": "merged"},
    fill_precedence=("comparing", "sorted", "active-range", "unsorted", "left", "right", "merged"),
    stroke_precedence=(),
    styles=_styles(
        comparing=StyleRule(fill="comparing"),
        sorted=StyleRule(fill="sorted"),
        active_range=StyleRule(fill="active"),
        unsorted=StyleRule(fill="unsorted"),
        left=StyleRule(fill="left"),
        right=StyleRule(fill="right"),
        merged=StyleRule(fill="merged"),
    ),
    entity_ids=_merge_ids,
    entities=_merge_entities,
    references=_merge_refs,
    project=_merge_project,
    layout_hint=_merge_hint,
    layout_size=_merge_size,
    canvas_size=_merge_size,
)


# ---------------------------------------------------------------------------
# merge_sort_tree  (recursion tree over the same trace)
# ---------------------------------------------------------------------------
TREE_LEVEL = 90.0
TREE_LEAF  = 90.0


def range_id(lo: int, hi: int) -> str:
    return f"{lo}-{hi}"


def merge_tree(n: int) -> Dict[str, Optional[str]]:
    """Parent map of the merge-sort recursion tree, pre-order."""
    parents: Dict[str, Optional[str]] = {}

    def build(lo: int, hi: int, parent: Optional[str]) -> None:
        nid = range_id(lo, hi)
        parents[nid] = parent
        if lo < hi:
            mid = (lo + hi) // 2
            build(lo, mid, nid)
            build(mid + 1, hi, nid)

    if n > 0:
        build(0, n - 1, None)
    return parents


def branch_id(parent: str, child: str) -> str:
    return f"{parent}/{child}"


def _tree_ids(trace_input):
    parents = merge_tree(len(trace_input["array"]))
    return list(parents) + [branch_id(p, c) for c, p in parents.items() if p is not None]


def _tree_entities(trace_input, state):
    arr = array_of(trace_input, state)
    parents = merge_tree(len(arr))
    out = []
    for nid in parents:
        lo, hi = (int(x) for x in nid.split("-"))
        out.append(Entity(
            id=nid, kind="tree_node", label=", ".join(fmt_value(v) for v in arr[lo:hi + 1]),
            value=arr[lo:hi + 1], row=lo, col=hi,
        ))
    for child, parent in parents.items():
        if parent is not None:
            out.append(Entity(id=branch_id(parent, child), kind="branch", source=parent, target=child))
    return out


def _tree_refs(trace_input, state):
    refs = _array_len_refs(trace_input, state)
    active = state.get("active_range")
    if active:
        refs.append(("active_range", range_id(int(active[0]), int(active[1]))))
    for bounds in state.get("sorted_ranges") or []:
        refs.append(("sorted_ranges", range_id(int(bounds[0]), int(bounds[1]))))
    refs += [("comparing", range_id(int(i), int(i))) for i in state.get("comparing") or []]
    return refs


def _tree_project(trace_input, state):
    p = Projection()
    parents = merge_tree(len(array_of(trace_input, state)))
    sorted_ids = {range_id(int(lo), int(hi)) for lo, hi in state.get("sorted_ranges") or []}
    active = state.get("active_range")
    active_id = range_id(int(active[0]), int(active[1])) if active else None

    for nid in parents:
        lo, hi = nid.split("-")
        if lo == hi or nid in sorted_ids:
            p.tag(nid, "sorted")
    if active_id is not None:
        p.tag(active_id, "merging" if state.get("merging") else "active")
        p.note(active_id, f"level {state.get('current_level', 0)}")
        if not state.get("merging"):
            for child, parent in parents.items():
                if parent == active_id:
                    p.tag(branch_id(parent, child), "split")
    return p


def _tree_hint(trace_input, width, height):
    return LayoutHint(kind="tree", parents=merge_tree(len(trace_input["array"])), margin=60.0)


def _tree_size(trace_input, width, height):
    n = len(trace_input["array"])
    depth = max(n - 1, 1).bit_length()
    return max(width, 120 + n * TREE_LEAF), 120 + depth * TREE_LEVEL


MERGE_SORT_TREE = FamilyConfig(
    key="merge_sort_tree",
    shape="tree",
    default_tags={"tree_node": "pending", "branch": "idle"},
    fill_precedence=("merging", "active", "sorted", "pending", "split", "idle"),
    stroke_precedence=(),
    styles=_styles(
        merging=StyleRule(fill="merging", stroke="next", stroke_width=3),
        active=StyleRule(fill="active", stroke="outline", stroke_width=3),
        sorted=StyleRule(fill="sorted"),
        pending=StyleRule(fill="base"),
        split=StyleRule(stroke="candidate", stroke_width=3),
        idle=StyleRule(),
    ),
    entity_ids=_tree_ids,
    entities=_tree_entities,
    references=_tree_refs,
    project=_tree_project,
    layout_hint=_tree_hint,
    layout_size=_tree_size,
    canvas_size=_tree_size,
)


# ---------------------------------------------------------------------------
# Searches
# ---------------------------------------------------------------------------
def _linear_project(trace_input, state):
    p = Projection()
    _tag_indices(p, state.get("checked_indices"), "checked")
    current = _index(state.get("current_index"))
    if current is not None:
        p.tag(current, "current")
        p.note(current, "i")
    found = _index(state.get("found_index"))
    if state.get("found") and found is not None:
        p.tag(found, "found")
    return p


def _binary_refs(trace_input, state):
    refs = _array_len_refs(trace_input, state) + _index_refs(state, "mid", "found_index")
    left, right = state.get("left"), state.get("right")
    if left is not None and right is not None and left <= right:
        refs += _index_refs(state, "left", "right")
    return refs


def _binary_project(trace_input, state):
    p = Projection()
    left, right = state.get("left"), state.get("right")
    if left is not None and right is not None and left <= right:
        for i in range(int(left), int(right) + 1):
            p.tag(str(i), "search-range")
        p.tag(str(int(left)), "boundary")
        p.tag(str(int(right)), "boundary")
        p.note(str(int(left)), "L")
    mid = _index(state.get("mid"))
    if mid is not None:
        p.tag(mid, "middle")
        p.note(mid, "M")
    if left is not None and right is not None and left <= right:
        p.note(str(int(right)), "R")
    found = _index(state.get("found_index"))
    if state.get("found") and found is not None:
        p.tag(found, "found")
    return p


LINEAR_SEARCH = FamilyConfig(
    key="linear_search",
    shape="bars",
    default_tags={"bar": "unchecked"},
    fill_precedence=("found", "current", "checked", "unchecked"),
    stroke_precedence=(),
    styles=_styles(
        found=StyleRule(fill="found"),
        current=StyleRule(fill="comparing"),
        checked=StyleRule(fill="checked", opacity=0.6),
        unchecked=StyleRule(fill="unsorted"),
    ),
    entity_ids=_array_ids,
    entities=_bar_entities,
    references=lambda i, s: _array_len_refs(i, s) + _index_refs(s, "current_index", "checked_indices", "found_index"),
    project=_linear_project,
    layout_hint=_bar_hint,
    layout_size=_bar_size,
    canvas_size=_bar_size,
)

BINARY_SEARCH = FamilyConfig(
    key="binary_search",
    shape="bars",
    default_tags={"bar": "excluded"},
    fill_precedence=("found", "middle", "search-range", "excluded"),
    stroke_precedence=("boundary",),
    styles=_styles(
        found=StyleRule(fill="found"),
        middle=StyleRule(fill="comparing"),
        search_range=StyleRule(fill="unsorted"),
        excluded=StyleRule(fill="excluded", opacity=0.45),
        boundary=StyleRule(stroke="boundary", stroke_width=3),
    ),
    entity_ids=_array_ids,
    entities=_bar_entities,
    references=_binary_refs,
    project=_binary_project,
    layout_hint=_bar_hint,
    layout_size=_bar_size,
    canvas_size=_bar_size,
)


# ---------------------------------------------------------------------------
# linked_list
# ---------------------------------------------------------------------------
LIST_MARGIN = 50.0


def list_order(trace_input: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Nodes in pointer order from the head; unreachable nodes follow in input order."""
    by_id = {str(n["id"]): n for n in trace_input["nodes"]}
    order: List[Dict[str, Any]] = []
    seen: Set[str] = set()
    cursor = trace_input.get("head")
    cursor = str(cursor) if cursor is not None else None
    while cursor is not None and cursor in by_id and cursor not in seen:
        seen.add(cursor)
        order.append(by_id[cursor])
        nxt = by_id[cursor].get("next")
        cursor = str(nxt) if nxt is not None else None
    order += [n for nid, n in by_id.items() if nid not in seen]
    return order


def link_id(source: str, target: str) -> str:
    return f"{source}->{target}"


def _list_links(trace_input) -> List[Tuple[str, str]]:
    return [
        (str(n["id"]), str(n["next"]))
        for n in trace_input["nodes"]
        if n.get("next") is not None
    ]


def _list_node_ids(trace_input):
    return [str(n["id"]) for n in trace_input["nodes"]]


def _list_ids(trace_input):
    return _list_node_ids(trace_input) + [link_id(s, t) for s, t in _list_links(trace_input)]


def _list_entities(trace_input, state):
    out = [
        Entity(
            id=str(n["id"]), kind="list_node", label=fmt_value(n.get("value")), value=n.get("value"),
            target=str(n["next"]) if n.get("next") is not None else None,
        )
        for n in list_order(trace_input)
    ]
    out += [Entity(id=link_id(s, t), kind="link", source=s, target=t, directed=True) for s, t in _list_links(trace_input)]
    return out


def _list_refs(trace_input, state):
    refs = [("visited_nodes", n) for n in _ids(state.get("visited_nodes"))]
    if state.get("current_node") is not None:
        refs.append(("current_node", str(state["current_node"])))
    return refs


def _list_project(trace_input, state):
    p = Projection()
    visited = set(_ids(state.get("visited_nodes")))
    for n in visited:
        p.tag(n, "visited")
    current = state.get("current_node")
    if current is not None:
        current = str(current)
        p.tag(current, "current")
        p.note(current, "curr")
        if state.get("target_found"):
            p.tag(current, "found")
    head = trace_input.get("head")
    if head is not None:
        p.roles[str(head)] = "head"
    for s, t in _list_links(trace_input):
        if s in visited and t in visited:
            p.tag(link_id(s, t), "traversed")
    return p


def _list_hint(trace_input, width, height):
    order = list_order(trace_input)
    slot = (width - 2 * LIST_MARGIN) / max(len(order), 1)
    slots = {str(n["id"]): (0, col) for col, n in enumerate(order)}
    return LayoutHint(kind="slots", slots=slots, slot_width=slot, margin=LIST_MARGIN, top=height / 2)


LINKED_LIST = FamilyConfig(
    key="linked_list",
    shape="list",
    default_tags={"list_node": "unvisited", "link": "idle"},
    fill_precedence=("found", "current", "visited", "unvisited", "traversed", "idle"),
    stroke_precedence=("head",),
    styles=_styles(
        found=StyleRule(fill="found"),
        current=StyleRule(fill="comparing"),
        visited=StyleRule(fill="visited"),
        unvisited=StyleRule(fill="base"),
        head=StyleRule(stroke="start", stroke_width=3),
        traversed=StyleRule(stroke="tree", stroke_width=3),
        idle=StyleRule(),
    ),
    entity_ids=_list_ids,
    entities=_list_entities,
    references=_list_refs,
    project=_list_project,
    layout_hint=_list_hint,
    reference_ids=_list_node_ids,
)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------
FAMILIES: Dict[str, FamilyConfig] = {
    f.key: f
    for f in (
        GRAPH_SEARCH, SHORTEST_PATH, ALL_PAIRS, MST,
        BUBBLE_SORT, SELECTION_SORT, INSERTION_SORT, QUICK_SORT,
        MERGE_SORT, MERGE_SORT_TREE,
        LINEAR_SEARCH, BINARY_SEARCH, LINKED_LIST,
    )
}


def get_family(key: str) -> FamilyConfig:
    """Return the FamilyConfig for `key`; KeyError if unknown."""
    return FAMILIES[key]
