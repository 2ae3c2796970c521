"""
controls.py — UI Control Panels
=================================
Every UI panel is a pure function that takes state and returns HTML.

Panels:
  • playback_controls   – prev / next / slider / detail / theme / reset layout
  • visualizer_nav      – links to every registered visualizer
  • explanation_panel   – the current step's narration text
  • pseudocode_viewer   – the algorithm's pseudocode
  • complexity_card     – time / space complexity and a one-liner
  • state_panel         – per-family readout of the current step's state
                          (queue, distances, distance matrix, pointers, …)

Design:
  - All panels are stateless render functions.
  - State is passed in as kwargs.
  - Output is raw HTML strings (no templating engine).
  - The main app stitches them together.
"""

from typing import Any, Callable, Dict, FrozenSet, List, Optional

from engine.families import cell_id, distance_matrix, fmt_value, graph_nodes, list_order
from steptrace import TraceInfo


def _esc(text: Any) -> str:
    return str(text).replace('&', '&amp;').replace('<', '&lt;').replace('>', '&gt;')


def _join(values: Optional[List[Any]]) -> str:
    if not values:
        return '<span class="empty">∅</span>'
    return ", ".join(_esc(fmt_value(v)) for v in values)


def _rows(rows: List[tuple]) -> str:
    return "".join(f"<tr><th>{_esc(k)}</th><td>{v}</td></tr>" for k, v in rows)


# ---------------------------------------------------------------------------
# Playback Controls
# ---------------------------------------------------------------------------
def playback_controls(
    current_step: int = 0,
    total_steps: int = 0,
    detail_name: str = "beginner",
    theme: str = "light",
) -> str:
    last = max(total_steps - 1, 0)
    return f"""
    <div class="panel playback-controls">
      <h3>⏯ Playback</h3>
      <div class="button-row">
        <button id="btn-prev" title="Previous step (←)" {'disabled' if current_step <= 0 else ''}>◀ Prev</button>
        <button id="btn-next" title="Next step (→)" {'disabled' if current_step >= last else ''}>Next ▶</button>
      </div>
      <input type="range" id="step-slider" min="0" max="{last}" value="{current_step}">
      <div class="step-info">
        Step <span id="current-step">{current_step + 1}</span> / <span id="total-steps">{total_steps}</span>
      </div>
      <div class="button-row">
        <button id="btn-detail" title="Explanation detail">📖 <span id="detail-name">{_esc(detail_name)}</span></button>
        <button id="btn-theme" title="Toggle theme">{'🌙' if theme == 'light' else '☀'} <span id="theme-name">{_esc(theme)}</span></button>
        <button id="btn-reset-layout" title="Reset layout">⟲ Layout</button>
      </div>
    </div>
    """


# ---------------------------------------------------------------------------
# Visualizer Navigation
# ---------------------------------------------------------------------------
def visualizer_nav(traces: List[TraceInfo], selected_key: str = "bfs") -> str:
    links = []
    for info in traces:
        cls = "active" if info.key == selected_key else ""
        links.append(f'<a class="nav-link {cls}" href="/{info.key}">{_esc(info.label)}</a>')
    return f"""
    <nav class="visualizer-nav">
      {''.join(links)}
    </nav>
    """


# ---------------------------------------------------------------------------
# Explanation Panel
# ---------------------------------------------------------------------------
def explanation_panel(explanation: str = "", detail_name: str = "beginner") -> str:
    return f"""<div class="explanation-text" data-level="{_esc(detail_name)}">{_esc(explanation)}</div>"""


# ---------------------------------------------------------------------------
# Pseudocode Viewer
# ---------------------------------------------------------------------------
def pseudocode_viewer(pseudocode_lines: List[str], algo_label: str = "") -> str:
    if not pseudocode_lines:
        return """
        <div class="code-block">
          <div class="placeholder">No pseudocode for this visualizer</div>
        </div>
        """

    lines_html = []
    for i, line in enumerate(pseudocode_lines):
        lines_html.append(f'<div class="code-line" data-line="{i}">{_esc(line)}</div>')

    return f"""
    <div class="code-block" title="{_esc(algo_label)}">
      {''.join(lines_html)}
    </div>
    """


# ---------------------------------------------------------------------------
# Complexity Card
# ---------------------------------------------------------------------------
def complexity_card(info: TraceInfo) -> str:
    tags = "".join(f'<span class="tag">{_esc(t)}</span>' for t in info.tags)
    return f"""
    <div class="panel complexity-card">
      <h3>⏱ Complexity</h3>
      <table class="complexity">
        <tr><th>Time</th><td>{_esc(info.complexity_time)}</td></tr>
        <tr><th>Space</th><td>{_esc(info.complexity_space)}</td></tr>
      </table>
      <p>{_esc(info.description)}</p>
      <div class="tags">{tags}</div>
    </div>
    """


# ---------------------------------------------------------------------------
# State Panels — one per family
# ---------------------------------------------------------------------------
def _graph_search_panel(trace_input, state, updated):
    frontier_name = "Stack" if "stack" in state else "Queue"
    frontier = state.get("stack", state.get("queue"))
    rows = [
        (frontier_name, _join(frontier)),
        ("Visited", _join(state.get("visited"))),
        ("Order", _join(state.get("order"))),
    ]
    pred = state.get("predecessor") or {}
    if pred:
        rows.append(("Parent", ", ".join(
            f"{_esc(n)}←{_esc(fmt_value(p)) if p is not None else '–'}" for n, p in pred.items()
        )))
    levels = state.get("level") or {}
    if levels:
        rows.append(("Level", ", ".join(f"{_esc(n)}:{_esc(lv)}" for n, lv in levels.items())))
    return _rows(rows)


def _shortest_path_panel(trace_input, state, updated):
    rows = []
    pred = state.get("predecessor") or {}
    for n, d in (state.get("distances") or {}).items():
        mark = ' class="updated"' if n in updated else ""
        parent = pred.get(n)
        rows.append((n, f'<span{mark}>{_esc(fmt_value(d))}</span> via {_esc(parent) if parent is not None else "–"}'))
    relaxed = state.get("relaxed_edge")
    if relaxed:
        rows.append(("Relaxed", f"{_esc(relaxed[0])} → {_esc(relaxed[1])}"))
    if state.get("pass") is not None:
        rows.append(("Pass", _esc(state["pass"])))
    return _rows(rows)


def _all_pairs_panel(trace_input, state, updated):
    nodes = graph_nodes(trace_input)
    matrix = distance_matrix(trace_input, state.get("distances"))
    k = state.get("k")
    head = "".join(f"<th>{_esc(j)}</th>" for j in nodes)
    body = []
    for i in nodes:
        cells = []
        for j in nodes:
            cls = "updated" if cell_id(i, j) in updated else ""
            via = f' <small>via {_esc(k)}</small>' if cls and k is not None else ""
            cells.append(f'<td class="{cls}">{_esc(fmt_value(matrix[i][j]))}{via}</td>')
        body.append(f"<tr><th>{_esc(i)}</th>{''.join(cells)}</tr>")
    caption = f"k = {_esc(k)}" if k is not None else "initial"
    return f"""
      <table class="matrix">
        <caption>Distance matrix ({caption})</caption>
        <thead><tr><th></th>{head}</tr></thead>
        <tbody>{''.join(body)}</tbody>
      </table>
    """


def _mst_panel(trace_input, state, updated):
    def pairs(edges):
        if not edges:
            return '<span class="empty">∅</span>'
        return ", ".join(
            f"{_esc(e[0])}–{_esc(e[1])}" + (f" ({_esc(fmt_value(e[2]))})" if len(e) > 2 else "")
            for e in edges
        )
    return _rows([
        ("In tree", _join(state.get("mst_nodes"))),
        ("Tree edges", pairs(state.get("mst_edges"))),
        ("Candidates", pairs(state.get("candidate_edges"))),
    ])


_ARRAY_FIELDS = (
    ("current_pass", "Pass"),
    ("comparing", "Comparing"),
    ("swapped", "Swapped"),
    ("sorted_count", "Sorted"),
    ("current_index", "i"),
    ("min_index", "Min index"),
    ("min_value", "Min value"),
    ("key_index", "Key index"),
    ("current_element", "Key"),
    ("pivot", "Pivot"),
    ("partition_range", "Partition"),
    ("i", "i"),
    ("j", "j"),
    ("sorted_indices", "Sorted"),
    ("current_level", "Level"),
    ("active_range", "Range"),
    ("left_array", "Left"),
    ("right_array", "Right"),
    ("merged_array", "Merged"),
    ("left", "Left"),
    ("mid", "Mid"),
    ("right", "Right"),
    ("checked_indices", "Checked"),
    ("found_index", "Found at"),
)


def _array_panel(trace_input, state, updated):
    rows = []
    arr = state.get("array", trace_input.get("array"))
    rows.append(("Array", _join(arr)))
    if "target" in trace_input:
        rows.append(("Target", _esc(trace_input["target"])))
    for key, label in _ARRAY_FIELDS:
        if key not in state:
            continue
        value = state[key]
        if isinstance(value, list):
            shown = _join(value)
        elif isinstance(value, bool):
            shown = "yes" if value else "no"
        else:
            shown = _esc(fmt_value(value))
        rows.append((label, shown))
    return _rows(rows)


def _linked_list_panel(trace_input, state, updated):
    result = state.get("comparison_result")
    if isinstance(result, bool):
        result = "match" if result else "no match"
    chain = " → ".join(_esc(fmt_value(n.get("value"))) for n in list_order(trace_input)) + " → null"
    return _rows([
        ("List", chain),
        ("Target", _esc(fmt_value(state.get("target_value", trace_input.get("target"))))),
        ("Current", _esc(fmt_value(state.get("current_value")))),
        ("Comparison", _esc(result if result is not None else "–")),
        ("Visited", _join(state.get("visited_nodes"))),
        ("Found", "yes" if state.get("target_found") else "no"),
    ])


STATE_PANELS: Dict[str, Callable[[Dict[str, Any], Dict[str, Any], FrozenSet[str]], str]] = {
    "graph_search":    _graph_search_panel,
    "shortest_path":   _shortest_path_panel,
    "all_pairs":       _all_pairs_panel,
    "mst":             _mst_panel,
    "bubble_sort":     _array_panel,
    "selection_sort":  _array_panel,
    "insertion_sort":  _array_panel,
    "quick_sort":      _array_panel,
    "merge_sort":      _array_panel,
    "merge_sort_tree": _array_panel,
    "linear_search":   _array_panel,
    "binary_search":   _array_panel,
    "linked_list":     _linked_list_panel,
}


def state_panel(
    family_key: str,
    trace_input: Dict[str, Any],
    state: Dict[str, Any],
    updated: FrozenSet[str] = frozenset(),
) -> str:
    """
    Readout of one step's state.  `updated` holds the entity ids the Diff
    Engine flagged as just updated (distance-table rows, matrix cells).
    """
    body = STATE_PANELS[family_key](trace_input, state, updated)
    if not body.lstrip().startswith("<table"):
        body = f'<table class="state-table">{body}</table>'
    return f"""
    <div class="panel state-panel" data-family="{_esc(family_key)}">
      <h3>📊 State</h3>
      {body}
    </div>
    """
