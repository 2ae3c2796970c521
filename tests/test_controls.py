"""Tests for the HTML control and state panels."""

from engine.diff import compute
from steptrace import REGISTRY, get_trace_info, list_traces
from ui.controls import (
    complexity_card,
    explanation_panel,
    playback_controls,
    pseudocode_viewer,
    state_panel,
    visualizer_nav,
)

from conftest import family_of, load


def _panel(key, index):
    trace, family = load(key), family_of(key)
    assignment = compute(trace, index, family)
    return state_panel(family.key, trace.input, trace.step(index).state, assignment.updated)


class TestPlaybackControls:
    def test_prev_disabled_on_first_step(self):
        html = playback_controls(current_step=0, total_steps=5)
        assert 'id="btn-prev" title="Previous step (←)" disabled' in html
        assert 'id="btn-next" title="Next step (→)" >' in html

    def test_next_disabled_on_last_step(self):
        html = playback_controls(current_step=4, total_steps=5)
        assert 'id="btn-next" title="Next step (→)" disabled' in html
        assert '<span id="current-step">5</span>' in html

    def test_detail_and_theme_names(self):
        html = playback_controls(2, 5, detail_name="advanced", theme="dark")
        assert '<span id="detail-name">advanced</span>' in html
        assert '<span id="theme-name">dark</span>' in html


class TestStatePanels:
    def test_queue_for_bfs_stack_for_dfs(self):
        assert "<th>Queue</th>" in _panel("bfs", 0)
        assert "<th>Stack</th>" in _panel("dfs", 0)

    def test_updated_distance_row(self):
        html = _panel("bellman_ford", 3)
        assert '<span class="updated">2</span> via B' in html
        assert "<th>Relaxed</th><td>B → C</td>" in html

    def test_matrix_cell_via_intermediate(self):
        html = _panel("floyd_warshall", 2)
        assert '<td class="updated">5 <small>via B</small></td>' in html
        assert "Distance matrix (k = B)" in html

    def test_initial_matrix_shows_infinity(self):
        html = _panel("floyd_warshall", 0)
        assert "∞" in html
        assert "(initial)" in html

    def test_linked_list_comparison(self):
        html = _panel("linked_list", 0)
        assert "10 → 20 → 30 → 40 → null" in html
        assert "<th>Comparison</th><td>no match</td>" in html

    def test_every_family_has_a_panel(self):
        for key in REGISTRY:
            assert "state-panel" in _panel(key, 0)


class TestStaticPanels:
    def test_pseudocode_is_escaped(self):
        html = pseudocode_viewer(["if a < b:"], "demo")
        assert "if a &lt; b:" in html

    def test_empty_pseudocode(self):
        assert "No pseudocode" in pseudocode_viewer([])

    def test_nav_marks_selection(self):
        html = visualizer_nav(list_traces(), "dfs")
        assert '<a class="nav-link active" href="/dfs">' in html
        assert html.count("nav-link active") == 1

    def test_complexity_card(self):
        html = complexity_card(get_trace_info("floyd_warshall"))
        assert "O(V³)" in html

    def test_explanation_level(self):
        html = explanation_panel("Visit <B>", "advanced")
        assert 'data-level="advanced"' in html
        assert "Visit &lt;B&gt;" in html
