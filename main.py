"""
main.py — Algorithm Visualizer Flask App
=========================================
The web server that hosts the visualizers.

Routes:
  GET  /                              – BFS visualizer
  GET  /<key>                         – visualizer page (404 if unknown)
  GET  /api/<key>/state               – current frame
  POST /api/<key>/step/next           – advance one step (clamped)
  POST /api/<key>/step/prev           – go back one step (clamped)
  POST /api/<key>/step/goto           – jump to {index} (clamped)
  POST /api/<key>/detail/toggle       – cycle explanation detail level
  POST /api/<key>/theme/toggle        – light ⇄ dark
  POST /api/<key>/layout/reset        – recompute the layout from scratch
  POST /api/<key>/layout/pin          – drag: fix {id} at {x, y}
  POST /api/<key>/layout/unpin        – drag end: release {id}
  POST /api/<key>/layout/tick         – one bounded relaxation pass

State management:
  Traces are loaded once per process and cached.  Each browser session
  gets a random id in the Flask session cookie; controllers live in
  process memory keyed by (session id, visualizer key), at most
  MAX_VISITS of them, least recently used evicted first.  Each visit
  carries a lock held for the whole request, so concurrent requests from
  one page never interleave.  Every frame response carries the narration
  commands queued since the last one and the page plays them with the
  browser's speech API.
"""

import logging
import secrets
import threading
from collections import OrderedDict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Tuple

from flask import Flask, abort, jsonify, render_template_string, request, session
from markupsafe import escape

from config import Config
from engine import ClientNarrator, PlaybackController, PALETTES, get_family
from steptrace import (
    SchemaError,
    StepTrace,
    TraceInfo,
    UnknownEntity,
    VisualizerError,
    get_trace_info,
    list_traces,
    load_trace,
)
from ui import (
    DiagramRenderer,
    complexity_card,
    explanation_panel,
    playback_controls,
    pseudocode_viewer,
    state_panel,
    visualizer_nav,
)


app = Flask(__name__)
app.config.from_object(Config)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Visits — one controller per (browser session, visualizer)
# ---------------------------------------------------------------------------
@dataclass
class Visit:
    """
    Attributes:
        info       : Registry card of the visualizer.
        controller : The session's PlaybackController.
        renderer   : DiagramRenderer the controller draws into.
        narrator   : ClientNarrator whose queue rides on each response.
        lock       : Held for the whole of every request that touches the visit.
    """

    info:       TraceInfo
    controller: PlaybackController
    renderer:   DiagramRenderer
    narrator:   ClientNarrator
    lock:       threading.Lock = field(default_factory=threading.Lock)


_TRACES: Dict[str, StepTrace] = {}
# least recently used first; trimmed to MAX_VISITS
_VISITS: "OrderedDict[Tuple[str, str], Visit]" = OrderedDict()
_VISITS_LOCK = threading.Lock()


def get_trace(info: TraceInfo) -> StepTrace:
    """Load (once) and return the trace behind a visualizer."""
    if info.key not in _TRACES:
        path = Path(app.config["TRACE_DIR"]) / info.filename
        _TRACES[info.key] = load_trace(
            path, info.key, get_family(info.family), len(app.config["DETAIL_LEVELS"]),
        )
    return _TRACES[info.key]


def session_id() -> str:
    if "sid" not in session:
        session["sid"] = secrets.token_hex(16)
    return session["sid"]


def get_info(key: str) -> TraceInfo:
    info = get_trace_info(key)
    if info is None:
        logger.warning("Unknown visualizer requested: %s", key)
        abort(404)
    return info


def new_visit(info: TraceInfo) -> Visit:
    trace = get_trace(info)
    family = get_family(info.family)
    cfg = app.config
    width, height = family.canvas_size(trace.input, cfg["CANVAS_WIDTH"], cfg["CANVAS_HEIGHT"])
    renderer = DiagramRenderer(family.shape, width, height)
    narrator = ClientNarrator()
    controller = PlaybackController(
        trace,
        family,
        renderer=renderer,
        narrator=narrator,
        detail_levels=cfg["DETAIL_LEVELS"],
        theme=cfg["DEFAULT_THEME"],
        width=cfg["CANVAS_WIDTH"],
        height=cfg["CANVAS_HEIGHT"],
        seed=cfg["LAYOUT_SEED"],
        settle_iterations=cfg["SETTLE_ITERATIONS"],
        tick_iterations=cfg["TICK_ITERATIONS"],
    )
    controller.mount()
    return Visit(info=info, controller=controller, renderer=renderer, narrator=narrator)


def get_visit(key: str) -> Visit:
    """The caller's visit to `key`, created on first use; evicts the stalest past MAX_VISITS."""
    info = get_info(key)
    slot = (session_id(), key)
    with _VISITS_LOCK:
        visit = _VISITS.get(slot)
        if visit is not None:
            _VISITS.move_to_end(slot)
            return visit

        visit = new_visit(info)
        _VISITS[slot] = visit
        while len(_VISITS) > app.config["MAX_VISITS"]:
            (sid, old_key), _ = _VISITS.popitem(last=False)
            logger.debug("Evicted visit %s/%s", sid[:8], old_key)
        return visit


def render_svg(visit: Visit) -> str:
    return visit.renderer.to_svg(PALETTES[visit.controller.theme]["surface"])


def render_state(visit: Visit) -> str:
    ctl = visit.controller
    return state_panel(ctl.family.key, ctl.trace.input, ctl.current_step.state, ctl.frame.assignment.updated)


def frame_payload(visit: Visit) -> Dict[str, Any]:
    """Frame JSON; drains the narration queued since the previous response."""
    ctl = visit.controller
    step = ctl.current_step
    return {
        "key":          visit.info.key,
        "svg":          render_svg(visit),
        "explanation":  ctl.explanation,
        "state_panel":  render_state(visit),
        "current_step": ctl.step_index,
        "total_steps":  ctl.total_steps,
        "step_number":  step.step_number,
        "detail_level": ctl.detail_level,
        "detail_name":  ctl.detail_name,
        "theme":        ctl.theme,
        "provenance":   ctl.frame.assignment.provenance,
        "force_layout": ctl.family.force_layout,
        "narration":    visit.narrator.drain(),
    }


def _json_body() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


# ---------------------------------------------------------------------------
# Error handlers
# ---------------------------------------------------------------------------
@app.errorhandler(SchemaError)
def handle_schema_error(exc: SchemaError):
    logger.error("Refusing to render invalid trace: %s %s", exc.message, exc.details)
    if request.path.startswith("/api/"):
        return jsonify({"error": exc.message, "details": exc.details}), 500
    return f"<h1>Invalid trace</h1><p>{escape(exc.message)}</p>", 500


@app.errorhandler(VisualizerError)
def handle_visualizer_error(exc: VisualizerError):
    logger.error("Visualizer error: %s %s", exc.message, exc.details)
    return jsonify({"error": exc.message, "details": exc.details}), 500


# ---------------------------------------------------------------------------
# Pages
# ---------------------------------------------------------------------------
@app.route("/")
def index():
    return visualizer_page("bfs")


@app.route("/<key>")
def visualizer_page(key: str):
    visit = get_visit(key)
    ctl = visit.controller
    info = visit.info

    with visit.lock:
        html = render_template_string(INDEX_TEMPLATE,
            key=info.key,
            title=info.label,
            theme=ctl.theme,
            voice={
                "lang":  app.config["NARRATION_LANG"],
                "rate":  app.config["NARRATION_RATE"],
                "pitch": app.config["NARRATION_PITCH"],
            },
            svg=render_svg(visit),
            nav=visualizer_nav(list_traces(), selected_key=info.key),
            playback=playback_controls(
                current_step=ctl.step_index,
                total_steps=ctl.total_steps,
                detail_name=ctl.detail_name,
                theme=ctl.theme,
            ),
            explanation=explanation_panel(ctl.explanation, ctl.detail_name),
            pseudocode=pseudocode_viewer(info.pseudocode, info.label),
            complexity=complexity_card(info),
            state=render_state(visit),
        )
    return html


# ---------------------------------------------------------------------------
# API: Playback
# ---------------------------------------------------------------------------
@app.route("/api/<key>/state")
def api_state(key: str):
    visit = get_visit(key)
    with visit.lock:
        return jsonify(frame_payload(visit))


@app.route("/api/<key>/step/next", methods=["POST"])
def api_step_next(key: str):
    visit = get_visit(key)
    with visit.lock:
        visit.controller.next()
        return jsonify(frame_payload(visit))


@app.route("/api/<key>/step/prev", methods=["POST"])
def api_step_prev(key: str):
    visit = get_visit(key)
    with visit.lock:
        visit.controller.prev()
        return jsonify(frame_payload(visit))


@app.route("/api/<key>/step/goto", methods=["POST"])
def api_step_goto(key: str):
    visit = get_visit(key)
    try:
        index = int(_json_body().get("index", 0))
    except (TypeError, ValueError):
        return jsonify({"error": "index must be an integer"}), 400
    with visit.lock:
        visit.controller.seek(index)
        return jsonify(frame_payload(visit))


@app.route("/api/<key>/detail/toggle", methods=["POST"])
def api_detail_toggle(key: str):
    visit = get_visit(key)
    with visit.lock:
        visit.controller.toggle_detail()
        return jsonify(frame_payload(visit))


@app.route("/api/<key>/theme/toggle", methods=["POST"])
def api_theme_toggle(key: str):
    visit = get_visit(key)
    with visit.lock:
        visit.controller.toggle_theme()
        return jsonify(frame_payload(visit))


# ---------------------------------------------------------------------------
# API: Layout
# ---------------------------------------------------------------------------
@app.route("/api/<key>/layout/reset", methods=["POST"])
def api_layout_reset(key: str):
    visit = get_visit(key)
    with visit.lock:
        visit.controller.reset_layout()
        return jsonify(frame_payload(visit))


@app.route("/api/<key>/layout/pin", methods=["POST"])
def api_layout_pin(key: str):
    visit = get_visit(key)
    data = _json_body()
    try:
        entity_id, x, y = str(data["id"]), float(data["x"]), float(data["y"])
    except (KeyError, TypeError, ValueError):
        return jsonify({"error": "pin needs id, x and y"}), 400
    with visit.lock:
        try:
            visit.controller.pin(entity_id, x, y)
        except UnknownEntity as exc:
            return jsonify({"error": exc.message}), 400
        return jsonify(frame_payload(visit))


@app.route("/api/<key>/layout/unpin", methods=["POST"])
def api_layout_unpin(key: str):
    visit = get_visit(key)
    data = _json_body()
    if "id" not in data:
        return jsonify({"error": "unpin needs id"}), 400
    with visit.lock:
        try:
            visit.controller.unpin(str(data["id"]))
        except UnknownEntity as exc:
            return jsonify({"error": exc.message}), 400
        return jsonify(frame_payload(visit))


@app.route("/api/<key>/layout/tick", methods=["POST"])
def api_layout_tick(key: str):
    visit = get_visit(key)
    with visit.lock:
        visit.controller.tick()
        return jsonify(frame_payload(visit))


# ---------------------------------------------------------------------------
# Page template
# ---------------------------------------------------------------------------
INDEX_TEMPLATE = """
<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{{ title }} · Algorithm Visualizer</title>
  <link rel="preconnect" href="https://fonts.googleapis.com">
  <link rel="preconnect" href="https://fonts.gstatic.com" crossorigin>
  <link href="https://fonts.googleapis.com/css2?family=JetBrains+Mono:wght@400;500;700&family=DM+Sans:wght@400;500;700&display=swap" rel="stylesheet">
  <style>
    * { margin: 0; padding: 0; box-sizing: border-box; }

    :root, [data-theme="light"] {
      --bg: #f6f8fa;
      --bg-panel: #ffffff;
      --border: #d0d7de;
      --text-primary: #1f2937;
      --text-secondary: #57606a;
      --accent: #0284c7;
      --updated: #f59e0b;
    }

    [data-theme="dark"] {
      --bg: #010409;
      --bg-panel: #161b22;
      --border: #30363d;
      --text-primary: #e6edf3;
      --text-secondary: #7d8590;
      --accent: #0ea5e9;
      --updated: #f59e0b;
    }

    body {
      font-family: 'DM Sans', -apple-system, BlinkMacSystemFont, sans-serif;
      background: var(--bg);
      color: var(--text-primary);
      display: flex;
      min-height: 100vh;
    }

    #sidebar {
      width: 340px;
      border-right: 1px solid var(--border);
      padding: 20px 16px;
      overflow-y: auto;
    }

    #main { flex: 1; display: flex; flex-direction: column; }

    #canvas-container {
      flex: 1;
      display: flex;
      align-items: center;
      justify-content: center;
      padding: 16px;
      border-bottom: 1px solid var(--border);
    }

    #canvas-svg svg { max-width: 100%; height: auto; user-select: none; }
    #canvas-svg .draggable { cursor: grab; }

    #bottom-panel {
      display: grid;
      grid-template-columns: 1fr 1fr;
      gap: 20px;
      padding: 20px;
    }

    .panel, #bottom-panel > div {
      background: var(--bg-panel);
      border: 1px solid var(--border);
      border-radius: 12px;
      padding: 16px;
      margin-bottom: 16px;
    }

    h1 { font-size: 18px; margin-bottom: 12px; }
    h3 {
      font-size: 13px;
      text-transform: uppercase;
      letter-spacing: 0.5px;
      color: var(--accent);
      margin-bottom: 12px;
    }

    .visualizer-nav { display: flex; flex-wrap: wrap; gap: 6px; margin-bottom: 16px; }
    .nav-link {
      font-size: 12px;
      padding: 4px 8px;
      border: 1px solid var(--border);
      border-radius: 6px;
      color: var(--text-secondary);
      text-decoration: none;
    }
    .nav-link.active { color: var(--accent); border-color: var(--accent); }

    button {
      background: var(--bg);
      color: var(--text-primary);
      border: 1px solid var(--border);
      border-radius: 8px;
      padding: 6px 10px;
      cursor: pointer;
      font-family: inherit;
    }
    button:disabled { opacity: 0.4; cursor: default; }
    .button-row { display: flex; gap: 8px; margin: 8px 0; }
    #step-slider { width: 100%; margin: 8px 0; }
    .step-info { color: var(--text-secondary); font-size: 13px; }

    .code-block {
      font-family: 'JetBrains Mono', 'Courier New', monospace;
      font-size: 13px;
      line-height: 1.6;
    }
    .explanation-text { color: var(--text-secondary); line-height: 1.8; font-size: 14px; }

    table { border-collapse: collapse; font-size: 13px; width: 100%; }
    th, td { text-align: left; padding: 3px 6px; border-bottom: 1px solid var(--border); }
    .matrix td, .matrix th { text-align: center; font-family: 'JetBrains Mono', monospace; }
    .updated { background: var(--updated); color: #1f2937; font-weight: 700; }
    .tag {
      display: inline-block;
      font-size: 11px;
      margin: 2px;
      padding: 1px 6px;
      border-radius: 10px;
      border: 1px solid var(--border);
    }
  </style>
</head>
<body data-theme="{{ theme }}">
  <div id="sidebar">
    <h1>{{ title }}</h1>
    {{ nav|safe }}
    <div id="playback">{{ playback|safe }}</div>
    <div id="state">{{ state|safe }}</div>
    {{ complexity|safe }}
  </div>

  <div id="main">
    <div id="canvas-container">
      <div id="canvas-svg">{{ svg|safe }}</div>
    </div>

    <div id="bottom-panel">
      <div id="pseudocode-container">
        <h3>Pseudocode</h3>
        <div id="pseudocode">{{ pseudocode|safe }}</div>
      </div>
      <div id="explanation-container">
        <h3>Step Explanation</h3>
        <div id="explanation">{{ explanation|safe }}</div>
      </div>
    </div>
  </div>

  <script>
    const KEY = {{ key|tojson }};
    const VOICE = {{ voice|tojson }};
    let forceLayout = false;

    async function post(url, data) {
      const res = await fetch(url, {
        method: 'POST',
        headers: {'Content-Type': 'application/json'},
        body: JSON.stringify(data || {}),
      });
      return await res.json();
    }

    function speak(commands) {
      if (!('speechSynthesis' in window)) return;
      for (const cmd of commands || []) {
        try {
          if (cmd.action === 'stop') window.speechSynthesis.cancel();
          else {
            const utterance = new SpeechSynthesisUtterance(cmd.text);
            utterance.lang = VOICE.lang;
            utterance.rate = VOICE.rate;
            utterance.pitch = VOICE.pitch;
            window.speechSynthesis.speak(utterance);
          }
        } catch (err) {
          console.warn('narration failed', err);
        }
      }
    }

    function apply(data) {
      if (!data || data.error) { if (data) console.error(data.error); return; }
      forceLayout = data.force_layout;
      document.body.dataset.theme = data.theme;
      document.getElementById('canvas-svg').innerHTML = data.svg;
      document.getElementById('state').innerHTML = data.state_panel;
      const expl = document.querySelector('#explanation .explanation-text');
      expl.textContent = data.explanation;
      expl.dataset.level = data.detail_name;
      document.getElementById('current-step').textContent = data.current_step + 1;
      document.getElementById('total-steps').textContent = data.total_steps;
      document.getElementById('step-slider').value = data.current_step;
      document.getElementById('btn-prev').disabled = data.current_step <= 0;
      document.getElementById('btn-next').disabled = data.current_step >= data.total_steps - 1;
      document.getElementById('detail-name').textContent = data.detail_name;
      document.getElementById('theme-name').textContent = data.theme;
      speak(data.narration);
    }

    const api = (path, data) => post(`/api/${KEY}/${path}`, data).then(apply);

    document.getElementById('btn-next').addEventListener('click', () => api('step/next'));
    document.getElementById('btn-prev').addEventListener('click', () => api('step/prev'));
    document.getElementById('btn-detail').addEventListener('click', () => api('detail/toggle'));
    document.getElementById('btn-theme').addEventListener('click', () => api('theme/toggle'));
    document.getElementById('btn-reset-layout').addEventListener('click', () => api('layout/reset'));
    document.getElementById('step-slider').addEventListener('change', (e) => api('step/goto', {index: +e.target.value}));

    document.addEventListener('keydown', (e) => {
      if (e.target.tagName === 'INPUT') return;
      if (e.key === 'ArrowRight') api('step/next');
      if (e.key === 'ArrowLeft') api('step/prev');
    });

    // Drag: pin while moving, unpin on release, then let the layout settle a little
    let dragging = null;
    let pending = null;

    function svgPoint(evt) {
      const svg = document.querySelector('#canvas-svg svg');
      const pt = svg.createSVGPoint();
      pt.x = evt.clientX; pt.y = evt.clientY;
      return pt.matrixTransform(svg.getScreenCTM().inverse());
    }

    document.getElementById('canvas-svg').addEventListener('mousedown', (e) => {
      const el = e.target.closest('.draggable');
      if (!el) return;
      dragging = el.dataset.id;
      e.preventDefault();
    });

    document.addEventListener('mousemove', (e) => {
      if (!dragging) return;
      const p = svgPoint(e);
      if (pending) { pending.x = p.x; pending.y = p.y; return; }
      pending = {id: dragging, x: p.x, y: p.y};
      requestAnimationFrame(async () => {
        const body = pending;
        await api('layout/pin', body);
        pending = null;
      });
    });

    document.addEventListener('mouseup', async () => {
      if (!dragging) return;
      const id = dragging;
      dragging = null;
      await api('layout/unpin', {id: id});
      if (forceLayout) {
        for (let i = 0; i < 3; i++) await api('layout/tick');
      }
    });

    fetch(`/api/${KEY}/state`).then(r => r.json()).then(apply);
  </script>
</body>
</html>
"""


# ---------------------------------------------------------------------------
# Run
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    logging.basicConfig(
        level=app.config["LOG_LEVEL"],
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("Algorithm Visualizer on http://%s:%s", app.config["HOST"], app.config["PORT"])
    app.run(debug=app.config["DEBUG"], host=app.config["HOST"], port=app.config["PORT"])
