"""
canvas.py — SVG Renderer Adapters
==================================
Side-effecting draw calls against an SVG surface:

    renderer = DiagramRenderer("graph", width=600, height=400)
    renderer.render(entities, styles, positions)
    svg = renderer.to_svg(background="#ffffff")

The renderer consumes:
  • entities   – the Entities present at this step (engine/entity.py)
  • styles     – entity id → Style from the Visual Encoder
  • positions  – entity id → Position from the Layout Store

One adapter per diagram shape draws a single entity to markup:

    GraphAdapter       nodes, edges (arrows, weights), matrix cells
    BarArrayAdapter    bars and auxiliary merge rows
    TreeAdapter        recursion-tree nodes and branches
    LinkedListAdapter  value|next boxes, pointer arrows, null marker

Design decisions:
  - The surface keeps one element per entity id.  render() upserts
    every present entity and removes every id that is gone, so a frame
    never shows leftovers from the previous one (merge-sort rows shrink
    and grow between steps).
  - Coordinates come ONLY from the positions table.  A style change
    rewrites an element in place at the same coordinates.
  - Positioned elements carry data-id and the "draggable" class; the
    page turns drags on them into pin / unpin calls.
"""

import math
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from engine.encoder import Style
from engine.entity import Entity
from layout.store import Position
from steptrace.errors import UnknownEntity

Drawn = Tuple[str, str]   # (layer, markup)

LAYERS = ("connectors", "shapes", "decorations")


# ---------------------------------------------------------------------------
# Visual Config — dimensions and fonts (colours come from the encoder)
# ---------------------------------------------------------------------------
class CanvasConfig:
    # fonts
    font: str = "'DM Sans', sans-serif"
    mono: str = "'JetBrains Mono', monospace"

    # graph node
    node_radius:       int = 20
    node_label_size:   int = 13
    node_label_weight: str = "600"
    note_size:         int = 11

    # graph edge
    edge_arrow_size:   int   = 10
    edge_weight_size:  int   = 12
    edge_weight_r:     int   = 11
    parallel_offset:   float = 10.0

    # distance matrix
    cell_size:   int = 40
    cell_margin: int = 40
    cell_top:    int = 60

    # bars
    bar_width:      int = 40
    bar_max_height: int = 110
    bar_min_height: int = 4
    aux_max_height: int = 60

    # tree
    tree_node_height: int = 30
    tree_char_width:  int = 8

    # linked list
    list_box_width:  int = 44
    list_next_width: int = 20
    list_box_height: int = 36


CONFIG = CanvasConfig()


def _esc(text: str) -> str:
    return str(text).replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;").replace('"', "&quot;")


def _pos(positions: Mapping[str, Position], entity_id: Optional[str]) -> Position:
    try:
        return positions[entity_id]
    except KeyError:
        raise UnknownEntity(str(entity_id)) from None


def _paint(style: Style) -> str:
    return (
        f'fill="{style.fill}" stroke="{style.stroke}" '
        f'stroke-width="{style.stroke_width}" opacity="{style.opacity}"'
    )


def _arrow(x: float, y: float, ux: float, uy: float, color: str, size: float) -> str:
    """Arrowhead with its tip at (x, y) pointing along (ux, uy)."""
    px, py = -uy, ux
    p1_x = x - ux * size + px * (size * 0.5)
    p1_y = y - uy * size + py * (size * 0.5)
    p2_x = x - ux * size - px * (size * 0.5)
    p2_y = y - uy * size - py * (size * 0.5)
    return f'<polygon points="{x:.1f},{y:.1f} {p1_x:.1f},{p1_y:.1f} {p2_x:.1f},{p2_y:.1f}" fill="{color}"/>'


# ---------------------------------------------------------------------------
# SvgSurface — the retained drawing target
# ---------------------------------------------------------------------------
class SvgSurface:
    """Ordered id → (layer, markup) table serialised to one <svg>."""

    def __init__(self, width: float, height: float):
        self.width:     float                       = width
        self.height:    float                       = height
        self._elements: Dict[str, Tuple[str, str]]  = {}

    def upsert(self, element_id: str, layer: str, markup: str) -> None:
        if layer not in LAYERS:
            raise ValueError(f"Unknown layer: {layer!r}")
        self._elements[element_id] = (layer, markup)

    def remove(self, element_id: str) -> None:
        self._elements.pop(element_id, None)

    def ids(self) -> List[str]:
        return list(self._elements)

    def markup(self, element_id: str) -> str:
        return self._elements[element_id][1]

    def clear(self) -> None:
        self._elements.clear()

    def to_svg(self, background: str = "#ffffff") -> str:
        w, h = self.width, self.height
        parts = [
            f'<svg width="{w:.0f}" height="{h:.0f}" viewBox="0 0 {w:.0f} {h:.0f}" '
            f'xmlns="http://www.w3.org/2000/svg" style="background: {background};">',
            f'<rect width="{w:.0f}" height="{h:.0f}" fill="{background}"/>',
        ]
        for layer in LAYERS:
            parts.append(f'<g class="layer-{layer}">')
            parts.extend(m for lay, m in self._elements.values() if lay == layer)
            parts.append('</g>')
        parts.append('</svg>')
        return "\n".join(parts)


# ---------------------------------------------------------------------------
# Adapters
# ---------------------------------------------------------------------------
class ShapeAdapter:
    """
    Draws one entity at a time.  begin() sees the whole frame first so an
    adapter can precompute shared measurements (value scale, matrix size).
    decorations() returns frame-level extras keyed by their own ids.
    """

    def __init__(self, config: CanvasConfig = CONFIG):
        self.config = config

    def begin(self, entities: Sequence[Entity], styles: Mapping[str, Style]) -> None:
        pass

    def draw(self, entity: Entity, style: Style, positions: Mapping[str, Position]) -> Drawn:
        raise NotImplementedError

    def decorations(self, positions: Mapping[str, Position]) -> Dict[str, Drawn]:
        return {}


class GraphAdapter(ShapeAdapter):
    """Circles for nodes, lines for edges, a grid for matrix cells."""

    def __init__(self, config: CanvasConfig = CONFIG, width: float = 600):
        super().__init__(config)
        self.width = width
        self._pairs: Set[Tuple[str, str]] = set()
        self._matrix_n = 0
        self._headers: List[str] = []
        self._text = "#1f2937"

    def begin(self, entities, styles):
        self._pairs = {(e.source, e.target) for e in entities if e.kind == "edge" and e.directed}
        cells = [e for e in entities if e.kind == "cell"]
        self._matrix_n = max((e.row for e in cells), default=-1) + 1
        self._headers = [e.id.split(":", 1)[1] for e in cells if e.row == 0]
        self._text = next(iter(styles.values())).text if styles else self._text

    def draw(self, entity, style, positions):
        if entity.kind == "node":
            return "shapes", self._node(entity, style, _pos(positions, entity.id))
        if entity.kind == "edge":
            return "connectors", self._edge(entity, style, positions)
        if entity.kind == "cell":
            return "shapes", self._cell(entity, style)
        raise ValueError(f"GraphAdapter cannot draw {entity.kind!r}")

    def _node(self, node: Entity, style: Style, p: Position) -> str:
        c = self.config
        parts = [
            f'<g class="node draggable" data-id="{_esc(node.id)}">',
            f'  <circle cx="{p.x:.1f}" cy="{p.y:.1f}" r="{c.node_radius}" {_paint(style)}/>',
            f'  <text x="{p.x:.1f}" y="{p.y + 5:.1f}" text-anchor="middle" '
            f'font-size="{c.node_label_size}" font-family="{c.font}" '
            f'fill="{style.text}" font-weight="{c.node_label_weight}">{_esc(style.label)}</text>',
        ]
        if style.note:
            parts.append(
                f'  <text x="{p.x:.1f}" y="{p.y - c.node_radius - 6:.1f}" text-anchor="middle" '
                f'font-size="{c.note_size}" font-family="{c.mono}" fill="{style.text}">{_esc(style.note)}</text>'
            )
        parts.append('</g>')
        return "\n".join(parts)

    def _edge(self, edge: Entity, style: Style, positions) -> str:
        c = self.config
        src, tgt = _pos(positions, edge.source), _pos(positions, edge.target)
        dx, dy = tgt.x - src.x, tgt.y - src.y
        dist = math.hypot(dx, dy)
        if dist < 0.001:
            return f'<g class="edge" data-id="{_esc(edge.id)}"></g>'
        ux, uy = dx / dist, dy / dist
        # A→B and B→A both present: shift each to its own side
        off = c.parallel_offset if (edge.target, edge.source) in self._pairs else 0.0
        ox, oy = -uy * off, ux * off

        r = c.node_radius
        x1, y1 = src.x + ux * r + ox, src.y + uy * r + oy
        x2, y2 = tgt.x - ux * r + ox, tgt.y - uy * r + oy

        parts = [
            f'<g class="edge" data-id="{_esc(edge.id)}" opacity="{style.opacity}">',
            f'  <line x1="{x1:.1f}" y1="{y1:.1f}" x2="{x2:.1f}" y2="{y2:.1f}" '
            f'stroke="{style.stroke}" stroke-width="{style.stroke_width}"/>',
        ]
        if edge.directed:
            parts.append("  " + _arrow(x2, y2, ux, uy, style.stroke, c.edge_arrow_size))
        if style.label:
            mx, my = (x1 + x2) / 2 - uy * 12, (y1 + y2) / 2 + ux * 12
            parts.append(
                f'  <circle cx="{mx:.1f}" cy="{my:.1f}" r="{c.edge_weight_r}" fill="#ffffff" '
                f'stroke="{style.stroke}" stroke-width="1" opacity="0.9"/>'
            )
            parts.append(
                f'  <text x="{mx:.1f}" y="{my + 4:.1f}" text-anchor="middle" '
                f'font-size="{c.edge_weight_size}" font-family="{c.font}" '
                f'fill="#1f2937" font-weight="600">{_esc(style.label)}</text>'
            )
        parts.append('</g>')
        return "\n".join(parts)

    def _matrix_origin(self) -> Tuple[float, float]:
        c = self.config
        return self.width - self._matrix_n * c.cell_size - c.cell_margin, float(c.cell_top)

    def _cell(self, cell: Entity, style: Style) -> str:
        c = self.config
        x0, y0 = self._matrix_origin()
        x, y = x0 + cell.col * c.cell_size, y0 + cell.row * c.cell_size
        return "\n".join([
            f'<g class="cell" data-id="{_esc(cell.id)}">',
            f'  <rect x="{x:.1f}" y="{y:.1f}" width="{c.cell_size}" height="{c.cell_size}" {_paint(style)}/>',
            f'  <text x="{x + c.cell_size / 2:.1f}" y="{y + c.cell_size / 2 + 4:.1f}" text-anchor="middle" '
            f'font-size="11" font-family="{c.mono}" fill="{style.text}">{_esc(style.label)}</text>',
            '</g>',
        ])

    def decorations(self, positions):
        if not self._matrix_n:
            return {}
        c = self.config
        x0, y0 = self._matrix_origin()
        parts = [
            f'<text x="{x0:.1f}" y="{y0 - 26:.1f}" font-size="13" font-weight="700" '
            f'font-family="{c.font}" fill="{self._text}">Distance Matrix</text>'
        ]
        for k, label in enumerate(self._headers):
            half = c.cell_size / 2
            parts.append(
                f'<text x="{x0 + k * c.cell_size + half:.1f}" y="{y0 - 8:.1f}" text-anchor="middle" '
                f'font-size="11" fill="{self._text}">{_esc(label)}</text>'
            )
            parts.append(
                f'<text x="{x0 - 10:.1f}" y="{y0 + k * c.cell_size + half + 4:.1f}" text-anchor="middle" '
                f'font-size="11" fill="{self._text}">{_esc(label)}</text>'
            )
        return {"#matrix-headers": ("decorations", "\n".join(parts))}


class BarArrayAdapter(ShapeAdapter):
    """Value-proportional bars hanging from the top of their slot."""

    def __init__(self, config: CanvasConfig = CONFIG):
        super().__init__(config)
        self._scale = 1.0
        self._groups: Dict[str, str] = {}
        self._text = "#1f2937"

    def begin(self, entities, styles):
        values = [abs(e.value) for e in entities if isinstance(e.value, (int, float))]
        self._scale = max(values, default=1) or 1
        # first cell of every auxiliary row carries its caption
        self._groups = {}
        for e in entities:
            if e.kind == "aux" and e.group not in self._groups:
                self._groups[e.group] = e.id
        self._text = next(iter(styles.values())).text if styles else self._text

    def _height(self, value, ceiling: float) -> float:
        if not isinstance(value, (int, float)):
            return float(self.config.bar_min_height)
        return max(self.config.bar_min_height, ceiling * abs(value) / self._scale)

    def draw(self, entity, style, positions):
        if entity.kind not in ("bar", "aux"):
            raise ValueError(f"BarArrayAdapter cannot draw {entity.kind!r}")
        c = self.config
        p = _pos(positions, entity.id)
        ceiling = c.bar_max_height if entity.kind == "bar" else c.aux_max_height
        h = self._height(entity.value, ceiling)
        w = c.bar_width if entity.kind == "bar" else c.bar_width * 0.8
        top = p.y + (ceiling - h)
        base = p.y + ceiling

        parts = [
            f'<g class="{entity.kind} draggable" data-id="{_esc(entity.id)}">',
            f'  <rect x="{p.x - w / 2:.1f}" y="{top:.1f}" width="{w:.1f}" height="{h:.1f}" rx="3" {_paint(style)}/>',
            f'  <text x="{p.x:.1f}" y="{top - 5:.1f}" text-anchor="middle" font-size="12" '
            f'font-family="{c.font}" font-weight="600" fill="{style.text}">{_esc(style.label)}</text>',
        ]
        if entity.kind == "bar":
            parts.append(
                f'  <text x="{p.x:.1f}" y="{base + 15:.1f}" text-anchor="middle" font-size="10" '
                f'font-family="{c.mono}" fill="{style.text}" opacity="0.7">{_esc(entity.id)}</text>'
            )
        if style.note:
            parts.append(
                f'  <text x="{p.x:.1f}" y="{base + 30:.1f}" text-anchor="middle" font-size="{c.note_size}" '
                f'font-family="{c.mono}" font-weight="700" fill="{style.text}">{_esc(style.note)}</text>'
            )
        parts.append('</g>')
        return "shapes", "\n".join(parts)

    def decorations(self, positions):
        out = {}
        for group, first in self._groups.items():
            p = _pos(positions, first)
            out[f"#caption:{group}"] = ("decorations", (
                f'<text x="{p.x - self.config.bar_width / 2:.1f}" y="{p.y - 20:.1f}" font-size="12" '
                f'font-family="{self.config.font}" font-weight="700" fill="{self._text}">{_esc(group)}</text>'
            ))
        return out


class TreeAdapter(ShapeAdapter):
    """Rounded boxes sized to their label, joined by branch lines."""

    def _width(self, label: str) -> float:
        return max(40.0, self.config.tree_char_width * len(label) + 16)

    def draw(self, entity, style, positions):
        c = self.config
        if entity.kind == "tree_node":
            p = _pos(positions, entity.id)
            w, h = self._width(style.label), c.tree_node_height
            parts = [
                f'<g class="tree-node draggable" data-id="{_esc(entity.id)}">',
                f'  <rect x="{p.x - w / 2:.1f}" y="{p.y - h / 2:.1f}" width="{w:.1f}" height="{h}" rx="6" {_paint(style)}/>',
                f'  <text x="{p.x:.1f}" y="{p.y + 4:.1f}" text-anchor="middle" font-size="12" '
                f'font-family="{c.mono}" fill="{style.text}">{_esc(style.label)}</text>',
            ]
            if style.note:
                parts.append(
                    f'  <text x="{p.x + w / 2 + 6:.1f}" y="{p.y + 4:.1f}" font-size="{c.note_size}" '
                    f'font-family="{c.font}" fill="{style.text}">{_esc(style.note)}</text>'
                )
            parts.append('</g>')
            return "shapes", "\n".join(parts)
        if entity.kind == "branch":
            a, b = _pos(positions, entity.source), _pos(positions, entity.target)
            half = c.tree_node_height / 2
            return "connectors", (
                f'<g class="branch" data-id="{_esc(entity.id)}" opacity="{style.opacity}">'
                f'<line x1="{a.x:.1f}" y1="{a.y + half:.1f}" x2="{b.x:.1f}" y2="{b.y - half:.1f}" '
                f'stroke="{style.stroke}" stroke-width="{style.stroke_width}"/></g>'
            )
        raise ValueError(f"TreeAdapter cannot draw {entity.kind!r}")


class LinkedListAdapter(ShapeAdapter):
    """[value|•]→[value|•]→ … → null"""

    def draw(self, entity, style, positions):
        c = self.config
        bw, nw, bh = c.list_box_width, c.list_next_width, c.list_box_height
        if entity.kind == "list_node":
            p = _pos(positions, entity.id)
            left = p.x - (bw + nw) / 2
            top = p.y - bh / 2
            parts = [
                f'<g class="list-node draggable" data-id="{_esc(entity.id)}">',
                f'  <rect x="{left:.1f}" y="{top:.1f}" width="{bw}" height="{bh}" rx="4" {_paint(style)}/>',
                f'  <rect x="{left + bw:.1f}" y="{top:.1f}" width="{nw}" height="{bh}" rx="4" '
                f'fill="none" stroke="{style.stroke}" stroke-width="{style.stroke_width}"/>',
                f'  <circle cx="{left + bw + nw / 2:.1f}" cy="{p.y:.1f}" r="3" fill="{style.stroke}"/>',
                f'  <text x="{left + bw / 2:.1f}" y="{p.y + 5:.1f}" text-anchor="middle" font-size="13" '
                f'font-family="{c.font}" font-weight="600" fill="{style.text}">{_esc(style.label)}</text>',
            ]
            if entity.target is None:
                parts.append(
                    f'  <text x="{left + bw + nw + 8:.1f}" y="{p.y + 4:.1f}" font-size="11" '
                    f'font-family="{c.mono}" fill="{style.text}" opacity="0.7">null</text>'
                )
            if style.note:
                parts.append(
                    f'  <text x="{p.x:.1f}" y="{top - 8:.1f}" text-anchor="middle" font-size="{c.note_size}" '
                    f'font-family="{c.mono}" font-weight="700" fill="{style.text}">{_esc(style.note)}</text>'
                )
            parts.append('</g>')
            return "shapes", "\n".join(parts)
        if entity.kind == "link":
            a, b = _pos(positions, entity.source), _pos(positions, entity.target)
            x1 = a.x + (bw + nw) / 2 - nw / 2
            x2 = b.x - (bw + nw) / 2
            dx, dy = x2 - x1, b.y - a.y
            dist = math.hypot(dx, dy) or 1.0
            ux, uy = dx / dist, dy / dist
            return "connectors", "\n".join([
                f'<g class="link" data-id="{_esc(entity.id)}" opacity="{style.opacity}">',
                f'  <line x1="{x1:.1f}" y1="{a.y:.1f}" x2="{x2:.1f}" y2="{b.y:.1f}" '
                f'stroke="{style.stroke}" stroke-width="{style.stroke_width}"/>',
                "  " + _arrow(x2, b.y, ux, uy, style.stroke, self.config.edge_arrow_size),
                '</g>',
            ])
        raise ValueError(f"LinkedListAdapter cannot draw {entity.kind!r}")


# ---------------------------------------------------------------------------
# DiagramRenderer — the driving loop shared by every shape
# ---------------------------------------------------------------------------
SHAPES = ("graph", "bars", "tree", "list")


def make_adapter(shape: str, width: float, config: CanvasConfig = CONFIG) -> ShapeAdapter:
    if shape == "graph":
        return GraphAdapter(config, width=width)
    if shape == "bars":
        return BarArrayAdapter(config)
    if shape == "tree":
        return TreeAdapter(config)
    if shape == "list":
        return LinkedListAdapter(config)
    raise ValueError(f"Unknown diagram shape: {shape!r}")


class DiagramRenderer:
    """
    Attributes:
        shape    : "graph" | "bars" | "tree" | "list"
        adapter  : The ShapeAdapter drawing each entity.
        surface  : The retained SvgSurface.
        frames   : How many times render() has run.
    """

    def __init__(self, shape: str, width: float = 600, height: float = 400, config: CanvasConfig = CONFIG):
        self.shape:   str          = shape
        self.adapter: ShapeAdapter = make_adapter(shape, width, config)
        self.surface: SvgSurface   = SvgSurface(width, height)
        self.frames:  int          = 0

    def render(
        self,
        entities: Iterable[Entity],
        styles: Mapping[str, Style],
        positions: Mapping[str, Position],
    ) -> None:
        entities = list(entities)
        self.adapter.begin(entities, styles)

        present: Set[str] = set()
        for entity in entities:
            layer, markup = self.adapter.draw(entity, styles[entity.id], positions)
            self.surface.upsert(entity.id, layer, markup)
            present.add(entity.id)
        for key, (layer, markup) in self.adapter.decorations(positions).items():
            self.surface.upsert(key, layer, markup)
            present.add(key)

        for stale in [eid for eid in self.surface.ids() if eid not in present]:
            self.surface.remove(stale)
        self.frames += 1

    def to_svg(self, background: str = "#ffffff") -> str:
        return self.surface.to_svg(background)
