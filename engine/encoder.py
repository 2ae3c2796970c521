"""
encoder.py — Visual Encoder
============================
(entity, CategoryAssignment, family, theme) → Style.

Fill and stroke are independent channels:

  fill   – the first category in the family's fill precedence that the
           entity carries (tags ∪ role).  That rule also supplies the
           default stroke, width and opacity.
  stroke – the next-suggestion outline if the entity is the suggestion,
           otherwise the first match in the stroke precedence, otherwise
           whatever the fill rule said.

So a node can be "visited" (fill) AND "next" (outline) at once.

Unknown categories are an error, never a silent default: the encoder
raises UnstyledCategory so a gap in a style table shows up immediately.
"""

from dataclasses import dataclass
from typing import Dict

from engine.diff import CategoryAssignment
from engine.entity import Entity
from engine.families import FamilyConfig
from steptrace.errors import UnstyledCategory


# ---------------------------------------------------------------------------
# Palettes — palette key → hex
# ---------------------------------------------------------------------------
LIGHT: Dict[str, str] = {
    "surface":      "#ffffff",
    "text":         "#1f2937",
    "muted":        "#6b7280",
    "outline":      "#374151",
    "line":         "#9ca3af",
    "base":         "#e5e7eb",
    "next":         "#db2777",   # pink — next suggestion ring
    "start":        "#0284c7",
    "visited":      "#10b981",
    "frontier":     "#38bdf8",
    "tree":         "#7c3aed",
    "settled":      "#34d399",
    "updated":      "#f59e0b",
    "relaxed":      "#ea580c",
    "intermediate": "#a855f7",
    "endpoint":     "#38bdf8",
    "cell":         "#f3f4f6",
    "candidate":    "#f59e0b",
    "unsorted":     "#60a5fa",
    "comparing":    "#facc15",
    "swapped":      "#ef4444",
    "shifted":      "#fb923c",
    "sorted":       "#22c55e",
    "pivot":        "#a855f7",
    "key":          "#ec4899",
    "min":          "#ec4899",
    "partition":    "#bfdbfe",
    "current":      "#06b6d4",
    "active":       "#fde68a",
    "merging":      "#fdba74",
    "left":         "#93c5fd",
    "right":        "#fca5a5",
    "merged":       "#86efac",
    "found":        "#16a34a",
    "checked":      "#d1d5db",
    "excluded":     "#e5e7eb",
    "boundary":     "#1d4ed8",
}

DARK: Dict[str, str] = {
    "surface":      "#0d1117",
    "text":         "#e6edf3",
    "muted":        "#7d8590",
    "outline":      "#30363d",
    "line":         "#484f58",
    "base":         "#1c2128",
    "next":         "#ec4899",
    "start":        "#0ea5e9",
    "visited":      "#10b981",
    "frontier":     "#0ea5e9",
    "tree":         "#a855f7",
    "settled":      "#059669",
    "updated":      "#f59e0b",
    "relaxed":      "#f97316",
    "intermediate": "#a855f7",
    "endpoint":     "#0ea5e9",
    "cell":         "#1f2937",
    "candidate":    "#f59e0b",
    "unsorted":     "#2563eb",
    "comparing":    "#eab308",
    "swapped":      "#dc2626",
    "shifted":      "#ea580c",
    "sorted":       "#16a34a",
    "pivot":        "#9333ea",
    "key":          "#db2777",
    "min":          "#db2777",
    "partition":    "#1e3a8a",
    "current":      "#06b6d4",
    "active":       "#854d0e",
    "merging":      "#c2410c",
    "left":         "#1d4ed8",
    "right":        "#b91c1c",
    "merged":       "#15803d",
    "found":        "#22c55e",
    "checked":      "#374151",
    "excluded":     "#21262d",
    "boundary":     "#60a5fa",
}

PALETTES: Dict[str, Dict[str, str]] = {"light": LIGHT, "dark": DARK}
THEMES = tuple(PALETTES)

# per-kind fallbacks when a rule leaves stroke / width unset
DEFAULT_STROKE: Dict[str, str] = {
    "node": "outline", "edge": "line", "cell": "outline",
    "bar": "outline", "aux": "outline",
    "tree_node": "outline", "branch": "line",
    "list_node": "outline", "link": "line",
}
DEFAULT_WIDTH: Dict[str, float] = {
    "node": 2, "edge": 2, "cell": 1,
    "bar": 1, "aux": 1,
    "tree_node": 2, "branch": 2,
    "list_node": 2, "link": 2,
}


@dataclass(frozen=True)
class Style:
    fill:         str
    stroke:       str
    stroke_width: float
    label:        str
    opacity:      float = 1.0
    text:         str   = "#1f2937"   # label colour
    note:         str   = ""          # annotation drawn beside the entity


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------
def encode(entity: Entity, assignment: CategoryAssignment, family: FamilyConfig, theme: str = "light") -> Style:
    palette = PALETTES[theme]
    categories = assignment.categories(entity.id)

    for category in categories:
        if category not in family.styles:
            raise UnstyledCategory(family.key, category, entity.id)

    winner = next((c for c in family.fill_precedence if c in categories), None)
    if winner is None:
        raise UnstyledCategory(family.key, "+".join(sorted(categories)) or "<none>", entity.id)
    rule = family.styles[winner]

    fill = "none" if entity.is_connector or rule.fill is None else palette[rule.fill]
    stroke = palette[rule.stroke or DEFAULT_STROKE[entity.kind]]
    width = rule.stroke_width if rule.stroke_width is not None else DEFAULT_WIDTH[entity.kind]

    overlay = None
    if assignment.next_suggestion == entity.id:
        overlay = family.styles["next"]
    else:
        hit = next((c for c in family.stroke_precedence if c in categories), None)
        if hit is not None:
            overlay = family.styles[hit]
    if overlay is not None and overlay.stroke is not None:
        stroke = palette[overlay.stroke]
        if overlay.stroke_width is not None:
            width = overlay.stroke_width

    return Style(
        fill=fill,
        stroke=stroke,
        stroke_width=width,
        label=entity.label,
        opacity=rule.opacity,
        text=palette["text"],
        note=assignment.annotations.get(entity.id, ""),
    )


def encode_all(assignment: CategoryAssignment, family: FamilyConfig, theme: str = "light") -> Dict[str, Style]:
    return {e.id: encode(e, assignment, family, theme) for e in assignment.entities}
