"""
ui/
---
Presentation layer.

    from ui import DiagramRenderer
    from ui import playback_controls, state_panel, …
"""

from ui.canvas import DiagramRenderer, SvgSurface, CanvasConfig, make_adapter

from ui.controls import (
    playback_controls,
    visualizer_nav,
    explanation_panel,
    pseudocode_viewer,
    complexity_card,
    state_panel,
)

__all__ = [
    "DiagramRenderer",
    "SvgSurface",
    "CanvasConfig",
    "make_adapter",
    "playback_controls",
    "visualizer_nav",
    "explanation_panel",
    "pseudocode_viewer",
    "complexity_card",
    "state_panel",
]
