"""
playback.py — Playback Controller
==================================
The PlaybackController is the ONLY object the UI drives during a visit.
It owns the step index, the detail level, the theme, the layout store
and the narration session, and re-runs the pipeline on every change:

    Diff Engine → Visual Encoder → Renderer (+ Layout Store positions)

State machine:
    step_index    ∈ [0, N-1]     next / prev / seek clamp, never raise
    detail_level  ∈ [0, levels)  toggle_detail cycles
    theme         ∈ THEMES       toggle_theme flips (re-render only)

Every change of step_index or detail_level renders once and issues
exactly one narration (cancel, then speak).  A transition that changes
nothing (next at the end, prev at 0) does neither.

Layout:
  Positions are fixed across step changes.  Force-laid-out diagrams
  (graphs) settle once at mount; after that only tick(), a drag
  (pin / unpin) or reset_layout() moves anything.

Thread safety:
  Not thread-safe.  The web layer calls it from one request at a time
  per session.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Sequence

from engine import diff
from engine.diff import CategoryAssignment
from engine.encoder import THEMES, Style, encode_all
from engine.families import FamilyConfig
from engine.narration import NarrationSession, Narrator
from layout.store import LayoutStore, Position, RelaxConstraints
from steptrace.step import Step, StepTrace

logger = logging.getLogger(__name__)


DEFAULT_DETAIL_LEVELS = ("beginner", "advanced")


# ---------------------------------------------------------------------------
# Frame — everything one render needed
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class Frame:
    step_index:   int
    step:         Step
    detail_level: int
    theme:        str
    assignment:   CategoryAssignment
    styles:       Dict[str, Style]
    positions:    Dict[str, Position]

    @property
    def explanation(self) -> str:
        return self.step.action(self.detail_level)


class Renderer:
    """Interface the controller draws through (see ui/canvas.py)."""

    def render(self, entities, styles, positions) -> None:
        raise NotImplementedError


# ---------------------------------------------------------------------------
# PlaybackController
# ---------------------------------------------------------------------------
class PlaybackController:
    """
    Attributes:
        trace         : The StepTrace being replayed.
        family        : FamilyConfig that reads and styles it.
        step_index    : Current step (0-based).
        detail_level  : Index into detail_levels.
        theme         : "light" or "dark".
        layout        : LayoutStore for this diagram.
        narration     : NarrationSession (one active narration at most).
        renderer      : Object with render(entities, styles, positions).
        on_frame      : Optional callback(Frame) fired after every render.
        frame         : The last rendered Frame (None before mount()).
    """

    def __init__(
        self,
        trace: StepTrace,
        family: FamilyConfig,
        renderer: Optional[Renderer] = None,
        narrator: Optional[Narrator] = None,
        detail_levels: Sequence[str] = DEFAULT_DETAIL_LEVELS,
        theme: str = "light",
        width: float = 600,
        height: float = 400,
        seed: int = 42,
        settle_iterations: int = 50,
        tick_iterations: int = 5,
        on_frame: Optional[Callable[[Frame], None]] = None,
    ):
        if theme not in THEMES:
            raise ValueError(f"Unknown theme: {theme!r}")
        self.trace:             StepTrace         = trace
        self.family:            FamilyConfig      = family
        self.renderer:          Optional[Renderer] = renderer
        self.detail_levels:     Sequence[str]     = tuple(detail_levels)
        self.step_index:        int               = 0
        self.detail_level:      int               = 0
        self.theme:             str               = theme
        self.settle_iterations: int               = settle_iterations
        self.tick_iterations:   int               = tick_iterations
        self.on_frame:          Optional[Callable[[Frame], None]] = on_frame
        self.narration:         NarrationSession  = NarrationSession(narrator)
        self.frame:             Optional[Frame]   = None

        layout_w, layout_h = family.layout_size(trace.input, width, height)
        self.layout: LayoutStore = LayoutStore(width=layout_w, height=layout_h, seed=seed)
        self._hint = family.layout_hint(trace.input, layout_w, layout_h)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def mount(self) -> Frame:
        """Place every entity, settle graphs, show and narrate step 0."""
        self.step_index = 0
        self._place()
        self._settle()
        return self._refresh(narrate=True)

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------
    def next(self) -> bool:
        """Advance one step.  Returns False (and does nothing) at the end."""
        return self.seek(self.step_index + 1)

    def prev(self) -> bool:
        """Go back one step.  Returns False (and does nothing) at 0."""
        return self.seek(self.step_index - 1)

    def seek(self, index: int) -> bool:
        """Jump to `index` clamped into [0, N-1].  Returns True if it moved."""
        target = max(0, min(int(index), self.trace.last_index))
        if target == self.step_index and self.frame is not None:
            return False
        self.step_index = target
        self._refresh(narrate=True)
        return True

    def rewind(self) -> bool:
        return self.seek(0)

    def jump_to_end(self) -> bool:
        return self.seek(self.trace.last_index)

    # ------------------------------------------------------------------
    # Detail level / theme
    # ------------------------------------------------------------------
    def toggle_detail(self) -> int:
        self.detail_level = (self.detail_level + 1) % len(self.detail_levels)
        self._refresh(narrate=True)
        return self.detail_level

    def toggle_theme(self) -> str:
        idx = THEMES.index(self.theme)
        self.theme = THEMES[(idx + 1) % len(THEMES)]
        self._refresh(narrate=False)
        return self.theme

    # ------------------------------------------------------------------
    # Layout interaction
    # ------------------------------------------------------------------
    def reset_layout(self) -> Frame:
        logger.debug("Reset layout for %s", self.trace.key)
        self.layout.reset()
        self._place()
        self._settle()
        return self._refresh(narrate=False)

    def pin(self, entity_id: str, x: float, y: float) -> Frame:
        """Drag start / drag move: fix `entity_id` at (x, y)."""
        self.layout.pin(entity_id, x, y)
        return self._refresh(narrate=False)

    def unpin(self, entity_id: str) -> Frame:
        """Drag end: release `entity_id` back to the solver."""
        self.layout.unpin(entity_id)
        self._relax(self.tick_iterations)
        return self._refresh(narrate=False)

    def tick(self) -> Frame:
        """One bounded relaxation pass (a few solver iterations)."""
        self._relax(self.tick_iterations)
        return self._refresh(narrate=False)

    # ------------------------------------------------------------------
    # Read-only accessors
    # ------------------------------------------------------------------
    @property
    def current_step(self) -> Step:
        return self.trace.step(self.step_index)

    @property
    def total_steps(self) -> int:
        return len(self.trace)

    @property
    def explanation(self) -> str:
        return self.current_step.action(self.detail_level)

    @property
    def detail_name(self) -> str:
        return self.detail_levels[self.detail_level]

    @property
    def is_first(self) -> bool:
        return self.step_index == 0

    @property
    def is_last(self) -> bool:
        return self.step_index == self.trace.last_index

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------
    def _place(self) -> None:
        """Give every entity that is positioned at any step a starting point."""
        ids: Dict[str, None] = {}
        for step in self.trace.steps:
            for e in self.family.entities(self.trace.input, step.state):
                if e.positioned:
                    ids.setdefault(e.id)
        self.layout.initialize(list(ids), self._hint)

    def _settle(self) -> None:
        self._relax(self.settle_iterations)

    def _relax(self, iterations: int) -> None:
        if not self.family.force_layout:
            return
        springs = self.family.relax_edges(self.trace.input)
        self.layout.relax(RelaxConstraints(edges=springs, iterations=iterations))

    def _refresh(self, narrate: bool) -> Frame:
        assignment = diff.compute(self.trace, self.step_index, self.family)
        self.layout.initialize([e.id for e in assignment.entities if e.positioned], self._hint)
        styles = encode_all(assignment, self.family, self.theme)
        positions = self.layout.positions()

        if self.renderer is not None:
            self.renderer.render(assignment.entities, styles, positions)

        self.frame = Frame(
            step_index=self.step_index,
            step=self.current_step,
            detail_level=self.detail_level,
            theme=self.theme,
            assignment=assignment,
            styles=styles,
            positions=positions,
        )
        if narrate:
            self.narration.say(self.frame.explanation)
        if self.on_frame is not None:
            self.on_frame(self.frame)
        return self.frame
