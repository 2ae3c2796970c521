"""Every bundled trace loads, encodes and renders at every step."""

import pytest

from steptrace import REGISTRY
from ui.canvas import DiagramRenderer

from conftest import family_of, load


@pytest.mark.parametrize("key", sorted(REGISTRY))
def test_bundled_trace_replays(key, make_controller):
    family = family_of(key)
    trace = load(key)
    width, height = family.canvas_size(trace.input, 600, 400)
    renderer = DiagramRenderer(family.shape, width, height)
    ctl = make_controller(key, renderer=renderer)

    seen = 1
    while ctl.next():
        seen += 1
        assert set(ctl.frame.styles) == {e.id for e in ctl.frame.assignment.entities}
    assert seen == len(trace)
    assert renderer.frames == len(trace)
    assert renderer.to_svg().startswith("<svg")


@pytest.mark.parametrize("key", sorted(REGISTRY))
def test_explanations_exist_for_every_level(key):
    for step in load(key).steps:
        assert len(step.actions) == 2
        assert all(text.strip() for text in step.actions)
