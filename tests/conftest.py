"""Shared fixtures: bundled traces, recording collaborators, controllers."""

import pytest

from engine import PlaybackController, get_family
from steptrace import DATA_DIR, get_trace_info, load_trace


class RecordingNarrator:
    """Narrator that remembers every call in order."""

    def __init__(self):
        self.calls = []

    def speak(self, text):
        self.calls.append(("speak", text))

    def stop_speaking(self):
        self.calls.append(("stop", None))

    @property
    def spoken(self):
        return [text for action, text in self.calls if action == "speak"]


class BrokenNarrator:
    """Speech backend that is never available."""

    def speak(self, text):
        raise RuntimeError("speech engine missing")

    def stop_speaking(self):
        raise RuntimeError("speech engine missing")


class RecordingRenderer:
    """Renderer that keeps a copy of every frame it was asked to draw."""

    def __init__(self):
        self.frames = []

    def render(self, entities, styles, positions):
        self.frames.append((tuple(entities), dict(styles), dict(positions)))


def load(key):
    info = get_trace_info(key)
    return load_trace(DATA_DIR / info.filename, key, get_family(info.family))


def family_of(key):
    return get_family(get_trace_info(key).family)


@pytest.fixture
def narrator():
    return RecordingNarrator()


@pytest.fixture
def renderer():
    return RecordingRenderer()


@pytest.fixture
def make_controller(narrator, renderer):
    def build(key, mount=True, **kwargs):
        kwargs.setdefault("narrator", narrator)
        kwargs.setdefault("renderer", renderer)
        ctl = PlaybackController(load(key), family_of(key), **kwargs)
        if mount:
            ctl.mount()
        return ctl
    return build
