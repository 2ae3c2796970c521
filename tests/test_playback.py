"""Tests for the PlaybackController state machine."""

import pytest

from engine import PlaybackController

from conftest import BrokenNarrator, family_of, load


class TestMount:
    def test_mount_renders_and_narrates_step_zero(self, make_controller, narrator, renderer):
        ctl = make_controller("bfs")
        assert ctl.step_index == 0
        assert len(renderer.frames) == 1
        assert narrator.calls == [("stop", None), ("speak", ctl.explanation)]

    def test_every_positioned_entity_has_a_position(self, make_controller, renderer):
        make_controller("bfs")
        entities, styles, positions = renderer.frames[-1]
        for e in entities:
            if e.positioned:
                assert e.id in positions
            assert e.id in styles

    def test_auxiliary_cells_are_placed_before_they_appear(self, make_controller):
        ctl = make_controller("merge_sort")
        assert ctl.layout.has("left:0")
        assert ctl.layout.has("merged:0")

    def test_unknown_theme(self):
        with pytest.raises(ValueError):
            PlaybackController(load("bfs"), family_of("bfs"), theme="sepia")


class TestNavigation:
    def test_walk_to_the_end(self, make_controller, narrator):
        ctl = make_controller("bfs")
        while ctl.next():
            pass
        assert ctl.is_last
        assert ctl.step_index == ctl.total_steps - 1 == 4
        assert len(narrator.spoken) == 5
        assert ctl.frame.assignment.with_tag("frontier") == []

    def test_next_at_end_is_a_no_op(self, make_controller, narrator, renderer):
        ctl = make_controller("bfs")
        ctl.jump_to_end()
        frames, calls = len(renderer.frames), list(narrator.calls)
        assert ctl.next() is False
        assert len(renderer.frames) == frames
        assert narrator.calls == calls

    def test_prev_at_start_is_a_no_op(self, make_controller, narrator, renderer):
        ctl = make_controller("bfs")
        assert ctl.prev() is False
        assert len(renderer.frames) == 1
        assert len(narrator.spoken) == 1

    def test_seek_clamps(self, make_controller):
        ctl = make_controller("bfs")
        assert ctl.seek(99) is True
        assert ctl.step_index == 4
        assert ctl.seek(-5) is True
        assert ctl.step_index == 0

    def test_seek_to_current_does_nothing(self, make_controller, renderer):
        ctl = make_controller("bfs")
        ctl.seek(2)
        frames = len(renderer.frames)
        assert ctl.seek(2) is False
        assert len(renderer.frames) == frames

    def test_next_is_seek_plus_one(self, make_controller):
        a = make_controller("bellman_ford")
        b = make_controller("bellman_ford")
        for _ in range(3):
            a.next()
        b.seek(3)
        assert a.frame.styles == b.frame.styles
        assert a.frame.assignment == b.frame.assignment

    def test_going_back_reproduces_the_frame(self, make_controller):
        ctl = make_controller("bellman_ford")
        ctl.seek(3)
        first = ctl.frame.styles
        ctl.seek(7)
        ctl.seek(3)
        assert ctl.frame.styles == first
        assert ctl.frame.assignment.updated == {"C"}

    def test_step_changes_never_move_entities(self, make_controller):
        ctl = make_controller("bfs")
        before = ctl.layout.positions()
        ctl.next()
        ctl.seek(4)
        ctl.prev()
        assert ctl.layout.positions() == before


class TestDetailAndTheme:
    def test_toggle_detail_narrates_the_other_text(self, make_controller, narrator):
        ctl = make_controller("bfs")
        assert ctl.toggle_detail() == 1
        assert ctl.detail_name == "advanced"
        assert narrator.spoken[-1] == ctl.current_step.actions[1]
        assert narrator.calls[-2] == ("stop", None)

    def test_toggle_detail_wraps(self, make_controller):
        ctl = make_controller("bfs")
        ctl.toggle_detail()
        assert ctl.toggle_detail() == 0

    def test_toggle_theme_rerenders_silently(self, make_controller, narrator, renderer):
        ctl = make_controller("bfs")
        calls = list(narrator.calls)
        assert ctl.toggle_theme() == "dark"
        assert len(renderer.frames) == 2
        assert narrator.calls == calls
        assert ctl.frame.theme == "dark"

    def test_theme_keeps_positions(self, make_controller):
        ctl = make_controller("bfs")
        before = ctl.layout.positions()
        ctl.toggle_theme()
        assert ctl.layout.positions() == before


class TestNarrationFailures:
    def test_broken_narrator_does_not_stop_playback(self, make_controller, renderer):
        ctl = make_controller("bfs", narrator=BrokenNarrator())
        assert ctl.next() is True
        assert ctl.step_index == 1
        assert len(renderer.frames) == 2
        assert ctl.narration.failures > 0


class TestLayoutInteraction:
    def test_pin_survives_ticks(self, make_controller):
        ctl = make_controller("bfs")
        ctl.pin("A", 111, 222)
        for _ in range(3):
            ctl.tick()
        pos = ctl.layout.get("A")
        assert (pos.x, pos.y, pos.pinned) == (111.0, 222.0, True)

    def test_pin_survives_step_changes(self, make_controller):
        ctl = make_controller("bfs")
        ctl.pin("C", 50, 60)
        ctl.next()
        assert ctl.frame.positions["C"].x == 50.0

    def test_unpin_releases(self, make_controller):
        ctl = make_controller("bfs")
        ctl.pin("A", 111, 222)
        ctl.unpin("A")
        assert not ctl.layout.get("A").pinned

    def test_reset_layout_restores_mount_positions(self, make_controller):
        ctl = make_controller("bfs")
        mounted = ctl.layout.positions()
        ctl.pin("A", 10, 10)
        ctl.tick()
        ctl.reset_layout()
        assert ctl.layout.positions() == mounted

    def test_static_layouts_ignore_ticks(self, make_controller):
        ctl = make_controller("bubble_sort")
        before = ctl.layout.positions()
        ctl.tick()
        assert ctl.layout.positions() == before


class TestFrameCallback:
    def test_on_frame_fires_for_every_render(self, make_controller):
        seen = []
        ctl = make_controller("bubble_sort", on_frame=seen.append)
        ctl.next()
        ctl.toggle_theme()
        assert [f.step_index for f in seen] == [0, 1, 1]
        assert seen[-1].theme == "dark"
        assert seen[0].explanation == ctl.trace.step(0).action(0)
