"""Tests for narration sessions and the browser command queue."""

from engine.narration import ClientNarrator, NarrationSession, NullNarrator

from conftest import BrokenNarrator, RecordingNarrator


class TestNarrationSession:
    def test_say_cancels_before_speaking(self):
        narrator = RecordingNarrator()
        session = NarrationSession(narrator)
        session.say("one")
        session.say("two")
        assert narrator.calls == [("stop", None), ("speak", "one"), ("stop", None), ("speak", "two")]
        assert session.current == "two"

    def test_cancel_clears_current(self):
        session = NarrationSession(RecordingNarrator())
        session.say("one")
        session.cancel()
        assert session.current is None

    def test_failures_are_counted_not_raised(self):
        session = NarrationSession(BrokenNarrator())
        session.say("hello")
        assert session.failures == 2
        assert session.current is None

    def test_defaults_to_silence(self):
        session = NarrationSession()
        assert isinstance(session.narrator, NullNarrator)
        session.say("quiet")
        assert session.failures == 0


class TestClientNarrator:
    def test_drain_returns_commands_in_order(self):
        narrator = ClientNarrator()
        NarrationSession(narrator).say("Visit node B.")
        assert narrator.drain() == [
            {"action": "stop", "text": ""},
            {"action": "speak", "text": "Visit node B."},
        ]

    def test_drain_empties_the_queue(self):
        narrator = ClientNarrator()
        narrator.speak("x")
        narrator.drain()
        assert narrator.drain() == []
