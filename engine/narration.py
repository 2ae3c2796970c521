"""
narration.py — Narration Session
=================================
Speech is an external collaborator with two calls:

    narrator.speak(text)
    narrator.stop_speaking()

The NarrationSession is owned by one PlaybackController and guarantees
at most one active narration: every say() cancels whatever is playing
before it starts the new text.  Narration is best-effort.  A narrator
that raises is logged and ignored; the visualization never waits on it.

Narrators:
  • NullNarrator    – does nothing (tests, headless use)
  • ClientNarrator  – queues commands for the browser, which plays them
                      with the Web Speech API (see main.py)
"""

import logging
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Narrators
# ---------------------------------------------------------------------------
class Narrator:
    """Interface for a speech backend."""

    def speak(self, text: str) -> None:
        raise NotImplementedError

    def stop_speaking(self) -> None:
        raise NotImplementedError


class NullNarrator(Narrator):
    def speak(self, text: str) -> None:
        pass

    def stop_speaking(self) -> None:
        pass


class ClientNarrator(Narrator):
    """
    Buffers {"action": "stop" | "speak", "text": …} commands.  The web
    layer drains the buffer into each JSON response; the page executes
    them in order (speechSynthesis.cancel() / speak()).
    """

    def __init__(self):
        self._commands: List[Dict[str, str]] = []

    def speak(self, text: str) -> None:
        self._commands.append({"action": "speak", "text": text})

    def stop_speaking(self) -> None:
        self._commands.append({"action": "stop", "text": ""})

    def drain(self) -> List[Dict[str, str]]:
        out, self._commands = self._commands, []
        return out


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------
class NarrationSession:
    """
    Attributes:
        narrator : The speech backend.
        current  : Text of the narration last started (None once cancelled).
        failures : How many backend calls have raised so far.
    """

    def __init__(self, narrator: Optional[Narrator] = None):
        self.narrator: Narrator      = narrator or NullNarrator()
        self.current:  Optional[str] = None
        self.failures: int           = 0

    def say(self, text: str) -> None:
        """Cancel any in-flight narration, then start `text`."""
        self.cancel()
        try:
            self.narrator.speak(text)
            self.current = text
        except Exception as exc:
            self.failures += 1
            logger.warning("Narration failed, continuing without speech: %s", exc)

    def cancel(self) -> None:
        try:
            self.narrator.stop_speaking()
        except Exception as exc:
            self.failures += 1
            logger.warning("Could not stop narration: %s", exc)
        self.current = None
