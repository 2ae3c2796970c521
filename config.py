"""
config.py — App Configuration
==============================
Class attributes with environment overrides, loaded by the Flask app
with `app.config.from_object(Config)`.

    VISUALIZER_SECRET_KEY   session signing key (random per process if unset)
    VISUALIZER_TRACE_DIR    directory holding the trace JSON files
    VISUALIZER_LOG_LEVEL    DEBUG | INFO | WARNING | …
    VISUALIZER_MAX_VISITS   live controllers kept before the least recently used is dropped
    VISUALIZER_HOST / VISUALIZER_PORT / VISUALIZER_DEBUG
"""

import os
import secrets

from steptrace import DATA_DIR


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class Config:
    SECRET_KEY:        str   = os.environ.get("VISUALIZER_SECRET_KEY") or secrets.token_hex(32)
    TRACE_DIR:         str   = os.environ.get("VISUALIZER_TRACE_DIR", str(DATA_DIR))
    LOG_LEVEL:         str   = os.environ.get("VISUALIZER_LOG_LEVEL", "INFO").upper()

    # explanation levels; every step's `actions` list has exactly this many entries
    DETAIL_LEVELS:     tuple = ("beginner", "advanced")

    # graph / list canvas; bar and tree diagrams size themselves
    CANVAS_WIDTH:      int   = 600
    CANVAS_HEIGHT:     int   = 400

    LAYOUT_SEED:       int   = 42
    SETTLE_ITERATIONS: int   = 50
    TICK_ITERATIONS:   int   = 5

    DEFAULT_THEME:     str   = "light"

    # browser speech settings for narration
    NARRATION_LANG:    str   = "en-US"
    NARRATION_RATE:    float = 1.1
    NARRATION_PITCH:   float = 1.0

    # live (session, visualizer) controllers kept in memory
    MAX_VISITS:        int   = int(os.environ.get("VISUALIZER_MAX_VISITS", "256"))

    HOST:              str   = os.environ.get("VISUALIZER_HOST", "127.0.0.1")
    PORT:              int   = int(os.environ.get("VISUALIZER_PORT", "5000"))
    DEBUG:             bool  = _env_bool("VISUALIZER_DEBUG", False)
