"""
engine/
-------
Diff → encode → playback pipeline.

    from engine import PlaybackController, get_family, compute, encode
"""

from engine.entity     import Entity, POSITIONED_KINDS, CONNECTOR_KINDS
from engine.families   import FamilyConfig, StyleRule, Projection, FAMILIES, get_family
from engine.diff       import CategoryAssignment, compute, changed_keys
from engine.encoder    import Style, encode, encode_all, PALETTES, THEMES
from engine.narration  import Narrator, NullNarrator, ClientNarrator, NarrationSession
from engine.playback   import PlaybackController, Frame, Renderer

__all__ = [
    "Entity",
    "POSITIONED_KINDS",
    "CONNECTOR_KINDS",
    "FamilyConfig",
    "StyleRule",
    "Projection",
    "FAMILIES",
    "get_family",
    "CategoryAssignment",
    "compute",
    "changed_keys",
    "Style",
    "encode",
    "encode_all",
    "PALETTES",
    "THEMES",
    "Narrator",
    "NullNarrator",
    "ClientNarrator",
    "NarrationSession",
    "PlaybackController",
    "Frame",
    "Renderer",
]
