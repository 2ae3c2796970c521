"""
errors.py — Visualizer Error Types
===================================
Every failure the core can raise.  They all derive from VisualizerError
so the web layer can catch the family with one except clause.

    SchemaError       – malformed / inconsistent trace (fatal at load time)
    IndexOutOfRange   – direct Diff Engine call with a bad step index
    UnknownEntity     – Layout Store lookup for an id never initialized
    UnstyledCategory  – Visual Encoder has no rule for a tag / role
"""

from typing import Any, Dict, Optional


class VisualizerError(Exception):
    """Base class for all visualizer errors."""

    def __init__(self, message: str = "Visualizer error", details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class SchemaError(VisualizerError):
    """Raised when raw trace data does not satisfy the trace schema."""

    def __init__(self, message: str = "Invalid step trace", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)


class IndexOutOfRange(VisualizerError, IndexError):
    def __init__(self, index: int, length: int):
        super().__init__(
            f"Step index {index} outside [0, {length})",
            {"index": index, "length": length},
        )
        self.index = index
        self.length = length


class UnknownEntity(VisualizerError, KeyError):
    def __init__(self, entity_id: str):
        super().__init__(f"Unknown entity: {entity_id!r}", {"entity_id": entity_id})
        self.entity_id = entity_id

    def __str__(self) -> str:
        return self.message


class UnstyledCategory(VisualizerError):
    """A tag or role reached the encoder without a style rule."""

    def __init__(self, family: str, category: str, entity_id: Optional[str] = None):
        super().__init__(
            f"No style rule for category {category!r} in family {family!r}",
            {"family": family, "category": category, "entity_id": entity_id},
        )
        self.family = family
        self.category = category
