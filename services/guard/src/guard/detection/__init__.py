"""Scripted placement detection."""

from .line_geometry import check_line, classify_direction, find_scripted_line
from .ring_buffer import PlacementRing
from .scripted_line import ScriptedLineDetector

__all__ = [
    "check_line",
    "classify_direction",
    "find_scripted_line",
    "PlacementRing",
    "ScriptedLineDetector",
]
