"""Placement events and scripted-line detection results."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple


class LineDirection(str, Enum):
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"
    DIAGONAL_45 = "diagonal_45"
    DIAGONAL = "diagonal"


@dataclass(frozen=True, slots=True)
class PlacementEvent:
    """A single pixel placement."""

    x: int
    y: int
    color: int
    timestamp: float


@dataclass(frozen=True, slots=True)
class NotDetected:
    """No scripted line in the inspected history."""

    reason: Optional[str] = None
    detected: bool = field(default=False, init=False)


@dataclass(frozen=True, slots=True)
class Detected:
    """A machine-uniform straight line found in the recent placements.

    ``start_index``/``end_index`` locate the offending points within the
    time-sorted window that was scanned.
    """

    point_count: int
    line_length: float
    direction: LineDirection
    angle: float
    median_spacing: float
    max_perp_distance: float
    start: Tuple[int, int]
    end: Tuple[int, int]
    start_time: float
    end_time: float
    start_index: int
    end_index: int
    points: Tuple[PlacementEvent, ...] = ()
    detected: bool = field(default=True, init=False)

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time

    def summary(self) -> dict:
        """Loggable details without the raw points."""
        return {
            "point_count": self.point_count,
            "line_length": self.line_length,
            "direction": self.direction.value,
            "angle": self.angle,
            "median_spacing": self.median_spacing,
            "max_perp_distance": self.max_perp_distance,
            "start": list(self.start),
            "end": list(self.end),
            "duration": round(self.duration, 3),
        }
