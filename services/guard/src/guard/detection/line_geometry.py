"""Straight-line signature tests over placement sequences.

Everything here is pure: the functions take an immutable sequence of
placements and return a ``NotDetected`` or ``Detected`` value.
"""

import math
from typing import Sequence

from schemas import Detected, LineDetection, LineDirection, NotDetected, PlacementEvent
from guard.config import LineDetectorConfig


def classify_direction(angle: float, tolerance: float) -> LineDirection:
    """Map an ``atan2`` angle in degrees to a line direction."""
    if abs(angle) < tolerance or abs(abs(angle) - 180) < tolerance:
        return LineDirection.HORIZONTAL
    if abs(abs(angle) - 90) < tolerance:
        return LineDirection.VERTICAL
    if abs(abs(angle) - 45) < tolerance or abs(abs(angle) - 135) < tolerance:
        return LineDirection.DIAGONAL_45
    return LineDirection.DIAGONAL


def sort_events(events: Sequence[PlacementEvent]) -> list:
    return sorted(events, key=lambda e: (e.timestamp, e.x, e.y))


def check_line(
    events: Sequence[PlacementEvent],
    config: LineDetectorConfig,
    offset: int = 0,
) -> LineDetection:
    """
    Test one time-sorted sequence for a machine-uniform straight line.

    Args:
        events: Placements sorted by time then position
        config: Detector thresholds
        offset: Index of ``events[0]`` in the scanned window

    Returns:
        Detected with the line geometry, or NotDetected naming the failed check
    """
    if len(events) < config.min_points:
        return NotDetected("insufficient_points")

    first, last = events[0], events[-1]
    dx = last.x - first.x
    dy = last.y - first.y
    length = math.hypot(dx, dy)
    if length < config.min_line_length:
        return NotDetected("too_short")

    dir_x, dir_y = dx / length, dy / length

    projections = []
    max_perp = 0.0
    for event in events:
        rel_x = event.x - first.x
        rel_y = event.y - first.y
        proj = rel_x * dir_x + rel_y * dir_y
        perp = math.hypot(rel_x - proj * dir_x, rel_y - proj * dir_y)
        if perp > config.collinearity_tolerance:
            return NotDetected("not_collinear")
        max_perp = max(max_perp, perp)
        projections.append(proj)

    for previous, current in zip(projections, projections[1:]):
        if current <= previous:
            return NotDetected("backtracking")

    spacings = [
        math.hypot(b.x - a.x, b.y - a.y) for a, b in zip(events, events[1:])
    ]
    median = sorted(spacings)[len(spacings) // 2]
    if median < config.min_spacing or median > config.max_spacing:
        return NotDetected("spacing_out_of_range")

    tolerance = median * config.spacing_tolerance_rel
    for spacing in spacings:
        if abs(spacing - median) > tolerance:
            return NotDetected("irregular_spacing")
        if spacing < config.degenerate_spacing:
            return NotDetected("degenerate_spacing")

    angle = math.degrees(math.atan2(dy, dx))

    return Detected(
        point_count=len(events),
        line_length=round(length, 2),
        direction=classify_direction(angle, config.angle_tolerance_deg),
        angle=round(angle, 1),
        median_spacing=round(median, 2),
        max_perp_distance=round(max_perp, 2),
        start=(first.x, first.y),
        end=(last.x, last.y),
        start_time=first.timestamp,
        end_time=last.timestamp,
        start_index=offset,
        end_index=offset + len(events) - 1,
        points=tuple(events),
    )


def find_scripted_line(
    events: Sequence[PlacementEvent], config: LineDetectorConfig
) -> LineDetection:
    """
    Scan suffixes of the sorted window for the first passing line.

    Start offsets are tried from the oldest placement forward, so the
    longest qualifying suffix wins; the scan stops at the first match.
    """
    ordered = sort_events(events)
    if len(ordered) < config.min_points:
        return NotDetected("insufficient_points")

    for start in range(len(ordered) - config.min_points + 1):
        result = check_line(ordered[start:], config, offset=start)
        if result.detected:
            return result

    return NotDetected("no_line")
