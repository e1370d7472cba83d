"""Fixed-capacity placement history."""

from collections import deque
from typing import Deque, List

from schemas import PlacementEvent


class PlacementRing:
    """Ring buffer of placements; the oldest entry is dropped when full."""

    def __init__(self, capacity: int):
        self.capacity = capacity
        self._events: Deque[PlacementEvent] = deque(maxlen=capacity)

    def push(self, event: PlacementEvent) -> None:
        self._events.append(event)

    def prune_before(self, min_timestamp: float) -> List[PlacementEvent]:
        """Keep only events at or after ``min_timestamp`` and return them."""
        kept = [e for e in self._events if e.timestamp >= min_timestamp]
        if len(kept) != len(self._events):
            self._events = deque(kept, maxlen=self.capacity)
        return kept

    def to_list(self) -> List[PlacementEvent]:
        return list(self._events)

    def __len__(self) -> int:
        return len(self._events)
