"""Per-origin scripted line detection over recent placements."""

import math
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

import structlog

from monitoring.metrics import GuardMetrics
from schemas import Detected, LineDetection, NotDetected, PlacementEvent
from guard.config import LineDetectorConfig
from guard.limiter import origin_key
from .line_geometry import find_scripted_line
from .ring_buffer import PlacementRing

logger = structlog.get_logger()

DetectionCallback = Callable[[str, Detected], None]


@dataclass(slots=True)
class PlacementHistory:
    events: PlacementRing
    last_activity: float
    last_report: Optional[float] = None


@dataclass(slots=True)
class DetectorStats:
    events_processed: int = 0
    analyses_run: int = 0
    lines_detected: int = 0
    reports: int = 0
    rejected: int = 0


class ScriptedLineDetector:
    """Flags origins whose recent placements form a machine-uniform line.

    Each ``record_event`` appends to the origin's ring buffer, prunes it to
    the history window and runs ``find_scripted_line`` over the placements
    inside the shorter detection window. Detections are always returned;
    ``on_detection`` fires at most once per ``report_cooldown`` per origin.
    """

    def __init__(
        self,
        config: Optional[LineDetectorConfig] = None,
        clock: Callable[[], float] = time.time,
        metrics: Optional[GuardMetrics] = None,
        on_detection: Optional[DetectionCallback] = None,
    ):
        self._config = config or LineDetectorConfig()
        self.clock = clock
        self.metrics = metrics
        self.on_detection = on_detection
        self._histories: Dict[str, PlacementHistory] = {}
        self._stats = DetectorStats()

    @property
    def config(self) -> LineDetectorConfig:
        return self._config

    def update_config(self, **changes) -> LineDetectorConfig:
        """Replace thresholds; buffer capacity applies to new histories."""
        self._config = self._config.model_copy(update=changes)
        logger.info("Line detector config updated", changes=changes)
        return self._config

    def __len__(self) -> int:
        return len(self._histories)

    def record_event(
        self,
        origin,
        x: float,
        y: float,
        color: int = -1,
        timestamp: Optional[float] = None,
    ) -> LineDetection:
        """
        Record one placement and test the origin's recent history.

        Args:
            origin: Origin or state key; empty identities are rejected
            x: Canvas x coordinate
            y: Canvas y coordinate
            color: Palette index, -1 when unknown
            timestamp: Placement time (defaults to the detector clock)

        Returns:
            Detected or NotDetected; malformed input yields NotDetected
        """
        key = origin_key(origin) if origin is not None else ""
        if not key:
            self._stats.rejected += 1
            return NotDetected("missing_identity")
        if not (_finite(x) and _finite(y)):
            self._stats.rejected += 1
            return NotDetected("non_finite_coordinates")

        config = self._config
        now = self.clock() if timestamp is None else timestamp
        self._stats.events_processed += 1

        history = self._histories.get(key)
        if history is None:
            if len(self._histories) >= config.max_tracked:
                return NotDetected("capacity")
            history = PlacementHistory(
                events=PlacementRing(config.buffer_capacity), last_activity=now
            )
            self._histories[key] = history

        history.events.push(
            PlacementEvent(x=round(x), y=round(y), color=color, timestamp=now)
        )
        history.last_activity = now
        events = history.events.prune_before(now - config.history_window)

        if len(events) < config.min_points:
            return NotDetected("insufficient_points")

        recent = [e for e in events if e.timestamp >= now - config.detection_window]
        if len(recent) < config.min_points:
            return NotDetected("insufficient_recent_points")

        self._stats.analyses_run += 1
        result = find_scripted_line(recent, config)

        if result.detected:
            self._stats.lines_detected += 1
            self._report(key, history, result, now)

        return result

    def _report(
        self, key: str, history: PlacementHistory, result: Detected, now: float
    ) -> None:
        if (
            history.last_report is not None
            and now - history.last_report < self._config.report_cooldown
        ):
            return

        history.last_report = now
        self._stats.reports += 1

        logger.warning("Scripted line detected", origin=key, **result.summary())
        if self.metrics:
            self.metrics.record_line_detection(result.direction.value)

        if self.on_detection is not None:
            try:
                self.on_detection(key, result)
            except Exception as e:  # noqa: BLE001
                logger.error(
                    "Detection callback failed",
                    origin=key,
                    error=str(e),
                    error_type=type(e).__name__,
                )

    def stats(self) -> Dict[str, int]:
        return {
            "events_processed": self._stats.events_processed,
            "analyses_run": self._stats.analyses_run,
            "lines_detected": self._stats.lines_detected,
            "reports": self._stats.reports,
            "rejected": self._stats.rejected,
            "active_origins": len(self._histories),
        }

    def cleanup(self, now: Optional[float] = None) -> int:
        """
        Drop idle histories, then the least recently active over capacity.

        Returns:
            Number of histories removed
        """
        now = self.clock() if now is None else now
        max_age = self._config.history_window

        removed = 0
        for key in [k for k, h in self._histories.items() if now - h.last_activity > max_age]:
            history = self._histories.get(key)
            if history is not None and now - history.last_activity > max_age:
                del self._histories[key]
                removed += 1

        overflow = len(self._histories) - self._config.max_tracked
        if overflow > 0:
            oldest = sorted(self._histories.items(), key=lambda item: item[1].last_activity)
            for key, _ in oldest[:overflow]:
                del self._histories[key]
                removed += 1

        if removed:
            logger.info(
                "Line detector cleanup",
                removed=removed,
                active_origins=len(self._histories),
            )
        return removed

    def shutdown(self) -> None:
        self._histories.clear()
        logger.info("Line detector shut down")


def _finite(value) -> bool:
    try:
        return math.isfinite(value)
    except TypeError:
        return False
