"""Monitoring package."""

from monitoring.metrics import GuardMetrics

__all__ = ["GuardMetrics"]
