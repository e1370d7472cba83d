"""Prometheus metrics for the abuse guard."""

from __future__ import annotations

import os
import socket
from dataclasses import dataclass, field
from typing import MutableMapping, Optional

import structlog
from prometheus_client import CollectorRegistry, Counter, Gauge, push_to_gateway

logger = structlog.get_logger(__name__)


@dataclass(slots=True)
class GuardMetrics:
    """Counters and gauges describing guard decisions.

    Every guard component accepts an optional ``GuardMetrics``; the same
    instance is shared so one registry holds the whole picture.
    """

    pushgateway_url: Optional[str] = None
    job_name: str = "abuse_guard"
    namespace: str = "canvas"
    subsystem: str = "guard"
    default_labels: MutableMapping[str, str] = field(default_factory=dict)
    timeout_seconds: int = 5
    registry: CollectorRegistry = field(default_factory=CollectorRegistry)
    verdicts: Counter = field(init=False, repr=False)
    provider_failures: Counter = field(init=False, repr=False)
    admissions: Counter = field(init=False, repr=False)
    line_detections: Counter = field(init=False, repr=False)
    registry_refreshes: Counter = field(init=False, repr=False)
    exit_nodes: Gauge = field(init=False, repr=False)
    _hostname: str = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if not self.pushgateway_url:
            self.pushgateway_url = os.getenv(
                "PROMETHEUS_PUSHGATEWAY_URL",
                "http://prometheus-pushgateway:9091",
            )
        if not self.default_labels:
            self.default_labels = {
                "environment": os.getenv("ENVIRONMENT", "development"),
            }
        self._hostname = socket.gethostname()

        self.verdicts = Counter(
            f"{self._metric_prefix}_verdicts",
            "Risk verdicts computed, by classification",
            labelnames=["classification"],
            registry=self.registry,
        )
        self.provider_failures = Counter(
            f"{self._metric_prefix}_provider_failures",
            "Signal provider lookups that failed or timed out",
            labelnames=["provider"],
            registry=self.registry,
        )
        self.admissions = Counter(
            f"{self._metric_prefix}_admissions",
            "Rate limiter admission decisions",
            labelnames=["decision"],
            registry=self.registry,
        )
        self.line_detections = Counter(
            f"{self._metric_prefix}_scripted_lines",
            "Scripted line detections, by direction",
            labelnames=["direction"],
            registry=self.registry,
        )
        self.registry_refreshes = Counter(
            f"{self._metric_prefix}_tor_refreshes",
            "Tor exit registry refresh attempts, by outcome",
            labelnames=["outcome"],
            registry=self.registry,
        )
        self.exit_nodes = Gauge(
            f"{self._metric_prefix}_tor_exit_nodes",
            "Exit addresses in the active Tor registry snapshot",
            registry=self.registry,
        )

    @property
    def _metric_prefix(self) -> str:
        return f"{self.namespace}_{self.subsystem}".replace("-", "_")

    def record_verdict(self, classification: str) -> None:
        self.verdicts.labels(classification=classification).inc()

    def record_provider_failure(self, provider: str) -> None:
        self.provider_failures.labels(provider=provider).inc()

    def record_admission(self, allowed: bool) -> None:
        self.admissions.labels(decision="allow" if allowed else "deny").inc()

    def record_line_detection(self, direction: str) -> None:
        self.line_detections.labels(direction=direction).inc()

    def record_registry_refresh(self, outcome: str, exit_nodes: Optional[int] = None) -> None:
        self.registry_refreshes.labels(outcome=outcome).inc()
        if exit_nodes is not None:
            self.exit_nodes.set(exit_nodes)

    def record_exit_nodes(self, exit_nodes: int) -> None:
        self.exit_nodes.set(exit_nodes)

    def push(self) -> None:
        """Push the current registry to the Prometheus Pushgateway."""
        grouping_key = {"instance": self._hostname, **self.default_labels}

        try:
            push_to_gateway(
                self.pushgateway_url,
                job=self.job_name,
                registry=self.registry,
                grouping_key=grouping_key,
                timeout=self.timeout_seconds,
            )
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "Failed to push metrics to Prometheus Pushgateway",
                pushgateway_url=self.pushgateway_url,
                error=str(exc),
            )
