"""Guard service facade wiring the components together."""

import asyncio
import time
from enum import Enum
from typing import List, Optional, Sequence

import structlog

from common import GuardException
from monitoring.metrics import GuardMetrics
from schemas import Detected, LineDetection, NotDetected, Origin, RiskVerdict
from guard.config import GuardConfig
from guard.detection import ScriptedLineDetector
from guard.limiter import AdaptiveRateLimiter
from guard.providers import BaseProvider, build_providers
from guard.registry import TorExitRegistry
from guard.reputation import (
    InMemoryReputationStore,
    OwnershipLookup,
    RdapOwnershipLookup,
    ReputationService,
    ReputationStore,
)
from guard.scheduler import PeriodicTask
from guard.scoring import EnsembleRiskScorer

logger = structlog.get_logger()


class Admission(str, Enum):
    ALLOW = "allow"
    THROTTLE = "throttle"
    DENY = "deny"


class GuardService:
    """Reputation, admission and placement checks keyed by origin.

    Components are constructed here and injected into one another; callers
    hold the service, never module-level singletons. Malformed input never
    raises: it yields a None verdict, an allow decision or ``NotDetected``.
    """

    def __init__(
        self,
        config: Optional[GuardConfig] = None,
        store: Optional[ReputationStore] = None,
        ownership: Optional[OwnershipLookup] = None,
        providers: Optional[Sequence[BaseProvider]] = None,
        metrics: Optional[GuardMetrics] = None,
        tor_registry: Optional[TorExitRegistry] = None,
        scorer: Optional[EnsembleRiskScorer] = None,
    ):
        """
        Initialize service.

        Args:
            config: Guard configuration (defaults apply when omitted)
            store: Reputation store (default: in-memory)
            ownership: Network ownership lookup (default: RDAP)
            providers: Signal providers (default: built from config)
            metrics: Metrics shared by all components (default: built from
                the metrics section when enabled)
            tor_registry: Pre-built registry (default: from config)
            scorer: Pre-built scorer (default: from providers and registry)
        """
        self.config = config or GuardConfig()
        if metrics is None and self.config.metrics.enabled:
            metrics = GuardMetrics(
                pushgateway_url=self.config.metrics.pushgateway_url,
                job_name=self.config.metrics.job_name,
                timeout_seconds=self.config.metrics.timeout,
            )
        self.metrics = metrics

        self.tor_registry = tor_registry or TorExitRegistry(
            self.config.tor_registry, metrics=metrics
        )
        if scorer is None:
            if providers is None:
                providers = build_providers(self.config.providers)
            scorer = EnsembleRiskScorer(
                providers,
                self.tor_registry,
                self.config.scoring,
                metrics=metrics,
            )
        self.scorer = scorer

        self.reputation = ReputationService(
            scorer,
            store if store is not None else InMemoryReputationStore(),
            ownership if ownership is not None else RdapOwnershipLookup(),
            self.config.cache,
        )
        self.limiter = AdaptiveRateLimiter(self.config.rate_limit, metrics=metrics)
        self.detector = ScriptedLineDetector(
            self.config.line_detector,
            metrics=metrics,
            on_detection=self._on_detection,
        )
        self._tasks: List[PeriodicTask] = []

    @staticmethod
    def _origin(ip: Optional[str], user_id=None) -> Optional[Origin]:
        try:
            return Origin.parse(ip, user_id)
        except GuardException as e:
            logger.debug("Rejected malformed origin", ip=ip, **e.log_fields())
            return None

    async def check_origin(self, ip: str, user_id=None) -> Optional[RiskVerdict]:
        """Risk verdict for an address, None when the address is malformed."""
        origin = self._origin(ip, user_id)
        if origin is None:
            return None

        _, verdict = await self.reputation.get_reputation(
            origin.ip, want_network=False, want_risk=True
        )
        return verdict

    async def evaluate(self, ip: str, user_id=None) -> Admission:
        """
        Decide whether to serve one request from an origin.

        Hard-blocked origins are denied without a lookup; otherwise the
        origin's verdict picks the quota tier and the request is counted.
        """
        origin = self._origin(ip, user_id)
        if origin is None:
            return Admission.ALLOW
        if self.limiter.is_blocked(origin):
            self.limiter.admit(origin)
            return Admission.DENY

        verdict = await self.check_origin(origin.ip, origin.user_id)
        risk_score = verdict.score if verdict else 0

        if self.limiter.admit(origin, risk_score):
            return Admission.ALLOW
        if self.limiter.is_blocked(origin):
            return Admission.DENY
        return Admission.THROTTLE

    async def admit(self, ip: str, user_id=None) -> bool:
        return await self.evaluate(ip, user_id) is Admission.ALLOW

    def record_placement(
        self,
        ip: str,
        x: float,
        y: float,
        color: int = -1,
        timestamp: Optional[float] = None,
        user_id=None,
    ) -> LineDetection:
        origin = self._origin(ip, user_id)
        if origin is None:
            return NotDetected("invalid_origin")
        return self.detector.record_event(origin, x, y, color, timestamp)

    def report_abuse(self, ip: str, reason: str, user_id=None, score: Optional[int] = None) -> None:
        origin = self._origin(ip, user_id)
        if origin is None:
            return
        self.limiter.mark_suspicious(origin, reason, score=score)

    def _on_detection(self, key: str, result: Detected) -> None:
        self.limiter.mark_suspicious(
            key,
            f"scripted_line:{result.direction.value}",
            score=self.config.rate_limit.detection_risk_score,
        )

    async def same_provider(self, ip_a: str, ip_b: str) -> bool:
        return await self.reputation.same_provider(ip_a, ip_b)

    def _registry_stale(self) -> bool:
        age = time.time() - self.tor_registry.last_update
        return len(self.tor_registry) == 0 or age > self.config.tor_registry.refresh_interval

    async def push_metrics(self) -> None:
        """Push to the Pushgateway from a worker thread; the push blocks."""
        if self.metrics:
            await asyncio.to_thread(self.metrics.push)

    async def start(self) -> None:
        """Start registry refresh, cleanup sweeps and the metrics push."""
        if self._tasks:
            return

        self._tasks = [
            PeriodicTask(
                "tor_registry_refresh",
                self.config.tor_registry.refresh_interval,
                self.tor_registry.refresh,
                run_immediately=self._registry_stale(),
            ),
            PeriodicTask(
                "rate_limiter_cleanup",
                self.config.rate_limit.cleanup_interval,
                self.limiter.cleanup,
            ),
            PeriodicTask(
                "line_detector_cleanup",
                self.config.line_detector.cleanup_interval,
                self.detector.cleanup,
            ),
        ]
        if self.metrics:
            self._tasks.append(
                PeriodicTask(
                    "metrics_push",
                    self.config.metrics.push_interval,
                    self.push_metrics,
                )
            )
        for task in self._tasks:
            task.start()

        logger.info(
            "Guard service started",
            providers=[p.name for p in self.scorer.providers],
            tor_exit_nodes=len(self.tor_registry),
        )

    async def stop(self) -> None:
        for task in self._tasks:
            await task.stop()
        self._tasks = []
        self.detector.shutdown()
        await self.push_metrics()
        logger.info("Guard service stopped")

    async def __aenter__(self) -> "GuardService":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()
