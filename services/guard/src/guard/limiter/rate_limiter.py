"""Risk-tiered sliding window rate limiter."""

import time
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Deque, Dict, Optional, Set, Union

import structlog

from monitoring.metrics import GuardMetrics
from schemas import Origin
from guard.config import RateLimitPolicy, TierLimit

logger = structlog.get_logger()

OriginKey = Union[Origin, str]

NORMAL = "normal"
SUSPICIOUS = "suspicious"
HIGH_RISK = "high_risk"
BLOCKED = "blocked"


def origin_key(origin: OriginKey) -> str:
    if isinstance(origin, Origin):
        return origin.key
    return str(origin)


@dataclass(slots=True)
class RateState:
    """Per-origin request history."""

    risk_score: int = 0
    last_request: float = 0.0
    violations: int = 0
    requests: Deque[float] = field(default_factory=deque)


class AdaptiveRateLimiter:
    """Admits requests against a quota chosen by the origin's risk score.

    Tiers are a pure function of the stored risk score, which only rises.
    A record is dropped after ``inactivity_timeout`` and recreated fresh,
    that is the only way a score goes back down. Quota breaches count as
    violations; ``max_violations`` of them hard-block the origin until
    ``unblock`` is called.
    """

    def __init__(
        self,
        policy: Optional[RateLimitPolicy] = None,
        clock: Callable[[], float] = time.monotonic,
        metrics: Optional[GuardMetrics] = None,
    ):
        self.policy = policy or RateLimitPolicy()
        self.clock = clock
        self.metrics = metrics
        self._states: Dict[str, RateState] = {}
        self._blocked: Set[str] = set()
        self._suspicious: Dict[str, float] = {}

    def tier_name(self, risk_score: int) -> str:
        if risk_score >= self.policy.block_threshold:
            return BLOCKED
        if risk_score >= self.policy.high_risk_threshold:
            return HIGH_RISK
        if risk_score >= self.policy.suspicious_threshold:
            return SUSPICIOUS
        return NORMAL

    def tier_for(self, risk_score: int) -> TierLimit:
        return self.policy.tiers[self.tier_name(risk_score)]

    def __len__(self) -> int:
        return len(self._states)

    def _new_state(self, key: str, risk_score: int, now: float) -> Optional[RateState]:
        if len(self._states) >= self.policy.max_tracked:
            logger.warning(
                "Rate limiter at capacity, not tracking origin",
                origin=key,
                tracked=len(self._states),
            )
            return None

        if key in self._suspicious:
            risk_score = max(risk_score, self.policy.suspicious_threshold)

        state = RateState(risk_score=risk_score, last_request=now)
        self._states[key] = state
        return state

    def admit(
        self,
        origin: OriginKey,
        risk_score: int = 0,
        now: Optional[float] = None,
    ) -> bool:
        """
        Record one request and decide whether to serve it.

        The request that pushes the window count over the quota is the one
        denied.

        Args:
            origin: Origin or its state key
            risk_score: Latest risk score; lower values never lower the stored one
            now: Request time (defaults to the limiter clock)

        Returns:
            True if the request is within quota
        """
        key = origin_key(origin)
        now = self.clock() if now is None else now

        if key in self._blocked:
            self._record(False)
            return False

        state = self._states.get(key)
        if state is None:
            state = self._new_state(key, risk_score, now)
            if state is None:
                allowed = self.tier_for(risk_score).requests > 0
                self._record(allowed)
                return allowed

        state.risk_score = max(state.risk_score, risk_score)
        state.last_request = now

        limit = self.tier_for(state.risk_score)
        window_start = now - limit.window
        requests = state.requests
        while requests and requests[0] <= window_start:
            requests.popleft()
        requests.append(now)

        if len(requests) > limit.requests:
            state.violations += 1
            if state.violations >= self.policy.max_violations:
                self._blocked.add(key)
                logger.warning(
                    "Origin blocked due to rate limit violations",
                    origin=key,
                    risk_score=state.risk_score,
                    violations=state.violations,
                )
            else:
                logger.info(
                    "Rate limit exceeded",
                    origin=key,
                    tier=self.tier_name(state.risk_score),
                    requests=len(requests),
                    quota=limit.requests,
                    violations=state.violations,
                )
            self._record(False)
            return False

        self._record(True)
        return True

    record_request = admit

    def _record(self, allowed: bool) -> None:
        if self.metrics:
            self.metrics.record_admission(allowed)

    def is_blocked(self, origin: OriginKey) -> bool:
        return origin_key(origin) in self._blocked

    def mark_suspicious(
        self,
        origin: OriginKey,
        reason: str,
        score: Optional[int] = None,
        now: Optional[float] = None,
    ) -> None:
        """Raise the origin's risk to at least the suspicious threshold."""
        key = origin_key(origin)
        now = self.clock() if now is None else now
        floor = max(self.policy.suspicious_threshold, score or 0)

        self._suspicious[key] = now
        state = self._states.get(key)
        if state is not None:
            state.risk_score = max(state.risk_score, floor)

        logger.info("Origin marked suspicious", origin=key, reason=reason, score=floor)

    def risk_score(self, origin: OriginKey) -> int:
        state = self._states.get(origin_key(origin))
        return state.risk_score if state else 0

    def stats(self, origin: OriginKey) -> Optional[Dict]:
        key = origin_key(origin)
        state = self._states.get(key)
        if state is None:
            return None

        limit = self.tier_for(state.risk_score)
        return {
            "risk_score": state.risk_score,
            "tier": self.tier_name(state.risk_score),
            "requests_in_window": len(state.requests),
            "max_requests": limit.requests,
            "violations": state.violations,
            "is_blocked": key in self._blocked,
        }

    def unblock(self, origin: OriginKey) -> None:
        key = origin_key(origin)
        self._blocked.discard(key)
        state = self._states.get(key)
        if state is not None:
            state.violations = 0
        logger.info("Origin unblocked", origin=key)

    def cleanup(self, now: Optional[float] = None) -> int:
        """
        Evict inactive records and expired suspicion marks.

        Each entry's age is re-checked at deletion time so a record touched
        since the scan started survives.

        Returns:
            Number of rate records evicted
        """
        now = self.clock() if now is None else now
        timeout = self.policy.inactivity_timeout

        stale = [k for k, s in self._states.items() if now - s.last_request > timeout]
        evicted = 0
        for key in stale:
            state = self._states.get(key)
            if state is not None and now - state.last_request > timeout:
                del self._states[key]
                evicted += 1

        memory = self.policy.suspicion_memory
        for key in [k for k, ts in self._suspicious.items() if now - ts > memory]:
            self._suspicious.pop(key, None)

        if evicted:
            logger.debug("Evicted inactive rate records", evicted=evicted, remaining=len(self._states))
        return evicted
