"""Cached, coalesced reputation queries."""

import asyncio
from datetime import datetime, timedelta, UTC
from typing import Callable, Dict, Optional, Tuple

import structlog

from common import InvalidOriginError, hours
from schemas import NetworkInfo, RiskVerdict, normalize_ip, subnet_prefix
from guard.config import CachePolicy
from guard.config.lists import sibling_asn_map
from guard.scoring import EnsembleRiskScorer
from .ownership import OwnershipLookup
from .store import ReputationStore, StoredReputation

logger = structlog.get_logger()

Reputation = Tuple[Optional[NetworkInfo], Optional[RiskVerdict]]
RequestKey = Tuple[str, bool, bool]


class ReputationService:
    """Front door for reputation lookups.

    Concurrent calls with the same address and parameters share one
    in-flight computation. The store is consulted first; only missing or
    expired parts are computed, and every computed part is persisted with
    an outcome-dependent lifetime before it is returned.
    """

    def __init__(
        self,
        scorer: EnsembleRiskScorer,
        store: ReputationStore,
        ownership: Optional[OwnershipLookup] = None,
        policy: Optional[CachePolicy] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ):
        """
        Initialize service.

        Args:
            scorer: Ensemble scorer used on a verdict cache miss
            store: Persistent store of verdicts and ownership records
            ownership: Network ownership lookup (None disables it)
            policy: Cache lifetimes
            clock: Wall clock returning aware datetimes
        """
        self.scorer = scorer
        self.store = store
        self.ownership = ownership
        self.policy = policy or CachePolicy()
        self.clock = clock
        self._inflight: Dict[RequestKey, asyncio.Task] = {}
        self._siblings = sibling_asn_map()

    @property
    def inflight(self) -> int:
        return len(self._inflight)

    async def get_reputation(
        self,
        ip: str,
        want_network: Optional[bool] = None,
        want_risk: Optional[bool] = None,
    ) -> Reputation:
        """
        Return ownership and risk for an address.

        With neither flag given both parts are wanted.

        Returns:
            (NetworkInfo or None, RiskVerdict or None)

        Raises:
            InvalidOriginError: If ip is not a valid address
        """
        if want_network is None and want_risk is None:
            want_network = want_risk = True
        want_network, want_risk = bool(want_network), bool(want_risk)

        address = normalize_ip(ip)
        if address is None:
            raise InvalidOriginError("Invalid address", context={"ip": ip})

        key = (address, want_network, want_risk)
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(
                self._resolve(address, want_network, want_risk)
            )
            self._inflight[key] = task
            task.add_done_callback(lambda _t, k=key: self._inflight.pop(k, None))
        else:
            logger.debug("Joining in-flight reputation lookup", ip=address)

        return await asyncio.shield(task)

    async def _read_store(self, ip: str) -> Optional[StoredReputation]:
        try:
            return await self.store.get(ip)
        except Exception as e:  # noqa: BLE001
            logger.error(
                "Reputation store read failed, treating as miss",
                ip=ip,
                error=str(e),
                error_type=type(e).__name__,
            )
            return None

    async def _resolve(self, ip: str, want_network: bool, want_risk: bool) -> Reputation:
        stored = await self._read_store(ip)
        network = stored.network if stored and want_network else None
        verdict = stored.verdict if stored and want_risk else None

        need_network = want_network and network is None
        need_risk = want_risk and verdict is None
        if not (need_network or need_risk):
            return network, verdict

        computed_network, computed_verdict = await asyncio.gather(
            self._lookup_network(ip) if need_network else _none(),
            self._score(ip) if need_risk else _none(),
        )

        if need_network:
            network = computed_network
        if need_risk:
            verdict = computed_verdict

        try:
            await self.store.put(ip, computed_verdict, computed_network)
        except Exception as e:  # noqa: BLE001
            logger.error(
                "Reputation store write failed",
                ip=ip,
                error=str(e),
                error_type=type(e).__name__,
            )

        return network, verdict

    async def _score(self, ip: str) -> RiskVerdict:
        now = self.clock()
        try:
            verdict = await self.scorer.score(ip)
        except Exception as e:  # noqa: BLE001
            logger.error(
                "Risk scoring failed, storing placeholder",
                ip=ip,
                error=str(e),
                error_type=type(e).__name__,
            )
            verdict = RiskVerdict(
                ip=ip, score=0, flags=["lookup_failed"], low_confidence=True
            )

        return verdict.model_copy(
            update={"checked_at": now, "expires_at": now + self.verdict_lifetime(verdict)}
        )

    def verdict_lifetime(self, verdict: RiskVerdict) -> timedelta:
        """Confirmed proxies live longest, failures shortest."""
        policy = self.policy
        if verdict.is_proxy:
            return hours(policy.proxy_hours)
        if verdict.low_confidence:
            return hours(policy.failure_hours)
        if verdict.is_high_risk or verdict.score >= policy.borderline_score:
            return hours(policy.borderline_hours)
        return hours(policy.clean_hours)

    async def _lookup_network(self, ip: str) -> Optional[NetworkInfo]:
        now = self.clock()
        info = None

        if self.ownership is not None:
            try:
                info = await self.ownership.lookup(ip)
            except Exception as e:  # noqa: BLE001
                logger.warning(
                    "Ownership lookup failed",
                    ip=ip,
                    error=str(e),
                    error_type=type(e).__name__,
                )

        if info is None:
            placeholder_range = subnet_prefix(ip)
            if placeholder_range is None:
                return None
            return NetworkInfo(
                range=placeholder_range,
                expires_at=now + hours(self.policy.network_placeholder_hours),
            )

        return info.model_copy(
            update={"expires_at": now + hours(self.policy.network_hours)}
        )

    async def same_provider(self, ip_a: str, ip_b: str) -> bool:
        """
        Whether two addresses belong to the same provider.

        When in doubt (unknown ownership on either side) the answer is True.
        """
        a, b = normalize_ip(ip_a), normalize_ip(ip_b)
        if a is None or b is None or a == b:
            return True

        (network_a, _), (network_b, _) = await asyncio.gather(
            self.get_reputation(a, want_network=True, want_risk=False),
            self.get_reputation(b, want_network=True, want_risk=False),
        )

        if not network_a or not network_b or not network_a.asn or not network_b.asn:
            return True
        if network_a.asn == network_b.asn:
            return True
        if network_a.org and network_a.org == network_b.org:
            return True
        return network_b.asn in self._siblings.get(network_a.asn, frozenset())


async def _none() -> None:
    return None
