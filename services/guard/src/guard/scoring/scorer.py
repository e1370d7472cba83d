"""Ensemble IP risk scorer."""

import asyncio
import ipaddress
import time
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

import structlog

from monitoring.metrics import GuardMetrics
from schemas import Classification, RiskVerdict, Signal, parse_ip
from guard.config import ScoringPolicy
from guard.providers import BaseProvider, PortProbeProvider, ReverseDNSProvider
from guard.registry import TorExitRegistry
from .fusion import Fusion, fuse_signals

logger = structlog.get_logger()


class SubnetBlocklist:
    """Static list of blocked networks with per-prefix-length lookups."""

    def __init__(self, networks: Iterable[str]):
        self.networks = frozenset(ipaddress.ip_network(n, strict=False) for n in networks)
        self._prefixes = {
            4: sorted({n.prefixlen for n in self.networks if n.version == 4}),
            6: sorted({n.prefixlen for n in self.networks if n.version == 6}),
        }

    def __contains__(self, ip: str) -> bool:
        address = parse_ip(ip)
        if address is None:
            return False
        for prefixlen in self._prefixes[address.version]:
            network = ipaddress.ip_network(f"{address}/{prefixlen}", strict=False)
            if network in self.networks:
                return True
        return False


class EnsembleRiskScorer:
    """Fans out to signal providers and fuses the answers into a verdict.

    ``score`` never raises for provider trouble: each provider is bounded by
    its own timeout and failures only remove that provider's signal. With
    no answers at all the verdict is marked ``low_confidence``.
    """

    def __init__(
        self,
        providers: Sequence[BaseProvider],
        tor_registry: TorExitRegistry,
        policy: Optional[ScoringPolicy] = None,
        reverse_dns: Optional[BaseProvider] = None,
        port_probe: Optional[BaseProvider] = None,
        metrics: Optional[GuardMetrics] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize scorer.

        Args:
            providers: Independent reputation providers queried concurrently
            tor_registry: Exit registry consulted after fusion
            policy: Thresholds, probe ports, blocked subnets
            reverse_dns: PTR provider (default: system resolver)
            port_probe: Second-pass prober (default: from policy ports)
            metrics: Optional metrics sink
            clock: Monotonic clock for slow-check logging
        """
        self.policy = policy or ScoringPolicy()
        self.providers = list(providers)
        self.tor_registry = tor_registry
        self.reverse_dns = reverse_dns or ReverseDNSProvider()
        self.port_probe = port_probe or PortProbeProvider(
            self.policy.probe_ports, timeout=self.policy.probe_timeout
        )
        self.blocklist = SubnetBlocklist(self.policy.blocked_subnets)
        self.metrics = metrics
        self.clock = clock

    async def _settle(
        self, provider: BaseProvider, ip: str, timeout: float
    ) -> Optional[Signal]:
        """Run one provider; failures and timeouts resolve to None."""
        try:
            return await asyncio.wait_for(provider.lookup(ip), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning("Provider timed out", provider=provider.name, ip=ip, timeout=timeout)
        except Exception as e:  # noqa: BLE001
            logger.warning(
                "Provider lookup failed",
                provider=provider.name,
                ip=ip,
                error=str(e),
                error_type=type(e).__name__,
            )

        if self.metrics:
            self.metrics.record_provider_failure(provider.name)
        return None

    async def collect(self, ip: str) -> Tuple[List[Signal], Optional[Signal]]:
        """First pass: all providers plus reverse DNS, concurrently."""
        timeout = self.policy.provider_timeout
        provider_results, ptr = await asyncio.gather(
            asyncio.gather(*(self._settle(p, ip, timeout) for p in self.providers)),
            self._settle(self.reverse_dns, ip, timeout),
        )
        return [s for s in provider_results if s is not None], ptr

    def is_inconclusive(self, score: int) -> bool:
        return self.policy.inconclusive_low <= score < self.policy.inconclusive_high

    async def probe(self, ip: str) -> Optional[Signal]:
        """Second pass: probe proxy ports, bounded by the probe timeout."""
        return await self._settle(self.port_probe, ip, self.policy.probe_timeout + 1.0)

    def apply_overrides(self, ip: str, fusion: Fusion) -> bool:
        """Static blocklist first, then the Tor registry. Returns blocked flag."""
        blocked = ip in self.blocklist
        if blocked:
            fusion.score = 100
            fusion.flags.append("blocked_subnet")

        tor_score = self.tor_registry.subnet_risk_score(ip)
        if tor_score > 0:
            fusion.score = max(fusion.score, tor_score)
            if self.tor_registry.is_exit_node(ip):
                fusion.flags.append("tor_exit_node_live")
                fusion.classification = Classification.TOR
            else:
                fusion.flags.append("tor_exit_subnet")

        fusion.score = min(fusion.score, 100)
        return blocked

    def classify(self, fusion: Fusion) -> Classification:
        if fusion.score < self.policy.proxy_threshold:
            return Classification.RESIDENTIAL
        return fusion.classification or Classification.SUSPICIOUS

    async def score(self, ip: str) -> RiskVerdict:
        """
        Compute the fused risk verdict for one address.

        Never raises: a malformed address gets the low-confidence default
        verdict flagged ``invalid_address`` without any provider call.
        """
        address = parse_ip(ip)
        if address is None:
            logger.warning("Cannot score invalid address", ip=ip)
            return RiskVerdict(
                ip=str(ip), score=0, flags=["invalid_address"], low_confidence=True
            )
        ip = str(address)

        started = self.clock()
        signals, ptr = await self.collect(ip)
        external_count = len(signals)
        if ptr is not None:
            signals.append(ptr)

        fusion = fuse_signals(signals, self.policy.residential_dampener)

        if self.is_inconclusive(fusion.score):
            logger.debug("Inconclusive first pass, probing ports", ip=ip, score=fusion.score)
            probe = await self.probe(ip)
            if probe is not None:
                signals.append(probe)
                fusion = fuse_signals(signals, self.policy.residential_dampener)

        blocked = self.apply_overrides(ip, fusion)
        classification = self.classify(fusion)

        verdict = RiskVerdict(
            ip=ip,
            score=fusion.score,
            flags=fusion.flags,
            classification=classification,
            operator=fusion.org,
            asn=fusion.asn,
            is_proxy=fusion.score >= self.policy.proxy_threshold or blocked,
            is_high_risk=fusion.score >= self.policy.high_risk_threshold,
            check_count=len(signals),
            low_confidence=external_count == 0,
        )

        duration = self.clock() - started
        if duration > self.policy.slow_check_seconds:
            logger.warning("Slow proxy check", ip=ip, duration=round(duration, 2))

        if verdict.is_proxy:
            logger.info(
                "Proxy detected",
                ip=ip,
                score=verdict.score,
                classification=verdict.classification.value,
                flags=verdict.flags,
            )
        if self.metrics:
            self.metrics.record_verdict(verdict.classification.value)

        return verdict
