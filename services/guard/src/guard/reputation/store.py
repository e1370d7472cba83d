"""Persistent reputation store interface and in-memory implementation."""

from dataclasses import dataclass
from datetime import datetime, UTC
from typing import Dict, Optional, Protocol

from schemas import NetworkInfo, RiskVerdict


@dataclass(frozen=True, slots=True)
class StoredReputation:
    network: Optional[NetworkInfo] = None
    verdict: Optional[RiskVerdict] = None


class ReputationStore(Protocol):
    """Storage for computed verdicts and ownership records, keyed by address.

    ``get`` returns only unexpired parts. ``put`` updates the parts that are
    not None and leaves the others as they are. Implementations raise
    ``StoreError`` on backend failure.
    """

    async def get(self, ip: str) -> Optional[StoredReputation]:
        ...

    async def put(
        self,
        ip: str,
        verdict: Optional[RiskVerdict],
        network: Optional[NetworkInfo],
    ) -> None:
        ...


class InMemoryReputationStore:
    """Process-local ``ReputationStore``; expired parts are dropped on read."""

    def __init__(self):
        self._verdicts: Dict[str, RiskVerdict] = {}
        self._networks: Dict[str, NetworkInfo] = {}

    async def get(
        self, ip: str, now: Optional[datetime] = None
    ) -> Optional[StoredReputation]:
        now = now or datetime.now(UTC)

        verdict = self._verdicts.get(ip)
        if verdict is not None and verdict.is_expired(now):
            del self._verdicts[ip]
            verdict = None

        network = self._networks.get(ip)
        if network is not None and network.is_expired(now):
            del self._networks[ip]
            network = None

        if verdict is None and network is None:
            return None
        return StoredReputation(network=network, verdict=verdict)

    async def put(
        self,
        ip: str,
        verdict: Optional[RiskVerdict],
        network: Optional[NetworkInfo],
    ) -> None:
        if verdict is not None:
            self._verdicts[ip] = verdict
        if network is not None:
            self._networks[ip] = network

    def __len__(self) -> int:
        return len(set(self._verdicts) | set(self._networks))
