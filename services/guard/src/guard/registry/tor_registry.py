"""Continuously refreshed registry of Tor exit addresses."""

import json
import os
import tempfile
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, FrozenSet, Iterable, List, Optional, Union

import structlog

from common import GuardException, ParseError
from common.constants import TOR_EXIT_SCORE, TOR_SUBNET_SCORE
from monitoring.metrics import GuardMetrics
from schemas import normalize_ip, subnet_prefix
from guard.config import TorRegistryConfig
from guard.fetchers import HTTPFetcher
from guard.parsers import ExitListParser

logger = structlog.get_logger()


@dataclass(frozen=True)
class TorSnapshot:
    """Immutable exit list plus its derived subnet set."""

    nodes: FrozenSet[str] = frozenset()
    subnets: FrozenSet[str] = frozenset()
    updated_at: float = 0.0
    source: Optional[str] = field(default=None, compare=False)

    @classmethod
    def build(
        cls, addresses: Iterable[str], updated_at: float, source: Optional[str] = None
    ) -> "TorSnapshot":
        nodes = frozenset(a for a in map(normalize_ip, addresses) if a)
        subnets = frozenset(subnet_prefix(node) for node in nodes)
        return cls(nodes=nodes, subnets=subnets, updated_at=updated_at, source=source)

    def __len__(self) -> int:
        return len(self.nodes)


class TorExitRegistry:
    """Lookup service over the latest good Tor exit snapshot.

    Readers only ever see a complete snapshot: ``refresh`` builds a new
    ``TorSnapshot`` and swaps the reference, it never mutates the active one.
    """

    def __init__(
        self,
        config: TorRegistryConfig,
        cache_path: Optional[Union[str, Path]] = None,
        metrics: Optional[GuardMetrics] = None,
        clock: Callable[[], float] = time.time,
        load_cache: bool = True,
    ):
        """
        Initialize registry.

        Args:
            config: Sources, sizes and refresh settings
            cache_path: Local cache file (defaults to ``config.cache_file``)
            metrics: Optional metrics sink
            clock: Wall clock used for snapshot timestamps
            load_cache: Read the cache file immediately
        """
        self.config = config
        self.cache_path = Path(cache_path or config.cache_file)
        self.metrics = metrics
        self.clock = clock
        self.parser = ExitListParser("tor_exit_list")
        self._snapshot = TorSnapshot()
        self._refreshing = False

        if load_cache:
            self.load_from_cache()

    @property
    def snapshot(self) -> TorSnapshot:
        return self._snapshot

    @property
    def last_update(self) -> float:
        return self._snapshot.updated_at

    def __len__(self) -> int:
        return len(self._snapshot)

    def is_exit_node(self, ip: str) -> bool:
        address = normalize_ip(ip)
        return address is not None and address in self._snapshot.nodes

    def is_exit_subnet(self, ip: str) -> bool:
        prefix = subnet_prefix(ip)
        return prefix is not None and prefix in self._snapshot.subnets

    def subnet_risk_score(self, ip: str) -> int:
        """100 for a known exit, 60 for a neighbour in its subnet, else 0."""
        snapshot = self._snapshot
        address = normalize_ip(ip)
        if address is None:
            return 0
        if address in snapshot.nodes:
            return TOR_EXIT_SCORE
        if subnet_prefix(address) in snapshot.subnets:
            return TOR_SUBNET_SCORE
        return 0

    def load_from_cache(self) -> bool:
        """Load the last persisted snapshot; returns True if one was loaded."""
        if not self.cache_path.exists():
            return False

        try:
            with open(self.cache_path, "r") as f:
                data = json.load(f)
            nodes = data["nodes"]
            if not isinstance(nodes, list):
                raise ValueError("nodes is not a list")
            snapshot = TorSnapshot.build(
                nodes, float(data.get("last_update") or 0.0), source="cache"
            )
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning(
                "Failed to load Tor exit cache",
                cache_path=str(self.cache_path),
                error=str(e),
            )
            return False

        self._snapshot = snapshot
        logger.info(
            "Loaded Tor exit nodes from cache",
            nodes=len(snapshot.nodes),
            subnets=len(snapshot.subnets),
            last_update=snapshot.updated_at,
        )
        if self.metrics:
            self.metrics.record_exit_nodes(len(snapshot.nodes))
        return True

    def save_to_cache(self, snapshot: TorSnapshot) -> None:
        """Persist a snapshot; the file is replaced, never partially written."""
        payload = {"nodes": sorted(snapshot.nodes), "last_update": snapshot.updated_at}
        directory = self.cache_path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                dir=directory, prefix=f".{self.cache_path.name}.", suffix=".tmp"
            )
            with os.fdopen(fd, "w") as f:
                json.dump(payload, f)
            os.replace(tmp_path, self.cache_path)
        except OSError as e:
            logger.warning(
                "Failed to save Tor exit cache",
                cache_path=str(self.cache_path),
                error=str(e),
            )

    async def fetch_list(self, url: str) -> List[str]:
        fetcher = HTTPFetcher(
            source_name="tor_exit_list",
            url=url,
            timeout=self.config.timeout,
            retries=self.config.retries,
            backoff=self.config.backoff,
        )
        result = await fetcher.fetch()
        return self.parser.parse(result["content"], {"source_url": url})

    async def _fetch_plausible(self, url: str) -> List[str]:
        addresses = await self.fetch_list(url)
        if len(addresses) < self.config.min_list_size:
            raise ParseError(
                "Exit list implausibly small",
                context={
                    "url": url,
                    "addresses": len(addresses),
                    "min_list_size": self.config.min_list_size,
                },
            )
        return addresses

    async def refresh(self) -> bool:
        """
        Fetch a fresh exit list, falling back to the secondary source.

        Returns:
            True if a new snapshot was swapped in
        """
        if self._refreshing:
            logger.debug("Tor exit refresh already running")
            return False

        self._refreshing = True
        try:
            sources = [("primary", self.config.primary_url)]
            if self.config.secondary_url:
                sources.append(("secondary", self.config.secondary_url))

            for label, url in sources:
                try:
                    addresses = await self._fetch_plausible(url)
                except GuardException as e:
                    logger.warning(
                        "Tor exit list source failed",
                        source=label,
                        url=url,
                        **e.log_fields(),
                    )
                    continue

                snapshot = TorSnapshot.build(addresses, self.clock(), source=label)
                self._snapshot = snapshot
                self.save_to_cache(snapshot)

                logger.info(
                    "Updated Tor exit nodes",
                    source=label,
                    nodes=len(snapshot.nodes),
                    subnets=len(snapshot.subnets),
                )
                if self.metrics:
                    self.metrics.record_registry_refresh(label, len(snapshot.nodes))
                return True

            logger.error(
                "Failed to update Tor exit nodes, keeping previous snapshot",
                nodes=len(self._snapshot.nodes),
                last_update=self._snapshot.updated_at,
            )
            if self.metrics:
                self.metrics.record_registry_refresh("failed")
            return False
        finally:
            self._refreshing = False
