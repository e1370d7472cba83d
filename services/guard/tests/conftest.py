"""Shared fixtures for guard unit tests."""

import pytest

from schemas import Signal
from guard.config import ScoringPolicy, TorRegistryConfig
from guard.registry import TorExitRegistry, TorSnapshot
from doubles import StaticProvider


@pytest.fixture
def tor_config(tmp_path) -> TorRegistryConfig:
    return TorRegistryConfig(
        primary_url="https://primary.example/exits",
        secondary_url="https://secondary.example/exits",
        min_list_size=3,
        retries=1,
        backoff=0.01,
        cache_file=str(tmp_path / "tor_exit_nodes.json"),
    )


@pytest.fixture
def tor_registry(tor_config) -> TorExitRegistry:
    registry = TorExitRegistry(tor_config, load_cache=False, clock=lambda: 1_700_000_000.0)
    registry._snapshot = TorSnapshot.build(
        ["185.220.101.7", "199.249.230.81", "2a0b:f4c2:2::1"], 1_700_000_000.0, "test"
    )
    return registry


@pytest.fixture
def empty_registry(tor_config) -> TorExitRegistry:
    return TorExitRegistry(tor_config, load_cache=False)


@pytest.fixture
def policy() -> ScoringPolicy:
    return ScoringPolicy(provider_timeout=0.2, probe_timeout=0.1, blocked_subnets=["203.0.113.0/24"])


@pytest.fixture
def silent_dns() -> StaticProvider:
    """Reverse DNS that never answers (no signal)."""
    return StaticProvider("reverse_dns", signal=None)


@pytest.fixture
def no_probe() -> StaticProvider:
    return StaticProvider("port_probe", signal=Signal(source="port_probe", open_ports=()))
