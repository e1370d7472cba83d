"""Tests for the ensemble risk scorer."""

import asyncio
from unittest.mock import MagicMock

import pytest

from common import FetchError
from schemas import Classification, Signal
from guard.scoring import EnsembleRiskScorer, SubnetBlocklist
from doubles import StaticProvider


def make_scorer(providers, registry, policy, dns, probe, **kwargs):
    return EnsembleRiskScorer(
        providers, registry, policy, reverse_dns=dns, port_probe=probe, **kwargs
    )


@pytest.mark.asyncio
async def test_clean_address(empty_registry, policy, silent_dns, no_probe):
    provider = StaticProvider("ip_api", Signal(source="ip-api.com", org="Comcast Cable"))
    scorer = make_scorer([provider], empty_registry, policy, silent_dns, no_probe)

    verdict = await scorer.score("73.15.2.9")

    assert verdict.score == 0
    assert verdict.classification is Classification.RESIDENTIAL
    assert verdict.is_proxy is False
    assert verdict.low_confidence is False
    assert verdict.check_count == 1
    assert no_probe.calls == []


@pytest.mark.asyncio
async def test_failing_provider_does_not_abort(empty_registry, policy, silent_dns, no_probe):
    metrics = MagicMock()
    good = StaticProvider("ip_api", Signal(source="ip-api.com", is_vpn=True, is_proxy=True))
    bad = StaticProvider("proxycheck", error=FetchError("down"))
    scorer = make_scorer(
        [good, bad], empty_registry, policy, silent_dns, no_probe, metrics=metrics
    )

    verdict = await scorer.score("37.19.200.1")

    assert verdict.score == 90
    assert verdict.classification is Classification.VPN
    assert verdict.is_proxy is True
    assert verdict.is_high_risk is True
    metrics.record_provider_failure.assert_called_once_with("proxycheck")
    metrics.record_verdict.assert_called_once_with("VPN")


@pytest.mark.asyncio
async def test_hung_provider_is_bounded_by_timeout(empty_registry, policy, silent_dns, no_probe):
    slow = StaticProvider("getipintel", Signal(source="getipintel.net", is_proxy=True), delay=5)
    fast = StaticProvider("ip_api", Signal(source="ip-api.com", is_hosting=True))
    scorer = make_scorer([slow, fast], empty_registry, policy, silent_dns, no_probe)

    verdict = await asyncio.wait_for(scorer.score("5.9.1.1"), timeout=2)

    assert "hosting:ip-api.com" in verdict.flags
    assert "proxy:getipintel.net" not in verdict.flags


@pytest.mark.asyncio
async def test_no_answers_is_low_confidence(empty_registry, policy, silent_dns, no_probe):
    scorer = make_scorer(
        [StaticProvider("ip_api", error=FetchError("down"))],
        empty_registry,
        policy,
        silent_dns,
        no_probe,
    )

    verdict = await scorer.score("192.0.2.10")

    assert verdict.low_confidence is True
    assert verdict.score == 0


@pytest.mark.asyncio
async def test_known_exit_is_tor_with_max_score(tor_registry, policy, silent_dns, no_probe):
    provider = StaticProvider("ip_api", Signal(source="ip-api.com", org="Residential ISP"))
    scorer = make_scorer([provider], tor_registry, policy, silent_dns, no_probe)

    verdict = await scorer.score("185.220.101.7")

    assert verdict.score == 100
    assert verdict.classification is Classification.TOR
    assert "tor_exit_node_live" in verdict.flags


@pytest.mark.asyncio
async def test_exit_subnet_neighbour(tor_registry, policy, silent_dns, no_probe):
    scorer = make_scorer([], tor_registry, policy, silent_dns, no_probe)

    verdict = await scorer.score("185.220.101.99")

    assert verdict.score == 60
    assert "tor_exit_subnet" in verdict.flags
    assert verdict.classification is Classification.SUSPICIOUS
    assert verdict.is_proxy is True


@pytest.mark.asyncio
async def test_blocked_subnet_forces_max(empty_registry, policy, silent_dns, no_probe):
    scorer = make_scorer([], empty_registry, policy, silent_dns, no_probe)

    verdict = await scorer.score("203.0.113.50")

    assert verdict.score == 100
    assert verdict.is_proxy is True
    assert "blocked_subnet" in verdict.flags


@pytest.mark.asyncio
async def test_inconclusive_band_triggers_port_probe(empty_registry, policy, silent_dns):
    probe = StaticProvider("port_probe", Signal(source="port_probe", open_ports=(3128,)))
    provider = StaticProvider("ip_api", Signal(source="ip-api.com", is_hosting=True))
    scorer = make_scorer([provider], empty_registry, policy, silent_dns, probe)

    verdict = await scorer.score("5.9.1.1")

    assert probe.calls == ["5.9.1.1"]
    assert verdict.score == 35 + 20
    assert "open_port:3128" in verdict.flags
    assert verdict.is_proxy is True


@pytest.mark.asyncio
async def test_probe_skipped_outside_band(empty_registry, policy, silent_dns):
    probe = StaticProvider("port_probe", Signal(source="port_probe", open_ports=(3128,)))
    provider = StaticProvider("ip_api", Signal(source="ip-api.com", is_proxy=True, is_hosting=True))
    scorer = make_scorer([provider], empty_registry, policy, silent_dns, probe)

    await scorer.score("5.9.1.1")

    assert probe.calls == []


@pytest.mark.asyncio
async def test_reverse_dns_counts_but_is_not_external(empty_registry, policy, no_probe):
    dns = StaticProvider("reverse_dns", Signal(source="reverse_dns", has_ptr=False))
    scorer = make_scorer([], empty_registry, policy, dns, no_probe)

    verdict = await scorer.score("192.0.2.10")

    assert verdict.check_count == 1
    assert verdict.low_confidence is True
    assert verdict.flags == ["no_reverse_dns"]


@pytest.mark.asyncio
async def test_invalid_address_gets_default_verdict(empty_registry, policy, silent_dns, no_probe):
    provider = StaticProvider("ip_api", None)
    scorer = make_scorer([provider], empty_registry, policy, silent_dns, no_probe)

    verdict = await scorer.score("999.1.1.1")

    assert verdict.score == 0
    assert verdict.low_confidence is True
    assert verdict.flags == ["invalid_address"]
    assert verdict.is_proxy is False
    assert provider.calls == []


@pytest.mark.asyncio
async def test_address_is_normalized(empty_registry, policy, silent_dns, no_probe):
    provider = StaticProvider("ip_api", None)
    scorer = make_scorer([provider], empty_registry, policy, silent_dns, no_probe)

    verdict = await scorer.score("::ffff:198.51.100.4")

    assert verdict.ip == "198.51.100.4"
    assert provider.calls == ["198.51.100.4"]


def test_subnet_blocklist_membership():
    blocklist = SubnetBlocklist(["185.220.101.0/24", "10.0.0.0/8", "2001:db8::/32"])

    assert "185.220.101.200" in blocklist
    assert "10.200.3.4" in blocklist
    assert "2001:db8:1::5" in blocklist
    assert "185.220.102.1" not in blocklist
    assert "not-an-ip" not in blocklist
