"""Tests for signal providers."""

import asyncio
import socket
from unittest.mock import AsyncMock, patch

import pytest

from common import FetchError, ProviderError
from guard.config import ProviderConfig
from guard.providers import (
    AbuseIPDBProvider,
    GetIPIntelProvider,
    IPQualityScoreProvider,
    IpApiProvider,
    PortProbeProvider,
    ProxyCheckProvider,
    ReverseDNSProvider,
    SpurProvider,
    build_providers,
    classify_hostname,
    parse_asn,
)


def config(kind: str, **kwargs) -> ProviderConfig:
    return ProviderConfig(kind=kind, url="https://api.example/", **kwargs)


# ==================== Parsing helpers ====================


@pytest.mark.parametrize(
    "value,expected",
    [
        ("AS24940 Hetzner Online GmbH", 24940),
        ("as13335", 13335),
        (13335, 13335),
        ("24940", 24940),
        ("", None),
        (None, None),
        (True, None),
        ("Hetzner", None),
    ],
)
def test_parse_asn(value, expected):
    assert parse_asn(value) == expected


# ==================== JSON API providers ====================


def test_proxycheck_parse(monkeypatch):
    monkeypatch.setenv("PROXYCHECK_KEY", "k")
    provider = ProxyCheckProvider("proxycheck", config("proxycheck", api_key_env="PROXYCHECK_KEY"))

    signal = provider.parse(
        "37.19.200.1",
        {
            "status": "ok",
            "37.19.200.1": {
                "proxy": "yes",
                "type": "VPN",
                "risk": "66",
                "asn": "AS212238",
                "provider": "Datacamp Limited",
                "operator": {"name": "NordVPN"},
                "isocode": "DE",
                "port": "1194",
            },
        },
    )

    assert signal.is_proxy is True
    assert signal.proxy_type == "VPN"
    assert signal.risk == 66
    assert signal.asn == 212238
    assert signal.operator == "NordVPN"
    assert signal.port == 1194


def test_proxycheck_denied_status_raises():
    provider = ProxyCheckProvider("proxycheck", config("proxycheck"))

    with pytest.raises(ProviderError):
        provider.parse("1.2.3.4", {"status": "denied", "message": "quota exceeded"})


def test_proxycheck_requires_key(monkeypatch):
    monkeypatch.delenv("PROXYCHECK_KEY", raising=False)
    provider = ProxyCheckProvider("proxycheck", config("proxycheck", api_key_env="PROXYCHECK_KEY"))

    assert provider.available is False


def test_ip_api_parse():
    provider = IpApiProvider("ip_api", config("ip_api"))

    signal = provider.parse(
        "5.9.1.1",
        {
            "status": "success",
            "proxy": False,
            "hosting": True,
            "mobile": False,
            "isp": "Hetzner Online GmbH",
            "org": "",
            "as": "AS24940 Hetzner Online GmbH",
            "countryCode": "DE",
        },
    )

    assert signal.is_hosting is True
    assert signal.is_proxy is False
    assert signal.org == "Hetzner Online GmbH"
    assert signal.asn == 24940


def test_ip_api_failure_raises():
    provider = IpApiProvider("ip_api", config("ip_api"))

    with pytest.raises(ProviderError):
        provider.parse("10.0.0.1", {"status": "fail", "message": "private range"})


@pytest.mark.parametrize("result,is_proxy", [("0.99", True), ("0.85", False), ("0", False)])
def test_getipintel_probability(result, is_proxy):
    provider = GetIPIntelProvider("getipintel", config("getipintel", contact="a@b.c"))

    signal = provider.parse("1.2.3.4", {"status": "success", "result": result})

    assert signal.is_proxy is is_proxy
    assert signal.probability == pytest.approx(float(result))


def test_getipintel_negative_result_is_error():
    provider = GetIPIntelProvider("getipintel", config("getipintel"))

    with pytest.raises(ProviderError):
        provider.parse("1.2.3.4", {"status": "success", "result": "-3"})


def test_ipqualityscore_parse(monkeypatch):
    monkeypatch.setenv("IPQS_KEY", "k")
    provider = IPQualityScoreProvider(
        "ipqualityscore", config("ipqualityscore", api_key_env="IPQS_KEY")
    )

    signal = provider.parse(
        "1.2.3.4",
        {
            "success": True,
            "proxy": True,
            "vpn": True,
            "tor": False,
            "recent_abuse": True,
            "fraud_score": 88,
            "ISP": "M247",
            "ASN": 9009,
        },
    )

    assert signal.is_vpn is True
    assert signal.is_tor is False
    assert signal.recent_abuse is True
    assert signal.fraud_score == 88
    assert signal.asn == 9009

    url, params, _ = provider.build_request("1.2.3.4")
    assert url.endswith("k/1.2.3.4")
    assert params == {"strictness": "1"}


def test_abuseipdb_parse():
    provider = AbuseIPDBProvider("abuseipdb", config("abuseipdb"))

    signal = provider.parse(
        "1.2.3.4",
        {
            "data": {
                "abuseConfidenceScore": 62,
                "totalReports": 14,
                "isTor": False,
                "usageType": "Data Center/Web Hosting/Transit",
                "isp": "OVH SAS",
            }
        },
    )

    assert signal.is_proxy is True
    assert signal.abuse_score == 62
    assert signal.total_reports == 14
    assert signal.is_hosting is True


def test_abuseipdb_errors_raise():
    provider = AbuseIPDBProvider("abuseipdb", config("abuseipdb"))

    with pytest.raises(ProviderError):
        provider.parse("1.2.3.4", {"errors": [{"detail": "Authentication failed"}]})


def test_spur_parse():
    provider = SpurProvider("spur", config("spur"))

    signal = provider.parse(
        "1.2.3.4",
        {
            "tunnels": [{"type": "VPN", "operator": "MULLVAD_VPN"}],
            "client": {"types": ["DESKTOP"]},
            "infrastructure": "DATACENTER",
            "risk": {"level": "HIGH"},
            "as": {"number": 39351, "organization": "31173 Services AB"},
        },
    )

    assert signal.is_vpn is True
    assert signal.is_tor is False
    assert signal.operator == "MULLVAD_VPN"
    assert signal.risk_level == "high"
    assert signal.asn == 39351


@pytest.mark.asyncio
async def test_json_provider_lookup_uses_fetcher():
    provider = IpApiProvider("ip_api", config("ip_api", timeout=3))

    with patch(
        "guard.providers.reputation_apis.HTTPFetcher.fetch_json",
        new=AsyncMock(return_value={"status": "success", "proxy": True, "as": "AS1"}),
    ):
        signal = await provider.lookup("1.2.3.4")

    assert signal.source == "ip-api.com"
    assert signal.is_proxy is True


@pytest.mark.asyncio
async def test_json_provider_rejects_non_object():
    provider = IpApiProvider("ip_api", config("ip_api"))

    with patch(
        "guard.providers.reputation_apis.HTTPFetcher.fetch_json",
        new=AsyncMock(return_value=["unexpected"]),
    ):
        with pytest.raises(ProviderError):
            await provider.lookup("1.2.3.4")


@pytest.mark.asyncio
async def test_json_provider_propagates_fetch_errors():
    provider = IpApiProvider("ip_api", config("ip_api"))

    with patch(
        "guard.providers.reputation_apis.HTTPFetcher.fetch_json",
        new=AsyncMock(side_effect=FetchError("down")),
    ):
        with pytest.raises(FetchError):
            await provider.lookup("1.2.3.4")


def test_build_providers_skips_disabled_unknown_and_keyless(monkeypatch):
    monkeypatch.delenv("IPQS_KEY", raising=False)

    providers = build_providers(
        {
            "ip_api": config("ip_api"),
            "ipqualityscore": config("ipqualityscore", api_key_env="IPQS_KEY"),
            "spur": config("spur", enabled=False),
            "mystery": config("carrier_pigeon"),
        }
    )

    assert [p.name for p in providers] == ["ip_api"]


# ==================== Reverse DNS ====================


def test_classify_hostname_keywords_respect_word_boundaries():
    signal = classify_hostname("cpe-1-2-3-4.toronto.rogers.com.")

    assert "tor" not in signal.ptr_keywords
    assert signal.ptr_residential is True
    assert signal.ptr_numeric is True
    assert signal.hostname == "cpe-1-2-3-4.toronto.rogers.com"


def test_classify_hostname_infrastructure():
    signal = classify_hostname("tor-exit.relay.example.org")

    assert signal.has_ptr is True
    assert signal.ptr_keywords == ("tor", "exit", "relay")
    assert signal.ptr_residential is False
    assert signal.ptr_numeric is False


@pytest.mark.asyncio
async def test_reverse_dns_without_ptr():
    provider = ReverseDNSProvider()

    with patch("socket.gethostbyaddr", side_effect=socket.herror("not found")):
        signal = await provider.lookup("192.0.2.1")

    assert signal.has_ptr is False


@pytest.mark.asyncio
async def test_reverse_dns_with_ptr():
    provider = ReverseDNSProvider()

    with patch(
        "socket.gethostbyaddr",
        return_value=("static.1.2.0.192.clients.your-server.de", [], ["192.0.2.1"]),
    ):
        signal = await provider.lookup("192.0.2.1")

    assert signal.has_ptr is True
    assert signal.hostname == "static.1.2.0.192.clients.your-server.de"


# ==================== Port probe ====================


@pytest.mark.asyncio
async def test_port_probe_reports_open_ports():
    server = await asyncio.start_server(lambda r, w: w.close(), "127.0.0.1", 0)
    open_port = server.sockets[0].getsockname()[1]

    closed = socket.socket()
    closed.bind(("127.0.0.1", 0))
    closed_port = closed.getsockname()[1]
    closed.close()

    provider = PortProbeProvider([open_port, closed_port], timeout=1.0)
    try:
        signal = await provider.lookup("127.0.0.1")
    finally:
        server.close()
        await server.wait_closed()

    assert signal.source == "port_probe"
    assert signal.open_ports == (open_port,)
