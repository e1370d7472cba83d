"""Tests for shared schemas and address rules."""

import pytest
from pydantic import ValidationError

from common import InvalidOriginError
from schemas import (
    NetworkInfo,
    Origin,
    RiskVerdict,
    is_private_ip,
    is_valid_ip,
    normalize_ip,
    subnet_prefix,
)


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("185.220.101.7", "185.220.101.7"),
        (" 8.8.8.8 ", "8.8.8.8"),
        ("::ffff:10.0.0.1", "10.0.0.1"),
        ("2001:DB8:0:0::1", "2001:db8::1"),
        ("fe80::1%eth0", "fe80::1"),
        ("999.1.1.1", None),
        ("", None),
        (None, None),
        ("1" * 50, None),
    ],
)
def test_normalize_ip(raw, expected):
    assert normalize_ip(raw) == expected


def test_is_valid_ip():
    assert is_valid_ip("1.2.3.4") is True
    assert is_valid_ip("example.org") is False


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("185.220.101.7", "185.220.101.0/24"),
        ("2a0b:f4c2:2:ffff::9", "2a0b:f4c2:2::/48"),
        ("nope", None),
    ],
)
def test_subnet_prefix(raw, expected):
    assert subnet_prefix(raw) == expected


@pytest.mark.parametrize(
    "ip,private",
    [
        ("10.1.2.3", True),
        ("192.168.0.1", True),
        ("127.0.0.1", True),
        ("100.64.3.4", True),
        ("::1", True),
        ("8.8.8.8", False),
        ("garbage", False),
    ],
)
def test_is_private_ip(ip, private):
    assert is_private_ip(ip) is private


def test_origin_key_prefers_user():
    assert Origin(ip="1.2.3.4", user_id=42).key == "u:42"
    assert Origin(ip="::ffff:1.2.3.4").key == "i:1.2.3.4"
    assert Origin(ip="1.2.3.4", user_id="").key == "i:1.2.3.4"


def test_origin_rejects_bad_address():
    with pytest.raises(ValidationError):
        Origin(ip="not-an-ip")

    with pytest.raises(InvalidOriginError):
        Origin.parse(None)


def test_origin_is_hashable_and_frozen():
    origin = Origin.parse("1.2.3.4", 7)

    assert origin == Origin(ip="1.2.3.4", user_id="7")
    assert {origin: 1}[Origin(ip="1.2.3.4", user_id="7")] == 1
    with pytest.raises(ValidationError):
        origin.ip = "5.6.7.8"


def test_verdict_clamps_score_and_dedupes_flags():
    verdict = RiskVerdict(ip="1.2.3.4", score=250, flags=["vpn", "tor", "vpn"])

    assert verdict.score == 100
    assert verdict.flags == ["vpn", "tor"]
    assert RiskVerdict(ip="1.2.3.4", score=-5).score == 0


def test_network_placeholder():
    assert NetworkInfo(range="1.2.3.0/24").is_placeholder is True
    assert NetworkInfo(asn=7922).is_placeholder is False
