"""Additive fusion of provider signals into one risk score."""

import math
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from common import clamp
from common.constants import MIN_RISK_SCORE, MAX_RISK_SCORE
from schemas import Classification, Signal
from guard.config.lists import ORG_KEYWORDS, TOR_RELAY_PORTS, asn_risk
from guard.providers.reverse_dns import keyword_pattern

# Weights. Policy values, tuned against observed abuse.
PROXY_WEIGHT = 40
VPN_WEIGHT = 50
TOR_WEIGHT = 100
HOSTING_WEIGHT = 35
DATACENTER_CLIENT_WEIGHT = 40
ORG_KEYWORD_WEIGHT = 25
PROXY_TYPE_WEIGHT = 40
TOR_PORT_WEIGHT = 50
OPERATOR_WEIGHT = 20
RECENT_ABUSE_WEIGHT = 30
RISK_LEVEL_WEIGHT = 40
PTR_KEYWORD_WEIGHT = 15
PTR_NUMERIC_WEIGHT = 20
PTR_STATIC_WEIGHT = 10
NO_PTR_WEIGHT = 15
OPEN_PORT_WEIGHT = 20

RISK_SUBSCORE_THRESHOLD = 66
FRAUD_SUBSCORE_THRESHOLD = 75
SUBSCORE_CAP = 50
PROBABILITY_THRESHOLD = 0.80
ABUSE_SCORE_THRESHOLD = 25
ABUSE_REPORTS_THRESHOLD = 5
ABUSE_REPORTS_CAP = 30

STATIC_PATTERN = keyword_pattern("static")

_TYPE_RANK = {
    Classification.TOR: 3,
    Classification.VPN: 2,
    Classification.PROXY: 1,
    Classification.HOSTING: 1,
}


@dataclass
class Fusion:
    """Running result of fusing signals."""

    score: int = 0
    flags: List[str] = field(default_factory=list)
    asn: Optional[int] = None
    org: Optional[str] = None
    classification: Optional[Classification] = None
    residential_ptr: bool = False

    def add(self, points: float, flag: str) -> None:
        self.score += int(points)
        if flag not in self.flags:
            self.flags.append(flag)

    def suggest(self, classification: Classification, force: bool = False) -> None:
        """Record a detected type.

        A soft suggestion only fills an empty slot; a forced one replaces any
        less specific type (Tor beats VPN beats proxy/hosting).
        """
        if self.classification is None:
            self.classification = classification
        elif force and _TYPE_RANK.get(classification, 0) >= _TYPE_RANK.get(
            self.classification, 0
        ):
            self.classification = classification


def _classify_proxy_type(proxy_type: str) -> Optional[Classification]:
    lowered = proxy_type.lower()
    if "tor" in lowered:
        return Classification.TOR
    if "vpn" in lowered:
        return Classification.VPN
    if "proxy" in lowered or "socks" in lowered:
        return Classification.PROXY
    return None


def _apply(fusion: Fusion, s: Signal) -> None:
    if s.asn:
        if fusion.asn is None:
            fusion.asn = s.asn
        points, flag, tier_type = asn_risk(s.asn)
        if points:
            fusion.add(points, flag)
            fusion.suggest(Classification(tier_type), force=tier_type == "TOR")

    org = s.org or s.operator
    if org:
        if fusion.org is None:
            fusion.org = org
        lowered = org.lower()
        for keyword in ORG_KEYWORDS:
            if keyword in lowered:
                fusion.add(ORG_KEYWORD_WEIGHT, f"org_keyword:{keyword}")
                break

    if s.is_proxy:
        fusion.add(PROXY_WEIGHT, f"proxy:{s.source}")
        fusion.suggest(Classification.PROXY)
    if s.is_vpn:
        fusion.add(VPN_WEIGHT, f"vpn:{s.source}")
        fusion.suggest(Classification.VPN, force=True)
    if s.is_tor:
        fusion.add(TOR_WEIGHT, "tor")
        fusion.suggest(Classification.TOR, force=True)
    if s.is_hosting:
        fusion.add(HOSTING_WEIGHT, f"hosting:{s.source}")
        fusion.suggest(Classification.HOSTING)
    if s.is_datacenter:
        fusion.add(DATACENTER_CLIENT_WEIGHT, "datacenter_client")
        fusion.suggest(Classification.HOSTING)

    if s.risk is not None and s.risk >= RISK_SUBSCORE_THRESHOLD:
        fusion.add(min(s.risk - 50, SUBSCORE_CAP), f"high_risk:{s.risk}")
    if s.fraud_score is not None and s.fraud_score >= FRAUD_SUBSCORE_THRESHOLD:
        fusion.add(min(s.fraud_score - 50, SUBSCORE_CAP), f"fraud_score:{s.fraud_score}")
    if s.probability is not None and s.probability >= PROBABILITY_THRESHOLD:
        fusion.add(
            math.floor(s.probability * 40),
            f"intel_prob:{math.floor(s.probability * 100)}",
        )
    if s.abuse_score is not None and s.abuse_score >= ABUSE_SCORE_THRESHOLD:
        fusion.add(min(s.abuse_score, SUBSCORE_CAP), f"abuse_score:{s.abuse_score}")
    if s.total_reports is not None and s.total_reports >= ABUSE_REPORTS_THRESHOLD:
        fusion.add(
            min(s.total_reports * 2, ABUSE_REPORTS_CAP),
            f"abuse_reports:{s.total_reports}",
        )
    if s.recent_abuse:
        fusion.add(RECENT_ABUSE_WEIGHT, "recent_abuse")
    if s.risk_level in ("high", "critical"):
        fusion.add(RISK_LEVEL_WEIGHT, f"risk_level:{s.risk_level}")

    if s.proxy_type:
        typed = _classify_proxy_type(s.proxy_type)
        if typed is not None:
            fusion.add(PROXY_TYPE_WEIGHT, f"type:{s.proxy_type}")
            fusion.suggest(typed, force=True)
    if s.port in TOR_RELAY_PORTS:
        fusion.add(TOR_PORT_WEIGHT, f"tor_port:{s.port}")
    if s.operator:
        fusion.add(OPERATOR_WEIGHT, f"operator:{s.operator}")

    if s.has_ptr is False:
        fusion.add(NO_PTR_WEIGHT, "no_reverse_dns")
    for keyword in s.ptr_keywords:
        fusion.add(PTR_KEYWORD_WEIGHT, f"ptr:{keyword}")
    if s.ptr_numeric:
        fusion.add(PTR_NUMERIC_WEIGHT, "ptr:numeric")
    if s.ptr_residential:
        fusion.residential_ptr = True
    elif s.hostname and STATIC_PATTERN.search(s.hostname):
        fusion.add(PTR_STATIC_WEIGHT, "ptr:static_non_residential")

    if s.open_ports:
        for port in s.open_ports:
            fusion.add(OPEN_PORT_WEIGHT, f"open_port:{port}")
        fusion.suggest(Classification.PROXY)


def fuse_signals(signals: Iterable[Signal], residential_dampener: int = 15) -> Fusion:
    """
    Fuse signals with additive rules.

    The running total is capped at 100 before the residential-PTR dampener
    is subtracted, so the score is bounded no matter how many rules fire.
    """
    fusion = Fusion()

    for signal in signals:
        if signal is not None:
            _apply(fusion, signal)

    fusion.score = min(fusion.score, MAX_RISK_SCORE)
    if fusion.residential_ptr and residential_dampener:
        fusion.score -= residential_dampener
        fusion.flags.append("ptr:residential")

    fusion.score = int(clamp(fusion.score, MIN_RISK_SCORE, MAX_RISK_SCORE))
    return fusion
