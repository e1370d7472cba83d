"""HTTP reputation API providers."""

import re
from abc import abstractmethod
from typing import Any, Dict, Mapping, Optional, Tuple

import structlog

from common import ProviderError
from schemas import Signal
from guard.config import ProviderConfig
from guard.fetchers import HTTPFetcher
from .base_provider import BaseProvider

logger = structlog.get_logger()

ASN_PATTERN = re.compile(r"^\s*(?:AS)?(\d+)", re.IGNORECASE)


def parse_asn(value: Any) -> Optional[int]:
    """
    Parse an ASN from the representations APIs use.

    Examples:
        >>> parse_asn("AS24940 Hetzner Online GmbH")
        24940
        >>> parse_asn(13335)
        13335
        >>> parse_asn("") is None
        True
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value or None
    match = ASN_PATTERN.match(str(value))
    if not match:
        return None
    return int(match.group(1)) or None


def parse_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return None


class JSONAPIProvider(BaseProvider):
    """Provider backed by one JSON GET request per address."""

    def __init__(self, name: str, config: ProviderConfig):
        super().__init__(name)
        self.config = config
        self.api_key = config.api_key

    @property
    def available(self) -> bool:
        return self.config.enabled and (self.api_key is not None or not self.requires_key)

    @abstractmethod
    def build_request(
        self, ip: str
    ) -> Tuple[str, Mapping[str, str], Mapping[str, str]]:
        """Return (url, params, headers) for the lookup."""
        pass

    @abstractmethod
    def parse(self, ip: str, data: Any) -> Optional[Signal]:
        """Convert the decoded response into a Signal."""
        pass

    async def lookup(self, ip: str) -> Optional[Signal]:
        url, params, headers = self.build_request(ip)
        fetcher = HTTPFetcher(
            source_name=self.name,
            url=url,
            timeout=self.config.timeout,
            retries=self.config.retries,
            backoff=0.5,
            headers=headers,
            params=params,
        )
        data = await fetcher.fetch_json()
        if not isinstance(data, dict):
            raise ProviderError(
                "Unexpected response shape",
                context={"provider": self.name, "ip": ip},
            )
        return self.parse(ip, data)

    def _fail(self, ip: str, reason: Any) -> ProviderError:
        return ProviderError(
            "Provider rejected lookup",
            context={"provider": self.name, "ip": ip, "reason": reason},
        )


class ProxyCheckProvider(JSONAPIProvider):
    """proxycheck.io v2: proxy flag, risk, type, operator and seen port."""

    requires_key = True

    def build_request(self, ip):
        params = {
            "key": self.api_key or "",
            "vpn": "3",
            "asn": "1",
            "risk": "1",
            "port": "1",
            "seen": "1",
            "days": "7",
        }
        return f"{self.config.url}{ip}", params, {}

    def parse(self, ip, data):
        if data.get("status") not in ("ok", "warning"):
            raise self._fail(ip, data.get("message") or data.get("status"))

        entry = data.get(ip)
        if not isinstance(entry, dict):
            return None

        operator = entry.get("operator")
        return Signal(
            source="proxycheck.io",
            is_proxy=entry.get("proxy") == "yes",
            risk=parse_int(entry.get("risk")),
            proxy_type=entry.get("type"),
            operator=operator.get("name") if isinstance(operator, dict) else None,
            asn=parse_asn(entry.get("asn")),
            org=entry.get("provider") or entry.get("organisation"),
            country=entry.get("isocode"),
            port=parse_int(entry.get("port")),
        )


class IpApiProvider(JSONAPIProvider):
    """ip-api.com: proxy, hosting and mobile flags plus ISP and AS."""

    def build_request(self, ip):
        params = {
            "fields": "status,message,proxy,hosting,mobile,isp,org,as,asname,countryCode"
        }
        return f"{self.config.url}{ip}", params, {}

    def parse(self, ip, data):
        if data.get("status") != "success":
            raise self._fail(ip, data.get("message"))

        return Signal(
            source="ip-api.com",
            is_proxy=data.get("proxy") is True,
            is_hosting=data.get("hosting") is True,
            is_mobile=data.get("mobile") is True,
            org=data.get("org") or data.get("isp") or data.get("asname") or None,
            asn=parse_asn(data.get("as")),
            country=data.get("countryCode"),
        )


class GetIPIntelProvider(JSONAPIProvider):
    """getipintel.net: proxy probability between 0 and 1."""

    def build_request(self, ip):
        params = {
            "ip": ip,
            "contact": self.config.contact or "",
            "format": "json",
            "flags": "f",
        }
        return self.config.url, params, {}

    def parse(self, ip, data):
        if data.get("status") != "success":
            raise self._fail(ip, data.get("message"))

        try:
            probability = float(data.get("result"))
        except (TypeError, ValueError):
            raise self._fail(ip, f"bad result {data.get('result')!r}")

        # negative results are error codes
        if probability < 0:
            raise self._fail(ip, f"error code {probability}")

        return Signal(
            source="getipintel.net",
            probability=probability,
            is_proxy=probability >= 0.95,
        )


class IPQualityScoreProvider(JSONAPIProvider):
    """ipqualityscore.com: proxy/VPN/Tor flags, fraud score, abuse."""

    requires_key = True

    def build_request(self, ip):
        return f"{self.config.url}{self.api_key}/{ip}", {"strictness": "1"}, {}

    def parse(self, ip, data):
        if not data.get("success"):
            raise self._fail(ip, data.get("message"))

        return Signal(
            source="ipqualityscore.com",
            is_proxy=data.get("proxy") is True,
            is_vpn=data.get("vpn") is True,
            is_tor=data.get("tor") is True,
            is_bot=data.get("bot_status") is True,
            is_hosting=data.get("is_crawler") is True,
            recent_abuse=data.get("recent_abuse") is True,
            fraud_score=parse_int(data.get("fraud_score")),
            org=data.get("ISP") or data.get("organization"),
            asn=parse_asn(data.get("ASN")),
            country=data.get("country_code"),
        )


class AbuseIPDBProvider(JSONAPIProvider):
    """abuseipdb.com: abuse confidence and report count."""

    requires_key = True

    def build_request(self, ip):
        headers = {"Key": self.api_key or "", "Accept": "application/json"}
        return self.config.url, {"ipAddress": ip, "maxAgeInDays": "90"}, headers

    def parse(self, ip, data):
        entry = data.get("data")
        if not isinstance(entry, dict):
            errors = data.get("errors") or "missing data"
            raise self._fail(ip, errors)

        abuse_score = parse_int(entry.get("abuseConfidenceScore")) or 0
        usage_type = entry.get("usageType") or ""
        return Signal(
            source="abuseipdb.com",
            abuse_score=abuse_score,
            is_proxy=abuse_score >= 50,
            total_reports=parse_int(entry.get("totalReports")) or 0,
            is_tor=entry.get("isTor") is True,
            is_hosting=True if "data center" in usage_type.lower() else None,
            org=entry.get("isp"),
            country=entry.get("countryCode"),
        )


class SpurProvider(JSONAPIProvider):
    """spur.us context API: anonymizing tunnels and client type."""

    requires_key = True

    def build_request(self, ip):
        return f"{self.config.url}{ip}", {}, {"Token": self.api_key or ""}

    def parse(self, ip, data):
        tunnels = [t for t in data.get("tunnels") or [] if isinstance(t, dict)]
        tunnel_types = {str(t.get("type", "")).upper() for t in tunnels}
        client = data.get("client") or {}
        client_types = {str(t).upper() for t in client.get("types") or []}
        if client.get("type"):
            client_types.add(str(client["type"]).upper())
        risk = data.get("risk") or {}
        operator = next((t.get("operator") for t in tunnels if t.get("operator")), None)
        autonomous = data.get("as") or {}

        return Signal(
            source="spur.us",
            is_proxy=bool(data.get("anonymous")) or bool(tunnel_types & {"PROXY"}),
            is_vpn="VPN" in tunnel_types,
            is_tor="TOR" in tunnel_types,
            is_residential="RESIDENTIAL" in client_types,
            is_datacenter="DATACENTER" in client_types or "HOSTING" in client_types,
            risk_level=str(risk.get("level")).lower() if risk.get("level") else None,
            operator=operator,
            asn=parse_asn(autonomous.get("number")),
            org=autonomous.get("organization"),
        )


PROVIDER_KINDS: Dict[str, type] = {
    "proxycheck": ProxyCheckProvider,
    "ip_api": IpApiProvider,
    "getipintel": GetIPIntelProvider,
    "ipqualityscore": IPQualityScoreProvider,
    "abuseipdb": AbuseIPDBProvider,
    "spur": SpurProvider,
}
