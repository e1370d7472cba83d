"""Network ownership lookups over RDAP."""

import ipaddress
from typing import Any, Dict, List, Optional, Protocol
from urllib.parse import urlparse

import structlog

from common import ParseError
from schemas import NetworkInfo
from guard.fetchers import HTTPFetcher
from guard.providers.reputation_apis import parse_asn

logger = structlog.get_logger()

RDAP_BOOTSTRAP_URL = "https://rdap.org/ip/"


class OwnershipLookup(Protocol):
    async def lookup(self, ip: str) -> Optional[NetworkInfo]:
        ...


def _vcard_name(entity: Dict[str, Any]) -> Optional[str]:
    vcard = entity.get("vcardArray")
    if not isinstance(vcard, list) or len(vcard) < 2:
        return None
    for item in vcard[1]:
        if isinstance(item, list) and len(item) >= 4 and item[0] == "fn":
            return str(item[3]) or None
    return None


def _registrant(entities: List[Dict[str, Any]]) -> Optional[str]:
    for role in ("registrant", "administrative", "abuse"):
        for entity in entities:
            if role in (entity.get("roles") or []):
                name = _vcard_name(entity)
                if name:
                    return name
    return None


def _network_range(data: Dict[str, Any]) -> Optional[str]:
    for cidr in data.get("cidr0_cidrs") or []:
        prefix = cidr.get("v4prefix") or cidr.get("v6prefix")
        if prefix and cidr.get("length") is not None:
            return f"{prefix}/{cidr['length']}"

    start, end = data.get("startAddress"), data.get("endAddress")
    if not (start and end):
        return None
    try:
        networks = ipaddress.summarize_address_range(
            ipaddress.ip_address(start), ipaddress.ip_address(end)
        )
        return str(next(networks))
    except (ValueError, TypeError, StopIteration):
        return None


def parse_rdap(data: Any) -> NetworkInfo:
    """
    Convert an RDAP ``ip network`` object into a ``NetworkInfo``.

    Raises:
        ParseError: If the document is not an RDAP network object
    """
    if not isinstance(data, dict) or data.get("objectClassName") != "ip network":
        raise ParseError("Not an RDAP ip network object")

    remarks = data.get("remarks") or []
    descr = None
    if remarks and remarks[0].get("description"):
        descr = " ".join(remarks[0]["description"])

    origin_asns = data.get("arin_originas0_originautnums") or []
    asn = parse_asn(origin_asns[0]) if origin_asns else None

    referral_host = None
    port43 = data.get("port43")
    if port43:
        referral_host = port43
    else:
        for link in data.get("links") or []:
            if link.get("rel") == "self" and link.get("href"):
                referral_host = urlparse(link["href"]).hostname
                break

    country = data.get("country")

    return NetworkInfo(
        asn=asn,
        org=_registrant(data.get("entities") or []) or data.get("name"),
        descr=descr,
        country=country.lower() if country else None,
        range=_network_range(data),
        referral_host=referral_host,
    )


class RdapOwnershipLookup:
    """WHOIS-equivalent ownership lookup through an RDAP redirector."""

    def __init__(self, base_url: str = RDAP_BOOTSTRAP_URL, timeout: float = 10.0):
        self.base_url = base_url.rstrip("/") + "/"
        self.timeout = timeout

    async def lookup(self, ip: str) -> Optional[NetworkInfo]:
        """
        Fetch ownership of the range containing ``ip``.

        Raises:
            FetchError: If the RDAP request fails
            ParseError: If the response is not an RDAP network object
        """
        fetcher = HTTPFetcher(
            source_name="rdap",
            url=f"{self.base_url}{ip}",
            timeout=self.timeout,
            retries=1,
            headers={"Accept": "application/rdap+json"},
        )
        info = parse_rdap(await fetcher.fetch_json())

        logger.debug(
            "RDAP lookup complete",
            ip=ip,
            asn=info.asn,
            org=info.org,
            range=info.range,
        )
        return info
