"""Address validation rules."""

import ipaddress
from typing import Optional, Union

from common.constants import IPV4_SUBNET_PREFIX, IPV6_SUBNET_PREFIX

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]

# Longest textual form of an IPv6 address with embedded IPv4
MAX_ADDRESS_LENGTH = 45

# Carrier-grade NAT is not flagged private by ipaddress
CGNAT_NETWORK = ipaddress.ip_network("100.64.0.0/10")


def parse_ip(value: str) -> Optional[IPAddress]:
    """
    Parse an address string into an ipaddress object.

    IPv4-mapped IPv6 addresses (``::ffff:1.2.3.4``) are unwrapped to IPv4 so
    that the same client is keyed identically on dual-stack listeners.

    Returns:
        Parsed address or None if the value is not a valid address
    """
    if not value or not isinstance(value, str):
        return None

    value = value.strip()
    if len(value) > MAX_ADDRESS_LENGTH:
        return None

    # Zone identifiers are meaningless off-host
    if "%" in value:
        value = value.split("%", 1)[0]

    try:
        address = ipaddress.ip_address(value)
    except ValueError:
        return None

    if isinstance(address, ipaddress.IPv6Address) and address.ipv4_mapped:
        return address.ipv4_mapped

    return address


def normalize_ip(value: str) -> Optional[str]:
    """
    Normalize an address to its canonical compressed text form.

    Examples:
        >>> normalize_ip(" 192.168.001.1 ") is None
        True
        >>> normalize_ip("::ffff:10.0.0.1")
        '10.0.0.1'
        >>> normalize_ip("2001:DB8:0:0::1")
        '2001:db8::1'
        >>> normalize_ip("not-an-ip") is None
        True
    """
    address = parse_ip(value)
    return str(address) if address is not None else None


def is_valid_ip(value: str) -> bool:
    """Check if value is a valid IPv4 or IPv6 address."""
    return parse_ip(value) is not None


def subnet_prefix(value: str) -> Optional[str]:
    """
    Get the /24-equivalent subnet of an address.

    IPv4 addresses map to their /24, IPv6 addresses to their /48.

    Examples:
        >>> subnet_prefix("185.220.101.7")
        '185.220.101.0/24'
        >>> subnet_prefix("2a0b:f4c2:2::1")
        '2a0b:f4c2:2::/48'
    """
    address = parse_ip(value)
    if address is None:
        return None

    prefix = IPV4_SUBNET_PREFIX if address.version == 4 else IPV6_SUBNET_PREFIX
    network = ipaddress.ip_network(f"{address}/{prefix}", strict=False)
    return str(network)


def is_private_ip(value: str) -> bool:
    """Check if an address is private, loopback, link-local or CGNAT."""
    address = parse_ip(value)
    if address is None:
        return False

    if address.is_private or address.is_loopback or address.is_link_local:
        return True

    return address.version == 4 and address in CGNAT_NETWORK
