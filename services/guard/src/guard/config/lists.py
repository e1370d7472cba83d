"""Static reputation lists used by the fusion rules."""

from typing import Dict, FrozenSet, Tuple

TOR_EXIT_ASNS: FrozenSet[int] = frozenset({
    60729, 53667, 200052, 208323, 205100, 210558, 58087, 44925, 4224, 43350,
})

VPN_PROVIDER_ASNS: FrozenSet[int] = frozenset({
    9009, 136787, 212238, 60068, 147049, 209854, 202425, 51852, 39351, 207137,
    141995, 44901, 49981, 206092, 198605, 212815, 213230,
})

PROXY_PROVIDER_ASNS: FrozenSet[int] = frozenset({
    62041, 63018, 55286, 398101, 396356, 397423, 400328, 213371, 204957,
})

DATACENTER_ASNS: FrozenSet[int] = frozenset({
    14061, 16276, 20473, 24940, 36352, 46664, 63949, 14618, 16509, 15169,
    8075, 13335, 32934, 19551, 22612, 30633, 36351, 54825, 197540, 206264,
    209, 396982, 45102, 51167, 60781, 51396, 62563, 50304, 47583, 60404,
    61317, 62217, 132203, 133752, 135377, 138915, 139190, 142111, 200019,
    201011, 202053, 203020, 206898, 209588, 394380, 395954, 398465, 399077,
    399629,
})

# tiered additive risk per ASN family, most specific first
ASN_RISK_TIERS: Tuple[Tuple[FrozenSet[int], int, str, str], ...] = (
    (TOR_EXIT_ASNS, 100, "tor_exit_asn", "TOR"),
    (VPN_PROVIDER_ASNS, 80, "vpn_provider_asn", "VPN"),
    (PROXY_PROVIDER_ASNS, 60, "proxy_provider_asn", "Proxy"),
    (DATACENTER_ASNS, 40, "datacenter_asn", "Hosting"),
)

ORG_KEYWORDS: Tuple[str, ...] = (
    "vpn", "proxy", "hosting", "server", "cloud", "vps", "dedicated",
    "colocation", "datacenter", "data center", "hetzner", "ovh", "digitalocean",
    "linode", "vultr", "amazon", "google", "microsoft", "azure", "aws",
    "cloudflare", "akamai", "fastly", "leaseweb", "choopa", "contabo",
    "scaleway", "upcloud", "kamatera", "hostinger", "ionos", "aruba",
    "nord", "express", "surfshark", "cyberghost", "private internet",
    "mullvad", "proton", "windscribe", "tunnelbear", "hotspot shield",
    "hide.me", "ipvanish", "purevpn", "torguard", "astrill", "vypr",
)

SUSPICIOUS_PTR_KEYWORDS: Tuple[str, ...] = (
    "vpn", "proxy", "tor", "exit", "relay", "bridge", "server", "vps",
    "cloud", "dedicated", "colo", "hosting", "host", "datacenter",
    "data-center", "dc", "srv", "amazonaws", "aws", "ec2", "googleusercontent",
    "gcp", "azure", "digitalocean", "linode", "vultr", "ovh", "hetzner",
    "contabo", "scaleway", "upcloud", "kamatera", "choopa", "leaseweb",
    "mullvad", "nordvpn", "expressvpn", "surfshark", "cyberghost",
    "protonvpn", "windscribe", "ipvanish", "purevpn", "torguard",
)

RESIDENTIAL_PTR_KEYWORDS: Tuple[str, ...] = (
    "comcast", "verizon", "att", "spectrum", "cox", "charter", "rr",
    "centurylink", "frontier", "windstream", "mediacom", "suddenlink",
    "orange", "sfr", "free", "bouygues", "vodafone", "telefonica", "movistar",
    "telekom", "dtag", "btcentralplus", "virginm", "sky", "rogers", "bell",
    "telus", "shaw", "videotron", "cogeco", "optus", "telstra", "tpg",
    "iinet", "internode", "dsl", "adsl", "vdsl", "cable", "fiber", "fibre",
    "ftth", "dhcp", "ppp", "pppoe", "dynamic", "dyn", "pool", "residential",
)

TOR_RELAY_PORTS: FrozenSet[int] = frozenset({9001, 9030, 9050, 9051, 9150})

DEFAULT_PROBE_PORTS: Tuple[int, ...] = (1080, 3128, 8080, 8118, 8888)

# Known Tor and abuse-heavy hosting ranges, blocked outright
DEFAULT_BLOCKED_SUBNETS: Tuple[str, ...] = tuple(
    f"{prefix}.0/24"
    for prefix in (
        "185.220.100", "185.220.101", "185.220.102", "185.220.103",
        "185.56.80", "185.107.47", "185.129.61", "185.130.44",
        "193.218.118", "198.98.48", "198.98.49", "198.98.50",
        "199.249.230", "204.8.156", "209.127.17", "209.141.32",
        "209.141.33", "209.141.34", "209.141.35", "209.141.36",
        "23.128.248", "23.129.64", "45.33.32", "45.33.33",
        "45.79.0", "45.79.1", "51.15.0", "51.15.1",
        "62.102.148", "62.210.0", "62.210.1", "66.70.228",
        "77.247.181", "78.142.19", "81.17.18", "85.93.20",
        "89.234.157", "91.121.0", "91.121.1", "91.219.236",
        "94.23.0", "94.23.1", "95.128.43", "95.211.0",
        "104.244.72", "104.244.73", "104.244.74", "104.244.75",
        "104.244.76", "104.244.77", "104.244.78", "104.244.79",
        "107.189.0", "107.189.1", "107.189.2", "107.189.3",
        "109.70.100", "109.201.133", "128.31.0", "131.188.40",
        "162.247.72", "162.247.73", "162.247.74", "171.25.193",
        "176.10.99", "176.10.104", "178.17.170", "178.17.171",
        "178.20.55", "179.43.128", "185.100.84", "185.100.85",
        "185.100.86", "185.100.87", "185.117.82", "185.129.62",
        "185.165.168", "185.165.169", "185.220.0", "185.220.1",
    )
)

# ASN pairs operated by the same provider under different registrations
SIBLING_ASNS: Tuple[Tuple[int, int], ...] = (
    (9141, 39603), (9050, 8708), (52361, 7303), (5483, 1955), (26599, 267336),
    (48503, 9198), (9121, 16135), (15897, 211709), (12361, 3329), (43612, 6821),
)


def asn_risk(asn: int) -> Tuple[int, str, str]:
    """Return (score, flag, classification) for the first matching ASN tier."""
    for members, score, flag, classification in ASN_RISK_TIERS:
        if asn in members:
            return score, flag, classification
    return 0, "", ""


def sibling_asn_map() -> Dict[int, FrozenSet[int]]:
    siblings: Dict[int, set] = {}
    for a, b in SIBLING_ASNS:
        siblings.setdefault(a, set()).add(b)
        siblings.setdefault(b, set()).add(a)
    return {asn: frozenset(others) for asn, others in siblings.items()}
