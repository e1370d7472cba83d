"""Configuration constants for the abuse guard."""

from typing import Final

# Risk score bounds
MIN_RISK_SCORE: Final[int] = 0
MAX_RISK_SCORE: Final[int] = 100

# HTTP Fetcher Defaults
DEFAULT_HTTP_TIMEOUT: Final[int] = 30
DEFAULT_HTTP_RETRIES: Final[int] = 3
DEFAULT_HTTP_BACKOFF: Final[float] = 5.0
MAX_RESPONSE_BYTES: Final[int] = 16 * 1024 * 1024
DEFAULT_PROVIDER_TIMEOUT: Final[float] = 10.0

# Tor exit registry
TOR_PRIMARY_URL: Final[str] = "https://check.torproject.org/torbulkexitlist"
TOR_SECONDARY_URL: Final[str] = "https://www.dan.me.uk/torlist/?exit"
TOR_REFRESH_INTERVAL: Final[float] = 6 * 3600.0
TOR_MIN_LIST_SIZE: Final[int] = 100
TOR_CACHE_FILE: Final[str] = "tor_exit_nodes.json"
TOR_EXIT_SCORE: Final[int] = 100
TOR_SUBNET_SCORE: Final[int] = 60

# Subnet prefix lengths used as the "/24 equivalent"
IPV4_SUBNET_PREFIX: Final[int] = 24
IPV6_SUBNET_PREFIX: Final[int] = 48

# Service Defaults
DEFAULT_LOG_LEVEL: Final[str] = "INFO"
DEFAULT_CONFIG_ENV: Final[str] = "GUARD_CONFIG"
SLOW_CHECK_SECONDS: Final[float] = 5.0

# Resource Limits
MAX_TRACKED_ORIGINS: Final[int] = 100_000
MAX_TRACKED_PLACEMENT_ORIGINS: Final[int] = 5_000
SUSPICION_MEMORY_SECONDS: Final[float] = 3600.0
