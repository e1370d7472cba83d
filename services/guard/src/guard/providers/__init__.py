"""Signal providers package."""

from typing import Dict, List

import structlog

from guard.config import ProviderConfig
from .base_provider import BaseProvider
from .reputation_apis import (
    JSONAPIProvider,
    ProxyCheckProvider,
    IpApiProvider,
    GetIPIntelProvider,
    IPQualityScoreProvider,
    AbuseIPDBProvider,
    SpurProvider,
    PROVIDER_KINDS,
    parse_asn,
)
from .reverse_dns import ReverseDNSProvider, classify_hostname
from .port_probe import PortProbeProvider

logger = structlog.get_logger()


def build_providers(configs: Dict[str, ProviderConfig]) -> List[BaseProvider]:
    """
    Instantiate the enabled, usable providers from configuration.

    Providers whose API key is missing are skipped with a log line rather
    than failing every lookup.
    """
    providers = []

    for name, config in configs.items():
        if not config.enabled:
            continue

        provider_cls = PROVIDER_KINDS.get(config.kind)
        if provider_cls is None:
            logger.warning("Unknown provider kind", provider=name, kind=config.kind)
            continue

        provider = provider_cls(name, config)
        if not provider.available:
            logger.info(
                "Provider skipped, API key not set",
                provider=name,
                api_key_env=config.api_key_env,
            )
            continue

        providers.append(provider)

    return providers


__all__ = [
    "BaseProvider",
    "JSONAPIProvider",
    "ProxyCheckProvider",
    "IpApiProvider",
    "GetIPIntelProvider",
    "IPQualityScoreProvider",
    "AbuseIPDBProvider",
    "SpurProvider",
    "ReverseDNSProvider",
    "PortProbeProvider",
    "PROVIDER_KINDS",
    "build_providers",
    "classify_hostname",
    "parse_asn",
]
