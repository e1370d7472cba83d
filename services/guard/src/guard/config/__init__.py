"""Configuration package."""

from .settings import (
    ProviderConfig,
    ScoringPolicy,
    TorRegistryConfig,
    TierLimit,
    RateLimitPolicy,
    LineDetectorConfig,
    CachePolicy,
    MetricsConfig,
    GuardConfig,
    load_config,
    DEFAULT_CONFIG_PATH,
)

__all__ = [
    "ProviderConfig",
    "ScoringPolicy",
    "TorRegistryConfig",
    "TierLimit",
    "RateLimitPolicy",
    "LineDetectorConfig",
    "CachePolicy",
    "MetricsConfig",
    "GuardConfig",
    "load_config",
    "DEFAULT_CONFIG_PATH",
]
