"""Guard configuration models and YAML loader."""

from pathlib import Path
from typing import Dict, List, Optional, Union

import structlog
import yaml
from pydantic import BaseModel, Field, ValidationError, model_validator

from common import ConfigurationError, get_env
from common import constants
from guard.config.lists import DEFAULT_BLOCKED_SUBNETS, DEFAULT_PROBE_PORTS

logger = structlog.get_logger()

DEFAULT_CONFIG_PATH = Path(__file__).parent / "guard.yaml"


class ProviderConfig(BaseModel):
    """One signal provider entry from the ``providers`` section."""

    kind: str = Field(..., description="Provider implementation name")
    enabled: bool = True
    url: Optional[str] = None
    api_key_env: Optional[str] = Field(
        default=None, description="Environment variable holding the API key"
    )
    contact: Optional[str] = Field(
        default=None, description="Contact address some services require"
    )
    timeout: float = constants.DEFAULT_PROVIDER_TIMEOUT
    retries: int = 1

    @property
    def api_key(self) -> Optional[str]:
        if not self.api_key_env:
            return None
        return get_env(self.api_key_env) or None


class ScoringPolicy(BaseModel):
    """Thresholds of the ensemble scorer."""

    provider_timeout: float = constants.DEFAULT_PROVIDER_TIMEOUT
    inconclusive_low: int = 30
    inconclusive_high: int = 50
    proxy_threshold: int = 50
    high_risk_threshold: int = 75
    probe_ports: List[int] = Field(default_factory=lambda: list(DEFAULT_PROBE_PORTS))
    probe_timeout: float = 2.0
    residential_dampener: int = 15
    slow_check_seconds: float = constants.SLOW_CHECK_SECONDS
    blocked_subnets: List[str] = Field(
        default_factory=lambda: list(DEFAULT_BLOCKED_SUBNETS)
    )

    @model_validator(mode="after")
    def _check_band(self):
        if self.inconclusive_low > self.inconclusive_high:
            raise ValueError("inconclusive_low must not exceed inconclusive_high")
        return self


class TorRegistryConfig(BaseModel):
    primary_url: str = constants.TOR_PRIMARY_URL
    secondary_url: Optional[str] = constants.TOR_SECONDARY_URL
    refresh_interval: float = constants.TOR_REFRESH_INTERVAL
    timeout: float = 30.0
    retries: int = 2
    backoff: float = 5.0
    min_list_size: int = constants.TOR_MIN_LIST_SIZE
    cache_file: str = constants.TOR_CACHE_FILE


class TierLimit(BaseModel):
    requests: int = Field(..., ge=0)
    window: float = Field(..., gt=0, description="Sliding window in seconds")


def _default_tiers() -> Dict[str, TierLimit]:
    return {
        "normal": TierLimit(requests=100, window=60.0),
        "suspicious": TierLimit(requests=20, window=60.0),
        "high_risk": TierLimit(requests=5, window=60.0),
        "blocked": TierLimit(requests=0, window=60.0),
    }


class RateLimitPolicy(BaseModel):
    suspicious_threshold: int = 30
    high_risk_threshold: int = 50
    block_threshold: int = 75
    tiers: Dict[str, TierLimit] = Field(default_factory=_default_tiers)
    max_violations: int = 3
    inactivity_timeout: float = 300.0
    cleanup_interval: float = 60.0
    max_tracked: int = constants.MAX_TRACKED_ORIGINS
    suspicion_memory: float = constants.SUSPICION_MEMORY_SECONDS
    detection_risk_score: int = Field(
        default=50, description="Risk applied to an origin caught scripting"
    )

    @model_validator(mode="after")
    def _check_tiers(self):
        missing = {"normal", "suspicious", "high_risk", "blocked"} - set(self.tiers)
        if missing:
            raise ValueError(f"missing rate limit tiers: {sorted(missing)}")
        return self


class LineDetectorConfig(BaseModel):
    min_points: int = Field(default=12, ge=2)
    detection_window: float = 15.0
    history_window: float = 60.0
    collinearity_tolerance: float = 0.35
    spacing_tolerance_rel: float = 0.05
    min_spacing: float = 1.0
    max_spacing: float = 50.0
    degenerate_spacing: float = 0.5
    min_line_length: float = 10.0
    angle_tolerance_deg: float = 2.0
    buffer_capacity: int = Field(default=200, ge=1)
    max_tracked: int = constants.MAX_TRACKED_PLACEMENT_ORIGINS
    cleanup_interval: float = 30.0
    report_cooldown: float = 30.0


class CachePolicy(BaseModel):
    """Verdict lifetimes in hours, tiered by outcome."""

    proxy_hours: float = 168.0
    borderline_hours: float = 48.0
    borderline_score: int = 40
    clean_hours: float = 24.0
    failure_hours: float = 6.0
    network_hours: float = 240.0
    network_placeholder_hours: float = 24.0


class MetricsConfig(BaseModel):
    """Prometheus Pushgateway settings. Metrics are off unless enabled."""

    enabled: bool = False
    pushgateway_url: Optional[str] = Field(
        default=None,
        description="Falls back to PROMETHEUS_PUSHGATEWAY_URL when unset",
    )
    job_name: str = "abuse_guard"
    push_interval: float = Field(default=60.0, gt=0)
    timeout: int = Field(default=5, gt=0)


class GuardConfig(BaseModel):
    providers: Dict[str, ProviderConfig] = Field(default_factory=dict)
    scoring: ScoringPolicy = Field(default_factory=ScoringPolicy)
    tor_registry: TorRegistryConfig = Field(default_factory=TorRegistryConfig)
    rate_limit: RateLimitPolicy = Field(default_factory=RateLimitPolicy)
    line_detector: LineDetectorConfig = Field(default_factory=LineDetectorConfig)
    cache: CachePolicy = Field(default_factory=CachePolicy)
    metrics: MetricsConfig = Field(default_factory=MetricsConfig)


def load_config(config_path: Optional[Union[str, Path]] = None) -> GuardConfig:
    """
    Load guard configuration from a YAML file.

    Resolution order: explicit path, ``GUARD_CONFIG`` environment variable,
    the packaged ``guard.yaml``.

    Raises:
        ConfigurationError: If the file is missing or invalid
    """
    path = Path(
        config_path
        or get_env(constants.DEFAULT_CONFIG_ENV)
        or DEFAULT_CONFIG_PATH
    )

    if not path.exists():
        raise ConfigurationError(
            "Configuration file not found", context={"config_path": str(path)}
        )

    logger.info("Loading configuration", config_path=str(path))

    try:
        with open(path, "r") as f:
            raw = yaml.safe_load(f) or {}
        config = GuardConfig.model_validate(raw)
    except yaml.YAMLError as e:
        raise ConfigurationError(
            "Configuration file is not valid YAML",
            context={"config_path": str(path)},
            original_error=e,
        )
    except ValidationError as e:
        raise ConfigurationError(
            "Configuration does not match schema",
            context={"config_path": str(path), "errors": e.error_count()},
            original_error=e,
        )

    logger.info(
        "Configuration loaded",
        providers=[name for name, p in config.providers.items() if p.enabled],
    )

    return config
