"""Risk verdict and network ownership models."""

from datetime import datetime, UTC
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field, ConfigDict, field_validator

from common import clamp
from common.constants import MIN_RISK_SCORE, MAX_RISK_SCORE


class Classification(str, Enum):
    """Best-guess connection type of an address."""

    TOR = "TOR"
    VPN = "VPN"
    HOSTING = "Hosting"
    PROXY = "Proxy"
    RESIDENTIAL = "Residential"
    SUSPICIOUS = "Suspicious"


class RiskVerdict(BaseModel):
    """Fused risk result for one address at one point in time."""

    ip: str = Field(..., description="Normalized address the verdict is for")
    score: int = Field(..., ge=MIN_RISK_SCORE, le=MAX_RISK_SCORE)
    flags: List[str] = Field(default_factory=list, description="Deduplicated tags")
    classification: Classification = Classification.RESIDENTIAL
    operator: Optional[str] = Field(
        default=None, description="Best-guess operator or organization"
    )
    asn: Optional[int] = None
    is_proxy: bool = False
    is_high_risk: bool = False
    check_count: int = Field(default=0, description="Number of signals fused")
    low_confidence: bool = Field(
        default=False, description="True when no external provider answered"
    )
    checked_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    expires_at: Optional[datetime] = None

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "ip": "185.220.101.7",
                "score": 100,
                "flags": ["tor", "tor_exit_node_live"],
                "classification": "TOR",
                "operator": "Stiftung Erneuerbare Freiheit",
                "asn": 60729,
                "is_proxy": True,
                "is_high_risk": True,
                "check_count": 5,
            }
        },
    )

    @field_validator("score", mode="before")
    @classmethod
    def _clamp_score(cls, value):
        return int(clamp(int(value), MIN_RISK_SCORE, MAX_RISK_SCORE))

    @field_validator("flags")
    @classmethod
    def _dedupe_flags(cls, value: List[str]) -> List[str]:
        return list(dict.fromkeys(value))

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.expires_at is None:
            return False
        return (now or datetime.now(UTC)) >= self.expires_at


class NetworkInfo(BaseModel):
    """Ownership record of the network range containing an address."""

    asn: Optional[int] = None
    org: Optional[str] = None
    descr: Optional[str] = None
    country: Optional[str] = Field(default=None, description="Lowercase ISO code")
    range: Optional[str] = Field(default=None, description="Containing CIDR range")
    referral_host: Optional[str] = Field(
        default=None, description="Registry server that answered"
    )
    expires_at: Optional[datetime] = None

    model_config = ConfigDict(frozen=True)

    @property
    def is_placeholder(self) -> bool:
        return self.asn is None and self.org is None

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.expires_at is None:
            return False
        return (now or datetime.now(UTC)) >= self.expires_at
