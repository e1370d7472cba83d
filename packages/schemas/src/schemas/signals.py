"""Signal provider observation model."""

from typing import Optional, Tuple
from pydantic import BaseModel, Field, ConfigDict


class Signal(BaseModel):
    """One provider's partial observation about an address.

    Every field except ``source`` may be absent; absence is not failure.
    """

    source: str = Field(..., description="Provider name (e.g., ip-api.com)")
    asn: Optional[int] = Field(default=None, description="Autonomous system number")
    org: Optional[str] = Field(
        default=None, description="Organization, ISP or AS name reported"
    )
    country: Optional[str] = Field(default=None, description="ISO country code")

    is_proxy: Optional[bool] = None
    is_vpn: Optional[bool] = None
    is_tor: Optional[bool] = None
    is_hosting: Optional[bool] = None
    is_datacenter: Optional[bool] = None
    is_residential: Optional[bool] = None
    is_mobile: Optional[bool] = None
    is_bot: Optional[bool] = None
    recent_abuse: Optional[bool] = None

    risk: Optional[int] = Field(default=None, description="Provider risk 0-100")
    fraud_score: Optional[int] = Field(default=None, description="Fraud score 0-100")
    abuse_score: Optional[int] = Field(
        default=None, description="Abuse confidence 0-100"
    )
    probability: Optional[float] = Field(
        default=None, description="Proxy probability 0.0-1.0"
    )
    total_reports: Optional[int] = Field(
        default=None, description="Number of abuse reports"
    )
    risk_level: Optional[str] = Field(
        default=None, description="Qualitative risk (low/medium/high/critical)"
    )

    proxy_type: Optional[str] = Field(
        default=None, description="Proxy type reported (VPN, SOCKS5, ...)"
    )
    operator: Optional[str] = Field(default=None, description="VPN/proxy operator")
    port: Optional[int] = Field(default=None, description="Port the proxy was seen on")
    open_ports: Optional[Tuple[int, ...]] = Field(
        default=None, description="Ports found open by active probing"
    )

    hostname: Optional[str] = Field(default=None, description="PTR hostname")
    has_ptr: Optional[bool] = Field(default=None, description="PTR record exists")
    ptr_keywords: Tuple[str, ...] = Field(
        default=(), description="Infrastructure keywords found in the PTR"
    )
    ptr_numeric: Optional[bool] = Field(
        default=None, description="PTR embeds the address (generic rDNS)"
    )
    ptr_residential: Optional[bool] = Field(
        default=None, description="PTR belongs to a residential ISP"
    )

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "source": "ip-api.com",
                "asn": 24940,
                "org": "Hetzner Online GmbH",
                "is_proxy": False,
                "is_hosting": True,
            }
        },
    )
