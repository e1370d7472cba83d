"""Origin identity model."""

from typing import Optional
from pydantic import BaseModel, Field, ConfigDict, field_validator

from common import InvalidOriginError
from schemas.validation_rules import normalize_ip


class Origin(BaseModel):
    """Identity under risk evaluation: an address plus optional user id."""

    ip: str = Field(..., description="Normalized IPv4 or IPv6 address")
    user_id: Optional[str] = Field(
        default=None, description="Authenticated user identifier, if any"
    )

    model_config = ConfigDict(frozen=True)

    @field_validator("ip")
    @classmethod
    def _normalize(cls, value: str) -> str:
        normalized = normalize_ip(value)
        if normalized is None:
            raise ValueError(f"invalid address: {value!r}")
        return normalized

    @field_validator("user_id", mode="before")
    @classmethod
    def _stringify_user(cls, value):
        if value is None or value == "":
            return None
        return str(value)

    @property
    def key(self) -> str:
        """State key: the user when authenticated, otherwise the address."""
        if self.user_id:
            return f"u:{self.user_id}"
        return f"i:{self.ip}"

    @classmethod
    def parse(cls, ip: Optional[str], user_id=None) -> "Origin":
        """
        Build an origin from raw request data.

        Raises:
            InvalidOriginError: If the address is missing or malformed
        """
        normalized = normalize_ip(ip) if ip else None
        if normalized is None:
            raise InvalidOriginError("Invalid origin address", context={"ip": ip})
        return cls(ip=normalized, user_id=user_id)
