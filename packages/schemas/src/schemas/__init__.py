"""Schemas package."""

from schemas.origin import Origin
from schemas.signals import Signal
from schemas.verdict import Classification, RiskVerdict, NetworkInfo
from schemas.placement import (
    LineDirection,
    PlacementEvent,
    NotDetected,
    Detected,
)
from schemas.validation_rules import (
    parse_ip,
    normalize_ip,
    is_valid_ip,
    subnet_prefix,
    is_private_ip,
)

LineDetection = NotDetected | Detected

__all__ = [
    "Origin",
    "Signal",
    "Classification",
    "RiskVerdict",
    "NetworkInfo",
    "LineDirection",
    "PlacementEvent",
    "NotDetected",
    "Detected",
    "LineDetection",
    "parse_ip",
    "normalize_ip",
    "is_valid_ip",
    "subnet_prefix",
    "is_private_ip",
]
