"""Common utilities package."""

from common.logging import setup_logging
from common.exceptions import (
    GuardException,
    FetchError,
    ParseError,
    ProviderError,
    InvalidOriginError,
    StoreError,
    ConfigurationError,
)
from common.utils import get_env, clamp, hours
from common import constants

__all__ = [
    "setup_logging",
    "GuardException",
    "FetchError",
    "ParseError",
    "ProviderError",
    "InvalidOriginError",
    "StoreError",
    "ConfigurationError",
    "get_env",
    "clamp",
    "hours",
    "constants",
]
