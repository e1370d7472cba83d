"""Utility functions."""

import os
from datetime import timedelta
from typing import Optional


def get_env(key: str, default: Optional[str] = None, required: bool = False) -> str:
    """
    Get environment variable with optional default and required flag.

    Args:
        key: Environment variable name
        default: Default value if not found
        required: If True, raise error if not found and no default

    Returns:
        Environment variable value

    Raises:
        ValueError: If required=True and variable not found
    """
    value = os.getenv(key, default)

    if required and value is None:
        raise ValueError(f"Required environment variable '{key}' not found")

    return value or ""


def clamp(value: float, lower: float, upper: float) -> float:
    """Clamp value into the closed interval [lower, upper]."""
    return max(lower, min(upper, value))


def hours(value: float) -> timedelta:
    """Convert a number of hours into a timedelta."""
    return timedelta(hours=value)
