"""Abuse detection and risk mitigation for the shared canvas."""

__version__ = "0.3.0"
