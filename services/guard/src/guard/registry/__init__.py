"""Tor exit registry package."""

from .tor_registry import TorExitRegistry, TorSnapshot

__all__ = ["TorExitRegistry", "TorSnapshot"]
