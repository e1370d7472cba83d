"""Risk scoring package."""

from .fusion import Fusion, fuse_signals
from .scorer import EnsembleRiskScorer, SubnetBlocklist

__all__ = ["Fusion", "fuse_signals", "EnsembleRiskScorer", "SubnetBlocklist"]
