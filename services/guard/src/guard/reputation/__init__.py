"""Reputation cache, ownership lookups and the coalescing query service."""

from .ownership import OwnershipLookup, RdapOwnershipLookup, parse_rdap
from .service import ReputationService
from .store import InMemoryReputationStore, ReputationStore, StoredReputation

__all__ = [
    "OwnershipLookup",
    "RdapOwnershipLookup",
    "parse_rdap",
    "ReputationService",
    "InMemoryReputationStore",
    "ReputationStore",
    "StoredReputation",
]
