"""Base signal provider."""

from abc import ABC, abstractmethod
from typing import Optional

from schemas import Signal


class BaseProvider(ABC):
    """Abstract base class for reputation signal providers.

    ``lookup`` returns ``None`` when the provider has nothing to say about the
    address and raises (``FetchError``, ``ParseError``, ``ProviderError``)
    when the lookup itself failed. The scorer treats both as "no signal".
    """

    #: Whether the provider can run without an API key
    requires_key: bool = False

    def __init__(self, name: str):
        """
        Initialize provider.

        Args:
            name: Provider name used in flags and logs
        """
        self.name = name

    @property
    def available(self) -> bool:
        """Whether the provider is configured well enough to be queried."""
        return True

    @abstractmethod
    async def lookup(self, ip: str) -> Optional[Signal]:
        """
        Look up one normalized address.

        Args:
            ip: Normalized address

        Returns:
            Signal or None if the provider has no data

        Raises:
            GuardException: If the lookup failed
        """
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
