"""Base fetcher abstract class."""

import json
from abc import ABC, abstractmethod
from typing import Dict, Any

from common import ParseError


class BaseFetcher(ABC):
    """Abstract base class for data fetchers."""

    def __init__(self, source_name: str, url: str):
        """
        Initialize fetcher.

        Args:
            source_name: Name of the data source
            url: URL to fetch from
        """
        self.source_name = source_name
        self.url = url

    @abstractmethod
    async def fetch(self) -> Dict[str, Any]:
        """
        Fetch data from source.

        Returns:
            Dictionary containing:
                - content: The fetched content as string
                - metadata: Metadata about the fetch (status, size, etc.)

        Raises:
            FetchError: If fetching fails
        """
        pass

    async def fetch_json(self) -> Any:
        """
        Fetch and decode a JSON document.

        Raises:
            FetchError: If fetching fails
            ParseError: If the body is not valid JSON
        """
        result = await self.fetch()
        try:
            return json.loads(result["content"])
        except ValueError as e:
            raise ParseError(
                message="Response is not valid JSON",
                context={"source_name": self.source_name, "url": self.url},
                original_error=e,
            )
