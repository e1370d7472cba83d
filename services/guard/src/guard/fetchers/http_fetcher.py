"""HTTP fetcher with retry logic."""

import asyncio
from typing import Any, Dict, Mapping, Optional

import aiohttp
import structlog
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from common import FetchError, ParseError
from common.constants import (
    DEFAULT_HTTP_BACKOFF,
    DEFAULT_HTTP_RETRIES,
    DEFAULT_HTTP_TIMEOUT,
    MAX_RESPONSE_BYTES,
)
from .base_fetcher import BaseFetcher

logger = structlog.get_logger()

NETWORK_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError)

# Rate limited: worth another attempt after backing off
TOO_MANY_REQUESTS = 429


def is_transient(error: BaseException) -> bool:
    """
    Whether a failed request may succeed when repeated.

    Client errors (bad API key, unknown address, bad request) are permanent,
    except for rate limiting. Server errors and network failures are not.
    """
    if isinstance(error, aiohttp.ClientResponseError):
        return error.status >= 500 or error.status == TOO_MANY_REQUESTS
    return isinstance(error, NETWORK_ERRORS)


class HTTPFetcher(BaseFetcher):
    """GET one URL with bounded, backed-off retries of transient failures.

    Used both for bulk list downloads (long timeout, several attempts) and
    for reputation API lookups (short timeout, usually a single attempt).
    Every failure surfaces as ``FetchError``.
    """

    def __init__(
        self,
        source_name: str,
        url: str,
        timeout: float = DEFAULT_HTTP_TIMEOUT,
        retries: int = DEFAULT_HTTP_RETRIES,
        backoff: float = DEFAULT_HTTP_BACKOFF,
        headers: Optional[Mapping[str, str]] = None,
        params: Optional[Mapping[str, str]] = None,
        max_bytes: int = MAX_RESPONSE_BYTES,
    ):
        """
        Initialize HTTP fetcher.

        Args:
            source_name: Name of the source, used in logs and errors
            url: URL to fetch
            timeout: Total timeout of one attempt in seconds
            retries: Number of attempts (1 disables retrying)
            backoff: First wait between attempts, doubled after each
            headers: Extra request headers (API keys, Accept)
            params: Query string parameters
            max_bytes: Refuse bodies announced larger than this
        """
        super().__init__(source_name, url)
        self.timeout = timeout
        self.retries = max(1, retries)
        self.backoff = backoff
        self.headers = dict(headers or {})
        self.params = dict(params or {})
        self.max_bytes = max_bytes

    def _error(self, message: str, error: Exception, attempts: int) -> FetchError:
        context = {
            "source_name": self.source_name,
            "url": self.url,
            "attempts": attempts,
            "timeout": self.timeout,
        }
        if isinstance(error, aiohttp.ClientResponseError):
            context["status"] = error.status
        return FetchError(message=message, context=context, original_error=error)

    async def _get(self, session: aiohttp.ClientSession) -> Dict[str, Any]:
        async with session.get(
            self.url,
            headers=self.headers or None,
            params=self.params or None,
            timeout=aiohttp.ClientTimeout(total=self.timeout),
        ) as response:
            response.raise_for_status()

            if response.content_length is not None and response.content_length > self.max_bytes:
                raise FetchError(
                    "Response too large",
                    context={
                        "source_name": self.source_name,
                        "url": self.url,
                        "content_length": response.content_length,
                        "max_bytes": self.max_bytes,
                    },
                )

            body = await response.read()
            charset = response.charset or "utf-8"
            try:
                content = body.decode(charset)
            except (UnicodeDecodeError, LookupError) as e:
                raise ParseError(
                    "Response body is not valid text",
                    context={
                        "source_name": self.source_name,
                        "url": self.url,
                        "charset": charset,
                    },
                    original_error=e,
                )

            return {
                "content": content,
                "metadata": {
                    "http_status": response.status,
                    "content_length": len(content),
                    "content_type": response.headers.get("Content-Type", ""),
                    "source_url": self.url,
                },
            }

    async def fetch(self) -> Dict[str, Any]:
        """
        Fetch the URL, retrying transient failures.

        Returns:
            Dictionary containing:
                - content: Response body as text
                - metadata: http_status, content_length, content_type, source_url

        Raises:
            FetchError: On a permanent failure, an oversized body, or when
                every attempt failed
            ParseError: If the body cannot be decoded as text
        """
        logger.debug(
            "Starting HTTP fetch",
            source=self.source_name,
            url=self.url,
            timeout=self.timeout,
        )

        attempts = 0
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.retries),
                wait=wait_exponential(multiplier=self.backoff, min=self.backoff),
                retry=retry_if_exception(is_transient),
                reraise=True,
            ):
                with attempt:
                    attempts = attempt.retry_state.attempt_number
                    async with aiohttp.ClientSession() as session:
                        result = await self._get(session)

        except NETWORK_ERRORS as e:
            if not is_transient(e):
                logger.warning(
                    "HTTP fetch rejected",
                    source=self.source_name,
                    url=self.url,
                    status=getattr(e, "status", None),
                )
                raise self._error(f"Request to {self.url} was rejected", e, attempts)

            logger.warning(
                "HTTP fetch failed after all retries",
                source=self.source_name,
                url=self.url,
                attempts=attempts,
                error=str(e) or type(e).__name__,
            )
            raise self._error(
                f"Failed to fetch from {self.url} after {attempts} attempts", e, attempts
            )

        logger.debug(
            "HTTP fetch successful",
            source=self.source_name,
            status=result["metadata"]["http_status"],
            content_length=result["metadata"]["content_length"],
            attempts=attempts,
        )
        return result
