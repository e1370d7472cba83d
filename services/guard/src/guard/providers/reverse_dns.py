"""Reverse DNS (PTR) signal."""

import asyncio
import re
import socket
from typing import Iterable, Optional, Pattern, Tuple

import structlog

from schemas import Signal
from guard.config.lists import SUSPICIOUS_PTR_KEYWORDS, RESIDENTIAL_PTR_KEYWORDS
from .base_provider import BaseProvider

logger = structlog.get_logger()

# generic rDNS that embeds the address, e.g. 1-2-3-4.static.example.net
NUMERIC_PTR = re.compile(r"\d+[.-]\d+[.-]\d+[.-]\d+")


def keyword_pattern(keyword: str) -> Pattern:
    """Match a keyword not embedded in a longer word (``tor`` vs ``toronto``)."""
    return re.compile(rf"(?<![a-z]){re.escape(keyword)}(?![a-z])")


def compile_keywords(keywords: Iterable[str]) -> Tuple[Tuple[str, Pattern], ...]:
    return tuple((keyword, keyword_pattern(keyword)) for keyword in keywords)


SUSPICIOUS_PATTERNS = compile_keywords(SUSPICIOUS_PTR_KEYWORDS)
RESIDENTIAL_PATTERNS = compile_keywords(RESIDENTIAL_PTR_KEYWORDS)


def classify_hostname(hostname: str) -> Signal:
    """
    Derive PTR flags from a hostname.

    Examples:
        >>> classify_hostname("tor-exit-1.example.org").ptr_keywords
        ('tor', 'exit')
        >>> classify_hostname("cpe-1-2-3-4.toronto.rogers.com").ptr_residential
        True
    """
    hostname = hostname.lower().rstrip(".")

    keywords = tuple(kw for kw, pattern in SUSPICIOUS_PATTERNS if pattern.search(hostname))
    residential = any(pattern.search(hostname) for _, pattern in RESIDENTIAL_PATTERNS)
    numeric = "." not in hostname or bool(NUMERIC_PTR.search(hostname))

    return Signal(
        source="reverse_dns",
        hostname=hostname,
        has_ptr=True,
        ptr_keywords=keywords,
        ptr_numeric=numeric,
        ptr_residential=residential,
    )


class ReverseDNSProvider(BaseProvider):
    """PTR lookup through the system resolver."""

    def __init__(self, name: str = "reverse_dns"):
        super().__init__(name)

    async def resolve(self, ip: str) -> Optional[str]:
        loop = asyncio.get_running_loop()
        try:
            hostname, _, _ = await loop.run_in_executor(None, socket.gethostbyaddr, ip)
        except (socket.herror, socket.gaierror):
            return None
        return hostname or None

    async def lookup(self, ip: str) -> Optional[Signal]:
        hostname = await self.resolve(ip)

        if hostname is None:
            logger.debug("No PTR record", ip=ip)
            return Signal(source="reverse_dns", has_ptr=False)

        return classify_hostname(hostname)
