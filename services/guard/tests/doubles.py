"""Test doubles shared by guard unit tests."""

import asyncio
from typing import Dict, List, Optional

from schemas import Signal
from guard.providers import BaseProvider


class StaticProvider(BaseProvider):
    """Provider double returning a fixed signal, raising, or hanging."""

    def __init__(
        self,
        name: str,
        signal: Optional[Signal] = None,
        error: Optional[Exception] = None,
        delay: float = 0.0,
    ):
        super().__init__(name)
        self.signal = signal
        self.error = error
        self.delay = delay
        self.calls: List[str] = []

    async def lookup(self, ip: str) -> Optional[Signal]:
        self.calls.append(ip)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.signal


class MappingProvider(BaseProvider):
    """Provider double answering from a per-address table."""

    def __init__(self, name: str, answers: Dict[str, Signal]):
        super().__init__(name)
        self.answers = answers
        self.calls: List[str] = []

    async def lookup(self, ip: str) -> Optional[Signal]:
        self.calls.append(ip)
        return self.answers.get(ip)
