"""Active probing of well-known proxy ports."""

import asyncio
from typing import Iterable, Optional

import structlog

from schemas import Signal
from .base_provider import BaseProvider

logger = structlog.get_logger()


class PortProbeProvider(BaseProvider):
    """Connect to a short list of proxy/Tor ports on the address.

    Only used as the second, more expensive pass when the first pass is
    inconclusive.
    """

    def __init__(self, ports: Iterable[int], timeout: float = 2.0, name: str = "port_probe"):
        super().__init__(name)
        self.ports = tuple(ports)
        self.timeout = timeout

    async def is_open(self, ip: str, port: int) -> bool:
        try:
            _, writer = await asyncio.wait_for(
                asyncio.open_connection(ip, port), timeout=self.timeout
            )
        except (OSError, asyncio.TimeoutError):
            return False

        writer.close()
        try:
            await writer.wait_closed()
        except OSError:
            pass
        return True

    async def lookup(self, ip: str) -> Optional[Signal]:
        results = await asyncio.gather(*(self.is_open(ip, port) for port in self.ports))
        open_ports = tuple(port for port, is_open in zip(self.ports, results) if is_open)

        if open_ports:
            logger.info("Open proxy ports found", ip=ip, ports=list(open_ports))

        return Signal(source="port_probe", open_ports=open_ports)
