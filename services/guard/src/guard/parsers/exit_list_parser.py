"""Tor exit list parser."""

from typing import List, Optional

import structlog

from common import ParseError
from schemas import normalize_ip

logger = structlog.get_logger()


class ExitListParser:
    """Parser for plain exit address lists and exit-address dumps.

    Example formats:
        # Comment line
        185.220.101.7
        2a0b:f4c2:2::1

        ExitNode 0011BD2485AD45D984EC4159C88FC066E5E3300E
        Published 2024-01-05 03:18:09
        ExitAddress 185.220.101.7 2024-01-05 04:02:38
    """

    EXIT_ADDRESS_KEYWORD = "ExitAddress"
    # descriptor fields of an exit-address dump that carry no address
    DESCRIPTOR_KEYWORDS = frozenset({"ExitNode", "Published", "LastStatus"})

    def __init__(self, source_name: str):
        self.source_name = source_name

    def parse(self, content: str, metadata: Optional[dict] = None) -> List[str]:
        """
        Parse an exit list, one address per line or one per ExitAddress line.

        Lines that are not addresses (HTML error pages, banners, rate-limit
        notices) are skipped and counted. Duplicates are dropped, first
        occurrence wins.

        Raises:
            ParseError: If content is empty
        """
        if not content or not content.strip():
            raise ParseError(
                "Empty exit list",
                context={"source_name": self.source_name, **(metadata or {})},
            )

        addresses = {}
        skipped = 0
        lines = content.splitlines()

        for line in lines:
            line = line.strip()

            if not line or line.startswith("#"):
                continue

            fields = line.split()
            if fields[0] in self.DESCRIPTOR_KEYWORDS:
                continue
            if fields[0] == self.EXIT_ADDRESS_KEYWORD and len(fields) > 1:
                line = fields[1]

            address = normalize_ip(line)
            if address is None:
                skipped += 1
                continue

            addresses.setdefault(address, None)

        logger.info(
            "Exit list parsing complete",
            source=self.source_name,
            total_lines=len(lines),
            addresses=len(addresses),
            skipped=skipped,
        )

        return list(addresses)
