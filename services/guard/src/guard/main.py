"""Command line entry point: score addresses and print verdicts."""

import argparse
import asyncio
import json
import sys
from typing import Any, Dict, List

import structlog

from common import GuardException, setup_logging
from guard.config import load_config
from guard.service import GuardService

logger = structlog.get_logger()


async def check_addresses(
    service: GuardService, addresses: List[str], refresh_tor: bool = False
) -> List[Dict[str, Any]]:
    """Score each address concurrently; malformed ones are reported, not raised."""
    if refresh_tor:
        await service.tor_registry.refresh()

    verdicts = await asyncio.gather(*(service.check_origin(ip) for ip in addresses))

    results = []
    for ip, verdict in zip(addresses, verdicts):
        if verdict is None:
            results.append({"ip": ip, "error": "invalid address"})
        else:
            results.append(verdict.model_dump(mode="json"))
    return results


async def run(
    service: GuardService, addresses: List[str], refresh_tor: bool = False
) -> List[Dict[str, Any]]:
    results = await check_addresses(service, addresses, refresh_tor)
    await service.push_metrics()
    return results


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Proxy and abuse risk checker")
    parser.add_argument("addresses", nargs="+", help="IP addresses to check")
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to guard configuration file (default: GUARD_CONFIG or packaged guard.yaml)",
    )
    parser.add_argument(
        "--refresh-tor",
        action="store_true",
        help="Refresh the Tor exit list before checking",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Output logs in JSON format",
    )

    args = parser.parse_args()

    global logger
    logger = setup_logging(
        level=args.log_level,
        service_name="guard",
        json_format=args.json_logs,
        stream=sys.stderr,
    )

    try:
        config = load_config(args.config)
    except GuardException as e:
        logger.error("Invalid configuration", **e.log_fields())
        sys.exit(2)

    service = GuardService(config)

    try:
        results = asyncio.run(run(service, args.addresses, args.refresh_tor))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(130)

    print(json.dumps(results, indent=2))
    sys.exit(0)


if __name__ == "__main__":
    main()
