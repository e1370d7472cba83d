"""Mock HTTP servers standing in for exit lists, reputation APIs and RDAP."""

import asyncio
from collections import Counter

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer


@pytest.fixture
async def mock_exit_list_server(sample_exit_list, sample_secondary_exit_list):
    """Serves a primary and a secondary exit list plus failing variants."""

    async def handle_primary(request):
        return web.Response(text=sample_exit_list, headers={"Content-Type": "text/plain"})

    async def handle_secondary(request):
        return web.Response(
            text=sample_secondary_exit_list, headers={"Content-Type": "text/plain"}
        )

    async def handle_truncated(request):
        return web.Response(text="185.220.101.7\n", headers={"Content-Type": "text/plain"})

    async def handle_down(request):
        raise web.HTTPServiceUnavailable(text="Service temporarily unavailable")

    async def handle_garbled(request):
        return web.Response(body=b"\xff\xfe" + bytes(range(128, 256)), content_type="text/plain")

    app = web.Application()
    app.router.add_get("/torbulkexitlist", handle_primary)
    app.router.add_get("/torlist", handle_secondary)
    app.router.add_get("/truncated", handle_truncated)
    app.router.add_get("/down", handle_down)
    app.router.add_get("/garbled", handle_garbled)

    server = TestServer(app)
    await server.start_server()

    yield server

    await server.close()


@pytest.fixture
async def mock_reputation_server(sample_ip_api_responses, sample_rdap_networks):
    """ip-api.com and RDAP look-alike that counts lookups per address.

    ``server.app["hits"]`` maps ``(service, ip)`` to the request count.
    """
    hits = Counter()

    async def handle_ip_api(request):
        ip = request.match_info["ip"]
        hits[("ip_api", ip)] += 1
        # give concurrent callers a chance to pile up
        await asyncio.sleep(0.05)

        answer = sample_ip_api_responses.get(ip)
        if answer is None:
            answer = {"status": "success", "proxy": False, "hosting": False}
        return web.json_response(answer)

    async def handle_rdap(request):
        ip = request.match_info["ip"]
        hits[("rdap", ip)] += 1

        network = sample_rdap_networks.get(ip)
        if network is None:
            raise web.HTTPNotFound(text="no network")
        return web.json_response(network, content_type="application/rdap+json")

    app = web.Application()
    app["hits"] = hits
    app.router.add_get("/json/{ip}", handle_ip_api)
    app.router.add_get("/rdap/ip/{ip}", handle_rdap)

    server = TestServer(app)
    await server.start_server()

    yield server

    await server.close()
