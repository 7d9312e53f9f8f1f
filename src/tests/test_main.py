"""Tests for the command line lookup mode."""

import json
from contextlib import asynccontextmanager

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer
from wire import build_response

from doh_relay.main import main

A_ANSWER = build_response("example.com", 1, [(1, bytes([192, 0, 2, 80]))])


@asynccontextmanager
async def fixed_upstream(body: bytes = A_ANSWER, status: int = 200):
    """Stub upstream returning the same answer to every query."""

    async def handler(request):
        await request.read()
        if status != 200:
            return web.Response(status=status)
        return web.Response(body=body, content_type="application/dns-message")

    app = web.Application()
    app.router.add_post("/dns-query", handler)
    server = TestServer(app)
    await server.start_server()
    try:
        yield str(server.make_url("/dns-query"))
    finally:
        await server.close()


@pytest.fixture
def quiet_env(monkeypatch):
    monkeypatch.setenv("DOH_RELAY_LOGGING_LEVEL", "ERROR")
    return monkeypatch


class TestResolveCommand:
    """Test --resolve"""

    @pytest.mark.asyncio
    async def test_single_type(self, quiet_env, capsys):
        async with fixed_upstream() as url:
            quiet_env.setenv("DOH_RELAY_UPSTREAM_SERVERS", url)
            exit_code = await main(["--resolve", "example.com", "--type", "A"])

        payload = json.loads(capsys.readouterr().out)
        assert exit_code == 0
        assert payload["status"] == "success"
        assert payload["answers"][0]["data"] == "192.0.2.80"

    @pytest.mark.asyncio
    async def test_explicit_server(self, quiet_env, capsys):
        async with fixed_upstream() as url:
            exit_code = await main(["--resolve", "example.com", "-t", "A", "-s", url])

        assert exit_code == 0
        assert json.loads(capsys.readouterr().out)["count"] == 1

    @pytest.mark.asyncio
    async def test_all_types(self, quiet_env, capsys):
        async with fixed_upstream() as url:
            quiet_env.setenv("DOH_RELAY_UPSTREAM_SERVERS", url)
            exit_code = await main(["--resolve", "example.com"])

        payload = json.loads(capsys.readouterr().out)
        assert exit_code == 0
        assert payload["type"] == "all"
        assert payload["a_records"]["status"] == "success"

    @pytest.mark.asyncio
    async def test_upstream_failure(self, quiet_env, capsys):
        async with fixed_upstream(status=500) as url:
            quiet_env.setenv("DOH_RELAY_UPSTREAM_SERVERS", url)
            exit_code = await main(["--resolve", "example.com", "--type", "A"])

        assert exit_code == 1
        assert "Lookup failed" in capsys.readouterr().err

    @pytest.mark.asyncio
    async def test_nxdomain_exit_code(self, quiet_env, capsys):
        nxdomain = build_response("missing.example", 1, [], flags=0x8183)
        async with fixed_upstream(body=nxdomain) as url:
            quiet_env.setenv("DOH_RELAY_UPSTREAM_SERVERS", url)
            exit_code = await main(["--resolve", "missing.example", "--type", "A"])

        payload = json.loads(capsys.readouterr().out)
        assert exit_code == 1
        assert payload["status"] == "error"
        assert payload["rcode"] == 3

    @pytest.mark.asyncio
    async def test_unknown_type(self, quiet_env, capsys):
        exit_code = await main(["--resolve", "example.com", "--type", "BOGUS"])

        assert exit_code == 1
        assert "Unknown record type" in capsys.readouterr().err
