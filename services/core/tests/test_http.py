"""Tests for HttpClient error mapping against a local aiohttp server."""

import asyncio

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from livefolio.cache.fetch_cache import FetchCache
from livefolio.errors import ProviderHTTPError, ProviderMalformedResponse, ProviderTimeout
from livefolio.providers.chain import FallbackChain
from livefolio.providers.http import HttpClient
from livefolio.providers.yahoo import YahooChartProvider


async def ok(request):
    return web.json_response({"price": 65000.0})


async def missing(request):
    return web.Response(status=404, text="symbol not found")


async def broken(request):
    return web.Response(status=500, text="internal error")


async def slow(request):
    await asyncio.sleep(0.5)
    return web.json_response({"price": 1.0})


async def html(request):
    return web.Response(text="<html>rate limited</html>", content_type="text/html")


async def bad_charset(request):
    return web.Response(status=503, body=b"\xff\xfe\xfa", content_type="text/plain", charset="utf-8")


async def bad_charset_ok(request):
    return web.Response(body=b"\xff\xfe\xfa", content_type="application/json", charset="utf-8")


@pytest_asyncio.fixture
async def server():
    app = web.Application()
    app.router.add_get("/ok", ok)
    app.router.add_get("/missing", missing)
    app.router.add_get("/broken", broken)
    app.router.add_get("/slow", slow)
    app.router.add_get("/html", html)
    app.router.add_get("/bad-charset", bad_charset)
    app.router.add_get("/bad-charset-ok", bad_charset_ok)
    app.router.add_get("/chart/{ticker}", bad_charset)

    test_server = TestServer(app)
    await test_server.start_server()
    try:
        yield test_server
    finally:
        await test_server.close()


@pytest_asyncio.fixture
async def http():
    client = HttpClient(timeout_seconds=2.0)
    try:
        yield client
    finally:
        await client.close()


async def get(http, server, path):
    return await http.get_json(str(server.make_url(path)), provider="test", symbol="BTC")


class TestHttpClient:

    @pytest.mark.asyncio
    async def test_json_body(self, http, server):
        assert await get(http, server, "/ok") == {"price": 65000.0}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("path,status", [("/missing", 404), ("/broken", 500)])
    async def test_non_200_is_http_error(self, http, server, path, status):
        with pytest.raises(ProviderHTTPError) as exc_info:
            await get(http, server, path)
        assert exc_info.value.status == status
        assert exc_info.value.provider == "test"

    @pytest.mark.asyncio
    async def test_slow_response_is_timeout(self, server):
        client = HttpClient(timeout_seconds=0.1)
        try:
            with pytest.raises(ProviderTimeout):
                await get(client, server, "/slow")
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_refused_connection_is_transport_error(self, http):
        with pytest.raises(ProviderHTTPError) as exc_info:
            await http.get_json("http://127.0.0.1:1/", provider="test", symbol="BTC")
        assert exc_info.value.status is None

    @pytest.mark.asyncio
    async def test_non_json_body_is_malformed(self, http, server):
        with pytest.raises(ProviderMalformedResponse):
            await get(http, server, "/html")

    @pytest.mark.asyncio
    async def test_undecodable_error_body_is_http_error(self, http, server):
        with pytest.raises(ProviderHTTPError) as exc_info:
            await get(http, server, "/bad-charset")
        assert exc_info.value.status == 503

    @pytest.mark.asyncio
    async def test_undecodable_json_body_is_malformed(self, http, server):
        with pytest.raises(ProviderMalformedResponse):
            await get(http, server, "/bad-charset-ok")


class StaticProvider:
    name = "static"

    def __init__(self):
        self.calls = []

    async def fetch_price(self, symbol):
        self.calls.append(symbol)
        return 312.5


class TestChainOverHttp:

    @pytest.mark.asyncio
    async def test_undecodable_error_body_falls_through(self, http, server):
        chart = YahooChartProvider(http)
        chart.base_url = str(server.make_url("/chart"))
        fallback = StaticProvider()
        chain = FallbackChain("bist", [chart, fallback], FetchCache(), ttl=5.0, timeout=2.0)

        quote = await chain.fetch("THYAO")

        assert quote.provider == "static"
        assert quote.price == 312.5
        assert fallback.calls == ["THYAO"]
