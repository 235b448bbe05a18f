"""Tests for sitemap_audit.status."""

from __future__ import annotations

import httpx
import pytest

from sitemap_audit.settings import DEFAULT_USER_AGENT
from sitemap_audit.status import NO_RESPONSE, build_client, check_url_async


def _client(handler) -> httpx.AsyncClient:
    return build_client(timeout=1.0, transport=httpx.MockTransport(handler))


class TestBuildClient:
    @pytest.mark.asyncio
    async def test_default_user_agent_and_no_redirects(self):
        seen = {}

        def handler(request):
            seen["ua"] = request.headers["user-agent"]
            return httpx.Response(200)

        async with _client(handler) as client:
            assert client.follow_redirects is False
            await client.get("https://example.com/")
        assert seen["ua"] == DEFAULT_USER_AGENT

    @pytest.mark.asyncio
    async def test_custom_user_agent(self):
        client = build_client(user_agent="probe/2.0")
        async with client:
            assert client.headers["User-Agent"] == "probe/2.0"


class TestCheckUrl:
    @pytest.mark.asyncio
    async def test_200_is_ok(self):
        async with _client(lambda request: httpx.Response(200)) as client:
            outcome = await check_url_async(client, "https://example.com/a")
        assert outcome.kind == "ok"
        assert outcome.status == 200
        assert outcome.is_ok

    @pytest.mark.asyncio
    async def test_404_is_http_status(self):
        async with _client(lambda request: httpx.Response(404)) as client:
            outcome = await check_url_async(client, "https://example.com/missing")
        assert outcome.kind == "http_status"
        assert outcome.status == 404
        assert outcome.is_404
        assert outcome.error is None

    @pytest.mark.asyncio
    async def test_redirect_is_not_followed(self):
        def handler(request):
            if request.url.path == "/old":
                return httpx.Response(301, headers={"location": "https://example.com/new"})
            return httpx.Response(200)

        async with _client(handler) as client:
            outcome = await check_url_async(client, "https://example.com/old")
        assert outcome.kind == "http_status"
        assert outcome.status == 301
        assert not outcome.is_404

    @pytest.mark.asyncio
    async def test_server_error_is_http_status(self):
        async with _client(lambda request: httpx.Response(503)) as client:
            outcome = await check_url_async(client, "https://example.com/")
        assert outcome.kind == "http_status"
        assert outcome.status == 503

    @pytest.mark.asyncio
    async def test_connect_error_is_transport_failure(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with _client(handler) as client:
            outcome = await check_url_async(client, "https://down.example.com/")
        assert outcome.kind == "transport_failure"
        assert outcome.status is None
        assert outcome.error == f"{NO_RESPONSE} (ConnectError)"

    @pytest.mark.asyncio
    async def test_timeout_is_transport_failure(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        async with _client(handler) as client:
            outcome = await check_url_async(client, "https://slow.example.com/", timeout=0.1)
        assert outcome.kind == "transport_failure"
        assert outcome.error.startswith(NO_RESPONSE)

    @pytest.mark.asyncio
    async def test_request_setup_error_keeps_message(self):
        def handler(request):
            raise httpx.UnsupportedProtocol("Request URL has an unsupported protocol")

        async with _client(handler) as client:
            outcome = await check_url_async(client, "https://example.com/")
        assert outcome.kind == "transport_failure"
        assert outcome.error == "Request URL has an unsupported protocol"

    @pytest.mark.asyncio
    async def test_method_is_forwarded(self):
        methods = []

        def handler(request):
            methods.append(request.method)
            return httpx.Response(200)

        async with _client(handler) as client:
            await check_url_async(client, "https://example.com/", method="HEAD")
        assert methods == ["HEAD"]
