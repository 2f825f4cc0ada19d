import asyncio
import re

import aiohttp
import pytest
from aioresponses import aioresponses

from postcast.adapters.aiohttp_client_adapter import AioHttpClientAdapter
from postcast.core.exceptions import MalformedResponse, NetworkError, RemoteUnavailable

"""
Tests for AioHttpClientAdapter behavior.

Each test verifies how the adapter maps upstream responses and errors into
the domain exceptions the workflow understands:
- Non-JSON bodies on GET map to MalformedResponse.
- Non-2xx GET responses map to RemoteUnavailable carrying the status code.
- Timeouts and connection failures map to NetworkError (retryable).
- POST never raises on status; the caller inspects 'status'.
"""


@pytest.mark.asyncio
async def test_get_json_response():
    # Happy path: the API returns JSON and the adapter hands back a dict.
    url = "http://example.test/r/tifu/top.json"
    with aioresponses() as m:
        m.get(re.compile(r"^http://example\.test/r/tifu/top\.json.*$"), payload={"data": {"children": []}}, status=200)

        async with AioHttpClientAdapter() as client:
            data = await client.get(url, params={"t": "day"}, headers={"User-Agent": "tests"})
            assert data == {"data": {"children": []}}


@pytest.mark.asyncio
async def test_get_non_json_response_raises_malformed():
    # The remote answered 200 with HTML instead of JSON: contract violation.
    url = "http://example.test/bad"
    with aioresponses() as m:
        m.get(url, body="<html>error</html>", status=200, headers={"Content-Type": "text/html"})

        async with AioHttpClientAdapter() as client:
            with pytest.raises(MalformedResponse):
                await client.get(url)


@pytest.mark.asyncio
async def test_get_error_status_raises_remote_unavailable():
    url = "http://example.test/videos/missing"
    with aioresponses() as m:
        m.get(url, status=404, payload={"error": "not found"})

        async with AioHttpClientAdapter() as client:
            with pytest.raises(RemoteUnavailable) as excinfo:
                await client.get(url)
            assert excinfo.value.status == 404
            assert excinfo.value.url == url


@pytest.mark.asyncio
async def test_post_returns_status_without_raising():
    # Upstream HTTP error: the adapter reports it, the caller decides.
    url = "http://example.test/videos"
    with aioresponses() as m:
        m.post(url, status=500, body="Server Error", content_type="text/plain")

        async with AioHttpClientAdapter() as client:
            resp = await client.post(url, json={})
            assert resp["status"] == 500
            assert resp["body"] == "Server Error"


@pytest.mark.asyncio
async def test_timeout_maps_to_network_error():
    url = "http://example.test/slow"
    with aioresponses() as m:
        m.get(url, exception=asyncio.TimeoutError())

        async with AioHttpClientAdapter() as client:
            with pytest.raises(NetworkError):
                await client.get(url)


@pytest.mark.asyncio
async def test_connection_error_maps_to_network_error():
    url = "http://example.test/videos"
    with aioresponses() as m:
        m.post(url, exception=aiohttp.ClientConnectionError("refused"))

        async with AioHttpClientAdapter() as client:
            with pytest.raises(NetworkError):
                await client.post(url, json={"test": True})


@pytest.mark.asyncio
async def test_stream_yields_body_chunks():
    url = "http://example.test/video.mp4"
    with aioresponses() as m:
        m.get(url, status=200, body=b"0123456789")

        async with AioHttpClientAdapter() as client:
            async with client.stream(url) as response:
                chunks = [chunk async for chunk in response.iter_chunks(4)]

    assert b"".join(chunks) == b"0123456789"


@pytest.mark.asyncio
async def test_stream_rejects_error_status():
    url = "http://example.test/video.mp4"
    with aioresponses() as m:
        m.get(url, status=403)

        async with AioHttpClientAdapter() as client:
            with pytest.raises(RemoteUnavailable) as excinfo:
                async with client.stream(url):
                    pass
            assert excinfo.value.status == 403


@pytest.mark.asyncio
async def test_requires_context_manager():
    with pytest.raises(RuntimeError):
        await AioHttpClientAdapter().get("http://example.test/")
