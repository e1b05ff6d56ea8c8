"""Tests for the retrying HTTP helper."""

from unittest.mock import AsyncMock

import httpx
import pytest

from memory_agent.client.http import request_with_retry
from memory_agent.errors import (
    AuthenticationRequired,
    MalformedInput,
    RemoteUnavailable,
    Unauthorized,
)


def make_client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://test")


def status_sequence(*statuses):
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        status = statuses[min(len(calls), len(statuses) - 1)]
        calls.append(request)
        return httpx.Response(status, json={"ok": status == 200})

    return handler, calls


@pytest.mark.asyncio
async def test_success_first_try():
    handler, calls = status_sequence(200)
    sleep = AsyncMock()

    async with make_client(handler) as client:
        response = await request_with_retry(client, "GET", "/x", sleep=sleep)

    assert response.json() == {"ok": True}
    assert len(calls) == 1
    sleep.assert_not_called()


@pytest.mark.asyncio
async def test_retries_transient_status():
    handler, calls = status_sequence(503, 502, 200)
    sleep = AsyncMock()

    async with make_client(handler) as client:
        response = await request_with_retry(client, "GET", "/x", retries=2, sleep=sleep)

    assert response.status_code == 200
    assert len(calls) == 3
    assert sleep.await_count == 2


@pytest.mark.asyncio
async def test_gives_up_after_retries():
    handler, calls = status_sequence(500)

    async with make_client(handler) as client:
        with pytest.raises(RemoteUnavailable):
            await request_with_retry(client, "GET", "/x", retries=2, sleep=AsyncMock())

    assert len(calls) == 3


@pytest.mark.asyncio
async def test_rate_limit_is_remote_unavailable():
    handler, _ = status_sequence(429)

    async with make_client(handler) as client:
        with pytest.raises(RemoteUnavailable):
            await request_with_retry(client, "GET", "/x", retries=0, sleep=AsyncMock())


@pytest.mark.asyncio
async def test_transport_error_is_retried_then_remote_unavailable():
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request)
        raise httpx.ConnectError("connection refused", request=request)

    async with make_client(handler) as client:
        with pytest.raises(RemoteUnavailable, match="ConnectError"):
            await request_with_retry(client, "GET", "/x", retries=1, sleep=AsyncMock())

    assert len(attempts) == 2


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "status,error",
    [(401, AuthenticationRequired), (403, Unauthorized), (400, MalformedInput), (404, MalformedInput)],
)
async def test_status_mapping(status, error):
    handler, calls = status_sequence(status)

    async with make_client(handler) as client:
        with pytest.raises(error):
            await request_with_retry(client, "GET", "/x", sleep=AsyncMock())

    # Client errors are never retried
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_allowed_status_is_returned():
    handler, _ = status_sequence(401)

    async with make_client(handler) as client:
        response = await request_with_retry(
            client, "GET", "/x", allowed_statuses={401}, sleep=AsyncMock()
        )

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_sends_json_and_params():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["body"] = request.content
        return httpx.Response(200, json={})

    async with make_client(handler) as client:
        await request_with_retry(client, "POST", "/x", json={"a": 1}, params={"q": "hi"})

    assert seen["url"] == "http://test/x?q=hi"
    assert b'"a"' in seen["body"]
