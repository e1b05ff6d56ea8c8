"""Tests for the HTTP remote memory client."""

import json

import httpx
import pytest

from memory_agent.client.remote import HttpRemoteClient, RemoteMemoryClient
from memory_agent.config import MemoryAgentSettings
from memory_agent.errors import AuthenticationRequired, Unauthorized
from memory_agent.memory_service import MemoryService
from memory_agent.models import IngestItem


def make_client(handler):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://test")
    settings = MemoryAgentSettings(http_retries=0)
    return HttpRemoteClient("http://test", settings=settings, client=client)


def items(count):
    return [
        IngestItem(
            content=f"page {i}",
            metadata={"url": f"https://a.com/{i}"},
            timestamp="2024-06-01T12:00:00+00:00",
            client_id=f"local-{i}",
        )
        for i in range(count)
    ]


def test_protocol_compliance(record_store):
    assert isinstance(make_client(lambda r: httpx.Response(200)), RemoteMemoryClient)
    assert isinstance(MemoryService(record_store), RemoteMemoryClient)


@pytest.mark.asyncio
async def test_ingest_request_shape_and_positional_results():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={
                "success": True,
                "results": [
                    {"url": "https://a.com/0", "memoryId": "m0", "status": "stored"},
                    {"url": "https://a.com/1", "status": "skipped", "reason": "recently_stored"},
                ],
                "stored": 1,
                "skipped": 1,
                "errors": 0,
            },
        )

    client = make_client(handler)

    response = await client.ingest("user@example.com", items(2))

    assert seen["path"] == "/api/extension/store-memory"
    assert seen["body"]["userId"] == "user@example.com"
    assert [m["clientId"] for m in seen["body"]["memories"]] == ["local-0", "local-1"]
    assert [r.client_id for r in response.results] == ["local-0", "local-1"]
    assert response.results[0].memory_id == "m0"
    assert response.results[1].reason == "recently_stored"
    assert (response.stored, response.skipped) == (1, 1)


@pytest.mark.asyncio
async def test_ingest_result_count_mismatch_uses_echoed_ids_only():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={
                "success": True,
                "results": [
                    {"status": "stored", "memoryId": "m1", "clientId": "local-1"},
                    {"status": "stored", "memoryId": "mx"},
                ],
            },
        )

    response = await make_client(handler).ingest("user@example.com", items(3))

    assert [r.client_id for r in response.results] == ["local-1", None]


@pytest.mark.asyncio
async def test_ingest_skips_malformed_results():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200, json={"success": True, "results": [{"status": "stored"}, {"status": "weird"}]}
        )

    response = await make_client(handler).ingest("user@example.com", items(2))

    assert len(response.results) == 1
    assert response.results[0].client_id == "local-0"


@pytest.mark.asyncio
async def test_ingest_unauthenticated():
    client = make_client(lambda r: httpx.Response(401, json={"error": "Unauthorized"}))

    with pytest.raises(AuthenticationRequired):
        await client.ingest("user@example.com", items(1))


@pytest.mark.asyncio
async def test_search_parses_and_scopes_records():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["params"] = dict(request.url.params)
        return httpx.Response(
            200,
            json={
                "memories": [
                    {
                        "id": "m1",
                        "userId": "user@example.com",
                        "content": "JavaScript guide",
                        "timestamp": "2024-06-01T12:00:00Z",
                        "category": "browsing",
                        "source": "chrome_extension",
                        "metadata": json.dumps({"title": "JS", "url": "https://a.com"}),
                    },
                    {
                        "id": "m2",
                        "userId": "someone@else.com",
                        "content": "not mine",
                        "timestamp": "2024-06-01T12:00:00Z",
                    },
                    {"userId": "user@example.com", "content": "no id"},
                ]
            },
        )

    client = make_client(handler)

    records = await client.search("user@example.com", "javascript", limit=5, category="browsing")

    assert seen["params"] == {"q": "javascript", "limit": "5", "category": "browsing"}
    assert [r.id for r in records] == ["m1"]
    assert records[0].title == "JS"
    assert records[0].synced is True


@pytest.mark.asyncio
async def test_list_without_query():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["params"] = dict(request.url.params)
        return httpx.Response(200, json={"memories": []})

    assert await make_client(handler).list("user@example.com", limit=10) == []
    assert seen["params"] == {"limit": "10"}


@pytest.mark.asyncio
async def test_delete():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["path"] = request.url.path
        return httpx.Response(200, json={"success": True})

    assert await make_client(handler).delete("m1", "user@example.com") is True
    assert (seen["method"], seen["path"]) == ("DELETE", "/api/memories/m1")


@pytest.mark.asyncio
async def test_delete_forbidden():
    client = make_client(lambda r: httpx.Response(403, json={"error": "Forbidden"}))

    with pytest.raises(Unauthorized):
        await client.delete("m1", "user@example.com")
