"""
Unit tests for MemoryService.

Runs the retrieval service against the in-memory record store with an
injected clock, so dedup windows and recency are deterministic.
"""

from datetime import timedelta
from unittest.mock import Mock

import pytest

from memory_agent.config import MemoryAgentSettings
from memory_agent.errors import (
    MalformedInput,
    RemoteUnavailable,
    SemanticSearchUnavailable,
    Unauthorized,
)
from memory_agent.memory_service import MemoryService
from memory_agent.models import IngestItem

USER_A = "a@example.com"
USER_B = "b@example.com"


@pytest.fixture
def service(record_store, clock):
    return MemoryService(record_store, settings=MemoryAgentSettings(), clock=clock)


@pytest.mark.asyncio
async def test_store_defaults(service, record_store):
    outcome = await service.store(USER_A, "hello there", {"url": "https://a.com/x?utm=1"})

    assert outcome.status == "stored"
    point = record_store.get_by_id(outcome.memory_id)
    assert point.payload.category == "browsing"
    assert point.payload.source == "chrome_extension"
    assert point.payload.normalized_url == "https://a.com/x"


@pytest.mark.asyncio
async def test_store_keeps_record_timestamp(service, record_store, clock):
    outcome = await service.store(USER_A, "hello", timestamp="2024-05-30T08:00:00Z")

    record = record_store.get_by_id(outcome.memory_id).to_record()
    assert record.timestamp.isoformat() == "2024-05-30T08:00:00+00:00"


@pytest.mark.asyncio
@pytest.mark.parametrize("user_id,content", [("", "content"), (USER_A, ""), (USER_A, "   ")])
async def test_store_rejects_missing_fields(service, user_id, content):
    with pytest.raises(MalformedInput):
        await service.store(user_id, content)


@pytest.mark.asyncio
async def test_recent_url_is_skipped(service, clock):
    first = await service.store(USER_A, "first", {"url": "https://a.com/x?utm=1"})
    clock.advance(minutes=30)

    second = await service.store(USER_A, "second", {"url": "https://a.com/x?utm=2"})

    assert second.status == "skipped"
    assert second.reason == "recently_stored"
    assert second.memory_id == first.memory_id


@pytest.mark.asyncio
async def test_url_outside_lookback_is_stored_again(service, clock):
    await service.store(USER_A, "first", {"url": "https://a.com/x"})
    clock.advance(hours=2)

    second = await service.store(USER_A, "second", {"url": "https://a.com/x"})

    assert second.status == "stored"


@pytest.mark.asyncio
async def test_same_url_other_user_is_stored(service):
    await service.store(USER_A, "first", {"url": "https://a.com/x"})

    outcome = await service.store(USER_B, "first", {"url": "https://a.com/x"})

    assert outcome.status == "stored"


@pytest.mark.asyncio
async def test_ingest_reports_each_item_in_order(service):
    items = [
        IngestItem(content="good page", metadata={"url": "https://a.com/1"}, client_id="c1"),
        IngestItem(content="", metadata={"url": "https://a.com/2"}, client_id="c2"),
        {"content": "bad time", "metadata": {"url": "https://a.com/3"}, "timestamp": {"x": 1}},
        IngestItem(content="dup page", metadata={"url": "https://a.com/1?ref=x"}, client_id="c4"),
    ]

    response = await service.ingest(USER_A, items)

    assert response.success is True
    assert [r.status for r in response.results] == ["stored", "error", "error", "skipped"]
    assert [r.client_id for r in response.results] == ["c1", "c2", None, "c4"]
    assert response.results[1].url == "https://a.com/2"
    assert (response.stored, response.skipped, response.errors) == (1, 1, 2)


@pytest.mark.asyncio
async def test_search_javascript_tutorial_ranks_relevant_first(service):
    await service.store(
        USER_A,
        "Pasta recipes and a short tutorial on boiling water",
        {"url": "https://food.com/pasta", "title": "Pasta Night"},
    )
    await service.store(
        USER_A,
        "Learn variables, functions and closures step by step.",
        {"url": "https://js.dev/guide", "title": "JavaScript Tutorial - Complete Guide"},
    )

    results = await service.search(USER_A, "javascript tutorial", limit=10)

    assert results[0].title == "JavaScript Tutorial - Complete Guide"
    assert len(results) == 2


@pytest.mark.asyncio
async def test_search_is_user_scoped(service):
    await service.store(USER_A, "javascript notes", {"url": "https://a.com/js"})
    await service.store(USER_B, "javascript notes", {"url": "https://a.com/js"})

    results = await service.search(USER_A, "javascript")

    assert len(results) == 1
    assert results[0].user_id == USER_A


@pytest.mark.asyncio
async def test_search_semantic_pass(service):
    await service.store(USER_A, "the time has come for all good men", {"url": "https://a.com/1"})
    await service.store(USER_A, "pasta recipe", {"url": "https://a.com/2"})

    scored = await service.search_scored(USER_A, "the time")

    assert len(scored) == 1
    assert scored[0].semantic_certainty > 0.3
    assert scored[0].record.content.startswith("the time")


@pytest.mark.asyncio
async def test_search_falls_back_when_semantic_unavailable(service, record_store):
    await service.store(USER_A, "the time has come", {"url": "https://a.com/1"})
    record_store.search = Mock(side_effect=SemanticSearchUnavailable("no vectors"))

    scored = await service.search_scored(USER_A, "the time")

    assert len(scored) == 1
    assert scored[0].semantic_certainty == 0.0


@pytest.mark.asyncio
async def test_search_excludes_sessions_unless_requested(service):
    await service.store(
        USER_A, "User logged in via google", category="authentication", source="oauth_login"
    )
    await service.store(USER_A, "google search tips", {"url": "https://a.com/g"})

    default = await service.search(USER_A, "google")
    sessions = await service.search(USER_A, "google", category="authentication")

    assert [r.category for r in default] == ["browsing"]
    assert [r.category for r in sessions] == ["authentication"]


@pytest.mark.asyncio
async def test_session_hits_do_not_block_keyword_fallback(service):
    await service.store(
        USER_A, "User logged in: The Good Man", category="authentication", source="oauth_login"
    )
    await service.store(USER_A, "Recipe for tomato soup", {"url": "https://a.com/soup"})

    results = await service.search(USER_A, "the good recipe", limit=5)

    assert [r.content for r in results] == ["Recipe for tomato soup"]


@pytest.mark.asyncio
async def test_session_records_do_not_take_pool_slots(service, clock):
    for i in range(4):
        clock.advance(minutes=1)
        await service.store(
            USER_A, f"the time login {i}", category="authentication", source="oauth_login"
        )
    await service.store(USER_A, "the time of day", {"url": "https://a.com/day"})

    results = await service.search(USER_A, "the time", limit=1)

    assert [r.content for r in results] == ["the time of day"]


@pytest.mark.asyncio
async def test_search_limit_applies_after_ranking(service, clock):
    for i in range(5):
        clock.advance(days=1)
        await service.store(USER_A, f"javascript note {i}", {"url": f"https://a.com/{i}"})

    results = await service.search(USER_A, "javascript", limit=2)

    # Equal keyword overlap, so recency decides
    assert [r.content for r in results] == ["javascript note 4", "javascript note 3"]


@pytest.mark.asyncio
async def test_search_empty_query_or_limit(service):
    await service.store(USER_A, "anything", {"url": "https://a.com"})

    assert await service.search(USER_A, "   ") == []
    assert await service.search(USER_A, "anything", limit=0) == []


@pytest.mark.asyncio
async def test_list_newest_first(service, clock):
    await service.store(USER_A, "older", {"url": "https://a.com/1"})
    clock.advance(minutes=5)
    await service.store(USER_A, "newer", {"url": "https://a.com/2"})

    records = await service.list(USER_A)

    assert [r.content for r in records] == ["newer", "older"]
    assert all(r.synced for r in records)


@pytest.mark.asyncio
async def test_list_category(service):
    await service.store(USER_A, "page", {"url": "https://a.com/1"})
    await service.store(USER_A, "login", category="authentication")

    records = await service.list(USER_A, category="authentication")

    assert [r.content for r in records] == ["login"]


@pytest.mark.asyncio
async def test_delete_own_record(service, record_store):
    outcome = await service.store(USER_A, "mine", {"url": "https://a.com/1"})

    assert await service.delete(outcome.memory_id, USER_A) is True
    assert record_store.get_by_id(outcome.memory_id) is None


@pytest.mark.asyncio
async def test_delete_other_users_record_is_unauthorized(service, record_store):
    outcome = await service.store(USER_A, "mine", {"url": "https://a.com/1"})

    with pytest.raises(Unauthorized):
        await service.delete(outcome.memory_id, USER_B)

    assert record_store.get_by_id(outcome.memory_id) is not None


@pytest.mark.asyncio
async def test_delete_missing_record_is_unauthorized(service):
    with pytest.raises(Unauthorized):
        await service.delete("missing", USER_A)


@pytest.mark.asyncio
async def test_store_unreachable_is_remote_unavailable(service, record_store):
    record_store.list = Mock(side_effect=ConnectionError("connection refused"))

    with pytest.raises(RemoteUnavailable):
        await service.list(USER_A)
