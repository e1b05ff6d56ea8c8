"""
Remote memory store clients.

``MemoryService`` satisfies ``RemoteMemoryClient`` directly, so the agent
can run against an in-process store; ``HttpRemoteClient`` talks to the
web application's JSON API.
"""

import json
import logging
from typing import Any, Dict, List, Optional, Protocol

import httpx
from pydantic import ValidationError
from typing_extensions import runtime_checkable

from memory_agent.client.http import request_with_retry
from memory_agent.config import MemoryAgentSettings
from memory_agent.errors import MalformedInput
from memory_agent.models import IngestItem, IngestResponse, MemoryRecord, StoreOutcome
from memory_agent.utils.dates import parse_timestamp

logger = logging.getLogger(__name__)

STORE_MEMORY_PATH = "/api/extension/store-memory"
MEMORIES_PATH = "/api/memories"


@runtime_checkable
class RemoteMemoryClient(Protocol):
    async def ingest(self, user_id: str, items: List[IngestItem]) -> IngestResponse:
        ...

    async def search(
        self, user_id: str, query: str, limit: int = 10, category: Optional[str] = None
    ) -> List[MemoryRecord]:
        ...

    async def list(
        self, user_id: str, limit: int = 50, category: Optional[str] = None
    ) -> List[MemoryRecord]:
        ...

    async def delete(self, record_id: str, user_id: str) -> bool:
        ...


def _item_to_wire(item: IngestItem) -> Dict[str, Any]:
    return {
        "content": item.content,
        "metadata": item.metadata,
        "timestamp": item.timestamp,
        "category": item.category,
        "source": item.source,
        "clientId": item.client_id,
    }


def _outcome_from_wire(raw: Dict[str, Any], client_id: Optional[str]) -> StoreOutcome:
    return StoreOutcome(
        status=raw.get("status", "error"),
        url=raw.get("url"),
        memory_id=raw.get("memoryId"),
        client_id=raw.get("clientId") or client_id,
        reason=raw.get("reason"),
        error=raw.get("error"),
    )


def _record_from_wire(raw: Dict[str, Any]) -> MemoryRecord:
    metadata = raw.get("metadata") or {}
    if isinstance(metadata, str):
        try:
            metadata = json.loads(metadata)
        except ValueError:
            metadata = {}
    return MemoryRecord(
        id=str(raw["id"]),
        user_id=raw.get("userId"),
        content=raw.get("content", ""),
        metadata=metadata,
        timestamp=parse_timestamp(raw.get("timestamp")),
        category=raw.get("category") or "general",
        source=raw.get("source") or "manual",
        synced=True,
    )


class HttpRemoteClient:
    """JSON-over-HTTP client for the remote memory store."""

    def __init__(
        self,
        base_url: str,
        settings: Optional[MemoryAgentSettings] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.settings = settings or MemoryAgentSettings()
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            base_url=base_url, timeout=self.settings.request_timeout_seconds
        )

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        return await request_with_retry(
            self.client,
            method,
            url,
            retries=self.settings.http_retries,
            backoff_base=self.settings.http_backoff_base_seconds,
            backoff_max=self.settings.http_backoff_max_seconds,
            **kwargs,
        )

    @staticmethod
    def _json(response: httpx.Response) -> Dict[str, Any]:
        try:
            body = response.json()
        except ValueError as e:
            raise MalformedInput(f"Response from {response.request.url} is not JSON: {e}") from e
        if not isinstance(body, dict):
            raise MalformedInput(f"Unexpected response shape from {response.request.url}")
        return body

    async def ingest(self, user_id: str, items: List[IngestItem]) -> IngestResponse:
        """
        Submit a batch to the ingest endpoint.

        Results are matched to items by ``clientId`` when the server echoes
        it, otherwise by position. If the server returns a different number
        of results than items, positions are not trusted and only echoed
        ids are kept.
        """
        response = await self._request(
            "POST",
            STORE_MEMORY_PATH,
            json={"userId": user_id, "memories": [_item_to_wire(item) for item in items]},
        )
        body = self._json(response)
        raw_results = body.get("results") or []

        positional = len(raw_results) == len(items)
        if raw_results and not positional:
            logger.warning(
                f"Ingest returned {len(raw_results)} results for {len(items)} items, "
                "matching by echoed id only"
            )

        results = []
        for index, raw in enumerate(raw_results):
            client_id = items[index].client_id if positional else None
            try:
                results.append(_outcome_from_wire(raw, client_id))
            except ValidationError as e:
                logger.error(f"Ignoring malformed ingest result at {index}: {e}")

        return IngestResponse(success=bool(body.get("success", True)), results=results)

    async def _fetch(self, user_id: str, params: Dict[str, Any]) -> List[MemoryRecord]:
        response = await self._request("GET", MEMORIES_PATH, params=params)
        body = self._json(response)

        records = []
        for raw in body.get("memories") or []:
            try:
                record = _record_from_wire(raw)
            except (KeyError, ValidationError, MalformedInput) as e:
                logger.error(f"Ignoring malformed memory in response: {e}")
                continue
            if record.user_id is not None and record.user_id != user_id:
                logger.warning(f"Dropping record {record.id} owned by another user")
                continue
            records.append(record)
        return records

    async def search(
        self, user_id: str, query: str, limit: int = 10, category: Optional[str] = None
    ) -> List[MemoryRecord]:
        params: Dict[str, Any] = {"q": query, "limit": limit}
        if category:
            params["category"] = category
        return await self._fetch(user_id, params)

    async def list(
        self, user_id: str, limit: int = 50, category: Optional[str] = None
    ) -> List[MemoryRecord]:
        params: Dict[str, Any] = {"limit": limit}
        if category:
            params["category"] = category
        return await self._fetch(user_id, params)

    async def delete(self, record_id: str, user_id: str) -> bool:
        response = await self._request("DELETE", f"{MEMORIES_PATH}/{record_id}")
        return bool(self._json(response).get("success", False))

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()
