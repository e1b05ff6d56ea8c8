"""
Client facade.

``MemoryAgent`` wires the client context, the sync engine and a remote
store together and exposes what the browser side needs: capture, event
logging, search with a local fallback, listing, deletion, sign-in, stats,
export and clear-all.
"""

import asyncio
import logging
from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, Field

from memory_agent.client.context import ClientContext
from memory_agent.client.identity import IdentityProvider
from memory_agent.client.remote import RemoteMemoryClient
from memory_agent.config import MemoryAgentSettings
from memory_agent.embeddings import vectorize
from memory_agent.errors import (
    AuthenticationRequired,
    DuplicateRejected,
    MemoryAgentError,
    RemoteUnavailable,
)
from memory_agent.intelligence import CompositeRanker, cosine_similarity, keyword_match
from memory_agent.models import MemoryRecord, PageContent, ScoredMemory, SessionInfo, UserIdentity
from memory_agent.sessions import SessionLedger
from memory_agent.sync import SyncEngine, SyncReport

logger = logging.getLogger(__name__)

EXPORT_VERSION = "1.0"


class CaptureResult(BaseModel):
    status: Literal["captured", "duplicate", "skipped", "failed"]
    record_id: Optional[str] = None
    error: Optional[str] = None


class SearchResponse(BaseModel):
    """What the search surface shows: results, an empty state, or a failure."""

    status: Literal["ok", "empty", "failed"]
    results: List[MemoryRecord] = Field(default_factory=list)
    source: Literal["remote", "local"] = "remote"
    message: Optional[str] = None


class MemoryAgent:
    def __init__(
        self,
        context: ClientContext,
        remote: RemoteMemoryClient,
        identity_provider: IdentityProvider,
        session_ledger: Optional[SessionLedger] = None,
        ranker: Optional[CompositeRanker] = None,
    ):
        self.context = context
        self.settings: MemoryAgentSettings = context.settings
        self.remote = remote
        self.identity_provider = identity_provider
        self.session_ledger = session_ledger
        self.ranker = ranker or CompositeRanker.from_settings(self.settings)
        self.sync_engine = SyncEngine(context, remote, identity_provider, self.settings)

    async def initialize(self) -> None:
        await self.context.initialize()

    async def start(self) -> None:
        """Load local state and start the periodic sync timer."""
        await self.initialize()
        self.sync_engine.start()

    async def shutdown(self) -> None:
        await self.sync_engine.shutdown()

    # Capture

    async def capture_page(self, page: PageContent) -> CaptureResult:
        """
        Capture an extracted page. Never raises; failures are logged and
        reported in the result.
        """
        if not page.content or not page.content.strip():
            logger.debug(f"Nothing to capture for {page.url}")
            return CaptureResult(status="skipped")

        try:
            record_id = await self.context.buffer.try_capture(page.content, page.to_metadata())
        except DuplicateRejected as e:
            logger.debug(f"Skipping already captured page {e.url}")
            return CaptureResult(status="duplicate", error=str(e))
        except Exception as e:
            logger.error(f"Failed to capture {page.url}: {e}")
            return CaptureResult(status="failed", error=str(e))

        return CaptureResult(status="captured", record_id=record_id)

    async def record_visit(self, url: str, title: Optional[str] = None) -> None:
        try:
            await self.context.events.append("visit", url=url, title=title)
        except Exception as e:
            logger.error(f"Failed to record visit to {url}: {e}")

    async def record_interaction(
        self, data: Dict[str, Any], url: Optional[str] = None, title: Optional[str] = None
    ) -> None:
        try:
            await self.context.events.append("interaction", url=url, title=title, data=data)
        except Exception as e:
            logger.error(f"Failed to record interaction on {url}: {e}")

    # Identity

    async def sign_in(self, identity: UserIdentity, info: Optional[SessionInfo] = None) -> None:
        """Cache a freshly signed-in user, note the session and push pending records."""
        await self.context.set_identity(identity)

        if self.session_ledger is not None:
            try:
                await self.session_ledger.upsert_session(identity.email, info or SessionInfo())
            except MemoryAgentError as e:
                logger.error(f"Failed to record session for {identity.email}: {e}")

        self.sync_engine.request_sync("login")

    async def sign_out(self) -> None:
        await self.context.clear_identity()

    async def sync_now(self) -> SyncReport:
        return await self.sync_engine.sync_now()

    # Query

    async def search(
        self, query: str, limit: int = 10, category: Optional[str] = None
    ) -> SearchResponse:
        """
        Search the remote store, falling back to the local buffer when it is
        unreachable or nobody is signed in.
        """
        source = "remote"

        try:
            await self.context.wait_ready()
            identity = self.context.identity
            if identity is None:
                source = "local"
                results = self.search_local(query, limit=limit, category=category)
            else:
                try:
                    results = await asyncio.wait_for(
                        self.remote.search(identity.email, query, limit=limit, category=category),
                        timeout=self.settings.request_timeout_seconds,
                    )
                except (RemoteUnavailable, AuthenticationRequired, asyncio.TimeoutError) as e:
                    logger.warning(f"Remote search unavailable, searching locally: {e}")
                    if isinstance(e, AuthenticationRequired):
                        await self.context.clear_identity()
                    source = "local"
                    results = self.search_local(query, limit=limit, category=category)
        except MemoryAgentError as e:
            logger.error(f"Search failed for '{query[:50]}': {e}")
            return SearchResponse(status="failed", source=source, message="search failed")

        if not results:
            return SearchResponse(status="empty", source=source, message="No results found")
        return SearchResponse(status="ok", results=results, source=source)

    def search_local_scored(
        self, query: str, limit: int = 10, category: Optional[str] = None
    ) -> List[ScoredMemory]:
        """Hybrid search over the local buffer with the same rules as the remote service."""
        if limit <= 0 or not query.strip():
            return []

        identity = self.context.identity
        records = [
            r
            for r in self.context.buffer.records
            if (identity is None or r.user_id is None or r.user_id == identity.email)
            and (category is None or r.category == category)
            and (category is not None or r.category != self.settings.session_category)
        ]

        candidates: List[Tuple[MemoryRecord, Optional[float]]] = []
        query_vector = vectorize(query)
        if any(query_vector):
            for record in records:
                certainty = cosine_similarity(query_vector, vectorize(record.content))
                if 1.0 - certainty <= self.settings.max_semantic_distance:
                    candidates.append((record, max(0.0, certainty)))

        if not candidates:
            candidates = [(r, None) for r in records if keyword_match(query, r.content, r.title)]

        return self.ranker.rank(query, candidates, limit, now=self.context.clock())

    def search_local(
        self, query: str, limit: int = 10, category: Optional[str] = None
    ) -> List[MemoryRecord]:
        return [s.record for s in self.search_local_scored(query, limit=limit, category=category)]

    async def list_memories(
        self, limit: int = 50, category: Optional[str] = None
    ) -> List[MemoryRecord]:
        """The signed-in user's remote records, or the local buffer, newest first."""
        await self.context.wait_ready()
        identity = self.context.identity
        if identity is not None:
            try:
                return await self.remote.list(identity.email, limit=limit, category=category)
            except RemoteUnavailable as e:
                logger.warning(f"Remote list unavailable, listing local buffer: {e}")

        records = [
            r for r in self.context.buffer.records if category is None or r.category == category
        ]
        records.sort(key=lambda r: r.timestamp, reverse=True)
        return records[: max(0, limit)]

    async def delete_memory(self, record_id: str) -> bool:
        """
        Delete a remote record owned by the signed-in user.

        Raises:
            AuthenticationRequired: If nobody is signed in
            Unauthorized: If the record belongs to someone else
            NotReady: If client state has not loaded
        """
        await self.context.wait_ready()
        identity = self.context.identity
        if identity is None:
            raise AuthenticationRequired("Sign in to delete memories")
        return await self.remote.delete(record_id, identity.email)

    # Local data

    def stats(self) -> Dict[str, Any]:
        last = self.context.buffer.last_capture()
        return {
            "total_records": len(self.context.buffer),
            "unsynced_records": self.context.buffer.unsynced_count(),
            "visited_urls": len(self.context.visited),
            "events": len(self.context.events),
            "last_capture": last.isoformat() if last else None,
            "user": self.context.identity.email if self.context.identity else None,
            "sync_state": self.sync_engine.state.value,
        }

    def export_data(self) -> Dict[str, Any]:
        """Buffer and event log as a JSON-ready document."""
        return {
            "vectors": [r.model_dump(mode="json") for r in self.context.buffer.records],
            "events": [e.model_dump(mode="json") for e in self.context.events.events],
            "exportDate": self.context.clock().isoformat(),
            "version": EXPORT_VERSION,
        }

    async def clear_all_data(self) -> None:
        await self.context.reset()
