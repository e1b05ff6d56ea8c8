"""
Authentication session ledger.

Keeps at most one fresh session record per user per rolling window
(24 hours by default) in the durable record store, under the reserved
``authentication`` category, and reclaims session records past their
retention period.
"""

import logging
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from memory_agent.config import MemoryAgentSettings
from memory_agent.embeddings import KeywordFrequencyEmbedding, TextEmbedding
from memory_agent.errors import MalformedInput
from memory_agent.models import SessionInfo, SessionRecord
from memory_agent.storage.calls import call_store
from memory_agent.storage.protocols import RecordStore
from memory_agent.storage.vector.models import RecordPayload, RecordPoint
from memory_agent.utils.dates import parse_timestamp, utcnow

logger = logging.getLogger(__name__)

# Upper bound on session records read per user in one pass
MAX_SESSION_RECORDS = 1000


class SessionLedger:
    def __init__(
        self,
        record_store: RecordStore,
        embedding: Optional[TextEmbedding] = None,
        settings: Optional[MemoryAgentSettings] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.record_store = record_store
        self.embedding = embedding or KeywordFrequencyEmbedding()
        self.settings = settings or MemoryAgentSettings()
        self.clock = clock

    async def _call(self, operation: str, fn, *args, **kwargs):
        return await call_store(
            operation, fn, *args, timeout=self.settings.request_timeout_seconds, **kwargs
        )

    async def _session_points(
        self, user_id: str, before: Optional[datetime] = None
    ) -> List[RecordPoint]:
        return await self._call(
            "list",
            self.record_store.list,
            user_id,
            limit=MAX_SESSION_RECORDS,
            category=self.settings.session_category,
            before=before,
        )

    def _describe(self, user_id: str, info: SessionInfo) -> str:
        provider = info.provider or "unknown provider"
        return f"User logged in via {provider}. Name: {info.name}, Email: {user_id}"

    async def upsert_session(self, user_id: str, info: SessionInfo) -> str:
        """
        Record that ``user_id`` authenticated.

        If a session record newer than the rolling window exists, it is
        refreshed in place and its ID returned; otherwise a new one is
        created.

        Args:
            user_id: The authenticated user
            info: Provider, display name and image from the OAuth layer

        Returns:
            The session record ID
        """
        if not user_id:
            raise MalformedInput("user_id is required")

        now = self.clock()
        window_start = now - timedelta(hours=self.settings.session_window_hours)
        content = self._describe(user_id, info)
        metadata = {
            "provider": info.provider,
            "user_name": info.name,
            "user_image": info.image,
            "login_time": now.isoformat(),
        }

        # Newest first, so the first fresh one is the one to refresh
        fresh = [
            point
            for point in await self._session_points(user_id)
            if point.payload.timestamp_epoch >= window_start.timestamp()
        ]

        vector = await self.embedding.embed_document(content)

        if fresh:
            session_id = fresh[0].id
            await self._call(
                "update",
                self.record_store.update,
                session_id,
                {
                    "content": content,
                    "timestamp": now.isoformat(),
                    "timestamp_epoch": now.timestamp(),
                    "metadata": {**fresh[0].payload.metadata, **metadata},
                },
                vector=vector,
            )
            logger.info(f"Refreshed session {session_id} for user_id={user_id}")
            return session_id

        payload = RecordPayload.build(
            user_id=user_id,
            content=content,
            timestamp=now,
            category=self.settings.session_category,
            source="oauth_login",
            metadata=metadata,
        )
        session_id = await self._call("add", self.record_store.add, vector, payload.model_dump())
        logger.info(f"Created session {session_id} for user_id={user_id}")
        return session_id

    async def get_sessions(self, user_id: str) -> List[SessionRecord]:
        """All session records for a user, newest first."""
        return [
            SessionRecord(
                id=point.id,
                user_id=point.payload.user_id,
                timestamp=parse_timestamp(point.payload.timestamp),
                content=point.payload.content,
                metadata=point.payload.metadata,
            )
            for point in await self._session_points(user_id)
        ]

    async def cleanup(self, user_id: str) -> int:
        """
        Delete the user's session records older than the retention period.

        Failures on individual records are logged and skipped.

        Returns:
            Number of records deleted
        """
        cutoff = self.clock() - timedelta(days=self.settings.session_retention_days)
        stale = await self._session_points(user_id, before=cutoff)

        deleted = 0
        for point in stale:
            try:
                if await self._call("delete", self.record_store.delete, point.id):
                    deleted += 1
                else:
                    logger.warning(f"Session record {point.id} vanished before cleanup")
            except Exception as e:
                logger.error(f"Failed to delete session record {point.id}: {e}")

        logger.info(f"Cleaned up {deleted}/{len(stale)} stale sessions for user_id={user_id}")
        return deleted
