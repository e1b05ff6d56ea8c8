"""
Local memory buffer.

A bounded, ordered collection of captured records waiting for (or past)
sync. Owns capture-side dedup and the eviction policy.
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional

from memory_agent.client.readiness import wait_for_gate
from memory_agent.client.visited import VisitedSetTracker
from memory_agent.config import MemoryAgentSettings
from memory_agent.errors import DuplicateRejected, MalformedInput
from memory_agent.models import MemoryRecord
from memory_agent.storage.protocols import KeyValueStore
from memory_agent.utils.dates import utcnow
from memory_agent.utils.urls import normalize_url

logger = logging.getLogger(__name__)


class LocalMemoryBuffer:
    """
    Captured records for the active user.

    Records and the visited set are always persisted together in a single
    key-value write, so a URL is never marked visited without its record.
    """

    def __init__(
        self,
        store: KeyValueStore,
        visited: VisitedSetTracker,
        settings: MemoryAgentSettings,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._store = store
        self._visited = visited
        self._settings = settings
        self._clock = clock
        self._records: List[MemoryRecord] = []
        self._ready = asyncio.Event()
        self._write_lock = asyncio.Lock()
        self._threshold_listener: Optional[Callable[[], Any]] = None

    @property
    def records(self) -> List[MemoryRecord]:
        return list(self._records)

    @property
    def is_ready(self) -> bool:
        return self._ready.is_set()

    def set_threshold_listener(self, listener: Optional[Callable[[], Any]]) -> None:
        """Register a non-blocking callback fired when unsynced records reach the threshold."""
        self._threshold_listener = listener

    async def load(self) -> None:
        try:
            data = await self._store.get([self._settings.records_key])
            self._records = [
                MemoryRecord.model_validate(raw) for raw in data.get(self._settings.records_key) or []
            ]
            logger.info(f"Loaded {len(self._records)} records from storage")
        except Exception as e:
            logger.error(f"Error loading records, starting empty: {e}")
            self._records = []
        self._ready.set()

    async def wait_ready(self) -> None:
        await wait_for_gate(self._ready, self._settings.request_timeout_seconds, "Local records")
        await self._visited.wait_ready()

    async def _persist(self) -> None:
        async with self._write_lock:
            await self._store.set(
                {
                    self._settings.records_key: [r.model_dump(mode="json") for r in self._records],
                    self._settings.visited_key: self._visited.snapshot(),
                }
            )
        logger.debug(f"Saved {len(self._records)} records")

    async def try_capture(self, content: str, metadata: Optional[Dict[str, Any]] = None) -> str:
        """
        Capture a page into the buffer.

        Args:
            content: Page text; truncated here, once
            metadata: url, title and anything else worth keeping

        Returns:
            The new record ID

        Raises:
            DuplicateRejected: If the normalized URL was already captured
            MalformedInput: If the content is empty or the URL unusable
        """
        await self.wait_ready()

        if not content or not content.strip():
            raise MalformedInput("Cannot capture empty content")

        metadata = dict(metadata or {})
        url = metadata.get("url")
        normalized_url = normalize_url(url) if url else None

        # No awaits between the check and the insert below
        if normalized_url and self._visited.contains(normalized_url):
            logger.debug(f"Duplicate capture rejected: {normalized_url}")
            raise DuplicateRejected(url)

        record = MemoryRecord.capture(
            content,
            metadata,
            max_length=self._settings.max_content_length,
            now=self._clock(),
            category=self._settings.default_category,
            source=self._settings.default_source,
        )
        self._records.append(record)
        newly_visited = bool(normalized_url) and self._visited.add_local(normalized_url)
        evicted = self._truncate(self._settings.max_local_records)

        try:
            await self._persist()
        except Exception:
            self._records = [r for r in self._records if r.id != record.id]
            self._records.extend(evicted)
            self._records.sort(key=lambda r: r.timestamp)
            if newly_visited:
                self._visited.discard_local(normalized_url)
            raise

        logger.info(f"Captured record {record.id} ({url or 'no url'})")

        if self.unsynced_count() >= self._settings.sync_threshold and self._threshold_listener:
            self._threshold_listener()

        return record.id

    def _truncate(self, limit: int) -> List[MemoryRecord]:
        """
        Keep the ``limit`` newest records.

        Older records are dropped only if synced or already submitted in
        at least one batch; never-attempted unsynced records are kept.

        Returns:
            The dropped records
        """
        if len(self._records) <= limit:
            return []

        newest_first = sorted(self._records, key=lambda r: r.timestamp, reverse=True)
        kept = newest_first[:limit]
        dropped = []
        for record in newest_first[limit:]:
            if record.synced or record.sync_attempts > 0:
                dropped.append(record)
                if not record.synced:
                    logger.warning(
                        f"Dropping unsynced record {record.id} after "
                        f"{record.sync_attempts} sync attempt(s)"
                    )
            else:
                kept.append(record)

        self._records = sorted(kept, key=lambda r: r.timestamp)
        return dropped

    def unsynced(self, user_id: Optional[str] = None) -> List[MemoryRecord]:
        """Unsynced records that are unclaimed or owned by ``user_id``."""
        return [
            r
            for r in self._records
            if not r.synced and (r.user_id is None or user_id is None or r.user_id == user_id)
        ]

    def unsynced_count(self) -> int:
        return sum(1 for r in self._records if not r.synced)

    async def claim_unsynced(self, user_id: str) -> List[MemoryRecord]:
        """
        Assign unclaimed unsynced records to ``user_id``, count the coming
        submission attempt and persist.

        Returns:
            The user's unsynced records, oldest first
        """
        await self.wait_ready()
        batch = self.unsynced(user_id)
        if not batch:
            return []

        for record in batch:
            if record.user_id is None:
                record.user_id = user_id
            record.sync_attempts += 1
        await self._persist()
        return list(batch)

    async def prune_after_sync(self, synced_ids: Iterable[str]) -> List[MemoryRecord]:
        """
        Mark acknowledged records synced, then trim to the retention window.

        Args:
            synced_ids: IDs the remote store confirmed as stored

        Returns:
            The records dropped from the buffer
        """
        await self.wait_ready()
        acknowledged = set(synced_ids)
        marked = 0
        for record in self._records:
            if record.id in acknowledged and not record.synced:
                record.synced = True
                marked += 1

        dropped = self._truncate(self._settings.retain_after_sync)
        await self._persist()

        logger.info(
            f"Pruned buffer: marked {marked} synced, dropped {len(dropped)}, kept {len(self._records)}"
        )
        return dropped

    def needs_flush(self) -> bool:
        """True when never-attempted records keep the buffer above the retention window."""
        return len(self._records) > self._settings.retain_after_sync and any(
            not r.synced and r.sync_attempts == 0 for r in self._records
        )

    def last_capture(self) -> Optional[datetime]:
        if not self._records:
            return None
        return max(r.timestamp for r in self._records)

    def reset(self) -> None:
        self._records = []

    def __len__(self) -> int:
        return len(self._records)
