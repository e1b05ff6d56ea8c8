"""
Visited-set tracker.

The per-user set of normalized URLs already captured. It is the only gate
for re-capture and is never evicted during normal operation.
"""

import asyncio
import logging
from typing import List, Set

from memory_agent.client.readiness import wait_for_gate
from memory_agent.config import MemoryAgentSettings
from memory_agent.storage.protocols import KeyValueStore
from memory_agent.utils.urls import normalize_url

logger = logging.getLogger(__name__)


class VisitedSetTracker:
    """
    Tracks normalized URLs with an explicit readiness gate.

    State loads asynchronously; every public coroutine waits on the gate
    before touching the set, so nothing can observe a half-loaded state.
    """

    def __init__(self, store: KeyValueStore, settings: MemoryAgentSettings):
        self._store = store
        self._key = settings.visited_key
        self._timeout = settings.request_timeout_seconds
        self._urls: Set[str] = set()
        self._ready = asyncio.Event()

    @property
    def is_ready(self) -> bool:
        return self._ready.is_set()

    async def load(self) -> None:
        """Load persisted URLs and open the readiness gate."""
        try:
            data = await self._store.get([self._key])
            self._urls = set(data.get(self._key) or [])
            logger.info(f"Loaded {len(self._urls)} visited URLs")
        except Exception as e:
            logger.error(f"Error loading visited URLs, starting empty: {e}")
            self._urls = set()
        self._ready.set()

    async def wait_ready(self) -> None:
        await wait_for_gate(self._ready, self._timeout, "Visited URLs")

    async def is_visited(self, url: str) -> bool:
        await self.wait_ready()
        return normalize_url(url) in self._urls

    async def mark_visited(self, url: str) -> bool:
        """
        Add a URL and persist the set. Idempotent.

        Returns:
            True if the URL was not visited before
        """
        await self.wait_ready()
        added = self.add_local(normalize_url(url))
        if added:
            await self._store.set({self._key: self.snapshot()})
        return added

    def contains(self, normalized_url: str) -> bool:
        return normalized_url in self._urls

    def add_local(self, normalized_url: str) -> bool:
        """Add without persisting; the caller persists together with its own state."""
        if normalized_url in self._urls:
            return False
        self._urls.add(normalized_url)
        return True

    def discard_local(self, normalized_url: str) -> None:
        self._urls.discard(normalized_url)

    def snapshot(self) -> List[str]:
        return sorted(self._urls)

    def reset(self) -> None:
        self._urls.clear()

    def __len__(self) -> int:
        return len(self._urls)
