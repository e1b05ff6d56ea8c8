"""
Client context.

One object per process holding all client-side state: the buffer, the
visited set, the event log and the cached identity. It is constructed
once, initialized once, and passed explicitly to whatever needs it.
"""

import asyncio
import logging
from datetime import datetime
from typing import Callable, Optional

from memory_agent.client.buffer import LocalMemoryBuffer
from memory_agent.client.events import EventLog
from memory_agent.client.readiness import wait_for_gate
from memory_agent.client.visited import VisitedSetTracker
from memory_agent.config import MemoryAgentSettings
from memory_agent.models import UserIdentity
from memory_agent.storage.protocols import KeyValueStore
from memory_agent.utils.dates import utcnow

logger = logging.getLogger(__name__)


class ClientContext:
    def __init__(
        self,
        store: KeyValueStore,
        settings: Optional[MemoryAgentSettings] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.settings = settings or MemoryAgentSettings()
        self.store = store
        self.clock = clock
        self.visited = VisitedSetTracker(store, self.settings)
        self.buffer = LocalMemoryBuffer(store, self.visited, self.settings, clock)
        self.events = EventLog(store, self.settings, clock)
        self.identity: Optional[UserIdentity] = None
        self._ready = asyncio.Event()
        self._initializing = False

    @property
    def is_ready(self) -> bool:
        return self._ready.is_set()

    async def initialize(self) -> None:
        """Load all persisted state, then open the readiness gate. Safe to call twice."""
        if self._initializing:
            await self._ready.wait()
            return
        self._initializing = True

        await self._load_identity()
        await asyncio.gather(self.visited.load(), self.buffer.load(), self.events.load())
        self._ready.set()
        logger.info(
            f"Client context ready: {len(self.buffer)} records, {len(self.visited)} visited URLs, "
            f"user={self.identity.email if self.identity else 'none'}"
        )

    async def wait_ready(self) -> None:
        """
        Wait until ``initialize()`` has finished.

        Raises:
            NotReady: If state is still loading after the request timeout
        """
        await wait_for_gate(self._ready, self.settings.request_timeout_seconds, "Client context")

    async def _load_identity(self) -> None:
        key = self.settings.identity_key
        try:
            data = await self.store.get([key])
            raw = data.get(key)
            self.identity = UserIdentity.model_validate(raw) if raw else None
        except Exception as e:
            logger.error(f"Error loading cached identity: {e}")
            self.identity = None

    async def set_identity(self, identity: UserIdentity) -> None:
        self.identity = identity
        await self.store.set({self.settings.identity_key: identity.model_dump(mode="json")})
        logger.info(f"Cached identity for {identity.email}")

    async def clear_identity(self) -> None:
        self.identity = None
        await self.store.set({self.settings.identity_key: None})
        logger.info("Cleared cached identity")

    async def reset(self) -> None:
        """Drop all local state, persisted and in memory."""
        await self.wait_ready()
        await self.store.clear()
        self.buffer.reset()
        self.visited.reset()
        self.events.reset()
        self.identity = None
        logger.info("All local data cleared")
