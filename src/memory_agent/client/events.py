"""Bounded log of page visits and user interactions."""

import asyncio
import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from memory_agent.config import MemoryAgentSettings
from memory_agent.models import MemoryEvent
from memory_agent.storage.protocols import KeyValueStore
from memory_agent.utils.dates import utcnow

logger = logging.getLogger(__name__)


class EventLog:
    """Keeps the newest ``max_events`` events, persisted after every append."""

    def __init__(
        self,
        store: KeyValueStore,
        settings: MemoryAgentSettings,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._store = store
        self._key = settings.events_key
        self._max_events = settings.max_events
        self._clock = clock
        self._events: List[MemoryEvent] = []
        self._write_lock = asyncio.Lock()

    @property
    def events(self) -> List[MemoryEvent]:
        return list(self._events)

    async def load(self) -> None:
        try:
            data = await self._store.get([self._key])
            self._events = [MemoryEvent.model_validate(e) for e in data.get(self._key) or []]
            logger.info(f"Loaded {len(self._events)} events")
        except Exception as e:
            logger.error(f"Error loading events, starting empty: {e}")
            self._events = []

    async def append(
        self,
        event_type: str,
        url: Optional[str] = None,
        title: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
    ) -> MemoryEvent:
        event = MemoryEvent(
            type=event_type, time=self._clock(), url=url, title=title, data=data or {}
        )
        self._events.append(event)
        if len(self._events) > self._max_events:
            self._events = self._events[-self._max_events :]

        async with self._write_lock:
            await self._store.set(
                {self._key: [e.model_dump(mode="json") for e in self._events]}
            )
        logger.debug(f"Event saved: {event.type} {event.url or ''}")
        return event

    def reset(self) -> None:
        self._events = []

    def __len__(self) -> int:
        return len(self._events)
