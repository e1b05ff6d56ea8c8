"""Shared fixtures: settings, stores and a controllable clock."""

from datetime import datetime, timedelta, timezone

import pytest

from memory_agent.config import MemoryAgentSettings
from memory_agent.storage.kv.memory import InMemoryKeyValueStore
from memory_agent.storage.vector.memory import InMemoryRecordStore


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def settings():
    return MemoryAgentSettings()


@pytest.fixture
def kv_store():
    """Fresh in-memory key-value store."""
    return InMemoryKeyValueStore()


@pytest.fixture
def record_store():
    """Fresh in-memory record store."""
    return InMemoryRecordStore()
