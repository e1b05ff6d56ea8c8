"""
Storage protocols and backends.

Provides protocol definitions for the durable record store and the client's
local key-value store. Implementations can use various databases (Qdrant,
SQLite, Redis, in-memory, ...) as long as they satisfy the protocol
interface.
"""

from memory_agent.storage.kv.memory import InMemoryKeyValueStore
from memory_agent.storage.kv.redis import RedisKeyValueStore
from memory_agent.storage.kv.sqlalchemy import SQLAlchemyKeyValueStore
from memory_agent.storage.protocols import KeyValueStore, RecordStore
from memory_agent.storage.vector.memory import InMemoryRecordStore
from memory_agent.storage.vector.models import RecordPayload, RecordPoint
from memory_agent.storage.vector.qdrant import QdrantRecordStore

__all__ = [
    "RecordStore",
    "KeyValueStore",
    "RecordPayload",
    "RecordPoint",
    "InMemoryRecordStore",
    "QdrantRecordStore",
    "InMemoryKeyValueStore",
    "SQLAlchemyKeyValueStore",
    "RedisKeyValueStore",
]
