"""
memory-agent: capture browsed pages, buffer them locally, sync them to a
per-user store and answer queries with hybrid ranked retrieval.

Core components:
- client: local buffer, visited set, event log, identity and remote clients
- sync: the sync engine and its timer
- embeddings: word-frequency fingerprints
- intelligence: similarity and composite ranking
- storage: key-value and record store protocols and backends
- sessions: the authentication session ledger
"""

__version__ = "0.1.0"

from memory_agent.agent import CaptureResult, MemoryAgent, SearchResponse
from memory_agent.client.context import ClientContext
from memory_agent.config import MemoryAgentSettings
from memory_agent.errors import (
    AuthenticationRequired,
    DuplicateRejected,
    MalformedInput,
    MemoryAgentError,
    NotReady,
    RemoteUnavailable,
    SemanticSearchUnavailable,
    Unauthorized,
)
from memory_agent.memory_service import MemoryService
from memory_agent.models import (
    IngestItem,
    IngestResponse,
    MemoryEvent,
    MemoryRecord,
    PageContent,
    ScoredMemory,
    SessionInfo,
    SessionRecord,
    StoreOutcome,
    UserIdentity,
)
from memory_agent.sessions import SessionLedger
from memory_agent.sync import SyncEngine, SyncReport, SyncState

__all__ = [
    "__version__",
    # Facade
    "MemoryAgent",
    "CaptureResult",
    "SearchResponse",
    "ClientContext",
    "MemoryAgentSettings",
    # Services
    "MemoryService",
    "SessionLedger",
    "SyncEngine",
    "SyncReport",
    "SyncState",
    # Models
    "IngestItem",
    "IngestResponse",
    "MemoryEvent",
    "MemoryRecord",
    "PageContent",
    "ScoredMemory",
    "SessionInfo",
    "SessionRecord",
    "StoreOutcome",
    "UserIdentity",
    # Errors
    "MemoryAgentError",
    "AuthenticationRequired",
    "DuplicateRejected",
    "MalformedInput",
    "NotReady",
    "RemoteUnavailable",
    "SemanticSearchUnavailable",
    "Unauthorized",
]
