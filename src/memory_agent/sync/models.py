from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from memory_agent.models import StoreOutcome


class SyncState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATING = "authenticating"
    IDLE = "idle"
    SYNCING = "syncing"


class SyncReport(BaseModel):
    """What one sync trigger did."""

    status: Literal["synced", "noop", "coalesced", "deferred", "failed"]
    reason: str = "manual"
    submitted: int = 0
    synced_ids: List[str] = Field(default_factory=list)
    outcomes: List[StoreOutcome] = Field(default_factory=list)
    dropped: int = 0
    error: Optional[str] = None
