"""
Models for record storage.

Defines the data structures record stores use to keep a fingerprint
together with the record's payload.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from memory_agent.models import MemoryRecord
from memory_agent.utils.dates import parse_timestamp


class RecordPayload(BaseModel):
    """
    Payload for a record in durable storage.

    ``timestamp_epoch`` duplicates ``timestamp`` as a float so backends can
    range-filter and order on it; ``normalized_url`` is precomputed for the
    ingest-side dedup lookup.
    """

    user_id: str
    content: str
    timestamp: str
    timestamp_epoch: float
    category: str = "general"
    source: str = "manual"
    metadata: Dict[str, Any] = Field(default_factory=dict)
    normalized_url: Optional[str] = None

    @classmethod
    def build(
        cls,
        user_id: str,
        content: str,
        timestamp: datetime,
        category: str,
        source: str,
        metadata: Optional[Dict[str, Any]] = None,
        normalized_url: Optional[str] = None,
    ) -> "RecordPayload":
        return cls(
            user_id=user_id,
            content=content,
            timestamp=timestamp.isoformat(),
            timestamp_epoch=timestamp.timestamp(),
            category=category,
            source=source,
            metadata=dict(metadata or {}),
            normalized_url=normalized_url,
        )


class RecordPoint(BaseModel):
    """
    A record in durable storage.

    Combines a fingerprint with its associated payload.
    """

    id: str
    vector: List[float]
    payload: RecordPayload

    def to_record(self) -> MemoryRecord:
        """Stored records are durable by definition, so they come back synced."""
        return MemoryRecord(
            id=self.id,
            user_id=self.payload.user_id,
            content=self.payload.content,
            metadata=self.payload.metadata,
            timestamp=parse_timestamp(self.payload.timestamp),
            category=self.payload.category,
            source=self.payload.source,
            synced=True,
        )
