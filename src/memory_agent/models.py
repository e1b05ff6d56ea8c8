import uuid
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from memory_agent.errors import MalformedInput
from memory_agent.utils.dates import ensure_utc, utcnow
from memory_agent.utils.urls import normalize_url


def generate_record_id(now: Optional[datetime] = None) -> str:
    """Creation time in milliseconds plus a random tie-break."""
    millis = int((now or utcnow()).timestamp() * 1000)
    return f"{millis}-{uuid.uuid4().hex[:8]}"


class MemoryRecord(BaseModel):
    """A captured page (or any other memory) owned by one user."""

    id: str = Field(default_factory=generate_record_id)
    user_id: Optional[str] = Field(
        default=None, description="Owner; unset until claimed by an authenticated user"
    )
    content: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=utcnow, description="Capture time")
    category: str = "browsing"
    source: str = "chrome_extension"
    synced: bool = False
    sync_attempts: int = Field(
        default=0, ge=0, description="Number of batches this record was submitted in"
    )

    @classmethod
    def capture(
        cls,
        content: str,
        metadata: Optional[Dict[str, Any]] = None,
        max_length: int = 2000,
        user_id: Optional[str] = None,
        now: Optional[datetime] = None,
        category: str = "browsing",
        source: str = "chrome_extension",
    ) -> "MemoryRecord":
        """
        Build a new record from captured page text.

        This is the only place content is truncated; records loaded from
        storage or returned by the remote store are never cut again.
        """
        timestamp = ensure_utc(now) if now else utcnow()
        meta = dict(metadata or {})
        meta.setdefault("captured_at", timestamp.isoformat())
        return cls(
            id=generate_record_id(timestamp),
            user_id=user_id,
            content=content[:max_length],
            metadata=meta,
            timestamp=timestamp,
            category=category,
            source=source,
        )

    @property
    def url(self) -> Optional[str]:
        url = self.metadata.get("url")
        return url if isinstance(url, str) and url else None

    @property
    def title(self) -> str:
        title = self.metadata.get("title")
        return title if isinstance(title, str) else ""

    @property
    def normalized_url(self) -> Optional[str]:
        if self.url is None:
            return None
        try:
            return normalize_url(self.url)
        except MalformedInput:
            return None


class UserIdentity(BaseModel):
    """Cached identity of the signed-in user. The email is the user id."""

    email: str
    name: Optional[str] = None
    image: Optional[str] = None


class PageContent(BaseModel):
    """Shape produced by the page content extractor for a loaded page."""

    title: str = ""
    url: str
    content: str = ""
    headings: List[str] = Field(default_factory=list)
    links: List[Dict[str, str]] = Field(default_factory=list)

    def to_metadata(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "title": self.title,
            "headings": list(self.headings),
            "links": list(self.links),
            "word_count": len(self.content.split()),
            "type": "page_content",
        }


class SessionInfo(BaseModel):
    """Details of an authentication event, as reported by the OAuth layer."""

    provider: Optional[str] = None
    name: Optional[str] = None
    image: Optional[str] = None


class SessionRecord(BaseModel):
    """A per-user marker that a login happened or is ongoing."""

    id: str
    user_id: str
    timestamp: datetime
    content: str = ""
    metadata: Dict[str, Any] = Field(default_factory=dict)


class IngestItem(BaseModel):
    """One record submitted to the remote ingest boundary."""

    content: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
    timestamp: Any = None
    category: Optional[str] = None
    source: Optional[str] = None
    client_id: Optional[str] = None

    @classmethod
    def from_record(cls, record: MemoryRecord) -> "IngestItem":
        return cls(
            content=record.content,
            metadata=record.metadata,
            timestamp=record.timestamp.isoformat(),
            category=record.category,
            source=record.source,
            client_id=record.id,
        )


class StoreOutcome(BaseModel):
    """Per-item result of a remote ingest."""

    status: Literal["stored", "skipped", "error"]
    url: Optional[str] = None
    memory_id: Optional[str] = None
    client_id: Optional[str] = None
    reason: Optional[str] = None
    error: Optional[str] = None


class IngestResponse(BaseModel):
    """Result of submitting a batch to the remote ingest boundary."""

    success: bool = True
    results: List[StoreOutcome] = Field(default_factory=list)

    @property
    def stored(self) -> int:
        return sum(1 for r in self.results if r.status == "stored")

    @property
    def skipped(self) -> int:
        return sum(1 for r in self.results if r.status == "skipped")

    @property
    def errors(self) -> int:
        return sum(1 for r in self.results if r.status == "error")


class ScoredMemory(BaseModel):
    """A search hit with the parts of its composite score."""

    record: MemoryRecord
    score: float
    semantic_certainty: float = 0.0
    keyword_overlap: float = 0.0
    recency: float = 0.0


class MemoryEvent(BaseModel):
    """Entry in the local visit/interaction log."""

    type: Literal["visit", "interaction"]
    time: datetime = Field(default_factory=utcnow)
    url: Optional[str] = None
    title: Optional[str] = None
    data: Dict[str, Any] = Field(default_factory=dict)
