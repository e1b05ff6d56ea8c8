"""
Storage protocol definitions for the memory agent.

Two kinds of storage sit behind the agent:

- ``RecordStore``: the durable, per-user remote store the retrieval
  service reads and writes (Qdrant, in-memory, ...).
- ``KeyValueStore``: the client's local persistence for its buffer,
  visited set, event log and cached identity (SQLite via SQLAlchemy,
  Redis, in-memory, ...).
"""

from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Protocol, Tuple

from memory_agent.storage.vector.models import RecordPoint


class RecordStore(Protocol):
    """
    Protocol for the durable record store.

    Every read is scoped to a single user. Writes are atomic per record;
    there are no cross-record transactions.
    """

    def add(self, vector: List[float], payload: dict) -> str:
        """
        Add a record to the store.

        Args:
            vector: Fingerprint of the record content
            payload: Dictionary of record fields (see RecordPayload)

        Returns:
            The generated record ID
        """
        ...

    def get_by_id(self, record_id: str) -> Optional[RecordPoint]:
        """
        Retrieve a record by ID, regardless of owner.

        Returns:
            The record point if found, None otherwise
        """
        ...

    def update(
        self,
        record_id: str,
        payload_updates: dict,
        vector: Optional[List[float]] = None,
    ) -> bool:
        """
        Update payload fields (and optionally the vector) of a record.

        Returns:
            True if the record existed and was updated
        """
        ...

    def delete(self, record_id: str) -> bool:
        """
        Delete a record.

        Returns:
            True if a record was deleted
        """
        ...

    def search(
        self,
        query_embedding: List[float],
        user_id: str,
        limit: int = 10,
        min_score: float = 0.0,
        category: Optional[str] = None,
        exclude_category: Optional[str] = None,
    ) -> List[Tuple[RecordPoint, float]]:
        """
        Find the user's records by vector similarity.

        Args:
            query_embedding: Query fingerprint
            user_id: Owner to scope the search to
            limit: Maximum number of results
            min_score: Minimum cosine similarity
            category: Optional category filter
            exclude_category: Category to leave out of the results

        Returns:
            (record point, cosine similarity) pairs, best first

        Raises:
            SemanticSearchUnavailable: If the backend cannot run the query
        """
        ...

    def keyword_search(
        self,
        text: str,
        user_id: str,
        limit: int = 10,
        category: Optional[str] = None,
        exclude_category: Optional[str] = None,
    ) -> List[RecordPoint]:
        """
        Find the user's records whose content or title contains the text
        (or any token of it), case-insensitively. Newest first.
        """
        ...

    def list(
        self,
        user_id: str,
        limit: int = 50,
        category: Optional[str] = None,
        before: Optional[datetime] = None,
    ) -> List[RecordPoint]:
        """
        List the user's records ordered by timestamp, newest first.

        Args:
            user_id: Owner
            limit: Maximum number of records
            category: Optional category filter
            before: Only records strictly older than this time
        """
        ...

    def find_recent_by_url(
        self,
        user_id: str,
        normalized_url: str,
        since: datetime,
        category: Optional[str] = None,
    ) -> Optional[RecordPoint]:
        """
        Newest record for the user with this normalized URL whose timestamp
        is after ``since``, or None.
        """
        ...

    def clear_user(self, user_id: str) -> int:
        """
        Delete all records for a user.

        Returns:
            Number of records deleted
        """
        ...


class KeyValueStore(Protocol):
    """
    Protocol for the client's local key-value persistence.

    Values must be JSON-serializable. A single ``set`` call writes its
    whole mapping atomically: either every key is updated or none is.
    """

    async def get(self, keys: List[str]) -> Dict[str, Any]:
        """
        Read several keys.

        Returns:
            Mapping of the keys that exist to their values
        """
        ...

    async def set(self, values: Mapping[str, Any]) -> None:
        """Write several keys in one atomic operation."""
        ...

    async def clear(self) -> None:
        """Remove every key."""
        ...
