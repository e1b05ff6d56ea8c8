"""
In-memory record storage implementation.

Provides a simple in-memory store with cosine similarity search, suitable
for testing and single-process deployments. For production, use the Qdrant
implementation.
"""

import logging
import threading
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from memory_agent.intelligence.ranking import keyword_match
from memory_agent.intelligence.similarity import cosine_similarity
from memory_agent.storage.vector.models import RecordPayload, RecordPoint

logger = logging.getLogger(__name__)


class InMemoryRecordStore:
    """
    In-memory implementation of the RecordStore protocol.

    Stores vectors and payloads in a dictionary. Data is lost on restart.
    """

    def __init__(self):
        # id -> {vector, payload}
        self._records: Dict[str, Dict[str, Any]] = {}
        # Calls may arrive from worker threads
        self._lock = threading.Lock()

        logger.info("InMemoryRecordStore initialized")

    def _point(self, record_id: str) -> RecordPoint:
        data = self._records[record_id]
        return RecordPoint(
            id=record_id,
            vector=list(data["vector"]),
            payload=RecordPayload(**data["payload"]),
        )

    def _user_points(
        self,
        user_id: str,
        category: Optional[str] = None,
        exclude_category: Optional[str] = None,
    ) -> List[RecordPoint]:
        points = []
        for record_id, data in self._records.items():
            payload = data["payload"]
            if payload.get("user_id") != user_id:
                continue
            if category is not None and payload.get("category") != category:
                continue
            if exclude_category is not None and payload.get("category") == exclude_category:
                continue
            points.append(self._point(record_id))
        return points

    def add(self, vector: List[float], payload: dict) -> str:
        """Add a record to the store."""
        RecordPayload(**payload)
        record_id = str(uuid.uuid4())

        with self._lock:
            self._records[record_id] = {"vector": list(vector), "payload": dict(payload)}

        logger.debug(f"Inserted record {record_id}: '{payload.get('content', '')[:50]}...'")
        return record_id

    def get_by_id(self, record_id: str) -> Optional[RecordPoint]:
        """Retrieve a record by its ID."""
        with self._lock:
            if record_id not in self._records:
                return None
            return self._point(record_id)

    def update(
        self,
        record_id: str,
        payload_updates: dict,
        vector: Optional[List[float]] = None,
    ) -> bool:
        """Update payload fields and optionally the vector."""
        with self._lock:
            if record_id not in self._records:
                logger.error(f"Record {record_id} not found")
                return False

            self._records[record_id]["payload"].update(payload_updates)
            if vector is not None:
                self._records[record_id]["vector"] = list(vector)

        logger.debug(f"Updated record {record_id}: {sorted(payload_updates)}")
        return True

    def delete(self, record_id: str) -> bool:
        """Delete a record."""
        with self._lock:
            removed = self._records.pop(record_id, None)

        if removed is None:
            logger.warning(f"Cannot delete record {record_id}: not found")
            return False

        logger.debug(f"Deleted record {record_id}")
        return True

    def search(
        self,
        query_embedding: List[float],
        user_id: str,
        limit: int = 10,
        min_score: float = 0.0,
        category: Optional[str] = None,
        exclude_category: Optional[str] = None,
    ) -> List[Tuple[RecordPoint, float]]:
        """Search the user's records by cosine similarity."""
        results = []

        with self._lock:
            for point in self._user_points(user_id, category, exclude_category):
                score = cosine_similarity(query_embedding, point.vector)
                if score >= min_score:
                    results.append((point, score))

        # Sort by score (highest first) and limit
        results.sort(key=lambda x: x[1], reverse=True)
        results = results[:limit]

        logger.debug(f"{len(results)} results found (min_score={min_score}, user_id={user_id})")
        return results

    def keyword_search(
        self,
        text: str,
        user_id: str,
        limit: int = 10,
        category: Optional[str] = None,
        exclude_category: Optional[str] = None,
    ) -> List[RecordPoint]:
        """Case-insensitive substring search over content and title."""
        with self._lock:
            points = [
                point
                for point in self._user_points(user_id, category, exclude_category)
                if keyword_match(text, point.payload.content, point.payload.metadata.get("title") or "")
            ]

        points.sort(key=lambda p: p.payload.timestamp_epoch, reverse=True)
        return points[:limit]

    def list(
        self,
        user_id: str,
        limit: int = 50,
        category: Optional[str] = None,
        before: Optional[datetime] = None,
    ) -> List[RecordPoint]:
        """List the user's records, newest first."""
        with self._lock:
            points = self._user_points(user_id, category)

        if before is not None:
            cutoff = before.timestamp()
            points = [p for p in points if p.payload.timestamp_epoch < cutoff]

        points.sort(key=lambda p: p.payload.timestamp_epoch, reverse=True)
        return points[:limit]

    def find_recent_by_url(
        self,
        user_id: str,
        normalized_url: str,
        since: datetime,
        category: Optional[str] = None,
    ) -> Optional[RecordPoint]:
        """Newest record with this normalized URL captured after ``since``."""
        cutoff = since.timestamp()
        with self._lock:
            matches = [
                p
                for p in self._user_points(user_id, category)
                if p.payload.normalized_url == normalized_url and p.payload.timestamp_epoch > cutoff
            ]

        if not matches:
            return None
        return max(matches, key=lambda p: p.payload.timestamp_epoch)

    def clear_user(self, user_id: str) -> int:
        """Clear all records for a specific user."""
        with self._lock:
            record_ids = [
                record_id
                for record_id, data in self._records.items()
                if data["payload"].get("user_id") == user_id
            ]
            for record_id in record_ids:
                del self._records[record_id]

        count = len(record_ids)
        logger.info(f"Cleared {count} records for user_id={user_id}")
        return count

    def clear(self):
        """Clear ALL records from the store."""
        with self._lock:
            count = len(self._records)
            self._records.clear()
        logger.info(f"Cleared all records ({count} total)")
