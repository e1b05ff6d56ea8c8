import logging
import uuid
from contextlib import contextmanager
from datetime import datetime
from typing import List, Optional, Tuple

import numpy as np
from qdrant_client import QdrantClient
from qdrant_client.http.exceptions import ResponseHandlingException
from qdrant_client.models import (
    Direction,
    Distance,
    FieldCondition,
    Filter,
    MatchValue,
    OrderBy,
    PayloadSchemaType,
    PointIdsList,
    PointStruct,
    PointVectors,
    Range,
    VectorParams,
)

from memory_agent.errors import RemoteUnavailable
from memory_agent.intelligence.ranking import keyword_match
from memory_agent.storage.vector.models import RecordPayload, RecordPoint

logger = logging.getLogger(__name__)

DEFAULT_VECTOR_DIMENSION = 50

# Upper bound for one scroll over a single user's records
SCROLL_LIMIT = 10000


def _unit(vector: List[float]) -> List[float]:
    """Scale to unit length; the zero vector stays zero."""
    array = np.asarray(vector, dtype=float)
    norm = np.linalg.norm(array)
    if norm == 0:
        return array.tolist()
    return (array / norm).tolist()


class QdrantRecordStore:
    """
    Qdrant implementation of the RecordStore protocol.

    Vectors are stored unit-normalized in a dot-product collection, so
    search scores are cosine similarities and all-zero fingerprints are
    stored as-is instead of being rejected.
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 6333,
        collection_name: str = "user_memories",
        vector_dimension: int = DEFAULT_VECTOR_DIMENSION,
        client: Optional[QdrantClient] = None,
    ):
        """
        Initialize Qdrant record store.

        Args:
            host: Qdrant host (default: localhost)
            port: Qdrant port (default: 6333)
            collection_name: Collection name (default: user_memories)
            vector_dimension: Fingerprint length (default: 50)
            client: Pre-built client, e.g. ``QdrantClient(":memory:")``
        """
        self.client = client or QdrantClient(host=host, port=port)
        self.collection_name = collection_name
        self.vector_dimension = vector_dimension
        self._init_collection()

    @contextmanager
    def _guard(self, operation: str):
        try:
            yield
        except ResponseHandlingException as e:
            logger.error(f"Qdrant unreachable during {operation}: {e}")
            raise RemoteUnavailable(f"Qdrant unreachable during {operation}") from e

    def _init_collection(self):
        with self._guard("init"):
            if self.client.collection_exists(self.collection_name):
                return

            self.client.create_collection(
                collection_name=self.collection_name,
                vectors_config=VectorParams(size=self.vector_dimension, distance=Distance.DOT),
            )
            for field_name, schema in (
                ("user_id", PayloadSchemaType.KEYWORD),
                ("category", PayloadSchemaType.KEYWORD),
                ("normalized_url", PayloadSchemaType.KEYWORD),
                ("timestamp_epoch", PayloadSchemaType.FLOAT),
            ):
                self.client.create_payload_index(
                    collection_name=self.collection_name,
                    field_name=field_name,
                    field_schema=schema,
                )
            logger.info(f"Created collection {self.collection_name} ({self.vector_dimension} dims)")

    @staticmethod
    def _user_filter(
        user_id: str,
        category: Optional[str] = None,
        extra: Optional[List[FieldCondition]] = None,
        exclude_category: Optional[str] = None,
    ) -> Filter:
        conditions = [FieldCondition(key="user_id", match=MatchValue(value=user_id))]
        if category is not None:
            conditions.append(FieldCondition(key="category", match=MatchValue(value=category)))
        conditions.extend(extra or [])
        if exclude_category is None:
            return Filter(must=conditions)
        return Filter(
            must=conditions,
            must_not=[FieldCondition(key="category", match=MatchValue(value=exclude_category))],
        )

    @staticmethod
    def _to_point(point) -> RecordPoint:
        return RecordPoint(
            id=str(point.id),
            vector=list(point.vector or []),
            payload=RecordPayload(**point.payload),
        )

    def _scroll(
        self,
        scroll_filter: Filter,
        limit: int = SCROLL_LIMIT,
        newest_first: bool = False,
    ) -> List[RecordPoint]:
        order_by = (
            OrderBy(key="timestamp_epoch", direction=Direction.DESC) if newest_first else None
        )
        with self._guard("scroll"):
            points, _ = self.client.scroll(
                collection_name=self.collection_name,
                scroll_filter=scroll_filter,
                limit=limit,
                order_by=order_by,
                with_payload=True,
                with_vectors=True,
            )
        return [self._to_point(point) for point in points]

    def add(self, vector: List[float], payload: dict) -> str:
        """
        Add a record to the Qdrant collection.

        Args:
            vector: The record fingerprint
            payload: Dictionary of record fields (from RecordPayload.model_dump())

        Returns:
            The generated record ID
        """
        RecordPayload(**payload)
        record_id = str(uuid.uuid4())
        with self._guard("add"):
            self.client.upsert(
                collection_name=self.collection_name,
                points=[PointStruct(id=record_id, vector=_unit(vector), payload=payload)],
            )
        logger.debug(f"Inserted record {record_id}: '{payload.get('content', '')[:50]}...'")
        return record_id

    def get_by_id(self, record_id: str) -> Optional[RecordPoint]:
        with self._guard("retrieve"):
            result = self.client.retrieve(
                collection_name=self.collection_name,
                ids=[record_id],
                with_vectors=True,
                with_payload=True,
            )
        if not result:
            return None
        return self._to_point(result[0])

    def update(
        self,
        record_id: str,
        payload_updates: dict,
        vector: Optional[List[float]] = None,
    ) -> bool:
        if self.get_by_id(record_id) is None:
            logger.error(f"Record {record_id} not found")
            return False

        with self._guard("update"):
            if payload_updates:
                self.client.set_payload(
                    collection_name=self.collection_name,
                    payload=payload_updates,
                    points=[record_id],
                )
            if vector is not None:
                self.client.update_vectors(
                    collection_name=self.collection_name,
                    points=[PointVectors(id=record_id, vector=_unit(vector))],
                )
        logger.debug(f"Updated record {record_id}: {sorted(payload_updates)}")
        return True

    def delete(self, record_id: str) -> bool:
        if self.get_by_id(record_id) is None:
            logger.warning(f"Cannot delete record {record_id}: not found")
            return False

        with self._guard("delete"):
            self.client.delete(
                collection_name=self.collection_name,
                points_selector=PointIdsList(points=[record_id]),
            )
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
        with self._guard("search"):
            response = self.client.query_points(
                collection_name=self.collection_name,
                query=_unit(query_embedding),
                query_filter=self._user_filter(user_id, category, exclude_category=exclude_category),
                limit=limit,
                score_threshold=min_score,
                with_vectors=True,
                with_payload=True,
            )

        results = []
        for hit in response.points:
            logger.debug(f"Score: {hit.score}, Record: '{hit.payload.get('content', '')[:50]}...'")
            results.append((self._to_point(hit), float(hit.score)))

        logger.debug(f"{len(results)} hits found (user_id={user_id})")
        return results

    def keyword_search(
        self,
        text: str,
        user_id: str,
        limit: int = 10,
        category: Optional[str] = None,
        exclude_category: Optional[str] = None,
    ) -> List[RecordPoint]:
        # Substring semantics are applied client-side over the user's records
        points = [
            point
            for point in self._scroll(
                self._user_filter(user_id, category, exclude_category=exclude_category),
                newest_first=True,
            )
            if keyword_match(text, point.payload.content, point.payload.metadata.get("title") or "")
        ]
        return points[:limit]

    def list(
        self,
        user_id: str,
        limit: int = 50,
        category: Optional[str] = None,
        before: Optional[datetime] = None,
    ) -> List[RecordPoint]:
        extra = []
        if before is not None:
            extra.append(FieldCondition(key="timestamp_epoch", range=Range(lt=before.timestamp())))
        return self._scroll(
            self._user_filter(user_id, category, extra), limit=limit, newest_first=True
        )

    def find_recent_by_url(
        self,
        user_id: str,
        normalized_url: str,
        since: datetime,
        category: Optional[str] = None,
    ) -> Optional[RecordPoint]:
        extra = [
            FieldCondition(key="normalized_url", match=MatchValue(value=normalized_url)),
            FieldCondition(key="timestamp_epoch", range=Range(gt=since.timestamp())),
        ]
        points = self._scroll(self._user_filter(user_id, category, extra), limit=1, newest_first=True)
        return points[0] if points else None

    def clear_user(self, user_id: str) -> int:
        """
        Clear all records for a specific user.

        Args:
            user_id: The ID of the user whose records to clear

        Returns:
            Number of records deleted
        """
        points = self._scroll(self._user_filter(user_id))
        if not points:
            logger.info(f"No records found for user_id={user_id}")
            return 0

        with self._guard("clear_user"):
            self.client.delete(
                collection_name=self.collection_name,
                points_selector=PointIdsList(points=[point.id for point in points]),
            )
        logger.info(f"Cleared {len(points)} records for user_id={user_id}")
        return len(points)
