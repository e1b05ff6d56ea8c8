"""
Remote retrieval service.

The durable, per-user side of the agent: ingests synced records (with a
lookback dedup on normalized URL), answers hybrid queries with composite
re-ranking, lists by recency and deletes with an ownership check.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from pydantic import ValidationError

from memory_agent.config import MemoryAgentSettings
from memory_agent.embeddings import KeywordFrequencyEmbedding, TextEmbedding
from memory_agent.errors import MalformedInput, MemoryAgentError, SemanticSearchUnavailable, Unauthorized
from memory_agent.intelligence.ranking import CompositeRanker
from memory_agent.models import IngestItem, IngestResponse, MemoryRecord, ScoredMemory, StoreOutcome
from memory_agent.storage.calls import call_store
from memory_agent.storage.protocols import RecordStore
from memory_agent.storage.vector.models import RecordPayload
from memory_agent.utils.dates import parse_timestamp, utcnow
from memory_agent.utils.urls import normalize_url

logger = logging.getLogger(__name__)


class MemoryService:
    def __init__(
        self,
        record_store: RecordStore,
        embedding: Optional[TextEmbedding] = None,
        settings: Optional[MemoryAgentSettings] = None,
        ranker: Optional[CompositeRanker] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.record_store = record_store
        self.embedding = embedding or KeywordFrequencyEmbedding()
        self.settings = settings or MemoryAgentSettings()
        self.ranker = ranker or CompositeRanker.from_settings(self.settings)
        self.clock = clock

    async def _call(self, operation: str, fn, *args, **kwargs):
        return await call_store(
            operation, fn, *args, timeout=self.settings.request_timeout_seconds, **kwargs
        )

    async def store(
        self,
        user_id: str,
        content: str,
        metadata: Optional[Dict[str, Any]] = None,
        timestamp: Union[str, int, float, datetime, None] = None,
        category: Optional[str] = None,
        source: Optional[str] = None,
    ) -> StoreOutcome:
        """
        Store one record for a user.

        A record whose normalized URL was already stored for this user in
        the same category within the lookback window is skipped. The check
        is read-then-write, so two simultaneous submissions of one URL can
        both be stored; the client-side visited set keeps that rare.

        Raises:
            MalformedInput: If the user, content, URL or timestamp is unusable
        """
        if not user_id:
            raise MalformedInput("user_id is required")
        if not content or not content.strip():
            raise MalformedInput("content is required")

        metadata = dict(metadata or {})
        category = category or self.settings.default_category
        source = source or self.settings.default_source
        record_time = parse_timestamp(timestamp) if timestamp is not None else self.clock()

        url = metadata.get("url")
        normalized_url = normalize_url(url) if url else None

        if normalized_url:
            since = self.clock() - timedelta(minutes=self.settings.dedup_lookback_minutes)
            existing = await self._call(
                "find_recent_by_url",
                self.record_store.find_recent_by_url,
                user_id,
                normalized_url,
                since,
                category,
            )
            if existing is not None:
                logger.info(f"Skipping duplicate URL for user_id={user_id}: {normalized_url}")
                return StoreOutcome(
                    status="skipped",
                    url=url,
                    memory_id=existing.id,
                    reason="recently_stored",
                )

        vector = await self.embedding.embed_document(content)
        payload = RecordPayload.build(
            user_id=user_id,
            content=content,
            timestamp=record_time,
            category=category,
            source=source,
            metadata=metadata,
            normalized_url=normalized_url,
        )
        memory_id = await self._call("add", self.record_store.add, vector, payload.model_dump())

        logger.debug(f"Stored record {memory_id} for user_id={user_id} (category={category})")
        return StoreOutcome(status="stored", url=url, memory_id=memory_id)

    async def ingest(
        self, user_id: str, items: List[Union[IngestItem, Dict[str, Any]]]
    ) -> IngestResponse:
        """
        Store a batch, reporting one outcome per item in submission order.

        A failing item is recorded as ``error`` and does not stop the rest
        of the batch.
        """
        results: List[StoreOutcome] = []

        for raw in items:
            client_id = raw.client_id if isinstance(raw, IngestItem) else None
            url = None
            try:
                item = raw if isinstance(raw, IngestItem) else IngestItem.model_validate(raw)
                client_id = item.client_id
                url = item.metadata.get("url")
                outcome = await self.store(
                    user_id,
                    item.content,
                    metadata=item.metadata,
                    timestamp=item.timestamp,
                    category=item.category,
                    source=item.source,
                )
            except (MemoryAgentError, ValidationError) as e:
                logger.error(f"Error storing individual record ({url or 'unknown'}): {e}")
                outcome = StoreOutcome(status="error", url=url or "unknown", error=str(e))

            outcome.client_id = client_id
            results.append(outcome)

        response = IngestResponse(success=True, results=results)
        logger.info(
            f"Ingested batch for user_id={user_id}: stored={response.stored}, "
            f"skipped={response.skipped}, errors={response.errors}"
        )
        return response

    async def _semantic_candidates(
        self,
        user_id: str,
        query: str,
        pool: int,
        category: Optional[str],
        exclude_category: Optional[str],
    ) -> List[Tuple[MemoryRecord, Optional[float]]]:
        query_vector = await self.embedding.embed_query(query)
        if not any(query_vector):
            logger.debug("Query has an empty fingerprint, skipping semantic pass")
            return []

        min_score = 1.0 - self.settings.max_semantic_distance
        try:
            hits = await self._call(
                "search",
                self.record_store.search,
                query_vector,
                user_id,
                limit=pool,
                min_score=min_score,
                category=category,
                exclude_category=exclude_category,
            )
        except SemanticSearchUnavailable as e:
            logger.warning(f"Semantic search unavailable, using keyword match: {e}")
            return []

        return [(point.to_record(), max(0.0, score)) for point, score in hits]

    async def search_scored(
        self,
        user_id: str,
        query: str,
        limit: int = 10,
        category: Optional[str] = None,
    ) -> List[ScoredMemory]:
        """
        Hybrid search with composite re-ranking.

        The semantic pass runs first; when it cannot run or finds nothing,
        a case-insensitive substring match is used instead. Ranking is
        applied to up to ``2 * limit`` raw results before truncation.
        Session records are left out unless their category is requested.
        """
        if not user_id:
            raise MalformedInput("user_id is required")
        if limit <= 0 or not query.strip():
            return []

        pool = limit * 2
        # Session records are filtered by the store so they never take pool slots
        excluded = self.settings.session_category if category is None else None
        candidates = await self._semantic_candidates(user_id, query, pool, category, excluded)
        strategy = "semantic"

        if not candidates:
            strategy = "keyword"
            points = await self._call(
                "keyword_search",
                self.record_store.keyword_search,
                query,
                user_id,
                limit=pool,
                category=category,
                exclude_category=excluded,
            )
            candidates = [(point.to_record(), None) for point in points]

        ranked = self.ranker.rank(query, candidates, limit, now=self.clock())
        logger.info(f"{len(ranked)} records found for user_id={user_id} ({strategy})")
        return ranked

    async def search(
        self,
        user_id: str,
        query: str,
        limit: int = 10,
        category: Optional[str] = None,
    ) -> List[MemoryRecord]:
        scored = await self.search_scored(user_id, query, limit=limit, category=category)
        return [item.record for item in scored]

    async def list(
        self,
        user_id: str,
        limit: int = 50,
        category: Optional[str] = None,
    ) -> List[MemoryRecord]:
        """The user's records, newest first, without ranking."""
        if not user_id:
            raise MalformedInput("user_id is required")
        points = await self._call(
            "list", self.record_store.list, user_id, limit=limit, category=category
        )
        return [point.to_record() for point in points]

    async def delete(self, record_id: str, user_id: str) -> bool:
        """
        Delete a record after checking that ``user_id`` owns it.

        Raises:
            Unauthorized: If the record does not exist or belongs to someone else
        """
        point = await self._call("get_by_id", self.record_store.get_by_id, record_id)
        if point is None or point.payload.user_id != user_id:
            logger.warning(f"Refused delete of record {record_id} by user_id={user_id}")
            raise Unauthorized("Memory does not belong to user")

        deleted = await self._call("delete", self.record_store.delete, record_id)
        logger.info(f"Deleted record {record_id} for user_id={user_id}")
        return deleted
