"""
Composite ranking for search results.

score = semantic_weight * semantic_certainty
      + keyword_weight  * keyword_overlap
      + recency_weight  * recency

Reference weights are 0.6 / 0.3 / 0.1 with a 30 day linear recency decay;
all of them come from ``MemoryAgentSettings``.
"""

import logging
from datetime import datetime
from typing import Iterable, List, Optional, Tuple

from memory_agent.config import MemoryAgentSettings
from memory_agent.models import MemoryRecord, ScoredMemory
from memory_agent.utils.dates import ensure_utc, utcnow

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400.0


def query_tokens(query: str) -> List[str]:
    """Lower-cased whitespace tokens of a query, duplicates removed, order kept."""
    seen: dict[str, None] = {}
    for token in query.lower().split():
        seen.setdefault(token, None)
    return list(seen)


def keyword_overlap(tokens: List[str], record: MemoryRecord) -> float:
    """Fraction of query tokens found as substrings of the record's content or title."""
    if not tokens:
        return 0.0
    haystack = f"{record.content}\n{record.title}".lower()
    hits = sum(1 for token in tokens if token in haystack)
    return hits / len(tokens)


def recency_score(timestamp: datetime, now: datetime, decay_days: float = 30.0) -> float:
    """1.0 for a record captured now, falling linearly to 0 at decay_days."""
    age_days = (ensure_utc(now) - ensure_utc(timestamp)).total_seconds() / SECONDS_PER_DAY
    return max(0.0, 1.0 - max(0.0, age_days) / decay_days)


class CompositeRanker:
    """Re-ranks raw query candidates by semantic, keyword and recency signals."""

    def __init__(
        self,
        semantic_weight: float = 0.6,
        keyword_weight: float = 0.3,
        recency_weight: float = 0.1,
        recency_decay_days: float = 30.0,
    ):
        self.semantic_weight = semantic_weight
        self.keyword_weight = keyword_weight
        self.recency_weight = recency_weight
        self.recency_decay_days = recency_decay_days

    @classmethod
    def from_settings(cls, settings: MemoryAgentSettings) -> "CompositeRanker":
        return cls(
            semantic_weight=settings.semantic_weight,
            keyword_weight=settings.keyword_weight,
            recency_weight=settings.recency_weight,
            recency_decay_days=settings.recency_decay_days,
        )

    def score(
        self,
        tokens: List[str],
        record: MemoryRecord,
        semantic_certainty: Optional[float],
        now: datetime,
    ) -> ScoredMemory:
        certainty = semantic_certainty if semantic_certainty is not None else 0.0
        overlap = keyword_overlap(tokens, record)
        recency = recency_score(record.timestamp, now, self.recency_decay_days)
        total = (
            self.semantic_weight * certainty
            + self.keyword_weight * overlap
            + self.recency_weight * recency
        )
        return ScoredMemory(
            record=record,
            score=total,
            semantic_certainty=certainty,
            keyword_overlap=overlap,
            recency=recency,
        )

    def rank(
        self,
        query: str,
        candidates: Iterable[Tuple[MemoryRecord, Optional[float]]],
        limit: int,
        now: Optional[datetime] = None,
    ) -> List[ScoredMemory]:
        """
        Score candidates and return the best ``limit`` of them.

        Args:
            query: The raw query text
            candidates: (record, semantic certainty or None) pairs
            limit: Maximum number of results
            now: Reference time for recency (defaults to the current time)

        Returns:
            Scored memories, best first; ties go to the newer record
        """
        now = now or utcnow()
        tokens = query_tokens(query)
        scored = [self.score(tokens, record, certainty, now) for record, certainty in candidates]
        scored.sort(key=lambda s: (s.score, s.record.timestamp), reverse=True)

        logger.debug(
            f"Ranked {len(scored)} candidates for '{query[:50]}', returning {min(limit, len(scored))}"
        )
        return scored[: max(0, limit)]


def keyword_match(query: str, content: str, title: str = "") -> bool:
    """
    Case-insensitive substring test used by the keyword fallback.

    A record matches when the whole query, or any single token of it,
    occurs in its content or title.
    """
    needle = query.strip().lower()
    if not needle:
        return False
    haystack = f"{content}\n{title}".lower()
    if needle in haystack:
        return True
    return any(token in haystack for token in query_tokens(needle))
