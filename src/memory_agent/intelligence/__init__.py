"""
Scoring components: fingerprint similarity and composite ranking.
"""

from memory_agent.intelligence.ranking import (
    CompositeRanker,
    keyword_match,
    keyword_overlap,
    query_tokens,
    recency_score,
)
from memory_agent.intelligence.similarity import cosine_similarity

__all__ = [
    "CompositeRanker",
    "cosine_similarity",
    "keyword_match",
    "keyword_overlap",
    "query_tokens",
    "recency_score",
]
