"""
Text fingerprinting for the memory agent.

The agent ships a single, deliberately simple embedder: a fixed vocabulary
of 50 common words whose relative frequencies form the fingerprint. Any
implementation of ``TextEmbedding`` can be used in its place.
"""

from memory_agent.embeddings.keyword_embedding import (
    VOCABULARY,
    KeywordFrequencyEmbedding,
    tokenize,
    vectorize,
)
from memory_agent.embeddings.protocol import TextEmbedding

__all__ = [
    "TextEmbedding",
    "KeywordFrequencyEmbedding",
    "VOCABULARY",
    "tokenize",
    "vectorize",
]
