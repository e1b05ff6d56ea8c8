"""
Text embedding protocol for the memory agent.

Provides a unified interface for turning text into fixed-length vectors
for similarity search.
"""

from typing import List, Protocol

from typing_extensions import runtime_checkable


@runtime_checkable
class TextEmbedding(Protocol):
    """
    Protocol for text embedding providers.

    All implementations must:

    1. Return deterministic vectors for the same input
    2. Return vectors of exactly ``dimension`` elements
    3. Implement async methods so remote-model embedders fit the same seam

    Example:
        >>> embedder = KeywordFrequencyEmbedding()
        >>> vector = await embedder.embed_document("the cat and the hat")
        >>> len(vector) == embedder.dimension
        True
    """

    @property
    def dimension(self) -> int:
        """
        Vector dimension produced by this embedder.

        Record stores size their collections from this value.
        """
        ...

    @property
    def model_name(self) -> str:
        """Identifier of the embedding model."""
        ...

    async def embed_document(self, text: str) -> List[float]:
        """Fingerprint record content before it is stored."""
        ...

    async def embed_query(self, text: str) -> List[float]:
        """
        Fingerprint query text.

        Must be comparable with ``embed_document`` output, since the
        retrieval service scores one against the other.
        """
        ...
