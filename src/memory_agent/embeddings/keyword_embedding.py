"""
Keyword-frequency fingerprint.

A fixed, order-sensitive vocabulary of 50 common English words. Slot ``i``
of a fingerprint holds the share of the text's tokens that equal word
``i``. Word order never matters, and tokens outside the vocabulary only
count towards the denominator.
"""

import logging
import re
from collections import Counter
from typing import List, Sequence

import numpy as np

logger = logging.getLogger(__name__)

VOCABULARY: tuple[str, ...] = (
    "the", "and", "for", "are", "but", "not", "you", "all", "can", "had",
    "her", "was", "one", "our", "out", "day", "get", "has", "him", "his",
    "how", "man", "new", "now", "old", "see", "two", "way", "who", "boy",
    "did", "its", "let", "put", "say", "she", "too", "use", "with", "have",
    "from", "they", "know", "want", "been", "good", "much", "some", "time", "very",
)  # fmt: skip

_STRIP_PATTERN = re.compile(r"[^a-z0-9\s]")
MIN_TOKEN_LENGTH = 3


def tokenize(text: str) -> List[str]:
    """Lower-case, drop everything but [a-z0-9] and whitespace, split, drop short tokens."""
    cleaned = _STRIP_PATTERN.sub("", text.lower())
    return [token for token in cleaned.split() if len(token) >= MIN_TOKEN_LENGTH]


def vectorize(text: str, vocabulary: Sequence[str] = VOCABULARY) -> List[float]:
    """
    Turn text into a fixed-length fingerprint.

    Args:
        text: Raw text
        vocabulary: Words mapped to vector slots, in slot order

    Returns:
        One relative frequency per vocabulary word. All zeros when the text
        has no tokens.
    """
    tokens = tokenize(text)
    if not tokens:
        return [0.0] * len(vocabulary)

    counts = Counter(tokens)
    frequencies = np.array([counts.get(word, 0) for word in vocabulary], dtype=float)
    return (frequencies / len(tokens)).tolist()


class KeywordFrequencyEmbedding:
    """
    ``TextEmbedding`` adapter over ``vectorize``.

    Documents and queries are fingerprinted identically.
    """

    def __init__(self, vocabulary: Sequence[str] = VOCABULARY):
        if not vocabulary:
            raise ValueError("Vocabulary must not be empty")
        self._vocabulary = tuple(vocabulary)

    @property
    def dimension(self) -> int:
        return len(self._vocabulary)

    @property
    def model_name(self) -> str:
        return f"keyword-frequency-{self.dimension}"

    async def embed_document(self, text: str) -> List[float]:
        return vectorize(text, self._vocabulary)

    async def embed_query(self, text: str) -> List[float]:
        return vectorize(text, self._vocabulary)
