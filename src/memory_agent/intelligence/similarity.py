"""Cosine similarity between fingerprints."""

from typing import Sequence

import numpy as np


def cosine_similarity(vec_a: Sequence[float], vec_b: Sequence[float]) -> float:
    """
    Dot product over the product of Euclidean norms.

    Args:
        vec_a: First vector
        vec_b: Second vector, same length as vec_a

    Returns:
        Similarity in [-1, 1]; 0.0 when either vector has zero norm

    Raises:
        ValueError: If the vectors differ in length
    """
    if len(vec_a) != len(vec_b):
        raise ValueError(f"Vectors must have the same length ({len(vec_a)} != {len(vec_b)})")

    a = np.asarray(vec_a, dtype=float)
    b = np.asarray(vec_b, dtype=float)
    norm_a = np.linalg.norm(a)
    norm_b = np.linalg.norm(b)

    if norm_a == 0 or norm_b == 0:
        return 0.0

    similarity = float(np.dot(a, b) / (norm_a * norm_b))
    # Guard against float drift just past the bounds
    return max(-1.0, min(1.0, similarity))
