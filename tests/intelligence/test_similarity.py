"""Tests for cosine similarity."""

import pytest

from memory_agent.embeddings import vectorize
from memory_agent.intelligence import cosine_similarity


def test_identical_vectors():
    v = [0.2, 0.5, 0.1]
    assert cosine_similarity(v, v) == pytest.approx(1.0)


def test_identical_fingerprints():
    v = vectorize("the way they know how")
    assert cosine_similarity(v, v) == pytest.approx(1.0)


def test_orthogonal_vectors():
    assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)


def test_opposite_vectors():
    assert cosine_similarity([1.0, 2.0], [-1.0, -2.0]) == pytest.approx(-1.0)


def test_zero_vector_is_zero_not_nan():
    assert cosine_similarity([0.3, 0.4], [0.0, 0.0]) == 0.0
    assert cosine_similarity([0.0, 0.0], [0.0, 0.0]) == 0.0


def test_scale_invariant():
    assert cosine_similarity([1.0, 2.0, 3.0], [2.0, 4.0, 6.0]) == pytest.approx(1.0)


def test_length_mismatch_fails_fast():
    with pytest.raises(ValueError, match="same length"):
        cosine_similarity([1.0, 2.0], [1.0, 2.0, 3.0])
