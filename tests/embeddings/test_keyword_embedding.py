"""Tests for the keyword-frequency fingerprint."""

import pytest

from memory_agent.embeddings import (
    VOCABULARY,
    KeywordFrequencyEmbedding,
    TextEmbedding,
    tokenize,
    vectorize,
)


def test_vocabulary_has_fifty_words():
    assert len(VOCABULARY) == 50
    assert len(set(VOCABULARY)) == 50


def test_tokenize_strips_punctuation_and_short_tokens():
    assert tokenize("Hello, World! It's a NEW day.") == ["hello", "world", "its", "new", "day"]


def test_tokenize_keeps_digits():
    assert tokenize("Top 100 tips for 2024") == ["top", "100", "tips", "for", "2024"]


def test_vectorize_dimension():
    assert len(vectorize("anything at all")) == 50


def test_vectorize_relative_frequencies():
    vector = vectorize("the the cat")

    assert vector[VOCABULARY.index("the")] == pytest.approx(2 / 3)
    # "cat" is not in the vocabulary but still counts as a token
    assert sum(vector) == pytest.approx(2 / 3)


def test_vectorize_ignores_word_order():
    assert vectorize("the time has come for all good men") == vectorize(
        "men good all for come has time the"
    )


def test_vectorize_empty_text_is_all_zeros():
    assert vectorize("") == [0.0] * 50
    assert vectorize("a b c !! ??") == [0.0] * 50


def test_vectorize_out_of_vocabulary_is_all_zeros():
    assert not any(vectorize("javascript tutorial"))


def test_vectorize_custom_vocabulary():
    assert vectorize("apple banana apple", vocabulary=("apple", "banana")) == pytest.approx(
        [2 / 3, 1 / 3]
    )


def test_embedding_properties():
    embedding = KeywordFrequencyEmbedding()

    assert embedding.dimension == 50
    assert embedding.model_name == "keyword-frequency-50"
    assert isinstance(embedding, TextEmbedding)


def test_embedding_rejects_empty_vocabulary():
    with pytest.raises(ValueError):
        KeywordFrequencyEmbedding(vocabulary=())


@pytest.mark.asyncio
async def test_document_and_query_fingerprints_match():
    embedding = KeywordFrequencyEmbedding()
    text = "how did they know the way"

    assert await embedding.embed_document(text) == await embedding.embed_query(text)
    assert await embedding.embed_query(text) == vectorize(text)
