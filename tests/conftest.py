"""Shared pytest fixtures."""

from __future__ import annotations

import hashlib
import re

import pytest

from ragstore.chunking import ChunkingConfig
from ragstore.db.connection import Database
from ragstore.db.schema import initialize
from ragstore.embedding.base import EmbeddingProvider
from ragstore.metadata import MetadataSchema
from ragstore.models import Resource
from ragstore.provider import RAGProvider
from ragstore.tokens.base import TokenCounter

_WORD_RE = re.compile(r"\w+")


class WordTokenCounter(TokenCounter):
    """One token per whitespace-separated word, so budgets are exact in tests."""

    name = "words"

    def count(self, text: str) -> int:
        return len(text.split())


class HashingEmbeddingProvider(EmbeddingProvider):
    """Deterministic bag-of-words embedding: each word bumps one hashed bucket.

    Texts sharing words are close; the bias component keeps every vector
    non-zero so cosine distance is always defined.
    """

    name = "hashing"

    def __init__(self, model: str = "test/hashing", dimensions: int = 64) -> None:
        self.model = model
        self.dimensions = dimensions
        self.calls: list[list[str]] = []

    def embed(self, text: str) -> list[float]:
        self.calls.append([text])
        return self._vector(text)

    def embed_batch(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        return [self._vector(t) for t in texts]

    def _vector(self, text: str) -> list[float]:
        vector = [0.0] * self.dimensions
        vector[0] = 1.0
        for word in _WORD_RE.findall(text.lower()):
            bucket = int(hashlib.md5(word.encode()).hexdigest(), 16) % (self.dimensions - 1)
            vector[bucket + 1] += 1.0
        return vector


def make_resource(resource_id="doc-1", content="Hello world.", **frontmatter) -> Resource:
    return Resource(
        id=resource_id,
        file_path=f"docs/{resource_id}.md",
        content=content,
        frontmatter=frontmatter,
    )


@pytest.fixture
def tmp_db(tmp_path):
    """File-based DB in tmp_path with schema initialized, closed after test."""
    db = Database(tmp_path / ".ragstore.db")
    conn = db.connect()
    initialize(conn, MetadataSchema())
    yield conn
    conn.close()


@pytest.fixture
def word_counter():
    return WordTokenCounter()


@pytest.fixture
def chunking_config(word_counter):
    """Target 100 words, padding 0.5 -> 50-word budget; hard limit 200 words."""
    return ChunkingConfig(
        target_chunk_size=100,
        model_token_limit=200,
        padding_factor=0.5,
        token_counter=word_counter,
    )


@pytest.fixture
def embedder():
    return HashingEmbeddingProvider()


@pytest.fixture
def provider(tmp_path, embedder, chunking_config):
    rag = RAGProvider(tmp_path / "store.db", embedder, chunking=chunking_config)
    yield rag
    rag.close()
