"""ragstore: chunking, incremental indexing and filtered vector search over SQLite."""

from __future__ import annotations

from ragstore.config import RagStoreConfig, load_config
from ragstore.errors import (
    ChunkingError,
    ConfigError,
    EmbeddingError,
    EmbeddingModelMismatchError,
    EmptyIndexError,
    ProviderUnavailableError,
    RagStoreError,
    ReadOnlyError,
    ResourceNotFoundError,
    StoreSchemaError,
)
from ragstore.models import (
    Chunk,
    DateRange,
    DocumentRecord,
    Heading,
    IndexProgress,
    IndexResult,
    QueryFilters,
    RAGQuery,
    RAGResult,
    RAGStats,
    Resource,
    ResourceError,
)
from ragstore.provider import RAGProvider

__version__ = "0.1.0"

__all__ = [
    "Chunk",
    "ChunkingError",
    "ConfigError",
    "DateRange",
    "DocumentRecord",
    "EmbeddingError",
    "EmbeddingModelMismatchError",
    "EmptyIndexError",
    "Heading",
    "IndexProgress",
    "IndexResult",
    "ProviderUnavailableError",
    "QueryFilters",
    "RAGProvider",
    "RAGQuery",
    "RAGResult",
    "RAGStats",
    "RagStoreConfig",
    "RagStoreError",
    "ReadOnlyError",
    "Resource",
    "ResourceError",
    "ResourceNotFoundError",
    "StoreSchemaError",
    "load_config",
]
