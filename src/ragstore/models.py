"""Domain models shared by the chunker, indexer, store adapter and query engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


# ---------------------------------------------------------------------------
# Upstream input
# ---------------------------------------------------------------------------


@dataclass
class Heading:
    """A heading found by the upstream parser.

    Attributes:
        level: Heading depth (1 = top level).
        text: Heading text without markup.
        line: 1-based line number of the heading within ``Resource.content``.
    """

    level: int
    text: str
    line: int


@dataclass
class Resource:
    """An already-parsed document handed to the indexer by the resource supplier.

    ``content_hash`` is whatever the supplier computed; the indexer derives its
    own fingerprint from ``content`` and the declared metadata fields.
    """

    id: str
    file_path: str
    content: str
    content_hash: str = ""
    frontmatter: dict[str, Any] = field(default_factory=dict)
    headings: list[Heading] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Chunks and documents
# ---------------------------------------------------------------------------


@dataclass
class RawChunk:
    """A span of text produced by the chunker, before ids and embeddings."""

    content: str
    heading_path: str | None = None
    heading_level: int | None = None
    start_line: int | None = None
    end_line: int | None = None
    chunk_index: int | None = None
    total_chunks: int | None = None


@dataclass
class Chunk:
    """The persisted unit of retrieval.

    ``metadata`` holds the overlaid frontmatter fields; the store writes each
    one to its own top-level column. ``distance`` and ``score`` are only set on
    chunks returned by a query.
    """

    chunk_id: str
    resource_id: str
    content: str
    content_hash: str
    token_count: int
    chunk_index: int
    total_chunks: int
    file_path: str = ""
    resource_content_hash: str = ""
    heading_path: str | None = None
    heading_level: int | None = None
    start_line: int | None = None
    end_line: int | None = None
    embedding: list[float] = field(default_factory=list)
    embedding_model: str = ""
    embedded_at: datetime | None = None
    previous_chunk_id: str | None = None
    next_chunk_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    distance: float | None = None
    score: float | None = None


@dataclass
class DocumentRecord:
    """Whole-document row used for change detection and reconstruction."""

    resource_id: str
    file_path: str
    content: str
    content_hash: str
    token_count: int
    total_chunks: int
    indexed_at: datetime | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Indexing results
# ---------------------------------------------------------------------------


@dataclass
class ResourceError:
    """A single resource that failed to index."""

    resource_id: str
    error: str


@dataclass
class IndexResult:
    resources_indexed: int = 0
    resources_skipped: int = 0
    resources_updated: int = 0
    chunks_created: int = 0
    chunks_deleted: int = 0
    duration_ms: float = 0.0
    errors: list[ResourceError] = field(default_factory=list)


@dataclass
class IndexProgress:
    """Snapshot passed to the ``on_progress`` callback after each resource.

    Attributes:
        current: 1-based position of the resource just processed.
        total: Number of resources in the batch.
        estimated_remaining_ms: Linear estimate from the average time per
            resource so far; None before any resource has completed.
    """

    current: int
    total: int
    resource_id: str
    resources_indexed: int
    resources_skipped: int
    resources_updated: int
    chunks_created: int
    elapsed_ms: float
    estimated_remaining_ms: float | None
    errors: list[ResourceError] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


@dataclass
class DateRange:
    """Inclusive range applied to ``Chunk.embedded_at``."""

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if _as_comparable(self.start) > _as_comparable(self.end):
            raise ValueError("DateRange start must not be after end")


@dataclass
class QueryFilters:
    resource_id: str | list[str] | None = None
    date_range: DateRange | None = None
    metadata: dict[str, Any] | None = None


@dataclass
class RAGQuery:
    text: str
    limit: int = 10
    filters: QueryFilters | None = None

    def __post_init__(self) -> None:
        if not self.text or not self.text.strip():
            raise ValueError("query text must not be empty")
        if self.limit < 1:
            raise ValueError(f"limit must be >= 1, got {self.limit}")


@dataclass
class EmbeddingUsage:
    model: str
    tokens_used: int | None = None


@dataclass
class SearchStats:
    total_matches: int
    search_duration_ms: float
    embedding: EmbeddingUsage


@dataclass
class RAGResult:
    """Chunks sorted by descending score, with search statistics."""

    chunks: list[Chunk]
    stats: SearchStats


@dataclass
class RAGStats:
    total_chunks: int
    total_resources: int
    db_size_bytes: int
    embedding_model: str
    last_indexed: datetime | None = None

    @property
    def is_empty(self) -> bool:
        """True when nothing is indexed (a query would raise EmptyIndexError)."""
        return self.total_chunks == 0


def _as_comparable(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)
