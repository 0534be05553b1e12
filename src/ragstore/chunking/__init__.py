"""Chunker: splits resources into token-budgeted, paragraph-aligned chunks."""

from __future__ import annotations

from ragstore.chunking.resource import (
    ChunkingResult,
    build_heading_path,
    chunk_resource,
    enrich_chunks,
    resource_fingerprint,
)
from ragstore.chunking.token_chunker import ChunkingConfig, chunk_by_tokens
from ragstore.chunking.utils import (
    calculate_effective_target,
    generate_chunk_id,
    generate_content_hash,
    split_by_paragraphs,
    split_by_sentences,
)

__all__ = [
    "ChunkingConfig",
    "ChunkingResult",
    "build_heading_path",
    "calculate_effective_target",
    "chunk_by_tokens",
    "chunk_resource",
    "enrich_chunks",
    "generate_chunk_id",
    "generate_content_hash",
    "resource_fingerprint",
    "split_by_paragraphs",
    "split_by_sentences",
]
