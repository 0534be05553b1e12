"""Resource-level chunking: heading sections, chunk ids and chain links."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from ragstore.chunking.token_chunker import ChunkingConfig, chunk_by_tokens
from ragstore.chunking.utils import generate_chunk_id, generate_content_hash
from ragstore.models import Chunk, Heading, RawChunk, Resource

_HEADING_SEPARATOR = " > "


@dataclass
class ChunkingResult:
    chunks: list[RawChunk]
    total_chunks: int
    average_tokens: float
    max_tokens: int
    min_tokens: int


def build_heading_path(headings: list[Heading], index: int) -> str:
    """Breadcrumb for ``headings[index]``: its strictly shallower ancestors, then itself.

    Example: headings H1 "Guide", H2 "Setup", H3 "Linux" give
    ``"Guide > Setup > Linux"`` for the H3.
    """
    current = headings[index]
    path = [current.text]
    level = current.level
    for heading in reversed(headings[:index]):
        if heading.level < level:
            path.append(heading.text)
            level = heading.level
            if level <= 1:
                break
    return _HEADING_SEPARATOR.join(reversed(path))


def _sections(resource: Resource) -> list[tuple[str, int, str | None, int | None]]:
    """Split content at heading lines -> (text, first_line, heading_path, heading_level)."""
    lines = resource.content.split("\n")
    headings = sorted(
        (h for h in resource.headings if 1 <= h.line <= len(lines)), key=lambda h: h.line
    )
    if not headings:
        return [(resource.content, 1, None, None)]

    sections: list[tuple[str, int, str | None, int | None]] = []
    first_line = headings[0].line
    if first_line > 1:
        sections.append(("\n".join(lines[: first_line - 1]), 1, None, None))

    for i, heading in enumerate(headings):
        end = headings[i + 1].line - 1 if i + 1 < len(headings) else len(lines)
        text = "\n".join(lines[heading.line - 1 : end])
        sections.append((text, heading.line, build_heading_path(headings, i), heading.level))
    return sections


def chunk_resource(resource: Resource, config: ChunkingConfig) -> ChunkingResult:
    """Chunk a whole resource, heading-aware when the parser supplied headings.

    Each heading section is chunked independently, so no chunk straddles two
    sections. Text before the first heading forms a section with no heading path.

    Raises:
        ChunkingError: A paragraph exceeds the model token limit.
    """
    chunks: list[RawChunk] = []
    for text, first_line, heading_path, heading_level in _sections(resource):
        chunks.extend(
            chunk_by_tokens(
                text,
                config,
                heading_path=heading_path,
                heading_level=heading_level,
                start_line=first_line,
            )
        )

    total = len(chunks)
    for index, chunk in enumerate(chunks):
        chunk.chunk_index = index
        chunk.total_chunks = total

    counts = [config.token_counter.count(c.content) for c in chunks]
    return ChunkingResult(
        chunks=chunks,
        total_chunks=total,
        average_tokens=sum(counts) / total if total else 0.0,
        max_tokens=max(counts, default=0),
        min_tokens=min(counts, default=0),
    )


def enrich_chunks(
    raw_chunks: list[RawChunk],
    resource: Resource,
    config: ChunkingConfig,
    *,
    resource_hash: str = "",
    embedding_model: str = "",
) -> list[Chunk]:
    """Turn raw chunks into ``Chunk`` objects with ids, hashes and chain links.

    ``previous_chunk_id``/``next_chunk_id`` form a doubly-linked chain in
    ``chunk_index`` order; the first and last ends are None.
    """
    embedded_at = datetime.now(timezone.utc)
    total = len(raw_chunks)
    chunks = [
        Chunk(
            chunk_id=generate_chunk_id(),
            resource_id=resource.id,
            content=raw.content,
            content_hash=generate_content_hash(raw.content),
            token_count=config.token_counter.count(raw.content),
            chunk_index=index,
            total_chunks=total,
            file_path=resource.file_path,
            resource_content_hash=resource_hash,
            heading_path=raw.heading_path,
            heading_level=raw.heading_level,
            start_line=raw.start_line,
            end_line=raw.end_line,
            embedding_model=embedding_model,
            embedded_at=embedded_at,
        )
        for index, raw in enumerate(raw_chunks)
    ]
    for prev, nxt in zip(chunks, chunks[1:]):
        prev.next_chunk_id = nxt.chunk_id
        nxt.previous_chunk_id = prev.chunk_id
    return chunks


def resource_fingerprint(content: str, metadata: Mapping[str, Any] | None = None) -> str:
    """Change-detection hash over content plus declared metadata values.

    A frontmatter-only edit changes the fingerprint, so overlaid chunk metadata
    never goes stale.
    """
    if not metadata:
        return generate_content_hash(content)
    canonical = json.dumps(dict(metadata), sort_keys=True, default=str)
    return generate_content_hash(f"{content}\0{canonical}")
