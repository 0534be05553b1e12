"""Token-budgeted, paragraph-respecting chunking.

Policy for paragraphs between the soft target and the hard model limit: they
are never split. Such a paragraph becomes a chunk on its own and a warning is
logged. Only a paragraph above ``model_token_limit`` is an error.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ragstore.chunking.utils import calculate_effective_target, split_by_paragraphs
from ragstore.errors import ChunkingError
from ragstore.models import RawChunk
from ragstore.tokens.base import TokenCounter

logger = logging.getLogger(__name__)

_PARAGRAPH_SEPARATOR = "\n\n"


@dataclass
class ChunkingConfig:
    """Chunk sizing for one run.

    Attributes:
        target_chunk_size: Soft budget in tokens.
        model_token_limit: Hard ceiling of the embedding model; a paragraph
            above it fails the whole resource.
        padding_factor: 0 < p <= 1; shrinks the budget to absorb the token
            counter's error margin.
        token_counter: Strategy used to measure text.
    """

    target_chunk_size: int
    model_token_limit: int
    padding_factor: float
    token_counter: TokenCounter

    def __post_init__(self) -> None:
        if self.model_token_limit < 1:
            raise ValueError(f"model_token_limit must be >= 1, got {self.model_token_limit}")
        # Validates target_chunk_size and padding_factor.
        effective = calculate_effective_target(self.target_chunk_size, self.padding_factor)
        if effective > self.model_token_limit:
            raise ValueError(
                f"Effective chunk target {effective} (target_chunk_size * padding_factor) "
                f"exceeds model_token_limit {self.model_token_limit}"
            )

    @property
    def effective_target(self) -> int:
        return calculate_effective_target(self.target_chunk_size, self.padding_factor)


def chunk_by_tokens(
    text: str,
    config: ChunkingConfig,
    *,
    heading_path: str | None = None,
    heading_level: int | None = None,
    start_line: int = 1,
) -> list[RawChunk]:
    """Split *text* into chunks of at most ``config.effective_target`` tokens.

    Text that fits the budget is returned as a single chunk. Otherwise blank-line
    paragraphs are packed greedily in order; a chunk is flushed when adding the
    next paragraph would push it over the budget.

    Args:
        text: Text to chunk.
        config: Chunk sizing and token counter.
        heading_path: Attached to every chunk (heading-aware callers).
        heading_level: Attached to every chunk.
        start_line: 1-based line number of the first line of *text* within
            the whole resource, used for ``start_line``/``end_line``.

    Returns:
        Chunks in document order. Empty for blank text.

    Raises:
        ChunkingError: If any paragraph exceeds ``config.model_token_limit``.
    """
    if not text.strip():
        return []

    counter = config.token_counter
    effective_target = config.effective_target

    def _make(content: str, begin: int, end: int) -> RawChunk:
        return RawChunk(
            content=content,
            heading_path=heading_path,
            heading_level=heading_level,
            start_line=start_line + text.count("\n", 0, begin),
            end_line=start_line + text.count("\n", 0, end),
        )

    stripped = text.strip()
    body_start = text.find(stripped)
    body_end = body_start + len(stripped)

    total_tokens = counter.count(stripped)
    if total_tokens <= effective_target:
        return [_make(stripped, body_start, body_end)]

    separator_tokens = counter.count(_PARAGRAPH_SEPARATOR)
    chunks: list[RawChunk] = []
    buffer: list[str] = []
    buffer_tokens = 0
    buffer_begin = 0
    buffer_end = 0
    position = 0

    for paragraph in split_by_paragraphs(text):
        paragraph_tokens = counter.count(paragraph)
        if paragraph_tokens > config.model_token_limit:
            raise ChunkingError(
                f"Paragraph exceeds model token limit ({paragraph_tokens} > "
                f"{config.model_token_limit}) near line "
                f"{start_line + text.count(chr(10), 0, position)}. "
                "Split the paragraph or reduce its content."
            )

        found = text.find(paragraph, position)
        begin = found if found != -1 else position
        end = begin + len(paragraph)

        if buffer:
            if buffer_tokens + separator_tokens + paragraph_tokens > effective_target:
                chunks.append(_make(_PARAGRAPH_SEPARATOR.join(buffer), buffer_begin, buffer_end))
                buffer = []
                buffer_tokens = 0
            else:
                buffer_tokens += separator_tokens

        if not buffer:
            buffer_begin = begin
        buffer.append(paragraph)
        buffer_tokens += paragraph_tokens
        buffer_end = end
        position = end

        if paragraph_tokens > effective_target:
            logger.warning(
                "Paragraph of %d tokens exceeds chunk target %d; kept whole (model limit %d)",
                paragraph_tokens,
                effective_target,
                config.model_token_limit,
            )

    if buffer:
        chunks.append(_make(_PARAGRAPH_SEPARATOR.join(buffer), buffer_begin, buffer_end))

    return chunks
