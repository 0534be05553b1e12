"""Chunking utilities: hashing, ids, budget arithmetic, text splitting."""

from __future__ import annotations

import hashlib
import math
import re
import uuid

# One or more blank lines (whitespace-only lines count as blank).
_PARAGRAPH_BREAK_RE = re.compile(r"\n[ \t]*\n\s*")
_SENTENCE_END_RE = re.compile(r"[.!?]+(?:\s+|$)")


def generate_content_hash(text: str) -> str:
    """SHA-256 hex digest of *text* (UTF-8)."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def generate_chunk_id() -> str:
    """Random, globally unique chunk identifier."""
    return str(uuid.uuid4())


def calculate_effective_target(target_chunk_size: int, padding_factor: float) -> int:
    """Usable token budget after padding: ``floor(target * padding)``.

    Examples:
        calculate_effective_target(512, 0.9)  -> 460
        calculate_effective_target(512, 0.85) -> 435
    """
    if target_chunk_size < 1:
        raise ValueError(f"target_chunk_size must be >= 1, got {target_chunk_size}")
    if not 0.0 < padding_factor <= 1.0:
        raise ValueError(f"padding_factor must be in (0, 1], got {padding_factor}")
    return max(1, math.floor(target_chunk_size * padding_factor))


def split_by_paragraphs(text: str) -> list[str]:
    """Split on blank lines; paragraphs are stripped and empty ones dropped."""
    return [p.strip() for p in _PARAGRAPH_BREAK_RE.split(text) if p.strip()]


def split_by_sentences(text: str) -> list[str]:
    """Split on sentence-ending punctuation (., !, ?); the punctuation is dropped.

    Not used by the main chunking path, which never splits inside a paragraph.
    """
    return [s.strip() for s in _SENTENCE_END_RE.split(text) if s.strip()]
