"""Token counter interface."""

from __future__ import annotations

from abc import ABC, abstractmethod


class TokenCounter(ABC):
    """Counts tokens in a text span.

    Implementations differ only in speed and accuracy. ``error_margin`` is the
    expected relative error against the embedding model's real tokenizer;
    callers absorb it with a padding factor (``target * padding_factor``).
    """

    name: str = ""
    error_margin: float = 0.0

    @abstractmethod
    def count(self, text: str) -> int:
        """Return the number of tokens in *text* (0 for an empty string)."""

    def count_batch(self, texts: list[str]) -> list[int]:
        """Count tokens for each of *texts*, preserving order."""
        return [self.count(t) for t in texts]
