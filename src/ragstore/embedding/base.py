"""Embedding provider interface."""

from __future__ import annotations

from abc import ABC, abstractmethod


class EmbeddingProvider(ABC):
    """Turns text into fixed-length vectors.

    The indexer and query engine depend only on this interface; which
    provider is active is a configuration choice.

    Attributes:
        name: Short provider identifier ('litellm', 'sentence-transformers').
        model: Model identifier recorded on every stored chunk.
        dimensions: Length of every returned vector.
        last_tokens_used: Prompt tokens reported by the most recent call, or
            None if the provider does not report usage.
    """

    name: str = ""
    model: str = ""
    dimensions: int = 0
    last_tokens_used: int | None = None

    @abstractmethod
    def embed(self, text: str) -> list[float]:
        """Embed a single text."""

    def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Embed several texts, preserving order.

        Providers without native batching inherit this sequential fallback.
        """
        return [self.embed(t) for t in texts]
