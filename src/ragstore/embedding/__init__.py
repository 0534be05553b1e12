"""Embedding providers: interchangeable strategies selected by configuration."""

from __future__ import annotations

from ragstore.config import EmbeddingCfg
from ragstore.embedding.base import EmbeddingProvider
from ragstore.embedding.litellm_provider import LiteLLMEmbeddingProvider
from ragstore.embedding.sentence_transformers_provider import (
    SentenceTransformerEmbeddingProvider,
)
from ragstore.errors import ProviderUnavailableError

__all__ = [
    "EmbeddingProvider",
    "LiteLLMEmbeddingProvider",
    "SentenceTransformerEmbeddingProvider",
    "create_embedding_provider",
]


def create_embedding_provider(cfg: EmbeddingCfg) -> EmbeddingProvider:
    """Build the provider named in ``embedding.provider``.

    Raises:
        ProviderUnavailableError: Unknown provider name, missing optional
            dependency, or undeterminable vector size.
    """
    if cfg.provider == "litellm":
        return LiteLLMEmbeddingProvider(
            model=cfg.model, dimensions=cfg.dimensions, batch_size=cfg.batch_size
        )
    if cfg.provider == "sentence-transformers":
        provider = SentenceTransformerEmbeddingProvider(
            model=cfg.model, batch_size=cfg.batch_size
        )
        if cfg.dimensions is not None and cfg.dimensions != provider.dimensions:
            raise ProviderUnavailableError(
                f"embedding.dimensions is {cfg.dimensions} but model '{cfg.model}' "
                f"produces {provider.dimensions}-dimensional vectors."
            )
        return provider
    raise ProviderUnavailableError(
        f"Unknown embedding provider '{cfg.provider}'. "
        "Choose 'litellm' or 'sentence-transformers'."
    )
