"""Local embeddings with sentence-transformers (``pip install ragstore[local]``)."""

from __future__ import annotations

import logging

from ragstore.embedding.base import EmbeddingProvider
from ragstore.errors import ProviderUnavailableError

logger = logging.getLogger(__name__)


class SentenceTransformerEmbeddingProvider(EmbeddingProvider):
    """Runs a sentence-transformers model in-process. No API key, no network after download.

    Vectors are L2-normalised, so l2 and cosine rankings agree.

    Args:
        model: Hugging Face model name (default: all-MiniLM-L6-v2, 384 dimensions).
        device: 'cpu', 'cuda', or 'mps'.
        batch_size: Texts per forward pass.
    """

    name = "sentence-transformers"

    def __init__(
        self,
        model: str = "all-MiniLM-L6-v2",
        device: str = "cpu",
        batch_size: int = 64,
    ) -> None:
        try:
            from sentence_transformers import SentenceTransformer
        except ImportError as exc:
            raise ProviderUnavailableError(
                "sentence-transformers is not installed. Install with: pip install 'ragstore[local]'"
            ) from exc

        self.model = model
        self.batch_size = batch_size
        self._encoder = SentenceTransformer(model, device=device)
        self.dimensions = int(self._encoder.get_sentence_embedding_dimension())
        logger.debug("Loaded %s (%d dimensions) on %s", model, self.dimensions, device)

    def embed(self, text: str) -> list[float]:
        return self.embed_batch([text])[0]

    def embed_batch(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        vectors = self._encoder.encode(
            texts,
            batch_size=self.batch_size,
            normalize_embeddings=True,
            show_progress_bar=False,
        )
        return [[float(x) for x in row] for row in vectors]
