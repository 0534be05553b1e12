"""Remote embeddings through LiteLLM (any provider/model LiteLLM supports)."""

from __future__ import annotations

import logging
import os

import litellm

from ragstore.embedding.base import EmbeddingProvider
from ragstore.errors import EmbeddingError, ProviderUnavailableError

logger = logging.getLogger(__name__)

# Keep LiteLLM's own verbose logging off unless the application enables it.
litellm.suppress_debug_info = True

_KNOWN_DIMENSIONS: dict[str, int] = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "text-embedding-ada-002": 1536,
    "embed-english-v3.0": 1024,
    "embed-multilingual-v3.0": 1024,
    "text-embedding-004": 768,
}

_ENV_KEYS: dict[str, str] = {
    "openai": "OPENAI_API_KEY",
    "cohere": "COHERE_API_KEY",
    "gemini": "GEMINI_API_KEY",
    "mistral": "MISTRAL_API_KEY",
    "voyage": "VOYAGE_API_KEY",
    "azure": "AZURE_API_KEY",
}


class LiteLLMEmbeddingProvider(EmbeddingProvider):
    """Embed text with ``litellm.embedding()``.

    Batches are sent natively, split into requests of at most *batch_size*
    texts.

    Args:
        model: LiteLLM model string in provider/model format.
        dimensions: Vector size. Required for models not in the known table;
            for text-embedding-3-* models a smaller value is forwarded to the
            API to shorten the vectors.
        batch_size: Maximum texts per request.

    Raises:
        ProviderUnavailableError: If the dimensions cannot be determined.
    """

    name = "litellm"

    def __init__(
        self,
        model: str = "openai/text-embedding-3-small",
        dimensions: int | None = None,
        batch_size: int = 64,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        self.model = model
        self.batch_size = batch_size
        self._request_dimensions = dimensions
        known = _KNOWN_DIMENSIONS.get(model.rsplit("/", 1)[-1])
        resolved = dimensions or known
        if resolved is None:
            raise ProviderUnavailableError(
                f"Unknown vector size for embedding model '{model}'. "
                "Set embedding.dimensions in ragstore.yaml."
            )
        self.dimensions = resolved
        self.last_tokens_used = None

    def embed(self, text: str) -> list[float]:
        return self._request([text])[0]

    def embed_batch(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        vectors: list[list[float]] = []
        tokens = 0
        for start in range(0, len(texts), self.batch_size):
            vectors.extend(self._request(texts[start : start + self.batch_size]))
            tokens += self.last_tokens_used or 0
        self.last_tokens_used = tokens or None
        return vectors

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _request(self, texts: list[str]) -> list[list[float]]:
        self._check_api_key()
        kwargs = {}
        if self._request_dimensions and "text-embedding-3" in self.model:
            kwargs["dimensions"] = self._request_dimensions
        try:
            response = litellm.embedding(model=self.model, input=texts, **kwargs)
        except Exception as exc:
            raise EmbeddingError(f"Embedding request to '{self.model}' failed: {exc}") from exc

        data = response.data
        if len(data) != len(texts):
            raise EmbeddingError(
                f"Embedding model '{self.model}' returned {len(data)} vectors for {len(texts)} inputs"
            )
        vectors = [list(item["embedding"]) for item in data]
        for vector in vectors:
            if len(vector) != self.dimensions:
                raise EmbeddingError(
                    f"Embedding model '{self.model}' returned {len(vector)} dimensions, "
                    f"expected {self.dimensions}"
                )

        usage = getattr(response, "usage", None)
        self.last_tokens_used = getattr(usage, "prompt_tokens", None) if usage else None
        logger.debug("Embedded %d text(s) with %s", len(texts), self.model)
        return vectors

    def _check_api_key(self) -> None:
        """Raise ProviderUnavailableError if no API key is available for the model's provider."""
        provider = self.model.split("/")[0].lower() if "/" in self.model else ""
        required_env = _ENV_KEYS.get(provider)
        if required_env and not os.environ.get(required_env):
            raise ProviderUnavailableError(
                f"No API key found for provider '{provider}'. "
                f"Set the {required_env} environment variable."
            )
