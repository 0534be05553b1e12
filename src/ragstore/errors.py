"""Exception hierarchy for ragstore.

Three families matter to callers:

- ``ConfigError`` and its subclasses are fatal. They are raised immediately
  and never downgraded to a per-resource indexing error.
- ``EmptyIndexError`` is raised when a query hits a store with nothing
  indexed, so "no data yet" is never confused with "no match".
- Everything else raised while indexing one resource is recorded in
  ``IndexResult.errors`` and the batch continues.
"""

from __future__ import annotations


class RagStoreError(Exception):
    """Base class for all ragstore errors."""


class ConfigError(RagStoreError, ValueError):
    """Raised when configuration contains an invalid or forbidden value."""


class ProviderUnavailableError(ConfigError):
    """An embedding provider or token counter cannot be constructed."""


class EmbeddingModelMismatchError(ConfigError):
    """The store was indexed with a different embedding model than the one configured."""

    def __init__(self, indexed_model: str, configured_model: str, detail: str = "") -> None:
        self.indexed_model = indexed_model
        self.configured_model = configured_model
        message = (
            f"Store was indexed with embedding model '{indexed_model}' but the active "
            f"provider uses '{configured_model}'. Vectors from different models are not "
            "comparable: run clear() and re-index every resource with the new model."
        )
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class EmptyIndexError(RagStoreError):
    """Query against a store that has no indexed chunks."""

    def __init__(self, message: str = "No data indexed yet. Run index_resources() first.") -> None:
        super().__init__(message)


class ChunkingError(RagStoreError):
    """A paragraph exceeds the hard model token limit."""


class EmbeddingError(RagStoreError):
    """An embedding call failed or returned an unexpected result."""


class ResourceNotFoundError(RagStoreError, KeyError):
    """A resource id could not be resolved by the upstream resource lookup."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "Resource not found"


class ReadOnlyError(RagStoreError):
    """Admin operation attempted on a provider opened in readonly mode."""


class StoreSchemaError(ConfigError):
    """The store's schema is behind what this provider expects and cannot be upgraded (readonly)."""
