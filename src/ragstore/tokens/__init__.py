"""Token counters: interchangeable strategies selected by configuration."""

from __future__ import annotations

from ragstore.errors import ProviderUnavailableError
from ragstore.tokens.approximate import ApproximateTokenCounter
from ragstore.tokens.base import TokenCounter
from ragstore.tokens.litellm_counter import LiteLLMTokenCounter

__all__ = [
    "ApproximateTokenCounter",
    "LiteLLMTokenCounter",
    "TokenCounter",
    "create_token_counter",
]


def create_token_counter(name: str, model: str | None = None) -> TokenCounter:
    """Build the token counter named in ``chunking.token_counter``.

    Args:
        name: 'approximate' or 'litellm'.
        model: Embedding model whose tokenizer the 'litellm' counter should use.

    Raises:
        ProviderUnavailableError: If *name* is not a known counter.
    """
    if name == "approximate":
        return ApproximateTokenCounter()
    if name == "litellm":
        return LiteLLMTokenCounter(model) if model else LiteLLMTokenCounter()
    raise ProviderUnavailableError(
        f"Unknown token counter '{name}'. Choose 'approximate' or 'litellm'."
    )
