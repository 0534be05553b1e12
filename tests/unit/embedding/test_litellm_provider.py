"""Tests for the LiteLLM embedding provider and the provider factory."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from ragstore.config import EmbeddingCfg
from ragstore.embedding import LiteLLMEmbeddingProvider, create_embedding_provider
from ragstore.errors import EmbeddingError, ProviderUnavailableError


def _response(vectors, prompt_tokens=None):
    mock = MagicMock()
    mock.data = [{"embedding": v} for v in vectors]
    if prompt_tokens is None:
        mock.usage = None
    else:
        mock.usage.prompt_tokens = prompt_tokens
    return mock


@pytest.fixture(autouse=True)
def _api_key(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")


# ------------------------------------------------------------------
# Construction
# ------------------------------------------------------------------


def test_known_model_dimensions():
    assert LiteLLMEmbeddingProvider("openai/text-embedding-3-small").dimensions == 1536
    assert LiteLLMEmbeddingProvider("openai/text-embedding-3-large").dimensions == 3072


def test_explicit_dimensions_override():
    assert LiteLLMEmbeddingProvider("openai/text-embedding-3-small", dimensions=256).dimensions == 256


def test_unknown_model_without_dimensions_raises():
    with pytest.raises(ProviderUnavailableError, match="embedding.dimensions"):
        LiteLLMEmbeddingProvider("custom/my-embedder")


# ------------------------------------------------------------------
# embed / embed_batch
# ------------------------------------------------------------------


def test_embed_returns_vector_and_usage():
    provider = LiteLLMEmbeddingProvider("custom/my-embedder", dimensions=3)
    with patch(
        "ragstore.embedding.litellm_provider.litellm.embedding",
        return_value=_response([[0.1, 0.2, 0.3]], prompt_tokens=4),
    ) as mock:
        vector = provider.embed("hello")
    assert vector == [0.1, 0.2, 0.3]
    assert provider.last_tokens_used == 4
    mock.assert_called_once_with(model="custom/my-embedder", input=["hello"])


def test_embed_without_usage_reports_none():
    provider = LiteLLMEmbeddingProvider("custom/my-embedder", dimensions=2)
    with patch(
        "ragstore.embedding.litellm_provider.litellm.embedding",
        return_value=_response([[1.0, 0.0]]),
    ):
        provider.embed("hello")
    assert provider.last_tokens_used is None


def test_embed_batch_splits_by_batch_size():
    provider = LiteLLMEmbeddingProvider("custom/my-embedder", dimensions=2, batch_size=2)
    responses = [
        _response([[1.0, 0.0], [0.0, 1.0]], prompt_tokens=2),
        _response([[0.5, 0.5]], prompt_tokens=1),
    ]
    with patch(
        "ragstore.embedding.litellm_provider.litellm.embedding", side_effect=responses
    ) as mock:
        vectors = provider.embed_batch(["a", "b", "c"])
    assert vectors == [[1.0, 0.0], [0.0, 1.0], [0.5, 0.5]]
    assert mock.call_count == 2
    assert provider.last_tokens_used == 3


def test_embed_batch_empty_makes_no_call():
    provider = LiteLLMEmbeddingProvider("custom/my-embedder", dimensions=2)
    with patch("ragstore.embedding.litellm_provider.litellm.embedding") as mock:
        assert provider.embed_batch([]) == []
    mock.assert_not_called()


def test_shortened_dimensions_forwarded_for_text_embedding_3():
    provider = LiteLLMEmbeddingProvider("openai/text-embedding-3-small", dimensions=2)
    with patch(
        "ragstore.embedding.litellm_provider.litellm.embedding",
        return_value=_response([[1.0, 0.0]]),
    ) as mock:
        provider.embed("hello")
    assert mock.call_args.kwargs["dimensions"] == 2


def test_wrong_dimensions_raises_embedding_error():
    provider = LiteLLMEmbeddingProvider("custom/my-embedder", dimensions=3)
    with patch(
        "ragstore.embedding.litellm_provider.litellm.embedding",
        return_value=_response([[1.0, 0.0]]),
    ):
        with pytest.raises(EmbeddingError, match="expected 3"):
            provider.embed("hello")


def test_api_failure_wrapped_in_embedding_error():
    provider = LiteLLMEmbeddingProvider("custom/my-embedder", dimensions=3)
    with patch(
        "ragstore.embedding.litellm_provider.litellm.embedding",
        side_effect=RuntimeError("rate limited"),
    ):
        with pytest.raises(EmbeddingError, match="rate limited"):
            provider.embed("hello")


def test_missing_api_key_is_provider_unavailable(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY")
    provider = LiteLLMEmbeddingProvider("openai/text-embedding-3-small")
    with patch("ragstore.embedding.litellm_provider.litellm.embedding") as mock:
        with pytest.raises(ProviderUnavailableError, match="OPENAI_API_KEY"):
            provider.embed("hello")
    mock.assert_not_called()


# ------------------------------------------------------------------
# Factory
# ------------------------------------------------------------------


def test_factory_builds_litellm_provider():
    provider = create_embedding_provider(
        EmbeddingCfg(provider="litellm", model="custom/my-embedder", dimensions=8, batch_size=4)
    )
    assert isinstance(provider, LiteLLMEmbeddingProvider)
    assert provider.dimensions == 8
    assert provider.batch_size == 4


def test_factory_unknown_provider_raises():
    with pytest.raises(ProviderUnavailableError, match="Unknown embedding provider"):
        create_embedding_provider(EmbeddingCfg(provider="magic"))


def test_factory_sentence_transformers_missing_dependency(monkeypatch):
    import builtins

    real_import = builtins.__import__

    def _fake_import(name, *args, **kwargs):
        if name == "sentence_transformers":
            raise ImportError("no module")
        return real_import(name, *args, **kwargs)

    monkeypatch.setattr(builtins, "__import__", _fake_import)
    with pytest.raises(ProviderUnavailableError, match="ragstore\\[local\\]"):
        create_embedding_provider(EmbeddingCfg(provider="sentence-transformers", model="m"))
