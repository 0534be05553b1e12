"""Tests for token counters."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from ragstore.errors import ProviderUnavailableError
from ragstore.tokens import (
    ApproximateTokenCounter,
    LiteLLMTokenCounter,
    create_token_counter,
)


# ------------------------------------------------------------------
# ApproximateTokenCounter
# ------------------------------------------------------------------


def test_approximate_empty_is_zero():
    assert ApproximateTokenCounter().count("") == 0


@pytest.mark.parametrize(
    "text, expected",
    [
        ("a", 1),
        ("abcd", 1),
        ("abcde", 2),
        ("x" * 400, 100),
    ],
)
def test_approximate_rounds_up_bytes_over_four(text, expected):
    assert ApproximateTokenCounter().count(text) == expected


def test_approximate_counts_utf8_bytes_not_characters():
    # "é" is 2 bytes, "中" is 3 bytes.
    assert ApproximateTokenCounter().count("éé") == 1
    assert ApproximateTokenCounter().count("中中中") == 3


def test_count_batch_preserves_order():
    counter = ApproximateTokenCounter()
    assert counter.count_batch(["abcd", "", "x" * 9]) == [1, 0, 3]


def test_approximate_declares_error_margin():
    assert ApproximateTokenCounter().error_margin == pytest.approx(0.10)


# ------------------------------------------------------------------
# LiteLLMTokenCounter
# ------------------------------------------------------------------


def test_litellm_counter_delegates_to_litellm():
    counter = LiteLLMTokenCounter("openai/text-embedding-3-large")
    with patch("ragstore.tokens.litellm_counter.litellm.token_counter", return_value=7) as mock:
        assert counter.count("some text") == 7
    mock.assert_called_once_with(model="openai/text-embedding-3-large", text="some text")


def test_litellm_counter_empty_skips_tokenizer():
    with patch("ragstore.tokens.litellm_counter.litellm.token_counter") as mock:
        assert LiteLLMTokenCounter().count("") == 0
    mock.assert_not_called()


# ------------------------------------------------------------------
# Factory
# ------------------------------------------------------------------


def test_factory_approximate():
    assert isinstance(create_token_counter("approximate"), ApproximateTokenCounter)


def test_factory_litellm_uses_model():
    counter = create_token_counter("litellm", "openai/text-embedding-3-large")
    assert isinstance(counter, LiteLLMTokenCounter)
    assert counter.model == "openai/text-embedding-3-large"


def test_factory_unknown_raises():
    with pytest.raises(ProviderUnavailableError, match="Unknown token counter"):
        create_token_counter("tiktoken-ish")
