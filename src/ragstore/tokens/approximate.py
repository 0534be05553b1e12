"""Byte-length token estimate, no tokenizer needed."""

from __future__ import annotations

from ragstore.tokens.base import TokenCounter

_BYTES_PER_TOKEN = 4


class ApproximateTokenCounter(TokenCounter):
    """Approximate token count: 4 UTF-8 bytes ≈ 1 token.

    Consistent with GPT tokeniser averages for English prose and technical
    documentation. Multi-byte scripts (CJK, emoji) are over-counted rather
    than under-counted, which errs on the safe side for budgeting. Expect
    roughly ±10 % on English text; use a padding factor of 0.9 or lower.
    """

    name = "approximate"
    error_margin = 0.10

    def count(self, text: str) -> int:
        if not text:
            return 0
        n_bytes = len(text.encode("utf-8"))
        return max(1, -(-n_bytes // _BYTES_PER_TOKEN))
