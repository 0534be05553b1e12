"""Query engine (query path)."""

from __future__ import annotations

from ragstore.query.engine import QueryEngine

__all__ = ["QueryEngine"]
