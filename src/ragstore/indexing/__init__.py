"""Indexing coordinator (admin path)."""

from __future__ import annotations

from ragstore.indexing.indexer import Indexer, ProgressCallback, ResourceLookup

__all__ = ["Indexer", "ProgressCallback", "ResourceLookup"]
