"""Vector store adapter: SQLite + sqlite-vec."""

from __future__ import annotations

from ragstore.db.connection import Database
from ragstore.db.filters import build_where_clause
from ragstore.db.repository import Repository
from ragstore.db.schema import ensure_metadata_columns, initialize, verify_schema
from ragstore.db.vectors import (
    check_index_model,
    distance_function,
    distance_to_score,
    get_index_meta,
    record_index_model,
)

__all__ = [
    "Database",
    "Repository",
    "build_where_clause",
    "check_index_model",
    "distance_function",
    "distance_to_score",
    "ensure_metadata_columns",
    "get_index_meta",
    "initialize",
    "record_index_model",
    "verify_schema",
]
