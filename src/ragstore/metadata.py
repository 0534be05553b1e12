"""Metadata schema and frontmatter overlay.

Frontmatter fields declared in the active schema are copied onto every chunk
of a resource at insert time. The store keeps each field as its own top-level
column (never a nested JSON blob): filter pushdown on nested values does not
scale to large chunk counts.

Field types and their column representation:

    string   TEXT     exact match
    integer  INTEGER  exact match
    number   REAL     exact match
    boolean  INTEGER  0 / 1
    list     TEXT     JSON array of strings; a filter value matches one element exactly
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from typing import Any

from ragstore.errors import ConfigError
from ragstore.models import Chunk

logger = logging.getLogger(__name__)

DEFAULT_METADATA_FIELDS: dict[str, str] = {
    "title": "string",
    "type": "string",
    "tags": "list",
}

_SQL_TYPES: dict[str, str] = {
    "string": "TEXT",
    "integer": "INTEGER",
    "number": "REAL",
    "boolean": "INTEGER",
    "list": "TEXT",
}

_FIELD_NAME_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")

# Core columns of the chunks and documents tables; metadata must not shadow them.
RESERVED_NAMES: frozenset[str] = frozenset(
    [
        "rowid",
        "chunk_id",
        "resource_id",
        "content",
        "content_hash",
        "resource_content_hash",
        "token_count",
        "chunk_index",
        "total_chunks",
        "heading_path",
        "heading_level",
        "start_line",
        "end_line",
        "file_path",
        "embedding",
        "embedding_model",
        "embedded_at",
        "previous_chunk_id",
        "next_chunk_id",
        "indexed_at",
        "distance",
        "score",
    ]
)


@dataclass(frozen=True)
class MetadataField:
    name: str
    type: str

    @property
    def sql_type(self) -> str:
        return _SQL_TYPES[self.type]


class MetadataSchema:
    """Ordered set of declared metadata fields.

    Args:
        fields: Mapping of field name → type name. Defaults to
            ``DEFAULT_METADATA_FIELDS`` (title, type, tags).

    Raises:
        ConfigError: For unknown types, names that are not SQL-safe identifiers,
            or names that collide with a core column.
    """

    def __init__(self, fields: Mapping[str, str] | None = None) -> None:
        raw = DEFAULT_METADATA_FIELDS if fields is None else fields
        self._fields: dict[str, MetadataField] = {}
        seen_lower: set[str] = set()
        for name, type_name in raw.items():
            if not _FIELD_NAME_RE.fullmatch(name):
                raise ConfigError(
                    f"Invalid metadata field name '{name}': use letters, digits and underscores."
                )
            if name.lower() in RESERVED_NAMES:
                raise ConfigError(
                    f"Metadata field '{name}' collides with a built-in chunk column."
                )
            # SQLite column names are case-insensitive.
            if name.lower() in seen_lower:
                raise ConfigError(f"Metadata field '{name}' is declared twice (case-insensitive).")
            if type_name not in _SQL_TYPES:
                raise ConfigError(
                    f"Unknown type '{type_name}' for metadata field '{name}'. "
                    f"Choose one of: {', '.join(_SQL_TYPES)}"
                )
            seen_lower.add(name.lower())
            self._fields[name] = MetadataField(name=name, type=type_name)

    def __iter__(self) -> Iterator[MetadataField]:
        return iter(self._fields.values())

    def __contains__(self, name: object) -> bool:
        return name in self._fields

    def __len__(self) -> int:
        return len(self._fields)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MetadataSchema):
            return NotImplemented
        return self._fields == other._fields

    def __repr__(self) -> str:
        inner = ", ".join(f"{f.name}={f.type}" for f in self)
        return f"MetadataSchema({inner})"

    @property
    def names(self) -> list[str]:
        return list(self._fields)

    def get(self, name: str) -> MetadataField | None:
        return self._fields.get(name)

    # ------------------------------------------------------------------
    # Overlay
    # ------------------------------------------------------------------

    def extract(self, frontmatter: Mapping[str, Any] | None) -> dict[str, Any]:
        """Return only the declared fields present in *frontmatter*."""
        if not frontmatter:
            return {}
        return {name: frontmatter[name] for name in self._fields if name in frontmatter}

    # ------------------------------------------------------------------
    # Column conversion
    # ------------------------------------------------------------------

    def to_column(self, name: str, value: Any) -> Any:
        """Convert a Python value to its column representation."""
        if value is None:
            return None
        field_type = self._fields[name].type
        if field_type == "list":
            items = value if isinstance(value, (list, tuple, set)) else [value]
            return json.dumps([str(v) for v in items], ensure_ascii=False)
        if field_type == "boolean":
            return 1 if value else 0
        if field_type == "integer":
            return int(value)
        if field_type == "number":
            return float(value)
        return str(value)

    def from_column(self, name: str, raw: Any) -> Any:
        """Convert a stored column value back to Python."""
        if raw is None:
            return None
        field_type = self._fields[name].type
        if field_type == "list":
            return json.loads(raw)
        if field_type == "boolean":
            return bool(raw)
        return raw

    def to_columns(self, metadata: Mapping[str, Any]) -> dict[str, Any]:
        """Column values for every declared field (None where *metadata* lacks it)."""
        return {name: self.to_column(name, metadata.get(name)) for name in self._fields}


def overlay_chunk_metadata(
    chunks: list[Chunk],
    frontmatter: Mapping[str, Any] | None,
    schema: MetadataSchema,
) -> list[Chunk]:
    """Copy the declared frontmatter fields onto each chunk's ``metadata``.

    Undeclared frontmatter keys are ignored. Returns *chunks* for chaining.
    """
    values = schema.extract(frontmatter)
    if frontmatter:
        ignored = sorted(set(frontmatter) - set(values))
        if ignored:
            logger.debug("Ignoring undeclared frontmatter keys: %s", ", ".join(ignored))
    for chunk in chunks:
        chunk.metadata = dict(values)
    return chunks
