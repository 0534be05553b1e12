"""Repository for all store reads and writes.

Single interface for: chunks (flattened metadata columns), documents,
filtered exact k-NN search and aggregate counts.
"""

from __future__ import annotations

import sqlite3
from datetime import datetime
from typing import Any

from ragstore.db.codec import (
    deserialize_vector,
    from_db_timestamp,
    serialize_vector,
    to_db_timestamp,
)
from ragstore.db.vectors import distance_function
from ragstore.metadata import MetadataSchema
from ragstore.models import Chunk, DocumentRecord

_CHUNK_COLUMNS: tuple[str, ...] = (
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
)

_DOCUMENT_COLUMNS: tuple[str, ...] = (
    "resource_id",
    "file_path",
    "content",
    "content_hash",
    "token_count",
    "total_chunks",
    "indexed_at",
)


class Repository:
    """Data access layer for chunks and documents.

    Wraps an open sqlite3.Connection. The connection is owned by the caller
    and must be closed after use.
    """

    def __init__(self, conn: sqlite3.Connection, schema: MetadataSchema | None = None) -> None:
        """Initialise with an open database connection.

        Args:
            conn: An open sqlite3.Connection with sqlite-vec loaded and schema
                initialised (see ragstore.db.schema.initialize).
            schema: Metadata fields stored as flattened columns.
        """
        self._conn = conn
        self._schema = schema if schema is not None else MetadataSchema()

    @property
    def connection(self) -> sqlite3.Connection:
        return self._conn

    @property
    def schema(self) -> MetadataSchema:
        return self._schema

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    def get_document(self, resource_id: str) -> DocumentRecord | None:
        """Return the document record for *resource_id*, or None if not indexed."""
        row = self._conn.execute(
            "SELECT * FROM documents WHERE resource_id = ?", (resource_id,)
        ).fetchone()
        return self._row_to_document(row) if row else None

    def list_resource_ids(self) -> list[str]:
        return [
            r[0]
            for r in self._conn.execute("SELECT resource_id FROM documents ORDER BY resource_id")
        ]

    # ------------------------------------------------------------------
    # Chunks
    # ------------------------------------------------------------------

    def count_chunks_by_resource(self, resource_id: str) -> int:
        return self._conn.execute(
            "SELECT COUNT(*) FROM chunks WHERE resource_id = ?", (resource_id,)
        ).fetchone()[0]

    def list_chunks_by_resource(self, resource_id: str) -> list[Chunk]:
        """Chunks of one resource in ``chunk_index`` order."""
        rows = self._conn.execute(
            "SELECT * FROM chunks WHERE resource_id = ? ORDER BY chunk_index",
            (resource_id,),
        ).fetchall()
        return [self._row_to_chunk(r) for r in rows]

    def replace_resource(self, document: DocumentRecord, chunks: list[Chunk]) -> int:
        """Atomically swap a resource's chunks and document record.

        Old chunks are deleted before the new ones are inserted, inside one
        transaction: readers see either the old set or the new set.

        Returns:
            Number of chunks deleted.
        """
        with self._conn:
            deleted = self._conn.execute(
                "DELETE FROM chunks WHERE resource_id = ?", (document.resource_id,)
            ).rowcount
            if chunks:
                columns = [*_CHUNK_COLUMNS, *self._schema.names]
                self._conn.executemany(
                    _insert_sql("chunks", columns),
                    [self._chunk_values(c) for c in chunks],
                )
            columns = [*_DOCUMENT_COLUMNS, *self._schema.names]
            self._conn.execute(
                _insert_sql("documents", columns, replace=True),
                self._document_values(document),
            )
        return deleted

    def delete_resource(self, resource_id: str) -> int:
        """Delete a resource's chunks and document record. Returns chunks deleted."""
        with self._conn:
            deleted = self._conn.execute(
                "DELETE FROM chunks WHERE resource_id = ?", (resource_id,)
            ).rowcount
            self._conn.execute("DELETE FROM documents WHERE resource_id = ?", (resource_id,))
        return deleted

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def search(
        self,
        embedding: list[float],
        limit: int,
        *,
        metric: str = "l2",
        where: str = "",
        params: list[Any] | None = None,
    ) -> list[Chunk]:
        """Exact nearest-neighbour search under a filter.

        Returns chunks sorted by ascending distance with ``distance`` set.
        *where* must come from ``build_where_clause``.
        """
        func = distance_function(metric)
        sql = (
            f"SELECT *, {func}(embedding, ?) AS distance FROM chunks {where} "
            "ORDER BY distance, rowid LIMIT ?"
        )
        rows = self._conn.execute(
            sql, [serialize_vector(embedding), *(params or []), limit]
        ).fetchall()
        results: list[Chunk] = []
        for row in rows:
            chunk = self._row_to_chunk(row)
            chunk.distance = float(row["distance"])
            results.append(chunk)
        return results

    def count_matches(self, where: str = "", params: list[Any] | None = None) -> int:
        """Number of chunks satisfying the filter, independent of any limit."""
        return self._conn.execute(
            f"SELECT COUNT(*) FROM chunks {where}", params or []
        ).fetchone()[0]

    # ------------------------------------------------------------------
    # Aggregates
    # ------------------------------------------------------------------

    def count_chunks(self) -> int:
        return self._conn.execute("SELECT COUNT(*) FROM chunks").fetchone()[0]

    def count_resources(self) -> int:
        return self._conn.execute("SELECT COUNT(*) FROM documents").fetchone()[0]

    def last_indexed(self) -> datetime | None:
        """Most recent ``indexed_at`` across documents, or None when empty."""
        row = self._conn.execute("SELECT MAX(indexed_at) FROM documents").fetchone()
        return from_db_timestamp(row[0])

    # ------------------------------------------------------------------
    # Row ↔ model helpers
    # ------------------------------------------------------------------

    def _metadata_from_row(self, row: sqlite3.Row) -> dict[str, Any]:
        keys = set(row.keys())
        metadata: dict[str, Any] = {}
        for name in self._schema.names:
            if name in keys and row[name] is not None:
                metadata[name] = self._schema.from_column(name, row[name])
        return metadata

    def _row_to_chunk(self, row: sqlite3.Row) -> Chunk:
        return Chunk(
            chunk_id=row["chunk_id"],
            resource_id=row["resource_id"],
            content=row["content"],
            content_hash=row["content_hash"],
            token_count=row["token_count"],
            chunk_index=row["chunk_index"],
            total_chunks=row["total_chunks"],
            file_path=row["file_path"],
            resource_content_hash=row["resource_content_hash"],
            heading_path=row["heading_path"],
            heading_level=row["heading_level"],
            start_line=row["start_line"],
            end_line=row["end_line"],
            embedding=deserialize_vector(row["embedding"]),
            embedding_model=row["embedding_model"],
            embedded_at=from_db_timestamp(row["embedded_at"]),
            previous_chunk_id=row["previous_chunk_id"],
            next_chunk_id=row["next_chunk_id"],
            metadata=self._metadata_from_row(row),
        )

    def _row_to_document(self, row: sqlite3.Row) -> DocumentRecord:
        return DocumentRecord(
            resource_id=row["resource_id"],
            file_path=row["file_path"],
            content=row["content"],
            content_hash=row["content_hash"],
            token_count=row["token_count"],
            total_chunks=row["total_chunks"],
            indexed_at=from_db_timestamp(row["indexed_at"]),
            metadata=self._metadata_from_row(row),
        )

    def _chunk_values(self, chunk: Chunk) -> list[Any]:
        if chunk.embedded_at is None:
            raise ValueError(f"chunk {chunk.chunk_id} has no embedded_at timestamp")
        values: list[Any] = [
            chunk.chunk_id,
            chunk.resource_id,
            chunk.content,
            chunk.content_hash,
            chunk.resource_content_hash,
            chunk.token_count,
            chunk.chunk_index,
            chunk.total_chunks,
            chunk.heading_path,
            chunk.heading_level,
            chunk.start_line,
            chunk.end_line,
            chunk.file_path,
            serialize_vector(chunk.embedding),
            chunk.embedding_model,
            to_db_timestamp(chunk.embedded_at),
            chunk.previous_chunk_id,
            chunk.next_chunk_id,
        ]
        values.extend(self._schema.to_columns(chunk.metadata).values())
        return values

    def _document_values(self, document: DocumentRecord) -> list[Any]:
        if document.indexed_at is None:
            raise ValueError(f"document {document.resource_id} has no indexed_at timestamp")
        values: list[Any] = [
            document.resource_id,
            document.file_path,
            document.content,
            document.content_hash,
            document.token_count,
            document.total_chunks,
            to_db_timestamp(document.indexed_at),
        ]
        values.extend(self._schema.to_columns(document.metadata).values())
        return values


def _insert_sql(table: str, columns: list[str], *, replace: bool = False) -> str:
    verb = "INSERT OR REPLACE" if replace else "INSERT"
    quoted = ", ".join(f'"{c}"' for c in columns)
    placeholders = ", ".join("?" * len(columns))
    return f"{verb} INTO {table} ({quoted}) VALUES ({placeholders})"
