"""Forward-only migration runner for the store schema.

Metadata columns are NOT migration-managed: they follow the active metadata
schema and are added by ``ensure_metadata_columns()``.
"""

from __future__ import annotations

import sqlite3

# schema_version is the bootstrap table, created before migrations run.
_CREATE_SCHEMA_VERSION = """
CREATE TABLE IF NOT EXISTS schema_version (
    version     INTEGER NOT NULL,
    applied_at  DATETIME NOT NULL DEFAULT (datetime('now'))
)
"""

_V1_SQL = """
CREATE TABLE IF NOT EXISTS chunks (
    chunk_id              TEXT PRIMARY KEY,
    resource_id           TEXT NOT NULL,
    content               TEXT NOT NULL,
    content_hash          TEXT NOT NULL,
    resource_content_hash TEXT NOT NULL DEFAULT '',
    token_count           INTEGER NOT NULL,
    chunk_index           INTEGER NOT NULL,
    total_chunks          INTEGER NOT NULL,
    heading_path          TEXT,
    heading_level         INTEGER,
    start_line            INTEGER,
    end_line              INTEGER,
    file_path             TEXT NOT NULL DEFAULT '',
    embedding             TEXT NOT NULL,
    embedding_model       TEXT NOT NULL,
    embedded_at           TEXT NOT NULL,
    previous_chunk_id     TEXT,
    next_chunk_id         TEXT
);

CREATE INDEX IF NOT EXISTS idx_chunks_resource_id ON chunks(resource_id);

CREATE TABLE IF NOT EXISTS documents (
    resource_id     TEXT PRIMARY KEY,
    file_path       TEXT NOT NULL DEFAULT '',
    content         TEXT NOT NULL DEFAULT '',
    content_hash    TEXT NOT NULL,
    token_count     INTEGER NOT NULL DEFAULT 0,
    total_chunks    INTEGER NOT NULL DEFAULT 0,
    indexed_at      TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS index_meta (
    key     TEXT PRIMARY KEY,
    value   TEXT NOT NULL
);
"""

# Append-only. Each entry: (version: int, sql: str).
# executescript() issues an implicit COMMIT before running.
MIGRATIONS: list[tuple[int, str]] = [
    (1, _V1_SQL),
]


def current_version(conn: sqlite3.Connection) -> int:
    """Highest applied migration version (0 for a fresh database)."""
    row = conn.execute("SELECT MAX(version) FROM schema_version").fetchone()
    return row[0] if row[0] is not None else 0


def run_migrations(conn: sqlite3.Connection) -> None:
    """Apply all pending migrations in ascending version order.

    Idempotent: safe to call on a database at any version.
    """
    conn.execute(_CREATE_SCHEMA_VERSION)
    conn.commit()

    current = current_version(conn)
    for version, sql in MIGRATIONS:
        if version > current:
            conn.executescript(sql)
            conn.execute(
                "INSERT INTO schema_version (version) VALUES (?)", (version,)
            )
            conn.commit()
