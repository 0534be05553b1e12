"""Schema initialization: migrations plus flattened metadata columns."""

from __future__ import annotations

import logging
import sqlite3

from ragstore.db.migrations import MIGRATIONS, current_version, run_migrations
from ragstore.errors import StoreSchemaError
from ragstore.metadata import MetadataSchema

logger = logging.getLogger(__name__)

# Tables that carry one top-level column per declared metadata field.
METADATA_TABLES: tuple[str, ...] = ("chunks", "documents")


def table_columns(conn: sqlite3.Connection, table: str) -> set[str]:
    """Lower-cased column names of *table*."""
    return {row[1].lower() for row in conn.execute(f"PRAGMA table_info({table})").fetchall()}


def ensure_metadata_columns(conn: sqlite3.Connection, schema: MetadataSchema) -> list[str]:
    """Add a column for every declared field missing from the chunks/documents tables.

    Columns for fields dropped from the schema are left in place (SQLite column
    drops rewrite the table); they are simply no longer read or written.

    Returns:
        Names of the fields whose columns were added.
    """
    added: list[str] = []
    for table in METADATA_TABLES:
        existing = table_columns(conn, table)
        for meta_field in schema:
            if meta_field.name.lower() in existing:
                continue
            # Names are validated identifiers (MetadataSchema); quoting is belt and braces.
            conn.execute(
                f'ALTER TABLE {table} ADD COLUMN "{meta_field.name}" {meta_field.sql_type}'
            )
            if meta_field.name not in added:
                added.append(meta_field.name)
    conn.commit()
    if added:
        logger.debug("Added metadata columns: %s", ", ".join(added))
    return added


def initialize(conn: sqlite3.Connection, schema: MetadataSchema | None = None) -> None:
    """Initialize the database schema (idempotent)."""
    run_migrations(conn)
    ensure_metadata_columns(conn, schema if schema is not None else MetadataSchema())


def verify_schema(conn: sqlite3.Connection, schema: MetadataSchema | None = None) -> None:
    """Check, without writing, that the store is fully migrated and has every declared column.

    Used for readonly connections, which must never alter the store.

    Raises:
        StoreSchemaError: A migration is pending or a metadata column is missing.
    """
    latest = MIGRATIONS[-1][0]
    has_version_table = conn.execute(
        "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = 'schema_version'"
    ).fetchone()
    version = current_version(conn) if has_version_table else 0
    if version < latest:
        raise StoreSchemaError(
            f"Store is at schema version {version}, expected {latest}. "
            "Open it once without readonly=True to migrate it."
        )

    missing: list[str] = []
    for table in METADATA_TABLES:
        existing = table_columns(conn, table)
        for meta_field in schema if schema is not None else MetadataSchema():
            if meta_field.name.lower() not in existing and meta_field.name not in missing:
                missing.append(meta_field.name)
    if missing:
        raise StoreSchemaError(
            f"Store has no column for metadata field(s): {', '.join(missing)}. "
            "Open it once without readonly=True to add them."
        )
