"""SQLite connection layer with sqlite-vec extension."""

from __future__ import annotations

import sqlite3
from pathlib import Path

import sqlite_vec


class Database:
    """Vector store database file with sqlite-vec distance functions loaded."""

    def __init__(self, db_path: Path | str) -> None:
        """Store the database path. Call connect() to open the connection.

        Args:
            db_path: Path to the SQLite database file (created if missing).
        """
        self.db_path = Path(db_path)
        self._conn: sqlite3.Connection | None = None

    def connect(self, readonly: bool = False) -> sqlite3.Connection:
        """Open a connection, load sqlite-vec, and return the connection.

        With *readonly* the file must already exist and is opened with
        ``mode=ro``; the journal mode is left as the writer set it.
        """
        if readonly:
            conn = sqlite3.connect(f"{self.db_path.resolve().as_uri()}?mode=ro", uri=True)
        else:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.enable_load_extension(True)
        sqlite_vec.load(conn)
        conn.enable_load_extension(False)
        if not readonly:
            conn.execute("PRAGMA journal_mode = WAL")
        return conn

    def files(self) -> list[Path]:
        """The database file plus its WAL and shared-memory siblings."""
        return [
            self.db_path,
            self.db_path.with_name(self.db_path.name + "-wal"),
            self.db_path.with_name(self.db_path.name + "-shm"),
        ]

    def size_bytes(self) -> int:
        """Total on-disk size of the database files (0 when nothing exists yet)."""
        return sum(p.stat().st_size for p in self.files() if p.exists())

    def remove_files(self) -> None:
        """Delete the database file and its siblings. The caller closes connections first."""
        for path in self.files():
            path.unlink(missing_ok=True)

    def __enter__(self) -> sqlite3.Connection:
        """Open the database and return the connection (context manager support)."""
        self._conn = self.connect()
        return self._conn

    def __exit__(self, *args: object) -> None:
        """Close the connection when leaving the context manager."""
        if self._conn:
            self._conn.close()
            self._conn = None
