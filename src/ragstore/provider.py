"""RAGProvider: the admin and query surfaces over one store.

Usage::

    with RAGProvider.from_config(resource_lookup=my_lookup) as rag:
        rag.index_resources(resources)
        result = rag.query(RAGQuery(text="how do I configure logging?"))
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterable
from pathlib import Path

from ragstore.chunking import ChunkingConfig
from ragstore.config import RagStoreConfig, load_config
from ragstore.db.connection import Database
from ragstore.db.repository import Repository
from ragstore.db.schema import initialize, verify_schema
from ragstore.embedding import EmbeddingProvider, create_embedding_provider
from ragstore.errors import EmptyIndexError, ReadOnlyError
from ragstore.indexing import Indexer, ProgressCallback, ResourceLookup
from ragstore.metadata import MetadataSchema
from ragstore.models import DocumentRecord, IndexResult, RAGQuery, RAGResult, RAGStats, Resource
from ragstore.query import QueryEngine
from ragstore.tokens import ApproximateTokenCounter, create_token_counter

logger = logging.getLogger(__name__)


class RAGProvider:
    """Indexes resources into, and answers queries from, one SQLite store.

    The connection opens lazily on first use and is reopened after ``close()``.

    Args:
        db_path: Store location (created on first write).
        embedder: Embedding provider used for both indexing and queries.
        chunking: Chunk sizing. Defaults to 512 tokens, padding 0.9, model
            limit 8191, approximate token counter.
        schema: Metadata fields overlaid onto chunks as flattened columns.
        distance_metric: 'l2' or 'cosine'.
        store_documents: Keep full document text in the documents table.
        readonly: Reject admin operations with ReadOnlyError and open the store
            with ``mode=ro``; the schema is verified, never migrated.
        resource_lookup: Resolves ids for ``update_resource(resource_id)``.
    """

    def __init__(
        self,
        db_path: Path | str,
        embedder: EmbeddingProvider,
        *,
        chunking: ChunkingConfig | None = None,
        schema: MetadataSchema | None = None,
        distance_metric: str = "l2",
        store_documents: bool = True,
        readonly: bool = False,
        resource_lookup: ResourceLookup | None = None,
    ) -> None:
        self._db = Database(db_path)
        self._embedder = embedder
        self._chunking = chunking or ChunkingConfig(
            target_chunk_size=512,
            model_token_limit=8_191,
            padding_factor=0.9,
            token_counter=ApproximateTokenCounter(),
        )
        self._schema = schema if schema is not None else MetadataSchema()
        self._distance_metric = distance_metric
        self._store_documents = store_documents
        self._readonly = readonly
        self._resource_lookup = resource_lookup
        self._conn: sqlite3.Connection | None = None

    @classmethod
    def from_config(
        cls,
        cfg: RagStoreConfig | None = None,
        *,
        project_dir: Path | None = None,
        readonly: bool = False,
        resource_lookup: ResourceLookup | None = None,
    ) -> RAGProvider:
        """Build a provider from configuration (loaded with load_config() if *cfg* is None).

        A relative ``store.path`` is resolved against *project_dir* (default CWD).

        Raises:
            ConfigError: Invalid configuration or unavailable provider.
        """
        if cfg is None:
            cfg = load_config(project_dir)
        db_path = Path(cfg.store.path)
        if not db_path.is_absolute():
            db_path = (project_dir or Path.cwd()) / db_path
        chunking = ChunkingConfig(
            target_chunk_size=cfg.chunking.target_size,
            model_token_limit=cfg.chunking.model_token_limit,
            padding_factor=cfg.chunking.padding_factor,
            token_counter=create_token_counter(cfg.chunking.token_counter, cfg.embedding.model),
        )
        return cls(
            db_path,
            create_embedding_provider(cfg.embedding),
            chunking=chunking,
            schema=MetadataSchema(cfg.metadata.fields),
            distance_metric=cfg.store.distance_metric,
            store_documents=cfg.store.store_documents,
            readonly=readonly,
            resource_lookup=resource_lookup,
        )

    @property
    def db_path(self) -> Path:
        return self._db.db_path

    @property
    def readonly(self) -> bool:
        return self._readonly

    # ------------------------------------------------------------------
    # Query surface
    # ------------------------------------------------------------------

    def query(self, query: RAGQuery) -> RAGResult:
        """Nearest-neighbour search. See QueryEngine.query.

        Raises:
            EmptyIndexError: Nothing indexed yet (including a missing store file).
        """
        if not self._store_exists():
            raise EmptyIndexError()
        return self._query_engine().query(query)

    def get_stats(self) -> RAGStats:
        if not self._store_exists():
            return RAGStats(
                total_chunks=0,
                total_resources=0,
                db_size_bytes=0,
                embedding_model=self._embedder.model,
            )
        return self._query_engine().get_stats(db_size_bytes=self._db.size_bytes())

    def get_document(self, resource_id: str) -> DocumentRecord | None:
        """Stored whole document for *resource_id*, or None."""
        if not self._store_exists():
            return None
        return self._repository().get_document(resource_id)

    # ------------------------------------------------------------------
    # Admin surface
    # ------------------------------------------------------------------

    def index_resources(
        self,
        resources: Iterable[Resource],
        on_progress: ProgressCallback | None = None,
    ) -> IndexResult:
        self._check_writable("index_resources")
        return self._indexer().index_resources(resources, on_progress=on_progress)

    def update_resource(self, resource_id: str, resource: Resource | None = None) -> IndexResult:
        self._check_writable("update_resource")
        return self._indexer().update_resource(resource_id, resource)

    def delete_resource(self, resource_id: str) -> int:
        self._check_writable("delete_resource")
        return self._indexer().delete_resource(resource_id)

    def clear(self) -> None:
        """Delete the database files and recreate an empty, initialized store at the same path."""
        self._check_writable("clear")
        self.close()
        self._db.remove_files()
        self._connection()
        logger.info("Cleared store at %s", self._db.db_path)

    def close(self) -> None:
        """Release the database connection. Later calls reopen it."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> RAGProvider:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _check_writable(self, operation: str) -> None:
        if self._readonly:
            raise ReadOnlyError(f"{operation}() is not allowed on a readonly provider")

    def _store_exists(self) -> bool:
        return self._conn is not None or self._db.db_path.exists()

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            conn = self._db.connect(readonly=self._readonly)
            try:
                if self._readonly:
                    verify_schema(conn, self._schema)
                else:
                    initialize(conn, self._schema)
            except Exception:
                conn.close()
                raise
            self._conn = conn
        return self._conn

    def _repository(self) -> Repository:
        return Repository(self._connection(), self._schema)

    def _indexer(self) -> Indexer:
        return Indexer(
            self._repository(),
            self._embedder,
            self._chunking,
            distance_metric=self._distance_metric,
            store_documents=self._store_documents,
            resource_lookup=self._resource_lookup,
        )

    def _query_engine(self) -> QueryEngine:
        return QueryEngine(
            self._repository(), self._embedder, distance_metric=self._distance_metric
        )
