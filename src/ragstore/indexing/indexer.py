"""Indexing coordinator: change detection and delete-then-insert updates.

Per resource:

1. Fingerprint content + declared metadata values.
2. Unchanged fingerprint  -> skip (no chunking, no embedding, no writes).
3. New or changed        -> chunk, embed, then swap the resource's chunks and
   document record in one transaction (old chunks deleted first).

A failure for one resource is recorded in ``IndexResult.errors`` and the batch
continues. Configuration errors (unavailable provider, model mismatch) are
fatal and propagate.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable
from datetime import datetime, timezone

from ragstore.chunking import ChunkingConfig, chunk_resource, enrich_chunks, resource_fingerprint
from ragstore.db.repository import Repository
from ragstore.db.vectors import check_index_model, record_index_model
from ragstore.embedding.base import EmbeddingProvider
from ragstore.errors import ConfigError, EmbeddingError, ResourceNotFoundError
from ragstore.metadata import overlay_chunk_metadata
from ragstore.models import (
    DocumentRecord,
    IndexProgress,
    IndexResult,
    Resource,
    ResourceError,
)

logger = logging.getLogger(__name__)

ResourceLookup = Callable[[str], Resource | None]
ProgressCallback = Callable[[IndexProgress], None]

_INDEXED = "indexed"
_UPDATED = "updated"
_SKIPPED = "skipped"


class Indexer:
    """Drive chunker + embedding provider + repository for batches of resources.

    Args:
        repo: Open repository (its metadata schema drives the overlay).
        embedder: Active embedding provider.
        chunking: Chunk sizing and token counter.
        distance_metric: Recorded in index_meta alongside the model.
        store_documents: Keep full document text in the documents table.
        resource_lookup: Resolves a resource id to its current Resource for
            ``update_resource`` calls that don't pass one.
    """

    def __init__(
        self,
        repo: Repository,
        embedder: EmbeddingProvider,
        chunking: ChunkingConfig,
        *,
        distance_metric: str = "l2",
        store_documents: bool = True,
        resource_lookup: ResourceLookup | None = None,
    ) -> None:
        self._repo = repo
        self._embedder = embedder
        self._chunking = chunking
        self._distance_metric = distance_metric
        self._store_documents = store_documents
        self._resource_lookup = resource_lookup

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def index_resources(
        self,
        resources: Iterable[Resource],
        on_progress: ProgressCallback | None = None,
    ) -> IndexResult:
        """Index a batch, skipping resources whose fingerprint is unchanged.

        Resources are processed sequentially in input order.

        Raises:
            EmbeddingModelMismatchError: The store holds vectors from another model.
            ConfigError: Any other configuration problem surfaced mid-batch.
        """
        return self._run(list(resources), force=False, on_progress=on_progress)

    def update_resource(self, resource_id: str, resource: Resource | None = None) -> IndexResult:
        """Re-index one resource unconditionally (treated as changed).

        Raises:
            ResourceNotFoundError: No *resource* given and the lookup cannot
                resolve *resource_id*.
            ValueError: *resource* has a different id than *resource_id*.
        """
        if resource is None:
            if self._resource_lookup is None:
                raise ResourceNotFoundError(
                    f"Cannot resolve resource '{resource_id}': no resource lookup configured "
                    "and no resource given."
                )
            resource = self._resource_lookup(resource_id)
            if resource is None:
                raise ResourceNotFoundError(f"Resource '{resource_id}' not found")
        elif resource.id != resource_id:
            raise ValueError(
                f"resource id mismatch: update_resource('{resource_id}') got resource "
                f"'{resource.id}'"
            )
        return self._run([resource], force=True)

    def delete_resource(self, resource_id: str) -> int:
        """Remove a resource's chunks and document record. Returns chunks deleted."""
        deleted = self._repo.delete_resource(resource_id)
        logger.info("Deleted resource %s (%d chunks)", resource_id, deleted)
        return deleted

    # ------------------------------------------------------------------
    # Batch loop
    # ------------------------------------------------------------------

    def _run(
        self,
        resources: list[Resource],
        *,
        force: bool,
        on_progress: ProgressCallback | None = None,
    ) -> IndexResult:
        start = time.perf_counter()
        result = IndexResult()
        self._prepare_store()

        total = len(resources)
        for position, resource in enumerate(resources, start=1):
            try:
                status, created, deleted = self._index_one(resource, force=force)
            except ConfigError:
                raise
            except Exception as exc:
                logger.warning("Failed to index resource %s: %s", resource.id, exc)
                result.errors.append(ResourceError(resource_id=resource.id, error=str(exc)))
            else:
                if status == _SKIPPED:
                    result.resources_skipped += 1
                elif status == _UPDATED:
                    result.resources_updated += 1
                else:
                    result.resources_indexed += 1
                result.chunks_created += created
                result.chunks_deleted += deleted

            if on_progress is not None:
                elapsed_ms = (time.perf_counter() - start) * 1000
                on_progress(
                    IndexProgress(
                        current=position,
                        total=total,
                        resource_id=resource.id,
                        resources_indexed=result.resources_indexed,
                        resources_skipped=result.resources_skipped,
                        resources_updated=result.resources_updated,
                        chunks_created=result.chunks_created,
                        elapsed_ms=elapsed_ms,
                        estimated_remaining_ms=elapsed_ms / position * (total - position),
                        errors=list(result.errors),
                    )
                )

        result.duration_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "Indexed %d, updated %d, skipped %d, failed %d resources "
            "(%d chunks created, %d deleted) in %.0f ms",
            result.resources_indexed,
            result.resources_updated,
            result.resources_skipped,
            len(result.errors),
            result.chunks_created,
            result.chunks_deleted,
            result.duration_ms,
        )
        return result

    def _prepare_store(self) -> None:
        """Fail fast on a model mismatch, then stamp the active model."""
        conn = self._repo.connection
        check_index_model(conn, self._embedder.model, self._embedder.dimensions)
        record_index_model(
            conn, self._embedder.model, self._embedder.dimensions, self._distance_metric
        )

    # ------------------------------------------------------------------
    # Single resource
    # ------------------------------------------------------------------

    def _index_one(self, resource: Resource, *, force: bool) -> tuple[str, int, int]:
        """Returns (status, chunks_created, chunks_deleted)."""
        schema = self._repo.schema
        metadata = schema.extract(resource.frontmatter)
        fingerprint = resource_fingerprint(resource.content, metadata)

        existing = self._repo.get_document(resource.id)
        if existing is not None and existing.content_hash == fingerprint and not force:
            logger.debug("Resource %s unchanged, skipping", resource.id)
            return _SKIPPED, 0, 0
        logger.debug(
            "Resource %s %s", resource.id, "changed" if existing is not None else "is new"
        )

        # Chunk and embed before touching the store.
        chunking = chunk_resource(resource, self._chunking)
        chunks = enrich_chunks(
            chunking.chunks,
            resource,
            self._chunking,
            resource_hash=fingerprint,
            embedding_model=self._embedder.model,
        )
        overlay_chunk_metadata(chunks, resource.frontmatter, schema)

        if chunks:
            vectors = self._embedder.embed_batch([c.content for c in chunks])
            if len(vectors) != len(chunks):
                raise EmbeddingError(
                    f"Embedding provider returned {len(vectors)} vectors for {len(chunks)} chunks"
                )
            for chunk, vector in zip(chunks, vectors):
                chunk.embedding = list(vector)

        document = DocumentRecord(
            resource_id=resource.id,
            file_path=resource.file_path,
            content=resource.content if self._store_documents else "",
            content_hash=fingerprint,
            token_count=sum(c.token_count for c in chunks),
            total_chunks=len(chunks),
            indexed_at=datetime.now(timezone.utc),
            metadata=metadata,
        )
        deleted = self._repo.replace_resource(document, chunks)
        return (_UPDATED if existing is not None else _INDEXED), len(chunks), deleted
