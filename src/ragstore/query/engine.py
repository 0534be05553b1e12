"""Query engine: embed, filter, search, score, rank."""

from __future__ import annotations

import logging
import time

from ragstore.db.filters import build_where_clause
from ragstore.db.repository import Repository
from ragstore.db.vectors import check_index_model, distance_to_score, get_index_meta
from ragstore.embedding.base import EmbeddingProvider
from ragstore.errors import EmptyIndexError
from ragstore.models import EmbeddingUsage, RAGQuery, RAGResult, RAGStats, SearchStats

logger = logging.getLogger(__name__)


class QueryEngine:
    """Read path over an indexed store.

    Args:
        repo: Open repository.
        embedder: Must be the provider (same model) the store was indexed with.
        distance_metric: 'l2' or 'cosine'.
    """

    def __init__(
        self,
        repo: Repository,
        embedder: EmbeddingProvider,
        *,
        distance_metric: str = "l2",
    ) -> None:
        self._repo = repo
        self._embedder = embedder
        self._distance_metric = distance_metric

    def query(self, query: RAGQuery) -> RAGResult:
        """Return up to ``query.limit`` chunks sorted by descending score.

        ``stats.total_matches`` counts every chunk satisfying the filters,
        before the limit is applied.

        Raises:
            EmptyIndexError: Nothing has been indexed yet.
            EmbeddingModelMismatchError: The store was indexed with another model.
        """
        start = time.perf_counter()
        if self._repo.count_chunks() == 0:
            raise EmptyIndexError()
        check_index_model(self._repo.connection, self._embedder.model, self._embedder.dimensions)

        vector = self._embedder.embed(query.text)
        tokens_used = self._embedder.last_tokens_used

        where, params = build_where_clause(query.filters, self._repo.schema)
        total_matches = self._repo.count_matches(where, params)
        hits = self._repo.search(
            vector, query.limit, metric=self._distance_metric, where=where, params=params
        )
        for hit in hits:
            hit.score = distance_to_score(hit.distance, self._distance_metric)
        # sorted() is stable: equal scores keep the store's order.
        ranked = sorted(hits, key=lambda c: c.score, reverse=True)[: query.limit]

        duration_ms = (time.perf_counter() - start) * 1000
        logger.debug(
            "Query returned %d of %d matches in %.1f ms", len(ranked), total_matches, duration_ms
        )
        return RAGResult(
            chunks=ranked,
            stats=SearchStats(
                total_matches=total_matches,
                search_duration_ms=duration_ms,
                embedding=EmbeddingUsage(model=self._embedder.model, tokens_used=tokens_used),
            ),
        )

    def get_stats(self, db_size_bytes: int = 0) -> RAGStats:
        """Aggregate counts without running a content query."""
        total_chunks = self._repo.count_chunks()
        model = self._embedder.model
        if total_chunks:
            model = get_index_meta(self._repo.connection).get("embedding_model", model)
        return RAGStats(
            total_chunks=total_chunks,
            total_resources=self._repo.count_resources(),
            db_size_bytes=db_size_bytes,
            embedding_model=model,
            last_indexed=self._repo.last_indexed(),
        )
