"""Tests for the query engine."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from conftest import HashingEmbeddingProvider, make_resource
from ragstore.db.repository import Repository
from ragstore.errors import EmbeddingModelMismatchError, EmptyIndexError
from ragstore.indexing import Indexer
from ragstore.metadata import MetadataSchema
from ragstore.models import DateRange, QueryFilters, RAGQuery
from ragstore.query import QueryEngine


@pytest.fixture
def repo(tmp_db):
    return Repository(tmp_db, MetadataSchema())


@pytest.fixture
def engine(repo, embedder):
    return QueryEngine(repo, embedder)


@pytest.fixture
def indexed(repo, embedder, chunking_config):
    Indexer(repo, embedder, chunking_config).index_resources(
        [
            make_resource("install", "How to install the package with pip", type="guide"),
            make_resource("config", "Configure logging and the database path", type="guide"),
            make_resource("api", "Reference for the query API and filters", type="reference"),
            make_resource("faq", "Frequently asked questions about install errors", type="faq"),
        ]
    )


# ------------------------------------------------------------------
# Empty store
# ------------------------------------------------------------------


def test_query_on_empty_store_raises_empty_index(engine):
    with pytest.raises(EmptyIndexError, match="No data indexed yet"):
        engine.query(RAGQuery(text="anything"))


def test_stats_on_empty_store(engine, embedder):
    stats = engine.get_stats()
    assert stats.is_empty
    assert stats.total_chunks == 0
    assert stats.last_indexed is None
    assert stats.embedding_model == embedder.model


# ------------------------------------------------------------------
# Ranking
# ------------------------------------------------------------------


def test_best_match_first(engine, indexed):
    result = engine.query(RAGQuery(text="install the package with pip"))
    assert result.chunks[0].resource_id == "install"


def test_scores_non_increasing_and_bounded(engine, indexed):
    result = engine.query(RAGQuery(text="install errors"))
    scores = [c.score for c in result.chunks]
    assert scores == sorted(scores, reverse=True)
    assert all(0.0 <= s <= 1.0 for s in scores)
    assert all(c.distance is not None for c in result.chunks)


def test_limit_truncates_but_total_matches_counts_all(engine, indexed):
    result = engine.query(RAGQuery(text="install", limit=2))
    assert len(result.chunks) == 2
    assert result.stats.total_matches == 4


def test_cosine_metric(repo, embedder, indexed):
    engine = QueryEngine(repo, embedder, distance_metric="cosine")
    result = engine.query(RAGQuery(text="configure logging database path"))
    assert result.chunks[0].resource_id == "config"
    assert result.chunks[0].score == pytest.approx(1.0 - result.chunks[0].distance / 2)


def test_stats_report_embedding_usage(engine, indexed, embedder):
    result = engine.query(RAGQuery(text="install"))
    assert result.stats.embedding.model == embedder.model
    assert result.stats.embedding.tokens_used is None
    assert result.stats.search_duration_ms >= 0


# ------------------------------------------------------------------
# Filters
# ------------------------------------------------------------------


def test_metadata_filter(engine, indexed):
    result = engine.query(
        RAGQuery(text="install", filters=QueryFilters(metadata={"type": "guide"}))
    )
    assert {c.resource_id for c in result.chunks} == {"install", "config"}
    assert all(c.metadata["type"] == "guide" for c in result.chunks)
    assert result.stats.total_matches == 2


def test_resource_id_filter(engine, indexed):
    result = engine.query(RAGQuery(text="install", filters=QueryFilters(resource_id="api")))
    assert [c.resource_id for c in result.chunks] == ["api"]


def test_resource_id_list_filter(engine, indexed):
    result = engine.query(
        RAGQuery(text="install", filters=QueryFilters(resource_id=["api", "faq"]))
    )
    assert {c.resource_id for c in result.chunks} == {"api", "faq"}


def test_filter_matching_nothing_is_not_empty_index(engine, indexed):
    result = engine.query(
        RAGQuery(text="install", filters=QueryFilters(metadata={"type": "tutorial"}))
    )
    assert result.chunks == []
    assert result.stats.total_matches == 0


@pytest.fixture
def tagged(repo, embedder, chunking_config):
    Indexer(repo, embedder, chunking_config).index_resources(
        [
            make_resource("abc", "Notes tagged abc", tags=["abc"]),
            make_resource("pair", "Notes with a comma tag", tags=["x,y", "Python"]),
        ]
    )


def test_list_filter_matches_whole_element(engine, tagged):
    result = engine.query(RAGQuery(text="notes", filters=QueryFilters(metadata={"tags": "abc"})))
    assert [c.resource_id for c in result.chunks] == ["abc"]
    assert result.chunks[0].metadata["tags"] == ["abc"]


@pytest.mark.parametrize("value", ["a_c", "ABC", "%", "ab", "x", "y", "python"])
def test_list_filter_is_exact_and_case_sensitive(engine, tagged, value):
    result = engine.query(RAGQuery(text="notes", filters=QueryFilters(metadata={"tags": value})))
    assert result.chunks == []
    assert result.stats.total_matches == 0


def test_list_element_with_comma_survives_and_matches(engine, tagged):
    result = engine.query(RAGQuery(text="notes", filters=QueryFilters(metadata={"tags": "x,y"})))
    assert [c.resource_id for c in result.chunks] == ["pair"]
    assert result.chunks[0].metadata["tags"] == ["x,y", "Python"]


def test_date_range_filter(engine, indexed):
    now = datetime.now(timezone.utc)
    recent = DateRange(start=now - timedelta(hours=1), end=now + timedelta(hours=1))
    old = DateRange(start=now - timedelta(days=30), end=now - timedelta(days=29))

    assert len(engine.query(RAGQuery(text="x", filters=QueryFilters(date_range=recent))).chunks) == 4
    assert engine.query(RAGQuery(text="x", filters=QueryFilters(date_range=old))).chunks == []


# ------------------------------------------------------------------
# Model guard
# ------------------------------------------------------------------


def test_query_with_other_model_is_fatal(repo, indexed):
    engine = QueryEngine(repo, HashingEmbeddingProvider(model="test/other"))
    with pytest.raises(EmbeddingModelMismatchError):
        engine.query(RAGQuery(text="install"))


def test_query_with_other_dimensions_is_fatal(repo, indexed, embedder):
    engine = QueryEngine(repo, HashingEmbeddingProvider(model=embedder.model, dimensions=8))
    with pytest.raises(EmbeddingModelMismatchError, match="dimensions"):
        engine.query(RAGQuery(text="install"))


# ------------------------------------------------------------------
# Stats
# ------------------------------------------------------------------


def test_stats_after_indexing(engine, indexed, embedder):
    stats = engine.get_stats(db_size_bytes=1234)
    assert not stats.is_empty
    assert stats.total_chunks == 4
    assert stats.total_resources == 4
    assert stats.db_size_bytes == 1234
    assert stats.embedding_model == embedder.model
    assert stats.last_indexed is not None


# ------------------------------------------------------------------
# RAGQuery validation
# ------------------------------------------------------------------


@pytest.mark.parametrize("kwargs", [{"text": ""}, {"text": "   "}, {"text": "q", "limit": 0}])
def test_invalid_query(kwargs):
    with pytest.raises(ValueError):
        RAGQuery(**kwargs)


def test_default_limit():
    assert RAGQuery(text="q").limit == 10
