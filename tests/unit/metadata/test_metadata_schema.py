"""Tests for MetadataSchema and the frontmatter overlay."""

from __future__ import annotations

import logging

import pytest

from ragstore.errors import ConfigError
from ragstore.metadata import DEFAULT_METADATA_FIELDS, MetadataSchema, overlay_chunk_metadata
from ragstore.models import Chunk


def _chunk(index=0):
    return Chunk(
        chunk_id=f"c{index}",
        resource_id="doc-1",
        content="text",
        content_hash="h",
        token_count=1,
        chunk_index=index,
        total_chunks=2,
    )


# ------------------------------------------------------------------
# Schema validation
# ------------------------------------------------------------------


def test_default_schema():
    schema = MetadataSchema()
    assert schema.names == list(DEFAULT_METADATA_FIELDS)
    assert schema.get("tags").type == "list"
    assert schema.get("tags").sql_type == "TEXT"


@pytest.mark.parametrize("name", ["1abc", "has space", "semi;colon", 'quote"'])
def test_rejects_unsafe_names(name):
    with pytest.raises(ConfigError, match="Invalid metadata field name"):
        MetadataSchema({name: "string"})


@pytest.mark.parametrize("name", ["content", "chunk_id", "Resource_ID", "embedding"])
def test_rejects_core_column_names(name):
    with pytest.raises(ConfigError, match="collides"):
        MetadataSchema({name: "string"})


def test_rejects_unknown_type():
    with pytest.raises(ConfigError, match="Unknown type 'date'"):
        MetadataSchema({"published": "date"})


def test_rejects_case_insensitive_duplicates():
    with pytest.raises(ConfigError, match="declared twice"):
        MetadataSchema({"Title": "string", "title": "string"})


# ------------------------------------------------------------------
# Column conversion
# ------------------------------------------------------------------


def test_column_round_trip_per_type():
    schema = MetadataSchema(
        {"tags": "list", "draft": "boolean", "priority": "integer", "weight": "number", "title": "string"}
    )
    assert schema.to_column("tags", ["a", "b"]) == '["a", "b"]'
    assert schema.from_column("tags", '["a", "b"]') == ["a", "b"]
    assert schema.to_column("tags", "solo") == '["solo"]'
    assert schema.to_column("draft", True) == 1
    assert schema.from_column("draft", 0) is False
    assert schema.to_column("priority", "3") == 3
    assert schema.to_column("weight", 2) == 2.0
    assert schema.to_column("title", 42) == "42"
    assert schema.to_column("title", None) is None


def test_list_column_keeps_commas_and_unicode():
    schema = MetadataSchema({"tags": "list"})
    stored = schema.to_column("tags", ["x,y", "caf\u00e9", 3])
    assert schema.from_column("tags", stored) == ["x,y", "caf\u00e9", "3"]


def test_to_columns_fills_missing_with_none():
    schema = MetadataSchema()
    assert schema.to_columns({"title": "Intro"}) == {"title": "Intro", "type": None, "tags": None}


# ------------------------------------------------------------------
# Overlay
# ------------------------------------------------------------------


def test_overlay_copies_only_declared_fields(caplog):
    chunks = [_chunk(0), _chunk(1)]
    frontmatter = {"title": "Intro", "type": "guide", "author": "someone", "draft": True}

    with caplog.at_level(logging.DEBUG, logger="ragstore.metadata"):
        overlay_chunk_metadata(chunks, frontmatter, MetadataSchema())

    for chunk in chunks:
        assert chunk.metadata == {"title": "Intro", "type": "guide"}
    assert any("author" in r.getMessage() for r in caplog.records)


def test_overlay_gives_each_chunk_its_own_dict():
    chunks = [_chunk(0), _chunk(1)]
    overlay_chunk_metadata(chunks, {"title": "Intro"}, MetadataSchema())
    chunks[0].metadata["title"] = "changed"
    assert chunks[1].metadata["title"] == "Intro"


def test_overlay_without_frontmatter():
    chunks = [_chunk(0)]
    overlay_chunk_metadata(chunks, None, MetadataSchema())
    assert chunks[0].metadata == {}
