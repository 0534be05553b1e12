"""Distance metrics, score normalization and the embedding-model guard."""

from __future__ import annotations

import sqlite3

from ragstore.errors import ConfigError, EmbeddingModelMismatchError

_DISTANCE_FUNCTIONS: dict[str, str] = {
    "l2": "vec_distance_l2",
    "cosine": "vec_distance_cosine",
}


def distance_function(metric: str) -> str:
    """sqlite-vec SQL function name for *metric* ('l2' or 'cosine')."""
    try:
        return _DISTANCE_FUNCTIONS[metric]
    except KeyError:
        raise ConfigError(
            f"Unknown distance metric '{metric}'. Choose one of: {', '.join(_DISTANCE_FUNCTIONS)}"
        ) from None


def distance_to_score(distance: float, metric: str) -> float:
    """Normalize a raw distance (lower = closer) to a similarity in [0, 1].

    Examples:
        distance_to_score(0.0, "l2")     -> 1.0
        distance_to_score(1.0, "l2")     -> 0.5
        distance_to_score(1.0, "cosine") -> 0.5
    """
    if metric == "cosine":
        score = 1.0 - distance / 2.0
    else:
        score = 1.0 / (1.0 + max(distance, 0.0))
    return min(1.0, max(0.0, score))


# ------------------------------------------------------------------
# index_meta
# ------------------------------------------------------------------


def get_index_meta(conn: sqlite3.Connection) -> dict[str, str]:
    return {row["key"]: row["value"] for row in conn.execute("SELECT key, value FROM index_meta")}


def record_index_model(
    conn: sqlite3.Connection, model: str, dimensions: int, metric: str
) -> None:
    """Remember which model/dimensions/metric produced the stored vectors."""
    conn.executemany(
        "INSERT OR REPLACE INTO index_meta (key, value) VALUES (?, ?)",
        [
            ("embedding_model", model),
            ("dimensions", str(dimensions)),
            ("distance_metric", metric),
        ],
    )
    conn.commit()


def check_index_model(conn: sqlite3.Connection, model: str, dimensions: int) -> None:
    """Raise if stored vectors came from a different model or vector size.

    An empty store never conflicts: its recorded model is stale and will be
    overwritten on the next insert.

    Raises:
        EmbeddingModelMismatchError: Stored chunks exist for another model
            or another number of dimensions.
    """
    if conn.execute("SELECT COUNT(*) FROM chunks").fetchone()[0] == 0:
        return
    meta = get_index_meta(conn)
    indexed_model = meta.get("embedding_model")
    if indexed_model is None:
        # Legacy rows without meta: fall back to the model stamped on the chunks.
        row = conn.execute("SELECT embedding_model FROM chunks LIMIT 1").fetchone()
        indexed_model = row[0]
    if indexed_model != model:
        raise EmbeddingModelMismatchError(indexed_model, model)
    indexed_dims = meta.get("dimensions")
    if indexed_dims is not None and int(indexed_dims) != dimensions:
        raise EmbeddingModelMismatchError(
            indexed_model,
            model,
            detail=f"stored vectors have {indexed_dims} dimensions, provider returns {dimensions}",
        )
