"""Column encodings for vectors and timestamps."""

from __future__ import annotations

import json
from datetime import datetime, timezone

# Fixed-width so that lexicographic order equals chronological order.
_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


def serialize_vector(vector: list[float]) -> str:
    """JSON text; sqlite-vec distance functions accept it directly."""
    return json.dumps([float(v) for v in vector])


def deserialize_vector(raw: str | bytes | None) -> list[float]:
    if raw is None:
        return []
    return [float(v) for v in json.loads(raw)]


def to_db_timestamp(value: datetime) -> str:
    """UTC timestamp text. Naive datetimes are taken to be UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime(_TIMESTAMP_FORMAT)


def from_db_timestamp(raw: str | None) -> datetime | None:
    if raw is None:
        return None
    return datetime.strptime(raw, _TIMESTAMP_FORMAT).replace(tzinfo=timezone.utc)
