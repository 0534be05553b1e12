"""Translate QueryFilters into a parameterized SQL WHERE clause.

Every value is a bound parameter; only column names from the validated
metadata schema are interpolated.
"""

from __future__ import annotations

import logging
from typing import Any

from ragstore.db.codec import to_db_timestamp
from ragstore.metadata import MetadataSchema
from ragstore.models import QueryFilters

logger = logging.getLogger(__name__)


def build_where_clause(
    filters: QueryFilters | None, schema: MetadataSchema
) -> tuple[str, list[Any]]:
    """Return ``(where_sql, params)``; ``where_sql`` is '' when nothing filters.

    Rules:
        resource_id   str -> equality; list -> membership (an empty list matches nothing)
        date_range    inclusive range on ``embedded_at``
        metadata      per declared field: equality (booleans as 0/1); a list
                      field matches when the value equals one of its elements. A
                      sequence value on a scalar field means "any of". Keys not
                      in the schema are ignored.
    """
    if filters is None:
        return "", []

    conditions: list[str] = []
    params: list[Any] = []

    if filters.resource_id is not None:
        if isinstance(filters.resource_id, str):
            conditions.append("resource_id = ?")
            params.append(filters.resource_id)
        else:
            ids = list(filters.resource_id)
            if not ids:
                conditions.append("1 = 0")
            else:
                conditions.append(f"resource_id IN ({', '.join('?' * len(ids))})")
                params.extend(ids)

    if filters.date_range is not None:
        conditions.append("embedded_at BETWEEN ? AND ?")
        params.append(to_db_timestamp(filters.date_range.start))
        params.append(to_db_timestamp(filters.date_range.end))

    for name, value in (filters.metadata or {}).items():
        meta_field = schema.get(name)
        if meta_field is None:
            logger.debug("Ignoring filter on undeclared metadata field '%s'", name)
            continue
        column = f'"{meta_field.name}"'
        if value is None:
            conditions.append(f"{column} IS NULL")
        elif meta_field.type == "list":
            values = list(value) if isinstance(value, (list, tuple, set)) else [value]
            for element in values:
                conditions.append(
                    f"EXISTS (SELECT 1 FROM json_each({column}) AS elem WHERE elem.value = ?)"
                )
                params.append(str(element))
        elif isinstance(value, (list, tuple, set)):
            values = [schema.to_column(name, v) for v in value]
            if not values:
                conditions.append("1 = 0")
            else:
                conditions.append(f"{column} IN ({', '.join('?' * len(values))})")
                params.extend(values)
        else:
            conditions.append(f"{column} = ?")
            params.append(schema.to_column(name, value))

    if not conditions:
        return "", []
    return "WHERE " + " AND ".join(conditions), params
