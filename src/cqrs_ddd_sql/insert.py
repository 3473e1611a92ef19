"""
Insert statement building.

Produces the three pieces an ``INSERT`` needs: the quoted column list, the
placeholder text and the values in matching order::

    plan = build_insert({"name": "Bob", "ownerId": UNSET, "tags": ["a"]})
    f'INSERT INTO "pets" ({plan.column_list_text}) VALUES ({plan.placeholder_text})'

Values are coerced to their storage representation first (see
:func:`coerce_value`). ``UNSET`` entries are left out entirely so the column
keeps its database default; ``None`` is bound as ``NULL``.
"""

from __future__ import annotations

import datetime
import json
import uuid
from collections.abc import Collection, Mapping, Sequence
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel

from .dialects import POSTGRES, SQLDialect
from .exceptions import DuplicateColumnError, InsertShapeError
from .naming import quote_identifier, snake_case


class _Unset:
    """Marker for a value that was never provided."""

    _instance: _Unset | None = None

    def __new__(cls) -> _Unset:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()

_SCALARS = (
    str,
    int,
    float,
    bool,
    Decimal,
    datetime.date,
    datetime.time,
    datetime.timedelta,
    uuid.UUID,
    bytes,
)


@dataclass(frozen=True)
class InsertPlan:
    """Column list, placeholders and values for one insert. Rebuilt per call."""

    columns: tuple[str, ...]
    column_list_text: str
    placeholder_text: str
    ordered_values: tuple[Any, ...]


# ---------------------------------------------------------------------------
# Value coercion
# ---------------------------------------------------------------------------


def _array_element(item: Any) -> str:
    text = str(item)
    if not text or any(ch in text for ch in ',{}"\\ '):
        escaped = text.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    return text


def array_literal(items: Collection[Any]) -> str:
    """Render a flat Postgres array literal, e.g. ``{a,"b c"}``."""
    return "{" + ",".join(_array_element(item) for item in items) + "}"


def _json_default(obj: Any) -> Any:
    if isinstance(obj, set | frozenset):
        return sorted(obj, key=str)
    return str(obj)


def coerce_value(column: str, value: Any, array_columns: Collection[str] = ()) -> Any:
    """
    Convert *value* to what the driver should bind for *column*.

    Scalars pass through, enums bind their value, list-like values for
    *array_columns* become an array literal and any other structure is
    JSON-encoded for json/jsonb columns; sets inside such structures are
    encoded as sorted JSON lists.
    """
    if isinstance(value, Enum):
        return value.value
    if value is None or isinstance(value, _SCALARS):
        return value
    if isinstance(value, BaseModel):
        return json.dumps(value.model_dump(mode="json"))
    if column in array_columns and isinstance(value, list | tuple | set | frozenset):
        return array_literal(value)
    return json.dumps(value, default=_json_default)


def transform_values(
    data: Mapping[str, Any],
    array_columns: Collection[str] = (),
) -> dict[str, Any]:
    """
    Drop ``UNSET`` entries, snake-case keys and coerce values.

    Raises:
        DuplicateColumnError: If two keys map to the same column
            (``ownerId`` and ``owner_id``).
    """
    result: dict[str, Any] = {}
    sources: dict[str, str] = {}
    for key, value in data.items():
        if value is UNSET:
            continue
        column = snake_case(key)
        if column in sources:
            raise DuplicateColumnError(column, [sources[column], key])
        sources[column] = key
        result[column] = coerce_value(column, value, array_columns)
    return result


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def _column_list(columns: Sequence[str]) -> str:
    return ",".join(quote_identifier(column) for column in columns)


def build_insert(
    data: Mapping[str, Any],
    dialect: SQLDialect = POSTGRES,
    offset: int = 0,
    *,
    array_columns: Collection[str] = (),
) -> InsertPlan:
    """Build the insert plan for a single row."""
    row = transform_values(data, array_columns)
    columns = tuple(row)
    placeholders = ",".join(
        dialect.placeholder(offset + index) for index in range(1, len(columns) + 1)
    )
    return InsertPlan(
        columns=columns,
        column_list_text=_column_list(columns),
        placeholder_text=placeholders,
        ordered_values=tuple(row.values()),
    )


def build_bulk_insert(
    rows: Sequence[Mapping[str, Any]],
    dialect: SQLDialect = POSTGRES,
    offset: int = 0,
    *,
    array_columns: Collection[str] = (),
    fill_missing: bool = True,
) -> InsertPlan:
    """
    Build one multi-row insert plan.

    Columns are the first-seen union over all rows (not sorted). Every row
    emits one tuple covering that whole column list, so values stay aligned
    with the shared column order even when rows differ in shape. A row that
    lacks a column binds ``None`` there; with ``fill_missing=False`` such a
    row raises :class:`InsertShapeError` instead.
    """
    transformed = [transform_values(row, array_columns) for row in rows]

    columns: list[str] = []
    for row in transformed:
        for column in row:
            if column not in columns:
                columns.append(column)

    tuples: list[str] = []
    values: list[Any] = []
    for row_index, row in enumerate(transformed):
        missing = [column for column in columns if column not in row]
        if missing and not fill_missing:
            raise InsertShapeError(row_index, missing)
        placeholders = []
        for column in columns:
            values.append(row.get(column))
            placeholders.append(dialect.placeholder(offset + len(values)))
        tuples.append(f"({','.join(placeholders)})")

    return InsertPlan(
        columns=tuple(columns),
        column_list_text=_column_list(columns),
        placeholder_text=",".join(tuples),
        ordered_values=tuple(values),
    )
