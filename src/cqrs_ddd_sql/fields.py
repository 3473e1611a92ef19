"""
Field list helpers for hand-written statements.

``select_fields`` renders a projection, ``create_fields`` renders the
alternating key/value list ``json_build_object`` expects::

    f"SELECT json_build_object({create_fields('pets', ['ownerId'], 'p')}) FROM pets p"
    # json_build_object('ownerId',"p"."owner_id")
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from .naming import quote_identifier, snake_case


def _column(table: str, field_name: str, alias: str | None) -> str:
    return f"{quote_identifier(alias or table)}.{quote_identifier(snake_case(field_name))}"


def select_fields(table: str, fields: Sequence[str], alias: str | None = None) -> str:
    """``"alias"."column"`` for each field, comma separated."""
    return ",".join(_column(table, f, alias) for f in fields)


def create_fields(table: str, fields: Sequence[str], alias: str | None = None) -> str:
    """``'field',"alias"."column"`` pairs for each field, comma separated."""
    parts: list[str] = []
    for f in fields:
        parts.append("'" + f.replace("'", "''") + "'")
        parts.append(_column(table, f, alias))
    return ",".join(parts)


@dataclass(frozen=True)
class FieldHelpers:
    """Helpers handed to callable statements (``lambda h: f"... {h.sf(...)}"``)."""

    @staticmethod
    def sf(table: str, fields: Sequence[str], alias: str | None = None) -> str:
        return select_fields(table, fields, alias)

    @staticmethod
    def cf(table: str, fields: Sequence[str], alias: str | None = None) -> str:
        return create_fields(table, fields, alias)
