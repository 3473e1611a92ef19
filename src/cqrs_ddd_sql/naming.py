"""
Column name resolution.

Turns a field path such as ``"ownerName"`` or ``"pets.ownerName"`` into an
optional table qualifier and a storage column name. Purely syntactic: no
check is made that the table or column exists.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping

_SPLIT_LOWER_UPPER = re.compile(r"([a-z0-9])([A-Z])")
_SPLIT_UPPER_UPPER = re.compile(r"([A-Z])([A-Z][a-z])")
_STRIP = re.compile(r"[^A-Za-z0-9]+")


def snake_case(name: str) -> str:
    """
    Convert a camel, Pascal or mixed-case identifier to lower snake case.

    ``ownerName`` → ``owner_name``, ``HTTPStatus`` → ``http_status``,
    ``already_snake`` is returned unchanged.
    """
    text = _SPLIT_LOWER_UPPER.sub(r"\1 \2", name)
    text = _SPLIT_UPPER_UPPER.sub(r"\1 \2", text)
    words = _STRIP.sub(" ", text).split()
    return "_".join(word.lower() for word in words)


def quote_identifier(name: str) -> str:
    """Double-quote an SQL identifier, doubling any embedded quote."""
    return '"' + name.replace('"', '""') + '"'


def singularize(segment: str) -> str:
    # Naive: strips a single trailing "s". Use aliases for irregular plurals.
    return segment[:-1] if segment.endswith("s") else segment


@dataclass(frozen=True)
class ColumnRef:
    """A resolved column, optionally qualified by a table."""

    column: str
    table: str | None = None

    @property
    def sql(self) -> str:
        if self.table:
            return f"{quote_identifier(self.table)}.{quote_identifier(self.column)}"
        return quote_identifier(self.column)


def split_path(path: str, aliases: Mapping[str, str] | None = None) -> tuple[str | None, str]:
    """
    Split a field path into ``(table, field)`` without converting the field.

    The first segment of a dotted path is the table qualifier. An explicit
    entry in *aliases* wins; otherwise the segment is singularized.
    """
    parts = path.split(".")
    field_name = parts[-1]
    if len(parts) == 1:
        return None, field_name
    segment = parts[0]
    if aliases and segment in aliases:
        return aliases[segment], field_name
    return singularize(segment), field_name


def resolve_column(path: str, aliases: Mapping[str, str] | None = None) -> ColumnRef:
    """Resolve *path* to a :class:`ColumnRef` with a snake-cased column."""
    table, field_name = split_path(path, aliases)
    return ColumnRef(column=snake_case(field_name), table=table)
