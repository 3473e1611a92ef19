"""
Target store dialects.

A :class:`SQLDialect` bundles everything the builders need to know about the
database they render for: the driver's positional paramstyle, the pattern
operator used for substring matching, and whether array membership
(``= ANY(column)``) is available. One dialect is resolved per engine and
shared by the filter compiler and the insert builder, so both emit the same
placeholder convention.

Usage::

    dialect = dialect_for_engine(engine)
    dialect.placeholder(3)   # "$3" for asyncpg, "?" for sqlite
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import TYPE_CHECKING, Any

from .exceptions import UnsupportedDialectError, UnsupportedParamstyleError

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine


class Paramstyle(str, Enum):
    """Positional DB-API paramstyles the builders can emit."""

    NUMERIC_DOLLAR = "numeric_dollar"  # $1, $2
    NUMERIC = "numeric"  # :1, :2
    QMARK = "qmark"  # ?, ?
    FORMAT = "format"  # %s, %s


@dataclass(frozen=True)
class SQLDialect:
    """Rendering capabilities of one target store."""

    name: str
    paramstyle: Paramstyle = Paramstyle.NUMERIC_DOLLAR
    pattern_operator: str = "LIKE"
    supports_array_membership: bool = False

    @property
    def numbered(self) -> bool:
        return self.paramstyle in (Paramstyle.NUMERIC_DOLLAR, Paramstyle.NUMERIC)

    def placeholder(self, index: int) -> str:
        """Render the placeholder for 1-based parameter *index*."""
        if self.paramstyle is Paramstyle.NUMERIC_DOLLAR:
            return f"${index}"
        if self.paramstyle is Paramstyle.NUMERIC:
            return f":{index}"
        if self.paramstyle is Paramstyle.QMARK:
            return "?"
        return "%s"

    def pattern_match(self, column_sql: str, placeholder: str) -> str:
        """Substring match of *column_sql* against the bound value."""
        # format-style drivers treat a bare % as a placeholder marker
        wildcard = "%%" if self.paramstyle is Paramstyle.FORMAT else "%"
        return (
            f"{column_sql} {self.pattern_operator} "
            f"'{wildcard}' || {placeholder} || '{wildcard}'"
        )

    def array_membership(self, placeholder: str, column_sql: str, *, negate: bool = False) -> str:
        return f"{placeholder} {'!=' if negate else '='} ANY({column_sql})"

    def with_paramstyle(self, paramstyle: Paramstyle | str) -> SQLDialect:
        return replace(self, paramstyle=coerce_paramstyle(paramstyle))


POSTGRES = SQLDialect(
    name="postgresql",
    paramstyle=Paramstyle.NUMERIC_DOLLAR,
    pattern_operator="ILIKE",
    supports_array_membership=True,
)

SQLITE = SQLDialect(
    name="sqlite",
    paramstyle=Paramstyle.QMARK,
    pattern_operator="LIKE",
    supports_array_membership=False,
)

DIALECTS: dict[str, SQLDialect] = {
    POSTGRES.name: POSTGRES,
    SQLITE.name: SQLITE,
}


def coerce_paramstyle(value: Paramstyle | str) -> Paramstyle:
    """
    Map a DB-API paramstyle name to a positional :class:`Paramstyle`.

    ``pyformat`` drivers (psycopg) also accept positional ``%s``, so they
    render as ``format``. ``named`` has no positional form and is rejected.
    """
    if isinstance(value, Paramstyle):
        return value
    if value == "pyformat":
        return Paramstyle.FORMAT
    try:
        return Paramstyle(value)
    except ValueError:
        raise UnsupportedParamstyleError(str(value)) from None


def resolve_dialect(name: str, paramstyle: Paramstyle | str | None = None) -> SQLDialect:
    """
    Look up a registered dialect by name.

    Raises:
        UnsupportedDialectError: If no dialect is registered under *name*.
        UnsupportedParamstyleError: If *paramstyle* is not positional.
    """
    dialect = DIALECTS.get(name)
    if dialect is None:
        raise UnsupportedDialectError(name, list(DIALECTS))
    if paramstyle is not None:
        dialect = dialect.with_paramstyle(paramstyle)
    return dialect


def dialect_for_engine(engine: AsyncEngine | Any) -> SQLDialect:
    """Resolve the dialect once from a SQLAlchemy engine's driver settings."""
    sa_dialect = engine.dialect
    return resolve_dialect(sa_dialect.name, sa_dialect.paramstyle)
