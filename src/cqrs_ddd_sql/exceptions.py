"""
SQL builder exception hierarchy.

All exceptions inherit from ``SQLBuilderError`` and provide ``to_dict()``
for API-friendly error responses.
"""

from __future__ import annotations

from difflib import get_close_matches
from typing import Any


class SQLBuilderError(Exception):
    """Root exception for the SQL builder package."""

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.__class__.__name__,
            "message": str(self),
        }


# ── Filter compilation ───────────────────────────────────────────────


class FilterError(SQLBuilderError):
    """Base class for filter tree errors."""


class MalformedFilterError(FilterError):
    """A filter node is neither a valid leaf nor a valid group."""

    def __init__(self, message: str, path: str | None = None) -> None:
        self.message = message
        self.path = path
        super().__init__(f"{path}: {message}" if path else message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": "MALFORMED_FILTER",
            "message": self.message,
            "path": self.path,
        }


class UnknownOperatorError(FilterError):
    """
    Operator tag outside the recognized set.

    Provides fuzzy-matched suggestions for likely intended operators.
    """

    def __init__(
        self,
        operator: str,
        valid_operators: list[str],
        field: str | None = None,
    ) -> None:
        self.operator = operator
        self.field = field
        self.valid_operators = valid_operators
        self.suggestions = get_close_matches(operator, valid_operators, n=3, cutoff=0.6)

        message = f"Unknown operator: '{operator}'"
        if field:
            message += f" on field '{field}'"
        message += "."
        if self.suggestions:
            message += f" Did you mean: {', '.join(self.suggestions)}?"
        message += f" Valid operators: {', '.join(sorted(valid_operators))}"
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": "OPERATOR_NOT_FOUND",
            "operator": self.operator,
            "field": self.field,
            "suggestions": self.suggestions,
            "valid_operators": sorted(self.valid_operators),
        }


class UnsupportedOperatorError(FilterError):
    """The target dialect cannot express an otherwise valid operator."""

    def __init__(self, operator: str, dialect: str) -> None:
        self.operator = operator
        self.dialect = dialect
        super().__init__(f"Operator '{operator}' is not supported by dialect '{dialect}'")

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": "OPERATOR_NOT_SUPPORTED",
            "operator": self.operator,
            "dialect": self.dialect,
        }


class UnfilteredWriteError(FilterError):
    """An UPDATE or DELETE compiled to no WHERE clause."""

    def __init__(self, statement: str, table: str) -> None:
        self.statement = statement
        self.table = table
        super().__init__(
            f"Refusing {statement} on '{table}' without a filter; "
            "pass allow_all=True to affect every row"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": "UNFILTERED_WRITE",
            "statement": self.statement,
            "table": self.table,
        }


# ── Insert building ──────────────────────────────────────────────────


class InsertShapeError(SQLBuilderError):
    """A bulk insert row does not cover the shared column list."""

    def __init__(self, row_index: int, columns: list[str]) -> None:
        self.row_index = row_index
        self.columns = columns
        super().__init__(f"Row {row_index} is missing column(s): {', '.join(columns)}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": "INSERT_SHAPE_MISMATCH",
            "row_index": self.row_index,
            "columns": self.columns,
        }


class DuplicateColumnError(SQLBuilderError):
    """Two row keys resolve to the same column."""

    def __init__(self, column: str, keys: list[str]) -> None:
        self.column = column
        self.keys = keys
        super().__init__(
            f"Keys {', '.join(repr(k) for k in keys)} all map to column '{column}'"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": "DUPLICATE_COLUMN",
            "column": self.column,
            "keys": self.keys,
        }


# ── Dialects ─────────────────────────────────────────────────────────


class DialectError(SQLBuilderError):
    """Base class for target store configuration errors."""


class UnsupportedDialectError(DialectError):
    """The target store is not one the builders know how to render for."""

    def __init__(self, name: str, supported: list[str]) -> None:
        self.name = name
        self.supported = supported
        super().__init__(
            f"Unsupported dialect '{name}'. Supported: {', '.join(sorted(supported))}"
        )


class UnsupportedParamstyleError(DialectError):
    """The driver uses a placeholder style positional builders cannot emit."""

    def __init__(self, paramstyle: str) -> None:
        self.paramstyle = paramstyle
        super().__init__(f"Unsupported paramstyle '{paramstyle}'")


# ── Connectivity ─────────────────────────────────────────────────────


class ConnectivityError(SQLBuilderError):
    """The startup connection check against the database failed."""
