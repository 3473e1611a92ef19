from __future__ import annotations

from enum import Enum
from types import MappingProxyType


class FilterOperator(str, Enum):
    """Supported filter operator tags."""

    # Standard comparison
    EQ = "eq"
    NE = "ne"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"

    # Date-oriented aliases
    ON = "on"
    AFTER = "after"
    BEFORE = "before"

    # Array membership
    INCLUDES = "includes"
    EXCLUDES = "excludes"

    # Substring match (free text)
    CONTAINS = "contains"


class ConditionType(str, Enum):
    """Joiner attached to every sibling but the first."""

    AND = "AND"
    OR = "OR"


class SortOrder(str, Enum):
    ASC = "ASC"
    DESC = "DESC"


VALID_OPERATORS: frozenset[str] = frozenset(m.value for m in FilterOperator)

ARRAY_OPERATORS: frozenset[str] = frozenset(
    {FilterOperator.INCLUDES.value, FilterOperator.EXCLUDES.value}
)

OPERATOR_SQL: MappingProxyType[str, str] = MappingProxyType(
    {
        FilterOperator.GT.value: ">",
        FilterOperator.GTE.value: ">=",
        FilterOperator.LT.value: "<",
        FilterOperator.LTE.value: "<=",
        FilterOperator.EQ.value: "=",
        FilterOperator.NE.value: "!=",
        FilterOperator.ON.value: "=",
        FilterOperator.AFTER.value: ">",
        FilterOperator.BEFORE.value: "<",
    }
)


def operator_tag(operator: FilterOperator | str) -> str:
    """Normalize an operator given as enum member or raw tag."""
    if isinstance(operator, FilterOperator):
        return operator.value
    return str(operator).lower()


def sql_operator(operator: FilterOperator | str) -> str | None:
    """Return the SQL infix operator for *operator*, or ``None`` if unmapped."""
    return OPERATOR_SQL.get(operator_tag(operator))
