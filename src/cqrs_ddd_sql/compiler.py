"""
Compile a filter tree into a parameterized WHERE clause.

The compiler flattens the tree (see :mod:`.flatten`), renders each token
left to right and collects bound values in the same order as their
placeholders. Placeholders are numbered from ``value_offset + 1`` so a
compiled filter can be appended after parameters already used elsewhere
in the same statement::

    compiled = FilterCompiler().compile(
        BulkFilter(filters=[FilterLeaf(field="owner", operator="eq", value="u1")]),
        value_offset=2,
    )
    compiled.where_clause      # 'WHERE "owner" = $3'
    compiled.parameter_values  # ('u1',)

Strictness
----------
A leaf whose operator is outside the recognized set is dropped with a
warning by default. Dropping a predicate widens the result set, so callers
that build filters from untrusted input should pass ``strict=True`` to get
an :class:`UnknownOperatorError` instead.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .dialects import POSTGRES, SQLDialect
from .exceptions import UnknownOperatorError, UnsupportedOperatorError
from .filters import (
    DEFAULT_LIMIT,
    BulkFilter,
    FilterGroup,
    FilterLeaf,
    as_filter_nodes,
    parse_filter_nodes,
)
from .flatten import ComparisonToken, ConditionToken, GroupToken, flatten
from .naming import resolve_column
from .operators import (
    ARRAY_OPERATORS,
    VALID_OPERATORS,
    ConditionType,
    FilterOperator,
    sql_operator,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from .filters import FilterNode
    from .flatten import Token

logger = logging.getLogger("cqrs_ddd.sql.compiler")


@dataclass(frozen=True)
class CompiledFilter:
    """Result of one compilation. Rebuilt per call."""

    limit: int
    offset: int
    sort_clause: str
    where_clause: str
    parameter_values: tuple[Any, ...]


class FilterCompiler:
    """
    Renders :class:`BulkFilter` values for one target dialect.

    Args:
        dialect: Placeholder style and operator capabilities of the store.
        strict: Raise on unknown operators instead of dropping the leaf.
        aliases: Explicit table qualifiers for dotted field paths,
            e.g. ``{"people": "person"}``. Unmapped prefixes fall back to
            stripping a trailing ``s``.
        default_limit: Limit used when the filter does not set one.
    """

    def __init__(
        self,
        dialect: SQLDialect = POSTGRES,
        *,
        strict: bool = False,
        aliases: Mapping[str, str] | None = None,
        default_limit: int = DEFAULT_LIMIT,
    ) -> None:
        self.dialect = dialect
        self.strict = strict
        self.aliases = dict(aliases or {})
        self.default_limit = default_limit

    # ------------------------------------------------------------------ #
    # Public API                                                          #
    # ------------------------------------------------------------------ #

    def compile(
        self,
        data: BulkFilter | Mapping[str, Any],
        free_text_fields: Sequence[str] = (),
        include_where: bool = True,
        value_offset: int = 0,
    ) -> CompiledFilter:
        """
        Compile *data* into WHERE/ORDER BY text and bound values.

        Args:
            data: The filter, as a model or a raw (JSON-decoded) mapping.
            free_text_fields: Columns searched by ``data.free_text``.
            include_where: Prefix a non-empty clause with ``WHERE``.
            value_offset: Number of parameters already bound before this
                clause in the same statement.
        """
        if value_offset < 0:
            raise ValueError(f"value_offset must be non-negative, got {value_offset}")

        bulk = self._coerce(data)
        nodes = self._effective_nodes(bulk, free_text_fields)
        where, values = self._render(flatten(nodes, self.aliases), value_offset)
        if where and include_where:
            where = f"WHERE {where}"

        compiled = CompiledFilter(
            limit=bulk.limit or self.default_limit,
            offset=bulk.offset or 0,
            sort_clause=self._sort_clause(bulk),
            where_clause=where,
            parameter_values=tuple(values),
        )
        logger.debug(
            "Compiled filter: %s %s (%d values)",
            compiled.where_clause,
            compiled.sort_clause,
            len(compiled.parameter_values),
        )
        return compiled

    # ------------------------------------------------------------------ #
    # Internal                                                            #
    # ------------------------------------------------------------------ #

    def _coerce(self, data: BulkFilter | Mapping[str, Any]) -> BulkFilter:
        if isinstance(data, BulkFilter):
            return data
        raw = dict(data)
        if raw.get("filters") is not None:
            raw["filters"] = parse_filter_nodes(raw["filters"], strict=self.strict)
        return BulkFilter.model_validate(raw)

    @staticmethod
    def _effective_nodes(
        bulk: BulkFilter,
        free_text_fields: Sequence[str],
    ) -> list[FilterNode]:
        filters: list[FilterNode] = list(bulk.filters or [])
        free_text = bulk.free_text
        if not (free_text and free_text.strip() and free_text_fields):
            return filters

        search = FilterGroup(
            condition_type=ConditionType.AND if filters else None,
            expressions=[
                FilterLeaf(
                    field=field_name,
                    operator=FilterOperator.CONTAINS,
                    value=free_text,
                    condition_type=ConditionType.OR if index else None,
                )
                for index, field_name in enumerate(free_text_fields)
            ],
        )
        return [*filters, search]

    def _render(self, tokens: Sequence[Token], value_offset: int) -> tuple[str, list[Any]]:
        """
        Render tokens into clause text.

        Each scope collects ``(condition, text)`` entries; a scope is joined
        when its group closes. The first entry of a scope never carries a
        condition keyword, so dropping a leading leaf cannot leave a
        dangling ``AND``/``OR``, and a group emptied by dropped leaves
        disappears together with its own condition.
        """
        values: list[Any] = []
        scopes: list[list[tuple[ConditionType | None, str]]] = [[]]
        group_conditions: list[ConditionType | None] = []
        pending: ConditionType | None = None

        for token in tokens:
            if isinstance(token, ConditionToken):
                pending = token.condition_type
            elif isinstance(token, GroupToken) and token.paren == "(":
                group_conditions.append(pending)
                pending = None
                scopes.append([])
            elif isinstance(token, GroupToken):
                inner = self._join(scopes.pop())
                condition = group_conditions.pop()
                if inner:
                    scopes[-1].append((condition, f"( {inner} )"))
            else:
                text = self._render_comparison(token, values, value_offset)
                if text is not None:
                    scopes[-1].append((token.condition_type, text))

        return self._join(scopes[0]), values

    @staticmethod
    def _join(entries: list[tuple[ConditionType | None, str]]) -> str:
        parts: list[str] = []
        for index, (condition, text) in enumerate(entries):
            if index and condition is not None:
                parts.append(condition.value)
            parts.append(text)
        return " ".join(parts)

    def _render_comparison(
        self,
        token: ComparisonToken,
        values: list[Any],
        value_offset: int,
    ) -> str | None:
        column = token.column.sql
        operator = token.operator

        if operator in ARRAY_OPERATORS:
            if not self.dialect.supports_array_membership:
                raise UnsupportedOperatorError(operator, self.dialect.name)
            placeholder = self._bind(token.value, values, value_offset)
            return self.dialect.array_membership(
                placeholder, column, negate=operator == FilterOperator.EXCLUDES.value
            )

        if operator == FilterOperator.CONTAINS.value:
            placeholder = self._bind(token.value, values, value_offset)
            return self.dialect.pattern_match(column, placeholder)

        symbol = sql_operator(operator)
        if symbol is not None:
            placeholder = self._bind(token.value, values, value_offset)
            return f"{column} {symbol} {placeholder}"

        if self.strict:
            raise UnknownOperatorError(operator, sorted(VALID_OPERATORS), field=token.field)
        logger.warning(
            "Dropping filter on %s: unknown operator %r", token.column.sql, operator
        )
        return None

    def _bind(self, value: Any, values: list[Any], value_offset: int) -> str:
        values.append(value)
        return self.dialect.placeholder(value_offset + len(values))

    def _sort_clause(self, bulk: BulkFilter) -> str:
        if bulk.sort is None:
            return ""
        column = resolve_column(bulk.sort.key, self.aliases)
        return f"ORDER BY {column.sql} {bulk.sort.order.value}"


# ---------------------------------------------------------------------------
# Functional shortcuts
# ---------------------------------------------------------------------------


def create_filters(
    data: BulkFilter | Mapping[str, Any],
    free_text_fields: Sequence[str] = (),
    include_where: bool = True,
    value_offset: int = 0,
    *,
    dialect: SQLDialect = POSTGRES,
    strict: bool = False,
    aliases: Mapping[str, str] | None = None,
) -> CompiledFilter:
    """Compile *data* with a one-off :class:`FilterCompiler`."""
    compiler = FilterCompiler(dialect, strict=strict, aliases=aliases)
    return compiler.compile(data, free_text_fields, include_where, value_offset)


def get_filters(
    filters: Mapping[str, Any] | Sequence[Any] | None,
    *,
    dialect: SQLDialect = POSTGRES,
    strict: bool = False,
    aliases: Mapping[str, str] | None = None,
) -> CompiledFilter:
    """
    Compile either a plain ``{field: value}`` map (``eq`` joined by ``AND``)
    or a list of filter nodes.
    """
    nodes = as_filter_nodes(filters, strict=strict)
    return create_filters(
        BulkFilter(filters=nodes), dialect=dialect, strict=strict, aliases=aliases
    )
