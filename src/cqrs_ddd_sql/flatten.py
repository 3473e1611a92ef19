"""
Expression flattening.

Walks a filter tree and returns a flat, immutable token sequence that the
compiler renders left to right. Groups are expanded in place between an
opening and a closing :class:`GroupToken`; a group's own condition type is
emitted as a :class:`ConditionToken` *before* its opening paren. Sibling
order is preserved exactly.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Union

from .exceptions import MalformedFilterError
from .filters import FilterGroup, FilterLeaf
from .naming import ColumnRef, snake_case, split_path

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from .filters import FilterNode
    from .operators import ConditionType


@dataclass(frozen=True)
class ConditionToken:
    condition_type: ConditionType


@dataclass(frozen=True)
class GroupToken:
    paren: str


@dataclass(frozen=True)
class ComparisonToken:
    """A single comparison with its table qualifier already split off."""

    operator: str
    field: str
    value: Any
    table: str | None = None
    condition_type: ConditionType | None = None

    @property
    def column(self) -> ColumnRef:
        return ColumnRef(column=snake_case(self.field), table=self.table)


OPEN_GROUP = GroupToken("(")
CLOSE_GROUP = GroupToken(")")

Token = Union[ConditionToken, GroupToken, ComparisonToken]  # noqa: UP007


def flatten(
    nodes: Sequence[FilterNode],
    aliases: Mapping[str, str] | None = None,
) -> tuple[Token, ...]:
    """Flatten sibling *nodes* (recursively) into a token tuple."""
    return tuple(token for node in nodes for token in flatten_node(node, aliases))


def flatten_node(
    node: FilterNode,
    aliases: Mapping[str, str] | None = None,
) -> tuple[Token, ...]:
    if isinstance(node, FilterGroup):
        prefix: tuple[Token, ...] = (
            (ConditionToken(node.condition_type),) if node.condition_type else ()
        )
        return (*prefix, OPEN_GROUP, *flatten(node.expressions, aliases), CLOSE_GROUP)

    if isinstance(node, FilterLeaf):
        table, field_name = split_path(node.field, aliases)
        return (
            ComparisonToken(
                operator=node.operator,
                field=field_name,
                value=node.value,
                table=table,
                condition_type=node.condition_type,
            ),
        )

    raise MalformedFilterError(f"expected FilterLeaf or FilterGroup, got {type(node).__name__}")
