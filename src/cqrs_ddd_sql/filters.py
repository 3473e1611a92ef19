"""
Filter tree data model.

A filter is a list of sibling nodes. Each node is either a
:class:`FilterLeaf` (one comparison) or a :class:`FilterGroup` (a
parenthesized sub-list). Every sibling except the first carries a
``condition_type`` joining it to its predecessor::

    [
        FilterLeaf(field="owner", operator="eq", value="u1"),
        FilterGroup(
            condition_type="AND",
            expressions=[
                FilterLeaf(field="type", operator="eq", value="dog"),
                FilterLeaf(field="type", operator="eq", value="cat", condition_type="OR"),
            ],
        ),
    ]

Both models forbid unknown keys, so a hybrid node carrying ``expressions``
alongside ``operator``/``value`` validates as neither variant.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .exceptions import MalformedFilterError
from .operators import ConditionType, FilterOperator, SortOrder, operator_tag

logger = logging.getLogger("cqrs_ddd.sql.filters")

DEFAULT_LIMIT = 1000


class _FilterModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)


def _upper(v: Any) -> Any:
    return v.upper() if isinstance(v, str) else v


class FilterLeaf(_FilterModel):
    """One ``field <operator> value`` comparison."""

    field: str = Field(min_length=1)
    operator: str
    value: Any = None
    condition_type: ConditionType | None = Field(default=None, alias="conditionType")

    @field_validator("condition_type", mode="before")
    @classmethod
    def _upper_condition(cls, v: Any) -> Any:
        return _upper(v)

    @field_validator("operator", mode="before")
    @classmethod
    def _normalize_operator(cls, v: Any) -> Any:
        if isinstance(v, FilterOperator | str):
            return operator_tag(v)
        return v


class FilterGroup(_FilterModel):
    """A parenthesized list of sibling nodes."""

    expressions: list[FilterNode]
    condition_type: ConditionType | None = Field(default=None, alias="conditionType")

    @field_validator("condition_type", mode="before")
    @classmethod
    def _upper_condition(cls, v: Any) -> Any:
        return _upper(v)


FilterNode = Union[FilterLeaf, FilterGroup]  # noqa: UP007

FilterGroup.model_rebuild()


class SortSpec(_FilterModel):
    key: str = Field(min_length=1)
    order: SortOrder = SortOrder.ASC

    @field_validator("order", mode="before")
    @classmethod
    def _upper_order(cls, v: Any) -> Any:
        return _upper(v)


class BulkFilter(_FilterModel):
    """
    Filters plus result shaping for a bulk read.

    Attributes:
        filters: Sibling filter nodes (``None`` = no filter).
        sort: Optional single-column ordering.
        limit: Maximum number of rows; falsy means the compiler default.
        offset: Rows to skip; falsy means ``0``.
        free_text: Search string matched against the caller's free-text
            columns.
    """

    filters: list[FilterNode] | None = None
    sort: SortSpec | None = None
    limit: int | None = Field(default=None, ge=0)
    offset: int | None = Field(default=None, ge=0)
    free_text: str | None = Field(default=None, alias="freeText")


# ---------------------------------------------------------------------------
# Construction helpers
# ---------------------------------------------------------------------------


def filters_from_mapping(values: Mapping[str, Any]) -> list[FilterNode]:
    """Build ``eq`` leaves joined by ``AND`` from a plain field/value map."""
    return [
        FilterLeaf(
            field=field_name,
            operator=FilterOperator.EQ,
            value=value,
            condition_type=ConditionType.AND if index else None,
        )
        for index, (field_name, value) in enumerate(values.items())
    ]


def parse_filter_nodes(
    raw: Sequence[Any],
    *,
    strict: bool = False,
    path: str = "filters",
) -> list[FilterNode]:
    """
    Parse raw (e.g. JSON-decoded) nodes into :data:`FilterNode` values.

    Already-built nodes pass through. In lenient mode a malformed node is
    dropped with a warning and its siblings are kept; in strict mode the
    first malformed node raises :class:`MalformedFilterError`.
    """
    nodes: list[FilterNode] = []
    for index, item in enumerate(raw):
        node_path = f"{path}[{index}]"
        try:
            nodes.append(_parse_node(item, strict=strict, path=node_path))
        except MalformedFilterError:
            if strict:
                raise
            logger.warning("Dropping malformed filter node at %s: %r", node_path, item)
    return nodes


def _parse_node(item: Any, *, strict: bool, path: str) -> FilterNode:
    if isinstance(item, FilterLeaf | FilterGroup):
        return item
    if not isinstance(item, Mapping):
        raise MalformedFilterError(f"expected an object, got {type(item).__name__}", path=path)

    if "expressions" in item:
        children = item["expressions"]
        if not isinstance(children, list | tuple):
            raise MalformedFilterError("'expressions' must be a list", path=path)
        data = dict(item)
        data["expressions"] = parse_filter_nodes(
            children, strict=strict, path=f"{path}.expressions"
        )
        return _validate(FilterGroup, data, path)

    return _validate(FilterLeaf, item, path)


def _validate(model: type[_FilterModel], data: Any, path: str) -> Any:
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise MalformedFilterError(
            f"invalid {model.__name__}: {exc.errors()[0]['msg']}", path=path
        ) from exc


def as_filter_nodes(
    filters: Mapping[str, Any] | Sequence[Any] | None,
    *,
    strict: bool = False,
) -> list[FilterNode]:
    """
    Accept either a field/value map or a node list.

    Raises:
        MalformedFilterError: If *filters* is a string or bytes value, which
            is neither (iterating it would yield single characters).
    """
    if filters is None:
        return []
    if isinstance(filters, str | bytes):
        raise MalformedFilterError(
            f"expected a mapping or a list of nodes, got {type(filters).__name__}",
            path="filters",
        )
    if isinstance(filters, Mapping):
        return filters_from_mapping(filters)
    return parse_filter_nodes(filters, strict=strict)
