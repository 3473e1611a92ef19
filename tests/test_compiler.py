"""Tests for compiling filter trees into WHERE/ORDER BY clauses."""

from __future__ import annotations

import logging
import re

import pytest

from cqrs_ddd_sql import (
    BulkFilter,
    FilterCompiler,
    FilterGroup,
    FilterLeaf,
    MalformedFilterError,
    UnknownOperatorError,
    UnsupportedOperatorError,
    create_filters,
    get_filters,
)


def leaf(field: str, operator: str, value: object, condition: str | None = None) -> FilterLeaf:
    return FilterLeaf(field=field, operator=operator, value=value, condition_type=condition)


# -- Basic comparisons -------------------------------------------------------


def test_plain_mapping_compiles_to_equality() -> None:
    compiled = get_filters({"id": "abc"})
    assert compiled.where_clause == 'WHERE "id" = $1'
    assert compiled.parameter_values == ("abc",)


def test_ordered_leaves_are_and_joined(compiler: FilterCompiler) -> None:
    compiled = compiler.compile(
        BulkFilter(filters=[leaf("owner", "eq", "u1"), leaf("type", "eq", "dog", "AND")])
    )
    assert compiled.where_clause == 'WHERE "owner" = $1 AND "type" = $2'
    assert compiled.parameter_values == ("u1", "dog")


@pytest.mark.parametrize(
    ("operator", "symbol"),
    [
        ("eq", "="),
        ("ne", "!="),
        ("gt", ">"),
        ("gte", ">="),
        ("lt", "<"),
        ("lte", "<="),
        ("on", "="),
        ("after", ">"),
        ("before", "<"),
    ],
)
def test_mapped_operators(compiler: FilterCompiler, operator: str, symbol: str) -> None:
    compiled = compiler.compile(BulkFilter(filters=[leaf("createdAt", operator, "2024-01-01")]))
    assert compiled.where_clause == f'WHERE "created_at" {symbol} $1'


def test_includes_and_excludes_use_array_membership(compiler: FilterCompiler) -> None:
    compiled = compiler.compile(
        BulkFilter(
            filters=[leaf("tags", "includes", "x"), leaf("petTags", "excludes", "y", "AND")]
        )
    )
    assert compiled.where_clause == 'WHERE $1 = ANY("tags") AND $2 != ANY("pet_tags")'
    assert compiled.parameter_values == ("x", "y")


def test_dotted_field_is_table_qualified(compiler: FilterCompiler) -> None:
    compiled = compiler.compile(BulkFilter(filters=[leaf("pets.ownerId", "eq", "u1")]))
    assert compiled.where_clause == 'WHERE "pet"."owner_id" = $1'


def test_aliases_qualify_irregular_plurals() -> None:
    compiled = FilterCompiler(aliases={"people": "person"}).compile(
        BulkFilter(filters=[leaf("people.name", "eq", "Ann")])
    )
    assert compiled.where_clause == 'WHERE "person"."name" = $1'


def test_empty_filters_compile_to_empty_clause(compiler: FilterCompiler) -> None:
    compiled = compiler.compile(BulkFilter())
    assert compiled.where_clause == ""
    assert compiled.parameter_values == ()


def test_include_where_false_omits_keyword(compiler: FilterCompiler) -> None:
    compiled = compiler.compile(
        BulkFilter(filters=[leaf("id", "eq", 1)]), include_where=False
    )
    assert compiled.where_clause == '"id" = $1'


# -- Groups ------------------------------------------------------------------


def test_nested_group_is_parenthesized(compiler: FilterCompiler) -> None:
    compiled = compiler.compile(
        BulkFilter(
            filters=[
                leaf("a", "eq", 1),
                FilterGroup(
                    condition_type="AND",
                    expressions=[leaf("b", "gt", 2), leaf("c", "lt", 3, "OR")],
                ),
            ]
        )
    )
    assert compiled.where_clause == 'WHERE "a" = $1 AND ( "b" > $2 OR "c" < $3 )'
    assert compiled.parameter_values == (1, 2, 3)


def test_leading_group(compiler: FilterCompiler) -> None:
    compiled = compiler.compile(
        BulkFilter(
            filters=[
                FilterGroup(expressions=[leaf("a", "eq", 1), leaf("b", "eq", 2, "OR")]),
                leaf("c", "eq", 3, "AND"),
            ]
        )
    )
    assert compiled.where_clause == 'WHERE ( "a" = $1 OR "b" = $2 ) AND "c" = $3'


def test_deeply_nested_groups(compiler: FilterCompiler) -> None:
    compiled = compiler.compile(
        BulkFilter(
            filters=[
                FilterGroup(
                    expressions=[
                        leaf("a", "eq", 1),
                        FilterGroup(
                            condition_type="OR",
                            expressions=[leaf("b", "eq", 2), leaf("c", "eq", 3, "AND")],
                        ),
                    ]
                )
            ]
        )
    )
    assert compiled.where_clause == 'WHERE ( "a" = $1 OR ( "b" = $2 AND "c" = $3 ) )'


# -- Free text ---------------------------------------------------------------


def test_free_text_without_filters(compiler: FilterCompiler) -> None:
    compiled = compiler.compile(BulkFilter(free_text="bob"), ["name", "notes"])
    assert compiled.where_clause == (
        "WHERE ( \"name\" ILIKE '%' || $1 || '%' OR \"notes\" ILIKE '%' || $2 || '%' )"
    )
    assert compiled.parameter_values == ("bob", "bob")


def test_free_text_is_and_joined_after_filters(compiler: FilterCompiler) -> None:
    compiled = compiler.compile(
        {"filters": [{"field": "owner", "operator": "eq", "value": "u1"}], "freeText": "bob"},
        ["name", "notes"],
    )
    assert compiled.where_clause == (
        "WHERE \"owner\" = $1 AND "
        "( \"name\" ILIKE '%' || $2 || '%' OR \"notes\" ILIKE '%' || $3 || '%' )"
    )
    assert compiled.parameter_values == ("u1", "bob", "bob")


def test_blank_free_text_is_ignored(compiler: FilterCompiler) -> None:
    compiled = compiler.compile(BulkFilter(free_text="   "), ["name"])
    assert compiled.where_clause == ""


def test_free_text_without_columns_is_ignored(compiler: FilterCompiler) -> None:
    compiled = compiler.compile(BulkFilter(free_text="bob"))
    assert compiled.where_clause == ""


# -- Value offset ------------------------------------------------------------


def test_value_offset_shifts_placeholders_only(compiler: FilterCompiler) -> None:
    bulk = BulkFilter(filters=[leaf("owner", "eq", "u1"), leaf("type", "eq", "dog", "AND")])
    compiled = compiler.compile(bulk, value_offset=2)
    assert compiled.where_clause == 'WHERE "owner" = $3 AND "type" = $4'
    assert compiled.parameter_values == ("u1", "dog")


def test_negative_value_offset_is_rejected(compiler: FilterCompiler) -> None:
    with pytest.raises(ValueError, match="non-negative"):
        compiler.compile(BulkFilter(), value_offset=-1)


# -- Sort / limit / offset ---------------------------------------------------


def test_sort_clause_is_qualified() -> None:
    compiled = create_filters({"sort": {"key": "pets.createdAt", "order": "desc"}})
    assert compiled.sort_clause == 'ORDER BY "pet"."created_at" DESC'


def test_sort_defaults_to_ascending() -> None:
    compiled = create_filters({"sort": {"key": "name"}})
    assert compiled.sort_clause == 'ORDER BY "name" ASC'


def test_limit_and_offset_defaults() -> None:
    compiled = create_filters({})
    assert (compiled.limit, compiled.offset, compiled.sort_clause) == (1000, 0, "")


def test_limit_and_offset_passthrough() -> None:
    compiled = create_filters({"limit": 25, "offset": 50})
    assert (compiled.limit, compiled.offset) == (25, 50)


# -- Unknown operators -------------------------------------------------------


def test_unknown_operator_is_dropped_with_warning(
    compiler: FilterCompiler, caplog: pytest.LogCaptureFixture
) -> None:
    bulk = BulkFilter(
        filters=[
            leaf("a", "eq", 1),
            leaf("b", "like", "x", "AND"),
            leaf("c", "eq", 2, "AND"),
        ]
    )
    with caplog.at_level(logging.WARNING, logger="cqrs_ddd.sql.compiler"):
        compiled = compiler.compile(bulk)

    assert compiled.where_clause == 'WHERE "a" = $1 AND "c" = $2'
    assert compiled.parameter_values == (1, 2)
    assert "'like'" in caplog.text


def test_dropped_first_leaf_leaves_no_dangling_condition(compiler: FilterCompiler) -> None:
    compiled = compiler.compile(
        BulkFilter(filters=[leaf("a", "bogus", 1), leaf("b", "eq", 2, "AND")])
    )
    assert compiled.where_clause == 'WHERE "b" = $1'


def test_group_emptied_by_dropped_leaves_disappears(compiler: FilterCompiler) -> None:
    compiled = compiler.compile(
        BulkFilter(
            filters=[
                leaf("a", "eq", 1),
                FilterGroup(condition_type="AND", expressions=[leaf("b", "bogus", 2)]),
            ]
        )
    )
    assert compiled.where_clause == 'WHERE "a" = $1'


def test_strict_mode_raises_on_unknown_operator() -> None:
    compiler = FilterCompiler(strict=True)
    with pytest.raises(UnknownOperatorError) as exc:
        compiler.compile(BulkFilter(filters=[leaf("status", "eqq", "x")]))
    assert exc.value.field == "status"
    assert "eq" in exc.value.suggestions


def test_strict_mode_raises_on_malformed_raw_node() -> None:
    compiler = FilterCompiler(strict=True)
    with pytest.raises(MalformedFilterError):
        compiler.compile({"filters": [{"field": "a", "value": 1}]})


def test_lenient_mode_drops_malformed_raw_node(compiler: FilterCompiler) -> None:
    compiled = compiler.compile(
        {
            "filters": [
                {"field": "a", "value": 1},
                {"field": "b", "operator": "eq", "value": 2},
            ]
        }
    )
    assert compiled.where_clause == 'WHERE "b" = $1'


# -- Dialects ----------------------------------------------------------------


def test_sqlite_uses_qmark_and_like(sqlite_compiler: FilterCompiler) -> None:
    compiled = sqlite_compiler.compile(
        BulkFilter(filters=[leaf("owner", "eq", "u1")], free_text="rex"), ["name"]
    )
    assert compiled.where_clause == (
        "WHERE \"owner\" = ? AND ( \"name\" LIKE '%' || ? || '%' )"
    )
    assert compiled.parameter_values == ("u1", "rex")


def test_array_operators_rejected_without_array_support(
    sqlite_compiler: FilterCompiler,
) -> None:
    with pytest.raises(UnsupportedOperatorError) as exc:
        sqlite_compiler.compile(BulkFilter(filters=[leaf("tags", "includes", "x")]))
    assert exc.value.dialect == "sqlite"


# -- Invariants --------------------------------------------------------------

_TREES = [
    [leaf("a", "eq", 1)],
    [leaf("a", "eq", 1), leaf("b", "nope", 2, "AND"), leaf("c", "includes", 3, "OR")],
    [
        FilterGroup(expressions=[leaf("a", "gt", 1), leaf("b", "lte", 2, "OR")]),
        FilterGroup(
            condition_type="AND",
            expressions=[
                leaf("c", "eq", 3),
                FilterGroup(condition_type="OR", expressions=[leaf("d", "ne", 4)]),
            ],
        ),
    ],
]


@pytest.mark.parametrize("tree", _TREES)
@pytest.mark.parametrize("offset", [0, 5])
def test_placeholders_match_values(
    compiler: FilterCompiler, tree: list, offset: int
) -> None:
    compiled = compiler.compile(BulkFilter(filters=tree), value_offset=offset)
    numbers = [int(n) for n in re.findall(r"\$(\d+)", compiled.where_clause)]
    assert numbers == list(range(offset + 1, offset + 1 + len(compiled.parameter_values)))
    assert compiled.where_clause.count("(") == compiled.where_clause.count(")")
