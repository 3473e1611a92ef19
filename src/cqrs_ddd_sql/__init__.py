from .compiler import CompiledFilter, FilterCompiler, create_filters, get_filters
from .dialects import (
    DIALECTS,
    POSTGRES,
    SQLITE,
    Paramstyle,
    SQLDialect,
    dialect_for_engine,
    resolve_dialect,
)
from .exceptions import (
    ConnectivityError,
    DialectError,
    DuplicateColumnError,
    FilterError,
    InsertShapeError,
    MalformedFilterError,
    SQLBuilderError,
    UnfilteredWriteError,
    UnknownOperatorError,
    UnsupportedDialectError,
    UnsupportedOperatorError,
    UnsupportedParamstyleError,
)
from .fields import FieldHelpers, create_fields, select_fields
from .filters import (
    BulkFilter,
    FilterGroup,
    FilterLeaf,
    FilterNode,
    SortSpec,
    as_filter_nodes,
    filters_from_mapping,
    parse_filter_nodes,
)
from .flatten import ComparisonToken, ConditionToken, GroupToken, flatten
from .insert import (
    UNSET,
    InsertPlan,
    build_bulk_insert,
    build_insert,
    coerce_value,
    transform_values,
)
from .naming import ColumnRef, resolve_column, snake_case
from .operators import ConditionType, FilterOperator, SortOrder, sql_operator
from .pool import QueryResult, TypedPool
from .results import SingleRowResult, exactly_one_result, single_row

__all__ = [
    # Data model
    "BulkFilter",
    "FilterGroup",
    "FilterLeaf",
    "FilterNode",
    "SortSpec",
    "FilterOperator",
    "ConditionType",
    "SortOrder",
    "as_filter_nodes",
    "filters_from_mapping",
    "parse_filter_nodes",
    # Naming
    "ColumnRef",
    "resolve_column",
    "snake_case",
    "sql_operator",
    # Dialects
    "DIALECTS",
    "POSTGRES",
    "SQLITE",
    "Paramstyle",
    "SQLDialect",
    "dialect_for_engine",
    "resolve_dialect",
    # Compilation
    "ComparisonToken",
    "ConditionToken",
    "GroupToken",
    "flatten",
    "CompiledFilter",
    "FilterCompiler",
    "create_filters",
    "get_filters",
    # Inserts
    "UNSET",
    "InsertPlan",
    "build_bulk_insert",
    "build_insert",
    "coerce_value",
    "transform_values",
    # Results
    "SingleRowResult",
    "exactly_one_result",
    "single_row",
    # Façade
    "FieldHelpers",
    "create_fields",
    "select_fields",
    "QueryResult",
    "TypedPool",
    # Exceptions
    "SQLBuilderError",
    "FilterError",
    "MalformedFilterError",
    "UnknownOperatorError",
    "UnsupportedOperatorError",
    "UnfilteredWriteError",
    "InsertShapeError",
    "DuplicateColumnError",
    "DialectError",
    "UnsupportedDialectError",
    "UnsupportedParamstyleError",
    "ConnectivityError",
]
