"""
Table-scoped CRUD over a SQLAlchemy ``AsyncEngine``.

``TypedPool`` compiles filters with :class:`FilterCompiler`, sends the
resulting SQL and values straight to the driver (``exec_driver_sql``) and
optionally collapses the rows to exactly one. The placeholder style is
resolved once from the engine, so the compiler and the insert builder always
emit what the driver expects.

Usage::

    engine = create_async_engine("postgresql+asyncpg://app@db/pets")
    pool = TypedPool(engine, array_columns={"tags"})
    await pool.init()

    dogs = await pool.crud_get_all("pets", {"type": "dog"})
    bob = await pool.crud_get_all("pets", {"id": pet_id}, PetNotFoundError(pet_id))

The pool does not own connection policy: the engine is created and
configured by the caller, and driver errors propagate unchanged.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from typing import TYPE_CHECKING, Any, NamedTuple, Union

from sqlalchemy.exc import SQLAlchemyError

from .compiler import CompiledFilter, FilterCompiler
from .dialects import dialect_for_engine
from .exceptions import ConnectivityError, UnfilteredWriteError
from .fields import FieldHelpers, select_fields
from .filters import BulkFilter, as_filter_nodes
from .insert import build_bulk_insert, build_insert, transform_values
from .naming import quote_identifier
from .results import exactly_one_result

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

_log = logging.getLogger("cqrs_ddd.sql.pool")

Statement = Union[str, Callable[[FieldHelpers], str]]  # noqa: UP007
Filters = Union[Mapping[str, Any], Sequence[Any], None]  # noqa: UP007
Row = dict[str, Any]

_VERSION_PROBES: dict[str, str] = {
    "postgresql": "SHOW server_version",
    "sqlite": "SELECT sqlite_version() AS server_version",
}


class QueryResult(NamedTuple):
    rows: list[Row]
    rowcount: int


class TypedPool:
    """
    Thin CRUD façade bound to one engine.

    Args:
        engine: Externally created async engine.
        strict: Raise on unknown filter operators instead of dropping them.
        aliases: Table qualifiers for dotted filter paths.
        array_columns: Columns whose list values are bound as array literals.
        logger: Logger to use instead of ``cqrs_ddd.sql.pool``.
    """

    def __init__(
        self,
        engine: AsyncEngine,
        *,
        strict: bool = False,
        aliases: Mapping[str, str] | None = None,
        array_columns: Sequence[str] = (),
        logger: logging.Logger | None = None,
    ) -> None:
        self.engine = engine
        self.dialect = dialect_for_engine(engine)
        self.compiler = FilterCompiler(self.dialect, strict=strict, aliases=aliases)
        self.array_columns = frozenset(array_columns)
        self._log = logger or _log
        self._log.info(
            "Using %s db host: %s",
            self.dialect.name,
            engine.url.host or engine.url.database,
        )

    # -- lifecycle ----------------------------------------------------------

    async def init(self) -> str:
        """Verify connectivity; returns the server version."""
        return await self.check_connection()

    async def check_connection(self) -> str:
        """
        Run a version probe against the server.

        Raises:
            ConnectivityError: If the probe fails for any driver reason.
        """
        try:
            result = await self.query(_VERSION_PROBES[self.dialect.name])
        except (SQLAlchemyError, OSError) as exc:
            self._log.error(
                "Unable to connect to server with %s", self.engine.url.host, exc_info=True
            )
            raise ConnectivityError(
                f"Unable to connect to {self.dialect.name} server: {exc}"
            ) from exc
        version = str(next(iter(result.rows[0].values())))
        self._log.info("%s server version is: %s", self.dialect.name, version)
        return version

    async def close(self) -> None:
        await self.engine.dispose()

    # -- raw statements -----------------------------------------------------

    async def query(self, statement: Statement, values: Sequence[Any] = ()) -> QueryResult:
        """Execute *statement* with positional *values*; commits on success."""
        sql = statement if isinstance(statement, str) else statement(FieldHelpers())
        params = tuple(values)
        self._log.debug("Executing %s with %d values", sql, len(params))
        async with self.engine.begin() as conn:
            result = await conn.exec_driver_sql(sql, params)
            rows = [dict(row) for row in result.mappings().all()] if result.returns_rows else []
            return QueryResult(rows=rows, rowcount=result.rowcount)

    async def one(
        self,
        statement: Statement,
        values: Sequence[Any],
        error: BaseException,
    ) -> Row:
        """Execute and return exactly one row, otherwise raise *error*."""
        result = await self.query(statement, values)
        return exactly_one_result(result.rows, error)

    async def many(self, statement: Statement, values: Sequence[Any] = ()) -> list[Row]:
        result = await self.query(statement, values)
        return result.rows

    # -- table reads --------------------------------------------------------

    def compile_filters(self, filters: Filters, value_offset: int = 0) -> CompiledFilter:
        nodes = as_filter_nodes(filters, strict=self.compiler.strict)
        return self.compiler.compile(BulkFilter(filters=nodes), value_offset=value_offset)

    async def crud_get_all(
        self,
        table: str,
        filters: Filters,
        not_single_error: BaseException | None = None,
    ) -> Any:
        """
        ``SELECT *`` rows matching *filters*.

        Returns the row list, or the single row when *not_single_error* is
        given (raising it for any other row count).
        """
        compiled = self.compile_filters(filters)
        sql = _join_sql("SELECT *", f"FROM {quote_identifier(table)}", compiled.where_clause)
        return await self._fetch(sql, compiled.parameter_values, not_single_error)

    async def crud_get(
        self,
        table: str,
        fields: Sequence[str],
        filters: Filters,
        not_single_error: BaseException | None = None,
    ) -> Any:
        """Like :meth:`crud_get_all` but projecting only *fields*."""
        compiled = self.compile_filters(filters)
        sql = _join_sql(
            f"SELECT {select_fields(table, fields)}",
            f"FROM {quote_identifier(table)}",
            compiled.where_clause,
        )
        return await self._fetch(sql, compiled.parameter_values, not_single_error)

    async def crud_search(
        self,
        table: str,
        data: BulkFilter | Mapping[str, Any],
        free_text_fields: Sequence[str] = (),
    ) -> list[Row]:
        """Filtered, sorted and paginated ``SELECT *``."""
        compiled = self.compiler.compile(data, free_text_fields)
        values = [*compiled.parameter_values, compiled.limit, compiled.offset]
        sql = _join_sql(
            "SELECT *",
            f"FROM {quote_identifier(table)}",
            compiled.where_clause,
            compiled.sort_clause,
            f"LIMIT {self.dialect.placeholder(len(values) - 1)} "
            f"OFFSET {self.dialect.placeholder(len(values))}",
        )
        return await self.many(sql, values)

    async def _fetch(
        self,
        sql: str,
        values: Sequence[Any],
        not_single_error: BaseException | None,
    ) -> Any:
        result = await self.query(sql, values)
        if not_single_error is not None:
            return exactly_one_result(result.rows, not_single_error)
        return result.rows

    # -- table writes -------------------------------------------------------

    async def crud_insert(
        self,
        table: str,
        data: Mapping[str, Any],
        *,
        returning: bool = False,
    ) -> list[Row]:
        plan = build_insert(data, self.dialect, array_columns=self.array_columns)
        sql = _join_sql(
            f"INSERT INTO {quote_identifier(table)} ({plan.column_list_text})",
            f"VALUES ({plan.placeholder_text})",
            "RETURNING *" if returning else "",
        )
        result = await self.query(sql, plan.ordered_values)
        return result.rows

    async def crud_bulk_insert(
        self,
        table: str,
        rows: Sequence[Mapping[str, Any]],
        *,
        returning: bool = False,
    ) -> list[Row]:
        if not rows:
            return []
        plan = build_bulk_insert(rows, self.dialect, array_columns=self.array_columns)
        sql = _join_sql(
            f"INSERT INTO {quote_identifier(table)} ({plan.column_list_text})",
            f"VALUES {plan.placeholder_text}",
            "RETURNING *" if returning else "",
        )
        result = await self.query(sql, plan.ordered_values)
        return result.rows

    async def crud_update(
        self,
        table: str,
        data: Mapping[str, Any],
        filters: Filters,
        *,
        allow_all: bool = False,
    ) -> int:
        """
        ``UPDATE`` rows matching *filters*; returns the affected row count.

        Raises:
            UnfilteredWriteError: If the filters compile to no WHERE clause
                (empty, or every predicate dropped) and *allow_all* is not set.
        """
        changes = transform_values(data, self.array_columns)
        if not changes:
            return 0
        assignments = ",".join(
            f"{quote_identifier(column)} = {self.dialect.placeholder(index)}"
            for index, column in enumerate(changes, start=1)
        )
        compiled = self._write_filters("UPDATE", table, filters, allow_all, len(changes))
        sql = _join_sql(
            f"UPDATE {quote_identifier(table)}",
            f"SET {assignments}",
            compiled.where_clause,
        )
        result = await self.query(sql, [*changes.values(), *compiled.parameter_values])
        return result.rowcount

    async def crud_delete(
        self,
        table: str,
        filters: Filters,
        *,
        allow_all: bool = False,
    ) -> int:
        """``DELETE`` rows matching *filters*; returns the affected row count."""
        compiled = self._write_filters("DELETE", table, filters, allow_all)
        sql = _join_sql(f"DELETE FROM {quote_identifier(table)}", compiled.where_clause)
        result = await self.query(sql, compiled.parameter_values)
        return result.rowcount

    def _write_filters(
        self,
        statement: str,
        table: str,
        filters: Filters,
        allow_all: bool,
        value_offset: int = 0,
    ) -> CompiledFilter:
        compiled = self.compile_filters(filters, value_offset=value_offset)
        if not compiled.where_clause and not allow_all:
            self._log.warning("Refusing unfiltered %s on %s", statement, table)
            raise UnfilteredWriteError(statement, table)
        return compiled


def _join_sql(*parts: str) -> str:
    return " ".join(part for part in parts if part)
