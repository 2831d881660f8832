"""CRUD operations.

Each operation renders its query, opens a transaction through ``with_tx``,
prepares and runs the statement, and for reads scans the rows into records.
Statements and cursors are closed on every exit path, and the transaction
is committed or rolled back before the operation returns or raises.
"""

from __future__ import annotations

from collections.abc import Iterable
from contextlib import closing
from typing import Any

from row_tx.adapters.protocol import Database
from row_tx.core.context import Context
from row_tx.core.exceptions import (
    BindingError,
    EmptyObjectListError,
    IncompleteExecutionError,
    IncompleteScanError,
    QueryBuildError,
    RowTxError,
)
from row_tx.core.query import QueryBuilder
from row_tx.core.result import BulkResult, ExecResult
from row_tx.core.transaction import UnitOfWork, with_read_tx, with_write_tx
from row_tx.mapping.descriptor import Mapping
from row_tx.mapping.protocol import RowCursor
from row_tx.mapping.registry import MappingRegistry, get_mapping, values_of
from row_tx.mapping.scanner import DEFAULT_SCAN_CAPACITY, RowScanner


def _build(query: QueryBuilder, limit: int | None = None) -> tuple[str, tuple[Any, ...]]:
    """Render a query, optionally forcing its row limit first."""
    try:
        if limit is not None:
            query = query.with_limit(limit)
        sql, args = query.to_sql()
    except RowTxError:
        raise
    except Exception as e:
        raise QueryBuildError(f"Failed to build query: {e}") from e
    return sql, tuple(args or ())


def _resolve_mapping(target: Mapping | Any, registry: MappingRegistry | None) -> Mapping:
    if isinstance(target, Mapping):
        return target
    return get_mapping(target, registry)


def _check_cursor(cursor: RowCursor, results: list[Any]) -> None:
    """Raise if the cursor stopped on an error rather than at the end."""
    error = cursor.error()
    if error is not None:
        raise IncompleteScanError(results, len(results), str(error)) from error


def _exec(database: Database, ctx: Context | None, sql: str, args: tuple[Any, ...]) -> ExecResult:
    def run(ctx: Context, tx: UnitOfWork) -> ExecResult:
        return tx.execute(sql, args)

    return with_write_tx(database, ctx, run)


def _exec_objects(
    database: Database,
    ctx: Context | None,
    sql: str,
    bound_args: tuple[Any, ...],
    objs: list[Any],
    registry: MappingRegistry | None,
) -> BulkResult:
    def run(ctx: Context, tx: UnitOfWork) -> BulkResult:
        results: list[ExecResult] = []
        with tx.prepare(sql) as statement:
            for index, obj in enumerate(objs):
                try:
                    args = (*bound_args, *values_of(obj, registry))
                    results.append(statement.execute(args))
                except RowTxError as e:
                    raise IncompleteExecutionError(
                        BulkResult(tuple(results)), index, str(e)
                    ) from e
        return BulkResult(tuple(results))

    return with_write_tx(database, ctx, run)


def insert(database: Database, ctx: Context | None, query: QueryBuilder) -> ExecResult:
    """Execute an INSERT in a write transaction.

    The query's bound arguments are used as statement parameters.
    """
    sql, args = _build(query)
    return _exec(database, ctx, sql, args)


def update(database: Database, ctx: Context | None, query: QueryBuilder) -> ExecResult:
    """Execute an UPDATE in a write transaction."""
    sql, args = _build(query)
    return _exec(database, ctx, sql, args)


def delete(database: Database, ctx: Context | None, query: QueryBuilder) -> ExecResult:
    """Execute a DELETE in a write transaction."""
    sql, args = _build(query)
    return _exec(database, ctx, sql, args)


def insert_objects(
    database: Database,
    ctx: Context | None,
    query: QueryBuilder,
    objs: Iterable[Any],
    *,
    registry: MappingRegistry | None = None,
) -> BulkResult:
    """Execute an INSERT once per object, all in one write transaction.

    Each execution binds the query's own arguments followed by
    ``values_of(obj)``.

    Raises:
        EmptyObjectListError: ``objs`` is empty. No transaction is opened.
        IncompleteExecutionError: An object failed; ``results`` holds the
            outcomes before it. The transaction is rolled back.
    """
    objs = list(objs)
    if not objs:
        raise EmptyObjectListError()
    sql, args = _build(query)
    return _exec_objects(database, ctx, sql, args, objs, registry)


def update_objects(
    database: Database,
    ctx: Context | None,
    query: QueryBuilder,
    objs: Iterable[Any],
    *,
    registry: MappingRegistry | None = None,
) -> BulkResult:
    """Execute an UPDATE once per object, all in one write transaction.

    See ``insert_objects`` for argument binding and failure behavior.
    """
    objs = list(objs)
    if not objs:
        raise EmptyObjectListError()
    sql, args = _build(query)
    return _exec_objects(database, ctx, sql, args, objs, registry)


def select_one(
    database: Database,
    ctx: Context | None,
    query: QueryBuilder,
    mapping: Mapping | Any,
    *,
    registry: MappingRegistry | None = None,
) -> Any:
    """Run ``query`` with its limit forced to 1 in a read-only transaction.

    ``mapping`` is a Mapping or a record class/instance to map by.
    Returns the record, or None if no row matched.
    """
    scanner: RowScanner[Any] = RowScanner(_resolve_mapping(mapping, registry))
    sql, args = _build(query, limit=1)

    def run(ctx: Context, tx: UnitOfWork) -> Any:
        with tx.prepare(sql) as statement, closing(statement.query(args)) as cursor:
            if not cursor.advance():
                _check_cursor(cursor, [])
                return None
            return scanner.scan_one(cursor)

    return with_read_tx(database, ctx, run)


def select(
    database: Database,
    ctx: Context | None,
    query: QueryBuilder,
    mapping: Mapping | Any,
    *,
    registry: MappingRegistry | None = None,
    capacity: int = DEFAULT_SCAN_CAPACITY,
) -> list[Any]:
    """Run ``query`` in a read-only transaction and scan the rows.

    Reads at most ``query.limit`` rows; all rows when the limit is absent.

    Raises:
        IncompleteScanError: A row failed to bind or the cursor failed
            mid-way; ``results`` holds the records read before it.
    """
    scanner: RowScanner[Any] = RowScanner(
        _resolve_mapping(mapping, registry), initial_capacity=capacity
    )
    sql, args = _build(query)
    limit = query.limit
    if limit is None or limit < 0:
        limit = -1

    def run(ctx: Context, tx: UnitOfWork) -> list[Any]:
        with tx.prepare(sql) as statement, closing(statement.query(args)) as cursor:
            if limit == 1:
                # single row: skip the scan buffer entirely
                if not cursor.advance():
                    _check_cursor(cursor, [])
                    return []
                try:
                    return [scanner.scan_one(cursor)]
                except BindingError as e:
                    raise IncompleteScanError([], 0, e.detail) from e

            results = scanner.scan_many(cursor, limit)
            if limit != 0:
                _check_cursor(cursor, results)
            return results

    return with_read_tx(database, ctx, run)

