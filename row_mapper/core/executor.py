"""Statement executor.

The mapping layer never writes SQL. It asks the executor to "select these
columns from this table where these columns match" and to "insert, update
or delete this table for this row". SqlExecutor turns those requests into
parametrized statements and runs them through the connection locator.
"""

from __future__ import annotations

from collections.abc import Collection, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

import structlog

from row_mapper.core.connection import ConnectionLocator
from row_mapper.core.enums import StatementKind
from row_mapper.core.exceptions import StatementError
from row_mapper.core.params import normalize_params, param_name

ColumnFilters = Mapping[str, Any]


@dataclass(frozen=True)
class ExecuteResult:
    """Outcome of a single mutating statement."""

    affected: int
    generated_key: Any = None


@runtime_checkable
class QueryExecutor(Protocol):
    """Query/execute collaborator used by table gateways."""

    def select(
        self,
        table: str,
        filters: ColumnFilters,
        columns: Sequence[str],
    ) -> list[dict[str, Any]]:
        """Return rows of *columns* from *table* matching *filters*, in store order."""
        ...

    def execute(
        self,
        kind: StatementKind,
        table: str,
        payload: Mapping[str, Any],
        where: ColumnFilters,
        *,
        generated_column: str | None = None,
    ) -> ExecuteResult:
        """Run one insert, update or delete statement."""
        ...


def _is_collection(value: Any) -> bool:
    return isinstance(value, Collection) and not isinstance(value, (str, bytes, bytearray))


def build_where(filters: ColumnFilters, prefix: str = "w") -> tuple[str, dict[str, Any]]:
    """Build a WHERE clause from column filters.

    A scalar means equality, a collection means membership, ``None`` means
    IS NULL. An empty collection matches nothing.

    Returns:
        Tuple of (clause text without the WHERE keyword, bind params).
        The clause is empty when there are no filters.
    """
    conditions: list[str] = []
    params: dict[str, Any] = {}

    for position, (column, value) in enumerate(filters.items()):
        if value is None:
            conditions.append(f"{column} IS NULL")
        elif _is_collection(value):
            values = list(value)
            if not values:
                conditions.append("1 = 0")
                continue
            names = []
            for index, item in enumerate(values):
                name = param_name(f"{prefix}{position}", column, index)
                params[name] = item
                names.append(f":{name}")
            conditions.append(f"{column} IN ({', '.join(names)})")
        else:
            name = param_name(f"{prefix}{position}", column)
            params[name] = value
            conditions.append(f"{column} = :{name}")

    return " AND ".join(conditions), params


def build_select(
    table: str,
    filters: ColumnFilters,
    columns: Sequence[str],
) -> tuple[str, dict[str, Any]]:
    """Build a SELECT statement for *columns* of *table* matching *filters*."""
    sql = f"SELECT {', '.join(columns)} FROM {table}"
    clause, params = build_where(filters)
    if clause:
        sql += f" WHERE {clause}"
    return sql, params


def build_statement(
    kind: StatementKind,
    table: str,
    payload: Mapping[str, Any],
    where: ColumnFilters,
) -> tuple[str, dict[str, Any]]:
    """Build an INSERT, UPDATE or DELETE statement."""
    params: dict[str, Any] = {}
    names: dict[str, str] = {}
    for position, (column, value) in enumerate(payload.items()):
        name = param_name(f"c{position}", column)
        names[column] = name
        params[name] = value

    if kind is StatementKind.INSERT:
        if payload:
            cols = ", ".join(payload)
            vals = ", ".join(f":{names[col]}" for col in payload)
            return f"INSERT INTO {table} ({cols}) VALUES ({vals})", params
        return f"INSERT INTO {table} DEFAULT VALUES", params

    if kind is StatementKind.UPDATE:
        assignments = ", ".join(f"{col} = :{names[col]}" for col in payload)
        sql = f"UPDATE {table} SET {assignments}"
    else:
        sql = f"DELETE FROM {table}"

    clause, where_params = build_where(where)
    if clause:
        sql += f" WHERE {clause}"
    params.update(where_params)
    return sql, params


def _rows_to_dicts(cursor: Any) -> list[dict[str, Any]]:
    """Convert cursor results to list of dicts.

    Handles both tuple-like rows and dict-like rows from different adapters.
    """
    if cursor.description is None:
        return []
    columns = [desc[0] for desc in cursor.description]
    rows = cursor.fetchall()
    if not rows:
        return []

    # Check if rows are already dict-like (e.g., psycopg dict_row, MySQL dict cursor)
    if isinstance(rows[0], dict):
        return [dict(row) for row in rows]

    return [dict(zip(columns, row, strict=True)) for row in rows]


class SqlExecutor:
    """QueryExecutor that runs generated SQL through a ConnectionLocator.

    Reads use the read manager. Each write runs on the write manager and
    is committed immediately.
    """

    def __init__(
        self,
        connection_locator: ConnectionLocator,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self._connection_locator = connection_locator
        self._logger = logger or structlog.get_logger(__name__)

    @property
    def connection_locator(self) -> ConnectionLocator:
        return self._connection_locator

    def select(
        self,
        table: str,
        filters: ColumnFilters,
        columns: Sequence[str],
    ) -> list[dict[str, Any]]:
        """Fetch all rows of *columns* from *table* matching *filters*."""
        sql, params = build_select(table, filters, columns)
        manager = self._connection_locator.get_read()
        sql = normalize_params(sql, manager.adapter.paramstyle)

        with manager.get_connection() as conn:
            try:
                cursor = manager.adapter.execute(conn, sql, params)
            except Exception as e:
                raise StatementError(f"select {table}", str(e)) from e
            rows = _rows_to_dicts(cursor)

        self._logger.debug("statement_executed", kind="select", table=table, rows=len(rows))
        return rows

    def execute(
        self,
        kind: StatementKind,
        table: str,
        payload: Mapping[str, Any],
        where: ColumnFilters,
        *,
        generated_column: str | None = None,
    ) -> ExecuteResult:
        """Run one write statement and commit it.

        Args:
            kind: Statement kind.
            table: Table name.
            payload: Column values to insert or assign.
            where: Column filters for update and delete.
            generated_column: For inserts, the autoincrement column whose
                generated value should be reported back.
        """
        sql, params = build_statement(kind, table, payload, where)
        manager = self._connection_locator.get_write()
        adapter = manager.adapter
        sql = normalize_params(sql, adapter.paramstyle)
        generated_key = None

        with manager.get_connection() as conn:
            try:
                cursor = adapter.execute(conn, sql, params)
                affected = int(cursor.rowcount)
                if kind is StatementKind.INSERT and generated_column is not None and affected:
                    generated_key = adapter.last_insert_id(conn, cursor, table, generated_column)
            except Exception as e:
                conn.rollback()
                raise StatementError(f"{kind.value} {table}", str(e)) from e
            conn.commit()

        self._logger.debug(
            "statement_executed",
            kind=kind.value,
            table=table,
            affected=affected,
        )
        return ExecuteResult(affected=affected, generated_key=generated_key)
