"""MySQL adapter using mysql-connector-python."""

from __future__ import annotations

from typing import Any

from row_mapper.core.connection import ConnectionConfig
from row_mapper.core.exceptions import ConnectionError, PoolError


class MysqlSyncAdapter:
    """Synchronous MySQL adapter using mysql-connector-python."""

    @property
    def paramstyle(self) -> str:
        return "pyformat"

    def create_pool(self, config: ConnectionConfig) -> list[Any]:
        """Create a pool (list of connections) for MySQL."""
        import mysql.connector

        pool: list[Any] = []
        for _ in range(config.pool_size):
            try:
                conn = mysql.connector.connect(
                    host=config.host,
                    port=config.port or 3306,
                    user=config.user,
                    password=config.password,
                    database=config.database,
                    connection_timeout=config.pool_timeout,
                    **config.extra,
                )
            except mysql.connector.Error as e:
                raise ConnectionError(f"Cannot connect to MySQL: {e}") from e
            pool.append(conn)
        return pool

    def acquire_connection(self, pool: list[Any]) -> Any:
        """Acquire a connection from the pool."""
        if not pool:
            raise PoolError("No connections available in pool")
        return pool.pop()

    def release_connection(self, connection: Any, pool: list[Any]) -> None:
        """Release a connection back to the pool."""
        pool.append(connection)

    def close_pool(self, pool: list[Any]) -> None:
        """Close all connections in the pool."""
        for conn in pool:
            conn.close()
        pool.clear()

    def execute(
        self,
        connection: Any,
        sql: str,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Execute SQL and return a cursor with dictionary results."""
        cursor = connection.cursor(dictionary=True)
        cursor.execute(sql, params or {})
        return cursor

    def last_insert_id(self, connection: Any, cursor: Any, table: str, column: str) -> Any:
        """MySQL reports the AUTO_INCREMENT value on the cursor."""
        return cursor.lastrowid
