"""Connection configuration and management.

ConnectionConfig is a Pydantic model for type-safe connection config.
ConnectionManager uses the SyncAdapter protocol for pool-based connection
lifecycle. ConnectionLocator routes reads and writes to their managers.
"""

from __future__ import annotations

import importlib
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from pydantic import BaseModel

from row_mapper.core.enums import DatabaseBackend
from row_mapper.core.exceptions import AdapterError


class ConnectionConfig(BaseModel):
    """Configuration for database connections."""

    driver: str
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str
    pool_size: int = 5
    pool_timeout: int = 30
    pool_recycle: int = 1800
    extra: dict[str, Any] = {}


# Adapter module mapping: backend → (module_path, class_name)
_ADAPTER_MAP: dict[DatabaseBackend, tuple[str, str]] = {
    DatabaseBackend.SQLITE: ("row_mapper.adapters.sqlite", "SqliteSyncAdapter"),
    DatabaseBackend.POSTGRESQL: ("row_mapper.adapters.postgresql", "PostgresqlSyncAdapter"),
    DatabaseBackend.MYSQL: ("row_mapper.adapters.mysql", "MysqlSyncAdapter"),
}


def _load_adapter(driver: str) -> Any:
    """Load an adapter by driver name."""
    try:
        backend = DatabaseBackend(driver.lower())
    except ValueError:
        raise AdapterError(f"Unsupported database driver: {driver}") from None

    module_path, cls_name = _ADAPTER_MAP[backend]
    try:
        module = importlib.import_module(module_path)
        return getattr(module, cls_name)()
    except (ImportError, AttributeError) as e:
        raise AdapterError(f"Failed to load adapter for '{driver}': {e}") from e


class ConnectionManager:
    """Connection manager using the SyncAdapter protocol."""

    def __init__(self, config: ConnectionConfig) -> None:
        self.config = config
        self._adapter = _load_adapter(config.driver)
        self._pool: Any = None

    @property
    def adapter(self) -> Any:
        return self._adapter

    def initialize_pool(self) -> Any:
        """Initialize the connection pool."""
        if self._pool is None:
            self._pool = self._adapter.create_pool(self.config)
        return self._pool

    @contextmanager
    def get_connection(self) -> Iterator[Any]:
        """Get a connection from the pool as a context manager."""
        if self._pool is None:
            self.initialize_pool()
        connection = self._adapter.acquire_connection(self._pool)
        try:
            yield connection
        finally:
            self._adapter.release_connection(connection, self._pool)

    def close_pool(self) -> None:
        """Close the connection pool."""
        if self._pool is not None:
            self._adapter.close_pool(self._pool)
            self._pool = None


class ConnectionLocator:
    """Read and write connection managers.

    Without a dedicated write manager, writes go through the read manager.
    """

    def __init__(
        self,
        read: ConnectionManager,
        write: ConnectionManager | None = None,
    ) -> None:
        self._read = read
        self._write = write

    @classmethod
    def from_config(
        cls,
        read: ConnectionConfig,
        write: ConnectionConfig | None = None,
    ) -> ConnectionLocator:
        """Create a ConnectionLocator from one or two ConnectionConfigs."""
        read_manager = ConnectionManager(read)
        write_manager = ConnectionManager(write) if write is not None else None
        return cls(read_manager, write_manager)

    def get_read(self) -> ConnectionManager:
        return self._read

    def get_write(self) -> ConnectionManager:
        return self._write if self._write is not None else self._read

    def close(self) -> None:
        """Close every pool this locator holds."""
        self._read.close_pool()
        if self._write is not None:
            self._write.close_pool()
