"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Iterator
from unittest.mock import MagicMock

import pytest
from mappers import ALL_MAPPERS, DATA, SCHEMA, AuthorMapper, BookMapper, DegreeMapper, TagMapper

from row_mapper.container import MapperContainer
from row_mapper.core.connection import ConnectionConfig, ConnectionLocator, ConnectionManager
from row_mapper.core.executor import SqlExecutor


@pytest.fixture
def sqlite_config() -> ConnectionConfig:
    """SQLite in-memory connection config."""
    return ConnectionConfig(driver="sqlite", database=":memory:", pool_size=1)


@pytest.fixture
def connection_locator(sqlite_config: ConnectionConfig) -> Iterator[ConnectionLocator]:
    """Connection locator over a seeded in-memory database."""
    manager = ConnectionManager(sqlite_config)
    with manager.get_connection() as conn:
        for statement in SCHEMA + DATA:
            conn.execute(statement)
        conn.commit()
    locator = ConnectionLocator(manager)
    yield locator
    locator.close()


@pytest.fixture
def executor(connection_locator: ConnectionLocator) -> MagicMock:
    """SqlExecutor wrapped in a spy so tests can count statements."""
    return MagicMock(wraps=SqlExecutor(connection_locator))


@pytest.fixture
def container(executor: MagicMock) -> MapperContainer:
    """Container with every sample mapper registered."""
    container = MapperContainer(executor)
    container.set_mappers(*ALL_MAPPERS)
    return container


@pytest.fixture
def authors(container: MapperContainer) -> AuthorMapper:
    return container.mapper(AuthorMapper)


@pytest.fixture
def books(container: MapperContainer) -> BookMapper:
    return container.mapper(BookMapper)


@pytest.fixture
def tags(container: MapperContainer) -> TagMapper:
    return container.mapper(TagMapper)


@pytest.fixture
def degrees(container: MapperContainer) -> DegreeMapper:
    return container.mapper(DegreeMapper)
