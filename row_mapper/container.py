"""Composition root.

A MapperContainer owns one identity map, so its lifetime is one unit of
work: every mapper it hands out shares the map, and a fresh container
starts with no tracked rows.
"""

from __future__ import annotations

from typing import TypeVar

import structlog

from row_mapper.core.connection import ConnectionConfig, ConnectionLocator
from row_mapper.core.executor import QueryExecutor, SqlExecutor
from row_mapper.core.locator import Locator
from row_mapper.mapping.events import MapperEvents
from row_mapper.mapping.mapper import Mapper
from row_mapper.table.gateway import TableGateway
from row_mapper.table.identity_map import IdentityMap

M = TypeVar("M", bound=Mapper)


class MapperContainer:
    """Lazily builds one gateway and one mapper per registered mapper class."""

    def __init__(
        self,
        executor: QueryExecutor,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self._executor = executor
        self._logger = logger or structlog.get_logger(__name__)
        self._identity_map = IdentityMap()
        self._gateways = Locator()
        self._mappers = Locator()
        self._registered: list[tuple[type[Mapper], MapperEvents | None]] = []

    @classmethod
    def from_config(
        cls,
        read: ConnectionConfig,
        write: ConnectionConfig | None = None,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> MapperContainer:
        """Create a container over a SqlExecutor built from connection configs."""
        executor = SqlExecutor(ConnectionLocator.from_config(read, write), logger=logger)
        return cls(executor, logger=logger)

    @property
    def identity_map(self) -> IdentityMap:
        return self._identity_map

    @property
    def executor(self) -> QueryExecutor:
        return self._executor

    def set_mappers(
        self,
        *mapper_classes: type[Mapper],
        events: MapperEvents | None = None,
    ) -> None:
        """Register mapper classes; nothing is built until first use."""
        for mapper_class in mapper_classes:
            self._register(mapper_class, events)
            self._registered.append((mapper_class, events))

    def _register(self, mapper_class: type[Mapper], events: MapperEvents | None) -> None:
        def gateway_factory() -> TableGateway:
            return TableGateway(
                mapper_class.table,
                self._executor,
                self._identity_map,
                logger=self._logger,
            )

        def mapper_factory() -> Mapper:
            return mapper_class(
                self._gateways.resolve(mapper_class),
                self._mappers,
                events=events,
                logger=self._logger,
            )

        self._gateways.register(mapper_class, gateway_factory)
        self._mappers.register(mapper_class, mapper_factory)

    def has_mapper(self, mapper_class: type[Mapper]) -> bool:
        return self._mappers.has(mapper_class)

    def mapper(self, mapper_class: type[M]) -> M:
        """Return the mapper for *mapper_class*.

        Raises:
            NotFoundError: If the class was never registered.
        """
        mapper: M = self._mappers.resolve(mapper_class)
        return mapper

    def gateway(self, mapper_class: type[Mapper]) -> TableGateway:
        """Return the table gateway behind *mapper_class*."""
        gateway: TableGateway = self._gateways.resolve(mapper_class)
        return gateway

    def new_unit_of_work(self) -> MapperContainer:
        """A container with the same executor and mappers but an empty identity map."""
        container = type(self)(self._executor, logger=self._logger)
        for mapper_class, events in self._registered:
            container.set_mappers(mapper_class, events=events)
        return container
