"""row_mapper - identity-mapped rows, records and relationships over SQL tables."""

from __future__ import annotations

from row_mapper.container import MapperContainer
from row_mapper.core.connection import ConnectionConfig, ConnectionLocator, ConnectionManager
from row_mapper.core.enums import DatabaseBackend, RelationKind, RowStatus, StatementKind
from row_mapper.core.exceptions import (
    AdapterError,
    ConnectionError,  # noqa: A004
    ExecutionError,
    IdentityMapError,
    ImmutableError,
    InvalidStatusError,
    LocatorError,
    MappingError,
    NoSuchColumnError,
    NotFoundError,
    PoolError,
    PrimaryValueError,
    RelationDefinitionError,
    RelationshipError,
    RowMapperError,
    StatementError,
    TableDefinitionError,
    TypeMismatchError,
    UnexpectedAffectedRowCountError,
    UnknownRelationError,
)
from row_mapper.core.executor import ExecuteResult, QueryExecutor, SqlExecutor
from row_mapper.core.locator import Locator
from row_mapper.mapping import (
    Mapper,
    MapperEvents,
    Record,
    RecordSet,
    Related,
    Relation,
    Relationships,
)
from row_mapper.table import IdentityMap, Primary, Row, TableGateway, TableMetadata

__all__ = [
    # Connection
    "ConnectionConfig",
    "ConnectionManager",
    "ConnectionLocator",
    # Execution
    "QueryExecutor",
    "SqlExecutor",
    "ExecuteResult",
    # Locator / container
    "Locator",
    "MapperContainer",
    # Table
    "TableMetadata",
    "Primary",
    "Row",
    "IdentityMap",
    "TableGateway",
    # Mapping
    "Mapper",
    "MapperEvents",
    "Record",
    "RecordSet",
    "Related",
    "Relation",
    "Relationships",
    # Enums
    "DatabaseBackend",
    "RowStatus",
    "RelationKind",
    "StatementKind",
    # Exceptions
    "RowMapperError",
    "LocatorError",
    "NotFoundError",
    "TableDefinitionError",
    "ExecutionError",
    "StatementError",
    "UnexpectedAffectedRowCountError",
    "MappingError",
    "NoSuchColumnError",
    "ImmutableError",
    "InvalidStatusError",
    "TypeMismatchError",
    "PrimaryValueError",
    "IdentityMapError",
    "RelationshipError",
    "UnknownRelationError",
    "RelationDefinitionError",
    "AdapterError",
    "ConnectionError",
    "PoolError",
]
