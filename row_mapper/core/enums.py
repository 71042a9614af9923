"""Closed enumerations shared across the package."""

from __future__ import annotations

from enum import Enum


class DatabaseBackend(Enum):
    """Supported database backends."""

    SQLITE = "sqlite"
    POSTGRESQL = "postgresql"
    MYSQL = "mysql"


class RowStatus(str, Enum):
    """Lifecycle status of a Row.

    ``MODIFIED`` is not a stored status; see ``TableGateway.is_modified``.
    """

    NEW = "NEW"
    SELECTED = "SELECTED"
    INSERTED = "INSERTED"
    UPDATED = "UPDATED"
    DELETED = "DELETED"


class RelationKind(Enum):
    """Kinds of relation a mapper can declare."""

    ONE_TO_ONE = "one_to_one"
    ONE_TO_MANY = "one_to_many"
    MANY_TO_ONE = "many_to_one"
    MANY_TO_MANY = "many_to_many"

    @property
    def is_many(self) -> bool:
        """True when the relation stitches a RecordSet rather than a Record."""
        return self in (RelationKind.ONE_TO_MANY, RelationKind.MANY_TO_MANY)


class StatementKind(Enum):
    """Mutating statements the executor performs."""

    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"
