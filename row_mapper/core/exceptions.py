"""row_mapper exception hierarchy.

Caller bugs (unknown columns, deleted-row mutation, bad statuses, wrong
record types, unknown relations) and data faults (unexpected affected-row
counts) are raised. Not-found conditions are never raised; they come back
as ``None`` or ``False``.
"""

from __future__ import annotations

from typing import Any


class RowMapperError(Exception):
    """Base exception for all row_mapper errors."""


# --- Locator ---


class LocatorError(RowMapperError):
    """Base for locator errors."""


class NotFoundError(LocatorError):
    """Raised when a key has no registered factory."""

    def __init__(self, key: Any) -> None:
        self.key = key
        super().__init__(f"{_name_of(key)} not found in locator")


# --- Table definitions ---


class TableDefinitionError(RowMapperError):
    """Raised when a table descriptor is inconsistent."""

    def __init__(self, table_name: str, detail: str) -> None:
        self.table_name = table_name
        super().__init__(f"Invalid table '{table_name}': {detail}")


# --- Execution ---


class ExecutionError(RowMapperError):
    """Base for statement execution errors."""


class StatementError(ExecutionError):
    """Raised when the driver rejects a generated statement."""

    def __init__(self, label: str, detail: str) -> None:
        self.label = label
        super().__init__(f"Statement '{label}' failed: {detail}")


class UnexpectedAffectedRowCountError(ExecutionError):
    """Raised when a write touches a number of rows it never should.

    The in-memory row and the stored row have diverged; the unit of work
    should be abandoned.
    """

    def __init__(self, table_name: str, action: str, count: int) -> None:
        self.table_name = table_name
        self.action = action
        self.count = count
        super().__init__(
            f"Unexpected row count affected by {action} on '{table_name}': {count}"
        )


# --- Mapping ---


class MappingError(RowMapperError):
    """Base for row and record mapping errors."""


class NoSuchColumnError(MappingError):
    """Raised on access to a column the table does not declare."""

    def __init__(self, owner: str, column: str) -> None:
        self.owner = owner
        self.column = column
        super().__init__(f"Column {column!r} does not exist on {owner}")


class ImmutableError(MappingError):
    """Raised when a value that is frozen is modified."""

    def __init__(self, owner: str, column: str, reason: str) -> None:
        self.owner = owner
        self.column = column
        super().__init__(f"{owner}.{column} is immutable {reason}")


class InvalidStatusError(MappingError):
    """Raised when a row is given a status outside the known set."""

    def __init__(self, status: Any) -> None:
        self.status = status
        super().__init__(f"Expected valid row status, got '{status}' instead.")


class TypeMismatchError(MappingError):
    """Raised when a row or record of the wrong type reaches a gateway or mapper."""

    def __init__(self, expected: str, actual: str) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(f"Expected {expected}, got {actual} instead")


class PrimaryValueError(MappingError):
    """Raised when a primary key value does not fit the table's key columns."""

    def __init__(self, table_name: str, detail: str) -> None:
        self.table_name = table_name
        super().__init__(f"Bad primary value for '{table_name}': {detail}")


class IdentityMapError(MappingError):
    """Raised when the identity map is asked about a row it never tracked."""


# --- Relationships ---


class RelationshipError(RowMapperError):
    """Base for relationship errors."""


class UnknownRelationError(RelationshipError):
    """Raised when a relation name is not declared on a mapper."""

    def __init__(self, owner: str, relation_name: str) -> None:
        self.owner = owner
        self.relation_name = relation_name
        super().__init__(f"Relation '{relation_name}' is not defined on {owner}")


class RelationDefinitionError(RelationshipError):
    """Raised when a relation is declared inconsistently."""

    def __init__(self, owner: str, relation_name: str, detail: str) -> None:
        self.owner = owner
        self.relation_name = relation_name
        super().__init__(f"Cannot define relation '{relation_name}' on {owner}: {detail}")


# --- Adapter ---


class AdapterError(RowMapperError):
    """Base for adapter errors."""


class ConnectionError(AdapterError):  # noqa: A001
    """Raised on connection failures."""


class PoolError(AdapterError):
    """Raised on connection pool failures."""


def _name_of(key: Any) -> str:
    return getattr(key, "__qualname__", None) or str(key)
