"""Row - one table record with a frozen identity and a lifecycle status."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from typing import Any

from row_mapper.core.enums import RowStatus
from row_mapper.core.exceptions import (
    ImmutableError,
    InvalidStatusError,
    NoSuchColumnError,
)
from row_mapper.table.metadata import TableMetadata
from row_mapper.table.primary import Primary


def _coerce_status(status: RowStatus | str) -> RowStatus:
    try:
        return RowStatus(status)
    except ValueError:
        raise InvalidStatusError(status) from None


class Row:
    """A single-table record.

    Non-key columns are mutable until the row is deleted. Primary key
    columns are readable through ``get`` but never settable here; the
    identity lives in ``Primary``.

    Rows are shared: the identity map and every Record built over a row
    hold the same instance, so a change made through one is seen by all.
    """

    def __init__(
        self,
        table: TableMetadata,
        primary: Primary,
        cols: Mapping[str, Any] | None = None,
    ) -> None:
        self._table = table
        self._primary = primary
        self._status = RowStatus.NEW
        self._cols: dict[str, Any] = dict.fromkeys(table.non_key_columns)
        for col, val in (cols or {}).items():
            if col not in self._cols:
                raise NoSuchColumnError(self._owner, col)
            self._cols[col] = val

    @property
    def _owner(self) -> str:
        return f"{type(self).__name__}({self._table.name})"

    @property
    def table(self) -> TableMetadata:
        return self._table

    def get(self, column: str) -> Any:
        """Return a column value.

        Raises:
            NoSuchColumnError: If the table does not declare *column*.
        """
        if column in self._cols:
            return self._cols[column]
        if self._primary.has(column):
            return self._primary.get(column)
        raise NoSuchColumnError(self._owner, column)

    def set(self, column: str, value: Any) -> None:
        """Set a non-key column value.

        Raises:
            NoSuchColumnError: If the table does not declare *column*.
            ImmutableError: If the row is deleted, or *column* is a key column.
        """
        if self._primary.has(column):
            raise ImmutableError(self._owner, column, "as a primary key column")
        self._assert_mutable(column)
        self._cols[column] = value

    def unset(self, column: str) -> None:
        """Set a non-key column to ``None``; key columns are left alone."""
        if self._primary.has(column):
            return
        self._assert_mutable(column)
        self._cols[column] = None

    def has(self, column: str) -> bool:
        """Check if *column* is declared on this row's table."""
        return column in self._cols or self._primary.has(column)

    def get_primary(self) -> Primary:
        return self._primary

    def get_status(self) -> RowStatus:
        return self._status

    def set_status(self, status: RowStatus | str) -> None:
        """Move the row to *status*.

        Raises:
            InvalidStatusError: If *status* is not a RowStatus value.
            ImmutableError: If the row is deleted and *status* is not DELETED.
        """
        new_status = _coerce_status(status)
        if self._status is RowStatus.DELETED and new_status is not RowStatus.DELETED:
            raise ImmutableError(self._owner, "status", "once deleted")
        self._status = new_status

    def has_status(self, statuses: RowStatus | str | Iterable[RowStatus | str]) -> bool:
        """Check the current status against one status or a collection of them."""
        if isinstance(statuses, (RowStatus, str)):
            statuses = [statuses]
        return self._status in {_coerce_status(status) for status in statuses}

    def get_array_copy(self) -> dict[str, Any]:
        """Snapshot of key columns followed by non-key columns."""
        copy = self._primary.get_array_copy()
        copy.update(self._cols)
        return copy

    def _assert_mutable(self, column: str) -> None:
        if column not in self._cols:
            raise NoSuchColumnError(self._owner, column)
        if self._status is RowStatus.DELETED:
            raise ImmutableError(self._owner, column, "once deleted")

    def __getitem__(self, column: str) -> Any:
        return self.get(column)

    def __setitem__(self, column: str, value: Any) -> None:
        self.set(column, value)

    def __delitem__(self, column: str) -> None:
        self.unset(column)

    def __contains__(self, column: object) -> bool:
        return isinstance(column, str) and self.has(column)

    def __iter__(self) -> Iterator[str]:
        return iter(self._table.columns)

    def __repr__(self) -> str:
        return f"<{self._owner} {self._primary.get_array_copy()!r} {self._status.value}>"
