"""Identity Map - one Row instance per (table, primary identity).

The map also keeps each row's "initial" snapshot: its values as of the
last load or save. The difference between a row's current values and its
snapshot is what an update writes.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import Any

from row_mapper.core.exceptions import IdentityMapError
from row_mapper.table.primary import Primary
from row_mapper.table.row import Row

_MapKey = tuple[str, tuple[Any, ...]]


class IdentityMap:
    """Registry of tracked rows for one unit of work.

    Rows are never evicted; a deleted row stays registered (with DELETED
    status) until the map itself is discarded.
    """

    def __init__(self) -> None:
        self._rows: dict[_MapKey, Row] = {}
        self._initial: dict[Row, dict[str, Any]] = {}
        self._locks: dict[_MapKey, threading.Lock] = {}
        self._guard = threading.Lock()

    @staticmethod
    def _key(table_name: str, primary: Primary) -> _MapKey:
        return table_name, primary.key

    def has_primary(self, table_name: str, primary: Primary) -> bool:
        return self._key(table_name, primary) in self._rows

    def get_row_by_primary(self, table_name: str, primary: Primary) -> Row | None:
        return self._rows.get(self._key(table_name, primary))

    def set_row(self, row: Row, initial: Mapping[str, Any]) -> None:
        """Register *row* under its identity with *initial* as its baseline.

        Raises:
            IdentityMapError: If the row's identity is not fully assigned.
        """
        primary = row.get_primary()
        if not primary.is_complete():
            raise IdentityMapError(
                f"Cannot track a row of '{row.table.name}' without a complete "
                f"primary key: {primary.get_array_copy()!r}"
            )
        key = self._key(row.table.name, primary)
        previous = self._rows.get(key)
        if previous is not None and previous is not row:
            self._initial.pop(previous, None)
        self._rows[key] = row
        self._initial[row] = dict(initial)

    def get_initial(self, row: Row) -> dict[str, Any]:
        """Return the baseline snapshot for *row*.

        Raises:
            IdentityMapError: If *row* was never registered.
        """
        try:
            return dict(self._initial[row])
        except KeyError:
            raise IdentityMapError(f"Row is not tracked by the identity map: {row!r}") from None

    def set_initial(self, row: Row) -> None:
        """Re-baseline *row* from its current values."""
        if row not in self._initial:
            raise IdentityMapError(f"Row is not tracked by the identity map: {row!r}")
        self._initial[row] = row.get_array_copy()

    @contextmanager
    def lock(self, table_name: str, primary: Primary) -> Iterator[None]:
        """Hold the critical section for one (table, identity) key.

        Wrap a "check, else fetch and register" sequence in this so two
        threads cannot register two rows for one identity.
        """
        key = self._key(table_name, primary)
        with self._guard:
            lock = self._locks.setdefault(key, threading.Lock())
        with lock:
            yield

    def __len__(self) -> int:
        return len(self._rows)

    def __iter__(self) -> Iterator[Row]:
        return iter(list(self._rows.values()))
