"""Primary identity of a row."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import Any

from row_mapper.core.exceptions import ImmutableError, NoSuchColumnError
from row_mapper.core.values import identity_value, loosely_equal


class Primary:
    """Ordered, frozen mapping of primary key column to value.

    A ``None`` value means "not assigned yet" (a new row waiting for its
    autoincrement key). It can be filled exactly once with ``assign``;
    after that the value never changes.

    Two identities are equal when they name the same columns and their
    values are loosely equal, so ``Primary({"id": "1"}) == Primary({"id": 1})``.
    """

    __slots__ = ("_values",)

    def __init__(self, values: Mapping[str, Any]) -> None:
        self._values: dict[str, Any] = dict(values)

    def get(self, column: str) -> Any:
        try:
            return self._values[column]
        except KeyError:
            raise NoSuchColumnError(type(self).__name__, column) from None

    def assign(self, column: str, value: Any) -> None:
        """Install a value for a column that has none yet.

        Raises:
            NoSuchColumnError: If *column* is not part of this identity.
            ImmutableError: If the column already holds a value.
        """
        current = self.get(column)
        if current is not None:
            raise ImmutableError(type(self).__name__, column, "once it has a value")
        self._values[column] = value

    def has(self, column: str) -> bool:
        return column in self._values

    def is_complete(self) -> bool:
        """True when every key column holds a value."""
        return all(value is not None for value in self._values.values())

    @property
    def columns(self) -> tuple[str, ...]:
        return tuple(self._values)

    @property
    def key(self) -> tuple[Any, ...]:
        """Canonical values, usable as a dict key."""
        return tuple(identity_value(value) for value in self._values.values())

    def get_val(self) -> Any:
        """The bare value for a one-column key, a dict copy for composite keys."""
        if len(self._values) == 1:
            return next(iter(self._values.values()))
        return dict(self._values)

    def get_array_copy(self) -> dict[str, Any]:
        return dict(self._values)

    def __getitem__(self, column: str) -> Any:
        return self.get(column)

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Primary):
            return NotImplemented
        if set(self._values) != set(other._values):
            return False
        return all(
            loosely_equal(value, other._values[col]) for col, value in self._values.items()
        )

    def __hash__(self) -> int:
        return hash(tuple(sorted(zip(self._values, self.key), key=lambda pair: pair[0])))

    def __repr__(self) -> str:
        return f"Primary({self._values!r})"
