"""Record, RecordSet and Related.

A Record is a Row plus the related records stitched onto it. It never
copies row data: every column read and write goes straight to the shared
Row.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Sequence
from typing import TYPE_CHECKING, Any, overload

from row_mapper.core.enums import RowStatus
from row_mapper.core.exceptions import TypeMismatchError, UnknownRelationError
from row_mapper.core.values import loosely_equal
from row_mapper.table.primary import Primary
from row_mapper.table.row import Row

if TYPE_CHECKING:
    from row_mapper.mapping.mapper import Mapper


class Related:
    """Named slots for related records.

    A slot is unloaded until something is stitched into it. One-side
    slots hold a Record or None, many-side slots hold a RecordSet.
    """

    def __init__(self, fields: Iterable[str]) -> None:
        self._values: dict[str, Record | RecordSet | None] = dict.fromkeys(fields)
        self._loaded: set[str] = set()

    def get(self, name: str) -> Record | RecordSet | None:
        self._assert_field(name)
        return self._values[name]

    def set(self, name: str, value: Record | RecordSet | None) -> None:
        self._assert_field(name)
        if value is not None and not isinstance(value, (Record, RecordSet)):
            raise TypeMismatchError("Record, RecordSet or None", type(value).__name__)
        self._values[name] = value
        self._loaded.add(name)

    def has(self, name: str) -> bool:
        """Check if *name* is a declared relation slot."""
        return name in self._values

    def is_loaded(self, name: str) -> bool:
        """Check if a value has been stitched (or set) into *name*."""
        self._assert_field(name)
        return name in self._loaded

    @property
    def fields(self) -> list[str]:
        return list(self._values)

    def get_array_copy(self) -> dict[str, Any]:
        """Copies of the loaded slots."""
        copy: dict[str, Any] = {}
        for name, value in self._values.items():
            if name not in self._loaded:
                continue
            copy[name] = value.get_array_copy() if value is not None else None
        return copy

    def _assert_field(self, name: str) -> None:
        if name not in self._values:
            raise UnknownRelationError(type(self).__name__, name)


class Record:
    """A Row wrapped with its Related slots.

    Columns and relations are reachable as attributes or items::

        record.title = "New"
        record["author"].name
    """

    def __init__(self, mapper_class: type[Mapper], row: Row, related: Related) -> None:
        object.__setattr__(self, "_mapper_class", mapper_class)
        object.__setattr__(self, "_row", row)
        object.__setattr__(self, "_related", related)

    @property
    def mapper_class(self) -> type[Mapper]:
        return self._mapper_class

    def get_row(self) -> Row:
        return self._row

    def get_related(self) -> Related:
        return self._related

    def get_primary(self) -> Primary:
        return self._row.get_primary()

    def get_status(self) -> RowStatus:
        return self._row.get_status()

    def get(self, name: str) -> Any:
        """Column value, or related value for a relation name."""
        if self._related.has(name):
            return self._related.get(name)
        return self._row.get(name)

    def set(self, name: str, value: Any) -> None:
        if self._related.has(name):
            self._related.set(name, value)
        else:
            self._row.set(name, value)

    def unset(self, name: str) -> None:
        if self._related.has(name):
            self._related.set(name, None)
        else:
            self._row.unset(name)

    def has(self, name: str) -> bool:
        return self._related.has(name) or self._row.has(name)

    def get_array_copy(self) -> dict[str, Any]:
        """Column values plus copies of loaded related records."""
        copy = self._row.get_array_copy()
        copy.update(self._related.get_array_copy())
        return copy

    def __getattr__(self, name: str) -> Any:
        # only reached for names that are not real attributes
        if name.startswith("_"):
            raise AttributeError(name)
        return self.get(name)

    def __setattr__(self, name: str, value: Any) -> None:
        if name.startswith("_"):
            object.__setattr__(self, name, value)
        else:
            self.set(name, value)

    def __delattr__(self, name: str) -> None:
        self.unset(name)

    def __getitem__(self, name: str) -> Any:
        return self.get(name)

    def __setitem__(self, name: str, value: Any) -> None:
        self.set(name, value)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.has(name)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self._row!r}>"


class RecordSet(Sequence[Record]):
    """Ordered collection of Records, in fetch order."""

    def __init__(
        self,
        records: Iterable[Record] = (),
        record_class: type[Record] = Record,
    ) -> None:
        self._record_class = record_class
        self._records: list[Record] = []
        for record in records:
            self.append(record)

    def append(self, record: Record) -> None:
        if not isinstance(record, self._record_class):
            raise TypeMismatchError(self._record_class.__name__, type(record).__name__)
        self._records.append(record)

    def is_empty(self) -> bool:
        return not self._records

    def get_col(self, column: str) -> list[Any]:
        """Values of one column across every record, in order."""
        return [record.get(column) for record in self._records]

    def filter(self, predicate: Callable[[Record], bool]) -> RecordSet:
        """New RecordSet of the records for which *predicate* is true."""
        return type(self)(
            (record for record in self._records if predicate(record)),
            self._record_class,
        )

    def get_one_by(self, **cols: Any) -> Record | None:
        """First record whose columns equal every given value."""
        for record in self._records:
            if _matches(record, cols):
                return record
        return None

    def get_all_by(self, **cols: Any) -> RecordSet:
        """Every record whose columns equal every given value."""
        return self.filter(lambda record: _matches(record, cols))

    def get_array_copy(self) -> list[dict[str, Any]]:
        return [record.get_array_copy() for record in self._records]

    @overload
    def __getitem__(self, index: int) -> Record: ...

    @overload
    def __getitem__(self, index: slice) -> RecordSet: ...

    def __getitem__(self, index: int | slice) -> Record | RecordSet:
        if isinstance(index, slice):
            return type(self)(self._records[index], self._record_class)
        return self._records[index]

    def __iter__(self) -> Iterator[Record]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} of {len(self._records)}>"


def _matches(record: Record, cols: dict[str, Any]) -> bool:
    return all(loosely_equal(record.get(col), value) for col, value in cols.items())
