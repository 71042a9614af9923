"""Static table descriptors."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from row_mapper.core.exceptions import TableDefinitionError


@dataclass(frozen=True)
class TableMetadata:
    """Column layout of one table.

    Args:
        name: Table name as the store knows it.
        columns: Every column, in select order.
        primary_key: Primary key column(s), a subset of ``columns``.
        autoincrement: Whether the store generates the (single) key on insert.
        defaults: Default values for new rows, keyed by column.
    """

    name: str
    columns: tuple[str, ...]
    primary_key: tuple[str, ...]
    autoincrement: bool = False
    defaults: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # Accept any sequence of names, store tuples
        object.__setattr__(self, "columns", tuple(self.columns))
        object.__setattr__(self, "primary_key", tuple(self.primary_key))
        object.__setattr__(self, "defaults", MappingProxyType(dict(self.defaults)))

        if not self.name:
            raise TableDefinitionError(self.name, "table name is empty")
        if not self.columns:
            raise TableDefinitionError(self.name, "no columns declared")
        if len(set(self.columns)) != len(self.columns):
            raise TableDefinitionError(self.name, "duplicate column names")
        if not self.primary_key:
            raise TableDefinitionError(self.name, "no primary key declared")

        unknown = [col for col in self.primary_key if col not in self.columns]
        if unknown:
            raise TableDefinitionError(self.name, f"primary key columns {unknown} not in columns")
        if self.autoincrement and len(self.primary_key) != 1:
            raise TableDefinitionError(self.name, "autoincrement needs a single-column key")

        unknown = [col for col in self.defaults if col not in self.columns]
        if unknown:
            raise TableDefinitionError(self.name, f"defaults for unknown columns {unknown}")

    def __hash__(self) -> int:
        return hash((self.name, self.columns, self.primary_key))

    @property
    def non_key_columns(self) -> tuple[str, ...]:
        """Columns outside the primary key, in table order."""
        return tuple(col for col in self.columns if col not in self.primary_key)

    def is_primary_column(self, column: str) -> bool:
        return column in self.primary_key

    def column_defaults(self) -> dict[str, Any]:
        """Default value for every column (``None`` where none is declared)."""
        return {col: self.defaults.get(col) for col in self.columns}
