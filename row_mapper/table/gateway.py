"""Table Gateway - per-table fetch and persist operations.

Every row the gateway hands out is routed through the identity map: a
tracked row is reused, an untracked one is built and registered.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import Any

import structlog

from row_mapper.core.enums import RowStatus, StatementKind
from row_mapper.core.exceptions import (
    ImmutableError,
    PrimaryValueError,
    TypeMismatchError,
    UnexpectedAffectedRowCountError,
)
from row_mapper.core.executor import ColumnFilters, QueryExecutor
from row_mapper.core.values import loosely_equal
from row_mapper.table.identity_map import IdentityMap
from row_mapper.table.metadata import TableMetadata
from row_mapper.table.primary import Primary
from row_mapper.table.row import Row


class TableGateway:
    """Fetches, creates and persists Rows of one table."""

    def __init__(
        self,
        table: TableMetadata,
        executor: QueryExecutor,
        identity_map: IdentityMap,
        row_class: type[Row] = Row,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self._table = table
        self._executor = executor
        self._identity_map = identity_map
        self._row_class = row_class
        self._logger = logger or structlog.get_logger(__name__)

    @property
    def table(self) -> TableMetadata:
        return self._table

    @property
    def identity_map(self) -> IdentityMap:
        return self._identity_map

    # --- identities ---

    def primary_identity(self, primary_val: Any) -> Primary:
        """Build a Primary identity from a key value.

        A one-column key takes a bare value (or a one-item mapping). A
        composite key takes a mapping of every key column, or a sequence
        of values in key column order.

        Raises:
            PrimaryValueError: If the value does not fit the key columns.
        """
        primary_key = self._table.primary_key

        if isinstance(primary_val, Primary):
            values: dict[str, Any] = primary_val.get_array_copy()
        elif isinstance(primary_val, Mapping):
            values = dict(primary_val)
        elif len(primary_key) == 1:
            values = {primary_key[0]: primary_val}
        elif isinstance(primary_val, Sequence) and not isinstance(primary_val, (str, bytes)):
            if len(primary_val) != len(primary_key):
                raise PrimaryValueError(
                    self._table.name,
                    f"expected {len(primary_key)} values, got {len(primary_val)}",
                )
            values = dict(zip(primary_key, primary_val, strict=True))
        else:
            raise PrimaryValueError(
                self._table.name,
                f"composite key {list(primary_key)} needs a mapping or sequence",
            )

        if set(values) != set(primary_key):
            raise PrimaryValueError(
                self._table.name,
                f"expected columns {list(primary_key)}, got {list(values)}",
            )
        if any(values[col] is None for col in primary_key):
            raise PrimaryValueError(self._table.name, "key values cannot be None")
        return Primary({col: values[col] for col in primary_key})

    def _primary_filters(self, primary: Primary) -> dict[str, Any]:
        return primary.get_array_copy()

    # --- fetching ---

    def fetch_row(self, primary_val: Any) -> Row | None:
        """Fetch one row by primary key, from the identity map when tracked."""
        primary = self.primary_identity(primary_val)
        with self._identity_map.lock(self._table.name, primary):
            row = self._identity_map.get_row_by_primary(self._table.name, primary)
            if row is not None:
                return row
            data = self._select(self._primary_filters(primary))
            if not data:
                return None
            return self._identified_or_selected(data[0])

    def fetch_rows(self, primary_vals: Iterable[Any]) -> list[Row]:
        """Fetch rows for many primary keys with at most one query.

        Tracked rows come from the identity map; the rest are selected in a
        single batch. The result follows the requested order, skips keys
        the store does not have, and lists a repeated key once.
        """
        slots: dict[tuple[Any, ...], Row | None] = {}
        missing: dict[tuple[Any, ...], Primary] = {}

        for primary_val in primary_vals:
            primary = self.primary_identity(primary_val)
            key = primary.key
            if key in slots:
                continue
            row = self._identity_map.get_row_by_primary(self._table.name, primary)
            slots[key] = row
            if row is None:
                missing[key] = primary

        if missing:
            self._fill_missing_rows(missing, slots)

        return [row for row in slots.values() if row is not None]

    def _fill_missing_rows(
        self,
        missing: dict[tuple[Any, ...], Primary],
        slots: dict[tuple[Any, ...], Row | None],
    ) -> None:
        filters: dict[str, Any] = {}
        for col in self._table.primary_key:
            values: list[Any] = []
            for primary in missing.values():
                value = primary.get(col)
                if value not in values:
                    values.append(value)
            filters[col] = values

        for cols in self._select(filters):
            primary = self.primary_identity({col: cols[col] for col in self._table.primary_key})
            # a composite IN filter can match key combinations nobody asked for
            if primary.key not in missing:
                continue
            slots[primary.key] = self.get_identified_or_selected_row(cols)

        self._logger.debug(
            "rows_batch_fetched",
            table=self._table.name,
            requested=len(missing),
            found=sum(1 for key in missing if slots[key] is not None),
        )

    def fetch_row_by(self, filters: ColumnFilters) -> Row | None:
        """Fetch the first row matching *filters*."""
        data = self._select(filters)
        if not data:
            return None
        return self.get_identified_or_selected_row(data[0])

    def fetch_rows_by(self, filters: ColumnFilters) -> list[Row]:
        """Fetch every row matching *filters*, in store order."""
        return [self.get_identified_or_selected_row(cols) for cols in self._select(filters)]

    def _select(self, filters: ColumnFilters) -> list[dict[str, Any]]:
        return self._executor.select(self._table.name, filters, self._table.columns)

    # --- row construction ---

    def get_identified_or_selected_row(self, cols: Mapping[str, Any]) -> Row:
        """Return the tracked row for *cols*' key, or track a new SELECTED row.

        A tracked row keeps its current (possibly unsaved) values; *cols*
        is ignored in that case.
        """
        primary = self.primary_identity({col: cols.get(col) for col in self._table.primary_key})
        with self._identity_map.lock(self._table.name, primary):
            return self._identified_or_selected(cols)

    def _identified_or_selected(self, cols: Mapping[str, Any]) -> Row:
        primary = self.primary_identity({col: cols.get(col) for col in self._table.primary_key})
        row = self._identity_map.get_row_by_primary(self._table.name, primary)
        if row is not None:
            return row

        row = self.new_row(cols)
        row.set_status(RowStatus.SELECTED)
        self._identity_map.set_row(row, row.get_array_copy())
        return row

    def new_row(self, cols: Mapping[str, Any] | None = None) -> Row:
        """Build a NEW row from table defaults overlaid with *cols*.

        Key columns missing from *cols* stay ``None`` until assigned. The
        row is not tracked until it is inserted.
        """
        values = self._table.column_defaults()
        values.update(cols or {})

        primary = Primary({col: values.pop(col, None) for col in self._table.primary_key})
        return self._row_class(self._table, primary, values)

    # --- persisting ---

    def insert(self, row: Row) -> bool:
        """Insert *row*.

        Returns:
            True on success, False if the store inserted nothing.

        Raises:
            TypeMismatchError: If *row* belongs to another table.
            ImmutableError: If *row* is deleted.
            UnexpectedAffectedRowCountError: If more than one row was inserted.
        """
        self._assert_row(row)
        if row.has_status(RowStatus.DELETED):
            raise ImmutableError(type(row).__name__, "status", "once deleted")

        payload = row.get_array_copy()
        generated_column = None
        if self._table.autoincrement:
            generated_column = self._table.primary_key[0]
            if payload[generated_column] is None:
                del payload[generated_column]
            else:
                generated_column = None
        if generated_column is None and not row.get_primary().is_complete():
            raise PrimaryValueError(self._table.name, "key values cannot be None")

        result = self._executor.execute(
            StatementKind.INSERT,
            self._table.name,
            payload,
            {},
            generated_column=generated_column,
        )
        if result.affected == 0:
            self._logger.warning("row_not_inserted", table=self._table.name)
            return False
        if result.affected != 1:
            raise UnexpectedAffectedRowCountError(self._table.name, "insert", result.affected)

        if generated_column is not None:
            row.get_primary().assign(generated_column, result.generated_key)

        self._identity_map.set_row(row, row.get_array_copy())
        row.set_status(RowStatus.INSERTED)
        self._logger.info(
            "row_inserted",
            table=self._table.name,
            primary=row.get_primary().get_array_copy(),
        )
        return True

    def update(self, row: Row) -> bool | None:
        """Write the changed columns of *row*.

        Returns:
            None if nothing changed (no statement is issued), True on
            success, False if no stored row matched the key.

        Raises:
            TypeMismatchError: If *row* belongs to another table.
            ImmutableError: If *row* is deleted.
            UnexpectedAffectedRowCountError: If more than one row was updated.
        """
        self._assert_row(row)
        if row.has_status(RowStatus.DELETED):
            raise ImmutableError(type(row).__name__, "status", "once deleted")

        diff = self.get_array_diff(row)
        if not diff:
            return None

        result = self._executor.execute(
            StatementKind.UPDATE,
            self._table.name,
            diff,
            self._primary_filters(row.get_primary()),
        )
        if result.affected == 0:
            self._logger.warning(
                "row_not_updated",
                table=self._table.name,
                primary=row.get_primary().get_array_copy(),
            )
            return False
        if result.affected != 1:
            raise UnexpectedAffectedRowCountError(self._table.name, "update", result.affected)

        self._identity_map.set_initial(row)
        row.set_status(RowStatus.UPDATED)
        self._logger.info(
            "row_updated",
            table=self._table.name,
            primary=row.get_primary().get_array_copy(),
            columns=sorted(diff),
        )
        return True

    def delete(self, row: Row) -> bool:
        """Delete *row* from the store.

        The row stays in the identity map, marked DELETED.

        Returns:
            True on success, False if the stored row was already gone.

        Raises:
            TypeMismatchError: If *row* belongs to another table.
            UnexpectedAffectedRowCountError: If more than one row was deleted.
        """
        self._assert_row(row)
        result = self._executor.execute(
            StatementKind.DELETE,
            self._table.name,
            {},
            self._primary_filters(row.get_primary()),
        )
        if result.affected == 0:
            self._logger.warning(
                "row_not_deleted",
                table=self._table.name,
                primary=row.get_primary().get_array_copy(),
            )
            return False
        if result.affected != 1:
            raise UnexpectedAffectedRowCountError(self._table.name, "delete", result.affected)

        row.set_status(RowStatus.DELETED)
        self._logger.info(
            "row_deleted",
            table=self._table.name,
            primary=row.get_primary().get_array_copy(),
        )
        return True

    # --- dirty tracking ---

    def get_array_diff(self, row: Row) -> dict[str, Any]:
        """Columns whose value differs from the row's baseline.

        Numeric pairs compare by value (``"10"`` equals ``10``), anything
        else strictly (``"10"`` differs from ``"10 "``). Key columns are
        never part of the diff.
        """
        initial = self._identity_map.get_initial(row)
        diff: dict[str, Any] = {}
        for col in self._table.non_key_columns:
            value = row.get(col)
            if col not in initial or not loosely_equal(value, initial[col]):
                diff[col] = value
        return diff

    def is_modified(self, row: Row) -> bool:
        """True for a live tracked row with unsaved changes."""
        if row.has_status((RowStatus.NEW, RowStatus.DELETED)):
            return False
        return bool(self.get_array_diff(row))

    def _assert_row(self, row: Row) -> None:
        if not isinstance(row, self._row_class) or row.table != self._table:
            actual = type(row).__name__
            if isinstance(row, Row):
                actual = f"{actual} of '{row.table.name}'"
            raise TypeMismatchError(
                f"{self._row_class.__name__} of '{self._table.name}'",
                actual,
            )
