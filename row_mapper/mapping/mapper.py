"""Mapper - Records and RecordSets over a table gateway.

Subclass Mapper once per table, set ``table`` and declare relations in
``define_relations``::

    class AuthorMapper(Mapper):
        table = TableMetadata(
            name="authors",
            columns=("author_id", "name"),
            primary_key=("author_id",),
            autoincrement=True,
        )

        def define_relations(self) -> None:
            self.one_to_many("books", BookMapper)
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, ClassVar

import structlog

from row_mapper.core.exceptions import TypeMismatchError
from row_mapper.core.executor import ColumnFilters
from row_mapper.core.locator import Locator
from row_mapper.mapping.events import MapperEvents
from row_mapper.mapping.record import Record, RecordSet, Related
from row_mapper.mapping.relationships import Relation, Relationships, WithSpec
from row_mapper.table.gateway import TableGateway
from row_mapper.table.metadata import TableMetadata
from row_mapper.table.row import Row


class Mapper:
    """Maps one table's rows to Records and persists them back."""

    table: ClassVar[TableMetadata]
    record_class: ClassVar[type[Record]] = Record
    record_set_class: ClassVar[type[RecordSet]] = RecordSet

    def __init__(
        self,
        gateway: TableGateway,
        mapper_locator: Locator,
        events: MapperEvents | None = None,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        if gateway.table != self.table:
            raise TypeMismatchError(
                f"gateway for '{self.table.name}'",
                f"gateway for '{gateway.table.name}'",
            )
        self._gateway = gateway
        self._events = events or MapperEvents()
        self._logger = logger or structlog.get_logger(__name__)
        self._relationships = Relationships(type(self), mapper_locator, logger=self._logger)
        self.define_relations()

    def define_relations(self) -> None:
        """Declare this mapper's relations. Override in subclasses."""

    @property
    def gateway(self) -> TableGateway:
        return self._gateway

    @property
    def relationships(self) -> Relationships:
        return self._relationships

    # --- relation declarations ---

    def one_to_one(
        self,
        name: str,
        foreign_mapper_class: type[Mapper],
        on: Mapping[str, str] | None = None,
    ) -> Relation:
        return self._relationships.one_to_one(name, foreign_mapper_class, on)

    def one_to_many(
        self,
        name: str,
        foreign_mapper_class: type[Mapper],
        on: Mapping[str, str] | None = None,
    ) -> Relation:
        return self._relationships.one_to_many(name, foreign_mapper_class, on)

    def many_to_one(
        self,
        name: str,
        foreign_mapper_class: type[Mapper],
        on: Mapping[str, str] | None = None,
    ) -> Relation:
        return self._relationships.many_to_one(name, foreign_mapper_class, on)

    def many_to_many(
        self,
        name: str,
        foreign_mapper_class: type[Mapper],
        through: str,
        on: Mapping[str, str] | None = None,
    ) -> Relation:
        return self._relationships.many_to_many(name, foreign_mapper_class, through, on)

    # --- fetching ---

    def fetch_record(self, primary_val: Any, with_: WithSpec = None) -> Record | None:
        """Fetch one record by primary key; None if the store has no such row."""
        tree = self._relationships.validate_with(with_)
        row = self._gateway.fetch_row(primary_val)
        if row is None:
            return None
        return self._new_record_from_row(row, tree)

    def fetch_record_by(self, filters: ColumnFilters, with_: WithSpec = None) -> Record | None:
        """Fetch the first record matching *filters*."""
        tree = self._relationships.validate_with(with_)
        row = self._gateway.fetch_row_by(filters)
        if row is None:
            return None
        return self._new_record_from_row(row, tree)

    def fetch_record_set(self, primary_vals: Iterable[Any], with_: WithSpec = None) -> RecordSet:
        """Fetch records by primary keys, in the requested order, skipping missing keys."""
        tree = self._relationships.validate_with(with_)
        rows = self._gateway.fetch_rows(primary_vals)
        return self._new_record_set_from_rows(rows, tree)

    def fetch_record_set_by(self, filters: ColumnFilters, with_: WithSpec = None) -> RecordSet:
        """Fetch every record matching *filters*, in store order."""
        tree = self._relationships.validate_with(with_)
        rows = self._gateway.fetch_rows_by(filters)
        return self._new_record_set_from_rows(rows, tree)

    # --- construction ---

    def new_record(self, cols: Mapping[str, Any] | None = None) -> Record:
        """Build a record around a NEW row; it is not tracked until inserted."""
        record = self._new_record_from_row(self._gateway.new_row(cols))
        self._events.modify_new_record(self, record)
        return record

    def new_record_set(self, records: Iterable[Record] = (), with_: WithSpec = None) -> RecordSet:
        """Collect *records* into a set and load the relations named in *with_*."""
        tree = self._relationships.validate_with(with_)
        record_set = self.record_set_class(records, self.record_class)
        self._relationships.stitch_into_records(list(record_set), tree)
        return record_set

    def get_selected_record(self, cols: Mapping[str, Any], with_: WithSpec = None) -> Record:
        """Build a record from a row selected elsewhere, reusing the tracked row if any."""
        tree = self._relationships.validate_with(with_)
        row = self._gateway.get_identified_or_selected_row(cols)
        return self._new_record_from_row(row, tree)

    def get_selected_record_set(
        self,
        data: Iterable[Mapping[str, Any]],
        with_: WithSpec = None,
    ) -> RecordSet:
        """Build a record set from rows selected elsewhere."""
        tree = self._relationships.validate_with(with_)
        rows = [self._gateway.get_identified_or_selected_row(cols) for cols in data]
        return self._new_record_set_from_rows(rows, tree)

    def _new_record_from_row(self, row: Row, with_: WithSpec = None) -> Record:
        record = self.record_class(type(self), row, Related(self._relationships.fields))
        self._relationships.stitch_into_records([record], with_)
        return record

    def _new_record_set_from_rows(self, rows: Iterable[Row], with_: WithSpec) -> RecordSet:
        records = [self._new_record_from_row(row) for row in rows]
        return self.new_record_set(records, with_)

    # --- persisting ---

    def insert(self, record: Record) -> bool:
        """Insert the record's row. See ``TableGateway.insert``."""
        self._assert_record(record)
        self._events.before_insert(self, record)
        inserted = self._gateway.insert(record.get_row())
        if inserted:
            self._events.after_insert(self, record)
        return inserted

    def update(self, record: Record) -> bool | None:
        """Write the record's changed columns. See ``TableGateway.update``."""
        self._assert_record(record)
        self._events.before_update(self, record)
        updated = self._gateway.update(record.get_row())
        if updated:
            self._events.after_update(self, record)
        return updated

    def delete(self, record: Record) -> bool:
        """Delete the record's row. See ``TableGateway.delete``."""
        self._assert_record(record)
        self._events.before_delete(self, record)
        deleted = self._gateway.delete(record.get_row())
        if deleted:
            self._events.after_delete(self, record)
        return deleted

    def is_modified(self, record: Record) -> bool:
        self._assert_record(record)
        return self._gateway.is_modified(record.get_row())

    def _assert_record(self, record: Record) -> None:
        if not isinstance(record, self.record_class) or record.mapper_class is not type(self):
            actual = type(record).__name__
            if isinstance(record, Record):
                actual = f"{actual} of {record.mapper_class.__name__}"
            raise TypeMismatchError(f"{self.record_class.__name__} of {type(self).__name__}", actual)
