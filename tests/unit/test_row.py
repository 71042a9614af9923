"""Unit tests for Row."""

from __future__ import annotations

import pytest

from row_mapper.core.enums import RowStatus
from row_mapper.core.exceptions import ImmutableError, InvalidStatusError, NoSuchColumnError
from row_mapper.table.metadata import TableMetadata
from row_mapper.table.primary import Primary
from row_mapper.table.row import Row

EMPLOYEE = TableMetadata(
    name="employee",
    columns=("id", "name", "building", "floor"),
    primary_key=("id",),
    autoincrement=True,
)


@pytest.fixture
def row() -> Row:
    return Row(EMPLOYEE, Primary({"id": 1}), {"name": "Anna", "building": "A", "floor": 2})


class TestRow:
    def test_new_row_status(self, row: Row) -> None:
        assert row.get_status() is RowStatus.NEW
        assert row.has_status(RowStatus.NEW)

    def test_unset_columns_default_to_none(self) -> None:
        row = Row(EMPLOYEE, Primary({"id": None}))
        assert row.get("name") is None
        assert row.get("id") is None

    def test_constructor_rejects_unknown_column(self) -> None:
        with pytest.raises(NoSuchColumnError):
            Row(EMPLOYEE, Primary({"id": 1}), {"no_such_col": 1})

    def test_get_reads_key_and_non_key(self, row: Row) -> None:
        assert row.get("id") == 1
        assert row.get("name") == "Anna"
        assert row["floor"] == 2

    def test_get_unknown_column(self, row: Row) -> None:
        with pytest.raises(NoSuchColumnError, match="no_such_col"):
            row.get("no_such_col")

    def test_set(self, row: Row) -> None:
        row.set("name", "Bea")
        row["floor"] = 3
        assert row.get("name") == "Bea"
        assert row.get("floor") == 3

    def test_set_unknown_column(self, row: Row) -> None:
        with pytest.raises(NoSuchColumnError):
            row.set("no_such_col", "x")

    def test_set_key_column_raises(self, row: Row) -> None:
        with pytest.raises(ImmutableError, match="primary key"):
            row.set("id", 2)
        assert row.get("id") == 1

    def test_set_after_delete_raises(self, row: Row) -> None:
        row.set_status(RowStatus.DELETED)
        with pytest.raises(ImmutableError, match="once deleted"):
            row.set("name", "Bea")
        assert row.get("name") == "Anna"

    def test_unset(self, row: Row) -> None:
        row.unset("name")
        assert row.get("name") is None
        del row["building"]
        assert row.get("building") is None

    def test_unset_key_column_is_noop(self, row: Row) -> None:
        row.unset("id")
        assert row.get("id") == 1

    def test_unset_after_delete_raises(self, row: Row) -> None:
        row.set_status(RowStatus.DELETED)
        with pytest.raises(ImmutableError):
            row.unset("name")

    def test_has(self, row: Row) -> None:
        assert row.has("id")
        assert row.has("floor")
        assert not row.has("no_such_col")
        assert "name" in row
        assert 1 not in row

    def test_set_status_by_value(self, row: Row) -> None:
        row.set_status("SELECTED")
        assert row.get_status() is RowStatus.SELECTED

    def test_set_invalid_status(self, row: Row) -> None:
        with pytest.raises(InvalidStatusError):
            row.set_status("NO_SUCH_STATUS")

    def test_deleted_is_terminal(self, row: Row) -> None:
        row.set_status(RowStatus.DELETED)
        with pytest.raises(ImmutableError):
            row.set_status(RowStatus.UPDATED)
        row.set_status(RowStatus.DELETED)
        assert row.get_status() is RowStatus.DELETED

    def test_has_status_collection(self, row: Row) -> None:
        assert row.has_status([RowStatus.NEW, RowStatus.SELECTED])
        assert not row.has_status((RowStatus.UPDATED, RowStatus.DELETED))

    def test_has_status_invalid(self, row: Row) -> None:
        with pytest.raises(InvalidStatusError):
            row.has_status("NO_SUCH_STATUS")

    def test_get_array_copy(self, row: Row) -> None:
        assert row.get_array_copy() == {"id": 1, "name": "Anna", "building": "A", "floor": 2}
        assert list(row.get_array_copy()) == ["id", "name", "building", "floor"]

    def test_iter_yields_columns(self, row: Row) -> None:
        assert list(row) == ["id", "name", "building", "floor"]

    def test_shares_primary(self, row: Row) -> None:
        assert row.get_primary() == Primary({"id": 1})
