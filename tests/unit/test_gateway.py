"""Unit tests for TableGateway."""

from __future__ import annotations

import threading
from unittest.mock import MagicMock

import pytest

from row_mapper.core.enums import RowStatus, StatementKind
from row_mapper.core.exceptions import (
    ImmutableError,
    PrimaryValueError,
    TypeMismatchError,
    UnexpectedAffectedRowCountError,
)
from row_mapper.core.executor import ExecuteResult
from row_mapper.table.gateway import TableGateway
from row_mapper.table.identity_map import IdentityMap
from row_mapper.table.metadata import TableMetadata
from row_mapper.table.primary import Primary
from row_mapper.table.row import Row

BOOKS = TableMetadata(
    name="books",
    columns=("book_id", "author_id", "title", "price"),
    primary_key=("book_id",),
    autoincrement=True,
    defaults={"price": 0},
)

DEGREES = TableMetadata(
    name="degrees",
    columns=("degree_type", "degree_subject", "title"),
    primary_key=("degree_type", "degree_subject"),
)

BOOK_ROWS = {
    1: {"book_id": 1, "author_id": 1, "title": "Alpha", "price": 10},
    2: {"book_id": 2, "author_id": 1, "title": "Beta", "price": 12.5},
    3: {"book_id": 3, "author_id": 1, "title": "Gamma", "price": 8},
}


def fake_select(table: str, filters: dict, columns: tuple) -> list[dict]:
    """Select BOOK_ROWS by book_id, in store (id) order."""
    wanted = filters["book_id"]
    if not isinstance(wanted, list):
        wanted = [wanted]
    return [dict(BOOK_ROWS[i]) for i in sorted(BOOK_ROWS) if i in wanted]


@pytest.fixture
def executor() -> MagicMock:
    executor = MagicMock()
    executor.select.side_effect = fake_select
    executor.execute.return_value = ExecuteResult(affected=1)
    return executor


@pytest.fixture
def gateway(executor: MagicMock) -> TableGateway:
    return TableGateway(BOOKS, executor, IdentityMap())


class TestPrimaryIdentity:
    def test_scalar(self, gateway: TableGateway) -> None:
        assert gateway.primary_identity(1) == Primary({"book_id": 1})

    def test_mapping(self, gateway: TableGateway) -> None:
        assert gateway.primary_identity({"book_id": 1}) == Primary({"book_id": 1})

    def test_wrong_columns(self, gateway: TableGateway) -> None:
        with pytest.raises(PrimaryValueError):
            gateway.primary_identity({"title": 1})

    def test_none_value(self, gateway: TableGateway) -> None:
        with pytest.raises(PrimaryValueError):
            gateway.primary_identity(None)

    def test_composite_sequence(self, executor: MagicMock) -> None:
        gateway = TableGateway(DEGREES, executor, IdentityMap())
        primary = gateway.primary_identity(("BA", "ENGL"))
        assert primary.get_array_copy() == {"degree_type": "BA", "degree_subject": "ENGL"}

    def test_composite_needs_every_column(self, executor: MagicMock) -> None:
        gateway = TableGateway(DEGREES, executor, IdentityMap())
        with pytest.raises(PrimaryValueError):
            gateway.primary_identity("BA")
        with pytest.raises(PrimaryValueError):
            gateway.primary_identity(("BA",))
        with pytest.raises(PrimaryValueError):
            gateway.primary_identity({"degree_type": "BA"})


class TestFetch:
    def test_fetch_row_selects_once(self, gateway: TableGateway, executor: MagicMock) -> None:
        row = gateway.fetch_row(1)
        assert row is not None
        assert row.get("title") == "Alpha"
        assert row.get_status() is RowStatus.SELECTED

        assert gateway.fetch_row("1") is row
        assert executor.select.call_count == 1

    def test_fetch_row_missing(self, gateway: TableGateway) -> None:
        assert gateway.fetch_row(99) is None

    def test_fetch_rows_keeps_requested_order(
        self, gateway: TableGateway, executor: MagicMock
    ) -> None:
        rows = gateway.fetch_rows([3, 1, 2])
        assert [row.get("book_id") for row in rows] == [3, 1, 2]
        assert executor.select.call_count == 1

    def test_fetch_rows_skips_missing_and_repeats(self, gateway: TableGateway) -> None:
        rows = gateway.fetch_rows([2, 99, 2, 1])
        assert [row.get("book_id") for row in rows] == [2, 1]

    def test_fetch_rows_only_selects_untracked(
        self, gateway: TableGateway, executor: MagicMock
    ) -> None:
        tracked = gateway.fetch_row(2)
        executor.select.reset_mock()

        rows = gateway.fetch_rows([1, 2, 3])

        assert rows[1] is tracked
        executor.select.assert_called_once()
        assert executor.select.call_args.args[1] == {"book_id": [1, 3]}

    def test_fetch_rows_all_tracked_issues_no_query(
        self, gateway: TableGateway, executor: MagicMock
    ) -> None:
        gateway.fetch_rows([1, 2])
        executor.select.reset_mock()
        gateway.fetch_rows([2, 1])
        executor.select.assert_not_called()

    def test_tracked_row_keeps_unsaved_values(self, gateway: TableGateway) -> None:
        row = gateway.fetch_row(1)
        assert row is not None
        row.set("title", "Changed")

        again = gateway.fetch_row_by({"book_id": 1})

        assert again is row
        assert again.get("title") == "Changed"

    def test_fetch_rows_registers_under_identity_lock(self, gateway: TableGateway) -> None:
        identity_map = gateway.identity_map
        identity_map.lock = MagicMock(wraps=identity_map.lock)  # type: ignore[method-assign]

        gateway.fetch_rows([1, 2, 3])

        locked = [call.args for call in identity_map.lock.call_args_list]
        assert locked == [("books", Primary({"book_id": i})) for i in (1, 2, 3)]

    def test_concurrent_fetch_rows_share_rows(self, executor: MagicMock) -> None:
        identity_map = IdentityMap()
        barrier = threading.Barrier(4)

        def racing_select(table: str, filters: dict, columns: tuple) -> list[dict]:
            rows = fake_select(table, filters, columns)
            barrier.wait(timeout=5)
            return rows

        executor.select.side_effect = racing_select
        results: list[list[Row]] = []

        def fetch() -> None:
            gateway = TableGateway(BOOKS, executor, identity_map)
            results.append(gateway.fetch_rows([1, 2, 3]))

        threads = [threading.Thread(target=fetch) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(results) == 4
        assert len(identity_map) == 3
        for rows in results:
            assert [row.get("book_id") for row in rows] == [1, 2, 3]
            for row, first in zip(rows, results[0], strict=True):
                assert row is first
                expected = BOOK_ROWS[row.get("book_id")]["title"]
                assert identity_map.get_initial(row)["title"] == expected

    def test_fetch_rows_by(self, gateway: TableGateway) -> None:
        rows = gateway.fetch_rows_by({"book_id": [2, 3]})
        assert [row.get("title") for row in rows] == ["Beta", "Gamma"]


class TestNewRow:
    def test_defaults_applied(self, gateway: TableGateway) -> None:
        row = gateway.new_row({"title": "Omega"})
        assert row.get_status() is RowStatus.NEW
        assert row.get("price") == 0
        assert row.get("book_id") is None
        assert row.get("title") == "Omega"

    def test_new_row_not_tracked(self, gateway: TableGateway) -> None:
        gateway.new_row({"book_id": 50})
        assert len(gateway.identity_map) == 0


class TestInsert:
    def test_insert_assigns_generated_key(
        self, gateway: TableGateway, executor: MagicMock
    ) -> None:
        executor.execute.return_value = ExecuteResult(affected=1, generated_key=4)
        row = gateway.new_row({"title": "Delta", "author_id": 2})

        assert gateway.insert(row) is True

        executor.execute.assert_called_once_with(
            StatementKind.INSERT,
            "books",
            {"author_id": 2, "title": "Delta", "price": 0},
            {},
            generated_column="book_id",
        )
        assert row.get("book_id") == 4
        assert row.get_status() is RowStatus.INSERTED
        assert gateway.fetch_row(4) is row

    def test_insert_with_explicit_key(self, gateway: TableGateway, executor: MagicMock) -> None:
        row = gateway.new_row({"book_id": 9, "title": "Nu"})
        assert gateway.insert(row) is True
        assert executor.execute.call_args.kwargs["generated_column"] is None
        assert executor.execute.call_args.args[2]["book_id"] == 9
        assert row.get("book_id") == 9

    def test_inserted_key_is_frozen(self, gateway: TableGateway, executor: MagicMock) -> None:
        executor.execute.return_value = ExecuteResult(affected=1, generated_key=4)
        row = gateway.new_row({"title": "Delta"})
        gateway.insert(row)
        with pytest.raises(ImmutableError):
            row.set("book_id", 5)

    def test_insert_composite_needs_key(self, executor: MagicMock) -> None:
        gateway = TableGateway(DEGREES, executor, IdentityMap())
        row = gateway.new_row({"degree_type": "BA", "title": "x"})
        with pytest.raises(PrimaryValueError):
            gateway.insert(row)
        executor.execute.assert_not_called()

    def test_insert_nothing_inserted(self, gateway: TableGateway, executor: MagicMock) -> None:
        executor.execute.return_value = ExecuteResult(affected=0)
        row = gateway.new_row({"title": "Delta"})
        assert gateway.insert(row) is False
        assert row.get_status() is RowStatus.NEW

    def test_insert_too_many_rows(self, gateway: TableGateway, executor: MagicMock) -> None:
        executor.execute.return_value = ExecuteResult(affected=2)
        with pytest.raises(UnexpectedAffectedRowCountError):
            gateway.insert(gateway.new_row({"title": "Delta"}))

    def test_insert_deleted_row(self, gateway: TableGateway) -> None:
        row = gateway.fetch_row(1)
        assert row is not None
        gateway.delete(row)
        with pytest.raises(ImmutableError):
            gateway.insert(row)

    def test_insert_foreign_row(self, gateway: TableGateway) -> None:
        row = Row(DEGREES, Primary({"degree_type": "BA", "degree_subject": "ENGL"}))
        with pytest.raises(TypeMismatchError):
            gateway.insert(row)


class TestUpdate:
    def test_update_writes_only_changed_columns(
        self, gateway: TableGateway, executor: MagicMock
    ) -> None:
        row = gateway.fetch_row(1)
        assert row is not None
        row.set("title", "Alpha II")

        assert gateway.update(row) is True

        executor.execute.assert_called_once_with(
            StatementKind.UPDATE, "books", {"title": "Alpha II"}, {"book_id": 1}
        )
        assert row.get_status() is RowStatus.UPDATED
        assert gateway.get_array_diff(row) == {}

    def test_update_without_changes_issues_nothing(
        self, gateway: TableGateway, executor: MagicMock
    ) -> None:
        row = gateway.fetch_row(1)
        assert row is not None
        assert gateway.update(row) is None
        executor.execute.assert_not_called()
        assert row.get_status() is RowStatus.SELECTED

    def test_numeric_string_is_not_a_change(self, gateway: TableGateway) -> None:
        row = gateway.fetch_row(1)
        assert row is not None
        row.set("price", "10")
        row.set("title", "Alpha")
        assert gateway.get_array_diff(row) == {}
        assert not gateway.is_modified(row)

    def test_padded_string_is_a_change(self, gateway: TableGateway) -> None:
        row = gateway.fetch_row(1)
        assert row is not None
        row.set("price", "10 ")
        assert gateway.get_array_diff(row) == {"price": "10 "}
        assert gateway.is_modified(row)

    def test_update_nothing_matched(self, gateway: TableGateway, executor: MagicMock) -> None:
        row = gateway.fetch_row(1)
        assert row is not None
        row.set("title", "Gone")
        executor.execute.return_value = ExecuteResult(affected=0)
        assert gateway.update(row) is False
        assert gateway.is_modified(row)

    def test_update_too_many_rows(self, gateway: TableGateway, executor: MagicMock) -> None:
        row = gateway.fetch_row(1)
        assert row is not None
        row.set("title", "Dup")
        executor.execute.return_value = ExecuteResult(affected=2)
        with pytest.raises(UnexpectedAffectedRowCountError):
            gateway.update(row)

    def test_update_deleted_row(self, gateway: TableGateway) -> None:
        row = gateway.fetch_row(1)
        assert row is not None
        gateway.delete(row)
        with pytest.raises(ImmutableError):
            gateway.update(row)


class TestDelete:
    def test_delete(self, gateway: TableGateway, executor: MagicMock) -> None:
        row = gateway.fetch_row(2)
        assert row is not None

        assert gateway.delete(row) is True

        executor.execute.assert_called_once_with(
            StatementKind.DELETE, "books", {}, {"book_id": 2}
        )
        assert row.get_status() is RowStatus.DELETED
        assert not gateway.is_modified(row)

    def test_deleted_row_stays_tracked(self, gateway: TableGateway) -> None:
        row = gateway.fetch_row(2)
        assert row is not None
        gateway.delete(row)
        assert gateway.fetch_row(2) is row

    def test_delete_already_gone(self, gateway: TableGateway, executor: MagicMock) -> None:
        row = gateway.fetch_row(2)
        assert row is not None
        executor.execute.return_value = ExecuteResult(affected=0)
        assert gateway.delete(row) is False
        assert row.get_status() is RowStatus.SELECTED

    def test_delete_too_many_rows(self, gateway: TableGateway, executor: MagicMock) -> None:
        row = gateway.fetch_row(2)
        assert row is not None
        executor.execute.return_value = ExecuteResult(affected=3)
        with pytest.raises(UnexpectedAffectedRowCountError):
            gateway.delete(row)


class TestCompositeFetch:
    def test_fetch_rows_filters_unrequested_combinations(self, executor: MagicMock) -> None:
        data = [
            {"degree_type": "BA", "degree_subject": "ENGL", "title": "BA English"},
            {"degree_type": "BA", "degree_subject": "MATH", "title": "BA Math"},
            {"degree_type": "BS", "degree_subject": "ENGL", "title": "BS English"},
            {"degree_type": "BS", "degree_subject": "MATH", "title": "BS Math"},
        ]
        executor.select.side_effect = None
        executor.select.return_value = data
        gateway = TableGateway(DEGREES, executor, IdentityMap())

        rows = gateway.fetch_rows([("BS", "MATH"), ("BA", "ENGL")])

        assert [row.get("title") for row in rows] == ["BS Math", "BA English"]
        assert executor.select.call_args.args[1] == {
            "degree_type": ["BS", "BA"],
            "degree_subject": ["MATH", "ENGL"],
        }
        assert len(gateway.identity_map) == 2
