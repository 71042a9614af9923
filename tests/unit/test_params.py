"""Unit tests for parameter normalizer."""

from __future__ import annotations

from row_mapper.core.params import normalize_params, param_name


class TestNormalizeParams:
    def test_named_passthrough(self) -> None:
        sql = "SELECT * FROM books WHERE book_id = :w0_book_id"
        assert normalize_params(sql, "named") == sql

    def test_pyformat_conversion(self) -> None:
        sql = "SELECT * FROM books WHERE book_id = :w0_book_id"
        expected = "SELECT * FROM books WHERE book_id = %(w0_book_id)s"
        assert normalize_params(sql, "pyformat") == expected

    def test_in_list_params(self) -> None:
        sql = "SELECT * FROM books WHERE book_id IN (:w0_book_id_0, :w0_book_id_1)"
        expected = "SELECT * FROM books WHERE book_id IN (%(w0_book_id_0)s, %(w0_book_id_1)s)"
        assert normalize_params(sql, "pyformat") == expected

    def test_typecast_exclusion(self) -> None:
        sql = "SELECT price::numeric FROM books WHERE book_id = :id"
        expected = "SELECT price::numeric FROM books WHERE book_id = %(id)s"
        assert normalize_params(sql, "pyformat") == expected

    def test_no_params(self) -> None:
        sql = "INSERT INTO tags DEFAULT VALUES"
        assert normalize_params(sql, "pyformat") == sql


class TestParamName:
    def test_prefix_and_column(self) -> None:
        assert param_name("c0", "title") == "c0_title"

    def test_index_suffix(self) -> None:
        assert param_name("w1", "tag_id", 3) == "w1_tag_id_3"

    def test_unsafe_characters_replaced(self) -> None:
        assert param_name("w0", "order-date") == "w0_order_date"
        assert param_name("w0", "my col") == "w0_my_col"
