"""Unit tests for DbCursor."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from table_mapper.core.enums import FieldType
from table_mapper.core.exceptions import (
    ColumnNotFoundError,
    CursorClosedError,
    CursorPositionError,
    DecodingError,
)

TYPED_ROW = (
    "SELECT 1 AS i, 'ada' AS s, 2.5 AS f, X'00ff' AS b, NULL AS n, "
    "'12' AS si, 'x' AS sx"
)


class TestNavigation:
    def test_starts_before_first(self, five_rows) -> None:
        assert five_rows.position == -1
        assert five_rows.is_before_first()
        assert not five_rows.is_after_last()

    def test_count_reads_every_window(self, five_rows) -> None:
        assert five_rows.count == 5
        assert five_rows.get_count() == 5

    def test_move_to_next_walks_rows(self, five_rows) -> None:
        ids = []
        while five_rows.move_to_next():
            ids.append(five_rows.get_int("id"))
        assert ids == [1, 2, 3, 4, 5]
        assert five_rows.is_after_last()
        assert five_rows.position == 5

    def test_move_to_position_clamps(self, five_rows) -> None:
        assert five_rows.move_to_position(100) is False
        assert five_rows.position == 5
        assert five_rows.move_to_position(-7) is False
        assert five_rows.position == -1

    def test_move_is_relative(self, five_rows) -> None:
        five_rows.move_to_position(2)
        assert five_rows.move(-1)
        assert five_rows.get_string("name") == "n2"
        assert five_rows.move(2)
        assert five_rows.get_position() == 3

    def test_first_and_last(self, five_rows) -> None:
        assert five_rows.move_to_last()
        assert five_rows.is_last()
        assert five_rows.get_int("id") == 5
        assert five_rows.move_to_first()
        assert five_rows.is_first()
        assert not five_rows.is_last()

    def test_move_to_previous_from_after_last(self, five_rows) -> None:
        five_rows.move_to_position(5)
        assert five_rows.move_to_previous()
        assert five_rows.get_int("id") == 5

    def test_backwards_after_forward_scan(self, five_rows) -> None:
        five_rows.move_to_last()
        assert five_rows.move_to_position(0)
        assert five_rows.get_string("name") == "n1"

    def test_empty_result(self, make_cursor) -> None:
        cursor = make_cursor("SELECT 1 AS id WHERE 0")
        assert cursor.count == 0
        assert cursor.is_before_first()
        assert cursor.is_after_last()
        assert cursor.move_to_first() is False
        assert not cursor.is_first()
        assert not cursor.is_last()


class TestColumns:
    def test_names_and_count(self, five_rows) -> None:
        assert five_rows.column_names == ("id", "name")
        assert five_rows.column_count == 2
        assert five_rows.get_column_name(1) == "name"

    def test_index_lookup(self, five_rows) -> None:
        assert five_rows.get_column_index("name") == 1
        assert five_rows.get_column_index("NAME") == 1
        assert five_rows.get_column_index("missing") == -1

    def test_index_lookup_or_raise(self, five_rows) -> None:
        with pytest.raises(ColumnNotFoundError) as exc_info:
            five_rows.get_column_index_or_raise("missing")
        assert exc_info.value.available == ("id", "name")

    def test_out_of_range_index(self, five_rows) -> None:
        five_rows.move_to_first()
        with pytest.raises(ColumnNotFoundError):
            five_rows.get_value(9)


class TestTypedReads:
    @pytest.fixture
    def row(self, make_cursor):
        cursor = make_cursor(TYPED_ROW)
        cursor.move_to_first()
        return cursor

    def test_get_type(self, row) -> None:
        assert row.get_type("i") == FieldType.INTEGER
        assert row.get_type("s") == FieldType.STRING
        assert row.get_type("f") == FieldType.FLOAT
        assert row.get_type("b") == FieldType.BLOB
        assert row.get_type("n") == FieldType.NULL

    def test_get_int(self, row) -> None:
        assert row.get_int("i") == 1
        assert row.get_int(0) == 1
        assert row.get_int("si") == 12
        assert row.get_int("n") is None

    @pytest.mark.parametrize("column", ["f", "sx", "b"])
    def test_get_int_rejects(self, row, column: str) -> None:
        with pytest.raises(DecodingError) as exc_info:
            row.get_int(column)
        assert exc_info.value.column == column
        assert exc_info.value.expected == "int"

    def test_get_float(self, row) -> None:
        assert row.get_float("f") == 2.5
        assert row.get_float("i") == 1.0
        assert row.get_float("si") == 12.0
        with pytest.raises(DecodingError):
            row.get_float("sx")

    def test_get_string(self, row) -> None:
        assert row.get_string("s") == "ada"
        assert row.get_string("i") == "1"
        assert row.get_string("n") is None
        with pytest.raises(DecodingError):
            row.get_string("b")

    def test_get_blob(self, row) -> None:
        assert row.get_blob("b") == b"\x00\xff"
        assert row.get_blob("s") == b"ada"
        with pytest.raises(DecodingError):
            row.get_blob("i")

    def test_get_bool_and_null(self, row) -> None:
        assert row.get_bool("i") is True
        assert row.get_bool("n") is None
        assert row.is_null("n")
        assert not row.is_null("s")

    def test_row_dict(self, row) -> None:
        assert row.row_dict()["s"] == "ada"
        assert len(row.row_dict()) == 7

    def test_read_off_row(self, make_cursor) -> None:
        cursor = make_cursor(TYPED_ROW)
        with pytest.raises(CursorPositionError):
            cursor.get_value("i")
        cursor.move_to_position(1)
        with pytest.raises(CursorPositionError) as exc_info:
            cursor.get_int("i")
        assert exc_info.value.position == 1


class TestLifecycle:
    def test_close_releases_reservation_once(self, make_cursor) -> None:
        cursor = make_cursor("SELECT 1 AS id")
        reservation = MagicMock()
        cursor._reservation = reservation
        cursor.close()
        cursor.close()
        assert cursor.closed
        reservation.release.assert_called_once()

    def test_use_after_close(self, five_rows) -> None:
        five_rows.close()
        with pytest.raises(CursorClosedError):
            five_rows.move_to_first()
        with pytest.raises(CursorClosedError):
            five_rows.get_int("id")
        with pytest.raises(CursorClosedError):
            _ = five_rows.count

    def test_column_lookup_after_close(self, five_rows) -> None:
        five_rows.close()
        with pytest.raises(CursorClosedError):
            five_rows.get_column_index("name")
        with pytest.raises(CursorClosedError):
            five_rows.get_column_index_or_raise("name")
        with pytest.raises(CursorClosedError):
            five_rows.get_column_name(0)
        with pytest.raises(CursorClosedError):
            _ = five_rows.column_names
        with pytest.raises(CursorClosedError):
            _ = five_rows.column_count

    def test_context_manager_closes(self, five_rows) -> None:
        with five_rows as cursor:
            cursor.move_to_first()
        assert five_rows.closed

    def test_close_before_exhausted(self, five_rows) -> None:
        five_rows.move_to_first()
        five_rows.close()
        assert five_rows.closed

    def test_repr(self, five_rows) -> None:
        assert "position=-1" in repr(five_rows)
        five_rows.close()
        assert "closed" in repr(five_rows)
