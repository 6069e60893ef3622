"""Integration test for SQLite full workflow.

Covers: table mappers, model and record codecs, guards, bulk inserts,
conflict algorithms and cursor-driven handle lifetime end-to-end against a
real SQLite database file.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from typing import Any

import pytest
from pydantic import BaseModel

from table_mapper import (
    BulkInsertError,
    ConflictAlgorithm,
    ConnectionConfig,
    ConnectionManager,
    DbCursor,
    DecodingError,
    ManagerClosedError,
    ModelCodec,
    RecordCodec,
    TableMapper,
    TableSpec,
    WriteError,
)

pytestmark = pytest.mark.integration

COLUMNS = ("id", "name", "age")
CREATE_T = "CREATE TABLE t (id INTEGER PRIMARY KEY AUTOINCREMENT, name TEXT, age INTEGER)"

# --- Test models ---


@dataclass
class Person:
    id: int | None = None
    name: str = ""
    age: int | None = None


class PersonModel(BaseModel):
    id: int | None = None
    name: str
    age: int | None = None


class PositionalCodec:
    """Reads row *n* by seeking to it, ignoring where the cursor was left."""

    primary_key = "id"

    def __init__(self) -> None:
        self._next = 0

    def new_record_instance(self) -> Person:
        return Person()

    def from_row(self, cursor: DbCursor, columns: Sequence[str]) -> Person:
        cursor.move_to_position(self._next)
        self._next += 1
        record = Person(
            cursor.get_int("id"), cursor.get_string("name") or "", cursor.get_int("age")
        )
        cursor.move_to_last()
        return record

    def to_row(self, record: Person, columns: Sequence[str]) -> dict[str, Any]:
        return {"name": record.name, "age": record.age}


# --- Fixtures ---


@pytest.fixture
def people(manager: ConnectionManager) -> TableMapper[Person]:
    spec = TableSpec("t", COLUMNS, guard=lambda row: (row.get("age") or 0) >= 0)
    return TableMapper(manager, spec, ModelCodec(Person))


@pytest.fixture
def unique_people(db_path: str) -> Iterator[TableMapper[Person]]:
    cm = ConnectionManager(ConnectionConfig(database=db_path))
    cm.execute_write(
        "CREATE TABLE u (id INTEGER PRIMARY KEY AUTOINCREMENT, name TEXT UNIQUE, age INTEGER)"
    )
    yield TableMapper(cm, TableSpec("u", COLUMNS), ModelCodec(Person))
    cm.shutdown()


# --- End-to-end workflows ---


class TestRoundTrip:
    def test_insert_then_query(self, people: TableMapper[Person]) -> None:
        assert people.insert({"name": "ada", "age": 36}) == 1
        records = people.query_as_list(where="id = ?", args=[1])
        assert records == [Person(1, "ada", 36)]
        assert people.connection_manager.reservation_count == 0

    def test_record_insert(self, people: TableMapper[Person]) -> None:
        new_id = people.insert(Person(name="grace", age=45))
        assert people.query_as_list(where="id = ?", args=[new_id]) == [
            Person(new_id, "grace", 45)
        ]

    def test_pydantic_records(self, manager: ConnectionManager) -> None:
        mapper = TableMapper(manager, TableSpec("t", COLUMNS), ModelCodec(PersonModel))
        mapper.insert(PersonModel(name="ada", age=36))
        assert mapper.query_as_list() == [PersonModel(id=1, name="ada", age=36)]

    def test_required_field_model_has_no_empty_record(self, manager: ConnectionManager) -> None:
        mapper = TableMapper(manager, TableSpec("t", COLUMNS), ModelCodec(PersonModel))
        assert mapper.new_record_instance() is None


class TestGuard:
    def test_rejected_row_not_written(self, people: TableMapper[Person]) -> None:
        assert people.insert({"name": "x", "age": -1}) == -1
        assert people.count() == 0

    def test_accepted_row_written(self, people: TableMapper[Person]) -> None:
        assert people.insert({"name": "x", "age": 0}) == 1
        assert people.count() == 1

    def test_bulk_insert_is_not_guarded(self, people: TableMapper[Person]) -> None:
        assert people.bulk_insert([{"name": "x", "age": -1}]) == 1
        assert people.count() == 1


class TestBulkInsert:
    def test_rolls_back_whole_batch(self, unique_people: TableMapper[Person]) -> None:
        with pytest.raises(BulkInsertError) as exc_info:
            unique_people.bulk_insert([{"name": "a", "age": 1}, {"name": "a", "age": 2}])
        assert exc_info.value.index == 1
        assert unique_people.count() == 0
        assert unique_people.connection_manager.reservation_count == 0

    def test_inserts_every_row(self, people: TableMapper[Person]) -> None:
        rows = [Person(name=f"p{i}", age=i) for i in range(20)]
        assert people.bulk_insert(rows) == 20
        assert people.count("age >= ?", [10]) == 10


class TestCursorLifecycle:
    def test_cursor_outlives_shutdown(self, db_path: str) -> None:
        cm = ConnectionManager(ConnectionConfig(database=db_path))
        cm.execute_write(CREATE_T)
        people = TableMapper(cm, TableSpec("t", COLUMNS), ModelCodec(Person))
        people.bulk_insert([{"name": "a", "age": 1}, {"name": "b", "age": 2}])

        q1 = people.query(["name"], order_by="name")
        cm.shutdown()
        assert cm.is_open
        assert q1.move_to_last()
        assert q1.get_string("name") == "b"

        q1.close()
        assert not cm.is_open
        with pytest.raises(ManagerClosedError):
            people.insert({"name": "c"})

        fresh = ConnectionManager(ConnectionConfig(database=db_path))
        again = TableMapper(fresh, TableSpec("t", COLUMNS), ModelCodec(Person))
        assert again.insert({"name": "c", "age": 3}) == 3
        fresh.shutdown()

    def test_decoding_error_releases_cursor(self, people: TableMapper[Person]) -> None:
        people.connection_manager.execute_write("INSERT INTO t (name, age) VALUES ('x', 'abc')")
        with pytest.raises(DecodingError):
            people.query_as_list()
        assert people.connection_manager.reservation_count == 0


class TestCodecAdvanceTolerance:
    def test_positional_and_model_codecs_agree(self, manager: ConnectionManager) -> None:
        spec = TableSpec("t", COLUMNS)
        model = TableMapper(manager, spec, ModelCodec(Person))
        model.bulk_insert([Person(name=f"n{i}", age=i) for i in range(1, 6)])

        positional = TableMapper(manager, spec, PositionalCodec())
        expected = model.query_as_list(order_by="id")
        assert len(expected) == 5
        assert positional.query_as_list(order_by="id") == expected

    def test_record_codec(self, manager: ConnectionManager) -> None:
        class Named:
            def __init__(self) -> None:
                self.name = ""

            def from_row(self, cursor: DbCursor, columns: Sequence[str]) -> None:
                self.name = cursor.get_string("name") or ""
                cursor.move_to_next()

            def to_row(self, columns: Sequence[str]) -> dict[str, Any]:
                return {"name": self.name}

        mapper = TableMapper(manager, TableSpec("t", COLUMNS), RecordCodec(Named))
        mapper.bulk_insert([{"name": "a"}, {"name": "b"}, {"name": "c"}])
        assert [r.name for r in mapper.query_as_list(order_by="name")] == ["a", "b", "c"]


class TestDelete:
    def test_delete_without_where(self, people: TableMapper[Person]) -> None:
        people.bulk_insert([{"name": f"p{i}", "age": i} for i in range(10)])
        assert people.delete(None, None) == 10
        assert people.query_as_list() == []

    def test_delete_with_where(self, people: TableMapper[Person]) -> None:
        people.bulk_insert([{"name": f"p{i}", "age": i} for i in range(10)])
        assert people.delete("age < ?", [3]) == 3
        assert people.count() == 7


# --- Other operations ---


class TestConflictAlgorithms:
    def test_ignore(self, people: TableMapper[Person]) -> None:
        people.insert({"id": 1, "name": "ada", "age": 36})
        assert people.insert({"id": 1, "name": "eve", "age": 1}, ConflictAlgorithm.IGNORE) == -1
        assert people.query_as_list() == [Person(1, "ada", 36)]

    def test_replace(self, people: TableMapper[Person]) -> None:
        people.insert({"id": 1, "name": "ada", "age": 36})
        assert people.insert({"id": 1, "name": "eve", "age": 1}, ConflictAlgorithm.REPLACE) == 1
        assert people.query_as_list() == [Person(1, "eve", 1)]

    def test_abort_raises(self, people: TableMapper[Person]) -> None:
        people.insert({"id": 1, "name": "ada"})
        with pytest.raises(WriteError):
            people.insert({"id": 1, "name": "eve"})

    def test_update_or_ignore(self, unique_people: TableMapper[Person]) -> None:
        unique_people.bulk_insert([{"name": "a"}, {"name": "b"}])
        changed = unique_people.update({"name": "a"}, "name = ?", ["b"], ConflictAlgorithm.IGNORE)
        assert changed == 0


class TestUpdate:
    def test_partial_update(self, people: TableMapper[Person]) -> None:
        people.insert({"name": "ada", "age": 36})
        assert people.update({"age": 37}, "name = ?", ["ada"]) == 1
        assert people.query_as_list() == [Person(1, "ada", 37)]

    def test_update_every_row(self, people: TableMapper[Person]) -> None:
        people.bulk_insert([{"name": "a", "age": 1}, {"name": "b", "age": 2}])
        assert people.update({"age": 0}) == 2
        assert people.count("age = ?", [0]) == 2


class TestQueryClauses:
    @pytest.fixture(autouse=True)
    def _rows(self, people: TableMapper[Person]) -> None:
        people.bulk_insert(
            [
                {"name": "a", "age": 20},
                {"name": "b", "age": 20},
                {"name": "c", "age": 30},
                {"name": "d", "age": 40},
                {"name": "e", "age": 40},
            ]
        )

    def test_order_and_limit(self, people: TableMapper[Person]) -> None:
        records = people.query_as_list(order_by="age DESC, name", limit=2)
        assert [r.name for r in records] == ["d", "e"]

    def test_limit_with_offset(self, people: TableMapper[Person]) -> None:
        records = people.query_as_list(order_by="name", limit="1, 2")
        assert [r.name for r in records] == ["b", "c"]

    def test_group_by_having(self, people: TableMapper[Person]) -> None:
        with people.query(
            ["age", "COUNT(*) AS n"], group_by="age", having="COUNT(*) > 1", order_by="age"
        ) as cursor:
            rows = []
            while cursor.move_to_next():
                rows.append((cursor.get_int("age"), cursor.get_int("n")))
        assert rows == [(20, 2), (40, 2)]

    def test_distinct(self, people: TableMapper[Person]) -> None:
        with people.query(["age"], distinct=True) as cursor:
            assert cursor.count == 3

    def test_projection_subset_uses_defaults(self, people: TableMapper[Person]) -> None:
        records = people.query_as_list(["name"], where="age = ?", args=[30])
        assert records == [Person(None, "c", None)]

    def test_text_bound_arguments_compare_numerically(self, people: TableMapper[Person]) -> None:
        assert people.count("age > ?", [25]) == 3
