"""
Example 02: Bulk Inserts and Conflict Algorithms

This example demonstrates all-or-nothing bulk inserts and the
INSERT OR IGNORE / OR REPLACE conflict algorithms.
"""

import tempfile

from pydantic import BaseModel

from table_mapper import (
    BulkInsertError,
    ConflictAlgorithm,
    ConnectionConfig,
    ConnectionManager,
    ModelCodec,
    TableMapper,
    TableSpec,
)


class Tag(BaseModel):
    id: int | None = None
    label: str


def main():
    db_file = tempfile.NamedTemporaryFile(delete=False, suffix=".db")
    db_path = db_file.name
    db_file.close()

    with ConnectionManager(ConnectionConfig(database=db_path)) as manager:
        manager.execute_write(
            "CREATE TABLE tags (id INTEGER PRIMARY KEY AUTOINCREMENT, label TEXT UNIQUE)"
        )
        tags = TableMapper(manager, TableSpec("tags", ("id", "label")), ModelCodec(Tag))

        # Example 1: One transaction for the whole batch
        print("=== Bulk insert ===")
        inserted = tags.bulk_insert([Tag(label="red"), Tag(label="green"), Tag(label="blue")])
        print(f"Inserted {inserted} tags")

        # Example 2: A failing row rolls back the batch
        print("\n=== Rollback ===")
        try:
            tags.bulk_insert([Tag(label="cyan"), Tag(label="red")])
        except BulkInsertError as e:
            print(f"Failed at row {e.index}: {e}")
        print(f"Tags stored: {tags.count()}")

        # Example 3: Conflict algorithms
        print("\n=== Conflicts ===")
        ignored = tags.insert(Tag(label="red"), ConflictAlgorithm.IGNORE)
        print(f"OR IGNORE returned {ignored}")
        replaced = tags.insert(Tag(id=1, label="crimson"), ConflictAlgorithm.REPLACE)
        print(f"OR REPLACE returned {replaced}")

        for tag in tags.query_as_list(order_by="id"):
            print(f"  {tag.id}: {tag.label}")


if __name__ == "__main__":
    main()
