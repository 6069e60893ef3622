"""
Example 01: Basic Table Mapper

This example demonstrates inserting, querying, updating and deleting records
through a TableMapper backed by a dataclass.
"""

import tempfile
from dataclasses import dataclass

from table_mapper import ConnectionConfig, ConnectionManager, ModelCodec, TableMapper, TableSpec


@dataclass
class Person:
    id: int | None = None
    name: str = ""
    age: int | None = None


def main():
    # Create a temporary database
    db_file = tempfile.NamedTemporaryFile(delete=False, suffix=".db")
    db_path = db_file.name
    db_file.close()

    config = ConnectionConfig(database=db_path)
    with ConnectionManager(config) as manager:
        manager.execute_write(
            "CREATE TABLE people (id INTEGER PRIMARY KEY AUTOINCREMENT, name TEXT, age INTEGER)"
        )

        spec = TableSpec(
            "people",
            ("id", "name", "age"),
            guard=lambda row: (row.get("age") or 0) >= 0,
        )
        people = TableMapper(manager, spec, ModelCodec(Person))

        # Example 1: Insert records and row mappings
        print("=== Insert ===")
        ada_id = people.insert(Person(name="Ada", age=36))
        grace_id = people.insert({"name": "Grace", "age": 45})
        print(f"Inserted Ada as {ada_id}, Grace as {grace_id}")

        # Example 2: The guard vetoes a row
        print("\n=== Guard ===")
        print(f"Negative age insert returned {people.insert({'name': 'Nobody', 'age': -1})}")

        # Example 3: Query into records
        print("\n=== Query ===")
        for person in people.query_as_list(order_by="name"):
            print(f"  {person}")

        adults = people.query_as_list(["id", "name"], where="age > ?", args=[40])
        print(f"Over 40: {[p.name for p in adults]}")

        # Example 4: Update and count
        print("\n=== Update ===")
        people.update({"age": 37}, "id = ?", [ada_id])
        print(f"Rows with age 37: {people.count('age = ?', [37])}")

        # Example 5: Delete everything
        print("\n=== Delete ===")
        print(f"Deleted {people.delete()} row(s)")


if __name__ == "__main__":
    main()
