"""
Example 03: Cursors and Handle Lifetime

This example demonstrates positional cursor access and how an open cursor
keeps the database handle alive after the manager is shut down.
"""

import logging
import tempfile

from table_mapper import ConnectionConfig, ConnectionManager


def main():
    logging.basicConfig(level=logging.INFO, format="%(name)s: %(message)s")

    db_file = tempfile.NamedTemporaryFile(delete=False, suffix=".db")
    db_path = db_file.name
    db_file.close()

    manager = ConnectionManager(ConnectionConfig(database=db_path, cursor_window=2))
    manager.execute_write("CREATE TABLE nums (n INTEGER)")
    manager.bulk_insert("nums", [{"n": i} for i in range(1, 6)])

    # Example 1: Random access
    print("=== Positional access ===")
    cursor = manager.query("nums", ["n", "n * n AS square"], order_by="n")
    print(f"Rows: {cursor.count}")
    cursor.move_to_last()
    print(f"Last: n={cursor.get_int('n')} square={cursor.get_int('square')}")
    cursor.move_to_position(1)
    print(f"Second: {cursor.row_dict()}")

    # Example 2: Shutdown with a cursor still open
    print("\n=== Shutdown ===")
    manager.shutdown()
    print(f"Handle open after shutdown: {manager.is_open}")
    cursor.move_to_first()
    print(f"Still readable: n={cursor.get_int('n')}")
    cursor.close()
    print(f"Handle open after closing the cursor: {manager.is_open}")


if __name__ == "__main__":
    main()
