"""Connection configuration and management.

ConnectionConfig is a Pydantic model for type-safe connection config.
ConnectionManager is the process-local gateway to the single shared database
handle. Every user of the handle holds a Reservation: writes hold one for the
duration of the call, cursors hold one until they are closed. The handle is
opened on the 0→1 transition of the reservation count and closed on 1→0.
"""

from __future__ import annotations

import importlib
import logging
import threading
from collections.abc import Iterable, Mapping, Sequence
from contextlib import contextmanager
from typing import Any

from pydantic import BaseModel, Field

from table_mapper.core.cursor import DbCursor
from table_mapper.core.enums import ConflictAlgorithm
from table_mapper.core.exceptions import (
    AdapterError,
    BulkInsertError,
    ConnectionError,  # noqa: A004
    LifecycleError,
    ManagerClosedError,
    QueryCompileError,
    ReservationError,
    WriteError,
)
from table_mapper.core.params import coerce_args, normalize_row
from table_mapper.core.sanitizer import DEFAULT_SANITIZER, ClauseSanitizer
from table_mapper.core.statements import (
    count_statement,
    delete_statement,
    insert_statement,
    select_statement,
    update_statement,
)
from table_mapper.core.transaction import TransactionManager, WriteResult

logger = logging.getLogger(__name__)


class ConnectionConfig(BaseModel):
    """Configuration for the database handle."""

    driver: str = "sqlite"
    database: str
    timeout: float = 5.0
    journal_mode: str | None = None
    foreign_keys: bool = True
    cursor_window: int = Field(default=256, ge=1)
    extra: dict[str, Any] = {}


# Adapter module mapping: driver name → (module_path, class_name)
_ADAPTER_MAP: dict[str, tuple[str, str]] = {
    "sqlite": ("table_mapper.adapters.sqlite", "SqliteSyncAdapter"),
}


def _load_adapter(driver: str) -> Any:
    """Load an adapter by driver name."""
    driver_lower = driver.lower()
    if driver_lower not in _ADAPTER_MAP:
        raise AdapterError(f"Unsupported database driver: {driver}")

    module_path, cls_name = _ADAPTER_MAP[driver_lower]
    try:
        module = importlib.import_module(module_path)
        return getattr(module, cls_name)()
    except (ImportError, AttributeError) as e:
        raise AdapterError(f"Failed to load adapter for '{driver}': {e}") from e


class Reservation:
    """One unit of shared ownership over the database handle.

    ``release()`` gives the unit back to the manager exactly once; later calls
    are no-ops.
    """

    __slots__ = ("_manager", "_released")

    def __init__(self, manager: ConnectionManager) -> None:
        self._manager = manager
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> None:
        self._manager._release(self)

    def __enter__(self) -> Reservation:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.release()

    def __repr__(self) -> str:
        return f"Reservation(released={self._released})"


class ConnectionManager:
    """Reference-counted gateway to one shared database handle.

    Safe to share between threads: the reservation count is updated under a
    lock, and statements on the handle are serialised by a re-entrant
    statement lock.

    Args:
        config: Connection configuration.
        sanitizer: Checks applied to caller-supplied clause fragments.
    """

    def __init__(
        self,
        config: ConnectionConfig,
        sanitizer: ClauseSanitizer | None = None,
    ) -> None:
        self.config = config
        self.sanitizer = sanitizer if sanitizer is not None else DEFAULT_SANITIZER
        self._adapter = _load_adapter(config.driver)
        self._lock = threading.Lock()
        self._statement_lock = threading.RLock()
        self._handle: Any = None
        self._count = 0
        self._closed = False
        self._opened: list[Reservation] = []

    @property
    def adapter(self) -> Any:
        return self._adapter

    @property
    def statement_lock(self) -> Any:
        return self._statement_lock

    @property
    def handle(self) -> Any:
        """The open handle. Only valid while holding a reservation."""
        if self._handle is None:
            raise LifecycleError("No reservation is held; the database handle is closed")
        return self._handle

    @property
    def reservation_count(self) -> int:
        return self._count

    @property
    def is_open(self) -> bool:
        """Whether the database handle is currently open."""
        return self._handle is not None

    @property
    def closed(self) -> bool:
        """Whether shutdown() has been called."""
        return self._closed

    # ------------------------------------------------------------------
    # Reservations
    # ------------------------------------------------------------------

    def acquire(self) -> Reservation:
        """Take one reservation, opening the handle on the 0→1 transition.

        Raises:
            ManagerClosedError: If shutdown() has been called.
            ConnectionError: If the handle cannot be opened.
        """
        with self._lock:
            if self._closed:
                raise ManagerClosedError(self.config.database)
            if self._count == 0:
                try:
                    self._handle = self._adapter.open_handle(self.config)
                except self._adapter.error as e:
                    raise ConnectionError(
                        f"Failed to open database '{self.config.database}': {e}"
                    ) from e
                logger.info(f"Opened database handle for {self.config.database}")
            self._count += 1
            logger.debug(f"Reservation acquired ({self._count} held)")
            return Reservation(self)

    def _release(self, reservation: Reservation) -> None:
        """Give back *reservation*, closing the handle on the 1→0 transition."""
        with self._lock:
            if reservation._released:
                return
            reservation._released = True
            self._count -= 1
            logger.debug(f"Reservation released ({self._count} held)")
            if self._count == 0:
                handle, self._handle = self._handle, None
                self._adapter.close_handle(handle)
                logger.info(f"Closed database handle for {self.config.database}")

    def open(self) -> Reservation:
        """Hold the handle open until the matching close()."""
        reservation = self.acquire()
        with self._lock:
            self._opened.append(reservation)
        return reservation

    def close(self) -> None:
        """Release the most recent reservation taken by open().

        Raises:
            ReservationError: If there is no open() to match.
        """
        with self._lock:
            if not self._opened:
                raise ReservationError("close() called without a matching open()")
            reservation = self._opened.pop()
        reservation.release()

    def shutdown(self) -> None:
        """Reject new reservations and drop the ones taken by open().

        Reservations held by open cursors keep the handle alive; it is closed
        when the last of them is released. Idempotent.
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True
            opened, self._opened = self._opened, []
            pending = self._count - len(opened)
        for reservation in opened:
            reservation.release()
        if pending:
            logger.info(
                f"Connection manager shut down with {pending} reservation(s) outstanding"
            )
        else:
            logger.info("Connection manager shut down")

    @contextmanager
    def reserve(self):  # type: ignore[no-untyped-def]
        """Hold a reservation for the duration of the block and yield the handle."""
        reservation = self.acquire()
        try:
            yield self._handle
        finally:
            reservation.release()

    def __enter__(self) -> ConnectionManager:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.shutdown()

    # ------------------------------------------------------------------
    # Statement execution
    # ------------------------------------------------------------------

    def execute_write(
        self,
        sql: str,
        bindings: Sequence[Any] = (),
        *,
        table: str = "<sql>",
        operation: str | None = None,
    ) -> WriteResult:
        """Execute one write statement under a reservation held for the call."""
        operation = operation or sql.lstrip().split(" ", 1)[0].upper()
        with self.reserve() as handle, self._statement_lock:
            logger.debug(f"{operation} on {table}: {sql}")
            try:
                cursor = self._adapter.execute(handle, sql, bindings)
            except self._adapter.error as e:
                raise WriteError(table, operation, str(e)) from e
            return WriteResult(int(cursor.rowcount), cursor.lastrowid)

    def execute_bulk(
        self,
        writes: Iterable[tuple[str, Sequence[Any]]],
        *,
        table: str = "<sql>",
    ) -> int:
        """Execute *writes* in a single transaction. Returns total affected rows.

        Raises:
            BulkInsertError: If any write fails; nothing is kept.
        """
        total = 0
        with self.transaction() as tx:
            for index, (sql, bindings) in enumerate(writes):
                try:
                    total += tx.execute(sql, bindings).rowcount
                except WriteError as e:
                    logger.warning(f"Bulk write to {table} failed at row {index}, rolling back")
                    raise BulkInsertError(table, index, str(e.__cause__ or e)) from e
        return total

    def execute_query(
        self,
        sql: str,
        bindings: Sequence[Any] = (),
        *,
        table: str = "<sql>",
    ) -> DbCursor:
        """Execute a query. The returned cursor owns one reservation.

        Raises:
            QueryCompileError: If the engine rejects the query. No cursor is
                produced and the reservation is released.
        """
        reservation = self.acquire()
        try:
            with self._statement_lock:
                logger.debug(f"SELECT on {table}: {sql}")
                raw = self._adapter.execute(self._handle, sql, bindings)
        except self._adapter.error as e:
            reservation.release()
            raise QueryCompileError(table, str(e)) from e
        except BaseException:
            reservation.release()
            raise
        return DbCursor(
            raw,
            reservation,
            lock=self._statement_lock,
            window=self.config.cursor_window,
            error=self._adapter.error,
        )

    def transaction(self) -> TransactionManager:
        """Create a transaction context manager holding one reservation."""
        return TransactionManager(self)

    # ------------------------------------------------------------------
    # Table-level operations
    # ------------------------------------------------------------------

    def insert(
        self,
        table: str,
        row: Mapping[str, Any],
        conflict: ConflictAlgorithm = ConflictAlgorithm.ABORT,
    ) -> int:
        """Insert *row*. Returns the new row id, or -1 if the row was ignored."""
        values = normalize_row(table, row)
        sql = insert_statement(table, list(values), conflict)
        result = self.execute_write(sql, tuple(values.values()), table=table, operation="INSERT")
        if result.rowcount == 0 or result.lastrowid is None:
            return -1
        return result.lastrowid

    def bulk_insert(
        self,
        table: str,
        rows: Iterable[Mapping[str, Any]],
        conflict: ConflictAlgorithm = ConflictAlgorithm.ABORT,
    ) -> int:
        """Insert *rows* as one transaction. Returns the number inserted."""
        writes = []
        for row in rows:
            values = normalize_row(table, row)
            writes.append((insert_statement(table, list(values), conflict), tuple(values.values())))
        if not writes:
            return 0
        return self.execute_bulk(writes, table=table)

    def update(
        self,
        table: str,
        row: Mapping[str, Any],
        where: str | None = None,
        args: Iterable[Any] | None = None,
        conflict: ConflictAlgorithm = ConflictAlgorithm.ABORT,
    ) -> int:
        """Update rows matching *where* (every row if None). Returns affected rows."""
        values = normalize_row(table, row)
        sql = update_statement(table, list(values), where, conflict, self.sanitizer)
        bindings = (*values.values(), *coerce_args(table, args))
        return self.execute_write(sql, bindings, table=table, operation="UPDATE").rowcount

    def delete(
        self,
        table: str,
        where: str | None = None,
        args: Iterable[Any] | None = None,
    ) -> int:
        """Delete rows matching *where* (every row if None). Returns affected rows."""
        sql = delete_statement(table, where, self.sanitizer)
        bindings = coerce_args(table, args)
        return self.execute_write(sql, bindings, table=table, operation="DELETE").rowcount

    def query(
        self,
        table: str,
        projection: Sequence[str] | None = None,
        where: str | None = None,
        args: Iterable[Any] | None = None,
        group_by: str | None = None,
        having: str | None = None,
        order_by: str | None = None,
        limit: str | int | None = None,
        distinct: bool = False,
    ) -> DbCursor:
        """Query *table*. Fragments are clause bodies without their keywords."""
        sql = select_statement(
            table,
            projection,
            where,
            group_by,
            having,
            order_by,
            limit,
            distinct=distinct,
            sanitizer=self.sanitizer,
        )
        return self.execute_query(sql, coerce_args(table, args), table=table)

    def count(
        self,
        table: str,
        where: str | None = None,
        args: Iterable[Any] | None = None,
    ) -> int:
        """Number of rows in *table* matching *where*."""
        sql = count_statement(table, where, self.sanitizer)
        with self.execute_query(sql, coerce_args(table, args), table=table) as cursor:
            cursor.move_to_first()
            return cursor.get_int(0) or 0
