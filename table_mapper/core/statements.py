"""SQL statement builders for the table-level operations.

Identifiers are double-quoted. Values are never formatted into the SQL text;
every statement uses ``?`` placeholders, row values first, then ``where``
arguments.
"""

from __future__ import annotations

from collections.abc import Sequence

from table_mapper.core.enums import ConflictAlgorithm
from table_mapper.core.exceptions import QueryCompileError
from table_mapper.core.sanitizer import DEFAULT_SANITIZER, ClauseSanitizer


def quote_identifier(name: str) -> str:
    """Quote a table or column name, doubling embedded quotes."""
    return '"' + name.replace('"', '""') + '"'


def _conflict_clause(conflict: ConflictAlgorithm) -> str:
    # ABORT is SQLite's default resolution
    if conflict is ConflictAlgorithm.ABORT:
        return ""
    return f" OR {conflict.value}"


def _where_clause(where: str | None, sanitizer: ClauseSanitizer) -> str:
    checked = sanitizer.check("WHERE", where)
    return f" WHERE {checked}" if checked is not None else ""


def insert_statement(
    table: str,
    columns: Sequence[str],
    conflict: ConflictAlgorithm = ConflictAlgorithm.ABORT,
) -> str:
    """``INSERT`` for *columns*; an empty column list inserts the defaults."""
    head = f"INSERT{_conflict_clause(conflict)} INTO {quote_identifier(table)}"
    if not columns:
        return f"{head} DEFAULT VALUES"
    names = ", ".join(quote_identifier(c) for c in columns)
    placeholders = ", ".join("?" for _ in columns)
    return f"{head} ({names}) VALUES ({placeholders})"


def update_statement(
    table: str,
    columns: Sequence[str],
    where: str | None = None,
    conflict: ConflictAlgorithm = ConflictAlgorithm.ABORT,
    sanitizer: ClauseSanitizer = DEFAULT_SANITIZER,
) -> str:
    """``UPDATE … SET`` for *columns*. A ``None`` *where* updates every row."""
    if not columns:
        raise QueryCompileError(table, "UPDATE requires at least one column value")
    assignments = ", ".join(f"{quote_identifier(c)} = ?" for c in columns)
    return (
        f"UPDATE{_conflict_clause(conflict)} {quote_identifier(table)} "
        f"SET {assignments}{_where_clause(where, sanitizer)}"
    )


def delete_statement(
    table: str,
    where: str | None = None,
    sanitizer: ClauseSanitizer = DEFAULT_SANITIZER,
) -> str:
    """``DELETE``. A ``None`` *where* deletes every row."""
    return f"DELETE FROM {quote_identifier(table)}{_where_clause(where, sanitizer)}"


def select_statement(
    table: str,
    projection: Sequence[str] | None = None,
    where: str | None = None,
    group_by: str | None = None,
    having: str | None = None,
    order_by: str | None = None,
    limit: str | int | None = None,
    distinct: bool = False,
    sanitizer: ClauseSanitizer = DEFAULT_SANITIZER,
) -> str:
    """``SELECT`` built from clause bodies given without their keywords.

    ``projection=None`` selects every column. Projection entries are column
    expressions and are not quoted.

    Raises:
        QueryCompileError: If *having* is given without *group_by*.
        ClauseSanitizationError: If a fragment fails sanitization.
    """
    group_by = sanitizer.check("GROUP BY", group_by)
    having = sanitizer.check("HAVING", having)
    if having is not None and group_by is None:
        raise QueryCompileError(table, "HAVING clauses are only permitted when using GROUP BY")

    if projection:
        if isinstance(projection, str):
            projection = [projection]
        columns = []
        for expr in projection:
            checked = sanitizer.check("projection", expr)
            if checked is None:
                raise QueryCompileError(table, "projection contains an empty column")
            columns.append(checked)
        select_list = ", ".join(columns)
    else:
        select_list = "*"

    parts = [f"SELECT {'DISTINCT ' if distinct else ''}{select_list} FROM {quote_identifier(table)}"]
    where_sql = _where_clause(where, sanitizer)
    if where_sql:
        parts.append(where_sql.lstrip())
    if group_by is not None:
        parts.append(f"GROUP BY {group_by}")
    if having is not None:
        parts.append(f"HAVING {having}")
    order_by = sanitizer.check("ORDER BY", order_by)
    if order_by is not None:
        parts.append(f"ORDER BY {order_by}")
    limit_sql = sanitizer.check_limit(limit)
    if limit_sql is not None:
        parts.append(f"LIMIT {limit_sql}")
    return " ".join(parts)


def count_statement(
    table: str,
    where: str | None = None,
    sanitizer: ClauseSanitizer = DEFAULT_SANITIZER,
) -> str:
    """``SELECT COUNT(*)`` over the rows matching *where*."""
    return f"SELECT COUNT(*) FROM {quote_identifier(table)}{_where_clause(where, sanitizer)}"
