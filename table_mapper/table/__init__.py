"""Table layer - one typed mapper per logical table."""

from __future__ import annotations

from table_mapper.table.base import TableMapper, TableSpec

__all__ = [
    "TableMapper",
    "TableSpec",
]
