"""Mapping layer - convert between records and row mappings."""

from __future__ import annotations

from table_mapper.mapping.materialize import cursor_to_list
from table_mapper.mapping.model import ModelCodec
from table_mapper.mapping.protocol import Codec, Record
from table_mapper.mapping.record import RecordCodec

__all__ = [
    "Codec",
    "Record",
    "ModelCodec",
    "RecordCodec",
    "cursor_to_list",
]
