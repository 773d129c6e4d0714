"""Schema-driven binary codec for serialtables.

This module provides the schema model and the value codec that encodes the
schema section and the rows of a stream.
"""

from __future__ import annotations

from .schema import Column, ColumnType, TableSchema
from .values import decode_row, decode_schema, encode_row, encode_schema

__all__ = [
    "Column",
    "ColumnType",
    "TableSchema",
    "encode_schema",
    "decode_schema",
    "encode_row",
    "decode_row",
]
