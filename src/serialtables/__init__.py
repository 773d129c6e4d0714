"""serialtables: versioned row serialization for tabular data

A Python library that persists a table (rows sharing a column schema) to a
single byte stream and reads it back as a lazy, single-pass sequence of rows.

Key Features:
- Explicit, portable wire format: signature + version preamble, schema,
  then schema-driven rows with per-value presence markers
- Tables from Pydantic models, column mappings, or row sequences
- Pluggable compression of the row section (gzip, bz2, lzma, zstd)
- Single-pass row iterator that releases its resources at end of stream

Quick Start:
    >>> from serialtables import serialize_table_rows, deserialize_table_rows
    >>>
    >>> table = {"a": [1, 2, 3], "b": [1.0, 2.0, None]}
    >>> serialize_table_rows("rows.bin", table)
    3
    >>> rows = deserialize_table_rows("rows.bin")
    >>> rows.schema.names
    ('a', 'b')
    >>> [tuple(row) for row in rows]
    [(1, 1.0), (2, 2.0), (3, None)]
"""

from __future__ import annotations

import logging

from .codec import Column, ColumnType, TableSchema
from .compression import (
    Bzip2Transform,
    GzipTransform,
    LzmaTransform,
    Transform,
    ZstdTransform,
    get_transform,
)
from .exceptions import FormatError, SerialTablesError, UsageError, ValidationError
from .framing import FORMAT_VERSION, SIGNATURE
from .reader import IterationState, RowSequence, deserialize_table_rows, read_schema
from .tables import RowTable, as_row_table
from .writer import serialize_table_rows

__version__ = "0.1.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    # Core API
    "serialize_table_rows",
    "deserialize_table_rows",
    "read_schema",
    "RowSequence",
    "IterationState",
    # Schema
    "TableSchema",
    "Column",
    "ColumnType",
    # Tables
    "RowTable",
    "as_row_table",
    # Compression
    "Transform",
    "GzipTransform",
    "Bzip2Transform",
    "LzmaTransform",
    "ZstdTransform",
    "get_transform",
    # Exceptions
    "SerialTablesError",
    "ValidationError",
    "FormatError",
    "UsageError",
    # Format
    "SIGNATURE",
    "FORMAT_VERSION",
    # Version
    "__version__",
]
