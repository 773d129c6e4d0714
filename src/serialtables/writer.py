"""Serialize a table to a byte stream, row by row.

Layout of a stream:

    preamble   signature + format version            (plaintext)
    schema     column count + column declarations    (plaintext)
    rows       one encoded row after another         (compressed if requested)
"""

from __future__ import annotations

import logging
import os
from contextlib import ExitStack
from typing import Any, BinaryIO, Optional, Union

from .codec.bytepack import BytePacker
from .codec.schema import TableSchema
from .codec.values import encode_row, encode_schema
from .compression.base import Transform
from .exceptions import ValidationError
from .framing.preamble import FORMAT_VERSION, write_preamble
from .tables import RowTable, as_row_table

logger = logging.getLogger(__name__)

PathOrChannel = Union[str, "os.PathLike[str]", BinaryIO]

# Encoded rows are buffered up to this size before each sink write
WRITE_BUFFER_SIZE = 64 * 1024


def serialize_table_rows(
    destination: PathOrChannel,
    table: Any,
    *,
    compression: Optional[Transform] = None,
    compression_level: Optional[int] = None,
    schema: Optional[TableSchema] = None,
    close_channel: bool = True,
) -> int:
    """Write table to destination: preamble, schema, then every row in order.

    The preamble and schema are written in plaintext; when ``compression`` is
    given, the row section is passed through it. The reader must be given a
    matching transform, since the stream does not record which one was used.

    Args:
        destination: Path to create/overwrite, or a writable binary channel
        table: Table to serialize (see serialtables.tables.as_row_table)
        compression: Compression transform for the row section
        compression_level: Level overriding the transform's configured level;
            only valid together with ``compression``
        schema: Explicit schema, for tables whose schema cannot be derived
        close_channel: Whether to close a channel passed as destination.
            Paths are always closed.

    Returns:
        Number of rows written

    Raises:
        ValidationError: If the table has no rows/schema, a row does not match
            the schema, or the compression options are invalid
        OSError: If writing to the destination fails

    Example:
        >>> table = {"a": [1, 2, 3], "b": [1.0, None, 3.0]}
        >>> serialize_table_rows("rows.bin", table, compression=GzipTransform(), compression_level=1)
        3
    """
    level = None
    if compression is not None:
        if not isinstance(compression, Transform):
            raise ValidationError(
                f"compression must be a Transform, got {type(compression).__name__}"
            )
        level = compression.resolve_level(compression_level)
    elif compression_level is not None:
        raise ValidationError("compression_level requires a compression transform")

    row_table = as_row_table(table, schema)

    with ExitStack() as stack:
        sink = _open_sink(destination, close_channel, stack)
        write_preamble(sink, FORMAT_VERSION)
        encode_schema(sink, row_table.schema)
        if compression is not None:
            sink = stack.enter_context(compression.wrap_sink(sink, level))
        count = _write_rows(sink, row_table)

    logger.debug(
        "Wrote %d rows (%d columns, compression=%s)",
        count,
        len(row_table.schema),
        compression.name if compression is not None else None,
    )
    return count


def _open_sink(destination: PathOrChannel, close_channel: bool, stack: ExitStack) -> BinaryIO:
    """Open destination for writing and register its release on stack."""
    if isinstance(destination, (str, os.PathLike)):
        return stack.enter_context(open(destination, "wb"))
    if not hasattr(destination, "write"):
        raise ValidationError(
            f"destination must be a path or a writable binary channel, "
            f"got {type(destination).__name__}"
        )
    if close_channel:
        stack.callback(destination.close)
    else:
        stack.callback(destination.flush)
    return destination


def _write_rows(sink: BinaryIO, row_table: RowTable) -> int:
    schema = row_table.schema
    packer = BytePacker()
    count = 0
    for row in row_table.rows:
        encode_row(packer, schema, row, row_index=count)
        count += 1
        if packer.byte_length() >= WRITE_BUFFER_SIZE:
            packer.flush_to(sink)
    packer.flush_to(sink)
    return count
