"""Read a serialized table back as a lazy, single-pass row sequence."""

from __future__ import annotations

import enum
import logging
import os
from contextlib import ExitStack
from typing import Any, BinaryIO, Mapping, Optional, Type, Union

import pydantic
from pydantic import BaseModel

from .codec.bytepack import ByteReader
from .codec.schema import TableSchema
from .codec.values import decode_row, decode_schema
from .compression.base import Transform
from .exceptions import FormatError, UsageError, ValidationError
from .framing.preamble import SUPPORTED_VERSIONS, read_preamble

logger = logging.getLogger(__name__)

PathOrChannel = Union[str, "os.PathLike[str]", BinaryIO]


class IterationState(enum.Enum):
    """Cursor state of a RowSequence."""

    NOT_STARTED = "not_started"
    ACTIVE = "active"
    EXHAUSTED = "exhausted"


class RowSequence:
    """Lazy, forward-only sequence of the rows stored in a stream.

    Rows are decoded on demand. The sequence has a single cursor: it can be
    iterated once, and a second read requires opening the source again.
    Reaching the end of the stream (or a decode error, or close()) releases
    the decompression transform and then the channel.

    State transitions:
        NOT_STARTED -> ACTIVE     first iter() or next()
        ACTIVE      -> ACTIVE     next() decodes one row
        ACTIVE      -> EXHAUSTED  end of stream, decode error, or close()

    iter() on an ACTIVE or EXHAUSTED sequence raises UsageError; next() on an
    EXHAUSTED sequence keeps raising StopIteration.

    Attributes:
        schema: Schema of the stored rows, available before any row is read
        version: Format version recorded in the stream
    """

    def __init__(
        self,
        schema: TableSchema,
        version: int,
        reader: ByteReader,
        resources: ExitStack,
        row_model: Optional[Type[BaseModel]] = None,
    ) -> None:
        self.schema = schema
        self.version = version
        self._reader = reader
        self._resources = resources
        self._row_model = row_model
        self._row_type = schema.row_type()
        self._state = IterationState.NOT_STARTED
        self._rows_read = 0

    @property
    def state(self) -> IterationState:
        return self._state

    @property
    def rows_read(self) -> int:
        return self._rows_read

    def rows(self) -> RowSequence:
        """Return the row iterator (the sequence itself)."""
        return self

    def __iter__(self) -> RowSequence:
        if self._state is IterationState.ACTIVE:
            raise UsageError("Iteration already in progress; open the source again to re-read it")
        if self._state is IterationState.EXHAUSTED:
            raise UsageError("Row sequence is exhausted; open the source again to re-read it")
        self._state = IterationState.ACTIVE
        return self

    def __next__(self) -> Any:
        if self._state is IterationState.EXHAUSTED:
            raise StopIteration
        self._state = IterationState.ACTIVE

        self._reader.row_index = self._rows_read
        try:
            values = decode_row(self._reader, self.schema)
            row = None if values is None else self._make_row(values)
        except BaseException:
            self._release()
            raise

        if values is None:
            logger.debug("End of stream after %d rows", self._rows_read)
            self._release()
            raise StopIteration
        self._rows_read += 1
        return row

    def _make_row(self, values: tuple) -> Any:
        if self._row_model is None:
            return self._row_type._make(values)
        try:
            return self._row_model(**dict(zip(self.schema.names, values)))
        except pydantic.ValidationError as e:
            raise FormatError(
                f"failed to construct {self._row_model.__name__}: {e}",
                phase="row",
                row_index=self._rows_read,
            ) from e

    def close(self) -> None:
        """Abandon the sequence early, releasing the transform and channel."""
        self._release()

    def _release(self) -> None:
        if self._state is IterationState.EXHAUSTED:
            return
        self._state = IterationState.EXHAUSTED
        self._resources.close()

    def __enter__(self) -> RowSequence:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        return (
            f"RowSequence(version={self.version}, schema={self.schema!r}, "
            f"state={self._state.name}, rows_read={self._rows_read})"
        )


def deserialize_table_rows(
    source: PathOrChannel,
    *,
    decompression: Optional[Transform] = None,
    row_model: Optional[Type[BaseModel]] = None,
    enum_types: Optional[Mapping[str, Type[enum.Enum]]] = None,
    close_channel: bool = True,
) -> RowSequence:
    """Open a serialized table and return its rows as a RowSequence.

    The preamble and schema are read eagerly; rows are decoded lazily.

    Args:
        source: Path to read, or a readable binary channel positioned at the
            start of the stream
        decompression: Transform matching the one the writer used, if any
        row_model: Pydantic model class to build each row from. Its fields
            must match the stored schema. Rows are namedtuples otherwise.
        enum_types: Enum classes for ENUM columns, keyed by column or enum
            name; without one, ENUM values decode to member names
        close_channel: Whether the sequence closes a channel passed as source.
            Paths are always closed.

    Returns:
        RowSequence in the NOT_STARTED state

    Raises:
        FormatError: If the signature is invalid, the version unsupported, or
            the schema malformed
        ValidationError: If options are invalid or row_model does not match
            the stored schema
        OSError: If reading the source fails

    Example:
        >>> rows = deserialize_table_rows("rows.bin", decompression=GzipTransform())
        >>> rows.schema.names
        ('a', 'b')
        >>> [tuple(row) for row in rows]
        [(1, 1.0), (2, None), (3, 3.0)]
    """
    if decompression is not None and not isinstance(decompression, Transform):
        raise ValidationError(
            f"decompression must be a Transform, got {type(decompression).__name__}"
        )

    resources = ExitStack()
    try:
        channel = _open_source(source, close_channel, resources)
        reader = ByteReader(channel)

        version = read_preamble(reader)
        if version not in SUPPORTED_VERSIONS:
            raise FormatError(f"unsupported version {version}", phase="version")

        schema = decode_schema(reader)
        if row_model is not None:
            schema = _bind_row_model(schema, row_model)
        if enum_types:
            schema = schema.with_enum_types(enum_types)

        if decompression is not None:
            reader.source = resources.enter_context(decompression.wrap_source(channel))
    except BaseException:
        resources.close()
        raise

    logger.debug(
        "Opened stream (format version %d, %d columns, decompression=%s)",
        version,
        len(schema),
        decompression.name if decompression is not None else None,
    )
    return RowSequence(schema, version, reader, resources, row_model=row_model)


def read_schema(source: PathOrChannel, *, close_channel: bool = True) -> TableSchema:
    """Read only the preamble and schema of a serialized table.

    The schema section is never compressed, so no transform is needed.

    Raises:
        FormatError: If the preamble or schema is invalid
    """
    rows = deserialize_table_rows(source, close_channel=close_channel)
    rows.close()
    return rows.schema


def _open_source(source: PathOrChannel, close_channel: bool, stack: ExitStack) -> BinaryIO:
    """Open source for reading and register its release on stack."""
    if isinstance(source, (str, os.PathLike)):
        return stack.enter_context(open(source, "rb"))
    if not hasattr(source, "read"):
        raise ValidationError(
            f"source must be a path or a readable binary channel, got {type(source).__name__}"
        )
    if close_channel:
        stack.callback(source.close)
    return source


def _bind_row_model(schema: TableSchema, row_model: Type[BaseModel]) -> TableSchema:
    """Check row_model against the stored schema and attach its Enum classes."""
    model_schema = TableSchema.from_model(row_model)
    if model_schema.names != schema.names:
        raise ValidationError(
            f"{row_model.__name__} fields {model_schema.names} do not match "
            f"stored columns {schema.names}"
        )
    for stored, declared in zip(schema, model_schema):
        if stored.type is not declared.type:
            raise ValidationError(
                f"{row_model.__name__}.{declared.name}: declared {declared.type.name}, "
                f"stored {stored.type.name}"
            )
        if stored.members != declared.members:
            raise ValidationError(
                f"{row_model.__name__}.{declared.name}: declared members "
                f"{declared.members}, stored members {stored.members}"
            )
        if stored.nullable and not declared.nullable:
            raise ValidationError(
                f"{row_model.__name__}.{declared.name}: stored column is nullable, "
                f"field is not Optional"
            )
    return schema.with_enum_types(
        {column.name: column.enum_type for column in model_schema if column.enum_type}
    )
