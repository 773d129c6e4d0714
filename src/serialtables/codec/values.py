"""Schema-driven value codec.

This module encodes the schema section of a stream and the rows that follow
it. Every row starts with ROW_MARKER; every value is preceded by a presence
byte and, when present, followed by the payload its column type defines:

    BOOL     u8 (0 or 1)
    INT64    i64
    FLOAT64  f64 (IEEE 754 double)
    STRING   u32 byte length + UTF-8
    BYTES    u32 byte length + raw bytes
    CHAR     u32 Unicode code point
    ENUM     u32 ordinal into the column's member list
"""

from __future__ import annotations

import enum
from typing import Any, BinaryIO, Callable, Dict, Optional, Sequence, Tuple, Union

from ..exceptions import ValidationError
from .bytepack import BytePacker, ByteReader
from .schema import FLAG_NULLABLE, KNOWN_FLAGS, Column, ColumnType, TableSchema

ROW_MARKER = 0x1E
ABSENT = 0x00
PRESENT = 0x01

INT64_MIN = -(1 << 63)
INT64_MAX = (1 << 63) - 1
MAX_CODE_POINT = 0x10FFFF


def encode_schema(sink: BinaryIO, schema: TableSchema) -> None:
    """Write the schema section: column count, then each column declaration.

    Args:
        sink: Binary sink positioned right after the preamble
        schema: Schema to write

    Raises:
        ValidationError: If a name or member list does not fit the format
    """
    packer = BytePacker()
    packer.write_u32(len(schema))
    try:
        for column in schema:
            packer.write_name(column.name)
            packer.write_u8(int(column.type))
            packer.write_u8(FLAG_NULLABLE if column.nullable else 0)
            if column.type is ColumnType.ENUM:
                packer.write_name(column.enum_name or column.name)
                packer.write_u32(len(column.members))
                for member in column.members:
                    packer.write_name(member)
    except ValueError as e:
        raise ValidationError(f"Cannot encode schema: {e}") from e
    packer.flush_to(sink)


def decode_schema(source: Union[BinaryIO, ByteReader]) -> TableSchema:
    """Read the schema section written by encode_schema.

    Args:
        source: Binary source (or ByteReader) positioned right after the preamble

    Returns:
        The stored TableSchema, with column order, names and types intact

    Raises:
        FormatError: If the schema section is truncated or malformed
    """
    reader = source if isinstance(source, ByteReader) else ByteReader(source)
    reader.phase = "schema"
    reader.row_index = None

    count = reader.read_u32()
    columns = []
    for _ in range(count):
        name = reader.read_name()
        tag = reader.read_u8()
        try:
            column_type = ColumnType(tag)
        except ValueError as e:
            raise reader.error(f"column {name!r}: unknown type tag {tag}") from e
        flags = reader.read_u8()
        if flags & ~KNOWN_FLAGS:
            raise reader.error(f"column {name!r}: unknown flags 0x{flags:02x}")

        enum_name = None
        members: Tuple[str, ...] = ()
        if column_type is ColumnType.ENUM:
            enum_name = reader.read_name()
            member_count = reader.read_u32()
            members = tuple(reader.read_name() for _ in range(member_count))

        try:
            columns.append(
                Column(
                    name=name,
                    type=column_type,
                    nullable=bool(flags & FLAG_NULLABLE),
                    enum_name=enum_name,
                    members=members,
                )
            )
        except ValidationError as e:
            raise reader.error(str(e)) from e

    try:
        return TableSchema(columns)
    except ValidationError as e:
        raise reader.error(str(e)) from e


def encode_row(
    packer: BytePacker,
    schema: TableSchema,
    row: Sequence[Any],
    row_index: Optional[int] = None,
) -> None:
    """Pack one row, values in schema order.

    Args:
        packer: BytePacker to write to
        schema: Stream schema
        row: One value per column; None marks a missing value
        row_index: Position of the row in the table, for error messages

    Raises:
        ValidationError: If the row shape or a value does not match the schema
    """
    where = f"row {row_index}: " if row_index is not None else ""
    if len(row) != len(schema):
        raise ValidationError(
            f"{where}expected {len(schema)} values, got {len(row)}"
        )

    packer.write_u8(ROW_MARKER)
    for column, value in zip(schema.columns, row):
        if value is None:
            if not column.nullable:
                raise ValidationError(
                    f"{where}column {column.name!r} is not nullable but got None"
                )
            packer.write_u8(ABSENT)
            continue

        packer.write_u8(PRESENT)
        try:
            _VALUE_ENCODERS[column.type](packer, column, value)
        except ValidationError as e:
            raise ValidationError(f"{where}column {column.name!r}: {e}") from e


def decode_row(reader: ByteReader, schema: TableSchema) -> Optional[Tuple[Any, ...]]:
    """Read one row.

    Args:
        reader: ByteReader positioned at a row boundary
        schema: Stream schema

    Returns:
        Tuple of values in schema order, or None when the stream ends cleanly
        at a row boundary

    Raises:
        FormatError: If the row is truncated or malformed
    """
    reader.phase = "row"
    marker = reader.read_marker()
    if marker is None:
        return None
    if marker != ROW_MARKER:
        raise reader.error(f"invalid row marker 0x{marker:02x}")

    values = []
    for column in schema.columns:
        presence = reader.read_u8()
        if presence == ABSENT:
            if not column.nullable:
                raise reader.error(f"column {column.name!r} is not nullable but value is missing")
            values.append(None)
        elif presence == PRESENT:
            values.append(_VALUE_DECODERS[column.type](reader, column))
        else:
            raise reader.error(f"column {column.name!r}: invalid presence byte 0x{presence:02x}")
    return tuple(values)


# Per-type encoders


def _encode_bool(packer: BytePacker, column: Column, value: Any) -> None:
    if not isinstance(value, bool):
        raise ValidationError(f"expected bool, got {type(value).__name__}")
    packer.write_u8(1 if value else 0)


def _encode_int64(packer: BytePacker, column: Column, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"expected int, got {type(value).__name__}")
    if value < INT64_MIN or value > INT64_MAX:
        raise ValidationError(f"value {value} out of int64 range")
    packer.write_i64(value)


def _encode_float64(packer: BytePacker, column: Column, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"expected float, got {type(value).__name__}")
    try:
        packer.write_f64(float(value))
    except OverflowError as e:
        raise ValidationError(f"value {value} out of float64 range") from e


def _encode_string(packer: BytePacker, column: Column, value: Any) -> None:
    if not isinstance(value, str):
        raise ValidationError(f"expected str, got {type(value).__name__}")
    try:
        packer.write_text(value)
    except (UnicodeEncodeError, ValueError) as e:
        raise ValidationError(str(e)) from e


def _encode_bytes(packer: BytePacker, column: Column, value: Any) -> None:
    if not isinstance(value, (bytes, bytearray)):
        raise ValidationError(f"expected bytes, got {type(value).__name__}")
    try:
        packer.write_sized_bytes(bytes(value))
    except ValueError as e:
        raise ValidationError(str(e)) from e


def _encode_char(packer: BytePacker, column: Column, value: Any) -> None:
    if not isinstance(value, str) or len(value) != 1:
        raise ValidationError(f"expected a single character, got {value!r}")
    packer.write_u32(ord(value))


def _encode_enum(packer: BytePacker, column: Column, value: Any) -> None:
    if isinstance(value, enum.Enum):
        name = value.name
    elif isinstance(value, str):
        name = value
    else:
        raise ValidationError(f"expected enum member, got {type(value).__name__}")
    try:
        ordinal = column.members.index(name)
    except ValueError as err:
        raise ValidationError(
            f"{name!r} not in {column.enum_name} members {column.members}"
        ) from err
    packer.write_u32(ordinal)


# Per-type decoders


def _decode_bool(reader: ByteReader, column: Column) -> bool:
    raw = reader.read_u8()
    if raw > 1:
        raise reader.error(f"column {column.name!r}: invalid bool byte 0x{raw:02x}")
    return raw == 1


def _decode_int64(reader: ByteReader, column: Column) -> int:
    return reader.read_i64()


def _decode_float64(reader: ByteReader, column: Column) -> float:
    return reader.read_f64()


def _decode_string(reader: ByteReader, column: Column) -> str:
    return reader.read_text()


def _decode_bytes(reader: ByteReader, column: Column) -> bytes:
    return reader.read_sized_bytes()


def _decode_char(reader: ByteReader, column: Column) -> str:
    code_point = reader.read_u32()
    if code_point > MAX_CODE_POINT:
        raise reader.error(f"column {column.name!r}: invalid code point {code_point}")
    return chr(code_point)


def _decode_enum(reader: ByteReader, column: Column) -> Any:
    ordinal = reader.read_u32()
    if ordinal >= len(column.members):
        raise reader.error(
            f"column {column.name!r}: invalid enum ordinal {ordinal} "
            f"(only {len(column.members)} values)"
        )
    name = column.members[ordinal]
    if column.enum_type is not None:
        return column.enum_type[name]
    return name


_VALUE_ENCODERS: Dict[ColumnType, Callable[[BytePacker, Column, Any], None]] = {
    ColumnType.BOOL: _encode_bool,
    ColumnType.INT64: _encode_int64,
    ColumnType.FLOAT64: _encode_float64,
    ColumnType.STRING: _encode_string,
    ColumnType.BYTES: _encode_bytes,
    ColumnType.CHAR: _encode_char,
    ColumnType.ENUM: _encode_enum,
}

_VALUE_DECODERS: Dict[ColumnType, Callable[[ByteReader, Column], Any]] = {
    ColumnType.BOOL: _decode_bool,
    ColumnType.INT64: _decode_int64,
    ColumnType.FLOAT64: _decode_float64,
    ColumnType.STRING: _decode_string,
    ColumnType.BYTES: _decode_bytes,
    ColumnType.CHAR: _decode_char,
    ColumnType.ENUM: _decode_enum,
}
