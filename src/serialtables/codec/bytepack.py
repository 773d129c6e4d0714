"""Byte-level packing and unpacking utilities.

This module provides the low-level primitives used by the value codec.
All multi-byte values are little-endian; this is a format constant.
"""

from __future__ import annotations

import struct
from typing import BinaryIO, Optional

from ..exceptions import FormatError

U8 = struct.Struct("<B")
U16 = struct.Struct("<H")
U32 = struct.Struct("<I")
I64 = struct.Struct("<q")
F64 = struct.Struct("<d")

MAX_U16 = (1 << 16) - 1
MAX_U32 = (1 << 32) - 1


class BytePacker:
    """Packs values into a growing byte buffer.

    Rows are packed in memory and written to the sink as one buffer.

    Example:
        >>> packer = BytePacker()
        >>> packer.write_u8(1)
        >>> packer.write_i64(-42)
        >>> packer.write_text("abc")
        >>> data = packer.to_bytes()
    """

    def __init__(self) -> None:
        self._buffer = bytearray()

    def write_u8(self, value: int) -> None:
        self._buffer += U8.pack(value)

    def write_u16(self, value: int) -> None:
        self._buffer += U16.pack(value)

    def write_u32(self, value: int) -> None:
        self._buffer += U32.pack(value)

    def write_i64(self, value: int) -> None:
        self._buffer += I64.pack(value)

    def write_f64(self, value: float) -> None:
        self._buffer += F64.pack(value)

    def write_bytes(self, data: bytes) -> None:
        """Write raw bytes with no length prefix."""
        self._buffer += data

    def write_sized_bytes(self, data: bytes) -> None:
        """Write bytes prefixed with a u32 length.

        Raises:
            ValueError: If data is longer than a u32 length can describe
        """
        if len(data) > MAX_U32:
            raise ValueError(f"Byte string too long: {len(data)} bytes (max: {MAX_U32})")
        self.write_u32(len(data))
        self._buffer += data

    def write_name(self, name: str) -> None:
        """Write a UTF-8 string prefixed with a u16 length (schema names).

        Raises:
            ValueError: If the encoded name exceeds 65535 bytes
        """
        encoded = name.encode("utf-8")
        if len(encoded) > MAX_U16:
            raise ValueError(f"Name too long: {len(encoded)} bytes (max: {MAX_U16})")
        self.write_u16(len(encoded))
        self._buffer += encoded

    def write_text(self, text: str) -> None:
        """Write a UTF-8 string prefixed with a u32 length."""
        self.write_sized_bytes(text.encode("utf-8"))

    def byte_length(self) -> int:
        return len(self._buffer)

    def to_bytes(self) -> bytes:
        return bytes(self._buffer)

    def flush_to(self, sink: BinaryIO) -> int:
        """Write the buffered bytes to sink and reset the buffer.

        Returns:
            Number of bytes written
        """
        size = len(self._buffer)
        sink.write(self._buffer)
        self._buffer = bytearray()
        return size


class ByteReader:
    """Reads typed values from a binary source.

    Short reads raise FormatError tagged with the reader's current phase
    (and row index during the row phase), so callers can tell which part
    of the stream was truncated.

    Example:
        >>> reader = ByteReader(io.BytesIO(data), phase="schema")
        >>> count = reader.read_u32()
        >>> name = reader.read_name()
    """

    def __init__(self, source: BinaryIO, phase: str = "preamble") -> None:
        self.source = source
        self.phase = phase
        self.row_index: Optional[int] = None

    def error(self, message: str) -> FormatError:
        """Build a FormatError for the current phase."""
        return FormatError(message, phase=self.phase, row_index=self.row_index)

    def read_exact(self, num_bytes: int) -> bytes:
        """Read exactly num_bytes bytes.

        Raises:
            FormatError: If the source ends first
        """
        data = self.source.read(num_bytes)
        # Compression wrappers may return short reads before end of stream
        while data is not None and len(data) < num_bytes:
            more = self.source.read(num_bytes - len(data))
            if not more:
                break
            data += more
        if data is None or len(data) < num_bytes:
            got = 0 if data is None else len(data)
            raise self.error(f"truncated data: need {num_bytes} bytes, got {got}")
        return data

    def read_marker(self) -> Optional[int]:
        """Read a single byte, or return None at a clean end of stream."""
        data = self.source.read(1)
        if not data:
            return None
        return data[0]

    def read_u8(self) -> int:
        return U8.unpack(self.read_exact(1))[0]

    def read_u16(self) -> int:
        return U16.unpack(self.read_exact(2))[0]

    def read_u32(self) -> int:
        return U32.unpack(self.read_exact(4))[0]

    def read_i64(self) -> int:
        return I64.unpack(self.read_exact(8))[0]

    def read_f64(self) -> float:
        return F64.unpack(self.read_exact(8))[0]

    def read_sized_bytes(self) -> bytes:
        return self.read_exact(self.read_u32())

    def read_name(self) -> str:
        return self._decode_utf8(self.read_exact(self.read_u16()))

    def read_text(self) -> str:
        return self._decode_utf8(self.read_sized_bytes())

    def _decode_utf8(self, raw: bytes) -> str:
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise self.error(f"invalid UTF-8 encoding: {e}") from e
