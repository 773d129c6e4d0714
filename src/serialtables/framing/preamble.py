"""Stream preamble: format signature and version.

Every stream starts with SIGNATURE followed by the format version as a
little-endian signed 64-bit integer. Readers reject anything that does not
begin with the exact signature before interpreting further bytes.
"""

from __future__ import annotations

from typing import BinaryIO

from ..codec.bytepack import I64, ByteReader
from ..exceptions import FormatError

SIGNATURE = b"serialtables table data"
FORMAT_VERSION = 1
SUPPORTED_VERSIONS = frozenset({FORMAT_VERSION})
PREAMBLE_SIZE = len(SIGNATURE) + I64.size


def write_preamble(sink: BinaryIO, version: int = FORMAT_VERSION) -> None:
    """Write the signature and version to sink.

    Args:
        sink: Binary sink positioned at offset 0
        version: Format version to record
    """
    sink.write(SIGNATURE + I64.pack(version))


def read_preamble(source: BinaryIO | ByteReader) -> int:
    """Verify the signature and return the stored format version.

    Args:
        source: Binary source (or ByteReader) positioned at offset 0

    Returns:
        Format version stored in the stream

    Raises:
        FormatError: If the signature is missing, truncated or different, or
            the version field is truncated
    """
    reader = source if isinstance(source, ByteReader) else ByteReader(source)
    reader.phase = "preamble"

    try:
        signature = reader.read_exact(len(SIGNATURE))
    except FormatError as e:
        raise reader.error("invalid signature") from e
    if signature != SIGNATURE:
        raise reader.error("invalid signature")

    reader.phase = "version"
    return reader.read_i64()
