"""Built-in compression transforms.

Gzip, bzip2 and LZMA use the standard library file objects, which leave a
wrapped file object open when they close. Zstandard uses the zstandard
package's stream writer/reader with closefd=False.
"""

from __future__ import annotations

import bz2
import gzip
import lzma
from dataclasses import dataclass
from typing import Any, BinaryIO, ClassVar, Dict, Optional, Type

import zstandard

from ..exceptions import ValidationError
from .base import Transform


@dataclass
class GzipTransform(Transform):
    """Gzip (DEFLATE) compression.

    Example:
        >>> serialize_table_rows("rows.bin", table, compression=GzipTransform(level=1))
        >>> rows = deserialize_table_rows("rows.bin", decompression=GzipTransform())
    """

    name: ClassVar[str] = "gzip"
    min_level: ClassVar[int] = 0
    max_level: ClassVar[int] = 9

    level: int = 6

    def wrap_sink(self, sink: BinaryIO, level: Optional[int] = None) -> BinaryIO:
        # mtime=0 keeps output deterministic
        return gzip.GzipFile(  # type: ignore[return-value]
            fileobj=sink, mode="wb", compresslevel=self.resolve_level(level), mtime=0
        )

    def wrap_source(self, source: BinaryIO) -> BinaryIO:
        return gzip.GzipFile(fileobj=source, mode="rb")  # type: ignore[return-value]


@dataclass
class Bzip2Transform(Transform):
    """Bzip2 compression."""

    name: ClassVar[str] = "bz2"
    min_level: ClassVar[int] = 1
    max_level: ClassVar[int] = 9

    level: int = 9

    def wrap_sink(self, sink: BinaryIO, level: Optional[int] = None) -> BinaryIO:
        return bz2.BZ2File(  # type: ignore[return-value]
            sink, mode="wb", compresslevel=self.resolve_level(level)
        )

    def wrap_source(self, source: BinaryIO) -> BinaryIO:
        return bz2.BZ2File(source, mode="rb")  # type: ignore[return-value]


@dataclass
class LzmaTransform(Transform):
    """LZMA (xz container) compression; level is the xz preset."""

    name: ClassVar[str] = "lzma"
    min_level: ClassVar[int] = 0
    max_level: ClassVar[int] = 9

    level: int = 6

    def wrap_sink(self, sink: BinaryIO, level: Optional[int] = None) -> BinaryIO:
        return lzma.LZMAFile(  # type: ignore[return-value]
            sink, mode="wb", preset=self.resolve_level(level)
        )

    def wrap_source(self, source: BinaryIO) -> BinaryIO:
        return lzma.LZMAFile(source, mode="rb")  # type: ignore[return-value]


@dataclass
class ZstdTransform(Transform):
    """Zstandard compression (single frame per stream)."""

    name: ClassVar[str] = "zstd"
    min_level: ClassVar[int] = 1
    max_level: ClassVar[int] = zstandard.MAX_COMPRESSION_LEVEL

    level: int = 3

    def wrap_sink(self, sink: BinaryIO, level: Optional[int] = None) -> BinaryIO:
        compressor = zstandard.ZstdCompressor(level=self.resolve_level(level))
        return compressor.stream_writer(sink, closefd=False)  # type: ignore[return-value]

    def wrap_source(self, source: BinaryIO) -> BinaryIO:
        decompressor = zstandard.ZstdDecompressor()
        return decompressor.stream_reader(source, closefd=False)  # type: ignore[return-value]


TRANSFORMS: Dict[str, Type[Transform]] = {
    GzipTransform.name: GzipTransform,
    Bzip2Transform.name: Bzip2Transform,
    LzmaTransform.name: LzmaTransform,
    ZstdTransform.name: ZstdTransform,
}


def get_transform(name: str, **kwargs: Any) -> Transform:
    """Look up a built-in transform by name.

    Args:
        name: One of "gzip", "bz2", "lzma", "zstd"
        **kwargs: Transform configuration (e.g. level=1)

    Returns:
        Configured Transform instance

    Raises:
        ValidationError: If name is unknown or the configuration is invalid
    """
    try:
        transform_class = TRANSFORMS[name]
    except KeyError:
        known = ", ".join(sorted(TRANSFORMS))
        raise ValidationError(f"Unknown compression transform {name!r} (known: {known})") from None
    return transform_class(**kwargs)
