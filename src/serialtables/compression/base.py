"""Compression transform interface.

A transform wraps the row section of a stream: the writer calls wrap_sink()
once the schema is written and the reader calls wrap_source() once the
schema is read. Wrappers never close the channel they wrap; callers close
the wrapper first and the channel second.
"""

from __future__ import annotations

import abc
from typing import BinaryIO, ClassVar, Optional

from ..exceptions import ValidationError


class Transform(abc.ABC):
    """Base class for streaming compression transforms.

    Subclasses are dataclasses holding their default ``level`` and define the
    accepted level range through ``min_level``/``max_level``.

    The stream format carries no identifier for the transform; the reader
    must be given the transform the writer used.
    """

    name: ClassVar[str]
    min_level: ClassVar[int]
    max_level: ClassVar[int]

    level: int

    def __post_init__(self) -> None:
        """Validate the configured compression level."""
        self.check_level(self.level)

    def check_level(self, level: int) -> int:
        """Validate a compression level for this transform.

        Returns:
            The level, unchanged

        Raises:
            ValidationError: If level is not an int within the accepted range
        """
        if isinstance(level, bool) or not isinstance(level, int):
            raise ValidationError(
                f"{self.name} compression level must be an int, got {type(level).__name__}"
            )
        if not self.min_level <= level <= self.max_level:
            raise ValidationError(
                f"{self.name} compression level must be {self.min_level}-{self.max_level}, "
                f"got {level}"
            )
        return level

    def resolve_level(self, level: Optional[int]) -> int:
        """Return level if given (after validation), else the configured default."""
        return self.level if level is None else self.check_level(level)

    @abc.abstractmethod
    def wrap_sink(self, sink: BinaryIO, level: Optional[int] = None) -> BinaryIO:
        """Return a writable stream compressing into sink.

        Args:
            sink: Underlying binary sink; left open when the wrapper closes
            level: Compression level overriding the configured one
        """

    @abc.abstractmethod
    def wrap_source(self, source: BinaryIO) -> BinaryIO:
        """Return a readable stream decompressing from source.

        Args:
            source: Underlying binary source; left open when the wrapper closes
        """
