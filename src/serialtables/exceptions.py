"""Exception hierarchy for serialtables.

All exceptions inherit from SerialTablesError for easy catching of any
serialtables-specific error. I/O errors raised by the underlying channel or a
compression transform are not wrapped and propagate unchanged.
"""

from __future__ import annotations

from typing import Optional


class SerialTablesError(Exception):
    """Base exception for all serialtables errors."""

    pass


class ValidationError(SerialTablesError):
    """Raised when input handed to the writer (or reader options) is unusable.

    Examples:
        - Table exposes neither rows nor a schema
        - Row shape does not match the schema
        - Value does not fit its column type
        - Duplicate or unsupported column declarations
    """

    pass


class FormatError(SerialTablesError):
    """Raised when a byte stream is not a valid serialized table.

    Attributes:
        phase: Part of the stream that failed ("preamble", "version",
            "schema" or "row")
        row_index: Zero-based index of the failing row (row phase only)

    Examples:
        - Signature mismatch or truncated preamble
        - Unsupported format version
        - Truncated or ill-typed schema/row bytes
    """

    def __init__(
        self, message: str, *, phase: Optional[str] = None, row_index: Optional[int] = None
    ) -> None:
        self.phase = phase
        self.row_index = row_index
        if phase == "row" and row_index is not None:
            message = f"row {row_index}: {message}"
        elif phase is not None:
            message = f"{phase}: {message}"
        super().__init__(message)


class UsageError(SerialTablesError):
    """Raised when a row sequence is used outside its single-pass lifecycle.

    Examples:
        - Starting a second iteration while one is in progress
        - Restarting iteration over an exhausted sequence
    """

    pass
