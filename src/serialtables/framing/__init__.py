"""Stream preamble handling.

This module provides the signature and version header written at the start
of every serialized table.
"""

from __future__ import annotations

from .preamble import (
    FORMAT_VERSION,
    PREAMBLE_SIZE,
    SIGNATURE,
    SUPPORTED_VERSIONS,
    read_preamble,
    write_preamble,
)

__all__ = [
    "SIGNATURE",
    "FORMAT_VERSION",
    "SUPPORTED_VERSIONS",
    "PREAMBLE_SIZE",
    "write_preamble",
    "read_preamble",
]
