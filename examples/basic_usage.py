#!/usr/bin/env python3
"""Basic usage example for serialtables.

This example demonstrates:
1. Defining a row model with Pydantic
2. Serializing a table to a file, with and without compression
3. Reading the rows back lazily
4. Inspecting the stored schema without reading rows
"""

from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

from serialtables import GzipTransform, deserialize_table_rows, read_schema, serialize_table_rows


# Define a row model
class Reading(BaseModel):
    """One sensor reading."""

    sensor_id: int
    value: Optional[float] = Field(description="Measured value, None when the sensor dropped out")
    unit: str = Field(min_length=1, max_length=1, description="Single-letter unit code")


def main() -> None:
    """Run the basic usage example."""
    print("=" * 60)
    print("serialtables Basic Usage Example")
    print("=" * 60)
    print()

    table = [
        Reading(sensor_id=i, value=None if i % 4 == 0 else i * 1.5, unit="C")
        for i in range(1, 11)
    ]

    with tempfile.TemporaryDirectory() as tmp:
        plain = Path(tmp) / "readings.bin"
        packed = Path(tmp) / "readings.bin.gz"

        print("1. Writing the table...")
        count = serialize_table_rows(plain, table)
        serialize_table_rows(packed, table, compression=GzipTransform(), compression_level=9)
        print(f"   Rows written: {count}")
        print(f"   Uncompressed size: {plain.stat().st_size} bytes")
        print(f"   Gzip size: {packed.stat().st_size} bytes")
        print()

        print("2. Inspecting the stored schema...")
        for column in read_schema(packed):
            nullable = " (nullable)" if column.nullable else ""
            print(f"   {column.name}: {column.type.name}{nullable}")
        print()

        print("3. Reading rows back...")
        with deserialize_table_rows(packed, decompression=GzipTransform(), row_model=Reading) as rows:
            decoded = list(rows)
        for row in decoded[:3]:
            print(f"   {row!r}")
        print("   ...")
        print()

        print("4. Verifying round-trip...")
        if decoded == table:
            print("   ✓ Round-trip successful!")
        else:
            print("   ✗ Round-trip failed!")

    print()
    print("=" * 60)


if __name__ == "__main__":
    main()
