"""Property-based tests using hypothesis."""

from __future__ import annotations

import enum
import io
from typing import Any, List, Optional, Tuple

from hypothesis import given, settings
from hypothesis import strategies as st

from serialtables import (
    Column,
    ColumnType,
    GzipTransform,
    TableSchema,
    ZstdTransform,
    deserialize_table_rows,
    serialize_table_rows,
)


class Level(enum.Enum):
    """Enum stored as an ENUM column."""

    LOW = 1
    MID = 2
    HIGH = 3


SCHEMA = TableSchema(
    [
        Column("i", ColumnType.INT64),
        Column("f", ColumnType.FLOAT64),
        Column("s", ColumnType.STRING),
        Column("y", ColumnType.BYTES),
        Column("b", ColumnType.BOOL),
        Column("c", ColumnType.CHAR),
        Column.from_enum("level", Level),
    ]
)

rows_strategy = st.lists(
    st.tuples(
        st.none() | st.integers(min_value=-(2**63), max_value=2**63 - 1),
        st.none() | st.floats(allow_nan=False),
        st.none() | st.text(),
        st.none() | st.binary(),
        st.none() | st.booleans(),
        st.none() | st.characters(),
        st.none() | st.sampled_from([member.name for member in Level]),
    ),
    max_size=50,
)


def roundtrip(rows: List[Tuple[Any, ...]], **write_options: Any) -> Tuple[TableSchema, list]:
    buffer = io.BytesIO()
    serialize_table_rows(buffer, rows, schema=SCHEMA, close_channel=False, **write_options)
    buffer.seek(0)
    decompression: Optional[Any] = write_options.get("compression")
    sequence = deserialize_table_rows(buffer, decompression=decompression)
    return sequence.schema, [tuple(row) for row in sequence]


class TestRoundtripProperties:
    """Property-based round trips."""

    @given(rows=rows_strategy)
    def test_roundtrip(self, rows: List[Tuple[Any, ...]]) -> None:
        """Schema and rows survive, including missing-vs-present."""
        schema, decoded = roundtrip(rows)

        assert schema == SCHEMA
        assert decoded == rows

    @settings(max_examples=25)
    @given(rows=rows_strategy, level=st.integers(min_value=0, max_value=9))
    def test_gzip_transparency(self, rows: List[Tuple[Any, ...]], level: int) -> None:
        """Compression does not change the decoded table."""
        assert roundtrip(rows, compression=GzipTransform(), compression_level=level) == roundtrip(
            rows
        )

    @settings(max_examples=25)
    @given(rows=rows_strategy)
    def test_zstd_transparency(self, rows: List[Tuple[Any, ...]]) -> None:
        """Compression does not change the decoded table."""
        assert roundtrip(rows, compression=ZstdTransform(level=1)) == roundtrip(rows)

    @given(rows=rows_strategy)
    def test_encoding_deterministic(self, rows: List[Tuple[Any, ...]]) -> None:
        """Equal tables produce identical bytes."""
        first, second = io.BytesIO(), io.BytesIO()
        serialize_table_rows(first, rows, schema=SCHEMA, close_channel=False)
        serialize_table_rows(second, list(rows), schema=SCHEMA, close_channel=False)

        assert first.getvalue() == second.getvalue()
