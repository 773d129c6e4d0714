"""Unit tests for serialize_table_rows."""

from __future__ import annotations

import io
from pathlib import Path
from typing import Any, List

import pytest

from serialtables import (
    FORMAT_VERSION,
    SIGNATURE,
    ColumnType,
    GzipTransform,
    TableSchema,
    ValidationError,
    read_schema,
    serialize_table_rows,
)
from serialtables.framing import PREAMBLE_SIZE


class TrackingChannel(io.BytesIO):
    """BytesIO that remembers whether close() was called."""

    def close(self) -> None:
        self.closed_called = True
        self.final_value = self.getvalue()
        super().close()


class TestSerialize:
    """Test the writer's output."""

    def test_returns_row_count(self, artifact: Path, small_rows: List[Any]) -> None:
        """The number of rows written is returned."""
        assert serialize_table_rows(artifact, small_rows) == 10

    def test_stream_starts_with_preamble(self, buffer: io.BytesIO) -> None:
        """The signature and version come first."""
        serialize_table_rows(buffer, {"a": [1]}, close_channel=False)

        data = buffer.getvalue()
        assert data.startswith(SIGNATURE)
        assert int.from_bytes(data[len(SIGNATURE) : PREAMBLE_SIZE], "little") == FORMAT_VERSION

    def test_zero_rows(self, buffer: io.BytesIO, int_float_schema: TableSchema) -> None:
        """A table without rows is preamble plus schema only."""
        assert serialize_table_rows(buffer, [], schema=int_float_schema, close_channel=False) == 0

        buffer.seek(0)
        assert read_schema(buffer, close_channel=False) == int_float_schema
        assert buffer.read() == b""

    def test_schema_is_plaintext_when_compressed(self, buffer: io.BytesIO) -> None:
        """Only the row section is compressed."""
        serialize_table_rows(
            buffer, {"a": [1, 2, 3]}, compression=GzipTransform(), close_channel=False
        )
        buffer.seek(0)

        schema = read_schema(buffer, close_channel=False)
        assert schema.names == ("a",)
        # gzip member magic follows the schema
        assert buffer.read(2) == b"\x1f\x8b"

    def test_closes_channel_by_default(self) -> None:
        """A channel passed as destination is closed after writing."""
        channel = TrackingChannel()
        serialize_table_rows(channel, {"a": [1]})

        assert channel.closed_called
        assert channel.final_value.startswith(SIGNATURE)

    def test_channel_left_open_on_request(self, buffer: io.BytesIO) -> None:
        """close_channel=False leaves the channel open."""
        serialize_table_rows(buffer, {"a": [1]}, close_channel=False)

        assert not buffer.closed


class TestSerializeErrors:
    """Test writer error handling."""

    def test_not_a_table(self, buffer: io.BytesIO) -> None:
        """Inputs without row access fail before anything is written."""
        with pytest.raises(ValidationError):
            serialize_table_rows(buffer, 42, close_channel=False)
        assert buffer.getvalue() == b""

    def test_level_without_compression(self, buffer: io.BytesIO) -> None:
        """compression_level requires compression."""
        with pytest.raises(ValidationError, match="requires a compression transform"):
            serialize_table_rows(buffer, {"a": [1]}, compression_level=1)

    def test_compression_must_be_transform(self, buffer: io.BytesIO) -> None:
        """compression must be a Transform instance."""
        with pytest.raises(ValidationError, match="must be a Transform"):
            serialize_table_rows(buffer, {"a": [1]}, compression="gzip")  # type: ignore[arg-type]

    def test_invalid_level(self, buffer: io.BytesIO) -> None:
        """Invalid levels fail before writing."""
        with pytest.raises(ValidationError, match="compression level"):
            serialize_table_rows(
                buffer, {"a": [1]}, compression=GzipTransform(), compression_level=42
            )

    def test_bad_destination(self) -> None:
        """Destinations must be paths or writable channels."""
        with pytest.raises(ValidationError, match="destination must be"):
            serialize_table_rows(123, {"a": [1]})  # type: ignore[arg-type]

    def test_row_mismatch_closes_channel(self) -> None:
        """A failing row aborts the write and still releases the channel."""
        schema = TableSchema.of(a=ColumnType.INT64)
        channel = TrackingChannel()

        with pytest.raises(ValidationError, match="row 1: column 'a': expected int"):
            serialize_table_rows(
                channel, [(1,), ("two",)], schema=schema, compression=GzipTransform()
            )
        assert channel.closed_called

    def test_float_overflow(self, buffer: io.BytesIO) -> None:
        """An int too large for a double is rejected with row context."""
        schema = TableSchema.of(f=ColumnType.FLOAT64)

        with pytest.raises(ValidationError, match="row 0: column 'f': .* out of float64 range"):
            serialize_table_rows(buffer, [(10**400,)], schema=schema)

    def test_row_mismatch_on_path(self, artifact: Path, int_float_schema: TableSchema) -> None:
        """A failing row on a path leaves a partial artifact for the caller."""
        with pytest.raises(ValidationError, match="row 0: expected 2 values"):
            serialize_table_rows(artifact, [(1,)], schema=int_float_schema)
        assert artifact.exists()
