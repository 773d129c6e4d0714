"""Unit tests for table adapters."""

from __future__ import annotations

from collections import namedtuple
from typing import Any, List

import pytest

from serialtables import ColumnType, TableSchema, ValidationError, as_row_table

Point = namedtuple("Point", ["x", "y"])


class TestColumnTables:
    """Test Mapping-of-columns tables."""

    def test_rows_in_order(self) -> None:
        """Columns are zipped into rows."""
        row_table = as_row_table({"a": [1, 2], "b": ["x", None]})

        assert row_table.schema.names == ("a", "b")
        assert list(row_table.rows) == [(1, "x"), (2, None)]

    def test_ragged_columns(self) -> None:
        """Columns of different lengths are rejected."""
        with pytest.raises(ValidationError, match="ragged"):
            as_row_table({"a": [1, 2], "b": [1]})

    def test_scalar_column_rejected(self) -> None:
        """Every column must be a sequence of values."""
        with pytest.raises(ValidationError, match="'b' is not a sequence"):
            as_row_table({"a": [1], "b": 2})

    def test_explicit_schema_reorders_columns(self) -> None:
        """An explicit schema fixes the column order."""
        schema = TableSchema.of(b=ColumnType.STRING, a=ColumnType.INT64)
        row_table = as_row_table({"a": [1], "b": ["x"]}, schema=schema)

        assert list(row_table.rows) == [("x", 1)]

    def test_explicit_schema_name_mismatch(self) -> None:
        """Column names must match an explicit schema."""
        schema = TableSchema.of(a=ColumnType.INT64)

        with pytest.raises(ValidationError, match="do not match"):
            as_row_table({"z": [1]}, schema=schema)

    def test_all_missing_needs_schema(self, int_float_schema: TableSchema) -> None:
        """All-missing columns need an explicit schema."""
        with pytest.raises(ValidationError, match="missing values only"):
            as_row_table({"a": [None], "b": [None]})

        row_table = as_row_table({"a": [None], "b": [None]}, schema=int_float_schema)
        assert list(row_table.rows) == [(None, None)]


class TestRowTables:
    """Test sequences of rows."""

    def test_pydantic_rows(self, small_rows: List[Any]) -> None:
        """Schema comes from the model class."""
        row_table = as_row_table(small_rows)

        assert row_table.schema == TableSchema.from_model(type(small_rows[0]))
        assert row_table.schema.column("c").type is ColumnType.CHAR
        assert next(row_table.rows) == (1, 1.0, "a")

    def test_lazy_pydantic_rows(self, small_rows: List[Any]) -> None:
        """A generator of models is peeked for its schema."""
        row_table = as_row_table(row for row in small_rows)

        assert row_table.schema.names == ("a", "b", "c")
        assert len(list(row_table.rows)) == 10

    def test_mapping_rows(self) -> None:
        """Rows may be mappings."""
        row_table = as_row_table([{"a": 1, "b": 2.0}, {"b": None, "a": 3}])

        assert row_table.schema.types == (ColumnType.INT64, ColumnType.FLOAT64)
        assert list(row_table.rows) == [(1, 2.0), (3, None)]

    def test_mapping_row_with_extra_column(self) -> None:
        """Mapping rows must have exactly the schema columns."""
        schema = TableSchema.of(a=ColumnType.INT64)
        row_table = as_row_table([{"a": 1}, {"a": 2, "b": 3}], schema=schema)

        with pytest.raises(ValidationError, match="row 1: columns"):
            list(row_table.rows)

    def test_namedtuple_rows(self) -> None:
        """Rows may be namedtuples."""
        row_table = as_row_table([Point(1, 2), Point(3, None)])

        assert row_table.schema.names == ("x", "y")
        assert list(row_table.rows) == [(1, 2), (3, None)]

    def test_short_tuple_row_rejected(self) -> None:
        """A row shorter than the first namedtuple is rejected."""
        with pytest.raises(ValidationError, match="no value at position 1"):
            as_row_table([Point(1, 2), (3,)])

    def test_plain_tuples_need_schema(self, int_float_schema: TableSchema) -> None:
        """Plain tuples carry no names, so a schema is required."""
        with pytest.raises(ValidationError, match="pass schema="):
            as_row_table([(1, 2.0)])

        row_table = as_row_table(iter([(1, 2.0)]), schema=int_float_schema)
        assert list(row_table.rows) == [(1, 2.0)]

    def test_empty_rows_need_schema(self, int_float_schema: TableSchema) -> None:
        """An empty row table needs a schema."""
        with pytest.raises(ValidationError, match="empty row table"):
            as_row_table([])

        row_table = as_row_table([], schema=int_float_schema)
        assert list(row_table.rows) == []


class TestUnsupportedTables:
    """Test rejection of non-tables."""

    @pytest.mark.parametrize("table", [42, None, "a,b\n1,2", b"bytes", object()])
    def test_no_row_access(self, table: Any) -> None:
        """Objects without row access are rejected."""
        with pytest.raises(ValidationError):
            as_row_table(table)

    def test_schema_must_be_table_schema(self) -> None:
        """schema= must be a TableSchema."""
        with pytest.raises(ValidationError, match="must be a TableSchema"):
            as_row_table({"a": [1]}, schema={"a": int})  # type: ignore[arg-type]

    def test_scalar_rows(self, int_float_schema: TableSchema) -> None:
        """Rows must themselves be sequences or mappings."""
        row_table = as_row_table([1, 2], schema=int_float_schema)

        with pytest.raises(ValidationError, match="row 0: expected a row"):
            list(row_table.rows)
