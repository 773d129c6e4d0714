"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import enum
import io
from pathlib import Path
from typing import List, Optional

import pytest
from pydantic import BaseModel, Field

from serialtables import ColumnType, TableSchema


class Shape(enum.Enum):
    """Test enum."""

    CIRCLE = "circle"
    SQUARE = "square"
    TRIANGLE = "triangle"


class SmallRow(BaseModel):
    """Row of the ten-row table: int, float and a single character."""

    a: int
    b: float
    c: str = Field(min_length=1, max_length=1)


class MixedRow(BaseModel):
    """Row covering every column type, with optional columns."""

    id: int
    score: Optional[float]
    label: Optional[str]
    payload: bytes
    flag: bool
    shape: Optional[Shape]
    initial: str = Field(min_length=1, max_length=1)


@pytest.fixture
def small_row_model() -> type[SmallRow]:
    """Pydantic model of the ten-row table."""
    return SmallRow


@pytest.fixture
def mixed_row_model() -> type[MixedRow]:
    """Pydantic model covering every column type."""
    return MixedRow


@pytest.fixture
def shape_enum() -> type[Shape]:
    """Enum used by the ENUM column of MixedRow."""
    return Shape


@pytest.fixture
def small_rows() -> List[SmallRow]:
    """Ten rows of (a: 1..10, b: 1.0..10.0, c: 'a'..'j')."""
    return [SmallRow(a=i, b=float(i), c=chr(ord("a") + i - 1)) for i in range(1, 11)]


@pytest.fixture
def mixed_rows() -> List[MixedRow]:
    """Rows exercising every column type and missing values."""
    return [
        MixedRow(
            id=1, score=0.5, label="first", payload=b"\x00\x01", flag=True,
            shape=Shape.CIRCLE, initial="x",
        ),
        MixedRow(
            id=-2, score=None, label=None, payload=b"", flag=False,
            shape=None, initial="é",
        ),
        MixedRow(
            id=2**62, score=-1e300, label="ünïcödé ✓", payload=bytes(range(256)), flag=True,
            shape=Shape.TRIANGLE, initial="✓",
        ),
    ]


@pytest.fixture
def int_float_schema() -> TableSchema:
    """Nullable two-column schema (a: INT64, b: FLOAT64)."""
    return TableSchema.of(a=ColumnType.INT64, b=ColumnType.FLOAT64)


@pytest.fixture
def artifact(tmp_path: Path) -> Path:
    """Path for a serialized table."""
    return tmp_path / "table.bin"


@pytest.fixture
def buffer() -> io.BytesIO:
    """In-memory binary channel."""
    return io.BytesIO()
