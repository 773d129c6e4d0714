"""Adapters from caller-side tables to a schema plus a row iterator.

The writer only needs two things from a table: a TableSchema and an iterator
of rows whose values are in schema order. This module recognizes the common
in-memory shapes of tabular data and produces both.
"""

from __future__ import annotations

from dataclasses import dataclass
from itertools import chain
from typing import Any, Iterable, Iterator, Mapping, Optional, Sequence, Tuple

from pydantic import BaseModel

from .codec.schema import TableSchema
from .exceptions import ValidationError


@dataclass
class RowTable:
    """A table reduced to its schema and a row iterator.

    Attributes:
        schema: Schema shared by every row
        rows: Iterator of rows, each a sequence of values in schema order
    """

    schema: TableSchema
    rows: Iterator[Sequence[Any]]


def as_row_table(table: Any, schema: Optional[TableSchema] = None) -> RowTable:
    """Reduce a table to a RowTable.

    Supported tables:
        - objects with a TableSchema ``schema`` attribute that iterate rows
          (for example a RowSequence returned by deserialize_table_rows)
        - a non-empty sequence of Pydantic models (schema from the model class)
        - a column table: Mapping of column name to equal-length sequences
        - a row table: sequence of Mappings or of namedtuples
        - any iterable of tuples or Mappings, when ``schema`` is given

    Args:
        table: Table to adapt
        schema: Explicit schema; required when it cannot be derived

    Returns:
        RowTable whose rows are tuples in schema order

    Raises:
        ValidationError: If the table has no row access, no derivable schema,
            or is ragged
    """
    if schema is not None and not isinstance(schema, TableSchema):
        raise ValidationError(f"schema must be a TableSchema, got {type(schema).__name__}")

    if isinstance(getattr(table, "schema", None), TableSchema) and _is_iterable(table):
        schema = table.schema if schema is None else schema
        return RowTable(schema, _tuple_rows(schema, iter(table)))

    if isinstance(table, Mapping):
        return _column_table(table, schema)

    if isinstance(table, (str, bytes, bytearray)) or not _is_iterable(table):
        raise ValidationError(
            f"{type(table).__name__} does not provide row access; expected a column "
            f"mapping, a sequence of rows, or an iterable of rows with a schema"
        )

    if schema is not None:
        return RowTable(schema, _tuple_rows(schema, iter(table)))

    if not isinstance(table, Sequence):
        # Peek at a lazy iterable to see whether its rows describe themselves
        iterator = iter(table)
        first = next(iterator, None)
        if isinstance(first, BaseModel):
            schema = TableSchema.from_model(type(first))
            return RowTable(schema, _tuple_rows(schema, chain([first], iterator)))
        raise ValidationError(
            f"Cannot derive a schema from {type(table).__name__}; pass schema="
        )

    return _row_table(table)


def _is_iterable(value: Any) -> bool:
    try:
        iter(value)
    except TypeError:
        return False
    return True


def _column_table(table: Mapping[str, Any], schema: Optional[TableSchema]) -> RowTable:
    names = list(table)
    columns = []
    for name in names:
        values = table[name]
        if isinstance(values, (str, bytes, bytearray)) or not _is_iterable(values):
            raise ValidationError(f"Column {name!r} is not a sequence of values")
        columns.append(list(values))
    lengths = {len(column) for column in columns}
    if len(lengths) > 1:
        raise ValidationError(f"Column table is ragged: column lengths {sorted(lengths)}")

    if schema is None:
        schema = TableSchema.infer(names, columns)
    elif tuple(names) != schema.names:
        if set(names) != set(schema.names):
            raise ValidationError(
                f"Column names {tuple(names)} do not match schema names {schema.names}"
            )
        columns = [columns[names.index(name)] for name in schema.names]

    return RowTable(schema, iter(zip(*columns)) if columns else iter(()))


def _row_table(rows: Sequence[Any]) -> RowTable:
    if len(rows) == 0:
        raise ValidationError("Cannot derive a schema from an empty row table; pass schema=")

    first = rows[0]
    if isinstance(first, BaseModel):
        schema = TableSchema.from_model(type(first))
    elif isinstance(first, Mapping):
        names = list(first)
        schema = TableSchema.infer(names, [[_get(row, name) for row in rows] for name in names])
    elif hasattr(first, "_fields"):
        names = list(first._fields)
        schema = TableSchema.infer(names, [[_at(row, i) for row in rows] for i in range(len(names))])
    else:
        raise ValidationError(
            f"Cannot derive a schema from rows of type {type(first).__name__}; pass schema="
        )
    return RowTable(schema, _tuple_rows(schema, iter(rows)))


def _at(row: Any, position: int) -> Any:
    try:
        return row[position]
    except (IndexError, TypeError):
        raise ValidationError(f"Row {row!r} has no value at position {position}") from None


def _get(row: Any, name: str) -> Any:
    if not isinstance(row, Mapping):
        raise ValidationError(f"Expected a mapping row, got {type(row).__name__}")
    if name not in row:
        raise ValidationError(f"Row is missing column {name!r}")
    return row[name]


def _tuple_rows(schema: TableSchema, rows: Iterable[Any]) -> Iterator[Tuple[Any, ...]]:
    """Yield each row as a tuple of values in schema order."""
    names = schema.names
    for index, row in enumerate(rows):
        if isinstance(row, BaseModel):
            fields = type(row).model_fields
            if set(fields) != set(names):
                raise ValidationError(
                    f"row {index}: {type(row).__name__} fields {tuple(fields)} "
                    f"do not match schema {names}"
                )
            yield tuple(getattr(row, name) for name in names)
        elif isinstance(row, Mapping):
            if len(row) != len(names) or any(name not in row for name in names):
                raise ValidationError(
                    f"row {index}: columns {tuple(row)} do not match schema {names}"
                )
            yield tuple(row[name] for name in names)
        elif isinstance(row, (str, bytes, bytearray)) or not _is_iterable(row):
            raise ValidationError(f"row {index}: expected a row, got {type(row).__name__}")
        else:
            yield tuple(row)
