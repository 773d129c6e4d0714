"""Table schemas and the column type tag table.

This module defines the fixed set of column types the wire format supports,
the Column/TableSchema types shared by every row of a stream, and the
constructors that derive a schema from a Pydantic model or from plain
Python values.
"""

from __future__ import annotations

import enum
import types
from collections import namedtuple
from dataclasses import dataclass, field
from typing import (
    Any,
    Dict,
    Iterable,
    Iterator,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    Type,
    Union,
    get_args,
    get_origin,
)

from pydantic import BaseModel
from pydantic.fields import FieldInfo

from ..exceptions import ValidationError


class ColumnType(enum.IntEnum):
    """Type tags written into the schema section of a stream."""

    BOOL = 1
    INT64 = 2
    FLOAT64 = 3
    STRING = 4
    BYTES = 5
    CHAR = 6
    ENUM = 7


# Column flag bits
FLAG_NULLABLE = 1 << 0
KNOWN_FLAGS = FLAG_NULLABLE


@dataclass(frozen=True)
class Column:
    """A single column declaration.

    Attributes:
        name: Column name, unique within a schema
        type: Column type tag
        nullable: Whether values may be missing (None)
        enum_name: Name of the enumeration (ENUM columns only)
        members: Ordered member names; values are stored as ordinals (ENUM only)
        enum_type: Python Enum class used to rebuild decoded values. Not part
            of the wire format and ignored by equality.
    """

    name: str
    type: ColumnType
    nullable: bool = True
    enum_name: Optional[str] = None
    members: Tuple[str, ...] = ()
    enum_type: Optional[Type[enum.Enum]] = field(default=None, compare=False, repr=False)

    def __post_init__(self) -> None:
        if not isinstance(self.name, str):
            raise ValidationError(f"Column name must be str, got {type(self.name).__name__}")
        try:
            object.__setattr__(self, "type", ColumnType(self.type))
        except ValueError as err:
            raise ValidationError(f"Column {self.name!r}: unknown column type {self.type!r}") from err
        if isinstance(self.members, str) or not isinstance(self.members, Iterable):
            raise ValidationError(f"Column {self.name!r}: members must be a sequence of names")
        object.__setattr__(self, "members", tuple(self.members))

        if self.type is ColumnType.ENUM:
            if not self.members:
                raise ValidationError(f"Column {self.name!r}: enum has no members")
            if not all(isinstance(member, str) for member in self.members):
                raise ValidationError(f"Column {self.name!r}: enum member names must be str")
            if self.enum_name is not None and not isinstance(self.enum_name, str):
                raise ValidationError(
                    f"Column {self.name!r}: enum name must be str, "
                    f"got {type(self.enum_name).__name__}"
                )
            if len(set(self.members)) != len(self.members):
                raise ValidationError(f"Column {self.name!r}: duplicate enum member names")
            if self.enum_name is None:
                object.__setattr__(self, "enum_name", self.name)
        elif self.members or self.enum_name is not None:
            raise ValidationError(
                f"Column {self.name!r}: members are only allowed on ENUM columns"
            )

    @classmethod
    def from_enum(
        cls, name: str, enum_type: Type[enum.Enum], nullable: bool = True
    ) -> Column:
        """Declare an ENUM column from a Python Enum class."""
        members = tuple(member.name for member in enum_type)
        return cls(
            name=name,
            type=ColumnType.ENUM,
            nullable=nullable,
            enum_name=enum_type.__name__,
            members=members,
            enum_type=enum_type,
        )


class TableSchema:
    """Ordered collection of uniquely named columns.

    Column order defines the field order of every row in a stream.

    Example:
        >>> schema = TableSchema.of(a=ColumnType.INT64, b=ColumnType.FLOAT64)
        >>> schema.names
        ('a', 'b')
    """

    def __init__(self, columns: Iterable[Column]) -> None:
        self._columns: Tuple[Column, ...] = tuple(columns)
        self._index: Dict[str, int] = {}
        for position, column in enumerate(self._columns):
            if not isinstance(column, Column):
                raise ValidationError(f"Expected Column, got {type(column).__name__}")
            if column.name in self._index:
                raise ValidationError(f"Duplicate column name: {column.name!r}")
            self._index[column.name] = position
        self._row_type: Optional[type] = None

    @classmethod
    def of(cls, **column_types: ColumnType) -> TableSchema:
        """Create a nullable schema from keyword arguments, in argument order."""
        return cls(Column(name, column_type) for name, column_type in column_types.items())

    @classmethod
    def from_pairs(cls, pairs: Iterable[Tuple[str, ColumnType]]) -> TableSchema:
        return cls(Column(name, column_type) for name, column_type in pairs)

    @classmethod
    def from_model(cls, model_class: Type[BaseModel]) -> TableSchema:
        """Create a schema by introspecting a Pydantic model.

        Field declaration order becomes column order. ``Optional[...]`` fields
        are nullable; a ``str`` field constrained to exactly one character
        becomes a CHAR column.

        Args:
            model_class: Pydantic model class describing one row

        Returns:
            TableSchema instance

        Raises:
            ValidationError: If a field type is not supported
        """
        return cls(
            _column_from_field(name, field_info)
            for name, field_info in model_class.model_fields.items()
        )

    @classmethod
    def infer(cls, names: Sequence[str], columns: Sequence[Iterable[Any]]) -> TableSchema:
        """Infer a schema from column values.

        Args:
            names: Column names, in order
            columns: One iterable of values per column

        Returns:
            TableSchema instance

        Raises:
            ValidationError: If a column mixes types, holds unsupported values,
                or contains only missing values
        """
        if len(names) != len(columns):
            raise ValidationError(f"Got {len(names)} names for {len(columns)} columns")
        return cls(_infer_column(name, values) for name, values in zip(names, columns))

    @property
    def columns(self) -> Tuple[Column, ...]:
        return self._columns

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(column.name for column in self._columns)

    @property
    def types(self) -> Tuple[ColumnType, ...]:
        return tuple(column.type for column in self._columns)

    def index(self, name: str) -> int:
        try:
            return self._index[name]
        except KeyError:
            raise KeyError(f"No column named {name!r}") from None

    def column(self, name: str) -> Column:
        return self._columns[self.index(name)]

    def row_type(self) -> type:
        """Return the namedtuple class used for decoded rows.

        Column names that are not valid identifiers are renamed positionally
        (``_0``, ``_1``, ...); ``names`` always holds the stored names.
        """
        if self._row_type is None:
            self._row_type = namedtuple("Row", self.names, rename=True)  # type: ignore[misc]
        return self._row_type

    def with_enum_types(self, enum_types: Mapping[str, Type[enum.Enum]]) -> TableSchema:
        """Attach Python Enum classes to ENUM columns.

        Args:
            enum_types: Mapping keyed by column name or by enum name

        Returns:
            New TableSchema whose ENUM columns decode to members of the given
            classes

        Raises:
            ValidationError: If an Enum class does not have the stored members
        """
        columns = []
        for column in self._columns:
            enum_type = None
            if column.type is ColumnType.ENUM:
                enum_type = enum_types.get(column.name) or enum_types.get(column.enum_name or "")
            if enum_type is None:
                columns.append(column)
                continue
            names = tuple(member.name for member in enum_type)
            if names != column.members:
                raise ValidationError(
                    f"Column {column.name!r}: {enum_type.__name__} members {names} "
                    f"do not match stored members {column.members}"
                )
            columns.append(
                Column(
                    name=column.name,
                    type=column.type,
                    nullable=column.nullable,
                    enum_name=column.enum_name,
                    members=column.members,
                    enum_type=enum_type,
                )
            )
        return TableSchema(columns)

    def __len__(self) -> int:
        return len(self._columns)

    def __iter__(self) -> Iterator[Column]:
        return iter(self._columns)

    def __getitem__(self, position: int) -> Column:
        return self._columns[position]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TableSchema):
            return NotImplemented
        return self._columns == other._columns

    def __hash__(self) -> int:
        return hash(self._columns)

    def __repr__(self) -> str:
        parts = ", ".join(
            f"{c.name}: {c.type.name}{'?' if c.nullable else ''}" for c in self._columns
        )
        return f"TableSchema({parts})"


def _unwrap_optional(name: str, annotation: Any) -> Tuple[Any, bool]:
    """Strip ``Optional[...]`` / ``T | None``, reporting whether it was present."""
    origin = get_origin(annotation)
    if origin is Union or origin is types.UnionType:
        non_none_args = [arg for arg in get_args(annotation) if arg is not type(None)]
        if len(non_none_args) != 1:
            raise ValidationError(f"Field {name}: complex Union types not supported")
        return non_none_args[0], True
    return annotation, False


def _column_from_field(name: str, field_info: FieldInfo) -> Column:
    annotation = field_info.annotation
    if annotation is None:
        raise ValidationError(f"Field {name} has no type annotation")

    annotation, nullable = _unwrap_optional(name, annotation)

    min_length = None
    max_length = None
    for constraint in field_info.metadata:
        if getattr(constraint, "min_length", None) is not None:
            min_length = constraint.min_length
        if getattr(constraint, "max_length", None) is not None:
            max_length = constraint.max_length

    is_class = isinstance(annotation, type) and get_origin(annotation) is None
    if is_class and issubclass(annotation, enum.Enum):
        return Column.from_enum(name, annotation, nullable=nullable)
    if annotation is bool:
        column_type = ColumnType.BOOL
    elif annotation is int:
        column_type = ColumnType.INT64
    elif annotation is float:
        column_type = ColumnType.FLOAT64
    elif annotation is str:
        single_char = min_length == 1 and max_length == 1
        column_type = ColumnType.CHAR if single_char else ColumnType.STRING
    elif annotation is bytes:
        column_type = ColumnType.BYTES
    else:
        raise ValidationError(
            f"Field {name}: unsupported type {annotation}. "
            f"Supported: bool, int, float, str, bytes, Enum (optionally Optional)."
        )
    return Column(name, column_type, nullable=nullable)


def _infer_column(name: str, values: Iterable[Any]) -> Column:
    kinds = set()
    enum_classes = set()
    nullable = False

    for value in values:
        if value is None:
            nullable = True
        elif isinstance(value, bool):
            kinds.add(ColumnType.BOOL)
        elif isinstance(value, enum.Enum):
            kinds.add(ColumnType.ENUM)
            enum_classes.add(type(value))
        elif isinstance(value, int):
            kinds.add(ColumnType.INT64)
        elif isinstance(value, float):
            kinds.add(ColumnType.FLOAT64)
        elif isinstance(value, str):
            kinds.add(ColumnType.STRING)
        elif isinstance(value, (bytes, bytearray)):
            kinds.add(ColumnType.BYTES)
        else:
            raise ValidationError(
                f"Column {name!r}: unsupported value type {type(value).__name__}"
            )

    if not kinds:
        raise ValidationError(
            f"Column {name!r}: cannot infer a type from missing values only; "
            f"pass an explicit schema"
        )
    if kinds == {ColumnType.INT64, ColumnType.FLOAT64}:
        kinds = {ColumnType.FLOAT64}
    if len(kinds) > 1:
        found = ", ".join(sorted(kind.name for kind in kinds))
        raise ValidationError(f"Column {name!r}: mixed value types ({found})")

    (column_type,) = kinds
    if column_type is ColumnType.ENUM:
        if len(enum_classes) > 1:
            raise ValidationError(f"Column {name!r}: values from more than one Enum class")
        return Column.from_enum(name, enum_classes.pop(), nullable=nullable)
    return Column(name, column_type, nullable=nullable)
