"""Core value types: Postgres types, cells, rows and table schemas."""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class PgType(Enum):
    """Postgres types the replicator understands, keyed by their oid."""

    BOOL = 16
    BYTEA = 17
    CHAR = 18
    NAME = 19
    INT8 = 20
    INT2 = 21
    INT4 = 23
    TEXT = 25
    OID = 26
    JSON = 114
    JSON_ARRAY = 199
    FLOAT4 = 700
    FLOAT8 = 701
    BOOL_ARRAY = 1000
    BYTEA_ARRAY = 1001
    CHAR_ARRAY = 1002
    NAME_ARRAY = 1003
    INT2_ARRAY = 1005
    INT4_ARRAY = 1007
    TEXT_ARRAY = 1009
    BPCHAR_ARRAY = 1014
    VARCHAR_ARRAY = 1015
    INT8_ARRAY = 1016
    FLOAT4_ARRAY = 1021
    FLOAT8_ARRAY = 1022
    OID_ARRAY = 1028
    BPCHAR = 1042
    VARCHAR = 1043
    DATE = 1082
    TIME = 1083
    TIMESTAMP = 1114
    TIMESTAMP_ARRAY = 1115
    DATE_ARRAY = 1182
    TIME_ARRAY = 1183
    TIMESTAMPTZ = 1184
    TIMESTAMPTZ_ARRAY = 1185
    NUMERIC_ARRAY = 1231
    NUMERIC = 1700
    UUID = 2950
    UUID_ARRAY = 2951
    JSONB = 3802
    JSONB_ARRAY = 3807

    @property
    def oid(self) -> int:
        return self.value

    @property
    def pg_name(self) -> str:
        """The catalog name of the type, e.g. ``int4`` or ``_int4``."""
        if self.is_array():
            return "_" + self.name[: -len("_ARRAY")].lower()
        return self.name.lower()

    def is_array(self) -> bool:
        return self.name.endswith("_ARRAY")

    @classmethod
    def from_oid(cls, oid: int) -> PgType | None:
        """Return the type with this oid, or None when it is not known."""
        try:
            return cls(oid)
        except ValueError:
            return None

    def __str__(self) -> str:
        return self.pg_name


class CellKind(Enum):
    NULL = "null"
    BOOL = "bool"
    STRING = "string"
    I16 = "i16"
    I32 = "i32"
    U32 = "u32"
    I64 = "i64"
    F32 = "f32"
    F64 = "f64"
    NUMERIC = "numeric"
    DATE = "date"
    TIME = "time"
    TIMESTAMP = "timestamp"
    TIMESTAMPTZ = "timestamptz"
    UUID = "uuid"
    JSON = "json"
    BYTES = "bytes"
    ARRAY = "array"


@dataclass
class ArrayCell:
    """An array value; ``kind`` is the element kind, NULL for a null array."""

    kind: CellKind = CellKind.NULL
    values: list[Any] = field(default_factory=list)


@dataclass
class Cell:
    """A single column value tagged with its kind."""

    kind: CellKind = CellKind.NULL
    value: Any = None


@dataclass
class ColumnSchema:
    name: str
    typ: PgType | None
    modifier: int = -1
    nullable: bool = True
    primary: bool = False


def _quote_ident(s: str) -> str:
    return '"' + s.replace('"', '""') + '"'


@dataclass(frozen=True)
class TableName:
    schema: str
    name: str

    def as_quoted_identifier(self) -> str:
        return f"{_quote_ident(self.schema)}.{_quote_ident(self.name)}"

    def __str__(self) -> str:
        return f"{self.schema}.{self.name}"


@dataclass
class TableSchema:
    table_name: TableName
    table_id: int
    column_schemas: list[ColumnSchema] = field(default_factory=list)

    def has_primary_keys(self) -> bool:
        return any(c.primary for c in self.column_schemas)


@dataclass
class TableRow:
    values: list[Cell] = field(default_factory=list)

    def is_last_in_batch(self) -> bool:
        return True


def format_date(value: dt.date) -> str:
    return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"


def format_time(value: dt.time | dt.datetime) -> str:
    micro = value.microsecond
    if micro == 0:
        frac = ""
    elif micro % 1000 == 0:
        frac = f".{micro // 1000:03d}"
    else:
        frac = f".{micro:06d}"
    return f"{value.hour:02d}:{value.minute:02d}:{value.second:02d}{frac}"


def format_timestamp(value: dt.datetime) -> str:
    return f"{format_date(value)} {format_time(value)}"


def format_timestamptz(value: dt.datetime) -> str:
    """Format as UTC with a ``+00:00`` offset; naive values are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=dt.timezone.utc)
    else:
        value = value.astimezone(dt.timezone.utc)
    return f"{format_timestamp(value)}+00:00"