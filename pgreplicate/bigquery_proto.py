"""Protocol buffer encoding of rows for the BigQuery storage write API."""

from __future__ import annotations

import json
import struct
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .bigquery_sql import is_array_type
from .cells import (
    ArrayCell,
    Cell,
    CellKind,
    PgType,
    TableRow,
    TableSchema,
    format_date,
    format_time,
    format_timestamp,
    format_timestamptz,
)

CHANGE_TYPE_COLUMN = "_CHANGE_TYPE"

_WIRE_VARINT = 0
_WIRE_FIXED64 = 1
_WIRE_LEN = 2
_WIRE_FIXED32 = 5

_U64_MASK = (1 << 64) - 1


class ColumnType(Enum):
    BOOL = "bool"
    STRING = "string"
    INT32 = "int32"
    INT64 = "int64"
    FLOAT = "float"
    DOUBLE = "double"
    BYTES = "bytes"


class ColumnMode(Enum):
    NULLABLE = "nullable"
    REQUIRED = "required"
    REPEATED = "repeated"


@dataclass(frozen=True)
class FieldDescriptor:
    number: int
    name: str
    typ: ColumnType
    mode: ColumnMode


@dataclass
class TableDescriptor:
    field_descriptors: list[FieldDescriptor] = field(default_factory=list)


def _varint(n: int) -> bytes:
    n &= _U64_MASK
    out = bytearray()
    while True:
        byte = n & 0x7F
        n >>= 7
        if n:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def _key(tag: int, wire: int) -> bytes:
    if tag < 1:
        raise ValueError(f"invalid field number: {tag}")
    return _varint((tag << 3) | wire)


def _len_field(tag: int, data: bytes) -> bytes:
    return _key(tag, _WIRE_LEN) + _varint(len(data)) + data


def _bool_payload(value: Any) -> bytes:
    return _varint(1 if value else 0)


def _int_payload(value: Any) -> bytes:
    return _varint(int(value))


def _uint32_payload(value: Any) -> bytes:
    value = int(value)
    if not 0 <= value < 2**32:
        raise ValueError(f"value out of range for uint32: {value}")
    return _varint(value)


def _float_payload(value: Any) -> bytes:
    return struct.pack("<f", float(value))


def _double_payload(value: Any) -> bytes:
    return struct.pack("<d", float(value))


def _json_text(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


# kinds written as numbers: (wire type, payload encoder)
_NUMBERS: dict[CellKind, tuple[int, Callable[[Any], bytes]]] = {
    CellKind.BOOL: (_WIRE_VARINT, _bool_payload),
    CellKind.I16: (_WIRE_VARINT, _int_payload),
    CellKind.I32: (_WIRE_VARINT, _int_payload),
    CellKind.I64: (_WIRE_VARINT, _int_payload),
    CellKind.U32: (_WIRE_VARINT, _uint32_payload),
    CellKind.F32: (_WIRE_FIXED32, _float_payload),
    CellKind.F64: (_WIRE_FIXED64, _double_payload),
}

# kinds written as strings
_TEXT: dict[CellKind, Callable[[Any], str]] = {
    CellKind.STRING: str,
    CellKind.NUMERIC: str,
    CellKind.DATE: format_date,
    CellKind.TIME: format_time,
    CellKind.TIMESTAMP: format_timestamp,
    CellKind.TIMESTAMPTZ: format_timestamptz,
    CellKind.UUID: str,
    CellKind.JSON: _json_text,
}


def _encode_array(array: ArrayCell, tag: int) -> bytes:
    kind = array.kind
    if kind is CellKind.NULL:
        return b""
    values = [v for v in array.values if v is not None]
    if kind in _NUMBERS:
        if not values:
            return b""
        _, encode = _NUMBERS[kind]
        return _len_field(tag, b"".join(encode(v) for v in values))
    if kind in _TEXT:
        convert = _TEXT[kind]
        return b"".join(_len_field(tag, convert(v).encode("utf-8")) for v in values)
    if kind is CellKind.BYTES:
        return b"".join(_len_field(tag, bytes(v)) for v in values)
    raise ValueError(f"unsupported array element kind: {kind.value}")


def encode_cell(cell: Cell, tag: int) -> bytes:
    """Encode one cell as the protobuf field ``tag``; null cells produce nothing."""
    kind = cell.kind
    if kind is CellKind.NULL:
        return b""
    if kind is CellKind.ARRAY:
        return _encode_array(cell.value, tag)
    if kind in _NUMBERS:
        wire, encode = _NUMBERS[kind]
        return _key(tag, wire) + encode(cell.value)
    if kind in _TEXT:
        return _len_field(tag, _TEXT[kind](cell.value).encode("utf-8"))
    if kind is CellKind.BYTES:
        return _len_field(tag, bytes(cell.value))
    raise ValueError(f"unsupported cell kind: {kind.value}")


def encode_row(row: TableRow) -> bytes:
    """Encode a row as a message whose field numbers follow column order from 1."""
    return b"".join(encode_cell(cell, tag) for tag, cell in enumerate(row.values, start=1))


def encoded_len(row: TableRow) -> int:
    return len(encode_row(row))


_SCALAR_COLUMN_TYPES: dict[PgType, ColumnType] = {
    PgType.BOOL: ColumnType.BOOL,
    PgType.INT2: ColumnType.INT32,
    PgType.INT4: ColumnType.INT32,
    PgType.INT8: ColumnType.INT64,
    PgType.FLOAT4: ColumnType.FLOAT,
    PgType.FLOAT8: ColumnType.DOUBLE,
    PgType.OID: ColumnType.INT32,
    PgType.BYTEA: ColumnType.BYTES,
}


def _column_type(typ: PgType | None) -> ColumnType:
    if typ is None:
        return ColumnType.STRING
    if typ.is_array():
        typ = PgType[typ.name[: -len("_ARRAY")]]
    return _SCALAR_COLUMN_TYPES.get(typ, ColumnType.STRING)


def table_schema_to_descriptor(table_schema: TableSchema) -> TableDescriptor:
    """Describe the row message for a table, with a trailing change-type column."""
    descriptors = []
    for number, column in enumerate(table_schema.column_schemas, start=1):
        if is_array_type(column.typ):
            mode = ColumnMode.REPEATED
        elif column.nullable:
            mode = ColumnMode.NULLABLE
        else:
            mode = ColumnMode.REQUIRED
        descriptors.append(
            FieldDescriptor(number, column.name, _column_type(column.typ), mode)
        )
    descriptors.append(
        FieldDescriptor(
            len(descriptors) + 1, CHANGE_TYPE_COLUMN, ColumnType.STRING, ColumnMode.REQUIRED
        )
    )
    return TableDescriptor(descriptors)