"""SQL text and parameter values for writing replicated rows into DuckDB."""

from __future__ import annotations

import json
from collections.abc import Sequence
from typing import Any, Callable

from .cells import (
    ArrayCell,
    Cell,
    CellKind,
    ColumnSchema,
    PgType,
    TableName,
    TableRow,
    format_date,
    format_time,
    format_timestamp,
    format_timestamptz,
)

_DUCKDB_TYPES: dict[PgType, str] = {
    PgType.BOOL: "bool",
    PgType.CHAR: "text",
    PgType.BPCHAR: "text",
    PgType.VARCHAR: "text",
    PgType.NAME: "text",
    PgType.TEXT: "text",
    PgType.INT2: "int2",
    PgType.INT4: "int4",
    PgType.INT8: "int8",
    PgType.FLOAT4: "float",
    PgType.FLOAT8: "double",
    PgType.NUMERIC: "numeric",
    PgType.DATE: "date",
    PgType.TIME: "time",
    PgType.TIMESTAMP: "timestamp",
    PgType.TIMESTAMPTZ: "timestamptz",
    PgType.UUID: "uuid",
    PgType.JSON: "json",
    PgType.OID: "int8",
    PgType.BYTEA: "bytea",
    PgType.BOOL_ARRAY: "bool[]",
    PgType.CHAR_ARRAY: "text[]",
    PgType.BPCHAR_ARRAY: "text[]",
    PgType.VARCHAR_ARRAY: "text[]",
    PgType.NAME_ARRAY: "text[]",
    PgType.TEXT_ARRAY: "text[]",
    PgType.INT2_ARRAY: "int2[]",
    PgType.INT4_ARRAY: "int4[]",
    PgType.INT8_ARRAY: "int8[]",
    PgType.NUMERIC_ARRAY: "numeric[]",
    PgType.DATE_ARRAY: "date[]",
    PgType.TIME_ARRAY: "time[]",
    PgType.TIMESTAMP_ARRAY: "timestamp[]",
    PgType.UUID_ARRAY: "uuid[]",
    PgType.JSON_ARRAY: "json[]",
    PgType.OID_ARRAY: "oid[]",
    PgType.BYTEA_ARRAY: "bytea[]",
}


def postgres_to_duckdb_type(typ: PgType | None) -> str:
    """The DuckDB column type for a Postgres type; unknown types become ``string``."""
    return _DUCKDB_TYPES.get(typ, "string") if typ is not None else "string"


def _column_spec(column_schema: ColumnSchema) -> str:
    spec = f"{column_schema.name} {postgres_to_duckdb_type(column_schema.typ)}"
    if column_schema.primary:
        spec += " primary key"
    return spec


def create_columns_spec(column_schemas: Sequence[ColumnSchema]) -> str:
    return "(" + ", ".join(_column_spec(c) for c in column_schemas) + ")"


def _qualified(table_name: TableName | str) -> str:
    return str(table_name)


def create_table_query(
    table_name: TableName, column_schemas: Sequence[ColumnSchema]
) -> str:
    return f"create table {table_name.schema}.{table_name.name} {create_columns_spec(column_schemas)}"


def create_insert_row_query(table_name: TableName | str, column_count: int) -> str:
    """An insert with one ``?`` placeholder per column."""
    if column_count <= 0:
        raise ValueError("an insert needs at least one column")
    placeholders = ",".join([" ?"] * column_count)
    return f"insert into {_qualified(table_name)} values({placeholders})"


def _identities_where_clause(column_schemas: Sequence[ColumnSchema]) -> str:
    return " where " + " and ".join(
        f"{c.name} = ?" for c in column_schemas if c.primary
    )


def create_update_row_query(
    table_name: TableName | str, column_schemas: Sequence[ColumnSchema]
) -> str:
    """Update the non-key columns of the row matched by its primary key columns."""
    assignments = ",".join(f"{c.name} = ?" for c in column_schemas if not c.primary)
    return (
        f"update {_qualified(table_name)} set {assignments}"
        + _identities_where_clause(column_schemas)
    )


def create_delete_row_query(
    table_name: TableName | str, column_schemas: Sequence[ColumnSchema]
) -> str:
    return f"delete from {_qualified(table_name)}" + _identities_where_clause(
        column_schemas
    )


def update_row_params(
    column_schemas: Sequence[ColumnSchema], row: TableRow
) -> list[Any]:
    """Parameters for :func:`create_update_row_query`: non-key values, then key values."""
    pairs = list(zip(column_schemas, row.values))
    non_identity = [cell_to_value(c) for s, c in pairs if not s.primary]
    identity = [cell_to_value(c) for s, c in pairs if s.primary]
    return non_identity + identity


def delete_row_params(
    column_schemas: Sequence[ColumnSchema], row: TableRow
) -> list[Any]:
    """Parameters for :func:`create_delete_row_query`: the key values."""
    return [cell_to_value(c) for s, c in zip(column_schemas, row.values) if s.primary]


def _json_text(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


_CONVERTERS: dict[CellKind, Callable[[Any], Any]] = {
    CellKind.BOOL: bool,
    CellKind.STRING: str,
    CellKind.I16: int,
    CellKind.I32: int,
    CellKind.U32: int,
    CellKind.I64: int,
    CellKind.F32: float,
    CellKind.F64: float,
    CellKind.NUMERIC: str,
    CellKind.DATE: format_date,
    CellKind.TIME: format_time,
    CellKind.TIMESTAMP: format_timestamp,
    CellKind.TIMESTAMPTZ: format_timestamptz,
    CellKind.UUID: str,
    CellKind.JSON: _json_text,
    CellKind.BYTES: bytes,
}


def _array_to_value(array: ArrayCell) -> list[Any] | None:
    if array.kind is CellKind.NULL:
        return None
    convert = _CONVERTERS.get(array.kind)
    if convert is None:
        raise ValueError(f"unsupported array element kind: {array.kind}")
    return [None if v is None else convert(v) for v in array.values]


def cell_to_value(cell: Cell) -> Any:
    """The Python value bound as a DuckDB parameter for a cell.

    Numerics, dates, times, uuids and json go as text; arrays become lists.
    """
    if cell.kind is CellKind.NULL:
        return None
    if cell.kind is CellKind.ARRAY:
        return _array_to_value(cell.value)
    return _CONVERTERS[cell.kind](cell.value)