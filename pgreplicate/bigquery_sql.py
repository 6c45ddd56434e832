"""SQL text for writing replicated rows into BigQuery."""

from __future__ import annotations

import datetime as dt
import json
import math
import struct
from collections.abc import Sequence
from decimal import Decimal

from .cells import (
    Cell,
    CellKind,
    ColumnSchema,
    PgType,
    TableRow,
    format_date,
    format_time,
    format_timestamp,
)

_BIGQUERY_TYPES: dict[PgType, str] = {
    PgType.BOOL: "bool",
    PgType.CHAR: "string",
    PgType.BPCHAR: "string",
    PgType.VARCHAR: "string",
    PgType.NAME: "string",
    PgType.TEXT: "string",
    PgType.INT2: "int64",
    PgType.INT4: "int64",
    PgType.INT8: "int64",
    PgType.FLOAT4: "float64",
    PgType.FLOAT8: "float64",
    PgType.NUMERIC: "bignumeric",
    PgType.DATE: "date",
    PgType.TIME: "time",
    PgType.TIMESTAMP: "timestamp",
    PgType.TIMESTAMPTZ: "timestamp",
    PgType.UUID: "string",
    PgType.JSON: "json",
    PgType.JSONB: "json",
    PgType.OID: "int64",
    PgType.BYTEA: "bytes",
    PgType.BOOL_ARRAY: "array<bool>",
    PgType.CHAR_ARRAY: "array<string>",
    PgType.BPCHAR_ARRAY: "array<string>",
    PgType.VARCHAR_ARRAY: "array<string>",
    PgType.NAME_ARRAY: "array<string>",
    PgType.TEXT_ARRAY: "array<string>",
    PgType.INT2_ARRAY: "array<int64>",
    PgType.INT4_ARRAY: "array<int64>",
    PgType.INT8_ARRAY: "array<int64>",
    PgType.FLOAT4_ARRAY: "array<float64>",
    PgType.FLOAT8_ARRAY: "array<float64>",
    PgType.NUMERIC_ARRAY: "array<bignumeric>",
    PgType.DATE_ARRAY: "array<date>",
    PgType.TIME_ARRAY: "array<time>",
    PgType.TIMESTAMP_ARRAY: "array<timestamp>",
    PgType.TIMESTAMPTZ_ARRAY: "array<timestamp>",
    PgType.UUID_ARRAY: "array<string>",
    PgType.JSON_ARRAY: "array<json>",
    PgType.JSONB_ARRAY: "array<json>",
    PgType.OID_ARRAY: "array<int64>",
    PgType.BYTEA_ARRAY: "array<bytes>",
}

_ARRAY_TYPES = frozenset(
    {
        PgType.BOOL_ARRAY,
        PgType.CHAR_ARRAY,
        PgType.BPCHAR_ARRAY,
        PgType.VARCHAR_ARRAY,
        PgType.NAME_ARRAY,
        PgType.TEXT_ARRAY,
        PgType.INT2_ARRAY,
        PgType.INT4_ARRAY,
        PgType.INT8_ARRAY,
        PgType.FLOAT4_ARRAY,
        PgType.FLOAT8_ARRAY,
        PgType.NUMERIC_ARRAY,
        PgType.DATE_ARRAY,
        PgType.TIME_ARRAY,
        PgType.TIMESTAMP_ARRAY,
        PgType.TIMESTAMPTZ_ARRAY,
        PgType.UUID_ARRAY,
        PgType.JSON_ARRAY,
        PgType.JSONB_ARRAY,
        PgType.OID_ARRAY,
        PgType.BYTEA_ARRAY,
    }
)


def postgres_to_bigquery_type(typ: PgType | None) -> str:
    """The BigQuery column type for a Postgres type; unknown types become ``string``."""
    if typ is None:
        return "string"
    return _BIGQUERY_TYPES.get(typ, "string")


def is_array_type(typ: PgType | None) -> bool:
    return typ in _ARRAY_TYPES


def _column_spec(column_schema: ColumnSchema) -> str:
    spec = f"`{column_schema.name}` {postgres_to_bigquery_type(column_schema.typ)}"
    if not column_schema.nullable and not is_array_type(column_schema.typ):
        spec += " not null"
    return spec


def create_columns_spec(column_schemas: Sequence[ColumnSchema]) -> str:
    """Column definitions, with a non-enforced primary key clause when there are keys."""
    parts = [_column_spec(c) for c in column_schemas]
    keys = [f"`{c.name}`" for c in column_schemas if c.primary]
    if keys:
        parts.append(f"primary key ({','.join(keys)}) not enforced")
    return "(" + ",".join(parts) + ")"


def max_staleness_option(max_staleness_mins: int) -> str:
    if not 0 <= max_staleness_mins <= 0xFFFF:
        raise ValueError(f"max staleness out of range: {max_staleness_mins}")
    return f"options (max_staleness = interval {max_staleness_mins} minute)"


def create_table_query(
    project_id: str,
    dataset_id: str,
    table_name: str,
    column_schemas: Sequence[ColumnSchema],
    max_staleness_mins: int,
) -> str:
    columns_spec = create_columns_spec(column_schemas)
    option = max_staleness_option(max_staleness_mins)
    return f"create table `{project_id}.{dataset_id}.{table_name}` {columns_spec} {option}"


def table_exists_query(dataset_id: str, table_name: str) -> str:
    return f"""select exists
                (
                    select * from
                    {dataset_id}.INFORMATION_SCHEMA.TABLES
                    where table_name = '{table_name}'
                ) as table_exists;"""


def _plain_decimal(text: str) -> str:
    out = format(Decimal(text), "f")
    if "." in out:
        out = out.rstrip("0").rstrip(".")
    return out


def _special_float(value: float) -> str | None:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "inf" if value > 0 else "-inf"
    return None


def _format_f64(value: float) -> str:
    special = _special_float(value)
    if special is not None:
        return special
    return _plain_decimal(repr(float(value)))


def _format_f32(value: float) -> str:
    special = _special_float(value)
    if special is not None:
        return special
    target = struct.pack("f", value)
    for digits in range(1, 18):
        text = f"{value:.{digits}g}"
        if struct.pack("f", float(text)) == target:
            return _plain_decimal(text)
    return _plain_decimal(repr(float(value)))


def _format_timestamptz(value: dt.datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=dt.timezone.utc)
    else:
        value = value.astimezone(dt.timezone.utc)
    return f"{format_timestamp(value)} UTC"


def cell_to_query_value(cell: Cell) -> str:
    """Render a cell as a SQL literal; arrays are not supported."""
    kind, value = cell.kind, cell.value
    if kind is CellKind.NULL:
        return "null"
    if kind is CellKind.BOOL:
        return "true" if value else "false"
    if kind is CellKind.STRING:
        return f"'{value}'"
    if kind in (CellKind.I16, CellKind.I32, CellKind.I64, CellKind.U32):
        return str(int(value))
    if kind is CellKind.F32:
        return _format_f32(value)
    if kind is CellKind.F64:
        return _format_f64(value)
    if kind is CellKind.NUMERIC:
        return str(value)
    if kind is CellKind.DATE:
        return f"'{format_date(value)}'"
    if kind is CellKind.TIME:
        return f"'{format_time(value)}'"
    if kind is CellKind.TIMESTAMP:
        return f"'{format_timestamp(value)}'"
    if kind is CellKind.TIMESTAMPTZ:
        return f"'{_format_timestamptz(value)}'"
    if kind is CellKind.UUID:
        return f"'{value}'"
    if kind is CellKind.JSON:
        text = json.dumps(value, separators=(",", ":"), ensure_ascii=False)
        return f"'{text}'"
    if kind is CellKind.BYTES:
        return f"b'{bytes(value).decode('latin-1')}'"
    raise ValueError(f"cannot render a {kind.value} cell as a query value")


def create_insert_row_query(
    project_id: str, dataset_id: str, table_name: str, row: TableRow
) -> str:
    values = ",".join(cell_to_query_value(c) for c in row.values)
    return f"insert into `{project_id}.{dataset_id}.{table_name}` values({values})"


def _identities_where_clause(
    column_schemas: Sequence[ColumnSchema], row: TableRow
) -> str:
    return " where " + " and ".join(
        f"{column.name} = {cell_to_query_value(cell)}"
        for cell, column in zip(row.values, column_schemas)
        if column.primary
    )


def create_update_row_query(
    table_name: str, column_schemas: Sequence[ColumnSchema], row: TableRow
) -> str:
    """Update the non-key columns of the row matched by its key columns."""
    assignments = ",".join(
        f"{column.name} = {cell_to_query_value(cell)}"
        for cell, column in zip(row.values, column_schemas)
        if not column.primary
    )
    return f"update {table_name} set {assignments}" + _identities_where_clause(
        column_schemas, row
    )


def create_delete_row_query(
    table_name: str, column_schemas: Sequence[ColumnSchema], row: TableRow
) -> str:
    return f"delete from {table_name}" + _identities_where_clause(column_schemas, row)