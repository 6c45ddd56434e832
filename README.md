# pgreplicate

Building blocks for moving data out of Postgres with logical replication:
decoding what Postgres sends, and preparing SQL and encodings for DuckDB
and BigQuery sinks. The package has no dependencies outside the standard
library.

## Modules

- `pgreplicate.cells`: the value types. `PgType` lists the supported
  Postgres types by oid (`PgType.from_oid` returns `None` for unknown oids,
  `is_array()` tells array types apart). `Cell` and `ArrayCell` hold a value
  tagged with a `CellKind`. `ColumnSchema`, `TableName`
  (`as_quoted_identifier()`), `TableSchema` (`has_primary_keys()`) and
  `TableRow` describe tables and rows. `format_date`, `format_time`,
  `format_timestamp` and `format_timestamptz` render temporal values as
  text; `format_timestamptz` always renders in UTC with `+00:00`.
- `pgreplicate.scalars`: `parse_bool` (accepts `t` and `f`, raises
  `ParseBoolError` otherwise) and `from_bytea_hex` (decodes `\x...` hex
  bytea, raises `ByteaHexParseError`).
- `pgreplicate.numeric`: `PgNumeric`, a `Decimal`-backed NUMERIC that also
  holds `NaN`, `Infinity` and `-Infinity`. `PgNumeric.from_str` parses
  text, `PgNumeric.from_sql` decodes the binary wire format.
- `pgreplicate.text`: `try_from_str(typ, s)` turns a text-format value into
  a `Cell`, including arrays via `parse_array`; `default_value(typ)` gives
  the placeholder cell used for unchanged TOAST values. Unsupported types
  and bad input raise `FromTextError` (`ArrayParseError` for malformed
  arrays).
- `pgreplicate.table_row`: `parse_table_row(row, column_schemas)` reads one
  line of `COPY ... TO STDOUT WITH (FORMAT text)` output into a `TableRow`,
  resolving backslash escapes and `\N` nulls. Errors raise
  `TableRowConversionError`.
- `pgreplicate.cdc_event`: `convert_message(message, table_schemas)` turns a
  `LogicalMessage` (built from `MessageKind` and `TupleData` columns) or a
  `KeepAlive` into a `CdcEvent`. `CdcEvent.is_last_in_batch()` is true for
  commits and keepalives. Errors raise `CdcEventConversionError`.
- `pgreplicate.pg_queries`: query text for table copies, column schemas,
  table ids, replication slots, publications and `START_REPLICATION`, with
  parsers for their result rows (rows are mappings of column name to text
  or `None`). Also `quote_identifier`, `quote_literal`, `parse_lsn` and
  `format_lsn`. Problems raise `ReplicationClientError`.
- `pgreplicate.duckdb_sql`: `create table`, `insert`, `update` and `delete`
  statements with `?` placeholders, the matching parameter lists
  (`update_row_params`, `delete_row_params`), and `cell_to_value` for
  binding cells.
- `pgreplicate.bigquery_sql`: BigQuery `create table` (with a non-enforced
  primary key and a `max_staleness` option), `table_exists_query`, and
  `insert`, `update` and `delete` statements with literal values rendered
  by `cell_to_query_value`.
- `pgreplicate.bigquery_proto`: `encode_cell`, `encode_row` and
  `encoded_len` write rows as protobuf messages (field numbers follow
  column order from 1), and `table_schema_to_descriptor` builds the
  matching `TableDescriptor` with a trailing `_CHANGE_TYPE` column.

## Example

```python
from pgreplicate.cells import ColumnSchema, PgType
from pgreplicate.table_row import parse_table_row

columns = [
    ColumnSchema(name="id", typ=PgType.INT4, nullable=False, primary=True),
    ColumnSchema(name="tags", typ=PgType.TEXT_ARRAY),
]
row = parse_table_row(b"1\t{a,b,NULL}\n", columns)
# row.values[0].value == 1
# row.values[1].value.values == ["a", "b", None]
```

## What it does not do

The package opens no connections and runs nothing. It does not talk to
Postgres, DuckDB or BigQuery, does not decode the raw pgoutput byte stream
into `LogicalMessage` values, and has no pipeline, batching loop or
command-line program. It supplies the query text, parsers and encodings
that such a program would use.

## Tests

```
pip install -e .[test]
pytest
```