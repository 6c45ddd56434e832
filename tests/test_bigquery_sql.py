import datetime as dt
import uuid

import pytest

from pgreplicate.bigquery_sql import (
    cell_to_query_value,
    create_columns_spec,
    create_delete_row_query,
    create_insert_row_query,
    create_table_query,
    create_update_row_query,
    is_array_type,
    max_staleness_option,
    postgres_to_bigquery_type,
    table_exists_query,
)
from pgreplicate.cells import ArrayCell, Cell, CellKind, ColumnSchema, PgType, TableRow


@pytest.fixture
def schemas():
    return [
        ColumnSchema("id", PgType.INT4, nullable=False, primary=True),
        ColumnSchema("name", PgType.TEXT),
    ]


@pytest.fixture
def row():
    return TableRow([Cell(CellKind.I32, 1), Cell(CellKind.STRING, "a")])


def test_type_mapping():
    assert postgres_to_bigquery_type(PgType.INT4) == "int64"
    assert postgres_to_bigquery_type(PgType.NUMERIC) == "bignumeric"
    assert postgres_to_bigquery_type(PgType.JSONB_ARRAY) == "array<json>"
    assert postgres_to_bigquery_type(None) == "string"


@pytest.mark.parametrize("typ", list(PgType))
def test_array_types_agree(typ):
    assert is_array_type(typ) == typ.is_array()
    assert postgres_to_bigquery_type(typ).startswith("array<") == typ.is_array()


def test_columns_spec_with_primary_key(schemas):
    assert (
        create_columns_spec(schemas)
        == "(`id` int64 not null,`name` string,primary key (`id`) not enforced)"
    )


def test_columns_spec_without_key():
    spec = create_columns_spec([ColumnSchema("tags", PgType.TEXT_ARRAY, nullable=False)])
    assert "primary key" not in spec
    assert "not null" not in spec
    assert spec.startswith("(`tags` array<string>")


def test_max_staleness_option():
    assert max_staleness_option(15) == "options (max_staleness = interval 15 minute)"
    with pytest.raises(ValueError):
        max_staleness_option(-1)
    with pytest.raises(ValueError):
        max_staleness_option(70000)


def test_create_table_query(schemas):
    query = create_table_query("p", "d", "t", schemas, 5)
    assert query == (
        f"create table `p.d.t` {create_columns_spec(schemas)} {max_staleness_option(5)}"
    )


def test_table_exists_query():
    query = table_exists_query("ds", "tbl")
    assert "ds.INFORMATION_SCHEMA.TABLES" in query
    assert "where table_name = 'tbl'" in query
    assert query.startswith("select exists")
    assert query.endswith("as table_exists;")


def test_scalar_query_values():
    assert cell_to_query_value(Cell()) == "null"
    assert cell_to_query_value(Cell(CellKind.BOOL, True)) == "true"
    assert cell_to_query_value(Cell(CellKind.STRING, "abc")) == "'abc'"
    assert cell_to_query_value(Cell(CellKind.I64, -7)) == "-7"
    assert cell_to_query_value(Cell(CellKind.F64, 1.0)) == "1"
    assert cell_to_query_value(Cell(CellKind.F64, 2.5)) == "2.5"
    assert cell_to_query_value(Cell(CellKind.BYTES, b"ab")) == "b'ab'"


def test_f32_uses_shortest_form():
    import struct

    stored = struct.unpack("f", struct.pack("f", 0.1))[0]
    assert cell_to_query_value(Cell(CellKind.F32, stored)) == "0.1"


def test_dated_values():
    assert cell_to_query_value(Cell(CellKind.DATE, dt.date(2024, 1, 2))) == "'2024-01-02'"
    ts = dt.datetime(2024, 1, 2, 3, 4, 5, tzinfo=dt.timezone.utc)
    assert cell_to_query_value(Cell(CellKind.TIMESTAMPTZ, ts)).endswith(" UTC'")


def test_uuid_value_round_trips():
    u = uuid.uuid4()
    text = cell_to_query_value(Cell(CellKind.UUID, u))
    assert uuid.UUID(text.strip("'")) == u


def test_array_cell_rejected():
    with pytest.raises(ValueError):
        cell_to_query_value(Cell(CellKind.ARRAY, ArrayCell(CellKind.I32, [1])))


def test_insert_query(row):
    row.values.append(Cell())
    assert create_insert_row_query("p", "d", "t", row) == "insert into `p.d.t` values(1,'a',null)"


def test_update_query(schemas, row):
    query = create_update_row_query("`p.d.t`", schemas, row)
    assert query == "update `p.d.t` set name = 'a' where id = 1"


def test_delete_query_joins_keys():
    columns = [
        ColumnSchema("id", PgType.INT4, primary=True),
        ColumnSchema("k", PgType.TEXT, primary=True),
        ColumnSchema("v", PgType.TEXT),
    ]
    values = TableRow(
        [Cell(CellKind.I32, 1), Cell(CellKind.STRING, "x"), Cell(CellKind.STRING, "y")]
    )
    query = create_delete_row_query("T", columns, values)
    assert query == "delete from T where id = 1 and k = 'x'"
    assert "'y'" not in query