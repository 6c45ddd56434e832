import datetime as dt

from pgreplicate.cells import (
    ColumnSchema,
    PgType,
    TableName,
    TableRow,
    TableSchema,
    format_date,
    format_time,
    format_timestamp,
    format_timestamptz,
)


def test_from_oid_roundtrip():
    for t in PgType:
        assert PgType.from_oid(t.oid) is t


def test_from_oid_unknown():
    assert PgType.from_oid(999999) is None


def test_is_array():
    assert PgType.INT4_ARRAY.is_array()
    assert not PgType.INT4.is_array()
    assert PgType.INT4_ARRAY.pg_name == "_int4"


def test_quoted_identifier():
    assert TableName("public", 'a"b').as_quoted_identifier() == '"public"."a""b"'


def test_has_primary_keys():
    cols = [ColumnSchema("id", PgType.INT4, primary=True)]
    assert TableSchema(TableName("s", "t"), 1, cols).has_primary_keys()
    assert not TableSchema(TableName("s", "t"), 1, []).has_primary_keys()


def test_row_is_last_in_batch():
    assert TableRow().is_last_in_batch() is True


def test_format_date_and_time():
    assert format_date(dt.date(2024, 1, 2)) == "2024-01-02"
    assert format_time(dt.time(1, 2, 3)) == "01:02:03"
    assert format_time(dt.time(1, 2, 3, 500000)) == "01:02:03.500"


def test_format_timestamps():
    value = dt.datetime(2024, 1, 2, 3, 4, 5)
    assert format_timestamp(value) == "2024-01-02 03:04:05"
    aware = value.replace(tzinfo=dt.timezone(dt.timedelta(hours=1)))
    assert format_timestamptz(aware) == "2024-01-02 02:04:05+00:00"