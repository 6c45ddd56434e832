import pytest

from pgreplicate.cells import ArrayCell, Cell, CellKind, ColumnSchema, PgType, TableRow
from pgreplicate.table_row import TableRowConversionError, parse_table_row
from pgreplicate.text import FromTextError


def _cols(*types):
    return [ColumnSchema(f"c{i}", t) for i, t in enumerate(types)]


def test_parses_simple_row():
    row = parse_table_row(b"1\thello\n", _cols(PgType.INT4, PgType.TEXT))
    assert row == TableRow([Cell(CellKind.I32, 1), Cell(CellKind.STRING, "hello")])


def test_null_marker_becomes_null_cell():
    row = parse_table_row(b"\\N\t5\n", _cols(PgType.TEXT, PgType.INT8))
    assert row.values == [Cell(), Cell(CellKind.I64, 5)]


def test_escape_sequences_are_resolved():
    row = parse_table_row(b"a\\tb\\nc\\rd\n", _cols(PgType.TEXT))
    assert row.values == [Cell(CellKind.STRING, "a\tb\nc\rd")]


def test_control_escapes():
    row = parse_table_row(b"\\b\\f\\v\n", _cols(PgType.TEXT))
    assert row.values[0].value == "\b\f\v"


def test_escaped_backslash():
    row = parse_table_row(b"a\\\\b\n", _cols(PgType.TEXT))
    assert row.values[0].value == "a\\b"


def test_empty_field_is_empty_string():
    row = parse_table_row(b"\tx\n", _cols(PgType.TEXT, PgType.TEXT))
    assert row.values == [Cell(CellKind.STRING, ""), Cell(CellKind.STRING, "x")]


def test_array_field():
    row = parse_table_row(b"{1,2,NULL}\n", _cols(PgType.INT4_ARRAY))
    assert row.values == [Cell(CellKind.ARRAY, ArrayCell(CellKind.I32, [1, 2, None]))]


def test_content_after_terminator_is_ignored():
    row = parse_table_row(b"1\n2", _cols(PgType.INT4))
    assert row.values == [Cell(CellKind.I32, 1)]


def test_unterminated_row_raises():
    with pytest.raises(TableRowConversionError, match="unterminated"):
        parse_table_row(b"1\t2", _cols(PgType.INT4, PgType.INT4))


def test_empty_input_is_unterminated():
    with pytest.raises(TableRowConversionError, match="unterminated"):
        parse_table_row(b"", _cols(PgType.INT4))


def test_too_many_fields_raises():
    with pytest.raises(TableRowConversionError, match="mismatch"):
        parse_table_row(b"1\t2\n", _cols(PgType.INT4))


def test_invalid_value_raises_with_cause():
    with pytest.raises(TableRowConversionError) as info:
        parse_table_row(b"abc\n", _cols(PgType.INT4))
    assert isinstance(info.value.__cause__, FromTextError)


def test_invalid_utf8_raises():
    with pytest.raises(TableRowConversionError, match="invalid string"):
        parse_table_row(b"\xff\n", _cols(PgType.TEXT))


def test_row_is_last_in_batch():
    row = parse_table_row(b"t\n", _cols(PgType.BOOL))
    assert row.values == [Cell(CellKind.BOOL, True)]
    assert row.is_last_in_batch() is True