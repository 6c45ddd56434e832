"""Parsing of rows produced by ``COPY ... TO STDOUT WITH (FORMAT text)``."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence

from .cells import Cell, ColumnSchema, TableRow
from .text import FromTextError, try_from_str

logger = logging.getLogger(__name__)

_NULL_MARKER = "\\N"

_ESCAPES = {
    "b": "\b",
    "f": "\f",
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "v": "\v",
}


class TableRowConversionError(ValueError):
    """A COPY text row could not be converted into a table row."""


def _split_fields(text: str) -> Iterator[str]:
    """Yield the raw fields of one row, with backslash escapes resolved.

    ``\\N`` is kept as the two-character null marker. Anything after the
    terminating newline that is not itself terminated is ignored.
    """
    current: list[str] = []
    in_escape = False
    terminated = False
    for c in text:
        if in_escape:
            current.append(_NULL_MARKER if c == "N" else _ESCAPES.get(c, c))
            in_escape = False
        elif c == "\t":
            yield "".join(current)
            current = []
        elif c == "\n":
            terminated = True
            yield "".join(current)
            current = []
        elif c == "\\":
            in_escape = True
        else:
            current.append(c)
    if not terminated:
        raise TableRowConversionError("unterminated row")


def parse_table_row(row: bytes, column_schemas: Sequence[ColumnSchema]) -> TableRow:
    """Convert one line of COPY text output into a :class:`TableRow`."""
    try:
        text = bytes(row).decode("utf-8")
    except UnicodeDecodeError as e:
        raise TableRowConversionError(f"invalid string: {e}") from e

    schemas = iter(column_schemas)
    values: list[Cell] = []
    for field_text in _split_fields(text):
        column_schema = next(schemas, None)
        if column_schema is None:
            raise TableRowConversionError("mismatch in num of columns in schema and row")
        if field_text == _NULL_MARKER:
            values.append(Cell())
            continue
        try:
            values.append(try_from_str(column_schema.typ, field_text))
        except FromTextError as e:
            logger.error(
                "error parsing column `%s` of type `%s` from text `%s`",
                column_schema.name,
                column_schema.typ,
                field_text,
            )
            raise TableRowConversionError(f"invalid value: {e}") from e
    return TableRow(values)