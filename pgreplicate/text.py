"""Conversion of Postgres text-format values into cells."""

from __future__ import annotations

import datetime as dt
import json
import re
import struct
import uuid
from typing import Any, Callable

from .cells import ArrayCell, Cell, CellKind, PgType
from .numeric import PgNumeric
from .scalars import from_bytea_hex, parse_bool


class FromTextError(ValueError):
    """A text value could not be converted to a cell."""


class ArrayParseError(FromTextError):
    """A text array is malformed."""


_INT = re.compile(r"[+-]?[0-9]+")
_TIME = r"(\d{1,2}):(\d{1,2}):(\d{1,2})(?:\.(\d{1,9}))?"
_TIME_RE = re.compile(_TIME)
_DATE = r"([+-]?\d{1,6})-(\d{1,2})-(\d{1,2})"
_DATE_RE = re.compile(_DATE)
_TS_RE = re.compile(_DATE + " " + _TIME)
_TSTZ_RE = re.compile(_DATE + " " + _TIME + r"([+-])(\d{2})(?::?(\d{2}))?")


def _int_parser(lo: int, hi: int) -> Callable[[str], int]:
    def parse(s: str) -> int:
        if not _INT.fullmatch(s):
            raise ValueError(f"invalid int value: {s!r}")
        value = int(s)
        if not lo <= value <= hi:
            raise ValueError(f"int value out of range: {s!r}")
        return value

    return parse


def _check_float_text(s: str) -> None:
    if not s or "_" in s or s != s.strip():
        raise ValueError(f"invalid float value: {s!r}")


def _parse_f64(s: str) -> float:
    _check_float_text(s)
    return float(s)


def _parse_f32(s: str) -> float:
    value = _parse_f64(s)
    try:
        return struct.unpack("f", struct.pack("f", value))[0]
    except OverflowError:
        return float("inf") if value > 0 else float("-inf")


def _parse_date(s: str) -> dt.date:
    m = _DATE_RE.fullmatch(s)
    if not m:
        raise ValueError(f"invalid date: {s!r}")
    return dt.date(int(m[1]), int(m[2]), int(m[3]))


def _time_from(h: str, mi: str, sec: str, frac: str | None) -> dt.time:
    micro = int((frac or "").ljust(6, "0")[:6])
    return dt.time(int(h), int(mi), int(sec), micro)


def _parse_time(s: str) -> dt.time:
    m = _TIME_RE.fullmatch(s)
    if not m:
        raise ValueError(f"invalid time: {s!r}")
    return _time_from(*m.groups())


def _parse_timestamp(s: str) -> dt.datetime:
    m = _TS_RE.fullmatch(s)
    if not m:
        raise ValueError(f"invalid timestamp: {s!r}")
    g = m.groups()
    return dt.datetime.combine(dt.date(int(g[0]), int(g[1]), int(g[2])), _time_from(*g[3:7]))


def _parse_timestamptz(s: str) -> dt.datetime:
    m = _TSTZ_RE.fullmatch(s)
    if not m:
        raise ValueError(f"invalid timestamp: {s!r}")
    g = m.groups()
    naive = dt.datetime.combine(
        dt.date(int(g[0]), int(g[1]), int(g[2])), _time_from(*g[3:7])
    )
    offset = dt.timedelta(hours=int(g[8]), minutes=int(g[9] or 0))
    if g[7] == "-":
        offset = -offset
    return naive.replace(tzinfo=dt.timezone(offset)).astimezone(dt.timezone.utc)


def _parse_numeric(s: str) -> PgNumeric:
    return PgNumeric.from_str(s)


# scalar type -> (cell kind, parser, default value)
_SCALARS: dict[PgType, tuple[CellKind, Callable[[str], Any], Any]] = {
    PgType.BOOL: (CellKind.BOOL, parse_bool, False),
    PgType.INT2: (CellKind.I16, _int_parser(-(2**15), 2**15 - 1), 0),
    PgType.INT4: (CellKind.I32, _int_parser(-(2**31), 2**31 - 1), 0),
    PgType.INT8: (CellKind.I64, _int_parser(-(2**63), 2**63 - 1), 0),
    PgType.OID: (CellKind.U32, _int_parser(0, 2**32 - 1), 0),
    PgType.FLOAT4: (CellKind.F32, _parse_f32, 0.0),
    PgType.FLOAT8: (CellKind.F64, _parse_f64, 0.0),
    PgType.NUMERIC: (CellKind.NUMERIC, _parse_numeric, PgNumeric.default()),
    PgType.BYTEA: (CellKind.BYTES, from_bytea_hex, b""),
    PgType.DATE: (CellKind.DATE, _parse_date, dt.date.min),
    PgType.TIME: (CellKind.TIME, _parse_time, dt.time.min),
    PgType.TIMESTAMP: (CellKind.TIMESTAMP, _parse_timestamp, dt.datetime.min),
    PgType.TIMESTAMPTZ: (
        CellKind.TIMESTAMPTZ,
        _parse_timestamptz,
        dt.datetime.min.replace(tzinfo=dt.timezone.utc),
    ),
    PgType.UUID: (CellKind.UUID, uuid.UUID, uuid.UUID(int=0)),
    PgType.JSON: (CellKind.JSON, json.loads, None),
    PgType.JSONB: (CellKind.JSON, json.loads, None),
}
for _t in (PgType.CHAR, PgType.BPCHAR, PgType.VARCHAR, PgType.NAME, PgType.TEXT):
    _SCALARS[_t] = (CellKind.STRING, str, "")

_ARRAYS: dict[PgType, PgType] = {
    PgType.BOOL_ARRAY: PgType.BOOL,
    PgType.CHAR_ARRAY: PgType.CHAR,
    PgType.BPCHAR_ARRAY: PgType.BPCHAR,
    PgType.VARCHAR_ARRAY: PgType.VARCHAR,
    PgType.NAME_ARRAY: PgType.NAME,
    PgType.TEXT_ARRAY: PgType.TEXT,
    PgType.INT2_ARRAY: PgType.INT2,
    PgType.INT4_ARRAY: PgType.INT4,
    PgType.INT8_ARRAY: PgType.INT8,
    PgType.OID_ARRAY: PgType.OID,
    PgType.FLOAT4_ARRAY: PgType.FLOAT4,
    PgType.FLOAT8_ARRAY: PgType.FLOAT8,
    PgType.NUMERIC_ARRAY: PgType.NUMERIC,
    PgType.BYTEA_ARRAY: PgType.BYTEA,
    PgType.DATE_ARRAY: PgType.DATE,
    PgType.TIME_ARRAY: PgType.TIME,
    PgType.TIMESTAMP_ARRAY: PgType.TIMESTAMP,
    PgType.TIMESTAMPTZ_ARRAY: PgType.TIMESTAMPTZ,
    PgType.UUID_ARRAY: PgType.UUID,
    PgType.JSON_ARRAY: PgType.JSON,
    PgType.JSONB_ARRAY: PgType.JSONB,
}


def default_value(typ: PgType | None) -> Cell:
    """The placeholder cell used for unchanged TOASTed values."""
    if typ in _ARRAYS:
        return Cell(CellKind.ARRAY, ArrayCell(_SCALARS[_ARRAYS[typ]][0], []))
    if typ in _SCALARS:
        kind, _, default = _SCALARS[typ]
        return Cell(kind, default)
    raise FromTextError(f"unsupported type: {typ}")


def _wrap(parse: Callable[[str], Any]) -> Callable[[str], Any]:
    def wrapped(s: str) -> Any:
        try:
            return parse(s)
        except FromTextError:
            raise
        except (ValueError, TypeError, OverflowError) as e:
            raise FromTextError(f"invalid value {s!r}: {e}") from e

    return wrapped


def try_from_str(typ: PgType | None, s: str) -> Cell:
    """Convert one text-format value of the given type into a cell."""
    if typ in _ARRAYS:
        kind, parse, _ = _SCALARS[_ARRAYS[typ]]
        return parse_array(s, _wrap(parse), kind)
    if typ in _SCALARS:
        kind, parse, _ = _SCALARS[typ]
        return Cell(kind, _wrap(parse)(s))
    raise FromTextError(f"unsupported type: {typ}")


def _split_elements(inner: str):
    current: list[str] = []
    in_quotes = False
    in_escape = False
    for c in inner:
        if in_escape:
            current.append(c)
            in_escape = False
        elif c == '"':
            in_quotes = not in_quotes
        elif c == "\\":
            in_escape = True
        elif c == "," and not in_quotes:
            yield "".join(current)
            current = []
        else:
            current.append(c)
    yield "".join(current)


def parse_array(s: str, parse: Callable[[str], Any], kind: CellKind) -> Cell:
    """Parse a ``{a,b,...}`` array literal, mapping ``null`` elements to None."""
    if len(s) < 2:
        raise ArrayParseError("input too short")
    if not (s.startswith("{") and s.endswith("}")):
        raise ArrayParseError("missing braces")
    inner = s[1:-1]
    values = (
        []
        if not inner
        else [None if e.lower() == "null" else parse(e) for e in _split_elements(inner)]
    )
    return Cell(CellKind.ARRAY, ArrayCell(kind, values))