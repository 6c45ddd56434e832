import struct
from decimal import Decimal

import pytest

from pgreplicate.numeric import PgNumeric


@pytest.mark.parametrize("text", ["1.25", "-3", "0.001", "12345678901234567890"])
def test_from_str_roundtrip(text):
    assert str(PgNumeric.from_str(text)) == text


@pytest.mark.parametrize(
    "text,expected", [("infinity", "Infinity"), ("-Infinity", "-Infinity"), ("NAN", "NaN")]
)
def test_special_values(text, expected):
    assert str(PgNumeric.from_str(text)) == expected


def test_invalid():
    with pytest.raises(ValueError):
        PgNumeric.from_str("abc")


def test_nan_equality():
    assert PgNumeric.from_str("nan") == PgNumeric.from_str("NaN")


def test_default_is_zero():
    assert PgNumeric.default().value == Decimal(0)


def test_from_sql_value():
    raw = struct.pack(">HhHHHH", 2, 0, 0x0000, 2, 1, 2500)
    assert str(PgNumeric.from_sql(raw)) == "1.25"


def test_from_sql_negative_matches_text():
    raw = struct.pack(">HhHHHH", 2, 0, 0x4000, 2, 1, 2500)
    assert PgNumeric.from_sql(raw) == PgNumeric.from_str("-1.25")


def test_from_sql_specials():
    assert str(PgNumeric.from_sql(struct.pack(">HhHH", 0, 0, 0xC000, 0))) == "NaN"
    assert str(PgNumeric.from_sql(struct.pack(">HhHH", 0, 0, 0xD000, 0))) == "Infinity"


def test_from_sql_bad_sign():
    with pytest.raises(ValueError):
        PgNumeric.from_sql(struct.pack(">HhHH", 0, 0, 0x1234, 0))


def test_from_sql_truncated():
    with pytest.raises(ValueError):
        PgNumeric.from_sql(b"\x00")