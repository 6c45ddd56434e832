import pytest

from pgreplicate.scalars import ByteaHexParseError, ParseBoolError, from_bytea_hex, parse_bool


def test_parse_bool():
    assert parse_bool("t") is True
    assert parse_bool("f") is False


@pytest.mark.parametrize("text", ["true", "", "T"])
def test_parse_bool_invalid(text):
    with pytest.raises(ParseBoolError):
        parse_bool(text)


def test_bytea_roundtrip():
    data = bytes(range(256))
    assert from_bytea_hex("\\x" + data.hex()) == data


def test_bytea_empty():
    assert from_bytea_hex("\\x") == b""


@pytest.mark.parametrize("text", ["", "x", "0102", "\\x1", "\\xzz"])
def test_bytea_invalid(text):
    with pytest.raises(ByteaHexParseError):
        from_bytea_hex(text)