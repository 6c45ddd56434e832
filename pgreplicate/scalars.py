"""Parsers for Postgres text-format booleans and hex bytea."""

import string


class ParseBoolError(ValueError):
    """The text is not a Postgres boolean."""


class ByteaHexParseError(ValueError):
    """The text is not a valid hex-format bytea value."""


def parse_bool(s: str) -> bool:
    if s == "t":
        return True
    if s == "f":
        return False
    raise ParseBoolError(f"invalid input value: {s}")


def from_bytea_hex(s: str) -> bytes:
    if not s.startswith("\\x"):
        raise ByteaHexParseError("missing prefix '\\x'")
    digits = s[2:]
    if len(digits) % 2:
        raise ByteaHexParseError("invalid byte")
    if any(c not in string.hexdigits for c in digits):
        raise ByteaHexParseError(f"parse int result: invalid digit in {digits!r}")
    return bytes(int(digits[i : i + 2], 16) for i in range(0, len(digits), 2))