"""Postgres NUMERIC values, including NaN and the infinities."""

from __future__ import annotations

import re
import struct
from decimal import Decimal

_NUMBER = re.compile(r"[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")


class PgNumeric:
    """A NUMERIC value backed by a Decimal; NaN and infinities are allowed."""

    __slots__ = ("value",)

    def __init__(self, value: Decimal | int | str = 0):
        self.value = Decimal(value)

    @classmethod
    def from_str(cls, s: str) -> PgNumeric:
        if _NUMBER.fullmatch(s):
            return cls(Decimal(s))
        lowered = s.lower()
        if lowered == "infinity":
            return cls(Decimal("Infinity"))
        if lowered == "-infinity":
            return cls(Decimal("-Infinity"))
        if lowered == "nan":
            return cls(Decimal("NaN"))
        raise ValueError(f"invalid numeric: {s!r}")

    @classmethod
    def from_sql(cls, raw: bytes) -> PgNumeric:
        """Decode the binary wire format of a NUMERIC."""
        try:
            n_digits, weight, sign, scale = struct.unpack_from(">HhHH", raw, 0)
            if sign == 0xC000:
                return cls(Decimal("NaN"))
            if sign == 0xD000:
                return cls(Decimal("Infinity"))
            if sign == 0xF000:
                return cls(Decimal("-Infinity"))
            if sign not in (0x0000, 0x4000):
                raise ValueError(f"invalid sign {sign:#04x}")
            digits = struct.unpack_from(f">{n_digits}H", raw, 8)
        except struct.error as e:
            raise ValueError(f"truncated numeric: {e}") from e

        unscaled = 0
        for d in digits:
            unscaled = unscaled * 10_000 + d
        exponent = 4 * (weight - n_digits + 1)
        if exponent >= -scale:
            unscaled *= 10 ** (exponent + scale)
        else:
            unscaled //= 10 ** (-scale - exponent)
        sign_bit = 1 if sign == 0x4000 else 0
        return cls(Decimal((sign_bit, tuple(int(c) for c in str(unscaled)), -scale)))

    @classmethod
    def default(cls) -> PgNumeric:
        return cls(0)

    def __str__(self) -> str:
        if self.value.is_nan():
            return "NaN"
        if self.value.is_infinite():
            return "-Infinity" if self.value < 0 else "Infinity"
        return format(self.value, "f")

    def __repr__(self) -> str:
        return f"PgNumeric({str(self)!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PgNumeric):
            return NotImplemented
        if self.value.is_nan() or other.value.is_nan():
            return self.value.is_nan() and other.value.is_nan()
        return self.value == other.value

    def __hash__(self) -> int:
        return hash("nan") if self.value.is_nan() else hash(self.value)