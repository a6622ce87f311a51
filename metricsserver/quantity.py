"""Resource quantities such as ``10m`` CPU or ``5Mi`` of memory."""

from __future__ import annotations

import math
import re
from enum import Enum
from fractions import Fraction
from typing import Union


class QuantityFormat(Enum):
    DECIMAL_SI = "DecimalSI"
    BINARY_SI = "BinarySI"
    DECIMAL_EXPONENT = "DecimalExponent"


_BINARY_SUFFIXES = {"Ki": 10, "Mi": 20, "Gi": 30, "Ti": 40, "Pi": 50, "Ei": 60}
_DECIMAL_SUFFIXES = {
    "n": -9, "u": -6, "m": -3, "": 0, "k": 3, "M": 6, "G": 9, "T": 12, "P": 15, "E": 18,
}
_DECIMAL_BY_EXPONENT = {exp: suffix for suffix, exp in _DECIMAL_SUFFIXES.items()}
_BINARY_BY_EXPONENT = {exp: suffix for suffix, exp in _BINARY_SUFFIXES.items()}

_NUMBER_RE = re.compile(r"([+-]?)([0-9]*)(?:\.([0-9]*))?(.*)", re.S)
_EXPONENT_RE = re.compile(r"[eE]([+-]?[0-9]+)")
_NANO = 10**9


def _round_to_nano(value: Fraction) -> Fraction:
    """Round away from zero to a whole number of nano units."""
    scaled = value * _NANO
    if scaled.denominator == 1:
        return value
    magnitude = math.ceil(abs(scaled))
    return Fraction(magnitude if scaled > 0 else -magnitude, _NANO)


class Quantity:
    """An exact amount together with the notation it is written in."""

    __slots__ = ("value", "format")

    def __init__(self, value: Union[int, Fraction] = 0,
                 format: QuantityFormat = QuantityFormat.DECIMAL_SI):
        self.value = _round_to_nano(Fraction(value))
        self.format = format

    @classmethod
    def parse(cls, text: str) -> "Quantity":
        """Parse a quantity string; raise ValueError if it is malformed."""
        match = _NUMBER_RE.fullmatch(text.strip()) if isinstance(text, str) else None
        if match is None:
            raise ValueError(f"quantity must be a string, got {text!r}")
        sign, whole, fraction, suffix = match.groups()
        if not whole and not fraction:
            raise ValueError(f"quantities must match the regular expression: {text!r}")
        number = Fraction(int(whole or "0"))
        if fraction:
            number += Fraction(int(fraction), 10 ** len(fraction))
        if sign == "-":
            number = -number

        if suffix in _BINARY_SUFFIXES:
            value = number * 2 ** _BINARY_SUFFIXES[suffix]
            fmt = QuantityFormat.BINARY_SI
        elif suffix in _DECIMAL_SUFFIXES:
            value = number * Fraction(10) ** _DECIMAL_SUFFIXES[suffix]
            fmt = QuantityFormat.DECIMAL_SI
        else:
            exponent = _EXPONENT_RE.fullmatch(suffix)
            if exponent is None:
                raise ValueError(f"unable to parse quantity's suffix: {text!r}")
            value = number * Fraction(10) ** int(exponent.group(1))
            fmt = QuantityFormat.DECIMAL_EXPONENT
        return cls(value, fmt)

    def __add__(self, other: "Quantity") -> "Quantity":
        if isinstance(other, int) and not isinstance(other, bool):
            other = Quantity(other)
        if not isinstance(other, Quantity):
            return NotImplemented
        fmt = other.format if self.value == 0 else self.format
        return Quantity(self.value + other.value, fmt)

    def __radd__(self, other: object) -> "Quantity":
        if isinstance(other, int) and not isinstance(other, bool):
            return Quantity(other) + self
        return NotImplemented

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Quantity):
            return self.value == other.value
        return NotImplemented

    def __lt__(self, other: "Quantity") -> bool:
        if isinstance(other, Quantity):
            return self.value < other.value
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.value)

    def __repr__(self) -> str:
        return f"Quantity({str(self)!r})"

    def __str__(self) -> str:
        if (
            self.format is QuantityFormat.BINARY_SI
            and self.value.denominator == 1
            and abs(self.value) >= 1024
        ):
            return self._binary()
        return self._decimal()

    def _binary(self) -> str:
        mantissa = int(self.value)
        exponent = 0
        while exponent < 60 and mantissa % 1024 == 0:
            mantissa //= 1024
            exponent += 10
        return f"{mantissa}{_BINARY_BY_EXPONENT.get(exponent, '')}"

    def _decimal(self) -> str:
        mantissa = int(self.value * _NANO)
        if mantissa == 0:
            return "0"
        exponent = -9
        while exponent < 18 and mantissa % 1000 == 0:
            mantissa //= 1000
            exponent += 3
        if self.format is QuantityFormat.DECIMAL_EXPONENT:
            return f"{mantissa}e{exponent}" if exponent else str(mantissa)
        return f"{mantissa}{_DECIMAL_BY_EXPONENT[exponent]}"