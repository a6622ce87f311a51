"""Parsing and formatting of duration strings such as ``10s`` or ``1h30m``.

Durations are carried as whole nanoseconds.
"""

from __future__ import annotations

import re
from fractions import Fraction

NANOSECOND = 1
MICROSECOND = 1000 * NANOSECOND
MILLISECOND = 1000 * MICROSECOND
SECOND = 1000 * MILLISECOND
MINUTE = 60 * SECOND
HOUR = 60 * MINUTE

_UNITS = {
    "ns": NANOSECOND,
    "us": MICROSECOND,
    "\u00b5s": MICROSECOND,
    "\u03bcs": MICROSECOND,
    "ms": MILLISECOND,
    "s": SECOND,
    "m": MINUTE,
    "h": HOUR,
}

_NUMBER_RE = re.compile(r"([0-9]*)(?:\.([0-9]*))?")
_UNIT_RE = re.compile(r"[^0-9.]*")
_INT64_MAX = 2**63 - 1


def parse_duration(text: str) -> int:
    """Parse a duration string into nanoseconds; raise ValueError if invalid."""
    rest = text
    negative = False
    if rest and rest[0] in "+-":
        negative = rest[0] == "-"
        rest = rest[1:]
    if rest == "0":
        return 0
    if not rest:
        raise ValueError(f'time: invalid duration "{text}"')

    total = 0
    while rest:
        number = _NUMBER_RE.match(rest)
        whole, fraction = number.group(1), number.group(2)
        if not whole and not fraction:
            raise ValueError(f'time: invalid duration "{text}"')
        rest = rest[number.end():]
        unit = _UNIT_RE.match(rest).group(0)
        if not unit:
            raise ValueError(f'time: missing unit in duration "{text}"')
        if unit not in _UNITS:
            raise ValueError(f'time: unknown unit "{unit}" in duration "{text}"')
        rest = rest[len(unit):]
        value = Fraction(int(whole or "0"))
        if fraction:
            value += Fraction(int(fraction), 10 ** len(fraction))
        total += int(value * _UNITS[unit])
        if total > _INT64_MAX + (1 if negative else 0):
            raise ValueError(f'time: invalid duration "{text}"')
    return -total if negative else total


def _with_fraction(value: int, precision: int) -> str:
    scale = 10**precision
    whole, frac = divmod(value, scale)
    if frac == 0:
        return str(whole)
    return f"{whole}." + f"{frac:0{precision}d}".rstrip("0")


def format_duration(nanoseconds: int) -> str:
    """Render nanoseconds in the compact form, e.g. ``1h2m3.5s`` or ``1µs``."""
    if nanoseconds == 0:
        return "0s"
    sign = "-" if nanoseconds < 0 else ""
    value = abs(nanoseconds)
    if value < MICROSECOND:
        return f"{sign}{value}ns"
    if value < MILLISECOND:
        return f"{sign}{_with_fraction(value, 3)}\u00b5s"
    if value < SECOND:
        return f"{sign}{_with_fraction(value, 6)}ms"

    seconds_total, frac = divmod(value, SECOND)
    text = _with_fraction(seconds_total % 60 * SECOND + frac, 9) + "s"
    minutes_total = seconds_total // 60
    if minutes_total:
        text = f"{minutes_total % 60}m" + text
        hours = minutes_total // 60
        if hours:
            text = f"{hours}h" + text
    return sign + text