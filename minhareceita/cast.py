"""Conversion of the raw CSV strings into Python values.

Missing values become ``None`` so they can be told apart from empty values
(``0``, ``False`` and so on) once serialised to JSON.
"""

from __future__ import annotations

import datetime
import math
import re
import struct

DATE_INPUT_FORMAT = "%Y%m%d"
DATE_OUTPUT_FORMAT = "%Y-%m-%d"

_INTEGER = re.compile(r"[+-]?[0-9]+")
_INPUT_DATE = re.compile(r"([0-9]{4})([0-9]{2})([0-9]{2})")
_OUTPUT_DATE = re.compile(r"([0-9]{4})-([0-9]{2})-([0-9]{2})")

# A known malformed date in the Federal Revenue data, treated as missing.
_KNOWN_BAD_DATE = "2021221"


def to_int(value: str) -> int | None:
    """Convert a decimal string to an int; an empty string is a missing value."""
    if value == "":
        return None
    if not _INTEGER.fullmatch(value):
        raise ValueError(f"error converting {value} to int")
    return int(value)


def _float32(number: float) -> float:
    return struct.unpack("f", struct.pack("f", number))[0]


def to_float(value: str) -> float | None:
    """Convert a string using comma or dot as decimal separator to a float.

    The value has 32-bit precision and is given as the shortest decimal that
    rounds to that same 32-bit float.
    """
    if value == "":
        return None
    text = value.replace(",", ".")
    if text != text.strip() or "_" in text:
        raise ValueError(f"error converting {value} to float32")
    try:
        number = float(text)
    except ValueError as exc:
        raise ValueError(f"error converting {value} to float32: {exc}") from exc
    if not math.isfinite(number):
        return number
    try:
        single = _float32(number)
    except OverflowError as exc:
        raise ValueError(f"error converting {value} to float32: value out of range") from exc
    for digits in range(1, 10):
        candidate = float(f"{single:.{digits}g}")
        try:
            if _float32(candidate) == single:
                return candidate
        except OverflowError:
            continue
    return single


def to_bool(value: str) -> bool | None:
    """Map ``S``/``N`` (any case) to True/False; anything else is missing."""
    return {"S": True, "N": False}.get(value.upper())


def _build_date(match: re.Match[str] | None, value: str) -> datetime.date:
    if match is None:
        raise ValueError(f"error converting {value} to date")
    year, month, day = (int(part) for part in match.groups())
    try:
        return datetime.date(year, month, day)
    except ValueError as exc:
        raise ValueError(f"error converting {value} to date: {exc}") from exc


def to_date(value: str) -> datetime.date | None:
    """Convert a ``YYYYMMDD`` string to a date; empty or all-zero values are missing."""
    if value == _KNOWN_BAD_DATE or value == "":
        return None
    if _INTEGER.fullmatch(value) and int(value) == 0:
        return None
    return _build_date(_INPUT_DATE.fullmatch(value), value)


def format_date(value: datetime.date) -> str:
    """Format a date as ``YYYY-MM-DD``."""
    return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"


def parse_date(value: str | None) -> datetime.date | None:
    """Parse a ``YYYY-MM-DD`` string; empty or ``None`` is a missing value."""
    if value is None or value == "":
        return None
    return _build_date(_OUTPUT_DATE.fullmatch(value), value)