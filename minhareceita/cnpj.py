"""Helpers to mask, unmask and validate CNPJ numbers."""

from __future__ import annotations

import re

_MASK_CHARACTERS = str.maketrans("", "", "./-")
_FOURTEEN_DIGITS = re.compile(r"[0-9]{14}")
_FIRST_WEIGHTS = (5, 4, 3, 2, 9, 8, 7, 6, 5, 4, 3, 2)
_SECOND_WEIGHTS = (6, 5, 4, 3, 2, 9, 8, 7, 6, 5, 4, 3, 2)


def unmask(number: str) -> str:
    """Remove the punctuation used in a formatted CNPJ."""
    return number.translate(_MASK_CHARACTERS)


def mask(number: str) -> str:
    """Format a CNPJ as ``00.000.000/0000-00``; other values are returned unchanged."""
    digits = unmask(number)
    if not _FOURTEEN_DIGITS.fullmatch(digits):
        return number
    return f"{digits[:2]}.{digits[2:5]}.{digits[5:8]}/{digits[8:12]}-{digits[12:]}"


def _check_digit(digits: str, weights: tuple[int, ...]) -> str:
    remainder = sum(int(d) * w for d, w in zip(digits, weights)) % 11
    return "0" if remainder < 2 else str(11 - remainder)


def is_valid(number: str) -> bool:
    """Tell whether a (masked or unmasked) CNPJ has valid check digits."""
    digits = unmask(number)
    if not _FOURTEEN_DIGITS.fullmatch(digits):
        return False
    first = _check_digit(digits[:12], _FIRST_WEIGHTS)
    second = _check_digit(digits[:12] + first, _SECOND_WEIGHTS)
    return digits[12:] == first + second


def base(number: str) -> str:
    """Return the base CNPJ, the first eight digits."""
    return unmask(number)[:8]