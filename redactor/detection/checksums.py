"""Check-digit validators for structured identifiers.

All functions are pure and accept the raw matched text; separators (spaces,
hyphens) are ignored.
"""

from __future__ import annotations

import re

# Verhoeff: dihedral group D5 multiplication table
_VERHOEFF_D: tuple[tuple[int, ...], ...] = (
    (0, 1, 2, 3, 4, 5, 6, 7, 8, 9),
    (1, 2, 3, 4, 0, 6, 7, 8, 9, 5),
    (2, 3, 4, 0, 1, 7, 8, 9, 5, 6),
    (3, 4, 0, 1, 2, 8, 9, 5, 6, 7),
    (4, 0, 1, 2, 3, 9, 5, 6, 7, 8),
    (5, 9, 8, 7, 6, 0, 4, 3, 2, 1),
    (6, 5, 9, 8, 7, 1, 0, 4, 3, 2),
    (7, 6, 5, 9, 8, 2, 1, 0, 4, 3),
    (8, 7, 6, 5, 9, 3, 2, 1, 0, 4),
    (9, 8, 7, 6, 5, 4, 3, 2, 1, 0),
)

# Verhoeff: permutation table, row selected by position mod 8
_VERHOEFF_P: tuple[tuple[int, ...], ...] = (
    (0, 1, 2, 3, 4, 5, 6, 7, 8, 9),
    (1, 5, 7, 6, 2, 8, 3, 0, 9, 4),
    (5, 8, 0, 3, 7, 9, 6, 1, 4, 2),
    (8, 9, 1, 6, 0, 4, 3, 5, 2, 7),
    (9, 4, 5, 3, 1, 2, 6, 8, 7, 0),
    (4, 2, 8, 6, 5, 7, 3, 9, 0, 1),
    (2, 7, 9, 3, 8, 0, 6, 4, 1, 5),
    (7, 0, 4, 6, 9, 1, 3, 2, 5, 8),
)

_VERHOEFF_INV: tuple[int, ...] = (0, 4, 3, 2, 1, 5, 6, 7, 8, 9)

_PAN_RE = re.compile(r"^[A-Z]{5}[0-9]{4}[A-Z]$")

PAN_HOLDER_TYPES = frozenset("ABCFGHLJPT")
"""Allowed 4th characters: individual, company, firm, trust, government, ..."""

AADHAAR_DIGITS = 12


def _digits(text: str) -> str:
    return "".join(ch for ch in text if ch.isdigit())


def _verhoeff_residue(digits: str, offset: int = 0) -> int:
    c = 0
    for i, ch in enumerate(reversed(digits)):
        c = _VERHOEFF_D[c][_VERHOEFF_P[(i + offset) % 8][int(ch)]]
    return c


def verhoeff_check_digit(number: str) -> str:
    """Return the Verhoeff check digit to append to *number*."""
    digits = _digits(number)
    return str(_VERHOEFF_INV[_verhoeff_residue(digits, offset=1)])


def verhoeff_validate(number: str) -> bool:
    """Validate a 12-digit national ID number with the Verhoeff algorithm."""
    digits = _digits(number)
    if len(digits) != AADHAAR_DIGITS:
        return False
    return _verhoeff_residue(digits) == 0


def luhn_validate(number: str) -> bool:
    """Luhn algorithm — validates 13 to 19 digit payment card numbers."""
    digits = [int(d) for d in _digits(number)]
    if not 13 <= len(digits) <= 19:
        return False
    checksum = 0
    for i, d in enumerate(reversed(digits)):
        if i % 2 == 1:
            d *= 2
            if d > 9:
                d -= 9
        checksum += d
    return checksum % 10 == 0


def pan_validate(pan: str) -> bool:
    """Structural PAN check: AAAAA9999A with an allowed holder-type letter."""
    candidate = pan.strip()
    if not _PAN_RE.match(candidate):
        return False
    return candidate[3] in PAN_HOLDER_TYPES
