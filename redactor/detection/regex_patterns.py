"""Declarative regex pattern definitions for structured PII.

This module contains pattern data only.  Validation and confidence policy
live in ``regex_detector.py``; check-digit algorithms in ``checksums.py``.

Every pattern exposes the identifier in the named group ``value`` so a
country prefix or surrounding context can be matched without becoming part
of the reported span.
"""

from __future__ import annotations

import re
from typing import NamedTuple

from models.schemas import PIIType


class PatternSpec(NamedTuple):
    name: str
    pii_type: PIIType
    pattern: re.Pattern[str]
    strict_pattern: re.Pattern[str]
    validator: str            # key into regex_detector._VALIDATORS


# Digit groups must not be glued to a longer digit run ("1234 5678 9012"
# inside a 16-digit card number is not a national ID).
_NO_DIGIT_BEFORE = r"(?<!\d)(?<!\d[ \-])"
_NO_DIGIT_AFTER = r"(?![ \-]?\d)"


# ═══════════════════════════════════════════════════════════════════════════
# National ID: 12 digits, 4-4-4, first digit 2-9
# ═══════════════════════════════════════════════════════════════════════════

_AADHAAR = re.compile(
    _NO_DIGIT_BEFORE
    + r"\b(?P<value>\d{4}[\s\-]?\d{4}[\s\-]?\d{4})\b"
    + _NO_DIGIT_AFTER
)
# Strict: one separator used consistently, never a line break.
_AADHAAR_STRICT = re.compile(
    _NO_DIGIT_BEFORE
    + r"\b(?P<value>\d{4}(?P<sep>[ \-]?)\d{4}(?P=sep)\d{4})\b"
    + _NO_DIGIT_AFTER
)


# ═══════════════════════════════════════════════════════════════════════════
# Tax ID: AAAAA9999A
# ═══════════════════════════════════════════════════════════════════════════

_PAN = re.compile(r"\b(?P<value>[A-Z]{5}[0-9]{4}[A-Z])\b")
_PAN_STRICT = re.compile(r"(?<![\w\-/])(?P<value>[A-Z]{5}[0-9]{4}[A-Z])(?![\w\-/])")


# ═══════════════════════════════════════════════════════════════════════════
# Payment card: 13 to 19 digits, grouped 4-4-4-(1..7)
# ═══════════════════════════════════════════════════════════════════════════

_CARD = re.compile(
    r"(?<!\d)\b(?P<value>\d{4}[\s\-]?\d{4}[\s\-]?\d{4}[\s\-]?\d{1,7})\b(?![ \-]?\d)"
)
_CARD_STRICT = re.compile(
    r"(?<!\d)\b(?P<value>\d{4}(?P<sep>[ \-]?)\d{4}(?P=sep)\d{4}(?P=sep)\d{1,7})\b(?![ \-]?\d)"
)


# ═══════════════════════════════════════════════════════════════════════════
# Mobile: 10 digits starting 6-9, optional +91 / 0 prefix
# ═══════════════════════════════════════════════════════════════════════════

_PHONE = re.compile(
    r"(?<![\d+])(?:\+91[\s\-]?|0)?(?P<value>[6-9]\d{4}[\s\-]?\d{5})\b(?![ \-]?\d)"
)
_PHONE_STRICT = re.compile(
    r"(?<![\w+])(?:\+91[ \-]?|0)?(?P<value>[6-9]\d{4}[ \-]?\d{5})\b(?![ \-]?\d)"
)


PATTERNS: tuple[PatternSpec, ...] = (
    PatternSpec("aadhaar", PIIType.AADHAAR, _AADHAAR, _AADHAAR_STRICT, "verhoeff"),
    PatternSpec("pan", PIIType.PAN, _PAN, _PAN_STRICT, "pan"),
    PatternSpec("card", PIIType.CREDIT_CARD, _CARD, _CARD_STRICT, "luhn"),
    PatternSpec("phone", PIIType.PHONE, _PHONE, _PHONE_STRICT, "none"),
)
