"""Key-value extraction from form-like layouts.

Scanned IDs, invoices and statements label their sensitive fields
(``Name:``, ``A/C No.``, ``Date of Birth``).  A recognised label on a line
says what the words to its right are, which is a stronger signal than any
pattern on the value itself, so these pairs become the spatial layer.

The page is first grouped into lines and then into blocks; labels are
searched block by block, line by line, so a value never runs across lines.

Algorithm per line, left to right:
  - try the longest label first (up to ``MAX_KEY_WORDS`` words);
  - consume value words until another label, standalone punctuation, a
    column-sized horizontal gap, or ``MAX_VALUE_WORDS`` words;
  - continue scanning after the last consumed word.
"""

from __future__ import annotations

import logging
import re
from typing import NamedTuple, Sequence

from models.schemas import (
    DetectedEntity,
    DetectionLayer,
    KeyValuePair,
    PIIType,
    TextBlock,
    TextLine,
    Word,
    new_entity_id,
)
from redactor.detection.bbox_utils import union_bbox
from redactor.detection.detection_config import MAX_KEY_WORDS, MAX_VALUE_WORDS, VALUE_GAP_RATIO
from redactor.detection.layout import group_lines_into_blocks, group_words_into_lines

logger = logging.getLogger(__name__)


class KeyPattern(NamedTuple):
    pattern: re.Pattern[str]
    pii_type: PIIType
    confidence: float


def _key(labels: str, pii_type: PIIType, confidence: float) -> KeyPattern:
    return KeyPattern(
        re.compile(rf"^(?:{labels})\s*:?$", re.IGNORECASE),
        pii_type,
        confidence,
    )


# Ordered: the first pattern that matches a candidate label wins.
KEY_PATTERNS: tuple[KeyPattern, ...] = (
    _key(r"name|patient name|customer name|account holder|holder name|full name"
         r"|card ?holder|person name", PIIType.NAME, 0.99),
    _key(r"father'?s? name|spouse name|mother'?s? name", PIIType.NAME, 0.95),
    _key(r"address|residence|location|billing address|shipping address"
         r"|permanent address|correspondence address", PIIType.ADDRESS, 0.98),
    _key(r"phone|mobile|tel|telephone|contact|ph\.|mob\.|contact no\.?"
         r"|phone no\.?|mobile no\.?", PIIType.PHONE, 0.97),
    _key(r"e-?mail|email id|email address", PIIType.EMAIL, 0.98),
    _key(r"aadhaa?r|uid|aadhaa?r no\.?|aadhaa?r number|enrol?lment no\.?",
         PIIType.AADHAAR, 0.99),
    _key(r"pan|pan no\.?|pan number|permanent account number", PIIType.PAN, 0.99),
    _key(r"account no\.?|account number|a/c no\.?|acc no\.?|acct no\.?",
         PIIType.ACCOUNT_NUMBER, 0.99),
    _key(r"ifsc|ifsc code|branch code|micr|micr code", PIIType.IFSC, 0.95),
    _key(r"dob|date of birth|birth date|d\.o\.b\.?", PIIType.DOB, 0.97),
    _key(r"diagnosis|condition|disease|medication|prescription|blood group"
         r"|blood type", PIIType.MEDICAL, 0.90),
    _key(r"invoice no\.?|bill no\.?|invoice number|bill number", PIIType.INVOICE_NO, 0.85),
    _key(r"gst no\.?|gstin|gst number|tax id", PIIType.GST, 0.85),
)

_PUNCTUATION_RE = re.compile(r"^[.,:;!?]+$")


def _match_key(words: Sequence[Word], i: int) -> tuple[int, KeyPattern] | None:
    """Return ``(word_count, pattern)`` for the longest label starting at *i*."""
    for n in range(min(MAX_KEY_WORDS, len(words) - i), 0, -1):
        candidate = " ".join(w.text for w in words[i:i + n])
        for kp in KEY_PATTERNS:
            if kp.pattern.match(candidate):
                return n, kp
    return None


def _consume_value(words: Sequence[Word], start: int) -> tuple[list[Word], int]:
    """Collect value words from *start*; return them and the next scan index."""
    value: list[Word] = []
    j = start
    while j < len(words) and len(value) < MAX_VALUE_WORDS:
        word = words[j]
        if _match_key(words, j) is not None:
            break
        if _PUNCTUATION_RE.match(word.text):
            j += 1
            if value:
                break
            continue
        if value:
            prev = value[-1]
            if word.bbox.x - prev.bbox.x1 > VALUE_GAP_RATIO * prev.bbox.w:
                break
        value.append(word)
        j += 1
    return value, j


def extract_key_value_pairs(
    lines: Sequence[TextLine],
    page_index: int | None = None,
) -> list[KeyValuePair]:
    """Find labelled values on each line."""
    pairs: list[KeyValuePair] = []
    for line in lines:
        words = line.words
        i = 0
        while i < len(words):
            hit = _match_key(words, i)
            if hit is None:
                i += 1
                continue
            n, kp = hit
            key_words = list(words[i:i + n])
            value_words, i = _consume_value(words, i + n)
            if not value_words:
                continue
            pairs.append(KeyValuePair(
                key_words=key_words,
                value_words=value_words,
                key=" ".join(w.text for w in key_words),
                value=" ".join(w.text for w in value_words),
                pii_type=kp.pii_type,
                confidence=kp.confidence,
                bbox=union_bbox((w.bbox for w in key_words + value_words), page_index),
            ))
    return pairs


def key_value_entities(pairs: Sequence[KeyValuePair]) -> list[DetectedEntity]:
    """Convert key-value pairs 1:1 into spatial-layer entities."""
    return [
        DetectedEntity(
            id=new_entity_id("kv_"),
            type=p.pii_type,
            value=p.value,
            confidence=p.confidence,
            bbox=p.bbox,
            layer=DetectionLayer.SPATIAL,
        )
        for p in pairs
    ]


class SpatialLayout(NamedTuple):
    lines: list[TextLine]
    blocks: list[TextBlock]
    entities: list[DetectedEntity]


def map_spatial_layout(words: Sequence[Word], page_index: int = 0) -> SpatialLayout:
    """Lines, then blocks, then labelled values for one page."""
    if not words:
        return SpatialLayout([], [], [])
    lines = group_words_into_lines(words)
    blocks = group_lines_into_blocks(lines)
    pairs = extract_key_value_pairs(
        [line for block in blocks for line in block.lines], page_index,
    )
    logger.debug(
        "Page %d: %d lines in %d blocks, %d key-value pairs",
        page_index, len(lines), len(blocks), len(pairs),
    )
    return SpatialLayout(lines, blocks, key_value_entities(pairs))


def detect_key_values(words: Sequence[Word], page_index: int = 0) -> list[DetectedEntity]:
    """One spatial-layer entity per labelled value on the page."""
    return map_spatial_layout(words, page_index).entities
