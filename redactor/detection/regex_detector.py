"""Regex-based PII detector — the pattern + checksum layer.

Fast, high-precision detection of structured identifiers: 12-digit
national ID numbers, PAN tax IDs, payment card numbers and mobile numbers.

Design philosophy:
  - A checksum pass is as close to certainty as OCR output allows, so it
    scores 1.0 and is tagged as the deterministic layer.
  - A shape match that fails its checksum is usually an OCR misread of a
    real identifier.  It is still reported, at reduced confidence and on
    the heuristic layer so fusion keeps the reduced score.  Card numbers
    failing Luhn sit right at the emission floor (0.5).
  - Matches are located by character range and only then mapped to OCR
    words, so the full text may differ from the joined word stream.
"""

from __future__ import annotations

import logging
from typing import Callable, NamedTuple, Sequence

from models.schemas import DetectedEntity, DetectionLayer, PIIType, Word, new_entity_id
from redactor.detection.block_offsets import WordOffsets
from redactor.detection.checksums import luhn_validate, pan_validate, verhoeff_validate
from redactor.detection.detection_config import (
    AADHAAR_SHAPE_ONLY_CONFIDENCE,
    CARD_SHAPE_ONLY_CONFIDENCE,
    CHECKSUM_VALID_CONFIDENCE,
    MIN_SHAPE_ONLY_CONFIDENCE,
    PAN_SHAPE_ONLY_CONFIDENCE,
    PHONE_CONFIDENCE,
)
from redactor.detection.regex_patterns import PATTERNS

logger = logging.getLogger(__name__)


class RegexMatch(NamedTuple):
    start: int
    end: int
    text: str
    pii_type: PIIType
    confidence: float
    layer: DetectionLayer


# ═══════════════════════════════════════════════════════════════════════════
# Validation
# ═══════════════════════════════════════════════════════════════════════════

_VALIDATORS: dict[str, Callable[[str], bool]] = {
    "verhoeff": verhoeff_validate,
    "luhn": luhn_validate,
    "pan": pan_validate,
}

_SHAPE_ONLY_CONFIDENCE: dict[PIIType, float] = {
    PIIType.AADHAAR: AADHAAR_SHAPE_ONLY_CONFIDENCE,
    PIIType.PAN: PAN_SHAPE_ONLY_CONFIDENCE,
    PIIType.CREDIT_CARD: CARD_SHAPE_ONLY_CONFIDENCE,
}


def _digit_count(text: str) -> int:
    return sum(ch.isdigit() for ch in text)


def _plausible_shape(pii_type: PIIType, text: str, full_match: str) -> bool:
    """Cheap structural gates applied before any checksum."""
    if pii_type == PIIType.AADHAAR:
        return text[0] not in "01"
    if pii_type == PIIType.CREDIT_CARD:
        return 13 <= _digit_count(text) <= 19
    if pii_type == PIIType.PHONE:
        return 10 <= _digit_count(full_match) <= 12
    return True


def _score(pii_type: PIIType, validator: str, text: str) -> tuple[float, DetectionLayer] | None:
    """Confidence and layer for a shape-matched candidate, or None to drop it."""
    check = _VALIDATORS.get(validator)
    if check is None:
        return PHONE_CONFIDENCE, DetectionLayer.ENHANCED_REGEX
    if check(text):
        return CHECKSUM_VALID_CONFIDENCE, DetectionLayer.REGEX
    conf = _SHAPE_ONLY_CONFIDENCE.get(pii_type, 0.0)
    if conf < MIN_SHAPE_ONLY_CONFIDENCE:
        return None
    return conf, DetectionLayer.HEURISTIC


# ═══════════════════════════════════════════════════════════════════════════
# Public API
# ═══════════════════════════════════════════════════════════════════════════

def find_pattern_matches(text: str, strict: bool = False) -> list[RegexMatch]:
    """Scan *text* for every structured identifier class.

    Returns matches sorted by start offset.  *strict* selects the stricter
    pattern variants (consistent separators, no line-spanning groups).
    """
    if not text:
        return []

    matches: list[RegexMatch] = []
    for spec in PATTERNS:
        pattern = spec.strict_pattern if strict else spec.pattern
        for m in pattern.finditer(text):
            value = m.group("value")
            if not _plausible_shape(spec.pii_type, value, m.group(0)):
                continue
            scored = _score(spec.pii_type, spec.validator, value)
            if scored is None:
                logger.debug("Dropped %s candidate at %d (checksum)", spec.name, m.start("value"))
                continue
            conf, layer = scored
            matches.append(RegexMatch(
                start=m.start("value"),
                end=m.end("value"),
                text=value,
                pii_type=spec.pii_type,
                confidence=conf,
                layer=layer,
            ))

    matches.sort(key=lambda r: (r.start, r.end))
    return matches


def detect_patterns(
    full_text: str,
    words: Sequence[Word],
    page_index: int = 0,
    strict: bool = False,
    offsets: WordOffsets | None = None,
) -> list[DetectedEntity]:
    """Run the pattern + checksum detector and anchor each match to a box.

    *offsets* may be passed in when the caller already mapped the words
    onto *full_text*.
    """
    matches = find_pattern_matches(full_text, strict=strict)
    if not matches:
        return []

    if offsets is None:
        offsets = WordOffsets(full_text, words)

    entities: list[DetectedEntity] = []
    for m in matches:
        entities.append(DetectedEntity(
            id=new_entity_id("l1_"),
            type=m.pii_type,
            value=m.text,
            confidence=m.confidence,
            bbox=offsets.range_to_bbox(m.start, m.end, page_index),
            layer=m.layer,
        ))

    logger.debug(
        "Page %d: pattern detector found %d entities (strict=%s)",
        page_index, len(entities), strict,
    )
    return entities
