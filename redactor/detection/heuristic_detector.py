"""Dictionary-based heuristic detector.

Lightweight lookups over the OCR word stream for PII that has no checksum
and no label: names, free-form addresses, medical terms, e-mails and
dates of birth.  This is not language understanding, only dictionary and
shape matching, so every entity is tagged as the heuristic layer and
scored in [0.5, 0.95].

Offsets are computed against a text built here by joining the words with
single spaces, so a character position maps back to exactly one word.
"""

from __future__ import annotations

import logging
import re
from typing import Sequence

from models.schemas import BBox, DetectedEntity, DetectionLayer, PIIType, Word, new_entity_id
from redactor.detection.bbox_utils import union_bbox
from redactor.detection.block_offsets import WordSpan, word_span_text
from redactor.detection.detection_config import (
    ADDRESS_BARE_CONFIDENCE,
    ADDRESS_KEYWORD_CONFIDENCE,
    ADDRESS_MIN_BARE_WORDS,
    ADDRESS_WINDOW_WORDS,
    DOB_BARE_CONFIDENCE,
    DOB_CONTEXT_CHARS,
    DOB_CONTEXT_CONFIDENCE,
    DOB_MAX_YEAR,
    DOB_MIN_YEAR,
    EMAIL_CONFIDENCE,
    MEDICAL_PHRASE_CONFIDENCE,
    MEDICAL_SINGLE_CONFIDENCE,
    NAME_CAPITALISED_BONUS,
    NAME_MAX_CONFIDENCE,
    NAME_SEED_CONFIDENCE,
    NAME_THREE_WORD_CONFIDENCE,
    NAME_TWO_WORD_CONFIDENCE,
    PIN_CODE_MAX,
    PIN_CODE_MIN,
    STATE_CONFIDENCE,
)
from redactor.detection.dictionaries import (
    ADDRESS_KEYWORDS,
    COMMON_FIRST_NAMES,
    COMMON_LAST_NAMES,
    DOB_CONTEXT_TERMS,
    INDIAN_STATES,
    MEDICAL_PHRASES,
    MEDICAL_TERMS,
)

logger = logging.getLogger(__name__)

_NON_ALPHA_RE = re.compile(r"[^a-z]")
_NON_ALPHA_SPACE_RE = re.compile(r"[^a-z ]")
_PIN_RE = re.compile(r"\b\d{6}\b")
_EMAIL_RE = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
_DATE_RE = re.compile(r"\b(\d{1,2})[/\-.](\d{1,2})[/\-.](\d{4})\b")
_DOB_CONTEXT_RE = re.compile(
    r"\b(?:" + "|".join(re.escape(t) for t in DOB_CONTEXT_TERMS) + r")\b"
)
_EDGE_PUNCT = ".,:;!?()[]\"'"


def _letters(text: str) -> str:
    return _NON_ALPHA_RE.sub("", text.lower())


def _entity(
    pii_type: PIIType,
    words: Sequence[Word],
    confidence: float,
    page_index: int,
    value: str | None = None,
) -> DetectedEntity:
    bbox: BBox = union_bbox((w.bbox for w in words), page_index)
    return DetectedEntity(
        id=new_entity_id("nlp_"),
        type=pii_type,
        value=value if value is not None else " ".join(w.text for w in words),
        confidence=confidence,
        bbox=bbox,
        layer=DetectionLayer.HEURISTIC,
    )


def _words_in_span(spans: Sequence[WordSpan], words: Sequence[Word], start: int, end: int) -> list[Word]:
    return [words[s.word_index] for s in spans if s.start < end and s.end > start]


# ---------------------------------------------------------------------------
# Names
# ---------------------------------------------------------------------------

def detect_names(words: Sequence[Word], page_index: int = 0) -> list[DetectedEntity]:
    """First/last-name dictionary hits, greedily extended to following names."""
    entities: list[DetectedEntity] = []
    i = 0
    while i < len(words):
        token = _letters(words[i].text)
        if len(token) < 2 or not (token in COMMON_FIRST_NAMES or token in COMMON_LAST_NAMES):
            i += 1
            continue

        span = [words[i]]
        confidence = NAME_SEED_CONFIDENCE
        j = i + 1
        if j < len(words):
            nxt = _letters(words[j].text)
            if nxt in COMMON_FIRST_NAMES or nxt in COMMON_LAST_NAMES:
                span.append(words[j])
                confidence = NAME_TWO_WORD_CONFIDENCE
                j += 1
        if len(span) == 2 and j < len(words) and _letters(words[j].text) in COMMON_LAST_NAMES:
            span.append(words[j])
            confidence = NAME_THREE_WORD_CONFIDENCE
            j += 1

        if span[0].text[:1].isupper():
            confidence += NAME_CAPITALISED_BONUS

        entities.append(_entity(PIIType.NAME, span, min(confidence, NAME_MAX_CONFIDENCE), page_index))
        i = j
    return entities


# ---------------------------------------------------------------------------
# Addresses
# ---------------------------------------------------------------------------

def detect_addresses(words: Sequence[Word], page_index: int = 0) -> list[DetectedEntity]:
    """PIN-code anchored address windows plus state-name phrases."""
    entities: list[DetectedEntity] = []
    text, spans = word_span_text(words)

    for m in _PIN_RE.finditer(text):
        if not PIN_CODE_MIN <= int(m.group(0)) <= PIN_CODE_MAX:
            continue
        pin_spans = [s for s in spans if s.start < m.end() and s.end > m.start()]
        if not pin_spans:
            continue
        pin_index = pin_spans[0].word_index
        window = list(words[max(0, pin_index - ADDRESS_WINDOW_WORDS):pin_index + 1])
        has_keyword = any(_letters(w.text) in ADDRESS_KEYWORDS for w in window)
        if has_keyword:
            confidence = ADDRESS_KEYWORD_CONFIDENCE
        elif len(window) >= ADDRESS_MIN_BARE_WORDS:
            confidence = ADDRESS_BARE_CONFIDENCE
        else:
            continue
        entities.append(_entity(PIIType.ADDRESS, window, confidence, page_index))

    normalised = [_NON_ALPHA_SPACE_RE.sub("", w.text.lower()) for w in words]
    for state in INDIAN_STATES:
        n = len(state.split(" "))
        for i in range(len(words) - n + 1):
            if " ".join(normalised[i:i + n]) == state:
                entities.append(_entity(PIIType.ADDRESS, words[i:i + n], STATE_CONFIDENCE, page_index))
    return entities


# ---------------------------------------------------------------------------
# Medical, e-mail, date of birth
# ---------------------------------------------------------------------------

def detect_medical_terms(words: Sequence[Word], page_index: int = 0) -> list[DetectedEntity]:
    """Two-word medical phrases first, then single medical terms."""
    entities: list[DetectedEntity] = []
    i = 0
    while i < len(words):
        if i + 1 < len(words):
            pair = f"{words[i].text} {words[i + 1].text}".lower().strip(_EDGE_PUNCT)
            if pair in MEDICAL_PHRASES:
                entities.append(_entity(PIIType.MEDICAL, words[i:i + 2], MEDICAL_PHRASE_CONFIDENCE, page_index))
                i += 2
                continue
        if words[i].text.lower().strip(_EDGE_PUNCT) in MEDICAL_TERMS:
            entities.append(_entity(PIIType.MEDICAL, words[i:i + 1], MEDICAL_SINGLE_CONFIDENCE, page_index))
        i += 1
    return entities


def detect_emails(words: Sequence[Word], page_index: int = 0) -> list[DetectedEntity]:
    return [
        _entity(PIIType.EMAIL, [w], EMAIL_CONFIDENCE, page_index)
        for w in words
        if _EMAIL_RE.match(w.text)
    ]


def _plausible_birth_date(day: int, month: int, year: int) -> bool:
    return 1 <= day <= 31 and 1 <= month <= 12 and DOB_MIN_YEAR <= year <= DOB_MAX_YEAR


def detect_dates_of_birth(words: Sequence[Word], page_index: int = 0) -> list[DetectedEntity]:
    """Dates with a plausible birth year; boosted when DOB context precedes them."""
    entities: list[DetectedEntity] = []
    text, spans = word_span_text(words)
    for m in _DATE_RE.finditer(text):
        day, month, year = (int(g) for g in m.groups())
        if not _plausible_birth_date(day, month, year):
            continue
        hits = _words_in_span(spans, words, m.start(), m.end())
        if not hits:
            continue
        context = text[max(0, m.start() - DOB_CONTEXT_CHARS):m.start()].lower()
        confidence = DOB_CONTEXT_CONFIDENCE if _DOB_CONTEXT_RE.search(context) else DOB_BARE_CONFIDENCE
        entities.append(_entity(PIIType.DOB, hits, confidence, page_index, value=m.group(0)))
    return entities


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def detect_heuristic(words: Sequence[Word], page_index: int = 0) -> list[DetectedEntity]:
    """Run every dictionary detector over *words*."""
    if not words:
        return []
    entities = (
        detect_names(words, page_index)
        + detect_addresses(words, page_index)
        + detect_medical_terms(words, page_index)
        + detect_emails(words, page_index)
        + detect_dates_of_birth(words, page_index)
    )
    logger.debug("Page %d: heuristic detector found %d entities", page_index, len(entities))
    return entities
