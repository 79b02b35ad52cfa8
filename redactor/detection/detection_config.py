"""Detection pipeline configuration constants.

This module centralizes the magic numbers and thresholds used across the
detectors and the fusion engine.  Each constant is documented with its
purpose and the effect of changing it.

Tuning Guide:
- Widening a layer's confidence band lets that layer compete harder in NMS
- Raising the spatial tolerances groups more aggressively (fewer, larger lines)
- The layer bands are the trust contract between detectors; change with care
"""

from __future__ import annotations

from models.schemas import DetectionLayer

# =============================================================================
# PATTERN DETECTOR CONFIDENCES (regex_detector.py)
# =============================================================================

CHECKSUM_VALID_CONFIDENCE: float = 1.0
"""A Verhoeff / Luhn / PAN-structure pass is treated as certain."""

AADHAAR_SHAPE_ONLY_CONFIDENCE: float = 0.6
"""12-digit grouping that fails Verhoeff.  Often an OCR misread of a real ID,
so it is reported rather than dropped."""

PAN_SHAPE_ONLY_CONFIDENCE: float = 0.7
"""PAN-shaped string whose holder-type letter is not an allowed code."""

CARD_SHAPE_ONLY_CONFIDENCE: float = 0.5
"""Card-shaped run failing Luhn.  Sits exactly on MIN_SHAPE_ONLY_CONFIDENCE, so it
is still emitted; lowering it below that floor drops such cards."""

MIN_SHAPE_ONLY_CONFIDENCE: float = 0.5
"""Shape-only matches must reach this score to be emitted at all."""

PHONE_CONFIDENCE: float = 0.9
"""Mobile numbers have no checksum; the prefix rule (6-9) is the only gate."""

PLACEHOLDER_BBOX: tuple[float, float, float, float] = (0.0, 0.0, 100.0, 20.0)
"""(x, y, w, h) used when a text match intersects no OCR word."""

# =============================================================================
# SPATIAL THRESHOLDS (layout.py, key_value.py)
# =============================================================================

LINE_TOLERANCE_RATIO: float = 0.5
"""Same-row tolerance as a fraction of the median word height."""

DEFAULT_WORD_HEIGHT: float = 20.0
"""Median height used when there are no words to measure."""

BLOCK_GAP_RATIO: float = 2.5
"""An inter-line gap above ratio × average gap starts a new block."""

DEFAULT_LINE_GAP: float = 20.0
"""Average gap assumed when it cannot be measured (single line, zero gaps)."""

VALUE_GAP_RATIO: float = 2.0
"""A horizontal gap above ratio × previous value word width ends a value
(column boundary)."""

MAX_VALUE_WORDS: int = 15
"""Runaway guard for key-value extraction."""

MAX_KEY_WORDS: int = 3
"""Longest label considered, e.g. ``Date of Birth:``."""

TABLE_COLUMN_TOLERANCE: float = 15.0
"""Words whose x is within this many pixels of a column anchor share it."""

# =============================================================================
# CLASSIFIER (document_router.py)
# =============================================================================

CLASSIFICATION_CONFIDENCE_CAP: float = 0.95
"""Classification is advisory and never reported as certain."""

# =============================================================================
# HEURISTIC DETECTOR (heuristic_detector.py)
# =============================================================================

NAME_SEED_CONFIDENCE: float = 0.65
NAME_TWO_WORD_CONFIDENCE: float = 0.82
NAME_THREE_WORD_CONFIDENCE: float = 0.88
NAME_CAPITALISED_BONUS: float = 0.05
NAME_MAX_CONFIDENCE: float = 0.95

PIN_CODE_MIN: int = 110001
PIN_CODE_MAX: int = 855117
"""Plausible range of Indian postal codes."""

ADDRESS_WINDOW_WORDS: int = 8
"""How many words before a PIN code are scanned for address keywords."""

ADDRESS_KEYWORD_CONFIDENCE: float = 0.78
ADDRESS_BARE_CONFIDENCE: float = 0.55
ADDRESS_MIN_BARE_WORDS: int = 3
STATE_CONFIDENCE: float = 0.72

MEDICAL_SINGLE_CONFIDENCE: float = 0.75
MEDICAL_PHRASE_CONFIDENCE: float = 0.80

EMAIL_CONFIDENCE: float = 0.95

DOB_CONTEXT_CONFIDENCE: float = 0.9
DOB_BARE_CONFIDENCE: float = 0.6
DOB_CONTEXT_CHARS: int = 30
DOB_MIN_YEAR: int = 1920
DOB_MAX_YEAR: int = 2010

# =============================================================================
# FUSION (merge.py)
# =============================================================================

LAYER_CONFIDENCE_BANDS: dict[DetectionLayer, tuple[float, float]] = {
    DetectionLayer.REGEX: (1.0, 1.0),
    DetectionLayer.ENHANCED_REGEX: (0.95, 1.0),
    DetectionLayer.HEURISTIC: (0.60, 0.90),
    DetectionLayer.SPATIAL: (0.95, 0.99),
    DetectionLayer.AI: (0.50, 0.95),
}
"""Inclusive [min, max] each layer's confidence is clamped into before NMS.
The bands encode the trust order independently of what detectors claim."""

LOW_CONFIDENCE_MAX: float = 0.7
MEDIUM_CONFIDENCE_MAX: float = 0.9
"""Stats bands: low < 0.7 <= medium < 0.9 <= high."""

# =============================================================================
# EXTERNAL AI (ai_detector.py)
# =============================================================================

AI_WORD_ID_CONFIDENCE: float = 0.95
AI_PHRASE_CONFIDENCE: float = 0.9
AI_MASK_PADDING: float = 4.0
"""Pixels added on each side of a word-ID mask, clamped at the page origin."""
