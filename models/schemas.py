"""Pydantic data models for the scan redactor."""

from __future__ import annotations

import enum
import uuid
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class PIIType(str, enum.Enum):
    """Categories of personally identifiable information."""
    NAME = "NAME"
    PHONE = "PHONE"
    EMAIL = "EMAIL"
    ADDRESS = "ADDRESS"
    AADHAAR = "AADHAAR"               # 12-digit national ID
    PAN = "PAN"                       # 10-char tax ID
    CREDIT_CARD = "CREDIT_CARD"
    DOB = "DOB"
    MEDICAL = "MEDICAL"
    ACCOUNT_NUMBER = "ACCOUNT_NUMBER"
    IFSC = "IFSC"
    INVOICE_NO = "INVOICE_NO"
    GST = "GST"
    SENSITIVE = "SENSITIVE"           # catch-all for unmapped categories


class DetectionLayer(enum.IntEnum):
    """Which detection layer produced an entity.

    The integer value is the trust order used by fusion: a higher layer
    wins ties against a lower one.
    """
    REGEX = 0
    ENHANCED_REGEX = 1
    HEURISTIC = 2
    SPATIAL = 3
    AI = 4


class DocumentType(str, enum.Enum):
    INVOICE = "invoice"
    BANK_STATEMENT = "bank_statement"
    MEDICAL_REPORT = "medical_report"
    TAX_RETURN = "tax_return"
    ID_CARD_AADHAAR = "id_card_aadhaar"
    ID_CARD_PAN = "id_card_pan"
    HEALTH_REPORT = "health_report"
    GENERIC = "generic"


# ---------------------------------------------------------------------------
# Geometry
# ---------------------------------------------------------------------------

class BBox(BaseModel):
    """Bounding box in page pixels (top-left origin)."""
    model_config = ConfigDict(frozen=True)

    x: float
    y: float
    w: float = Field(ge=0.0)
    h: float = Field(ge=0.0)
    page_index: int = 0

    @property
    def x1(self) -> float:
        return self.x + self.w

    @property
    def y1(self) -> float:
        return self.y + self.h

    @property
    def area(self) -> float:
        return self.w * self.h


# ---------------------------------------------------------------------------
# OCR input
# ---------------------------------------------------------------------------

class Word(BaseModel):
    """A single OCR-recognised token."""
    model_config = ConfigDict(frozen=True)

    text: str
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)
    bbox: BBox


# ---------------------------------------------------------------------------
# Spatial structure
# ---------------------------------------------------------------------------

class TextLine(BaseModel):
    """Words sharing a visual row, left to right."""
    words: list[Word]
    text: str
    x: float
    y: float                          # mean y of the member words
    width: float
    height: float                     # tallest member word
    bbox: BBox


class TextBlock(BaseModel):
    """Consecutive lines not separated by an unusually large gap."""
    lines: list[TextLine]
    text: str                         # newline-joined line texts
    bbox: BBox


class TableColumn(BaseModel):
    """Words bucketed by x position, ignoring rows."""
    column_index: int
    x: float
    words: list[Word]


class KeyValuePair(BaseModel):
    """A label (``Name:``) and the value words that follow it on the line."""
    key_words: list[Word]
    value_words: list[Word]
    key: str
    value: str
    pii_type: PIIType
    confidence: float = Field(ge=0.0, le=1.0)
    bbox: BBox


# ---------------------------------------------------------------------------
# PII Detection
# ---------------------------------------------------------------------------

def new_entity_id(prefix: str = "") -> str:
    return f"{prefix}{uuid.uuid4().hex[:8]}"


class DetectedEntity(BaseModel):
    """A PII span anchored to a bounding box on the page."""
    id: str = Field(default_factory=new_entity_id)
    type: PIIType
    value: str
    confidence: float = Field(ge=0.0, le=1.0)
    bbox: BBox
    masked: bool = True
    layer: DetectionLayer


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------

class SecondaryType(BaseModel):
    type: DocumentType
    confidence: float


class DocumentClassification(BaseModel):
    primary_type: DocumentType = DocumentType.GENERIC
    confidence: float = Field(default=0.0, ge=0.0, le=0.95)
    secondary_types: list[SecondaryType] = []
    matched_keywords: list[str] = []


class Ruleset(BaseModel):
    """Detection switches derived from the document type."""
    model_config = ConfigDict(frozen=True)

    prioritize_spatial: bool = False
    enable_table_detection: bool = False
    strict_patterns: bool = False
    skip_heuristic: bool = False
    confidence_boost: float = Field(default=1.0, ge=1.0, le=1.3)


# ---------------------------------------------------------------------------
# Fusion / pipeline output
# ---------------------------------------------------------------------------

class ConfidenceBands(BaseModel):
    low: int = 0                      # < 0.7
    medium: int = 0                   # 0.7 – 0.9
    high: int = 0                     # >= 0.9


class FusionStats(BaseModel):
    total: int = 0
    by_layer: dict[str, int] = {}
    by_confidence: ConfidenceBands = Field(default_factory=ConfidenceBands)
    deduplicated: int = 0             # removed by NMS
    filtered: int = 0                 # removed by the confidence gate


class FusionResult(BaseModel):
    entities: list[DetectedEntity] = []
    stats: FusionStats = Field(default_factory=FusionStats)


class PipelineResult(BaseModel):
    """Everything the redaction stage needs for one page."""
    page_index: int = 0
    entities: list[DetectedEntity] = []
    classification: DocumentClassification = Field(default_factory=DocumentClassification)
    ruleset: Ruleset = Field(default_factory=Ruleset)
    stats: FusionStats = Field(default_factory=FusionStats)
    text_blocks: Optional[list[TextBlock]] = None  # set when the spatial layer ran
    table_columns: Optional[list[TableColumn]] = None
    ai_strategy: Optional[str] = None  # which AI strategy produced results
