"""Heuristic document classification and per-type detection rulesets.

Classification runs before any detector so the pipeline can pick a
ruleset: form-like documents (IDs, invoices, statements) lean on the
spatial key-value layer and skip the dictionary heuristics, free-text
documents (medical reports) do the opposite.

The score for a type is the sum of the word counts of its keywords that
occur in the text, so specific multi-word phrases ("statement of
account") outweigh generic ones ("balance").
"""

from __future__ import annotations

import logging

from models.schemas import DocumentClassification, DocumentType, Ruleset, SecondaryType
from redactor.detection.detection_config import CLASSIFICATION_CONFIDENCE_CAP

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
# Keyword dictionaries
# ═══════════════════════════════════════════════════════════════════════════

INVOICE_KEYWORDS: tuple[str, ...] = (
    "invoice", "bill", "bill no", "invoice no", "inv no", "invoice number",
    "bill to", "ship to", "customer", "vendor", "supplier", "po number",
    "purchase order", "payment terms", "due date", "subtotal", "tax", "gst",
    "igst", "cgst", "sgst", "total amount", "amount due", "line item",
    "qty", "quantity", "price", "item description", "hsn", "sac code",
)

BANK_STATEMENT_KEYWORDS: tuple[str, ...] = (
    "bank statement", "account statement", "statement of account",
    "account number", "account no", "ifsc", "ifsc code", "branch",
    "transaction", "transaction date", "credit", "debit", "balance",
    "opening balance", "closing balance", "withdrawal", "deposit",
    "cheque", "check", "rtgs", "neft", "imps", "upi", "iban", "swift",
    "account holder", "from date", "to date", "statement period",
)

MEDICAL_KEYWORDS: tuple[str, ...] = (
    "patient", "patient name", "doctor", "physician", "hospital", "clinic",
    "medical report", "lab report", "pathology", "radiology", "diagnosis",
    "prescription", "medication", "blood test", "urine test", "mri", "ct scan",
    "x-ray", "ultrasound", "ecg", "ekg", "test results", "normal range",
    "abnormal", "positive", "negative", "hemoglobin", "glucose", "cholesterol",
    "blood pressure", "heart rate", "pulse", "temperature", "weight", "bmi",
)

TAX_KEYWORDS: tuple[str, ...] = (
    "income tax", "tax return", "itr", "assessment year", "financial year",
    "pan", "permanent account number", "tax deducted", "tds", "form 16",
    "form 26as", "gross income", "taxable income", "deductions", "exemptions",
    "tax payable", "tax refund", "acknowledgement", "ack no", "return filed",
    "tan", "employer", "salary", "wages", "capital gains",
)

AADHAAR_KEYWORDS: tuple[str, ...] = (
    "aadhaar", "aadhar", "uid", "unique identification", "uidai",
    "government of india", "bharatiya prachnya patr", "enrollment no",
    "vid", "virtual id", "date of birth", "dob", "gender", "male", "female",
    "address", "yob", "year of birth",
)

PAN_KEYWORDS: tuple[str, ...] = (
    "pan", "permanent account number", "income tax department",
    "father name", "fathers name", "date of birth", "dob",
    "signature", "photograph",
)

HEALTH_REPORT_KEYWORDS: tuple[str, ...] = (
    "health report", "medical certificate", "fitness certificate",
    "blood group", "allergies", "past medical history", "current medications",
    "vital signs", "examination", "clinical findings",
)

# Declaration order is the tie-break: on equal scores the earlier type wins.
DOCUMENT_KEYWORDS: tuple[tuple[DocumentType, tuple[str, ...]], ...] = (
    (DocumentType.INVOICE, INVOICE_KEYWORDS),
    (DocumentType.BANK_STATEMENT, BANK_STATEMENT_KEYWORDS),
    (DocumentType.MEDICAL_REPORT, MEDICAL_KEYWORDS),
    (DocumentType.TAX_RETURN, TAX_KEYWORDS),
    (DocumentType.ID_CARD_AADHAAR, AADHAAR_KEYWORDS),
    (DocumentType.ID_CARD_PAN, PAN_KEYWORDS),
    (DocumentType.HEALTH_REPORT, HEALTH_REPORT_KEYWORDS),
)


# ═══════════════════════════════════════════════════════════════════════════
# Rulesets
# ═══════════════════════════════════════════════════════════════════════════

_FORM_RULES = dict(prioritize_spatial=True, strict_patterns=True, skip_heuristic=True)

RULESETS: dict[DocumentType, Ruleset] = {
    DocumentType.INVOICE: Ruleset(**_FORM_RULES, enable_table_detection=True, confidence_boost=1.2),
    DocumentType.BANK_STATEMENT: Ruleset(**_FORM_RULES, enable_table_detection=True, confidence_boost=1.3),
    DocumentType.TAX_RETURN: Ruleset(**_FORM_RULES, enable_table_detection=True, confidence_boost=1.15),
    DocumentType.ID_CARD_AADHAAR: Ruleset(**_FORM_RULES, confidence_boost=1.25),
    DocumentType.ID_CARD_PAN: Ruleset(**_FORM_RULES, confidence_boost=1.25),
    DocumentType.MEDICAL_REPORT: Ruleset(),
    DocumentType.HEALTH_REPORT: Ruleset(),
    DocumentType.GENERIC: Ruleset(),
}


def ruleset_for(doc_type: DocumentType) -> Ruleset:
    """Detection ruleset for *doc_type*; unknown types get the neutral one."""
    return RULESETS.get(doc_type, RULESETS[DocumentType.GENERIC])


# ═══════════════════════════════════════════════════════════════════════════
# Classification
# ═══════════════════════════════════════════════════════════════════════════

def score_keywords(text: str, keywords: tuple[str, ...]) -> tuple[int, list[str]]:
    """Sum of word counts of *keywords* found in *text* (case-insensitive)."""
    lower = text.lower()
    score = 0
    matched: list[str] = []
    for keyword in keywords:
        if keyword in lower:
            score += len(keyword.split())
            matched.append(keyword)
    return score, matched


def classify_document(full_text: str) -> DocumentClassification:
    """Classify a page by keyword evidence.

    Confidence is the winner's share of the total score, capped so a
    classification is never reported as certain.
    """
    scored = []
    for order, (doc_type, keywords) in enumerate(DOCUMENT_KEYWORDS):
        score, matched = score_keywords(full_text, keywords)
        scored.append((score, order, doc_type, matched))

    scored.sort(key=lambda s: (-s[0], s[1]))
    top_score, _, top_type, top_matched = scored[0]
    total = sum(s[0] for s in scored)

    if top_score == 0:
        return DocumentClassification()

    result = DocumentClassification(
        primary_type=top_type,
        confidence=min(top_score / total, CLASSIFICATION_CONFIDENCE_CAP),
        secondary_types=[
            SecondaryType(type=doc_type, confidence=score / total)
            for score, _, doc_type, _ in scored[1:]
            if score > 0
        ],
        matched_keywords=top_matched,
    )
    logger.debug(
        "Classified as %s (%.0f%%, %d keywords)",
        result.primary_type.value, result.confidence * 100, len(top_matched),
    )
    return result
