"""Per-document-type field catalogue.

Users pick the kind of document they are redacting, then choose which of
its fields to keep visible; everything else is masked.  Each field maps to
the PII type the detectors emit for it.  Fields with no textual detector
(photos, QR codes, signatures) map to ``None`` and are accepted but have
no effect on masking.
"""

from __future__ import annotations

from typing import Iterable, Optional

from pydantic import BaseModel

from models.schemas import PIIType


class DocField(BaseModel):
    id: str
    label: str
    description: str
    pii_type: Optional[PIIType] = None


class DocTypeConfig(BaseModel):
    id: str
    label: str
    fields: list[DocField]

    def field(self, field_id: str) -> DocField:
        for f in self.fields:
            if f.id == field_id:
                return f
        raise KeyError(f"{self.id} has no field {field_id!r}")


def _f(field_id: str, label: str, description: str, pii_type: Optional[PIIType] = None) -> DocField:
    return DocField(id=field_id, label=label, description=description, pii_type=pii_type)


DOCUMENT_TYPES: tuple[DocTypeConfig, ...] = (
    DocTypeConfig(id="aadhaar", label="Aadhaar Card", fields=[
        _f("NAME", "Name", "Full name of the cardholder", PIIType.NAME),
        _f("ADDRESS", "Address", "Residential address", PIIType.ADDRESS),
        _f("DOB", "Date of Birth", "Birth date", PIIType.DOB),
        _f("AADHAAR", "Aadhaar Number", "12-digit UID number", PIIType.AADHAAR),
        _f("PHONE", "Phone Number", "Registered mobile number", PIIType.PHONE),
        _f("GENDER", "Gender", "Male/Female/Other"),
        _f("PHOTO", "Photo", "Passport-size photograph"),
        _f("QR_CODE", "QR Code", "Machine-readable QR code"),
    ]),
    DocTypeConfig(id="pan", label="PAN Card", fields=[
        _f("NAME", "Name", "Name of the cardholder", PIIType.NAME),
        _f("FATHER_NAME", "Father's Name", "Father's full name", PIIType.NAME),
        _f("DOB", "Date of Birth", "Birth date", PIIType.DOB),
        _f("PAN", "PAN Number", "10-character alphanumeric PAN", PIIType.PAN),
        _f("PHOTO", "Photo", "Photograph on the card"),
        _f("SIGNATURE", "Signature", "Cardholder signature"),
    ]),
    DocTypeConfig(id="health_report", label="Health Report", fields=[
        _f("NAME", "Patient Name", "Name of the patient", PIIType.NAME),
        _f("AGE", "Age", "Patient age"),
        _f("DOB", "Date of Birth", "Birth date", PIIType.DOB),
        _f("DOCTOR", "Doctor Name", "Attending physician", PIIType.NAME),
        _f("HOSPITAL", "Hospital/Clinic", "Institution name"),
        _f("DIAGNOSIS", "Diagnosis", "Medical diagnosis", PIIType.MEDICAL),
        _f("MEDICAL", "Medications", "Prescribed medications", PIIType.MEDICAL),
        _f("TEST_RESULTS", "Test Results", "Lab test values"),
        _f("BLOOD_GROUP", "Blood Group", "Patient blood group", PIIType.MEDICAL),
    ]),
    DocTypeConfig(id="income_tax", label="Income Tax Return", fields=[
        _f("NAME", "Name", "Taxpayer name", PIIType.NAME),
        _f("PAN", "PAN Number", "PAN of the taxpayer", PIIType.PAN),
        _f("ADDRESS", "Address", "Taxpayer address", PIIType.ADDRESS),
        _f("INCOME", "Income Details", "Gross/net income"),
        _f("TAX_AMOUNT", "Tax Amount", "Tax payable/refund"),
        _f("ASSESSMENT_YEAR", "Assessment Year", "Tax assessment year"),
        _f("TAN", "TAN", "Tax deduction account number"),
        _f("EMPLOYER", "Employer", "Employer name"),
    ]),
    DocTypeConfig(id="invoice", label="Invoice", fields=[
        _f("COMPANY", "Company Name", "Issuing company"),
        _f("CUSTOMER", "Customer Name", "Bill-to customer", PIIType.NAME),
        _f("ADDRESS", "Address", "Billing/shipping address", PIIType.ADDRESS),
        _f("INVOICE_NO", "Invoice Number", "Unique invoice ID", PIIType.INVOICE_NO),
        _f("DATE", "Date", "Invoice date"),
        _f("AMOUNT", "Amount", "Total amount/subtotals"),
        _f("GST", "GST Number", "GSTIN of the company", PIIType.GST),
        _f("ITEMS", "Line Items", "Product/service details"),
        _f("BANK", "Bank Details", "Payment bank account info", PIIType.ACCOUNT_NUMBER),
    ]),
    DocTypeConfig(id="bank_statement", label="Bank Statement", fields=[
        _f("NAME", "Account Holder Name", "Name on the account", PIIType.NAME),
        _f("ACCOUNT_NO", "Account Number", "Bank account number", PIIType.ACCOUNT_NUMBER),
        _f("IFSC", "IFSC Code", "Bank branch IFSC code", PIIType.IFSC),
        _f("ADDRESS", "Address", "Account holder address", PIIType.ADDRESS),
        _f("TRANSACTIONS", "Transaction Details", "Transaction history"),
        _f("BALANCE", "Account Balance", "Opening/closing balance"),
        _f("BANK_NAME", "Bank Name", "Name of the bank"),
        _f("BRANCH", "Branch", "Branch name/address"),
        _f("DATE", "Statement Date", "Statement period dates"),
    ]),
)


def get_document_type(doc_type_id: str) -> DocTypeConfig:
    for dt in DOCUMENT_TYPES:
        if dt.id == doc_type_id:
            return dt
    raise KeyError(f"Unknown document type {doc_type_id!r}")


def required_types_for(doc_type_id: str, field_ids: Iterable[str]) -> frozenset[PIIType]:
    """PII types to keep visible for the fields a user selected.

    Raises ``KeyError`` for an unknown document type or field id.
    """
    doc_type = get_document_type(doc_type_id)
    types: set[PIIType] = set()
    for field_id in field_ids:
        pii_type = doc_type.field(field_id).pii_type
        if pii_type is not None:
            types.add(pii_type)
    return frozenset(types)
