"""Tests for redactor.detection.heuristic_detector — dictionary lookups."""

from __future__ import annotations

import pytest

from models.schemas import BBox, DetectionLayer, PIIType, Word
from redactor.detection.heuristic_detector import (
    detect_addresses,
    detect_dates_of_birth,
    detect_emails,
    detect_heuristic,
    detect_medical_terms,
    detect_names,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _words(text: str) -> list[Word]:
    out: list[Word] = []
    x = 10.0
    for t in text.split():
        w = 10.0 * len(t)
        out.append(Word(text=t, bbox=BBox(x=x, y=10.0, w=w, h=20.0)))
        x += w + 10.0
    return out


def _found(entities) -> list[tuple[PIIType, str]]:
    return [(e.type, e.value) for e in entities]


# ---------------------------------------------------------------------------
# Names
# ---------------------------------------------------------------------------

class TestNames:
    def test_three_word_name(self):
        entities = detect_names(_words("Patient Rajesh Kumar Sharma"))
        assert _found(entities) == [(PIIType.NAME, "Rajesh Kumar Sharma")]
        assert entities[0].confidence == pytest.approx(0.93)

    def test_two_word_name(self):
        entities = detect_names(_words("Signed John Doe"))
        assert _found(entities) == [(PIIType.NAME, "John Doe")]
        assert entities[0].confidence == pytest.approx(0.87)

    def test_single_lowercase_seed(self):
        entities = detect_names(_words("contact priya today"))
        assert _found(entities) == [(PIIType.NAME, "priya")]
        assert entities[0].confidence == pytest.approx(0.65)

    def test_punctuation_stripped_for_lookup(self):
        entities = detect_names(_words("Dear Rahul,"))
        assert _found(entities) == [(PIIType.NAME, "Rahul,")]

    def test_box_spans_name(self):
        words = _words("John Doe")
        bbox = detect_names(words)[0].bbox
        assert bbox.x == words[0].bbox.x
        assert bbox.x1 == pytest.approx(words[1].bbox.x1)

    def test_no_names(self):
        assert detect_names(_words("total amount due")) == []


# ---------------------------------------------------------------------------
# Addresses
# ---------------------------------------------------------------------------

class TestAddresses:
    def test_pin_with_keyword(self):
        entities = detect_addresses(_words("12 MG Road Bengaluru 560001"))
        assert _found(entities) == [(PIIType.ADDRESS, "12 MG Road Bengaluru 560001")]
        assert entities[0].confidence == pytest.approx(0.78)

    def test_pin_without_keyword(self):
        entities = detect_addresses(_words("Koramangala Bengaluru 560034"))
        assert len(entities) == 1
        assert entities[0].confidence == pytest.approx(0.55)

    def test_too_few_words_without_keyword(self):
        assert detect_addresses(_words("Bengaluru 560034")) == []

    def test_pin_out_of_range(self):
        assert detect_addresses(_words("12 MG Road Town 100000")) == []

    def test_window_limited(self):
        words = _words("a b c d e f g h i j Road 560001")
        entities = detect_addresses(words)
        assert len(entities[0].value.split()) == 9

    def test_state_phrase(self):
        entities = detect_addresses(_words("Chennai, Tamil Nadu."))
        assert _found(entities) == [(PIIType.ADDRESS, "Tamil Nadu.")]
        assert entities[0].confidence == pytest.approx(0.72)


# ---------------------------------------------------------------------------
# Medical, e-mail, DOB
# ---------------------------------------------------------------------------

class TestMedical:
    def test_phrase_before_single_terms(self):
        entities = detect_medical_terms(_words("history of diabetes and high blood pressure"))
        assert _found(entities) == [
            (PIIType.MEDICAL, "diabetes"),
            (PIIType.MEDICAL, "blood pressure"),
        ]
        assert entities[0].confidence == pytest.approx(0.75)
        assert entities[1].confidence == pytest.approx(0.80)

    def test_trailing_punctuation(self):
        assert _found(detect_medical_terms(_words("Asthma."))) == [(PIIType.MEDICAL, "Asthma.")]


class TestEmails:
    def test_email_word(self):
        entities = detect_emails(_words("mail a.b@example.com now"))
        assert _found(entities) == [(PIIType.EMAIL, "a.b@example.com")]
        assert entities[0].confidence == pytest.approx(0.95)

    def test_not_an_email(self):
        assert detect_emails(_words("user@localhost")) == []


class TestDatesOfBirth:
    def test_with_context(self):
        entities = detect_dates_of_birth(_words("Date of Birth: 15/08/1985"))
        assert _found(entities) == [(PIIType.DOB, "15/08/1985")]
        assert entities[0].confidence == pytest.approx(0.9)

    def test_without_context(self):
        entities = detect_dates_of_birth(_words("Issued 15-08-1985"))
        assert entities[0].confidence == pytest.approx(0.6)

    def test_implausible_birth_year(self):
        assert detect_dates_of_birth(_words("DOB 01/01/2020")) == []

    def test_invalid_month(self):
        assert detect_dates_of_birth(_words("DOB 01/13/1990")) == []


# ---------------------------------------------------------------------------
# Combined
# ---------------------------------------------------------------------------

class TestDetectHeuristic:
    def test_empty(self):
        assert detect_heuristic([]) == []

    def test_all_heuristic_layer(self):
        words = _words("John Doe john@example.com DOB 01/02/1980 diabetes Road 560001")
        entities = detect_heuristic(words, page_index=1)
        types = {e.type for e in entities}
        assert {PIIType.NAME, PIIType.EMAIL, PIIType.DOB, PIIType.MEDICAL, PIIType.ADDRESS} <= types
        assert all(e.layer == DetectionLayer.HEURISTIC for e in entities)
        assert all(e.id.startswith("nlp_") for e in entities)
        assert all(e.bbox.page_index == 1 for e in entities)
        assert all(0.5 <= e.confidence <= 0.95 for e in entities)
