"""Tests for redactor.detection.regex_detector — pattern + checksum layer."""

from __future__ import annotations

import pytest

from models.schemas import BBox, DetectionLayer, PIIType, Word
from redactor.detection.regex_detector import detect_patterns, find_pattern_matches


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _words(*texts: str, y: float = 10.0, h: float = 20.0) -> list[Word]:
    """Lay words out left to right on one row, 10px per character."""
    out: list[Word] = []
    x = 10.0
    for t in texts:
        w = 10.0 * len(t)
        out.append(Word(text=t, bbox=BBox(x=x, y=y, w=w, h=h)))
        x += w + 10.0
    return out


def _types(matches) -> list[PIIType]:
    return [m.pii_type for m in matches]


# ---------------------------------------------------------------------------
# National ID
# ---------------------------------------------------------------------------

class TestNationalID:
    def test_valid_grouped(self):
        matches = find_pattern_matches("Aadhaar: 2345 6789 0124")
        assert len(matches) == 1
        m = matches[0]
        assert m.pii_type == PIIType.AADHAAR
        assert m.text == "2345 6789 0124"
        assert m.confidence == 1.0
        assert m.layer == DetectionLayer.REGEX

    def test_valid_contiguous(self):
        matches = find_pattern_matches("UID 234567890124 issued")
        assert _types(matches) == [PIIType.AADHAAR]
        assert matches[0].confidence == 1.0

    def test_checksum_failure_reported_at_shape_confidence(self):
        matches = find_pattern_matches("234567890123")
        assert len(matches) == 1
        assert matches[0].pii_type == PIIType.AADHAAR
        assert matches[0].confidence == pytest.approx(0.6)
        assert matches[0].layer == DetectionLayer.HEURISTIC

    @pytest.mark.parametrize("text", ["0234 5678 9012", "1234 5678 9012"])
    def test_leading_zero_or_one_rejected(self, text):
        assert find_pattern_matches(text) == []

    def test_not_taken_from_card_number(self):
        matches = find_pattern_matches("4111 1111 1111 1111")
        assert _types(matches) == [PIIType.CREDIT_CARD]


# ---------------------------------------------------------------------------
# PAN
# ---------------------------------------------------------------------------

class TestPAN:
    def test_valid(self):
        matches = find_pattern_matches("PAN ABCPE1234F")
        assert len(matches) == 1
        assert matches[0].pii_type == PIIType.PAN
        assert matches[0].text == "ABCPE1234F"
        assert matches[0].confidence == 1.0

    def test_bad_holder_type_is_shape_only(self):
        matches = find_pattern_matches("ABCXE1234F")
        assert len(matches) == 1
        assert matches[0].confidence == pytest.approx(0.7)
        assert matches[0].layer == DetectionLayer.HEURISTIC

    def test_embedded_in_word_ignored(self):
        assert find_pattern_matches("XABCPE1234F") == []


# ---------------------------------------------------------------------------
# Payment cards
# ---------------------------------------------------------------------------

class TestCard:
    def test_luhn_valid(self):
        matches = find_pattern_matches("Card 4111 1111 1111 1111")
        assert len(matches) == 1
        assert matches[0].pii_type == PIIType.CREDIT_CARD
        assert matches[0].text == "4111 1111 1111 1111"
        assert matches[0].confidence == 1.0

    def test_luhn_failure_kept_at_floor(self):
        matches = find_pattern_matches("Card 4111 1111 1111 1112")
        assert len(matches) == 1
        m = matches[0]
        assert m.pii_type == PIIType.CREDIT_CARD
        assert m.text == "4111 1111 1111 1112"
        assert m.confidence == pytest.approx(0.5)
        assert m.layer == DetectionLayer.HEURISTIC


# ---------------------------------------------------------------------------
# Phone
# ---------------------------------------------------------------------------

class TestPhone:
    def test_plain_mobile(self):
        matches = find_pattern_matches("Call 9876543210 today")
        assert len(matches) == 1
        m = matches[0]
        assert m.pii_type == PIIType.PHONE
        assert m.text == "9876543210"
        assert m.confidence == pytest.approx(0.9)
        assert m.layer == DetectionLayer.ENHANCED_REGEX

    def test_country_prefix_not_in_value(self):
        matches = find_pattern_matches("Mobile: +91 98765 43210")
        assert len(matches) == 1
        assert matches[0].text == "98765 43210"

    def test_landline_prefix_rejected(self):
        assert find_pattern_matches("Call 2876543210") == []


# ---------------------------------------------------------------------------
# Strict mode
# ---------------------------------------------------------------------------

class TestStrict:
    def test_mixed_separators(self):
        text = "2345 6789-0124"
        assert _types(find_pattern_matches(text)) == [PIIType.AADHAAR]
        assert find_pattern_matches(text, strict=True) == []

    def test_line_break_inside_number(self):
        text = "2345\n6789\n0124"
        assert _types(find_pattern_matches(text)) == [PIIType.AADHAAR]
        assert find_pattern_matches(text, strict=True) == []

    def test_consistent_separator_accepted(self):
        matches = find_pattern_matches("2345-6789-0124", strict=True)
        assert _types(matches) == [PIIType.AADHAAR]


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------

class TestDetectPatterns:
    def test_empty_text(self):
        assert detect_patterns("", _words("hello")) == []

    def test_results_sorted_by_offset(self):
        matches = find_pattern_matches("PAN ABCPE1234F phone 9876543210 id 234567890124")
        assert [m.start for m in matches] == sorted(m.start for m in matches)
        assert _types(matches) == [PIIType.PAN, PIIType.PHONE, PIIType.AADHAAR]

    def test_national_id_scenario(self):
        words = _words("Aadhaar:", "234567890124")
        entities = detect_patterns("Aadhaar: 234567890124", words)
        assert len(entities) == 1
        e = entities[0]
        assert e.type == PIIType.AADHAAR
        assert e.confidence == 1.0
        assert e.layer == DetectionLayer.REGEX
        assert e.bbox == words[1].bbox
        assert e.id.startswith("l1_")
        assert e.masked is True

    def test_box_spans_every_group(self):
        words = _words("ID", "2345", "6789", "0124")
        entities = detect_patterns("ID 2345 6789 0124", words)
        assert len(entities) == 1
        bbox = entities[0].bbox
        assert bbox.x == words[1].bbox.x
        assert bbox.x1 == pytest.approx(words[3].bbox.x1)

    def test_page_index_stamped(self):
        words = _words("234567890124")
        entities = detect_patterns("234567890124", words, page_index=3)
        assert entities[0].bbox.page_index == 3

    def test_placeholder_box_without_words(self):
        entities = detect_patterns("234567890124", [], page_index=1)
        assert len(entities) == 1
        bbox = entities[0].bbox
        assert (bbox.x, bbox.y, bbox.w, bbox.h) == (0.0, 0.0, 100.0, 20.0)
        assert bbox.page_index == 1

    def test_unanchored_matches_do_not_share_a_box(self):
        entities = detect_patterns("ID 234567890124 and 345678901238", [])
        assert [e.value for e in entities] == ["234567890124", "345678901238"]
        assert [e.bbox.y for e in entities] == [0.0, 20.0]
