"""Tests for redactor.detection.key_value — labelled form fields."""

from __future__ import annotations

import pytest

from models.schemas import BBox, DetectionLayer, PIIType, Word
from redactor.detection.key_value import (
    detect_key_values,
    extract_key_value_pairs,
    key_value_entities,
    map_spatial_layout,
)
from redactor.detection.layout import group_words_into_lines


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _row(*texts: str, x: float = 50.0, y: float = 10.0, gap: float = 10.0) -> list[Word]:
    """One row of words, 10px per character, *gap* px apart."""
    out: list[Word] = []
    for t in texts:
        w = 10.0 * len(t)
        out.append(Word(text=t, bbox=BBox(x=x, y=y, w=w, h=20.0)))
        x += w + gap
    return out


# ---------------------------------------------------------------------------
# Single pairs
# ---------------------------------------------------------------------------

class TestDetectKeyValues:
    def test_name_scenario(self):
        words = _row("Name:", "John", "Doe")
        entities = detect_key_values(words)
        assert len(entities) == 1
        e = entities[0]
        assert e.type == PIIType.NAME
        assert e.value == "John Doe"
        assert e.confidence == pytest.approx(0.99)
        assert e.layer == DetectionLayer.SPATIAL
        assert e.id.startswith("kv_")

    def test_box_covers_key_and_value(self):
        words = _row("Name:", "John", "Doe")
        bbox = detect_key_values(words)[0].bbox
        assert bbox.x == words[0].bbox.x
        assert bbox.x1 == pytest.approx(words[2].bbox.x1)

    def test_multi_word_label(self):
        entities = detect_key_values(_row("Date", "of", "Birth", "01/01/1990"))
        assert len(entities) == 1
        assert entities[0].type == PIIType.DOB
        assert entities[0].value == "01/01/1990"
        assert entities[0].confidence == pytest.approx(0.97)

    def test_account_label(self):
        entities = detect_key_values(_row("A/C", "No.", "123456789012"))
        assert [(e.type, e.value) for e in entities] == [(PIIType.ACCOUNT_NUMBER, "123456789012")]

    def test_label_case_insensitive(self):
        entities = detect_key_values(_row("MOBILE", "9876543210"))
        assert entities[0].type == PIIType.PHONE

    def test_label_without_value(self):
        assert detect_key_values(_row("Name:")) == []

    def test_empty(self):
        assert detect_key_values([]) == []

    def test_page_index(self):
        entities = detect_key_values(_row("Name:", "John"), page_index=2)
        assert entities[0].bbox.page_index == 2


# ---------------------------------------------------------------------------
# Value boundaries
# ---------------------------------------------------------------------------

class TestValueBoundaries:
    def test_stops_at_next_label(self):
        entities = detect_key_values(_row("Name:", "John", "Phone:", "9876543210"))
        assert [(e.type, e.value) for e in entities] == [
            (PIIType.NAME, "John"),
            (PIIType.PHONE, "9876543210"),
        ]

    def test_stops_at_column_gap(self):
        words = _row("Name:", "John") + _row("Total", x=600)
        entities = detect_key_values(words)
        assert [e.value for e in entities] == ["John"]

    def test_standalone_colon_skipped(self):
        entities = detect_key_values(_row("Email", ":", "a@b.com"))
        assert len(entities) == 1
        assert entities[0].type == PIIType.EMAIL
        assert entities[0].value == "a@b.com"

    def test_value_capped(self):
        words = _row("Address:", *[f"w{i}" for i in range(30)], gap=5.0)
        entities = detect_key_values(words)
        assert len(entities[0].value.split()) == 15

    def test_one_pair_per_row(self):
        words = _row("Name:", "John", y=10) + _row("PAN:", "ABCPE1234F", y=60)
        entities = detect_key_values(words)
        assert [(e.type, e.value) for e in entities] == [
            (PIIType.NAME, "John"),
            (PIIType.PAN, "ABCPE1234F"),
        ]


# ---------------------------------------------------------------------------
# Pairs → entities
# ---------------------------------------------------------------------------

class TestKeyValueEntities:
    def test_one_entity_per_pair(self):
        lines = group_words_into_lines(_row("Name:", "John", "Phone:", "9876543210"))
        pairs = extract_key_value_pairs(lines)
        assert [p.key for p in pairs] == ["Name:", "Phone:"]
        entities = key_value_entities(pairs)
        assert len(entities) == len(pairs)
        assert all(e.layer == DetectionLayer.SPATIAL for e in entities)
        assert [e.confidence for e in entities] == [p.confidence for p in pairs]


# ---------------------------------------------------------------------------
# Lines → blocks → pairs
# ---------------------------------------------------------------------------

class TestMapSpatialLayout:
    def test_empty(self):
        layout = map_spatial_layout([])
        assert layout == ([], [], [])

    def test_blocks_split_at_large_gap(self):
        words = (
            _row("Name:", "John", y=10.0)
            + _row("Phone:", "9876543210", y=50.0)
            + _row("Gender", "Male", y=90.0)
            + _row("Year", "1990", y=130.0)
            + _row("Email:", "a@b.com", y=390.0)
        )
        layout = map_spatial_layout(words, page_index=1)
        assert len(layout.lines) == 5
        assert [b.text for b in layout.blocks] == [
            "Name: John\nPhone: 9876543210\nGender Male\nYear 1990",
            "Email: a@b.com",
        ]
        assert [e.type for e in layout.entities] == [PIIType.NAME, PIIType.PHONE, PIIType.EMAIL]
        assert all(e.bbox.page_index == 1 for e in layout.entities)

    def test_detect_key_values_matches_layout(self):
        words = _row("Name:", "John")
        assert [e.value for e in detect_key_values(words)] == [
            e.value for e in map_spatial_layout(words).entities
        ]
