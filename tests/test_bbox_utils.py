"""Tests for redactor.detection.bbox_utils and block_offsets."""

from __future__ import annotations

import pytest

from models.schemas import BBox, Word
from redactor.detection.bbox_utils import _bbox_overlap_area, iou, pad_bbox, union_bbox
from redactor.detection.block_offsets import WordOffsets, placeholder_bbox, word_span_text


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _b(x: float, y: float, w: float, h: float, page: int = 0) -> BBox:
    return BBox(x=x, y=y, w=w, h=h, page_index=page)


def _w(text: str, x: float, w: float = 40.0) -> Word:
    return Word(text=text, bbox=_b(x, 10, w, 20))


# ---------------------------------------------------------------------------
# Overlap / IoU
# ---------------------------------------------------------------------------

class TestOverlapArea:
    def test_partial(self):
        assert _bbox_overlap_area(_b(0, 0, 10, 10), _b(5, 5, 10, 10)) == pytest.approx(25.0)

    def test_disjoint(self):
        assert _bbox_overlap_area(_b(0, 0, 10, 10), _b(20, 20, 5, 5)) == 0.0

    def test_touching_edges(self):
        assert _bbox_overlap_area(_b(0, 0, 10, 10), _b(10, 0, 10, 10)) == 0.0


class TestIoU:
    def test_identical(self):
        assert iou(_b(0, 0, 10, 10), _b(0, 0, 10, 10)) == pytest.approx(1.0)

    def test_half_overlap(self):
        # inter 50, union 150
        assert iou(_b(0, 0, 10, 10), _b(5, 0, 10, 10)) == pytest.approx(1 / 3)

    def test_symmetric(self):
        a, b = _b(0, 0, 30, 10), _b(10, 2, 40, 20)
        assert iou(a, b) == pytest.approx(iou(b, a))

    def test_different_pages(self):
        assert iou(_b(0, 0, 10, 10, page=0), _b(0, 0, 10, 10, page=1)) == 0.0

    def test_zero_area_boxes(self):
        assert iou(_b(5, 5, 0, 0), _b(5, 5, 0, 0)) == 0.0

    @pytest.mark.parametrize("a,b", [
        ((0, 0, 10, 10), (3, 3, 4, 4)),
        ((0, 0, 10, 10), (100, 100, 1, 1)),
        ((1, 2, 3, 4), (2, 3, 4, 5)),
    ])
    def test_bounded(self, a, b):
        assert 0.0 <= iou(_b(*a), _b(*b)) <= 1.0


# ---------------------------------------------------------------------------
# Union / padding
# ---------------------------------------------------------------------------

class TestUnionBBox:
    def test_empty(self):
        assert union_bbox([]) is None

    def test_covers_all(self):
        u = union_bbox([_b(10, 10, 10, 10), _b(40, 5, 10, 30)])
        assert (u.x, u.y, u.x1, u.y1) == (10, 5, 50, 35)

    def test_page_override(self):
        assert union_bbox([_b(0, 0, 1, 1, page=2)]).page_index == 2
        assert union_bbox([_b(0, 0, 1, 1, page=2)], page_index=4).page_index == 4


class TestPadBBox:
    def test_grows_every_side(self):
        p = pad_bbox(_b(10, 10, 20, 20), 4)
        assert (p.x, p.y, p.w, p.h) == (6, 6, 28, 28)

    def test_clamped_at_origin(self):
        p = pad_bbox(_b(2, 1, 20, 20), 4)
        assert (p.x, p.y) == (0, 0)
        assert p.x1 == pytest.approx(26)
        assert p.y1 == pytest.approx(25)


# ---------------------------------------------------------------------------
# Character offsets
# ---------------------------------------------------------------------------

class TestWordOffsets:
    def test_range_maps_to_words(self):
        words = [_w("Name:", 10), _w("John", 60), _w("Doe", 110)]
        offsets = WordOffsets("Name: John Doe", words)
        assert [w.text for w in offsets.words_in_range(6, 14)] == ["John", "Doe"]

    def test_extra_whitespace_tolerated(self):
        words = [_w("John", 10), _w("Doe", 60)]
        offsets = WordOffsets("John\n\n   Doe", words)
        assert [w.text for w in offsets.words_in_range(9, 12)] == ["Doe"]

    def test_partial_overlap_counts(self):
        words = [_w("abc", 10), _w("def", 60)]
        offsets = WordOffsets("abc def", words)
        assert [w.text for w in offsets.words_in_range(2, 5)] == ["abc", "def"]

    def test_missing_word_skipped(self):
        words = [_w("abc", 10), _w("zzz", 60), _w("def", 110)]
        offsets = WordOffsets("abc def", words)
        assert [w.text for w in offsets.words_in_range(0, 7)] == ["abc", "def"]

    def test_range_to_bbox_placeholder(self):
        offsets = WordOffsets("abc", [_w("abc", 10)])
        assert offsets.range_to_bbox(10, 20, page_index=2) == placeholder_bbox(2)

    def test_placeholders_get_distinct_slots(self):
        offsets = WordOffsets("abc", [])
        first = offsets.range_to_bbox(0, 3)
        second = offsets.range_to_bbox(10, 20)
        assert first == placeholder_bbox(0, 0)
        assert second == placeholder_bbox(0, 1)
        assert iou(first, second) == 0.0

    def test_placeholder_slot_stable_per_start(self):
        offsets = WordOffsets("abc", [])
        assert offsets.range_to_bbox(5, 9) == offsets.range_to_bbox(5, 9)

    def test_range_to_bbox_union(self):
        words = [_w("John", 60), _w("Doe", 110, w=30)]
        bbox = WordOffsets("John Doe", words).range_to_bbox(0, 8)
        assert (bbox.x, bbox.x1) == (60, 140)


class TestWordSpanText:
    def test_spans(self):
        text, spans = word_span_text([_w("ab", 0), _w("cde", 50)])
        assert text == "ab cde"
        assert [(s.start, s.end, s.word_index) for s in spans] == [(0, 2, 0), (3, 6, 1)]

    def test_empty(self):
        assert word_span_text([]) == ("", [])
