"""Character-offset ↔ word mapping.

Maps character ranges in the page's full text back to the OCR words that
produced them, and from there to a bounding box.

Word positions are found with a forward scan: each word is searched for in
the full text starting where the previous word ended.  This tolerates
extra whitespace or line breaks in the full text, but a word that also
occurs earlier than its true position can be attributed to the earlier
occurrence.  Lookups use binary search (bisect) on the word end offsets.
"""

from __future__ import annotations

import bisect
import logging
from typing import NamedTuple, Sequence

from redactor.detection.bbox_utils import union_bbox
from redactor.detection.detection_config import PLACEHOLDER_BBOX
from models.schemas import BBox, Word

logger = logging.getLogger(__name__)


class WordSpan(NamedTuple):
    start: int
    end: int
    word_index: int


class WordOffsets:
    """Character spans of *words* inside *full_text*, computed once per page."""

    def __init__(self, full_text: str, words: Sequence[Word]) -> None:
        self.words = words
        self.spans: list[WordSpan] = []
        cursor = 0
        missing = 0
        for i, word in enumerate(words):
            if not word.text:
                continue
            idx = full_text.find(word.text, cursor)
            if idx < 0:
                missing += 1
                continue
            self.spans.append(WordSpan(idx, idx + len(word.text), i))
            cursor = idx + len(word.text)
        self._ends = [s.end for s in self.spans]
        # match start -> placeholder slot, in first-seen order
        self._placeholder_slots: dict[int, int] = {}
        if missing:
            logger.debug("%d of %d words not located in full text", missing, len(words))

    def words_in_range(self, start: int, end: int) -> list[Word]:
        """Words whose character span intersects ``[start, end)``."""
        out: list[Word] = []
        i = bisect.bisect_right(self._ends, start)
        while i < len(self.spans) and self.spans[i].start < end:
            out.append(self.words[self.spans[i].word_index])
            i += 1
        return out

    def range_to_bbox(self, start: int, end: int, page_index: int = 0) -> BBox:
        """Union box of the words under ``[start, end)``.

        Falls back to a placeholder box when no word intersects the range.
        Each unanchored range gets its own slot, stacked below the previous
        one, so two such detections never overlap and both survive NMS.
        """
        words = self.words_in_range(start, end)
        bbox = union_bbox((w.bbox for w in words), page_index=page_index)
        if bbox is None:
            slot = self._placeholder_slots.setdefault(start, len(self._placeholder_slots))
            logger.debug("No OCR word under chars %d-%d, using placeholder slot %d", start, end, slot)
            return placeholder_bbox(page_index, slot)
        return bbox


def placeholder_bbox(page_index: int = 0, slot: int = 0) -> BBox:
    """The *slot*-th placeholder box; slots are edge-to-edge, never overlapping."""
    x, y, w, h = PLACEHOLDER_BBOX
    return BBox(x=x, y=y + h * slot, w=w, h=h, page_index=page_index)


def word_span_text(words: Sequence[Word]) -> tuple[str, list[WordSpan]]:
    """Join *words* with single spaces and return the text plus each word's span.

    Used by detectors that scan the word stream directly and need exact,
    unambiguous offsets.
    """
    parts: list[str] = []
    spans: list[WordSpan] = []
    pos = 0
    for i, w in enumerate(words):
        if parts:
            pos += 1
        spans.append(WordSpan(pos, pos + len(w.text), i))
        parts.append(w.text)
        pos += len(w.text)
    return " ".join(parts), spans
