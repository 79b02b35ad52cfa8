"""Page layout analysis: lines, blocks and table columns from OCR words.

Everything here is purely geometric and adapts to the page's own text size
rather than using fixed pixel thresholds:

1. **Lines** — words are grouped into visual rows using half the median
   word height as the same-row tolerance.
2. **Blocks** — lines are split into blocks wherever the vertical gap to
   the previous line is much larger than the page's average gap (header
   vs. body, form sections).
3. **Table columns** — an optional, advisory bucketing of words by x
   position.  Rows are ignored; nothing downstream emits entities from it.
"""

from __future__ import annotations

import logging
from functools import cmp_to_key
from typing import Sequence

from models.schemas import TableColumn, TextBlock, TextLine, Word
from redactor.detection.bbox_utils import union_bbox
from redactor.detection.detection_config import (
    BLOCK_GAP_RATIO,
    DEFAULT_LINE_GAP,
    DEFAULT_WORD_HEIGHT,
    LINE_TOLERANCE_RATIO,
    TABLE_COLUMN_TOLERANCE,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _median_word_height(words: Sequence[Word]) -> float:
    if not words:
        return DEFAULT_WORD_HEIGHT
    heights = sorted(w.bbox.h for w in words)
    return heights[len(heights) // 2]


def _make_line(words: list[Word]) -> TextLine:
    x0 = min(w.bbox.x for w in words)
    x1 = max(w.bbox.x1 for w in words)
    return TextLine(
        words=words,
        text=" ".join(w.text for w in words),
        x=x0,
        y=sum(w.bbox.y for w in words) / len(words),
        width=x1 - x0,
        height=max(w.bbox.h for w in words),
        bbox=union_bbox(w.bbox for w in words),
    )


def _make_block(lines: list[TextLine]) -> TextBlock:
    return TextBlock(
        lines=lines,
        text="\n".join(line.text for line in lines),
        bbox=union_bbox(line.bbox for line in lines),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def group_words_into_lines(words: Sequence[Word]) -> list[TextLine]:
    """Cluster words into visual lines, each ordered left to right."""
    if not words:
        return []

    tolerance = _median_word_height(words) * LINE_TOLERANCE_RATIO

    def _reading_order(a: Word, b: Word) -> int:
        dy = a.bbox.y - b.bbox.y
        if abs(dy) < tolerance:
            dx = a.bbox.x - b.bbox.x
            return (dx > 0) - (dx < 0)
        return (dy > 0) - (dy < 0)

    ordered = sorted(words, key=cmp_to_key(_reading_order))

    lines: list[TextLine] = []
    current: list[Word] = [ordered[0]]
    for word in ordered[1:]:
        if abs(word.bbox.y - current[-1].bbox.y) < tolerance:
            current.append(word)
        else:
            lines.append(_make_line(current))
            current = [word]
    lines.append(_make_line(current))

    logger.debug(
        "Grouped %d words into %d lines (tolerance=%.1fpx)",
        len(words), len(lines), tolerance,
    )
    return lines


def group_lines_into_blocks(lines: Sequence[TextLine]) -> list[TextBlock]:
    """Split lines into blocks at unusually large vertical gaps."""
    if not lines:
        return []

    ordered = sorted(lines, key=lambda line: line.y)
    gaps = [
        cur.y - (prev.y + prev.height)
        for prev, cur in zip(ordered, ordered[1:])
    ]
    avg_gap = sum(gaps) / len(gaps) if gaps else 0.0
    if avg_gap <= 0:
        avg_gap = DEFAULT_LINE_GAP
    threshold = avg_gap * BLOCK_GAP_RATIO

    blocks: list[TextBlock] = []
    current: list[TextLine] = [ordered[0]]
    for gap, line in zip(gaps, ordered[1:]):
        if gap > threshold:
            blocks.append(_make_block(current))
            current = []
        current.append(line)
    blocks.append(_make_block(current))
    return blocks


def detect_table_columns(words: Sequence[Word]) -> list[TableColumn]:
    """Bucket words into x-aligned columns, left to right.

    A word joins the first column whose anchor x (the x of the column's
    first word) is within ``TABLE_COLUMN_TOLERANCE`` pixels.
    """
    buckets: list[tuple[float, list[Word]]] = []
    for word in words:
        for anchor, members in buckets:
            if abs(word.bbox.x - anchor) < TABLE_COLUMN_TOLERANCE:
                members.append(word)
                break
        else:
            buckets.append((word.bbox.x, [word]))

    buckets.sort(key=lambda b: b[0])
    return [
        TableColumn(column_index=i, x=anchor, words=members)
        for i, (anchor, members) in enumerate(buckets)
    ]
