"""Bounding-box geometry utilities for entity processing."""

from __future__ import annotations

from typing import Iterable

from models.schemas import BBox


def _bbox_overlap_area(a: BBox, b: BBox) -> float:
    """Return the area of intersection between two bounding boxes."""
    ix0 = max(a.x, b.x)
    iy0 = max(a.y, b.y)
    ix1 = min(a.x1, b.x1)
    iy1 = min(a.y1, b.y1)
    if ix1 <= ix0 or iy1 <= iy0:
        return 0.0
    return (ix1 - ix0) * (iy1 - iy0)


def iou(a: BBox, b: BBox) -> float:
    """Intersection over union of two boxes.

    Boxes on different pages never overlap.  Two zero-area boxes have an
    empty union and score 0.
    """
    if a.page_index != b.page_index:
        return 0.0
    inter = _bbox_overlap_area(a, b)
    union = a.area + b.area - inter
    if union <= 0.0:
        return 0.0
    return inter / union


def union_bbox(boxes: Iterable[BBox], page_index: int | None = None) -> BBox | None:
    """Smallest box containing all *boxes*, or None when there are none.

    *page_index* overrides the page of the result; by default the first
    box's page is used.
    """
    boxes = list(boxes)
    if not boxes:
        return None
    x0 = min(b.x for b in boxes)
    y0 = min(b.y for b in boxes)
    x1 = max(b.x1 for b in boxes)
    y1 = max(b.y1 for b in boxes)
    return BBox(
        x=x0, y=y0, w=x1 - x0, h=y1 - y0,
        page_index=boxes[0].page_index if page_index is None else page_index,
    )


def pad_bbox(bbox: BBox, padding: float) -> BBox:
    """Grow *bbox* by *padding* on every side, clamping the origin at 0."""
    x0 = max(0.0, bbox.x - padding)
    y0 = max(0.0, bbox.y - padding)
    return BBox(
        x=x0,
        y=y0,
        w=bbox.x1 + padding - x0,
        h=bbox.y1 + padding - y0,
        page_index=bbox.page_index,
    )
