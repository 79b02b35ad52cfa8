"""Detection merge — fuses entity lists from every detector layer into one
non-overlapping, consistently ranked set.

Steps, in order:
  1. clamp each confidence into its layer's band;
  2. concatenate all sources;
  3. non-maximum suppression by bounding-box IoU (higher layer first, then
     higher confidence, then longer value);
  4. drop entities under the caller's threshold;
  5. multiply by the document-type boost, capped at 1.0.

The threshold is applied before the boost so a document type can never
lift a weak detection over the gate.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Iterable, Sequence

from models.schemas import (
    ConfidenceBands,
    DetectedEntity,
    DetectionLayer,
    FusionResult,
    FusionStats,
    Ruleset,
)
from redactor.config import config
from redactor.detection.bbox_utils import iou
from redactor.detection.detection_config import (
    LAYER_CONFIDENCE_BANDS,
    LOW_CONFIDENCE_MAX,
    MEDIUM_CONFIDENCE_MAX,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Normalisation
# ---------------------------------------------------------------------------

def normalize_confidence(confidence: float, layer: DetectionLayer) -> float:
    """Clamp *confidence* into the band for *layer*.  Idempotent."""
    lo, hi = LAYER_CONFIDENCE_BANDS.get(layer, (0.5, 1.0))
    return min(max(confidence, lo), hi)


def normalize_entity(entity: DetectedEntity) -> DetectedEntity:
    conf = normalize_confidence(entity.confidence, entity.layer)
    if conf == entity.confidence:
        return entity
    return entity.model_copy(update={"confidence": conf})


# ---------------------------------------------------------------------------
# Deduplication
# ---------------------------------------------------------------------------

def _rank_key(e: DetectedEntity) -> tuple:
    """Total order for NMS.

    Trust first (layer, confidence, value length); the geometric and
    identity tail only makes ties deterministic so the kept set does not
    depend on input order.
    """
    b = e.bbox
    return (
        -int(e.layer), -e.confidence, -len(e.value),
        b.page_index, b.x, b.y, b.w, b.h,
        e.type.value, e.value, e.id,
    )


def deduplicate_entities(
    entities: Iterable[DetectedEntity],
    iou_threshold: float,
) -> list[DetectedEntity]:
    """Greedy NMS: keep an entity unless it overlaps a kept one by
    *iou_threshold* or more on the same page.

    Every pair in the result therefore has IoU strictly below the
    threshold.
    """
    kept: list[DetectedEntity] = []
    by_page: dict[int, list[DetectedEntity]] = {}
    for entity in sorted(entities, key=_rank_key):
        page_kept = by_page.setdefault(entity.bbox.page_index, [])
        if any(iou(entity.bbox, k.bbox) >= iou_threshold for k in page_kept):
            continue
        page_kept.append(entity)
        kept.append(entity)
    return kept


def resolve_type_conflicts(entities: Sequence[DetectedEntity]) -> list[DetectedEntity]:
    """Among entities with an identical box keep only the best-ranked one.

    NMS already enforces this whenever the threshold is at most 1.0; it is
    exposed separately for callers combining entity lists of their own.
    """
    best: dict[tuple, DetectedEntity] = {}
    for entity in sorted(entities, key=_rank_key):
        b = entity.bbox
        best.setdefault((b.page_index, b.x, b.y, b.w, b.h), entity)
    return sorted(best.values(), key=_rank_key)


# ---------------------------------------------------------------------------
# Statistics
# ---------------------------------------------------------------------------

def compute_stats(
    entities: Sequence[DetectedEntity],
    deduplicated: int = 0,
    filtered: int = 0,
) -> FusionStats:
    bands = ConfidenceBands()
    for e in entities:
        if e.confidence < LOW_CONFIDENCE_MAX:
            bands.low += 1
        elif e.confidence < MEDIUM_CONFIDENCE_MAX:
            bands.medium += 1
        else:
            bands.high += 1
    by_layer = Counter(DetectionLayer(e.layer).name for e in entities)
    return FusionStats(
        total=len(entities),
        by_layer=dict(sorted(by_layer.items())),
        by_confidence=bands,
        deduplicated=deduplicated,
        filtered=filtered,
    )


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

class FusionEngine:
    """Fuses per-layer entity lists for one page.

    Usage:
        engine = FusionEngine(ruleset=ruleset_for(doc_type), confidence_threshold=0.5)
        result = engine.fuse(regex_entities, spatial_entities, heuristic_entities)
    """

    def __init__(
        self,
        ruleset: Ruleset | None = None,
        confidence_threshold: float | None = None,
        iou_threshold: float | None = None,
    ) -> None:
        self.ruleset = ruleset or Ruleset()
        self.confidence_threshold = (
            config.confidence_threshold if confidence_threshold is None else confidence_threshold
        )
        self.iou_threshold = config.dedup_iou_threshold if iou_threshold is None else iou_threshold

    def apply_document_type_boost(self, entities: Sequence[DetectedEntity]) -> list[DetectedEntity]:
        boost = self.ruleset.confidence_boost
        if boost == 1.0:
            return list(entities)
        return [
            e.model_copy(update={"confidence": min(e.confidence * boost, 1.0)})
            for e in entities
        ]

    def fuse(self, *sources: Iterable[DetectedEntity]) -> FusionResult:
        merged = [normalize_entity(e) for source in sources for e in source]
        if not merged:
            return FusionResult()

        kept = deduplicate_entities(merged, self.iou_threshold)
        passed = [e for e in kept if e.confidence >= self.confidence_threshold]
        final = self.apply_document_type_boost(passed)

        stats = compute_stats(
            final,
            deduplicated=len(merged) - len(kept),
            filtered=len(kept) - len(passed),
        )
        logger.info(
            "Fusion: %d in, %d after NMS, %d above threshold %.2f (boost x%.2f)",
            len(merged), len(kept), len(final),
            self.confidence_threshold, self.ruleset.confidence_boost,
        )
        return FusionResult(entities=final, stats=stats)
