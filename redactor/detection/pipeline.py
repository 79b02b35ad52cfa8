"""PII detection pipeline — runs every detector layer on one page and fuses
the results.

Order of work for a page:
  1. classify the document from its text and pick the matching ruleset;
  2. run the pattern, spatial (lines, blocks, key-value pairs), heuristic
     and AI layers concurrently;
  3. fuse (normalise, NMS, threshold, boost);
  4. unmask the entity types the caller asked to keep visible.

A failing local detector is logged and contributes nothing; the page is
still processed with whatever the other layers found.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Iterable, Optional, Sequence

from models.schemas import (
    DetectedEntity,
    DocumentClassification,
    PIIType,
    PipelineResult,
    Ruleset,
    TextBlock,
    Word,
)
from redactor.config import config
from redactor.detection.ai_detector import AIResult, detect_ai
from redactor.detection.document_router import classify_document, ruleset_for
from redactor.detection.heuristic_detector import detect_heuristic
from redactor.detection.key_value import SpatialLayout, map_spatial_layout
from redactor.detection.layout import detect_table_columns
from redactor.detection.merge import FusionEngine
from redactor.detection.regex_detector import detect_patterns

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str], None]


def _collect(future: Future, layer: str, page_index: int) -> list[DetectedEntity]:
    """Result of one detector future, or [] if it raised."""
    try:
        return list(future.result())
    except Exception:
        logger.exception("Page %d: %s detector failed, continuing without it", page_index, layer)
        return []


def _apply_required_fields(
    entities: Sequence[DetectedEntity],
    required_fields: frozenset[PIIType],
) -> list[DetectedEntity]:
    """Leave entities of a kept type visible; everything else stays masked."""
    if not required_fields:
        return list(entities)
    return [
        e.model_copy(update={"masked": False}) if e.type in required_fields else e
        for e in entities
    ]


def detect_pii_on_page(
    full_text: str,
    words: Sequence[Word],
    *,
    page_index: int = 0,
    confidence_threshold: Optional[float] = None,
    required_fields: Iterable[PIIType] = (),
    ai_engine=None,
    on_progress: ProgressCallback | None = None,
    max_workers: Optional[int] = None,
) -> PipelineResult:
    """Detect and fuse PII on a single page.

    *words* are the OCR tokens in reading order and *full_text* is the page
    text they were recognised from.  *ai_engine* is any object with
    ``is_loaded()`` and ``generate(...)``; when omitted the AI layer is
    skipped.  Entities whose type is in *required_fields* are returned with
    ``masked=False``.
    """
    required = frozenset(required_fields)

    if not full_text.strip() and not words:
        logger.info("Page %d: no text, nothing to detect", page_index)
        return PipelineResult(page_index=page_index)

    t0 = time.perf_counter()

    classification: DocumentClassification = classify_document(full_text)
    ruleset: Ruleset = ruleset_for(classification.primary_type)
    logger.info(
        "Page %d: classified as %s (%.2f)",
        page_index, classification.primary_type.value, classification.confidence,
    )

    run_regex = config.regex_enabled
    run_spatial = config.spatial_enabled and ruleset.prioritize_spatial
    run_heuristic = config.heuristic_enabled and not ruleset.skip_heuristic
    run_ai = config.ai_detection_enabled and ai_engine is not None

    regex_entities: list[DetectedEntity] = []
    spatial_entities: list[DetectedEntity] = []
    text_blocks: Optional[list[TextBlock]] = None
    heuristic_entities: list[DetectedEntity] = []
    ai_result = AIResult([], None)

    workers = config.max_workers if max_workers is None else max_workers
    with ThreadPoolExecutor(max_workers=max(1, workers)) as pool:
        futures: dict[str, Future] = {}
        if run_regex:
            futures["pattern"] = pool.submit(
                detect_patterns, full_text, words, page_index, ruleset.strict_patterns,
            )
        if run_spatial:
            futures["spatial"] = pool.submit(map_spatial_layout, words, page_index)
        if run_heuristic:
            futures["heuristic"] = pool.submit(detect_heuristic, words, page_index)
        if run_ai:
            futures["ai"] = pool.submit(
                detect_ai, words, full_text, ai_engine, required, page_index, on_progress,
            )

        if "pattern" in futures:
            regex_entities = _collect(futures["pattern"], "pattern", page_index)
        if "spatial" in futures:
            try:
                layout: SpatialLayout = futures["spatial"].result()
            except Exception:
                logger.exception("Page %d: spatial detector failed, continuing without it", page_index)
            else:
                spatial_entities = layout.entities
                text_blocks = layout.blocks
        if "heuristic" in futures:
            heuristic_entities = _collect(futures["heuristic"], "heuristic", page_index)
        if "ai" in futures:
            try:
                ai_result = futures["ai"].result()
            except Exception:
                logger.exception("Page %d: AI detector failed, continuing without it", page_index)

    table_columns = detect_table_columns(words) if ruleset.enable_table_detection else None

    fusion = FusionEngine(ruleset=ruleset, confidence_threshold=confidence_threshold)
    fused = fusion.fuse(regex_entities, spatial_entities, heuristic_entities, ai_result.entities)
    entities = _apply_required_fields(fused.entities, required)

    logger.info(
        "Page %d: %d entities (pattern=%d spatial=%d heuristic=%d ai=%d) in %.0fms",
        page_index, len(entities),
        len(regex_entities), len(spatial_entities), len(heuristic_entities),
        len(ai_result.entities), (time.perf_counter() - t0) * 1000,
    )

    return PipelineResult(
        page_index=page_index,
        entities=entities,
        classification=classification,
        ruleset=ruleset,
        stats=fused.stats,
        text_blocks=text_blocks,
        table_columns=table_columns,
        ai_strategy=ai_result.strategy,
    )
