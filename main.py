"""Command-line entry point for scan-redact.

Reads the OCR words of one page as JSON, runs the detection pipeline and
prints the resulting ``PipelineResult`` as JSON on stdout.

The words file holds either a list of words or an object
``{"words": [...], "text": "..."}``; each word is
``{"text": ..., "confidence": ..., "bbox": {"x", "y", "w", "h"}}``.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from models.schemas import PIIType, Word
from redactor.config import config
from redactor.detection.pipeline import detect_pii_on_page
from redactor.doc_types import required_types_for
from redactor.llm.remote_engine import remote_llm_engine
from redactor.logging_utils import setup_logging

log = logging.getLogger("scan_redact")

_WORDS = TypeAdapter(list[Word])


def _load_page(path: Path) -> tuple[list[Word], str | None]:
    data = json.loads(path.read_text(encoding="utf-8"))
    text = None
    if isinstance(data, dict):
        text = data.get("text")
        data = data.get("words", [])
    return _WORDS.validate_python(data), text


def _required_fields(keep: list[str], doc_type: str | None) -> frozenset[PIIType]:
    if doc_type:
        return required_types_for(doc_type, keep)
    return frozenset(PIIType(k.upper()) for k in keep)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="scan-redact",
        description="Detect PII in the OCR words of a scanned page.",
    )
    parser.add_argument("words", type=Path, help="JSON file with the page's OCR words")
    parser.add_argument("--text", type=Path, help="page text file (default: words joined by spaces)")
    parser.add_argument("--threshold", type=float, default=None,
                        help=f"confidence threshold (default {config.confidence_threshold})")
    parser.add_argument("--keep", action="append", default=[], metavar="FIELD",
                        help="PII type (or field id with --doc-type) to leave unmasked; repeatable")
    parser.add_argument("--doc-type", default=None,
                        help="document type whose field ids --keep refers to, e.g. aadhaar")
    parser.add_argument("--page", type=int, default=0, help="page index stamped on the output")
    parser.add_argument("--ai", action="store_true",
                        help="enable the remote AI layer (needs API url, key and model configured)")
    parser.add_argument("--log-level", default=config.log_level)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)

    try:
        words, embedded_text = _load_page(args.words)
        if args.text is not None:
            full_text = args.text.read_text(encoding="utf-8")
        elif embedded_text is not None:
            full_text = embedded_text
        else:
            full_text = " ".join(w.text for w in words)
        required = _required_fields(args.keep, args.doc_type)
    except (OSError, ValueError, ValidationError, KeyError) as e:
        log.error("Could not read input: %s", e)
        return 2

    ai_engine = None
    if args.ai:
        if remote_llm_engine.configure_from_settings():
            ai_engine = remote_llm_engine
        else:
            log.warning("AI layer requested but the remote engine is not configured")

    try:
        result = detect_pii_on_page(
            full_text,
            words,
            page_index=args.page,
            confidence_threshold=args.threshold,
            required_fields=required,
            ai_engine=ai_engine,
            on_progress=lambda msg: log.info("%s", msg),
        )
    finally:
        remote_llm_engine.close()

    print(result.model_dump_json(indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
