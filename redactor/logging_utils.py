"""Logging setup with a filter that keeps PII out of log output.

Detectors log counts and offsets, but exception messages and debug lines can
still carry matched text.  :class:`PIISafeFilter` scrubs anything that looks
like one of the identifiers this package detects before a record is emitted.
"""

from __future__ import annotations

import logging
import logging.config
import re

PII_LOG_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}"),
    re.compile(r"\b(?:\d[ -]?){11,18}\d\b"),          # cards, 12-digit IDs
    re.compile(r"\b[A-Z]{5}[0-9]{4}[A-Z]\b"),         # PAN
    re.compile(r"(?:\+91[\s-]?)?\b[6-9]\d{4}[\s-]?\d{5}\b"),
)

REDACTED = "[REDACTED]"


class PIISafeFilter(logging.Filter):
    """Replace PII-looking substrings in the message, its arguments and any
    traceback attached to the record.

    The traceback is rendered here, ahead of the formatter, which then reuses
    the cached ``exc_text`` instead of formatting the raw exception again.
    """

    _formatter = logging.Formatter()

    def _sanitize(self, value: object) -> object:
        if not isinstance(value, str):
            return value
        for pattern in PII_LOG_PATTERNS:
            value = pattern.sub(REDACTED, value)
        return value

    def filter(self, record: logging.LogRecord) -> bool:
        record.msg = self._sanitize(record.msg)
        if isinstance(record.args, tuple):
            record.args = tuple(self._sanitize(a) for a in record.args)
        elif isinstance(record.args, dict):
            record.args = {k: self._sanitize(v) for k, v in record.args.items()}
        if record.exc_info and not record.exc_text:
            record.exc_text = self._formatter.formatException(record.exc_info)
        record.exc_text = self._sanitize(record.exc_text)
        record.stack_info = self._sanitize(record.stack_info)
        return True


def setup_logging(level: str = "INFO") -> None:
    """Configure the root logger with a stderr handler and the PII filter."""
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "filters": {
                "pii_safe": {"()": PIISafeFilter},
            },
            "formatters": {
                "default": {
                    "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                }
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "stream": "ext://sys.stderr",
                    "formatter": "default",
                    "filters": ["pii_safe"],
                }
            },
            "loggers": {
                "": {"handlers": ["console"], "level": level.upper()},
                "httpx": {"level": "WARNING"},
            },
        }
    )
