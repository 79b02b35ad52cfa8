"""Runtime settings for scan-redact.

A single ``AppConfig`` instance (``config``) is created on import.  Tunables
a user may change are kept in ``<data_dir>/settings.json`` and applied over
the defaults; the LLM API key is read from ``SCAN_REDACT_LLM_API_KEY`` and
is never written to disk.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from pathlib import Path
from typing import ClassVar

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

_APP_DIR_NAME = "scan-redact"


def _default_data_dir() -> Path:
    """Per-user application directory, or ``$SCAN_REDACT_DATA_DIR`` if set."""
    override = os.environ.get("SCAN_REDACT_DATA_DIR")
    if override:
        return Path(override)
    home = Path.home()
    if sys.platform == "win32":
        root = Path(os.environ.get("LOCALAPPDATA") or home / "AppData" / "Local")
    elif sys.platform == "darwin":
        root = home / "Library" / "Application Support"
    else:
        root = Path(os.environ.get("XDG_DATA_HOME") or home / ".local" / "share")
    return root / _APP_DIR_NAME


class AppConfig(BaseModel):
    """Detector switches, fusion thresholds and AI connection settings."""

    data_dir: Path = Field(default_factory=_default_data_dir)

    # Which detector layers run
    regex_enabled: bool = True
    heuristic_enabled: bool = True
    spatial_enabled: bool = True
    ai_detection_enabled: bool = True

    # Fusion
    confidence_threshold: float = Field(default=0.5, ge=0.0, le=1.0)
    dedup_iou_threshold: float = Field(
        default=0.5, gt=0.0, le=1.0,
        description=(
            "Two kept entities on the same page never overlap by this IoU "
            "or more; the lower-ranked one is suppressed."
        ),
    )

    # OpenAI-compatible endpoint for the AI layer
    llm_api_url: str = ""
    llm_api_key: str = Field(
        default_factory=lambda: os.environ.get("SCAN_REDACT_LLM_API_KEY", ""),
    )
    llm_api_model: str = ""
    ai_word_id_timeout: float = Field(default=30.0, gt=0.0)
    ai_phrase_timeout: float = Field(default=10.0, gt=0.0)
    ai_max_retries: int = Field(default=3, ge=1, le=10)
    ai_retry_backoff_base: float = Field(default=1.5, ge=1.0)
    ai_tokens_per_call: int = Field(default=800, ge=1)

    max_workers: int = Field(default=4, ge=1, le=32)
    log_level: str = "INFO"

    # Written to settings.json; secrets stay out.
    _PERSISTABLE_KEYS: ClassVar[frozenset[str]] = frozenset({
        "regex_enabled", "heuristic_enabled", "spatial_enabled",
        "ai_detection_enabled",
        "confidence_threshold", "dedup_iou_threshold",
        "llm_api_url", "llm_api_model",
        "ai_word_id_timeout", "ai_phrase_timeout", "ai_tokens_per_call",
        "max_workers", "log_level",
    })

    def model_post_init(self, __context: object) -> None:
        self._apply_saved_settings()

    @property
    def settings_path(self) -> Path:
        return self.data_dir / "settings.json"

    def _apply_saved_settings(self) -> None:
        path = self.settings_path
        if not path.is_file():
            return
        try:
            saved = json.loads(path.read_text(encoding="utf-8-sig"))
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable settings file %s: %s", path, exc)
            return
        if not isinstance(saved, dict):
            logger.warning("Ignoring settings file %s: expected a JSON object", path)
            return
        applied = [key for key in saved if key in self._PERSISTABLE_KEYS]
        for key in applied:
            setattr(self, key, saved[key])
        logger.info("Applied %d saved setting(s) from %s", len(applied), path)

    def save_user_settings(self) -> None:
        """Write the user-editable settings to ``settings_path``."""
        snapshot = {key: getattr(self, key) for key in sorted(self._PERSISTABLE_KEYS)}
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            self.settings_path.write_text(
                json.dumps(snapshot, indent=2, default=str), encoding="utf-8",
            )
        except OSError as exc:
            logger.warning("Could not write settings to %s: %s", self.settings_path, exc)
            return
        logger.info("Settings written to %s", self.settings_path)


config = AppConfig()
