"""Startup validation: fail-fast on critical misconfigurations."""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from portfolio_ai.core.config import AppSettings

log = logging.getLogger(__name__)


def validate_settings(settings: AppSettings) -> None:
    """Validate application settings at startup. Raises ValueError on fatal misconfig."""
    _check_pipeline(settings)
    _check_analysis(settings)
    _check_persistence(settings)


def _check_pipeline(settings: AppSettings) -> None:
    pipeline = settings.pipeline
    if pipeline.max_attempts < 1:
        raise ValueError("PORTFOLIO_PIPELINE_MAX_ATTEMPTS must be at least 1.")
    timeouts = {
        "TRANSCRIPTION_TIMEOUT_SECONDS": pipeline.transcription_timeout_seconds,
        "CLEANING_TIMEOUT_SECONDS": pipeline.cleaning_timeout_seconds,
        "DEIDENTIFICATION_TIMEOUT_SECONDS": pipeline.deidentification_timeout_seconds,
    }
    for name, value in timeouts.items():
        if value <= 0:
            raise ValueError(f"PORTFOLIO_PIPELINE_{name} must be positive, got {value}.")


def _check_analysis(settings: AppSettings) -> None:
    analysis = settings.analysis
    if not 0.0 < analysis.high_confidence_threshold <= 1.0:
        raise ValueError(
            "PORTFOLIO_ANALYSIS_HIGH_CONFIDENCE_THRESHOLD must be in (0, 1], "
            f"got {analysis.high_confidence_threshold}."
        )
    if analysis.generation_timeout_seconds <= 0:
        raise ValueError("PORTFOLIO_ANALYSIS_GENERATION_TIMEOUT_SECONDS must be positive.")
    if analysis.generation_max_attempts < 1:
        raise ValueError("PORTFOLIO_ANALYSIS_GENERATION_MAX_ATTEMPTS must be at least 1.")


def _check_persistence(settings: AppSettings) -> None:
    """Reject unusable file stores; warn about file persistence in containers."""
    if settings.persistence.backend != "file":
        return

    path = settings.persistence.store_path
    if path.exists() and not path.is_dir():
        raise ValueError(f"PORTFOLIO_PERSISTENCE_STORE_PATH {path} exists and is not a directory.")

    is_container = bool(
        os.environ.get("ECS_CONTAINER_METADATA_URI")
        or os.environ.get("KUBERNETES_SERVICE_HOST")
    )
    if is_container:
        log.warning(
            "PORTFOLIO_PERSISTENCE_BACKEND=file in a container environment. "
            "Sessions and artefacts will be lost on container restart."
        )
