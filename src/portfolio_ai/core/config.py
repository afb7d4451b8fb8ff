"""Nested pydantic-settings configuration for the application.

Each sub-config reads its own ``PORTFOLIO_<GROUP>_*`` env vars, e.g.::

    export PORTFOLIO_PIPELINE_MAX_ATTEMPTS=5
    export PORTFOLIO_ANALYSIS_HIGH_CONFIDENCE_THRESHOLD=0.95
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class PipelineConfig(BaseSettings):
    """Message-processing pipeline: retry budget and per-stage timeouts.

    Env vars use ``PORTFOLIO_PIPELINE_`` prefix.
    """

    model_config = {"env_prefix": "PORTFOLIO_PIPELINE_"}

    max_attempts: int = 3
    transcription_timeout_seconds: float = 120.0
    cleaning_timeout_seconds: float = 60.0
    deidentification_timeout_seconds: float = 30.0
    retry_base_delay: float = 0.5
    retry_max_delay: float = 10.0
    retry_jitter_factor: float = 0.5


class AnalysisConfig(BaseSettings):
    """Analysis engine configuration.

    Env vars use ``PORTFOLIO_ANALYSIS_`` prefix.
    """

    model_config = {"env_prefix": "PORTFOLIO_ANALYSIS_"}

    high_confidence_threshold: float = 0.9
    generation_timeout_seconds: float = 60.0
    generation_max_attempts: int = 2
    generation_retry_base_delay: float = 0.5
    capability_limit: int = Field(default=5, ge=1)
    auto_start: bool = True
    transcript_separator: str = "\n\n---\n\n"


class CatalogConfig(BaseSettings):
    """Specialty catalog loading.

    Env vars use ``PORTFOLIO_CATALOG_`` prefix.
    """

    model_config = {"env_prefix": "PORTFOLIO_CATALOG_"}

    auto_discover: bool = True
    specialty_paths: list[Path] = Field(default_factory=list)
    default_specialty: str = "gp"
    weight_tolerance: float = 1e-6


class PersistenceConfig(BaseSettings):
    """Persistence configuration.

    Env vars use ``PORTFOLIO_PERSISTENCE_`` prefix.
    """

    model_config = {"env_prefix": "PORTFOLIO_PERSISTENCE_"}

    backend: Literal["memory", "file"] = "memory"
    store_path: Path = Path("./portfolio-store")


class LLMConfig(BaseSettings):
    """LLM backend used by the cleaning and content-generation services.

    Env vars use ``PORTFOLIO_LLM_`` prefix::

        export PORTFOLIO_LLM_MODEL=openai/gpt-4o-mini
    """

    model_config = {"env_prefix": "PORTFOLIO_LLM_"}

    model: str = "openai/gpt-4o-mini"
    api_key: str = "no-key"
    base_url: str = ""
    cleaning_temperature: float = 0.1
    generation_temperature: float = 0.4
    timeout: float = 60.0
    max_retries: int = 1  # pipeline and engine retries wrap every call
    retry_max_delay: float = 30.0


class ObservabilityConfig(BaseSettings):
    """Observability configuration.

    Env vars use ``PORTFOLIO_OBSERVABILITY_`` prefix.
    """

    model_config = {"env_prefix": "PORTFOLIO_OBSERVABILITY_"}

    service_name: str = "portfolio-ai"
    log_level: str = "INFO"
    json_logs: Optional[bool] = None


class AppSettings(BaseSettings):
    """Top-level application settings aggregating all sub-configs."""

    pipeline: PipelineConfig = PipelineConfig()
    analysis: AnalysisConfig = AnalysisConfig()
    catalog: CatalogConfig = CatalogConfig()
    persistence: PersistenceConfig = PersistenceConfig()
    llm: LLMConfig = LLMConfig()
    observability: ObservabilityConfig = ObservabilityConfig()
