"""portfolio-ai: turns clinical-training conversations into portfolio artefacts.

Usage::

    from portfolio_ai import AppSettings, build_runtime

    runtime = build_runtime(AppSettings())
    conversation = runtime.intake.open_conversation("dr-1")
    await runtime.submit_text(conversation.id, "I saw a patient who ...")
    response = await runtime.engine.resume(conversation.artefact_id, {...})
"""

from __future__ import annotations

from portfolio_ai.analysis import (
    AnalysisEngine,
    AnalysisNode,
    AnalysisResponse,
    ArtefactLifecycle,
    ArtefactStatus,
    EntryTypeClassifier,
    TemplateEngine,
)
from portfolio_ai.core.config import AppSettings
from portfolio_ai.exceptions import PortfolioError
from portfolio_ai.factory import PortfolioRuntime, build_runtime
from portfolio_ai.processing import Message, MessageProcessingStatus, MessageProcessor
from portfolio_ai.specialties import SpecialtyCatalog, get_catalog

__version__ = "0.1.0"

__all__ = [
    "AnalysisEngine",
    "AnalysisNode",
    "AnalysisResponse",
    "AppSettings",
    "ArtefactLifecycle",
    "ArtefactStatus",
    "EntryTypeClassifier",
    "Message",
    "MessageProcessingStatus",
    "MessageProcessor",
    "PortfolioError",
    "PortfolioRuntime",
    "SpecialtyCatalog",
    "TemplateEngine",
    "build_runtime",
    "get_catalog",
]
