"""Analysis: classification, templates, the resumable engine and artefact lifecycle."""

from __future__ import annotations

from portfolio_ai.analysis.capabilities import CapabilityTagger
from portfolio_ai.analysis.classifier import EntryTypeClassifier
from portfolio_ai.analysis.engine import AnalysisEngine
from portfolio_ai.analysis.lifecycle import ArtefactLifecycle
from portfolio_ai.analysis.models import (
    AnalysisNode,
    AnalysisResponse,
    AnalysisSession,
    Artefact,
    ArtefactStatus,
    ClassificationCandidate,
    Conversation,
    ResumeAction,
    StartAction,
    parse_action,
)
from portfolio_ai.analysis.templates import TemplateEngine, TemplateScore
from portfolio_ai.analysis.trigger import AnalysisTrigger

__all__ = [
    "AnalysisEngine",
    "AnalysisNode",
    "AnalysisResponse",
    "AnalysisSession",
    "AnalysisTrigger",
    "Artefact",
    "ArtefactLifecycle",
    "ArtefactStatus",
    "CapabilityTagger",
    "ClassificationCandidate",
    "Conversation",
    "EntryTypeClassifier",
    "ResumeAction",
    "StartAction",
    "TemplateEngine",
    "TemplateScore",
    "parse_action",
]
