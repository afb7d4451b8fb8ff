"""Message processing: status model, service contracts, pipeline."""

from __future__ import annotations

from portfolio_ai.processing.deidentify import RegexDeidentifier
from portfolio_ai.processing.models import (
    Message,
    MessageProcessingStatus,
    PayloadKind,
    RawPayload,
    StatusTransition,
)
from portfolio_ai.processing.processor import MessageProcessor, StagePolicies
from portfolio_ai.processing.protocols import (
    CleaningService,
    ContentGenerationService,
    DeidentificationService,
    TranscriptionService,
)
from portfolio_ai.processing.transcribers import PassthroughTranscriptionService

__all__ = [
    "CleaningService",
    "ContentGenerationService",
    "DeidentificationService",
    "Message",
    "MessageProcessingStatus",
    "MessageProcessor",
    "PassthroughTranscriptionService",
    "PayloadKind",
    "RawPayload",
    "RegexDeidentifier",
    "StagePolicies",
    "StatusTransition",
    "TranscriptionService",
]
