"""Shared fixtures for portfolio-ai tests."""

from __future__ import annotations

import copy
import logging
from typing import Any, Callable

import pytest

from portfolio_ai.analysis.engine import AnalysisEngine
from portfolio_ai.analysis.models import Conversation
from portfolio_ai.core.config import AnalysisConfig, PipelineConfig
from portfolio_ai.persistence.store import PortfolioStore
from portfolio_ai.processing.models import Message, MessageProcessingStatus, PayloadKind, RawPayload
from portfolio_ai.services.intake import MessageIntake
from portfolio_ai.specialties.catalog import SpecialtyCatalog
from portfolio_ai.specialties.loader import specialty_from_dict
from portfolio_ai.specialties.models import SpecialtyConfig
from tests.fakes.fake_persistence import FakePersistenceBackend
from tests.fakes.fake_services import FakeGenerationService

# Two entry types.  CASE_T has an optional section; EVENT_T has a required
# section without a follow-up question.
MINI_SPECIALTY: dict[str, Any] = {
    "id": "mini",
    "name": "Mini Specialty",
    "entry_types": [
        {
            "code": "CASE",
            "label": "Case review",
            "template_id": "CASE_T",
            "classification_signals": ["patient", "diagnosis", "management plan"],
        },
        {
            "code": "EVENT",
            "label": "Significant event",
            "template_id": "EVENT_T",
            "classification_signals": ["incident", "near miss"],
        },
    ],
    "templates": [
        {
            "id": "CASE_T",
            "name": "Case Review",
            "word_count_range": {"min": 5, "max": 200},
            "sections": [
                {
                    "id": "summary", "label": "Summary", "required": True, "weight": 0.5,
                    "prompt_hint": "hint:summary", "extraction_question": "What happened?",
                },
                {
                    "id": "learning", "label": "Learning", "required": True, "weight": 0.3,
                    "prompt_hint": "hint:learning", "extraction_question": "What did you learn?",
                },
                {
                    "id": "notes", "label": "Notes", "required": False, "weight": 0.2,
                    "prompt_hint": "hint:notes",
                },
            ],
        },
        {
            "id": "EVENT_T",
            "name": "Event Analysis",
            "word_count_range": {"min": 0, "max": 500},
            "sections": [
                {
                    "id": "what", "label": "What happened", "required": True, "weight": 0.6,
                    "prompt_hint": "hint:what", "extraction_question": "What went wrong?",
                },
                {
                    "id": "signoff", "label": "Supervisor sign-off", "required": True, "weight": 0.4,
                    "prompt_hint": "hint:signoff",
                },
            ],
        },
    ],
    "capabilities": [
        {
            "code": "C1", "name": "Clinical reasoning",
            "description": "Diagnosis and clinical decision making", "domain_code": "D1",
        },
        {
            "code": "C2", "name": "Teamwork",
            "description": "Working with colleagues across the practice", "domain_code": "D2",
        },
        {
            "code": "C3", "name": "Safety",
            "description": "Recognising incidents and reducing harm", "domain_code": "D2",
        },
    ],
}

CASE_TRANSCRIPT = (
    "A patient came in with chest pain. My diagnosis was angina "
    "and the management plan was a referral. The patient was reassured."
)


@pytest.fixture(autouse=True)
def _restore_root_logging():
    """setup_logging() replaces root handlers; put pytest's back afterwards."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def mini_data() -> dict[str, Any]:
    return copy.deepcopy(MINI_SPECIALTY)


@pytest.fixture
def mini_config(mini_data: dict[str, Any]) -> SpecialtyConfig:
    return specialty_from_dict(mini_data)


@pytest.fixture
def catalog(mini_config: SpecialtyConfig) -> SpecialtyCatalog:
    catalog = SpecialtyCatalog()
    catalog.auto_discover()
    catalog.register(mini_config)
    return catalog


@pytest.fixture
def backend() -> FakePersistenceBackend:
    return FakePersistenceBackend()


@pytest.fixture
def store(backend: FakePersistenceBackend) -> PortfolioStore:
    return PortfolioStore(backend)


@pytest.fixture
def pipeline_config() -> PipelineConfig:
    """Fast retries and short timeouts."""
    return PipelineConfig(
        max_attempts=3,
        transcription_timeout_seconds=0.05,
        cleaning_timeout_seconds=0.05,
        deidentification_timeout_seconds=0.05,
        retry_base_delay=0.0,
    )


@pytest.fixture
def analysis_config() -> AnalysisConfig:
    return AnalysisConfig(
        high_confidence_threshold=0.9,
        generation_timeout_seconds=0.05,
        generation_max_attempts=2,
        generation_retry_base_delay=0.0,
    )


@pytest.fixture
def intake(store: PortfolioStore, catalog: SpecialtyCatalog) -> MessageIntake:
    return MessageIntake(store, catalog, default_specialty="mini")


@pytest.fixture
def generation() -> FakeGenerationService:
    """Fills ``summary`` and ``notes`` of CASE_T and ``what`` of EVENT_T."""
    return FakeGenerationService(
        {
            "hint:summary": "Chest pain in a man in his fifties, referred for angina work-up.",
            "hint:notes": "Consider ECG earlier next time.",
            "hint:what": "A referral letter was sent to the wrong department.",
        }
    )


@pytest.fixture
def engine(
    store: PortfolioStore,
    catalog: SpecialtyCatalog,
    generation: FakeGenerationService,
    analysis_config: AnalysisConfig,
) -> AnalysisEngine:
    return AnalysisEngine(store, catalog, generation, analysis_config)


@pytest.fixture
def completed_message(store: PortfolioStore) -> Callable[[Conversation, str], Message]:
    """Append a message that already reached COMPLETE with ``text`` as transcript."""

    def _make(conversation: Conversation, text: str) -> Message:
        message = Message(
            conversation_id=conversation.id,
            payload=RawPayload(kind=PayloadKind.TEXT, ref=text),
        )
        for status in (
            MessageProcessingStatus.TRANSCRIBING,
            MessageProcessingStatus.CLEANING,
            MessageProcessingStatus.DEIDENTIFYING,
        ):
            message.advance_to(status)
        message.transcript_text = text
        message.advance_to(MessageProcessingStatus.COMPLETE)
        store.save_message(message)
        current = store.get_conversation(conversation.id)
        current.message_ids.append(message.id)
        store.save_conversation(current)
        conversation.message_ids[:] = current.message_ids
        return message

    return _make


@pytest.fixture
def case_conversation(
    intake: MessageIntake,
    completed_message: Callable[[Conversation, str], Message],
) -> Conversation:
    """A mini-specialty conversation holding one COMPLETE case transcript."""
    conversation = intake.open_conversation("dr-test")
    completed_message(conversation, CASE_TRANSCRIPT)
    return conversation
