"""Wires the runtime object graph from ``AppSettings``.

The four opaque services can be injected; anything left out gets the default
implementation (passthrough transcription, LiteLLM cleaning and generation,
regex de-identification)::

    runtime = build_runtime(AppSettings())
    conversation = runtime.intake.open_conversation("dr-1")
    await runtime.submit_text(conversation.id, "I saw a patient who ...")
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from portfolio_ai.analysis.engine import AnalysisEngine
from portfolio_ai.analysis.trigger import AnalysisTrigger
from portfolio_ai.core.config import AppSettings, PersistenceConfig
from portfolio_ai.core.events import EventBus
from portfolio_ai.core.startup_checks import validate_settings
from portfolio_ai.hooks.dead_letter import DeadLetterLedger
from portfolio_ai.persistence.file_backend import FilePersistenceBackend
from portfolio_ai.persistence.memory_backend import MemoryPersistenceBackend
from portfolio_ai.persistence.protocols import IPersistenceBackend
from portfolio_ai.persistence.store import PortfolioStore
from portfolio_ai.processing.deidentify import RegexDeidentifier
from portfolio_ai.processing.models import Message
from portfolio_ai.processing.processor import MessageProcessor, StagePolicies
from portfolio_ai.processing.protocols import (
    CleaningService,
    ContentGenerationService,
    DeidentificationService,
    TranscriptionService,
)
from portfolio_ai.processing.transcribers import PassthroughTranscriptionService
from portfolio_ai.providers.llm import LLMCleaningService, LLMClient, LLMContentGenerationService
from portfolio_ai.services.intake import MessageIntake
from portfolio_ai.specialties.catalog import SpecialtyCatalog, build_catalog

log = logging.getLogger(__name__)


@dataclass
class PortfolioRuntime:
    """Everything a transport layer needs, sharing one store and one event bus."""

    settings: AppSettings
    store: PortfolioStore
    catalog: SpecialtyCatalog
    events: EventBus
    intake: MessageIntake
    processor: MessageProcessor
    engine: AnalysisEngine
    trigger: AnalysisTrigger
    dead_letters: DeadLetterLedger

    async def submit_text(self, conversation_id: str, text: str) -> Message:
        """Record a typed message and run it through the pipeline."""
        message = self.intake.submit_text(conversation_id, text)
        return await self.processor.process(message)


def create_backend(config: PersistenceConfig) -> IPersistenceBackend:
    if config.backend == "memory":
        return MemoryPersistenceBackend()
    if config.backend == "file":
        return FilePersistenceBackend(config.store_path)
    raise ValueError(f"Unknown persistence backend: {config.backend!r}")


def build_runtime(
    settings: Optional[AppSettings] = None,
    *,
    transcription: Optional[TranscriptionService] = None,
    cleaning: Optional[CleaningService] = None,
    deidentification: Optional[DeidentificationService] = None,
    generation: Optional[ContentGenerationService] = None,
    backend: Optional[IPersistenceBackend] = None,
    catalog: Optional[SpecialtyCatalog] = None,
) -> PortfolioRuntime:
    settings = settings or AppSettings()
    validate_settings(settings)

    backend = backend or create_backend(settings.persistence)
    store = PortfolioStore(backend)
    if catalog is None:
        catalog = build_catalog(
            auto_discover=settings.catalog.auto_discover,
            paths=settings.catalog.specialty_paths,
            weight_tolerance=settings.catalog.weight_tolerance,
        )

    llm_client: Optional[LLMClient] = None
    if cleaning is None or generation is None:
        llm_client = LLMClient(settings.llm)
    if cleaning is None:
        cleaning = LLMCleaningService(llm_client, settings.llm)
    if generation is None:
        generation = LLMContentGenerationService(llm_client, settings.llm)

    events = EventBus()
    dead_letters = DeadLetterLedger(backend)
    processor = MessageProcessor(
        store,
        transcription or PassthroughTranscriptionService(),
        cleaning,
        deidentification or RegexDeidentifier(),
        StagePolicies.from_config(settings.pipeline),
        events=events,
        dead_letters=dead_letters,
    )
    engine = AnalysisEngine(store, catalog, generation, settings.analysis)
    trigger = AnalysisTrigger(engine, store, auto_start=settings.analysis.auto_start)
    trigger.attach(events)

    log.info(
        "Runtime ready: %s backend, %d specialt%s",
        settings.persistence.backend, len(catalog), "y" if len(catalog) == 1 else "ies",
    )
    return PortfolioRuntime(
        settings=settings,
        store=store,
        catalog=catalog,
        events=events,
        intake=MessageIntake(store, catalog, settings.catalog.default_specialty),
        processor=processor,
        engine=engine,
        trigger=trigger,
        dead_letters=dead_letters,
    )
