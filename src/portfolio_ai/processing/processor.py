"""Message processing pipeline: transcribe, clean, de-identify.

Each stage is committed in two writes: entering the stage (status only) and
leaving it (stage output together with the move to the next status).  A
cancelled attempt therefore leaves the message at its last committed status
with the last committed transcript, and ``process`` can pick it up again.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Awaitable, Callable, Optional

from portfolio_ai.core.events import TRANSCRIPT_READY, Event, EventBus
from portfolio_ai.core.locks import KeyedLocks
from portfolio_ai.core.retry import RetryPolicy, call_with_retry, require_text
from portfolio_ai.exceptions import ContentError, MessageStateError, PipelineFailure
from portfolio_ai.hooks.stage_tracker import track_stage
from portfolio_ai.processing.models import Message, MessageProcessingStatus, next_status
from portfolio_ai.processing.protocols import (
    CleaningService,
    DeidentificationService,
    TranscriptionService,
)

if TYPE_CHECKING:
    from portfolio_ai.core.config import PipelineConfig
    from portfolio_ai.hooks.dead_letter import DeadLetterLedger
    from portfolio_ai.persistence.store import PortfolioStore

log = logging.getLogger(__name__)

Status = MessageProcessingStatus


@dataclass(frozen=True)
class StagePolicies:
    """Retry/timeout policy per pipeline stage."""

    transcription: RetryPolicy
    cleaning: RetryPolicy
    deidentification: RetryPolicy

    @classmethod
    def from_config(cls, config: PipelineConfig) -> StagePolicies:
        def policy(timeout: float) -> RetryPolicy:
            return RetryPolicy(
                max_attempts=config.max_attempts,
                timeout_seconds=timeout,
                base_delay=config.retry_base_delay,
                max_delay=config.retry_max_delay,
                jitter_factor=config.retry_jitter_factor,
            )

        return cls(
            transcription=policy(config.transcription_timeout_seconds),
            cleaning=policy(config.cleaning_timeout_seconds),
            deidentification=policy(config.deidentification_timeout_seconds),
        )


class MessageProcessor:
    """Drives one message at a time from PENDING to COMPLETE or FAILED.

    Many messages may be processed concurrently; one message id is only ever
    processed by a single attempt (claim via ``KeyedLocks``).
    """

    def __init__(
        self,
        store: PortfolioStore,
        transcription: TranscriptionService,
        cleaning: CleaningService,
        deidentification: DeidentificationService,
        policies: StagePolicies,
        *,
        locks: Optional[KeyedLocks] = None,
        events: Optional[EventBus] = None,
        dead_letters: Optional[DeadLetterLedger] = None,
    ) -> None:
        self._store = store
        self._transcription = transcription
        self._cleaning = cleaning
        self._deidentification = deidentification
        self._policies = policies
        self._locks = locks if locks is not None else KeyedLocks("message")
        self._events = events
        self._dead_letters = dead_letters

    async def process(self, message: Message) -> Message:
        """Run ``message`` through the remaining stages.

        Accepts PENDING messages and messages left mid-pipeline by a cancelled
        attempt.  Returns the message in COMPLETE or FAILED.

        Raises:
            MessageStateError: The message is already COMPLETE or FAILED.
            MessageClaimedError: Another attempt is processing this message.
            asyncio.CancelledError: Propagated; the message stays at its last
                committed status.
        """
        async with self._locks.claim(message.id):
            # reload under the claim; the caller's copy may be stale
            current = self._store.find_message(message.id) or message
            if current.status.is_terminal:
                raise MessageStateError(
                    f"Message {current.id} is already {current.status.value}"
                )

            try:
                await self._run_stages(current)
            except PipelineFailure as failure:
                self._fail(current, failure)
                return current

        log.info("Message %s COMPLETE (%d chars)", current.id, len(current.transcript_text or ""))
        if self._events is not None:
            await self._events.publish(
                Event(
                    event_type=TRANSCRIPT_READY,
                    source="message_processor",
                    data={"message_id": current.id, "conversation_id": current.conversation_id},
                )
            )
        return current

    async def _run_stages(self, message: Message) -> None:
        if message.status is Status.PENDING:
            self._advance(message, Status.TRANSCRIBING)

        if message.status is Status.TRANSCRIBING:
            payload = message.payload
            await self._stage(
                message,
                lambda: self._transcription.transcribe(payload),
                self._policies.transcription,
            )

        if message.status is Status.CLEANING:
            text = message.transcript_text or ""
            await self._stage(
                message,
                lambda: self._cleaning.clean(text),
                self._policies.cleaning,
            )

        if message.status is Status.DEIDENTIFYING:
            text = message.transcript_text or ""
            await self._stage(
                message,
                lambda: self._deidentification.deidentify(text),
                self._policies.deidentification,
            )

    async def _stage(
        self,
        message: Message,
        call: Callable[[], Awaitable[str]],
        policy: RetryPolicy,
    ) -> None:
        """Run one stage call and commit its output with the move to the next status."""
        stage = message.status
        with track_stage(message.id, stage.value) as timing:
            try:
                text = await call_with_retry(call, policy, label=stage.value, validate=require_text)
            except ContentError as e:
                raise PipelineFailure(stage.value, f"content error: {e}") from e
            except asyncio.CancelledError:
                log.warning("Message %s cancelled during %s", message.id, stage.value)
                raise
            except Exception as e:
                # retry budget spent; call_with_retry names the last cause
                raise PipelineFailure(stage.value, str(e)) from e

        message.transcript_text = text
        self._advance(message, next_status(stage), duration_ms=timing.duration_ms)

    def _advance(
        self,
        message: Message,
        status: MessageProcessingStatus,
        *,
        duration_ms: Optional[float] = None,
    ) -> None:
        previous = message.status
        message.advance_to(status, duration_ms=duration_ms)
        self._store.save_message(message)
        log.info("Message %s %s -> %s", message.id, previous.value, status.value)

    def _fail(self, message: Message, failure: PipelineFailure) -> None:
        message.advance_to(Status.FAILED, detail=str(failure))
        self._store.save_message(message)
        log.error("Message %s FAILED at %s: %s", message.id, failure.stage, failure.cause)
        if self._dead_letters is not None:
            self._dead_letters.record(message)
