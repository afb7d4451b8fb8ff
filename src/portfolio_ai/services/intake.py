"""Conversation and message intake.

A conversation always comes with exactly one artefact, created in DRAFT.
Messages are recorded PENDING and handed to the ``MessageProcessor`` by the
caller.  A FAILED message is never re-entered; ``resubmit`` creates a fresh
PENDING message carrying the same payload.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from portfolio_ai.analysis.models import Artefact, Conversation
from portfolio_ai.exceptions import MessageStateError, ValidationError
from portfolio_ai.processing.models import Message, MessageProcessingStatus, PayloadKind, RawPayload

if TYPE_CHECKING:
    from portfolio_ai.persistence.store import PortfolioStore
    from portfolio_ai.specialties.catalog import SpecialtyCatalog

log = logging.getLogger(__name__)


class MessageIntake:
    def __init__(self, store: PortfolioStore, catalog: SpecialtyCatalog, default_specialty: str = "gp") -> None:
        self._store = store
        self._catalog = catalog
        self._default_specialty = default_specialty

    def open_conversation(self, owner_id: str, specialty_id: Optional[str] = None) -> Conversation:
        """Create a conversation and its DRAFT artefact."""
        specialty_id = specialty_id or self._default_specialty
        if not self._catalog.has(specialty_id):
            raise ValidationError(f"Unknown specialty {specialty_id!r}")

        artefact = Artefact(conversation_id="", specialty_id=specialty_id)
        conversation = Conversation(owner_id=owner_id, specialty_id=specialty_id, artefact_id=artefact.id)
        artefact.conversation_id = conversation.id

        self._store.save_artefact(artefact)
        self._store.save_conversation(conversation)
        log.info("Conversation %s opened for %s (artefact %s)", conversation.id, owner_id, artefact.id)
        return conversation

    def submit(self, conversation_id: str, payload: RawPayload) -> Message:
        """Record a new PENDING message in the conversation."""
        conversation = self._conversation(conversation_id)
        if payload.kind is PayloadKind.TEXT and not payload.ref.strip():
            raise ValidationError("Text message is empty")
        return self._append(conversation, Message(conversation_id=conversation.id, payload=payload))

    def submit_text(self, conversation_id: str, text: str) -> Message:
        return self.submit(conversation_id, RawPayload(kind=PayloadKind.TEXT, ref=text))

    def resubmit(self, failed_message_id: str) -> Message:
        """New PENDING message with the payload of a FAILED one."""
        failed = self._store.find_message(failed_message_id)
        if failed is None:
            raise ValidationError(f"Unknown message {failed_message_id}")
        if failed.status is not MessageProcessingStatus.FAILED:
            raise MessageStateError(
                f"Only FAILED messages can be re-submitted ({failed.id} is {failed.status.value})"
            )
        conversation = self._conversation(failed.conversation_id)
        message = Message(
            conversation_id=conversation.id,
            payload=failed.payload.model_copy(),
            resubmitted_from=failed.id,
        )
        log.info("Message %s re-submitted as %s", failed.id, message.id)
        return self._append(conversation, message)

    def _append(self, conversation: Conversation, message: Message) -> Message:
        self._store.save_message(message)
        conversation.message_ids.append(message.id)
        self._store.save_conversation(conversation)
        log.info("Message %s PENDING in conversation %s", message.id, conversation.id)
        return message

    def _conversation(self, conversation_id: str) -> Conversation:
        conversation = self._store.find_conversation(conversation_id)
        if conversation is None:
            raise ValidationError(f"Unknown conversation {conversation_id}")
        return conversation
