"""Message model and its processing status machine.

A message moves strictly forward along
PENDING -> TRANSCRIBING -> CLEANING -> DEIDENTIFYING -> COMPLETE.  FAILED can
be entered from any non-terminal status and is itself terminal.  The status
history is append-only and doubles as the audit trail.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from portfolio_ai.core.types import new_id, utcnow
from portfolio_ai.exceptions import MessageStateError


class MessageProcessingStatus(str, Enum):
    PENDING = "PENDING"
    TRANSCRIBING = "TRANSCRIBING"
    CLEANING = "CLEANING"
    DEIDENTIFYING = "DEIDENTIFYING"
    COMPLETE = "COMPLETE"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (MessageProcessingStatus.COMPLETE, MessageProcessingStatus.FAILED)

    @property
    def is_in_flight(self) -> bool:
        return self in _STAGES


PIPELINE_ORDER: tuple[MessageProcessingStatus, ...] = (
    MessageProcessingStatus.PENDING,
    MessageProcessingStatus.TRANSCRIBING,
    MessageProcessingStatus.CLEANING,
    MessageProcessingStatus.DEIDENTIFYING,
    MessageProcessingStatus.COMPLETE,
)

_STAGES = frozenset(PIPELINE_ORDER[1:-1])


def next_status(status: MessageProcessingStatus) -> MessageProcessingStatus:
    """The status that follows ``status`` on the happy path."""
    if status.is_terminal:
        raise MessageStateError(f"{status.value} is terminal")
    return PIPELINE_ORDER[PIPELINE_ORDER.index(status) + 1]


class PayloadKind(str, Enum):
    TEXT = "text"
    AUDIO = "audio"
    IMAGE = "image"


class RawPayload(BaseModel):
    """Reference to the raw message content.

    For ``TEXT`` the ``ref`` is the typed text itself; for audio/image it is
    an opaque storage reference understood by the transcription service.
    """

    kind: PayloadKind
    ref: str
    mime_type: Optional[str] = None


class StatusTransition(BaseModel):
    status: MessageProcessingStatus
    at: datetime = Field(default_factory=utcnow)
    detail: Optional[str] = None
    duration_ms: Optional[float] = None


class Message(BaseModel):
    """One doctor message and its processing state."""

    id: str = Field(default_factory=lambda: new_id("msg"))
    conversation_id: str
    payload: RawPayload
    status: MessageProcessingStatus = MessageProcessingStatus.PENDING
    transcript_text: Optional[str] = None
    failure_reason: Optional[str] = None
    failed_stage: Optional[MessageProcessingStatus] = None
    # set when this message re-submits a FAILED one
    resubmitted_from: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    history: list[StatusTransition] = Field(default_factory=list)

    def model_post_init(self, __context: object) -> None:
        if not self.history:
            self.history.append(StatusTransition(status=self.status, at=self.created_at))

    def advance_to(
        self,
        status: MessageProcessingStatus,
        *,
        detail: Optional[str] = None,
        duration_ms: Optional[float] = None,
    ) -> None:
        """Move to ``status``, which must be the next pipeline step or FAILED."""
        if self.status.is_terminal:
            raise MessageStateError(
                f"Message {self.id} is {self.status.value}; cannot move to {status.value}"
            )
        if status is MessageProcessingStatus.FAILED:
            self.failed_stage = self.status
            self.failure_reason = detail
        elif status is not next_status(self.status):
            raise MessageStateError(
                f"Message {self.id}: illegal transition {self.status.value} -> {status.value}"
            )
        self.status = status
        self.history.append(StatusTransition(status=status, detail=detail, duration_ms=duration_ms))

    def stage_entered_at(self, status: MessageProcessingStatus) -> Optional[datetime]:
        for transition in self.history:
            if transition.status is status:
                return transition.at
        return None
