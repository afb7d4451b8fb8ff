"""Analysis data models: artefacts, sessions, and the action/response contract.

The transport layer sends an ``AnalysisAction`` (``start`` or ``resume``,
discriminated on ``type``) and receives an ``AnalysisResponse`` whose payload
is one of a closed set of node-specific shapes (discriminated on ``kind``).
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    field_validator,
)
from pydantic import ValidationError as PydanticValidationError

from portfolio_ai.core.types import new_id, utcnow
from portfolio_ai.exceptions import ValidationError

# ── Enums ────────────────────────────────────────────────────────────


class AnalysisNode(str, Enum):
    PRESENT_CLASSIFICATION = "present_classification"
    PRESENT_CAPABILITIES = "present_capabilities"
    PRESENT_DRAFT = "present_draft"
    ASK_FOLLOWUP = "ask_followup"


class ArtefactStatus(str, Enum):
    DRAFT = "DRAFT"
    PROCESSING = "PROCESSING"
    REVIEW = "REVIEW"
    FINAL = "FINAL"
    EXPORTED = "EXPORTED"

    @property
    def label(self) -> str:
        return _STATUS_LABELS[self]


_STATUS_LABELS = {
    ArtefactStatus.DRAFT: "Draft",
    ArtefactStatus.PROCESSING: "Processing",
    ArtefactStatus.REVIEW: "Needs review",
    ArtefactStatus.FINAL: "Ready to export",
    ArtefactStatus.EXPORTED: "Exported",
}


# ── Domain records ───────────────────────────────────────────────────


class CapabilityTag(BaseModel):
    """A curriculum capability linked to an artefact."""

    code: str
    name: str
    domain_code: Optional[str] = None
    score: float = 0.0
    matched_terms: list[str] = Field(default_factory=list)


class StatusChange(BaseModel):
    status: ArtefactStatus
    at: datetime = Field(default_factory=utcnow)
    reason: str = ""


class Artefact(BaseModel):
    """A structured portfolio entry being built from a conversation."""

    id: str = Field(default_factory=lambda: new_id("art"))
    conversation_id: str
    specialty_id: str
    entry_type_code: Optional[str] = None
    template_id: Optional[str] = None
    content: dict[str, str] = Field(default_factory=dict)
    capabilities: list[CapabilityTag] = Field(default_factory=list)
    completeness: float = 0.0
    status: ArtefactStatus = ArtefactStatus.DRAFT
    status_history: list[StatusChange] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def model_post_init(self, __context: object) -> None:
        if not self.status_history:
            self.status_history.append(StatusChange(status=self.status, at=self.created_at))

    def record_status(self, status: ArtefactStatus, reason: str = "") -> None:
        """Set ``status`` and append to the history. Transition rules live in ArtefactLifecycle."""
        if status is self.status:
            return
        self.status = status
        self.status_history.append(StatusChange(status=status, reason=reason))
        self.touch()

    def touch(self) -> None:
        self.updated_at = utcnow()


class Conversation(BaseModel):
    """A doctor's thread of messages feeding exactly one artefact."""

    id: str = Field(default_factory=lambda: new_id("conv"))
    owner_id: str
    specialty_id: str
    artefact_id: str
    message_ids: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)


# ── Response payloads ────────────────────────────────────────────────


class ClassificationCandidate(BaseModel):
    entry_type_code: str
    label: str
    confidence: float = Field(ge=0.0, le=1.0)
    matched_signals: list[str] = Field(default_factory=list)


class EntryTypeOption(BaseModel):
    code: str
    label: str
    description: str = ""


class PendingQuestion(BaseModel):
    section_id: str
    label: str
    question: str


class DraftSection(BaseModel):
    id: str
    label: str
    required: bool
    content: str = ""


class WordCountReport(BaseModel):
    count: int
    min: int
    max: int
    status: Literal["under", "within", "over"]


class ClassificationPayload(BaseModel):
    """Ranked candidates; ``entry_types`` lists every option when none matched."""

    kind: Literal["classification"] = "classification"
    candidates: list[ClassificationCandidate]
    entry_types: list[EntryTypeOption] = Field(default_factory=list)


class CapabilitiesPayload(BaseModel):
    kind: Literal["capabilities"] = "capabilities"
    entry_type_code: str
    template_id: str
    template_name: str
    capabilities: list[CapabilityTag]


class DraftPayload(BaseModel):
    """Generated draft.  ``blocked_sections`` are missing required sections
    that have no follow-up question and need a manual edit."""

    kind: Literal["draft"] = "draft"
    sections: list[DraftSection]
    completeness: float
    missing_required: list[str]
    blocked_sections: list[str] = Field(default_factory=list)
    word_count: Optional[WordCountReport] = None
    draft_ready: bool = True


class FollowupPayload(BaseModel):
    kind: Literal["followup"] = "followup"
    question: PendingQuestion
    completeness: float
    missing_required: list[str]


class CompletedPayload(BaseModel):
    kind: Literal["completed"] = "completed"
    artefact_status: ArtefactStatus
    completeness: float


AnalysisPayload = Annotated[
    Union[ClassificationPayload, CapabilitiesPayload, DraftPayload, FollowupPayload, CompletedPayload],
    Field(discriminator="kind"),
]


class AnalysisResponse(BaseModel):
    """What the engine shows the doctor after an action.

    ``node`` is ``None`` once the session has closed.
    """

    session_id: str
    artefact_id: str
    node: Optional[AnalysisNode]
    payload: AnalysisPayload


# ── Session ──────────────────────────────────────────────────────────


class AnalysisSession(BaseModel):
    """Durable, resumable state of one analysis conversation for one artefact."""

    id: str = Field(default_factory=lambda: new_id("ses"))
    conversation_id: str
    artefact_id: str
    specialty_id: str
    node: AnalysisNode = AnalysisNode.PRESENT_CLASSIFICATION
    transcript: str = ""
    message_ids: list[str] = Field(default_factory=list)
    candidates: list[ClassificationCandidate] = Field(default_factory=list)
    capability_options: list[CapabilityTag] = Field(default_factory=list)
    pending_question: Optional[PendingQuestion] = None
    answered_section_ids: list[str] = Field(default_factory=list)
    draft_ready: bool = False
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    closed_at: Optional[datetime] = None
    closed_reason: Optional[str] = None
    last_request_id: Optional[str] = None
    last_response: Optional[AnalysisResponse] = None
    version: int = 0

    @property
    def active(self) -> bool:
        return self.closed_at is None

    def close(self, reason: str) -> None:
        self.closed_at = utcnow()
        self.closed_reason = reason
        self.pending_question = None

    def touch(self) -> None:
        self.updated_at = utcnow()
        self.version += 1


# ── Actions ──────────────────────────────────────────────────────────


class StartAction(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: Literal["start"] = "start"
    request_id: Optional[str] = None


class ResumeAction(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: Literal["resume"] = "resume"
    node: AnalysisNode
    value: Optional[dict[str, Any]] = None
    request_id: Optional[str] = None


AnalysisAction = Annotated[Union[StartAction, ResumeAction], Field(discriminator="type")]

_action_adapter: TypeAdapter[Union[StartAction, ResumeAction]] = TypeAdapter(AnalysisAction)


def parse_action(data: Any) -> Union[StartAction, ResumeAction]:
    """Validate a raw action payload. Raises ``ValidationError`` when malformed."""
    try:
        return _action_adapter.validate_python(data)
    except PydanticValidationError as e:
        raise ValidationError(f"Malformed analysis action: {_summarise(e)}") from e


# ── Per-node resume values ───────────────────────────────────────────


class ClassificationSelection(BaseModel):
    model_config = ConfigDict(extra="forbid")

    entry_type: str = Field(min_length=1, validation_alias=AliasChoices("entry_type", "entryType"))


class CapabilitiesAcknowledgement(BaseModel):
    """Empty acknowledgement, or a subset of the offered capability codes to keep."""

    model_config = ConfigDict(extra="forbid")

    selected_codes: Optional[list[str]] = Field(
        default=None, validation_alias=AliasChoices("selected_codes", "selectedCodes")
    )


class DraftAcknowledgement(BaseModel):
    model_config = ConfigDict(extra="forbid")


class FollowupAnswer(BaseModel):
    model_config = ConfigDict(extra="forbid")

    answer: str

    @field_validator("answer")
    @classmethod
    def _non_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("answer must not be blank")
        return v


NODE_VALUE_MODELS: dict[AnalysisNode, type[BaseModel]] = {
    AnalysisNode.PRESENT_CLASSIFICATION: ClassificationSelection,
    AnalysisNode.PRESENT_CAPABILITIES: CapabilitiesAcknowledgement,
    AnalysisNode.PRESENT_DRAFT: DraftAcknowledgement,
    AnalysisNode.ASK_FOLLOWUP: FollowupAnswer,
}


def parse_node_value(node: AnalysisNode, value: Optional[dict[str, Any]]) -> BaseModel:
    """Validate a resume ``value`` against the shape expected at ``node``."""
    model = NODE_VALUE_MODELS[node]
    try:
        return model.model_validate(value or {})
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid value for {node.value}: {_summarise(e)}") from e


def _summarise(error: PydanticValidationError) -> str:
    parts = []
    for item in error.errors():
        loc = ".".join(str(p) for p in item.get("loc", ())) or "<root>"
        parts.append(f"{loc}: {item.get('msg', 'invalid')}")
    return "; ".join(parts)
