"""Tests for the message status machine and the analysis action contract."""

from __future__ import annotations

import pytest

from portfolio_ai.analysis.models import (
    AnalysisNode,
    AnalysisResponse,
    Artefact,
    ArtefactStatus,
    CapabilitiesAcknowledgement,
    ClassificationSelection,
    CompletedPayload,
    FollowupAnswer,
    ResumeAction,
    StartAction,
    parse_action,
    parse_node_value,
)
from portfolio_ai.exceptions import MessageStateError, ValidationError
from portfolio_ai.processing.models import (
    Message,
    MessageProcessingStatus as Status,
    PayloadKind,
    RawPayload,
    next_status,
)


def _message() -> Message:
    return Message(conversation_id="conv_1", payload=RawPayload(kind=PayloadKind.TEXT, ref="hi"))


class TestMessageStatus:
    def test_starts_pending_with_history(self):
        message = _message()

        assert message.status is Status.PENDING
        assert [t.status for t in message.history] == [Status.PENDING]

    def test_forward_only(self):
        message = _message()
        message.advance_to(Status.TRANSCRIBING)

        with pytest.raises(MessageStateError, match="illegal transition"):
            message.advance_to(Status.DEIDENTIFYING)
        with pytest.raises(MessageStateError):
            message.advance_to(Status.PENDING)

    def test_failed_from_any_stage_is_terminal(self):
        message = _message()
        message.advance_to(Status.TRANSCRIBING)
        message.advance_to(Status.CLEANING)
        message.advance_to(Status.FAILED, detail="CLEANING: boom")

        assert message.failed_stage is Status.CLEANING
        assert message.failure_reason == "CLEANING: boom"
        with pytest.raises(MessageStateError, match="FAILED"):
            message.advance_to(Status.COMPLETE)

    def test_complete_is_terminal(self):
        message = _message()
        for status in (Status.TRANSCRIBING, Status.CLEANING, Status.DEIDENTIFYING, Status.COMPLETE):
            message.advance_to(status)

        with pytest.raises(MessageStateError):
            message.advance_to(Status.FAILED)
        assert message.stage_entered_at(Status.CLEANING) is not None

    def test_next_status(self):
        assert next_status(Status.PENDING) is Status.TRANSCRIBING
        assert next_status(Status.DEIDENTIFYING) is Status.COMPLETE
        with pytest.raises(MessageStateError):
            next_status(Status.COMPLETE)

    def test_flags(self):
        assert Status.FAILED.is_terminal and not Status.FAILED.is_in_flight
        assert Status.CLEANING.is_in_flight
        assert not Status.PENDING.is_in_flight

    def test_round_trips_through_json(self):
        message = _message()
        message.advance_to(Status.TRANSCRIBING, duration_ms=1.5)

        restored = Message.model_validate_json(message.model_dump_json())

        assert restored.status is Status.TRANSCRIBING
        assert restored.history[-1].duration_ms == 1.5


class TestArtefact:
    def test_record_status(self):
        artefact = Artefact(conversation_id="c", specialty_id="gp")
        artefact.record_status(ArtefactStatus.PROCESSING, "started")
        artefact.record_status(ArtefactStatus.PROCESSING, "again")

        assert [c.status for c in artefact.status_history] == [ArtefactStatus.DRAFT, ArtefactStatus.PROCESSING]
        assert artefact.status_history[-1].reason == "started"

    def test_status_labels(self):
        assert ArtefactStatus.REVIEW.label == "Needs review"
        assert ArtefactStatus.FINAL.label == "Ready to export"


class TestActions:
    def test_start(self):
        action = parse_action({"type": "start", "request_id": "r1"})

        assert isinstance(action, StartAction)
        assert action.request_id == "r1"

    def test_resume(self):
        action = parse_action({"type": "resume", "node": "present_classification", "value": {"entry_type": "CASE"}})

        assert isinstance(action, ResumeAction)
        assert action.node is AnalysisNode.PRESENT_CLASSIFICATION

    @pytest.mark.parametrize(
        "data",
        [
            {"type": "jump"},
            {"type": "resume"},
            {"type": "resume", "node": "nowhere"},
            {"type": "start", "extra": 1},
            "start",
        ],
    )
    def test_malformed(self, data):
        with pytest.raises(ValidationError, match="Malformed analysis action"):
            parse_action(data)


class TestNodeValues:
    def test_classification_accepts_camel_case(self):
        value = parse_node_value(AnalysisNode.PRESENT_CLASSIFICATION, {"entryType": "CASE"})

        assert isinstance(value, ClassificationSelection)
        assert value.entry_type == "CASE"

    def test_classification_requires_entry_type(self):
        with pytest.raises(ValidationError, match="present_classification"):
            parse_node_value(AnalysisNode.PRESENT_CLASSIFICATION, {})

    def test_capabilities_may_be_empty(self):
        value = parse_node_value(AnalysisNode.PRESENT_CAPABILITIES, None)

        assert isinstance(value, CapabilitiesAcknowledgement)
        assert value.selected_codes is None

    def test_draft_rejects_unexpected_fields(self):
        with pytest.raises(ValidationError):
            parse_node_value(AnalysisNode.PRESENT_DRAFT, {"answer": "x"})

    def test_followup_strips_answer(self):
        value = parse_node_value(AnalysisNode.ASK_FOLLOWUP, {"answer": "  I learned a lot.  "})

        assert isinstance(value, FollowupAnswer)
        assert value.answer == "I learned a lot."

    def test_followup_blank_answer(self):
        with pytest.raises(ValidationError, match="must not be blank"):
            parse_node_value(AnalysisNode.ASK_FOLLOWUP, {"answer": "   "})


class TestResponse:
    def test_payload_discriminator(self):
        response = AnalysisResponse.model_validate(
            {
                "session_id": "ses_1",
                "artefact_id": "art_1",
                "node": None,
                "payload": {"kind": "completed", "artefact_status": "FINAL", "completeness": 1.0},
            }
        )

        assert isinstance(response.payload, CompletedPayload)
        assert response.payload.artefact_status is ArtefactStatus.FINAL
