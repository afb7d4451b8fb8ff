"""Tests for message intake, the analysis trigger and the dead-letter ledger."""

from __future__ import annotations

import pytest

from portfolio_ai.analysis.models import AnalysisNode, ArtefactStatus
from portfolio_ai.analysis.trigger import AnalysisTrigger
from portfolio_ai.core.events import TRANSCRIPT_READY, Event, EventBus
from portfolio_ai.exceptions import MessageStateError, ValidationError
from portfolio_ai.hooks.dead_letter import DeadLetterLedger
from portfolio_ai.processing.models import MessageProcessingStatus, PayloadKind, RawPayload


def _fail(store, message, detail="TRANSCRIBING: timed out"):
    message.advance_to(MessageProcessingStatus.TRANSCRIBING)
    message.advance_to(MessageProcessingStatus.FAILED, detail=detail)
    store.save_message(message)
    return message


class TestIntake:
    def test_open_conversation_creates_draft_artefact(self, intake, store):
        conversation = intake.open_conversation("dr-a")

        artefact = store.get_artefact(conversation.artefact_id)
        assert artefact.status is ArtefactStatus.DRAFT
        assert artefact.conversation_id == conversation.id
        assert artefact.specialty_id == "mini"
        assert store.get_conversation(conversation.id).owner_id == "dr-a"

    def test_open_conversation_explicit_specialty(self, intake):
        assert intake.open_conversation("dr-a", "gp").specialty_id == "gp"

    def test_unknown_specialty(self, intake):
        with pytest.raises(ValidationError, match="Unknown specialty"):
            intake.open_conversation("dr-a", "cardiology")

    def test_submit_appends_pending(self, intake, store):
        conversation = intake.open_conversation("dr-a")

        first = intake.submit_text(conversation.id, "one")
        second = intake.submit(conversation.id, RawPayload(kind=PayloadKind.AUDIO, ref="s3://a.m4a"))

        assert first.status is MessageProcessingStatus.PENDING
        assert store.get_conversation(conversation.id).message_ids == [first.id, second.id]

    def test_empty_text_rejected(self, intake):
        conversation = intake.open_conversation("dr-a")

        with pytest.raises(ValidationError, match="empty"):
            intake.submit_text(conversation.id, "   ")

    def test_unknown_conversation(self, intake):
        with pytest.raises(ValidationError, match="Unknown conversation"):
            intake.submit_text("conv_missing", "hi")

    def test_resubmit_failed(self, intake, store):
        conversation = intake.open_conversation("dr-a")
        failed = _fail(store, intake.submit_text(conversation.id, "hello"))

        retry = intake.resubmit(failed.id)

        assert retry.id != failed.id
        assert retry.status is MessageProcessingStatus.PENDING
        assert retry.resubmitted_from == failed.id
        assert retry.payload == failed.payload
        assert store.get_message(failed.id).status is MessageProcessingStatus.FAILED
        assert store.get_conversation(conversation.id).message_ids == [failed.id, retry.id]

    def test_resubmit_requires_failed(self, intake):
        conversation = intake.open_conversation("dr-a")
        message = intake.submit_text(conversation.id, "hello")

        with pytest.raises(MessageStateError, match="Only FAILED"):
            intake.resubmit(message.id)

    def test_resubmit_unknown(self, intake):
        with pytest.raises(ValidationError):
            intake.resubmit("msg_missing")


@pytest.fixture
def trigger(engine, store) -> AnalysisTrigger:
    return AnalysisTrigger(engine, store)


async def _to_followup(engine, artefact_id):
    await engine.handle(artefact_id, {"type": "resume", "node": "present_classification", "value": {"entry_type": "CASE"}})
    await engine.handle(artefact_id, {"type": "resume", "node": "present_capabilities", "value": {}})
    return await engine.handle(artefact_id, {"type": "resume", "node": "present_draft"})


class TestTrigger:
    @pytest.mark.asyncio
    async def test_auto_start(self, trigger, store, case_conversation):
        message_id = case_conversation.message_ids[-1]

        response = await trigger.on_transcript_ready(message_id)

        assert response.node is AnalysisNode.PRESENT_CLASSIFICATION
        session = store.find_session(case_conversation.artefact_id)
        assert session.last_request_id == f"start:{message_id}"

    @pytest.mark.asyncio
    async def test_duplicate_start_notification_leaves_session_alone(self, trigger, store, case_conversation):
        message_id = case_conversation.message_ids[-1]

        await trigger.on_transcript_ready(message_id)
        before = store.find_raw_session(case_conversation.artefact_id)

        assert await trigger.on_transcript_ready(message_id) is None
        assert store.find_raw_session(case_conversation.artefact_id) == before

    @pytest.mark.asyncio
    async def test_no_auto_start(self, engine, store, case_conversation):
        trigger = AnalysisTrigger(engine, store, auto_start=False)

        assert await trigger.on_transcript_ready(case_conversation.message_ids[-1]) is None
        assert store.find_session(case_conversation.artefact_id) is None

    @pytest.mark.asyncio
    async def test_new_message_answers_followup(
        self, trigger, engine, store, case_conversation, completed_message
    ):
        artefact_id = case_conversation.artefact_id
        await engine.start(artefact_id)
        followup = await _to_followup(engine, artefact_id)
        assert followup.node is AnalysisNode.ASK_FOLLOWUP
        assert followup.payload.question.section_id == "learning"

        answer = completed_message(case_conversation, "I learned to request an ECG sooner.")
        response = await trigger.on_transcript_ready(answer.id)

        assert response.node is None
        artefact = store.get_artefact(artefact_id)
        assert artefact.content["learning"] == "I learned to request an ECG sooner."
        assert artefact.status is ArtefactStatus.FINAL

        # a duplicate notification does not re-open or re-answer anything
        assert await trigger.on_transcript_ready(answer.id) is None
        assert store.get_artefact(artefact_id).status is ArtefactStatus.FINAL

    @pytest.mark.asyncio
    async def test_message_at_other_node_is_only_noted(
        self, trigger, engine, store, case_conversation, completed_message
    ):
        artefact_id = case_conversation.artefact_id
        await engine.start(artefact_id)
        before = store.find_raw_session(artefact_id)

        extra = completed_message(case_conversation, "Also the patient was anxious.")

        assert await trigger.on_transcript_ready(extra.id) is None
        assert store.find_raw_session(artefact_id) == before

    @pytest.mark.asyncio
    async def test_event_errors_are_logged_not_raised(self, trigger, intake, store):
        conversation = intake.open_conversation("dr-a")
        pending = intake.submit_text(conversation.id, "not processed yet")
        bus = EventBus()
        trigger.attach(bus)

        delivered = await bus.publish(
            Event(event_type=TRANSCRIPT_READY, source="test", data={"message_id": pending.id})
        )

        assert delivered == 1
        assert store.find_session(conversation.artefact_id) is None

    @pytest.mark.asyncio
    async def test_detach(self, trigger, store, case_conversation):
        bus = EventBus()
        trigger.attach(bus)
        trigger.detach(bus)

        event = Event(event_type=TRANSCRIPT_READY, source="test", data={"message_id": case_conversation.message_ids[-1]})
        assert await bus.publish(event) == 0


class TestDeadLetters:
    def test_record_and_list(self, backend, store, intake):
        ledger = DeadLetterLedger(backend)
        a = intake.open_conversation("dr-a")
        b = intake.open_conversation("dr-b")
        failed_a = _fail(store, intake.submit_text(a.id, "x"))
        failed_b = _fail(store, intake.submit_text(b.id, "y"), detail="TRANSCRIBING: content error")

        ledger.record(failed_a)
        ledger.record(failed_b)

        assert len(ledger.list_dead_letters()) == 2
        [entry] = ledger.list_dead_letters(a.id)
        assert entry["message_id"] == failed_a.id
        assert entry["failed_stage"] == "TRANSCRIBING"
        assert entry["reason"] == "TRANSCRIBING: timed out"
        assert entry["payload_kind"] == "text"

    def test_write_failure_is_swallowed(self, backend, store, intake):
        conversation = intake.open_conversation("dr-a")
        failed = _fail(store, intake.submit_text(conversation.id, "x"))
        backend.fail_on_prefix = "_dead_letter/"

        DeadLetterLedger(backend).record(failed)

        assert DeadLetterLedger(backend).list_dead_letters() == []
