"""Resumable analysis state machine.

Nodes::

    start ──> present_classification ──> present_capabilities ──> present_draft
                                                                    │    ▲
                                                                    ▼    │
                                                                ask_followup
                                                                    │
                                                                    ▼
                                                       closed (artefact REVIEW/FINAL)

Every action runs under a per-artefact lock.  A transition is computed on
copies of the session and artefact and committed in one ``commit_analysis``
call together with the response shown to the doctor, so a crash can never
leave the stored node out of step with what was displayed.  Rejected actions
(wrong node, bad value, closed session) write nothing.

Draft generation is the only long-running step.  It commits the move to
``present_draft`` first with ``draft_ready=False`` and fills the draft in a
second commit; if generation fails the session stays parked at
``present_draft`` and the next resume there regenerates.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional, Union

from pydantic import BaseModel

from portfolio_ai.analysis.capabilities import CapabilityTagger
from portfolio_ai.analysis.classifier import EntryTypeClassifier
from portfolio_ai.analysis.lifecycle import ArtefactLifecycle
from portfolio_ai.analysis.models import (
    AnalysisNode,
    AnalysisResponse,
    AnalysisSession,
    Artefact,
    ArtefactStatus,
    CapabilitiesAcknowledgement,
    CapabilitiesPayload,
    CapabilityTag,
    ClassificationPayload,
    ClassificationSelection,
    CompletedPayload,
    DraftPayload,
    DraftSection,
    EntryTypeOption,
    FollowupAnswer,
    FollowupPayload,
    PendingQuestion,
    ResumeAction,
    StartAction,
    WordCountReport,
    parse_action,
    parse_node_value,
)
from portfolio_ai.analysis.templates import TemplateEngine, is_filled
from portfolio_ai.core.locks import KeyedLocks
from portfolio_ai.core.retry import RetryPolicy, call_with_retry
from portfolio_ai.exceptions import (
    GenerationError,
    InvalidSessionState,
    LifecycleError,
    PortfolioError,
    SessionConflictError,
    TransientServiceError,
    ValidationError,
)
from portfolio_ai.processing.models import MessageProcessingStatus
from portfolio_ai.specialties.models import ArtefactTemplate, SpecialtyConfig

if TYPE_CHECKING:
    from portfolio_ai.core.config import AnalysisConfig
    from portfolio_ai.persistence.store import PortfolioStore
    from portfolio_ai.processing.protocols import ContentGenerationService
    from portfolio_ai.specialties.catalog import SpecialtyCatalog

log = logging.getLogger(__name__)

Node = AnalysisNode
Handler = Callable[
    [AnalysisSession, Artefact, SpecialtyConfig, Any, Optional[str]],
    Awaitable[AnalysisResponse],
]

_STARTABLE = (ArtefactStatus.DRAFT, ArtefactStatus.PROCESSING)
_CLOSES_SESSION = (ArtefactStatus.REVIEW, ArtefactStatus.FINAL)


def _require_str(value: object) -> None:
    if not isinstance(value, str):
        raise TransientServiceError(f"malformed generation result of type {type(value).__name__}")


class AnalysisEngine:
    """Drives one analysis session per artefact through its nodes."""

    def __init__(
        self,
        store: PortfolioStore,
        catalog: SpecialtyCatalog,
        generation: ContentGenerationService,
        config: AnalysisConfig,
        *,
        locks: Optional[KeyedLocks] = None,
        classifier: Optional[EntryTypeClassifier] = None,
        tagger: Optional[CapabilityTagger] = None,
        templates: Optional[TemplateEngine] = None,
        lifecycle: Optional[ArtefactLifecycle] = None,
    ) -> None:
        self._store = store
        self._catalog = catalog
        self._generation = generation
        self._config = config
        self._locks = locks if locks is not None else KeyedLocks("artefact")
        self._classifier = classifier or EntryTypeClassifier()
        self._tagger = tagger or CapabilityTagger()
        self._templates = templates or TemplateEngine()
        self._lifecycle = lifecycle or ArtefactLifecycle(
            config.high_confidence_threshold, self._templates
        )
        self._generation_policy = RetryPolicy(
            max_attempts=config.generation_max_attempts,
            timeout_seconds=config.generation_timeout_seconds,
            base_delay=config.generation_retry_base_delay,
        )
        self._handlers: dict[AnalysisNode, Handler] = {
            Node.PRESENT_CLASSIFICATION: self._on_classification,
            Node.PRESENT_CAPABILITIES: self._on_capabilities,
            Node.PRESENT_DRAFT: self._on_draft,
            Node.ASK_FOLLOWUP: self._on_followup,
        }

    @property
    def lifecycle(self) -> ArtefactLifecycle:
        return self._lifecycle

    # ── Public API ───────────────────────────────────────────────────

    async def handle(
        self,
        artefact_id: str,
        action: Union[StartAction, ResumeAction, dict[str, Any]],
    ) -> AnalysisResponse:
        """Dispatch a raw or parsed ``start``/``resume`` action."""
        if isinstance(action, dict):
            action = parse_action(action)
        if isinstance(action, StartAction):
            return await self.start(artefact_id, request_id=action.request_id)
        return await self.resume(artefact_id, action)

    async def start(self, artefact_id: str, *, request_id: Optional[str] = None) -> AnalysisResponse:
        """Classify the conversation transcript and open a session at ``present_classification``.

        Raises:
            SessionConflictError: A session is already active for the artefact.
            LifecycleError: The artefact is past PROCESSING (reopen it first).
            ValidationError: Unknown artefact, or no COMPLETE messages to analyse.
        """
        async with self._locks.hold(artefact_id):
            artefact = self._artefact(artefact_id)
            existing = self._store.find_session(artefact_id)
            if existing is not None and existing.active:
                if request_id and existing.last_request_id == request_id and existing.last_response:
                    log.info("Replaying start %s for artefact %s", request_id, artefact_id)
                    return existing.last_response
                raise SessionConflictError(
                    f"Artefact {artefact_id} already has an active session {existing.id} "
                    f"at {existing.node.value}"
                )
            if artefact.status not in _STARTABLE:
                raise LifecycleError(
                    f"Artefact {artefact_id} is {artefact.status.value}; reopen it before a new analysis"
                )

            transcript, message_ids = self.gather_context(artefact.conversation_id)
            if not transcript:
                raise ValidationError(
                    f"Conversation {artefact.conversation_id} has no completed messages to analyse"
                )

            config = self._specialty(artefact.specialty_id)
            session = AnalysisSession(
                conversation_id=artefact.conversation_id,
                artefact_id=artefact_id,
                specialty_id=config.id,
                node=Node.PRESENT_CLASSIFICATION,
                transcript=transcript,
                message_ids=message_ids,
                candidates=self._classifier.classify(transcript, config),
            )
            response = self._respond(session, self._classification_payload(session, config))
            self._remember(session, request_id, response)
            self._store.commit_analysis(artefact, session, archived=existing)
            log.info(
                "Session %s started for artefact %s: %d candidate(s)",
                session.id, artefact_id, len(session.candidates),
            )
            return response

    async def resume(
        self,
        artefact_id: str,
        action: Union[ResumeAction, dict[str, Any]],
    ) -> AnalysisResponse:
        """Apply one doctor turn at the session's current node.

        Raises:
            InvalidSessionState: No session, session closed, or ``action.node``
                differs from the stored node.  Nothing is written.
            ValidationError: Malformed value for the node.  Nothing is written.
            GenerationError: Draft generation failed; the session is parked at
                ``present_draft``.
        """
        if isinstance(action, dict):
            action = parse_action(action)
        if not isinstance(action, ResumeAction):
            raise ValidationError("resume requires an action of type 'resume'")

        async with self._locks.hold(artefact_id):
            session = self._store.find_session(artefact_id)
            if session is None:
                raise InvalidSessionState(f"No analysis session for artefact {artefact_id}")

            request_id = action.request_id
            if request_id and session.last_request_id == request_id:
                if session.last_response is not None:
                    log.info("Replaying resume %s for artefact %s", request_id, artefact_id)
                    return session.last_response
                if (
                    action.node is Node.PRESENT_CAPABILITIES
                    and session.node is Node.PRESENT_DRAFT
                    and not session.draft_ready
                ):
                    # the original request moved the session but its draft never landed
                    return await self._finish_interrupted_draft(session, request_id)

            if not session.active:
                raise InvalidSessionState(
                    f"Session {session.id} for artefact {artefact_id} is closed ({session.closed_reason})"
                )
            if action.node is not session.node:
                raise InvalidSessionState(
                    f"Session {session.id} is at {session.node.value}, not {action.node.value}"
                )

            value = parse_node_value(session.node, action.value)
            artefact = self._artefact(artefact_id)
            config = self._specialty(session.specialty_id)

            handler = self._handlers[session.node]
            return await handler(
                session.model_copy(deep=True),
                artefact.model_copy(deep=True),
                config,
                value,
                request_id,
            )

    async def abandon(self, artefact_id: str) -> AnalysisSession:
        """Close the active session without touching the artefact."""
        async with self._locks.hold(artefact_id):
            session = self._store.find_session(artefact_id)
            if session is None or not session.active:
                raise InvalidSessionState(f"No active analysis session for artefact {artefact_id}")
            artefact = self._artefact(artefact_id)
            session.close("abandoned")
            session.touch()
            self._store.commit_analysis(artefact, session)
            log.info("Session %s abandoned at %s", session.id, session.node.value)
            return session

    async def update_section(self, artefact_id: str, section_id: str, content: str) -> Artefact:
        """Manually write one section (the way to fill sections nobody asks about)."""
        async with self._locks.hold(artefact_id):
            artefact = self._artefact(artefact_id)
            template = self._bound_template(artefact)
            session = self._store.find_session(artefact_id)
            try:
                status = self._lifecycle.edit_section(artefact, template, section_id, content)
            except KeyError as e:
                raise ValidationError(f"Template {template.id} has no section {section_id!r}") from e

            if session is not None and not session.active:
                session = None
            if session is not None:
                if not is_filled(content) and section_id in session.answered_section_ids:
                    session.answered_section_ids.remove(section_id)
                    session.touch()
                if status in _CLOSES_SESSION:
                    # every required section is now filled
                    session.close(f"artefact {status.value}")
                    session.touch()
                    log.info(
                        "Session %s closed by manual edit: artefact %s is %s",
                        session.id, artefact_id, status.value,
                    )
            self._store.commit_analysis(artefact, session)
            log.info("Artefact %s section %s updated by hand", artefact_id, section_id)
            return artefact

    async def approve(self, artefact_id: str) -> Artefact:
        return await self._lifecycle_action(
            artefact_id, lambda a, t: self._lifecycle.approve(a, t)
        )

    async def export(self, artefact_id: str) -> Artefact:
        return await self._lifecycle_action(artefact_id, lambda a, t: self._lifecycle.export(a))

    async def reopen(self, artefact_id: str) -> Artefact:
        return await self._lifecycle_action(artefact_id, lambda a, t: self._lifecycle.reopen(a))

    def gather_context(self, conversation_id: str) -> tuple[str, list[str]]:
        """Join the conversation's COMPLETE transcripts in chronological order."""
        messages = self._store.conversation_messages(
            conversation_id, status=MessageProcessingStatus.COMPLETE
        )
        parts = [(m.id, m.transcript_text.strip()) for m in messages if is_filled(m.transcript_text)]
        transcript = self._config.transcript_separator.join(text for _, text in parts)
        return transcript, [message_id for message_id, _ in parts]

    # ── Node handlers ────────────────────────────────────────────────

    async def _on_classification(
        self,
        session: AnalysisSession,
        artefact: Artefact,
        config: SpecialtyConfig,
        value: ClassificationSelection,
        request_id: Optional[str],
    ) -> AnalysisResponse:
        if not config.has_entry_type(value.entry_type):
            raise ValidationError(
                f"Unknown entry type {value.entry_type!r} for specialty {config.id}"
            )
        template = self._templates.resolve(config, value.entry_type)

        artefact.entry_type_code = value.entry_type
        artefact.template_id = template.id
        artefact.touch()
        self._lifecycle.begin(artefact, reason=f"classified as {value.entry_type}")

        session.capability_options = self._tagger.rank(
            session.transcript, config, self._config.capability_limit
        )
        self._move(session, Node.PRESENT_CAPABILITIES)

        payload = CapabilitiesPayload(
            entry_type_code=value.entry_type,
            template_id=template.id,
            template_name=template.name,
            capabilities=session.capability_options,
        )
        return self._commit(session, artefact, payload, request_id)

    async def _on_capabilities(
        self,
        session: AnalysisSession,
        artefact: Artefact,
        config: SpecialtyConfig,
        value: CapabilitiesAcknowledgement,
        request_id: Optional[str],
    ) -> AnalysisResponse:
        artefact.capabilities = self._selected_capabilities(session, config, value.selected_codes)
        artefact.touch()

        self._move(session, Node.PRESENT_DRAFT)
        session.draft_ready = False
        session.last_request_id = request_id
        session.last_response = None
        session.touch()
        # first commit: the session is now parked at present_draft
        self._store.commit_analysis(artefact, session)

        return await self._generate_draft(session, artefact, config, request_id)

    async def _on_draft(
        self,
        session: AnalysisSession,
        artefact: Artefact,
        config: SpecialtyConfig,
        value: BaseModel,
        request_id: Optional[str],
    ) -> AnalysisResponse:
        if not session.draft_ready:
            return await self._generate_draft(session, artefact, config, request_id)
        template = self._bound_template(artefact, config)
        return self._evaluate(session, artefact, template, request_id)

    async def _on_followup(
        self,
        session: AnalysisSession,
        artefact: Artefact,
        config: SpecialtyConfig,
        value: FollowupAnswer,
        request_id: Optional[str],
    ) -> AnalysisResponse:
        pending = session.pending_question
        if pending is None:
            raise InvalidSessionState(f"Session {session.id} is at ask_followup without a question")
        template = self._bound_template(artefact, config)

        artefact.content[pending.section_id] = value.answer
        artefact.touch()
        if pending.section_id not in session.answered_section_ids:
            session.answered_section_ids.append(pending.section_id)
        session.pending_question = None
        return self._evaluate(session, artefact, template, request_id)

    # ── Transitions ──────────────────────────────────────────────────

    def _evaluate(
        self,
        session: AnalysisSession,
        artefact: Artefact,
        template: ArtefactTemplate,
        request_id: Optional[str],
    ) -> AnalysisResponse:
        """Ask the next missing question, stay at the draft, or close out."""
        score = self._templates.score(template, artefact.content)
        artefact.completeness = score.completeness

        if not score.missing_required:
            status = self._lifecycle.advance(artefact, template, score.completeness)
            session.close(f"artefact {status.value}")
            payload: Any = CompletedPayload(artefact_status=status, completeness=score.completeness)
            log.info(
                "Session %s closed: artefact %s is %s (%.2f)",
                session.id, artefact.id, status.value, score.completeness,
            )
            return self._commit(session, artefact, payload, request_id, closed=True)

        self._lifecycle.advance(artefact, template, score.completeness)
        section = self._templates.next_question(
            template, score.missing_required, session.answered_section_ids
        )
        if section is not None:
            session.pending_question = PendingQuestion(
                section_id=section.id,
                label=section.label,
                question=section.extraction_question or "",
            )
            self._move(session, Node.ASK_FOLLOWUP)
            payload = FollowupPayload(
                question=session.pending_question,
                completeness=score.completeness,
                missing_required=list(score.missing_required),
            )
            return self._commit(session, artefact, payload, request_id)

        # only unaskable sections remain; they need a manual edit
        session.pending_question = None
        self._move(session, Node.PRESENT_DRAFT)
        log.info(
            "Session %s waiting on sections without questions: %s",
            session.id, ", ".join(score.missing_required),
        )
        return self._commit(session, artefact, self._draft_payload(artefact, template), request_id)

    async def _generate_draft(
        self,
        session: AnalysisSession,
        artefact: Artefact,
        config: SpecialtyConfig,
        request_id: Optional[str],
    ) -> AnalysisResponse:
        template = self._bound_template(artefact, config)
        prior_answers = {
            sid: artefact.content[sid]
            for sid in session.answered_section_ids
            if is_filled(artefact.content.get(sid))
        }

        generated: dict[str, str] = {}
        for section in template.sections:
            try:
                text = await call_with_retry(
                    lambda s=section: self._generation.generate(
                        s.prompt_hint, session.transcript, prior_answers or None
                    ),
                    self._generation_policy,
                    label=f"generate:{section.id}",
                    validate=_require_str,
                )
            except PortfolioError as e:
                log.error("Draft generation failed for session %s at %s: %s", session.id, section.id, e)
                raise GenerationError(
                    f"Generating section {section.id!r} failed: {e}",
                    node=Node.PRESENT_DRAFT.value,
                    session_id=session.id,
                ) from e
            if is_filled(text):
                generated[section.id] = text.strip()

        artefact.content.update(generated)
        artefact.completeness = self._templates.score(template, artefact.content).completeness
        artefact.touch()
        session.draft_ready = True
        log.info(
            "Draft generated for artefact %s: %d/%d sections, completeness %.2f",
            artefact.id, len(generated), len(template.sections), artefact.completeness,
        )
        return self._commit(session, artefact, self._draft_payload(artefact, template), request_id)

    async def _finish_interrupted_draft(
        self, session: AnalysisSession, request_id: str
    ) -> AnalysisResponse:
        artefact = self._artefact(session.artefact_id)
        config = self._specialty(session.specialty_id)
        return await self._generate_draft(session, artefact, config, request_id)

    # ── Helpers ──────────────────────────────────────────────────────

    def _commit(
        self,
        session: AnalysisSession,
        artefact: Artefact,
        payload: Any,
        request_id: Optional[str],
        *,
        closed: bool = False,
    ) -> AnalysisResponse:
        response = self._respond(session, payload, closed=closed)
        self._remember(session, request_id, response)
        self._store.commit_analysis(artefact, session)
        return response

    @staticmethod
    def _respond(session: AnalysisSession, payload: Any, *, closed: bool = False) -> AnalysisResponse:
        return AnalysisResponse(
            session_id=session.id,
            artefact_id=session.artefact_id,
            node=None if closed else session.node,
            payload=payload,
        )

    @staticmethod
    def _remember(session: AnalysisSession, request_id: Optional[str], response: AnalysisResponse) -> None:
        session.last_request_id = request_id
        session.last_response = response
        session.touch()

    @staticmethod
    def _move(session: AnalysisSession, node: AnalysisNode) -> None:
        if node is not session.node:
            log.info("Session %s %s -> %s", session.id, session.node.value, node.value)
        session.node = node

    def _classification_payload(self, session: AnalysisSession, config: SpecialtyConfig) -> ClassificationPayload:
        options: list[EntryTypeOption] = []
        if not session.candidates:
            options = [
                EntryTypeOption(code=e.code, label=e.label, description=e.description)
                for e in config.entry_types
            ]
        return ClassificationPayload(candidates=session.candidates, entry_types=options)

    def _draft_payload(self, artefact: Artefact, template: ArtefactTemplate) -> DraftPayload:
        score = self._templates.score(template, artefact.content)
        words, word_status = self._templates.word_count_status(template, artefact.content)
        return DraftPayload(
            sections=[
                DraftSection(
                    id=s.id,
                    label=s.label,
                    required=s.required,
                    content=artefact.content.get(s.id, ""),
                )
                for s in template.sections
            ],
            completeness=score.completeness,
            missing_required=list(score.missing_required),
            blocked_sections=self._templates.blocked_sections(template, score.missing_required),
            word_count=WordCountReport(
                count=words,
                min=template.word_count_range.min,
                max=template.word_count_range.max,
                status=word_status,
            ),
        )

    def _selected_capabilities(
        self,
        session: AnalysisSession,
        config: SpecialtyConfig,
        selected_codes: Optional[list[str]],
    ) -> list[CapabilityTag]:
        if selected_codes is None:
            return list(session.capability_options)

        offered = {tag.code: tag for tag in session.capability_options}
        tags: list[CapabilityTag] = []
        for code in dict.fromkeys(selected_codes):
            if code in offered:
                tags.append(offered[code])
                continue
            try:
                capability = config.capability(code)
            except KeyError as e:
                raise ValidationError(f"Unknown capability code {code!r} for specialty {config.id}") from e
            tags.append(
                CapabilityTag(code=capability.code, name=capability.name, domain_code=capability.domain_code)
            )
        return tags

    def _artefact(self, artefact_id: str) -> Artefact:
        artefact = self._store.find_artefact(artefact_id)
        if artefact is None:
            raise ValidationError(f"Unknown artefact {artefact_id}")
        return artefact

    def _specialty(self, specialty_id: str) -> SpecialtyConfig:
        try:
            return self._catalog.get(specialty_id)
        except KeyError as e:
            raise ValidationError(f"Unknown specialty {specialty_id!r}") from e

    def _bound_template(
        self, artefact: Artefact, config: Optional[SpecialtyConfig] = None
    ) -> ArtefactTemplate:
        if not artefact.template_id:
            raise ValidationError(f"Artefact {artefact.id} has no entry type yet")
        config = config or self._specialty(artefact.specialty_id)
        template = config.templates.get(artefact.template_id)
        if template is None:
            raise ValidationError(
                f"Template {artefact.template_id!r} is no longer in specialty {config.id}"
            )
        return template

    async def _lifecycle_action(
        self,
        artefact_id: str,
        action: Callable[[Artefact, ArtefactTemplate], ArtefactStatus],
    ) -> Artefact:
        async with self._locks.hold(artefact_id):
            artefact = self._artefact(artefact_id)
            action(artefact, self._bound_template(artefact))
            self._store.save_artefact(artefact)
            return artefact
