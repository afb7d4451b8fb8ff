"""Reacts to ``transcript.ready`` by feeding the new transcript into analysis."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from portfolio_ai.analysis.models import AnalysisNode, AnalysisResponse, ArtefactStatus, ResumeAction
from portfolio_ai.core.events import TRANSCRIPT_READY, Event, EventBus
from portfolio_ai.exceptions import PortfolioError

if TYPE_CHECKING:
    from portfolio_ai.analysis.engine import AnalysisEngine
    from portfolio_ai.persistence.store import PortfolioStore

log = logging.getLogger(__name__)


class AnalysisTrigger:
    """Event handler linking the message pipeline to the analysis engine.

    * No active session and ``auto_start``: ``start`` the analysis.
    * Session at ``ask_followup``: the transcript answers the pending question.
    * Any other node: the message stays in the conversation for the next
      analysis and the session is left alone.

    The message id is used as the action's ``request_id`` so a duplicate
    notification is a replay, not a second answer.
    """

    def __init__(self, engine: AnalysisEngine, store: PortfolioStore, *, auto_start: bool = True) -> None:
        self._engine = engine
        self._store = store
        self._auto_start = auto_start
        self._subscription: Optional[str] = None

    def attach(self, bus: EventBus) -> str:
        self._subscription = bus.subscribe(TRANSCRIPT_READY, self.handle)
        return self._subscription

    def detach(self, bus: EventBus) -> None:
        if self._subscription is not None:
            bus.unsubscribe(self._subscription)
            self._subscription = None

    async def handle(self, event: Event) -> None:
        message_id = event.data.get("message_id", "")
        try:
            await self.on_transcript_ready(message_id)
        except PortfolioError as e:
            log.warning("Analysis not updated for message %s: %s", message_id, e)

    async def on_transcript_ready(self, message_id: str) -> Optional[AnalysisResponse]:
        message = self._store.get_message(message_id)
        conversation = self._store.get_conversation(message.conversation_id)
        artefact_id = conversation.artefact_id
        session = self._store.find_session(artefact_id)

        if session is None or not session.active:
            if not self._auto_start:
                return None
            artefact = self._store.get_artefact(artefact_id)
            if artefact.status not in (ArtefactStatus.DRAFT, ArtefactStatus.PROCESSING):
                log.info(
                    "Message %s arrived for %s artefact %s; not starting analysis",
                    message_id, artefact.status.value, artefact_id,
                )
                return None
            return await self._engine.start(artefact_id, request_id=f"start:{message_id}")

        if session.node is AnalysisNode.ASK_FOLLOWUP:
            action = ResumeAction(
                node=AnalysisNode.ASK_FOLLOWUP,
                value={"answer": message.transcript_text or ""},
                request_id=message_id,
            )
            return await self._engine.resume(artefact_id, action)

        log.info(
            "Message %s noted for artefact %s; session %s is at %s",
            message_id, artefact_id, session.id, session.node.value,
        )
        return None
