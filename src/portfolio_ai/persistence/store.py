"""Typed repositories over a key/value ``IPersistenceBackend``.

Logical layout::

    messages/<message_id>
    conversations/<conversation_id>
    artefacts/<artefact_id>
    sessions/<artefact_id>                          (current session)
    sessions/archive/<artefact_id>/<session_id>     (closed sessions)

Records are pydantic models serialized as JSON.  ``commit_analysis`` writes a
session and its artefact through ``save_many`` so the two never diverge.
"""

from __future__ import annotations

import logging
from typing import Optional, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from portfolio_ai.analysis.models import AnalysisSession, Artefact, Conversation
from portfolio_ai.exceptions import PersistenceError
from portfolio_ai.persistence.protocols import IPersistenceBackend
from portfolio_ai.processing.models import Message, MessageProcessingStatus

log = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


def message_key(message_id: str) -> str:
    return f"messages/{message_id}"


def conversation_key(conversation_id: str) -> str:
    return f"conversations/{conversation_id}"


def artefact_key(artefact_id: str) -> str:
    return f"artefacts/{artefact_id}"


def session_key(artefact_id: str) -> str:
    return f"sessions/{artefact_id}"


def archived_session_key(artefact_id: str, session_id: str) -> str:
    return f"sessions/archive/{artefact_id}/{session_id}"


class PortfolioStore:
    """Load/save domain records by id."""

    def __init__(self, backend: IPersistenceBackend) -> None:
        self._backend = backend

    @property
    def backend(self) -> IPersistenceBackend:
        return self._backend

    # ── generic helpers ──

    def _load(self, key: str, model: type[M]) -> Optional[M]:
        try:
            raw = self._backend.load(key)
        except KeyError:
            return None
        try:
            return model.model_validate_json(raw)
        except PydanticValidationError as e:
            raise PersistenceError(f"Corrupt record at {key}: {e}") from e

    def _require(self, key: str, model: type[M]) -> M:
        record = self._load(key, model)
        if record is None:
            raise KeyError(f"{model.__name__} not found: {key}")
        return record

    def _save(self, key: str, record: BaseModel) -> None:
        self._backend.save(key, record.model_dump_json())

    # ── messages ──

    def find_message(self, message_id: str) -> Optional[Message]:
        return self._load(message_key(message_id), Message)

    def get_message(self, message_id: str) -> Message:
        return self._require(message_key(message_id), Message)

    def save_message(self, message: Message) -> None:
        self._save(message_key(message.id), message)

    # ── conversations ──

    def find_conversation(self, conversation_id: str) -> Optional[Conversation]:
        return self._load(conversation_key(conversation_id), Conversation)

    def get_conversation(self, conversation_id: str) -> Conversation:
        return self._require(conversation_key(conversation_id), Conversation)

    def save_conversation(self, conversation: Conversation) -> None:
        self._save(conversation_key(conversation.id), conversation)

    def conversation_messages(
        self,
        conversation_id: str,
        status: Optional[MessageProcessingStatus] = None,
    ) -> list[Message]:
        """Messages of a conversation in creation order, optionally filtered by status."""
        conversation = self.get_conversation(conversation_id)
        messages = []
        for message_id in conversation.message_ids:
            message = self.find_message(message_id)
            if message is None:
                log.warning("Conversation %s lists missing message %s", conversation_id, message_id)
                continue
            if status is None or message.status is status:
                messages.append(message)
        messages.sort(key=lambda m: m.created_at)
        return messages

    # ── artefacts ──

    def find_artefact(self, artefact_id: str) -> Optional[Artefact]:
        return self._load(artefact_key(artefact_id), Artefact)

    def get_artefact(self, artefact_id: str) -> Artefact:
        return self._require(artefact_key(artefact_id), Artefact)

    def save_artefact(self, artefact: Artefact) -> None:
        self._save(artefact_key(artefact.id), artefact)

    # ── analysis sessions ──

    def find_session(self, artefact_id: str) -> Optional[AnalysisSession]:
        return self._load(session_key(artefact_id), AnalysisSession)

    def find_raw_session(self, artefact_id: str) -> Optional[str]:
        """The serialized session exactly as stored (used to prove a no-op)."""
        try:
            return self._backend.load(session_key(artefact_id))
        except KeyError:
            return None

    def list_archived_sessions(self, artefact_id: str) -> list[AnalysisSession]:
        prefix = f"sessions/archive/{artefact_id}/"
        sessions = []
        for key in self._backend.list_keys(prefix):
            session = self._load(key, AnalysisSession)
            if session is not None:
                sessions.append(session)
        return sorted(sessions, key=lambda s: s.created_at)

    def commit_analysis(
        self,
        artefact: Artefact,
        session: Optional[AnalysisSession] = None,
        *,
        archived: Optional[AnalysisSession] = None,
    ) -> None:
        """Persist an artefact with its current session (and an archived one) as one unit."""
        items = {artefact_key(artefact.id): artefact.model_dump_json()}
        if session is not None:
            items[session_key(session.artefact_id)] = session.model_dump_json()
        if archived is not None:
            items[archived_session_key(archived.artefact_id, archived.id)] = archived.model_dump_json()
        self._backend.save_many(items)
