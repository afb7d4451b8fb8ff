"""Dead-letter ledger: records FAILED messages for later inspection."""

from __future__ import annotations

import json
import logging
import time
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from portfolio_ai.persistence.protocols import IPersistenceBackend
    from portfolio_ai.processing.models import Message

log = logging.getLogger(__name__)


class DeadLetterLedger:
    """Writes one JSON entry per FAILED message to a persistence backend.

    Entries are keyed ``<prefix><conversation_id>/<message_id>`` so a
    conversation's failures can be listed together.
    """

    def __init__(self, backend: IPersistenceBackend, key_prefix: str = "_dead_letter/") -> None:
        self._backend = backend
        self._key_prefix = key_prefix

    def record(self, message: Message) -> None:
        key = f"{self._key_prefix}{message.conversation_id}/{message.id}"
        entry = {
            "message_id": message.id,
            "conversation_id": message.conversation_id,
            "failed_stage": message.failed_stage.value if message.failed_stage else None,
            "reason": message.failure_reason,
            "payload_kind": message.payload.kind.value,
            "timestamp": int(time.time() * 1000),
        }

        try:
            self._backend.save(key, json.dumps(entry))
            log.warning("Dead letter recorded: %s (%s)", key, message.failure_reason)
        except Exception:
            log.error("Failed to write dead letter for %s", message.id, exc_info=True)

    def list_dead_letters(self, conversation_id: str = "") -> list[dict[str, Any]]:
        """List dead-letter entries, optionally for one conversation."""
        prefix = f"{self._key_prefix}{conversation_id}/" if conversation_id else self._key_prefix
        entries = []
        for key in self._backend.list_keys(prefix):
            try:
                entries.append(json.loads(self._backend.load(key)))
            except (KeyError, json.JSONDecodeError):
                continue
        return entries
