"""Built-in transcription service for typed messages."""

from __future__ import annotations

from portfolio_ai.exceptions import ContentError
from portfolio_ai.processing.models import PayloadKind, RawPayload


class PassthroughTranscriptionService:
    """Returns typed text as-is; audio and images need a real transcriber."""

    async def transcribe(self, payload: RawPayload) -> str:
        if payload.kind is not PayloadKind.TEXT:
            raise ContentError(
                f"{type(self).__name__} cannot transcribe {payload.kind.value} payloads"
            )
        return payload.ref
