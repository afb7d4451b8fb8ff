"""External service contracts consumed by the pipeline and the analysis engine.

All four are opaque: implementations may call a vendor API, a local model or
a test fake.  Transport failures should surface as ``TransientServiceError``
(retried) and rejected input as ``ContentError`` (not retried); anything else
is treated as transient.
"""

from __future__ import annotations

from typing import Mapping, Optional, Protocol, runtime_checkable

from portfolio_ai.processing.models import RawPayload


@runtime_checkable
class TranscriptionService(Protocol):
    async def transcribe(self, payload: RawPayload) -> str:
        """Return the transcript text for an audio/text/image payload."""
        ...


@runtime_checkable
class CleaningService(Protocol):
    async def clean(self, text: str) -> str:
        """Normalize grammar, disfluencies and terminology without changing facts."""
        ...


@runtime_checkable
class DeidentificationService(Protocol):
    async def deidentify(self, text: str) -> str:
        """Redact personally identifying spans."""
        ...


@runtime_checkable
class ContentGenerationService(Protocol):
    async def generate(
        self,
        prompt_hint: str,
        transcript: str,
        prior_answers: Optional[Mapping[str, str]] = None,
    ) -> str:
        """Write one template section from the transcript.

        An empty string means the transcript holds nothing for this section.
        """
        ...
