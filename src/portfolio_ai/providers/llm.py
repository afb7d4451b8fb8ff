"""LiteLLM-backed cleaning and content-generation services.

``LLMClient`` routes through ``litellm.acompletion()`` so any provider prefix
(``openai/``, ``anthropic/``, ``bedrock/``, ``ollama/``) works unchanged.
Errors are classified once here: client errors become ``ContentError`` (never
retried) and everything else ``TransientServiceError``.  The processing
pipeline and the analysis engine own the overall retry budget, so the client
only retries internally when ``LLMConfig.max_retries`` > 1.
"""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Any, Mapping, Optional

from litellm.exceptions import AuthenticationError, BadRequestError, NotFoundError

from portfolio_ai.core.config import LLMConfig
from portfolio_ai.exceptions import ContentError, TransientServiceError
from portfolio_ai.providers.prompts import (
    CLEANING_SYSTEM_PROMPT,
    NOTHING_TO_SAY,
    PRIOR_ANSWERS_BLOCK,
    SECTION_SYSTEM_PROMPT,
    SECTION_USER_PROMPT,
)

log = logging.getLogger(__name__)

_NON_RETRYABLE = (AuthenticationError, BadRequestError, NotFoundError)


class LLMClient:
    """Async chat-completion client."""

    def __init__(self, config: LLMConfig) -> None:
        self._config = config

    @property
    def model(self) -> str:
        return self._config.model

    @staticmethod
    def _is_retryable(exc: Exception) -> bool:
        """Auth, bad-request and not-found errors will fail the same way again."""
        return not isinstance(exc, _NON_RETRYABLE)

    async def complete(
        self,
        prompt: str,
        *,
        system_prompt: Optional[str] = None,
        temperature: Optional[float] = None,
    ) -> str:
        """Single completion; returns the message content (may be empty)."""
        from litellm import acompletion

        messages: list[dict[str, Any]] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        kwargs: dict[str, Any] = {
            "model": self._config.model,
            "messages": messages,
            "temperature": temperature if temperature is not None else self._config.generation_temperature,
            "timeout": self._config.timeout,
            "api_key": self._config.api_key,
        }
        if self._config.base_url:
            kwargs["api_base"] = self._config.base_url

        attempts = max(1, self._config.max_retries)
        last_error: Optional[Exception] = None
        for attempt in range(attempts):
            try:
                response = await acompletion(**kwargs)
                return response.choices[0].message.content or ""
            except Exception as e:
                if not self._is_retryable(e):
                    raise ContentError(f"LLM rejected the request: {e}") from e
                last_error = e

            if attempt < attempts - 1:
                base_wait = min(2 ** attempt, self._config.retry_max_delay)
                wait = base_wait + random.uniform(0, base_wait * 0.5)
                log.warning("LLM retry %d/%d: %s (wait=%.1fs)", attempt + 1, attempts, last_error, wait)
                await asyncio.sleep(wait)

        raise TransientServiceError(f"LLM call failed: {last_error}") from last_error


class LLMCleaningService:
    """``CleaningService`` that tidies raw transcripts with a low-temperature prompt."""

    def __init__(self, client: LLMClient, config: LLMConfig) -> None:
        self._client = client
        self._temperature = config.cleaning_temperature

    async def clean(self, text: str) -> str:
        cleaned = await self._client.complete(
            text,
            system_prompt=CLEANING_SYSTEM_PROMPT,
            temperature=self._temperature,
        )
        return cleaned.strip()


class LLMContentGenerationService:
    """``ContentGenerationService`` writing one template section per call."""

    def __init__(self, client: LLMClient, config: LLMConfig) -> None:
        self._client = client
        self._temperature = config.generation_temperature

    async def generate(
        self,
        prompt_hint: str,
        transcript: str,
        prior_answers: Optional[Mapping[str, str]] = None,
    ) -> str:
        prompt = SECTION_USER_PROMPT.format(
            prompt_hint=prompt_hint,
            transcript=transcript,
            prior_answers=_format_answers(prior_answers),
        )
        text = (
            await self._client.complete(
                prompt,
                system_prompt=SECTION_SYSTEM_PROMPT,
                temperature=self._temperature,
            )
        ).strip()
        if text.upper() == NOTHING_TO_SAY:
            return ""
        return text


def _format_answers(prior_answers: Optional[Mapping[str, str]]) -> str:
    if not prior_answers:
        return ""
    lines = "\n".join(f"- {section}: {answer}" for section, answer in prior_answers.items())
    return PRIOR_ANSWERS_BLOCK.format(answers=lines)
