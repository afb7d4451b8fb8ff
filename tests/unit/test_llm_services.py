"""Tests for the LiteLLM-backed cleaning and generation services, with litellm.acompletion mocked."""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from litellm.exceptions import BadRequestError

from portfolio_ai.core.config import LLMConfig
from portfolio_ai.exceptions import ContentError, TransientServiceError
from portfolio_ai.providers.llm import LLMCleaningService, LLMClient, LLMContentGenerationService
from portfolio_ai.providers.prompts import CLEANING_SYSTEM_PROMPT, SECTION_SYSTEM_PROMPT


def _config(**overrides: Any) -> LLMConfig:
    defaults: dict[str, Any] = {"model": "openai/test-model", "api_key": "test-key", "max_retries": 1}
    defaults.update(overrides)
    return LLMConfig(**defaults)


def _mock_response(content: str | None = "ok") -> MagicMock:
    message = MagicMock()
    message.content = content
    choice = MagicMock()
    choice.message = message
    response = MagicMock()
    response.choices = [choice]
    return response


class TestLLMClient:
    @pytest.mark.asyncio
    async def test_passes_model_and_messages(self):
        client = LLMClient(_config(base_url="http://localhost:4000/v1"))

        with patch("litellm.acompletion", new_callable=AsyncMock) as mock_acomp:
            mock_acomp.return_value = _mock_response("hello")
            result = await client.complete("prompt", system_prompt="system", temperature=0.2)

        assert result == "hello"
        kwargs = mock_acomp.call_args.kwargs
        assert kwargs["model"] == "openai/test-model"
        assert kwargs["api_base"] == "http://localhost:4000/v1"
        assert kwargs["temperature"] == 0.2
        assert kwargs["messages"] == [
            {"role": "system", "content": "system"},
            {"role": "user", "content": "prompt"},
        ]

    @pytest.mark.asyncio
    async def test_no_base_url_no_api_base(self):
        client = LLMClient(_config())

        with patch("litellm.acompletion", new_callable=AsyncMock) as mock_acomp:
            mock_acomp.return_value = _mock_response(None)
            assert await client.complete("prompt") == ""

        assert "api_base" not in mock_acomp.call_args.kwargs
        assert len(mock_acomp.call_args.kwargs["messages"]) == 1

    @pytest.mark.asyncio
    async def test_bad_request_is_content_error(self):
        client = LLMClient(_config(max_retries=3))
        error = BadRequestError(message="context too long", model="openai/test-model", llm_provider="openai")

        with patch("litellm.acompletion", new_callable=AsyncMock) as mock_acomp:
            mock_acomp.side_effect = error
            with pytest.raises(ContentError, match="rejected"):
                await client.complete("prompt")

        assert mock_acomp.await_count == 1

    @pytest.mark.asyncio
    async def test_other_errors_are_transient(self):
        client = LLMClient(_config())

        with patch("litellm.acompletion", new_callable=AsyncMock) as mock_acomp:
            mock_acomp.side_effect = ConnectionError("reset by peer")
            with pytest.raises(TransientServiceError, match="reset by peer"):
                await client.complete("prompt")

        assert mock_acomp.await_count == 1

    @pytest.mark.asyncio
    async def test_internal_retries_when_configured(self):
        client = LLMClient(_config(max_retries=2))

        with (
            patch("litellm.acompletion", new_callable=AsyncMock) as mock_acomp,
            patch("portfolio_ai.providers.llm.asyncio.sleep", new_callable=AsyncMock) as mock_sleep,
        ):
            mock_acomp.side_effect = [ConnectionError("blip"), _mock_response("second")]
            assert await client.complete("prompt") == "second"

        assert mock_acomp.await_count == 2
        assert mock_sleep.await_count == 1


class TestServices:
    @pytest.mark.asyncio
    async def test_cleaning_uses_cleaning_prompt_and_temperature(self):
        config = _config(cleaning_temperature=0.05)
        service = LLMCleaningService(LLMClient(config), config)

        with patch("litellm.acompletion", new_callable=AsyncMock) as mock_acomp:
            mock_acomp.return_value = _mock_response("  Clean text.  ")
            assert await service.clean("um clean text") == "Clean text."

        kwargs = mock_acomp.call_args.kwargs
        assert kwargs["temperature"] == 0.05
        assert kwargs["messages"][0]["content"] == CLEANING_SYSTEM_PROMPT
        assert kwargs["messages"][1]["content"] == "um clean text"

    @pytest.mark.asyncio
    async def test_generation_prompt_carries_hint_transcript_and_answers(self):
        config = _config()
        service = LLMContentGenerationService(LLMClient(config), config)

        with patch("litellm.acompletion", new_callable=AsyncMock) as mock_acomp:
            mock_acomp.return_value = _mock_response("I saw a patient.")
            text = await service.generate(
                "Describe the presentation.",
                "Patient with cough.",
                {"reflection": "I would examine sooner."},
            )

        assert text == "I saw a patient."
        messages = mock_acomp.call_args.kwargs["messages"]
        assert messages[0]["content"] == SECTION_SYSTEM_PROMPT
        prompt = messages[1]["content"]
        assert "Describe the presentation." in prompt
        assert "Patient with cough." in prompt
        assert "- reflection: I would examine sooner." in prompt
        assert mock_acomp.call_args.kwargs["temperature"] == config.generation_temperature

    @pytest.mark.asyncio
    async def test_generation_without_answers_has_no_answer_block(self):
        config = _config()
        service = LLMContentGenerationService(LLMClient(config), config)

        with patch("litellm.acompletion", new_callable=AsyncMock) as mock_acomp:
            mock_acomp.return_value = _mock_response("text")
            await service.generate("hint", "account")

        assert "follow-up questions" not in mock_acomp.call_args.kwargs["messages"][1]["content"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("reply", ["NONE", " none \n"])
    async def test_nothing_to_say_is_empty(self, reply):
        config = _config()
        service = LLMContentGenerationService(LLMClient(config), config)

        with patch("litellm.acompletion", new_callable=AsyncMock) as mock_acomp:
            mock_acomp.return_value = _mock_response(reply)
            assert await service.generate("hint", "account") == ""
