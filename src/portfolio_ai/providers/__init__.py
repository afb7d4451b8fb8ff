"""Concrete service implementations backed by external providers."""

from __future__ import annotations

from portfolio_ai.providers.llm import LLMCleaningService, LLMClient, LLMContentGenerationService

__all__ = ["LLMClient", "LLMCleaningService", "LLMContentGenerationService"]
