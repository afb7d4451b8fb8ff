"""Application services sitting in front of the pipeline and the engine."""

from __future__ import annotations

from portfolio_ai.services.intake import MessageIntake

__all__ = ["MessageIntake"]
