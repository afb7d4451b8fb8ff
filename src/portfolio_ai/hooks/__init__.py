"""Ambient hooks: structured logging, stage timing, dead-letter recording."""

from __future__ import annotations

from portfolio_ai.hooks.dead_letter import DeadLetterLedger
from portfolio_ai.hooks.logging_config import setup_logging
from portfolio_ai.hooks.stage_tracker import StageTiming, track_stage

__all__ = [
    "DeadLetterLedger",
    "StageTiming",
    "setup_logging",
    "track_stage",
]
