"""Per-stage timing for message processing using structlog contextvars.

Usage::

    with track_stage(message.id, "CLEANING") as timing:
        text = await cleaner.clean(text)
    log.info("cleaned in %.1fms", timing.duration_ms)

While the block runs, every log line carries ``message_id`` and ``stage``.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Generator, Optional

import structlog


@dataclass
class StageTiming:
    """Wall-clock timing of one pipeline stage."""

    message_id: str
    stage: str
    started_at: datetime
    ended_at: Optional[datetime] = None
    duration_ms: float = 0.0
    succeeded: bool = False


@contextmanager
def track_stage(message_id: str, stage: str) -> Generator[StageTiming, None, None]:
    """Bind ``message_id``/``stage`` to the log context and time the block."""
    timing = StageTiming(message_id=message_id, stage=stage, started_at=datetime.now(timezone.utc))
    tokens = structlog.contextvars.bind_contextvars(message_id=message_id, stage=stage)
    try:
        yield timing
        timing.succeeded = True
    finally:
        timing.ended_at = datetime.now(timezone.utc)
        timing.duration_ms = (timing.ended_at - timing.started_at).total_seconds() * 1000
        structlog.contextvars.reset_contextvars(**tokens)
