"""Shared type aliases and id helpers."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

JsonDict = dict[str, Any]

# Section id -> written content
SectionContent = dict[str, str]


def new_id(prefix: str) -> str:
    """Short prefixed id, e.g. ``msg_3f9a0c2b1d4e``."""
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
