"""General Practice (RCGP) specialty: entry types, templates and capabilities."""

from __future__ import annotations

from portfolio_ai.specialties.gp.capabilities import GP_CAPABILITIES
from portfolio_ai.specialties.gp.entry_types import GP_ENTRY_TYPES
from portfolio_ai.specialties.gp.templates import GP_ENTRY_TYPE_TO_TEMPLATE, GP_TEMPLATES

__all__ = [
    "GP_CAPABILITIES",
    "GP_ENTRY_TYPES",
    "GP_ENTRY_TYPE_TO_TEMPLATE",
    "GP_TEMPLATES",
]
