"""Specialty curricula: config types, validated catalog, file loader."""

from __future__ import annotations

from portfolio_ai.specialties.catalog import (
    SpecialtyCatalog,
    build_catalog,
    get_catalog,
    validate_specialty,
)
from portfolio_ai.specialties.loader import load_specialty_file, specialty_from_dict
from portfolio_ai.specialties.models import (
    ArtefactTemplate,
    CapabilityDefinition,
    EntryTypeDefinition,
    SpecialtyConfig,
    TemplateSection,
    WordCountRange,
)

__all__ = [
    "ArtefactTemplate",
    "CapabilityDefinition",
    "EntryTypeDefinition",
    "SpecialtyCatalog",
    "SpecialtyConfig",
    "TemplateSection",
    "WordCountRange",
    "build_catalog",
    "get_catalog",
    "load_specialty_file",
    "specialty_from_dict",
    "validate_specialty",
]
