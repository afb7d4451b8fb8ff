"""Specialty configuration types.

A ``SpecialtyConfig`` bundles everything the analysis engine needs to work
with one training curriculum: entry types, their templates, and the
capability framework.  Instances are frozen and shared across sessions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional


@dataclass(frozen=True)
class TemplateSection:
    """One section of an artefact template.

    ``extraction_question`` of ``None`` means the doctor is never asked for
    this section; it can only be filled from the transcript or by a manual edit.
    """

    id: str
    label: str
    required: bool
    description: str
    prompt_hint: str
    extraction_question: Optional[str]
    weight: float


@dataclass(frozen=True)
class WordCountRange:
    min: int
    max: int


@dataclass(frozen=True)
class ArtefactTemplate:
    """Ordered sections plus a target length for the written entry."""

    id: str
    name: str
    sections: tuple[TemplateSection, ...]
    word_count_range: WordCountRange

    def section(self, section_id: str) -> TemplateSection:
        for section in self.sections:
            if section.id == section_id:
                return section
        raise KeyError(f"Template {self.id!r} has no section {section_id!r}")

    @property
    def section_ids(self) -> tuple[str, ...]:
        return tuple(s.id for s in self.sections)

    @property
    def required_section_ids(self) -> tuple[str, ...]:
        return tuple(s.id for s in self.sections if s.required)


@dataclass(frozen=True)
class EntryTypeDefinition:
    """A category of training event and the phrases that signal it."""

    code: str
    label: str
    description: str
    template_id: str
    classification_signals: tuple[str, ...] = ()
    # informational (portfolio gap analysis), never enforced
    frequency: Optional[str] = None


@dataclass(frozen=True)
class CapabilityDefinition:
    """A curriculum capability, optionally grouped under a parent domain."""

    code: str
    name: str
    description: str
    domain_code: Optional[str] = None
    domain_name: Optional[str] = None


@dataclass(frozen=True)
class SpecialtyConfig:
    """Complete, read-only configuration for one medical training specialty."""

    id: str
    name: str
    entry_types: tuple[EntryTypeDefinition, ...]
    templates: Mapping[str, ArtefactTemplate]
    entry_type_to_template: Mapping[str, str]
    capabilities: tuple[CapabilityDefinition, ...] = ()
    description: str = ""
    metadata: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # freeze the mappings too; configs are swapped whole, never edited
        object.__setattr__(self, "entry_types", tuple(self.entry_types))
        object.__setattr__(self, "capabilities", tuple(self.capabilities))
        object.__setattr__(self, "templates", MappingProxyType(dict(self.templates)))
        object.__setattr__(
            self, "entry_type_to_template", MappingProxyType(dict(self.entry_type_to_template))
        )
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))

    def entry_type(self, code: str) -> EntryTypeDefinition:
        for entry_type in self.entry_types:
            if entry_type.code == code:
                return entry_type
        raise KeyError(f"Specialty {self.id!r} has no entry type {code!r}")

    def has_entry_type(self, code: str) -> bool:
        return any(e.code == code for e in self.entry_types)

    def capability(self, code: str) -> CapabilityDefinition:
        for capability in self.capabilities:
            if capability.code == code:
                return capability
        raise KeyError(f"Specialty {self.id!r} has no capability {code!r}")
