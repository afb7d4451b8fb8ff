"""Load specialty configurations from YAML or JSON files.

File layout (YAML shown; JSON uses the same keys)::

    id: em
    name: Emergency Medicine
    entry_types:
      - code: RESUS_CASE
        label: Resuscitation case
        description: ...
        template_id: RESUS_TEMPLATE
        classification_signals: [resus, cardiac arrest]
    templates:
      - id: RESUS_TEMPLATE
        name: Resuscitation Case Review
        word_count_range: {min: 150, max: 300}
        sections:
          - {id: summary, label: Summary, required: true, weight: 1.0,
             description: ..., prompt_hint: ..., extraction_question: ...}
    capabilities:
      - {code: SLO-1, name: ..., description: ..., domain_code: ..., domain_name: ...}

``entry_type_to_template`` is optional; when absent it is derived from each
entry type's ``template_id``.  ``templates`` may be a list or a mapping keyed
by template id.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable

import yaml

from portfolio_ai.exceptions import ConfigError
from portfolio_ai.specialties.models import (
    ArtefactTemplate,
    CapabilityDefinition,
    EntryTypeDefinition,
    SpecialtyConfig,
    TemplateSection,
    WordCountRange,
)

log = logging.getLogger(__name__)

SUPPORTED_SUFFIXES = (".yaml", ".yml", ".json")


def read_config_file(path: Path) -> dict[str, Any]:
    """Parse one YAML/JSON file into a dict."""
    if not path.is_file():
        raise ConfigError(f"Specialty file not found: {path}")
    raw_text = path.read_text(encoding="utf-8")
    try:
        if path.suffix in (".yaml", ".yml"):
            data = yaml.safe_load(raw_text)
        elif path.suffix == ".json":
            data = json.loads(raw_text)
        else:
            raise ConfigError(f"Unsupported specialty file type: {path.suffix} ({path})")
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise ConfigError(f"Could not parse {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"{path}: top level must be a mapping, got {type(data).__name__}")
    return data


def specialty_from_dict(data: dict[str, Any], *, source: str = "<dict>") -> SpecialtyConfig:
    """Build a ``SpecialtyConfig`` from parsed file data.

    Structural problems (missing keys, wrong types) raise ``ConfigError``.
    Semantic checks such as weight sums happen at catalog registration.
    """
    try:
        entry_types = tuple(_entry_type(e) for e in _as_list(data.get("entry_types"), "entry_types"))
        templates = _templates(data.get("templates"))
        capabilities = tuple(
            _capability(c) for c in _as_list(data.get("capabilities", []), "capabilities")
        )
        mapping = data.get("entry_type_to_template")
        if mapping is None:
            mapping = {e.code: e.template_id for e in entry_types}
        elif not isinstance(mapping, dict):
            raise ConfigError("entry_type_to_template must be a mapping")

        config = SpecialtyConfig(
            id=str(data["id"]),
            name=str(data["name"]),
            description=str(data.get("description", "")),
            entry_types=entry_types,
            templates=templates,
            entry_type_to_template={str(k): str(v) for k, v in mapping.items()},
            capabilities=capabilities,
        )
    except KeyError as e:
        raise ConfigError(f"{source}: missing required key {e}") from e
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{source}: {e}") from e

    log.debug(
        "Parsed specialty %s from %s (%d entry types, %d templates)",
        config.id, source, len(config.entry_types), len(config.templates),
    )
    return config


def load_specialty_file(path: Path) -> SpecialtyConfig:
    return specialty_from_dict(read_config_file(path), source=str(path))


def iter_specialty_files(path: Path) -> Iterable[Path]:
    """Yield ``path`` itself or, for a directory, its YAML/JSON files sorted by name."""
    if path.is_dir():
        yield from sorted(p for p in path.iterdir() if p.suffix in SUPPORTED_SUFFIXES)
    else:
        yield path


# ── Internal helpers ────────────────────────────────────────────────


def _as_list(value: Any, name: str) -> list[Any]:
    if value is None:
        raise KeyError(name)
    if not isinstance(value, list):
        raise ConfigError(f"{name} must be a list, got {type(value).__name__}")
    return value


def _section(data: dict[str, Any]) -> TemplateSection:
    question = data.get("extraction_question")
    return TemplateSection(
        id=str(data["id"]),
        label=str(data["label"]),
        required=bool(data.get("required", False)),
        description=str(data.get("description", "")),
        prompt_hint=str(data.get("prompt_hint", "")),
        extraction_question=str(question) if question is not None else None,
        weight=float(data["weight"]),
    )


def _template(data: dict[str, Any]) -> ArtefactTemplate:
    word_range = data.get("word_count_range") or {}
    return ArtefactTemplate(
        id=str(data["id"]),
        name=str(data.get("name", data["id"])),
        sections=tuple(_section(s) for s in _as_list(data.get("sections"), "sections")),
        word_count_range=WordCountRange(
            min=int(word_range.get("min", 0)),
            max=int(word_range.get("max", 0)),
        ),
    )


def _templates(value: Any) -> dict[str, ArtefactTemplate]:
    if value is None:
        raise KeyError("templates")
    if isinstance(value, dict):
        items = [{"id": template_id, **body} for template_id, body in value.items()]
    else:
        items = _as_list(value, "templates")

    templates: dict[str, ArtefactTemplate] = {}
    for item in items:
        template = _template(item)
        if template.id in templates:
            raise ConfigError(f"Duplicate template id {template.id!r}")
        templates[template.id] = template
    return templates


def _entry_type(data: dict[str, Any]) -> EntryTypeDefinition:
    frequency = data.get("frequency")
    return EntryTypeDefinition(
        code=str(data["code"]),
        label=str(data["label"]),
        description=str(data.get("description", "")),
        template_id=str(data["template_id"]),
        classification_signals=tuple(str(s) for s in data.get("classification_signals", [])),
        frequency=str(frequency) if frequency is not None else None,
    )


def _capability(data: dict[str, Any]) -> CapabilityDefinition:
    domain_code = data.get("domain_code")
    domain_name = data.get("domain_name")
    return CapabilityDefinition(
        code=str(data["code"]),
        name=str(data["name"]),
        description=str(data.get("description", "")),
        domain_code=str(domain_code) if domain_code is not None else None,
        domain_name=str(domain_name) if domain_name is not None else None,
    )
