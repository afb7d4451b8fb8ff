"""Specialty catalog with validation on registration and auto-discovery.

Each built-in specialty is a package under ``portfolio_ai/specialties/`` with
a ``__specialty__.py`` manifest exposing a ``specialty`` attribute of type
``SpecialtyConfig``.  Further specialties load from YAML/JSON files.

Usage::

    from portfolio_ai.specialties.catalog import get_catalog

    catalog = get_catalog()
    gp = catalog.get("gp")
    template = catalog.template_for_entry_type("gp", "CLINICAL_CASE_REVIEW")

Every config is validated when registered: a template whose section weights
do not sum to 1.0, a dangling template reference, or duplicate ids raise
``ConfigError`` and the specialty is never served.
"""

from __future__ import annotations

import importlib
import logging
import math
import pkgutil
from pathlib import Path
from typing import Iterable

from portfolio_ai.exceptions import ConfigError
from portfolio_ai.specialties.loader import iter_specialty_files, load_specialty_file
from portfolio_ai.specialties.models import ArtefactTemplate, SpecialtyConfig

log = logging.getLogger(__name__)

DEFAULT_WEIGHT_TOLERANCE = 1e-6


def validate_specialty(config: SpecialtyConfig, tolerance: float = DEFAULT_WEIGHT_TOLERANCE) -> None:
    """Raise ``ConfigError`` describing the first problem found in ``config``."""
    if not config.id:
        raise ConfigError("Specialty id must not be empty")
    if not config.entry_types:
        raise ConfigError(f"Specialty {config.id!r} defines no entry types")

    for template_id, template in config.templates.items():
        if template_id != template.id:
            raise ConfigError(
                f"Specialty {config.id!r}: template key {template_id!r} != template id {template.id!r}"
            )
        _validate_template(config.id, template, tolerance)

    seen_codes: set[str] = set()
    for entry_type in config.entry_types:
        if entry_type.code in seen_codes:
            raise ConfigError(f"Specialty {config.id!r}: duplicate entry type {entry_type.code!r}")
        seen_codes.add(entry_type.code)

        mapped = config.entry_type_to_template.get(entry_type.code)
        if mapped is None:
            raise ConfigError(
                f"Specialty {config.id!r}: entry type {entry_type.code!r} has no template mapping"
            )
        if mapped != entry_type.template_id:
            raise ConfigError(
                f"Specialty {config.id!r}: entry type {entry_type.code!r} declares template "
                f"{entry_type.template_id!r} but is mapped to {mapped!r}"
            )

    for code, template_id in config.entry_type_to_template.items():
        if code not in seen_codes:
            raise ConfigError(f"Specialty {config.id!r}: mapping for unknown entry type {code!r}")
        if template_id not in config.templates:
            raise ConfigError(
                f"Specialty {config.id!r}: entry type {code!r} references missing template {template_id!r}"
            )

    capability_codes = [c.code for c in config.capabilities]
    duplicates = sorted({c for c in capability_codes if capability_codes.count(c) > 1})
    if duplicates:
        raise ConfigError(f"Specialty {config.id!r}: duplicate capability codes {duplicates}")


def _validate_template(specialty_id: str, template: ArtefactTemplate, tolerance: float) -> None:
    if not template.sections:
        raise ConfigError(f"Specialty {specialty_id!r}: template {template.id!r} has no sections")

    section_ids = [s.id for s in template.sections]
    if len(set(section_ids)) != len(section_ids):
        raise ConfigError(
            f"Specialty {specialty_id!r}: template {template.id!r} has duplicate section ids"
        )

    for section in template.sections:
        if not 0.0 < section.weight <= 1.0:
            raise ConfigError(
                f"Specialty {specialty_id!r}: section {template.id}.{section.id} weight "
                f"{section.weight} is outside (0, 1]"
            )

    total = math.fsum(s.weight for s in template.sections)
    if abs(total - 1.0) > tolerance:
        raise ConfigError(
            f"Specialty {specialty_id!r}: template {template.id!r} section weights sum to "
            f"{total:.6f}, expected 1.0"
        )

    word_range = template.word_count_range
    if word_range.min < 0 or (word_range.max and word_range.max < word_range.min):
        raise ConfigError(
            f"Specialty {specialty_id!r}: template {template.id!r} has invalid word count range "
            f"{word_range.min}-{word_range.max}"
        )


class SpecialtyCatalog:
    """Read-mostly registry of validated specialty configs keyed by id.

    Configs are never mutated; :meth:`replace` swaps a whole config so
    readers holding the old instance keep a consistent view.
    """

    def __init__(self, weight_tolerance: float = DEFAULT_WEIGHT_TOLERANCE) -> None:
        self._tolerance = weight_tolerance
        self._specialties: dict[str, SpecialtyConfig] = {}

    def register(self, config: SpecialtyConfig) -> None:
        """Validate and register a specialty. Raises ConfigError if invalid or already present."""
        validate_specialty(config, self._tolerance)
        if config.id in self._specialties:
            raise ConfigError(
                f"Specialty {config.id!r} already registered; use replace() to swap it"
            )
        self._specialties[config.id] = config
        log.debug("Registered specialty: %s", config.id)

    def replace(self, config: SpecialtyConfig) -> SpecialtyConfig | None:
        """Validate ``config`` and swap it in whole. Returns the previous config, if any."""
        validate_specialty(config, self._tolerance)
        previous = self._specialties.get(config.id)
        self._specialties[config.id] = config
        log.info("Replaced specialty: %s", config.id)
        return previous

    def get(self, specialty_id: str) -> SpecialtyConfig:
        """Get a specialty config by id.

        Raises:
            KeyError: If the specialty is not registered.
        """
        if specialty_id not in self._specialties:
            raise KeyError(
                f"Specialty {specialty_id!r} not found. "
                f"Available: {sorted(self._specialties.keys())}"
            )
        return self._specialties[specialty_id]

    def has(self, specialty_id: str) -> bool:
        return specialty_id in self._specialties

    def list_specialties(self) -> list[SpecialtyConfig]:
        """Return all registered configs, sorted by id."""
        return sorted(self._specialties.values(), key=lambda s: s.id)

    def template_for_entry_type(self, specialty_id: str, entry_type_code: str) -> ArtefactTemplate:
        """Resolve an entry-type code to its template within one specialty.

        Raises:
            KeyError: Unknown specialty or entry type.
        """
        config = self.get(specialty_id)
        template_id = config.entry_type_to_template.get(entry_type_code)
        if template_id is None:
            raise KeyError(
                f"No template mapping for entry type {entry_type_code!r} in specialty {config.name!r}"
            )
        return config.templates[template_id]

    def auto_discover(self) -> None:
        """Scan ``portfolio_ai.specialties`` sub-packages for ``__specialty__`` manifests."""
        import portfolio_ai.specialties as specialties_pkg

        found = 0
        for _importer, modname, ispkg in pkgutil.iter_modules(
            specialties_pkg.__path__, prefix="portfolio_ai.specialties."
        ):
            if not ispkg:
                continue

            manifest_name = f"{modname}.__specialty__"
            try:
                mod = importlib.import_module(manifest_name)
            except ModuleNotFoundError as e:
                if e.name != manifest_name:
                    raise
                log.debug("No __specialty__.py in %s, skipping", modname)
                continue

            config = getattr(mod, "specialty", None)
            if not isinstance(config, SpecialtyConfig):
                log.warning("%s.specialty is not a SpecialtyConfig, skipping", manifest_name)
                continue

            if self.has(config.id):
                log.debug("Specialty %s already registered, skipping manifest", config.id)
                continue
            self.register(config)
            found += 1

        log.info(
            "Auto-discovered %d specialty config(s): %s",
            found,
            ", ".join(sorted(self._specialties.keys())),
        )

    def load_path(self, path: Path, *, replace: bool = False) -> list[str]:
        """Load one YAML/JSON file or every such file in a directory.

        Returns the ids loaded.  With ``replace`` an existing specialty of the
        same id is swapped out; otherwise a duplicate id is a ``ConfigError``.
        """
        if not path.exists():
            raise ConfigError(f"Specialty path not found: {path}")

        loaded: list[str] = []
        for file_path in iter_specialty_files(path):
            config = load_specialty_file(file_path)
            if replace:
                self.replace(config)
            else:
                self.register(config)
            loaded.append(config.id)
            log.info("Loaded specialty %s from %s", config.id, file_path)
        return loaded

    def load_paths(self, paths: Iterable[Path], *, replace: bool = False) -> list[str]:
        loaded: list[str] = []
        for path in paths:
            loaded.extend(self.load_path(path, replace=replace))
        return loaded

    def __contains__(self, specialty_id: object) -> bool:
        return specialty_id in self._specialties

    def __len__(self) -> int:
        return len(self._specialties)


# ── Module-level singleton ──────────────────────────────────────────

_global_catalog: SpecialtyCatalog | None = None


def get_catalog() -> SpecialtyCatalog:
    """Return the global catalog, auto-discovering built-in specialties on first call."""
    global _global_catalog
    if _global_catalog is None:
        catalog = SpecialtyCatalog()
        catalog.auto_discover()
        _global_catalog = catalog
    return _global_catalog


def build_catalog(
    *,
    auto_discover: bool = True,
    paths: Iterable[Path] = (),
    weight_tolerance: float = DEFAULT_WEIGHT_TOLERANCE,
) -> SpecialtyCatalog:
    """Build a fresh catalog from built-in manifests and extra files."""
    catalog = SpecialtyCatalog(weight_tolerance=weight_tolerance)
    if auto_discover:
        catalog.auto_discover()
    catalog.load_paths(paths, replace=True)
    return catalog
