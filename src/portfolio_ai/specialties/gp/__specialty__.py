"""GP specialty manifest, discovered by SpecialtyCatalog.auto_discover()."""

from __future__ import annotations

from portfolio_ai.specialties.gp.capabilities import GP_CAPABILITIES
from portfolio_ai.specialties.gp.entry_types import GP_ENTRY_TYPES
from portfolio_ai.specialties.gp.templates import GP_ENTRY_TYPE_TO_TEMPLATE, GP_TEMPLATES
from portfolio_ai.specialties.models import SpecialtyConfig

specialty = SpecialtyConfig(
    id="gp",
    name="General Practice",
    description="RCGP GP specialty training portfolio",
    entry_types=GP_ENTRY_TYPES,
    templates=GP_TEMPLATES,
    entry_type_to_template=GP_ENTRY_TYPE_TO_TEMPLATE,
    capabilities=GP_CAPABILITIES,
)
