"""RCGP curriculum capabilities (13 capabilities in five domains)."""

from __future__ import annotations

from portfolio_ai.specialties.models import CapabilityDefinition

_D1 = ("D-01", "Knowing yourself and relating to others")
_D2 = ("D-02", "Applying clinical knowledge and skill")
_D3 = ("D-03", "Managing complex and long-term care")
_D4 = ("D-04", "Working well in organisations and systems")
_D5 = ("D-05", "Caring for the whole person, community and environment")


def _cap(code: str, name: str, description: str, domain: tuple[str, str]) -> CapabilityDefinition:
    return CapabilityDefinition(
        code=code,
        name=name,
        description=description,
        domain_code=domain[0],
        domain_name=domain[1],
    )


GP_CAPABILITIES: tuple[CapabilityDefinition, ...] = (
    _cap(
        "C-01",
        "Fitness to practise",
        "Maintaining professional standards, personal health and wellbeing, "
        "recognising limits of competence, seeking help when needed.",
        _D1,
    ),
    _cap(
        "C-02",
        "An ethical approach",
        "Applying ethical principles in clinical practice, consent, confidentiality, "
        "capacity, safeguarding, professional boundaries.",
        _D1,
    ),
    _cap(
        "C-03",
        "Communicating and consulting",
        "Effective communication with patients, shared decision-making, active listening, "
        "explaining complex information, telephone and video consulting.",
        _D1,
    ),
    _cap(
        "C-04",
        "Data gathering and interpretation",
        "Taking focused histories, identifying relevant information, interpreting clinical "
        "data, using investigations appropriately.",
        _D2,
    ),
    _cap(
        "C-05",
        "Clinical examination and procedural skills",
        "Performing targeted examinations, clinical procedures, intimate examinations, "
        "using equipment appropriately.",
        _D2,
    ),
    _cap(
        "C-06",
        "Decision-making and diagnosis",
        "Generating differential diagnoses, clinical reasoning, managing diagnostic "
        "uncertainty, using decision-support tools.",
        _D2,
    ),
    _cap(
        "C-07",
        "Clinical management",
        "Developing management plans, prescribing, referring, safety-netting, follow-up, "
        "shared care, continuity of care.",
        _D2,
    ),
    _cap(
        "C-08",
        "Medical complexity",
        "Managing multimorbidity, polypharmacy, frailty, undifferentiated presentations, "
        "chronic disease management.",
        _D3,
    ),
    _cap(
        "C-09",
        "Team working",
        "Working effectively in multidisciplinary teams, delegation, handover, "
        "collaborative care, interprofessional communication.",
        _D4,
    ),
    _cap(
        "C-10",
        "Performance, learning and teaching",
        "Self-directed learning, teaching others, giving and receiving feedback, "
        "reflective practice, CPD.",
        _D4,
    ),
    _cap(
        "C-11",
        "Organisation, management and leadership",
        "Practice management, quality improvement, resource management, leadership skills, "
        "system navigation.",
        _D4,
    ),
    _cap(
        "C-12",
        "Holistic practice, health promotion and safeguarding",
        "Holistic patient care, health promotion, disease prevention, safeguarding "
        "children and adults, public health.",
        _D5,
    ),
    _cap(
        "C-13",
        "Community health and environmental sustainability",
        "Population health, health inequalities, social determinants, environmental "
        "sustainability in healthcare.",
        _D5,
    ),
)
