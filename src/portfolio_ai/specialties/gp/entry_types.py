"""GP portfolio entry types and their classification signal phrases.

Signal phrases are matched case-insensitively as whole phrases; keep them
specific enough not to fire on unrelated dictation.
"""

from __future__ import annotations

from portfolio_ai.specialties.models import EntryTypeDefinition

GP_ENTRY_TYPES: tuple[EntryTypeDefinition, ...] = (
    EntryTypeDefinition(
        code="CLINICAL_CASE_REVIEW",
        label="Clinical Case Review",
        description="Reflection on a patient encounter: presentation, reasoning, management and learning.",
        template_id="CCR_TEMPLATE",
        classification_signals=(
            "patient", "presented with", "came in with", "history of", "examination",
            "differential", "diagnosis", "diagnosed", "management plan", "prescribed",
            "referred", "safety net", "follow up", "consultation",
        ),
        frequency="At least 36 per training year",
    ),
    EntryTypeDefinition(
        code="SIGNIFICANT_EVENT",
        label="Significant Event Analysis",
        description="Structured analysis of an event that had, or could have had, a significant impact on care.",
        template_id="SEA_TEMPLATE",
        classification_signals=(
            "significant event", "incident", "went wrong", "near miss", "error",
            "mistake", "datix", "harm", "root cause", "complaint", "missed",
        ),
        frequency="At least 1 per training year",
    ),
    EntryTypeDefinition(
        code="LEARNING_EVENT",
        label="Learning Event Analysis",
        description="A notable learning opportunity that did not meet the threshold for a significant event.",
        template_id="LEA_TEMPLATE",
        classification_signals=(
            "learning event", "learned", "learnt", "learning point", "realised",
            "didn't know", "new to me", "eye-opening", "good practice",
        ),
        frequency=None,
    ),
    EntryTypeDefinition(
        code="FEEDBACK_REFLECTION",
        label="Reflection on Feedback",
        description="Reflection on MSF, PSQ, exam results or informal feedback.",
        template_id="FEEDBACK_TEMPLATE",
        classification_signals=(
            "feedback", "msf", "psq", "multi-source", "patient satisfaction",
            "supervisor said", "cot", "cbd", "exam result", "akt", "sca",
        ),
        frequency="After each MSF and PSQ",
    ),
    EntryTypeDefinition(
        code="LEADERSHIP_ACTIVITY",
        label="Leadership Activity",
        description="An activity in which the trainee took a leadership or management role.",
        template_id="LEADERSHIP_TEMPLATE",
        classification_signals=(
            "led", "leadership", "organised", "chaired", "coordinated", "rota",
            "practice meeting", "delegated", "managed the team",
        ),
        frequency="At least 1 in ST3",
    ),
    EntryTypeDefinition(
        code="ACADEMIC_ACTIVITY",
        label="Academic Activity",
        description="Teaching, audit presentations, journal clubs, courses and conferences.",
        template_id="LEA_TEMPLATE",
        classification_signals=(
            "teaching", "tutorial", "journal club", "presentation", "course",
            "conference", "webinar", "lecture", "research", "e-learning",
        ),
        frequency=None,
    ),
    EntryTypeDefinition(
        code="OUT_OF_HOURS",
        label="Out of Hours Session",
        description="A clinical case or session from urgent and unscheduled care outside normal hours.",
        template_id="CCR_TEMPLATE",
        classification_signals=(
            "out of hours", "ooh", "111", "urgent care", "overnight", "night shift",
            "weekend shift", "home visit", "triage",
        ),
        frequency="Log every session",
    ),
    EntryTypeDefinition(
        code="QI_PROJECT",
        label="Quality Improvement Project",
        description="A structured improvement project with data collection and at least two PDSA cycles.",
        template_id="QIP_TEMPLATE",
        classification_signals=(
            "qip", "quality improvement project", "pdsa", "baseline data",
            "re-audit", "second cycle", "data collection", "run chart",
        ),
        frequency="1 during training",
    ),
    EntryTypeDefinition(
        code="QI_ACTIVITY",
        label="Quality Improvement Activity",
        description="A smaller improvement activity: audit, protocol change or service tweak.",
        template_id="QIA_TEMPLATE",
        classification_signals=(
            "quality improvement", "audit", "improve the process", "protocol",
            "new process", "template change", "searches",
        ),
        frequency="At least 1 per training year",
    ),
    EntryTypeDefinition(
        code="PRESCRIBING",
        label="Prescribing Assessment",
        description="Review of the trainee's own prescribing against the GP prescribing proficiencies.",
        template_id="PRESCRIBING_TEMPLATE",
        classification_signals=(
            "prescribing review", "prescribing assessment", "prescriptions",
            "antimicrobial", "antibiotic", "bnf", "nice guidance", "polypharmacy",
            "medication review",
        ),
        frequency="1 in ST3",
    ),
)
