"""Regex-based de-identification for dictated clinical text.

Replaces identifying spans with bracketed placeholders.  Patterns target the
identifiers that show up in UK GP dictation: patient name headers and
titled names, dates and dates of birth, ages over 89, NHS and record numbers,
phone numbers, emails and postcodes.  This is a floor, not a guarantee; a
model-backed ``DeidentificationService`` can replace it.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Pattern

log = logging.getLogger(__name__)

# "Patient: Margaret Thompson", "Pt: Smith, John", "Name - Virginia Richardson"
PATIENT_HEADER_RE = re.compile(
    r"(?m)^([\t ]*(?i:Patient(?:[\t ]+Name)?|Pt|Name)[\t ]*[:\-][\t ]*)"
    r"([A-Z][a-z]+,[\t ]*[A-Z][a-z]+(?:[\t ]+[A-Z]\.?)?"
    r"|[A-Z][a-z]+(?:[\t ]+[A-Z][a-z'\-]+)+"
    r"|[A-Z][a-z]+)"
)

# "Mrs Jones", "Mr. Ahmed Khan"
TITLED_NAME_RE = re.compile(
    r"\b(Mr|Mrs|Ms|Miss|Mx)\.?\s+[A-Z][a-z'\-]+(?:\s+[A-Z][a-z'\-]+)?"
)

DOB_RE = re.compile(
    r"(?i)\b(DOB|Date\s*of\s*Birth|Born)(\s*[:\-]?\s*)\d{1,2}[/\-.]\d{1,2}[/\-.]\d{2,4}"
)

DATE_FULL_RE = re.compile(
    r"\b(?:"
    r"\d{1,2}[/\-.]\d{1,2}[/\-.]\d{2,4}|"
    r"\d{4}-\d{1,2}-\d{1,2}|"
    r"\d{1,2}(?:st|nd|rd|th)?\s+(?:Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)[a-z]*\.?,?\s+\d{4}|"
    r"(?:Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)[a-z]*\.?\s+\d{1,2}(?:st|nd|rd|th)?,?\s+\d{4}"
    r")\b",
    re.IGNORECASE,
)

# ages over 89 are identifying on their own
AGE_OVER_89_RE = re.compile(
    r"(?i)\b(?:9\d|1\d{2})\s*-?\s*(?:y/?o|yo|yrs?|years?[\s-]old|year[\s-]old)\b"
)

# 943 476 5919 / 9434765919
NHS_NUMBER_RE = re.compile(
    r"(?i)(?:\bNHS\s*(?:number|no\.?)?\s*[:\#]?\s*)?\b\d{3}[\s\-]?\d{3}[\s\-]?\d{4}\b"
)

MRN_RE = re.compile(
    r"(?i)\b(MRN|Hospital\s*(?:number|no\.?)|Patient\s*ID)(\s*[:\#]?\s*)[A-Z0-9\-]{4,15}\b"
)

PHONE_RE = re.compile(
    r"(?:\+44\s?\d{2,4}|\(?0\d{2,4}\)?)[\s\-]?\d{3,4}[\s\-]?\d{3,4}\b"
)

EMAIL_RE = re.compile(r"\b[A-Za-z0-9._%+\-]+@[A-Za-z0-9.\-]+\.[A-Za-z]{2,}\b")

POSTCODE_RE = re.compile(r"\b[A-Z]{1,2}\d[A-Z\d]?\s*\d[A-Z]{2}\b")


@dataclass(frozen=True)
class RedactionRule:
    name: str
    pattern: Pattern[str]
    replacement: str


DEFAULT_RULES: tuple[RedactionRule, ...] = (
    # order matters: labelled identifiers before the generic number/date patterns
    RedactionRule("patient_header", PATIENT_HEADER_RE, r"\1[NAME]"),
    RedactionRule("dob", DOB_RE, r"\1\2[DATE]"),
    RedactionRule("mrn", MRN_RE, r"\1\2[MRN]"),
    RedactionRule("email", EMAIL_RE, "[EMAIL]"),
    RedactionRule("nhs_number", NHS_NUMBER_RE, "[NHS_NUMBER]"),
    RedactionRule("phone", PHONE_RE, "[PHONE]"),
    RedactionRule("date", DATE_FULL_RE, "[DATE]"),
    RedactionRule("age_over_89", AGE_OVER_89_RE, "[AGE 90+]"),
    RedactionRule("titled_name", TITLED_NAME_RE, r"\1 [NAME]"),
    RedactionRule("postcode", POSTCODE_RE, "[POSTCODE]"),
)


class RegexDeidentifier:
    """``DeidentificationService`` that applies an ordered list of regex rules."""

    def __init__(self, rules: tuple[RedactionRule, ...] = DEFAULT_RULES) -> None:
        self._rules = rules

    def redact(self, text: str) -> tuple[str, dict[str, int]]:
        """Return the redacted text and a per-rule count of replacements."""
        counts: dict[str, int] = {}
        for rule in self._rules:
            text, n = rule.pattern.subn(rule.replacement, text)
            if n:
                counts[rule.name] = n
        return text, counts

    async def deidentify(self, text: str) -> str:
        redacted, counts = self.redact(text)
        if counts:
            log.debug("Redacted spans: %s", counts)
        return redacted
