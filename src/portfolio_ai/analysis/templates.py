"""Template resolution and draft scoring.

Completeness is the weight of the filled sections over the total weight of
the template.  A section is filled when its content is non-blank, whether it
is required or optional.  Because validated templates sum to 1.0 the score is
the plain sum of filled weights; dividing by the total only absorbs float
rounding so a fully filled draft scores exactly 1.0.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Iterable, Mapping, Optional

from portfolio_ai.specialties.models import ArtefactTemplate, SpecialtyConfig, TemplateSection

_WORD_RE = re.compile(r"\b[\w'-]+\b")


@dataclass(frozen=True)
class TemplateScore:
    completeness: float
    missing_required: tuple[str, ...]

    @property
    def is_complete(self) -> bool:
        return not self.missing_required


def is_filled(content: Optional[str]) -> bool:
    return bool(content and content.strip())


def count_words(text: str) -> int:
    return len(_WORD_RE.findall(text))


class TemplateEngine:
    """Stateless operations over ``ArtefactTemplate`` definitions."""

    def resolve(self, config: SpecialtyConfig, entry_type_code: str) -> ArtefactTemplate:
        """Template for ``entry_type_code`` in ``config``. Raises KeyError if unmapped."""
        template_id = config.entry_type_to_template.get(entry_type_code)
        if template_id is None:
            raise KeyError(
                f"No template mapping for entry type {entry_type_code!r} in specialty {config.name!r}"
            )
        return config.templates[template_id]

    def score(self, template: ArtefactTemplate, content: Mapping[str, str]) -> TemplateScore:
        """Completeness and the empty required sections, in template order.

        Completeness is 1.0 only when every section, optional ones included,
        is filled. An empty ``missing_required`` with an empty optional section
        therefore scores below 1.0; that gap is what leaves room for REVIEW.
        """
        total = math.fsum(s.weight for s in template.sections)
        filled = [s for s in template.sections if is_filled(content.get(s.id))]

        if len(filled) == len(template.sections):
            completeness = 1.0
        elif total > 0:
            completeness = min(1.0, max(0.0, math.fsum(s.weight for s in filled) / total))
            # a gap must never round up to a perfect score
            completeness = min(completeness, math.nextafter(1.0, 0.0))
        else:
            completeness = 0.0

        missing = tuple(
            s.id for s in template.sections if s.required and not is_filled(content.get(s.id))
        )
        return TemplateScore(completeness=completeness, missing_required=missing)

    def next_question(
        self,
        template: ArtefactTemplate,
        missing_required: Iterable[str],
        answered: Iterable[str] = (),
    ) -> Optional[TemplateSection]:
        """First missing required section (template order) that can be asked about.

        Sections without an extraction question are skipped, as are sections
        the doctor already answered.
        """
        missing = set(missing_required)
        done = set(answered)
        for section in template.sections:
            if section.id not in missing or section.id in done:
                continue
            if section.extraction_question:
                return section
        return None

    def blocked_sections(self, template: ArtefactTemplate, missing_required: Iterable[str]) -> list[str]:
        """Missing required sections that have no extraction question."""
        missing = set(missing_required)
        return [
            s.id for s in template.sections
            if s.id in missing and not s.extraction_question
        ]

    def word_count(self, template: ArtefactTemplate, content: Mapping[str, str]) -> int:
        return sum(count_words(content.get(s.id, "") or "") for s in template.sections)

    def word_count_status(self, template: ArtefactTemplate, content: Mapping[str, str]) -> tuple[int, str]:
        """Total words and whether they are ``under``, ``within`` or ``over`` the target range."""
        words = self.word_count(template, content)
        word_range = template.word_count_range
        if words < word_range.min:
            return words, "under"
        if word_range.max and words > word_range.max:
            return words, "over"
        return words, "within"
