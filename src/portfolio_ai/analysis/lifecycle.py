"""Artefact status machine: DRAFT -> PROCESSING -> REVIEW -> FINAL -> EXPORTED.

Rules:

* While a required section is empty the artefact sits at PROCESSING.
* With every required section filled it goes to REVIEW below the
  high-confidence threshold and straight to FINAL at or above it.
* FINAL is only reachable with every required section filled.
* EXPORTED is terminal and only reachable from FINAL, by explicit ``export``.
* Nothing moves an artefact backwards automatically.  Emptying a required
  section of a REVIEW/FINAL artefact is refused until it is ``reopen``-ed.
"""

from __future__ import annotations

import logging
from typing import Mapping

from portfolio_ai.analysis.models import Artefact, ArtefactStatus
from portfolio_ai.analysis.templates import TemplateEngine, is_filled
from portfolio_ai.exceptions import LifecycleError
from portfolio_ai.specialties.models import ArtefactTemplate

log = logging.getLogger(__name__)

_LOCKED_FOR_REGRESSION = (ArtefactStatus.REVIEW, ArtefactStatus.FINAL)


class ArtefactLifecycle:
    """Applies status rules to an artefact.  Mutates the artefact passed in."""

    def __init__(self, high_confidence_threshold: float = 0.9, engine: TemplateEngine | None = None) -> None:
        self._threshold = high_confidence_threshold
        self._engine = engine or TemplateEngine()

    @property
    def threshold(self) -> float:
        return self._threshold

    def evaluate(self, template: ArtefactTemplate, content: Mapping[str, str]) -> ArtefactStatus:
        """Status the content earns, ignoring the artefact's current status."""
        score = self._engine.score(template, content)
        if score.missing_required:
            return ArtefactStatus.PROCESSING
        if score.completeness >= self._threshold:
            return ArtefactStatus.FINAL
        return ArtefactStatus.REVIEW

    def advance(self, artefact: Artefact, template: ArtefactTemplate, completeness: float | None = None) -> ArtefactStatus:
        """Move ``artefact`` forward according to its content.

        ``completeness`` is recomputed from the content when omitted.

        Raises:
            LifecycleError: The artefact is EXPORTED, or the content would pull
                a REVIEW/FINAL artefact backwards.
        """
        if artefact.status is ArtefactStatus.EXPORTED:
            raise LifecycleError(f"Artefact {artefact.id} is EXPORTED and cannot change")

        score = self._engine.score(template, artefact.content)
        artefact.completeness = score.completeness if completeness is None else completeness

        if score.missing_required:
            target = ArtefactStatus.PROCESSING
        elif artefact.completeness >= self._threshold:
            target = ArtefactStatus.FINAL
        else:
            target = ArtefactStatus.REVIEW

        if _rank(target) < _rank(artefact.status):
            if artefact.status in _LOCKED_FOR_REGRESSION:
                raise LifecycleError(
                    f"Artefact {artefact.id} is {artefact.status.value}; "
                    f"content now only supports {target.value}. Reopen it first."
                )
            target = artefact.status

        self._move(artefact, target, reason=f"completeness {artefact.completeness:.2f}")
        return artefact.status

    def begin(self, artefact: Artefact, reason: str = "analysis started") -> ArtefactStatus:
        """DRAFT -> PROCESSING once an entry type is bound; no-op otherwise."""
        if artefact.status is ArtefactStatus.DRAFT:
            self._move(artefact, ArtefactStatus.PROCESSING, reason=reason)
        return artefact.status

    def approve(self, artefact: Artefact, template: ArtefactTemplate) -> ArtefactStatus:
        """Reviewer sign-off: REVIEW -> FINAL."""
        if artefact.status is not ArtefactStatus.REVIEW:
            raise LifecycleError(f"Only REVIEW artefacts can be approved (is {artefact.status.value})")
        self._require_complete(artefact, template)
        self._move(artefact, ArtefactStatus.FINAL, reason="approved")
        return artefact.status

    def export(self, artefact: Artefact) -> ArtefactStatus:
        """FINAL -> EXPORTED."""
        if artefact.status is not ArtefactStatus.FINAL:
            raise LifecycleError(f"Only FINAL artefacts can be exported (is {artefact.status.value})")
        self._move(artefact, ArtefactStatus.EXPORTED, reason="exported")
        return artefact.status

    def reopen(self, artefact: Artefact, reason: str = "reopened") -> ArtefactStatus:
        """REVIEW/FINAL -> PROCESSING, allowing content to be removed again."""
        if artefact.status not in _LOCKED_FOR_REGRESSION:
            raise LifecycleError(
                f"Only REVIEW or FINAL artefacts can be reopened (is {artefact.status.value})"
            )
        self._move(artefact, ArtefactStatus.PROCESSING, reason=reason)
        return artefact.status

    def edit_section(
        self,
        artefact: Artefact,
        template: ArtefactTemplate,
        section_id: str,
        content: str,
    ) -> ArtefactStatus:
        """Write one section by hand and re-evaluate the status.

        Raises:
            KeyError: ``section_id`` is not part of the template.
            LifecycleError: EXPORTED artefact, or the edit empties a required
                section of a REVIEW/FINAL artefact.
        """
        section = template.section(section_id)
        if artefact.status is ArtefactStatus.EXPORTED:
            raise LifecycleError(f"Artefact {artefact.id} is EXPORTED and cannot be edited")
        if (
            section.required
            and not is_filled(content)
            and artefact.status in _LOCKED_FOR_REGRESSION
        ):
            raise LifecycleError(
                f"Clearing required section {section_id!r} of a {artefact.status.value} "
                "artefact needs an explicit reopen"
            )

        artefact.content[section_id] = content.strip()
        artefact.touch()
        if artefact.status is ArtefactStatus.DRAFT:
            # not analysed yet; the analysis session decides the first move
            artefact.completeness = self._engine.score(template, artefact.content).completeness
            return artefact.status
        return self.advance(artefact, template)

    def _require_complete(self, artefact: Artefact, template: ArtefactTemplate) -> None:
        missing = self._engine.score(template, artefact.content).missing_required
        if missing:
            raise LifecycleError(
                f"Artefact {artefact.id} has empty required sections: {', '.join(missing)}"
            )

    def _move(self, artefact: Artefact, target: ArtefactStatus, reason: str) -> None:
        if target is artefact.status:
            return
        previous = artefact.status
        artefact.record_status(target, reason)
        log.info("Artefact %s %s -> %s (%s)", artefact.id, previous.value, target.value, reason)


_ORDER = (
    ArtefactStatus.DRAFT,
    ArtefactStatus.PROCESSING,
    ArtefactStatus.REVIEW,
    ArtefactStatus.FINAL,
    ArtefactStatus.EXPORTED,
)


def _rank(status: ArtefactStatus) -> int:
    return _ORDER.index(status)
