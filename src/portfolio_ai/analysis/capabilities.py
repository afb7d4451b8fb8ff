"""Capability tagging by term overlap between transcript and capability text."""

from __future__ import annotations

import re

from portfolio_ai.analysis.models import CapabilityTag
from portfolio_ai.specialties.models import CapabilityDefinition, SpecialtyConfig

_TOKEN_RE = re.compile(r"[a-z][a-z\-]{2,}")

_STOPWORDS = frozenset(
    """
    and the for with from that this into their them they was were are not but
    when what how who use using used other others own its also can any all
    """.split()
)


def _terms(text: str) -> set[str]:
    return {t for t in _TOKEN_RE.findall(text.lower()) if t not in _STOPWORDS}


def _stem(term: str) -> str:
    for suffix in ("ing", "ed", "es", "s"):
        if term.endswith(suffix) and len(term) - len(suffix) >= 4:
            return term[: -len(suffix)]
    return term


class CapabilityTagger:
    """Ranks curriculum capabilities by how much their wording shows up in a transcript."""

    def rank(self, transcript: str, config: SpecialtyConfig, limit: int = 5) -> list[CapabilityTag]:
        """Top ``limit`` capabilities with at least one shared term.

        When nothing overlaps, every capability is returned unscored in
        declaration order so the doctor can still choose.
        """
        transcript_stems = {_stem(t) for t in _terms(transcript)}
        scored: list[tuple[float, int, CapabilityDefinition, list[str]]] = []
        for position, capability in enumerate(config.capabilities):
            capability_terms = _terms(f"{capability.name} {capability.description}")
            matched = sorted(t for t in capability_terms if _stem(t) in transcript_stems)
            if matched:
                score = len(matched) / len(capability_terms)
                scored.append((score, position, capability, matched))

        if not scored:
            return [self._tag(c, 0.0, []) for c in config.capabilities]

        scored.sort(key=lambda s: (-s[0], s[1]))
        return [self._tag(c, round(score, 4), matched) for score, _p, c, matched in scored[:limit]]

    @staticmethod
    def _tag(capability: CapabilityDefinition, score: float, matched: list[str]) -> CapabilityTag:
        return CapabilityTag(
            code=capability.code,
            name=capability.name,
            domain_code=capability.domain_code,
            score=score,
            matched_terms=matched,
        )
