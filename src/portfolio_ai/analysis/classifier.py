"""Entry-type classification by signal-phrase matching.

Each entry type declares classification signals.  A signal is matched as a
whole phrase, case-insensitively, so ``"led"`` does not fire inside
``"cancelled"``.  An entry type's score is the number of signal occurrences
in the transcript; confidence is its share of all occurrences.
"""

from __future__ import annotations

import logging
import re
from functools import lru_cache
from typing import Pattern

from portfolio_ai.analysis.models import ClassificationCandidate
from portfolio_ai.specialties.models import SpecialtyConfig

log = logging.getLogger(__name__)


@lru_cache(maxsize=1024)
def _signal_pattern(signal: str) -> Pattern[str]:
    phrase = r"\s+".join(re.escape(part) for part in signal.split())
    return re.compile(rf"(?<!\w){phrase}(?!\w)", re.IGNORECASE)


class EntryTypeClassifier:
    """Ranks a specialty's entry types against a transcript."""

    def __init__(self, min_confidence: float = 0.0) -> None:
        self._min_confidence = min_confidence

    def classify(self, transcript: str, config: SpecialtyConfig) -> list[ClassificationCandidate]:
        """Ranked candidates, best first; empty when no signal matches.

        Ties keep the entry types' declaration order.
        """
        if not transcript or not transcript.strip():
            return []

        scored: list[tuple[int, int, list[str], str, str]] = []
        for position, entry_type in enumerate(config.entry_types):
            hits = 0
            matched: list[str] = []
            for signal in entry_type.classification_signals:
                if not signal.strip():
                    continue
                count = len(_signal_pattern(signal.strip()).findall(transcript))
                if count:
                    hits += count
                    matched.append(signal)
            if hits:
                scored.append((hits, position, matched, entry_type.code, entry_type.label))

        total = sum(s[0] for s in scored)
        if not total:
            log.info("No classification signals matched for specialty %s", config.id)
            return []

        scored.sort(key=lambda s: (-s[0], s[1]))
        candidates = [
            ClassificationCandidate(
                entry_type_code=code,
                label=label,
                confidence=round(hits / total, 4),
                matched_signals=matched,
            )
            for hits, _position, matched, code, label in scored
        ]
        candidates = [c for c in candidates if c.confidence >= self._min_confidence]
        if candidates:
            log.debug(
                "Classified transcript as %s (%.2f) among %d candidates",
                candidates[0].entry_type_code, candidates[0].confidence, len(candidates),
            )
        return candidates
