"""Tests for template resolution, scoring and follow-up selection."""

from __future__ import annotations

import pytest

from portfolio_ai.analysis.templates import TemplateEngine, count_words
from portfolio_ai.specialties.models import ArtefactTemplate, TemplateSection, WordCountRange


def _template(*sections: TemplateSection, words: tuple[int, int] = (0, 0)) -> ArtefactTemplate:
    return ArtefactTemplate(
        id="T",
        name="Test",
        sections=sections,
        word_count_range=WordCountRange(min=words[0], max=words[1]),
    )


def _sec(id: str, weight: float, required: bool = True, question: str | None = "Q?") -> TemplateSection:
    return TemplateSection(
        id=id,
        label=id.title(),
        required=required,
        description="",
        prompt_hint=f"hint:{id}",
        extraction_question=question,
        weight=weight,
    )


@pytest.fixture
def engine() -> TemplateEngine:
    return TemplateEngine()


class TestScore:
    def test_required_empty_optional_filled(self, engine):
        template = _template(_sec("req", 0.6), _sec("opt", 0.4, required=False))

        score = engine.score(template, {"opt": "some content"})

        assert score.completeness == pytest.approx(0.4)
        assert score.missing_required == ("req",)

    def test_all_filled_is_exactly_one(self, engine):
        template = _template(_sec("a", 0.1), _sec("b", 0.2), _sec("c", 0.7, required=False))

        score = engine.score(template, {"a": "x", "b": "y", "c": "z"})

        assert score.completeness == 1.0
        assert score.missing_required == ()
        assert score.is_complete

    def test_gap_never_scores_one(self, engine):
        template = _template(_sec("a", 0.999999999), _sec("b", 0.000000001))

        score = engine.score(template, {"a": "x"})

        assert score.completeness < 1.0
        assert score.missing_required == ("b",)

    def test_required_filled_with_empty_optional_is_below_one(self, engine):
        template = _template(_sec("summary", 0.5), _sec("learning", 0.3), _sec("notes", 0.2, required=False))

        score = engine.score(template, {"summary": "x", "learning": "y", "notes": " "})

        assert score.missing_required == ()
        assert score.is_complete
        assert score.completeness == pytest.approx(0.8)
        assert score.completeness < 1.0

    def test_whitespace_is_empty(self, engine):
        template = _template(_sec("a", 0.5), _sec("b", 0.5))

        score = engine.score(template, {"a": "   \n", "b": "text"})

        assert score.completeness == pytest.approx(0.5)
        assert score.missing_required == ("a",)

    def test_empty_content(self, engine):
        template = _template(_sec("a", 0.5), _sec("b", 0.5, required=False))

        score = engine.score(template, {})

        assert score.completeness == 0.0
        assert score.missing_required == ("a",)

    def test_unknown_content_keys_are_ignored(self, engine):
        template = _template(_sec("a", 1.0))

        assert engine.score(template, {"other": "x"}).completeness == 0.0

    def test_gp_templates_score_full_when_filled(self, engine, catalog):
        for template in catalog.get("gp").templates.values():
            content = {s.id: "filled" for s in template.sections}
            assert engine.score(template, content).completeness == 1.0


class TestNextQuestion:
    def test_first_missing_in_template_order(self, engine):
        template = _template(_sec("a", 0.3), _sec("b", 0.3), _sec("c", 0.4))

        section = engine.next_question(template, ["c", "b"])

        assert section.id == "b"

    def test_skips_sections_without_question(self, engine):
        template = _template(_sec("a", 0.5, question=None), _sec("b", 0.5))

        assert engine.next_question(template, ["a", "b"]).id == "b"
        assert engine.blocked_sections(template, ["a", "b"]) == ["a"]

    def test_skips_answered(self, engine):
        template = _template(_sec("a", 0.5), _sec("b", 0.5))

        assert engine.next_question(template, ["a", "b"], answered=["a"]).id == "b"

    def test_none_when_nothing_askable(self, engine):
        template = _template(_sec("a", 1.0, question=None))

        assert engine.next_question(template, ["a"]) is None


class TestResolveAndWords:
    def test_resolve_maps_entry_type(self, engine, mini_config):
        assert engine.resolve(mini_config, "EVENT").id == "EVENT_T"

    def test_resolve_unknown_entry_type(self, engine, mini_config):
        with pytest.raises(KeyError):
            engine.resolve(mini_config, "NOPE")

    def test_count_words(self):
        assert count_words("I didn't see the follow-up, sadly.") == 6

    @pytest.mark.parametrize(
        ("text", "status"),
        [("one two", "under"), ("one two three four", "within"), ("a b c d e f g", "over")],
    )
    def test_word_count_status(self, engine, text, status):
        template = _template(_sec("a", 1.0), words=(3, 5))

        count, result = engine.word_count_status(template, {"a": text})

        assert result == status
        assert count == len(text.split())
