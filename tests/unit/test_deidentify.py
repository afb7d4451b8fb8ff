"""Tests for the regex de-identifier and the passthrough transcriber."""

from __future__ import annotations

import pytest

from portfolio_ai.exceptions import ContentError
from portfolio_ai.processing.deidentify import RegexDeidentifier
from portfolio_ai.processing.models import PayloadKind, RawPayload
from portfolio_ai.processing.transcribers import PassthroughTranscriptionService


@pytest.fixture
def deidentifier() -> RegexDeidentifier:
    return RegexDeidentifier()


class TestRedaction:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("Patient: Margaret Thompson\nSeen today.", "Patient: [NAME]\nSeen today."),
            ("pt - Smith, John", "pt - [NAME]"),
            ("DOB: 12/03/1950, lives alone", "DOB: [DATE], lives alone"),
            ("Reviewed on 3rd March 2024.", "Reviewed on [DATE]."),
            ("Bloods from 2024-01-05 were normal.", "Bloods from [DATE] were normal."),
            ("NHS number 943 476 5919 checked", "[NHS_NUMBER] checked"),
            ("MRN: AB12345", "MRN: [MRN]"),
            ("Email j.smith@nhs.net for results", "Email [EMAIL] for results"),
            ("Call 07700 900123 tomorrow", "Call [PHONE] tomorrow"),
            ("Lives at SW1A 1AA with family", "Lives at [POSTCODE] with family"),
            ("A 92 year old man", "A [AGE 90+] man"),
            ("Saw Mrs Jones with her son", "Saw Mrs [NAME] with her son"),
        ],
    )
    def test_placeholders(self, deidentifier, text, expected):
        redacted, _ = deidentifier.redact(text)

        assert redacted == expected

    def test_ages_below_ninety_are_kept(self, deidentifier):
        redacted, counts = deidentifier.redact("An 85 year old woman with a cough.")

        assert redacted == "An 85 year old woman with a cough."
        assert counts == {}

    def test_counts_per_rule(self, deidentifier):
        _, counts = deidentifier.redact("Mr Khan and Mrs Patel, DOB 01/02/1960")

        assert counts == {"dob": 1, "titled_name": 2}

    def test_clinical_wording_survives(self, deidentifier):
        text = "Chest pain for 2 days, BP 140/90, started ramipril 2.5mg once daily."

        assert deidentifier.redact(text)[0] == text

    @pytest.mark.asyncio
    async def test_service_interface(self, deidentifier):
        assert await deidentifier.deidentify("Pt: Jones") == "Pt: [NAME]"


class TestPassthroughTranscription:
    @pytest.mark.asyncio
    async def test_text_is_returned(self):
        service = PassthroughTranscriptionService()

        assert await service.transcribe(RawPayload(kind=PayloadKind.TEXT, ref="hello")) == "hello"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("kind", [PayloadKind.AUDIO, PayloadKind.IMAGE])
    async def test_other_kinds_rejected(self, kind):
        with pytest.raises(ContentError, match=kind.value):
            await PassthroughTranscriptionService().transcribe(RawPayload(kind=kind, ref="s3://x"))
