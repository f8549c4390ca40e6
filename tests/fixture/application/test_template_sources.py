"""Tests for the generated and bank template sources."""

from typing import Any

import pytest

from convo_eval.core.hashing import content_fingerprint
from convo_eval.fixture.application.template_sources import (
    BankTemplateSource,
    GeneratedTemplateSource,
)
from convo_eval.fixture.domain.errors import PlanBankEmptyError
from convo_eval.fixture.domain.template import PlanBankEntry, PlanBankMeta


class _RecordingGenerator:
    def __init__(self, plan: dict[str, Any]) -> None:
        self._plan = plan
        self.calls: list[tuple[dict[str, Any], str]] = []

    async def generate(self, payload: dict[str, Any], request_id: str) -> dict[str, Any]:
        self.calls.append((payload, request_id))
        return self._plan


def _entry(theme: str | None, title: str, fingerprint: str | None = None) -> PlanBankEntry:
    return PlanBankEntry(
        meta=PlanBankMeta(theme_key=theme, fingerprint=fingerprint),
        plan_json={"grimoireTitle": title, "phases": []},
    )


class TestGeneratedTemplateSource:
    async def test_sends_questionnaire_and_fingerprints_result(self) -> None:
        plan = {"grimoireTitle": "Plan", "phases": []}
        generator = _RecordingGenerator(plan)

        template = await GeneratedTemplateSource(generator, request_id="batch:plan").build()

        payload, request_id = generator.calls[0]
        assert request_id == "batch:plan"
        assert payload["force_real_generation"] is True
        assert payload["currentAxis"]["id"] in {"sleep", "stress", "focus", "health"}
        assert len(payload["currentAxis"]["problems"]) == 2
        assert template.source == "generated"
        assert template.raw_content == plan
        assert template.fingerprint == content_fingerprint(plan)
        assert "why" in template.fake_inputs["inputs"]


class TestBankTemplateSource:
    async def test_theme_filter_is_case_insensitive(self) -> None:
        source = BankTemplateSource(
            [_entry("sleep", "A"), _entry("Stress", "B")], theme_key=" stress "
        )

        assert [e.plan_json["grimoireTitle"] for e in source.candidates()] == ["B"]
        template = await source.build()
        assert template.raw_content["grimoireTitle"] == "B"
        assert template.source == "bank"

    async def test_blank_theme_uses_every_entry(self) -> None:
        source = BankTemplateSource([_entry("sleep", "A"), _entry(None, "B")], theme_key="  ")
        assert len(source.candidates()) == 2

    async def test_empty_selection_raises(self) -> None:
        source = BankTemplateSource([_entry("sleep", "A")], theme_key="focus")

        with pytest.raises(PlanBankEmptyError) as exc_info:
            await source.build()

        assert exc_info.value.theme_key == "focus"

    async def test_bank_fingerprint_is_trusted(self) -> None:
        source = BankTemplateSource([_entry("sleep", "A", fingerprint="v3-sleep")])
        template = await source.build()
        assert template.fingerprint == "v3-sleep"
        assert template.bank_meta is not None

    async def test_missing_bank_fingerprint_is_computed(self) -> None:
        entry = _entry("sleep", "A")
        template = await BankTemplateSource([entry]).build()
        assert template.fingerprint == content_fingerprint(entry.plan_json)
