"""The two ways a batch obtains its plan template: live generation or the bank."""

from typing import Protocol

from convo_eval.core.hashing import content_fingerprint
from convo_eval.core.sampling import pick_one
from convo_eval.fixture.domain.errors import PlanBankEmptyError
from convo_eval.fixture.domain.generator import PlanGenerator
from convo_eval.fixture.domain.questionnaire import build_questionnaire
from convo_eval.fixture.domain.template import PlanBankEntry, PlanTemplate


class TemplateSource(Protocol):
    name: str

    async def build(self) -> PlanTemplate: ...


class GeneratedTemplateSource:
    """Synthesises a questionnaire and asks the generation endpoint for a plan."""

    name = "generated"

    def __init__(self, generator: PlanGenerator, request_id: str) -> None:
        self._generator = generator
        self._request_id = request_id

    async def build(self) -> PlanTemplate:
        questionnaire = build_questionnaire()
        raw = await self._generator.generate(
            payload=questionnaire.to_payload(), request_id=self._request_id
        )
        return PlanTemplate(
            fake_inputs=questionnaire.model_dump(),
            raw_content=raw,
            fingerprint=content_fingerprint(raw),
            source="generated",
        )


class BankTemplateSource:
    """Samples a pre-generated plan, optionally restricted to one theme.

    Never falls back to generation: an empty selection is an error.
    """

    name = "bank"

    def __init__(self, entries: list[PlanBankEntry], theme_key: str | None = None) -> None:
        self._entries = entries
        self._theme_key = (theme_key or "").strip() or None

    def candidates(self) -> list[PlanBankEntry]:
        if self._theme_key is None:
            return list(self._entries)
        wanted = self._theme_key.lower()
        return [e for e in self._entries if (e.meta.theme_key or "").strip().lower() == wanted]

    async def build(self) -> PlanTemplate:
        candidates = self.candidates()
        if not candidates:
            raise PlanBankEmptyError(theme_key=self._theme_key)
        entry = pick_one(candidates)
        return PlanTemplate(
            fake_inputs=entry.fake,
            raw_content=entry.plan_json,
            # Bank fingerprints are versioned by hand and trusted as-is.
            fingerprint=entry.meta.fingerprint or content_fingerprint(entry.plan_json),
            source="bank",
            bank_meta=entry.meta,
        )
