"""FakeTemplateSource: TemplateSource returning a canned template or raising."""

from convo_eval.core.errors import ConvoEvalError
from convo_eval.fixture.domain.template import PlanTemplate

DEFAULT_PLAN = {
    "grimoireTitle": "Mieux dormir",
    "deepWhy": "Retrouver de l'énergie.",
    "phases": [
        {
            "id": "p1",
            "title": "Phase 1",
            "actions": [
                {"id": "a1", "type": "habitude", "title": "Coucher 23h", "targetReps": 5},
                {"id": "a2", "type": "mission", "title": "Ranger la chambre"},
                {
                    "id": "a3",
                    "type": "framework",
                    "title": "Journal du soir",
                    "frameworkDetails": {"type": "daily"},
                },
            ],
        },
        {"id": "p2", "title": "Phase 2", "actions": [{"id": "a4", "title": "Sport"}]},
    ],
}


def make_template(fingerprint: str = "fp-test") -> PlanTemplate:
    return PlanTemplate(raw_content=DEFAULT_PLAN, fingerprint=fingerprint)


class FakeTemplateSource:
    """Satisfies the TemplateSource protocol and counts build() calls."""

    name = "fake"

    def __init__(
        self, template: PlanTemplate | None = None, error: ConvoEvalError | None = None
    ) -> None:
        self._template = template if template is not None else make_template()
        self._error = error
        self.builds = 0

    async def build(self) -> PlanTemplate:
        self.builds += 1
        if self._error is not None:
            raise self._error
        return self._template
