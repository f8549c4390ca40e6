"""TemplateBuilder: lazily builds the batch's plan template exactly once."""

import asyncio

from convo_eval.core.errors import ConvoEvalError
from convo_eval.fixture.application.template_sources import TemplateSource
from convo_eval.fixture.domain.errors import PlanBankEmptyError, TemplateBuildError
from convo_eval.fixture.domain.observer import FixtureObserver
from convo_eval.fixture.domain.template import PlanTemplate


class TemplateBuilder:
    """Memoises one PlanTemplate for the lifetime of a batch.

    A batch that resumes without needing a template never triggers a build.
    A failed build is not cached, so a later call tries again.
    """

    def __init__(self, source: TemplateSource, observer: FixtureObserver) -> None:
        self._source = source
        self._observer = observer
        self._template: PlanTemplate | None = None
        self._lock = asyncio.Lock()

    @property
    def fingerprint(self) -> str | None:
        return self._template.fingerprint if self._template is not None else None

    async def get_or_build(self) -> PlanTemplate:
        """
        Return the batch template, building it on first use.

        Raises:
            PlanBankEmptyError: if the bank has no candidate for the theme.
            TemplateBuildError: if generation fails after exhausting retries.
        """
        async with self._lock:
            if self._template is not None:
                return self._template

            self._observer.fixture_template_build_started(source=self._source.name)
            try:
                template = await self._source.build()
            except PlanBankEmptyError as exc:
                self._observer.fixture_template_failed(source=self._source.name, reason=str(exc))
                raise
            except ConvoEvalError as exc:
                self._observer.fixture_template_failed(source=self._source.name, reason=str(exc))
                raise TemplateBuildError(reason=str(exc)) from exc

            self._template = template
            self._observer.fixture_template_built(
                source=self._source.name, fingerprint=template.fingerprint
            )
            return template
