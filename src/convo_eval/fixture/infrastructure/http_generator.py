"""HttpPlanGenerator: calls the plan generation endpoint with retry on overload."""

import asyncio
from typing import Any

import httpx

from convo_eval.core.backoff import BackoffPolicy, Sleeper, retry_async
from convo_eval.core.http import ServiceClient
from convo_eval.core.upstream import is_retryable_generation_failure
from convo_eval.fixture.domain.observer import FixtureObserver
from convo_eval.fixture.infrastructure.errors import PlanGenerationError


class HttpPlanGenerator:
    """Satisfies the PlanGenerator protocol structurally."""

    def __init__(
        self,
        client: ServiceClient,
        path: str,
        retry: BackoffPolicy,
        observer: FixtureObserver,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self._client = client
        self._path = path
        self._retry = retry
        self._observer = observer
        self._sleep = sleep

    async def generate(self, payload: dict[str, Any], request_id: str) -> dict[str, Any]:
        """
        Generate a plan for the questionnaire payload.

        Raises:
            PlanGenerationError: once retries are exhausted, or immediately for
                non-retryable failures.
        """

        async def attempt() -> dict[str, Any]:
            try:
                response = await self._client.post(self._path, payload, request_id=request_id)
            except httpx.HTTPError as exc:
                raise PlanGenerationError(reason=str(exc), retriable=True) from exc
            if response.ok and not response.error_text and isinstance(response.body, dict):
                return response.body
            reason = response.error_text or f"generate-plan failed ({response.status})"
            raise PlanGenerationError(
                reason=reason,
                retriable=is_retryable_generation_failure(response.status, response.error_text),
            )

        def on_retry(attempt_no: int, reason: str, delay: float) -> None:
            self._observer.fixture_generation_retry(
                request_id=request_id, attempt=attempt_no, reason=reason, backoff_seconds=delay
            )

        return await retry_async(
            attempt, policy=self._retry, on_retry=on_retry, sleep=self._sleep
        )
