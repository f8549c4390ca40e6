"""HttpUserSimulator: asks the user-simulation service for the next user turn."""

import asyncio

import httpx

from convo_eval.conversation.domain.observer import ConversationObserver
from convo_eval.conversation.domain.simulator import SimulatedTurn, SimulationRequest
from convo_eval.conversation.infrastructure.errors import SimulatorInvocationError
from convo_eval.core.backoff import BackoffPolicy, Sleeper, retry_async
from convo_eval.core.http import ServiceClient
from convo_eval.core.upstream import is_rate_limited


class HttpUserSimulator:
    """Satisfies the UserSimulator protocol structurally.

    Rate limits, transient 503s and replies without a ``next_message`` are
    retried with the shared backoff policy; other failures are fatal.
    """

    def __init__(
        self,
        client: ServiceClient,
        path: str,
        retry: BackoffPolicy,
        observer: ConversationObserver,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self._client = client
        self._path = path
        self._retry = retry
        self._observer = observer
        self._sleep = sleep

    async def simulate(self, request: SimulationRequest, request_id: str) -> SimulatedTurn:
        payload = request.model_dump(mode="json", exclude_none=True, exclude={"allow_empty"})

        async def attempt() -> SimulatedTurn:
            try:
                response = await self._client.post(self._path, payload, request_id=request_id)
            except httpx.HTTPError as exc:
                raise SimulatorInvocationError(reason=str(exc), retriable=True) from exc

            body = response.body if isinstance(response.body, dict) else {}
            if not response.ok or response.error_text:
                reason = response.error_text or f"status {response.status}"
                if body.get("reason"):
                    reason = f"{reason} reason={body['reason']}"
                raise SimulatorInvocationError(
                    reason=reason,
                    retriable=is_rate_limited(response.status, response.error_text),
                )
            next_message = str(body.get("next_message") or "")
            if not next_message.strip() and not request.allow_empty:
                raise SimulatorInvocationError(reason="empty next_message", retriable=True)
            return SimulatedTurn(next_message=next_message, done=bool(body.get("done")))

        def on_retry(attempt_no: int, reason: str, delay: float) -> None:
            self._observer.conversation_upstream_retry(
                request_id=request_id,
                service="simulator",
                attempt=attempt_no,
                reason=reason,
                backoff_seconds=delay,
            )

        return await retry_async(
            attempt, policy=self._retry, on_retry=on_retry, sleep=self._sleep
        )
