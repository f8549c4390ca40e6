"""HttpAgent: calls the agent under test's message-processing endpoint."""

import asyncio

import httpx
from pydantic import ValidationError

from convo_eval.conversation.domain.agent import AgentCallMeta, AgentReply
from convo_eval.conversation.domain.message import ChatMessage
from convo_eval.conversation.domain.observer import ConversationObserver
from convo_eval.conversation.infrastructure.errors import AgentInvocationError
from convo_eval.core.backoff import BackoffPolicy, Sleeper, retry_async
from convo_eval.core.http import ServiceClient
from convo_eval.core.upstream import is_rate_limited


class HttpAgent:
    """Satisfies the AgentUnderTest protocol structurally."""

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

    async def process(
        self,
        user_id: str,
        message: str,
        history: list[ChatMessage],
        meta: AgentCallMeta,
    ) -> AgentReply:
        """
        Send one user message and return the agent's reply.

        Rate-limited calls are retried with backoff; anything else fails fast.

        Raises:
            AgentInvocationError: on transport errors, non-2xx responses after
                retries, or an unparseable body.
        """
        payload = {
            "user_id": user_id,
            "message": message,
            "history": [m.model_dump() for m in history],
            "meta": meta.model_dump(exclude_none=True),
        }

        async def attempt() -> AgentReply:
            try:
                response = await self._client.post(
                    self._path, payload, request_id=meta.request_id
                )
            except httpx.HTTPError as exc:
                raise AgentInvocationError(reason=str(exc), retriable=True) from exc
            if not response.ok or response.error_text:
                reason = response.error_text or f"status {response.status}"
                raise AgentInvocationError(
                    reason=reason,
                    retriable=is_rate_limited(response.status, response.error_text),
                )
            try:
                return AgentReply.model_validate(response.body or {})
            except ValidationError as exc:
                raise AgentInvocationError(reason=f"unexpected reply: {exc}") from exc

        def on_retry(attempt_no: int, reason: str, delay: float) -> None:
            self._observer.conversation_upstream_retry(
                request_id=meta.request_id,
                service="agent",
                attempt=attempt_no,
                reason=reason,
                backoff_seconds=delay,
            )

        return await retry_async(
            attempt, policy=self._retry, on_retry=on_retry, sleep=self._sleep
        )
