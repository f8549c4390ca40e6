"""HttpJudge: delegates grading to the platform's eval-judge endpoint."""

import asyncio
import time
from typing import Any

import httpx
from pydantic import ValidationError

from convo_eval.assertion.domain.issue import Issue
from convo_eval.core.backoff import BackoffPolicy, Sleeper, retry_async
from convo_eval.core.http import ServiceClient, ServiceResponse
from convo_eval.core.upstream import is_rate_limited
from convo_eval.judge.domain.observer import JudgeObserver
from convo_eval.judge.domain.verdict import (
    JudgeMetrics,
    JudgeRequest,
    JudgeVerdict,
    Suggestion,
)
from convo_eval.judge.infrastructure.errors import JudgeInvocationError


class HttpJudge:
    """Satisfies the Judge protocol structurally.

    The endpoint combines its own rule-based checks with an LLM pass and
    reports token usage and cost for the request id it was given.
    """

    def __init__(
        self,
        client: ServiceClient,
        path: str,
        retry: BackoffPolicy,
        observer: JudgeObserver,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self._client = client
        self._path = path
        self._retry = retry
        self._observer = observer
        self._sleep = sleep

    async def judge(self, request: JudgeRequest) -> JudgeVerdict:
        """
        Post the finished conversation to the judge endpoint.

        Raises:
            JudgeInvocationError: on a non-success response, an ``error`` field
                in the body, or a body that cannot be parsed.
        """
        scenario_key = request.scenario_key
        self._observer.judge_verdict_started(scenario_key=scenario_key, model=self._path)
        payload = request.model_dump(mode="json", exclude={"request_id"})

        async def attempt() -> ServiceResponse:
            try:
                response = await self._client.post(
                    self._path, payload, request_id=request.request_id
                )
            except httpx.HTTPError as exc:
                raise JudgeInvocationError(reason=str(exc), retriable=True) from exc
            if not response.ok or response.error_text:
                reason = response.error_text or f"eval-judge failed ({response.status})"
                raise JudgeInvocationError(
                    reason=reason,
                    retriable=is_rate_limited(response.status, response.error_text),
                )
            return response

        def on_retry(attempt_no: int, reason: str, delay: float) -> None:
            self._observer.judge_retry(
                scenario_key=scenario_key, attempt=attempt_no, reason=reason, backoff_seconds=delay
            )

        start = time.monotonic()
        try:
            response = await retry_async(
                attempt, policy=self._retry, on_retry=on_retry, sleep=self._sleep
            )
            verdict = _parse_verdict(response.body)
        except JudgeInvocationError as exc:
            self._observer.judge_verdict_failed(scenario_key=scenario_key, reason=str(exc))
            raise

        self._observer.judge_verdict_completed(
            scenario_key=scenario_key,
            duration_ms=int((time.monotonic() - start) * 1000),
            issues=len(verdict.issues),
            cost_usd=verdict.metrics.cost_usd,
        )
        return verdict


def _parse_verdict(body: Any) -> JudgeVerdict:
    if not isinstance(body, dict):
        raise JudgeInvocationError(reason="Failed to parse judge response: body is not an object")
    try:
        issues = [_issue(raw) for raw in body.get("issues") or [] if isinstance(raw, dict)]
        # Suggestions without a prompt key or addendum are dropped, not fatal.
        suggestions = [
            Suggestion.model_validate(raw)
            for raw in body.get("suggestions") or []
            if isinstance(raw, dict)
            and isinstance(raw.get("prompt_key"), str)
            and str(raw.get("proposed_addendum") or "").strip()
        ]
        metrics = JudgeMetrics.model_validate(
            {
                k: v
                for k, v in (body.get("metrics") or {}).items()
                if k in JudgeMetrics.model_fields and v is not None
            }
        )
    except ValidationError as exc:
        raise JudgeInvocationError(reason=f"Failed to parse judge response: {exc}") from exc
    run_id = body.get("eval_run_id")
    return JudgeVerdict(
        issues=issues,
        suggestions=suggestions,
        metrics=metrics,
        eval_run_id=str(run_id) if run_id else None,
    )


def _issue(raw: dict[str, Any]) -> Issue:
    severity = raw.get("severity")
    fields = {k: v for k, v in raw.items() if k not in ("code", "kind", "severity", "message")}
    return Issue(
        severity=severity if severity in ("low", "medium", "high") else "medium",
        kind=str(raw.get("code") or raw.get("kind") or "judge_issue"),
        message=str(raw.get("message") or ""),
        **fields,
    )
