"""LiteLLMJudge: grades a conversation transcript through LiteLLM structured output."""

import asyncio
import json
import time
from typing import Any, Literal

import litellm
from pydantic import BaseModel

from convo_eval.assertion.domain.issue import Issue
from convo_eval.config.domain.judge import JudgeConfig
from convo_eval.conversation.domain.message import ChatMessage
from convo_eval.core.backoff import BackoffPolicy, Sleeper, retry_async
from convo_eval.judge.domain.observer import JudgeObserver
from convo_eval.judge.domain.verdict import (
    JudgeMetrics,
    JudgeRequest,
    JudgeVerdict,
    Suggestion,
)
from convo_eval.judge.infrastructure.errors import JudgeInvocationError

_SYSTEM_PROMPT = """\
You are a QA judge for a French-speaking coaching assistant. You read the \
transcript of one conversation between a simulated user and the assistant, \
together with the assistant's internal state before and after the conversation, \
and you answer ONLY with JSON.

## Goals

- Spot inconsistencies, rule violations, routing errors while a checkup \
(investigation_state) is active, tone problems and hallucinations.
- Propose improvements as short ADDENDUMS to append to, or replace in, the \
assistant's prompt overrides.

## Rules

- The assistant always uses "tu", never "vous".
- The assistant never greets again once the conversation has started.
- The assistant never uses bold markdown (**).
- While a checkup is active, the investigator mode answers every turn unless \
the user explicitly asks to stop.
- When the scenario lists assertions, report every one the transcript or the \
final state breaks.
- Addendums must be short, actionable and testable.
- Target one prompt_key among: sophia.dispatcher, sophia.investigator, \
sophia.companion, sophia.architect, sophia.firefighter, sophia.sentry.

## Output Format

Respond with a JSON object containing:
- issues: list of {code, severity (low|medium|high), message}
- suggestions: list of {prompt_key, action (append|replace), proposed_addendum, rationale}
Both lists may be empty.
"""


class _Finding(BaseModel):
    code: str
    severity: Literal["low", "medium", "high"] = "medium"
    message: str


class JudgeOutput(BaseModel):
    """Structured response requested from the judge model."""

    issues: list[_Finding] = []
    suggestions: list[Suggestion] = []


class LiteLLMJudge:
    """Judge implementation that delegates to an LLM via LiteLLM.

    Satisfies the Judge protocol structurally. Rate-limit errors from the
    provider are retried with the batch backoff policy.
    """

    def __init__(
        self,
        config: JudgeConfig,
        retry: BackoffPolicy,
        observer: JudgeObserver,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self._config = config
        self._retry = retry
        self._observer = observer
        self._sleep = sleep

        if config.temperature > 0.0:
            self._observer.judge_high_temperature_warned(
                model=config.model, temperature=config.temperature
            )

    async def judge(self, request: JudgeRequest) -> JudgeVerdict:
        """Invoke the LLM judge and return a structured JudgeVerdict.

        Raises:
            JudgeInvocationError: if the LLM call fails or the response cannot
                be parsed into a JudgeOutput.
        """
        scenario_key = request.scenario_key
        self._observer.judge_verdict_started(scenario_key=scenario_key, model=self._config.model)

        messages = [
            {"role": "system", "content": _SYSTEM_PROMPT},
            {"role": "user", "content": _user_message(request)},
        ]

        async def attempt() -> Any:
            try:
                return await litellm.acompletion(
                    model=self._config.model,
                    temperature=self._config.temperature,
                    response_format=JudgeOutput,
                    messages=messages,
                )
            except litellm.RateLimitError as exc:
                raise JudgeInvocationError(reason=str(exc), retriable=True) from exc
            except Exception as exc:
                raise JudgeInvocationError(reason=str(exc)) from exc

        def on_retry(attempt_no: int, reason: str, delay: float) -> None:
            self._observer.judge_retry(
                scenario_key=scenario_key, attempt=attempt_no, reason=reason, backoff_seconds=delay
            )

        start = time.monotonic()
        try:
            response = await retry_async(
                attempt, policy=self._retry, on_retry=on_retry, sleep=self._sleep
            )
        except JudgeInvocationError as exc:
            self._observer.judge_verdict_failed(scenario_key=scenario_key, reason=str(exc))
            raise

        duration_ms = int((time.monotonic() - start) * 1000)

        try:
            raw_content: str = response.choices[0].message.content
            output = JudgeOutput.model_validate_json(raw_content)
        except Exception as exc:
            reason = f"Failed to parse judge response: {exc}"
            self._observer.judge_verdict_failed(scenario_key=scenario_key, reason=reason)
            raise JudgeInvocationError(reason=reason) from exc

        metrics = self._metrics(response, scenario_key)
        issues = [
            Issue(severity=f.severity, kind=f.code, message=f.message) for f in output.issues
        ]

        self._observer.judge_verdict_completed(
            scenario_key=scenario_key,
            duration_ms=duration_ms,
            issues=len(issues),
            cost_usd=metrics.cost_usd,
        )
        return JudgeVerdict(
            issues=issues,
            suggestions=output.suggestions,
            metrics=metrics,
            eval_run_id=request.eval_run_id,
        )

    def _metrics(self, response: Any, scenario_key: str) -> JudgeMetrics:
        usage = getattr(response, "usage", None)
        prompt_tokens = int(getattr(usage, "prompt_tokens", 0) or 0)
        output_tokens = int(getattr(usage, "completion_tokens", 0) or 0)
        total_tokens = int(getattr(usage, "total_tokens", 0) or 0) or prompt_tokens + output_tokens
        try:
            cost_usd = float(litellm.completion_cost(completion_response=response) or 0.0)
        except Exception as exc:  # noqa: BLE001
            # Models missing from LiteLLM's price map report no cost.
            self._observer.judge_cost_unavailable(
                scenario_key=scenario_key, model=self._config.model, reason=str(exc)
            )
            cost_usd = 0.0
        return JudgeMetrics(
            cost_usd=cost_usd,
            prompt_tokens=prompt_tokens,
            output_tokens=output_tokens,
            total_tokens=total_tokens,
        )


def _user_message(request: JudgeRequest) -> str:
    return (
        f"## Scenario\n{request.dataset_key} / {request.scenario_key}\n"
        f"Tags: {', '.join(request.tags) or '-'}\n\n"
        f"## Scenario description\n{_dump(request.config)}\n\n"
        f"## Assertions\n{_dump(request.assertions)}\n\n"
        f"## State before\n{_dump(request.state_before)}\n\n"
        f"## State after\n{_dump(request.state_after)}\n\n"
        f"## Transcript\n{transcript_text(request.transcript)}"
    )


def transcript_text(transcript: list[ChatMessage]) -> str:
    """One line per message: ``ROLE(mode): content``."""
    lines = []
    for message in transcript:
        mode = f"({message.agent_used})" if message.agent_used else ""
        lines.append(f"{message.role.upper()}{mode}: {message.content}")
    return "\n".join(lines)


def _dump(state: dict[str, Any] | None) -> str:
    if state is None:
        return "null"
    return json.dumps(state, ensure_ascii=False, default=str)
