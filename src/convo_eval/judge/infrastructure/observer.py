"""Structlog implementation of the JudgeObserver port."""

import structlog


class StructlogJudgeObserver:
    """Delegates judge domain events to structlog.

    Satisfies the JudgeObserver protocol structurally.
    """

    def __init__(self) -> None:
        self._log = structlog.get_logger()

    def judge_verdict_started(self, scenario_key: str, model: str) -> None:
        self._log.info("judge.verdict.started", scenario_key=scenario_key, model=model)

    def judge_verdict_completed(
        self, scenario_key: str, duration_ms: int, issues: int, cost_usd: float
    ) -> None:
        self._log.info(
            "judge.verdict.completed",
            scenario_key=scenario_key,
            duration_ms=duration_ms,
            issues=issues,
            cost_usd=cost_usd,
        )

    def judge_verdict_failed(self, scenario_key: str, reason: str) -> None:
        self._log.error("judge.verdict.failed", scenario_key=scenario_key, reason=reason)

    def judge_retry(
        self, scenario_key: str, attempt: int, reason: str, backoff_seconds: float
    ) -> None:
        self._log.warning(
            "judge.retry",
            scenario_key=scenario_key,
            attempt=attempt,
            reason=reason,
            backoff_seconds=backoff_seconds,
        )

    def judge_cost_unavailable(self, scenario_key: str, model: str, reason: str) -> None:
        self._log.warning(
            "judge.cost.unavailable", scenario_key=scenario_key, model=model, reason=reason
        )

    def judge_high_temperature_warned(self, model: str, temperature: float) -> None:
        self._log.warning(
            "judge.high_temperature_warned", model=model, temperature=temperature
        )
