"""JudgeObserver port: domain events emitted during judge invocations."""

from typing import Protocol


class JudgeObserver(Protocol):
    """Observer port for judge domain events.

    Implementations may log to structlog, record for tests, or emit metrics.
    """

    def judge_verdict_started(self, scenario_key: str, model: str) -> None: ...

    def judge_verdict_completed(
        self, scenario_key: str, duration_ms: int, issues: int, cost_usd: float
    ) -> None: ...

    def judge_verdict_failed(self, scenario_key: str, reason: str) -> None: ...

    def judge_retry(
        self, scenario_key: str, attempt: int, reason: str, backoff_seconds: float
    ) -> None: ...

    def judge_cost_unavailable(self, scenario_key: str, model: str, reason: str) -> None: ...

    def judge_high_temperature_warned(self, model: str, temperature: float) -> None: ...
