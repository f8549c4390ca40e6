"""ScenarioResult and BatchResult: what a batch invocation reports back."""

from pydantic import BaseModel, Field

from convo_eval.evaluation.domain.run import EvalRun, RunStatus


class ScenarioResult(BaseModel, frozen=True):
    dataset_key: str
    scenario_key: str
    eval_run_id: str | None = None
    status: RunStatus
    test_user_id: str | None = None
    turns_executed: int = 0
    completed_reason: str | None = None
    issues_count: int = 0
    suggestions_count: int = 0
    cost_usd: float = 0.0
    prompt_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0
    error: str | None = None

    @classmethod
    def from_run(cls, run: EvalRun) -> "ScenarioResult":
        return cls(
            dataset_key=run.dataset_key,
            scenario_key=run.scenario_key,
            eval_run_id=run.id,
            status=run.status,
            test_user_id=run.test_user_id,
            turns_executed=run.metrics.turns_executed,
            completed_reason=run.metrics.completed_reason,
            issues_count=len(run.issues),
            suggestions_count=len(run.suggestions),
            cost_usd=run.metrics.cost_usd,
            prompt_tokens=run.metrics.prompt_tokens,
            output_tokens=run.metrics.output_tokens,
            total_tokens=run.metrics.total_tokens,
            error=run.error,
        )


class BatchResult(BaseModel, frozen=True):
    """Partial results are always reported, including after an early stop."""

    batch_request_id: str = Field(min_length=1)
    requested_scenarios: int
    selected_scenarios: int
    ran: int
    stopped_reason: str | None = None
    plan_template_fingerprint: str | None = None
    total_cost_usd: float = 0.0
    total_prompt_tokens: int = 0
    total_output_tokens: int = 0
    total_tokens: int = 0
    results: list[ScenarioResult] = Field(default_factory=list)
