"""Top-level EvalConfig aggregate: the root configuration object."""

from pathlib import Path

from pydantic import BaseModel, Field, model_validator

from convo_eval.config.domain.judge import JudgeConfig
from convo_eval.config.domain.limits import RunLimits
from convo_eval.config.domain.services import ServicesConfig
from convo_eval.core.backoff import BackoffPolicy


class EvalConfig(BaseModel, frozen=True):
    """Root configuration aggregate for a convo-eval batch."""

    name: str = Field(min_length=1)
    services: ServicesConfig
    judge: JudgeConfig
    limits: RunLimits = RunLimits()
    retry: BackoffPolicy = BackoffPolicy()
    plan_bank_path: Path | None = None

    @model_validator(mode="after")
    def _bank_path_when_bank_mode(self) -> "EvalConfig":
        if self.limits.use_pre_generated_plans and self.plan_bank_path is None:
            raise ValueError("limits.use_pre_generated_plans requires plan_bank_path")
        return self
