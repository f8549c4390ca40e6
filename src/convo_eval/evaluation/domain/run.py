"""EvalRun: the persisted record of one scenario execution attempt."""

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from convo_eval.assertion.domain.issue import Issue
from convo_eval.conversation.domain.message import ChatMessage
from convo_eval.judge.domain.verdict import Suggestion
from convo_eval.scenario.domain.scenario import Channel

type RunId = str


class RunStatus(StrEnum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class RunConfig(BaseModel):
    """Resume anchor stored on the run row.

    ``request_id`` is the deterministic scenario key; ``seeded`` records that
    the identity's fixtures were fully written, so a resume never reseeds it.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    request_id: str = Field(min_length=1)
    test_user_id: str | None = None
    test_user_email: str | None = None
    phone_number: str | None = None
    resumed: bool = False
    channel: Channel = "web"
    seeded: bool = False
    eval_runner: bool = True


class RunMetrics(BaseModel):
    model_config = ConfigDict(frozen=True, extra="allow")

    cost_usd: float = 0.0
    prompt_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0
    turns_executed: int = 0
    completed_reason: str | None = None
    mechanical_issues_count: int = 0
    plan_template_fingerprint: str | None = None


class EvalRun(BaseModel, frozen=True):
    """One row per scenario per batch; retries update it, never duplicate it."""

    id: RunId
    dataset_key: str
    scenario_key: str
    status: RunStatus = RunStatus.RUNNING
    config: RunConfig
    transcript: list[ChatMessage] = Field(default_factory=list)
    state_before: Any = None
    state_after: Any = None
    issues: list[Issue] = Field(default_factory=list)
    suggestions: list[Suggestion] = Field(default_factory=list)
    metrics: RunMetrics = RunMetrics()
    error: str | None = None

    @property
    def test_user_id(self) -> str | None:
        return self.config.test_user_id

    @property
    def is_completed(self) -> bool:
        return self.status == RunStatus.COMPLETED

    def with_config(self, **changes: Any) -> "EvalRun":
        return self.model_copy(update={"config": self.config.model_copy(update=changes)})

    def failed(self, error: str) -> "EvalRun":
        return self.model_copy(update={"status": RunStatus.FAILED, "error": error})
