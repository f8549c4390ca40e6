"""Judge request and verdict models."""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from convo_eval.assertion.domain.issue import Issue
from convo_eval.conversation.domain.message import ChatMessage


class Suggestion(BaseModel, frozen=True):
    """A proposed prompt addendum for the agent under test."""

    prompt_key: str = Field(min_length=1)
    action: Literal["append", "replace"] = "append"
    proposed_addendum: str = Field(min_length=1)
    rationale: str | None = None


class JudgeMetrics(BaseModel, frozen=True):
    cost_usd: float = 0.0
    prompt_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0


class JudgeRequest(BaseModel, frozen=True):
    """Everything the judge sees about one finished conversation."""

    dataset_key: str
    scenario_key: str
    eval_run_id: str
    request_id: str
    tags: list[str] = []
    transcript: list[ChatMessage]
    state_before: dict[str, Any] | None = None
    state_after: dict[str, Any] | None = None
    config: dict[str, Any] = {}
    assertions: dict[str, Any] | None = None
    force_real_ai: bool = True


class JudgeVerdict(BaseModel):
    model_config = ConfigDict(frozen=True)

    issues: list[Issue] = []
    suggestions: list[Suggestion] = []
    metrics: JudgeMetrics = JudgeMetrics()
    eval_run_id: str | None = None
