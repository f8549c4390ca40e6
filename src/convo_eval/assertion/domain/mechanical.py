"""MechanicalAssertionSet: declarative, independently-optional assertion kinds.

A kind left as None is not checked. An empty list or mapping is checked and
trivially passes.
"""

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SchedulerInvariant(StrEnum):
    TOOL_FLOW_CLEARED_ON_STOP = "tool_flow_cleared_on_stop"
    GUIDED_FLOW_MODE_CONSISTENT = "guided_flow_mode_consistent"
    SESSION_STACK_RESUMABLE = "session_stack_resumable"
    SUPERVISOR_FRESH = "supervisor_fresh"
    QUEUE_BOUNDED = "queue_bounded"
    TOPIC_LABEL_NOT_FILLER = "topic_label_not_filler"


class ArraySomeMatch(BaseModel, frozen=True):
    path: str = Field(min_length=1)
    match: dict[str, Any]


class OccurrenceCap(BaseModel, frozen=True):
    pattern: str
    max: int = Field(ge=0)


class MechanicalAssertionSet(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    profile_equals: dict[str, Any] | None = None
    chat_state_equals: dict[str, Any] | None = None
    chat_state_temp_memory_equals: dict[str, Any] | None = None
    chat_state_temp_memory_paths_exist: list[str] | None = None
    chat_state_temp_memory_array_some_match: list[ArraySomeMatch] | None = None

    plan_actions_count_min: int | None = None
    plan_actions_must_include: list[dict[str, Any]] | None = None
    plan_actions_must_not_include: list[dict[str, Any]] | None = None
    plan_frameworks_count_min: int | None = None
    plan_frameworks_must_include: list[dict[str, Any]] | None = None
    plan_frameworks_must_not_include: list[dict[str, Any]] | None = None

    assistant_must_match: list[str] | None = None
    assistant_must_not_match: list[str] | None = None
    assistant_max_occurrences: list[OccurrenceCap] | None = None

    logged_issues_include: list[str] | None = None
    logged_issues_include_any: list[str] | None = None

    scheduler_invariants: list[SchedulerInvariant] | None = None
