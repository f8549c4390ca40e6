"""Issue: an immutable finding attached to an evaluation run."""

from enum import StrEnum
from typing import Literal

from pydantic import BaseModel, ConfigDict

type Severity = Literal["low", "medium", "high"]


class IssueKind(StrEnum):
    MECHANICAL_ASSERTION_FAILED = "mechanical_assertion_failed"
    MECHANICAL_ASSERTION_INVALID_REGEX = "mechanical_assertion_invalid_regex"
    SCHEDULER_INVARIANT_VIOLATED = "scheduler_invariant_violated"


class Issue(BaseModel):
    """Issue reported by the mechanical engine or the judge.

    ``kind`` is a plain string because judge issues use their own vocabulary.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    severity: Severity = "high"
    kind: str
    message: str


def high(kind: IssueKind, message: str) -> Issue:
    return Issue(severity="high", kind=kind.value, message=message)
