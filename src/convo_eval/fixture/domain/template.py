"""PlanTemplate: reusable plan content shared by every scenario of a batch."""

import copy
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class PlanBankMeta(BaseModel):
    model_config = ConfigDict(frozen=True, extra="allow")

    id: str | None = None
    theme_key: str | None = None
    fingerprint: str | None = None
    model: str | None = None


class PlanBankEntry(BaseModel, frozen=True):
    """A pre-generated plan produced offline and stored in the template bank."""

    meta: PlanBankMeta = PlanBankMeta()
    fake: Any = None
    plan_json: dict[str, Any]


class PlanTemplate(BaseModel, frozen=True):
    """Built at most once per batch; never mutated afterwards.

    Callers get their own copy through instantiate() and must give it fresh
    sub-identifiers before writing it anywhere.
    """

    fake_inputs: Any = None
    raw_content: dict[str, Any]
    fingerprint: str = Field(min_length=1)
    source: Literal["generated", "bank"] = "generated"
    bank_meta: PlanBankMeta | None = None

    def instantiate(self) -> dict[str, Any]:
        return copy.deepcopy(self.raw_content)
