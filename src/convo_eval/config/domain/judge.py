"""Judge configuration model."""

from typing import Literal

from pydantic import BaseModel, Field


class JudgeConfig(BaseModel, frozen=True):
    type: Literal["litellm", "http"] = "litellm"
    model: str = Field(min_length=1)
    temperature: float = Field(default=0.0, ge=0.0, le=2.0)
